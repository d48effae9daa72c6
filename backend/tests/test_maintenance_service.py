from datetime import timedelta

from coursepay.models import Coupon, PromoCode
from coursepay.services import maintenance_service
from coursepay.time_utils import utcnow


def test_reaper_removes_inactive_and_expired_only(db_session, course, book, event, make_discount):
    live = make_discount("coupon", course, code="LIVE", max_usage=10, used_count=3)
    make_discount("coupon", book, code="EXPIRED", item_type="book", max_usage=10,
                  expire_at=utcnow() - timedelta(days=1))
    make_discount("promo", event, code="USEDUP", item_type="event", max_usage=1, used_count=1, is_active=False)
    make_discount("promo", course, code="OFF", is_active=False)

    counts = maintenance_service.reap_discount_instruments()

    assert counts == {"coupons": 1, "promo_codes": 2}
    assert [c.code for c in db_session.query(Coupon).all()] == [live.code]
    assert db_session.query(PromoCode).count() == 0


def test_reaper_uses_supplied_cutoff(db_session, course, make_discount):
    make_discount("coupon", course, code="SOON", expire_at=utcnow() + timedelta(hours=1))

    counts = maintenance_service.reap_discount_instruments(now=utcnow() + timedelta(hours=2))

    assert counts["coupons"] == 1


def test_reaper_skips_when_another_run_holds_the_lock(db_session, course, make_discount):
    make_discount("coupon", course, code="OFF", is_active=False)

    maintenance_service._reaper_lock.acquire()
    try:
        assert maintenance_service.reap_discount_instruments() is None
    finally:
        maintenance_service._reaper_lock.release()

    assert db_session.query(Coupon).count() == 1


def test_scheduler_job_runs_reaper_in_app_context(app, db_session, course, make_discount):
    from coursepay.jobs.scheduler import run_discount_reaper

    make_discount("coupon", course, code="OFF", is_active=False)

    run_discount_reaper(app)

    assert db_session.query(Coupon).count() == 0


def test_reap_discounts_cli(app, db_session, course, make_discount):
    make_discount("promo", course, code="OFF", is_active=False)

    result = app.test_cli_runner().invoke(args=["maintenance", "reap-discounts"])

    assert result.exit_code == 0
    assert "Deleted 1 rows from promo_codes." in result.output


def test_create_admin_cli(app, db_session):
    from coursepay.models import User

    runner = app.test_cli_runner()
    result = runner.invoke(args=["system", "create-admin", "--email", "owner@coursepay.test"])
    repeat = runner.invoke(args=["system", "create-admin", "--email", "owner@coursepay.test"])

    assert result.exit_code == 0
    assert repeat.exit_code == 0
    assert "already exists" in repeat.output
    assert db_session.query(User).filter_by(role="SUPER_ADMIN").count() == 1
