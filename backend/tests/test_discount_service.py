from datetime import timedelta

import pytest

from coursepay.errors import DiscountExpiredError, InvalidError, NotFoundError, UsageExceededError
from coursepay.models import Coupon, PromoCode
from coursepay.services import discount_service
from coursepay.services.discount_service import KIND_COUPON, KIND_PROMO
from coursepay.time_utils import utcnow


def _payload(author, target, **overrides):
    data = {
        "author_id": author.id,
        "code": "SPRING10",
        "item_type": "course",
        "course_id": target.id,
        "discount_percent": 10,
        "expire_at": utcnow() + timedelta(days=30),
        "max_usage": 5,
    }
    data.update(overrides)
    return data


# =============================================================================
# CONSUMPTION
# =============================================================================

def test_consume_increments_usage_and_returns_percent(db_session, course, make_discount):
    coupon = make_discount(KIND_COUPON, course, code="SAVE10", percent=10, max_usage=3)

    percent = discount_service.consume_discount(KIND_COUPON, "SAVE10", "course", course.id)
    db_session.commit()

    db_session.refresh(coupon)
    assert percent == 10
    assert coupon.used_count == 1
    assert coupon.is_active is True


def test_consume_last_use_deactivates(db_session, course, make_discount):
    coupon = make_discount(KIND_COUPON, course, code="ONCE", max_usage=1)

    discount_service.consume_discount(KIND_COUPON, "ONCE", "course", course.id)
    db_session.commit()

    db_session.refresh(coupon)
    assert coupon.used_count == 1
    assert coupon.is_active is False


def test_uncapped_instrument_never_deactivates(db_session, course, make_discount):
    promo = make_discount(KIND_PROMO, course, code="FOREVER", max_usage=None)

    for _ in range(3):
        discount_service.consume_discount(KIND_PROMO, "FOREVER", "course", course.id)
    db_session.commit()

    db_session.refresh(promo)
    assert promo.used_count == 3
    assert promo.is_active is True


def test_code_for_other_item_is_not_found(db_session, course, book, make_discount):
    make_discount(KIND_COUPON, course, code="COURSEONLY")

    with pytest.raises(NotFoundError):
        discount_service.consume_discount(KIND_COUPON, "COURSEONLY", "book", book.id)


def test_coupon_code_is_not_a_promo_code(db_session, course, make_discount):
    make_discount(KIND_COUPON, course, code="SAVE10")

    with pytest.raises(NotFoundError):
        discount_service.consume_discount(KIND_PROMO, "SAVE10", "course", course.id)


def test_expired_instrument_raises_with_instrument_reference(db_session, course, make_discount):
    coupon = make_discount(KIND_COUPON, course, code="OLD", expire_at=utcnow() - timedelta(minutes=1))

    with pytest.raises(DiscountExpiredError) as exc_info:
        discount_service.consume_discount(KIND_COUPON, "OLD", "course", course.id)

    assert exc_info.value.kind == KIND_COUPON
    assert exc_info.value.instrument_id == coupon.id
    assert exc_info.value.code == "EXPIRED"


def test_exhausted_instrument_raises_usage_exceeded(db_session, course, make_discount):
    make_discount(KIND_COUPON, course, code="FULL", max_usage=2, used_count=2)

    with pytest.raises(UsageExceededError):
        discount_service.consume_discount(KIND_COUPON, "FULL", "course", course.id)


def test_inactive_instrument_is_not_found(db_session, course, make_discount):
    make_discount(KIND_COUPON, course, code="OFF", is_active=False)

    with pytest.raises(NotFoundError):
        discount_service.consume_discount(KIND_COUPON, "OFF", "course", course.id)


def test_discount_amount_rounds_half_up():
    assert discount_service.discount_amount(10000, 10) == 1000
    assert discount_service.discount_amount(2550, 10) == 255
    assert discount_service.discount_amount(5, 10) == 1
    assert discount_service.discount_amount(4, 10) == 0


# =============================================================================
# CREATION
# =============================================================================

def test_create_coupon(db_session, instructor, course):
    coupon = discount_service.create_discount(KIND_COUPON, _payload(instructor, course))

    assert isinstance(coupon, Coupon)
    assert coupon.code == "SPRING10"
    assert coupon.used_count == 0
    assert coupon.is_active is True


def test_create_rejects_duplicate_code(db_session, instructor, course):
    discount_service.create_discount(KIND_COUPON, _payload(instructor, course))

    with pytest.raises(InvalidError):
        discount_service.create_discount(KIND_COUPON, _payload(instructor, course, max_usage=None))


def test_create_rejects_past_expiry(db_session, instructor, course):
    with pytest.raises(InvalidError):
        discount_service.create_discount(
            KIND_COUPON, _payload(instructor, course, expire_at=utcnow() - timedelta(days=1))
        )


@pytest.mark.parametrize("percent", [0, 101, "10", True])
def test_create_rejects_bad_percent(db_session, instructor, course, percent):
    with pytest.raises(InvalidError):
        discount_service.create_discount(KIND_COUPON, _payload(instructor, course, discount_percent=percent))


def test_create_rejects_bundle_target(db_session, instructor, bundle):
    with pytest.raises(InvalidError):
        discount_service.create_discount(
            KIND_COUPON,
            _payload(instructor, bundle, item_type="course_bundle", course_id=None, course_bundle_id=bundle.id),
        )


def test_create_rejects_book_of_another_author(db_session, other_instructor, book):
    with pytest.raises(InvalidError):
        discount_service.create_discount(
            KIND_COUPON,
            _payload(other_instructor, book, item_type="book", course_id=None, book_id=book.id),
        )


def test_create_rejects_promo_when_coupon_targets_item(db_session, instructor, course):
    discount_service.create_discount(KIND_COUPON, _payload(instructor, course))

    with pytest.raises(InvalidError):
        discount_service.create_discount(KIND_PROMO, _payload(instructor, course, code="PROMO1"))


def test_create_rejects_stray_target_columns(db_session, instructor, course, book):
    with pytest.raises(InvalidError):
        discount_service.create_discount(KIND_COUPON, _payload(instructor, course, book_id=book.id))


def test_create_requires_known_author(db_session, instructor, course):
    data = _payload(instructor, course, author_id=999999)
    with pytest.raises(NotFoundError):
        discount_service.create_discount(KIND_COUPON, data)


def test_create_requires_author_id(db_session, instructor, course):
    data = _payload(instructor, course)
    del data["author_id"]

    with pytest.raises(InvalidError):
        discount_service.create_discount(KIND_COUPON, data)


def test_create_rejects_second_active_coupon_from_another_author(db_session, instructor, other_instructor, course):
    discount_service.create_discount(KIND_COUPON, _payload(instructor, course))

    with pytest.raises(InvalidError):
        discount_service.create_discount(KIND_COUPON, _payload(other_instructor, course, code="OTHER10"))

    assert db_session.query(Coupon).count() == 1


def test_deactivate_and_list_active(db_session, instructor, course, book, make_discount):
    live = make_discount(KIND_PROMO, course, code="LIVE")
    stale = make_discount(KIND_PROMO, book, code="STALE", item_type="book")

    discount_service.deactivate_discount(KIND_PROMO, stale.id)

    active = discount_service.list_discounts(KIND_PROMO, author_id=instructor.id, active_only=True)
    assert [p.id for p in active] == [live.id]
    assert db_session.get(PromoCode, stale.id).is_active is False


def test_get_missing_discount(db_session):
    with pytest.raises(NotFoundError):
        discount_service.get_discount(KIND_COUPON, 424242)
