from datetime import timedelta

import pytest

from coursepay.errors import DiscountExpiredError, InvalidError, NotFoundError
from coursepay.models import Coupon, Order, OrderItem, User
from coursepay.services import checkout_service
from coursepay.services.checkout_service import CartLine
from coursepay.services.revenue_service import BRANCH_AFFILIATE, BRANCH_COUPON, BRANCH_NONE, BRANCH_PROMO
from coursepay.time_utils import utcnow


def _course_line(course, quantity=1):
    return [CartLine(item_type="course", reference_id=course.id, quantity=quantity)]


# =============================================================================
# REVENUE SCENARIOS
# =============================================================================

def test_plain_course_order_splits_evenly(db_session, student, course):
    order = checkout_service.checkout(student.id, _course_line(course))

    assert order.gross_amount_cents == 10000
    assert order.discount_cents == 0
    assert order.final_amount_cents == 10000
    assert order.instructor_share_cents == 5000
    assert order.platform_share_cents == 5000
    assert order.affiliate_share_cents == 0
    assert order.status == "PENDING"
    assert order.payment_status == "UNPAID"
    assert checkout_service.split_branch_of(order) == BRANCH_NONE


def test_coupon_discounts_and_splits_evenly(db_session, student, course, make_discount):
    coupon = make_discount("coupon", course, code="SAVE10", percent=10, max_usage=5)

    order = checkout_service.checkout(student.id, _course_line(course), coupon_code="SAVE10")

    assert order.discount_cents == 1000
    assert order.final_amount_cents == 9000
    assert order.instructor_share_cents == 4500
    assert order.platform_share_cents == 4500
    assert order.coupon_code == "SAVE10"
    assert checkout_service.split_branch_of(order) == BRANCH_COUPON

    db_session.refresh(coupon)
    assert coupon.used_count == 1


def test_affiliate_order_pays_affiliate_first(db_session, student, course, affiliate):
    order = checkout_service.checkout(student.id, _course_line(course), affiliate_id=affiliate.id)

    assert order.affiliate_share_cents == 2000
    assert order.instructor_share_cents == 4000
    assert order.platform_share_cents == 4000
    assert order.affiliate_id == affiliate.id
    assert checkout_service.split_branch_of(order) == BRANCH_AFFILIATE


def test_co_instructor_share_recorded_independently(db_session, student, course_with_co_instructor, co_instructor):
    order = checkout_service.checkout(student.id, _course_line(course_with_co_instructor))

    assert order.co_instructors_share_cents == 3500
    assert order.co_instructor_ids == [co_instructor.id]
    assert order.instructor_share_cents == 5000
    assert order.platform_share_cents == 5000
    assert order.items[0].co_instructors_share_cents == 3500


def test_promo_and_coupon_stack_and_promo_split_wins(db_session, student, course, make_discount):
    make_discount("coupon", course, code="C10", percent=10)
    make_discount("promo", course, code="P10", percent=10)

    order = checkout_service.checkout(student.id, _course_line(course), coupon_code="C10", promo_code="P10")

    assert order.discount_cents == 2000
    assert order.final_amount_cents == 8000
    assert order.instructor_share_cents == 7760
    assert order.platform_share_cents == 240
    assert checkout_service.split_branch_of(order) == BRANCH_PROMO


def test_stacked_discount_never_exceeds_line_price(db_session, student, course, make_discount):
    make_discount("coupon", course, code="C60", percent=60)
    make_discount("promo", course, code="P60", percent=60)

    order = checkout_service.checkout(student.id, _course_line(course), coupon_code="C60", promo_code="P60")

    assert order.discount_cents == 10000
    assert order.final_amount_cents == 0
    assert order.instructor_share_cents + order.platform_share_cents == 0


# =============================================================================
# CART SHAPES
# =============================================================================

def test_quantity_multiplies_line_price(db_session, student, book):
    order = checkout_service.checkout(student.id, [CartLine("book", book.id, quantity=3)])

    item = order.items[0]
    assert item.unit_price_cents == 2500
    assert item.base_price_cents == 7500
    assert order.final_amount_cents == 7500


def test_mixed_cart_with_different_authors(db_session, student, course, event, company):
    order = checkout_service.checkout(
        student.id,
        [CartLine("course", course.id), CartLine("event", event.id)],
    )

    assert order.final_amount_cents == 14000
    assert order.author_id is None
    assert order.company_id is None
    assert sorted(i.item_type for i in order.items) == ["course", "event"]
    assert {i.author_id for i in order.items} == {course.author_id, event.author_id}


def test_single_author_cart_keeps_author_and_company(db_session, student, course, book, instructor, company):
    order = checkout_service.checkout(
        student.id,
        [CartLine("course", course.id), CartLine("book", book.id)],
    )

    assert order.author_id == instructor.id
    assert order.company_id == company.id


def test_bundle_can_be_bought_without_codes(db_session, student, bundle):
    order = checkout_service.checkout(student.id, [CartLine("course_bundle", bundle.id)])

    assert order.items[0].course_bundle_id == bundle.id
    assert order.final_amount_cents == 15000


def test_code_on_bundle_line_is_not_found(db_session, student, bundle, course, make_discount):
    make_discount("coupon", course, code="SAVE10")

    with pytest.raises(NotFoundError):
        checkout_service.checkout(student.id, [CartLine("course_bundle", bundle.id)], coupon_code="SAVE10")


# =============================================================================
# FAILURES
# =============================================================================

def test_empty_cart_is_invalid(db_session, student):
    with pytest.raises(InvalidError):
        checkout_service.checkout(student.id, [])


def test_zero_quantity_is_invalid(db_session, student, course):
    with pytest.raises(InvalidError):
        checkout_service.checkout(student.id, _course_line(course, quantity=0))


def test_unknown_purchaser(db_session, course):
    with pytest.raises(NotFoundError):
        checkout_service.checkout(999999, _course_line(course))


def test_blocked_purchaser(db_session, student, course):
    student.status = "BLOCKED"
    db_session.commit()

    with pytest.raises(NotFoundError):
        checkout_service.checkout(student.id, _course_line(course))


def test_deleted_course_is_not_found(db_session, student, course):
    course.is_deleted = True
    db_session.commit()

    with pytest.raises(NotFoundError):
        checkout_service.checkout(student.id, _course_line(course))


def test_unknown_affiliate(db_session, student, course):
    with pytest.raises(NotFoundError):
        checkout_service.checkout(student.id, _course_line(course), affiliate_id=424242)


def test_failing_line_rolls_back_consumed_uses(db_session, student, course, book, make_discount):
    coupon = make_discount("coupon", course, code="COURSEONLY", max_usage=5)

    with pytest.raises(NotFoundError):
        checkout_service.checkout(
            student.id,
            [CartLine("course", course.id), CartLine("book", book.id)],
            coupon_code="COURSEONLY",
        )

    db_session.refresh(coupon)
    assert coupon.used_count == 0
    assert db_session.query(Order).count() == 0
    assert db_session.query(OrderItem).count() == 0


def test_last_use_cannot_cover_two_lines(db_session, student, course, make_discount):
    coupon = make_discount("coupon", course, code="ONCE", max_usage=1)

    with pytest.raises(NotFoundError):
        checkout_service.checkout(
            student.id,
            [CartLine("course", course.id), CartLine("course", course.id)],
            coupon_code="ONCE",
        )

    db_session.refresh(coupon)
    assert coupon.used_count == 0
    assert coupon.is_active is True


def test_expired_code_fails_and_stays_deactivated(db_session, student, course, make_discount):
    coupon = make_discount("coupon", course, code="OLD", expire_at=utcnow() - timedelta(hours=1))

    with pytest.raises(DiscountExpiredError):
        checkout_service.checkout(student.id, _course_line(course), coupon_code="OLD")

    refreshed = db_session.get(Coupon, coupon.id)
    db_session.refresh(refreshed)
    assert refreshed.is_active is False
    assert db_session.query(Order).count() == 0


def test_failed_deactivation_keeps_expired_error(db_session, student, course, make_discount, monkeypatch):
    make_discount("coupon", course, code="OLD", expire_at=utcnow() - timedelta(hours=1))

    def fail(kind, instrument_id):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(checkout_service.discount_service, "deactivate_instrument", fail)

    with pytest.raises(DiscountExpiredError):
        checkout_service.checkout(student.id, _course_line(course), coupon_code="OLD")

    assert db_session.query(Order).count() == 0


# =============================================================================
# ADMINISTRATION
# =============================================================================

def test_list_orders_newest_first_with_total(db_session, student, course, book):
    first = checkout_service.checkout(student.id, _course_line(course))
    second = checkout_service.checkout(student.id, [CartLine("book", book.id)])

    orders, total = checkout_service.list_orders(user_id=student.id, page=1, limit=1)

    assert total == 2
    assert [o.id for o in orders] == [second.id]
    assert first.id != second.id


def test_update_status_and_soft_delete(db_session, student, course):
    order = checkout_service.checkout(student.id, _course_line(course))

    checkout_service.update_order_status(order.id, "CANCELLED")
    assert checkout_service.get_order(order.id).status == "CANCELLED"

    with pytest.raises(InvalidError):
        checkout_service.update_order_status(order.id, "SHIPPED")

    checkout_service.delete_order(order.id)
    with pytest.raises(NotFoundError):
        checkout_service.get_order(order.id)
    with pytest.raises(InvalidError):
        checkout_service.delete_order(order.id)


def test_checkout_does_not_touch_balances(db_session, student, course, instructor):
    checkout_service.checkout(student.id, _course_line(course))

    assert db_session.get(User, instructor.id).balance_cents == 0
