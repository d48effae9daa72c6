# Overview: Service-layer operations for checkout; turns a cart into a priced, persisted order.

"""
Checkout Service

WHY: A cart may mix books, courses, bundles and events. Each line is priced
independently, order-level coupon/promo codes are applied to every line, and
the resulting totals are split between platform, author and affiliate.

DESIGN:
- All lines or none: any failing line aborts the whole order
- One transaction: entity resolution, discount consumption and order/item
  inserts commit together, so a failure also gives consumed uses back
- Expired codes are the one side effect that survives a failure: the
  instrument is deactivated in a follow-up commit after the rollback
- Amounts are frozen on the order and its items; nothing is re-priced later
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..errors import DiscountExpiredError, InvalidError, NotFoundError
from ..extensions import db
from ..models import Order, OrderItem
from . import affiliate_service, catalog_service, discount_service, revenue_service
from .concurrency import run_with_retry
from .user_service import get_active_user

logger = logging.getLogger(__name__)


# =============================================================================
# ORDER STATUS (CONSTANTS)
# =============================================================================

ORDER_STATUS_PENDING = "PENDING"
ORDER_STATUS_COMPLETED = "COMPLETED"
ORDER_STATUS_CANCELLED = "CANCELLED"

VALID_ORDER_STATUSES = [
    ORDER_STATUS_PENDING,
    ORDER_STATUS_COMPLETED,
    ORDER_STATUS_CANCELLED,
]

PAYMENT_STATUS_UNPAID = "UNPAID"
PAYMENT_STATUS_PAID = "PAID"


@dataclass(frozen=True)
class CartLine:
    item_type: str
    reference_id: int
    quantity: int = 1


def _single_or_none(values: set):
    """The shared value when every line agrees, else None."""
    if len(values) == 1:
        return next(iter(values))
    return None


# =============================================================================
# CHECKOUT
# =============================================================================

def checkout(
    user_id: int,
    lines: list[CartLine],
    coupon_code: str | None = None,
    promo_code: str | None = None,
    affiliate_id: int | None = None,
    payment_method: str | None = None,
    transaction_id: str | None = None,
) -> Order:
    """
    Price a cart and persist it as a PENDING order.

    Args:
        user_id: Purchaser
        lines: Cart lines (item type, reference id, quantity)
        coupon_code: Applied to every line when supplied
        promo_code: Applied to every line when supplied; stacks with the coupon
        affiliate_id: Referring affiliate (existence-checked only)
        payment_method: Free-form payment metadata
        transaction_id: External payment reference, recorded as-is

    Raises:
        NotFoundError: purchaser, item, code or affiliate missing
        InvalidError: empty cart, bad quantity or item type
        DiscountExpiredError / UsageExceededError: code cannot be used
    """
    if not lines:
        raise InvalidError("Cart is empty")
    for line in lines:
        if line.quantity < 1:
            raise InvalidError(
                "Quantity must be at least 1",
                details={"item_type": line.item_type, "reference_id": line.reference_id},
            )

    def _op():
        purchaser = get_active_user(user_id, label="Purchaser")

        author_ids: set = set()
        company_ids: set = set()
        co_instructor_ids: list[int] = []
        affiliate = None
        items: list[OrderItem] = []

        gross_cents = 0
        discount_cents = 0
        final_cents = 0
        co_share_cents = 0

        for line in lines:
            entity = catalog_service.resolve(line.item_type, line.reference_id)
            author_ids.add(entity.author_id)
            company_ids.add(entity.company_id)

            base_cents = entity.price_cents * line.quantity

            line_discount = 0
            if coupon_code:
                percent = discount_service.consume_discount(
                    discount_service.KIND_COUPON, coupon_code, line.item_type, entity.reference_id
                )
                line_discount += discount_service.discount_amount(base_cents, percent)
            if promo_code:
                percent = discount_service.consume_discount(
                    discount_service.KIND_PROMO, promo_code, line.item_type, entity.reference_id
                )
                line_discount += discount_service.discount_amount(base_cents, percent)
            # Two stacked percentages can exceed the base
            line_discount = min(line_discount, base_cents)

            if affiliate_id is not None and affiliate is None:
                affiliate = affiliate_service.validate_affiliate(affiliate_id)

            line_final = base_cents - line_discount

            line_co_share = 0
            if line.item_type == catalog_service.ITEM_COURSE:
                course_co_ids = catalog_service.active_co_instructor_ids(entity.reference_id)
                if course_co_ids:
                    line_co_share = revenue_service.co_instructor_share(line_final)
                    for co_id in course_co_ids:
                        if co_id not in co_instructor_ids:
                            co_instructor_ids.append(co_id)

            item = OrderItem(
                item_type=line.item_type,
                author_id=entity.author_id,
                quantity=line.quantity,
                unit_price_cents=entity.price_cents,
                base_price_cents=base_cents,
                discount_cents=line_discount,
                final_price_cents=line_final,
                co_instructors_share_cents=line_co_share,
            )
            setattr(item, f"{line.item_type}_id", entity.reference_id)
            items.append(item)

            gross_cents += base_cents
            discount_cents += line_discount
            final_cents += line_final
            co_share_cents += line_co_share

        split = revenue_service.calculate_revenue(
            final_cents,
            revenue_service.InstrumentsUsed(
                coupon=bool(coupon_code),
                promo=bool(promo_code),
                affiliate=affiliate is not None,
            ),
        )

        order = Order(
            user_id=purchaser.id,
            author_id=_single_or_none(author_ids),
            company_id=_single_or_none(company_ids),
            gross_amount_cents=gross_cents,
            discount_cents=discount_cents,
            final_amount_cents=final_cents,
            instructor_share_cents=split.instructor_share_cents,
            platform_share_cents=split.platform_share_cents,
            affiliate_share_cents=split.affiliate_share_cents,
            co_instructors_share_cents=co_share_cents,
            co_instructor_ids=co_instructor_ids,
            coupon_code=coupon_code or None,
            promo_code=promo_code or None,
            affiliate_id=affiliate.id if affiliate else None,
            payment_method=payment_method,
            transaction_id=transaction_id,
            status=ORDER_STATUS_PENDING,
            payment_status=PAYMENT_STATUS_UNPAID,
            items=items,
        )
        db.session.add(order)
        db.session.commit()
        return order

    try:
        order = run_with_retry(_op)
    except DiscountExpiredError as exc:
        # The order rolled back; the expiry flip must still stick.
        try:
            discount_service.deactivate_instrument(exc.kind, exc.instrument_id)
            db.session.commit()
        except Exception:
            db.session.rollback()
            logger.exception("Failed to deactivate expired %s %s", exc.kind, exc.instrument_id)
        raise exc

    logger.info(
        "Order %s created for user %s: final=%s branch=%s",
        order.id, user_id, order.final_amount_cents, split_branch_of(order),
    )
    return order


def split_branch_of(order: Order) -> str:
    return revenue_service.select_branch(
        revenue_service.InstrumentsUsed(
            coupon=bool(order.coupon_code),
            promo=bool(order.promo_code),
            affiliate=order.affiliate_id is not None,
        )
    )


# =============================================================================
# ORDER QUERIES & ADMINISTRATION
# =============================================================================

def get_order(order_id: int) -> Order:
    order = db.session.query(Order).filter_by(id=order_id, is_deleted=False).first()
    if not order:
        raise NotFoundError(f"Order {order_id} not found")
    return order


def list_orders(
    user_id: int | None = None,
    author_id: int | None = None,
    status: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Order], int]:
    """Newest first. Returns (page of orders, total matching)."""
    q = db.session.query(Order).filter_by(is_deleted=False)
    if user_id:
        q = q.filter_by(user_id=user_id)
    if author_id:
        q = q.filter_by(author_id=author_id)
    if status:
        q = q.filter_by(status=status)

    total = q.count()
    page = max(page, 1)
    orders = (
        q.order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return orders, total


def update_order_status(order_id: int, status: str) -> Order:
    if status not in VALID_ORDER_STATUSES:
        raise InvalidError(f"Invalid order status: {status}. Must be one of {VALID_ORDER_STATUSES}")

    def _op():
        order = get_order(order_id)
        order.status = status
        db.session.commit()
        return order

    return run_with_retry(_op)


def delete_order(order_id: int) -> Order:
    """Soft delete."""
    def _op():
        order = db.session.query(Order).filter_by(id=order_id).first()
        if not order:
            raise NotFoundError(f"Order {order_id} not found")
        if order.is_deleted:
            raise InvalidError("Order already deleted")
        order.is_deleted = True
        db.session.commit()
        return order

    return run_with_retry(_op)
