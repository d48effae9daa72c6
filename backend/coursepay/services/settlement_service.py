# Overview: Pays out a confirmed order's shares into user balances.

"""
Settlement Service

WHY: Orders are priced at checkout but nobody is credited until the payment
is confirmed. Settlement moves each frozen share into a balance:

- platform share      -> platform owner (first live SUPER_ADMIN)
- instructor share    -> order author, or line authors pro rata by final price
- co-instructor share -> split evenly across the order's co-instructors
- affiliate share     -> the affiliate's user, with an AffiliateSale record

The co-instructor share is paid in addition to the instructor and platform
shares, as recorded on the order.

The PENDING/UNPAID -> COMPLETED/PAID flip is a guarded UPDATE, so an order can
be settled once no matter how many confirmations arrive.
"""

from __future__ import annotations

import logging

from ..errors import InvalidError, NotFoundError
from ..extensions import db
from ..models import Affiliate, AffiliateSale, CoInstructorEarning, Order
from coursepay.time_utils import utcnow
from . import notification_service, revenue_service, user_service
from .checkout_service import (
    ORDER_STATUS_COMPLETED,
    ORDER_STATUS_PENDING,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_UNPAID,
)
from .concurrency import guarded_update, lock_for_update, run_with_retry

logger = logging.getLogger(__name__)


def _instructor_allocations(order: Order) -> list[tuple[int, int]]:
    """(author_id, cents) pairs for the instructor share."""
    if order.author_id:
        return [(order.author_id, order.instructor_share_cents)]

    finals_by_author: dict[int, int] = {}
    for item in order.items:
        if item.author_id is None:
            continue
        finals_by_author[item.author_id] = finals_by_author.get(item.author_id, 0) + item.final_price_cents

    author_ids = sorted(finals_by_author)
    parts = revenue_service.allocate_pro_rata(
        order.instructor_share_cents,
        [finals_by_author[a] for a in author_ids],
    )
    return list(zip(author_ids, parts))


def settle_order(order_id: int, transaction_id: str, payment_method: str | None = None) -> Order:
    """
    Mark an order paid and credit every party's balance in one transaction.

    Raises:
        NotFoundError: order missing or soft-deleted
        InvalidError: order already paid, cancelled, or no transaction id
    """
    if not transaction_id:
        raise InvalidError("transaction_id is required to settle an order")

    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id, is_deleted=False)).first()
        if not order:
            raise NotFoundError(f"Order {order_id} not found")
        if order.payment_status != PAYMENT_STATUS_UNPAID or order.status != ORDER_STATUS_PENDING:
            raise InvalidError(
                f"Order {order_id} cannot be settled",
                details={"status": order.status, "payment_status": order.payment_status},
            )

        flipped = guarded_update(
            Order,
            Order.id == order.id,
            Order.payment_status == PAYMENT_STATUS_UNPAID,
            Order.status == ORDER_STATUS_PENDING,
            status=ORDER_STATUS_COMPLETED,
            payment_status=PAYMENT_STATUS_PAID,
            transaction_id=transaction_id,
            payment_method=payment_method or order.payment_method,
            paid_at=utcnow(),
        )
        if flipped != 1:
            raise InvalidError(f"Order {order_id} was settled concurrently")

        if order.platform_share_cents > 0:
            owner = user_service.get_platform_owner()
            if owner:
                user_service.credit_balance(owner.id, order.platform_share_cents)
            else:
                logger.warning("No platform owner account; platform share of order %s not credited", order.id)

        for author_id, cents in _instructor_allocations(order):
            user_service.credit_balance(author_id, cents)

        co_ids = list(order.co_instructor_ids or [])
        if co_ids and order.co_instructors_share_cents > 0:
            parts = revenue_service.allocate_evenly(order.co_instructors_share_cents, len(co_ids))
            for co_id, cents in zip(co_ids, parts):
                user_service.credit_balance(co_id, cents)
                db.session.add(CoInstructorEarning(order_id=order.id, co_instructor_id=co_id, amount_cents=cents))

        if order.affiliate_id and order.affiliate_share_cents > 0:
            affiliate = db.session.query(Affiliate).filter_by(id=order.affiliate_id).first()
            if affiliate:
                user_service.credit_balance(affiliate.user_id, order.affiliate_share_cents)
                db.session.add(AffiliateSale(
                    affiliate_id=affiliate.id,
                    order_id=order.id,
                    author_id=order.author_id,
                    commission_cents=order.affiliate_share_cents,
                ))

        db.session.commit()
        return order

    order = run_with_retry(_op)
    logger.info("Order %s settled with transaction %s", order.id, transaction_id)

    notification_service.notify(
        order.user_id,
        "order.paid",
        {"order_id": order.id, "final_amount_cents": order.final_amount_cents},
    )
    return order
