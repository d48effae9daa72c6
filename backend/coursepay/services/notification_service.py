# Overview: Fire-and-forget user notifications for orders and withdrawals.

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Notification

logger = logging.getLogger(__name__)


MODE_ORDER = "ORDER"
MODE_WITHDRAW_REQUEST = "WITHDRAW_REQUEST"

MESSAGES = {
    "order.paid": "Your order has been paid successfully.",
    "withdraw.completed": "Your withdraw request has been completed.",
    "withdraw.cancelled": "Your withdraw request has been cancelled.",
}


def notify(user_id: int, message_kind: str, context: dict | None = None) -> Notification | None:
    """
    Record an in-app notification in its own commit.

    Must be called after the caller's unit of work is committed. A failure
    here is logged and rolled back; it never reaches the caller.
    """
    mode_type = MODE_WITHDRAW_REQUEST if message_kind.startswith("withdraw.") else MODE_ORDER
    try:
        notification = Notification(
            receiver_id=user_id,
            mode_type=mode_type,
            message=MESSAGES.get(message_kind, message_kind),
            context_json=context or {},
        )
        db.session.add(notification)
        db.session.commit()
        return notification
    except Exception:
        db.session.rollback()
        logger.exception("Failed to record %s notification for user %s", message_kind, user_id)
        return None


def list_notifications(user_id: int, unread_only: bool = False) -> list[Notification]:
    q = db.session.query(Notification).filter_by(receiver_id=user_id)
    if unread_only:
        q = q.filter_by(is_read=False)
    return q.order_by(Notification.id.desc()).all()
