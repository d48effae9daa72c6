# Overview: Service-layer operations for withdraw requests; the payout state machine over User.balance_cents.

"""
Withdrawal Ledger

LIFECYCLE:
    PENDING --complete--> COMPLETED   (terminal, debits balance once)
    PENDING --cancel----> CANCELLED   (terminal, no balance effect)

RULES:
- At most one PENDING request per user (service check + partial unique index)
- Requested amount must be covered by the balance at creation AND again at
  completion; the completion debit is a guarded UPDATE (balance >= amount)
- BANK_TRANSFER payouts need a bank profile on file
- Re-asserting the current status is an invalid transition, not a no-op
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from ..errors import InvalidError, InvalidTransitionError, NotFoundError
from ..extensions import db
from ..models import WithdrawRequest
from coursepay.time_utils import utcnow
from . import notification_service, user_service
from .concurrency import guarded_update, lock_for_update, run_with_retry

logger = logging.getLogger(__name__)


# =============================================================================
# STATUS & PAYOUT TYPES (CONSTANTS)
# =============================================================================

WITHDRAW_STATUS_PENDING = "PENDING"
WITHDRAW_STATUS_COMPLETED = "COMPLETED"
WITHDRAW_STATUS_CANCELLED = "CANCELLED"

VALID_WITHDRAW_STATUSES = [
    WITHDRAW_STATUS_PENDING,
    WITHDRAW_STATUS_COMPLETED,
    WITHDRAW_STATUS_CANCELLED,
]

# Legal targets from PENDING; terminal states have none.
ALLOWED_TRANSITIONS = {
    WITHDRAW_STATUS_PENDING: {WITHDRAW_STATUS_COMPLETED, WITHDRAW_STATUS_CANCELLED},
    WITHDRAW_STATUS_COMPLETED: set(),
    WITHDRAW_STATUS_CANCELLED: set(),
}

PAYOUT_BANK_TRANSFER = "BANK_TRANSFER"
PAYOUT_STRIPE = "STRIPE"

VALID_PAYOUT_TYPES = [
    PAYOUT_BANK_TRANSFER,
    PAYOUT_STRIPE,
]

PAYOUT_TYPES_REQUIRING_BANK_PROFILE = {PAYOUT_BANK_TRANSFER}


def _has_pending_request(user_id: int) -> bool:
    return db.session.query(
        db.session.query(WithdrawRequest)
        .filter_by(user_id=user_id, status=WITHDRAW_STATUS_PENDING)
        .exists()
    ).scalar()


# =============================================================================
# CREATION
# =============================================================================

def create_withdraw_request(
    user_id: int,
    amount_cents: int,
    payout_type: str,
    transfer_reference: str | None = None,
) -> WithdrawRequest:
    """
    Open a PENDING withdraw request. The balance is not touched yet.

    Raises:
        NotFoundError: user missing, inactive or deleted
        InvalidError: bad amount or payout type, pending request exists,
            amount above balance, bank profile missing
    """
    if payout_type not in VALID_PAYOUT_TYPES:
        raise InvalidError(f"Invalid payout type: {payout_type}. Must be one of {VALID_PAYOUT_TYPES}")
    if amount_cents <= 0:
        raise InvalidError("Withdraw amount must be positive")

    def _op():
        user = user_service.get_active_user(user_id)

        if _has_pending_request(user.id):
            raise InvalidError("A pending withdraw request already exists for this user")

        if amount_cents > user.balance_cents:
            raise InvalidError(
                "Insufficient balance for this withdraw request",
                details={"balance_cents": user.balance_cents, "requested_cents": amount_cents},
            )

        if payout_type in PAYOUT_TYPES_REQUIRING_BANK_PROFILE and not user_service.has_bank_profile(user.id):
            raise InvalidError("Bank details are required for bank transfer withdrawals")

        request = WithdrawRequest(
            user_id=user.id,
            amount_cents=amount_cents,
            payout_type=payout_type,
            status=WITHDRAW_STATUS_PENDING,
            transfer_reference=transfer_reference,
        )
        db.session.add(request)
        try:
            db.session.commit()
        except IntegrityError:
            # Lost the race against another creation for this user
            db.session.rollback()
            raise InvalidError("A pending withdraw request already exists for this user")
        return request

    request = run_with_retry(_op)
    logger.info("Withdraw request %s opened by user %s for %s", request.id, user_id, amount_cents)
    return request


# =============================================================================
# TRANSITIONS
# =============================================================================

def transition_withdraw_request(
    request_id: int,
    status: str,
    processed_by_user_id: int | None = None,
    transfer_reference: str | None = None,
) -> WithdrawRequest:
    """
    Move a PENDING request to COMPLETED or CANCELLED.

    Completion re-checks the balance and debits it in the same transaction
    as the status change; if the balance no longer covers the amount nothing
    is written.

    Raises:
        NotFoundError: request missing
        InvalidTransitionError: request not PENDING, or target not allowed
        InvalidError: balance no longer covers the amount
    """
    if status not in VALID_WITHDRAW_STATUSES:
        raise InvalidTransitionError(f"Invalid withdraw status: {status}")

    def _op():
        request = lock_for_update(db.session.query(WithdrawRequest).filter_by(id=request_id)).first()
        if not request:
            raise NotFoundError(f"Withdraw request {request_id} not found")

        if status not in ALLOWED_TRANSITIONS[request.status]:
            raise InvalidTransitionError(
                f"Cannot move withdraw request from {request.status} to {status}",
                details={"current_status": request.status, "requested_status": status},
            )

        now = utcnow()
        values = {
            "status": status,
            "processed_by_user_id": processed_by_user_id,
        }
        if transfer_reference:
            values["transfer_reference"] = transfer_reference

        if status == WITHDRAW_STATUS_COMPLETED:
            if not user_service.debit_balance(request.user_id, request.amount_cents):
                raise InvalidError(
                    "Insufficient balance to complete this withdraw request",
                    details={"requested_cents": request.amount_cents},
                )
            values["completed_at"] = now
        else:
            values["cancelled_at"] = now

        moved = guarded_update(
            WithdrawRequest,
            WithdrawRequest.id == request.id,
            WithdrawRequest.status == WITHDRAW_STATUS_PENDING,
            **values,
        )
        if moved != 1:
            # Another operator resolved it first; the debit above rolls back with us
            raise InvalidTransitionError(f"Withdraw request {request_id} is no longer pending")

        db.session.commit()
        return request

    request = run_with_retry(_op)
    logger.info("Withdraw request %s moved to %s", request.id, status)

    notification_service.notify(
        request.user_id,
        "withdraw.completed" if status == WITHDRAW_STATUS_COMPLETED else "withdraw.cancelled",
        {"withdraw_request_id": request.id, "amount_cents": request.amount_cents},
    )
    return request


# =============================================================================
# QUERIES
# =============================================================================

def get_withdraw_request(request_id: int) -> WithdrawRequest:
    request = db.session.query(WithdrawRequest).filter_by(id=request_id).first()
    if not request:
        raise NotFoundError(f"Withdraw request {request_id} not found")
    return request


def list_withdraw_requests(
    user_id: int | None = None,
    status: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[WithdrawRequest], int]:
    q = db.session.query(WithdrawRequest)
    if user_id:
        q = q.filter_by(user_id=user_id)
    if status:
        q = q.filter_by(status=status)

    total = q.count()
    page = max(page, 1)
    requests = (
        q.order_by(WithdrawRequest.created_at.desc(), WithdrawRequest.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return requests, total
