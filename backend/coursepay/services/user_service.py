# Overview: User and bank-profile lookups plus the atomic balance primitives.

from __future__ import annotations

from ..errors import NotFoundError
from ..extensions import db
from ..models import User, BankDetail
from .concurrency import guarded_update


USER_STATUS_ACTIVE = "ACTIVE"
USER_STATUS_BLOCKED = "BLOCKED"

ROLE_STUDENT = "STUDENT"
ROLE_INSTRUCTOR = "INSTRUCTOR"
ROLE_SUPER_ADMIN = "SUPER_ADMIN"


def get_user(user_id: int) -> User | None:
    return db.session.query(User).filter_by(id=user_id).first()


def get_active_user(user_id: int, label: str = "User") -> User:
    """Return a live, active user or raise NotFoundError."""
    user = (
        db.session.query(User)
        .filter_by(id=user_id, status=USER_STATUS_ACTIVE, is_deleted=False)
        .first()
    )
    if not user:
        raise NotFoundError(f"{label} {user_id} not found")
    return user


def get_platform_owner() -> User | None:
    """The account that receives platform shares (first live super admin)."""
    return (
        db.session.query(User)
        .filter_by(role=ROLE_SUPER_ADMIN, is_deleted=False)
        .order_by(User.id)
        .first()
    )


def has_bank_profile(user_id: int) -> bool:
    return db.session.query(
        db.session.query(BankDetail).filter_by(user_id=user_id, is_deleted=False).exists()
    ).scalar()


def credit_balance(user_id: int, amount_cents: int) -> bool:
    """Atomically add to a balance. Does not commit."""
    if amount_cents <= 0:
        return False
    return guarded_update(
        User,
        User.id == user_id,
        balance_cents=User.balance_cents + amount_cents,
    ) == 1


def debit_balance(user_id: int, amount_cents: int) -> bool:
    """
    Atomically subtract from a balance if it covers the amount.

    Returns False (and changes nothing) when the balance is too low.
    Does not commit.
    """
    return guarded_update(
        User,
        User.id == user_id,
        User.balance_cents >= amount_cents,
        balance_cents=User.balance_cents - amount_cents,
    ) == 1
