from __future__ import annotations

from ..errors import NotFoundError
from ..extensions import db
from ..models import Affiliate
from .user_service import get_active_user


def validate_affiliate(affiliate_id: int) -> Affiliate:
    """Existence check only; the record decides attribution at settlement."""
    affiliate = db.session.query(Affiliate).filter_by(id=affiliate_id).first()
    if not affiliate:
        raise NotFoundError(f"Affiliate {affiliate_id} not found")
    return affiliate


def create_affiliate_account(user_id: int) -> tuple[Affiliate, bool]:
    """Return (account, created). Safe to call repeatedly."""
    user = get_active_user(user_id)

    existing = db.session.query(Affiliate).filter_by(user_id=user.id).first()
    if existing:
        return existing, False

    affiliate = Affiliate(user_id=user.id, is_active=True)
    db.session.add(affiliate)
    db.session.commit()
    return affiliate, True
