# Overview: Coupon and promo code administration, validation and atomic consumption.

"""
Discount Instrument Service

Coupons and promo codes share one contract; they only differ in the revenue
split they trigger downstream.

CONSUMPTION CONTRACT (per code, item type, item id):
1. No active instrument targets this exact item        -> NotFoundError
2. Past expire_at                                      -> DiscountExpiredError
   (caller persists is_active=False after its rollback)
3. Capped and used_count >= max_usage                  -> UsageExceededError
4. Otherwise one guarded UPDATE increments used_count and flips is_active
   when the ceiling is reached. Zero rows matched means a concurrent
   checkout took the last use                          -> UsageExceededError

Consumption never commits; it rides the caller's transaction so a failed
checkout gives the use back.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import and_, case, or_

from ..errors import DiscountExpiredError, InvalidError, NotFoundError, UsageExceededError
from ..extensions import db
from ..models import Coupon, PromoCode
from coursepay.time_utils import as_utc_naive, is_past, utcnow
from . import catalog_service
from .concurrency import guarded_update, lock_for_update
from .user_service import get_active_user


KIND_COUPON = "coupon"
KIND_PROMO = "promo"

MODEL_BY_KIND = {
    KIND_COUPON: Coupon,
    KIND_PROMO: PromoCode,
}

LABEL_BY_KIND = {
    KIND_COUPON: "Coupon",
    KIND_PROMO: "Promo code",
}

# Bundles cannot carry their own instrument.
TARGET_COLUMN_BY_ITEM_TYPE = {
    catalog_service.ITEM_BOOK: "book_id",
    catalog_service.ITEM_COURSE: "course_id",
    catalog_service.ITEM_EVENT: "event_id",
}

# Book and event instruments must be issued by the item's own author.
AUTHOR_BOUND_ITEM_TYPES = {catalog_service.ITEM_BOOK, catalog_service.ITEM_EVENT}


def _model_for(kind: str):
    model = MODEL_BY_KIND.get(kind)
    if model is None:
        raise InvalidError(f"Invalid discount kind: {kind}. Must be one of {list(MODEL_BY_KIND)}")
    return model


def _other_kind(kind: str) -> str:
    return KIND_PROMO if kind == KIND_COUPON else KIND_COUPON


def discount_amount(base_cents: int, percent: int) -> int:
    """Percentage of a base amount in cents, rounded half up."""
    return (base_cents * percent + 50) // 100


def find_matching_instrument(kind: str, code: str, item_type: str, reference_id: int, *, lock: bool = False):
    """Active instrument with this code that targets exactly this item, or None."""
    model = _model_for(kind)
    target_column = TARGET_COLUMN_BY_ITEM_TYPE.get(item_type)
    if target_column is None:
        return None

    q = db.session.query(model).filter(
        model.code == code,
        model.is_active.is_(True),
        model.item_type == item_type,
        getattr(model, target_column) == reference_id,
    )
    if lock:
        q = lock_for_update(q)
    return q.first()


def consume_discount(
    kind: str,
    code: str,
    item_type: str,
    reference_id: int,
    now: datetime | None = None,
) -> int:
    """
    Validate and consume one use of a coupon or promo code for one cart line.

    Returns the discount percentage. Does not commit.
    """
    model = _model_for(kind)
    label = LABEL_BY_KIND[kind]

    instrument = find_matching_instrument(kind, code, item_type, reference_id, lock=True)
    if not instrument:
        raise NotFoundError(
            f"{label} '{code}' is invalid for this item",
            details={"kind": kind, "code": code, "item_type": item_type, "reference_id": reference_id},
        )

    if is_past(instrument.expire_at, now):
        raise DiscountExpiredError(f"{label} '{code}' has expired", kind=kind, instrument_id=instrument.id)

    if instrument.max_usage is not None and instrument.used_count >= instrument.max_usage:
        raise UsageExceededError(f"{label} '{code}' usage limit reached")

    matched = guarded_update(
        model,
        model.id == instrument.id,
        model.is_active.is_(True),
        or_(model.max_usage.is_(None), model.used_count < model.max_usage),
        used_count=model.used_count + 1,
        is_active=case(
            (and_(model.max_usage.isnot(None), model.used_count + 1 >= model.max_usage), False),
            else_=model.is_active,
        ),
    )
    if matched != 1:
        raise UsageExceededError(f"{label} '{code}' usage limit reached")

    return instrument.discount_percent


def deactivate_instrument(kind: str, instrument_id: int) -> bool:
    """Flip an instrument inactive. Does not commit."""
    model = _model_for(kind)
    return guarded_update(
        model,
        model.id == instrument_id,
        model.is_active.is_(True),
        is_active=False,
    ) == 1


# =============================================================================
# ADMINISTRATION
# =============================================================================

def create_discount(kind: str, data: dict):
    """
    Issue a coupon or promo code for one book, course or event.

    Required: author_id, code, item_type, discount_percent, expire_at and the
    item's reference (book_id / course_id / event_id).
    Optional: max_usage.
    """
    model = _model_for(kind)
    label = LABEL_BY_KIND[kind]

    author_id = data.get("author_id")
    if author_id is None:
        raise InvalidError(f"{label} author_id is required")
    author = get_active_user(author_id, label="Author")

    code = (data.get("code") or "").strip()
    if not code:
        raise InvalidError(f"{label} code is required")

    percent = data.get("discount_percent")
    if not isinstance(percent, int) or isinstance(percent, bool) or not 1 <= percent <= 100:
        raise InvalidError("discount_percent must be an integer between 1 and 100")

    expire_at = data.get("expire_at")
    if expire_at is None or not isinstance(expire_at, datetime):
        raise InvalidError("expire_at is required")
    expire_at = as_utc_naive(expire_at)
    if expire_at <= utcnow():
        raise InvalidError(f"{label} expiration must be in the future")

    max_usage = data.get("max_usage")
    if max_usage is not None and (not isinstance(max_usage, int) or isinstance(max_usage, bool) or max_usage < 1):
        raise InvalidError("max_usage must be a positive integer")

    if db.session.query(model).filter_by(code=code).first():
        raise InvalidError(f"{label} code already exists! Please choose a different code.")

    item_type = data.get("item_type")
    target_column = TARGET_COLUMN_BY_ITEM_TYPE.get(item_type)
    if target_column is None:
        raise InvalidError(
            f"{label} item_type must be one of {sorted(TARGET_COLUMN_BY_ITEM_TYPE)}"
        )

    reference_id = data.get(target_column)
    if not reference_id:
        raise InvalidError(f"{target_column} is required for a {item_type} {label.lower()}")
    stray = [col for col in TARGET_COLUMN_BY_ITEM_TYPE.values() if col != target_column and data.get(col)]
    if stray:
        raise InvalidError(f"A {item_type} {label.lower()} cannot also reference {', '.join(stray)}")

    entity = catalog_service.get_live_entity(item_type, reference_id)
    if entity is None or (item_type in AUTHOR_BOUND_ITEM_TYPES and entity.author_id != author.id):
        raise InvalidError(f"{item_type} not found or does not belong to author")

    other_model = MODEL_BY_KIND[_other_kind(kind)]
    conflicting = db.session.query(other_model).filter(
        other_model.item_type == item_type,
        getattr(other_model, target_column) == reference_id,
        other_model.is_active.is_(True),
    ).first()
    if conflicting:
        raise InvalidError(
            f"A {LABEL_BY_KIND[_other_kind(kind)].lower()} already exists for this {item_type}! "
            f"Cannot create {label.lower()}."
        )

    duplicate = db.session.query(model).filter(
        model.item_type == item_type,
        getattr(model, target_column) == reference_id,
        model.is_active.is_(True),
    ).first()
    if duplicate:
        raise InvalidError(f"An active {label.lower()} already exists for this {item_type}!")

    instrument = model(
        code=code,
        author_id=author.id,
        item_type=item_type,
        discount_percent=percent,
        expire_at=expire_at,
        max_usage=max_usage,
        used_count=0,
        is_active=True,
        **{target_column: reference_id},
    )
    db.session.add(instrument)
    db.session.commit()
    return instrument


def get_discount(kind: str, instrument_id: int):
    model = _model_for(kind)
    instrument = db.session.query(model).filter_by(id=instrument_id).first()
    if not instrument:
        raise NotFoundError(f"{LABEL_BY_KIND[kind]} {instrument_id} not found")
    return instrument


def list_discounts(kind: str, author_id: int | None = None, active_only: bool = False) -> list:
    model = _model_for(kind)
    q = db.session.query(model)
    if author_id:
        q = q.filter_by(author_id=author_id)
    if active_only:
        q = q.filter(model.is_active.is_(True), model.expire_at >= utcnow())
    return q.order_by(model.created_at.desc(), model.id.desc()).all()


def deactivate_discount(kind: str, instrument_id: int):
    instrument = get_discount(kind, instrument_id)
    if instrument.is_active:
        instrument.is_active = False
        db.session.commit()
    return instrument
