# Overview: Housekeeping jobs; currently the expired/inactive discount reaper.

from __future__ import annotations

import logging
import threading
from datetime import datetime

from sqlalchemy import or_

from ..extensions import db
from ..models import Coupon, PromoCode
from coursepay.time_utils import utcnow

logger = logging.getLogger(__name__)

# One reaper run per process at a time (scheduler tick vs. CLI invocation)
_reaper_lock = threading.Lock()


def reap_discount_instruments(now: datetime | None = None) -> dict[str, int] | None:
    """
    Hard-delete coupons and promo codes that are inactive or past expiry.

    Remaining usage does not matter. Each table is its own commit; a failing
    table is rolled back and logged and the next one still runs.

    Returns per-table deletion counts, or None when another run holds the lock.
    """
    if not _reaper_lock.acquire(blocking=False):
        logger.info("Discount reaper already running; skipping this tick")
        return None

    try:
        cutoff = now or utcnow()
        counts: dict[str, int] = {}
        for model in (Coupon, PromoCode):
            try:
                deleted = db.session.query(model).filter(
                    or_(model.is_active.is_(False), model.expire_at < cutoff)
                ).delete(synchronize_session=False)
                db.session.commit()
                counts[model.__tablename__] = deleted
            except Exception:
                db.session.rollback()
                logger.exception("Failed to reap %s", model.__tablename__)
                counts[model.__tablename__] = 0

        logger.info(
            "Discount reaper deleted %s coupons and %s promo codes",
            counts.get(Coupon.__tablename__, 0),
            counts.get(PromoCode.__tablename__, 0),
        )
        return counts
    finally:
        _reaper_lock.release()
