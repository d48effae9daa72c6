# backend/coursepay/routes/system.py
"""
System health and version endpoints.

Health reports database reachability plus two engine-specific signals:
discount instruments the reaper has not cleaned up yet, and withdraw
requests waiting for an operator.
"""

import sys
import time

from flask import Blueprint, current_app
from sqlalchemy import or_

from ..extensions import db, scheduler
from ..models import Coupon, PromoCode, WithdrawRequest
from coursepay.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(db.select(1))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_discount_housekeeping() -> dict:
    """
    Count instruments the reaper should have removed.

    A growing backlog with the scheduler enabled means the job is not running.
    """
    try:
        now = utcnow()
        stale = 0
        for model in (Coupon, PromoCode):
            stale += db.session.query(model).filter(
                or_(model.is_active.is_(False), model.expire_at < now)
            ).count()

        status = "healthy"
        if stale and current_app.config.get("SCHEDULER_ENABLED") and not scheduler.running:
            status = "degraded"

        return {
            "status": status,
            "details": {
                "stale_instruments": stale,
                "scheduler_running": scheduler.running,
            }
        }
    except Exception:
        current_app.logger.exception("Discount housekeeping check failed")
        return {"status": "unhealthy", "error": "Discount housekeeping error"}


def check_withdrawal_queue() -> dict:
    try:
        pending = db.session.query(WithdrawRequest).filter_by(status="PENDING").count()
        return {"status": "healthy", "details": {"pending_withdraw_requests": pending}}
    except Exception:
        current_app.logger.exception("Withdrawal queue check failed")
        return {"status": "unhealthy", "error": "Withdrawal queue error"}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    checks = {
        "database": check_database_health(),
        "discount_housekeeping": check_discount_housekeeping(),
        "withdrawal_queue": check_withdrawal_queue(),
    }

    statuses = [check["status"] for check in checks.values()]
    if "unhealthy" in statuses:
        overall_status, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": checks,
    }, http_status


@system_bp.get("/version")
def version():
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }
