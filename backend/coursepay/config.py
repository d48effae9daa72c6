# backend/coursepay/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///coursepay.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Background jobs (discount reaper). Off by default so tests and CLI
    # invocations never spawn scheduler threads.
    SCHEDULER_ENABLED = _env_bool("SCHEDULER_ENABLED")
    SCHEDULER_TIMEZONE = os.environ.get("SCHEDULER_TIMEZONE", "UTC")
    DISCOUNT_REAPER_INTERVAL_SECONDS = int(os.environ.get("DISCOUNT_REAPER_INTERVAL_SECONDS", "86400"))

    ORDERS_PAGE_LIMIT_MAX = int(os.environ.get("ORDERS_PAGE_LIMIT_MAX", "100"))
