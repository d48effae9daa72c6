# Overview: Typed engine errors shared by services and mapped to JSON by the routes.

from __future__ import annotations


class EngineError(Exception):
    """Base class for checkout, discount and withdrawal failures."""
    code = "ERROR"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFoundError(EngineError):
    """Purchaser, priced entity, affiliate, discount code or withdrawal request is missing."""
    code = "NOT_FOUND"
    status_code = 404


class InvalidError(EngineError):
    """Business rule violation: bad target, no bank profile, balance too low, duplicate pending request."""
    code = "INVALID"
    status_code = 400


class DiscountExpiredError(EngineError):
    """
    Raised when a matching instrument is past its expiry.

    Carries the instrument so the caller can persist the deactivation
    after rolling back its own unit of work.
    """
    code = "EXPIRED"
    status_code = 400

    def __init__(self, message: str, kind: str, instrument_id: int):
        super().__init__(message, details={"kind": kind, "instrument_id": instrument_id})
        self.kind = kind
        self.instrument_id = instrument_id


class UsageExceededError(EngineError):
    code = "USAGE_EXCEEDED"
    status_code = 409


class InvalidTransitionError(EngineError):
    code = "INVALID_TRANSITION"
    status_code = 409
