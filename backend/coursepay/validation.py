# Overview: Request body parsing for the HTTP layer; raises ValidationError on bad input.

from __future__ import annotations

from datetime import datetime
from typing import Any

from coursepay.time_utils import parse_iso_datetime
from .services.catalog_service import VALID_ITEM_TYPES
from .services.checkout_service import CartLine


# Maximum single amount: $9,999,999.99 (999,999,999 cents)
MAX_AMOUNT_CENTS = 999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


def require_json_object(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def parse_int(value: Any, field: str, *, required: bool = True) -> int | None:
    """
    Strict integer parsing.

    Accepts ints and plain digit strings. Rejects booleans, floats,
    decimals and scientific notation.
    """
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required")
        return None

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    if isinstance(value, str):
        stripped = value.strip()
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    raise ValidationError(f"{field} must be an integer")


def parse_id(value: Any, field: str, *, required: bool = True) -> int | None:
    parsed = parse_int(value, field, required=required)
    if parsed is not None and parsed <= 0:
        raise ValidationError(f"{field} must be a positive id")
    return parsed


def parse_cents(value: Any, field: str) -> int:
    cents = parse_int(value, field)
    if cents <= 0:
        raise ValidationError(f"{field} must be positive")
    if cents > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS} cents")
    return cents


def parse_optional_str(value: Any, field: str, *, max_length: int = 255) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    stripped = value.strip()
    if not stripped:
        return None
    if len(stripped) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return stripped


def parse_datetime(value: Any, field: str) -> datetime:
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
    try:
        dt = parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
    if dt is None:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
    return dt


def parse_cart_lines(raw: Any) -> list[CartLine]:
    """
    Parse the `items` array of a checkout body.

    Each entry: {"item_type": "course", "reference_id": 12, "quantity": 1}
    """
    if not isinstance(raw, list) or not raw:
        raise ValidationError("items must be a non-empty list")

    lines: list[CartLine] = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ValidationError(f"items[{index}] must be an object")

        item_type = entry.get("item_type")
        if item_type not in VALID_ITEM_TYPES:
            raise ValidationError(
                f"items[{index}].item_type must be one of {sorted(VALID_ITEM_TYPES)}"
            )

        reference_id = parse_id(entry.get("reference_id"), f"items[{index}].reference_id")
        quantity = parse_int(entry.get("quantity", 1), f"items[{index}].quantity")
        if quantity < 1:
            raise ValidationError(f"items[{index}].quantity must be at least 1")

        lines.append(CartLine(item_type=item_type, reference_id=reference_id, quantity=quantity))
    return lines
