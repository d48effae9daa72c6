# Overview: Flask API routes for coupons and promo codes; both kinds share one set of handlers.

# backend/coursepay/routes/discounts.py
"""
Discount Instrument API Routes

Mounted twice:
    /api/coupons/      -> kind "coupon"
    /api/promo-codes/  -> kind "promo"

Consumption happens only inside checkout; these routes issue, read and
deactivate instruments.
"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import EngineError
from ..services import discount_service
from ..validation import (
    ValidationError,
    parse_datetime,
    parse_id,
    parse_int,
    parse_optional_str,
    require_json_object,
)


coupons_bp = Blueprint("coupons", __name__, url_prefix="/api/coupons")
promo_codes_bp = Blueprint("promo_codes", __name__, url_prefix="/api/promo-codes")


def _parse_create_payload(data: dict) -> dict:
    payload = {
        "author_id": parse_id(data.get("author_id"), "author_id"),
        "code": parse_optional_str(data.get("code"), "code", max_length=64),
        "item_type": data.get("item_type"),
        "discount_percent": parse_int(data.get("discount_percent"), "discount_percent"),
        "expire_at": parse_datetime(data.get("expire_at"), "expire_at"),
        "max_usage": parse_int(data.get("max_usage"), "max_usage", required=False),
    }
    for column in discount_service.TARGET_COLUMN_BY_ITEM_TYPE.values():
        payload[column] = parse_id(data.get(column), column, required=False)
    return payload


def _register(bp: Blueprint, kind: str) -> None:
    label = discount_service.LABEL_BY_KIND[kind]

    @bp.post("/")
    def create_route():
        """
        Request body:
        {
            "author_id": 4,
            "code": "SPRING10",
            "item_type": "course",
            "course_id": 12,
            "discount_percent": 10,
            "expire_at": "2030-01-01T00:00:00Z",
            "max_usage": 100  (optional, omitted = unlimited)
        }
        """
        try:
            data = require_json_object(request.get_json(silent=True))
            instrument = discount_service.create_discount(kind, _parse_create_payload(data))
            current_app.logger.info("%s %s issued by user %s", label, instrument.code, instrument.author_id)
            return jsonify({kind: instrument.to_dict()}), 201

        except ValidationError as e:
            return jsonify({"error": str(e)}), 400
        except EngineError as e:
            return jsonify(e.to_dict()), e.status_code
        except Exception:
            current_app.logger.exception("Failed to create %s", label.lower())
            return jsonify({"error": "Internal server error"}), 500

    @bp.get("/")
    def list_route():
        """Query params: author_id, active_only (true/false)"""
        try:
            instruments = discount_service.list_discounts(
                kind,
                author_id=parse_id(request.args.get("author_id"), "author_id", required=False),
                active_only=request.args.get("active_only", "false").lower() == "true",
            )
            return jsonify({"items": [i.to_dict() for i in instruments], "count": len(instruments)}), 200

        except ValidationError as e:
            return jsonify({"error": str(e)}), 400
        except Exception:
            current_app.logger.exception("Failed to list %s", label.lower())
            return jsonify({"error": "Internal server error"}), 500

    @bp.get("/<int:instrument_id>")
    def get_route(instrument_id: int):
        try:
            instrument = discount_service.get_discount(kind, instrument_id)
            return jsonify({kind: instrument.to_dict()}), 200

        except EngineError as e:
            return jsonify(e.to_dict()), e.status_code
        except Exception:
            current_app.logger.exception("Failed to get %s", label.lower())
            return jsonify({"error": "Internal server error"}), 500

    @bp.post("/<int:instrument_id>/deactivate")
    def deactivate_route(instrument_id: int):
        try:
            instrument = discount_service.deactivate_discount(kind, instrument_id)
            return jsonify({kind: instrument.to_dict()}), 200

        except EngineError as e:
            return jsonify(e.to_dict()), e.status_code
        except Exception:
            current_app.logger.exception("Failed to deactivate %s", label.lower())
            return jsonify({"error": "Internal server error"}), 500


_register(coupons_bp, discount_service.KIND_COUPON)
_register(promo_codes_bp, discount_service.KIND_PROMO)
