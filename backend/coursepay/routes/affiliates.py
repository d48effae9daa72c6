# backend/coursepay/routes/affiliates.py
"""Affiliate account routes"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import EngineError
from ..services import affiliate_service
from ..validation import ValidationError, parse_id, require_json_object


affiliates_bp = Blueprint("affiliates", __name__, url_prefix="/api/affiliates")


@affiliates_bp.post("/")
def create_affiliate_route():
    """
    Open an affiliate account for a user. Returns the existing account
    (200) when the user already has one.

    Request body: {"user_id": 9}
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        affiliate, created = affiliate_service.create_affiliate_account(parse_id(data.get("user_id"), "user_id"))
        return jsonify({"affiliate": affiliate.to_dict(), "created": created}), 201 if created else 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except EngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create affiliate account")
        return jsonify({"error": "Internal server error"}), 500
