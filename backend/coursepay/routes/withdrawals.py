# Overview: Flask API routes for withdraw requests; opening, listing and resolving payouts.

# backend/coursepay/routes/withdrawals.py
"""
Withdraw Request API Routes

LIFECYCLE:
    POST /                  -> PENDING
    PATCH /<id>/status      -> COMPLETED (debits balance) or CANCELLED
"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import EngineError
from ..services import withdrawal_service
from ..validation import (
    ValidationError,
    parse_cents,
    parse_id,
    parse_int,
    parse_optional_str,
    require_json_object,
)


withdrawals_bp = Blueprint("withdrawals", __name__, url_prefix="/api/withdraw-requests")


@withdrawals_bp.post("/")
def create_withdraw_request_route():
    """
    Request body:
    {
        "user_id": 4,
        "amount_cents": 5000,
        "payout_type": "BANK_TRANSFER",
        "transfer_reference": "..."  (optional)
    }
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        payout_type = data.get("payout_type")
        if not payout_type:
            return jsonify({"error": "payout_type required"}), 400

        withdraw_request = withdrawal_service.create_withdraw_request(
            user_id=parse_id(data.get("user_id"), "user_id"),
            amount_cents=parse_cents(data.get("amount_cents"), "amount_cents"),
            payout_type=payout_type,
            transfer_reference=parse_optional_str(data.get("transfer_reference"), "transfer_reference"),
        )
        return jsonify({"withdraw_request": withdraw_request.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except EngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create withdraw request")
        return jsonify({"error": "Internal server error"}), 500


@withdrawals_bp.get("/")
def list_withdraw_requests_route():
    """Query params: user_id, status, page, limit"""
    try:
        limit_max = current_app.config.get("ORDERS_PAGE_LIMIT_MAX", 100)
        page = parse_int(request.args.get("page", 1), "page")
        limit = min(max(parse_int(request.args.get("limit", 20), "limit"), 1), limit_max)

        requests_, total = withdrawal_service.list_withdraw_requests(
            user_id=parse_id(request.args.get("user_id"), "user_id", required=False),
            status=request.args.get("status") or None,
            page=page,
            limit=limit,
        )
        return jsonify({
            "meta": {"page": max(page, 1), "limit": limit, "total": total},
            "data": [r.to_dict() for r in requests_],
        }), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list withdraw requests")
        return jsonify({"error": "Internal server error"}), 500


@withdrawals_bp.get("/<int:request_id>")
def get_withdraw_request_route(request_id: int):
    try:
        withdraw_request = withdrawal_service.get_withdraw_request(request_id)
        return jsonify({"withdraw_request": withdraw_request.to_dict()}), 200

    except EngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get withdraw request")
        return jsonify({"error": "Internal server error"}), 500


@withdrawals_bp.patch("/<int:request_id>/status")
def transition_withdraw_request_route(request_id: int):
    """
    Request body:
    {
        "status": "COMPLETED",
        "processed_by_user_id": 1,     (optional)
        "transfer_reference": "..."    (optional)
    }
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        status = data.get("status")
        if not status:
            return jsonify({"error": "status required"}), 400

        withdraw_request = withdrawal_service.transition_withdraw_request(
            request_id,
            status,
            processed_by_user_id=parse_id(data.get("processed_by_user_id"), "processed_by_user_id", required=False),
            transfer_reference=parse_optional_str(data.get("transfer_reference"), "transfer_reference"),
        )
        return jsonify({"withdraw_request": withdraw_request.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except EngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update withdraw request status")
        return jsonify({"error": "Internal server error"}), 500
