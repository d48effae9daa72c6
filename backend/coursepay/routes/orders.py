# Overview: Flask API routes for orders; checkout, listing, administration and payment settlement.

# backend/coursepay/routes/orders.py
"""
Order API Routes

DESIGN:
- POST /           prices a cart and stores a PENDING/UNPAID order
- POST /<id>/settle confirms payment and credits every party's balance
- Engine errors map to their own status code and machine-readable code
"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import EngineError
from ..services import checkout_service, settlement_service
from ..validation import (
    ValidationError,
    parse_cart_lines,
    parse_id,
    parse_int,
    parse_optional_str,
    require_json_object,
)


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


# =============================================================================
# CHECKOUT
# =============================================================================

@orders_bp.post("/")
def checkout_route():
    """
    Create an order from a cart.

    Request body:
    {
        "user_id": 7,
        "items": [{"item_type": "course", "reference_id": 3, "quantity": 1}],
        "coupon_code": "SPRING10",   (optional)
        "promo_code": "LAUNCH",      (optional)
        "affiliate_id": 2,           (optional)
        "payment_method": "card",    (optional)
        "transaction_id": "tx_123"   (optional)
    }
    """
    try:
        data = require_json_object(request.get_json(silent=True))

        order = checkout_service.checkout(
            user_id=parse_id(data.get("user_id"), "user_id"),
            lines=parse_cart_lines(data.get("items")),
            coupon_code=parse_optional_str(data.get("coupon_code"), "coupon_code"),
            promo_code=parse_optional_str(data.get("promo_code"), "promo_code"),
            affiliate_id=parse_id(data.get("affiliate_id"), "affiliate_id", required=False),
            payment_method=parse_optional_str(data.get("payment_method"), "payment_method", max_length=64),
            transaction_id=parse_optional_str(data.get("transaction_id"), "transaction_id"),
        )

        return jsonify({"order": order.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except EngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# QUERIES
# =============================================================================

@orders_bp.get("/")
def list_orders_route():
    """
    Query params: user_id, author_id, status, page (default 1), limit (default 20)
    """
    try:
        limit_max = current_app.config.get("ORDERS_PAGE_LIMIT_MAX", 100)
        page = parse_int(request.args.get("page", 1), "page")
        limit = min(max(parse_int(request.args.get("limit", 20), "limit"), 1), limit_max)

        orders, total = checkout_service.list_orders(
            user_id=parse_id(request.args.get("user_id"), "user_id", required=False),
            author_id=parse_id(request.args.get("author_id"), "author_id", required=False),
            status=request.args.get("status") or None,
            page=page,
            limit=limit,
        )

        return jsonify({
            "meta": {"page": max(page, 1), "limit": limit, "total": total},
            "data": [o.to_dict(include_items=False) for o in orders],
        }), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
def get_order_route(order_id: int):
    try:
        order = checkout_service.get_order(order_id)
        return jsonify({
            "order": order.to_dict(),
            "split_branch": checkout_service.split_branch_of(order),
        }), 200

    except EngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get order")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# ADMINISTRATION
# =============================================================================

@orders_bp.patch("/<int:order_id>/status")
def update_order_status_route(order_id: int):
    """Request body: {"status": "CANCELLED"}"""
    try:
        data = require_json_object(request.get_json(silent=True))
        status = data.get("status")
        if not status:
            return jsonify({"error": "status required"}), 400

        order = checkout_service.update_order_status(order_id, status)
        return jsonify({"order": order.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except EngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.delete("/<int:order_id>")
def delete_order_route(order_id: int):
    try:
        checkout_service.delete_order(order_id)
        return jsonify({"message": "Order deleted successfully", "order_id": order_id}), 200

    except EngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete order")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# SETTLEMENT
# =============================================================================

@orders_bp.post("/<int:order_id>/settle")
def settle_order_route(order_id: int):
    """
    Confirm payment for an order.

    Request body:
    {
        "transaction_id": "pi_3Nx...",
        "payment_method": "card"  (optional)
    }
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        transaction_id = parse_optional_str(data.get("transaction_id"), "transaction_id")
        if not transaction_id:
            return jsonify({"error": "transaction_id required"}), 400

        order = settlement_service.settle_order(
            order_id,
            transaction_id=transaction_id,
            payment_method=parse_optional_str(data.get("payment_method"), "payment_method", max_length=64),
        )
        return jsonify({"order": order.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except EngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to settle order")
        return jsonify({"error": "Internal server error"}), 500
