# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/optica/routes/sales.py
"""Sales API routes with permission enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import AppError, InternalError, ValidationError
from ..services import sales_service
from ..validation import parse_id
from ..decorators import require_auth, require_permission


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")

SALE_CREATE_FIELDS = {"customer_id", "items", "payment_status", "notes"}


@sales_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_sales_route():
    """Sales newest first, each with its customer and lines."""
    sales = sales_service.list_sales()
    return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)}), 200


@sales_bp.post("")
@require_auth
@require_permission("CREATE_SALE")
def create_sale_route():
    """
    Create a sale and decrement stock in one transaction.

    Body: {"customer_id", "items": [{"product_id", "quantity", "unit_price_cents"?}],
    "payment_status"?, "notes"?}

    Requires: CREATE_SALE permission
    Available to: admin, staff
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    unknown = set(data) - SALE_CREATE_FIELDS
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    try:
        sale = sales_service.create_sale(
            parse_id(data.get("customer_id"), "customer_id"),
            data.get("items"),
            payment_status=data.get("payment_status"),
            notes=data.get("notes"),
            user_id=g.current_user.id,
        )
    except AppError:
        raise
    except Exception:
        current_app.logger.exception("Failed to create sale")
        raise InternalError("Internal server error")

    return jsonify(sale.to_dict()), 201


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission("VIEW_SALES")
def get_sale_route(sale_id: int):
    """Get sale with lines."""
    sale = sales_service.get_sale(sale_id)
    return jsonify(sale.to_dict()), 200


@sales_bp.patch("/<int:sale_id>")
@require_auth
@require_permission("CREATE_SALE")
def update_sale_route(sale_id: int):
    """
    Update payment status and/or notes. Lines and totals are fixed once
    the sale exists.

    Requires: CREATE_SALE permission
    """
    data = request.get_json(silent=True) or {}
    sale = sales_service.update_sale(sale_id, data)
    return jsonify(sale.to_dict()), 200


@sales_bp.delete("/<int:sale_id>")
@require_auth
@require_permission("CANCEL_SALE")
def delete_sale_route(sale_id: int):
    """
    Cancel a sale and return its quantities to stock.

    Requires: CANCEL_SALE permission
    Available to: admin
    """
    try:
        deleted = sales_service.delete_sale(sale_id)
    except AppError:
        raise
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        raise InternalError("Internal server error")

    return jsonify({"ok": True, "sale": deleted}), 200
