# Overview: Flask API routes for customer operations; parses input and returns JSON responses.

"""
Customer management routes.

SECURITY: All routes require authentication.
- Write operations require MANAGE_CUSTOMERS permission
"""
from flask import Blueprint, request

from ..decorators import require_auth, require_permission
from ..models import Customer
from ..services import customer_service
from ..validation import CUSTOMER_POLICY, validate_payload

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
def list_customers():
    """
    List customers ordered by name.

    Query params:
    - search: str (optional) - matches name, email or CPF
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    return customer_service.list_customers(
        search=request.args.get("search"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@customers_bp.get("/<int:customer_id>")
@require_auth
def get_customer(customer_id: int):
    """Customer with their prescriptions (newest first)."""
    return customer_service.get_customer_detail(customer_id)


@customers_bp.post("")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def create_customer():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    return customer_service.create_customer(patch=patch), 201


@customers_bp.patch("/<int:customer_id>")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def update_customer(customer_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
    return customer_service.update_customer(customer_id=customer_id, patch=patch), 200


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def delete_customer(customer_id: int):
    """
    Delete a customer and their prescriptions.

    Returns 409 while sales or appointments still reference the customer.
    """
    deleted = customer_service.delete_customer(customer_id=customer_id)
    return {"ok": True, "customer": deleted}, 200
