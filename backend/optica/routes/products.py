# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/optica/routes/products.py
"""
Product catalog routes.

SECURITY: All routes require authentication.
- Read operations require VIEW_PRODUCTS permission
- Write operations require MANAGE_PRODUCTS permission
"""
from flask import Blueprint, request

from ..services import products_service
from ..models import Product
from ..validation import (
    PRODUCT_POLICY,
    validate_payload,
    enforce_rules_product,
    ValidationError,
)
from ..models.catalog import PRODUCT_CATEGORIES
from ..decorators import require_auth, require_permission

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_permission("VIEW_PRODUCTS")
def list_products():
    """
    List all products with optional pagination.

    Query params:
    - category: str (optional) - filter by product category
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    category = request.args.get("category")
    if category and category not in PRODUCT_CATEGORIES:
        raise ValidationError(f"category must be one of: {', '.join(PRODUCT_CATEGORIES)}")

    return products_service.list_products(
        category=category,
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("VIEW_PRODUCTS")
def get_product(product_id: int):
    return products_service.get_product(product_id).to_dict()


@products_bp.post("")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_product_route():
    """
    Create a new product.

    Requires MANAGE_PRODUCTS permission.
    """
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)  # Handles price validation including max check

    return products_service.create_product(patch=patch), 201


@products_bp.patch("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_product_route(product_id: int):
    """
    Partially update a product. Stock is set here directly; sales move it.

    Requires MANAGE_PRODUCTS permission.
    """
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    return products_service.update_product(product_id=product_id, patch=patch), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def delete_product_route(product_id: int):
    """
    Delete a product.

    Requires MANAGE_PRODUCTS permission. Returns 409 if sales reference it.
    """
    deleted = products_service.delete_product(product_id=product_id)
    return {"ok": True, "product": deleted}, 200
