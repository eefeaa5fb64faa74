# backend/optica/services/products_service.py
"""
Products Service

Catalog CRUD. Category-specific attributes (prescription-lens and
contact-lens fields) are only accepted for products of that category;
switching a product's category clears the attributes of the old one.
"""
from __future__ import annotations
from flask import current_app
from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, SaleLine
from ..models.catalog import CATEGORY_ATTRIBUTE_FIELDS
from ..validation import is_db_integer
from .pagination import paginate

PRODUCT_MUTABLE_FIELDS = {
    "name", "category", "brand", "model", "sku", "supplier", "description",
    "stock_quantity", "cost_price_cents", "sale_price_cents",
}
for _fields in CATEGORY_ATTRIBUTE_FIELDS.values():
    PRODUCT_MUTABLE_FIELDS.update(_fields)


def _check_category_attributes(category: str, patch: dict) -> None:
    allowed = set(CATEGORY_ATTRIBUTE_FIELDS.get(category, ()))
    for other_category, fields in CATEGORY_ATTRIBUTE_FIELDS.items():
        if other_category == category:
            continue
        for field in fields:
            if field in allowed:
                continue
            if patch.get(field) is not None:
                raise ValidationError(
                    f"{field} only applies to {other_category} products",
                    details={"field": field, "category": category},
                )


def _clear_foreign_attributes(p: Product) -> None:
    keep = set(CATEGORY_ATTRIBUTE_FIELDS.get(p.category, ()))
    for fields in CATEGORY_ATTRIBUTE_FIELDS.values():
        for field in fields:
            if field not in keep:
                setattr(p, field, None)


def _ensure_sku_available(sku: str | None, product_id: int | None = None) -> None:
    if sku is None:
        return
    query = db.session.query(Product).filter(Product.sku == sku)
    if product_id is not None:
        query = query.filter(Product.id != product_id)
    if query.first():
        raise ConflictError("SKU already registered.", field="sku")


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def list_products(
    category: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Product listing ordered by name with optional pagination.

    Args:
        category: Filter by product category
        page: Page number (1-indexed). If None, returns all items.
        per_page: Items per page (default 20, max 100)

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    base_query = db.session.query(Product).order_by(Product.name.asc(), Product.id.asc())
    if category:
        base_query = base_query.filter(Product.category == category)

    return paginate(base_query, page=page, per_page=per_page, serialize=lambda p: p.to_dict())


def get_product(product_id: int) -> Product:
    p = None
    if is_db_integer(product_id):
        p = db.session.query(Product).filter(Product.id == product_id).first()
    if not p:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return p


def create_product(*, patch: dict) -> dict:
    """
    Create product using a validated patch dict.

    Raises:
        ValidationError: If category attributes don't match the category
        ConflictError: If SKU already exists
    """
    _check_category_attributes(patch["category"], patch)
    _ensure_sku_available(patch.get("sku"))

    p = Product(stock_quantity=0)
    apply_product_patch(p, patch)

    db.session.add(p)
    db.session.commit()

    current_app.logger.info("Created product id=%s sku=%s name=%s", p.id, p.sku, p.name)
    return p.to_dict()


def update_product(*, product_id: int, patch: dict) -> dict:
    """
    Partially update a product; only keys present in patch change.

    Raises:
        NotFoundError: If the product does not exist
        ValidationError: If category attributes don't match the category
        ConflictError: If new SKU already exists
    """
    p = get_product(product_id)

    category = patch.get("category", p.category)
    _check_category_attributes(category, patch)

    # SKU uniqueness enforcement if changing SKU
    if "sku" in patch and patch["sku"] != p.sku:
        _ensure_sku_available(patch["sku"], product_id=p.id)

    category_changed = category != p.category
    apply_product_patch(p, patch)
    if category_changed:
        _clear_foreign_attributes(p)

    db.session.commit()
    return p.to_dict()


def delete_product(*, product_id: int) -> dict:
    """
    Delete a product that no sale line references.

    Raises:
        NotFoundError: If the product does not exist
        ConflictError: If sales reference the product
    """
    p = get_product(product_id)

    referenced = db.session.query(SaleLine.id).filter(SaleLine.product_id == p.id).first()
    if referenced:
        raise ConflictError(
            "Product is referenced by existing sales and cannot be deleted.",
            details={"product_id": p.id},
        )

    snapshot = p.to_dict()
    db.session.delete(p)
    db.session.commit()

    current_app.logger.info("Deleted product id=%s sku=%s", product_id, snapshot["sku"])
    return snapshot
