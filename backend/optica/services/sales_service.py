"""
Sales Service - atomic sale creation and cancellation.

A sale is created in one shot: the header, its lines and the stock
decrements are written in a single transaction, or nothing is. Deleting a
sale is the mirror image: stock is restored and the sale (with its lines)
removed in one transaction.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import update
from sqlalchemy.orm import selectinload

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Customer, Product, Sale, SaleLine
from ..models.sales import DEFAULT_PAYMENT_STATUS
from ..time_utils import utcnow
from ..validation import (
    MAX_TOTAL_CENTS,
    SALE_UPDATE_POLICY,
    is_db_integer,
    validate_payload,
    validate_sale_items,
)
from .concurrency import begin_write_transaction, lock_for_update


def merge_items(items: list[dict]) -> list[dict]:
    """
    Collapse repeated products into one requested line.

    Quantities add up; first-seen order is kept. An explicit unit price
    applies to the merged line, and two different explicit prices for the
    same product are rejected.
    """
    merged: dict[int, dict] = {}
    for item in items:
        product_id = item["product_id"]
        existing = merged.get(product_id)
        if existing is None:
            merged[product_id] = dict(item)
            continue

        existing["quantity"] += item["quantity"]
        price = item.get("unit_price_cents")
        if price is None:
            continue
        if existing.get("unit_price_cents") is None:
            existing["unit_price_cents"] = price
        elif existing["unit_price_cents"] != price:
            raise ValidationError(
                f"Conflicting unit prices for product {product_id}",
                details={"product_id": product_id},
            )
    return list(merged.values())


def _load_products(product_ids: list[int]) -> dict[int, Product]:
    # Locked in id order so concurrent sales touching the same products
    # acquire row locks in the same sequence.
    products = lock_for_update(
        db.session.query(Product)
        .filter(Product.id.in_(product_ids))
        .order_by(Product.id.asc())
    ).all()
    return {p.id: p for p in products}


def _decrement_stock(product: Product, quantity: int) -> None:
    result = db.session.execute(
        update(Product)
        .where(Product.id == product.id, Product.stock_quantity >= quantity)
        .values(
            stock_quantity=Product.stock_quantity - quantity,
            version_id=Product.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.session.refresh(product)
        raise InsufficientStockError(product.id, product.name, product.stock_quantity, quantity)


def _restore_stock(product_id: int, quantity: int) -> None:
    db.session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(
            stock_quantity=Product.stock_quantity + quantity,
            version_id=Product.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )


def create_sale(
    customer_id: int,
    items: list[dict],
    *,
    payment_status: str | None = None,
    notes: str | None = None,
    user_id: int | None = None,
) -> Sale:
    """
    Create a sale: validate items, check and decrement stock, compute totals.

    Raises ValidationError, NotFoundError or InsufficientStockError; on any
    of them nothing is persisted.
    """
    header = validate_payload(
        model=Sale,
        payload={
            "payment_status": DEFAULT_PAYMENT_STATUS if payment_status is None else payment_status,
            "notes": notes,
        },
        policy=SALE_UPDATE_POLICY,
        partial=True,
    )
    requested = merge_items(validate_sale_items(items))

    try:
        begin_write_transaction()

        customer = db.session.query(Customer).filter_by(id=customer_id).first()
        if not customer:
            raise NotFoundError(f"Customer {customer_id} not found", details={"customer_id": customer_id})

        products = _load_products([item["product_id"] for item in requested])
        for item in requested:
            if item["product_id"] not in products:
                raise NotFoundError(
                    f"Product {item['product_id']} not found",
                    details={"product_id": item["product_id"]},
                )

        # Every line is checked before anything is written.
        for item in requested:
            product = products[item["product_id"]]
            if item["quantity"] > product.stock_quantity:
                raise InsufficientStockError(product.id, product.name, product.stock_quantity, item["quantity"])

        sale = Sale(
            customer_id=customer.id,
            created_at=utcnow(),
            payment_status=header["payment_status"],
            notes=header.get("notes"),
            created_by_user_id=user_id,
        )

        total_cents = 0
        for item in requested:
            product = products[item["product_id"]]
            unit_price_cents = item["unit_price_cents"]
            if unit_price_cents is None:
                unit_price_cents = product.sale_price_cents or 0
            subtotal_cents = unit_price_cents * item["quantity"]
            total_cents += subtotal_cents
            if subtotal_cents > MAX_TOTAL_CENTS or total_cents > MAX_TOTAL_CENTS:
                raise ValidationError(
                    f"Sale total cannot exceed {MAX_TOTAL_CENTS} cents",
                    details={"product_id": product.id},
                )

            sale.lines.append(SaleLine(
                product_id=product.id,
                quantity=item["quantity"],
                unit_price_cents=unit_price_cents,
                subtotal_cents=subtotal_cents,
            ))
            _decrement_stock(product, item["quantity"])

        sale.total_cents = total_cents
        db.session.add(sale)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Sale %s created for customer %s: %d line(s), total_cents=%d",
        sale.id, customer_id, len(requested), total_cents,
    )
    return get_sale(sale.id)


def list_sales() -> list[Sale]:
    return (
        db.session.query(Sale)
        .options(
            selectinload(Sale.customer),
            selectinload(Sale.lines).selectinload(SaleLine.product),
        )
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .all()
    )


def get_sale(sale_id: int) -> Sale:
    if not is_db_integer(sale_id):
        raise NotFoundError("Sale not found", details={"sale_id": sale_id})
    sale = (
        db.session.query(Sale)
        .options(
            selectinload(Sale.customer),
            selectinload(Sale.lines).selectinload(SaleLine.product),
        )
        .filter_by(id=sale_id)
        .first()
    )
    if not sale:
        raise NotFoundError("Sale not found", details={"sale_id": sale_id})
    return sale


def update_sale(sale_id: int, payload: dict) -> Sale:
    """Only payment_status and notes may change after creation."""
    patch = validate_payload(model=Sale, payload=payload, policy=SALE_UPDATE_POLICY, partial=True)

    sale = None
    if is_db_integer(sale_id):
        sale = db.session.query(Sale).filter_by(id=sale_id).first()
    if not sale:
        raise NotFoundError("Sale not found", details={"sale_id": sale_id})

    for key, value in patch.items():
        setattr(sale, key, value)
    db.session.commit()
    return get_sale(sale_id)


def delete_sale(sale_id: int) -> dict:
    """
    Cancel a sale: restore each line's quantity to stock, then delete the
    lines and the header. All in one transaction.

    Returns the deleted sale as it was just before removal.
    """
    if not is_db_integer(sale_id):
        raise NotFoundError("Sale not found", details={"sale_id": sale_id})

    try:
        begin_write_transaction()

        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if not sale:
            raise NotFoundError("Sale not found", details={"sale_id": sale_id})

        lines = list(sale.lines)
        snapshot = sale.to_dict()

        for line in sorted(lines, key=lambda l: l.product_id):
            _restore_stock(line.product_id, line.quantity)

        # Cascade on Sale.lines: the unit of work deletes the lines before the header.
        db.session.delete(sale)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Sale %s deleted; stock restored for %d line(s)", sale_id, len(lines))
    return snapshot
