from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


PRODUCT_CATEGORIES = (
    "FRAME",
    "PRESCRIPTION_LENS",
    "CONTACT_LENS",
    "ACCESSORY",
    "SERVICE",
    "OTHER",
)

LENS_TYPES = ("SINGLE_VISION", "MULTIFOCAL", "BIFOCAL", "OCCUPATIONAL", "PROGRESSIVE", "OTHER")
LENS_MATERIALS = ("RESIN", "POLYCARBONATE", "GLASS", "TRIVEX", "OTHER")
CONTACT_REPLACEMENT_SCHEDULES = ("DAILY", "BIWEEKLY", "MONTHLY", "QUARTERLY", "YEARLY", "OTHER")

# Attributes that only carry meaning for one product category.
PRESCRIPTION_LENS_FIELDS = (
    "lens_type",
    "lens_material",
    "lens_treatments",
    "sphere_od",
    "cylinder_od",
    "axis_od",
    "addition_od",
    "sphere_os",
    "cylinder_os",
    "axis_os",
    "addition_os",
    "lens_manufacturer",
)
CONTACT_LENS_FIELDS = (
    "contact_base_curve",
    "contact_diameter",
    "contact_power",
    "contact_replacement",
    "contact_solutions",
)
CATEGORY_ATTRIBUTE_FIELDS = {
    "PRESCRIPTION_LENS": PRESCRIPTION_LENS_FIELDS,
    "CONTACT_LENS": CONTACT_LENS_FIELDS,
}


class Product(db.Model):
    """
    Catalog item: frames, lenses, contact lenses, accessories and services.

    STOCK: stock_quantity is the single on-hand counter. It never goes
    negative (CHECK constraint); sale creation decrements it and sale
    deletion restores it, always inside one transaction.

    SKU: optional, but unique when present.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_name", "name"),
        db.Index("ix_products_category", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(32), nullable=False)
    brand = db.Column(db.String(128), nullable=True)
    model = db.Column(db.String(128), nullable=True)
    sku = db.Column(db.String(64), nullable=True)
    supplier = db.Column(db.String(255), nullable=True)
    description = db.Column(db.Text, nullable=True)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)

    # Authoritative storage in cents (frontend may only format for display)
    cost_price_cents = db.Column(db.Integer, nullable=True)
    sale_price_cents = db.Column(db.Integer, nullable=True)

    # PRESCRIPTION_LENS only
    lens_type = db.Column(db.String(32), nullable=True)
    lens_material = db.Column(db.String(32), nullable=True)
    lens_treatments = db.Column(db.JSON, nullable=True)
    sphere_od = db.Column(db.Float, nullable=True)
    cylinder_od = db.Column(db.Float, nullable=True)
    axis_od = db.Column(db.Integer, nullable=True)
    addition_od = db.Column(db.Float, nullable=True)
    sphere_os = db.Column(db.Float, nullable=True)
    cylinder_os = db.Column(db.Float, nullable=True)
    axis_os = db.Column(db.Integer, nullable=True)
    addition_os = db.Column(db.Float, nullable=True)
    lens_manufacturer = db.Column(db.String(128), nullable=True)

    # CONTACT_LENS only
    contact_base_curve = db.Column(db.String(32), nullable=True)
    contact_diameter = db.Column(db.Float, nullable=True)
    contact_power = db.Column(db.Float, nullable=True)
    contact_replacement = db.Column(db.String(32), nullable=True)
    contact_solutions = db.Column(db.String(255), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version_id}

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "category": self.category,
        }

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "brand": self.brand,
            "model": self.model,
            "sku": self.sku,
            "supplier": self.supplier,
            "description": self.description,
            "stock_quantity": self.stock_quantity,
            "cost_price_cents": self.cost_price_cents,
            "sale_price_cents": self.sale_price_cents,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        for field in CATEGORY_ATTRIBUTE_FIELDS.get(self.category, ()):
            data[field] = getattr(self, field)
        return data
