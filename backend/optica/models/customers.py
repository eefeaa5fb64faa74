from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z, utcnow


class Customer(db.Model):
    """
    Customer master data.

    UNIQUENESS: email and cpf (Brazilian national ID) are unique when set.
    OWNERSHIP: prescriptions are owned and cascade on delete; sales and
    appointments only reference the customer and block its deletion.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_customers_email"),
        db.UniqueConstraint("cpf", name="uq_customers_cpf"),
        db.Index("ix_customers_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    cpf = db.Column(db.String(14), nullable=True)
    rg = db.Column(db.String(32), nullable=True)
    birth_date = db.Column(db.Date, nullable=True)

    address = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(128), nullable=True)
    state = db.Column(db.String(64), nullable=True)
    postal_code = db.Column(db.String(16), nullable=True)

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    prescriptions = db.relationship(
        "Prescription",
        back_populates="customer",
        cascade="all, delete-orphan",
        order_by="Prescription.prescription_date.desc()",
        lazy=True,
    )

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "cpf": self.cpf,
            "rg": self.rg,
            "birth_date": to_iso_date(self.birth_date),
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Prescription(db.Model):
    """
    Eyeglass prescription for a customer.

    OD = right eye, OS = left eye. Values are dioptres except axis
    (degrees) and the distance/height fields (millimetres).
    """
    __tablename__ = "prescriptions"
    __table_args__ = (
        db.Index("ix_prescriptions_customer_date", "customer_id", "prescription_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(
        db.Integer,
        db.ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    prescription_date = db.Column(db.Date, nullable=False)
    notes = db.Column(db.Text, nullable=True)

    sphere_od = db.Column(db.Float, nullable=True)
    cylinder_od = db.Column(db.Float, nullable=True)
    axis_od = db.Column(db.Integer, nullable=True)
    addition_od = db.Column(db.Float, nullable=True)

    sphere_os = db.Column(db.Float, nullable=True)
    cylinder_os = db.Column(db.Float, nullable=True)
    axis_os = db.Column(db.Integer, nullable=True)
    addition_os = db.Column(db.Float, nullable=True)

    pupillary_distance = db.Column(db.Float, nullable=True)
    near_pupillary_distance = db.Column(db.Float, nullable=True)
    lens_height = db.Column(db.Float, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    customer = db.relationship("Customer", back_populates="prescriptions")

    def to_dict(self, include_customer: bool = False) -> dict:
        data = {
            "id": self.id,
            "customer_id": self.customer_id,
            "prescription_date": to_iso_date(self.prescription_date),
            "notes": self.notes,
            "sphere_od": self.sphere_od,
            "cylinder_od": self.cylinder_od,
            "axis_od": self.axis_od,
            "addition_od": self.addition_od,
            "sphere_os": self.sphere_os,
            "cylinder_os": self.cylinder_os,
            "axis_os": self.axis_os,
            "addition_os": self.addition_os,
            "pupillary_distance": self.pupillary_distance,
            "near_pupillary_distance": self.near_pupillary_distance,
            "lens_height": self.lens_height,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_customer:
            data["customer"] = {"id": self.customer.id, "name": self.customer.name}
        return data
