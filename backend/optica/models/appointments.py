from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z, utcnow


APPOINTMENT_TYPES = ("Consultation", "Eye Exam", "Follow-up", "Adjustment", "Delivery")
APPOINTMENT_STATUSES = ("Pending", "Confirmed", "Completed", "Cancelled")


class Appointment(db.Model):
    """Scheduled visit for a customer. No overlap detection."""
    __tablename__ = "appointments"
    __table_args__ = (
        db.Index("ix_appointments_date", "appointment_date"),
        db.Index("ix_appointments_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    appointment_date = db.Column(db.Date, nullable=False)
    appointment_time = db.Column(db.String(5), nullable=False)  # HH:MM
    appointment_type = db.Column(db.String(32), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="Pending")
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    customer = db.relationship("Customer", backref=db.backref("appointments", lazy=True, passive_deletes="all"))

    def to_dict(self, include_customer: bool = True) -> dict:
        data = {
            "id": self.id,
            "customer_id": self.customer_id,
            "appointment_date": to_iso_date(self.appointment_date),
            "appointment_time": self.appointment_time,
            "appointment_type": self.appointment_type,
            "status": self.status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_customer:
            data["customer"] = self.customer.to_summary()
        return data
