from __future__ import annotations

from sqlalchemy.orm import joinedload

from ..errors import NotFoundError
from ..extensions import db
from ..models import Appointment
from ..models.appointments import APPOINTMENT_STATUSES
from ..validation import is_db_integer
from .customer_service import get_customer

APPOINTMENT_MUTABLE_FIELDS = {
    "customer_id", "appointment_date", "appointment_time",
    "appointment_type", "status", "notes",
}
DEFAULT_APPOINTMENT_STATUS = APPOINTMENT_STATUSES[0]


def list_appointments(status: str | None = None, customer_id: int | None = None) -> list[dict]:
    query = (
        db.session.query(Appointment)
        .options(joinedload(Appointment.customer))
        .order_by(
            Appointment.appointment_date.asc(),
            Appointment.appointment_time.asc(),
            Appointment.id.asc(),
        )
    )
    if status:
        query = query.filter(Appointment.status == status)
    if customer_id is not None:
        query = query.filter(Appointment.customer_id == customer_id)
    return [a.to_dict() for a in query.all()]


def get_appointment(appointment_id: int) -> Appointment:
    appointment = None
    if is_db_integer(appointment_id):
        appointment = db.session.query(Appointment).filter_by(id=appointment_id).first()
    if not appointment:
        raise NotFoundError("Appointment not found", details={"appointment_id": appointment_id})
    return appointment


def create_appointment(*, patch: dict) -> dict:
    get_customer(patch["customer_id"])

    appointment = Appointment(status=DEFAULT_APPOINTMENT_STATUS)
    for k, v in patch.items():
        if k in APPOINTMENT_MUTABLE_FIELDS and v is not None:
            setattr(appointment, k, v)

    db.session.add(appointment)
    db.session.commit()
    return appointment.to_dict()


def update_appointment(*, appointment_id: int, patch: dict) -> dict:
    appointment = get_appointment(appointment_id)
    if "customer_id" in patch:
        get_customer(patch["customer_id"])

    for k, v in patch.items():
        if k in APPOINTMENT_MUTABLE_FIELDS:
            setattr(appointment, k, v)

    db.session.commit()
    return appointment.to_dict()


def delete_appointment(*, appointment_id: int) -> dict:
    appointment = get_appointment(appointment_id)
    snapshot = appointment.to_dict()
    db.session.delete(appointment)
    db.session.commit()
    return snapshot
