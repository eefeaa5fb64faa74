from __future__ import annotations

from sqlalchemy.orm import joinedload

from ..errors import NotFoundError
from ..extensions import db
from ..models import Prescription
from ..validation import is_db_integer
from .customer_service import get_customer

PRESCRIPTION_MUTABLE_FIELDS = {
    "customer_id", "prescription_date", "notes",
    "sphere_od", "cylinder_od", "axis_od", "addition_od",
    "sphere_os", "cylinder_os", "axis_os", "addition_os",
    "pupillary_distance", "near_pupillary_distance", "lens_height",
}


def list_prescriptions(customer_id: int | None = None) -> list[dict]:
    query = (
        db.session.query(Prescription)
        .options(joinedload(Prescription.customer))
        .order_by(Prescription.prescription_date.desc(), Prescription.id.desc())
    )
    if customer_id is not None:
        query = query.filter(Prescription.customer_id == customer_id)
    return [p.to_dict(include_customer=True) for p in query.all()]


def get_prescription(prescription_id: int) -> Prescription:
    prescription = None
    if is_db_integer(prescription_id):
        prescription = db.session.query(Prescription).filter_by(id=prescription_id).first()
    if not prescription:
        raise NotFoundError("Prescription not found", details={"prescription_id": prescription_id})
    return prescription


def create_prescription(*, patch: dict) -> dict:
    get_customer(patch["customer_id"])

    prescription = Prescription()
    for k, v in patch.items():
        if k in PRESCRIPTION_MUTABLE_FIELDS:
            setattr(prescription, k, v)

    db.session.add(prescription)
    db.session.commit()
    return prescription.to_dict(include_customer=True)


def update_prescription(*, prescription_id: int, patch: dict) -> dict:
    prescription = get_prescription(prescription_id)
    if "customer_id" in patch:
        get_customer(patch["customer_id"])

    for k, v in patch.items():
        if k in PRESCRIPTION_MUTABLE_FIELDS:
            setattr(prescription, k, v)

    db.session.commit()
    return prescription.to_dict(include_customer=True)


def delete_prescription(*, prescription_id: int) -> dict:
    prescription = get_prescription(prescription_id)
    snapshot = prescription.to_dict()
    db.session.delete(prescription)
    db.session.commit()
    return snapshot
