"""
Customer Service

Customer CRUD with uniqueness on email and CPF.

DELETE POLICY: prescriptions belong to the customer and are removed with
it. Sales and appointments are business history; while any exist the
customer cannot be deleted (ConflictError).
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..errors import ConflictError, NotFoundError
from ..extensions import db
from ..models import Appointment, Customer, Sale
from ..validation import is_db_integer
from .pagination import paginate

CUSTOMER_MUTABLE_FIELDS = {
    "name", "email", "phone", "cpf", "rg", "birth_date",
    "address", "city", "state", "postal_code", "notes",
}

UNIQUE_FIELDS = {
    "email": "Email already registered.",
    "cpf": "CPF already registered.",
}


def _ensure_unique(patch: dict, customer_id: int | None = None) -> None:
    for field, message in UNIQUE_FIELDS.items():
        value = patch.get(field)
        if value is None:
            continue
        query = db.session.query(Customer.id).filter(getattr(Customer, field) == value)
        if customer_id is not None:
            query = query.filter(Customer.id != customer_id)
        if query.first():
            raise ConflictError(message, field=field)


def list_customers(search: str | None = None, page: int | None = None, per_page: int | None = None) -> dict:
    query = db.session.query(Customer).order_by(Customer.name.asc(), Customer.id.asc())
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(
            func.lower(Customer.name).like(pattern)
            | func.lower(func.coalesce(Customer.email, "")).like(pattern)
            | func.coalesce(Customer.cpf, "").like(pattern)
        )
    return paginate(query, page=page, per_page=per_page, serialize=lambda c: c.to_dict())


def get_customer(customer_id: int) -> Customer:
    customer = None
    if is_db_integer(customer_id):
        customer = db.session.query(Customer).filter_by(id=customer_id).first()
    if not customer:
        raise NotFoundError("Customer not found", details={"customer_id": customer_id})
    return customer


def get_customer_detail(customer_id: int) -> dict:
    """Customer with their prescriptions, newest first."""
    customer = get_customer(customer_id)
    data = customer.to_dict()
    data["prescriptions"] = [p.to_dict() for p in customer.prescriptions]
    return data


def create_customer(*, patch: dict) -> dict:
    _ensure_unique(patch)

    customer = Customer()
    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, k, v)

    db.session.add(customer)
    db.session.commit()
    return customer.to_dict()


def update_customer(*, customer_id: int, patch: dict) -> dict:
    customer = get_customer(customer_id)
    _ensure_unique(patch, customer_id=customer.id)

    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, k, v)

    db.session.commit()
    return customer.to_dict()


def delete_customer(*, customer_id: int) -> dict:
    customer = get_customer(customer_id)

    sales_count = db.session.query(func.count(Sale.id)).filter(Sale.customer_id == customer.id).scalar()
    appointments_count = (
        db.session.query(func.count(Appointment.id))
        .filter(Appointment.customer_id == customer.id)
        .scalar()
    )
    if sales_count or appointments_count:
        raise ConflictError(
            "Customer has sales or appointments and cannot be deleted.",
            details={"sales": sales_count, "appointments": appointments_count},
        )

    snapshot = customer.to_dict()
    removed_prescriptions = len(customer.prescriptions)
    db.session.delete(customer)
    db.session.commit()

    current_app.logger.info(
        "Deleted customer id=%s with %d prescription(s)", customer_id, removed_prescriptions,
    )
    return snapshot
