# Overview: Service-layer operations for reporting; read-only aggregation over sales and appointments.

from __future__ import annotations

from collections import Counter
from datetime import date

from sqlalchemy import func
from sqlalchemy.orm import joinedload, selectinload

from optica.errors import ValidationError
from optica.extensions import db
from optica.models import (
    Appointment,
    Customer,
    Prescription,
    Sale,
    SaleLine,
)
from optica.models.appointments import APPOINTMENT_STATUSES
from optica.time_utils import day_bounds, parse_iso_date, to_iso_date


PENDING_APPOINTMENT_STATUS = APPOINTMENT_STATUSES[0]


def _parse_range(start: str | None, end: str | None) -> tuple[date | None, date | None]:
    try:
        start_d = parse_iso_date(start) if start else None
        end_d = parse_iso_date(end) if end else None
    except ValueError:
        raise ValidationError("startDate and endDate must be dates in YYYY-MM-DD format")
    if start_d and end_d and start_d > end_d:
        raise ValidationError("startDate must be on or before endDate")
    return start_d, end_d


def _sales_in_range(start_d: date | None, end_d: date | None) -> list[Sale]:
    start_dt, end_dt = day_bounds(start_d, end_d)
    query = db.session.query(Sale).options(
        joinedload(Sale.customer),
        selectinload(Sale.lines).joinedload(SaleLine.product),
    )
    if start_dt:
        query = query.filter(Sale.created_at >= start_dt)
    if end_dt:
        query = query.filter(Sale.created_at <= end_dt)
    return query.order_by(Sale.created_at.asc(), Sale.id.asc()).all()


def _appointments_in_range(start_d: date | None, end_d: date | None) -> list[Appointment]:
    query = db.session.query(Appointment).options(joinedload(Appointment.customer))
    if start_d:
        query = query.filter(Appointment.appointment_date >= start_d)
    if end_d:
        query = query.filter(Appointment.appointment_date <= end_d)
    return query.order_by(
        Appointment.appointment_date.asc(),
        Appointment.appointment_time.asc(),
        Appointment.id.asc(),
    ).all()


def _product_ranking(sales: list[Sale]) -> list[dict]:
    products: dict[int, dict] = {}
    for sale in sales:
        for line in sale.lines:
            entry = products.get(line.product_id)
            if entry is None:
                entry = products[line.product_id] = {
                    **line.product.to_summary(),
                    "units_sold": 0,
                    "revenue_cents": 0,
                }
            entry["units_sold"] += line.quantity
            entry["revenue_cents"] += line.subtotal_cents

    # Stable sort keeps first-seen order among ties.
    return sorted(products.values(), key=lambda p: p["units_sold"], reverse=True)


def period_report(*, start: str | None, end: str | None) -> dict:
    """
    Sales and appointments over an inclusive range of calendar days (UTC).

    Either bound may be omitted for an open-ended range.
    """
    start_d, end_d = _parse_range(start, end)

    sales = _sales_in_range(start_d, end_d)
    appointments = _appointments_in_range(start_d, end_d)

    by_type = Counter(a.appointment_type for a in appointments)
    by_status = Counter(a.status for a in appointments)

    return {
        "start_date": to_iso_date(start_d),
        "end_date": to_iso_date(end_d),
        "sales": [s.to_dict() for s in sales],
        "total_sales": len(sales),
        "total_revenue_cents": sum(s.total_cents for s in sales),
        "total_units_sold": sum(line.quantity for s in sales for line in s.lines),
        "top_products": _product_ranking(sales),
        "appointments": [a.to_dict() for a in appointments],
        "total_appointments": len(appointments),
        "appointments_by_type": dict(by_type),
        "appointments_by_status": dict(by_status),
    }


def dashboard_stats() -> dict:
    return {
        "total_customers": db.session.query(func.count(Customer.id)).scalar(),
        "total_prescriptions": db.session.query(func.count(Prescription.id)).scalar(),
        "pending_appointments": (
            db.session.query(func.count(Appointment.id))
            .filter(Appointment.status == PENDING_APPOINTMENT_STATUS)
            .scalar()
        ),
    }
