# Overview: Flask API routes for appointment operations; parses input and returns JSON responses.

from flask import Blueprint, request

from ..decorators import require_auth, require_permission
from ..errors import ValidationError
from ..models import Appointment
from ..models.appointments import APPOINTMENT_STATUSES
from ..services import appointment_service
from ..validation import APPOINTMENT_POLICY, enforce_rules_appointment, validate_payload

appointments_bp = Blueprint("appointments", __name__, url_prefix="/api/appointments")


@appointments_bp.get("")
@require_auth
def list_appointments():
    """
    Appointments in calendar order.

    Query params:
    - status: str (optional)
    - customer_id: int (optional)
    """
    status = request.args.get("status")
    if status and status not in APPOINTMENT_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(APPOINTMENT_STATUSES)}")

    items = appointment_service.list_appointments(
        status=status,
        customer_id=request.args.get("customer_id", type=int),
    )
    return {"items": items, "count": len(items)}


@appointments_bp.get("/<int:appointment_id>")
@require_auth
def get_appointment(appointment_id: int):
    return appointment_service.get_appointment(appointment_id).to_dict()


@appointments_bp.post("")
@require_auth
@require_permission("MANAGE_APPOINTMENTS")
def create_appointment():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Appointment, payload=payload, policy=APPOINTMENT_POLICY, partial=False)
    enforce_rules_appointment(patch)
    return appointment_service.create_appointment(patch=patch), 201


@appointments_bp.patch("/<int:appointment_id>")
@require_auth
@require_permission("MANAGE_APPOINTMENTS")
def update_appointment(appointment_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Appointment, payload=payload, policy=APPOINTMENT_POLICY, partial=True)
    enforce_rules_appointment(patch)
    return appointment_service.update_appointment(appointment_id=appointment_id, patch=patch), 200


@appointments_bp.delete("/<int:appointment_id>")
@require_auth
@require_permission("MANAGE_APPOINTMENTS")
def delete_appointment(appointment_id: int):
    deleted = appointment_service.delete_appointment(appointment_id=appointment_id)
    return {"ok": True, "appointment": deleted}, 200
