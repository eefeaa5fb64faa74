# Overview: Flask API routes for prescription operations; parses input and returns JSON responses.

from flask import Blueprint, request

from ..decorators import require_auth, require_permission
from ..models import Prescription
from ..services import prescription_service
from ..validation import PRESCRIPTION_POLICY, enforce_rules_prescription, validate_payload

prescriptions_bp = Blueprint("prescriptions", __name__, url_prefix="/api/prescriptions")


@prescriptions_bp.get("")
@require_auth
def list_prescriptions():
    """Newest first; ?customer_id= narrows to one customer."""
    items = prescription_service.list_prescriptions(
        customer_id=request.args.get("customer_id", type=int),
    )
    return {"items": items, "count": len(items)}


@prescriptions_bp.get("/<int:prescription_id>")
@require_auth
def get_prescription(prescription_id: int):
    return prescription_service.get_prescription(prescription_id).to_dict(include_customer=True)


@prescriptions_bp.post("")
@require_auth
@require_permission("MANAGE_PRESCRIPTIONS")
def create_prescription():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Prescription, payload=payload, policy=PRESCRIPTION_POLICY, partial=False)
    enforce_rules_prescription(patch)
    return prescription_service.create_prescription(patch=patch), 201


@prescriptions_bp.patch("/<int:prescription_id>")
@require_auth
@require_permission("MANAGE_PRESCRIPTIONS")
def update_prescription(prescription_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Prescription, payload=payload, policy=PRESCRIPTION_POLICY, partial=True)
    enforce_rules_prescription(patch)
    return prescription_service.update_prescription(prescription_id=prescription_id, patch=patch), 200


@prescriptions_bp.delete("/<int:prescription_id>")
@require_auth
@require_permission("MANAGE_PRESCRIPTIONS")
def delete_prescription(prescription_id: int):
    deleted = prescription_service.delete_prescription(prescription_id=prescription_id)
    return {"ok": True, "prescription": deleted}, 200
