# Overview: Flask API routes for reports operations; parses input and returns JSON responses.

"""
Reporting routes.

Read-only aggregation. Requires VIEW_REPORTS permission.
"""

from flask import Blueprint, request

from ..decorators import require_auth, require_permission
from ..services import reporting_service

reports_bp = Blueprint("reports", __name__, url_prefix="/api")


@reports_bp.get("/reports")
@require_auth
@require_permission("VIEW_REPORTS")
def period_report():
    """
    Sales and appointments for an inclusive date range.

    Query params:
    - startDate: YYYY-MM-DD (optional)
    - endDate: YYYY-MM-DD (optional)
    """
    return reporting_service.period_report(
        start=request.args.get("startDate"),
        end=request.args.get("endDate"),
    )


@reports_bp.get("/stats")
@require_auth
@require_permission("VIEW_REPORTS")
def stats():
    return reporting_service.dashboard_stats()
