# Overview: Domain error taxonomy and the Flask handlers that render it as JSON.

"""
Error taxonomy shared by services and routes.

Services raise these; the handlers registered in create_app() turn them into
{"error": ..., "message": ..., "details": ...} bodies with the matching
HTTP status. Nothing below ever puts a traceback in a response.
"""

from __future__ import annotations

from flask import current_app, jsonify
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.exceptions import HTTPException

from .extensions import db


class AppError(Exception):
    """Base class for errors that map onto an HTTP status."""
    status_code = 500
    title = "Internal server error"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.title, "message": str(self)}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(AppError, ValueError):
    """400-level input problem."""
    status_code = 400
    title = "Validation failed"


class NotFoundError(AppError):
    """404: a referenced id does not resolve."""
    status_code = 404
    title = "Not found"


class ConflictError(AppError, ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""
    status_code = 409
    title = "Conflict"

    def __init__(self, message: str, field: str | None = None, details: dict | None = None):
        details = dict(details or {})
        if field:
            details.setdefault("field", field)
        super().__init__(message, details)
        self.field = field


class InsufficientStockError(AppError):
    """Requested quantity exceeds what is on hand."""
    status_code = 400
    title = "Insufficient stock"

    def __init__(self, product_id: int, product_name: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for product {product_name}. "
            f"Available: {available}, Requested: {requested}.",
            details={
                "product_id": product_id,
                "product_name": product_name,
                "available": available,
                "requested": requested,
            },
        )
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.requested = requested


class AuthenticationError(AppError):
    status_code = 401
    title = "Authentication required"


class PermissionDeniedError(AppError):
    """Raised when user lacks required permission."""
    status_code = 403
    title = "Permission denied"


class InternalError(AppError):
    """Unexpected persistence failure."""
    status_code = 500
    title = "Internal server error"


def register_error_handlers(app) -> None:
    @app.errorhandler(AppError)
    def handle_app_error(err: AppError):
        if err.status_code >= 500:
            current_app.logger.error("Request failed: %s", err)
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        db.session.rollback()
        current_app.logger.warning("Integrity error: %s", err.orig)
        conflict = ConflictError("Operation conflicts with existing records")
        return jsonify(conflict.to_dict()), conflict.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(err: SQLAlchemyError):
        db.session.rollback()
        current_app.logger.exception("Database error")
        internal = InternalError("Internal server error")
        return jsonify(internal.to_dict()), internal.status_code

    @app.errorhandler(Exception)
    def handle_unexpected(err: Exception):
        if isinstance(err, HTTPException):
            return jsonify({"error": err.name, "message": err.description}), err.code
        current_app.logger.exception("Unhandled error")
        internal = InternalError("Internal server error")
        return jsonify(internal.to_dict()), internal.status_code
