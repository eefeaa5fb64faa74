# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/optica/routes/auth.py
"""
Authentication API routes

SECURITY FEATURES:
- Password strength validation on user creation
- Session management with token-based auth
- Only administrators register new accounts
"""

from flask import Blueprint, request, jsonify, g

from ..services import auth_service
from ..services import session_service
from ..services import permission_service
from ..errors import AuthenticationError, ValidationError
from ..decorators import require_auth, require_permission


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Returns user info and session token on success.
    Token must be included in Authorization header for protected routes.
    """
    data = request.get_json(silent=True) or {}
    username = data.get("username") or data.get("email")
    password = data.get("password")

    if not all([username, password]):
        raise ValidationError("username/email and password required")

    user = auth_service.authenticate(username, password)
    if not user:
        raise AuthenticationError("Invalid credentials")

    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )

    return jsonify({
        "user": user.to_dict(),
        "permissions": sorted(permission_service.get_user_permissions(user)),
        "token": token,
        "session": session.to_dict(),
        "message": "Login successful",
    }), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """
    Revoke session token (logout).

    Expects Authorization header: Bearer <token>
    """
    session_service.revoke_session(g.session_token, reason="User logout")
    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    """Current user and the permission codes their role grants."""
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "permissions": sorted(permission_service.get_user_permissions(user)),
    }), 200


@auth_bp.post("/users")
@require_auth
@require_permission("MANAGE_USERS")
def create_user_route():
    """
    Register a staff (or admin) account.

    Requires MANAGE_USERS permission. Self-registration does not exist.
    """
    data = request.get_json(silent=True) or {}

    user = auth_service.create_user(
        username=data.get("username"),
        email=data.get("email"),
        password=data.get("password"),
        role=data.get("role") or "staff",
    )

    return jsonify({"user": user.to_dict()}), 201
