# Overview: Service-layer operations for permission checks.

"""
Role-based permission checks.

Authorization is decided here, server-side, for every protected route.
Fail closed: an unknown role or permission code grants nothing.
"""

from flask import current_app

from ..errors import PermissionDeniedError
from ..models import User
from ..permissions import ROLE_PERMISSIONS


def get_user_permissions(user: User) -> set[str]:
    if not user or not user.is_active:
        return set()
    return set(ROLE_PERMISSIONS.get(user.role, ()))


def has_permission(user: User, permission_code: str) -> bool:
    return permission_code in get_user_permissions(user)


def require_permission(user: User, permission_code: str, resource: str | None = None) -> None:
    """
    Raise PermissionDeniedError if user lacks the permission.

    Denials are logged for security monitoring; grants are not.
    """
    if has_permission(user, permission_code):
        return

    current_app.logger.warning(
        "Permission denied: user=%s role=%s permission=%s resource=%s",
        getattr(user, "id", None), getattr(user, "role", None), permission_code, resource,
    )
    raise PermissionDeniedError(
        f"Missing permission: {permission_code}",
        details={"required_permission": permission_code},
    )
