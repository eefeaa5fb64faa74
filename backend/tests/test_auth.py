"""
Authentication and authorization tests.

Verifies:
- Login issues a bearer token; logout revokes it
- Unauthenticated requests return 401
- Staff role denied admin-only operations (403)
"""

from datetime import timedelta

import pytest

from optica.errors import ValidationError
from optica.models import SessionToken
from optica.permissions import ALL_PERMISSIONS, ROLE_PERMISSIONS
from optica.services import auth_service, permission_service, session_service
from optica.services.auth_service import PasswordValidationError
from optica.time_utils import utcnow


# =============================================================================
# LOGIN / LOGOUT / ME
# =============================================================================


class TestLogin:

    def test_login_and_me(self, client, staff_user):
        resp = client.post("/api/auth/login", json={"username": "maria", "password": "Password123!"})

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["user"]["role"] == "staff"
        assert "CANCEL_SALE" not in body["permissions"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
        assert me.status_code == 200
        assert me.get_json()["user"]["username"] == "maria"

    def test_login_by_email(self, client, staff_user):
        resp = client.post("/api/auth/login", json={"email": "maria@optica.local", "password": "Password123!"})
        assert resp.status_code == 200

    def test_wrong_password(self, client, staff_user):
        resp = client.post("/api/auth/login", json={"username": "maria", "password": "Wrong123!"})

        assert resp.status_code == 401
        assert "token" not in resp.get_json()

    def test_missing_fields(self, client, db_session):
        assert client.post("/api/auth/login", json={"username": "maria"}).status_code == 400

    def test_inactive_user_cannot_login(self, client, staff_user, db_session):
        staff_user.is_active = False
        db_session.commit()

        resp = client.post("/api/auth/login", json={"username": "maria", "password": "Password123!"})
        assert resp.status_code == 401

    def test_logout_revokes_token(self, client, staff_headers):
        assert client.post("/api/auth/logout", headers=staff_headers).status_code == 200
        assert client.get("/api/auth/me", headers=staff_headers).status_code == 401


class TestSessions:

    def test_expired_token_rejected(self, db_session, staff_user):
        session, token = session_service.create_session(user_id=staff_user.id)
        session.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()

        assert session_service.validate_session(token) is None

    def test_deactivated_user_revokes_session(self, db_session, staff_user):
        session, token = session_service.create_session(user_id=staff_user.id)
        staff_user.is_active = False
        db_session.commit()

        assert session_service.validate_session(token) is None
        db_session.expire_all()
        assert db_session.get(SessionToken, session.id).is_revoked is True

    def test_token_stored_hashed(self, db_session, staff_user):
        session, token = session_service.create_session(user_id=staff_user.id)
        assert session.token_hash != token
        assert session.token_hash == session_service.hash_token(token)

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/customers"),
            ("POST", "/api/customers"),
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/prescriptions"),
            ("GET", "/api/appointments"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("DELETE", "/api/sales/1"),
            ("GET", "/api/reports"),
            ("GET", "/api/stats"),
            ("GET", "/api/auth/me"),
            ("POST", "/api/auth/users"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"


# =============================================================================
# USER MANAGEMENT
# =============================================================================


class TestUserManagement:

    def test_admin_registers_staff(self, client, admin_headers):
        resp = client.post(
            "/api/auth/users",
            json={"username": "joao", "email": "joao@optica.local", "password": "Secret123!"},
            headers=admin_headers,
        )

        assert resp.status_code == 201
        assert resp.get_json()["user"]["role"] == "staff"

        login = client.post("/api/auth/login", json={"username": "joao", "password": "Secret123!"})
        assert login.status_code == 200

    def test_staff_cannot_register_users(self, client, staff_headers):
        resp = client.post(
            "/api/auth/users",
            json={"username": "joao", "email": "joao@optica.local", "password": "Secret123!"},
            headers=staff_headers,
        )

        assert resp.status_code == 403
        assert resp.get_json()["details"]["required_permission"] == "MANAGE_USERS"

    def test_weak_password(self, client, admin_headers):
        resp = client.post(
            "/api/auth/users",
            json={"username": "joao", "email": "joao@optica.local", "password": "short"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_duplicate_username(self, client, admin_headers, staff_user):
        resp = client.post(
            "/api/auth/users",
            json={"username": "maria", "email": "other@optica.local", "password": "Secret123!"},
            headers=admin_headers,
        )

        assert resp.status_code == 409
        assert resp.get_json()["details"]["field"] == "username"

    def test_unknown_role(self, db_session):
        with pytest.raises(ValidationError):
            auth_service.create_user("joao", "joao@optica.local", "Secret123!", role="owner")


class TestPasswordPolicy:

    @pytest.mark.parametrize("password", [
        "Sh0rt!",
        "alllowercase1!",
        "ALLUPPERCASE1!",
        "NoDigitsHere!",
        "NoSpecial123",
    ])
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(PasswordValidationError):
            auth_service.validate_password_strength(password)

    def test_verify_password(self, app):
        hashed = auth_service.hash_password("Password123!")
        assert auth_service.verify_password("Password123!", hashed)
        assert not auth_service.verify_password("Password124!", hashed)
        assert not auth_service.verify_password("Password123!", "not-a-bcrypt-hash")


class TestRolePermissions:

    def test_admin_has_everything(self, admin_user):
        assert permission_service.get_user_permissions(admin_user) == set(ALL_PERMISSIONS)

    def test_staff_restrictions(self, staff_user):
        perms = permission_service.get_user_permissions(staff_user)
        assert "CREATE_SALE" in perms
        assert {"MANAGE_PRODUCTS", "CANCEL_SALE", "MANAGE_USERS"}.isdisjoint(perms)

    def test_unknown_role_grants_nothing(self, staff_user):
        staff_user.role = "guest"
        assert permission_service.get_user_permissions(staff_user) == set()

    def test_staff_set_is_subset_of_admin(self):
        assert ROLE_PERMISSIONS["staff"] < ROLE_PERMISSIONS["admin"]
