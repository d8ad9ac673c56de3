"""Security tests for authentication bypass attempts

Tests cover:
- Direct endpoint access without authentication
- Token manipulation attempts
- Privilege escalation through role claims
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import jwt
import pytest
from fastapi.testclient import TestClient

from auth.jwt import create_access_token
from document_control.grants import GrantService
from domain.document_control import PermissionLevel


pytestmark = pytest.mark.security

SECRET = "test-jwt-secret-key-256-bits-minimum-length-required-for-security"


def _token(payload, secret=SECRET, algorithm="HS256"):
    return jwt.encode(payload, secret, algorithm=algorithm)


def _claims(principal, **overrides):
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(principal.user_id),
        "company_id": str(principal.company_id),
        "role": principal.role.value,
        "department_ids": [],
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=30)).timestamp()),
    }
    claims.update(overrides)
    return claims


class TestUnauthenticatedAccess:
    """Protected endpoints refuse requests without a bearer token"""

    @pytest.mark.parametrize("endpoint,method", [
        ("/api/v1/documents/checked-out", "GET"),
        ("/api/v1/documents/my-checkouts", "GET"),
        ("/api/v1/documents", "POST"),
        ("/api/v1/folders", "GET"),
        ("/api/v1/folders/tree", "GET"),
        ("/api/v1/admin/document-types", "GET"),
        ("/api/v1/admin/retention-policies", "POST"),
        ("/api/v1/admin/folder-templates", "POST"),
        ("/api/v1/folders/from-template", "POST"),
    ])
    def test_protected_endpoints_require_auth(self, client: TestClient, endpoint: str, method: str):
        if method == "GET":
            response = client.get(endpoint)
        else:
            response = client.post(endpoint, json={})

        assert response.status_code in (401, 403)

    @pytest.mark.parametrize("header", [
        "InvalidFormat",
        "Bearer",
        "Basic dXNlcjpwYXNz",
        "Bearer a.b.c",
    ])
    def test_malformed_authorization_header(self, client: TestClient, header: str):
        response = client.get("/api/v1/folders", headers={"Authorization": header})

        assert response.status_code in (401, 403)


class TestTokenManipulation:

    def test_wrong_secret(self, client: TestClient, owner):
        token = _token(_claims(owner), secret="attacker-controlled-secret-of-sufficient-length")

        response = client.get("/api/v1/folders", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_expired_token(self, client: TestClient, owner):
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = _token(_claims(
            owner,
            iat=int(past.timestamp()),
            exp=int((past + timedelta(minutes=5)).timestamp()),
        ))

        response = client.get("/api/v1/folders", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert "expired" in response.json()["detail"].lower()

    def test_unsigned_token(self, client: TestClient, owner):
        token = jwt.encode(_claims(owner), None, algorithm="none")

        response = client.get("/api/v1/folders", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_missing_company_claim(self, client: TestClient, owner):
        claims = _claims(owner)
        del claims["company_id"]

        response = client.get("/api/v1/folders", headers={"Authorization": f"Bearer {_token(claims)}"})

        assert response.status_code == 401

    def test_unknown_role(self, client: TestClient, owner):
        token = _token(_claims(owner, role="SUPERUSER"))

        response = client.get("/api/v1/folders", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_malformed_user_id(self, client: TestClient, owner):
        token = _token(_claims(owner, sub="not-a-uuid"))

        response = client.get("/api/v1/folders", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401


class TestPrivilegeEscalation:

    def test_member_cannot_reach_admin_routes(self, api_client, member):
        client = api_client(member)

        assert client.get("/api/v1/admin/document-types").status_code == 403
        assert client.post(
            "/api/v1/admin/document-types",
            json={"code": "X", "name": "Escalated"},
        ).status_code == 403

    def test_manager_cannot_reach_admin_routes(self, api_client, manager):
        response = api_client(manager).get("/api/v1/admin/retention-policies")

        assert response.status_code == 403

    def test_override_ignored_for_non_admin(self, api_client, owner, manager, document):
        retained = api_client(manager).post(
            f"/api/v1/documents/{document.id}/retention/extend",
            json={"new_expiry": (datetime.now(timezone.utc) + timedelta(days=30)).isoformat()},
        )
        assert retained.status_code == 200

        response = api_client(owner).delete(
            f"/api/v1/documents/{document.id}",
            params={"override": "true"},
        )

        assert response.status_code == 403
        assert response.json()["error"] == "retention_active"

    def test_admin_override_skips_retention(self, api_client, owner, manager, admin, document, db_session):
        api_client(manager).post(
            f"/api/v1/documents/{document.id}/retention/extend",
            json={"new_expiry": (datetime.now(timezone.utc) + timedelta(days=30)).isoformat()},
        )
        GrantService(db_session, admin.company_id).grant_user(owner, document.id, admin.user_id, PermissionLevel.EDIT)
        db_session.commit()

        response = api_client(admin).delete(
            f"/api/v1/documents/{document.id}",
            params={"override": "true"},
        )

        assert response.status_code == 204

    def test_token_for_fresh_user_is_scoped_to_claimed_company(self, client: TestClient, document):
        token = create_access_token(user_id=uuid4(), company_id=uuid4(), role="ADMIN")

        response = client.get(
            f"/api/v1/documents/{document.id}",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 404
