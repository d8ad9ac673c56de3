"""Unit tests for JWT token validation and principal extraction

Tests cover:
- Token creation with valid claims
- Token decoding and validation
- Token expiration handling
- Invalid token handling
- Principal construction from claims
"""

import pytest
from datetime import datetime, timedelta, timezone
from uuid import uuid4
import jwt
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from auth.dependencies import get_current_principal, require_role
from auth.jwt import create_access_token, decode_token
from auth.principal import Principal
from auth.roles import UserRole, has_permission, get_allowed_roles
from config import get_settings


def _credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def _sign(payload: dict) -> str:
    settings = get_settings()
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


class TestCreateAccessToken:
    """Test JWT token creation"""

    def test_token_contains_correct_claims(self):
        user_id, company_id, department = uuid4(), uuid4(), uuid4()

        token = create_access_token(
            user_id=user_id,
            company_id=company_id,
            role="MANAGER",
            department_ids=[department],
        )

        # Decode without verification to inspect payload
        payload = jwt.decode(token, options={"verify_signature": False})

        assert payload['sub'] == str(user_id)
        assert payload['company_id'] == str(company_id)
        assert payload['role'] == "MANAGER"
        assert payload['department_ids'] == [str(department)]
        assert 'iat' in payload
        assert 'exp' in payload

    def test_token_expiration(self):
        token = create_access_token(uuid4(), uuid4(), "MEMBER", expires_minutes=30)
        payload = jwt.decode(token, options={"verify_signature": False})

        assert payload['exp'] - payload['iat'] == 30 * 60


class TestDecodeToken:
    """Test JWT token decoding and validation"""

    def test_decode_valid_token(self):
        user_id = uuid4()
        token = create_access_token(user_id, uuid4(), "ADMIN")

        assert decode_token(token)['sub'] == str(user_id)

    def test_expired_token_rejected(self):
        token = _sign({
            'sub': str(uuid4()),
            'company_id': str(uuid4()),
            'role': "MEMBER",
            'iat': int((datetime.now(timezone.utc) - timedelta(hours=2)).timestamp()),
            'exp': int((datetime.now(timezone.utc) - timedelta(hours=1)).timestamp()),
        })

        with pytest.raises(jwt.ExpiredSignatureError):
            decode_token(token)

    def test_tampered_token_rejected(self):
        token = jwt.encode({'sub': str(uuid4())}, "some-other-secret-that-is-long-enough-to-sign", algorithm="HS256")

        with pytest.raises(jwt.InvalidTokenError):
            decode_token(token)


class TestGetCurrentPrincipal:
    """Principal extraction from bearer tokens"""

    def test_principal_from_claims(self):
        user_id, company_id, department = uuid4(), uuid4(), uuid4()
        token = create_access_token(user_id, company_id, "GUEST", department_ids=[department])

        principal = get_current_principal(_credentials(token))

        assert principal == Principal(
            user_id=user_id,
            company_id=company_id,
            role=UserRole.GUEST,
            department_ids=frozenset({department}),
        )
        assert principal.is_guest is True

    def test_missing_company_claim(self):
        token = _sign({
            'sub': str(uuid4()),
            'exp': int((datetime.now(timezone.utc) + timedelta(minutes=5)).timestamp()),
        })

        with pytest.raises(HTTPException) as exc:
            get_current_principal(_credentials(token))
        assert exc.value.status_code == 401

    def test_unknown_role_rejected(self):
        token = create_access_token(uuid4(), uuid4(), "SUPERUSER")

        with pytest.raises(HTTPException) as exc:
            get_current_principal(_credentials(token))
        assert exc.value.status_code == 401

    def test_garbage_token(self):
        with pytest.raises(HTTPException) as exc:
            get_current_principal(_credentials("not-a-jwt"))
        assert exc.value.status_code == 401


class TestRoles:
    """Role hierarchy"""

    def test_hierarchy(self):
        assert has_permission(UserRole.ADMIN, UserRole.MANAGER) is True
        assert has_permission(UserRole.MANAGER, UserRole.MEMBER) is True
        assert has_permission(UserRole.MEMBER, UserRole.MANAGER) is False
        assert has_permission(UserRole.GUEST, UserRole.MEMBER) is False

    def test_allowed_roles(self):
        assert get_allowed_roles(UserRole.MANAGER) == {UserRole.ADMIN, UserRole.MANAGER}

    def test_require_role_dependency(self):
        dependency = require_role(UserRole.ADMIN)
        member = Principal(user_id=uuid4(), company_id=uuid4(), role=UserRole.MEMBER)
        admin = Principal(user_id=uuid4(), company_id=uuid4(), role=UserRole.ADMIN)

        assert dependency(admin) is admin
        with pytest.raises(HTTPException) as exc:
            dependency(member)
        assert exc.value.status_code == 403

    def test_management_roles(self):
        assert Principal(user_id=uuid4(), company_id=uuid4(), role=UserRole.MANAGER).is_management
        assert not Principal(user_id=uuid4(), company_id=uuid4(), role=UserRole.MEMBER).is_management
