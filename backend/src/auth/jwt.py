"""JWT token validation for identity provider tokens

The identity provider signs access tokens with a secret shared with this
service. The document control backend only validates them; create_access_token
exists for tooling and tests that need a token the backend will accept.

JWT Token Claims Structure:
============================

Standard JWT Claims:
- sub (Subject): User ID as UUID string
- iat (Issued At): Unix timestamp when token was created
- exp (Expiration): Unix timestamp when token expires

Custom Claims:
- company_id: Company (tenant) ID as UUID string
  Purpose: Every query is scoped to this company

- role: User's role within the company
  Values: "ADMIN" | "MANAGER" | "MEMBER" | "GUEST"

- department_ids: List of department UUID strings the user belongs to
  Purpose: Department access grants

Example Token Payload:
{
  "sub": "550e8400-e29b-41d4-a716-446655440000",
  "company_id": "7c9e6679-7425-40de-944b-e07fc1f90ae7",
  "role": "MEMBER",
  "department_ids": ["0b6f0c1e-5a43-4c55-9d55-8f6b8b7f2a10"],
  "iat": 1704368400,
  "exp": 1704372000
}
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Iterable, Optional
from uuid import UUID
import jwt

from config import get_settings


def _get_jwt_secret() -> str:
    """Get JWT_SECRET from settings.

    Raises:
        ValueError: If JWT_SECRET is not set
    """
    secret = get_settings().JWT_SECRET
    if not secret:
        raise ValueError("JWT_SECRET environment variable is not set")
    return secret


def create_access_token(
    user_id: UUID,
    company_id: UUID,
    role: str,
    department_ids: Optional[Iterable[UUID]] = None,
    expires_minutes: int = 60
) -> str:
    """Create a signed access token in the identity provider's format.

    Raises:
        ValueError: If JWT_SECRET is not set
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expiration = now + timedelta(minutes=expires_minutes)

    payload = {
        'sub': str(user_id),  # Subject: user ID
        'company_id': str(company_id),
        'role': role,
        'department_ids': [str(d) for d in (department_ids or [])],
        'iat': int(now.timestamp()),  # Issued at
        'exp': int(expiration.timestamp())  # Expiration
    }

    return jwt.encode(payload, _get_jwt_secret(), algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or tampered
        ValueError: If JWT_SECRET is not set
    """
    secret = _get_jwt_secret()

    try:
        return jwt.decode(token, secret, algorithms=[get_settings().JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise jwt.ExpiredSignatureError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise jwt.InvalidTokenError(f"Invalid token: {str(e)}")
