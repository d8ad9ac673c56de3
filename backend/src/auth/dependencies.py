"""FastAPI dependencies for authentication and authorization.

This module provides dependency injection functions for:
- Extracting and validating JWT tokens from requests
- Building the current Principal from token claims
- Enforcing role-based access control (RBAC)

Usage:
    @router.get("/folders")
    def list_folders(principal: Principal = Depends(get_current_principal)):
        ...

    @router.post("/admin/document-types")
    def create_type(principal: Principal = Depends(require_role(UserRole.ADMIN))):
        ...
"""

from typing import Callable, Annotated
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from uuid import UUID
import jwt

from .jwt import decode_token
from .principal import Principal
from .roles import UserRole, has_permission


# HTTP Bearer token security scheme
security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> Principal:
    """Validate the bearer token and return the caller's Principal.

    Raises:
        HTTPException 401: If token is missing, invalid, expired or lacks claims
    """
    token = credentials.credentials

    try:
        payload = decode_token(token)

        user_id_str = payload.get("sub")
        company_id_str = payload.get("company_id")
        if not user_id_str or not company_id_str:
            raise _unauthorized("Invalid token: missing user or company claim")

        principal = Principal(
            user_id=UUID(user_id_str),
            company_id=UUID(company_id_str),
            role=UserRole(payload.get("role", UserRole.MEMBER.value)),
            department_ids=frozenset(UUID(d) for d in payload.get("department_ids") or []),
        )

    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        raise _unauthorized(f"Invalid token: {str(e)}")
    except ValueError as e:
        raise _unauthorized(f"Invalid token claims: {str(e)}")

    return principal


def require_role(required_role: UserRole) -> Callable:
    """Create a dependency that enforces role-based access control.

    Higher roles inherit permissions from lower roles
    (ADMIN > MANAGER > MEMBER > GUEST).

    Raises:
        HTTPException 403: If the caller's role is insufficient
    """

    def role_dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not has_permission(principal.role, required_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required role: {required_role.value}",
            )
        return principal

    return role_dependency


def get_current_admin(principal: Principal = Depends(require_role(UserRole.ADMIN))) -> Principal:
    """Convenience dependency for ADMIN-only endpoints."""
    return principal


def get_current_member_or_higher(
    principal: Principal = Depends(require_role(UserRole.MEMBER))
) -> Principal:
    """Convenience dependency for endpoints guests may not call."""
    return principal


# Type alias for dependency injection
CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
