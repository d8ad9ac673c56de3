"""Authentication: bearer token validation and caller identity"""

from .principal import Principal
from .roles import UserRole, MANAGEMENT_ROLES, has_permission

__all__ = ["Principal", "UserRole", "MANAGEMENT_ROLES", "has_permission"]
