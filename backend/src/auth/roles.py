"""Company roles and permission hierarchy for document control.

Role Hierarchy (descending permissions):
- ADMIN: Company administrator, document types, retention policies, overrides
- MANAGER: Reviews and approves documents, places legal holds
- MEMBER: Creates and edits documents
- GUEST: External collaborator, reads only what is public or granted

Permission Matrix:
┌────────────────────────────┬───────┬─────────┬────────┬───────┐
│ Action                     │ ADMIN │ MANAGER │ MEMBER │ GUEST │
├────────────────────────────┼───────┼─────────┼────────┼───────┤
│ Configure Document Types   │   ✓   │         │        │       │
│ Configure Retention        │   ✓   │         │        │       │
│ Override Retention         │   ✓   │         │        │       │
│ Place Legal Hold           │   ✓   │    ✓    │        │       │
│ Force-cancel Checkout      │   ✓   │    ✓    │        │       │
│ View Any Document          │   ✓   │    ✓    │        │       │
│ Create Documents/Folders   │   ✓   │    ✓    │   ✓    │       │
│ View Public Documents      │   ✓   │    ✓    │   ✓    │   ✓   │
└────────────────────────────┴───────┴─────────┴────────┴───────┘
"""

from enum import Enum
from typing import Set


class UserRole(str, Enum):
    """Roles issued by the identity provider in the ``role`` claim.

    Values must match the claim exactly.
    """
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    MEMBER = "MEMBER"
    GUEST = "GUEST"


# Role hierarchy: Each role includes permissions of all roles below it
ROLE_HIERARCHY = {
    UserRole.ADMIN: {UserRole.ADMIN, UserRole.MANAGER, UserRole.MEMBER, UserRole.GUEST},
    UserRole.MANAGER: {UserRole.MANAGER, UserRole.MEMBER, UserRole.GUEST},
    UserRole.MEMBER: {UserRole.MEMBER, UserRole.GUEST},
    UserRole.GUEST: {UserRole.GUEST},
}

# Roles that read past classification and may place holds
MANAGEMENT_ROLES = frozenset({UserRole.ADMIN, UserRole.MANAGER})


def has_permission(user_role: UserRole, required_role: UserRole) -> bool:
    """Check if a user role has permission to perform an action requiring a specific role.

    Examples:
        >>> has_permission(UserRole.ADMIN, UserRole.MEMBER)
        True
        >>> has_permission(UserRole.GUEST, UserRole.MEMBER)
        False
    """
    return required_role in ROLE_HIERARCHY.get(user_role, set())


def get_allowed_roles(required_role: UserRole) -> Set[UserRole]:
    """Get all roles that have permission to perform an action.

    Example:
        >>> get_allowed_roles(UserRole.MANAGER)
        {UserRole.ADMIN, UserRole.MANAGER}
    """
    return {role for role, permissions in ROLE_HIERARCHY.items() if required_role in permissions}
