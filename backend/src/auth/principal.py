"""Authenticated principal as supplied by the identity provider."""

from dataclasses import dataclass, field
from typing import FrozenSet
from uuid import UUID

from .roles import UserRole, MANAGEMENT_ROLES


@dataclass(frozen=True)
class Principal:
    """Caller identity for one request.

    Built from token claims only; the document control core trusts it and
    does no user lookup of its own.
    """
    user_id: UUID
    company_id: UUID
    role: UserRole = UserRole.MEMBER
    department_ids: FrozenSet[UUID] = field(default_factory=frozenset)

    @property
    def is_guest(self) -> bool:
        return self.role == UserRole.GUEST

    @property
    def is_management(self) -> bool:
        return self.role in MANAGEMENT_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
