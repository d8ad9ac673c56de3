"""Access evaluation for controlled documents.

Effective permission for (principal, document), in priority order:

1. Other company: no access.
2. Owner or uploader: edit, regardless of grants or classification.
3. Explicit user grant: wins outright (view or edit).
4. Department grants: the most permissive grant among the principal's departments.
5. Classification default:
   - public: view for every principal of the company, guests included
   - internal: view for non-guest principals of the company
   - confidential / restricted: nothing without a grant
6. Management roles are raised to at least view.

Legal hold is never consulted here; it restricts mutation, not reading.
Edit implies view.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional


class Classification(str, Enum):
    """Confidentiality tier driving default access."""
    PUBLIC = "public"
    INTERNAL = "internal"
    CONFIDENTIAL = "confidential"
    RESTRICTED = "restricted"


class LegacyAccessLevel(str, Enum):
    """Coarse access flag kept for older clients. Not used for decisions."""
    PUBLIC = "public"
    PRIVATE = "private"
    RESTRICTED = "restricted"


class PermissionLevel(str, Enum):
    NONE = "none"
    VIEW = "view"
    EDIT = "edit"

    @property
    def rank(self) -> int:
        return _RANK[self]


_RANK = {PermissionLevel.NONE: 0, PermissionLevel.VIEW: 1, PermissionLevel.EDIT: 2}

# Grants only ever carry view or edit
GRANT_LEVELS = (PermissionLevel.VIEW, PermissionLevel.EDIT)


class AccessSource(str, Enum):
    """Which rule produced the decision."""
    OWNER = "owner"
    USER_GRANT = "user_grant"
    DEPARTMENT_GRANT = "department_grant"
    CLASSIFICATION = "classification"
    MANAGEMENT_ROLE = "management_role"
    NONE = "none"


@dataclass(frozen=True)
class AccessDecision:
    level: PermissionLevel
    source: AccessSource

    @property
    def can_view(self) -> bool:
        return self.level.rank >= PermissionLevel.VIEW.rank

    @property
    def can_edit(self) -> bool:
        return self.level == PermissionLevel.EDIT


def most_permissive(levels: Iterable[PermissionLevel]) -> Optional[PermissionLevel]:
    best = None
    for level in levels:
        if best is None or level.rank > best.rank:
            best = level
    return best


def classification_default(
    classification: Classification,
    is_guest: bool
) -> PermissionLevel:
    """Default permission a same-company principal gets from the label alone."""
    if classification == Classification.PUBLIC:
        return PermissionLevel.VIEW
    if classification == Classification.INTERNAL and not is_guest:
        return PermissionLevel.VIEW
    return PermissionLevel.NONE


def evaluate_access(principal: Any, document: Any, grants: Iterable[Any]) -> AccessDecision:
    """Compute the effective permission of principal on document.

    Args:
        principal: Object with user_id, company_id, department_ids,
            is_guest and is_management
        document: Object with company_id, owned_by_user_id,
            uploaded_by_user_id and classification
        grants: Access grants on the document, each with user_id,
            department_id and access_level

    Returns:
        AccessDecision with the level and the rule that produced it
    """
    if principal.company_id != document.company_id:
        return AccessDecision(PermissionLevel.NONE, AccessSource.NONE)

    if principal.user_id in (document.owned_by_user_id, document.uploaded_by_user_id):
        return AccessDecision(PermissionLevel.EDIT, AccessSource.OWNER)

    grants = list(grants)

    user_levels = [
        PermissionLevel(g.access_level) for g in grants
        if g.user_id is not None and g.user_id == principal.user_id
    ]
    if user_levels:
        decision = AccessDecision(most_permissive(user_levels), AccessSource.USER_GRANT)
        return _with_management_floor(principal, decision)

    departments = set(principal.department_ids or ())
    department_levels = [
        PermissionLevel(g.access_level) for g in grants
        if g.department_id is not None and g.department_id in departments
    ]
    if department_levels:
        decision = AccessDecision(most_permissive(department_levels), AccessSource.DEPARTMENT_GRANT)
        return _with_management_floor(principal, decision)

    level = classification_default(Classification(document.classification), principal.is_guest)
    if level != PermissionLevel.NONE:
        return _with_management_floor(principal, AccessDecision(level, AccessSource.CLASSIFICATION))

    return _with_management_floor(principal, AccessDecision(PermissionLevel.NONE, AccessSource.NONE))


def _with_management_floor(principal: Any, decision: AccessDecision) -> AccessDecision:
    # Management roles read past classification; mutation still needs a grant
    if principal.is_management and not decision.can_view:
        return AccessDecision(PermissionLevel.VIEW, AccessSource.MANAGEMENT_ROLE)
    return decision
