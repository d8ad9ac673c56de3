"""Retention and legal hold rules.

Retention expiry is computed once, when a policy is applied, from the
policy duration and a reference date picked by the policy trigger. It is
not recomputed when the document later changes.

Legal hold blocks deletion, checkout and content changes unconditionally.
Retention blocks deletion until it expires, unless the caller supplies an
administrative override.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional

from .errors import (
    DocumentValidationError,
    LegalHoldActive,
    LegalHoldBlocksDeletion,
    RetentionActive,
)


class RetentionAction(str, Enum):
    """What happens to a document once its retention expires."""
    ARCHIVE = "archive"
    DELETE = "delete"
    REVIEW = "review"


class RetentionTrigger(str, Enum):
    """Which document date the retention period counts from."""
    CREATED = "created"
    MODIFIED = "modified"
    APPROVED = "approved"


def compute_retention_expiry(retention_period_days: int, reference_date: datetime) -> datetime:
    if retention_period_days < 1:
        raise DocumentValidationError(
            "Retention period must be at least 1 day",
            retention_period_days=retention_period_days,
        )
    return reference_date + timedelta(days=retention_period_days)


def reference_date_for(trigger: RetentionTrigger, document: Any) -> datetime:
    """Pick the document date a policy with this trigger counts from.

    Raises:
        DocumentValidationError: If the document has no such date yet
    """
    if trigger == RetentionTrigger.CREATED:
        reference = document.created_at
    elif trigger == RetentionTrigger.MODIFIED:
        reference = document.updated_at or document.created_at
    else:
        reference = document.approved_at

    if reference is None:
        raise DocumentValidationError(
            f"Document has no {trigger.value} date to start retention from",
            trigger=trigger.value,
        )
    return reference


def retention_is_active(document: Any, now: datetime) -> bool:
    expires_at: Optional[datetime] = document.retention_expires_at
    return expires_at is not None and expires_at > now


def assert_can_delete(document: Any, now: datetime, admin_override: bool = False) -> None:
    """Raise if document may not be deleted.

    Legal hold always wins. Active retention can be overridden by an
    administrator; the override flag is trusted as given.

    Raises:
        LegalHoldBlocksDeletion: If the document is under legal hold
        RetentionActive: If retention has not expired and no override was given
    """
    if document.legal_hold:
        raise LegalHoldBlocksDeletion(document.id)
    if retention_is_active(document, now) and not admin_override:
        raise RetentionActive(document.id, document.retention_expires_at)


def assert_can_change_content(document: Any) -> None:
    """Raise if the document's content may not change.

    Metadata-only edits are not checked here; they stay allowed under hold.

    Raises:
        LegalHoldActive: If the document is under legal hold
    """
    if document.legal_hold:
        raise LegalHoldActive(document.id)
