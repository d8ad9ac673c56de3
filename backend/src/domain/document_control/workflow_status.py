"""Document approval workflow state machine.

State Flow:
    draft → pending_review → approved → published
                           ↘ rejected (returns to draft)
    any non-terminal state → cancelled

Terminal States: published, cancelled
"""

from enum import Enum
from typing import Dict, List, Optional

from .errors import InvalidTransition, DocumentValidationError


class DocumentStatus(str, Enum):
    """Workflow status of a controlled document."""
    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    PUBLISHED = "published"
    CANCELLED = "cancelled"


ALLOWED_TRANSITIONS: Dict[DocumentStatus, List[DocumentStatus]] = {
    DocumentStatus.DRAFT: [
        DocumentStatus.PENDING_REVIEW,
        DocumentStatus.CANCELLED,
    ],
    DocumentStatus.PENDING_REVIEW: [
        DocumentStatus.APPROVED,
        DocumentStatus.REJECTED,
        DocumentStatus.CANCELLED,
    ],
    DocumentStatus.APPROVED: [
        DocumentStatus.PUBLISHED,
        DocumentStatus.CANCELLED,
    ],
    # Rejected records are sent back for rework
    DocumentStatus.REJECTED: [
        DocumentStatus.DRAFT,
        DocumentStatus.CANCELLED,
    ],
    DocumentStatus.PUBLISHED: [],  # Terminal state
    DocumentStatus.CANCELLED: [],  # Terminal state
}

TERMINAL_STATES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)

# Start states a caller may request for types that skip approval
UNAPPROVED_START_STATES = frozenset({
    DocumentStatus.DRAFT,
    DocumentStatus.APPROVED,
    DocumentStatus.PUBLISHED,
})


def validate_transition(
    current_status: DocumentStatus,
    new_status: DocumentStatus
) -> None:
    """Validate that a state transition is allowed.

    Args:
        current_status: Current document status
        new_status: Target status to transition to

    Raises:
        InvalidTransition: If transition is not allowed
    """
    allowed = ALLOWED_TRANSITIONS.get(current_status, [])
    if new_status not in allowed:
        raise InvalidTransition(
            f"Invalid transition: {current_status.value} -> {new_status.value}. "
            f"Allowed transitions from {current_status.value}: "
            f"{[s.value for s in allowed]}",
            current_status=current_status.value,
            requested_status=new_status.value,
        )


def can_transition(
    current_status: DocumentStatus,
    new_status: DocumentStatus
) -> bool:
    """Check if a state transition is allowed without raising exception."""
    return new_status in ALLOWED_TRANSITIONS.get(current_status, [])


def get_allowed_transitions(status: DocumentStatus) -> List[DocumentStatus]:
    """Get list of allowed transitions from a given status."""
    return ALLOWED_TRANSITIONS.get(status, [])


def is_terminal(status: DocumentStatus) -> bool:
    return status in TERMINAL_STATES


def initial_status(
    requires_approval: bool,
    requested: Optional[DocumentStatus] = None
) -> DocumentStatus:
    """Pick the status a new document starts in.

    Documents start in draft. A type that does not require approval may
    start directly at approved or published when the caller asks for it.

    Raises:
        DocumentValidationError: If the requested start state is not allowed
    """
    if requested is None or requested == DocumentStatus.DRAFT:
        return DocumentStatus.DRAFT

    if requires_approval:
        raise DocumentValidationError(
            f"Document type requires approval; documents must start as "
            f"{DocumentStatus.DRAFT.value} (requested: {requested.value})",
            requested_status=requested.value,
        )

    if requested not in UNAPPROVED_START_STATES:
        raise DocumentValidationError(
            f"Documents cannot start as {requested.value}",
            requested_status=requested.value,
        )

    return requested
