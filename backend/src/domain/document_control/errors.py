"""Domain errors for document control.

Errors are grouped by category rather than by exception type so the API
layer can map them to responses without knowing every subclass:

- validation: bad input, rejected before any state change
- conflict: the target exists but is busy or clashes (holder, existing code)
- policy: legal hold, retention or access rules forbid the operation
- not_found: the id does not exist for this company

Every error carries a stable ``code`` and a ``context`` dict with enough
detail (current holder, existing code, expiry) for the caller to resolve it.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    CONFLICT = "conflict"
    POLICY = "policy"
    NOT_FOUND = "not_found"


class DocumentControlError(Exception):
    """Base class for all document control errors."""

    category: ErrorCategory = ErrorCategory.VALIDATION
    code: str = "document_control_error"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "category": self.category.value,
            "message": self.message,
            "details": {k: _jsonable(v) for k, v in self.context.items()},
        }


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return str(value)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class DocumentValidationError(DocumentControlError):
    category = ErrorCategory.VALIDATION
    code = "validation_error"


# ---------------------------------------------------------------------------
# Conflict
# ---------------------------------------------------------------------------

class InvalidTransition(DocumentControlError):
    category = ErrorCategory.CONFLICT
    code = "invalid_transition"


class DuplicateCode(DocumentControlError):
    category = ErrorCategory.CONFLICT
    code = "duplicate_code"

    def __init__(self, code: str, entity: str = "document_type"):
        super().__init__(
            f"A {entity.replace('_', ' ')} with code '{code}' already exists",
            existing_code=code,
            entity=entity,
        )


class Immutable(DocumentControlError):
    category = ErrorCategory.CONFLICT
    code = "immutable"


class TemplateInactive(DocumentControlError):
    category = ErrorCategory.CONFLICT
    code = "template_inactive"

    def __init__(self, template_id: Any, code: str):
        super().__init__(
            f"Folder template {code} is inactive and cannot be applied",
            template_id=template_id,
            template_code=code,
        )


class AlreadyCheckedOut(DocumentControlError):
    category = ErrorCategory.CONFLICT
    code = "already_checked_out"

    def __init__(self, document_id: Any, holder_id: Any, expires_at: Any = None):
        super().__init__(
            f"Document {document_id} is checked out by another user",
            document_id=document_id,
            holder_id=holder_id,
            expires_at=expires_at,
        )


class NotCheckedOutByYou(DocumentControlError):
    category = ErrorCategory.CONFLICT
    code = "not_checked_out_by_you"

    def __init__(self, document_id: Any, holder_id: Optional[Any] = None):
        super().__init__(
            f"Document {document_id} is not checked out by you",
            document_id=document_id,
            holder_id=holder_id,
        )


class NotEmpty(DocumentControlError):
    category = ErrorCategory.CONFLICT
    code = "folder_not_empty"

    def __init__(self, folder_id: Any, child_folders: int, documents: int):
        super().__init__(
            f"Folder {folder_id} is not empty; pass cascade=true to delete its contents",
            folder_id=folder_id,
            child_folders=child_folders,
            documents=documents,
        )


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------

class LegalHoldActive(DocumentControlError):
    category = ErrorCategory.POLICY
    code = "legal_hold_active"

    def __init__(self, document_id: Any, message: Optional[str] = None):
        super().__init__(
            message or f"Document {document_id} is under legal hold",
            document_id=document_id,
        )


class LegalHoldBlocksCheckout(LegalHoldActive):
    code = "legal_hold_blocks_checkout"

    def __init__(self, document_id: Any):
        super().__init__(
            document_id,
            f"Document {document_id} is under legal hold and cannot be checked out",
        )


class LegalHoldBlocksDeletion(LegalHoldActive):
    code = "legal_hold_blocks_deletion"

    def __init__(self, document_id: Any):
        super().__init__(
            document_id,
            f"Document {document_id} is under legal hold and cannot be deleted",
        )


class RetentionActive(DocumentControlError):
    category = ErrorCategory.POLICY
    code = "retention_active"

    def __init__(self, document_id: Any, expires_at: Any):
        super().__init__(
            f"Document {document_id} is retained until {expires_at}",
            document_id=document_id,
            retention_expires_at=expires_at,
        )


class AccessDenied(DocumentControlError):
    category = ErrorCategory.POLICY
    code = "access_denied"


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------

class NotFoundError(DocumentControlError):
    category = ErrorCategory.NOT_FOUND
    code = "not_found"
    entity = "record"

    def __init__(self, entity_id: Any):
        super().__init__(f"{self.entity} {entity_id} not found", id=entity_id)


class DocumentNotFound(NotFoundError):
    code = "document_not_found"
    entity = "Document"


class FolderNotFound(NotFoundError):
    code = "folder_not_found"
    entity = "Folder"


class ParentNotFound(FolderNotFound):
    code = "parent_not_found"
    entity = "Parent folder"


class DocumentTypeNotFound(NotFoundError):
    code = "document_type_not_found"
    entity = "Document type"


class RetentionPolicyNotFound(NotFoundError):
    code = "retention_policy_not_found"
    entity = "Retention policy"


class FolderTemplateNotFound(NotFoundError):
    code = "folder_template_not_found"
    entity = "Folder template"


class GrantNotFound(NotFoundError):
    code = "grant_not_found"
    entity = "Access grant"
