"""Document control domain rules - workflow, checkout, access, numbering, retention, folder templates

Pure logic with no database access. Services in the document_control
package load records, run these rules and persist the outcome.
"""

from .errors import (
    ErrorCategory,
    DocumentControlError,
    DocumentValidationError,
    InvalidTransition,
    DuplicateCode,
    Immutable,
    TemplateInactive,
    AlreadyCheckedOut,
    NotCheckedOutByYou,
    NotEmpty,
    LegalHoldActive,
    LegalHoldBlocksCheckout,
    LegalHoldBlocksDeletion,
    RetentionActive,
    AccessDenied,
    NotFoundError,
    DocumentNotFound,
    FolderNotFound,
    ParentNotFound,
    DocumentTypeNotFound,
    RetentionPolicyNotFound,
    FolderTemplateNotFound,
    GrantNotFound,
)
from .workflow_status import (
    DocumentStatus,
    ALLOWED_TRANSITIONS,
    can_transition,
    validate_transition,
    get_allowed_transitions,
    initial_status,
)
from .checkout_state import Available, CheckedOut, checkout_state_of, project, acquire, release
from .access import (
    Classification,
    LegacyAccessLevel,
    PermissionLevel,
    AccessSource,
    AccessDecision,
    evaluate_access,
)
from .numbering import format_document_number, number_for, sequence_scope_year
from .retention import (
    RetentionAction,
    RetentionTrigger,
    compute_retention_expiry,
    reference_date_for,
    assert_can_delete,
    assert_can_change_content,
)
from .folder_templates import TemplateScope, PlannedFolder, plan_folders, normalize_structure

__all__ = [
    "ErrorCategory",
    "DocumentControlError",
    "DocumentValidationError",
    "InvalidTransition",
    "DuplicateCode",
    "Immutable",
    "TemplateInactive",
    "AlreadyCheckedOut",
    "NotCheckedOutByYou",
    "NotEmpty",
    "LegalHoldActive",
    "LegalHoldBlocksCheckout",
    "LegalHoldBlocksDeletion",
    "RetentionActive",
    "AccessDenied",
    "NotFoundError",
    "DocumentNotFound",
    "FolderNotFound",
    "ParentNotFound",
    "DocumentTypeNotFound",
    "RetentionPolicyNotFound",
    "FolderTemplateNotFound",
    "GrantNotFound",
    "DocumentStatus",
    "ALLOWED_TRANSITIONS",
    "can_transition",
    "validate_transition",
    "get_allowed_transitions",
    "initial_status",
    "Available",
    "CheckedOut",
    "checkout_state_of",
    "project",
    "acquire",
    "release",
    "Classification",
    "LegacyAccessLevel",
    "PermissionLevel",
    "AccessSource",
    "AccessDecision",
    "evaluate_access",
    "format_document_number",
    "number_for",
    "sequence_scope_year",
    "RetentionAction",
    "RetentionTrigger",
    "compute_retention_expiry",
    "reference_date_for",
    "assert_can_delete",
    "assert_can_change_content",
    "TemplateScope",
    "PlannedFolder",
    "plan_folders",
    "normalize_structure",
]
