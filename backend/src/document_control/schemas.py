"""Pydantic schemas for the document control API.

Request schemas double as service inputs: services read only the fields
that were explicitly set (``model_dump(exclude_unset=True)``) for patches.
"""

from datetime import datetime, timezone
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from domain.document_control import (
    Classification,
    DocumentStatus,
    LegacyAccessLevel,
    PermissionLevel,
    RetentionAction,
    RetentionTrigger,
    TemplateScope,
)
from domain.document_control.numbering import MIN_DIGITS, MAX_DIGITS


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored as naive UTC; convert aware input once here."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# ---------------------------------------------------------------------------
# Document types
# ---------------------------------------------------------------------------

class DocumentTypeCreate(BaseModel):
    """Schema for creating a document type"""
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    allowed_extensions: List[str] = Field(default_factory=list)
    auto_number_enabled: bool = False
    auto_number_prefix: Optional[str] = Field(None, max_length=20)
    auto_number_digits: int = Field(
        default=4,
        ge=MIN_DIGITS,
        le=MAX_DIGITS,
        description="Zero-padded counter width (1-10)"
    )
    auto_number_includes_year: bool = False
    requires_approval: bool = True


class DocumentTypeUpdate(BaseModel):
    """Schema for patching a document type. Omitted fields stay unchanged."""
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    allowed_extensions: Optional[List[str]] = None
    auto_number_enabled: Optional[bool] = None
    auto_number_prefix: Optional[str] = Field(None, max_length=20)
    auto_number_digits: Optional[int] = Field(None, ge=MIN_DIGITS, le=MAX_DIGITS)
    auto_number_includes_year: Optional[bool] = None
    requires_approval: Optional[bool] = None


class DocumentTypeResponse(BaseModel):
    id: UUID
    company_id: UUID
    code: str
    name: str
    description: Optional[str] = None
    allowed_extensions: List[str]
    auto_number_enabled: bool
    auto_number_prefix: Optional[str] = None
    auto_number_digits: int
    auto_number_includes_year: bool
    requires_approval: bool
    is_active: bool

    class Config:
        from_attributes = True


class NextNumberResponse(BaseModel):
    document_type_id: UUID
    next_number: str


# ---------------------------------------------------------------------------
# Folders
# ---------------------------------------------------------------------------

class FolderCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    parent_folder_id: Optional[UUID] = None
    description: Optional[str] = None


class FolderRename(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class FolderResponse(BaseModel):
    id: UUID
    parent_folder_id: Optional[UUID] = None
    name: str
    path: str
    description: Optional[str] = None
    document_count: int = 0

    class Config:
        from_attributes = True


class FolderTreeNode(BaseModel):
    id: UUID
    name: str
    path: str
    document_count: int
    child_folders: List["FolderTreeNode"] = Field(default_factory=list)


class FolderDeleteResponse(BaseModel):
    folders_deleted: int
    documents_deleted: int


# ---------------------------------------------------------------------------
# Folder templates
# ---------------------------------------------------------------------------

class FolderTemplateNode(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    children: List["FolderTemplateNode"] = Field(default_factory=list)


class FolderTemplateStructure(BaseModel):
    folders: List[FolderTemplateNode] = Field(default_factory=list)


class FolderTemplateCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    applies_to_scope: TemplateScope = TemplateScope.PROJECT
    structure: FolderTemplateStructure = Field(default_factory=FolderTemplateStructure)
    is_default: bool = False
    is_active: bool = True


class FolderTemplateUpdate(BaseModel):
    """Patch for a template. The scope is fixed once the template exists."""
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    structure: Optional[FolderTemplateStructure] = None
    is_default: Optional[bool] = None
    is_active: Optional[bool] = None


class FolderTemplateResponse(BaseModel):
    id: UUID
    code: str
    name: str
    description: Optional[str] = None
    applies_to_scope: TemplateScope
    structure: FolderTemplateStructure
    is_default: bool
    is_active: bool

    class Config:
        from_attributes = True


class FolderTemplateApplicationResponse(BaseModel):
    id: UUID
    template_id: UUID
    root_folder_id: Optional[UUID] = None
    root_path: str
    folders_created: int
    applied_by_user_id: Optional[UUID] = None
    applied_at: datetime

    class Config:
        from_attributes = True


class FolderFromTemplate(BaseModel):
    """New root folder named ``name`` with the template's structure beneath it."""
    template_id: UUID
    name: str = Field(..., min_length=1, max_length=255)
    parent_folder_id: Optional[UUID] = None
    description: Optional[str] = None


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

class DocumentCreate(BaseModel):
    """Metadata for a new document.

    The file itself is uploaded to blob storage beforehand; only the pointer
    the storage service returned (path, hash, size) is sent here. Either
    document_type_id or document_type_code identifies the type.
    """
    name: str = Field(..., min_length=1, max_length=500)
    folder_id: UUID
    document_type_id: Optional[UUID] = None
    document_type_code: Optional[str] = None
    description: Optional[str] = None
    file_type: Optional[str] = Field(None, max_length=20)
    file_size_bytes: int = Field(default=0, ge=0)
    content_hash: Optional[str] = None
    storage_path: Optional[str] = None
    classification: Classification = Classification.INTERNAL
    access_level: LegacyAccessLevel = LegacyAccessLevel.PRIVATE
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    owned_by_user_id: Optional[UUID] = None
    review_date: Optional[datetime] = None
    review_frequency_days: Optional[int] = Field(None, ge=1)
    status: Optional[DocumentStatus] = Field(
        None,
        description="Start state; only types without approval may start at approved or published"
    )

    @field_validator('review_date')
    @classmethod
    def review_date_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _naive_utc(v)

    @model_validator(mode="after")
    def check_type_reference(self) -> "DocumentCreate":
        if self.document_type_id is None and not self.document_type_code:
            raise ValueError("document_type_id or document_type_code is required")
        return self


class DocumentUpdate(BaseModel):
    """Metadata-only patch. Content changes go through checkout/checkin."""
    name: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    classification: Optional[Classification] = None
    access_level: Optional[LegacyAccessLevel] = None
    review_date: Optional[datetime] = None
    review_frequency_days: Optional[int] = Field(None, ge=1)

    @field_validator('review_date')
    @classmethod
    def review_date_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _naive_utc(v)


class DocumentResponse(BaseModel):
    id: UUID
    company_id: UUID
    folder_id: UUID
    document_type_id: UUID
    name: str
    description: Optional[str] = None
    document_number: Optional[str] = None
    file_type: Optional[str] = None
    file_size_bytes: int
    content_hash: Optional[str] = None
    storage_path: Optional[str] = None
    version: int
    status: DocumentStatus
    classification: Classification
    access_level: LegacyAccessLevel
    category: Optional[str] = None
    tags: List[str]
    owned_by_user_id: Optional[UUID] = None
    uploaded_by_user_id: UUID
    is_checked_out: bool
    checked_out_by_user_id: Optional[UUID] = None
    checked_out_at: Optional[datetime] = None
    check_out_expires_at: Optional[datetime] = None
    legal_hold: bool
    legal_hold_reason: Optional[str] = None
    retention_policy_id: Optional[UUID] = None
    retention_expires_at: Optional[datetime] = None
    review_date: Optional[datetime] = None
    review_frequency_days: Optional[int] = None
    last_reviewed_at: Optional[datetime] = None
    last_reviewed_by_user_id: Optional[UUID] = None
    approved_by_user_id: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    approval_notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DocumentVersionResponse(BaseModel):
    version_number: int
    content_hash: Optional[str] = None
    storage_path: Optional[str] = None
    file_size_bytes: int
    comment: Optional[str] = None
    created_by_user_id: UUID
    created_at: datetime

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------

class CheckoutRequest(BaseModel):
    duration_hours: Optional[int] = Field(None, ge=1, description="Lease length; capped by configuration")


class NewContent(BaseModel):
    """Pointer to a new file revision already stored in blob storage."""
    storage_path: str = Field(..., min_length=1)
    content_hash: str = Field(..., min_length=1)
    file_size_bytes: int = Field(..., ge=0)
    file_type: Optional[str] = Field(None, max_length=20)


class CheckinRequest(BaseModel):
    content: Optional[NewContent] = None
    comment: Optional[str] = None


class ForceCancelRequest(BaseModel):
    reason: str = Field(..., min_length=1)

    @field_validator('reason')
    @classmethod
    def reason_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("A reason is required to force-cancel a checkout")
        return v.strip()


class CheckoutStatusResponse(BaseModel):
    document_id: UUID
    is_checked_out: bool
    checked_out_by_user_id: Optional[UUID] = None
    checked_out_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    is_expired: bool = False
    is_mine: bool = False


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------

class WorkflowNotes(BaseModel):
    notes: Optional[str] = None


# ---------------------------------------------------------------------------
# Access grants
# ---------------------------------------------------------------------------

class GrantRequest(BaseModel):
    """Grant to exactly one user or one department."""
    user_id: Optional[UUID] = None
    department_id: Optional[UUID] = None
    access_level: PermissionLevel

    @field_validator('access_level')
    @classmethod
    def grantable_level(cls, v: PermissionLevel) -> PermissionLevel:
        if v == PermissionLevel.NONE:
            raise ValueError("Grants carry view or edit")
        return v

    @model_validator(mode="after")
    def exactly_one_principal(self) -> "GrantRequest":
        if (self.user_id is None) == (self.department_id is None):
            raise ValueError("Set exactly one of user_id or department_id")
        return self


class GrantResponse(BaseModel):
    id: UUID
    document_id: UUID
    user_id: Optional[UUID] = None
    department_id: Optional[UUID] = None
    access_level: PermissionLevel
    granted_by_user_id: Optional[UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class EffectivePermissionResponse(BaseModel):
    document_id: UUID
    level: PermissionLevel
    source: str
    can_view: bool
    can_edit: bool


# ---------------------------------------------------------------------------
# Retention
# ---------------------------------------------------------------------------

class RetentionPolicyCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    retention_period_days: int = Field(..., ge=1, description="Days from the trigger date")
    action: RetentionAction = RetentionAction.ARCHIVE
    trigger_on: RetentionTrigger = RetentionTrigger.CREATED


class RetentionPolicyUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    retention_period_days: Optional[int] = Field(None, ge=1)
    action: Optional[RetentionAction] = None
    trigger_on: Optional[RetentionTrigger] = None


class RetentionPolicyResponse(BaseModel):
    id: UUID
    code: str
    name: str
    description: Optional[str] = None
    retention_period_days: int
    action: RetentionAction
    trigger_on: RetentionTrigger
    is_active: bool

    class Config:
        from_attributes = True


class ApplyPolicyRequest(BaseModel):
    policy_id: UUID


class ExtendRetentionRequest(BaseModel):
    new_expiry: datetime

    @field_validator('new_expiry')
    @classmethod
    def new_expiry_utc(cls, v: datetime) -> datetime:
        return _naive_utc(v)


class LegalHoldRequest(BaseModel):
    on: bool
    reason: Optional[str] = None


class DispositionCandidateResponse(BaseModel):
    document_id: UUID
    name: str
    document_number: Optional[str] = None
    retention_expires_at: datetime
    action: Optional[RetentionAction] = None
