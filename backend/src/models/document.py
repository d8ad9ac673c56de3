"""Document SQLAlchemy model

Document is the metadata record of a controlled file. The file bytes live in
external blob storage; the row only keeps the opaque storage path, content
hash and size reported by that service.
"""

from uuid import uuid4

from sqlalchemy import (
    Column, Text, ForeignKey, BigInteger, Integer, Boolean, DateTime, Uuid,
    Index, UniqueConstraint,
)

from domain.document_control.access import Classification, LegacyAccessLevel
from domain.document_control.workflow_status import DocumentStatus
from .base import Base, PortableJSONB, utcnow


class Document(Base):
    """Controlled document metadata.

    Each document belongs to one company and exactly one folder. ``version``
    starts at 1 and only grows on content check-in. The checkout columns
    (is_checked_out, checked_out_by_user_id, checked_out_at,
    check_out_expires_at) are a projection of the checkout state machine and
    are written together. ``deleted_at`` marks a soft delete.
    """
    __tablename__ = "document"
    __table_args__ = (
        Index("ix_document_company_id", "company_id"),
        Index("ix_document_folder_id", "folder_id"),
        Index("ix_document_company_status", "company_id", "status"),
        UniqueConstraint("document_type_id", "document_number", name="uq_document_type_number"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    company_id = Column(Uuid, nullable=False)
    folder_id = Column(Uuid, ForeignKey("folder.id", ondelete="RESTRICT"), nullable=False)
    document_type_id = Column(Uuid, ForeignKey("document_type.id", ondelete="RESTRICT"), nullable=False)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    document_number = Column(Text, nullable=True)

    # File pointer (opaque to this service)
    file_type = Column(Text, nullable=True)
    file_size_bytes = Column(BigInteger, nullable=False, default=0)
    content_hash = Column(Text, nullable=True)
    storage_path = Column(Text, nullable=True)
    version = Column(Integer, nullable=False, default=1)

    # Workflow and access
    status = Column(Text, nullable=False, default=DocumentStatus.DRAFT.value)
    classification = Column(Text, nullable=False, default=Classification.INTERNAL.value)
    access_level = Column(Text, nullable=False, default=LegacyAccessLevel.PRIVATE.value)
    category = Column(Text, nullable=True)
    tags = Column(PortableJSONB, nullable=False, default=list)
    owned_by_user_id = Column(Uuid, nullable=True)
    uploaded_by_user_id = Column(Uuid, nullable=False)

    # Checkout lock
    is_checked_out = Column(Boolean, nullable=False, default=False)
    checked_out_by_user_id = Column(Uuid, nullable=True)
    checked_out_at = Column(DateTime, nullable=True)
    check_out_expires_at = Column(DateTime, nullable=True)

    # Retention and legal hold
    legal_hold = Column(Boolean, nullable=False, default=False)
    legal_hold_reason = Column(Text, nullable=True)
    legal_hold_set_at = Column(DateTime, nullable=True)
    legal_hold_set_by_user_id = Column(Uuid, nullable=True)
    retention_policy_id = Column(Uuid, ForeignKey("retention_policy.id", ondelete="SET NULL"), nullable=True)
    retention_expires_at = Column(DateTime, nullable=True)

    # Periodic review
    review_date = Column(DateTime, nullable=True)
    review_frequency_days = Column(Integer, nullable=True)
    last_reviewed_at = Column(DateTime, nullable=True)
    last_reviewed_by_user_id = Column(Uuid, nullable=True)

    # Approval
    approved_by_user_id = Column(Uuid, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    approval_notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    deleted_at = Column(DateTime, nullable=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def to_dict(self):
        """Convert document to dictionary representation"""
        def _iso(value):
            return value.isoformat() if value else None

        def _id(value):
            return str(value) if value else None

        return {
            "id": str(self.id),
            "company_id": str(self.company_id),
            "folder_id": str(self.folder_id),
            "document_type_id": str(self.document_type_id),
            "name": self.name,
            "description": self.description,
            "document_number": self.document_number,
            "file_type": self.file_type,
            "file_size_bytes": self.file_size_bytes,
            "content_hash": self.content_hash,
            "storage_path": self.storage_path,
            "version": self.version,
            "status": self.status,
            "classification": self.classification,
            "access_level": self.access_level,
            "category": self.category,
            "tags": list(self.tags or []),
            "owned_by_user_id": _id(self.owned_by_user_id),
            "uploaded_by_user_id": _id(self.uploaded_by_user_id),
            "is_checked_out": self.is_checked_out,
            "checked_out_by_user_id": _id(self.checked_out_by_user_id),
            "checked_out_at": _iso(self.checked_out_at),
            "check_out_expires_at": _iso(self.check_out_expires_at),
            "legal_hold": self.legal_hold,
            "legal_hold_reason": self.legal_hold_reason,
            "retention_policy_id": _id(self.retention_policy_id),
            "retention_expires_at": _iso(self.retention_expires_at),
            "review_date": _iso(self.review_date),
            "review_frequency_days": self.review_frequency_days,
            "last_reviewed_at": _iso(self.last_reviewed_at),
            "last_reviewed_by_user_id": _id(self.last_reviewed_by_user_id),
            "approved_by_user_id": _id(self.approved_by_user_id),
            "approved_at": _iso(self.approved_at),
            "approval_notes": self.approval_notes,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "deleted_at": _iso(self.deleted_at),
        }

    def __repr__(self):
        return f"<Document(id={self.id}, number='{self.document_number}', v{self.version})>"
