"""Document store: creation, metadata, soft delete, versions and review.

Creation runs in one transaction: folder and type checks, number
allocation, the document row and its first version record either all land
or none do. Content never changes here; new content arrives through
checkout and checkin (see checkout.py).
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from audit.service import log_audit_event
from auth.principal import Principal
from domain.document_control import (
    Available,
    DocumentStatus,
    DocumentValidationError,
    checkout_state_of,
    initial_status,
    project,
)
from models.base import utcnow
from models.checkout_lease import CheckoutLease
from models.document import Document
from models.document_version import DocumentVersion
from observability.metrics import documents_created_total
from .catalog import DocumentTypeCatalog, extension_of
from .folders import FolderHierarchy
from .guards import (
    assert_not_locked_by_other,
    load_document,
    require_edit,
    require_reviewer,
    require_view,
    visible_only,
)
from .retention import RetentionEngine
from .schemas import DocumentCreate, DocumentUpdate
from .sequence import SequenceAllocator

logger = logging.getLogger(__name__)


def normalize_tags(tags: List[str]) -> List[str]:
    """Strip, drop empties and duplicates, keep first-seen order."""
    seen = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


class DocumentStore:
    """Documents of one company."""

    def __init__(self, db: Session, company_id: UUID):
        self.db = db
        self.company_id = company_id
        self.catalog = DocumentTypeCatalog(db, company_id)
        self.folders = FolderHierarchy(db, company_id)
        self.retention = RetentionEngine(db, company_id)

    def create(
        self,
        principal: Principal,
        data: DocumentCreate,
        now: Optional[datetime] = None
    ) -> Document:
        """Create a document record and its first version.

        Raises:
            FolderNotFound: If the folder does not exist in this company
            DocumentValidationError: If the type is unknown or inactive, the
                file extension is not accepted, or the start status is not allowed
        """
        now = now or utcnow()
        folder = self.folders.get(data.folder_id)
        doc_type = self.catalog.require_active(data.document_type_id, data.document_type_code)

        file_type = extension_of(data.file_type) if data.file_type else None
        if file_type is None and "." in data.name:
            file_type = extension_of(data.name)
        if not DocumentTypeCatalog.is_extension_allowed(doc_type, file_type):
            raise DocumentValidationError(
                f"File type '{file_type or ''}' is not allowed for document type {doc_type.code}",
                file_type=file_type,
                allowed_extensions=", ".join(doc_type.allowed_extensions or []),
            )

        status = initial_status(doc_type.requires_approval, data.status)

        document_number = None
        if doc_type.auto_number_enabled:
            _, document_number = SequenceAllocator(self.db).allocate(doc_type, now)

        review_date = data.review_date
        if review_date is None and data.review_frequency_days:
            review_date = now + timedelta(days=data.review_frequency_days)

        document = Document(
            company_id=self.company_id,
            folder_id=folder.id,
            document_type_id=doc_type.id,
            name=data.name.strip(),
            description=data.description,
            document_number=document_number,
            file_type=file_type,
            file_size_bytes=data.file_size_bytes,
            content_hash=data.content_hash,
            storage_path=data.storage_path,
            version=1,
            status=status.value,
            classification=data.classification.value,
            access_level=data.access_level.value,
            category=data.category,
            tags=normalize_tags(data.tags),
            owned_by_user_id=data.owned_by_user_id or principal.user_id,
            uploaded_by_user_id=principal.user_id,
            review_date=review_date,
            review_frequency_days=data.review_frequency_days,
            created_at=now,
            updated_at=now,
            **project(Available()),
        )
        if status in (DocumentStatus.APPROVED, DocumentStatus.PUBLISHED):
            # Types without approval may start approved; the creator stands as approver
            document.approved_by_user_id = principal.user_id
            document.approved_at = now

        self.db.add(document)
        self.db.flush()

        self.db.add(DocumentVersion(
            document_id=document.id,
            version_number=1,
            content_hash=document.content_hash,
            storage_path=document.storage_path,
            file_size_bytes=document.file_size_bytes,
            comment="Initial version",
            created_by_user_id=principal.user_id,
            created_at=now,
        ))
        self.db.flush()

        documents_created_total.labels(numbered=str(document_number is not None).lower()).inc()
        log_audit_event(
            db=self.db,
            company_id=self.company_id,
            action="DOCUMENT_CREATED",
            actor_id=principal.user_id,
            entity_type="document",
            entity_id=document.id,
            metadata={
                "document_number": document_number,
                "document_type": doc_type.code,
                "status": document.status,
            },
        )
        logger.info(
            f"Created document {document_number or document.id}",
            extra={
                "company_id": str(self.company_id),
                "user_id": str(principal.user_id),
                "document_id": str(document.id),
            },
        )
        return document

    def get(self, principal: Principal, document_id: UUID) -> Document:
        """Fetch a document the principal may view.

        Raises:
            DocumentNotFound: If unknown, in another company or deleted
            AccessDenied: If the principal may not view it
        """
        document = load_document(self.db, self.company_id, document_id)
        require_view(self.db, principal, document)
        return document

    def list_folder(self, principal: Principal, folder_id: UUID) -> List[Document]:
        """Live documents directly in a folder that the principal may view."""
        self.folders.get(folder_id)
        documents = self.db.query(Document).filter(
            Document.company_id == self.company_id,
            Document.folder_id == folder_id,
            Document.deleted_at.is_(None),
        ).order_by(Document.name).all()
        return visible_only(self.db, principal, documents)

    def update_metadata(
        self,
        principal: Principal,
        document_id: UUID,
        data: DocumentUpdate,
        now: Optional[datetime] = None
    ) -> Document:
        """Patch metadata fields. Allowed under legal hold.

        Raises:
            AccessDenied: Without edit permission
            AlreadyCheckedOut: While another user holds the checkout
        """
        now = now or utcnow()
        document = load_document(self.db, self.company_id, document_id)
        require_edit(self.db, principal, document)
        assert_not_locked_by_other(document, principal, now)

        patch = data.model_dump(exclude_unset=True)
        if "name" in patch:
            if not (patch["name"] or "").strip():
                raise DocumentValidationError("Document name cannot be empty")
            document.name = patch["name"].strip()
        if "description" in patch:
            document.description = patch["description"]
        if "category" in patch:
            document.category = patch["category"]
        if "tags" in patch:
            document.tags = normalize_tags(patch["tags"] or [])
        if patch.get("classification") is not None:
            document.classification = patch["classification"].value
        if patch.get("access_level") is not None:
            document.access_level = patch["access_level"].value
        if "review_date" in patch:
            document.review_date = patch["review_date"]
        if "review_frequency_days" in patch:
            document.review_frequency_days = patch["review_frequency_days"]
        document.updated_at = now
        self.db.flush()

        log_audit_event(
            db=self.db,
            company_id=self.company_id,
            action="DOCUMENT_UPDATED",
            actor_id=principal.user_id,
            entity_type="document",
            entity_id=document.id,
            metadata={"fields": sorted(patch.keys())},
        )
        logger.info(
            f"Updated metadata of document {document.id}",
            extra={
                "company_id": str(self.company_id),
                "user_id": str(principal.user_id),
                "document_id": str(document.id),
            },
        )
        return document

    def delete(
        self,
        principal: Principal,
        document_id: UUID,
        admin_override: bool = False,
        now: Optional[datetime] = None
    ) -> Document:
        """Soft-delete a document.

        The document number stays consumed. A checkout held by the caller is
        released with it.

        Raises:
            AccessDenied: Without edit permission
            AlreadyCheckedOut: While another user holds the checkout
            LegalHoldBlocksDeletion: Under legal hold
            RetentionActive: Before retention expiry, unless admin_override
        """
        now = now or utcnow()
        document = load_document(self.db, self.company_id, document_id)
        require_edit(self.db, principal, document)
        assert_not_locked_by_other(document, principal, now)
        self.retention.assert_can_delete(document, now, admin_override=admin_override)

        if checkout_state_of(document).is_held_by(principal.user_id, now):
            for column, value in project(Available()).items():
                setattr(document, column, value)
        self.db.query(CheckoutLease).filter(
            CheckoutLease.document_id == document.id,
            CheckoutLease.released_at.is_(None),
        ).update({"released_at": now, "release_reason": "deleted"})

        document.deleted_at = now
        document.updated_at = now
        self.db.flush()

        log_audit_event(
            db=self.db,
            company_id=self.company_id,
            action="DOCUMENT_DELETED",
            actor_id=principal.user_id,
            entity_type="document",
            entity_id=document.id,
            metadata={
                "document_number": document.document_number,
                "admin_override": admin_override,
            },
        )
        logger.info(
            f"Deleted document {document.document_number or document.id}",
            extra={
                "company_id": str(self.company_id),
                "user_id": str(principal.user_id),
                "document_id": str(document.id),
            },
        )
        return document

    def versions(self, principal: Principal, document_id: UUID) -> List[DocumentVersion]:
        """Recorded version history, oldest first."""
        document = self.get(principal, document_id)
        return self.db.query(DocumentVersion).filter(
            DocumentVersion.document_id == document.id
        ).order_by(DocumentVersion.version_number).all()

    def mark_reviewed(
        self,
        principal: Principal,
        document_id: UUID,
        now: Optional[datetime] = None
    ) -> Document:
        """Record a periodic review and schedule the next one."""
        now = now or utcnow()
        document = load_document(self.db, self.company_id, document_id)
        require_reviewer(self.db, principal, document)

        document.last_reviewed_at = now
        document.last_reviewed_by_user_id = principal.user_id
        if document.review_frequency_days:
            document.review_date = now + timedelta(days=document.review_frequency_days)
        self.db.flush()

        log_audit_event(
            db=self.db,
            company_id=self.company_id,
            action="DOCUMENT_REVIEWED",
            actor_id=principal.user_id,
            entity_type="document",
            entity_id=document.id,
            metadata={"next_review_date": document.review_date.isoformat() if document.review_date else None},
        )
        return document

    def needs_review(self, principal: Principal, now: Optional[datetime] = None) -> List[Document]:
        """Live documents whose review date has passed."""
        now = now or utcnow()
        documents = self.db.query(Document).filter(
            Document.company_id == self.company_id,
            Document.deleted_at.is_(None),
            Document.review_date.isnot(None),
            Document.review_date <= now,
        ).order_by(Document.review_date).all()
        return visible_only(self.db, principal, documents)

    def checked_out(
        self,
        principal: Principal,
        user_id: Optional[UUID] = None,
        now: Optional[datetime] = None
    ) -> List[Document]:
        """Documents under an unexpired checkout, optionally held by user_id."""
        now = now or utcnow()
        query = self.db.query(Document).filter(
            Document.company_id == self.company_id,
            Document.deleted_at.is_(None),
            Document.is_checked_out.is_(True),
            Document.check_out_expires_at > now,
        )
        if user_id is not None:
            query = query.filter(Document.checked_out_by_user_id == user_id)
        documents = query.order_by(Document.check_out_expires_at).all()
        return visible_only(self.db, principal, documents)

    def checked_out_by(
        self,
        principal: Principal,
        user_id: UUID,
        now: Optional[datetime] = None
    ) -> List[Document]:
        return self.checked_out(principal, user_id=user_id, now=now)
