"""Approval workflow over documents.

Status changes are written with a conditional UPDATE on the status the
caller saw, so two reviewers acting at once cannot both move the same
document: the second one finds the status changed and gets
InvalidTransition.

Content check-in never changes the status. An approved or published
document that receives new content keeps its status.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from audit.service import log_audit_event
from auth.principal import Principal
from domain.document_control import DocumentStatus, InvalidTransition, validate_transition
from models.base import utcnow
from models.document import Document
from observability.metrics import workflow_transitions_total
from .guards import (
    assert_not_locked_by_other,
    load_document,
    require_edit,
    require_reviewer,
)

logger = logging.getLogger(__name__)


class ApprovalWorkflow:
    """Workflow transitions on the documents of one company."""

    def __init__(self, db: Session, company_id: UUID):
        self.db = db
        self.company_id = company_id

    def submit_for_review(self, principal: Principal, document_id: UUID, now: Optional[datetime] = None) -> Document:
        """draft -> pending_review. Needs edit permission."""
        now = now or utcnow()
        document = load_document(self.db, self.company_id, document_id)
        require_edit(self.db, principal, document)
        assert_not_locked_by_other(document, principal, now)
        return self._move(principal, document, DocumentStatus.PENDING_REVIEW, "DOCUMENT_SUBMITTED", {})

    def approve(
        self,
        principal: Principal,
        document_id: UUID,
        notes: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Document:
        """pending_review -> approved, stamping approver, time and notes."""
        now = now or utcnow()
        document = load_document(self.db, self.company_id, document_id)
        require_reviewer(self.db, principal, document)
        return self._move(
            principal,
            document,
            DocumentStatus.APPROVED,
            "DOCUMENT_APPROVED",
            {
                "approved_by_user_id": principal.user_id,
                "approved_at": now,
                "approval_notes": notes,
            },
        )

    def reject(
        self,
        principal: Principal,
        document_id: UUID,
        notes: Optional[str] = None
    ) -> Document:
        """pending_review -> rejected -> draft, keeping the reviewer's notes.

        The document lands back in draft so it can be reworked and submitted
        again.
        """
        document = load_document(self.db, self.company_id, document_id)
        require_reviewer(self.db, principal, document)

        current = DocumentStatus(document.status)
        validate_transition(current, DocumentStatus.REJECTED)
        validate_transition(DocumentStatus.REJECTED, DocumentStatus.DRAFT)
        return self._move(
            principal,
            document,
            DocumentStatus.DRAFT,
            "DOCUMENT_REJECTED",
            {
                "approved_by_user_id": None,
                "approved_at": None,
                "approval_notes": notes,
            },
            validated=True,
        )

    def publish(self, principal: Principal, document_id: UUID, now: Optional[datetime] = None) -> Document:
        """approved -> published."""
        now = now or utcnow()
        document = load_document(self.db, self.company_id, document_id)
        require_reviewer(self.db, principal, document)
        assert_not_locked_by_other(document, principal, now)
        return self._move(principal, document, DocumentStatus.PUBLISHED, "DOCUMENT_PUBLISHED", {})

    def cancel(self, principal: Principal, document_id: UUID, now: Optional[datetime] = None) -> Document:
        """Any non-terminal status -> cancelled."""
        now = now or utcnow()
        document = load_document(self.db, self.company_id, document_id)
        require_edit(self.db, principal, document)
        assert_not_locked_by_other(document, principal, now)
        return self._move(principal, document, DocumentStatus.CANCELLED, "DOCUMENT_CANCELLED", {})

    def _move(
        self,
        principal: Principal,
        document: Document,
        target: DocumentStatus,
        action: str,
        values: Dict[str, Any],
        validated: bool = False
    ) -> Document:
        current = DocumentStatus(document.status)
        if not validated:
            validate_transition(current, target)

        self.db.flush()
        result = self.db.execute(
            update(Document)
            .where(Document.id == document.id, Document.status == current.value)
            .values(status=target.value, **values)
            .execution_options(synchronize_session=False)
        )
        self.db.refresh(document)
        if result.rowcount != 1:
            raise InvalidTransition(
                f"Document {document.id} changed status concurrently "
                f"(expected {current.value}, now {document.status})",
                current_status=document.status,
                requested_status=target.value,
            )

        workflow_transitions_total.labels(from_status=current.value, to_status=target.value).inc()
        log_audit_event(
            db=self.db,
            company_id=self.company_id,
            action=action,
            actor_id=principal.user_id,
            entity_type="document",
            entity_id=document.id,
            metadata={
                "from_status": current.value,
                "to_status": target.value,
                "notes": values.get("approval_notes"),
            },
        )
        logger.info(
            f"Document {document.id} moved {current.value} -> {target.value}",
            extra={
                "company_id": str(self.company_id),
                "user_id": str(principal.user_id),
                "document_id": str(document.id),
            },
        )
        return document
