"""Checkout locking over documents.

The lock itself lives on the document row (four columns written together
from one CheckedOut/Available value). Taking the lock is a conditional
UPDATE that only matches while the row is free for the caller: not held,
held by the caller, or held under an expired lease. If the UPDATE touches
no row, someone else won the race.

CheckoutLease rows keep the history. When an expired lease is taken over,
the previous holder's lease is marked superseded but left open, so that
holder can still finish with one grace check-in. A grace check-in may add
content but never touches the current holder's lock.

Only the most recently superseded lease of a document is eligible for
grace. A takeover closes older superseded leases ("lapsed"), and a user who
takes a fresh checkout gives up whatever superseded lease they still had
("replaced"). Storing content on either check-in path needs edit
permission at the time of the check-in.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from audit.service import log_audit_event
from auth.principal import Principal
from config import Settings, get_settings
from domain.document_control import (
    AlreadyCheckedOut,
    CheckedOut,
    DocumentValidationError,
    LegalHoldBlocksCheckout,
    NotCheckedOutByYou,
    acquire,
    checkout_state_of,
    project,
    release,
)
from models.base import utcnow
from models.checkout_lease import CheckoutLease
from models.document import Document
from models.document_version import DocumentVersion
from observability.metrics import checkout_operations_total, policy_refusals_total
from .catalog import DocumentTypeCatalog, extension_of
from .guards import load_document, require_edit, require_management, require_view
from .retention import RetentionEngine
from .schemas import NewContent

logger = logging.getLogger(__name__)


@dataclass
class CheckoutStatus:
    document_id: UUID
    is_checked_out: bool
    checked_out_by_user_id: Optional[UUID] = None
    checked_out_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    is_expired: bool = False
    is_mine: bool = False


class CheckoutManager:
    """Exclusive edit leases on the documents of one company."""

    def __init__(self, db: Session, company_id: UUID, settings: Optional[Settings] = None):
        self.db = db
        self.company_id = company_id
        self.settings = settings or get_settings()
        self.retention = RetentionEngine(db, company_id)

    def lease_for(self, duration_hours: Optional[int]) -> timedelta:
        """Lease length for a request, defaulted and capped by configuration."""
        hours = duration_hours if duration_hours is not None else self.settings.CHECKOUT_DEFAULT_HOURS
        if hours < 1:
            raise DocumentValidationError(
                "Checkout duration must be at least 1 hour",
                duration_hours=duration_hours,
            )
        return timedelta(hours=min(hours, self.settings.CHECKOUT_MAX_HOURS))

    def checkout(
        self,
        principal: Principal,
        document_id: UUID,
        duration_hours: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> Document:
        """Take or renew the checkout of a document.

        Raises:
            AccessDenied: Without edit permission
            LegalHoldBlocksCheckout: Under legal hold
            AlreadyCheckedOut: While another user holds an unexpired lease
        """
        now = now or utcnow()
        lease = self.lease_for(duration_hours)
        document = load_document(self.db, self.company_id, document_id)
        require_edit(self.db, principal, document)
        if document.legal_hold:
            self._refuse(document, principal, "legal_hold_blocks_checkout")
            raise LegalHoldBlocksCheckout(document.id)

        previous = checkout_state_of(document)
        new_state = acquire(previous, document.id, principal.user_id, now, lease)

        self.db.flush()
        result = self.db.execute(
            update(Document)
            .where(
                Document.id == document.id,
                Document.company_id == self.company_id,
                Document.deleted_at.is_(None),
                Document.legal_hold.is_(False),
                or_(
                    Document.is_checked_out.is_(False),
                    Document.checked_out_by_user_id == principal.user_id,
                    Document.check_out_expires_at <= now,
                ),
            )
            .values(**project(new_state))
            .execution_options(synchronize_session=False)
        )
        self.db.refresh(document)

        if result.rowcount != 1:
            if document.legal_hold:
                raise LegalHoldBlocksCheckout(document.id)
            self._refuse(document, principal, "already_checked_out")
            raise AlreadyCheckedOut(
                document.id,
                document.checked_out_by_user_id,
                document.check_out_expires_at,
            )

        self._record_lease(document, previous, principal.user_id, now, new_state.expires_at)
        checkout_operations_total.labels(operation="checkout", outcome="ok").inc()

        log_audit_event(
            db=self.db,
            company_id=self.company_id,
            action="DOCUMENT_CHECKED_OUT",
            actor_id=principal.user_id,
            entity_type="document",
            entity_id=document.id,
            metadata={
                "expires_at": new_state.expires_at.isoformat(),
                "renewed": previous.is_held_by(principal.user_id, now),
            },
        )
        logger.info(
            f"Checked out document {document.id} until {new_state.expires_at.isoformat()}",
            extra={
                "company_id": str(self.company_id),
                "user_id": str(principal.user_id),
                "document_id": str(document.id),
            },
        )
        return document

    def checkin(
        self,
        principal: Principal,
        document_id: UUID,
        content: Optional[NewContent] = None,
        comment: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Document:
        """Release the checkout, optionally storing new content as the next version.

        The current holder may check in even after the lease expired. A
        previous holder whose expired lease was taken over gets one grace
        check-in that records content but leaves the new holder's lock alone.

        Raises:
            NotCheckedOutByYou: If the caller holds neither the lock nor the
                most recently superseded lease
            AccessDenied: If content is supplied without edit permission
            LegalHoldActive: If content is supplied under legal hold
        """
        now = now or utcnow()
        document = load_document(self.db, self.company_id, document_id)
        state = checkout_state_of(document)
        user_id = principal.user_id

        if state.is_held_by(user_id, now):
            grace = False
            if content is not None:
                require_edit(self.db, principal, document)
                self.retention.assert_can_change_content(document)
            self._release_lock(document, user_id, now)
            self._close_lease(document.id, user_id, now, "checkin")
        else:
            superseded = self._superseded_lease(document.id, user_id)
            if superseded is None:
                self._refuse(document, principal, "not_checked_out_by_you")
                holder = state.holder_id if isinstance(state, CheckedOut) else None
                raise NotCheckedOutByYou(document.id, holder)
            grace = True
            if content is not None:
                require_edit(self.db, principal, document)
                self.retention.assert_can_change_content(document)
            superseded.released_at = now
            superseded.release_reason = "grace_checkin"

        if content is not None:
            self._store_content(document, principal, content, comment, now)
        self.db.flush()
        checkout_operations_total.labels(operation="checkin", outcome="grace" if grace else "ok").inc()

        log_audit_event(
            db=self.db,
            company_id=self.company_id,
            action="DOCUMENT_CHECKED_IN",
            actor_id=user_id,
            entity_type="document",
            entity_id=document.id,
            metadata={
                "version": document.version,
                "new_content": content is not None,
                "grace": grace,
            },
        )
        logger.info(
            f"Checked in document {document.id} at version {document.version}",
            extra={
                "company_id": str(self.company_id),
                "user_id": str(user_id),
                "document_id": str(document.id),
            },
        )
        return document

    def cancel(self, principal: Principal, document_id: UUID, now: Optional[datetime] = None) -> Document:
        """Holder gives the lock back without new content."""
        now = now or utcnow()
        document = load_document(self.db, self.company_id, document_id)
        state = checkout_state_of(document)
        if not state.is_held_by(principal.user_id, now):
            self._refuse(document, principal, "not_checked_out_by_you")
        release(state, document.id, principal.user_id)  # raises unless held by the caller

        self._release_lock(document, principal.user_id, now)
        self._close_lease(document.id, principal.user_id, now, "cancel")
        self.db.flush()
        checkout_operations_total.labels(operation="cancel", outcome="ok").inc()

        log_audit_event(
            db=self.db,
            company_id=self.company_id,
            action="CHECKOUT_CANCELLED",
            actor_id=principal.user_id,
            entity_type="document",
            entity_id=document.id,
        )
        return document

    def force_cancel(
        self,
        principal: Principal,
        document_id: UUID,
        reason: str,
        now: Optional[datetime] = None
    ) -> Document:
        """Management breaks someone else's checkout.

        The holder's lease is closed, not superseded, so no grace check-in
        follows a forced release.

        Raises:
            AccessDenied: Without a management role
            DocumentValidationError: Without a reason, or if nobody holds the lock
        """
        now = now or utcnow()
        require_management(principal, "Force-cancelling a checkout")
        if not reason or not reason.strip():
            raise DocumentValidationError("A reason is required to force-cancel a checkout")

        document = load_document(self.db, self.company_id, document_id)
        state = checkout_state_of(document)
        if not isinstance(state, CheckedOut):
            raise DocumentValidationError(
                f"Document {document.id} is not checked out",
                document_id=document.id,
            )

        self._release_lock(document, state.holder_id, now)
        self._close_lease(document.id, state.holder_id, now, "force_cancel")
        self.db.flush()
        checkout_operations_total.labels(operation="force_cancel", outcome="ok").inc()

        log_audit_event(
            db=self.db,
            company_id=self.company_id,
            action="CHECKOUT_FORCE_CANCELLED",
            actor_id=principal.user_id,
            entity_type="document",
            entity_id=document.id,
            metadata={"previous_holder": str(state.holder_id), "reason": reason.strip()},
        )
        logger.warning(
            f"Checkout of document {document.id} force-cancelled",
            extra={
                "company_id": str(self.company_id),
                "user_id": str(principal.user_id),
                "document_id": str(document.id),
            },
        )
        return document

    def status(self, principal: Principal, document_id: UUID, now: Optional[datetime] = None) -> CheckoutStatus:
        now = now or utcnow()
        document = load_document(self.db, self.company_id, document_id)
        require_view(self.db, principal, document)
        state = checkout_state_of(document)

        if not isinstance(state, CheckedOut):
            return CheckoutStatus(document_id=document.id, is_checked_out=False)
        return CheckoutStatus(
            document_id=document.id,
            is_checked_out=True,
            checked_out_by_user_id=state.holder_id,
            checked_out_at=state.checked_out_at,
            expires_at=state.expires_at,
            is_expired=state.is_expired(now),
            is_mine=state.holder_id == principal.user_id,
        )

    def _release_lock(self, document: Document, holder_id: UUID, now: datetime) -> None:
        """Clear the lock, but only if holder_id still holds it."""
        self.db.flush()
        result = self.db.execute(
            update(Document)
            .where(
                Document.id == document.id,
                Document.checked_out_by_user_id == holder_id,
            )
            .values(**project(release(checkout_state_of(document), document.id, holder_id)))
            .execution_options(synchronize_session=False)
        )
        self.db.refresh(document)
        if result.rowcount != 1:
            raise NotCheckedOutByYou(document.id, document.checked_out_by_user_id)

    def _record_lease(self, document, previous, user_id: UUID, now: datetime, expires_at: datetime) -> None:
        if isinstance(previous, CheckedOut) and previous.holder_id == user_id:
            lease = self._open_lease(document.id, user_id)
            if lease is not None:
                lease.expires_at = expires_at
                return

        # A fresh checkout replaces any grace the taker was still owed
        self.db.query(CheckoutLease).filter(
            CheckoutLease.document_id == document.id,
            CheckoutLease.user_id == user_id,
            CheckoutLease.released_at.is_(None),
            CheckoutLease.superseded_at.isnot(None),
        ).update({"released_at": now, "release_reason": "replaced"})

        if isinstance(previous, CheckedOut) and previous.holder_id != user_id:
            # Expired lease taken over; its holder keeps the only grace check-in
            self.db.query(CheckoutLease).filter(
                CheckoutLease.document_id == document.id,
                CheckoutLease.released_at.is_(None),
                CheckoutLease.superseded_at.isnot(None),
            ).update({"released_at": now, "release_reason": "lapsed"})
            self.db.query(CheckoutLease).filter(
                CheckoutLease.document_id == document.id,
                CheckoutLease.user_id == previous.holder_id,
                CheckoutLease.released_at.is_(None),
                CheckoutLease.superseded_at.is_(None),
            ).update({"superseded_at": now})

        self.db.add(CheckoutLease(
            document_id=document.id,
            user_id=user_id,
            checked_out_at=now,
            expires_at=expires_at,
        ))
        self.db.flush()

    def _open_lease(self, document_id: UUID, user_id: UUID) -> Optional[CheckoutLease]:
        return self.db.query(CheckoutLease).filter(
            CheckoutLease.document_id == document_id,
            CheckoutLease.user_id == user_id,
            CheckoutLease.released_at.is_(None),
            CheckoutLease.superseded_at.is_(None),
        ).order_by(CheckoutLease.checked_out_at.desc()).first()

    def _superseded_lease(self, document_id: UUID, user_id: UUID) -> Optional[CheckoutLease]:
        """The document's latest superseded open lease, if it belongs to user_id."""
        lease = self.db.query(CheckoutLease).filter(
            CheckoutLease.document_id == document_id,
            CheckoutLease.released_at.is_(None),
            CheckoutLease.superseded_at.isnot(None),
        ).order_by(CheckoutLease.superseded_at.desc(), CheckoutLease.checked_out_at.desc()).first()
        if lease is None or lease.user_id != user_id:
            return None
        return lease

    def _close_lease(self, document_id: UUID, user_id: UUID, now: datetime, reason: str) -> None:
        """Close every open lease of user_id on the document, superseded ones included."""
        self.db.query(CheckoutLease).filter(
            CheckoutLease.document_id == document_id,
            CheckoutLease.user_id == user_id,
            CheckoutLease.released_at.is_(None),
        ).update({"released_at": now, "release_reason": reason})

    def _store_content(
        self,
        document: Document,
        principal: Principal,
        content: NewContent,
        comment: Optional[str],
        now: datetime
    ) -> None:
        file_type = extension_of(content.file_type) if content.file_type else document.file_type
        doc_type = DocumentTypeCatalog(self.db, self.company_id).get(document.document_type_id)
        if not DocumentTypeCatalog.is_extension_allowed(doc_type, file_type):
            raise DocumentValidationError(
                f"File type '{file_type or ''}' is not allowed for document type {doc_type.code}",
                file_type=file_type,
            )

        document.version = document.version + 1
        document.content_hash = content.content_hash
        document.storage_path = content.storage_path
        document.file_size_bytes = content.file_size_bytes
        document.file_type = file_type
        document.updated_at = now

        self.db.add(DocumentVersion(
            document_id=document.id,
            version_number=document.version,
            content_hash=content.content_hash,
            storage_path=content.storage_path,
            file_size_bytes=content.file_size_bytes,
            comment=comment,
            created_by_user_id=principal.user_id,
            created_at=now,
        ))

    def _refuse(self, document: Document, principal: Principal, code: str) -> None:
        policy_refusals_total.labels(code=code).inc()
        logger.warning(
            f"Checkout operation refused on document {document.id}: {code}",
            extra={
                "company_id": str(self.company_id),
                "user_id": str(principal.user_id),
                "document_id": str(document.id),
            },
        )
