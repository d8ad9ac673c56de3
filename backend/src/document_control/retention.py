"""Retention policies, retention dates and legal hold.

Policies are configured per company by an administrator. Applying a policy
to a document stamps retention_expires_at once; later edits to the
document do not move it. Only an explicit extend() does, and only later.

Legal hold is placed and released by management roles and always carries
a reason when placed.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from audit.service import log_audit_event
from auth.principal import Principal
from domain.document_control import (
    DocumentValidationError,
    DuplicateCode,
    RetentionAction,
    RetentionPolicyNotFound,
    RetentionTrigger,
    compute_retention_expiry,
    reference_date_for,
)
from domain.document_control import retention as rules
from domain.document_control.errors import DocumentControlError
from models.base import utcnow
from models.document import Document
from models.retention_policy import RetentionPolicy
from observability.metrics import policy_refusals_total
from .guards import load_document, require_management
from .schemas import RetentionPolicyCreate, RetentionPolicyUpdate

logger = logging.getLogger(__name__)


class RetentionPolicyService:
    """Retention policies of one company."""

    def __init__(self, db: Session, company_id: UUID):
        self.db = db
        self.company_id = company_id

    def get(self, policy_id: UUID) -> RetentionPolicy:
        policy = self.db.query(RetentionPolicy).filter(
            RetentionPolicy.id == policy_id,
            RetentionPolicy.company_id == self.company_id,
        ).first()
        if not policy:
            raise RetentionPolicyNotFound(policy_id)
        return policy

    def get_by_code(self, code: str) -> RetentionPolicy:
        policy = self._find_code(code)
        if not policy:
            raise RetentionPolicyNotFound(code)
        return policy

    def list(self, include_inactive: bool = False) -> List[RetentionPolicy]:
        query = self.db.query(RetentionPolicy).filter(RetentionPolicy.company_id == self.company_id)
        if not include_inactive:
            query = query.filter(RetentionPolicy.is_active.is_(True))
        return query.order_by(RetentionPolicy.code).all()

    def create(self, data: RetentionPolicyCreate, actor_id: Optional[UUID] = None) -> RetentionPolicy:
        """Create a policy.

        Raises:
            DuplicateCode: If the code exists in this company, in any case
        """
        code = data.code.strip().upper()
        if self._find_code(code):
            raise DuplicateCode(code, entity="retention_policy")

        policy = RetentionPolicy(
            company_id=self.company_id,
            code=code,
            name=data.name.strip(),
            description=data.description,
            retention_period_days=data.retention_period_days,
            action=data.action.value,
            trigger_on=data.trigger_on.value,
            is_active=True,
        )
        self.db.add(policy)
        self.db.flush()

        self._audit("RETENTION_POLICY_CREATED", policy, actor_id, {"code": policy.code})
        logger.info(
            f"Created retention policy {policy.code}",
            extra={"company_id": str(self.company_id)},
        )
        return policy

    def update(
        self,
        policy_id: UUID,
        data: RetentionPolicyUpdate,
        actor_id: Optional[UUID] = None
    ) -> RetentionPolicy:
        """Patch a policy. Documents keep the expiry they were stamped with."""
        policy = self.get(policy_id)
        patch = data.model_dump(exclude_unset=True)

        if patch.get("code") is not None:
            new_code = patch["code"].strip().upper()
            existing = self._find_code(new_code)
            if existing and existing.id != policy.id:
                raise DuplicateCode(new_code, entity="retention_policy")
            policy.code = new_code
        if patch.get("name") is not None:
            policy.name = patch["name"].strip()
        if "description" in patch:
            policy.description = patch["description"]
        if patch.get("retention_period_days") is not None:
            policy.retention_period_days = patch["retention_period_days"]
        if patch.get("action") is not None:
            policy.action = patch["action"].value
        if patch.get("trigger_on") is not None:
            policy.trigger_on = patch["trigger_on"].value
        self.db.flush()

        self._audit("RETENTION_POLICY_UPDATED", policy, actor_id, {"fields": sorted(patch.keys())})
        return policy

    def deactivate(self, policy_id: UUID, actor_id: Optional[UUID] = None) -> RetentionPolicy:
        policy = self.get(policy_id)
        if not policy.is_active:
            return policy
        policy.is_active = False
        self.db.flush()

        self._audit("RETENTION_POLICY_DEACTIVATED", policy, actor_id, {"code": policy.code})
        return policy

    def _find_code(self, code: str) -> Optional[RetentionPolicy]:
        return self.db.query(RetentionPolicy).filter(
            RetentionPolicy.company_id == self.company_id,
            func.upper(RetentionPolicy.code) == code.strip().upper(),
        ).first()

    def _audit(self, action: str, policy: RetentionPolicy, actor_id, metadata) -> None:
        log_audit_event(
            db=self.db,
            company_id=self.company_id,
            action=action,
            actor_id=actor_id,
            entity_type="retention_policy",
            entity_id=policy.id,
            metadata=metadata,
        )


@dataclass
class DispositionCandidate:
    """Document past its retention date, with what its policy says to do."""
    document: Document
    action: Optional[RetentionAction]


class RetentionEngine:
    """Retention dates and legal hold on the documents of one company."""

    def __init__(self, db: Session, company_id: UUID):
        self.db = db
        self.company_id = company_id
        self.policies = RetentionPolicyService(db, company_id)

    def apply_policy(
        self,
        principal: Principal,
        document_id: UUID,
        policy_id: UUID,
        now: Optional[datetime] = None
    ) -> Document:
        """Assign a policy and stamp the document's retention expiry.

        Raises:
            AccessDenied: Without a management role
            DocumentValidationError: If the policy is inactive or the document
                lacks the policy's reference date
        """
        now = now or utcnow()
        require_management(principal, "Applying a retention policy")
        document = load_document(self.db, self.company_id, document_id)
        policy = self.policies.get(policy_id)
        if not policy.is_active:
            raise DocumentValidationError(
                f"Retention policy {policy.code} is inactive",
                policy_code=policy.code,
            )

        reference = reference_date_for(RetentionTrigger(policy.trigger_on), document)
        document.retention_policy_id = policy.id
        document.retention_expires_at = compute_retention_expiry(policy.retention_period_days, reference)
        self.db.flush()

        log_audit_event(
            db=self.db,
            company_id=self.company_id,
            action="RETENTION_APPLIED",
            actor_id=principal.user_id,
            entity_type="document",
            entity_id=document.id,
            metadata={
                "policy_code": policy.code,
                "retention_expires_at": document.retention_expires_at.isoformat(),
            },
        )
        logger.info(
            f"Applied retention policy {policy.code} to document {document.id}",
            extra={
                "company_id": str(self.company_id),
                "user_id": str(principal.user_id),
                "document_id": str(document.id),
            },
        )
        return document

    def extend(
        self,
        principal: Principal,
        document_id: UUID,
        new_expiry: datetime,
        now: Optional[datetime] = None
    ) -> Document:
        """Push the retention expiry later. Shortening is refused.

        Raises:
            AccessDenied: Without a management role
            DocumentValidationError: If new_expiry is not later than the
                current expiry and the present
        """
        now = now or utcnow()
        require_management(principal, "Extending retention")
        document = load_document(self.db, self.company_id, document_id)

        current = document.retention_expires_at
        if new_expiry <= now or (current is not None and new_expiry <= current):
            raise DocumentValidationError(
                "Retention can only be extended to a later date",
                retention_expires_at=current,
                requested=new_expiry,
            )

        document.retention_expires_at = new_expiry
        self.db.flush()

        log_audit_event(
            db=self.db,
            company_id=self.company_id,
            action="RETENTION_EXTENDED",
            actor_id=principal.user_id,
            entity_type="document",
            entity_id=document.id,
            metadata={
                "previous": current.isoformat() if current else None,
                "retention_expires_at": new_expiry.isoformat(),
            },
        )
        return document

    def set_legal_hold(
        self,
        principal: Principal,
        document_id: UUID,
        on: bool,
        reason: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Document:
        """Place or release a legal hold.

        Raises:
            AccessDenied: Without a management role
            DocumentValidationError: If a hold is placed without a reason
        """
        now = now or utcnow()
        require_management(principal, "Changing a legal hold")
        document = load_document(self.db, self.company_id, document_id)

        if on:
            if not reason or not reason.strip():
                raise DocumentValidationError("A reason is required to place a legal hold")
            document.legal_hold = True
            document.legal_hold_reason = reason.strip()
            document.legal_hold_set_at = now
            document.legal_hold_set_by_user_id = principal.user_id
            action = "LEGAL_HOLD_PLACED"
        else:
            document.legal_hold = False
            document.legal_hold_reason = None
            document.legal_hold_set_at = None
            document.legal_hold_set_by_user_id = None
            action = "LEGAL_HOLD_RELEASED"
        self.db.flush()

        log_audit_event(
            db=self.db,
            company_id=self.company_id,
            action=action,
            actor_id=principal.user_id,
            entity_type="document",
            entity_id=document.id,
            metadata={"reason": document.legal_hold_reason or reason},
        )
        logger.info(
            f"{action} on document {document.id}",
            extra={
                "company_id": str(self.company_id),
                "user_id": str(principal.user_id),
                "document_id": str(document.id),
            },
        )
        return document

    def assert_can_delete(self, document: Document, now: datetime, admin_override: bool = False) -> None:
        """Legal hold always blocks; unexpired retention blocks unless overridden."""
        try:
            rules.assert_can_delete(document, now, admin_override=admin_override)
        except DocumentControlError as e:
            self._log_refusal(document, e)
            raise
        if admin_override and rules.retention_is_active(document, now):
            logger.warning(
                f"Retention override used on document {document.id}",
                extra={"company_id": str(self.company_id), "document_id": str(document.id)},
            )

    def assert_can_change_content(self, document: Document) -> None:
        try:
            rules.assert_can_change_content(document)
        except DocumentControlError as e:
            self._log_refusal(document, e)
            raise

    def disposition_candidates(self, now: Optional[datetime] = None) -> List[DispositionCandidate]:
        """Live, unheld documents whose retention has expired. Nothing is deleted."""
        now = now or utcnow()
        rows = self.db.query(Document, RetentionPolicy.action).outerjoin(
            RetentionPolicy, RetentionPolicy.id == Document.retention_policy_id
        ).filter(
            Document.company_id == self.company_id,
            Document.deleted_at.is_(None),
            Document.legal_hold.is_(False),
            Document.retention_expires_at.isnot(None),
            Document.retention_expires_at <= now,
        ).order_by(Document.retention_expires_at).all()

        return [
            DispositionCandidate(document=document, action=RetentionAction(action) if action else None)
            for document, action in rows
        ]

    def _log_refusal(self, document: Document, error: DocumentControlError) -> None:
        policy_refusals_total.labels(code=error.code).inc()
        logger.warning(
            f"Refused change to document {document.id}: {error.code}",
            extra={"company_id": str(self.company_id), "document_id": str(document.id)},
        )
