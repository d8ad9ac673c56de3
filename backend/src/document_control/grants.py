"""Explicit access grants on documents.

A grant gives view or edit on one document to exactly one user or one
department. Granting again to the same principal replaces the level.
Grants are managed by anyone with edit on the document and by management
roles.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from audit.service import log_audit_event
from auth.principal import Principal
from domain.document_control import (
    AccessDecision,
    DocumentValidationError,
    GrantNotFound,
    PermissionLevel,
)
from domain.document_control.access import GRANT_LEVELS
from models.access_grant import AccessGrant
from models.document import Document
from .guards import decide, grants_for, load_document, require_edit, require_view

logger = logging.getLogger(__name__)


class GrantService:
    """Access grants on the documents of one company."""

    def __init__(self, db: Session, company_id: UUID):
        self.db = db
        self.company_id = company_id

    def grant_user(
        self,
        principal: Principal,
        document_id: UUID,
        user_id: UUID,
        level: PermissionLevel
    ) -> AccessGrant:
        return self._upsert(principal, document_id, level, user_id=user_id)

    def grant_department(
        self,
        principal: Principal,
        document_id: UUID,
        department_id: UUID,
        level: PermissionLevel
    ) -> AccessGrant:
        return self._upsert(principal, document_id, level, department_id=department_id)

    def revoke(self, principal: Principal, grant_id: UUID) -> None:
        """Remove a grant.

        Raises:
            GrantNotFound: If the grant is unknown in this company
            AccessDenied: If the caller may not manage the document's grants
        """
        grant = self.db.query(AccessGrant).join(
            Document, Document.id == AccessGrant.document_id
        ).filter(
            AccessGrant.id == grant_id,
            Document.company_id == self.company_id,
            Document.deleted_at.is_(None),
        ).first()
        if not grant:
            raise GrantNotFound(grant_id)

        document = load_document(self.db, self.company_id, grant.document_id)
        self._require_manage(principal, document)

        self.db.delete(grant)
        self.db.flush()

        log_audit_event(
            db=self.db,
            company_id=self.company_id,
            action="ACCESS_REVOKED",
            actor_id=principal.user_id,
            entity_type="document",
            entity_id=document.id,
            metadata={
                "grant_id": str(grant_id),
                "user_id": str(grant.user_id) if grant.user_id else None,
                "department_id": str(grant.department_id) if grant.department_id else None,
            },
        )
        logger.info(
            f"Revoked grant {grant_id} on document {document.id}",
            extra={
                "company_id": str(self.company_id),
                "user_id": str(principal.user_id),
                "document_id": str(document.id),
            },
        )

    def list(self, principal: Principal, document_id: UUID) -> List[AccessGrant]:
        document = load_document(self.db, self.company_id, document_id)
        require_view(self.db, principal, document)
        return grants_for(self.db, document.id)

    def effective(self, principal: Principal, document_id: UUID) -> AccessDecision:
        """Permission the caller has on a document, with the rule that decided it."""
        document = load_document(self.db, self.company_id, document_id)
        return decide(self.db, principal, document)

    def _upsert(
        self,
        principal: Principal,
        document_id: UUID,
        level: PermissionLevel,
        user_id: Optional[UUID] = None,
        department_id: Optional[UUID] = None
    ) -> AccessGrant:
        level = PermissionLevel(level)
        if level not in GRANT_LEVELS:
            raise DocumentValidationError(
                "Grants carry view or edit",
                access_level=level.value,
            )

        document = load_document(self.db, self.company_id, document_id)
        self._require_manage(principal, document, level)

        query = self.db.query(AccessGrant).filter(AccessGrant.document_id == document.id)
        if user_id is not None:
            query = query.filter(AccessGrant.user_id == user_id)
        else:
            query = query.filter(AccessGrant.department_id == department_id)
        grant = query.first()

        if grant is None:
            grant = AccessGrant(
                document_id=document.id,
                user_id=user_id,
                department_id=department_id,
                access_level=level.value,
                granted_by_user_id=principal.user_id,
            )
            self.db.add(grant)
        else:
            grant.access_level = level.value
            grant.granted_by_user_id = principal.user_id
        self.db.flush()

        log_audit_event(
            db=self.db,
            company_id=self.company_id,
            action="ACCESS_GRANTED",
            actor_id=principal.user_id,
            entity_type="document",
            entity_id=document.id,
            metadata={
                "user_id": str(user_id) if user_id else None,
                "department_id": str(department_id) if department_id else None,
                "access_level": level.value,
            },
        )
        logger.info(
            f"Granted {level.value} on document {document.id}",
            extra={
                "company_id": str(self.company_id),
                "user_id": str(principal.user_id),
                "document_id": str(document.id),
            },
        )
        return grant

    def _require_manage(
        self,
        principal: Principal,
        document: Document,
        level: Optional[PermissionLevel] = None
    ) -> None:
        """Management needs view to manage grants, others need edit.

        Handing out edit always needs edit, so nobody grants more than they hold.
        """
        if principal.is_management and level != PermissionLevel.EDIT:
            require_view(self.db, principal, document)
        else:
            require_edit(self.db, principal, document)
