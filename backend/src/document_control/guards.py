"""Document lookups and permission checks shared by the document services.

Every lookup is scoped to one company. Unknown ids, ids of another company
and soft-deleted documents all look the same to the caller: not found.
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List
from uuid import UUID

from sqlalchemy.orm import Session

from auth.principal import Principal
from domain.document_control import (
    AccessDecision,
    AccessDenied,
    AlreadyCheckedOut,
    CheckedOut,
    DocumentNotFound,
    checkout_state_of,
    evaluate_access,
)
from models.access_grant import AccessGrant
from models.document import Document
from observability.metrics import policy_refusals_total

logger = logging.getLogger(__name__)


def load_document(db: Session, company_id: UUID, document_id: UUID) -> Document:
    """Fetch a live document of company_id.

    Raises:
        DocumentNotFound: If the id is unknown, belongs to another company or
            the document was deleted
    """
    document = db.query(Document).filter(
        Document.id == document_id,
        Document.company_id == company_id,
    ).first()

    if not document or document.deleted_at is not None:
        raise DocumentNotFound(document_id)
    return document


def grants_for(db: Session, document_id: UUID) -> List[AccessGrant]:
    return db.query(AccessGrant).filter(AccessGrant.document_id == document_id).all()


def grants_by_document(db: Session, document_ids: Iterable[UUID]) -> Dict[UUID, List[AccessGrant]]:
    """Load grants of many documents with one query."""
    ids = list(document_ids)
    grouped: Dict[UUID, List[AccessGrant]] = defaultdict(list)
    if not ids:
        return grouped
    for grant in db.query(AccessGrant).filter(AccessGrant.document_id.in_(ids)).all():
        grouped[grant.document_id].append(grant)
    return grouped


def decide(db: Session, principal: Principal, document: Document) -> AccessDecision:
    return evaluate_access(principal, document, grants_for(db, document.id))


def visible_only(db: Session, principal: Principal, documents: List[Document]) -> List[Document]:
    """Filter documents down to the ones principal may view."""
    grants = grants_by_document(db, [d.id for d in documents])
    return [
        d for d in documents
        if evaluate_access(principal, d, grants.get(d.id, [])).can_view
    ]


def require_view(db: Session, principal: Principal, document: Document) -> AccessDecision:
    """Raise AccessDenied unless principal may view document."""
    decision = decide(db, principal, document)
    if not decision.can_view:
        _deny(principal, document, "view")
    return decision


def require_edit(db: Session, principal: Principal, document: Document) -> AccessDecision:
    """Raise AccessDenied unless principal may edit document."""
    decision = decide(db, principal, document)
    if not decision.can_edit:
        _deny(principal, document, "edit")
    return decision


def require_reviewer(db: Session, principal: Principal, document: Document) -> AccessDecision:
    """Reviewers need view plus either a management role or edit permission."""
    decision = require_view(db, principal, document)
    if not (principal.is_management or decision.can_edit):
        _deny(principal, document, "review")
    return decision


def require_management(principal: Principal, action: str) -> None:
    if not principal.is_management:
        policy_refusals_total.labels(code="access_denied").inc()
        logger.warning(
            f"{action} refused for role {principal.role.value}",
            extra={"company_id": str(principal.company_id), "user_id": str(principal.user_id)},
        )
        raise AccessDenied(
            f"{action} requires a management role",
            role=principal.role.value,
        )


def assert_not_locked_by_other(document: Document, principal: Principal, now: datetime) -> None:
    """Raise AlreadyCheckedOut if another user holds an unexpired checkout."""
    state = checkout_state_of(document)
    if isinstance(state, CheckedOut) and state.blocks(principal.user_id, now):
        raise AlreadyCheckedOut(document.id, state.holder_id, state.expires_at)


def _deny(principal: Principal, document: Document, permission: str) -> None:
    policy_refusals_total.labels(code="access_denied").inc()
    logger.warning(
        f"Access denied: {permission} on document {document.id}",
        extra={
            "company_id": str(principal.company_id),
            "user_id": str(principal.user_id),
            "document_id": str(document.id),
        },
    )
    raise AccessDenied(
        f"You do not have {permission} permission on document {document.id}",
        document_id=document.id,
        required=permission,
    )
