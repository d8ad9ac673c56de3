"""Document API - records, checkout, approval workflow, access grants, retention

Every route works inside the caller's company. Services flush and raise;
the route commits once the whole operation succeeded.
"""

from dataclasses import asdict
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from auth.dependencies import get_current_member_or_higher, get_current_principal
from auth.principal import Principal
from database import get_db
from .checkout import CheckoutManager
from .grants import GrantService
from .retention import RetentionEngine
from .schemas import (
    ApplyPolicyRequest,
    CheckinRequest,
    CheckoutRequest,
    CheckoutStatusResponse,
    DocumentCreate,
    DocumentResponse,
    DocumentUpdate,
    DocumentVersionResponse,
    EffectivePermissionResponse,
    ExtendRetentionRequest,
    ForceCancelRequest,
    GrantRequest,
    GrantResponse,
    LegalHoldRequest,
    WorkflowNotes,
)
from .store import DocumentStore
from .workflow import ApprovalWorkflow

router = APIRouter(prefix="/documents", tags=["documents"])


# =============================================================================
# LISTS
# =============================================================================
# Registered before /{document_id} so the literal paths win.

@router.get("/checked-out", response_model=List[DocumentResponse])
def list_checked_out(
    user_id: Optional[UUID] = Query(None, description="Only checkouts held by this user"),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Documents under an unexpired checkout."""
    return DocumentStore(db, principal.company_id).checked_out(principal, user_id=user_id)


@router.get("/my-checkouts", response_model=List[DocumentResponse])
def list_my_checkouts(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return DocumentStore(db, principal.company_id).checked_out_by(principal, principal.user_id)


@router.get("/needs-review", response_model=List[DocumentResponse])
def list_needs_review(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Documents whose periodic review date has passed."""
    return DocumentStore(db, principal.company_id).needs_review(principal)


# =============================================================================
# RECORDS
# =============================================================================

@router.post(
    "",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a document",
    description="""
    Register a document whose file was already uploaded to blob storage.

    The document type decides the number (when auto-numbering is enabled),
    the accepted file extensions and the start state: types that require
    approval always start in draft.

    **Errors:**
    - 404 folder_not_found: Unknown folder
    - 422: Unknown or inactive document type, disallowed extension,
      start state not permitted for the type
    """
)
def create_document(
    data: DocumentCreate,
    principal: Principal = Depends(get_current_member_or_higher),
    db: Session = Depends(get_db),
):
    document = DocumentStore(db, principal.company_id).create(principal, data)
    db.commit()
    return document


@router.get("/{document_id}", response_model=DocumentResponse)
def get_document(
    document_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return DocumentStore(db, principal.company_id).get(principal, document_id)


@router.patch(
    "/{document_id}",
    response_model=DocumentResponse,
    summary="Update document metadata",
    description="Metadata-only patch. Refused with 409 while another user holds the checkout.",
)
def update_document(
    document_id: UUID,
    data: DocumentUpdate,
    principal: Principal = Depends(get_current_member_or_higher),
    db: Session = Depends(get_db),
):
    document = DocumentStore(db, principal.company_id).update_metadata(principal, document_id, data)
    db.commit()
    return document


@router.delete(
    "/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a document",
    description="""
    Soft-delete a document.

    **Errors:**
    - 403 legal_hold_blocks_deletion: Document is on legal hold (no override)
    - 403 retention_active: Retention has not expired; override=true skips
      this check for ADMIN callers only
    - 409 already_checked_out: Another user holds the checkout
    """
)
def delete_document(
    document_id: UUID,
    override: bool = Query(False),
    principal: Principal = Depends(get_current_member_or_higher),
    db: Session = Depends(get_db),
):
    DocumentStore(db, principal.company_id).delete(
        principal,
        document_id,
        admin_override=override and principal.is_admin,
    )
    db.commit()


@router.get("/{document_id}/versions", response_model=List[DocumentVersionResponse])
def list_versions(
    document_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return DocumentStore(db, principal.company_id).versions(principal, document_id)


@router.post("/{document_id}/review", response_model=DocumentResponse)
def mark_reviewed(
    document_id: UUID,
    principal: Principal = Depends(get_current_member_or_higher),
    db: Session = Depends(get_db),
):
    """Record a periodic review and schedule the next one."""
    document = DocumentStore(db, principal.company_id).mark_reviewed(principal, document_id)
    db.commit()
    return document


# =============================================================================
# CHECKOUT
# =============================================================================

@router.post(
    "/{document_id}/checkout",
    response_model=DocumentResponse,
    summary="Check out a document",
    description="""
    Take an exclusive editing lease, or renew your own. An expired lease held
    by someone else is taken over.

    **Errors:**
    - 403 legal_hold_blocks_checkout: Document is on legal hold
    - 409 already_checked_out: Another user holds an unexpired lease
    """
)
def checkout_document(
    document_id: UUID,
    data: Optional[CheckoutRequest] = None,
    principal: Principal = Depends(get_current_member_or_higher),
    db: Session = Depends(get_db),
):
    duration_hours = data.duration_hours if data else None
    document = CheckoutManager(db, principal.company_id).checkout(
        principal, document_id, duration_hours=duration_hours
    )
    db.commit()
    return document


@router.post(
    "/{document_id}/checkin",
    response_model=DocumentResponse,
    summary="Check in a document",
    description="""
    Release your checkout. With content, the new file pointer becomes the
    next version.

    **Errors:**
    - 409 not_checked_out_by_you: You hold neither the lock nor a taken-over lease
    - 403 legal_hold_active: New content while the document is on hold
    """
)
def checkin_document(
    document_id: UUID,
    data: Optional[CheckinRequest] = None,
    principal: Principal = Depends(get_current_member_or_higher),
    db: Session = Depends(get_db),
):
    data = data or CheckinRequest()
    document = CheckoutManager(db, principal.company_id).checkin(
        principal, document_id, content=data.content, comment=data.comment
    )
    db.commit()
    return document


@router.post("/{document_id}/checkout/cancel", response_model=DocumentResponse)
def cancel_checkout(
    document_id: UUID,
    principal: Principal = Depends(get_current_member_or_higher),
    db: Session = Depends(get_db),
):
    """Release your checkout without storing content."""
    document = CheckoutManager(db, principal.company_id).cancel(principal, document_id)
    db.commit()
    return document


@router.post(
    "/{document_id}/checkout/force",
    response_model=DocumentResponse,
    summary="Force-cancel a checkout",
    description="Management only. Breaks another user's checkout; a reason is required and audited.",
)
def force_cancel_checkout(
    document_id: UUID,
    data: ForceCancelRequest,
    principal: Principal = Depends(get_current_member_or_higher),
    db: Session = Depends(get_db),
):
    document = CheckoutManager(db, principal.company_id).force_cancel(
        principal, document_id, reason=data.reason
    )
    db.commit()
    return document


@router.get("/{document_id}/checkout/status", response_model=CheckoutStatusResponse)
def get_checkout_status(
    document_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    result = CheckoutManager(db, principal.company_id).status(principal, document_id)
    return CheckoutStatusResponse(**asdict(result))


# =============================================================================
# APPROVAL WORKFLOW
# =============================================================================

@router.post("/{document_id}/workflow/submit", response_model=DocumentResponse)
def submit_for_review(
    document_id: UUID,
    principal: Principal = Depends(get_current_member_or_higher),
    db: Session = Depends(get_db),
):
    """draft -> pending_review"""
    document = ApprovalWorkflow(db, principal.company_id).submit_for_review(principal, document_id)
    db.commit()
    return document


@router.post("/{document_id}/workflow/approve", response_model=DocumentResponse)
def approve_document(
    document_id: UUID,
    data: Optional[WorkflowNotes] = None,
    principal: Principal = Depends(get_current_member_or_higher),
    db: Session = Depends(get_db),
):
    """pending_review -> approved"""
    notes = data.notes if data else None
    document = ApprovalWorkflow(db, principal.company_id).approve(principal, document_id, notes=notes)
    db.commit()
    return document


@router.post("/{document_id}/workflow/reject", response_model=DocumentResponse)
def reject_document(
    document_id: UUID,
    data: Optional[WorkflowNotes] = None,
    principal: Principal = Depends(get_current_member_or_higher),
    db: Session = Depends(get_db),
):
    """pending_review -> rejected -> draft"""
    notes = data.notes if data else None
    document = ApprovalWorkflow(db, principal.company_id).reject(principal, document_id, notes=notes)
    db.commit()
    return document


@router.post("/{document_id}/workflow/publish", response_model=DocumentResponse)
def publish_document(
    document_id: UUID,
    principal: Principal = Depends(get_current_member_or_higher),
    db: Session = Depends(get_db),
):
    """approved -> published"""
    document = ApprovalWorkflow(db, principal.company_id).publish(principal, document_id)
    db.commit()
    return document


@router.post("/{document_id}/workflow/cancel", response_model=DocumentResponse)
def cancel_document(
    document_id: UUID,
    principal: Principal = Depends(get_current_member_or_higher),
    db: Session = Depends(get_db),
):
    """Move a non-terminal document to cancelled."""
    document = ApprovalWorkflow(db, principal.company_id).cancel(principal, document_id)
    db.commit()
    return document


# =============================================================================
# ACCESS GRANTS
# =============================================================================

@router.get("/{document_id}/permissions", response_model=List[GrantResponse])
def list_grants(
    document_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return GrantService(db, principal.company_id).list(principal, document_id)


@router.post(
    "/{document_id}/permissions",
    response_model=GrantResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Grant access",
    description="""
    Grant view or edit to one user or one department. Granting again to the
    same principal replaces the level.
    """
)
def create_grant(
    document_id: UUID,
    data: GrantRequest,
    principal: Principal = Depends(get_current_member_or_higher),
    db: Session = Depends(get_db),
):
    service = GrantService(db, principal.company_id)
    if data.user_id is not None:
        grant = service.grant_user(principal, document_id, data.user_id, data.access_level)
    else:
        grant = service.grant_department(principal, document_id, data.department_id, data.access_level)
    db.commit()
    return grant


@router.delete("/{document_id}/permissions/{grant_id}", status_code=status.HTTP_204_NO_CONTENT)
def revoke_grant(
    document_id: UUID,
    grant_id: UUID,
    principal: Principal = Depends(get_current_member_or_higher),
    db: Session = Depends(get_db),
):
    GrantService(db, principal.company_id).revoke(principal, grant_id)
    db.commit()


@router.get("/{document_id}/permissions/effective", response_model=EffectivePermissionResponse)
def get_effective_permission(
    document_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """The caller's permission on the document and the rule that decided it."""
    decision = GrantService(db, principal.company_id).effective(principal, document_id)
    return EffectivePermissionResponse(
        document_id=document_id,
        level=decision.level,
        source=decision.source.value,
        can_view=decision.can_view,
        can_edit=decision.can_edit,
    )


# =============================================================================
# RETENTION AND LEGAL HOLD
# =============================================================================

@router.post("/{document_id}/retention/apply-policy", response_model=DocumentResponse)
def apply_retention_policy(
    document_id: UUID,
    data: ApplyPolicyRequest,
    principal: Principal = Depends(get_current_member_or_higher),
    db: Session = Depends(get_db),
):
    """Assign a retention policy and compute the expiry. Management only."""
    document = RetentionEngine(db, principal.company_id).apply_policy(principal, document_id, data.policy_id)
    db.commit()
    return document


@router.post("/{document_id}/retention/extend", response_model=DocumentResponse)
def extend_retention(
    document_id: UUID,
    data: ExtendRetentionRequest,
    principal: Principal = Depends(get_current_member_or_higher),
    db: Session = Depends(get_db),
):
    """Move the retention expiry later. Management only."""
    document = RetentionEngine(db, principal.company_id).extend(principal, document_id, data.new_expiry)
    db.commit()
    return document


@router.post(
    "/{document_id}/legal-hold",
    response_model=DocumentResponse,
    summary="Place or release a legal hold",
    description="""
    Management only. Placing a hold requires a reason. While held, the
    document cannot be deleted, checked out or given new content.
    """
)
def set_legal_hold(
    document_id: UUID,
    data: LegalHoldRequest,
    principal: Principal = Depends(get_current_member_or_higher),
    db: Session = Depends(get_db),
):
    document = RetentionEngine(db, principal.company_id).set_legal_hold(
        principal, document_id, on=data.on, reason=data.reason
    )
    db.commit()
    return document
