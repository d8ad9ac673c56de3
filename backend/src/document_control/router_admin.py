"""Document control administration API.

Document types, retention policies, folder templates and the disposition
report. All endpoints require the ADMIN role.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from auth.dependencies import get_current_admin
from auth.principal import Principal
from database import get_db
from domain.document_control import TemplateScope
from models.base import utcnow
from .catalog import DocumentTypeCatalog
from .folder_templates import FolderTemplateService
from .retention import RetentionEngine, RetentionPolicyService
from .schemas import (
    DispositionCandidateResponse,
    DocumentTypeCreate,
    DocumentTypeResponse,
    DocumentTypeUpdate,
    FolderTemplateApplicationResponse,
    FolderTemplateCreate,
    FolderTemplateResponse,
    FolderTemplateUpdate,
    NextNumberResponse,
    RetentionPolicyCreate,
    RetentionPolicyResponse,
    RetentionPolicyUpdate,
)
from .sequence import SequenceAllocator

router = APIRouter(prefix="/admin", tags=["document_control_admin"])


# =============================================================================
# DOCUMENT TYPES
# =============================================================================

@router.get("/document-types", response_model=List[DocumentTypeResponse])
def list_document_types(
    include_inactive: bool = Query(False, description="Include deactivated types"),
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return DocumentTypeCatalog(db, admin.company_id).list(include_inactive=include_inactive)


@router.post(
    "/document-types",
    response_model=DocumentTypeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a document type",
    description="""
    Create a document type for the caller's company.

    **Errors:**
    - 409 duplicate_code: A type with this code exists (codes compare case-insensitively)
    - 422: Digit width outside 1-10
    """
)
def create_document_type(
    data: DocumentTypeCreate,
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    doc_type = DocumentTypeCatalog(db, admin.company_id).create(data, actor_id=admin.user_id)
    db.commit()
    return doc_type


@router.get("/document-types/by-code/{code}", response_model=DocumentTypeResponse)
def get_document_type_by_code(
    code: str,
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return DocumentTypeCatalog(db, admin.company_id).get_by_code(code)


@router.get("/document-types/{type_id}", response_model=DocumentTypeResponse)
def get_document_type(
    type_id: UUID,
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return DocumentTypeCatalog(db, admin.company_id).get(type_id)


@router.patch(
    "/document-types/{type_id}",
    response_model=DocumentTypeResponse,
    summary="Update a document type",
    description="""
    Patch a document type. The code cannot change once any document uses
    the type (409 immutable).
    """
)
def update_document_type(
    type_id: UUID,
    data: DocumentTypeUpdate,
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    doc_type = DocumentTypeCatalog(db, admin.company_id).update(type_id, data, actor_id=admin.user_id)
    db.commit()
    return doc_type


@router.post("/document-types/{type_id}/deactivate", response_model=DocumentTypeResponse)
def deactivate_document_type(
    type_id: UUID,
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    doc_type = DocumentTypeCatalog(db, admin.company_id).deactivate(type_id, actor_id=admin.user_id)
    db.commit()
    return doc_type


@router.get("/document-types/{type_id}/next-number", response_model=NextNumberResponse)
def preview_next_number(
    type_id: UUID,
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """Preview the next document number. Nothing is consumed."""
    doc_type = DocumentTypeCatalog(db, admin.company_id).get(type_id)
    next_number = SequenceAllocator(db).peek_next(doc_type, utcnow())
    return NextNumberResponse(document_type_id=doc_type.id, next_number=next_number)


# =============================================================================
# RETENTION POLICIES
# =============================================================================

@router.get("/retention-policies", response_model=List[RetentionPolicyResponse])
def list_retention_policies(
    include_inactive: bool = Query(False),
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return RetentionPolicyService(db, admin.company_id).list(include_inactive=include_inactive)


@router.post(
    "/retention-policies",
    response_model=RetentionPolicyResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_retention_policy(
    data: RetentionPolicyCreate,
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    policy = RetentionPolicyService(db, admin.company_id).create(data, actor_id=admin.user_id)
    db.commit()
    return policy


@router.get("/retention-policies/{policy_id}", response_model=RetentionPolicyResponse)
def get_retention_policy(
    policy_id: UUID,
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return RetentionPolicyService(db, admin.company_id).get(policy_id)


@router.patch("/retention-policies/{policy_id}", response_model=RetentionPolicyResponse)
def update_retention_policy(
    policy_id: UUID,
    data: RetentionPolicyUpdate,
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    policy = RetentionPolicyService(db, admin.company_id).update(policy_id, data, actor_id=admin.user_id)
    db.commit()
    return policy


@router.post("/retention-policies/{policy_id}/deactivate", response_model=RetentionPolicyResponse)
def deactivate_retention_policy(
    policy_id: UUID,
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    policy = RetentionPolicyService(db, admin.company_id).deactivate(policy_id, actor_id=admin.user_id)
    db.commit()
    return policy


# =============================================================================
# FOLDER TEMPLATES
# =============================================================================

@router.get("/folder-templates", response_model=List[FolderTemplateResponse])
def list_folder_templates(
    include_inactive: bool = Query(False),
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return FolderTemplateService(db, admin.company_id).list(include_inactive=include_inactive)


@router.post(
    "/folder-templates",
    response_model=FolderTemplateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a folder template",
    description="""
    Create a folder template. Marking it the default of its scope clears
    the previous default.

    **Errors:**
    - 409 duplicate_code: A template with this code exists
    - 422: Empty or duplicate sibling folder names, or a structure that is too deep
    """
)
def create_folder_template(
    data: FolderTemplateCreate,
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    template = FolderTemplateService(db, admin.company_id).create(data, actor_id=admin.user_id)
    db.commit()
    return template


@router.get("/folder-templates/by-code/{code}", response_model=FolderTemplateResponse)
def get_folder_template_by_code(
    code: str,
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return FolderTemplateService(db, admin.company_id).get_by_code(code)


@router.get("/folder-templates/for-scope/{scope}", response_model=List[FolderTemplateResponse])
def list_folder_templates_for_scope(
    scope: TemplateScope,
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return FolderTemplateService(db, admin.company_id).for_scope(scope)


@router.get("/folder-templates/default/{scope}", response_model=FolderTemplateResponse)
def get_default_folder_template(
    scope: TemplateScope,
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return FolderTemplateService(db, admin.company_id).default_for_scope(scope)


@router.get("/folder-templates/{template_id}", response_model=FolderTemplateResponse)
def get_folder_template(
    template_id: UUID,
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return FolderTemplateService(db, admin.company_id).get(template_id)


@router.patch("/folder-templates/{template_id}", response_model=FolderTemplateResponse)
def update_folder_template(
    template_id: UUID,
    data: FolderTemplateUpdate,
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    template = FolderTemplateService(db, admin.company_id).update(template_id, data, actor_id=admin.user_id)
    db.commit()
    return template


@router.post("/folder-templates/{template_id}/deactivate", response_model=FolderTemplateResponse)
def deactivate_folder_template(
    template_id: UUID,
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    template = FolderTemplateService(db, admin.company_id).deactivate(template_id, actor_id=admin.user_id)
    db.commit()
    return template


@router.delete("/folder-templates/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_folder_template(
    template_id: UUID,
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """Delete a template and its application history. Folders created from it stay."""
    FolderTemplateService(db, admin.company_id).delete(template_id, actor_id=admin.user_id)
    db.commit()


@router.get(
    "/folder-templates/{template_id}/applications",
    response_model=List[FolderTemplateApplicationResponse],
)
def list_folder_template_applications(
    template_id: UUID,
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return FolderTemplateService(db, admin.company_id).applications(template_id)


# =============================================================================
# RETENTION REPORT
# =============================================================================

@router.get(
    "/retention/disposition-candidates",
    response_model=List[DispositionCandidateResponse],
    summary="Documents past retention",
    description="Live documents whose retention expired and that are not on legal hold. Report only.",
)
def list_disposition_candidates(
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    candidates = RetentionEngine(db, admin.company_id).disposition_candidates()
    return [
        DispositionCandidateResponse(
            document_id=c.document.id,
            name=c.document.name,
            document_number=c.document.document_number,
            retention_expires_at=c.document.retention_expires_at,
            action=c.action,
        )
        for c in candidates
    ]
