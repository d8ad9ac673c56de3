"""Folder hierarchy API"""

from dataclasses import asdict
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from auth.dependencies import get_current_member_or_higher, get_current_principal
from auth.principal import Principal
from database import get_db
from domain.document_control import TemplateScope
from models.folder import Folder
from .folder_templates import FolderTemplateService
from .folders import FolderHierarchy
from .schemas import (
    DocumentResponse,
    FolderCreate,
    FolderDeleteResponse,
    FolderFromTemplate,
    FolderRename,
    FolderResponse,
    FolderTemplateResponse,
    FolderTreeNode,
)
from .store import DocumentStore

router = APIRouter(prefix="/folders", tags=["folders"])


def _folder_response(hierarchy: FolderHierarchy, folder: Folder) -> FolderResponse:
    return FolderResponse(
        id=folder.id,
        parent_folder_id=folder.parent_folder_id,
        name=folder.name,
        path=folder.path,
        description=folder.description,
        document_count=hierarchy.document_count(folder.id),
    )


@router.get(
    "/tree",
    response_model=List[FolderTreeNode],
    summary="Folder tree",
    description="All folders of the company as nested nodes with live document counts.",
)
def get_folder_tree(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    roots = FolderHierarchy(db, principal.company_id).tree()
    return [FolderTreeNode(**asdict(node)) for node in roots]


@router.get("", response_model=List[FolderResponse])
def list_child_folders(
    parent_folder_id: Optional[UUID] = Query(None, description="Omit for root folders"),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    hierarchy = FolderHierarchy(db, principal.company_id)
    return [_folder_response(hierarchy, f) for f in hierarchy.children(parent_folder_id)]


@router.post(
    "",
    response_model=FolderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a folder",
    description="""
    Create a folder at the root or under parent_folder_id.

    **Errors:**
    - 404 parent_not_found: parent_folder_id does not exist in this company
    - 422: Empty name or a name containing '/'
    """
)
def create_folder(
    data: FolderCreate,
    principal: Principal = Depends(get_current_member_or_higher),
    db: Session = Depends(get_db),
):
    hierarchy = FolderHierarchy(db, principal.company_id)
    folder = hierarchy.create(
        principal,
        name=data.name,
        parent_folder_id=data.parent_folder_id,
        description=data.description,
    )
    db.commit()
    return _folder_response(hierarchy, folder)


@router.get("/templates", response_model=List[FolderTemplateResponse])
def list_available_folder_templates(
    scope: Optional[TemplateScope] = Query(None, description="Only templates for this scope, default first"),
    principal: Principal = Depends(get_current_member_or_higher),
    db: Session = Depends(get_db),
):
    """Active templates a member can pick when creating a folder."""
    service = FolderTemplateService(db, principal.company_id)
    return service.for_scope(scope) if scope is not None else service.list()


@router.post(
    "/from-template",
    response_model=FolderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a folder from a template",
    description="""
    Create folder `name` under parent_folder_id and the template's whole
    folder structure inside it, in one transaction.

    **Errors:**
    - 404 folder_template_not_found: Unknown template
    - 404 parent_not_found: parent_folder_id does not exist in this company
    - 409 template_inactive: Inactive templates cannot be applied
    """
)
def create_folder_from_template(
    data: FolderFromTemplate,
    principal: Principal = Depends(get_current_member_or_higher),
    db: Session = Depends(get_db),
):
    root, _ = FolderTemplateService(db, principal.company_id).apply(
        principal,
        data.template_id,
        name=data.name,
        parent_folder_id=data.parent_folder_id,
        description=data.description,
    )
    db.commit()
    return _folder_response(FolderHierarchy(db, principal.company_id), root)


@router.get("/{folder_id}", response_model=FolderResponse)
def get_folder(
    folder_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    hierarchy = FolderHierarchy(db, principal.company_id)
    return _folder_response(hierarchy, hierarchy.get(folder_id))


@router.patch("/{folder_id}", response_model=FolderResponse, summary="Rename a folder")
def rename_folder(
    folder_id: UUID,
    data: FolderRename,
    principal: Principal = Depends(get_current_member_or_higher),
    db: Session = Depends(get_db),
):
    """Rename a folder. Paths of all descendant folders are rewritten."""
    hierarchy = FolderHierarchy(db, principal.company_id)
    folder = hierarchy.rename(principal, folder_id, data.name)
    db.commit()
    return _folder_response(hierarchy, folder)


@router.get("/{folder_id}/documents", response_model=List[DocumentResponse])
def list_folder_documents(
    folder_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Live documents directly in this folder that the caller may view."""
    return DocumentStore(db, principal.company_id).list_folder(principal, folder_id)


@router.delete(
    "/{folder_id}",
    response_model=FolderDeleteResponse,
    summary="Delete a folder",
    description="""
    Delete an empty folder, or with cascade=true the whole subtree and its
    documents. Every document is checked before anything is removed, so a
    single legal hold, retention block or foreign checkout aborts the delete.

    override=true skips the retention check and is honoured for ADMIN only.
    Legal holds are never overridden.
    """
)
def delete_folder(
    folder_id: UUID,
    cascade: bool = Query(False),
    override: bool = Query(False),
    principal: Principal = Depends(get_current_member_or_higher),
    db: Session = Depends(get_db),
):
    result = FolderHierarchy(db, principal.company_id).delete(
        principal,
        folder_id,
        cascade=cascade,
        admin_override=override and principal.is_admin,
    )
    db.commit()
    return FolderDeleteResponse(**result)
