"""Folder hierarchy of a company.

Folders form a strict tree stored as flat rows with a parent_folder_id
back-reference. Every walk over a subtree is an iterative breadth-first
search over those rows; nothing here recurses.

Deleting a non-empty folder needs cascade=True and is all-or-nothing: every
live document in the subtree is checked against legal hold, retention,
checkout and edit permission before a single row is removed.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from audit.service import log_audit_event
from auth.principal import Principal
from domain.document_control import (
    DocumentValidationError,
    FolderNotFound,
    NotEmpty,
    ParentNotFound,
    assert_can_delete,
)
from domain.document_control.errors import DocumentControlError
from models.access_grant import AccessGrant
from models.base import utcnow
from models.checkout_lease import CheckoutLease
from models.document import Document
from models.document_version import DocumentVersion
from models.folder import Folder
from observability.metrics import policy_refusals_total
from .guards import assert_not_locked_by_other, require_edit

logger = logging.getLogger(__name__)

PATH_SEPARATOR = "/"


@dataclass
class FolderNode:
    """One folder of the tree view with its children attached."""
    id: UUID
    name: str
    path: str
    document_count: int
    child_folders: List["FolderNode"] = field(default_factory=list)


def child_path(parent_path: Optional[str], name: str) -> str:
    """'/Quality' + 'SOPs' -> '/Quality/SOPs'; a root folder gets '/<name>'."""
    return f"{parent_path or ''}{PATH_SEPARATOR}{name}"


class FolderHierarchy:
    """Folder tree of one company."""

    def __init__(self, db: Session, company_id: UUID):
        self.db = db
        self.company_id = company_id

    def get(self, folder_id: UUID) -> Folder:
        folder = self.db.query(Folder).filter(
            Folder.id == folder_id,
            Folder.company_id == self.company_id,
        ).first()
        if not folder:
            raise FolderNotFound(folder_id)
        return folder

    def children(self, folder_id: Optional[UUID]) -> List[Folder]:
        """Direct child folders; folder_id None lists the root folders."""
        if folder_id is not None:
            self.get(folder_id)
        return self.db.query(Folder).filter(
            Folder.company_id == self.company_id,
            Folder.parent_folder_id == folder_id if folder_id is not None
            else Folder.parent_folder_id.is_(None),
        ).order_by(Folder.name).all()

    def document_count(self, folder_id: UUID) -> int:
        """Live documents directly inside the folder."""
        return self.db.query(func.count(Document.id)).filter(
            Document.company_id == self.company_id,
            Document.folder_id == folder_id,
            Document.deleted_at.is_(None),
        ).scalar()

    def document_counts(self) -> Dict[UUID, int]:
        rows = self.db.query(Document.folder_id, func.count(Document.id)).filter(
            Document.company_id == self.company_id,
            Document.deleted_at.is_(None),
        ).group_by(Document.folder_id).all()
        return {folder_id: count for folder_id, count in rows}

    def tree(self) -> List[FolderNode]:
        """Whole folder tree of the company, root folders first, siblings by name."""
        folders = self.db.query(Folder).filter(
            Folder.company_id == self.company_id
        ).order_by(Folder.name).all()
        counts = self.document_counts()

        nodes = {
            f.id: FolderNode(id=f.id, name=f.name, path=f.path, document_count=counts.get(f.id, 0))
            for f in folders
        }
        roots = []
        for folder in folders:
            node = nodes[folder.id]
            parent = nodes.get(folder.parent_folder_id) if folder.parent_folder_id else None
            if parent is None:
                roots.append(node)
            else:
                parent.child_folders.append(node)
        return roots

    def create(
        self,
        principal: Principal,
        name: str,
        parent_folder_id: Optional[UUID] = None,
        description: Optional[str] = None
    ) -> Folder:
        """Create a folder under parent_folder_id, or at the root.

        Raises:
            ParentNotFound: If parent_folder_id is set but unknown
            DocumentValidationError: If the name is empty or contains '/'
        """
        parent = None
        if parent_folder_id is not None:
            try:
                parent = self.get(parent_folder_id)
            except FolderNotFound:
                raise ParentNotFound(parent_folder_id)

        try:
            folder = Folder(
                company_id=self.company_id,
                parent_folder_id=parent.id if parent else None,
                name=name,
                description=description,
                created_by_user_id=principal.user_id,
            )
        except ValueError as e:
            raise DocumentValidationError(str(e), name=name)
        folder.path = child_path(parent.path if parent else None, folder.name)

        self.db.add(folder)
        self.db.flush()

        log_audit_event(
            db=self.db,
            company_id=self.company_id,
            action="FOLDER_CREATED",
            actor_id=principal.user_id,
            entity_type="folder",
            entity_id=folder.id,
            metadata={"path": folder.path},
        )
        logger.info(
            f"Created folder {folder.path}",
            extra={"company_id": str(self.company_id), "user_id": str(principal.user_id)},
        )
        return folder

    def rename(self, principal: Principal, folder_id: UUID, name: str) -> Folder:
        """Rename a folder and rewrite the path of every descendant."""
        folder = self.get(folder_id)
        old_path = folder.path

        try:
            folder.name = name
        except ValueError as e:
            raise DocumentValidationError(str(e), name=name)

        parent_path = None
        if folder.parent_folder_id is not None:
            parent_path = self.get(folder.parent_folder_id).path
        folder.path = child_path(parent_path, folder.name)

        for parent, child in self._walk_edges(folder):
            child.path = child_path(parent.path, child.name)
        self.db.flush()

        log_audit_event(
            db=self.db,
            company_id=self.company_id,
            action="FOLDER_RENAMED",
            actor_id=principal.user_id,
            entity_type="folder",
            entity_id=folder.id,
            metadata={"old_path": old_path, "new_path": folder.path},
        )
        logger.info(
            f"Renamed folder {old_path} to {folder.path}",
            extra={"company_id": str(self.company_id), "user_id": str(principal.user_id)},
        )
        return folder

    def delete(
        self,
        principal: Principal,
        folder_id: UUID,
        cascade: bool = False,
        admin_override: bool = False,
        now: Optional[datetime] = None
    ) -> Dict[str, int]:
        """Delete a folder, and with cascade=True everything below it.

        Every live document in the subtree is checked first. The first
        failing check aborts the whole delete before any row is removed.

        Raises:
            NotEmpty: If the folder has children or documents and cascade is False
            LegalHoldBlocksDeletion: If any document in the subtree is on hold
            RetentionActive: If any document is retained and no override was given
            AlreadyCheckedOut: If another user holds a document's checkout
            AccessDenied: If the caller may not edit a document in the subtree

        Returns:
            Counts of removed folders and documents
        """
        now = now or utcnow()
        folder = self.get(folder_id)
        subtree = self._subtree(folder)
        folder_ids = [f.id for f in subtree]

        documents = self.db.query(Document).filter(
            Document.company_id == self.company_id,
            Document.folder_id.in_(folder_ids),
        ).all()
        live = [d for d in documents if d.deleted_at is None]

        if not cascade and (len(subtree) > 1 or live):
            raise NotEmpty(folder.id, child_folders=len(subtree) - 1, documents=len(live))

        for document in live:
            try:
                require_edit(self.db, principal, document)
                assert_not_locked_by_other(document, principal, now)
                assert_can_delete(document, now, admin_override=admin_override)
            except DocumentControlError as e:
                policy_refusals_total.labels(code=e.code).inc()
                logger.warning(
                    f"Folder delete of {folder.path} blocked by document {document.id}: {e.code}",
                    extra={
                        "company_id": str(self.company_id),
                        "user_id": str(principal.user_id),
                        "document_id": str(document.id),
                    },
                )
                raise

        document_ids = [d.id for d in documents]
        if document_ids:
            for model in (AccessGrant, DocumentVersion, CheckoutLease):
                self.db.query(model).filter(
                    model.document_id.in_(document_ids)
                ).delete(synchronize_session=False)
            for document in documents:
                self.db.delete(document)
            self.db.flush()

        # Deepest first so no folder loses its parent before its children go
        for child in reversed(subtree):
            self.db.delete(child)
            self.db.flush()

        log_audit_event(
            db=self.db,
            company_id=self.company_id,
            action="FOLDER_DELETED",
            actor_id=principal.user_id,
            entity_type="folder",
            entity_id=folder_id,
            metadata={
                "path": folder.path,
                "folders_deleted": len(subtree),
                "documents_deleted": len(live),
                "admin_override": admin_override,
            },
        )
        logger.info(
            f"Deleted folder {folder.path} ({len(subtree)} folders, {len(live)} documents)",
            extra={"company_id": str(self.company_id), "user_id": str(principal.user_id)},
        )
        return {"folders_deleted": len(subtree), "documents_deleted": len(live)}

    def _subtree(self, root: Folder) -> List[Folder]:
        """root and all its descendants in breadth-first order."""
        ordered = [root]
        for _, child in self._walk_edges(root):
            ordered.append(child)
        return ordered

    def _walk_edges(self, root: Folder):
        """Yield (parent, child) pairs below root, breadth first."""
        queue = deque([root])
        seen = {root.id}
        while queue:
            parent = queue.popleft()
            for child in self.db.query(Folder).filter(
                Folder.company_id == self.company_id,
                Folder.parent_folder_id == parent.id,
            ).all():
                if child.id in seen:
                    continue
                seen.add(child.id)
                queue.append(child)
                yield parent, child
