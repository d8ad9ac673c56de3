"""Folder templates: reusable folder structures per company.

Administrators keep templates per scope (project, department, ...), at most
one of which is the scope's default. Any member can apply an active template,
which creates a new folder and the template's whole structure beneath it
through FolderHierarchy.create, in the caller's transaction. Every
application is recorded so administrators can see where a template was used.
"""

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from audit.service import log_audit_event
from auth.principal import Principal
from domain.document_control import (
    DuplicateCode,
    FolderTemplateNotFound,
    TemplateInactive,
    TemplateScope,
    normalize_structure,
    plan_folders,
)
from models.base import utcnow
from models.folder import Folder
from models.folder_template import FolderTemplate, FolderTemplateApplication
from observability.metrics import folder_template_applications_total
from .folders import FolderHierarchy
from .schemas import FolderTemplateCreate, FolderTemplateUpdate

logger = logging.getLogger(__name__)


class FolderTemplateService:
    """Folder templates of one company."""

    def __init__(self, db: Session, company_id: UUID):
        self.db = db
        self.company_id = company_id

    def get(self, template_id: UUID) -> FolderTemplate:
        template = self.db.query(FolderTemplate).filter(
            FolderTemplate.id == template_id,
            FolderTemplate.company_id == self.company_id,
        ).first()
        if not template:
            raise FolderTemplateNotFound(template_id)
        return template

    def get_by_code(self, code: str) -> FolderTemplate:
        template = self._find_code(code)
        if not template:
            raise FolderTemplateNotFound(code)
        return template

    def list(self, include_inactive: bool = False) -> List[FolderTemplate]:
        query = self.db.query(FolderTemplate).filter(FolderTemplate.company_id == self.company_id)
        if not include_inactive:
            query = query.filter(FolderTemplate.is_active.is_(True))
        return query.order_by(FolderTemplate.code).all()

    def for_scope(self, scope: TemplateScope) -> List[FolderTemplate]:
        """Active templates of a scope, the default first."""
        return self.db.query(FolderTemplate).filter(
            FolderTemplate.company_id == self.company_id,
            FolderTemplate.applies_to_scope == TemplateScope(scope).value,
            FolderTemplate.is_active.is_(True),
        ).order_by(FolderTemplate.is_default.desc(), FolderTemplate.code).all()

    def default_for_scope(self, scope: TemplateScope) -> FolderTemplate:
        """
        Raises:
            FolderTemplateNotFound: If the scope has no active default
        """
        scope = TemplateScope(scope)
        template = self.db.query(FolderTemplate).filter(
            FolderTemplate.company_id == self.company_id,
            FolderTemplate.applies_to_scope == scope.value,
            FolderTemplate.is_default.is_(True),
            FolderTemplate.is_active.is_(True),
        ).first()
        if not template:
            raise FolderTemplateNotFound(f"default for scope {scope.value}")
        return template

    def create(self, data: FolderTemplateCreate, actor_id: Optional[UUID] = None) -> FolderTemplate:
        """Create a template.

        Raises:
            DuplicateCode: If the code exists in this company, in any case
            DocumentValidationError: If the structure is invalid
        """
        code = data.code.strip().upper()
        if self._find_code(code):
            raise DuplicateCode(code, entity="folder_template")
        structure = normalize_structure(data.structure.model_dump())

        template = FolderTemplate(
            company_id=self.company_id,
            code=code,
            name=data.name.strip(),
            description=data.description,
            applies_to_scope=data.applies_to_scope.value,
            structure=structure,
            is_default=data.is_default and data.is_active,
            is_active=data.is_active,
        )
        self.db.add(template)
        self.db.flush()
        if template.is_default:
            self._clear_other_defaults(template)

        self._audit("FOLDER_TEMPLATE_CREATED", template, actor_id, {"code": template.code})
        logger.info(
            f"Created folder template {template.code}",
            extra={"company_id": str(self.company_id)},
        )
        return template

    def update(
        self,
        template_id: UUID,
        data: FolderTemplateUpdate,
        actor_id: Optional[UUID] = None
    ) -> FolderTemplate:
        """Patch a template. Folders created from it earlier are not touched."""
        template = self.get(template_id)
        patch = data.model_dump(exclude_unset=True)

        if patch.get("code") is not None:
            new_code = patch["code"].strip().upper()
            existing = self._find_code(new_code)
            if existing and existing.id != template.id:
                raise DuplicateCode(new_code, entity="folder_template")
            template.code = new_code
        if patch.get("name") is not None:
            template.name = patch["name"].strip()
        if "description" in patch:
            template.description = patch["description"]
        if patch.get("structure") is not None:
            template.structure = normalize_structure(patch["structure"])
        if patch.get("is_active") is not None:
            template.is_active = patch["is_active"]
        if patch.get("is_default") is not None:
            template.is_default = patch["is_default"]
        if not template.is_active:
            template.is_default = False
        self.db.flush()
        if template.is_default:
            self._clear_other_defaults(template)

        self._audit("FOLDER_TEMPLATE_UPDATED", template, actor_id, {"fields": sorted(patch.keys())})
        return template

    def deactivate(self, template_id: UUID, actor_id: Optional[UUID] = None) -> FolderTemplate:
        template = self.get(template_id)
        if not template.is_active:
            return template
        template.is_active = False
        template.is_default = False
        self.db.flush()

        self._audit("FOLDER_TEMPLATE_DEACTIVATED", template, actor_id, {"code": template.code})
        return template

    def delete(self, template_id: UUID, actor_id: Optional[UUID] = None) -> None:
        """Remove a template and its application history. Created folders stay."""
        template = self.get(template_id)
        self.db.query(FolderTemplateApplication).filter(
            FolderTemplateApplication.template_id == template.id
        ).delete(synchronize_session=False)
        self.db.delete(template)
        self.db.flush()

        self._audit("FOLDER_TEMPLATE_DELETED", template, actor_id, {"code": template.code})
        logger.info(
            f"Deleted folder template {template.code}",
            extra={"company_id": str(self.company_id)},
        )

    def apply(
        self,
        principal: Principal,
        template_id: UUID,
        name: str,
        parent_folder_id: Optional[UUID] = None,
        description: Optional[str] = None
    ) -> Tuple[Folder, FolderTemplateApplication]:
        """Create folder ``name`` under parent_folder_id and the template's structure inside it.

        Nothing is committed here; a failure part-way leaves the transaction
        for the caller to roll back.

        Raises:
            FolderTemplateNotFound: If the template is unknown in this company
            TemplateInactive: If the template is deactivated
            ParentNotFound: If parent_folder_id is set but unknown
            DocumentValidationError: If the name is empty or contains '/'
        """
        template = self.get(template_id)
        if not template.is_active:
            folder_template_applications_total.labels(outcome="inactive").inc()
            raise TemplateInactive(template.id, template.code)

        hierarchy = FolderHierarchy(self.db, self.company_id)
        root = hierarchy.create(principal, name, parent_folder_id=parent_folder_id, description=description)

        created = {None: root}
        for planned in plan_folders(template.structure):
            parent = created[planned.parent_key]
            created[planned.key] = hierarchy.create(principal, planned.name, parent_folder_id=parent.id)

        application = FolderTemplateApplication(
            company_id=self.company_id,
            template_id=template.id,
            root_folder_id=root.id,
            root_path=root.path,
            folders_created=len(created),
            applied_by_user_id=principal.user_id,
            applied_at=utcnow(),
        )
        self.db.add(application)
        self.db.flush()
        folder_template_applications_total.labels(outcome="ok").inc()

        log_audit_event(
            db=self.db,
            company_id=self.company_id,
            action="FOLDER_TEMPLATE_APPLIED",
            actor_id=principal.user_id,
            entity_type="folder",
            entity_id=root.id,
            metadata={
                "template_id": str(template.id),
                "template_code": template.code,
                "folders_created": len(created),
            },
        )
        logger.info(
            f"Applied folder template {template.code} at {root.path} ({len(created)} folders)",
            extra={"company_id": str(self.company_id), "user_id": str(principal.user_id)},
        )
        return root, application

    def applications(self, template_id: UUID) -> List[FolderTemplateApplication]:
        """Where a template was applied, newest first."""
        template = self.get(template_id)
        return self.db.query(FolderTemplateApplication).filter(
            FolderTemplateApplication.template_id == template.id,
        ).order_by(FolderTemplateApplication.applied_at.desc()).all()

    def _clear_other_defaults(self, template: FolderTemplate) -> None:
        self.db.query(FolderTemplate).filter(
            FolderTemplate.company_id == self.company_id,
            FolderTemplate.applies_to_scope == template.applies_to_scope,
            FolderTemplate.id != template.id,
            FolderTemplate.is_default.is_(True),
        ).update({"is_default": False})

    def _find_code(self, code: str) -> Optional[FolderTemplate]:
        return self.db.query(FolderTemplate).filter(
            FolderTemplate.company_id == self.company_id,
            func.upper(FolderTemplate.code) == code.strip().upper(),
        ).first()

    def _audit(self, action: str, template: FolderTemplate, actor_id, metadata) -> None:
        log_audit_event(
            db=self.db,
            company_id=self.company_id,
            action=action,
            actor_id=actor_id,
            entity_type="folder_template",
            entity_id=template.id,
            metadata=metadata,
        )
