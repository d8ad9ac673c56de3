"""Integration tests for folder templates

Tests cover:
- Template catalog: create, duplicate codes, update, deactivate, delete
- One default per scope
- Applying a template builds the folder structure and records the application
- Inactive templates and bad parents leave no folders behind
"""

import pytest
from sqlalchemy.orm import Session

from document_control.folder_templates import FolderTemplateService
from document_control.folders import FolderHierarchy
from document_control.schemas import (
    FolderTemplateCreate,
    FolderTemplateStructure,
    FolderTemplateUpdate,
)
from domain.document_control import (
    DocumentValidationError,
    DuplicateCode,
    FolderTemplateNotFound,
    ParentNotFound,
    TemplateInactive,
    TemplateScope,
)
from models.folder import Folder
from models.folder_template import FolderTemplateApplication


pytestmark = pytest.mark.integration


@pytest.fixture
def templates(db_session: Session, company_id) -> FolderTemplateService:
    return FolderTemplateService(db_session, company_id)


@pytest.fixture
def project_template(db_session: Session, templates):
    template = templates.create(FolderTemplateCreate(
        code="proj",
        name="Project folders",
        applies_to_scope=TemplateScope.PROJECT,
        structure=FolderTemplateStructure.model_validate({"folders": [
            {"name": "Contracts", "children": [{"name": "Signed"}, {"name": "Drafts"}]},
            {"name": "Drawings"},
        ]}),
        is_default=True,
    ))
    db_session.commit()
    return template


def folder_paths(db_session: Session, company_id):
    return sorted(f.path for f in db_session.query(Folder).filter(Folder.company_id == company_id))


class TestTemplateCatalog:

    def test_create_normalizes_code(self, project_template):
        assert project_template.code == "PROJ"
        assert project_template.is_active is True
        assert project_template.applies_to_scope == "project"
        assert project_template.structure["folders"][1] == {"name": "Drawings", "children": []}

    def test_duplicate_code_any_case(self, templates, project_template):
        with pytest.raises(DuplicateCode) as exc:
            templates.create(FolderTemplateCreate(code="Proj", name="Again"))
        assert exc.value.context["entity"] == "folder_template"

    def test_duplicate_sibling_names_rejected(self, templates):
        structure = FolderTemplateStructure.model_validate(
            {"folders": [{"name": "Invoices"}, {"name": "invoices"}]}
        )

        with pytest.raises(DocumentValidationError):
            templates.create(FolderTemplateCreate(code="FIN", name="Finance", structure=structure))

    def test_get_by_code_and_unknown(self, templates, project_template):
        assert templates.get_by_code("proj").id == project_template.id
        with pytest.raises(FolderTemplateNotFound):
            templates.get_by_code("NOPE")

    def test_other_company_cannot_see(self, db_session: Session, outsider, project_template):
        with pytest.raises(FolderTemplateNotFound):
            FolderTemplateService(db_session, outsider.company_id).get(project_template.id)

    def test_update_structure(self, templates, project_template):
        updated = templates.update(project_template.id, FolderTemplateUpdate(
            name="Project folders v2",
            structure=FolderTemplateStructure.model_validate({"folders": [{"name": "Minutes"}]}),
        ))

        assert updated.name == "Project folders v2"
        assert updated.structure == {"folders": [{"name": "Minutes", "children": []}]}

    def test_deactivate_hides_from_list_and_clears_default(self, templates, project_template):
        templates.deactivate(project_template.id)

        assert templates.list() == []
        assert [t.code for t in templates.list(include_inactive=True)] == ["PROJ"]
        assert project_template.is_default is False
        with pytest.raises(FolderTemplateNotFound):
            templates.default_for_scope(TemplateScope.PROJECT)

    def test_delete_keeps_created_folders(self, db_session: Session, company_id, templates, owner, project_template):
        templates.apply(owner, project_template.id, "Harbour")

        templates.delete(project_template.id)

        with pytest.raises(FolderTemplateNotFound):
            templates.get(project_template.id)
        assert db_session.query(FolderTemplateApplication).count() == 0
        assert "/Harbour/Contracts/Signed" in folder_paths(db_session, company_id)


class TestDefaults:

    def test_new_default_replaces_old(self, templates, project_template):
        second = templates.create(FolderTemplateCreate(
            code="PROJ-LITE",
            name="Small project",
            applies_to_scope=TemplateScope.PROJECT,
            is_default=True,
        ))

        assert templates.default_for_scope(TemplateScope.PROJECT).id == second.id
        assert project_template.is_default is False
        assert [t.code for t in templates.for_scope(TemplateScope.PROJECT)] == ["PROJ-LITE", "PROJ"]

    def test_default_is_per_scope(self, templates, project_template):
        templates.create(FolderTemplateCreate(
            code="DEPT",
            name="Department folders",
            applies_to_scope=TemplateScope.DEPARTMENT,
            is_default=True,
        ))

        assert templates.default_for_scope(TemplateScope.PROJECT).id == project_template.id
        assert templates.for_scope(TemplateScope.AREA) == []

    def test_inactive_template_is_never_default(self, templates):
        template = templates.create(FolderTemplateCreate(
            code="OLD", name="Old", is_default=True, is_active=False,
        ))

        assert template.is_default is False


class TestApply:

    def test_builds_structure_under_new_folder(
        self, db_session: Session, company_id, templates, owner, folder, project_template
    ):
        root, application = templates.apply(owner, project_template.id, "Harbour", parent_folder_id=folder.id)
        db_session.commit()

        assert root.path == "/Legal/Harbour"
        assert folder_paths(db_session, company_id) == [
            "/Legal",
            "/Legal/Harbour",
            "/Legal/Harbour/Contracts",
            "/Legal/Harbour/Contracts/Drafts",
            "/Legal/Harbour/Contracts/Signed",
            "/Legal/Harbour/Drawings",
        ]
        assert application.root_folder_id == root.id
        assert application.folders_created == 5
        assert application.applied_by_user_id == owner.user_id

        tree = FolderHierarchy(db_session, company_id).tree()
        harbour = tree[0].child_folders[0]
        assert [c.name for c in harbour.child_folders] == ["Contracts", "Drawings"]

    def test_applications_newest_first(self, templates, owner, project_template):
        templates.apply(owner, project_template.id, "Harbour")
        templates.apply(owner, project_template.id, "Airport")

        history = templates.applications(project_template.id)

        assert len(history) == 2
        assert {a.root_path for a in history} == {"/Harbour", "/Airport"}
        assert history[0].applied_at >= history[1].applied_at

    def test_inactive_template_refused(self, db_session: Session, company_id, templates, owner, project_template):
        templates.deactivate(project_template.id)

        with pytest.raises(TemplateInactive) as exc:
            templates.apply(owner, project_template.id, "Harbour")

        assert exc.value.context["template_code"] == "PROJ"
        assert folder_paths(db_session, company_id) == []

    def test_unknown_parent(self, db_session: Session, company_id, templates, owner, project_template):
        with pytest.raises(ParentNotFound):
            templates.apply(owner, project_template.id, "Harbour", parent_folder_id=project_template.id)

        assert folder_paths(db_session, company_id) == []

    def test_empty_template_creates_only_root(self, templates, owner):
        empty = templates.create(FolderTemplateCreate(code="BLANK", name="Blank"))

        root, application = templates.apply(owner, empty.id, "Scratch")

        assert root.path == "/Scratch"
        assert application.folders_created == 1
