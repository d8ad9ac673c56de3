"""Integration tests for the document type catalog

Tests cover:
- Code and extension normalization
- Case-insensitive code uniqueness per company
- Code immutability once documents use the type
- Deactivation
- Company isolation
"""

import pytest
from pydantic import ValidationError
from sqlalchemy.orm import Session
from uuid import uuid4

from document_control.catalog import DocumentTypeCatalog
from document_control.schemas import DocumentTypeCreate, DocumentTypeUpdate
from domain.document_control import (
    DocumentTypeNotFound,
    DocumentValidationError,
    DuplicateCode,
    Immutable,
)
from models.audit_log import AuditLog


pytestmark = pytest.mark.integration


class TestCreateDocumentType:

    def test_code_and_extensions_normalized(self, db_session: Session, company_id, admin):
        doc_type = DocumentTypeCatalog(db_session, company_id).create(
            DocumentTypeCreate(code=" sop ", name="Procedure", allowed_extensions=[".PDF", "pdf", " Docx"]),
            actor_id=admin.user_id,
        )

        assert doc_type.code == "SOP"
        assert doc_type.allowed_extensions == ["pdf", "docx"]
        assert doc_type.is_active is True

    def test_creation_is_audited(self, db_session: Session, company_id, admin):
        doc_type = DocumentTypeCatalog(db_session, company_id).create(
            DocumentTypeCreate(code="POL", name="Policy"), actor_id=admin.user_id
        )

        entry = db_session.query(AuditLog).filter(AuditLog.entity_id == doc_type.id).one()
        assert entry.action == "DOCUMENT_TYPE_CREATED"
        assert entry.actor_id == admin.user_id
        assert entry.company_id == company_id

    def test_duplicate_code_any_case(self, db_session: Session, company_id, contract_type):
        with pytest.raises(DuplicateCode) as exc:
            DocumentTypeCatalog(db_session, company_id).create(DocumentTypeCreate(code="Con", name="Again"))

        assert exc.value.context["existing_code"] == "CON"

    def test_same_code_in_other_company(self, db_session: Session, contract_type):
        other = DocumentTypeCatalog(db_session, uuid4()).create(DocumentTypeCreate(code="CON", name="Contract"))
        assert other.code == "CON"

    @pytest.mark.parametrize("digits", [0, 11])
    def test_digit_width_bounds(self, digits):
        with pytest.raises(ValidationError):
            DocumentTypeCreate(code="X", name="X", auto_number_digits=digits)


class TestUpdateDocumentType:

    def test_code_changes_while_unused(self, db_session: Session, company_id, memo_type):
        catalog = DocumentTypeCatalog(db_session, company_id)

        updated = catalog.update(memo_type.id, DocumentTypeUpdate(code="note"))

        assert updated.code == "NOTE"
        assert catalog.get_by_code("note").id == memo_type.id

    def test_code_immutable_once_referenced(self, db_session: Session, company_id, contract_type, document):
        with pytest.raises(Immutable):
            DocumentTypeCatalog(db_session, company_id).update(contract_type.id, DocumentTypeUpdate(code="AGR"))

    def test_other_fields_change_while_referenced(self, db_session: Session, company_id, contract_type, document):
        updated = DocumentTypeCatalog(db_session, company_id).update(
            contract_type.id,
            DocumentTypeUpdate(code="con", name="Contracts", auto_number_digits=6),
        )

        assert updated.name == "Contracts"
        assert updated.auto_number_digits == 6

    def test_rename_onto_existing_code(self, db_session: Session, company_id, contract_type, memo_type):
        with pytest.raises(DuplicateCode):
            DocumentTypeCatalog(db_session, company_id).update(memo_type.id, DocumentTypeUpdate(code="CON"))

    def test_clear_prefix(self, db_session: Session, company_id, contract_type):
        updated = DocumentTypeCatalog(db_session, company_id).update(
            contract_type.id, DocumentTypeUpdate(auto_number_prefix=None)
        )
        assert updated.auto_number_prefix is None


class TestDeactivateAndLookup:

    def test_deactivate_hides_from_list(self, db_session: Session, company_id, contract_type, memo_type):
        catalog = DocumentTypeCatalog(db_session, company_id)

        catalog.deactivate(memo_type.id)

        assert [t.code for t in catalog.list()] == ["CON"]
        assert [t.code for t in catalog.list(include_inactive=True)] == ["CON", "MEMO"]

    def test_deactivate_is_idempotent(self, db_session: Session, company_id, memo_type):
        catalog = DocumentTypeCatalog(db_session, company_id)
        catalog.deactivate(memo_type.id)
        catalog.deactivate(memo_type.id)

        entries = db_session.query(AuditLog).filter(AuditLog.action == "DOCUMENT_TYPE_DEACTIVATED").count()
        assert entries == 1

    def test_require_active_refuses_inactive(self, db_session: Session, company_id, memo_type):
        catalog = DocumentTypeCatalog(db_session, company_id)
        catalog.deactivate(memo_type.id)

        with pytest.raises(DocumentValidationError):
            catalog.require_active(type_id=memo_type.id)

    def test_require_active_refuses_unknown(self, db_session: Session, company_id):
        with pytest.raises(DocumentValidationError):
            DocumentTypeCatalog(db_session, company_id).require_active(code="NOPE")

    def test_other_company_cannot_see_type(self, db_session: Session, contract_type):
        with pytest.raises(DocumentTypeNotFound):
            DocumentTypeCatalog(db_session, uuid4()).get(contract_type.id)

    @pytest.mark.parametrize("name,allowed", [
        ("scan.PDF", True),
        ("draft.docx", True),
        ("sheet.xlsx", False),
        ("no-extension", False),
    ])
    def test_extension_check(self, contract_type, name, allowed):
        assert DocumentTypeCatalog.is_extension_allowed(contract_type, name) is allowed

    def test_empty_extension_set_accepts_anything(self, memo_type):
        assert DocumentTypeCatalog.is_extension_allowed(memo_type, "anything.bin") is True
        assert DocumentTypeCatalog.is_extension_allowed(memo_type, None) is True
