"""Integration tests for explicit access grants and effective permission"""

from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from document_control.grants import GrantService
from domain.document_control import (
    AccessDenied,
    AccessSource,
    Classification,
    DocumentValidationError,
    GrantNotFound,
    PermissionLevel,
)


pytestmark = pytest.mark.integration


@pytest.fixture
def grants(db_session: Session, company_id) -> GrantService:
    return GrantService(db_session, company_id)


@pytest.fixture
def confidential(make_document):
    return make_document(name="Board minutes.pdf", classification=Classification.CONFIDENTIAL)


class TestGrantUser:

    def test_grant_and_effective(self, grants, owner, member, document):
        grant = grants.grant_user(owner, document.id, member.user_id, PermissionLevel.EDIT)

        assert grant.access_level == "edit"
        assert grant.granted_by_user_id == owner.user_id
        decision = grants.effective(member, document.id)
        assert decision.level == PermissionLevel.EDIT
        assert decision.source == AccessSource.USER_GRANT

    def test_regrant_replaces_level(self, grants, owner, member, document):
        first = grants.grant_user(owner, document.id, member.user_id, PermissionLevel.EDIT)
        second = grants.grant_user(owner, document.id, member.user_id, PermissionLevel.VIEW)

        assert second.id == first.id
        assert [g.access_level for g in grants.list(owner, document.id)] == ["view"]
        assert grants.effective(member, document.id).level == PermissionLevel.VIEW

    def test_user_grant_beats_department_grant(self, grants, owner, member, department_id, document):
        grants.grant_department(owner, document.id, department_id, PermissionLevel.EDIT)
        grants.grant_user(owner, document.id, member.user_id, PermissionLevel.VIEW)

        decision = grants.effective(member, document.id)

        assert decision.level == PermissionLevel.VIEW
        assert decision.source == AccessSource.USER_GRANT

    def test_none_level_refused(self, grants, owner, member, document):
        with pytest.raises(DocumentValidationError):
            grants.grant_user(owner, document.id, member.user_id, PermissionLevel.NONE)


class TestGrantDepartment:

    def test_department_grant_opens_confidential(self, grants, owner, member, department_id, confidential):
        assert grants.effective(member, confidential.id).level == PermissionLevel.NONE

        grants.grant_department(owner, confidential.id, department_id, PermissionLevel.VIEW)

        decision = grants.effective(member, confidential.id)
        assert decision.level == PermissionLevel.VIEW
        assert decision.source == AccessSource.DEPARTMENT_GRANT

    def test_other_department_unaffected(self, grants, owner, member, confidential):
        grants.grant_department(owner, confidential.id, uuid4(), PermissionLevel.EDIT)

        assert grants.effective(member, confidential.id).level == PermissionLevel.NONE


class TestWhoManagesGrants:

    def test_viewer_cannot_grant(self, grants, member, guest, document):
        with pytest.raises(AccessDenied):
            grants.grant_user(member, document.id, guest.user_id, PermissionLevel.VIEW)

    def test_manager_with_view_can_grant(self, grants, manager, member, confidential):
        assert grants.effective(manager, confidential.id).source == AccessSource.MANAGEMENT_ROLE

        grant = grants.grant_user(manager, confidential.id, member.user_id, PermissionLevel.VIEW)

        assert grant.granted_by_user_id == manager.user_id

    def test_manager_with_view_cannot_grant_edit(self, grants, manager, member, confidential):
        with pytest.raises(AccessDenied):
            grants.grant_user(manager, confidential.id, manager.user_id, PermissionLevel.EDIT)
        with pytest.raises(AccessDenied):
            grants.grant_user(manager, confidential.id, member.user_id, PermissionLevel.EDIT)

        assert grants.list(manager, confidential.id) == []
        assert grants.effective(manager, confidential.id).level == PermissionLevel.VIEW

    def test_manager_with_edit_can_grant_edit(self, grants, owner, manager, member, confidential):
        grants.grant_user(owner, confidential.id, manager.user_id, PermissionLevel.EDIT)

        grant = grants.grant_user(manager, confidential.id, member.user_id, PermissionLevel.EDIT)

        assert grant.access_level == PermissionLevel.EDIT.value

    def test_granted_editor_can_grant(self, grants, owner, member, guest, document):
        grants.grant_user(owner, document.id, member.user_id, PermissionLevel.EDIT)

        grants.grant_user(member, document.id, guest.user_id, PermissionLevel.VIEW)

        assert grants.effective(guest, document.id).level == PermissionLevel.VIEW


class TestRevoke:

    def test_revoke(self, grants, owner, member, document):
        grant = grants.grant_user(owner, document.id, member.user_id, PermissionLevel.EDIT)

        grants.revoke(owner, grant.id)

        assert grants.list(owner, document.id) == []
        assert grants.effective(member, document.id).source == AccessSource.CLASSIFICATION

    def test_unknown_grant(self, grants, owner):
        with pytest.raises(GrantNotFound):
            grants.revoke(owner, uuid4())

    def test_other_company_cannot_see_grant(self, db_session: Session, grants, owner, member, outsider, document):
        grant = grants.grant_user(owner, document.id, member.user_id, PermissionLevel.EDIT)

        with pytest.raises(GrantNotFound):
            GrantService(db_session, outsider.company_id).revoke(outsider, grant.id)


class TestClassificationDefaults:

    def test_guest_sees_public_only(self, grants, guest, make_document):
        public = make_document(name="Price list.pdf", classification=Classification.PUBLIC)
        internal = make_document(name="Handbook.pdf")

        assert grants.effective(guest, public.id).level == PermissionLevel.VIEW
        assert grants.effective(guest, internal.id).level == PermissionLevel.NONE

    def test_owner_edits_regardless(self, grants, owner, make_document):
        restricted = make_document(name="Payroll.pdf", classification=Classification.RESTRICTED)

        decision = grants.effective(owner, restricted.id)

        assert decision.level == PermissionLevel.EDIT
        assert decision.source == AccessSource.OWNER
