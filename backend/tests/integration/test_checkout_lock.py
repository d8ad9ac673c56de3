"""Integration tests for the checkout lock manager

Tests cover:
- Checkout, renewal and refusal while another user holds the lease
- Lazy expiry and takeover
- Check-in with and without new content
- Grace check-in for a holder whose expired lease was taken over
- Cancel and management force-cancel
- Legal hold interaction
"""

from datetime import timedelta

import pytest
from sqlalchemy.orm import Session

from config import Settings
from document_control.checkout import CheckoutManager
from document_control.grants import GrantService
from document_control.retention import RetentionEngine
from document_control.schemas import NewContent
from domain.document_control import (
    AccessDenied,
    AlreadyCheckedOut,
    DocumentValidationError,
    LegalHoldActive,
    LegalHoldBlocksCheckout,
    NotCheckedOutByYou,
    PermissionLevel,
)
from models.base import utcnow
from models.checkout_lease import CheckoutLease
from models.document_version import DocumentVersion


pytestmark = pytest.mark.integration

T0 = utcnow().replace(microsecond=0)


def content(tag: str, file_type: str = "pdf") -> NewContent:
    return NewContent(
        storage_path=f"blobs/{tag}",
        content_hash=f"sha256:{tag}",
        file_size_bytes=2048,
        file_type=file_type,
    )


@pytest.fixture
def checkout(db_session: Session, company_id) -> CheckoutManager:
    return CheckoutManager(db_session, company_id)


@pytest.fixture
def editor(db_session: Session, company_id, owner, member, document):
    """member with an edit grant on document"""
    GrantService(db_session, company_id).grant_user(owner, document.id, member.user_id, PermissionLevel.EDIT)
    db_session.commit()
    return member


def leases(db_session: Session, document_id):
    return db_session.query(CheckoutLease).filter(
        CheckoutLease.document_id == document_id
    ).order_by(CheckoutLease.checked_out_at).all()


class TestCheckout:

    def test_checkout_takes_lock(self, db_session: Session, checkout, owner, document):
        result = checkout.checkout(owner, document.id, now=T0)

        assert result.is_checked_out is True
        assert result.checked_out_by_user_id == owner.user_id
        assert result.checked_out_at == T0
        assert result.check_out_expires_at == T0 + timedelta(hours=24)
        assert len(leases(db_session, document.id)) == 1

    def test_holder_renews(self, db_session: Session, checkout, owner, document):
        checkout.checkout(owner, document.id, now=T0)

        renewed = checkout.checkout(owner, document.id, duration_hours=48, now=T0 + timedelta(hours=1))

        assert renewed.check_out_expires_at == T0 + timedelta(hours=49)
        rows = leases(db_session, document.id)
        assert len(rows) == 1
        assert rows[0].expires_at == T0 + timedelta(hours=49)

    def test_other_user_refused(self, checkout, owner, editor, document):
        checkout.checkout(owner, document.id, now=T0)

        with pytest.raises(AlreadyCheckedOut) as exc:
            checkout.checkout(editor, document.id, now=T0 + timedelta(hours=1))

        assert exc.value.context["holder_id"] == owner.user_id
        assert exc.value.context["expires_at"] == T0 + timedelta(hours=24)

    def test_viewer_cannot_checkout(self, checkout, member, document):
        with pytest.raises(AccessDenied):
            checkout.checkout(member, document.id)

    def test_expired_lease_taken_over(self, db_session: Session, checkout, owner, editor, document):
        checkout.checkout(owner, document.id, duration_hours=1, now=T0)

        result = checkout.checkout(editor, document.id, now=T0 + timedelta(hours=2))

        assert result.checked_out_by_user_id == editor.user_id
        previous, current = leases(db_session, document.id)
        assert previous.user_id == owner.user_id
        assert previous.superseded_at == T0 + timedelta(hours=2)
        assert current.user_id == editor.user_id
        assert current.is_open

    def test_duration_capped(self, db_session: Session, company_id, owner, document):
        manager = CheckoutManager(db_session, company_id, settings=Settings(CHECKOUT_MAX_HOURS=72))

        result = manager.checkout(owner, document.id, duration_hours=1000, now=T0)

        assert result.check_out_expires_at == T0 + timedelta(hours=72)

    def test_legal_hold_blocks_checkout(self, db_session: Session, company_id, checkout, owner, manager, document):
        RetentionEngine(db_session, company_id).set_legal_hold(manager, document.id, on=True, reason="Dispute")

        with pytest.raises(LegalHoldBlocksCheckout):
            checkout.checkout(owner, document.id)


class TestCheckin:

    def test_checkin_with_content_adds_version(self, db_session: Session, checkout, owner, document):
        checkout.checkout(owner, document.id, now=T0)

        result = checkout.checkin(owner, document.id, content=content("v2"), comment="Redlines", now=T0 + timedelta(hours=1))

        assert result.is_checked_out is False
        assert result.version == 2
        assert result.content_hash == "sha256:v2"
        version = db_session.query(DocumentVersion).filter(
            DocumentVersion.document_id == document.id,
            DocumentVersion.version_number == 2,
        ).one()
        assert version.comment == "Redlines"
        assert version.created_by_user_id == owner.user_id
        assert leases(db_session, document.id)[0].release_reason == "checkin"

    def test_checkin_without_content_keeps_version(self, checkout, owner, document):
        checkout.checkout(owner, document.id, now=T0)

        result = checkout.checkin(owner, document.id, now=T0 + timedelta(minutes=5))

        assert result.version == 1
        assert result.is_checked_out is False

    def test_holder_checks_in_after_expiry(self, checkout, owner, document):
        checkout.checkout(owner, document.id, duration_hours=1, now=T0)

        result = checkout.checkin(owner, document.id, content=content("late"), now=T0 + timedelta(hours=5))

        assert result.version == 2

    def test_not_holder(self, checkout, owner, editor, document):
        checkout.checkout(owner, document.id, now=T0)

        with pytest.raises(NotCheckedOutByYou):
            checkout.checkin(editor, document.id, now=T0)

    def test_not_checked_out(self, checkout, owner, document):
        with pytest.raises(NotCheckedOutByYou):
            checkout.checkin(owner, document.id)

    def test_disallowed_extension(self, checkout, owner, document):
        checkout.checkout(owner, document.id, now=T0)

        with pytest.raises(DocumentValidationError):
            checkout.checkin(owner, document.id, content=content("sheet", file_type="xlsx"), now=T0)

    def test_hold_placed_during_checkout(self, db_session: Session, company_id, checkout, owner, manager, document):
        checkout.checkout(owner, document.id, now=T0)
        RetentionEngine(db_session, company_id).set_legal_hold(manager, document.id, on=True, reason="Dispute")

        with pytest.raises(LegalHoldActive):
            checkout.checkin(owner, document.id, content=content("v2"), now=T0)

        result = checkout.checkin(owner, document.id, now=T0)
        assert result.is_checked_out is False
        assert result.version == 1


class TestGraceCheckin:
    """A holder whose expired lease was taken over still gets one check-in."""

    def test_grace_checkin_records_content_and_keeps_new_lock(
        self, db_session: Session, checkout, owner, editor, document
    ):
        checkout.checkout(owner, document.id, duration_hours=1, now=T0)
        checkout.checkout(editor, document.id, now=T0 + timedelta(hours=2))

        result = checkout.checkin(owner, document.id, content=content("late-owner"), now=T0 + timedelta(hours=3))

        assert result.version == 2
        assert result.content_hash == "sha256:late-owner"
        assert result.checked_out_by_user_id == editor.user_id

        previous = leases(db_session, document.id)[0]
        assert previous.release_reason == "grace_checkin"

        with pytest.raises(NotCheckedOutByYou):
            checkout.checkin(owner, document.id, now=T0 + timedelta(hours=4))

        final = checkout.checkin(editor, document.id, content=content("editor"), now=T0 + timedelta(hours=5))
        assert final.version == 3
        assert final.is_checked_out is False

    def test_fresh_checkout_gives_up_grace(self, db_session: Session, checkout, owner, editor, document):
        checkout.checkout(owner, document.id, duration_hours=1, now=T0)
        checkout.checkout(editor, document.id, now=T0 + timedelta(hours=2))
        checkout.checkin(editor, document.id, now=T0 + timedelta(hours=3))

        checkout.checkout(owner, document.id, now=T0 + timedelta(hours=4))
        checkout.checkin(owner, document.id, now=T0 + timedelta(hours=5))
        checkout.checkout(editor, document.id, duration_hours=8, now=T0 + timedelta(hours=6))

        with pytest.raises(NotCheckedOutByYou):
            checkout.checkin(owner, document.id, content=content("stale"), now=T0 + timedelta(hours=7))

        db_session.refresh(document)
        assert document.version == 1
        assert document.checked_out_by_user_id == editor.user_id
        first = leases(db_session, document.id)[0]
        assert first.release_reason == "replaced"
        assert all(not lease.is_open for lease in leases(db_session, document.id)[:-1])

    def test_only_latest_superseded_lease_gets_grace(
        self, db_session: Session, checkout, owner, editor, document
    ):
        checkout.checkout(owner, document.id, duration_hours=1, now=T0)
        checkout.checkout(editor, document.id, duration_hours=1, now=T0 + timedelta(hours=2))
        checkout.checkout(owner, document.id, duration_hours=1, now=T0 + timedelta(hours=4))
        checkout.checkout(editor, document.id, duration_hours=8, now=T0 + timedelta(hours=6))

        # owner's lease from T0+4h is the latest superseded one
        result = checkout.checkin(owner, document.id, content=content("late"), now=T0 + timedelta(hours=7))
        assert result.version == 2
        assert result.checked_out_by_user_id == editor.user_id

        with pytest.raises(NotCheckedOutByYou):
            checkout.checkin(owner, document.id, now=T0 + timedelta(hours=8))

    def test_grace_content_needs_current_edit_permission(
        self, db_session: Session, company_id, checkout, owner, editor, document
    ):
        grants = GrantService(db_session, company_id)
        grant = grants.list(owner, document.id)[0]
        checkout.checkout(editor, document.id, duration_hours=1, now=T0)
        checkout.checkout(owner, document.id, now=T0 + timedelta(hours=2))
        grants.revoke(owner, grant.id)
        db_session.commit()

        with pytest.raises(AccessDenied):
            checkout.checkin(editor, document.id, content=content("revoked"), now=T0 + timedelta(hours=3))

        db_session.refresh(document)
        assert document.version == 1
        assert db_session.query(DocumentVersion).filter(
            DocumentVersion.document_id == document.id
        ).count() == 1

    def test_holder_content_needs_current_edit_permission(
        self, db_session: Session, company_id, checkout, owner, editor, document
    ):
        grants = GrantService(db_session, company_id)
        grant = grants.list(owner, document.id)[0]
        checkout.checkout(editor, document.id, now=T0)
        grants.revoke(owner, grant.id)
        db_session.commit()

        with pytest.raises(AccessDenied):
            checkout.checkin(editor, document.id, content=content("revoked"), now=T0 + timedelta(hours=1))

        db_session.refresh(document)
        assert document.version == 1
        assert document.checked_out_by_user_id == editor.user_id


class TestCancel:

    def test_holder_cancels(self, db_session: Session, checkout, owner, document):
        checkout.checkout(owner, document.id, now=T0)

        result = checkout.cancel(owner, document.id, now=T0)

        assert result.is_checked_out is False
        assert leases(db_session, document.id)[0].release_reason == "cancel"

    def test_non_holder_cannot_cancel(self, checkout, owner, editor, document):
        checkout.checkout(owner, document.id, now=T0)

        with pytest.raises(NotCheckedOutByYou):
            checkout.cancel(editor, document.id, now=T0)


class TestForceCancel:

    def test_manager_breaks_lock(self, db_session: Session, checkout, owner, manager, document):
        checkout.checkout(owner, document.id, now=T0)

        result = checkout.force_cancel(manager, document.id, reason="Owner on leave", now=T0)

        assert result.is_checked_out is False
        assert leases(db_session, document.id)[0].release_reason == "force_cancel"

    def test_no_grace_after_force_cancel(self, checkout, owner, manager, document):
        checkout.checkout(owner, document.id, now=T0)
        checkout.force_cancel(manager, document.id, reason="Owner on leave", now=T0)

        with pytest.raises(NotCheckedOutByYou):
            checkout.checkin(owner, document.id, content=content("v2"), now=T0)

    def test_member_refused(self, checkout, owner, editor, document):
        checkout.checkout(owner, document.id, now=T0)

        with pytest.raises(AccessDenied):
            checkout.force_cancel(editor, document.id, reason="Mine now", now=T0)

    def test_reason_required(self, checkout, owner, manager, document):
        checkout.checkout(owner, document.id, now=T0)

        with pytest.raises(DocumentValidationError):
            checkout.force_cancel(manager, document.id, reason="  ", now=T0)

    def test_nothing_to_cancel(self, checkout, manager, document):
        with pytest.raises(DocumentValidationError):
            checkout.force_cancel(manager, document.id, reason="Stuck", now=T0)


class TestStatus:

    def test_available(self, checkout, owner, document):
        status = checkout.status(owner, document.id)
        assert status.is_checked_out is False
        assert status.checked_out_by_user_id is None

    def test_held_and_expired(self, checkout, owner, editor, document):
        checkout.checkout(owner, document.id, duration_hours=1, now=T0)

        mine = checkout.status(owner, document.id, now=T0)
        theirs = checkout.status(editor, document.id, now=T0 + timedelta(hours=2))

        assert mine.is_mine is True
        assert mine.is_expired is False
        assert theirs.is_mine is False
        assert theirs.is_expired is True
        assert theirs.checked_out_by_user_id == owner.user_id
