"""Unit tests for retention and legal hold rules"""

from datetime import datetime, timedelta
from types import SimpleNamespace
from uuid import uuid4

import pytest

from domain.document_control import (
    DocumentValidationError,
    LegalHoldActive,
    LegalHoldBlocksDeletion,
    RetentionActive,
    RetentionTrigger,
    assert_can_change_content,
    assert_can_delete,
    compute_retention_expiry,
    reference_date_for,
)
from domain.document_control.errors import ErrorCategory

NOW = datetime(2025, 6, 1, 12, 0, 0)


def make_document(legal_hold=False, retention_expires_at=None, **dates):
    return SimpleNamespace(
        id=uuid4(),
        legal_hold=legal_hold,
        retention_expires_at=retention_expires_at,
        created_at=dates.get("created_at", NOW - timedelta(days=10)),
        updated_at=dates.get("updated_at"),
        approved_at=dates.get("approved_at"),
    )


class TestComputeRetentionExpiry:

    def test_adds_days(self):
        assert compute_retention_expiry(365, datetime(2025, 1, 1)) == datetime(2026, 1, 1)

    def test_zero_days_refused(self):
        with pytest.raises(DocumentValidationError):
            compute_retention_expiry(0, NOW)


class TestReferenceDate:

    def test_created(self):
        document = make_document(created_at=datetime(2024, 1, 1))
        assert reference_date_for(RetentionTrigger.CREATED, document) == datetime(2024, 1, 1)

    def test_modified_falls_back_to_created(self):
        document = make_document(created_at=datetime(2024, 1, 1))
        assert reference_date_for(RetentionTrigger.MODIFIED, document) == datetime(2024, 1, 1)

    def test_modified(self):
        document = make_document(updated_at=datetime(2024, 5, 1))
        assert reference_date_for(RetentionTrigger.MODIFIED, document) == datetime(2024, 5, 1)

    def test_approved_requires_approval_date(self):
        with pytest.raises(DocumentValidationError):
            reference_date_for(RetentionTrigger.APPROVED, make_document())

    def test_approved(self):
        document = make_document(approved_at=datetime(2024, 2, 2))
        assert reference_date_for(RetentionTrigger.APPROVED, document) == datetime(2024, 2, 2)


class TestAssertCanDelete:

    def test_plain_document_deletable(self):
        assert_can_delete(make_document(), NOW)

    def test_legal_hold_blocks(self):
        with pytest.raises(LegalHoldBlocksDeletion) as exc:
            assert_can_delete(make_document(legal_hold=True), NOW)
        assert exc.value.category == ErrorCategory.POLICY

    def test_legal_hold_not_overridable(self):
        with pytest.raises(LegalHoldBlocksDeletion):
            assert_can_delete(make_document(legal_hold=True), NOW, admin_override=True)

    def test_active_retention_blocks(self):
        expires = NOW + timedelta(days=30)
        with pytest.raises(RetentionActive) as exc:
            assert_can_delete(make_document(retention_expires_at=expires), NOW)
        assert exc.value.context["retention_expires_at"] == expires

    def test_admin_override_skips_retention(self):
        assert_can_delete(make_document(retention_expires_at=NOW + timedelta(days=30)), NOW, admin_override=True)

    def test_expired_retention_allows_delete(self):
        assert_can_delete(make_document(retention_expires_at=NOW - timedelta(seconds=1)), NOW)

    def test_hold_reported_before_retention(self):
        document = make_document(legal_hold=True, retention_expires_at=NOW + timedelta(days=1))
        with pytest.raises(LegalHoldBlocksDeletion):
            assert_can_delete(document, NOW)


class TestAssertCanChangeContent:

    def test_free_document(self):
        assert_can_change_content(make_document())

    def test_hold_blocks_content(self):
        with pytest.raises(LegalHoldActive):
            assert_can_change_content(make_document(legal_hold=True))

    def test_retention_does_not_block_content(self):
        assert_can_change_content(make_document(retention_expires_at=NOW + timedelta(days=90)))
