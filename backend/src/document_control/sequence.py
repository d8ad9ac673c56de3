"""Document number allocation.

Each numbering scope (document type, year) owns one counter row. Allocation
increments that row with a single UPDATE inside the caller's transaction:
the UPDATE takes the row's write lock, so concurrent creations in the same
scope queue behind each other until the first transaction commits or rolls
back. A rolled-back creation returns its number with it; a committed
creation keeps its number forever, even if the document is later deleted.
"""

import logging
from datetime import datetime
from typing import Tuple
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from domain.document_control.numbering import number_for, sequence_scope_year
from models.document_sequence import DocumentSequence
from models.document_type import DocumentType
from observability.metrics import document_numbers_allocated_total

logger = logging.getLogger(__name__)

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class SequenceAllocator:
    """Hands out document numbers from per-scope counters."""

    def __init__(self, db: Session):
        self.db = db

    def allocate(self, doc_type: DocumentType, now: datetime) -> Tuple[int, str]:
        """Consume the next counter value of doc_type's scope.

        Returns:
            (counter, formatted document number)
        """
        year = sequence_scope_year(doc_type, now)
        self._ensure_scope(doc_type.id, year)

        self.db.execute(
            update(DocumentSequence)
            .where(
                DocumentSequence.document_type_id == doc_type.id,
                DocumentSequence.year == year,
            )
            .values(last_value=DocumentSequence.last_value + 1)
            .execution_options(synchronize_session=False)
        )
        counter = self.db.execute(
            select(DocumentSequence.last_value).where(
                DocumentSequence.document_type_id == doc_type.id,
                DocumentSequence.year == year,
            )
        ).scalar_one()

        number = number_for(doc_type, counter, now)
        document_numbers_allocated_total.inc()
        logger.debug(
            f"Allocated document number {number}",
            extra={"document_type_id": str(doc_type.id), "scope_year": year},
        )
        return counter, number

    def peek_next(self, doc_type: DocumentType, now: datetime) -> str:
        """Number the next allocation would get, without consuming it."""
        year = sequence_scope_year(doc_type, now)
        last_value = self.db.execute(
            select(DocumentSequence.last_value).where(
                DocumentSequence.document_type_id == doc_type.id,
                DocumentSequence.year == year,
            )
        ).scalar_one_or_none()
        return number_for(doc_type, (last_value or 0) + 1, now)

    def _ensure_scope(self, document_type_id: UUID, year: int) -> None:
        dialect = self.db.get_bind().dialect.name
        insert = _INSERT_BY_DIALECT.get(dialect)
        if insert is None:
            raise RuntimeError(f"Unsupported database dialect for numbering: {dialect}")

        self.db.execute(
            insert(DocumentSequence)
            .values(document_type_id=document_type_id, year=year, last_value=0)
            .on_conflict_do_nothing(index_elements=["document_type_id", "year"])
        )
