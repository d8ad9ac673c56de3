"""Document type catalog.

Per-company configuration of document types: accepted file extensions,
auto-numbering rule, approval requirement and active flag. A catalog is
always opened for one company; nothing here is process-wide state.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from audit.service import log_audit_event
from domain.document_control import (
    DocumentTypeNotFound,
    DocumentValidationError,
    DuplicateCode,
    Immutable,
)
from domain.document_control.numbering import validate_digits, MIN_DIGITS, MAX_DIGITS
from models.document import Document
from models.document_type import DocumentType
from .schemas import DocumentTypeCreate, DocumentTypeUpdate

logger = logging.getLogger(__name__)


def normalize_extension(value: str) -> str:
    """'.PDF' -> 'pdf'"""
    return value.strip().lstrip(".").lower()


def normalize_extensions(values: List[str]) -> List[str]:
    seen = []
    for value in values:
        ext = normalize_extension(value)
        if ext and ext not in seen:
            seen.append(ext)
    return seen


def extension_of(file_name_or_ext: str) -> str:
    """Extension of a file name, or the value itself if it has no dot."""
    if "." in file_name_or_ext:
        return normalize_extension(file_name_or_ext.rsplit(".", 1)[1])
    return normalize_extension(file_name_or_ext)


class DocumentTypeCatalog:
    """Document types of one company."""

    def __init__(self, db: Session, company_id: UUID):
        self.db = db
        self.company_id = company_id

    def get(self, type_id: UUID) -> DocumentType:
        doc_type = self.db.query(DocumentType).filter(
            DocumentType.id == type_id,
            DocumentType.company_id == self.company_id,
        ).first()
        if not doc_type:
            raise DocumentTypeNotFound(type_id)
        return doc_type

    def get_by_code(self, code: str) -> DocumentType:
        doc_type = self._find_code(code)
        if not doc_type:
            raise DocumentTypeNotFound(code)
        return doc_type

    def list(self, include_inactive: bool = False) -> List[DocumentType]:
        query = self.db.query(DocumentType).filter(DocumentType.company_id == self.company_id)
        if not include_inactive:
            query = query.filter(DocumentType.is_active.is_(True))
        return query.order_by(DocumentType.code).all()

    def create(self, data: DocumentTypeCreate, actor_id: Optional[UUID] = None) -> DocumentType:
        """Create a document type.

        Raises:
            DuplicateCode: If the code exists in this company, in any case
            DocumentValidationError: If the digit width is outside 1-10
        """
        code = data.code.strip().upper()
        if self._find_code(code):
            raise DuplicateCode(code)
        self._check_digits(data.auto_number_digits)

        doc_type = DocumentType(
            company_id=self.company_id,
            code=code,
            name=data.name.strip(),
            description=data.description,
            allowed_extensions=normalize_extensions(data.allowed_extensions),
            auto_number_enabled=data.auto_number_enabled,
            auto_number_prefix=(data.auto_number_prefix or "").strip() or None,
            auto_number_digits=data.auto_number_digits,
            auto_number_includes_year=data.auto_number_includes_year,
            requires_approval=data.requires_approval,
            is_active=True,
        )
        self.db.add(doc_type)
        self.db.flush()

        log_audit_event(
            db=self.db,
            company_id=self.company_id,
            action="DOCUMENT_TYPE_CREATED",
            actor_id=actor_id,
            entity_type="document_type",
            entity_id=doc_type.id,
            metadata={"code": doc_type.code},
        )
        logger.info(
            f"Created document type {doc_type.code}",
            extra={"company_id": str(self.company_id), "document_type_id": str(doc_type.id)},
        )
        return doc_type

    def update(
        self,
        type_id: UUID,
        data: DocumentTypeUpdate,
        actor_id: Optional[UUID] = None
    ) -> DocumentType:
        """Patch a document type.

        Raises:
            Immutable: If the code changes while documents reference the type
            DuplicateCode: If the new code belongs to another type
        """
        doc_type = self.get(type_id)
        patch = data.model_dump(exclude_unset=True)

        if patch.get("code") is not None:
            new_code = patch["code"].strip().upper()
            if new_code != doc_type.code:
                if self._reference_count(doc_type.id) > 0:
                    raise Immutable(
                        f"Document type code '{doc_type.code}' cannot change once documents use it",
                        code=doc_type.code,
                        requested_code=new_code,
                    )
                existing = self._find_code(new_code)
                if existing and existing.id != doc_type.id:
                    raise DuplicateCode(new_code)
            patch["code"] = new_code
        else:
            patch.pop("code", None)

        if patch.get("auto_number_digits") is not None:
            self._check_digits(patch["auto_number_digits"])
        if "allowed_extensions" in patch:
            patch["allowed_extensions"] = normalize_extensions(patch["allowed_extensions"] or [])
        if "auto_number_prefix" in patch:
            patch["auto_number_prefix"] = (patch["auto_number_prefix"] or "").strip() or None

        for field, value in patch.items():
            if value is None and field not in ("description", "auto_number_prefix"):
                continue
            setattr(doc_type, field, value)
        self.db.flush()

        log_audit_event(
            db=self.db,
            company_id=self.company_id,
            action="DOCUMENT_TYPE_UPDATED",
            actor_id=actor_id,
            entity_type="document_type",
            entity_id=doc_type.id,
            metadata={"fields": sorted(patch.keys())},
        )
        logger.info(
            f"Updated document type {doc_type.code}",
            extra={"company_id": str(self.company_id), "document_type_id": str(doc_type.id)},
        )
        return doc_type

    def deactivate(self, type_id: UUID, actor_id: Optional[UUID] = None) -> DocumentType:
        """Mark a type inactive. Calling it again changes nothing."""
        doc_type = self.get(type_id)
        if not doc_type.is_active:
            return doc_type

        doc_type.is_active = False
        self.db.flush()

        log_audit_event(
            db=self.db,
            company_id=self.company_id,
            action="DOCUMENT_TYPE_DEACTIVATED",
            actor_id=actor_id,
            entity_type="document_type",
            entity_id=doc_type.id,
            metadata={"code": doc_type.code},
        )
        logger.info(
            f"Deactivated document type {doc_type.code}",
            extra={"company_id": str(self.company_id), "document_type_id": str(doc_type.id)},
        )
        return doc_type

    def require_active(self, type_id: Optional[UUID] = None, code: Optional[str] = None) -> DocumentType:
        """Resolve the type a new document is created under.

        An unknown or inactive type is bad input for document creation, so it
        is reported as a validation error rather than not-found.
        """
        try:
            doc_type = self.get(type_id) if type_id is not None else self.get_by_code(code or "")
        except DocumentTypeNotFound:
            raise DocumentValidationError(
                f"Unknown document type: {type_id or code}",
                document_type=str(type_id or code),
            )
        if not doc_type.is_active:
            raise DocumentValidationError(
                f"Document type {doc_type.code} is inactive",
                document_type=doc_type.code,
            )
        return doc_type

    @staticmethod
    def is_extension_allowed(doc_type: DocumentType, file_name_or_ext: Optional[str]) -> bool:
        """True if the type accepts this file. An empty extension set accepts anything."""
        allowed = set(doc_type.allowed_extensions or [])
        if not allowed:
            return True
        if not file_name_or_ext:
            return False
        return extension_of(file_name_or_ext) in allowed

    def _find_code(self, code: str) -> Optional[DocumentType]:
        return self.db.query(DocumentType).filter(
            DocumentType.company_id == self.company_id,
            func.upper(DocumentType.code) == code.strip().upper(),
        ).first()

    def _reference_count(self, type_id: UUID) -> int:
        # Soft-deleted documents still carry the number and the type
        return self.db.query(func.count(Document.id)).filter(
            Document.document_type_id == type_id
        ).scalar()

    @staticmethod
    def _check_digits(digits: int) -> None:
        if not validate_digits(digits):
            raise DocumentValidationError(
                f"Auto-number digits must be between {MIN_DIGITS} and {MAX_DIGITS}",
                auto_number_digits=digits,
            )
