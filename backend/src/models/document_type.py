"""DocumentType model - per-company document type catalog entry"""

from uuid import uuid4

from sqlalchemy import Column, Text, Integer, Boolean, DateTime, Uuid, UniqueConstraint, Index
from sqlalchemy.orm import validates

from .base import Base, PortableJSONB, utcnow


class DocumentType(Base):
    """Document type configured by a company administrator.

    Controls which file extensions are accepted, whether new documents get an
    auto-generated number, and whether documents must pass approval.
    ``code`` is stored upper-case and is unique per company.
    """
    __tablename__ = "document_type"
    __table_args__ = (
        UniqueConstraint("company_id", "code", name="uq_document_type_company_code"),
        Index("ix_document_type_company_id", "company_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    company_id = Column(Uuid, nullable=False)
    code = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    allowed_extensions = Column(PortableJSONB, nullable=False, default=list)  # empty = unrestricted
    auto_number_enabled = Column(Boolean, nullable=False, default=False)
    auto_number_prefix = Column(Text, nullable=True)
    auto_number_digits = Column(Integer, nullable=False, default=4)
    auto_number_includes_year = Column(Boolean, nullable=False, default=False)
    requires_approval = Column(Boolean, nullable=False, default=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @validates('code')
    def validate_code(self, key, value):
        if not value or len(value.strip()) == 0:
            raise ValueError("Document type code cannot be empty")
        return value.strip().upper()

    def to_dict(self):
        return {
            "id": str(self.id),
            "company_id": str(self.company_id),
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "allowed_extensions": list(self.allowed_extensions or []),
            "auto_number_enabled": self.auto_number_enabled,
            "auto_number_prefix": self.auto_number_prefix,
            "auto_number_digits": self.auto_number_digits,
            "auto_number_includes_year": self.auto_number_includes_year,
            "requires_approval": self.requires_approval,
            "is_active": self.is_active,
        }

    def __repr__(self):
        return f"<DocumentType(id={self.id}, code='{self.code}')>"
