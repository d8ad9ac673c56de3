"""FolderTemplate models - reusable folder structures and where they were applied"""

from uuid import uuid4

from sqlalchemy import Column, Text, Integer, Boolean, DateTime, ForeignKey, Uuid, UniqueConstraint, Index
from sqlalchemy.orm import validates

from domain.document_control.folder_templates import TemplateScope
from .base import Base, PortableJSONB, utcnow


class FolderTemplate(Base):
    """Folder structure an administrator can stamp out under a new folder.

    ``structure`` holds ``{"folders": [{"name": ..., "children": [...]}]}``.
    At most one active template per scope is the default for that scope.
    """
    __tablename__ = "folder_template"
    __table_args__ = (
        UniqueConstraint("company_id", "code", name="uq_folder_template_company_code"),
        Index("ix_folder_template_company_scope", "company_id", "applies_to_scope"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    company_id = Column(Uuid, nullable=False)
    code = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    applies_to_scope = Column(Text, nullable=False, default=TemplateScope.PROJECT.value)
    structure = Column(PortableJSONB, nullable=False, default=dict)
    is_default = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @validates('code')
    def validate_code(self, key, value):
        if not value or len(value.strip()) == 0:
            raise ValueError("Folder template code cannot be empty")
        return value.strip().upper()

    def to_dict(self):
        return {
            "id": str(self.id),
            "company_id": str(self.company_id),
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "applies_to_scope": self.applies_to_scope,
            "structure": self.structure,
            "is_default": self.is_default,
            "is_active": self.is_active,
        }

    def __repr__(self):
        return f"<FolderTemplate(id={self.id}, code='{self.code}')>"


class FolderTemplateApplication(Base):
    """One application of a template: the root folder it created and how many folders in total."""
    __tablename__ = "folder_template_application"
    __table_args__ = (
        Index("ix_folder_template_application_template", "template_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    company_id = Column(Uuid, nullable=False)
    template_id = Column(Uuid, ForeignKey("folder_template.id", ondelete="CASCADE"), nullable=False)
    root_folder_id = Column(Uuid, ForeignKey("folder.id", ondelete="SET NULL"), nullable=True)
    root_path = Column(Text, nullable=False)
    folders_created = Column(Integer, nullable=False, default=0)
    applied_by_user_id = Column(Uuid, nullable=True)
    applied_at = Column(DateTime, nullable=False, default=utcnow)
