"""Folder model - node of the per-company document tree"""

from uuid import uuid4

from sqlalchemy import Column, Text, ForeignKey, DateTime, Uuid, Index
from sqlalchemy.orm import validates

from .base import Base, utcnow


class Folder(Base):
    """Folder in a company's document tree.

    Folders are stored as an arena of rows keyed by id with a parent_folder_id
    back-reference (NULL = root). Children are found by querying on
    parent_folder_id, never through nested objects, so subtree walks stay
    iterative. ``path`` is the slash-joined chain of ancestor names,
    materialized when the folder is created or renamed.
    """
    __tablename__ = "folder"
    __table_args__ = (
        Index("ix_folder_company_id", "company_id"),
        Index("ix_folder_parent_folder_id", "parent_folder_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    company_id = Column(Uuid, nullable=False)
    parent_folder_id = Column(Uuid, ForeignKey("folder.id", ondelete="RESTRICT"), nullable=True)
    name = Column(Text, nullable=False)
    path = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    created_by_user_id = Column(Uuid, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @validates('name')
    def validate_name(self, key, value):
        """Folder names are non-empty and cannot contain the path separator.

        Raises:
            ValueError: If name is empty or contains '/'
        """
        if not value or len(value.strip()) == 0:
            raise ValueError("Folder name cannot be empty")
        if "/" in value:
            raise ValueError("Folder name cannot contain '/'")
        if len(value) > 255:
            raise ValueError("Folder name cannot exceed 255 characters")
        return value.strip()

    def to_dict(self):
        return {
            "id": str(self.id),
            "company_id": str(self.company_id),
            "parent_folder_id": str(self.parent_folder_id) if self.parent_folder_id else None,
            "name": self.name,
            "path": self.path,
            "description": self.description,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Folder(id={self.id}, path='{self.path}')>"
