"""AccessGrant model - explicit view/edit grant on a document"""

from uuid import uuid4

from sqlalchemy import Column, Text, ForeignKey, DateTime, Uuid, Index, CheckConstraint

from .base import Base, utcnow


class AccessGrant(Base):
    """Grant of view or edit on one document to exactly one user or department."""
    __tablename__ = "access_grant"
    __table_args__ = (
        CheckConstraint(
            "(user_id IS NULL) <> (department_id IS NULL)",
            name="ck_access_grant_single_principal",
        ),
        CheckConstraint("access_level IN ('view', 'edit')", name="ck_access_grant_level"),
        Index("ix_access_grant_document_id", "document_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    document_id = Column(Uuid, ForeignKey("document.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, nullable=True)
    department_id = Column(Uuid, nullable=True)
    access_level = Column(Text, nullable=False)
    granted_by_user_id = Column(Uuid, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "id": str(self.id),
            "document_id": str(self.document_id),
            "user_id": str(self.user_id) if self.user_id else None,
            "department_id": str(self.department_id) if self.department_id else None,
            "access_level": self.access_level,
            "granted_by_user_id": str(self.granted_by_user_id) if self.granted_by_user_id else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
