"""DocumentVersion model - history of content check-ins"""

from uuid import uuid4

from sqlalchemy import Column, Text, ForeignKey, BigInteger, Integer, DateTime, Uuid, UniqueConstraint

from .base import Base, utcnow


class DocumentVersion(Base):
    """One row per content version of a document.

    Version 1 is written when the document is created; each content check-in
    adds the next number. Rows are append-only.
    """
    __tablename__ = "document_version"
    __table_args__ = (
        UniqueConstraint("document_id", "version_number", name="uq_document_version_number"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    document_id = Column(Uuid, ForeignKey("document.id", ondelete="CASCADE"), nullable=False)
    version_number = Column(Integer, nullable=False)
    content_hash = Column(Text, nullable=True)
    storage_path = Column(Text, nullable=True)
    file_size_bytes = Column(BigInteger, nullable=False, default=0)
    comment = Column(Text, nullable=True)
    created_by_user_id = Column(Uuid, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "id": str(self.id),
            "document_id": str(self.document_id),
            "version_number": self.version_number,
            "content_hash": self.content_hash,
            "storage_path": self.storage_path,
            "file_size_bytes": self.file_size_bytes,
            "comment": self.comment,
            "created_by_user_id": str(self.created_by_user_id),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
