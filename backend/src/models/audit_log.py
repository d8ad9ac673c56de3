"""AuditLog SQLAlchemy model"""

from uuid import uuid4

from sqlalchemy import Column, Text, DateTime, Uuid, Index

from .base import Base, PortableJSONB, utcnow


class AuditLog(Base):
    """AuditLog model for immutable document control event logging.

    Records every mutating document control operation for compliance.
    Entries are append-only and should never be updated or deleted.
    """
    __tablename__ = "audit_log"
    __table_args__ = (
        Index("ix_audit_log_company_id", "company_id"),
        Index("ix_audit_log_company_id_created_at", "company_id", "created_at"),
        Index("ix_audit_log_entity", "entity_type", "entity_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    company_id = Column(Uuid, nullable=False)
    actor_id = Column(Uuid, nullable=True)
    action = Column(Text, nullable=False)
    entity_type = Column(Text, nullable=True)
    entity_id = Column(Uuid, nullable=True)
    metadata_json = Column(PortableJSONB, nullable=True)
    ip_address = Column(Text, nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        """Convert audit log entry to dictionary representation"""
        return {
            "id": str(self.id),
            "company_id": str(self.company_id),
            "actor_id": str(self.actor_id) if self.actor_id else None,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "metadata": self.metadata_json,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
