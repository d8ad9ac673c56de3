"""RetentionPolicy model - per-company retention rule"""

from uuid import uuid4

from sqlalchemy import Column, Text, Integer, Boolean, DateTime, Uuid, UniqueConstraint
from sqlalchemy.orm import validates

from domain.document_control.retention import RetentionAction, RetentionTrigger
from .base import Base, utcnow


class RetentionPolicy(Base):
    """How long documents are kept and what happens afterwards."""
    __tablename__ = "retention_policy"
    __table_args__ = (
        UniqueConstraint("company_id", "code", name="uq_retention_policy_company_code"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    company_id = Column(Uuid, nullable=False)
    code = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    retention_period_days = Column(Integer, nullable=False)
    action = Column(Text, nullable=False, default=RetentionAction.ARCHIVE.value)
    trigger_on = Column(Text, nullable=False, default=RetentionTrigger.CREATED.value)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @validates('code')
    def validate_code(self, key, value):
        if not value or len(value.strip()) == 0:
            raise ValueError("Retention policy code cannot be empty")
        return value.strip().upper()

    def to_dict(self):
        return {
            "id": str(self.id),
            "company_id": str(self.company_id),
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "retention_period_days": self.retention_period_days,
            "action": self.action,
            "trigger_on": self.trigger_on,
            "is_active": self.is_active,
        }
