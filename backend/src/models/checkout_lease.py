"""CheckoutLease model - record of every checkout taken on a document"""

from uuid import uuid4

from sqlalchemy import Column, Text, ForeignKey, DateTime, Uuid, Index

from .base import Base, utcnow


class CheckoutLease(Base):
    """A checkout lease held by one user.

    The document row only shows the current holder. Leases remember the
    earlier ones: a lease that expired and was taken over by another user is
    marked superseded but stays open (released_at NULL) so its holder can
    still finish with one grace check-in. Only the most recently superseded
    lease of a document stays open; taking a new checkout closes any
    superseded lease the taker still had.
    """
    __tablename__ = "checkout_lease"
    __table_args__ = (
        Index("ix_checkout_lease_document_user", "document_id", "user_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    document_id = Column(Uuid, ForeignKey("document.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, nullable=False)
    checked_out_at = Column(DateTime, nullable=False, default=utcnow)
    expires_at = Column(DateTime, nullable=False)
    superseded_at = Column(DateTime, nullable=True)
    released_at = Column(DateTime, nullable=True)
    release_reason = Column(Text, nullable=True)  # checkin, cancel, force_cancel, grace_checkin, replaced, lapsed

    @property
    def is_open(self) -> bool:
        return self.released_at is None
