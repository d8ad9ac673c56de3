"""DocumentSequence model - running counter per numbering scope"""

from sqlalchemy import Column, Integer, BigInteger, ForeignKey, Uuid

from .base import Base


class DocumentSequence(Base):
    """Last number handed out for one (document type, year) scope.

    year is 0 for types that do not put the year into their numbers. The
    counter only moves forward; numbers of deleted documents are not reused.
    """
    __tablename__ = "document_sequence"

    document_type_id = Column(
        Uuid,
        ForeignKey("document_type.id", ondelete="CASCADE"),
        primary_key=True,
    )
    year = Column(Integer, primary_key=True, autoincrement=False)
    last_value = Column(BigInteger, nullable=False, default=0)
