"""SQLAlchemy Models for document control"""

from .base import Base
from .folder import Folder
from .document_type import DocumentType
from .retention_policy import RetentionPolicy
from .folder_template import FolderTemplate, FolderTemplateApplication
from .document import Document
from .document_version import DocumentVersion
from .checkout_lease import CheckoutLease
from .access_grant import AccessGrant
from .document_sequence import DocumentSequence
from .audit_log import AuditLog

__all__ = [
    "Base",
    "Folder",
    "DocumentType",
    "RetentionPolicy",
    "FolderTemplate",
    "FolderTemplateApplication",
    "Document",
    "DocumentVersion",
    "CheckoutLease",
    "AccessGrant",
    "DocumentSequence",
    "AuditLog",
]
