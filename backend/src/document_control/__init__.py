"""Document control services.

Each service is opened for one company with a Session and never commits:
callers commit after the operation returns and roll back when it raises.
"""

from .catalog import DocumentTypeCatalog
from .checkout import CheckoutManager, CheckoutStatus
from .folders import FolderHierarchy, FolderNode
from .grants import GrantService
from .retention import DispositionCandidate, RetentionEngine, RetentionPolicyService
from .sequence import SequenceAllocator
from .store import DocumentStore
from .workflow import ApprovalWorkflow

__all__ = [
    "DocumentTypeCatalog",
    "CheckoutManager",
    "CheckoutStatus",
    "FolderHierarchy",
    "FolderNode",
    "GrantService",
    "DispositionCandidate",
    "RetentionEngine",
    "RetentionPolicyService",
    "SequenceAllocator",
    "DocumentStore",
    "ApprovalWorkflow",
]
