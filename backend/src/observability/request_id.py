"""Request ID propagation.

The id of the current request lives in a ContextVar so log records emitted
anywhere below the middleware (services, audit, exception handlers) carry
it without being passed around.
"""

import uuid
from contextvars import ContextVar
from typing import Optional

REQUEST_ID_HEADER = "X-Request-ID"

# Longer incoming ids are replaced rather than echoed into logs
MAX_REQUEST_ID_LENGTH = 128

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def generate_request_id() -> str:
    return str(uuid.uuid4())


def get_request_id() -> str:
    """Current request ID, or "no-request-id" outside a request."""
    return request_id_var.get() or "no-request-id"


def bind_request_id(incoming: Optional[str] = None) -> str:
    """Adopt the caller's request id if usable, else generate one, and bind it.

    Returns:
        str: The request id now bound to the current context
    """
    request_id = incoming.strip() if incoming else ""
    if not request_id or len(request_id) > MAX_REQUEST_ID_LENGTH:
        request_id = generate_request_id()
    request_id_var.set(request_id)
    return request_id
