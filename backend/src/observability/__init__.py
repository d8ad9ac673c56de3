"""Observability: structured logging, request ids, metrics and health checks."""

from .logging_config import configure_logging, get_logger
from .metrics import (
    checkout_operations_total,
    document_numbers_allocated_total,
    documents_created_total,
    http_request_duration_seconds,
    policy_refusals_total,
    workflow_transitions_total,
)
from .request_id import request_id_var, get_request_id, bind_request_id, generate_request_id
from .health import HealthStatus, ComponentHealth, check_database_health, check_schema_health
from .middleware import RequestIDMiddleware

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    # Metrics
    "checkout_operations_total",
    "document_numbers_allocated_total",
    "documents_created_total",
    "http_request_duration_seconds",
    "policy_refusals_total",
    "workflow_transitions_total",
    # Request ID
    "request_id_var",
    "get_request_id",
    "bind_request_id",
    "generate_request_id",
    # Health
    "HealthStatus",
    "ComponentHealth",
    "check_database_health",
    "check_schema_health",
    # Middleware
    "RequestIDMiddleware",
]
