"""Health check utilities.

The document control service depends on its database only; blob storage
and identity are external and not probed here. Besides connectivity, the
schema probe confirms the migrations for the core tables have been applied.
"""

import time
from enum import Enum
from typing import Dict, Iterable, Optional
from dataclasses import dataclass

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .logging_config import get_logger

logger = get_logger(__name__)

# Tables every request path touches
CORE_TABLES = (
    "document",
    "document_type",
    "document_sequence",
    "folder",
    "checkout_lease",
    "access_grant",
)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class ComponentHealth:
    """Health status for a single component."""
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None


def check_database_health(db: Session) -> ComponentHealth:
    try:
        start = time.time()
        db.execute(text("SELECT 1"))
        latency_ms = (time.time() - start) * 1000

        return ComponentHealth(
            status=HealthStatus.HEALTHY,
            message="Database connection OK",
            latency_ms=round(latency_ms, 2)
        )
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        return ComponentHealth(
            status=HealthStatus.UNHEALTHY,
            message=f"Database error: {str(e)}"
        )


def check_schema_health(db: Session, tables: Iterable[str] = CORE_TABLES) -> ComponentHealth:
    """Report DEGRADED when core tables are missing (migrations not applied)."""
    try:
        existing = set(inspect(db.get_bind()).get_table_names())
    except SQLAlchemyError as e:
        logger.error(f"Schema health check failed: {e}", exc_info=True)
        return ComponentHealth(status=HealthStatus.UNHEALTHY, message=f"Schema error: {str(e)}")

    missing = sorted(set(tables) - existing)
    if missing:
        logger.warning(f"Missing tables: {', '.join(missing)}")
        return ComponentHealth(
            status=HealthStatus.DEGRADED,
            message=f"Missing tables: {', '.join(missing)}"
        )
    return ComponentHealth(status=HealthStatus.HEALTHY, message="Schema OK")


def get_overall_health(components: Dict[str, ComponentHealth]) -> HealthStatus:
    if all(c.status == HealthStatus.HEALTHY for c in components.values()):
        return HealthStatus.HEALTHY

    if any(c.status == HealthStatus.UNHEALTHY for c in components.values()):
        return HealthStatus.UNHEALTHY

    return HealthStatus.DEGRADED
