"""Audit logging service for document control events.

This service provides a centralized interface for creating immutable audit log
entries. Every mutating document control operation is logged through it, in
the same transaction as the change it records.

Audit Events:
- DOCUMENT_TYPE_CREATED, DOCUMENT_TYPE_UPDATED, DOCUMENT_TYPE_DEACTIVATED
- FOLDER_CREATED, FOLDER_RENAMED, FOLDER_DELETED
- DOCUMENT_CREATED, DOCUMENT_UPDATED, DOCUMENT_DELETED, DOCUMENT_REVIEWED
- DOCUMENT_CHECKED_OUT, DOCUMENT_CHECKED_IN, CHECKOUT_CANCELLED, CHECKOUT_FORCE_CANCELLED
- ACCESS_GRANTED, ACCESS_REVOKED
- RETENTION_POLICY_CREATED, RETENTION_POLICY_UPDATED, RETENTION_POLICY_DEACTIVATED
- RETENTION_APPLIED, RETENTION_EXTENDED, LEGAL_HOLD_PLACED, LEGAL_HOLD_RELEASED
- DOCUMENT_SUBMITTED, DOCUMENT_APPROVED, DOCUMENT_REJECTED, DOCUMENT_PUBLISHED, DOCUMENT_CANCELLED
"""

from sqlalchemy.orm import Session
from uuid import UUID
from typing import Optional, Dict, Any

from models.audit_log import AuditLog


def log_audit_event(
    db: Session,
    company_id: UUID,
    action: str,
    actor_id: Optional[UUID] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[UUID] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> AuditLog:
    """Create an audit log entry.

    All parameters are stored as-is. This function does not validate action
    names or entity types.

    Args:
        db: Database session
        company_id: Company ID
        action: Event action (e.g., "DOCUMENT_CREATED", "LEGAL_HOLD_PLACED")
        actor_id: User who performed the action (None for system events)
        entity_type: Type of entity affected (e.g., "document", "folder")
        entity_id: ID of affected entity
        metadata: Additional context as JSON (e.g., {"document_number": "CON-2025-0001"})
        ip_address: Client IP address (IPv4 or IPv6)
        user_agent: Client User-Agent header

    Returns:
        AuditLog: The created audit log entry

    Example:
        log_audit_event(
            db=db,
            company_id=principal.company_id,
            action="DOCUMENT_CHECKED_OUT",
            actor_id=principal.user_id,
            entity_type="document",
            entity_id=document.id,
            metadata={"expires_at": "2025-03-01T12:00:00"},
        )
    """
    audit_entry = AuditLog(
        company_id=company_id,
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata_json=metadata,
        ip_address=ip_address,
        user_agent=user_agent,
    )

    db.add(audit_entry)
    db.flush()  # Get ID without committing transaction

    return audit_entry

