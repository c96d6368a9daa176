"""
Audit logger for security-sensitive operations.

Writes append-only rows to audit_logs. Recording is fire-and-forget:
a failed write is logged and never raised, so it cannot block or undo
the operation it describes.
"""
import enum
import logging
from typing import Optional, Dict, Any
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clmp.db.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


class AuditAction(str, enum.Enum):
    DELETE_USER_DENIED = "DELETE_USER_DENIED"
    DELETE_USER_SUCCESS = "DELETE_USER_SUCCESS"
    DELETE_USER_FAILED = "DELETE_USER_FAILED"


def record(
    db: Session,
    *,
    actor_id: str,
    action: AuditAction,
    resource_type: str,
    resource_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> bool:
    """
    Append one audit entry and commit it.

    Args:
        db: Database session (must have no pending work the caller still needs)
        actor_id: User who performed the action
        action: Audit action tag
        resource_type: Kind of resource acted on (e.g. "user")
        resource_id: Identifier of the resource
        details: Free-form JSON details

    Returns:
        True if the entry was written, False if the write failed
    """
    entry = AuditLog(
        user_id=actor_id,
        action=action.value,
        resource_type=resource_type,
        resource_id=resource_id,
        details=details or {},
    )
    try:
        db.add(entry)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            f"Failed to write audit entry: action={action.value}, actor_id={actor_id}, "
            f"resource_id={resource_id}, error={type(e).__name__}: {e}"
        )
        return False

    logger.info(f"Audit: action={action.value}, actor_id={actor_id}, {resource_type}={resource_id}")
    return True
