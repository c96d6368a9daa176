"""
Account deletion service.

Deletes a user's account and everything they own, guarded by:
1. Authorization: self-deletion, or requester holds the admin role
2. Last privileged role safeguard: never delete the only holder of
   admin or system_admin
3. Audit: exactly one audit entry per call that passes input validation

Cleanup of user-owned tables is best-effort; only the identity provider
deletion decides whether the operation succeeded.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional
from sqlalchemy import text, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clmp.core.errors import (
    InvalidInputError,
    ForbiddenError,
    LastPrivilegedRoleError,
    UpstreamFailureError,
)
from clmp.core.security import Identity
from clmp.db.models.user_role import UserRole, Role, ROLE_DISPLAY_NAMES
from clmp.db.models.profile import Profile
from clmp.services import audit_service, identity_service, role_service
from clmp.services.audit_service import AuditAction

logger = logging.getLogger(__name__)

UUID_V4_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

# user_roles is cleared inside the guarded role transaction, not here
USER_OWNED_TABLES = (
    "user_sessions",
    "user_tokens",
    "user_achievements",
    "user_badges",
    "user_connections",
    "user_follows",
    "user_interests",
    "user_memories",
    "user_mfa_settings",
    "user_points",
    "user_privacy_settings",
    "subscriptions",
    "chat_participants",
    "project_members",
)

RESOURCE_TYPE = "user"


@dataclass
class CleanupResult:
    table: str
    ok: bool
    error: Optional[str] = None


@dataclass
class DeletionOutcome:
    actor_id: str
    target_id: str
    deleted_at: datetime
    cleanup: List[CleanupResult] = field(default_factory=list)
    profile_deleted: bool = False

    @property
    def failed_tables(self) -> List[str]:
        return [result.table for result in self.cleanup if not result.ok]


def validate_target_id(target_user_id: Optional[str]) -> str:
    if not target_user_id:
        raise InvalidInputError("User ID is required")
    if not UUID_V4_PATTERN.match(target_user_id):
        logger.warning(f"Invalid UUID format: {target_user_id!r}")
        raise InvalidInputError("Invalid user ID format")
    # Stored ids are lowercase; compare everything in canonical form
    return target_user_id.lower()


def _deny(db: Session, actor_id: str, target_id: str, reason: str) -> None:
    audit_service.record(
        db,
        actor_id=actor_id,
        action=AuditAction.DELETE_USER_DENIED,
        resource_type=RESOURCE_TYPE,
        resource_id=target_id,
        details={"reason": reason},
    )


def is_authorized(db: Session, requester: Identity, target_id: str) -> bool:
    """Self-deletion, or the requester is an admin. target_id must be canonical."""
    if requester.id.lower() == target_id:
        return True
    return role_service.has_role(db, requester.id, Role.ADMIN)


def remove_roles_guarded(db: Session, target_id: str) -> None:
    """
    Delete the target's role assignments unless that would leave a
    privileged role without holders.

    The holder count is taken on locked rows and the delete runs in the
    same transaction, so two concurrent deletions cannot both remove the
    last two holders.

    Raises:
        LastPrivilegedRoleError: Target is the only holder of a privileged role
    """
    try:
        for role in role_service.get_privileged_roles(db, target_id):
            holders = role_service.count_holders(db, role, lock=True)
            if holders <= 1:
                raise LastPrivilegedRoleError(role, ROLE_DISPLAY_NAMES[role])

        db.execute(delete(UserRole).where(UserRole.user_id == target_id))
        db.commit()
    except Exception:
        db.rollback()
        raise


def _cleanup_table(db: Session, table: str, target_id: str) -> CleanupResult:
    try:
        db.execute(text(f"DELETE FROM {table} WHERE user_id = :user_id"), {"user_id": target_id})
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        return CleanupResult(table=table, ok=False, error=f"{type(e).__name__}: {e}")
    return CleanupResult(table=table, ok=True)


def cleanup_user_data(db: Session, target_id: str) -> List[CleanupResult]:
    """Delete the target's rows from every user-owned table, independently."""
    results = [_cleanup_table(db, table, target_id) for table in USER_OWNED_TABLES]

    for result in results:
        if result.ok:
            logger.debug(f"Deleted from {result.table}: user_id={target_id}")
        else:
            logger.warning(f"Error deleting from {result.table}: user_id={target_id}, {result.error}")

    return results


def delete_profile(db: Session, target_id: str) -> bool:
    try:
        db.execute(delete(Profile).where(Profile.user_id == target_id))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting profile: user_id={target_id}, {type(e).__name__}: {e}")
        return False

    logger.info(f"Profile deleted: user_id={target_id}")
    return True


def delete_account(db: Session, requester: Identity, target_user_id: Optional[str]) -> DeletionOutcome:
    """
    Delete a user account and all data it owns.

    Args:
        db: Database session
        requester: Verified identity of the caller
        target_user_id: Id of the account to delete (UUID v4)

    Returns:
        DeletionOutcome describing what was removed

    Raises:
        InvalidInputError: Target id missing or malformed
        ForbiddenError: Requester may not delete the target
        LastPrivilegedRoleError: Target is the last admin / system admin
        UpstreamFailureError: Identity provider deletion failed
    """
    target_id = validate_target_id(target_user_id)

    if not is_authorized(db, requester, target_id):
        logger.warning(f"Unauthorized deletion attempt by {requester.id} for user {target_id}")
        _deny(db, requester.id, target_id, "Insufficient permissions")
        raise ForbiddenError("Unauthorized: You can only delete your own account")

    try:
        remove_roles_guarded(db, target_id)
    except LastPrivilegedRoleError as e:
        logger.warning(f"Blocked deletion of last {e.role.value}: {target_id}")
        _deny(db, requester.id, target_id, f"Cannot delete the last {e.display_name}")
        raise

    logger.info(f"Starting deletion process for user: {target_id} by {requester.id}")

    outcome = DeletionOutcome(
        actor_id=requester.id,
        target_id=target_id,
        deleted_at=datetime.now(timezone.utc),
    )
    outcome.cleanup = cleanup_user_data(db, target_id)
    outcome.profile_deleted = delete_profile(db, target_id)

    try:
        identity_service.delete_identity(target_id)
    except UpstreamFailureError as e:
        audit_service.record(
            db,
            actor_id=requester.id,
            action=AuditAction.DELETE_USER_FAILED,
            resource_type=RESOURCE_TYPE,
            resource_id=target_id,
            details={"reason": e.message, "failed_tables": outcome.failed_tables},
        )
        raise

    outcome.deleted_at = datetime.now(timezone.utc)
    audit_service.record(
        db,
        actor_id=requester.id,
        action=AuditAction.DELETE_USER_SUCCESS,
        resource_type=RESOURCE_TYPE,
        resource_id=target_id,
        details={"deleted_by": requester.id, "deleted_at": outcome.deleted_at.isoformat()},
    )
    logger.info(f"User deleted successfully: user_id={target_id}, failed_tables={outcome.failed_tables}")

    return outcome
