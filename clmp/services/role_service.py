"""
Role store.

Read-only queries over user_roles. Results always reflect the current
committed state; nothing is cached.
"""
from typing import List
from sqlalchemy import select, func
from sqlalchemy.orm import Session

from clmp.db.models.user_role import UserRole, Role, PRIVILEGED_ROLES, ROLE_DISPLAY_NAMES


def count_holders(db: Session, role: Role, lock: bool = False) -> int:
    """
    Count distinct users currently holding a role.

    Args:
        db: Database session
        role: Role to count
        lock: Lock the matching rows until the current transaction ends,
            so that a concurrent caller cannot act on the same count

    Returns:
        Number of distinct holders
    """
    if lock:
        holders = db.scalars(
            select(UserRole.user_id).where(UserRole.role == role).with_for_update()
        ).all()
        return len(set(holders))

    return db.scalar(
        select(func.count(func.distinct(UserRole.user_id))).where(UserRole.role == role)
    ) or 0


def has_role(db: Session, user_id: str, role: Role) -> bool:
    """Check if a user holds a role."""
    return db.scalar(
        select(UserRole.id).where(UserRole.user_id == user_id, UserRole.role == role).limit(1)
    ) is not None


def get_roles(db: Session, user_id: str) -> List[Role]:
    """All roles held by a user, in assignment order, without duplicates."""
    rows = db.scalars(
        select(UserRole.role).where(UserRole.user_id == user_id).order_by(UserRole.created_at)
    ).all()
    return list(dict.fromkeys(rows))


def get_privileged_roles(db: Session, user_id: str) -> List[Role]:
    return [role for role in get_roles(db, user_id) if role in PRIVILEGED_ROLES]


def describe_roles(roles: List[Role]) -> dict:
    """Role flags for the dashboard."""
    return {
        "roles": [role.value for role in roles],
        "display_names": [ROLE_DISPLAY_NAMES[role] for role in roles],
        "is_system_admin": Role.SYSTEM_ADMIN in roles,
        "is_admin": Role.ADMIN in roles or Role.SYSTEM_ADMIN in roles,
        "is_moderator": Role.MODERATOR in roles,
    }
