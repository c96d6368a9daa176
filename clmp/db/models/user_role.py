import enum
from sqlalchemy import Column, String, DateTime, Enum as SAEnum, Index
from sqlalchemy.sql import func
from clmp.db.base import Base, generate_uuid


class Role(str, enum.Enum):
    MEMBER = "member"
    MODERATOR = "moderator"
    ADMIN = "admin"
    SYSTEM_ADMIN = "system_admin"


# Roles that must always keep at least one holder
PRIVILEGED_ROLES = (Role.ADMIN, Role.SYSTEM_ADMIN)

ROLE_DISPLAY_NAMES = {
    Role.MEMBER: "Member",
    Role.MODERATOR: "Moderator",
    Role.ADMIN: "Admin",
    Role.SYSTEM_ADMIN: "System Admin",
}


class UserRole(Base):
    """
    Role assignment for an identity-provider user.

    A user may hold several roles; rows are not unique per user.
    """
    __tablename__ = "user_roles"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    role = Column(
        SAEnum(Role, name="app_role", values_callable=lambda roles: [r.value for r in roles]),
        nullable=False,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_user_roles_user_role", "user_id", "role"),
    )
