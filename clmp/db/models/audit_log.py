from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.sql import func
from clmp.db.base import Base, generate_uuid


class AuditLog(Base):
    """
    Append-only security event.

    user_id is the actor; resource_type/resource_id name what was acted on.
    """
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=True, index=True)
    action = Column(String, nullable=False, index=True)  # DELETE_USER_DENIED | DELETE_USER_SUCCESS | DELETE_USER_FAILED
    resource_type = Column(String, nullable=True)
    resource_id = Column(String, nullable=True, index=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
