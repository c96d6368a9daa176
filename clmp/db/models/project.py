from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from clmp.db.base import Base, generate_uuid


class Project(Base):
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String, nullable=False)
    created_by = Column(String(36), nullable=False, index=True)
    status = Column(String, nullable=False, default="planning")  # planning | active | completed | archived
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class ProjectMember(Base):
    __tablename__ = "project_members"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)
    role = Column(String, nullable=False, default="member")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
