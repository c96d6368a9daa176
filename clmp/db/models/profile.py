from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from clmp.db.base import Base, generate_uuid


class Profile(Base):
    """
    User profile row.

    subscription_status/subscription_plan mirror the Subscription record
    and are written in the same transaction as it.
    """
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=False, unique=True, index=True)
    email = Column(String, nullable=True)
    full_name = Column(String, nullable=True)

    subscription_status = Column(String, nullable=True)
    subscription_plan = Column(String, nullable=True)
    trial_end_date = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
