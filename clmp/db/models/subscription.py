from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from clmp.db.base import Base, generate_uuid


class Subscription(Base):
    """Local entitlement record, one per user, reconciled from Stripe."""
    __tablename__ = "subscriptions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=False, unique=True)

    plan = Column(String, nullable=False, default="trial")
    status = Column(String, nullable=False, default="trialing")  # trialing | active | past_due | canceled

    stripe_subscription_id = Column(String, nullable=True, index=True)
    stripe_customer_id = Column(String, nullable=True, index=True)
    stripe_price_id = Column(String, nullable=True)

    current_period_start = Column(DateTime(timezone=True), nullable=True)
    current_period_end = Column(DateTime(timezone=True), nullable=True)
    trial_ends_at = Column(DateTime(timezone=True), nullable=True)
    canceled_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class SubscriptionHistory(Base):
    __tablename__ = "subscription_history"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    old_plan = Column(String, nullable=True)
    new_plan = Column(String, nullable=False)
    change_reason = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
