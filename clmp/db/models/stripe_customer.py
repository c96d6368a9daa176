from sqlalchemy import Column, String, Integer, DateTime, JSON
from sqlalchemy.sql import func
from clmp.db.base import Base, generate_uuid


class StripeCustomer(Base):
    """Mapping from a user to their Stripe customer."""
    __tablename__ = "stripe_customers"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=False, unique=True)
    stripe_customer_id = Column(String, nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class StripePayment(Base):
    """Checkout attempt, completed by the webhook."""
    __tablename__ = "stripe_payments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    stripe_checkout_session_id = Column(String, nullable=False, unique=True)
    stripe_payment_intent_id = Column(String, nullable=True)
    amount = Column(Integer, nullable=False, default=0)  # minor units
    status = Column(String, nullable=False, default="pending")  # pending | completed
    product_type = Column(String, nullable=False)  # subscription | addon
    product_id = Column(String, nullable=False)
    metadata_ = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
