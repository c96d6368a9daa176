"""
Database models module.

This module imports all database models to ensure they are registered with SQLAlchemy's Base.metadata
before table creation.

All models must be imported here to be included in database migrations and table creation.
"""
from clmp.db.models.user_role import UserRole, Role, PRIVILEGED_ROLES, ROLE_DISPLAY_NAMES
from clmp.db.models.audit_log import AuditLog
from clmp.db.models.subscription import Subscription, SubscriptionHistory
from clmp.db.models.stripe_customer import StripeCustomer, StripePayment
from clmp.db.models.profile import Profile
from clmp.db.models.project import Project, ProjectMember

# Explicitly export all models for clarity
__all__ = [
    "UserRole",
    "Role",
    "PRIVILEGED_ROLES",
    "ROLE_DISPLAY_NAMES",
    "AuditLog",
    "Subscription",
    "SubscriptionHistory",
    "StripeCustomer",
    "StripePayment",
    "Profile",
    "Project",
    "ProjectMember",
]
