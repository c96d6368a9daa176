"""
Entitlement service: what the user's plan lets them do right now.

Reads the profile mirror, the subscription record and project counts.
Never writes; quotas come from core.plan_limits.
"""
import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from clmp.core.plan_limits import DEFAULT_PLAN, get_plan_limits
from clmp.db.models.profile import Profile
from clmp.db.models.project import Project, ProjectMember
from clmp.db.models.subscription import Subscription

logger = logging.getLogger(__name__)

DEFAULT_STATUS = "active"
ARCHIVED = "archived"
SECONDS_PER_DAY = 86400


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; stored values are always UTC
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def count_active_projects(db: Session, user_id: str) -> int:
    return db.query(func.count(Project.id)).filter(
        Project.created_by == user_id,
        Project.status != ARCHIVED,
    ).scalar() or 0


def count_team_members(db: Session, user_id: str) -> int:
    """Distinct members across the user's non-archived projects."""
    return db.query(func.count(func.distinct(ProjectMember.user_id))).join(
        Project, Project.id == ProjectMember.project_id
    ).filter(
        Project.created_by == user_id,
        Project.status != ARCHIVED,
    ).scalar() or 0


def trial_days_left(trial_end: Optional[datetime], now: datetime) -> int:
    if trial_end is None:
        return 0
    remaining = (trial_end - now).total_seconds() / SECONDS_PER_DAY
    return max(0, math.ceil(remaining))


def get_entitlements(db: Session, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Compute a user's entitlements.

    Args:
        db: Database session
        user_id: User id
        now: Reference time (defaults to current UTC time)

    Returns:
        Plan, status, limits, current usage and the derived flags
    """
    now = now or datetime.now(timezone.utc)

    profile = db.query(Profile).filter(Profile.user_id == user_id).first()
    subscription = db.query(Subscription).filter(Subscription.user_id == user_id).first()

    plan = (profile.subscription_plan if profile else None) or DEFAULT_PLAN
    status = (profile.subscription_status if profile else None) or DEFAULT_STATUS
    limits = get_plan_limits(plan)

    current_projects = count_active_projects(db, user_id)
    current_users = count_team_members(db, user_id)

    trial_end = _as_utc(profile.trial_end_date if profile else None)
    if trial_end is None and subscription is not None:
        trial_end = _as_utc(subscription.trial_ends_at)
    period_end = _as_utc(subscription.current_period_end) if subscription else None

    is_active = status == DEFAULT_STATUS
    is_trialing = plan == DEFAULT_PLAN and trial_end is not None and trial_end > now and is_active

    entitlements = {
        "plan": plan,
        "status": status,
        "max_projects": limits["max_projects"],
        "max_users": limits["max_users"],
        "current_projects": current_projects,
        "current_users": current_users,
        "can_create_project": is_active and current_projects < limits["max_projects"],
        "can_add_user": is_active and current_users < limits["max_users"],
        "has_subscription": subscription is not None,
        "is_trialing": is_trialing,
        "is_pending": status == "pending",
        "trial_days_left": trial_days_left(trial_end, now),
        "trial_end_date": trial_end,
        "current_period_end": period_end,
    }

    logger.debug(f"Entitlements for user_id={user_id}: plan={plan}, status={status}")
    return entitlements
