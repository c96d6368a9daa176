"""
Pydantic schemas for the /me endpoints.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class EntitlementsResponse(BaseModel):
    """Response schema for GET /me/entitlements."""
    plan: str = Field(..., description="Current plan (free, trial, standard, professional, enterprise)")
    status: str = Field(..., description="Subscription status mirrored on the profile")
    max_projects: int
    max_users: int
    current_projects: int
    current_users: int
    can_create_project: bool
    can_add_user: bool
    has_subscription: bool
    is_trialing: bool
    is_pending: bool
    trial_days_left: int
    trial_end_date: Optional[datetime] = None
    current_period_end: Optional[datetime] = None


class RolesResponse(BaseModel):
    """Response schema for GET /me/roles."""
    roles: List[str]
    display_names: List[str]
    is_system_admin: bool
    is_admin: bool
    is_moderator: bool
