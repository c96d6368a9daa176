"""
Endpoints describing the authenticated user: entitlements and roles.
"""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from clmp.core.auth_dependency import get_db, get_current_identity
from clmp.core.security import Identity
from clmp.schemas.entitlement import EntitlementsResponse, RolesResponse
from clmp.services import entitlement_service, role_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/me", tags=["Me"])


@router.get("/entitlements", response_model=EntitlementsResponse, status_code=status.HTTP_200_OK)
def get_entitlements(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """
    Get the caller's plan, quotas and current usage.

    Returns:
    - plan / status: mirrored from the profile
    - max_projects / max_users: plan quotas
    - can_create_project / can_add_user: whether another one fits
    - trial information when on the trial plan
    """
    return entitlement_service.get_entitlements(db, identity.id)


@router.get("/roles", response_model=RolesResponse)
def get_roles(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    roles = role_service.get_roles(db, identity.id)
    return role_service.describe_roles(roles)
