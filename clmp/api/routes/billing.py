"""
Billing endpoints: subscription reconciliation, checkout, portal and plans.

All credential and provider failures are returned as 400 {"error": ...}.
"""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from clmp.core.auth_dependency import get_db, get_billing_identity
from clmp.core.plan_limits import get_plan_catalogue
from clmp.core.security import Identity
from clmp.schemas.billing import (
    VerifySessionResponse,
    CreateCheckoutSessionRequest,
    CreateCheckoutSessionResponse,
    CreatePortalSessionRequest,
    CreatePortalSessionResponse,
    PlanResponse,
)
from clmp.services import billing_service, stripe_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["Billing"])


@router.post(
    "/verify-session",
    response_model=VerifySessionResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
)
def verify_session(
    identity: Identity = Depends(get_billing_identity),
    db: Session = Depends(get_db),
):
    """
    Re-sync the caller's subscription from Stripe.

    Called after checkout returns to the app; safe to call repeatedly.
    """
    stripe_service.ensure_configured()
    logger.info(f"Verifying subscription for user_id={identity.id}")
    return billing_service.reconcile_subscription(db, identity.id)


@router.post("/checkout", response_model=CreateCheckoutSessionResponse)
def create_checkout(
    request: Request,
    payload: Optional[CreateCheckoutSessionRequest] = None,
    identity: Identity = Depends(get_billing_identity),
    db: Session = Depends(get_db),
):
    """Create a Stripe checkout session for a subscription plan or add-on."""
    payload = payload or CreateCheckoutSessionRequest()
    return billing_service.create_checkout_session(
        db,
        identity,
        payload.plan_id,
        success_url=payload.success_url,
        cancel_url=payload.cancel_url,
        origin=request.headers.get("origin"),
    )


@router.post("/portal", response_model=CreatePortalSessionResponse)
def create_portal(
    request: Request,
    payload: Optional[CreatePortalSessionRequest] = None,
    identity: Identity = Depends(get_billing_identity),
    db: Session = Depends(get_db),
):
    """Create a Stripe customer portal session."""
    return billing_service.create_portal_session(
        db,
        identity,
        return_url=payload.return_url if payload else None,
        origin=request.headers.get("origin"),
    )


@router.get("/plans", response_model=List[PlanResponse])
def list_plans():
    """Plans offered on the pricing page, with their quotas."""
    return get_plan_catalogue()
