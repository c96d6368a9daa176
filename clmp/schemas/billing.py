"""
Pydantic schemas for billing endpoints.
"""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class VerifySessionResponse(BaseModel):
    """Response schema for subscription reconciliation."""
    success: bool = Field(..., description="Whether a subscription was synced")
    message: str = Field(..., description="Outcome message")
    plan: Optional[str] = Field(None, description="Plan name (standard, enterprise)")
    status: Optional[str] = Field(None, description="Local subscription status")


class CreateCheckoutSessionRequest(BaseModel):
    """Request schema for creating checkout session."""
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "planId": "standard_monthly",
                "successUrl": "https://app.example.ca/billing?success=true",
                "cancelUrl": "https://app.example.ca/billing?canceled=true",
            }
        },
    )

    plan_id: Optional[str] = Field(None, alias="planId", description="Checkout plan id")
    success_url: Optional[str] = Field(None, alias="successUrl", description="URL to redirect after successful payment")
    cancel_url: Optional[str] = Field(None, alias="cancelUrl", description="URL to redirect if payment is canceled")


class CreateCheckoutSessionResponse(BaseModel):
    """Response schema for checkout session creation."""
    sessionId: str = Field(..., description="Stripe checkout session ID")
    url: str = Field(..., description="Stripe checkout session URL")


class CreatePortalSessionRequest(BaseModel):
    """Request schema for creating portal session."""
    model_config = ConfigDict(populate_by_name=True)

    return_url: Optional[str] = Field(None, alias="returnUrl", description="URL to return to after portal session")


class CreatePortalSessionResponse(BaseModel):
    """Response schema for portal session creation."""
    url: str = Field(..., description="Stripe customer portal URL")


class PlanResponse(BaseModel):
    id: str
    name: str
    description: str
    price_cad: float
    features: List[str]
    max_projects: int
    max_users: int


class WebhookResponse(BaseModel):
    received: bool = True
