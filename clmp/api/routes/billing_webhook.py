import logging
from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session

from clmp.core.auth_dependency import get_db
from clmp.schemas.billing import WebhookResponse
from clmp.services import billing_service, stripe_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["Billing Webhook"])


@router.post("/webhook", response_model=WebhookResponse)
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(None),
    db: Session = Depends(get_db),
):
    payload = await request.body()

    event = stripe_service.verify_webhook(payload, stripe_signature)
    billing_service.process_webhook_event(event, db)

    return {"received": True}
