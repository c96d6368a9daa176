"""
Billing service for Stripe integration.

Handles subscription reconciliation, checkout sessions, customer portal,
and webhook event processing. Local subscription state (subscriptions
row plus the profile mirror) is only ever written here.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from sqlalchemy import update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clmp.core.config import FRONTEND_URL
from clmp.core.errors import BillingError, UpstreamFailureError
from clmp.core.plan_limits import (
    SUBSCRIPTION_MODE,
    get_billing_mode,
    price_lookup_key,
    plan_name_from_lookup_key,
    strip_billing_interval,
)
from clmp.core.security import Identity
from clmp.db.models.profile import Profile
from clmp.db.models.stripe_customer import StripeCustomer, StripePayment
from clmp.db.models.subscription import Subscription, SubscriptionHistory
from clmp.services import stripe_service
from clmp.services.stripe_service import field, first_item

logger = logging.getLogger(__name__)

DEFAULT_PLAN_NAME = "standard"
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Stripe subscription status -> local status
STRIPE_STATUS_MAP = {
    "active": "active",
    "trialing": "trialing",
    "past_due": "past_due",
    "unpaid": "past_due",
    "incomplete": "past_due",
    "canceled": "canceled",
    "incomplete_expired": "canceled",
    "paused": "canceled",
}


def from_unix_seconds(seconds: Optional[int]) -> Optional[datetime]:
    """Stripe period boundary (integer Unix seconds) -> UTC datetime."""
    if seconds is None:
        return None
    return EPOCH + timedelta(milliseconds=int(seconds) * 1000)


def resolve_plan_name(subscription: Any, default: str = DEFAULT_PLAN_NAME) -> str:
    """
    Plan name from the price lookup key, else from metadata.plan_id.

    price_standard_monthly -> standard
    """
    price = field(first_item(subscription), "price")
    lookup_key = field(price, "lookup_key")
    if lookup_key:
        return plan_name_from_lookup_key(lookup_key)

    plan_id = field(field(subscription, "metadata"), "plan_id")
    if plan_id:
        return strip_billing_interval(plan_id)

    return default


def _period(subscription: Any, key: str) -> Optional[datetime]:
    # Newer Stripe API versions only carry period fields on the items
    value = field(subscription, key)
    if value is None:
        value = field(first_item(subscription), key)
    return from_unix_seconds(value)


def subscription_values(
    user_id: str,
    customer_id: str,
    subscription: Any,
    plan: str,
    status: str = "active",
) -> Dict[str, Any]:
    """Column values for the subscriptions row mirroring a Stripe subscription."""
    price = field(first_item(subscription), "price")
    return {
        "user_id": user_id,
        "plan": plan,
        "status": status,
        "stripe_subscription_id": field(subscription, "id"),
        "stripe_customer_id": customer_id,
        "stripe_price_id": field(price, "id"),
        "current_period_start": _period(subscription, "current_period_start"),
        "current_period_end": _period(subscription, "current_period_end"),
        "trial_ends_at": None,
    }


def upsert_subscription(db: Session, values: Dict[str, Any]) -> None:
    """Insert or overwrite the subscriptions row keyed by user_id in one statement."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        insert = pg_insert
    elif dialect == "sqlite":
        insert = sqlite_insert
    else:
        existing = db.query(Subscription).filter(Subscription.user_id == values["user_id"]).first()
        if existing is None:
            db.add(Subscription(**values))
        else:
            for key, value in values.items():
                setattr(existing, key, value)
        db.flush()
        return

    stmt = insert(Subscription).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id"],
        set_={key: stmt.excluded[key] for key in values if key != "user_id"},
    )
    db.execute(stmt)


def mirror_to_profile(db: Session, user_id: str, status: str, plan: Optional[str] = None) -> None:
    """Copy subscription status (and plan) onto the user's profile row."""
    values = {"subscription_status": status}
    if plan is not None:
        values["subscription_plan"] = plan
    db.execute(update(Profile).where(Profile.user_id == user_id).values(**values))


def get_customer_id(db: Session, user_id: str) -> Optional[str]:
    mapping = db.query(StripeCustomer).filter(StripeCustomer.user_id == user_id).first()
    return mapping.stripe_customer_id if mapping else None


def get_user_id_for_customer(db: Session, customer_id: Optional[str]) -> Optional[str]:
    if not customer_id:
        return None
    mapping = db.query(StripeCustomer).filter(StripeCustomer.stripe_customer_id == customer_id).first()
    return mapping.user_id if mapping else None


def reconcile_subscription(db: Session, user_id: str) -> Dict[str, Any]:
    """
    Pull the user's active subscription from Stripe and overwrite local records.

    Idempotent: repeated calls re-assert the same state.

    Args:
        db: Database session
        user_id: Authenticated user id

    Returns:
        Result payload: success flag, plan, status and message

    Raises:
        UpstreamFailureError: Stripe or the database failed; nothing is committed
    """
    try:
        customer_id = get_customer_id(db, user_id)
        if not customer_id:
            logger.info(f"No Stripe customer found for user_id={user_id}")
            return {"success": False, "message": "No Stripe customer found"}

        subscription = stripe_service.list_active_subscription(customer_id)
        if subscription is None:
            logger.info(f"No active subscriptions found in Stripe for user_id={user_id}")
            return {"success": False, "message": "No active subscription"}

        plan = resolve_plan_name(subscription)
        upsert_subscription(db, subscription_values(user_id, customer_id, subscription, plan))
        mirror_to_profile(db, user_id, "active", plan)
        db.commit()
    except (UpstreamFailureError, SQLAlchemyError) as e:
        db.rollback()
        logger.error(f"Verify session error for user_id={user_id}: {type(e).__name__}: {e}")
        raise UpstreamFailureError("Failed to verify subscription") from e

    logger.info(f"Successfully synced subscription for user_id={user_id}, plan={plan}")
    return {
        "success": True,
        "plan": plan,
        "status": "active",
        "message": "Subscription synced successfully",
    }


def get_or_create_customer(db: Session, identity: Identity) -> str:
    customer_id = get_customer_id(db, identity.id)
    if customer_id:
        return customer_id

    customer_id = stripe_service.create_customer(identity.id, identity.email)
    db.add(StripeCustomer(user_id=identity.id, stripe_customer_id=customer_id))
    db.commit()
    return customer_id


def create_checkout_session(
    db: Session,
    identity: Identity,
    plan_id: Optional[str],
    success_url: Optional[str] = None,
    cancel_url: Optional[str] = None,
    origin: Optional[str] = None,
) -> Dict[str, str]:
    """
    Create a Stripe checkout session for a plan or add-on.

    Args:
        db: Database session
        identity: Authenticated user
        plan_id: Checkout plan id (e.g. standard_monthly, priority_support)
        success_url: Redirect after successful payment
        cancel_url: Redirect if payment is canceled
        origin: Request origin, used for default redirect URLs

    Returns:
        {"sessionId": ..., "url": ...}
    """
    stripe_service.ensure_configured()

    if not plan_id:
        raise BillingError("Plan ID is required")

    mode = get_billing_mode(plan_id)
    if not mode:
        raise BillingError(f"Invalid plan ID: {plan_id}")

    lookup_key = price_lookup_key(plan_id)
    price_id = stripe_service.find_price_id(lookup_key)
    if not price_id:
        raise BillingError(f"Price not found for: {lookup_key}")

    customer_id = get_or_create_customer(db, identity)
    base_url = origin or FRONTEND_URL
    metadata = {"user_id": identity.id, "plan_id": plan_id}

    params = {
        "customer": customer_id,
        "line_items": [{"price": price_id, "quantity": 1}],
        "mode": mode,
        "success_url": success_url or f"{base_url}/billing?success=true",
        "cancel_url": cancel_url or f"{base_url}/billing?canceled=true",
        "metadata": metadata,
    }
    if mode == SUBSCRIPTION_MODE:
        params["subscription_data"] = {"metadata": metadata}

    session = stripe_service.create_checkout_session(params)

    db.add(StripePayment(
        user_id=identity.id,
        stripe_checkout_session_id=session.id,
        amount=0,  # updated by webhook
        status="pending",
        product_type="subscription" if mode == SUBSCRIPTION_MODE else "addon",
        product_id=plan_id,
        metadata_={"plan_id": plan_id},
    ))
    db.commit()

    logger.info(f"Checkout session created: session_id={session.id}, user_id={identity.id}, plan={plan_id}")
    return {"sessionId": session.id, "url": session.url}


def create_portal_session(
    db: Session,
    identity: Identity,
    return_url: Optional[str] = None,
    origin: Optional[str] = None,
) -> Dict[str, str]:
    """Create a Stripe customer portal session for the user."""
    stripe_service.ensure_configured()

    customer_id = get_customer_id(db, identity.id)
    if not customer_id:
        raise BillingError("No Stripe customer found. Please subscribe to a plan first.")

    session = stripe_service.create_billing_portal_session(
        customer_id,
        return_url or f"{origin or FRONTEND_URL}/billing",
    )
    logger.info(f"Portal session created for user_id={identity.id}")
    return {"url": session.url}


# ============================================
# WEBHOOK EVENT HANDLERS
# ============================================

def handle_checkout_session_completed(session: Any, db: Session) -> None:
    metadata = field(session, "metadata", {})
    user_id = field(metadata, "user_id")
    plan_id = field(metadata, "plan_id")

    if not user_id:
        logger.error("No user_id in session metadata")
        return

    payment = db.query(StripePayment).filter(
        StripePayment.stripe_checkout_session_id == field(session, "id")
    ).first()
    if payment:
        payment.status = "completed"
        payment.stripe_payment_intent_id = field(session, "payment_intent")
        payment.amount = field(session, "amount_total", 0)

    profile = db.query(Profile).filter(Profile.user_id == user_id).first()
    old_plan = profile.subscription_plan if profile and profile.subscription_plan else "free"

    subscription_id = field(session, "subscription")
    if field(session, "mode") == SUBSCRIPTION_MODE and subscription_id:
        subscription = stripe_service.retrieve_subscription(subscription_id)
        plan = strip_billing_interval(plan_id) if plan_id else resolve_plan_name(subscription)
        upsert_subscription(
            db,
            subscription_values(user_id, field(session, "customer"), subscription, plan),
        )
        mirror_to_profile(db, user_id, "active", plan)
        logger.info(f"Subscription activated for user_id={user_id}, plan={plan}")

    db.add(SubscriptionHistory(
        user_id=user_id,
        old_plan=old_plan,
        new_plan=plan_id or DEFAULT_PLAN_NAME,
        change_reason="Stripe checkout completed",
    ))
    db.commit()


def _user_id_for_subscription(db: Session, subscription: Any) -> Optional[str]:
    user_id = field(field(subscription, "metadata"), "user_id")
    if user_id:
        return user_id
    return get_user_id_for_customer(db, field(subscription, "customer"))


def handle_subscription_updated(subscription: Any, db: Session) -> None:
    user_id = _user_id_for_subscription(db, subscription)
    if not user_id:
        logger.warning(f"Could not find user for subscription update: {field(subscription, 'id')}")
        return

    status = STRIPE_STATUS_MAP.get(field(subscription, "status"), "canceled")
    plan = resolve_plan_name(subscription)

    db.execute(
        update(Subscription)
        .where(Subscription.stripe_subscription_id == field(subscription, "id"))
        .values(
            status=status,
            plan=plan,
            current_period_start=_period(subscription, "current_period_start"),
            current_period_end=_period(subscription, "current_period_end"),
        )
    )
    mirror_to_profile(db, user_id, status, plan)
    db.commit()

    logger.info(f"Subscription updated for user_id={user_id}, status={status}, plan={plan}")


def handle_subscription_deleted(subscription: Any, db: Session) -> None:
    user_id = _user_id_for_subscription(db, subscription)
    if not user_id:
        logger.warning(f"Could not find user for subscription deletion: {field(subscription, 'id')}")
        return

    # Never hard-deleted; keep the row for history and reactivation
    db.execute(
        update(Subscription)
        .where(Subscription.stripe_subscription_id == field(subscription, "id"))
        .values(status="canceled", canceled_at=datetime.now(timezone.utc))
    )
    mirror_to_profile(db, user_id, "canceled", "free")
    db.commit()

    logger.info(f"Subscription canceled for user_id={user_id}")


def handle_invoice_payment_failed(invoice: Any, db: Session) -> None:
    user_id = get_user_id_for_customer(db, field(invoice, "customer"))
    if not user_id:
        logger.warning(f"invoice.payment_failed: no user for customer {field(invoice, 'customer')}")
        return

    db.execute(update(Subscription).where(Subscription.user_id == user_id).values(status="past_due"))
    mirror_to_profile(db, user_id, "past_due")
    db.commit()

    logger.warning(f"Payment failed for user_id={user_id}")


def handle_invoice_payment_succeeded(invoice: Any, db: Session) -> None:
    logger.info(f"Invoice payment succeeded: {field(invoice, 'id')}")


WEBHOOK_HANDLERS = {
    "checkout.session.completed": handle_checkout_session_completed,
    "customer.subscription.updated": handle_subscription_updated,
    "customer.subscription.deleted": handle_subscription_deleted,
    "invoice.payment_failed": handle_invoice_payment_failed,
    "invoice.payment_succeeded": handle_invoice_payment_succeeded,
}


def process_webhook_event(event: Any, db: Session) -> None:
    """
    Dispatch a verified Stripe event to its handler.

    Raises:
        UpstreamFailureError: Handler failed; its changes are rolled back
    """
    event_type = field(event, "type")
    handler = WEBHOOK_HANDLERS.get(event_type)
    if handler is None:
        logger.info(f"Unhandled event type: {event_type}")
        return

    try:
        handler(field(field(event, "data"), "object"), db)
    except (UpstreamFailureError, SQLAlchemyError) as e:
        db.rollback()
        logger.error(f"Webhook error: type={event_type}, {type(e).__name__}: {e}")
        raise UpstreamFailureError("Webhook processing failed") from e
