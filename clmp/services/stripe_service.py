"""
Stripe gateway: every call the service makes to the payment provider.

Each function is a single request/response round trip. Provider errors
are converted to UpstreamFailureError; callers decide what to surface.
"""
import logging
from typing import Any, Dict, Optional
import stripe
from clmp.core.config import (
    STRIPE_SECRET_KEY,
    STRIPE_WEBHOOK_SECRET,
    STRIPE_API_VERSION,
)
from clmp.core.errors import BillingError, UpstreamFailureError

logger = logging.getLogger(__name__)

# Initialize Stripe client
if STRIPE_SECRET_KEY:
    stripe.api_key = STRIPE_SECRET_KEY
    stripe.api_version = STRIPE_API_VERSION
else:
    logger.warning("STRIPE_SECRET_KEY not configured - Stripe features disabled")


def ensure_configured() -> None:
    """Raise BillingError if the Stripe secret key is missing."""
    if not STRIPE_SECRET_KEY:
        raise BillingError("Stripe secret key not configured")


def field(obj: Any, key: str, default: Any = None) -> Any:
    """
    Read a field from a Stripe object or plain dict.

    Missing keys and null values both return the default.
    """
    if obj is None:
        return default
    try:
        value = obj[key]
    except (KeyError, IndexError, TypeError):
        return default
    return default if value is None else value


def first_item(subscription: Any) -> Any:
    """First subscription item, or None."""
    items = field(field(subscription, "items"), "data", [])
    return items[0] if items else None


def list_active_subscription(customer_id: str) -> Optional[Any]:
    """
    Most recent active subscription of a customer.

    Returns:
        The subscription object, or None if the customer has none
    """
    try:
        subscriptions = stripe.Subscription.list(
            customer=customer_id,
            status="active",
            limit=1,
        )
    except stripe.StripeError as e:
        logger.error(f"Stripe error listing subscriptions for customer_id={customer_id}: {e}")
        raise UpstreamFailureError(f"Failed to list subscriptions: {e.user_message or e}") from e

    data = field(subscriptions, "data", [])
    return data[0] if data else None


def retrieve_subscription(subscription_id: str) -> Any:
    try:
        return stripe.Subscription.retrieve(subscription_id)
    except stripe.StripeError as e:
        logger.error(f"Stripe error retrieving subscription_id={subscription_id}: {e}")
        raise UpstreamFailureError(f"Failed to retrieve subscription: {e.user_message or e}") from e


def find_price_id(lookup_key: str) -> Optional[str]:
    """Active price id for a lookup key, or None."""
    try:
        prices = stripe.Price.list(lookup_keys=[lookup_key], active=True)
    except stripe.StripeError as e:
        logger.error(f"Stripe error looking up price {lookup_key}: {e}")
        raise UpstreamFailureError(f"Failed to look up price: {e.user_message or e}") from e

    data = field(prices, "data", [])
    return field(data[0], "id") if data else None


def create_customer(user_id: str, email: Optional[str]) -> str:
    """Create a Stripe customer and return its id."""
    try:
        customer = stripe.Customer.create(
            email=email,
            metadata={"user_id": user_id},
        )
    except stripe.StripeError as e:
        logger.error(f"Stripe error creating customer for user_id={user_id}: {e}")
        raise UpstreamFailureError(f"Failed to create customer: {e.user_message or e}") from e

    logger.info(f"Created Stripe customer for user_id={user_id}, customer_id={customer.id}")
    return customer.id


def create_checkout_session(params: Dict[str, Any]) -> Any:
    """
    Create Stripe Checkout session.

    Args:
        params: Checkout session parameters (customer, line_items, mode, urls, metadata)

    Returns:
        Checkout session object (id, url)
    """
    try:
        session = stripe.checkout.Session.create(**params)
    except stripe.StripeError as e:
        logger.error(f"Stripe error creating checkout session: {e}")
        raise UpstreamFailureError(f"Failed to create checkout session: {e.user_message or e}") from e

    logger.info(f"Created checkout session: session_id={session.id}, mode={params.get('mode')}")
    return session


def create_billing_portal_session(customer_id: str, return_url: str) -> Any:
    """
    Create Stripe Billing Portal session for managing subscription.

    Args:
        customer_id: Stripe customer ID
        return_url: URL to return to after portal session

    Returns:
        Portal session object (url)
    """
    try:
        session = stripe.billing_portal.Session.create(
            customer=customer_id,
            return_url=return_url,
        )
    except stripe.StripeError as e:
        logger.error(f"Stripe error creating portal session: {e}")
        raise UpstreamFailureError(f"Failed to create portal session: {e.user_message or e}") from e

    logger.info(f"Created billing portal session for customer_id={customer_id}")
    return session


def verify_webhook(request_body: bytes, signature: Optional[str]) -> Any:
    """
    Verify and parse Stripe webhook event.

    Args:
        request_body: Raw request body bytes
        signature: Stripe-Signature header value

    Returns:
        Parsed event

    Raises:
        BillingError: If the secret is missing or verification fails
    """
    if not STRIPE_WEBHOOK_SECRET:
        logger.error("CRITICAL: STRIPE_WEBHOOK_SECRET is not configured!")
        raise BillingError("Webhook signature verification required - STRIPE_WEBHOOK_SECRET not configured")

    if not signature:
        logger.error("No Stripe signature found in request")
        raise BillingError("No Stripe signature found")

    try:
        event = stripe.Webhook.construct_event(
            request_body, signature, STRIPE_WEBHOOK_SECRET
        )
    except ValueError as e:
        logger.error(f"Invalid webhook payload: {e}")
        raise BillingError("Invalid webhook payload")
    except stripe.SignatureVerificationError as e:
        logger.error(f"Webhook signature verification failed: {e}")
        raise BillingError("Webhook signature verification failed")

    logger.info(f"Verified webhook event: {event['type']}, id={event['id']}")
    return event
