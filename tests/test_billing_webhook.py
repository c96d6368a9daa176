"""
Integration tests for POST /billing/webhook.

Events are signed with the test webhook secret, so the real Stripe
signature verification runs.
"""
import hashlib
import hmac
import json
import time
from datetime import datetime, timezone

import pytest

from clmp.core.config import STRIPE_WEBHOOK_SECRET
from clmp.db.models import (
    Profile,
    StripeCustomer,
    StripePayment,
    Subscription,
    SubscriptionHistory,
)
from clmp.services import stripe_service


def sign(payload: str, secret: str = STRIPE_WEBHOOK_SECRET) -> str:
    timestamp = int(time.time())
    signature = hmac.new(
        secret.encode("utf-8"),
        f"{timestamp}.{payload}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


def post_event(client, event_type: str, obj: dict):
    payload = json.dumps({
        "id": "evt_test",
        "object": "event",
        "type": event_type,
        "data": {"object": obj},
    })
    return client.post(
        "/billing/webhook",
        content=payload,
        headers={"Stripe-Signature": sign(payload), "Content-Type": "application/json"},
    )


@pytest.fixture
def subscriber(db_session, new_user_id, create_profile):
    user_id = new_user_id()
    create_profile(user_id, subscription_status="active", subscription_plan="standard")
    db_session.add(StripeCustomer(user_id=user_id, stripe_customer_id="cus_hook"))
    db_session.add(Subscription(
        user_id=user_id,
        plan="standard",
        status="active",
        stripe_subscription_id="sub_hook",
        stripe_customer_id="cus_hook",
    ))
    db_session.commit()
    return user_id


def test_missing_signature(client):
    response = client.post("/billing/webhook", content="{}")

    assert response.status_code == 400
    assert response.json() == {"error": "No Stripe signature found"}


def test_bad_signature(client):
    payload = json.dumps({"id": "evt_1", "object": "event", "type": "invoice.payment_succeeded", "data": {"object": {}}})

    response = client.post(
        "/billing/webhook",
        content=payload,
        headers={"Stripe-Signature": sign(payload, secret="whsec_wrong")},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Webhook signature verification failed"}


def test_webhook_secret_required(client, monkeypatch):
    monkeypatch.setattr(stripe_service, "STRIPE_WEBHOOK_SECRET", None)

    response = client.post("/billing/webhook", content="{}", headers={"Stripe-Signature": "t=1,v1=abc"})

    assert response.status_code == 400
    assert "STRIPE_WEBHOOK_SECRET" in response.json()["error"]


def test_unhandled_event_type(client):
    response = post_event(client, "customer.created", {"id": "cus_x"})

    assert response.status_code == 200
    assert response.json() == {"received": True}


def test_subscription_deleted(client, db_session, subscriber):
    response = post_event(client, "customer.subscription.deleted", {
        "id": "sub_hook",
        "object": "subscription",
        "customer": "cus_hook",
        "status": "canceled",
        "metadata": {},
    })

    assert response.status_code == 200
    db_session.expire_all()
    sub = db_session.query(Subscription).filter(Subscription.user_id == subscriber).one()
    assert sub.status == "canceled"
    assert sub.canceled_at is not None
    profile = db_session.query(Profile).filter(Profile.user_id == subscriber).one()
    assert profile.subscription_status == "canceled"
    assert profile.subscription_plan == "free"


def test_subscription_updated(client, db_session, subscriber):
    response = post_event(client, "customer.subscription.updated", {
        "id": "sub_hook",
        "object": "subscription",
        "customer": "cus_hook",
        "status": "past_due",
        "current_period_start": 1700000000,
        "current_period_end": 1702592000,
        "metadata": {"user_id": subscriber},
        "items": {"object": "list", "data": [
            {"id": "si_1", "price": {"id": "price_ent", "lookup_key": "price_enterprise_monthly"}},
        ]},
    })

    assert response.status_code == 200
    db_session.expire_all()
    sub = db_session.query(Subscription).filter(Subscription.user_id == subscriber).one()
    assert sub.status == "past_due"
    assert sub.plan == "enterprise"
    assert sub.current_period_end.replace(tzinfo=timezone.utc) == datetime.fromtimestamp(1702592000, tz=timezone.utc)
    profile = db_session.query(Profile).filter(Profile.user_id == subscriber).one()
    assert profile.subscription_status == "past_due"
    assert profile.subscription_plan == "enterprise"


def test_invoice_payment_failed(client, db_session, subscriber):
    response = post_event(client, "invoice.payment_failed", {
        "id": "in_1",
        "object": "invoice",
        "customer": "cus_hook",
    })

    assert response.status_code == 200
    db_session.expire_all()
    sub = db_session.query(Subscription).filter(Subscription.user_id == subscriber).one()
    assert sub.status == "past_due"


def test_checkout_completed(client, db_session, monkeypatch, new_user_id, create_profile):
    user_id = new_user_id()
    create_profile(user_id, subscription_plan="trial")
    db_session.add(StripePayment(
        user_id=user_id,
        stripe_checkout_session_id="cs_done",
        status="pending",
        product_type="subscription",
        product_id="enterprise_yearly",
    ))
    db_session.commit()
    monkeypatch.setattr(stripe_service, "retrieve_subscription", lambda subscription_id: {
        "id": subscription_id,
        "current_period_start": 1700000000,
        "current_period_end": 1731536000,
        "metadata": {},
        "items": {"data": [{"price": {"id": "price_ent_y", "lookup_key": "price_enterprise_yearly"}}]},
    })

    response = post_event(client, "checkout.session.completed", {
        "id": "cs_done",
        "object": "checkout.session",
        "mode": "subscription",
        "customer": "cus_done",
        "subscription": "sub_done",
        "payment_intent": None,
        "amount_total": 199000,
        "metadata": {"user_id": user_id, "plan_id": "enterprise_yearly"},
    })

    assert response.status_code == 200
    db_session.expire_all()
    payment = db_session.query(StripePayment).filter(StripePayment.stripe_checkout_session_id == "cs_done").one()
    assert payment.status == "completed"
    assert payment.amount == 199000

    sub = db_session.query(Subscription).filter(Subscription.user_id == user_id).one()
    assert sub.plan == "enterprise"
    assert sub.status == "active"
    assert sub.stripe_subscription_id == "sub_done"
    assert sub.stripe_customer_id == "cus_done"

    profile = db_session.query(Profile).filter(Profile.user_id == user_id).one()
    assert profile.subscription_plan == "enterprise"

    history = db_session.query(SubscriptionHistory).filter(SubscriptionHistory.user_id == user_id).one()
    assert history.old_plan == "trial"
    assert history.new_plan == "enterprise_yearly"


def test_checkout_completed_without_user(client, db_session):
    response = post_event(client, "checkout.session.completed", {
        "id": "cs_orphan",
        "object": "checkout.session",
        "mode": "payment",
        "metadata": {},
    })

    assert response.status_code == 200
    assert db_session.query(SubscriptionHistory).count() == 0
