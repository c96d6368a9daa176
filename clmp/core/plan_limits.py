"""
Plan catalogue, quota limits and billing modes.

Single source of truth for per-plan project/seat quotas and for which
checkout plan ids are recurring subscriptions versus one-time payments.
All tables are read-only after import.
"""
import re
from types import MappingProxyType
from typing import Dict, List, Optional

SUBSCRIPTION_MODE = "subscription"
PAYMENT_MODE = "payment"

# Checkout plan id -> Stripe checkout mode
PLAN_BILLING_MODES = MappingProxyType({
    # Subscription plans
    "standard_monthly": SUBSCRIPTION_MODE,
    "standard_yearly": SUBSCRIPTION_MODE,
    "enterprise_monthly": SUBSCRIPTION_MODE,
    "enterprise_yearly": SUBSCRIPTION_MODE,
    # One-time add-ons
    "additional_projects": PAYMENT_MODE,
    "additional_users": PAYMENT_MODE,
    "priority_support": PAYMENT_MODE,
    "ai_risk_addon": PAYMENT_MODE,
})

DEFAULT_PLAN = "trial"

# Plan -> quotas (active projects, team members)
PLAN_LIMITS = MappingProxyType({
    "free": MappingProxyType({"max_projects": 1, "max_users": 5}),
    "trial": MappingProxyType({"max_projects": 3, "max_users": 10}),
    "standard": MappingProxyType({"max_projects": 10, "max_users": 25}),
    "professional": MappingProxyType({"max_projects": 10, "max_users": 25}),
    "enterprise": MappingProxyType({"max_projects": 20, "max_users": 100}),
})

# Plans offered on the pricing page
PLAN_CATALOGUE: List[Dict] = [
    {
        "id": "standard",
        "name": "Standard",
        "description": "For growing construction teams",
        "price_cad": 49.00,
        "features": [
            "10 Active Projects",
            "Up to 25 Team Members",
            "Advanced Task Management",
            "Priority Email Support",
            "Advanced Analytics",
            "Custom Reports",
        ],
    },
    {
        "id": "enterprise",
        "name": "Enterprise",
        "description": "For large organizations",
        "price_cad": 199.00,
        "features": [
            "20 Projects",
            "100 Team Members",
            "All Standard Features",
            "24/7 Priority Support",
            "API Access",
            "Dedicated Account Manager",
        ],
    },
]

PRICE_LOOKUP_PREFIX = "price_"
_BILLING_INTERVAL_SUFFIX = re.compile(r"_(monthly|yearly)$")


def get_billing_mode(plan_id: str) -> Optional[str]:
    """Checkout mode for a plan id, or None if the plan id is unknown."""
    return PLAN_BILLING_MODES.get(plan_id)


def price_lookup_key(plan_id: str) -> str:
    """Stripe price lookup key for a checkout plan id."""
    return f"{PRICE_LOOKUP_PREFIX}{plan_id}"


def strip_billing_interval(plan_id: str) -> str:
    """standard_monthly -> standard"""
    return _BILLING_INTERVAL_SUFFIX.sub("", plan_id)


def plan_name_from_lookup_key(lookup_key: str) -> str:
    """price_enterprise_yearly -> enterprise"""
    if lookup_key.startswith(PRICE_LOOKUP_PREFIX):
        lookup_key = lookup_key[len(PRICE_LOOKUP_PREFIX):]
    return strip_billing_interval(lookup_key)


def get_plan_limits(plan: Optional[str]) -> Dict[str, int]:
    """
    Get the quotas for a plan.

    Unknown or empty plans fall back to the trial quotas.
    """
    plan = plan.lower() if plan else DEFAULT_PLAN
    return dict(PLAN_LIMITS.get(plan, PLAN_LIMITS[DEFAULT_PLAN]))


def get_plan_catalogue() -> List[Dict]:
    """Plans with their quotas merged in, for the pricing page."""
    return [
        {**plan, **get_plan_limits(plan["id"])}
        for plan in PLAN_CATALOGUE
    ]
