"""Subscription tiers offered on the pricing page and enforced by the dashboard."""

FREE_PLAN_ID = "free"

SUBSCRIPTION_PLANS = {
    "free": {
        "id": "free",
        "name": "Free",
        "description": "For individual note-taking",
        "price_monthly": 0,
        "price_yearly": 0,
        "max_notes": 5,
        "max_storage_mb": 50,
        "features": [
            {"name": "Up to 5 notes", "included": True},
            {"name": "Basic formatting", "included": True},
            {"name": "50MB storage", "included": True},
            {"name": "Access on all devices", "included": True},
            {"name": "Note sharing", "included": True},
            {"name": "Collaboration features", "included": False},
            {"name": "Priority support", "included": False},
        ],
    },
    "pro": {
        "id": "pro",
        "name": "Pro",
        "description": "For power users",
        "price_monthly": 9.99,
        "price_yearly": 99.99,
        "max_notes": 100,
        "max_storage_mb": 1000,
        "features": [
            {"name": "Up to 100 notes", "included": True},
            {"name": "Advanced formatting", "included": True},
            {"name": "1GB storage", "included": True},
            {"name": "Access on all devices", "included": True},
            {"name": "Note sharing", "included": True},
            {"name": "Collaboration features", "included": True},
            {"name": "Priority support", "included": False},
        ],
    },
    "business": {
        "id": "business",
        "name": "Business",
        "description": "For teams and businesses",
        "price_monthly": 19.99,
        "price_yearly": 199.99,
        "max_notes": 500,
        "max_storage_mb": 10000,
        "features": [
            {"name": "Unlimited notes", "included": True},
            {"name": "Advanced formatting", "included": True},
            {"name": "10GB storage", "included": True},
            {"name": "Access on all devices", "included": True},
            {"name": "Note sharing", "included": True},
            {"name": "Collaboration features", "included": True},
            {"name": "Priority support", "included": True},
        ],
    },
}


def get_plan(plan_id):
    """Plan definition for plan_id, falling back to the free plan."""
    return SUBSCRIPTION_PLANS.get(plan_id or FREE_PLAN_ID, SUBSCRIPTION_PLANS[FREE_PLAN_ID])


def is_known_plan(plan_id):
    return plan_id in SUBSCRIPTION_PLANS


def normalize_plan(plan_id):
    """Maps arbitrary tier strings (e.g. from Stripe metadata) onto a known plan id."""
    if plan_id is None:
        return FREE_PLAN_ID
    plan_id = str(plan_id).strip().lower()
    return plan_id if plan_id in SUBSCRIPTION_PLANS else FREE_PLAN_ID


def unit_amount_cents(plan_id, interval):
    """Price in cents for "monthly" or "yearly" billing."""
    plan = get_plan(plan_id)
    price = plan["price_yearly"] if interval == "yearly" else plan["price_monthly"]
    return int(round(price * 100))
