from fastapi import APIRouter, Depends, HTTPException, Request

from scribe_database.models import User
from scribe_database.repositories import SubscriptionRepository

from ...billing.gateway import ProviderError
from ...billing.plans import FREE_PLAN_ID, get_plan, is_known_plan, unit_amount_cents
from ..config import get_settings
from ..dependencies import get_db, get_gateway
from ..logger import get_logger
from ..schemas import CheckoutIn, CreateCheckoutIn
from ..security import get_current_user

logger = get_logger("api.billing")

router = APIRouter(prefix="/stripe", tags=["Billing"])


def require_gateway(gateway):
    if gateway is None:
        raise HTTPException(status_code=500, detail="Stripe configuration error")
    return gateway


def app_base_url(request: Request, settings):
    return settings.app_url or request.headers.get("origin") or str(request.base_url).rstrip("/")


def ensure_customer(db, gateway, user: User, initial_fields=None):
    """
    Returns the user's Stripe customer id, creating the customer on first use.

    A newly created customer is recorded right away, together with initial_fields.
    """
    repository = SubscriptionRepository(db)
    record = repository.get_for_user(user.id)
    if record is not None and record.stripe_customer_id:
        return record.stripe_customer_id, record
    customer_id = gateway.create_customer(email=user.email, name=user.username, user_id=user.id)
    record = repository.upsert(user.id, stripe_customer_id=customer_id, **(initial_fields or {}))
    db.commit()
    logger.info("Created Stripe customer %s for user %s", customer_id, user.id)
    return customer_id, record


# PUBLIC_INTERFACE
@router.post("/checkout", summary="Start checkout for a known price")
def checkout(
    body: CheckoutIn,
    request: Request,
    db=Depends(get_db),
    current_user: User = Depends(get_current_user),
    gateway=Depends(get_gateway),
    settings=Depends(get_settings),
):
    """
    Create a subscription checkout session for priceId.
    Returns the session id and hosted checkout URL.
    """
    if not body.price_id:
        raise HTTPException(status_code=400, detail="Price ID is required")
    gateway = require_gateway(gateway)
    base_url = app_base_url(request, settings)
    metadata = {"userId": current_user.id, "planId": body.plan_id or ""}
    try:
        customer_id, _ = ensure_customer(db, gateway, current_user)
        session = gateway.create_checkout_session(
            customer=customer_id,
            line_items=[{"price": body.price_id, "quantity": 1}],
            mode="subscription",
            success_url=f"{base_url}/settings?success=true",
            cancel_url=f"{base_url}/settings?canceled=true",
            subscription_data={"metadata": metadata},
            allow_promotion_codes=True,
            billing_address_collection="auto",
            customer_update={"address": "auto"},
            payment_method_types=["card"],
            metadata={**metadata, "billingInterval": body.billing_interval or ""},
        )
    except ProviderError:
        raise HTTPException(status_code=500, detail="Failed to create checkout session")
    return {"sessionId": session["id"], "url": session["url"]}

# PUBLIC_INTERFACE
@router.post("/create-checkout", summary="Start checkout or plan change for a plan id")
def create_checkout(
    body: CreateCheckoutIn,
    request: Request,
    db=Depends(get_db),
    current_user: User = Depends(get_current_user),
    gateway=Depends(get_gateway),
    settings=Depends(get_settings),
):
    """
    Send the user to Stripe for planId.

    Existing subscribers changing plan go to the billing portal when Stripe
    allows it; everyone else gets a checkout session. Plans without a
    configured price id get a product and price created on demand.
    """
    if not body.plan_id:
        raise HTTPException(status_code=400, detail="Plan ID is required")
    if not is_known_plan(body.plan_id) or body.plan_id == FREE_PLAN_ID:
        raise HTTPException(status_code=400, detail="Invalid plan selected")
    gateway = require_gateway(gateway)

    plan = get_plan(body.plan_id)
    interval = "yearly" if body.interval == "yearly" else "monthly"
    base_url = app_base_url(request, settings)
    success_url = f"{base_url}/settings?success=true&plan={plan['id']}"
    cancel_url = f"{base_url}/settings?canceled=true"

    try:
        customer_id, record = ensure_customer(
            db, gateway, current_user, initial_fields={"plan": FREE_PLAN_ID, "status": "active"}
        )

        if body.is_subscription_change and record.stripe_subscription_id:
            try:
                return {"url": gateway.create_portal_session(customer_id, success_url)}
            except ProviderError as exc:
                logger.warning("Portal unavailable for %s, falling back to checkout: %s", customer_id, exc)

        price_id = settings.price_id_for(plan["id"], interval)
        if not price_id:
            product_id = gateway.create_product(
                name=f"{plan['name']} Plan",
                description=plan["description"],
                metadata={"planId": plan["id"]},
            )
            price_id = gateway.create_price(
                product_id,
                unit_amount=unit_amount_cents(plan["id"], interval),
                interval="year" if interval == "yearly" else "month",
                metadata={"planId": plan["id"]},
            )

        metadata = {"userId": current_user.id, "planId": plan["id"]}
        session = gateway.create_checkout_session(
            customer=customer_id,
            line_items=[{"price": price_id, "quantity": 1}],
            mode="subscription",
            success_url=success_url,
            cancel_url=cancel_url,
            subscription_data={"metadata": metadata},
            allow_promotion_codes=True,
            metadata={**metadata, "interval": interval},
            payment_method_types=["card"],
        )
    except ProviderError:
        raise HTTPException(status_code=500, detail="Failed to create checkout session")
    return {"url": session["url"]}

# PUBLIC_INTERFACE
@router.post("/portal", summary="Open the Stripe billing portal")
def portal(
    request: Request,
    db=Depends(get_db),
    current_user: User = Depends(get_current_user),
    gateway=Depends(get_gateway),
    settings=Depends(get_settings),
):
    """
    Create a billing portal session for the user's Stripe customer.
    """
    gateway = require_gateway(gateway)
    record = SubscriptionRepository(db).get_for_user(current_user.id)
    if record is None or not record.stripe_customer_id:
        raise HTTPException(status_code=404, detail="No subscription found")
    try:
        url = gateway.create_portal_session(
            record.stripe_customer_id, f"{app_base_url(request, settings)}/dashboard"
        )
    except ProviderError:
        raise HTTPException(status_code=500, detail="Failed to open billing portal")
    return {"url": url}

# PUBLIC_INTERFACE
@router.post("/cancel-subscription", summary="Cancel the paid subscription")
def cancel_subscription(
    db=Depends(get_db),
    current_user: User = Depends(get_current_user),
    gateway=Depends(get_gateway),
):
    """
    Cancel the user's subscription immediately and drop them to the free plan.
    A subscription Stripe no longer knows about counts as already canceled.
    """
    repository = SubscriptionRepository(db)
    record = repository.get_for_user(current_user.id)

    if record is None or not record.stripe_subscription_id:
        repository.upsert(current_user.id, plan=FREE_PLAN_ID, status="canceled")
        db.commit()
        return {"success": True, "message": "Set to free plan"}

    gateway = require_gateway(gateway)
    message = "Subscription successfully canceled"
    try:
        gateway.cancel_subscription(record.stripe_subscription_id)
    except ProviderError as exc:
        if exc.code != "resource_missing":
            raise HTTPException(status_code=500, detail="Failed to cancel subscription")
        logger.info("Subscription %s already gone at Stripe", record.stripe_subscription_id)
        message = "Updated to free plan"

    repository.upsert(current_user.id, plan=FREE_PLAN_ID, status="canceled")
    db.commit()
    return {"success": True, "message": message}
