from fastapi import APIRouter, Depends, HTTPException, Request

from ...billing.gateway import WebhookVerificationError, construct_event, parse_event
from ..config import get_settings
from ..dependencies import get_webhook_worker
from ..logger import get_logger

logger = get_logger("api.webhooks")

router = APIRouter(tags=["Webhooks"])


def read_event(payload: bytes, signature, settings):
    """Authenticates and parses a webhook body according to the configured mode."""
    if settings.stripe_webhook_secret:
        return construct_event(payload, signature, settings.stripe_webhook_secret)
    if settings.stripe_allow_unverified_webhooks:
        logger.warning("Accepting UNVERIFIED webhook: STRIPE_WEBHOOK_SECRET is not set")
        return parse_event(payload)
    raise HTTPException(
        status_code=500,
        detail="Stripe webhook secret not configured. Set STRIPE_WEBHOOK_SECRET "
               "(or STRIPE_ALLOW_UNVERIFIED_WEBHOOKS=true for local development).",
    )


# PUBLIC_INTERFACE
@router.post("/webhooks/stripe", summary="Stripe webhook receiver")
async def stripe_webhook(
    request: Request,
    settings=Depends(get_settings),
    worker=Depends(get_webhook_worker),
):
    """
    Verify the event and queue it for reconciliation.

    The response is sent as soon as the event is queued; the subscription
    record is updated by the webhook worker afterwards.
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    try:
        event = read_event(payload, signature, settings)
    except WebhookVerificationError as exc:
        logger.warning("Rejected webhook: %s", exc)
        raise HTTPException(status_code=400, detail=f"Webhook Error: {exc}")

    worker.submit(event)
    logger.info("Queued webhook %s (%s)", event.get("type"), event.get("id"))
    return {"received": True}


# Older Stripe dashboards were pointed at this path
router.add_api_route(
    "/stripe/webhook", stripe_webhook, methods=["POST"], include_in_schema=False
)
