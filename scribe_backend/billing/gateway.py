"""
Thin wrapper over the Stripe SDK.

Everything returned is a plain dict so the reconciler and route handlers never
depend on SDK object types, and every SDK failure surfaces as ProviderError.
"""
import json
from contextlib import contextmanager

import stripe

from ..api.logger import get_logger

logger = get_logger("billing.gateway")


class ProviderError(Exception):
    """A Stripe API call failed. code carries Stripe's error code (e.g. "resource_missing")."""

    def __init__(self, message, code=None):
        super().__init__(message)
        self.message = message
        self.code = code


class WebhookVerificationError(Exception):
    """The webhook payload could not be authenticated or parsed."""


def _as_dict(obj):
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj
    return obj.to_dict()


@contextmanager
def _translate_errors(action):
    try:
        yield
    except stripe.StripeError as exc:
        message = getattr(exc, "user_message", None) or str(exc)
        logger.error("Stripe %s failed: %s", action, message)
        raise ProviderError(message, code=getattr(exc, "code", None)) from exc


# PUBLIC_INTERFACE
def construct_event(payload, sig_header, secret, tolerance=300):
    """
    Verifies a webhook payload against the shared signing secret and parses it.

    Raises WebhookVerificationError when the signature is missing, wrong or
    stale, or when the body is not a JSON event envelope.
    """
    if not sig_header:
        raise WebhookVerificationError("Missing Stripe-Signature header")
    try:
        event = stripe.Webhook.construct_event(
            payload=payload, sig_header=sig_header, secret=secret, tolerance=tolerance
        )
    except stripe.SignatureVerificationError as exc:
        raise WebhookVerificationError(str(exc)) from exc
    except ValueError as exc:
        raise WebhookVerificationError("Webhook body is not valid JSON") from exc
    return _check_envelope(_as_dict(event))


# PUBLIC_INTERFACE
def parse_event(payload):
    """Parses an event envelope without verifying it (development mode only)."""
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8")
    try:
        event = json.loads(payload)
    except ValueError as exc:
        raise WebhookVerificationError("Webhook body is not valid JSON") from exc
    return _check_envelope(event)


def _check_envelope(event):
    if not isinstance(event, dict) or "type" not in event or not isinstance(event.get("data"), dict):
        raise WebhookVerificationError("Webhook body is not a Stripe event")
    return event


# PUBLIC_INTERFACE
class StripeGateway:
    """Stripe operations used by the billing routes and the reconciler."""

    def __init__(self, api_key):
        stripe.api_key = api_key

    def create_customer(self, email, name, user_id):
        with _translate_errors("customer creation"):
            customer = stripe.Customer.create(email=email, name=name, metadata={"userId": user_id})
        return customer["id"]

    def create_checkout_session(self, **params):
        with _translate_errors("checkout session creation"):
            session = stripe.checkout.Session.create(**params)
        return {"id": session["id"], "url": session["url"]}

    def create_portal_session(self, customer_id, return_url):
        with _translate_errors("portal session creation"):
            session = stripe.billing_portal.Session.create(customer=customer_id, return_url=return_url)
        return session["url"]

    def create_product(self, name, description, metadata):
        with _translate_errors("product creation"):
            product = stripe.Product.create(name=name, description=description, metadata=metadata)
        return product["id"]

    def create_price(self, product_id, unit_amount, interval, metadata, currency="usd"):
        with _translate_errors("price creation"):
            price = stripe.Price.create(
                product=product_id,
                unit_amount=unit_amount,
                currency=currency,
                recurring={"interval": interval},
                metadata=metadata,
            )
        return price["id"]

    def retrieve_subscription(self, subscription_id):
        with _translate_errors("subscription retrieval"):
            return _as_dict(stripe.Subscription.retrieve(subscription_id))

    def retrieve_product(self, product_id):
        with _translate_errors("product retrieval"):
            return _as_dict(stripe.Product.retrieve(product_id))

    def cancel_subscription(self, subscription_id):
        with _translate_errors("subscription cancellation"):
            return _as_dict(stripe.Subscription.cancel(subscription_id))
