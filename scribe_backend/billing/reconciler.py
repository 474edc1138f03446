"""
Maps Stripe billing events onto the local subscription record.

Every transition is a full-field upsert keyed by the user, so replaying an
event yields the same row. Delivery order is not checked: an "updated" event
processed after a "deleted" one for the same customer overwrites it.
"""
from datetime import datetime, timezone

from scribe_database.repositories import SubscriptionRepository

from ..api.logger import get_logger
from .plans import FREE_PLAN_ID, normalize_plan

logger = get_logger("billing.reconciler")


def _ref_id(value):
    """Stripe references are either ids or expanded objects."""
    if isinstance(value, dict):
        return value.get("id")
    return value


def _first_item(subscription):
    items = (subscription.get("items") or {}).get("data") or []
    return items[0] if items else {}


def period_end(subscription):
    """current_period_end as a naive UTC datetime; newer API versions keep it on the item."""
    timestamp = subscription.get("current_period_end")
    if timestamp is None:
        timestamp = _first_item(subscription).get("current_period_end")
    if timestamp is None:
        return None
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc).replace(tzinfo=None)


# PUBLIC_INTERFACE
class SubscriptionReconciler:
    """
    Applies one Stripe event to the subscription store.

    gateway may be None when Stripe credentials are absent (development mode);
    in that case the subscription objects carried by the events are used as-is
    and checkout events, which only carry a reference, are skipped.
    """

    def __init__(self, gateway, repository: SubscriptionRepository):
        self.gateway = gateway
        self.repository = repository
        self._handlers = {
            "checkout.session.completed": self.handle_checkout_completed,
            "customer.subscription.created": self.handle_subscription_updated,
            "customer.subscription.updated": self.handle_subscription_updated,
            "customer.subscription.deleted": self.handle_subscription_deleted,
            "invoice.payment_succeeded": self.handle_invoice_paid,
        }

    def handle(self, event):
        """Dispatches an event envelope. Returns the written row, or None when nothing changed."""
        event_type = event.get("type")
        handler = self._handlers.get(event_type)
        if handler is None:
            logger.debug("Ignoring webhook event %s", event_type)
            return None
        logger.info("Processing webhook %s (%s)", event_type, event.get("id"))
        data_object = (event.get("data") or {}).get("object") or {}
        return handler(data_object)

    def handle_checkout_completed(self, session):
        subscription_id = _ref_id(session.get("subscription"))
        customer_id = _ref_id(session.get("customer"))
        if not subscription_id or not customer_id:
            logger.info("Checkout session %s has no subscription; skipping", session.get("id"))
            return None

        user_id = (session.get("metadata") or {}).get("userId")
        if not user_id:
            record = self.repository.get_for_customer(customer_id)
            user_id = record.user_id if record is not None else None
        if not user_id:
            logger.warning("Checkout for unknown customer %s; skipping", customer_id)
            return None

        subscription = self._fetch_subscription(session.get("subscription"))
        if subscription is None:
            logger.warning("Cannot fetch subscription %s without Stripe credentials", subscription_id)
            return None

        plan = self._plan_candidate(subscription, session) or FREE_PLAN_ID
        record = self._write(user_id, subscription, plan, stripe_customer_id=customer_id)
        logger.info("Customer %s checked out %s plan (%s)", customer_id, record.plan, record.status)
        return record

    def handle_subscription_updated(self, subscription):
        customer_id = _ref_id(subscription.get("customer"))
        record = self.repository.get_for_customer(customer_id)
        if record is None:
            logger.warning("Subscription change for unknown customer %s; skipping", customer_id)
            return None

        current = self._fetch_subscription(subscription) or subscription
        plan = self._plan_candidate(current) or record.plan
        record = self._write(record.user_id, current, plan)
        logger.info("Subscription for customer %s is now %s/%s", customer_id, record.plan, record.status)
        return record

    def handle_invoice_paid(self, invoice):
        subscription_ref = invoice.get("subscription")
        if subscription_ref is None:
            # Newer API versions nest it under parent.subscription_details
            details = (invoice.get("parent") or {}).get("subscription_details") or {}
            subscription_ref = details.get("subscription")
        customer_id = _ref_id(invoice.get("customer"))
        if not subscription_ref or not customer_id:
            return None

        record = self.repository.get_for_customer(customer_id)
        if record is None:
            logger.warning("Invoice paid for unknown customer %s; skipping", customer_id)
            return None

        subscription = self._fetch_subscription(subscription_ref)
        if subscription is None:
            return None
        return self.repository.upsert(
            record.user_id,
            status=subscription.get("status"),
            current_period_end=period_end(subscription),
            cancel_at_period_end=bool(subscription.get("cancel_at_period_end")),
        )

    def handle_subscription_deleted(self, subscription):
        customer_id = _ref_id(subscription.get("customer"))
        record = self.repository.get_for_customer(customer_id)
        if record is None:
            logger.warning("Deletion for unknown customer %s; skipping", customer_id)
            return None
        record = self.repository.upsert(
            record.user_id,
            status="canceled",
            plan=FREE_PLAN_ID,
            stripe_subscription_id=None,
        )
        logger.info("Subscription for customer %s canceled", customer_id)
        return record

    def _write(self, user_id, subscription, plan, **extra):
        status = subscription.get("status")
        if status == "canceled":
            plan = FREE_PLAN_ID
        return self.repository.upsert(
            user_id,
            stripe_subscription_id=subscription.get("id"),
            plan=plan,
            status=status,
            current_period_end=period_end(subscription),
            cancel_at_period_end=bool(subscription.get("cancel_at_period_end")),
            **extra,
        )

    def _fetch_subscription(self, ref):
        if self.gateway is None:
            return ref if isinstance(ref, dict) else None
        return self.gateway.retrieve_subscription(_ref_id(ref))

    def _plan_candidate(self, subscription, session=None):
        """Plan tier named by product metadata, then subscription metadata, then session metadata."""
        product = ((_first_item(subscription).get("price") or {}).get("product"))
        if isinstance(product, str) and self.gateway is not None:
            product = self.gateway.retrieve_product(product)
        if isinstance(product, dict):
            metadata = product.get("metadata") or {}
            tier = metadata.get("plan") or metadata.get("planId")
            if tier:
                return normalize_plan(tier)

        tier = (subscription.get("metadata") or {}).get("planId")
        if not tier and session is not None:
            tier = (session.get("metadata") or {}).get("planId")
        return normalize_plan(tier) if tier else None
