import hashlib
import hmac
import json
import time

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from scribe_backend.api.config import Settings, get_settings
from scribe_backend.api.dependencies import get_db, get_gateway, get_webhook_worker
from scribe_backend.api.main import app
from scribe_backend.billing.gateway import ProviderError
from scribe_database.models import Base

WEBHOOK_SECRET = "whsec_test_secret"


class FakeStripeGateway:
    """Records Stripe calls and serves canned subscriptions and products."""

    def __init__(self):
        self.calls = []
        self.subscriptions = {}
        self.products = {}
        self.failures = {}
        self._customers = 0

    def _record(self, call, **kwargs):
        self.calls.append((call, kwargs))
        failure = self.failures.get(call)
        if failure is not None:
            raise failure

    def called(self, call):
        return [kwargs for name, kwargs in self.calls if name == call]

    def create_customer(self, email, name, user_id):
        self._record("create_customer", email=email, name=name, user_id=user_id)
        self._customers += 1
        return f"cus_test_{self._customers}"

    def create_checkout_session(self, **params):
        self._record("create_checkout_session", **params)
        return {"id": "cs_test_1", "url": "https://checkout.stripe.test/cs_test_1"}

    def create_portal_session(self, customer_id, return_url):
        self._record("create_portal_session", customer_id=customer_id, return_url=return_url)
        return "https://billing.stripe.test/portal"

    def create_product(self, name, description, metadata):
        self._record("create_product", name=name, description=description, metadata=metadata)
        return "prod_created"

    def create_price(self, product_id, unit_amount, interval, metadata, currency="usd"):
        self._record("create_price", product_id=product_id, unit_amount=unit_amount,
                     interval=interval, metadata=metadata, currency=currency)
        return "price_created"

    def retrieve_subscription(self, subscription_id):
        self._record("retrieve_subscription", subscription_id=subscription_id)
        if subscription_id not in self.subscriptions:
            raise ProviderError("No such subscription", code="resource_missing")
        return json.loads(json.dumps(self.subscriptions[subscription_id]))

    def retrieve_product(self, product_id):
        self._record("retrieve_product", product_id=product_id)
        return self.products[product_id]

    def cancel_subscription(self, subscription_id):
        self._record("cancel_subscription", subscription_id=subscription_id)
        return {"id": subscription_id, "status": "canceled"}


class RecordingWorker:
    """Stands in for the webhook worker; keeps submitted events."""

    def __init__(self):
        self.events = []

    def submit(self, event):
        self.events.append(event)


def stripe_subscription(sub_id="sub_123", customer="cus_123", status="active", product="prod_pro",
                        period_end=1893456000, cancel_at_period_end=False, metadata=None):
    return {
        "id": sub_id,
        "object": "subscription",
        "customer": customer,
        "status": status,
        "current_period_end": period_end,
        "cancel_at_period_end": cancel_at_period_end,
        "metadata": metadata or {},
        "items": {"data": [{"price": {"id": "price_123", "product": product}}]},
    }


def stripe_event(event_type, data_object, event_id="evt_1"):
    return {"id": event_id, "object": "event", "type": event_type, "data": {"object": data_object}}


def sign(payload, secret=WEBHOOK_SECRET, timestamp=None):
    """Builds a Stripe-Signature header the way Stripe signs webhook deliveries."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def make_settings(**overrides):
    values = dict(
        secret_key="test_secret",
        access_token_expire_minutes=60,
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret=WEBHOOK_SECRET,
        stripe_allow_unverified_webhooks=False,
        app_url="https://notes.example.com",
        price_ids={"pro_monthly": "", "pro_yearly": "", "business_monthly": "", "business_yearly": ""},
        share_require_ownership=True,
        webhook_max_retries=0,
        webhook_retry_delay=0,
        log_level="INFO",
        cors_origins=("*",),
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def engine():
    """Fixture for an in-memory SQLite engine shared by every session in a test."""
    return create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )

@pytest.fixture
def tables(engine):
    """Create tables for the test and drop after done."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def session_factory(engine, tables):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture
def db_session(session_factory):
    """Provide a SQLAlchemy session for isolated test usage."""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

@pytest.fixture
def settings():
    return make_settings()

@pytest.fixture
def gateway():
    return FakeStripeGateway()

@pytest.fixture
def worker():
    return RecordingWorker()

@pytest.fixture
def client(db_session, settings, gateway, worker):
    """Fixture for FastAPI TestClient with test DB, settings, Stripe and worker overrides."""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_webhook_worker] = lambda: worker

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()

@pytest.fixture
def user_data():
    """Returns default user data for registration."""
    return {
        "username": "alice",
        "email": "alice@example.com",
        "password": "alicepassword123"
    }

@pytest.fixture
def second_user_data():
    """Returns a second user's data."""
    return {
        "username": "bob",
        "email": "bob@example.com",
        "password": "bobpassword456"
    }

def register_and_auth(client, username, email, password):
    """Helper for registering then logging in to get JWT token."""
    r1 = client.post("/auth/register", json={
        "username": username, "email": email, "password": password
    })
    assert r1.status_code == 200 or r1.status_code == 409

    r2 = client.post("/auth/login", data={
        "username": username, "password": password
    })
    assert r2.status_code == 200
    return r2.json()["access_token"]

@pytest.fixture
def auth_header(client, user_data):
    """Returns {'Authorization': 'Bearer <token>'} for default user."""
    token = register_and_auth(client, user_data["username"], user_data["email"], user_data["password"])
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture
def second_auth_header(client, second_user_data):
    """Returns auth header for second user."""
    token = register_and_auth(client, second_user_data["username"], second_user_data["email"], second_user_data["password"])
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture
def current_user_id(client, auth_header):
    return client.get("/auth/me", headers=auth_header).json()["id"]

@pytest.fixture
def make_subscription():
    return stripe_subscription

@pytest.fixture
def make_event():
    return stripe_event

@pytest.fixture
def sign_payload():
    return sign

@pytest.fixture
def settings_factory():
    return make_settings
