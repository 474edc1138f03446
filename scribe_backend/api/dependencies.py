from fastapi import Depends, Request

from scribe_database.db import get_session_factory

from ..billing.gateway import StripeGateway
from .config import get_settings


# DATABASE Dependency
def get_db():
    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# PUBLIC_INTERFACE
def get_gateway(settings=Depends(get_settings)):
    """Stripe gateway, or None when STRIPE_SECRET_KEY is not configured."""
    if not settings.stripe_enabled:
        return None
    return StripeGateway(settings.stripe_secret_key)


# PUBLIC_INTERFACE
def get_webhook_worker(request: Request):
    """The worker started by the application lifespan."""
    return request.app.state.webhook_worker
