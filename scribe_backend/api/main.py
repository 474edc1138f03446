from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scribe_database.db import get_session_factory
from scribe_database.repositories import SubscriptionRepository

from ..billing.gateway import StripeGateway
from ..billing.reconciler import SubscriptionReconciler
from ..billing.worker import WebhookWorker
from .config import get_settings
from .errors import register_exception_handlers
from .logger import setup_logger
from .routes import auth, billing, notes, setup, share, subscription, webhooks


def build_webhook_worker(settings):
    """Worker whose sessions come from the process-wide factory, acquired per event."""
    gateway = StripeGateway(settings.stripe_secret_key) if settings.stripe_enabled else None
    return WebhookWorker(
        session_factory=lambda: get_session_factory()(),
        reconciler_factory=lambda db: SubscriptionReconciler(gateway, SubscriptionRepository(db)),
        max_retries=settings.webhook_max_retries,
        retry_delay=settings.webhook_retry_delay,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Starts the webhook worker with the app and drains it on shutdown."""
    settings = get_settings()
    logger = setup_logger(settings.log_level)
    if not settings.stripe_enabled:
        logger.warning("STRIPE_SECRET_KEY is not set; billing endpoints are disabled")
    worker = build_webhook_worker(settings)
    worker.start()
    app.state.webhook_worker = worker
    try:
        yield
    finally:
        worker.stop()


# FastAPI app config
app = FastAPI(
    title="Scribe Notes API",
    description="Backend API for notes, note sharing and subscription billing.",
    version="1.0.0",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Authentication", "description": "User registration, login, and security"},
        {"name": "Notes", "description": "Create, update, view, delete, search notes"},
        {"name": "Sharing", "description": "Public links to notes"},
        {"name": "Billing", "description": "Stripe checkout, portal and cancellation"},
        {"name": "Subscription", "description": "Plans and the caller's entitlements"},
        {"name": "Webhooks", "description": "Stripe event intake"},
        {"name": "Setup", "description": "Database schema maintenance"},
    ]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(get_settings().cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)

app.include_router(auth.router)
app.include_router(notes.router)
app.include_router(share.router)
app.include_router(billing.router)
app.include_router(subscription.router)
app.include_router(webhooks.router)
app.include_router(setup.router)


# Root Health Check
@app.get("/", summary="Health Check", tags=["General"])
def health_check():
    """Simple health check endpoint."""
    return {"message": "Healthy"}
