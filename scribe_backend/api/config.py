import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


def _flag(name, default=False):
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class Settings:
    """Runtime configuration read from the environment (and a .env file when present)."""

    secret_key: str
    access_token_expire_minutes: int
    stripe_secret_key: str
    stripe_webhook_secret: str
    stripe_allow_unverified_webhooks: bool
    app_url: str
    price_ids: dict
    share_require_ownership: bool
    webhook_max_retries: int
    webhook_retry_delay: float
    log_level: str
    cors_origins: tuple

    @property
    def stripe_enabled(self):
        return bool(self.stripe_secret_key)

    def price_id_for(self, plan_id, interval):
        """Configured Stripe price id for a plan and "monthly"/"yearly" interval, or ""."""
        return self.price_ids.get(f"{plan_id}_{interval}", "")


# PUBLIC_INTERFACE
def load_settings():
    """Builds a Settings object from the current environment."""
    load_dotenv()
    origins = os.getenv("CORS_ORIGINS", "*")
    return Settings(
        secret_key=os.getenv("SECRET_KEY", "temporary_dev_secret"),
        access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 30))),
        stripe_secret_key=os.getenv("STRIPE_SECRET_KEY", ""),
        stripe_webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET", ""),
        stripe_allow_unverified_webhooks=_flag("STRIPE_ALLOW_UNVERIFIED_WEBHOOKS"),
        app_url=os.getenv("APP_URL", "").rstrip("/"),
        price_ids={
            "pro_monthly": os.getenv("STRIPE_PRO_MONTHLY_PRICE_ID", ""),
            "pro_yearly": os.getenv("STRIPE_PRO_YEARLY_PRICE_ID", ""),
            "business_monthly": os.getenv("STRIPE_BUSINESS_MONTHLY_PRICE_ID", ""),
            "business_yearly": os.getenv("STRIPE_BUSINESS_YEARLY_PRICE_ID", ""),
        },
        share_require_ownership=_flag("SHARE_REQUIRE_OWNERSHIP", default=True),
        webhook_max_retries=int(os.getenv("WEBHOOK_MAX_RETRIES", "3")),
        webhook_retry_delay=float(os.getenv("WEBHOOK_RETRY_DELAY", "1.0")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
    )


# PUBLIC_INTERFACE
@lru_cache()
def get_settings():
    """Process-wide settings, read once."""
    return load_settings()
