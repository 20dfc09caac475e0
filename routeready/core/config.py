import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Database
    DATABASE_URL: Optional[str] = "sqlite:///./routeready.db"
    TEST_DATABASE_URL: Optional[str] = None

    # Clerk Auth
    CLERK_SECRET_KEY: Optional[str] = None
    CLERK_ISSUER: Optional[str] = None  # e.g. https://your-instance.clerk.accounts.dev
    CLERK_AUDIENCE: Optional[str] = None

    # Google Maps (Directions API)
    GOOGLE_MAPS_API_KEY: Optional[str] = None
    DISTANCE_TIMEOUT_SECONDS: float = 15.0
    LOCATION_VALIDATION_STRICT: bool = True  # ZIP/postal only; False accepts place names

    # Stripe (one-time premium unlock)
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_TIMEOUT_SECONDS: float = 20.0
    PREMIUM_PRICE_CENTS: int = 4999
    PREMIUM_CURRENCY: str = "usd"
    PREMIUM_PRODUCT_NAME: str = "Route Ready Premium Access"
    PREMIUM_PRODUCT_DESCRIPTION: str = "Unlock full access to Route Ready travel planning features"
    CHECKOUT_EXPIRY_SECONDS: int = 1800
    CHECKOUT_ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:5173"  # comma-separated

    # Admin access: Clerk user ids (comma-separated); public_metadata.role == "admin" also qualifies
    ADMIN_USER_IDS: str = ""

    # Free tier
    FREE_USAGE_LIMIT: int = 5

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = False
    RATE_LIMIT_PER_MINUTE_DEFAULT: int = 120
    RATE_LIMIT_BURST_DEFAULT: int = 30
    CHECKOUT_RATE_LIMIT_PER_MINUTE: int = 5
    RATE_LIMIT_MAX_BUCKETS: int = 10000

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"  # comma-separated

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def checkout_origins(self) -> List[str]:
        return [o.strip().rstrip("/") for o in self.CHECKOUT_ALLOWED_ORIGINS.split(",") if o.strip()]

    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    def admin_user_ids(self) -> List[str]:
        return [u.strip() for u in self.ADMIN_USER_IDS.split(",") if u.strip()]


settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate required configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Secrets are not logged, only missing keys.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("routeready")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    required_keys = [
        "DATABASE_URL",
        "CLERK_SECRET_KEY",
        "GOOGLE_MAPS_API_KEY",
        "STRIPE_SECRET_KEY",
    ]

    missing = [key for key in required_keys if not getattr(cfg, key, None)]
    if missing:
        message = f"Missing required configuration: {', '.join(missing)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True
