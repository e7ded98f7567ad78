# portl/core/config.py

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Values are read from the process environment (Docker Compose / Vercel-style
    # env injection); unknown variables are ignored.
    model_config = SettingsConfigDict(extra="ignore")

    # The environment mode: 'local' or 'prod'
    ENV: str = "local"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = "sqlite:///./portl.db"

    # --- Auth ---
    JWT_SECRET: str = "change-me"
    CRON_SECRET: Optional[str] = None

    # --- PayMongo ---
    PAYMONGO_SECRET_KEY: Optional[str] = None
    PAYMONGO_WEBHOOK_SECRET: Optional[str] = None
    PAYMONGO_API_URL: str = "https://api.paymongo.com/v1"
    PAYMONGO_PAYMENT_METHODS: list[str] = ["card", "gcash", "grab_pay", "paymaya"]
    CURRENCY: str = "PHP"

    # --- Email (Resend) ---
    RESEND_API_KEY: Optional[str] = None
    RESEND_FROM_EMAIL: str = "Portl <tickets@portl.ph>"

    # --- URLs ---
    APP_URL: str = "http://localhost:3000"
    ROOT_DOMAIN: str = "localhost:3000"

    # --- Checkout timings ---
    CART_EXPIRATION_MINUTES: int = 15
    ORDER_EXPIRATION_MINUTES: int = 15
    PAYMENT_SESSION_EXPIRATION_MINUTES: int = 30
    PAYMENT_POLL_INTERVAL_SECONDS: int = 3
    PAYMENT_POLL_MAX_ATTEMPTS: int = 20

    RATE_LIMIT_ENABLED: bool = True

    # --- Scheduler ---
    ENABLE_SCHEDULER: bool = False
    REAPER_INTERVAL_MINUTES: int = 5

    @property
    def is_production(self) -> bool:
        return self.ENV == "prod"


# Create a single instance of the settings
settings = Settings()
