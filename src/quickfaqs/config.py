from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from .models.account import SubscriptionTier
from .models.plan import Plan, PlanCatalog


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Database; no MONGO_URI means the in-memory store
    MONGO_URI: Optional[str] = None
    MONGO_DB: str = "quickfaqs"

    # Auth
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"

    # Stripe
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    STRIPE_PRICE_BASIC: Optional[str] = None
    STRIPE_PRICE_PREMIUM: Optional[str] = None
    STRIPE_TIMEOUT_SECONDS: float = 10.0
    STRIPE_WEBHOOK_TOLERANCE_SECONDS: int = 300

    # App URLs
    FRONTEND_URL: str = "http://localhost:3000"

    # Entitlement audit trail
    LEDGER_LOG_PATH: str = "logs/entitlement_ledger.log"

    # Text generation
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-3.5-turbo"

    @property
    def success_url(self) -> str:
        return f"{self.FRONTEND_URL}/payment/success?session_id={{CHECKOUT_SESSION_ID}}"

    @property
    def cancel_url(self) -> str:
        return f"{self.FRONTEND_URL}/payment/cancel"

    def plan_catalog(self) -> PlanCatalog:
        # Both paid plans unlock premium access on checkout completion.
        plans = []
        if self.STRIPE_PRICE_BASIC:
            plans.append(
                Plan(id="basic", price_id=self.STRIPE_PRICE_BASIC, tier=SubscriptionTier.BASIC)
            )
        if self.STRIPE_PRICE_PREMIUM:
            plans.append(
                Plan(id="premium", price_id=self.STRIPE_PRICE_PREMIUM, tier=SubscriptionTier.PREMIUM)
            )
        return PlanCatalog(plans)


@lru_cache
def get_settings() -> Settings:
    return Settings()
