from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import ClassVar, Optional

from pydantic import BaseModel, Field

from .base import DBSerializableModel, utcnow


FREE_TIER_GRANT = 3
# Written on upgrade; premium accounts bypass the debit so it is never consumed.
UNLIMITED_CREDITS = 999999


class SubscriptionTier(str, Enum):
    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"


class Account(DBSerializableModel):
    """
    Subscriber record holding the entitlement pair `(tier, credits)`.

    `credits` is only meaningful while `tier` is not premium.
    """

    collection_name: ClassVar[str] = "users"

    id: Optional[str] = Field(default=None)
    email: str
    name: Optional[str] = None
    tier: SubscriptionTier = SubscriptionTier.FREE
    credits: int = Field(
        default=FREE_TIER_GRANT,
        ge=0,
        description="Remaining metered actions for non-premium tiers.",
    )
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_premium(self) -> bool:
        return self.tier == SubscriptionTier.PREMIUM


class DebitFailureReason(str, Enum):
    NO_CREDITS_REMAINING = "no_credits_remaining"


class CreditDebit(BaseModel):
    """Result of an atomic check-and-decrement."""

    ok: bool
    remaining: Optional[int] = None
    reason: Optional[DebitFailureReason] = None
    # False when the account turned premium before the debit landed.
    metered: bool = True

    @classmethod
    def succeeded(cls, remaining: int) -> "CreditDebit":
        return cls(ok=True, remaining=remaining)

    @classmethod
    def exhausted(cls) -> "CreditDebit":
        return cls(ok=False, reason=DebitFailureReason.NO_CREDITS_REMAINING)

    @classmethod
    def unmetered(cls) -> "CreditDebit":
        return cls(ok=True, metered=False)
