from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel


class CheckoutSession(BaseModel):
    session_id: str
    url: str


class PaymentProvider(ABC):
    """
    Abstract hosted-checkout payment provider.

    Implementations raise PaymentProviderError for any upstream failure and
    AuthenticationError when a webhook cannot be verified.
    """

    @abstractmethod
    async def create_checkout_session(
        self,
        price_id: str,
        customer_email: Optional[str],
        metadata: Mapping[str, str],
    ) -> CheckoutSession:
        ...

    @abstractmethod
    def verify_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Verify `signature` over the exact raw `payload` bytes and return the
        decoded event. Must not parse anything before verification succeeds.
        """
        ...
