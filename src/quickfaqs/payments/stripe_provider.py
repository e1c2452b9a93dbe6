"""
Stripe implementation of the PaymentProvider interface.

Checkout sessions are created in subscription mode with the account id in
the session metadata; webhooks are verified with Stripe's `t=...,v1=...`
HMAC signature scheme over the raw request body.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Mapping, Optional

import stripe

from ..errors import AuthenticationError, PaymentProviderError
from .base import CheckoutSession, PaymentProvider


logger = logging.getLogger(__name__)


class StripePaymentProvider(PaymentProvider):
    def __init__(
        self,
        secret_key: Optional[str],
        webhook_secret: Optional[str],
        success_url: str,
        cancel_url: str,
        timeout_seconds: float = 10.0,
        tolerance_seconds: int = 300,
    ) -> None:
        self._secret_key = secret_key
        self._webhook_secret = webhook_secret
        self._success_url = success_url
        self._cancel_url = cancel_url
        self._timeout_seconds = timeout_seconds
        self._tolerance_seconds = tolerance_seconds

    async def create_checkout_session(
        self,
        price_id: str,
        customer_email: Optional[str],
        metadata: Mapping[str, str],
    ) -> CheckoutSession:
        if not self._secret_key:
            raise PaymentProviderError("STRIPE_SECRET_KEY not configured")

        params: Dict[str, Any] = {
            "api_key": self._secret_key,
            "payment_method_types": ["card"],
            "line_items": [{"price": price_id, "quantity": 1}],
            "mode": "subscription",
            "success_url": self._success_url,
            "cancel_url": self._cancel_url,
            "metadata": dict(metadata),
            # Cancellation events carry subscription metadata, not session metadata.
            "subscription_data": {"metadata": dict(metadata)},
        }
        if customer_email:
            params["customer_email"] = customer_email

        try:
            session = await asyncio.wait_for(
                asyncio.to_thread(stripe.checkout.Session.create, **params),
                timeout=self._timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("Stripe checkout session creation timed out")
            raise PaymentProviderError("payment provider timed out") from exc
        except stripe.StripeError as exc:
            logger.warning("Stripe checkout session creation failed: %s", exc)
            raise PaymentProviderError(
                f"Stripe checkout session creation failed: {exc}"
            ) from exc

        url = getattr(session, "url", None)
        if not url:
            raise PaymentProviderError("Stripe returned a session without a url")
        return CheckoutSession(session_id=session.id, url=url)

    def verify_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        if not self._webhook_secret:
            raise AuthenticationError("STRIPE_WEBHOOK_SECRET not configured")
        if not signature:
            raise AuthenticationError("Missing stripe-signature header")

        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise AuthenticationError("Webhook payload is not valid UTF-8") from exc

        try:
            stripe.WebhookSignature.verify_header(
                body, signature, self._webhook_secret, self._tolerance_seconds
            )
        except stripe.SignatureVerificationError as exc:
            raise AuthenticationError(f"Invalid signature: {exc}") from exc

        try:
            event = json.loads(body)
        except ValueError as exc:
            raise AuthenticationError(f"Invalid payload: {exc}") from exc
        if not isinstance(event, dict):
            raise AuthenticationError("Invalid payload: expected a JSON object")
        return event
