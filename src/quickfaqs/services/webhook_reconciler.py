from __future__ import annotations

import logging
from typing import Optional, Union

from ..db.base import BaseDBManager
from ..errors import AccountNotFoundError, AuthenticationError, StoreWriteError, ValidationError
from ..logging.ledger_logger import LedgerLogger
from ..models.account import FREE_TIER_GRANT, UNLIMITED_CREDITS, SubscriptionTier
from ..models.webhook import (
    CheckoutCompleted,
    IgnoredEvent,
    ProcessedWebhookEvent,
    SubscriptionCancelled,
    WebhookOutcome,
    WebhookStatus,
    parse_webhook_event,
)
from ..payments.base import PaymentProvider
from .entitlement_service import EntitlementService


logger = logging.getLogger(__name__)

ModelledEvent = Union[CheckoutCompleted, SubscriptionCancelled]


class WebhookReconciler:
    """
    Turns an authenticated payment-provider event into an entitlement change.

    Each step is a hard gate:
      1. Verify the signature over the raw body; nothing is parsed or
         written on failure.
      2. Map the payload to CheckoutCompleted / SubscriptionCancelled /
         IgnoredEvent. Ignored events are acknowledged without mutation.
      3. Skip event ids already in the processed-event ledger.
      4. Apply an absolute "set to" transition, so a redelivery racing the
         ledger check still lands on the same end state.
      5. Record the event only after the transition is written. Store
         failures get an error ledger entry and propagate so the provider
         redelivers.
    """

    def __init__(
        self,
        db: BaseDBManager,
        entitlements: EntitlementService,
        provider: PaymentProvider,
        ledger: LedgerLogger,
    ) -> None:
        self._db = db
        self._entitlements = entitlements
        self._provider = provider
        self._ledger = ledger

    async def handle(self, payload: bytes, signature: Optional[str]) -> WebhookOutcome:
        try:
            raw_event = self._provider.verify_webhook(payload, signature)
        except AuthenticationError as exc:
            await self._record_rejection(exc)
            raise

        try:
            event = parse_webhook_event(raw_event)
        except ValueError as exc:
            raise ValidationError(f"Malformed webhook event: {exc}") from exc

        if isinstance(event, IgnoredEvent):
            logger.debug(
                "Ignoring unmodelled webhook event",
                extra={"event_id": event.event_id, "event_type": event.event_type},
            )
            return WebhookOutcome(
                event_id=event.event_id,
                event_type=event.event_type,
                status=WebhookStatus.IGNORED,
            )

        return await self.apply(event)

    async def apply(self, event: ModelledEvent) -> WebhookOutcome:
        if await self._db.is_webhook_event_processed(event.event_id):
            logger.info(
                "Duplicate webhook event skipped",
                extra={"event_id": event.event_id, "event_type": event.event_type},
            )
            return WebhookOutcome(
                event_id=event.event_id,
                event_type=event.event_type,
                status=WebhookStatus.DUPLICATE,
                account_id=event.account_id,
            )

        try:
            status = await self._transition(event)
            await self._db.record_webhook_event(
                ProcessedWebhookEvent(
                    id=event.event_id,
                    event_type=event.event_type,
                    account_id=event.account_id,
                    outcome=status,
                )
            )
        except StoreWriteError as exc:
            await self._record_failure(event, exc)
            raise

        return WebhookOutcome(
            event_id=event.event_id,
            event_type=event.event_type,
            status=status,
            account_id=event.account_id,
        )

    async def _transition(self, event: ModelledEvent) -> WebhookStatus:
        if isinstance(event, CheckoutCompleted):
            tier, credits = SubscriptionTier.PREMIUM, UNLIMITED_CREDITS
        else:
            tier, credits = SubscriptionTier.FREE, FREE_TIER_GRANT

        if not event.account_id:
            logger.warning(
                "Webhook event carries no account id; dropping",
                extra={"event_id": event.event_id, "event_type": event.event_type},
            )
            return WebhookStatus.ACCOUNT_MISSING

        try:
            await self._entitlements.set_tier(
                event.account_id, tier, credits, correlation_id=event.event_id
            )
        except AccountNotFoundError:
            logger.warning(
                "Webhook event references unknown account; dropping",
                extra={"event_id": event.event_id, "account_id": event.account_id},
            )
            return WebhookStatus.ACCOUNT_MISSING

        logger.info(
            "Entitlement transition applied",
            extra={
                "event_id": event.event_id,
                "account_id": event.account_id,
                "tier": tier.value,
            },
        )
        return WebhookStatus.APPLIED

    async def _record_failure(self, event: ModelledEvent, exc: StoreWriteError) -> None:
        logger.error(
            "Webhook event could not be applied; awaiting redelivery",
            extra={"event_id": event.event_id, "account_id": event.account_id},
        )
        try:
            await self._ledger.log_error(
                message="Webhook event could not be applied",
                details={"event_type": event.event_type, "reason": exc.message},
                account_id=event.account_id,
                correlation_id=event.event_id,
            )
        except StoreWriteError:
            logger.exception("Could not record webhook failure in ledger")

    async def _record_rejection(self, exc: AuthenticationError) -> None:
        logger.warning("Webhook signature verification failed: %s", exc.message)
        try:
            await self._ledger.log_security(
                message="Webhook signature verification failed",
                details={"reason": exc.message},
            )
        except StoreWriteError:
            # The rejection itself must still reach the caller as a 400.
            logger.exception("Could not record webhook rejection in ledger")
