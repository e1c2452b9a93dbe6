from __future__ import annotations

import logging

from ..errors import ValidationError
from ..models.plan import PlanCatalog
from ..models.webhook import ACCOUNT_METADATA_KEY, PLAN_METADATA_KEY
from ..payments.base import PaymentProvider
from .entitlement_service import EntitlementService


logger = logging.getLogger(__name__)


class CheckoutService:
    """
    Starts a provider-hosted checkout for an authenticated account.

    Nothing is granted here: entitlements change only when the provider
    confirms payment through the webhook.
    """

    def __init__(
        self,
        entitlements: EntitlementService,
        provider: PaymentProvider,
        plans: PlanCatalog,
    ) -> None:
        self._entitlements = entitlements
        self._provider = provider
        self._plans = plans

    async def create_checkout_session(self, account_id: str, plan_id: str | None) -> str:
        if not plan_id:
            raise ValidationError("planId is required")
        plan = self._plans.resolve(plan_id)
        if plan is None:
            raise ValidationError(f"unknown plan: {plan_id}")

        account = await self._entitlements.get_account(account_id)

        session = await self._provider.create_checkout_session(
            price_id=plan.price_id,
            customer_email=account.email,
            metadata={ACCOUNT_METADATA_KEY: account_id, PLAN_METADATA_KEY: plan.id},
        )
        logger.info(
            "Checkout session created",
            extra={
                "account_id": account_id,
                "plan_id": plan.id,
                "tier": plan.tier.value,
                "session_id": session.session_id,
            },
        )
        return session.url
