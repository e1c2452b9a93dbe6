from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from pydantic import BaseModel

from ..errors import QuotaExceededError
from .entitlement_service import EntitlementService


logger = logging.getLogger(__name__)


class UsageGrant(BaseModel):
    """
    Permission to perform one protected action.

    `debited` is False for premium accounts, which are never metered.
    """

    account_id: str
    action: str
    debited: bool
    remaining: Optional[int] = None


class UsageGate:
    """
    Enforces the metering policy in front of credit-consuming actions.

    Flow:
      1. Premium accounts pass without any mutation.
      2. Everyone else goes through one atomic check-and-decrement; a denied
         debit raises QuotaExceededError and nothing is changed.
      3. If the protected action then fails, `refund` gives the credit back.
    """

    def __init__(self, entitlements: EntitlementService) -> None:
        self._entitlements = entitlements

    async def consume(
        self, account_id: str, action: str, correlation_id: str | None = None
    ) -> UsageGrant:
        account = await self._entitlements.get_account(account_id)
        if account.is_premium:
            return UsageGrant(account_id=account_id, action=action, debited=False)

        debit = await self._entitlements.decrement_credit_if_positive(
            account_id, correlation_id=correlation_id
        )
        if not debit.ok:
            logger.info(
                "Usage denied: no credits remaining",
                extra={"account_id": account_id, "action": action},
            )
            raise QuotaExceededError()

        return UsageGrant(
            account_id=account_id,
            action=action,
            debited=debit.metered,
            remaining=debit.remaining,
        )

    async def refund(
        self, grant: UsageGrant, correlation_id: str | None = None
    ) -> None:
        if not grant.debited:
            return
        await self._entitlements.refund_credit(
            grant.account_id, correlation_id=correlation_id
        )

    @asynccontextmanager
    async def guard(
        self, account_id: str, action: str, correlation_id: str | None = None
    ) -> AsyncIterator[UsageGrant]:
        grant = await self.consume(account_id, action, correlation_id=correlation_id)
        try:
            yield grant
        except Exception:
            logger.warning(
                "Protected action failed; refunding credit",
                extra={"account_id": account_id, "action": action},
            )
            await self.refund(grant, correlation_id=correlation_id)
            raise
