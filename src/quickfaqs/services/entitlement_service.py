from __future__ import annotations

import logging
from typing import Optional

from ..db.base import BaseDBManager
from ..errors import AccountNotFoundError, StoreWriteError
from ..logging.ledger_logger import LedgerLogger
from ..models.account import (
    FREE_TIER_GRANT,
    Account,
    CreditDebit,
    SubscriptionTier,
)


logger = logging.getLogger(__name__)


class EntitlementService:
    """
    Single source of truth for an account's `(tier, credits)` pair.

    Methods are intentionally narrow and map one-to-one onto atomic store
    operations; there is no read-then-write from application code.
    """

    def __init__(self, db: BaseDBManager, ledger: LedgerLogger) -> None:
        self._db = db
        self._ledger = ledger

    async def create_account(self, email: str, name: Optional[str] = None) -> Account:
        account = Account(
            email=email.strip().lower(),
            name=name.strip() if name else None,
            tier=SubscriptionTier.FREE,
            credits=FREE_TIER_GRANT,
        )
        account = await self._db.add_account(account)
        logger.info("Account created", extra={"account_id": account.id})
        return account

    async def get_account(self, account_id: str) -> Account:
        account = await self._db.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    async def set_tier(
        self,
        account_id: str,
        tier: SubscriptionTier,
        credits: int,
        correlation_id: str | None = None,
    ) -> Account:
        """
        Replace tier and credits together. Raises AccountNotFoundError when
        the account does not exist; StoreWriteError propagates untouched.
        """
        if credits < 0:
            raise ValueError("credits must be non-negative")

        account = await self._db.set_tier(account_id, tier, credits)
        if account is None:
            raise AccountNotFoundError(account_id)

        await self._ledger.log_transition(
            account_id=account_id,
            message="Entitlement set",
            details={"tier": tier.value, "credits": credits},
            correlation_id=correlation_id,
        )
        return account

    async def decrement_credit_if_positive(
        self, account_id: str, correlation_id: str | None = None
    ) -> CreditDebit:
        debit = await self._db.decrement_credit_if_positive(account_id)
        if debit is None:
            raise AccountNotFoundError(account_id)

        if debit.ok and debit.metered:
            try:
                await self._ledger.log_debit(
                    account_id=account_id,
                    details={"remaining": debit.remaining},
                    correlation_id=correlation_id,
                )
            except StoreWriteError:
                logger.error(
                    "Debit ledger write failed; restoring credit",
                    extra={"account_id": account_id},
                )
                await self._db.increment_credit(account_id)
                raise
        return debit

    async def refund_credit(
        self, account_id: str, correlation_id: str | None = None
    ) -> Account:
        account = await self._db.increment_credit(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)

        await self._ledger.log_debit(
            account_id=account_id,
            details={"remaining": account.credits},
            refund=True,
            correlation_id=correlation_id,
        )
        return account
