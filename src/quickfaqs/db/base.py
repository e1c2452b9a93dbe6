from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from ..models.account import Account, CreditDebit, SubscriptionTier
from ..models.faq import FAQ
from ..models.ledger import LedgerEntry
from ..models.webhook import ProcessedWebhookEvent


class BaseDBManager(ABC):
    """
    DB-agnostic async manager interface.

    Every entitlement mutation is a single atomic update scoped to one
    account document; implementations must not take a global lock.
    Write failures are raised as `StoreWriteError`.
    """

    async def ensure_indexes(self) -> None:
        return None

    # Account operations
    @abstractmethod
    async def add_account(self, account: Account) -> Account: ...

    @abstractmethod
    async def get_account(self, account_id: str) -> Optional[Account]: ...

    @abstractmethod
    async def set_tier(
        self, account_id: str, tier: SubscriptionTier, credits: int
    ) -> Optional[Account]:
        """
        Replace `tier` and `credits` together. Returns None if the account
        does not exist.
        """
        ...

    @abstractmethod
    async def decrement_credit_if_positive(
        self, account_id: str
    ) -> Optional[CreditDebit]:
        """
        Check-then-decrement as one atomic operation. Returns None if the
        account does not exist.
        """
        ...

    @abstractmethod
    async def increment_credit(self, account_id: str) -> Optional[Account]: ...

    # Webhook idempotency ledger
    @abstractmethod
    async def is_webhook_event_processed(self, event_id: str) -> bool: ...

    @abstractmethod
    async def record_webhook_event(self, record: ProcessedWebhookEvent) -> bool:
        """
        Insert the processed-event record. Returns False if the event id was
        already recorded.
        """
        ...

    # FAQs
    @abstractmethod
    async def add_faq(self, faq: FAQ) -> FAQ: ...

    # Ledger
    @abstractmethod
    async def add_ledger_entry(self, entry: LedgerEntry) -> LedgerEntry: ...
