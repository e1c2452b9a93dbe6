from __future__ import annotations

from typing import Dict, List, Optional

from .base import BaseDBManager
from ..models.account import Account, CreditDebit, SubscriptionTier
from ..models.base import utcnow
from ..models.faq import FAQ
from ..models.ledger import LedgerEntry
from ..models.webhook import ProcessedWebhookEvent


class InMemoryDBManager(BaseDBManager):
    """
    Simple in-memory implementation used for tests and local development.
    NOT suitable for production, but exercises the abstraction and services.

    Each read-modify-write below runs without an `await` in between, so it
    is atomic with respect to other tasks on the same event loop.
    """

    def __init__(self) -> None:
        self._accounts: Dict[str, Account] = {}
        self._processed_events: Dict[str, ProcessedWebhookEvent] = {}
        self._faqs: List[FAQ] = []
        self._ledger: List[LedgerEntry] = []
        self._id_counter: int = 0

    def _next_id(self) -> str:
        self._id_counter += 1
        return str(self._id_counter)

    @property
    def ledger_entries(self) -> List[LedgerEntry]:
        return list(self._ledger)

    # Account operations
    async def add_account(self, account: Account) -> Account:
        if account.id is None:
            account.id = self._next_id()
        self._accounts[account.id] = account.model_copy()
        return account

    async def get_account(self, account_id: str) -> Optional[Account]:
        account = self._accounts.get(account_id)
        return account.model_copy() if account else None

    async def set_tier(
        self, account_id: str, tier: SubscriptionTier, credits: int
    ) -> Optional[Account]:
        account = self._accounts.get(account_id)
        if account is None:
            return None
        updated = account.model_copy(
            update={"tier": tier, "credits": credits, "updated_at": utcnow()}
        )
        self._accounts[account_id] = updated
        return updated.model_copy()

    async def decrement_credit_if_positive(
        self, account_id: str
    ) -> Optional[CreditDebit]:
        account = self._accounts.get(account_id)
        if account is None:
            return None
        if account.is_premium:
            return CreditDebit.unmetered()
        if account.credits <= 0:
            return CreditDebit.exhausted()
        remaining = account.credits - 1
        self._accounts[account_id] = account.model_copy(
            update={"credits": remaining, "updated_at": utcnow()}
        )
        return CreditDebit.succeeded(remaining)

    async def increment_credit(self, account_id: str) -> Optional[Account]:
        account = self._accounts.get(account_id)
        if account is None:
            return None
        if account.is_premium:
            return account.model_copy()
        updated = account.model_copy(
            update={"credits": account.credits + 1, "updated_at": utcnow()}
        )
        self._accounts[account_id] = updated
        return updated.model_copy()

    # Webhook idempotency ledger
    async def is_webhook_event_processed(self, event_id: str) -> bool:
        return event_id in self._processed_events

    async def record_webhook_event(self, record: ProcessedWebhookEvent) -> bool:
        if record.id in self._processed_events:
            return False
        self._processed_events[record.id] = record
        return True

    # FAQs
    async def add_faq(self, faq: FAQ) -> FAQ:
        if faq.id is None:
            faq.id = self._next_id()
        self._faqs.append(faq)
        return faq

    # Ledger
    async def add_ledger_entry(self, entry: LedgerEntry) -> LedgerEntry:
        if entry.id is None:
            entry.id = self._next_id()
        self._ledger.append(entry)
        return entry
