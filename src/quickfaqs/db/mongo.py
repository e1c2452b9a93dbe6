from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional, TypeVar
from uuid import uuid4

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from .base import BaseDBManager
from ..errors import StoreWriteError
from ..models.account import Account, CreditDebit, SubscriptionTier
from ..models.base import DBSerializableModel, utcnow
from ..models.faq import FAQ
from ..models.ledger import LedgerEntry
from ..models.webhook import ProcessedWebhookEvent


logger = logging.getLogger(__name__)

TModel = TypeVar("TModel", bound=DBSerializableModel)

_METERED = {"tier": {"$ne": SubscriptionTier.PREMIUM.value}}


class MongoDBManager(BaseDBManager):
    """
    MongoDB implementation of BaseDBManager using motor (async driver).

    IDs are stored as string-based `_id` fields and mirrored in the `id`
    attribute of each Pydantic model, which keeps the rest of the system
    agnostic of MongoDB specifics.

    Entitlement changes rely on single-document atomicity: every mutation is
    one `find_one_and_update`, and the credit debit carries its guard
    (`credits > 0`) in the filter, so no multi-document transaction is needed.
    """

    def __init__(self, database: AsyncIOMotorDatabase) -> None:
        self._db = database

    @classmethod
    def from_client_uri(cls, uri: str, db_name: str) -> "MongoDBManager":
        client = AsyncIOMotorClient(uri)
        return cls(client[db_name])

    @asynccontextmanager
    async def _writing(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except DuplicateKeyError:
            raise
        except PyMongoError as exc:
            logger.error(
                "Mongo write failed during %s: %s", operation, exc,
                extra={"operation": operation},
            )
            raise StoreWriteError(f"{operation} failed: {exc}") from exc

    # Helper utilities
    @staticmethod
    def _prepare_insert(model: TModel) -> Dict[str, Any]:
        data = model.serialize_for_db()
        model_id = getattr(model, "id", None)
        if not model_id:
            model_id = uuid4().hex
            setattr(model, "id", model_id)
        data.pop("id", None)
        data["_id"] = model_id
        return data

    async def ensure_indexes(self) -> None:
        await self._db[Account.collection_name].create_index("email", unique=True)
        await self._db[FAQ.collection_name].create_index(
            [("account_id", 1), ("created_at", -1)]
        )

    # Account operations
    async def add_account(self, account: Account) -> Account:
        col = self._db[Account.collection_name]
        data = self._prepare_insert(account)
        async with self._writing("add_account"):
            await col.insert_one(data)
        return account

    async def get_account(self, account_id: str) -> Optional[Account]:
        col = self._db[Account.collection_name]
        doc = await col.find_one({"_id": account_id})
        return Account.from_db(doc)

    async def set_tier(
        self, account_id: str, tier: SubscriptionTier, credits: int
    ) -> Optional[Account]:
        col = self._db[Account.collection_name]
        async with self._writing("set_tier"):
            doc = await col.find_one_and_update(
                {"_id": account_id},
                {"$set": {"tier": tier.value, "credits": credits, "updated_at": utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
        return Account.from_db(doc)

    async def decrement_credit_if_positive(
        self, account_id: str
    ) -> Optional[CreditDebit]:
        col = self._db[Account.collection_name]
        async with self._writing("decrement_credit_if_positive"):
            doc = await col.find_one_and_update(
                {"_id": account_id, **_METERED, "credits": {"$gt": 0}},
                {"$inc": {"credits": -1}, "$set": {"updated_at": utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
        if doc is not None:
            return CreditDebit.succeeded(int(doc["credits"]))
        # Filter missed; tell a missing account apart from a premium or empty one.
        current = await col.find_one({"_id": account_id}, {"tier": 1})
        if current is None:
            return None
        if current.get("tier") == SubscriptionTier.PREMIUM.value:
            return CreditDebit.unmetered()
        return CreditDebit.exhausted()

    async def increment_credit(self, account_id: str) -> Optional[Account]:
        col = self._db[Account.collection_name]
        async with self._writing("increment_credit"):
            doc = await col.find_one_and_update(
                {"_id": account_id, **_METERED},
                {"$inc": {"credits": 1}, "$set": {"updated_at": utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
        if doc is None:
            # Premium accounts keep their sentinel balance untouched.
            doc = await col.find_one({"_id": account_id})
        return Account.from_db(doc)

    # Webhook idempotency ledger
    async def is_webhook_event_processed(self, event_id: str) -> bool:
        col = self._db[ProcessedWebhookEvent.collection_name]
        return await col.count_documents({"_id": event_id}, limit=1) > 0

    async def record_webhook_event(self, record: ProcessedWebhookEvent) -> bool:
        col = self._db[ProcessedWebhookEvent.collection_name]
        data = self._prepare_insert(record)
        try:
            async with self._writing("record_webhook_event"):
                await col.insert_one(data)
        except DuplicateKeyError:
            return False
        return True

    # FAQs
    async def add_faq(self, faq: FAQ) -> FAQ:
        col = self._db[FAQ.collection_name]
        data = self._prepare_insert(faq)
        async with self._writing("add_faq"):
            await col.insert_one(data)
        return faq

    # Ledger
    async def add_ledger_entry(self, entry: LedgerEntry) -> LedgerEntry:
        col = self._db[LedgerEntry.collection_name]
        data = self._prepare_insert(entry)
        async with self._writing("add_ledger_entry"):
            await col.insert_one(data)
        return entry
