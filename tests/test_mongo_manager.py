from __future__ import annotations

import pytest

mongomock_motor = pytest.importorskip("mongomock_motor")

from quickfaqs.db.mongo import MongoDBManager  # noqa: E402
from quickfaqs.models.account import (  # noqa: E402
    UNLIMITED_CREDITS,
    Account,
    DebitFailureReason,
    SubscriptionTier,
)


@pytest.fixture
def mongo() -> MongoDBManager:
    client = mongomock_motor.AsyncMongoMockClient()
    return MongoDBManager(client["quickfaqs_test"])


async def _account(mongo: MongoDBManager, credits: int = 3) -> Account:
    return await mongo.add_account(Account(email="a@example.com", credits=credits))


@pytest.mark.asyncio
async def test_add_and_get_account_round_trips_id(mongo):
    account = await _account(mongo)

    stored = await mongo.get_account(account.id)

    assert stored is not None
    assert stored.id == account.id
    assert stored.tier == SubscriptionTier.FREE
    assert stored.credits == 3


@pytest.mark.asyncio
async def test_debit_is_guarded_at_zero(mongo):
    account = await _account(mongo, credits=1)

    first = await mongo.decrement_credit_if_positive(account.id)
    second = await mongo.decrement_credit_if_positive(account.id)

    assert first.ok and first.remaining == 0
    assert not second.ok
    assert second.reason == DebitFailureReason.NO_CREDITS_REMAINING
    assert (await mongo.get_account(account.id)).credits == 0


@pytest.mark.asyncio
async def test_debit_unknown_account_returns_none(mongo):
    assert await mongo.decrement_credit_if_positive("missing") is None


@pytest.mark.asyncio
async def test_set_tier_replaces_both_fields(mongo):
    account = await _account(mongo, credits=0)

    updated = await mongo.set_tier(account.id, SubscriptionTier.PREMIUM, UNLIMITED_CREDITS)

    assert updated.tier == SubscriptionTier.PREMIUM
    assert updated.credits == UNLIMITED_CREDITS
    assert await mongo.set_tier("missing", SubscriptionTier.FREE, 3) is None


@pytest.mark.asyncio
async def test_premium_account_is_never_decremented(mongo):
    account = await _account(mongo)
    await mongo.set_tier(account.id, SubscriptionTier.PREMIUM, UNLIMITED_CREDITS)

    debit = await mongo.decrement_credit_if_positive(account.id)

    assert debit.ok and not debit.metered
    assert (await mongo.get_account(account.id)).credits == UNLIMITED_CREDITS


@pytest.mark.asyncio
async def test_refund_does_not_touch_premium_sentinel(mongo):
    account = await _account(mongo)
    await mongo.decrement_credit_if_positive(account.id)
    assert (await mongo.increment_credit(account.id)).credits == 3

    await mongo.set_tier(account.id, SubscriptionTier.PREMIUM, UNLIMITED_CREDITS)
    refunded = await mongo.increment_credit(account.id)

    assert refunded.credits == UNLIMITED_CREDITS
    assert await mongo.increment_credit("missing") is None
