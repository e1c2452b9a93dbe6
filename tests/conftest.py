from __future__ import annotations

import pytest

from helpers import WEBHOOK_SECRET
from quickfaqs.db.memory import InMemoryDBManager
from quickfaqs.logging.ledger_logger import LedgerLogger
from quickfaqs.payments.stripe_provider import StripePaymentProvider
from quickfaqs.services.entitlement_service import EntitlementService


@pytest.fixture
def db() -> InMemoryDBManager:
    return InMemoryDBManager()


@pytest.fixture
def ledger(db, tmp_path) -> LedgerLogger:
    return LedgerLogger(db=db, file_path=tmp_path / "ledger.log")


@pytest.fixture
def entitlements(db, ledger) -> EntitlementService:
    return EntitlementService(db=db, ledger=ledger)


@pytest.fixture
def stripe_provider() -> StripePaymentProvider:
    return StripePaymentProvider(
        secret_key="sk_test_123",
        webhook_secret=WEBHOOK_SECRET,
        success_url="http://localhost:3000/payment/success",
        cancel_url="http://localhost:3000/payment/cancel",
        timeout_seconds=1.0,
    )
