from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import List

import jwt
import pytest
import stripe
from fastapi.testclient import TestClient

from helpers import WEBHOOK_SECRET, event_payload, stripe_signature
from quickfaqs.api.app import build_services, create_app
from quickfaqs.config import Settings
from quickfaqs.db.memory import InMemoryDBManager
from quickfaqs.errors import StoreWriteError, TextGenerationError
from quickfaqs.generation.base import TextGenerator
from quickfaqs.models.account import UNLIMITED_CREDITS, SubscriptionTier
from quickfaqs.payments.stripe_provider import StripePaymentProvider


JWT_SECRET = "test-jwt-secret"


class StubGenerator(TextGenerator):
    def __init__(self, fail: bool = False) -> None:
        self.prompts: List[str] = []
        self.fail = fail

    async def generate(self, prompt: str, system: str | None = None) -> str:
        self.prompts.append(prompt)
        if self.fail:
            raise TextGenerationError("text generation failed")
        return "1. What is it?\nA great product."


class FlakyDBManager(InMemoryDBManager):
    def __init__(self) -> None:
        super().__init__()
        self.fail_writes = False

    async def set_tier(self, account_id, tier, credits):
        if self.fail_writes:
            raise StoreWriteError("set_tier failed")
        return await super().set_tier(account_id, tier, credits)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        JWT_SECRET=JWT_SECRET,
        STRIPE_SECRET_KEY="sk_test_123",
        STRIPE_WEBHOOK_SECRET=WEBHOOK_SECRET,
        STRIPE_PRICE_BASIC="price_basic",
        STRIPE_PRICE_PREMIUM="price_premium",
        LEDGER_LOG_PATH=str(tmp_path / "ledger.log"),
    )


@pytest.fixture
def db() -> FlakyDBManager:
    return FlakyDBManager()


@pytest.fixture
def generator() -> StubGenerator:
    return StubGenerator()


@pytest.fixture
def services(settings, db, generator):
    provider = StripePaymentProvider(
        secret_key=settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
        success_url=settings.success_url,
        cancel_url=settings.cancel_url,
    )
    return build_services(settings, db=db, provider=provider, generator=generator)


@pytest.fixture
def client(settings, services) -> TestClient:
    return TestClient(create_app(settings=settings, services=services))


@pytest.fixture
def account(services):
    return asyncio.run(services.entitlements.create_account(email="user@example.com"))


def _auth(account_id: str) -> dict:
    token = jwt.encode({"userId": account_id}, JWT_SECRET, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


def _post_webhook(client, payload: bytes, signature: str | None):
    headers = {"Content-Type": "application/json"}
    if signature is not None:
        headers["Stripe-Signature"] = signature
    return client.post("/payment/webhook", content=payload, headers=headers)


def _entitlement(services, account_id):
    stored = asyncio.run(services.entitlements.get_account(account_id))
    return stored.tier, stored.credits


def test_checkout_session_returns_redirect_url(client, account, monkeypatch):
    captured = {}

    def fake_create(**params):
        captured.update(params)
        return SimpleNamespace(id="cs_1", url="https://checkout.stripe.com/c/cs_1")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

    resp = client.post(
        "/payment/create-checkout-session",
        json={"planId": "premium", "userId": "someone-else"},
        headers=_auth(account.id),
    )

    assert resp.status_code == 200
    assert resp.json() == {"url": "https://checkout.stripe.com/c/cs_1"}
    assert captured["metadata"]["userId"] == account.id


def test_checkout_requires_bearer_token(client):
    resp = client.post("/payment/create-checkout-session", json={"planId": "premium"})
    assert resp.status_code == 401


def test_checkout_rejects_bad_token(client):
    resp = client.post(
        "/payment/create-checkout-session",
        json={"planId": "premium"},
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert resp.status_code == 401


def test_checkout_unknown_plan_is_400(client, account):
    resp = client.post(
        "/payment/create-checkout-session",
        json={"planId": "enterprise"},
        headers=_auth(account.id),
    )
    assert resp.status_code == 400


def test_checkout_provider_failure_is_502(client, account, monkeypatch):
    def fake_create(**params):
        raise stripe.APIConnectionError("network down")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

    resp = client.post(
        "/payment/create-checkout-session",
        json={"planId": "premium"},
        headers=_auth(account.id),
    )
    assert resp.status_code == 502


def test_webhook_upgrade_and_redelivery(client, services, account):
    payload = event_payload("evt_100", "checkout.session.completed", account.id)

    first = _post_webhook(client, payload, stripe_signature(payload))
    second = _post_webhook(client, payload, stripe_signature(payload))

    assert first.status_code == 200
    assert first.json() == {"received": True}
    assert second.status_code == 200
    assert _entitlement(services, account.id) == (SubscriptionTier.PREMIUM, UNLIMITED_CREDITS)


def test_webhook_bad_signature_is_400_and_inert(client, services, account):
    payload = event_payload("evt_101", "checkout.session.completed", account.id)

    resp = _post_webhook(client, payload, stripe_signature(payload, secret="whsec_other"))

    assert resp.status_code == 400
    assert _entitlement(services, account.id) == (SubscriptionTier.FREE, 3)


def test_webhook_missing_signature_is_400(client, account):
    payload = event_payload("evt_102", "checkout.session.completed", account.id)
    assert _post_webhook(client, payload, None).status_code == 400


def test_webhook_unmodelled_type_is_acknowledged(client, services, account):
    payload = event_payload("evt_103", "invoice.payment_succeeded", account.id)

    resp = _post_webhook(client, payload, stripe_signature(payload))

    assert resp.status_code == 200
    assert resp.json() == {"received": True}
    assert _entitlement(services, account.id) == (SubscriptionTier.FREE, 3)


def test_webhook_store_failure_is_500_so_provider_retries(client, services, db, account):
    payload = event_payload("evt_104", "checkout.session.completed", account.id)

    db.fail_writes = True
    failed = _post_webhook(client, payload, stripe_signature(payload))
    db.fail_writes = False
    retried = _post_webhook(client, payload, stripe_signature(payload))

    assert failed.status_code == 500
    assert retried.status_code == 200
    assert _entitlement(services, account.id) == (SubscriptionTier.PREMIUM, UNLIMITED_CREDITS)


def test_generate_faq_consumes_credits_until_denied(client, services, account, generator):
    body = {"companyName": "Acme", "productDetails": "Rocket skates"}

    for expected_remaining in (2, 1, 0):
        resp = client.post("/faq/generate", json=body, headers=_auth(account.id))
        assert resp.status_code == 200
        assert resp.json()["faq"]["companyName"] == "Acme"
        assert _entitlement(services, account.id)[1] == expected_remaining

    denied = client.post("/faq/generate", json=body, headers=_auth(account.id))

    assert denied.status_code == 403
    assert "No FAQ credits remaining" in denied.json()["message"]
    assert _entitlement(services, account.id) == (SubscriptionTier.FREE, 0)
    assert len(generator.prompts) == 3


def test_generate_faq_after_upgrade_does_not_debit(client, services, account):
    asyncio.run(services.entitlements.set_tier(account.id, SubscriptionTier.FREE, 0))
    payload = event_payload("evt_105", "checkout.session.completed", account.id)
    assert _post_webhook(client, payload, stripe_signature(payload)).status_code == 200

    resp = client.post(
        "/faq/generate",
        json={"companyName": "Acme", "productDetails": "Rocket skates"},
        headers=_auth(account.id),
    )

    assert resp.status_code == 200
    assert _entitlement(services, account.id) == (SubscriptionTier.PREMIUM, UNLIMITED_CREDITS)


def test_generate_faq_failure_refunds_credit(client, services, account, generator):
    generator.fail = True

    resp = client.post(
        "/faq/generate",
        json={"companyName": "Acme", "productDetails": "Rocket skates"},
        headers=_auth(account.id),
    )

    assert resp.status_code == 502
    assert _entitlement(services, account.id) == (SubscriptionTier.FREE, 3)


def test_generate_faq_requires_fields(client, services, account):
    resp = client.post("/faq/generate", json={"companyName": "Acme"}, headers=_auth(account.id))

    assert resp.status_code == 400
    assert _entitlement(services, account.id) == (SubscriptionTier.FREE, 3)


def test_account_me_reports_entitlement(client, account):
    resp = client.get("/account/me", headers=_auth(account.id))

    assert resp.status_code == 200
    assert resp.json() == {
        "id": account.id,
        "email": "user@example.com",
        "name": None,
        "tier": "free",
        "credits": 3,
    }


def test_account_me_for_deleted_account_is_404(client):
    resp = client.get("/account/me", headers=_auth("gone"))
    assert resp.status_code == 404
