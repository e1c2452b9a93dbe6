from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..config import Settings, get_settings
from ..db.base import BaseDBManager
from ..db.memory import InMemoryDBManager
from ..errors import AuthenticationError, QuickFAQsError, StoreWriteError
from ..generation.base import TextGenerator
from ..generation.openai_generator import OpenAITextGenerator
from ..logging.ledger_logger import LedgerLogger
from ..logging.setup import configure_logging
from ..payments.base import PaymentProvider
from ..payments.stripe_provider import StripePaymentProvider
from ..services.checkout_service import CheckoutService
from ..services.entitlement_service import EntitlementService
from ..services.faq_service import FAQService
from ..services.usage_gate import UsageGate
from ..services.webhook_reconciler import WebhookReconciler
from .dependencies import ServiceContainer
from .router import account_router, faq_router, payment_router


logger = logging.getLogger(__name__)


def _create_db_manager(settings: Settings) -> BaseDBManager:
    if settings.MONGO_URI:
        from ..db.mongo import MongoDBManager

        return MongoDBManager.from_client_uri(settings.MONGO_URI, settings.MONGO_DB)
    logger.warning("MONGO_URI not set; using in-memory store")
    return InMemoryDBManager()


def _create_payment_provider(settings: Settings) -> PaymentProvider:
    return StripePaymentProvider(
        secret_key=settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
        success_url=settings.success_url,
        cancel_url=settings.cancel_url,
        timeout_seconds=settings.STRIPE_TIMEOUT_SECONDS,
        tolerance_seconds=settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
    )


def _create_text_generator(settings: Settings) -> TextGenerator:
    return OpenAITextGenerator(api_key=settings.OPENAI_API_KEY, model=settings.OPENAI_MODEL)


def build_services(
    settings: Settings,
    db: Optional[BaseDBManager] = None,
    provider: Optional[PaymentProvider] = None,
    generator: Optional[TextGenerator] = None,
) -> ServiceContainer:
    db = db or _create_db_manager(settings)
    provider = provider or _create_payment_provider(settings)
    generator = generator or _create_text_generator(settings)

    ledger = LedgerLogger(db=db, file_path=Path(settings.LEDGER_LOG_PATH))
    entitlements = EntitlementService(db=db, ledger=ledger)
    usage_gate = UsageGate(entitlements)
    return ServiceContainer(
        settings=settings,
        db=db,
        entitlements=entitlements,
        usage_gate=usage_gate,
        checkout=CheckoutService(
            entitlements=entitlements,
            provider=provider,
            plans=settings.plan_catalog(),
        ),
        reconciler=WebhookReconciler(
            db=db, entitlements=entitlements, provider=provider, ledger=ledger
        ),
        faqs=FAQService(db=db, gate=usage_gate, generator=generator),
        generator=generator,
    )


async def _handle_quickfaqs_error(request: Request, exc: QuickFAQsError) -> JSONResponse:
    if isinstance(exc, StoreWriteError):
        logger.error(
            "Store write failed; responding with error so the caller retries",
            extra={"path": request.url.path},
        )
    elif isinstance(exc, AuthenticationError):
        logger.warning("Authentication failed", extra={"path": request.url.path})
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    await app.state.services.db.ensure_indexes()
    yield
    await app.state.services.generator.aclose()


def create_app(
    settings: Optional[Settings] = None,
    services: Optional[ServiceContainer] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title="QuickFAQs", lifespan=_lifespan)
    app.state.services = services or build_services(settings)
    app.add_exception_handler(QuickFAQsError, _handle_quickfaqs_error)  # type: ignore[arg-type]

    app.include_router(payment_router)
    app.include_router(faq_router)
    app.include_router(account_router)
    return app
