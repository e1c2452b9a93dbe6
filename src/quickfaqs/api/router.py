from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Request

from .dependencies import ServiceContainer, get_current_account_id, get_services
from .schemas import (
    AccountResponse,
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    FAQBody,
    GenerateFAQRequest,
    GenerateFAQResponse,
    WebhookAck,
)


payment_router = APIRouter(prefix="/payment", tags=["payment"])
faq_router = APIRouter(prefix="/faq", tags=["faq"])
account_router = APIRouter(prefix="/account", tags=["account"])


@payment_router.post("/create-checkout-session", response_model=CheckoutSessionResponse)
async def create_checkout_session(
    payload: CheckoutSessionRequest,
    account_id: str = Depends(get_current_account_id),
    services: ServiceContainer = Depends(get_services),
) -> CheckoutSessionResponse:
    url = await services.checkout.create_checkout_session(account_id, payload.plan_id)
    return CheckoutSessionResponse(url=url)


@payment_router.post("/webhook", response_model=WebhookAck)
async def handle_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None, alias="stripe-signature"),
    services: ServiceContainer = Depends(get_services),
) -> WebhookAck:
    # Signature is computed over the exact bytes; never re-serialize first.
    body = await request.body()
    await services.reconciler.handle(body, stripe_signature)
    return WebhookAck(received=True)


@faq_router.post("/generate", response_model=GenerateFAQResponse)
async def generate_faq(
    payload: GenerateFAQRequest,
    account_id: str = Depends(get_current_account_id),
    services: ServiceContainer = Depends(get_services),
) -> GenerateFAQResponse:
    faq = await services.faqs.generate_faq(
        account_id=account_id,
        company_name=payload.company_name or "",
        product_details=payload.product_details or "",
    )
    return GenerateFAQResponse(
        faq=FAQBody(
            id=faq.id or "",
            company_name=faq.company_name,
            generated_faq=faq.generated_faq,
            created_at=faq.created_at,
        )
    )


@account_router.get("/me", response_model=AccountResponse)
async def get_my_account(
    account_id: str = Depends(get_current_account_id),
    services: ServiceContainer = Depends(get_services),
) -> AccountResponse:
    account = await services.entitlements.get_account(account_id)
    return AccountResponse(
        id=account.id or account_id,
        email=account.email,
        name=account.name,
        tier=account.tier.value,
        credits=account.credits,
    )
