from __future__ import annotations

import logging
from dataclasses import dataclass

import jwt
from fastapi import Header, Request

from ..config import Settings
from ..db.base import BaseDBManager
from ..errors import UnauthorizedError
from ..generation.base import TextGenerator
from ..services.checkout_service import CheckoutService
from ..services.entitlement_service import EntitlementService
from ..services.faq_service import FAQService
from ..services.usage_gate import UsageGate
from ..services.webhook_reconciler import WebhookReconciler


logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    db: BaseDBManager
    entitlements: EntitlementService
    usage_gate: UsageGate
    checkout: CheckoutService
    reconciler: WebhookReconciler
    faqs: FAQService
    generator: TextGenerator


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def decode_account_id(token: str, settings: Settings) -> str:
    """
    Extract the account id from a bearer token issued by the auth service.
    """
    try:
        claims = jwt.decode(
            token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM]
        )
    except jwt.PyJWTError as exc:
        logger.info("Rejected bearer token: %s", exc)
        raise UnauthorizedError("Not authorized") from exc

    account_id = claims.get("userId") or claims.get("sub")
    if not account_id:
        raise UnauthorizedError("Not authorized")
    return str(account_id)


def get_current_account_id(
    request: Request, authorization: str | None = Header(default=None)
) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError("No token provided")
    token = authorization.split(" ", 1)[1].strip()
    return decode_account_id(token, get_services(request).settings)
