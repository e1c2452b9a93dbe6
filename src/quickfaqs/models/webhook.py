from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, ClassVar, Literal, Mapping, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from .base import DBSerializableModel, utcnow


CHECKOUT_COMPLETED = "checkout.session.completed"
SUBSCRIPTION_CANCELLED = "customer.subscription.deleted"

# Metadata keys the checkout initiator writes onto the provider session.
ACCOUNT_METADATA_KEY = "userId"
PLAN_METADATA_KEY = "planId"


class CheckoutCompleted(BaseModel):
    kind: Literal["checkout_completed"] = "checkout_completed"
    event_id: str
    event_type: str = CHECKOUT_COMPLETED
    account_id: Optional[str] = None
    plan_id: Optional[str] = None


class SubscriptionCancelled(BaseModel):
    kind: Literal["subscription_cancelled"] = "subscription_cancelled"
    event_id: str
    event_type: str = SUBSCRIPTION_CANCELLED
    account_id: Optional[str] = None


class IgnoredEvent(BaseModel):
    kind: Literal["ignored"] = "ignored"
    event_id: str
    event_type: str


WebhookEvent = Annotated[
    Union[CheckoutCompleted, SubscriptionCancelled, IgnoredEvent],
    Field(discriminator="kind"),
]

_webhook_event_adapter = TypeAdapter(WebhookEvent)


def _metadata_value(metadata: Mapping[str, Any], key: str, alias: str) -> Optional[str]:
    value = metadata.get(key) or metadata.get(alias)
    return str(value) if value else None


def _mapping_field(container: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = container.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"webhook field '{key}' must be an object")
    return value


def parse_webhook_event(payload: Mapping[str, Any]) -> Union[
    CheckoutCompleted, SubscriptionCancelled, IgnoredEvent
]:
    """
    Map a verified provider event into the closed event variant.

    Raises ValueError when the payload lacks an event id or type, or when
    `data`, `data.object` or its metadata is not an object. Every
    well-formed event of a type we do not model becomes `IgnoredEvent`.
    """
    event_id = payload.get("id")
    event_type = payload.get("type")
    if not event_id or not event_type:
        raise ValueError("webhook payload is missing id or type")

    data = _mapping_field(payload, "data")
    obj = _mapping_field(data, "object")
    metadata = _mapping_field(obj, "metadata")

    if event_type == CHECKOUT_COMPLETED:
        raw: dict[str, Any] = {
            "kind": "checkout_completed",
            "event_id": event_id,
            "account_id": _metadata_value(metadata, ACCOUNT_METADATA_KEY, "account_id"),
            "plan_id": _metadata_value(metadata, PLAN_METADATA_KEY, "plan_id"),
        }
    elif event_type == SUBSCRIPTION_CANCELLED:
        raw = {
            "kind": "subscription_cancelled",
            "event_id": event_id,
            "account_id": _metadata_value(metadata, ACCOUNT_METADATA_KEY, "account_id"),
        }
    else:
        raw = {"kind": "ignored", "event_id": event_id, "event_type": event_type}
    return _webhook_event_adapter.validate_python(raw)


class WebhookStatus(str, Enum):
    APPLIED = "applied"
    IGNORED = "ignored"
    DUPLICATE = "duplicate"
    ACCOUNT_MISSING = "account_missing"


class WebhookOutcome(BaseModel):
    event_id: str
    event_type: str
    status: WebhookStatus
    account_id: Optional[str] = None


class ProcessedWebhookEvent(DBSerializableModel):
    """
    Idempotency ledger record; `id` is the provider event id.
    """

    collection_name: ClassVar[str] = "processed_webhook_events"

    id: str
    event_type: str
    account_id: Optional[str] = None
    outcome: WebhookStatus
    processed_at: datetime = Field(default_factory=utcnow)
