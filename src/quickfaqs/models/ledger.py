from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Optional

from pydantic import Field

from .base import DBSerializableModel, utcnow


class LedgerEventType(str, Enum):
    TRANSITION = "transition"
    DEBIT = "debit"
    REFUND = "refund"
    SECURITY = "security"
    ERROR = "error"


class LedgerEntry(DBSerializableModel):
    """
    Audit record for entitlement changes, persisted to DB and mirrored to file.
    """

    collection_name: ClassVar[str] = "entitlement_ledger"

    id: Optional[str] = Field(default=None)
    event_type: LedgerEventType
    account_id: Optional[str] = None
    correlation_id: Optional[str] = Field(
        default=None,
        description="Provider event id or request id tying the entry to its cause.",
    )
    message: str
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
