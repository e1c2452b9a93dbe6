from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Optional

from pydantic import Field

from .base import DBSerializableModel, utcnow


class FAQ(DBSerializableModel):
    collection_name: ClassVar[str] = "faqs"

    id: Optional[str] = Field(default=None)
    account_id: str
    company_name: str
    product_details: str
    generated_faq: str
    created_at: datetime = Field(default_factory=utcnow)
