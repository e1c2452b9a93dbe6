from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CheckoutSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plan_id: Optional[str] = Field(default=None, alias="planId")


class CheckoutSessionResponse(BaseModel):
    url: str


class WebhookAck(BaseModel):
    received: bool = True


class GenerateFAQRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    company_name: Optional[str] = Field(default=None, alias="companyName")
    product_details: Optional[str] = Field(default=None, alias="productDetails")


class FAQBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    company_name: str = Field(alias="companyName")
    generated_faq: str = Field(alias="generatedFAQ")
    created_at: datetime = Field(alias="createdAt")


class GenerateFAQResponse(BaseModel):
    faq: FAQBody


class AccountResponse(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    tier: str
    credits: int
