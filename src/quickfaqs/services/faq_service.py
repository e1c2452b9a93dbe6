from __future__ import annotations

import logging

from ..db.base import BaseDBManager
from ..errors import ValidationError
from ..generation.base import TextGenerator
from ..models.faq import FAQ
from .usage_gate import UsageGate


logger = logging.getLogger(__name__)

GENERATE_FAQ_ACTION = "faq.generate"

_SYSTEM_PROMPT = (
    "You are an expert at creating clear, professional FAQ sections "
    "that address key customer concerns."
)


def build_faq_prompt(company_name: str, product_details: str) -> str:
    return (
        "Create a comprehensive FAQ section for the following company and product:\n\n"
        f"Company Name: {company_name}\n"
        f"Product Details: {product_details}\n\n"
        "Generate 5-7 of the most relevant questions and detailed answers that "
        "potential customers might have. Format the output in a clear, professional "
        "manner with questions numbered and answers properly spaced."
    )


class FAQService:
    """
    FAQ generation, the credit-consuming action behind the usage gate.
    """

    def __init__(
        self, db: BaseDBManager, gate: UsageGate, generator: TextGenerator
    ) -> None:
        self._db = db
        self._gate = gate
        self._generator = generator

    async def generate_faq(
        self, account_id: str, company_name: str, product_details: str
    ) -> FAQ:
        company_name = (company_name or "").strip()
        product_details = (product_details or "").strip()
        if not company_name or not product_details:
            raise ValidationError("companyName and productDetails are required")

        async with self._gate.guard(account_id, GENERATE_FAQ_ACTION):
            text = await self._generator.generate(
                build_faq_prompt(company_name, product_details),
                system=_SYSTEM_PROMPT,
            )
            faq = await self._db.add_faq(
                FAQ(
                    account_id=account_id,
                    company_name=company_name,
                    product_details=product_details,
                    generated_faq=text,
                )
            )

        logger.info("FAQ generated", extra={"account_id": account_id, "faq_id": faq.id})
        return faq
