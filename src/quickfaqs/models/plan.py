from __future__ import annotations

from typing import Dict, Iterable, Optional

from pydantic import BaseModel

from .account import SubscriptionTier


class Plan(BaseModel):
    """
    Purchasable plan mapped onto a payment-provider price.
    """

    id: str
    price_id: str
    tier: SubscriptionTier


class PlanCatalog:
    """
    Lookup of purchasable plans by plan id, or by provider price id for
    clients that still post raw price ids.
    """

    def __init__(self, plans: Iterable[Plan]) -> None:
        self._by_id: Dict[str, Plan] = {}
        self._by_price: Dict[str, Plan] = {}
        for plan in plans:
            self._by_id[plan.id] = plan
            self._by_price[plan.price_id] = plan

    def resolve(self, plan_id: str) -> Optional[Plan]:
        return self._by_id.get(plan_id) or self._by_price.get(plan_id)
