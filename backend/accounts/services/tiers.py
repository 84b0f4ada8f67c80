# accounts/services/tiers.py
from types import MappingProxyType
from typing import Dict, Mapping, Optional
from accounts.models.user import Tier


class TierMapper:
    """Соответствие продуктов Stripe тарифам и обратно.

    Строится один раз при старте из настроек и дальше только читается.
    """

    def __init__(self, plans: Mapping[str, int]):
        forward: Dict[str, Tier] = {}
        inverse: Dict[Tier, str] = {}
        for plan_id, tier_value in plans.items():
            tier = Tier(tier_value)
            if tier in inverse:
                raise ValueError(
                    f"plans {inverse[tier]!r} and {plan_id!r} both map to tier {tier.name}"
                )
            forward[plan_id] = tier
            inverse[tier] = plan_id
        self._plans = MappingProxyType(forward)
        self._tiers = MappingProxyType(inverse)

    @property
    def plans(self) -> Mapping[str, Tier]:
        return self._plans

    def tier_for_plan(self, plan_id: Optional[str]) -> Tier:
        """Тариф для продукта Stripe; неизвестный продукт - бесплатный тариф"""
        if not plan_id:
            return Tier.FREE
        return self._plans.get(plan_id, Tier.FREE)

    def plan_for_tier(self, tier: Tier) -> Optional[str]:
        """Продукт Stripe для тарифа или None, если он не настроен"""
        return self._tiers.get(tier)
