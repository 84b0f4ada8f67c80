# accounts/core/schemas/billing.py
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional
from pydantic import BaseModel, Field

STATUS_ACTIVE = "active"


def _ref_id(value: Any) -> Optional[str]:
    """Stripe отдаёт ссылку либо строкой ID, либо развёрнутым объектом"""
    if value is None:
        return None
    if isinstance(value, str):
        return value or None
    if isinstance(value, Mapping):
        return value.get("id") or None
    return None


def _first_item(obj: Mapping[str, Any]) -> Mapping[str, Any]:
    items = obj.get("items") or {}
    data = items.get("data") or []
    return data[0] if data else {}


class SubscriptionSnapshot(BaseModel):
    """Поля подписки Stripe, которые нужны для пересчёта тарифа"""
    id: str = ""
    customer: str
    status: str
    product: Optional[str] = None
    current_period_end: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    @classmethod
    def from_stripe(cls, obj: Mapping[str, Any]) -> "SubscriptionSnapshot":
        item = _first_item(obj)
        product = _ref_id((obj.get("plan") or {}).get("product"))
        if product is None:
            product = _ref_id((item.get("price") or {}).get("product"))
        # В новых версиях API период хранится у элементов подписки
        period_end = obj.get("current_period_end") or item.get("current_period_end")
        return cls(
            id=obj.get("id") or "",
            customer=_ref_id(obj.get("customer")) or "",
            status=obj.get("status") or "",
            product=product,
            current_period_end=(
                datetime.fromtimestamp(int(period_end), tz=timezone.utc)
                if period_end else None
            ),
        )


class EventData(BaseModel):
    object: Dict[str, Any] = Field(default_factory=dict)


class StripeEvent(BaseModel):
    id: str = ""
    type: str
    data: EventData = Field(default_factory=EventData)

    @property
    def is_subscription_event(self) -> bool:
        return "customer.subscription" in self.type

    @property
    def is_schedule_event(self) -> bool:
        return "subscription_schedule" in self.type
