# accounts/services/stripe_gateway.py
import logging
from typing import Any, Mapping, Optional

import stripe

from accounts.core.config import StripeConfig
from accounts.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


def build_stripe_client(config: StripeConfig) -> stripe.StripeClient:
    """Клиент Stripe со своим ключом и таймаутом, без глобального stripe.api_key"""
    return stripe.StripeClient(
        config.api_key.get_secret_value(),
        http_client=stripe.HTTPXClient(timeout=config.timeout),
    )


class StripeGateway:
    """Обёртка над вызовами Stripe, которые нужны сервисам тарифов"""

    def __init__(self, client: stripe.StripeClient):
        self.client = client

    async def create_customer(
        self,
        description: str,
        email: str,
        name: str,
        plan: Optional[str],
    ) -> str:
        """Создать клиента в Stripe и вернуть его ID"""
        params: dict = {
            "description": description,
            "email": email,
            "name": name,
        }
        if plan:
            params["plan"] = plan
        try:
            customer = await self.client.customers.create_async(params=params)
        except stripe.StripeError as e:
            raise ExternalServiceError(f"failed to create customer on Stripe: {e}") from e
        logger.info(f"Created Stripe customer {customer.id}")
        return customer.id

    async def set_customer_plan(self, customer_id: str, plan: Optional[str]) -> None:
        """Перевести клиента Stripe на другой план"""
        try:
            await self.client.customers.update_async(customer_id, params={"plan": plan or ""})
        except stripe.StripeError as e:
            raise ExternalServiceError(f"failed to update customer on Stripe: {e}") from e

    async def get_subscription(self, subscription_id: str) -> Mapping[str, Any]:
        """Получить подписку по ID"""
        try:
            return await self.client.subscriptions.retrieve_async(subscription_id)
        except stripe.StripeError as e:
            raise ExternalServiceError(f"failed to fetch subscription: {e}") from e
