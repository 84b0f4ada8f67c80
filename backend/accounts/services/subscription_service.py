# accounts/services/subscription_service.py
import json
import logging
from typing import Optional

import stripe
from pydantic import ValidationError as PydanticValidationError

from accounts.core.config import StripeConfig
from accounts.core.exceptions import AppException, DatabaseError, NotFoundError, ValidationError
from accounts.core.schemas.billing import StripeEvent, SubscriptionSnapshot
from accounts.models.user import Tier
from accounts.repositories.user_repository import UserRepository
from accounts.services.stripe_gateway import StripeGateway
from accounts.services.tiers import TierMapper

logger = logging.getLogger(__name__)


class SubscriptionReconciler:
    """Приводит тариф и срок подписки пользователя к состоянию подписки в Stripe"""

    def __init__(self, user_repository: UserRepository, tiers: TierMapper, attempts: int = 3):
        self.user_repository = user_repository
        self.tiers = tiers
        self.attempts = attempts

    async def reconcile(self, subscription: SubscriptionSnapshot) -> bool:
        """Пересчитать тариф пользователя по подписке.

        Возвращает True, если запись пользователя была изменена. Повторная
        доставка того же события ничего не пишет. Запись условная: если между
        чтением и записью пользователя изменил кто-то другой, пересчитываем заново.
        """
        logger.debug(f"Processing subscription: {subscription.id}")
        if not subscription.customer:
            raise NotFoundError(f"subscription {subscription.id} has no customer")
        for _ in range(self.attempts):
            user = await self.user_repository.get_by_stripe_id(subscription.customer)
            old_tier, old_until = user.tier, user.subscribed_until

            if not subscription.is_active:
                # Понижаем до бесплатного, срок подписки оставляем как был
                user.tier = Tier.FREE
            else:
                user.tier = self.tiers.tier_for_plan(subscription.product)
                if subscription.current_period_end is not None:
                    user.subscribed_until = subscription.current_period_end

            if user.tier == old_tier and user.subscribed_until == old_until:
                logger.debug(f"Subscription {subscription.id}: user {user.id} is up to date")
                return False

            if await self.user_repository.update_subscription_if_unchanged(user, old_tier, old_until):
                logger.info(
                    f"User {user.id} moved to tier {user.tier.name} until {user.subscribed_until}"
                )
                return True
            logger.warning(f"User {user.id} changed concurrently, retrying subscription {subscription.id}")

        raise DatabaseError(
            f"failed to update user for subscription {subscription.id}: too many concurrent changes"
        )


def read_stripe_event(payload: bytes, signature: Optional[str], config: StripeConfig) -> StripeEvent:
    """Проверяет подпись вебхука и разбирает событие"""
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ValidationError(f"error reading request body: {e}") from e

    if config.verify_webhook_signature:
        try:
            stripe.WebhookSignature.verify_header(
                text,
                signature or "",
                config.webhook_secret.get_secret_value(),
                tolerance=stripe.Webhook.DEFAULT_TOLERANCE,
            )
        except stripe.SignatureVerificationError as e:
            raise ValidationError(f"invalid webhook signature: {e}") from e
    try:
        return StripeEvent.model_validate(json.loads(text))
    except (ValueError, PydanticValidationError) as e:
        raise ValidationError(f"error parsing request body: {e}") from e


class StripeEventHandler:
    """Разбор событий Stripe, относящихся к подпискам"""

    def __init__(self, reconciler: SubscriptionReconciler, gateway: StripeGateway):
        self.reconciler = reconciler
        self.gateway = gateway

    async def handle(self, event: StripeEvent) -> Optional[bool]:
        """Обработать событие.

        Ошибки только логируются: Stripe сам повторит доставку, а ответ ему
        от них не зависит. Возвращает результат reconcile или None, если
        событие не про подписку или обработать его не удалось.
        """
        logger.debug(f"Received event: {event.id} {event.type}")
        try:
            if event.is_subscription_event:
                subscription = SubscriptionSnapshot.from_stripe(event.data.object)
            elif event.is_schedule_event:
                sub_id = event.data.object.get("subscription")
                if not sub_id:
                    logger.debug("Event doesn't refer to a subscription.")
                    return None
                raw = await self.gateway.get_subscription(sub_id)
                subscription = SubscriptionSnapshot.from_stripe(raw)
            else:
                return None
            return await self.reconciler.reconcile(subscription)
        except (AppException, PydanticValidationError, ValueError, TypeError) as e:
            logger.warning(f"Failed to process event {event.id} ({event.type}): {e}")
            return None
