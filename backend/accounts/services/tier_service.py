# accounts/services/tier_service.py
import logging
from accounts.core.exceptions import AppException, CompositeError, ValidationError
from accounts.models.user import Tier, User
from accounts.repositories.user_repository import UserRepository
from accounts.services.stripe_gateway import StripeGateway
from accounts.services.tiers import TierMapper

logger = logging.getLogger(__name__)


class TierCustomerSync:
    """Согласованная смена тарифа в Stripe и в нашей БД"""

    def __init__(self, user_repository: UserRepository, gateway: StripeGateway, tiers: TierMapper):
        self.user_repository = user_repository
        self.gateway = gateway
        self.tiers = tiers

    async def create_customer(self, user: User) -> str:
        """Создать клиента Stripe на бесплатном тарифе. Тариф пользователя не меняется."""
        return await self.gateway.create_customer(
            description=user.sub,
            email=user.email,
            name=user.full_name,
            plan=self.tiers.plan_for_tier(Tier.FREE),
        )

    async def assign_tier(self, user: User, tier: Tier) -> User:
        """Сменить тариф сначала в Stripe, потом в БД.

        Если запись в БД не удалась, план в Stripe возвращается к прежнему.
        Если не удался и откат, поднимается CompositeError с обеими ошибками.
        """
        if not user.stripe_id:
            raise ValidationError(f"user {user.id} has no Stripe customer")
        plan = self.tiers.plan_for_tier(tier)
        if plan is None:
            raise ValidationError(f"no Stripe plan configured for tier {tier.name}")
        old_tier = user.tier

        await self.gateway.set_customer_plan(user.stripe_id, plan)
        try:
            return await self.user_repository.set_tier(user, tier)
        except AppException as e:
            logger.error(f"Failed to update tier of user {user.id} in DB: {e.detail}")
            try:
                await self.gateway.set_customer_plan(
                    user.stripe_id, self.tiers.plan_for_tier(old_tier)
                )
            except AppException as revert_error:
                logger.error(
                    f"Failed to revert the change on Stripe for customer {user.stripe_id}: {revert_error.detail}"
                )
                raise CompositeError(e, revert_error) from e
            raise
