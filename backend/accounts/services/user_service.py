# accounts/services/user_service.py
import logging
from accounts.core.exceptions import AlreadyExistsError
from accounts.core.schemas.accounts import UserCreate
from accounts.core.security import get_password_hash
from accounts.models.user import Tier, User
from accounts.repositories.user_repository import UserRepository
from accounts.services.tier_service import TierCustomerSync

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, user_repository: UserRepository, tier_sync: TierCustomerSync):
        self.user_repository = user_repository
        self.tier_sync = tier_sync

    async def register(self, sub: str, user_create: UserCreate) -> User:
        """Регистрация пользователя и создание клиента в Stripe.

        Если прошлая попытка сохранила пользователя, но клиента в Stripe
        создать не смогла, повторная регистрация доводит её до конца.
        """
        user = User(
            sub=sub,
            first_name=user_create.first_name,
            last_name=user_create.last_name,
            email=user_create.email,
            password_hash=get_password_hash(user_create.password) if user_create.password else "",
            tier=Tier.FREE,
        )
        # Сначала пишем в БД: дубликат sub отсекается уникальным индексом
        try:
            user = await self.user_repository.create(user)
            logger.info(f"Created user {user.id} for sub {sub}")
        except AlreadyExistsError:
            user = await self.user_repository.get_by_sub(sub)
            if user.stripe_id:
                raise
            logger.warning(f"User {user.id} has no Stripe customer, resuming registration")

        customer_id = await self.tier_sync.create_customer(user)
        return await self.user_repository.set_stripe_id(user, customer_id)
