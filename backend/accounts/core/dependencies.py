# accounts/core/dependencies.py
from functools import lru_cache
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from pymongo.asynchronous.database import AsyncDatabase
from accounts.core.config import settings
from accounts.core.database import db_helper
from accounts.core.exceptions import AuthenticationError
from accounts.core.security import get_token_subject
from accounts.models.user import User
from accounts.repositories.activity_repository import ActivityRepository
from accounts.repositories.user_repository import UserRepository
from accounts.services.stripe_gateway import StripeGateway, build_stripe_client
from accounts.services.subscription_service import StripeEventHandler, SubscriptionReconciler
from accounts.services.tier_service import TierCustomerSync
from accounts.services.tiers import TierMapper
from accounts.services.user_service import UserService
import logging

logger = logging.getLogger(__name__)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="login")


@lru_cache()
def get_tier_mapper() -> TierMapper:
    """Таблица тарифов строится один раз"""
    return TierMapper(settings.stripe.plans)

@lru_cache()
def get_stripe_gateway() -> StripeGateway:
    return StripeGateway(build_stripe_client(settings.stripe))

def get_user_repository(db: AsyncDatabase = Depends(db_helper.db_getter)) -> UserRepository:
    return UserRepository(db)

def get_activity_repository(db: AsyncDatabase = Depends(db_helper.db_getter)) -> ActivityRepository:
    return ActivityRepository(db, timeout=settings.db.query_timeout)

def get_tier_sync(
    user_repo: UserRepository = Depends(get_user_repository),
    gateway: StripeGateway = Depends(get_stripe_gateway),
    tiers: TierMapper = Depends(get_tier_mapper),
) -> TierCustomerSync:
    return TierCustomerSync(user_repo, gateway, tiers)

def get_user_service(
    user_repo: UserRepository = Depends(get_user_repository),
    tier_sync: TierCustomerSync = Depends(get_tier_sync),
) -> UserService:
    return UserService(user_repo, tier_sync)

def get_event_handler(
    user_repo: UserRepository = Depends(get_user_repository),
    gateway: StripeGateway = Depends(get_stripe_gateway),
    tiers: TierMapper = Depends(get_tier_mapper),
) -> StripeEventHandler:
    reconciler = SubscriptionReconciler(user_repo, tiers, attempts=settings.stripe.reconcile_attempts)
    return StripeEventHandler(reconciler, gateway)

async def get_current_sub(token: str = Depends(oauth2_scheme)) -> str:
    """sub вызывающего из Bearer токена"""
    try:
        return get_token_subject(token)
    except ValueError as e:
        logger.warning(f"Authentication failed: {e}")
        raise AuthenticationError(str(e))

async def get_current_user(
    sub: str = Depends(get_current_sub),
    user_repo: UserRepository = Depends(get_user_repository),
) -> User:
    """Зависимость для получения текущего пользователя из токена"""
    return await user_repo.get_by_sub(sub)
