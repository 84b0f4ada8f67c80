# accounts/repositories/user_repository.py
from typing import Optional
from datetime import datetime
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError
from accounts.core.exceptions import AlreadyExistsError, DatabaseError, NotFoundError
from accounts.core.schema import USERS
from accounts.models.user import Tier, User


class UserRepository:
    def __init__(self, db: AsyncDatabase):
        self.collection = db[USERS]

    async def _find_one(self, query: dict) -> User:
        try:
            doc = await self.collection.find_one(query)
        except PyMongoError as e:
            raise DatabaseError(f"failed to fetch user: {e}") from e
        if doc is None:
            raise NotFoundError("user not found")
        return User.from_mongo(doc)

    async def get_by_sub(self, sub: str) -> User:
        """Получить пользователя по sub из JWT"""
        return await self._find_one({"sub": sub})

    async def get_by_stripe_id(self, stripe_id: str) -> User:
        """Получить пользователя по ID клиента в Stripe"""
        if not stripe_id:
            raise NotFoundError("user not found")
        return await self._find_one({"stripeId": stripe_id})

    async def create(self, user: User) -> User:
        """Создать нового пользователя"""
        try:
            result = await self.collection.insert_one(user.to_mongo())
        except DuplicateKeyError as e:
            raise AlreadyExistsError("identity already belongs to an existing user") from e
        except PyMongoError as e:
            raise DatabaseError(f"failed to insert user: {e}") from e
        user.id = result.inserted_id
        return user

    async def set_tier(self, user: User, tier: Tier) -> User:
        """Обновить тариф пользователя"""
        try:
            result = await self.collection.update_one(
                {"_id": user.id}, {"$set": {"tier": int(tier)}}
            )
        except PyMongoError as e:
            raise DatabaseError(f"failed to update user tier: {e}") from e
        if result.matched_count == 0:
            raise NotFoundError("user not found")
        user.tier = tier
        return user

    async def set_stripe_id(self, user: User, stripe_id: str) -> User:
        """Привязать клиента Stripe к пользователю"""
        try:
            result = await self.collection.update_one(
                {"_id": user.id}, {"$set": {"stripeId": stripe_id}}
            )
        except PyMongoError as e:
            raise DatabaseError(f"failed to update user: {e}") from e
        if result.matched_count == 0:
            raise NotFoundError("user not found")
        user.stripe_id = stripe_id
        return user

    async def update_subscription_if_unchanged(
        self,
        user: User,
        expected_tier: Tier,
        expected_until: Optional[datetime],
    ) -> bool:
        """Записать tier и subscribedUntil, только если в БД всё ещё старые значения.

        Возвращает False, если документ успел изменить кто-то другой.
        """
        query = {
            "_id": user.id,
            "tier": int(expected_tier),
            "subscribedUntil": expected_until,
        }
        update = {"$set": {
            "tier": int(user.tier),
            "subscribedUntil": user.subscribed_until,
        }}
        try:
            result = await self.collection.update_one(query, update)
        except PyMongoError as e:
            raise DatabaseError(f"failed to update user subscription: {e}") from e
        return result.matched_count == 1
