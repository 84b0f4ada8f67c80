# accounts/core/database.py
from typing import AsyncGenerator
from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase
from accounts.core.config import settings


class DatabaseHelper:
    def __init__(self, url: str, db_name: str):
        # tz_aware: даты из БД возвращаются в UTC, как и записываются
        self.client: AsyncMongoClient = AsyncMongoClient(url, tz_aware=True)
        self.db: AsyncDatabase = self.client[db_name]

    async def ping(self) -> dict:
        """Проверка доступности MongoDB"""
        return await self.client.admin.command("ping")

    async def dispose(self):
        """Закрывает все соединения с базой данных"""
        await self.client.close()

    async def db_getter(self) -> AsyncGenerator[AsyncDatabase, None]:
        """Генератор для получения БД в FastAPI зависимостях"""
        yield self.db


db_helper = DatabaseHelper(
    url=settings.db.DATABASE_URL,
    db_name=settings.db.name,
)
