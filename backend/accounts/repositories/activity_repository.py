# accounts/repositories/activity_repository.py
import asyncio
from typing import Any, Dict, List, Optional, Tuple
from bson import ObjectId
from pymongo.asynchronous.database import AsyncDatabase
from accounts.core.schema import DOWNLOADS, REGISTRY_READS, REGISTRY_WRITES, UPLOADS
from accounts.repositories.pipelines import (
    aggregate,
    count,
    downloads_pipeline,
    uploads_pipeline,
)

Row = Dict[str, Any]


class ActivityRepository:
    """Чтение загрузок, скачиваний и обращений к реестру пользователя"""

    def __init__(self, db: AsyncDatabase, timeout: Optional[float] = None):
        self.db = db
        self.timeout = timeout

    async def uploads(self, user_id: ObjectId, offset: int, page_size: int) -> Tuple[List[Row], int]:
        """Страница загрузок пользователя и общее их количество"""
        match = {"user_id": user_id}
        coll = self.db[UPLOADS]
        rows = await aggregate(coll, uploads_pipeline(match, offset, page_size), self.timeout)
        total = await count(coll, match, self.timeout)
        return rows, total

    async def downloads(self, user_id: ObjectId, offset: int, page_size: int) -> Tuple[List[Row], int]:
        """Страница скачиваний пользователя и общее их количество"""
        match = {"user_id": user_id}
        coll = self.db[DOWNLOADS]
        rows = await aggregate(coll, downloads_pipeline(match, offset, page_size), self.timeout)
        total = await count(coll, match, self.timeout)
        return rows, total

    async def stats(self, user_id: ObjectId) -> Dict[str, int]:
        """Количество записей пользователя по всем коллекциям активности"""
        match = {"user_id": user_id}
        names = (UPLOADS, DOWNLOADS, REGISTRY_READS, REGISTRY_WRITES)
        counts = await asyncio.gather(
            *(count(self.db[name], match, self.timeout) for name in names)
        )
        return dict(zip(names, counts))
