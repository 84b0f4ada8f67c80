# accounts/repositories/pipelines.py
"""Конвейеры агрегации для постраничной выдачи загрузок и скачиваний.

Запрос, который в итоге выполняется для скачиваний:

    db.downloads.aggregate([
        { $match: { "user_id": ObjectId("5fda32ef6e0aba5d16c0d550") }},
        { $sort: { "timestamp": -1 }},
        { $skip: 1 },
        { $limit: 5 },
        { $lookup: {
            from: "skylinks",
            localField: "skylink_id",
            foreignField: "_id",
            as: "fromSkylinks"
        }},
        { $replaceRoot: { newRoot: { $mergeObjects: [
            { $arrayElemAt: [ "$fromSkylinks", 0 ] }, "$$ROOT"
        ]}}},
        { $project: { ... size: { $cond: [ { $gt: ["$bytes", 0] }, "$bytes", "$size" ] } } }
    ])

skip/limit применяются к отфильтрованным записям до $lookup, поэтому join
делается только для одной страницы.
"""
import logging
from typing import Any, Dict, List, Optional

import pymongo
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import PyMongoError

from accounts.core.exceptions import DecodeError, QueryError, ValidationError
from accounts.core.schema import SKYLINKS

logger = logging.getLogger(__name__)

Stage = Dict[str, Any]
Pipeline = List[Stage]

JOIN_FIELD = "fromSkylinks"


def _page_stages(match: Dict[str, Any], offset: int, page_size: int) -> Pipeline:
    """Общие стадии 1-6 для загрузок и скачиваний"""
    if offset < 0:
        raise ValidationError("offset must be non-negative")
    if page_size < 1:
        raise ValidationError("page size must be positive")
    return [
        {"$match": match},
        {"$sort": {"timestamp": -1}},
        {"$skip": offset},
        {"$limit": page_size},
        {"$lookup": {
            "from": SKYLINKS,
            "localField": "skylink_id",  # поле в uploads/downloads
            "foreignField": "_id",       # поле в skylinks
            "as": JOIN_FIELD,
        }},
        # Поля записи перекрывают поля skylink при совпадении ключей
        {"$replaceRoot": {
            "newRoot": {
                "$mergeObjects": [
                    {"$arrayElemAt": [f"${JOIN_FIELD}", 0]},
                    "$$ROOT",
                ],
            },
        }},
    ]


def uploads_pipeline(match: Dict[str, Any], offset: int, page_size: int) -> Pipeline:
    """Конвейер для загрузок пользователя"""
    pipeline = _page_stages(match, offset, page_size)
    pipeline.append({"$project": {JOIN_FIELD: 0}})
    return pipeline


def downloads_pipeline(match: Dict[str, Any], offset: int, page_size: int) -> Pipeline:
    """Конвейер для скачиваний: учитывает частичные скачивания через поле bytes"""
    pipeline = _page_stages(match, offset, page_size)
    # Если у скачивания bytes > 0, это и есть его размер, иначе размер skylink.
    # fromSkylinks не попадает в выдачу, так как проекция включающая.
    pipeline.append({"$project": {
        "skylink": 1,
        "name": 1,
        "user_id": 1,
        "skylink_id": 1,
        "timestamp": 1,
        "size": {
            "$cond": [
                {"$gt": ["$bytes", 0]},  # if
                "$bytes",                # then
                "$size",                 # else
            ],
        },
    }})
    return pipeline


async def aggregate(
    coll: AsyncCollection,
    pipeline: Pipeline,
    timeout: Optional[float] = None,
) -> List[Dict[str, Any]]:
    """Выполняет конвейер и возвращает все документы результата"""
    with pymongo.timeout(timeout):
        try:
            cursor = await coll.aggregate(pipeline)
        except PyMongoError as e:
            raise QueryError(f"DB query failed: {e}") from e
        try:
            return await cursor.to_list(None)
        except PyMongoError as e:
            raise QueryError(f"DB query failed: {e}") from e
        finally:
            await _close(cursor)


async def count(
    coll: AsyncCollection,
    match: Dict[str, Any],
    timeout: Optional[float] = None,
) -> int:
    """Количество документов коллекции, подходящих под фильтр"""
    pipeline = [{"$match": match}, {"$count": "count"}]
    with pymongo.timeout(timeout):
        try:
            cursor = await coll.aggregate(pipeline)
        except PyMongoError as e:
            raise QueryError(f"DB query failed: {e}") from e
        try:
            result = await cursor.to_list(1)
        except PyMongoError as e:
            raise QueryError(f"DB query failed: {e}") from e
        finally:
            await _close(cursor)

    # $count не возвращает строк, если ничего не нашлось
    if not result:
        return 0
    value = result[0].get("count")
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeError(f"failed to decode DB data: unexpected count {value!r}")
    return value


async def _close(cursor) -> None:
    try:
        await cursor.close()
    except Exception as e:
        logger.debug(f"Error on closing DB cursor: {e}")
