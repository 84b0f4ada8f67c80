# accounts/core/schema.py
"""Коллекции и индексы, которые должны существовать до старта сервиса.

ensure_schema идемпотентна: её можно вызывать при каждом запуске, в том числе
одновременно из нескольких процессов.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Sequence, Tuple

from pymongo import ASCENDING, IndexModel
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import CollectionInvalid, OperationFailure, PyMongoError

from accounts.core.exceptions import DatabaseError

logger = logging.getLogger(__name__)

# NamespaceExists: коллекцию создали между проверкой и create
NAMESPACE_EXISTS = 48

USERS = "users"
SKYLINKS = "skylinks"
UPLOADS = "uploads"
DOWNLOADS = "downloads"
REGISTRY_READS = "registry_reads"
REGISTRY_WRITES = "registry_writes"


@dataclass(frozen=True)
class IndexSpec:
    keys: Tuple[Tuple[str, int], ...]
    name: str
    unique: bool = False

    def to_model(self) -> IndexModel:
        return IndexModel(list(self.keys), name=self.name, unique=self.unique)


def _user_id_index() -> IndexSpec:
    return IndexSpec(keys=(("user_id", ASCENDING),), name="user_id")


SCHEMA: Dict[str, List[IndexSpec]] = {
    USERS: [IndexSpec(keys=(("sub", ASCENDING),), name="sub_unique", unique=True)],
    SKYLINKS: [IndexSpec(keys=(("skylink", ASCENDING),), name="skylink_unique", unique=True)],
    UPLOADS: [
        _user_id_index(),
        IndexSpec(keys=(("skylink_id", ASCENDING),), name="skylink_id"),
    ],
    DOWNLOADS: [
        _user_id_index(),
        IndexSpec(keys=(("skylink_id", ASCENDING),), name="skylink_id"),
    ],
    REGISTRY_READS: [_user_id_index()],
    REGISTRY_WRITES: [_user_id_index()],
}


async def ensure_collection(db: AsyncDatabase, name: str):
    """Создаёт коллекцию, если её ещё нет, и возвращает её"""
    try:
        await db.create_collection(name)
        logger.info(f"Created collection {name}")
    except CollectionInvalid:
        # Коллекция уже есть или её только что создал соседний процесс
        pass
    except OperationFailure as e:
        if e.code != NAMESPACE_EXISTS:
            raise DatabaseError(f"failed to create collection {name}: {e}") from e
    except PyMongoError as e:
        raise DatabaseError(f"failed to create collection {name}: {e}") from e
    return db[name]


async def ensure_schema(
    db: AsyncDatabase,
    schema: Mapping[str, Sequence[IndexSpec]] = SCHEMA,
) -> Dict[str, List[str]]:
    """Проверяет наличие всех коллекций и индексов и создаёт недостающие.

    Индекс с тем же определением MongoDB создаёт повторно без ошибки, а вот
    конфликт определений (тот же ключ под другим именем и т.п.) фатален.
    """
    ensured: Dict[str, List[str]] = {}
    for name, indexes in schema.items():
        coll = await ensure_collection(db, name)
        if not indexes:
            ensured[name] = []
            continue
        try:
            names = await coll.create_indexes([ix.to_model() for ix in indexes])
        except PyMongoError as e:
            raise DatabaseError(f"failed to create indexes on {name}: {e}") from e
        logger.info(f"Ensured index exists: {name}: {names}")
        ensured[name] = list(names)
    return ensured
