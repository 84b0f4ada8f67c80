"""Activity queries and schema provisioning against a real MongoDB.

Set MONGO_TEST_HOST (and optionally MONGO_TEST_PORT) to run these.
"""
import os
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId
from pymongo import AsyncMongoClient

from accounts.core.schema import DOWNLOADS, SKYLINKS, UPLOADS, ensure_schema
from accounts.models import Download, Skylink, Upload
from accounts.repositories.activity_repository import ActivityRepository
from accounts.repositories.pipelines import JOIN_FIELD

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not os.getenv("MONGO_TEST_HOST"), reason="MONGO_TEST_HOST is not set"),
]

START = datetime(2021, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
async def db():
    client = AsyncMongoClient(
        os.environ["MONGO_TEST_HOST"],
        int(os.getenv("MONGO_TEST_PORT", "27017")),
        tz_aware=True,
    )
    name = f"accounts_test_{uuid.uuid4().hex[:8]}"
    database = client[name]
    await ensure_schema(database)
    yield database
    await client.drop_database(name)
    await client.close()


async def _skylink(db, size: int) -> ObjectId:
    skylink = Skylink(skylink=uuid.uuid4().hex, size=size, name="file.bin")
    result = await db[SKYLINKS].insert_one(skylink.to_mongo())
    return result.inserted_id


async def test_uploads_page_is_newest_first(db):
    """Test row count is min(page_size, N - offset) in descending time order."""
    user_id = ObjectId()
    skylink_id = await _skylink(db, 200)
    for i in range(5):
        upload = Upload(user_id=user_id, skylink_id=skylink_id, timestamp=START + timedelta(minutes=i))
        await db[UPLOADS].insert_one(upload.to_mongo())
    # чужая загрузка не должна попасть в выборку
    await db[UPLOADS].insert_one(Upload(user_id=ObjectId(), skylink_id=skylink_id).to_mongo())

    repo = ActivityRepository(db, timeout=10)
    rows, total = await repo.uploads(user_id, 3, 10)

    assert total == 5
    assert len(rows) == 2
    assert [r["timestamp"] for r in rows] == [START + timedelta(minutes=1), START]
    assert rows[0]["size"] == 200
    assert rows[0]["name"] == "file.bin"
    assert JOIN_FIELD not in rows[0]



async def test_record_fields_win_over_skylink_fields(db):
    """Test a field present on both the upload and its skylink keeps the upload's value."""
    user_id = ObjectId()
    skylink_id = await _skylink(db, 200)
    upload = Upload(user_id=user_id, skylink_id=skylink_id, timestamp=START).to_mongo()
    upload["name"] = "renamed.bin"
    await db[UPLOADS].insert_one(upload)

    rows, _ = await ActivityRepository(db).uploads(user_id, 0, 10)

    assert rows[0]["name"] == "renamed.bin"
    assert rows[0]["_id"] == upload["_id"]
    assert rows[0]["size"] == 200

async def test_downloads_effective_size(db):
    """Test a positive byte override wins over the skylink size."""
    user_id = ObjectId()
    skylink_id = await _skylink(db, 200)
    await db[DOWNLOADS].insert_one(
        Download(user_id=user_id, skylink_id=skylink_id, partial_bytes=50, timestamp=START).to_mongo()
    )
    await db[DOWNLOADS].insert_one(
        Download(user_id=user_id, skylink_id=skylink_id, timestamp=START - timedelta(days=1)).to_mongo()
    )

    rows, total = await ActivityRepository(db).downloads(user_id, 0, 10)

    assert total == 2
    assert [r["size"] for r in rows] == [50, 200]


async def test_user_without_activity(db):
    """Test an unknown user has no rows and a zero count."""
    repo = ActivityRepository(db)

    assert await repo.uploads(ObjectId(), 0, 10) == ([], 0)
    assert await repo.stats(ObjectId()) == {
        "uploads": 0, "downloads": 0, "registry_reads": 0, "registry_writes": 0,
    }


async def test_ensure_schema_is_idempotent(db):
    """Test a second provisioning run succeeds with the same indexes."""
    first = await ensure_schema(db)
    second = await ensure_schema(db)

    assert first == second
    info = await db[SKYLINKS].index_information()
    assert info["skylink_unique"]["unique"] is True
