"""Tests for the uploads/downloads aggregation pipelines and count helper."""
from unittest.mock import AsyncMock

import pytest
from bson import ObjectId
from pymongo.errors import OperationFailure

from accounts.core.exceptions import DecodeError, QueryError, ValidationError
from accounts.repositories.pipelines import (
    JOIN_FIELD,
    aggregate,
    count,
    downloads_pipeline,
    uploads_pipeline,
)
from tests.fakes import FakeCursor

USER_ID = ObjectId("5fda32ef6e0aba5d16c0d550")
MATCH = {"user_id": USER_ID}


def _stage_names(pipeline):
    return [next(iter(stage)) for stage in pipeline]


@pytest.mark.parametrize("builder", [uploads_pipeline, downloads_pipeline])
def test_stage_order(builder):
    """Test skip/limit run on the matched set before the join and projection."""
    pipeline = builder(MATCH, 5, 20)

    assert _stage_names(pipeline) == [
        "$match", "$sort", "$skip", "$limit", "$lookup", "$replaceRoot", "$project",
    ]
    assert pipeline[0] == {"$match": MATCH}
    assert pipeline[1] == {"$sort": {"timestamp": -1}}
    assert pipeline[2] == {"$skip": 5}
    assert pipeline[3] == {"$limit": 20}


@pytest.mark.parametrize("builder", [uploads_pipeline, downloads_pipeline])
def test_lookup_and_merge(builder):
    """Test the skylink join and that record fields win on merge."""
    pipeline = builder(MATCH, 0, 10)

    assert pipeline[4]["$lookup"] == {
        "from": "skylinks",
        "localField": "skylink_id",
        "foreignField": "_id",
        "as": JOIN_FIELD,
    }
    merge = pipeline[5]["$replaceRoot"]["newRoot"]["$mergeObjects"]
    assert merge == [{"$arrayElemAt": [f"${JOIN_FIELD}", 0]}, "$$ROOT"]


def test_uploads_projection_drops_join_field():
    """Test uploads only drop the join artifact."""
    assert uploads_pipeline(MATCH, 0, 10)[-1] == {"$project": {JOIN_FIELD: 0}}


def test_downloads_projection_computes_effective_size():
    """Test downloads prefer a positive bytes override over skylink size."""
    project = downloads_pipeline(MATCH, 0, 10)[-1]["$project"]

    assert project["size"] == {"$cond": [{"$gt": ["$bytes", 0]}, "$bytes", "$size"]}
    assert JOIN_FIELD not in project
    for field in ("skylink", "name", "user_id", "skylink_id", "timestamp"):
        assert project[field] == 1


def test_builders_share_first_six_stages():
    """Test both variants differ only in the projection."""
    assert uploads_pipeline(MATCH, 3, 7)[:6] == downloads_pipeline(MATCH, 3, 7)[:6]


@pytest.mark.parametrize("offset,page_size", [(-1, 10), (0, 0), (0, -5)])
def test_invalid_pagination(offset, page_size):
    """Test negative offsets and empty pages are rejected."""
    with pytest.raises(ValidationError):
        uploads_pipeline(MATCH, offset, page_size)


async def test_aggregate_returns_rows_and_closes_cursor(fake_db):
    """Test rows come back in cursor order and the cursor is closed."""
    rows = [{"_id": 1, "size": 10}, {"_id": 2, "size": 20}]
    cursor = FakeCursor(rows)
    coll = fake_db["uploads"]
    coll.aggregate = AsyncMock(return_value=cursor)

    result = await aggregate(coll, uploads_pipeline(MATCH, 0, 10))

    assert result == rows
    assert cursor.closed


async def test_aggregate_empty_result(fake_db):
    """Test an empty result set is not an error."""
    assert await aggregate(fake_db["uploads"], uploads_pipeline(MATCH, 0, 10)) == []


async def test_aggregate_failure_is_query_error(fake_db):
    """Test an execution failure is reported as a query failure."""
    coll = fake_db["downloads"]
    coll.aggregate = AsyncMock(side_effect=OperationFailure("boom"))

    with pytest.raises(QueryError):
        await aggregate(coll, downloads_pipeline(MATCH, 0, 10))


async def test_aggregate_iteration_failure_still_closes_cursor(fake_db):
    """Test the cursor is closed even when reading it fails."""
    cursor = FakeCursor([], error=OperationFailure("cursor killed"))
    coll = fake_db["downloads"]
    coll.aggregate = AsyncMock(return_value=cursor)

    with pytest.raises(QueryError):
        await aggregate(coll, downloads_pipeline(MATCH, 0, 10))

    assert cursor.closed


async def test_cursor_close_failure_is_not_escalated(fake_db):
    """Test a failing close is only logged."""
    cursor = FakeCursor([{"_id": 1}])
    cursor.close_error = OperationFailure("close failed")
    coll = fake_db["uploads"]
    coll.aggregate = AsyncMock(return_value=cursor)

    assert await aggregate(coll, uploads_pipeline(MATCH, 0, 10)) == [{"_id": 1}]


async def test_count_runs_match_then_count(fake_db):
    """Test the count pipeline and its result."""
    coll = fake_db["uploads"]
    coll.aggregate = AsyncMock(return_value=FakeCursor([{"count": 42}]))

    assert await count(coll, MATCH) == 42
    assert coll.aggregate.await_args.args[0] == [{"$match": MATCH}, {"$count": "count"}]


async def test_count_without_matches_is_zero(fake_db):
    """Test $count producing no row means zero."""
    coll = fake_db["uploads"]
    coll.aggregate = AsyncMock(return_value=FakeCursor([]))

    assert await count(coll, MATCH) == 0


async def test_count_failure_is_query_error(fake_db):
    """Test execution failures are query failures."""
    coll = fake_db["uploads"]
    coll.aggregate = AsyncMock(side_effect=OperationFailure("boom"))

    with pytest.raises(QueryError):
        await count(coll, MATCH)


async def test_count_malformed_row_is_decode_error(fake_db):
    """Test a count row that isn't an integer can't be decoded."""
    coll = fake_db["uploads"]
    coll.aggregate = AsyncMock(return_value=FakeCursor([{"count": "many"}]))

    with pytest.raises(DecodeError):
        await count(coll, MATCH)
