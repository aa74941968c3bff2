import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import PyMongoError

from core.outbox import SyncIntent
from core.sync_service import (
    RetryQueue,
    SyncGateway,
    validate_date,
    validate_log_data,
    validate_profile_data,
    validate_user_id,
)

USER_ID = "3f2b8c1e-9a4d-4e6f-8b1a-2c3d4e5f6a7b"


@pytest.fixture
def database():
    db = MagicMock()
    db.profiles.replace_one = AsyncMock()
    db.profiles.find_one = AsyncMock(return_value=None)
    db.profiles.delete_one = AsyncMock()
    db.daily_logs.replace_one = AsyncMock()
    db.daily_logs.delete_many = AsyncMock()
    db.daily_logs.find.return_value.sort.return_value.to_list = AsyncMock(return_value=[])
    return db


@pytest.fixture
def queue(tmp_path):
    return RetryQueue(path=str(tmp_path / "queue.json"), max_retries=3)


@pytest.fixture
def gateway(database, queue):
    return SyncGateway(database=database, retry_queue=queue)


def test_validate_user_id():
    assert validate_user_id(USER_ID) is None
    assert validate_user_id(USER_ID.upper()) is None
    assert validate_user_id("") == "User ID is required"
    assert validate_user_id("user-1") == "Invalid user ID format"


def test_validate_date():
    assert validate_date("2024-03-04") is None
    assert validate_date("2024-13-01") is not None
    assert validate_date(None) == "Date is required"


def test_validate_profile_data():
    assert validate_profile_data({"xp": 10, "level": 1, "habits": []}) == []
    errors = validate_profile_data({"xp": -1, "level": 0, "current_streak": True, "archetype": "BARD"})
    assert len(errors) == 4


def test_validate_log_data():
    assert validate_log_data({"day_number": 1, "xp_earned": 0, "is_perfect": True}) == []
    assert len(validate_log_data({"day_number": 0, "is_perfect": "yes", "habits": {}})) == 3


def test_invalid_input_never_reaches_database(gateway, database):
    results = [
        asyncio.run(gateway.save_profile("nope", {"xp": 1})),
        asyncio.run(gateway.save_profile(USER_ID, {"xp": -1})),
        asyncio.run(gateway.save_daily_log(USER_ID, "03/04/2024", {})),
        asyncio.run(gateway.load_profile("")),
    ]

    assert not any(r.success for r in results)
    database.profiles.replace_one.assert_not_called()
    database.daily_logs.replace_one.assert_not_called()
    database.profiles.find_one.assert_not_called()


def test_save_profile_upserts(gateway, database):
    result = asyncio.run(gateway.save_profile(USER_ID, {"xp": 10}))

    assert result.success
    query, document = database.profiles.replace_one.call_args.args
    assert query == {"_id": USER_ID}
    assert document["xp"] == 10
    assert database.profiles.replace_one.call_args.kwargs == {"upsert": True}


def test_save_daily_log_keyed_by_date(gateway, database):
    asyncio.run(gateway.save_daily_log(USER_ID, "2024-03-04", {"day_number": 1}))

    query, document = database.daily_logs.replace_one.call_args.args
    assert query == {"user_id": USER_ID, "date": "2024-03-04"}
    assert document["date"] == "2024-03-04"


def test_load_profile_new_user(gateway):
    result = asyncio.run(gateway.load_profile(USER_ID))
    assert result.success
    assert result.data is None


def test_load_profile_strips_storage_fields(gateway, database):
    database.profiles.find_one.return_value = {"_id": USER_ID, "updated_at": "x", "xp": 40}
    result = asyncio.run(gateway.load_profile(USER_ID))
    assert result.data == {"xp": 40}


def test_load_daily_logs(gateway, database):
    database.daily_logs.find.return_value.sort.return_value.to_list.return_value = [
        {"_id": 1, "user_id": USER_ID, "date": "2024-03-05"},
        {"_id": 2, "user_id": USER_ID, "date": "2024-03-04"},
    ]

    result = asyncio.run(gateway.load_daily_logs(USER_ID))

    assert result.data == [{"date": "2024-03-05"}, {"date": "2024-03-04"}]
    database.daily_logs.find.return_value.sort.assert_called_once_with("date", -1)


def test_failed_write_is_queued(gateway, database, queue):
    database.profiles.replace_one.side_effect = PyMongoError("connection refused")

    result = asyncio.run(gateway.save_profile(USER_ID, {"xp": 10}))

    assert not result.success
    assert result.queued
    [item] = queue.load()
    assert item["operation"] == "save_profile"
    assert item["retries"] == 0


def test_retry_queue_replays(gateway, database, queue):
    queue.push("save_daily_log", USER_ID, {"date": "2024-03-04", "day_number": 1})

    results = asyncio.run(queue.process(gateway))

    assert results == {"processed": 1, "failed": 0, "dropped": 0}
    assert queue.load() == []
    database.daily_logs.replace_one.assert_awaited_once()


def test_retry_queue_drops_after_max_attempts(gateway, database, queue):
    database.profiles.replace_one.side_effect = PyMongoError("down")
    queue.push("save_profile", USER_ID, {"xp": 10})

    for _ in range(2):
        assert asyncio.run(queue.process(gateway))["failed"] == 1
        assert len(queue.load()) == 1

    results = asyncio.run(queue.process(gateway))

    assert results["dropped"] == 1
    assert queue.load() == []


def test_delete_all_user_data(gateway, database):
    result = asyncio.run(gateway.delete_all_user_data(USER_ID))

    assert result.success
    database.daily_logs.delete_many.assert_awaited_once_with({"user_id": USER_ID})
    database.profiles.delete_one.assert_awaited_once_with({"_id": USER_ID})


def test_push_routes_by_kind(gateway, database):
    asyncio.run(gateway.push(USER_ID, SyncIntent(kind="profile", payload={"xp": 1})))
    asyncio.run(gateway.push(USER_ID, SyncIntent(kind="daily_log", date="2024-03-04", payload={"day_number": 1})))

    database.profiles.replace_one.assert_awaited_once()
    database.daily_logs.replace_one.assert_awaited_once()


def test_write_failing_during_replay_is_kept(gateway, database, queue):
    queue.push("save_profile", USER_ID, {"xp": 1})

    async def failing_write(query, document, upsert):
        if document["xp"] == 1:
            # A routine sync fails while the replay waits on the database
            await gateway.save_profile(USER_ID, {"xp": 2})
        raise PyMongoError("down")

    database.profiles.replace_one.side_effect = failing_write

    results = asyncio.run(queue.process(gateway))

    assert results["failed"] == 1
    items = queue.load()
    assert [item["data"]["xp"] for item in items] == [1, 2]
    assert [item["retries"] for item in items] == [1, 0]


def test_overlapping_replays_run_one_at_a_time(gateway, database, queue):
    queue.push("save_profile", USER_ID, {"xp": 1})
    in_flight = []

    async def slow_write(query, document, upsert):
        in_flight.append(document["xp"])
        assert len(in_flight) == 1
        await asyncio.sleep(0.01)
        in_flight.pop()

    database.profiles.replace_one.side_effect = slow_write

    async def scenario():
        return await asyncio.gather(queue.process(gateway), queue.process(gateway))

    first, second = asyncio.run(scenario())

    assert first["processed"] == 1
    assert second == {"processed": 0, "failed": 0, "dropped": 0}
    assert queue.load() == []
