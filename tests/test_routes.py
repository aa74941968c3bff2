from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from core.session import GameSession
from core.storage import SnapshotStore
from main import app
from factories import FakeClock

ONBOARDING = {
    "username": "kai",
    "archetype": "WRATH",
    "difficulty": "medium",
    "habits": [
        {"id": "porn", "name": "Porn", "type": "demon", "xp": 35},
        {"id": "walk", "name": "Walk", "type": "power", "xp": 15},
    ],
}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client(tmp_path, clock):
    gateway = MagicMock()
    gateway.retry_queue.process = AsyncMock(return_value={"processed": 0, "failed": 0, "dropped": 0})
    session = GameSession(
        store=SnapshotStore(path=str(tmp_path / "state.json")),
        gateway=gateway,
        clock=clock,
    )
    app.state.session = session
    # No `with`: the lifespan (scheduler, Mongo replay) stays off
    yield TestClient(app)
    del app.state.session


@pytest.fixture
def onboarded(client):
    assert client.post("/profile/onboarding", json=ONBOARDING).status_code == 200
    return client


def test_onboarding_requires_habits(client):
    response = client.post("/profile/onboarding", json=dict(ONBOARDING, habits=[]))
    assert response.status_code == 400


def test_profile_after_onboarding(onboarded):
    data = onboarded.get("/profile/").json()

    assert data["username"] == "kai"
    assert data["archetype"]["id"] == "WRATH"
    assert data["rank"] == "Recruit"
    assert data["current_day"] == 1
    assert data["phase"]["id"] == "FRAGILE"
    assert data["data_reset"] is False


def test_full_day(onboarded, clock):
    relapse = onboarded.post("/habits/porn/relapse")
    assert relapse.status_code == 200
    assert relapse.json()["recovery_xp"] == 5

    # The relapse counts as handled; walk does not yet
    early = onboarded.post("/day/submit").json()
    assert early["unhandled_habits"] == ["walk"]
    assert early["day_locked"] is False

    onboarded.post("/habits/walk/complete")
    submitted = onboarded.post("/day/submit").json()
    assert submitted["day_locked"]
    assert submitted["new_streak"] == 1

    locked = onboarded.post("/habits/walk/uncomplete")
    assert locked.status_code == 409

    status = onboarded.get("/day/status").json()
    assert status["locked"]
    assert status["submitted"]
    assert status["seconds_until_unlock"] == 15 * 3600

    clock.advance(days=1)
    status = onboarded.get("/day/status").json()
    assert not status["locked"]
    assert status["current_day"] == 2


def test_habit_errors(onboarded):
    assert onboarded.post("/habits/missing/complete").status_code == 404
    assert onboarded.post("/habits/walk/relapse").status_code == 400
    assert onboarded.post("/habits/walk/uncomplete").json()["detail"] == "Habit not completed"


def test_add_and_delete_habit(onboarded):
    created = onboarded.post("/habits/", json={"name": "Read", "xp": 15, "frequency": "3x_week"})
    assert created.status_code == 200
    habit_id = created.json()["id"]

    week = onboarded.get(f"/habits/{habit_id}/week").json()
    assert week == {"current": 0, "target": 3, "is_complete": False, "frequency": "3x_week", "scheduled_today": True}

    assert onboarded.delete(f"/habits/{habit_id}").status_code == 200
    assert onboarded.delete(f"/habits/{habit_id}").status_code == 404


def test_side_quests(onboarded):
    quests = onboarded.get("/side-quests/").json()
    assert len(quests) == 4

    quest_id = quests[0]["id"]
    done = onboarded.post(f"/side-quests/{quest_id}/complete")
    assert done.json()["xp_earned"] == quests[0]["xp"]
    assert onboarded.post(f"/side-quests/{quest_id}/complete").status_code == 400
    assert onboarded.get("/side-quests/").json()[0]["completed"]


def test_generic_action_endpoint(onboarded):
    response = onboarded.post("/profile/actions", json={"type": "complete_habit", "habit_id": "walk"})

    body = response.json()
    assert body["type"] == "complete_habit"
    assert body["result"]["xp_change"] == 15

    bad = onboarded.post("/profile/actions", json={"type": "teleport"})
    assert bad.status_code == 422


def test_history_endpoints(onboarded):
    onboarded.post("/habits/porn/complete")
    onboarded.post("/habits/walk/complete")
    onboarded.post("/day/submit")

    history = onboarded.get("/analytics/history", params={"filter": "perfect"}).json()
    assert [r["date"] for r in history] == ["2024-03-04"]
    assert onboarded.get("/analytics/history/2024-03-04").json()["is_perfect"]
    assert onboarded.get("/analytics/history/2024-03-05").status_code == 404

    stats = onboarded.get("/analytics/stats").json()
    assert stats["total_days_completed"] == 1
    assert stats["perfect_streak"] == 1


def test_reset_game(onboarded):
    onboarded.post("/profile/reset")
    assert onboarded.get("/habits/").json() == []
