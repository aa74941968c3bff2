import asyncio

from core.outbox import SyncIntent, SyncOutbox


def profile_intent(xp, immediate=False):
    return SyncIntent(kind="profile", payload={"xp": xp}, immediate=immediate)


def log_intent(date, xp):
    return SyncIntent(kind="daily_log", date=date, payload={"xp_earned": xp}, immediate=True)


def test_coalesce_keeps_latest_per_key():
    intents = [
        profile_intent(1),
        log_intent("2024-03-04", 10),
        profile_intent(2),
        log_intent("2024-03-04", 20),
        log_intent("2024-03-05", 30),
    ]

    result = SyncOutbox.coalesce(intents)

    assert [i.kind for i in result] == ["profile", "daily_log", "daily_log"]
    assert result[0].payload == {"xp": 2}
    assert result[1].payload == {"xp_earned": 20}
    assert result[2].date == "2024-03-05"


def test_take_empties_queue():
    outbox = SyncOutbox(debounce_ms=10)
    outbox.enqueue(profile_intent(1))
    outbox.enqueue(profile_intent(2))

    assert len(outbox.take()) == 1
    assert outbox.pending == []


def test_drain_once_sends_coalesced():
    sent = []

    async def send(intent):
        sent.append(intent)

    async def scenario():
        outbox = SyncOutbox(debounce_ms=10)
        outbox.enqueue(profile_intent(1))
        outbox.enqueue(profile_intent(2))
        return await outbox.drain_once(send)

    assert asyncio.run(scenario()) == 1
    assert sent[0].payload == {"xp": 2}


def test_failed_send_does_not_drop_rest_of_batch():
    sent = []

    async def send(intent):
        if intent.kind == "profile":
            raise RuntimeError("offline")
        sent.append(intent)

    async def scenario():
        outbox = SyncOutbox(debounce_ms=10)
        outbox.enqueue(profile_intent(1, immediate=True))
        outbox.enqueue(log_intent("2024-03-04", 10))
        return await outbox.drain_once(send)

    assert asyncio.run(scenario()) == 1
    assert [i.date for i in sent] == ["2024-03-04"]


def test_run_debounces_routine_intents():
    sent = []

    async def send(intent):
        sent.append(intent)

    async def scenario():
        outbox = SyncOutbox(debounce_ms=50)
        task = asyncio.create_task(outbox.run(send))
        for xp in range(3):
            outbox.enqueue(profile_intent(xp))
            await asyncio.sleep(0.01)
        # Still inside the window
        assert sent == []
        await asyncio.sleep(0.2)
        task.cancel()

    asyncio.run(scenario())
    assert len(sent) == 1
    assert sent[0].payload == {"xp": 2}


def test_run_flushes_immediate_intents():
    sent = []

    async def send(intent):
        sent.append(intent)

    async def scenario():
        outbox = SyncOutbox(debounce_ms=10_000)
        task = asyncio.create_task(outbox.run(send))
        await asyncio.sleep(0)
        outbox.enqueue(profile_intent(5, immediate=True))
        await asyncio.sleep(0.05)
        task.cancel()

    asyncio.run(scenario())
    assert [i.payload for i in sent] == [{"xp": 5}]


def test_run_survives_sender_errors():
    calls = []

    async def send(intent):
        calls.append(intent)
        raise RuntimeError("offline")

    async def scenario():
        outbox = SyncOutbox(debounce_ms=10)
        task = asyncio.create_task(outbox.run(send))
        outbox.enqueue(profile_intent(1, immediate=True))
        await asyncio.sleep(0.05)
        outbox.enqueue(profile_intent(2, immediate=True))
        await asyncio.sleep(0.05)
        assert not task.done()
        task.cancel()

    asyncio.run(scenario())
    assert len(calls) == 2
