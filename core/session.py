import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from pydantic import ValidationError

from core.day_cycle import DayCycle, Dispatched
from core.outbox import SyncIntent, SyncOutbox
from core.storage import SnapshotCorruptedError, SnapshotStore
from core.sync_service import SyncGateway
from core.time_utils import get_current_time
from models.actions import CheckAndResetDay
from models.day_record import DayRecord
from models.habit import Habit
from models.profile import PlayerProfile
from models.state import AppState

logger = logging.getLogger(__name__)


class GameSession:
    """
    Owns the single AppState of a running app session.

    Commands go through `dispatch`, which first rolls the day over if
    midnight has passed (the equivalent of the app coming to the
    foreground), then runs the command and saves the local snapshot.
    Remote sync happens later, through the outbox.
    """

    def __init__(
        self,
        store: SnapshotStore,
        gateway: SyncGateway,
        outbox: Optional[SyncOutbox] = None,
        clock: Callable[[], datetime] = get_current_time,
        user_id: Optional[str] = None,
    ):
        self.store = store
        self.gateway = gateway
        self.outbox = outbox if outbox is not None else SyncOutbox()
        self.clock = clock
        self.cycle = DayCycle(self._load_state(), clock=clock, outbox=self.outbox)
        if user_id:
            self.state.user_id = user_id
        self._drain_task: Optional[asyncio.Task] = None
        self._replay_task: Optional[asyncio.Task] = None

    def _load_state(self) -> AppState:
        self.recovered_from_corruption = False
        try:
            state = self.store.load()
        except SnapshotCorruptedError:
            # Inconsistent data is worse than none: start clean
            logger.exception("Local snapshot is corrupted, starting from an empty state")
            self.recovered_from_corruption = True
            return AppState()
        return state or AppState()

    @property
    def state(self) -> AppState:
        return self.cycle.state

    @property
    def user_id(self) -> Optional[str]:
        return self.state.user_id

    def persist(self):
        try:
            self.store.save(self.state)
        except OSError as e:
            logger.error("Failed to save local snapshot: %s", e)

    def dispatch(self, action) -> Dispatched:
        if action.type != "check_and_reset_day":
            self.cycle.check_and_reset_day()
        dispatched = self.cycle.dispatch(action)
        self.persist()
        return dispatched

    def foreground(self, replay: bool = True):
        """
        App came to the foreground: roll the day over if needed.

        Inside a running event loop this also starts a replay of the retry
        queue in the background, unless one is already running.
        """
        result = self.dispatch(CheckAndResetDay()).result
        if replay:
            self._start_replay()
        return result

    def _start_replay(self):
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        if self._replay_task is None or self._replay_task.done():
            self._replay_task = asyncio.create_task(self._replay_quietly())

    async def _replay_quietly(self):
        try:
            results = await self.replay_retry_queue()
            if results["processed"] or results["failed"]:
                logger.info("Retry queue replay on foreground: %s", results)
        except Exception:
            logger.exception("Retry queue replay failed")

    # ========== REMOTE SYNC ==========

    async def send(self, intent: SyncIntent):
        if not self.user_id:
            logger.debug("No user id, skipping %s sync", intent.kind)
            return None
        return await self.gateway.push(self.user_id, intent)

    def start(self):
        if self._drain_task is None:
            self._drain_task = asyncio.create_task(self.outbox.run(self.send))

    async def stop(self):
        if self._drain_task is not None:
            self._drain_task.cancel()
            try:
                await self._drain_task
            except asyncio.CancelledError:
                pass
            self._drain_task = None
        # Flush whatever is still pending before shutdown
        await self.outbox.drain_once(self.send)

    async def replay_retry_queue(self) -> dict:
        return await self.gateway.retry_queue.process(self.gateway)

    async def sync_to_remote(self) -> dict:
        if not self.user_id:
            return {"success": False, "error": "No user ID"}
        results = await self.gateway.save_all(self.user_id, self.state)
        return {
            "success": results["profile"].success and results["daily_logs"].success,
            "error": results["profile"].error,
        }

    async def load_from_remote(self, user_id: Optional[str] = None) -> dict:
        """
        Replace local state with the remote copy when one exists.

        Remote wins (last write wins). With no remote profile, local habits
        are pushed up instead.
        """
        if user_id:
            self.state.user_id = user_id
        if not self.user_id:
            return {"success": False, "has_data": False, "error": "No user ID"}

        result = await self.gateway.full_sync(self.user_id)
        profile_result = result["profile"]
        if not profile_result.success:
            return {"success": False, "has_data": False, "error": profile_result.error}

        if profile_result.data is None:
            if self.state.habits:
                await self.sync_to_remote()
            return {"success": True, "has_data": False}

        logs_result = result["daily_logs"]
        data = dict(profile_result.data)
        habits = data.pop("habits", [])
        logs = logs_result.data if logs_result.success else []
        try:
            history = sorted(
                (DayRecord.model_validate(log) for log in logs or []),
                key=lambda record: record.date,
            )
            state = AppState(
                user_id=self.user_id,
                profile=PlayerProfile.model_validate(dict(data, day_history=history)),
                habits=[Habit.model_validate(habit) for habit in habits],
            )
        except ValidationError as e:
            logger.error("Remote profile for %s is malformed, keeping local state: %s", self.user_id, e)
            return {"success": False, "has_data": True, "error": "Remote data is malformed"}

        self.cycle.state = state
        self.foreground()
        return {"success": True, "has_data": True}

    async def delete_remote_data(self) -> dict:
        if not self.user_id:
            return {"success": True}
        result = await self.gateway.delete_all_user_data(self.user_id)
        return {"success": result.success, "error": result.error}
