import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Literal, Optional

from pydantic import BaseModel

from core.config import settings

logger = logging.getLogger(__name__)


class SyncIntent(BaseModel):
    kind: Literal["profile", "daily_log"]
    payload: dict
    date: Optional[str] = None # daily_log only
    immediate: bool = False


Sender = Callable[[SyncIntent], Awaitable[object]]


class SyncOutbox:
    """
    Queue of pending sync intents.

    State transitions only append here; they never await I/O. A background
    task (`run`) drains the queue: immediate intents (day submission) go out
    at once, routine ones wait until no new intent has arrived for the
    debounce window, then the burst is coalesced and sent.
    """

    def __init__(self, debounce_ms: Optional[int] = None):
        if debounce_ms is None:
            debounce_ms = settings.SYNC_DEBOUNCE_MS
        self.debounce = debounce_ms / 1000
        self._pending: List[SyncIntent] = []
        self._wakeup = asyncio.Event()

    def enqueue(self, intent: SyncIntent):
        self._pending.append(intent)
        self._wakeup.set()

    @property
    def pending(self) -> List[SyncIntent]:
        return list(self._pending)

    def _has_immediate(self) -> bool:
        return any(intent.immediate for intent in self._pending)

    @staticmethod
    def coalesce(intents: List[SyncIntent]) -> List[SyncIntent]:
        """Keep the last profile snapshot and the last log per date. Profile goes first."""
        profile = None
        logs: Dict[str, SyncIntent] = {}
        for intent in intents:
            if intent.kind == "profile":
                profile = intent
            else:
                logs[intent.date] = intent
        result = [profile] if profile else []
        result.extend(logs.values())
        return result

    def take(self) -> List[SyncIntent]:
        intents, self._pending = self._pending, []
        return self.coalesce(intents)

    async def drain_once(self, send: Sender) -> int:
        """Send the coalesced batch. A failed intent does not stop the rest."""
        sent = 0
        for intent in self.take():
            try:
                await send(intent)
            except Exception:
                logger.exception("Sync of %s intent failed", intent.kind)
                continue
            sent += 1
        return sent

    async def run(self, send: Sender):
        logger.info("Sync outbox started (debounce %.0f ms)", self.debounce * 1000)
        while True:
            await self._wakeup.wait()
            self._wakeup.clear()
            # Restart the window every time a new routine intent arrives
            while not self._has_immediate():
                try:
                    await asyncio.wait_for(self._wakeup.wait(), timeout=self.debounce)
                except asyncio.TimeoutError:
                    break
                self._wakeup.clear()
            sent = await self.drain_once(send)
            logger.debug("Sync outbox drained %s intent(s)", sent)
