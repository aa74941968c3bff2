import asyncio
import logging
import re
from pathlib import Path
from typing import List, Optional

from pymongo.errors import PyMongoError

from core.config import settings
from core.database import db
from core.game_data import ARCHETYPES, DIFFICULTIES
from core.outbox import SyncIntent
from core.storage import read_json, write_json
from core.time_utils import get_current_time, parse_local_date
from models.results import SyncResult
from models.state import AppState

logger = logging.getLogger(__name__)

UUID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)

# ========== VALIDATION ==========

def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_user_id(user_id) -> Optional[str]:
    """Returns an error message, or None when the id is usable."""
    if not user_id or not isinstance(user_id, str):
        return "User ID is required"
    if not UUID_PATTERN.match(user_id):
        return "Invalid user ID format"
    return None


def validate_date(value) -> Optional[str]:
    if not value or not isinstance(value, str):
        return "Date is required"
    if parse_local_date(value) is None:
        return "Invalid date (expected YYYY-MM-DD)"
    return None


def validate_profile_data(data: dict) -> List[str]:
    errors = []
    if "xp" in data and (not _is_number(data["xp"]) or data["xp"] < 0):
        errors.append("XP must be a non-negative number")
    if "level" in data and (not _is_number(data["level"]) or data["level"] < 1):
        errors.append("Level must be a positive number")
    if "current_day" in data and (not _is_number(data["current_day"]) or data["current_day"] < 1):
        errors.append("Current day must be a positive number")
    if "current_streak" in data and (not _is_number(data["current_streak"]) or data["current_streak"] < 0):
        errors.append("Current streak must be a non-negative number")
    if "habits" in data and not isinstance(data["habits"], list):
        errors.append("Habits must be a list")
    if data.get("username") is not None and not isinstance(data["username"], str):
        errors.append("Username must be a string")
    if data.get("archetype") is not None and data["archetype"] not in ARCHETYPES:
        errors.append("Invalid archetype")
    if data.get("difficulty") is not None and data["difficulty"] not in DIFFICULTIES:
        errors.append("Invalid difficulty")
    return errors


def validate_log_data(data: dict) -> List[str]:
    errors = []
    if "day_number" in data and (not _is_number(data["day_number"]) or data["day_number"] < 1):
        errors.append("Day number must be a positive number")
    if "xp_earned" in data and (not _is_number(data["xp_earned"]) or data["xp_earned"] < 0):
        errors.append("XP earned must be a non-negative number")
    if "habits" in data and not isinstance(data["habits"], list):
        errors.append("Habits must be a list")
    if "is_perfect" in data and not isinstance(data["is_perfect"], bool):
        errors.append("is_perfect must be a boolean")
    return errors


# ========== OFFLINE RETRY QUEUE ==========

class RetryQueue:
    """
    Failed writes, persisted locally and replayed later.

    Each entry carries a retry counter; entries that fail SYNC_MAX_RETRIES
    times are dropped. Writes that fail while a replay is awaiting the
    database are appended to the file and kept when the replay saves.
    """

    def __init__(self, path: Optional[str] = None, max_retries: Optional[int] = None):
        self.path = Path(path or settings.SYNC_QUEUE_PATH)
        self.max_retries = max_retries if max_retries is not None else settings.SYNC_MAX_RETRIES
        self._replay_lock = asyncio.Lock()

    def load(self) -> list:
        try:
            return read_json(self.path, default=[])
        except (OSError, ValueError) as e:
            logger.error("Sync queue unreadable, starting empty: %s", e)
            return []

    def _save(self, queue: list):
        try:
            write_json(self.path, queue)
        except OSError as e:
            logger.error("Failed to persist sync queue: %s", e)

    def push(self, operation: str, user_id: str, data: dict):
        queue = self.load()
        queue.append({
            "operation": operation,
            "user_id": user_id,
            "data": data,
            "timestamp": get_current_time().isoformat(),
            "retries": 0,
        })
        self._save(queue)
        logger.info("Queued %s for retry", operation)

    async def process(self, gateway: "SyncGateway") -> dict:
        # One replay at a time: the scheduler job and foreground may overlap
        async with self._replay_lock:
            return await self._process(gateway)

    async def _process(self, gateway: "SyncGateway") -> dict:
        queue = self.load()
        results = {"processed": 0, "failed": 0, "dropped": 0}
        if not queue:
            return results

        remaining = []
        for item in queue:
            if item["operation"] == "save_profile":
                result = await gateway.save_profile(item["user_id"], item["data"], skip_queue=True)
            elif item["operation"] == "save_daily_log":
                result = await gateway.save_daily_log(
                    item["user_id"], item["data"].get("date"), item["data"], skip_queue=True
                )
            else:
                logger.warning("Dropping unknown queued operation %s", item["operation"])
                results["dropped"] += 1
                continue

            if result.success:
                results["processed"] += 1
                continue
            results["failed"] += 1
            item["retries"] += 1
            if item["retries"] < self.max_retries:
                remaining.append(item)
            else:
                results["dropped"] += 1
                logger.warning("Dropping %s after %s attempts", item["operation"], item["retries"])

        # push() only appends, so anything past the loaded length is new
        pushed_meanwhile = self.load()[len(queue):]
        self._save(remaining + pushed_meanwhile)
        logger.info("Sync queue processed: %s", results)
        return results


# ========== GATEWAY ==========

class SyncGateway:
    """
    Remote copy of profiles and daily logs (MongoDB).

    Collections:
    - profiles: one document per user, _id = user id.
    - daily_logs: one document per (user_id, date).

    Every call validates its input before touching the database and reports
    failures as SyncResult(success=False) instead of raising. Failed writes
    go to the retry queue unless skip_queue is set.
    """

    def __init__(self, database=None, retry_queue: Optional[RetryQueue] = None):
        self.db = database if database is not None else db
        self.retry_queue = retry_queue if retry_queue is not None else RetryQueue()

    async def save_profile(self, user_id: str, snapshot: dict, skip_queue: bool = False) -> SyncResult:
        error = validate_user_id(user_id)
        if error:
            return SyncResult(success=False, error=error)
        errors = validate_profile_data(snapshot)
        if errors:
            return SyncResult(success=False, error=", ".join(errors))

        document = dict(snapshot, _id=user_id, updated_at=get_current_time())
        try:
            await self.db.profiles.replace_one({"_id": user_id}, document, upsert=True)
        except PyMongoError as e:
            logger.error("Error saving profile for %s: %s", user_id, e)
            if not skip_queue:
                self.retry_queue.push("save_profile", user_id, snapshot)
            return SyncResult(success=False, error=str(e), queued=not skip_queue)
        logger.debug("Profile saved for %s", user_id)
        return SyncResult(success=True)

    async def load_profile(self, user_id: str) -> SyncResult:
        error = validate_user_id(user_id)
        if error:
            return SyncResult(success=False, error=error)
        try:
            document = await self.db.profiles.find_one({"_id": user_id})
        except PyMongoError as e:
            logger.error("Error loading profile for %s: %s", user_id, e)
            return SyncResult(success=False, error=str(e))
        if document is None:
            # New user, nothing stored yet
            return SyncResult(success=True, data=None)
        document.pop("_id", None)
        document.pop("updated_at", None)
        return SyncResult(success=True, data=document)

    async def save_daily_log(self, user_id: str, date: str, record: dict, skip_queue: bool = False) -> SyncResult:
        error = validate_user_id(user_id) or validate_date(date)
        if error:
            return SyncResult(success=False, error=error)
        errors = validate_log_data(record)
        if errors:
            return SyncResult(success=False, error=", ".join(errors))

        document = dict(record, user_id=user_id, date=date)
        try:
            await self.db.daily_logs.replace_one({"user_id": user_id, "date": date}, document, upsert=True)
        except PyMongoError as e:
            logger.error("Error saving daily log %s for %s: %s", date, user_id, e)
            if not skip_queue:
                self.retry_queue.push("save_daily_log", user_id, dict(record, date=date))
            return SyncResult(success=False, error=str(e), queued=not skip_queue)
        return SyncResult(success=True)

    async def load_daily_logs(self, user_id: str) -> SyncResult:
        error = validate_user_id(user_id)
        if error:
            return SyncResult(success=False, error=error)
        try:
            cursor = self.db.daily_logs.find({"user_id": user_id}).sort("date", -1)
            documents = await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error("Error loading daily logs for %s: %s", user_id, e)
            return SyncResult(success=False, error=str(e))
        logs = []
        for document in documents:
            document.pop("_id", None)
            document.pop("user_id", None)
            logs.append(document)
        return SyncResult(success=True, data=logs)

    async def delete_all_user_data(self, user_id: str) -> SyncResult:
        error = validate_user_id(user_id)
        if error:
            return SyncResult(success=False, error=error)
        try:
            await self.db.daily_logs.delete_many({"user_id": user_id})
            await self.db.profiles.delete_one({"_id": user_id})
        except PyMongoError as e:
            logger.error("Error deleting data for %s: %s", user_id, e)
            return SyncResult(success=False, error=str(e))
        logger.info("Deleted remote data for %s", user_id)
        return SyncResult(success=True)

    async def full_sync(self, user_id: str) -> dict:
        profile, daily_logs = await asyncio.gather(
            self.load_profile(user_id),
            self.load_daily_logs(user_id),
        )
        return {"profile": profile, "daily_logs": daily_logs}

    async def save_all(self, user_id: str, state: AppState) -> dict:
        profile = await self.save_profile(user_id, state.profile_snapshot())
        log_results = await asyncio.gather(*[
            self.save_daily_log(user_id, record.date, record.model_dump(mode="json"))
            for record in state.profile.day_history
        ])
        return {
            "profile": profile,
            "daily_logs": SyncResult(success=all(r.success for r in log_results)),
        }

    async def push(self, user_id: str, intent: SyncIntent) -> SyncResult:
        """Send one outbox intent."""
        if intent.kind == "profile":
            return await self.save_profile(user_id, intent.payload)
        return await self.save_daily_log(user_id, intent.date, intent.payload)
