import json
import logging
import os
from pathlib import Path
from typing import Callable, Dict, Optional

from pydantic import ValidationError

from core.config import settings
from models.state import AppState

logger = logging.getLogger(__name__)


class SnapshotCorruptedError(Exception):
    """The local snapshot cannot be read or migrated."""


def _migrate_v0(data: dict) -> dict:
    # Unversioned blobs kept profile fields at the top level next to "habits"
    if "profile" in data:
        return data
    habits = data.pop("habits", [])
    user_id = data.pop("user_id", None)
    return {"user_id": user_id, "profile": data, "habits": habits}


def _migrate_v1(data: dict) -> dict:
    # v2 added the explicit reset marker; side_quests_date was the old one
    profile = data.get("profile", {})
    if "last_reset_date" not in profile:
        profile["last_reset_date"] = profile.get("side_quests_date")
    return data


# version -> function upgrading a state dict from that version to the next
MIGRATIONS: Dict[int, Callable[[dict], dict]] = {
    0: _migrate_v0,
    1: _migrate_v1,
}


def read_json(path: Path, default=None):
    if not path.exists():
        return default
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def write_json(path: Path, payload):
    """Write via a temp file so a crash never leaves half a blob behind."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh)
    os.replace(tmp, path)


class SnapshotStore:
    """Versioned local copy of the whole AppState: {"version": N, "state": {...}}."""

    def __init__(self, path: Optional[str] = None, version: Optional[int] = None):
        self.path = Path(path or settings.SNAPSHOT_PATH)
        self.version = version if version is not None else settings.SNAPSHOT_VERSION

    def load(self) -> Optional[AppState]:
        try:
            blob = read_json(self.path)
        except (OSError, ValueError) as e:
            # ValueError covers both bad JSON and bytes that are not UTF-8
            raise SnapshotCorruptedError(f"Unreadable snapshot {self.path}: {e}") from e
        if blob is None:
            return None
        if not isinstance(blob, dict) or "state" not in blob:
            raise SnapshotCorruptedError(f"Snapshot {self.path} has no state")

        stored_version = blob.get("version") or 0
        if not isinstance(stored_version, int):
            raise SnapshotCorruptedError(f"Snapshot {self.path} has a bad version: {stored_version!r}")
        if stored_version > self.version:
            raise SnapshotCorruptedError(
                f"Snapshot version {stored_version} is newer than supported {self.version}"
            )
        data = blob["state"]
        try:
            for version in range(stored_version, self.version):
                migrate = MIGRATIONS.get(version)
                if migrate:
                    logger.info("Migrating snapshot from v%s", version)
                    data = migrate(data)
            return AppState.model_validate(data)
        except (ValidationError, TypeError, AttributeError) as e:
            raise SnapshotCorruptedError(f"Snapshot {self.path} failed to load: {e}") from e

    def save(self, state: AppState):
        write_json(self.path, {"version": self.version, "state": state.model_dump(mode="json")})

    def clear(self):
        if self.path.exists():
            self.path.unlink()
