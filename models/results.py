from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel

from models.side_quest import SideQuest


class OpError(str, Enum):
    """Why a state-machine command was a no-op."""
    DAY_LOCKED = "day_locked"
    NOT_FOUND = "not_found"
    NOT_COMPLETED = "not_completed"
    ALREADY_COMPLETED = "already_completed"
    RELAPSED_TODAY = "relapsed_today"
    ALREADY_RELAPSED = "already_relapsed"
    NOT_DEMON = "not_demon"
    ALREADY_EXISTS = "already_exists"


class OpResult(BaseModel):
    success: bool = True
    reason: Optional[OpError] = None

    @classmethod
    def fail(cls, reason: OpError, **kwargs):
        return cls(success=False, reason=reason, **kwargs)


class HabitResult(OpResult):
    habit_id: Optional[str] = None
    xp_change: int = 0
    perfect_bonus: int = 0 # Bonus granted (or retracted, on undo)


class RelapseResult(OpResult):
    habit_id: Optional[str] = None
    xp_lost: int = 0
    recovery_xp: int = 0
    streak_lost: int = 0
    total_relapses: int = 0
    longest_streak: int = 0


class SubmitResult(BaseModel):
    streak_updated: bool = False
    new_streak: int = 0
    day_locked: bool = False
    successful_count: int = 0
    total_count: int = 0
    is_perfect_day: bool = False
    relapse_count: int = 0
    newly_unlocked_achievements: List[str] = []
    already_submitted: bool = False
    unhandled_habits: List[str] = []


class ResetResult(BaseModel):
    reset: bool = False
    streak_broken: bool = False
    current_day: int = 1


class SideQuestResult(OpResult):
    xp_earned: int = 0
    quest: Optional[SideQuest] = None


class SyncResult(BaseModel):
    success: bool
    data: Any = None
    error: Optional[str] = None
    queued: bool = False
