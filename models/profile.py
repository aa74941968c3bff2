from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from core.game_data import ACHIEVEMENT_IDS
from models.day_record import DayRecord
from models.side_quest import SideQuest

Archetype = Literal["SPECTER", "ASCENDANT", "WRATH", "SOVEREIGN"]
Difficulty = Literal["easy", "medium", "hard"]


def empty_achievements() -> Dict[str, bool]:
    return {achievement_id: False for achievement_id in ACHIEVEMENT_IDS}


class PlayerProfile(BaseModel):
    """
    Player progression for a single user.

    Date fields (last_*_date) are YYYY-MM-DD strings in local time;
    day_started, day_locked_at and last_completed_date are timestamps.
    """
    username: Optional[str] = None
    archetype: Optional[Archetype] = None
    difficulty: Optional[Difficulty] = None
    onboarding_complete: bool = False

    # Progression
    xp: int = Field(0, ge=0)
    level: int = Field(1, ge=1)
    current_streak: int = Field(0, ge=0) # Consecutive days submitted
    longest_streak: int = Field(0, ge=0)

    # 66-day journey
    day_started: Optional[datetime] = None
    current_day: int = Field(1, ge=1)

    # Day lock-in
    day_locked_at: Optional[datetime] = None
    last_submit_date: Optional[str] = None
    last_completed_date: Optional[datetime] = None # Timestamp of the last submission
    last_celebration_date: Optional[str] = None
    last_reset_date: Optional[str] = None # Daily reset already applied for this date
    perfect_bonus_granted: int = 0 # Perfect-day bonus credited today

    # Side quests
    daily_side_quests: List[SideQuest] = []
    completed_side_quests: List[str] = []
    side_quests_date: Optional[str] = None

    # Records
    achievements: Dict[str, bool] = Field(default_factory=empty_achievements)
    total_days_completed: int = 0
    perfect_days_count: int = 0
    total_xp_earned: int = 0
    day_history: List[DayRecord] = []

    @property
    def is_locked(self) -> bool:
        return self.day_locked_at is not None
