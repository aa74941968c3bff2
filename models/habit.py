import uuid
from datetime import date, datetime, timedelta
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from core.leveling import is_scheduled_day, is_week_successful
from core.time_utils import format_ymd, get_current_time, week_start

HabitType = Literal["demon", "power"]
Frequency = Literal["daily", "weekdays", "3x_week", "4x_week"]


def generate_id() -> str:
    return uuid.uuid4().hex


class Habit(BaseModel):
    """
    Represents a Habit in the system.

    Types:
    - 'demon': A bad habit to avoid. Can be relapsed.
    - 'power': A good habit to build.

    Streaks:
    - daily habits: consecutive days completed.
    - other frequencies: consecutive successful weeks (mirrors week_streak).

    Only the per-habit half of each operation lives here. XP, perfect-day
    bonus and lock checks belong to the day cycle.
    """
    id: str = Field(default_factory=generate_id)
    name: str = Field(..., max_length=100)
    type: HabitType = "power"
    xp: int = Field(..., gt=0) # Base reward
    frequency: Frequency = "daily"

    # Daily state
    completed: bool = False
    relapsed_today: bool = False
    xp_earned_today: int = 0

    # Tracking
    completed_dates: List[str] = []
    streak: int = 0
    longest_streak: int = 0
    relapses: int = 0
    week_streak: int = 0
    created_at: datetime = Field(default_factory=get_current_time)

    @property
    def is_daily(self) -> bool:
        return self.frequency == "daily"

    def is_scheduled(self, day: date) -> bool:
        return is_scheduled_day(self.frequency, day)

    def is_handled(self) -> bool:
        """Completed, or an honestly logged demon relapse."""
        return self.completed or (self.type == "demon" and self.relapsed_today)

    def mark_completed(self, today: str, earned_xp: int):
        self.completed = True
        self.xp_earned_today = earned_xp
        if today not in self.completed_dates:
            self.completed_dates.append(today)
        if self.is_daily:
            self.streak += 1
        self.longest_streak = max(self.longest_streak, self.streak)

    def unmark_completed(self, today: str) -> int:
        """Reverse mark_completed. Returns the XP that was credited for it."""
        refunded = self.xp_earned_today
        self.completed = False
        self.xp_earned_today = 0
        self.completed_dates = [d for d in self.completed_dates if d != today]
        if self.is_daily and self.streak > 0:
            self.streak -= 1
        return refunded

    def relapse(self) -> int:
        """Reset this habit's streak after a relapse. Returns the lost streak."""
        lost = self.streak
        self.longest_streak = max(self.longest_streak, lost)
        self.streak = 0
        self.relapses += 1
        self.relapsed_today = True
        self.completed = False
        return lost

    def close_day(self, today: date, last_reset: Optional[date]):
        """
        Roll this habit over to `today`.

        Daily habits keep their streak only if yesterday was completed.
        Other frequencies evaluate every Monday-Sunday week that closed
        since `last_reset`, oldest first.
        """
        if self.is_daily:
            yesterday = format_ymd(today - timedelta(days=1))
            if yesterday not in self.completed_dates:
                self.streak = 0
        elif last_reset is not None:
            week = week_start(last_reset)
            current_week = week_start(today)
            while week < current_week:
                if is_week_successful(self.frequency, self.completed_dates, week):
                    self.week_streak += 1
                    self.streak = self.week_streak
                else:
                    self.week_streak = 0
                    self.streak = 0
                self.longest_streak = max(self.longest_streak, self.streak)
                week += timedelta(days=7)

        self.completed = False
        self.relapsed_today = False
        self.xp_earned_today = 0
        self.longest_streak = max(self.longest_streak, self.streak)


class HabitCreate(BaseModel):
    id: Optional[str] = None
    name: str = Field(..., max_length=100)
    type: HabitType = "power"
    xp: int = Field(..., gt=0)
    frequency: Frequency = "daily"

    def to_habit(self) -> Habit:
        data = self.model_dump(exclude_none=True)
        return Habit(**data)
