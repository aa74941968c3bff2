from typing import List, Literal
from pydantic import BaseModel, Field

from models.habit import HabitType

HabitStatus = Literal["completed", "relapsed", "missed"]


class HabitSnapshot(BaseModel):
    id: str
    name: str
    type: HabitType
    xp: int
    status: HabitStatus
    streak: int = 0


class DayRecord(BaseModel):
    """
    One submitted day. Replaced, never edited, when the same date is
    submitted again.

    day_number counts submitted days (1, 2, 3...) rather than days elapsed
    since the journey started.
    """
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    day_number: int = Field(..., ge=1)
    habits: List[HabitSnapshot] = []
    xp_earned: int = Field(0, ge=0)
    is_perfect: bool = False
    successful_count: int = 0
    total_count: int = 0
    relapse_count: int = 0

    model_config = {"frozen": True}
