from typing import List, Optional

from pydantic import BaseModel, Field

from models.habit import Habit
from models.profile import PlayerProfile


class AppState(BaseModel):
    """Everything the session owns and persists: the profile plus its habits."""
    user_id: Optional[str] = None
    profile: PlayerProfile = Field(default_factory=PlayerProfile)
    habits: List[Habit] = []

    def find_habit(self, habit_id: str) -> Optional[Habit]:
        for habit in self.habits:
            if habit.id == habit_id:
                return habit
        return None

    def profile_snapshot(self) -> dict:
        """Profile + habits as sent to the sync gateway (history travels as daily logs)."""
        data = self.profile.model_dump(mode="json", exclude={"day_history"})
        data["habits"] = [habit.model_dump(mode="json") for habit in self.habits]
        return data
