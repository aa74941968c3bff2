from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from models.habit import HabitCreate
from models.profile import Archetype, Difficulty


class CompleteHabit(BaseModel):
    type: Literal["complete_habit"] = "complete_habit"
    habit_id: str


class UncompleteHabit(BaseModel):
    type: Literal["uncomplete_habit"] = "uncomplete_habit"
    habit_id: str


class RelapseHabit(BaseModel):
    type: Literal["relapse_habit"] = "relapse_habit"
    habit_id: str


class SubmitDay(BaseModel):
    type: Literal["submit_day"] = "submit_day"


class CheckAndResetDay(BaseModel):
    type: Literal["check_and_reset_day"] = "check_and_reset_day"


class CompleteSideQuest(BaseModel):
    type: Literal["complete_side_quest"] = "complete_side_quest"
    quest_id: str


class AddHabit(BaseModel):
    type: Literal["add_habit"] = "add_habit"
    habit: HabitCreate


class RemoveHabit(BaseModel):
    type: Literal["remove_habit"] = "remove_habit"
    habit_id: str


class InitializeHabits(BaseModel):
    """Finish onboarding: install the chosen habits and start the 66-day journey."""
    type: Literal["initialize_habits"] = "initialize_habits"
    habits: List[HabitCreate]
    username: Optional[str] = None
    archetype: Optional[Archetype] = None
    difficulty: Optional[Difficulty] = None


class SetArchetype(BaseModel):
    type: Literal["set_archetype"] = "set_archetype"
    archetype: Archetype


class MarkCelebrationShown(BaseModel):
    type: Literal["mark_celebration_shown"] = "mark_celebration_shown"


class ResetGame(BaseModel):
    type: Literal["reset_game"] = "reset_game"


Action = Annotated[
    Union[
        CompleteHabit,
        UncompleteHabit,
        RelapseHabit,
        SubmitDay,
        CheckAndResetDay,
        CompleteSideQuest,
        AddHabit,
        RemoveHabit,
        InitializeHabits,
        SetArchetype,
        MarkCelebrationShown,
        ResetGame,
    ],
    Field(discriminator="type"),
]
