from typing import List

from fastapi import APIRouter, Depends, HTTPException

from core.session import GameSession
from models.actions import AddHabit, CompleteHabit, RelapseHabit, RemoveHabit, UncompleteHabit
from models.habit import Habit, HabitCreate
from models.results import HabitResult, RelapseResult
from routes.deps import get_session, raise_for_result

router = APIRouter(prefix="/habits", tags=["Habits"])


@router.get("/", response_model=List[Habit])
async def get_habits(session: GameSession = Depends(get_session)):
    session.foreground()
    return session.state.habits


@router.get("/scheduled", response_model=List[Habit])
async def get_scheduled_habits(session: GameSession = Depends(get_session)):
    """Habits that must be handled before today can be submitted."""
    session.foreground()
    return session.cycle.scheduled_habits()


@router.post("/", response_model=Habit)
async def create_habit(habit_in: HabitCreate, session: GameSession = Depends(get_session)):
    result = raise_for_result(session.dispatch(AddHabit(habit=habit_in)).result)
    return session.state.find_habit(result.habit_id)


@router.delete("/{habit_id}")
async def delete_habit(habit_id: str, session: GameSession = Depends(get_session)):
    raise_for_result(session.dispatch(RemoveHabit(habit_id=habit_id)).result)
    return {"message": "Habit deleted"}


@router.post("/{habit_id}/complete", response_model=HabitResult)
async def complete_habit(habit_id: str, session: GameSession = Depends(get_session)):
    """
    Complete a habit for today.

    XP earned = base XP x global streak multiplier. Completing the last
    scheduled habit also grants the perfect-day bonus.
    """
    return raise_for_result(session.dispatch(CompleteHabit(habit_id=habit_id)).result)


@router.post("/{habit_id}/uncomplete", response_model=HabitResult)
async def uncomplete_habit(habit_id: str, session: GameSession = Depends(get_session)):
    """Undo today's completion. Refused once the day is submitted."""
    return raise_for_result(session.dispatch(UncompleteHabit(habit_id=habit_id)).result)


@router.post("/{habit_id}/relapse", response_model=RelapseResult)
async def relapse_habit(habit_id: str, session: GameSession = Depends(get_session)):
    """
    Log a relapse on a demon.

    Loses half of the XP this habit's streak was worth, gives back a small
    honesty reward, resets the habit streak. The journey and the global
    streak are untouched, and the day can still be submitted.
    """
    return raise_for_result(session.dispatch(RelapseHabit(habit_id=habit_id)).result)


@router.get("/{habit_id}/week")
async def get_week_progress(habit_id: str, session: GameSession = Depends(get_session)):
    progress = session.cycle.habit_week_progress(habit_id)
    if progress is None:
        raise HTTPException(status_code=404, detail="Habit not found")
    progress["scheduled_today"] = session.cycle.is_habit_scheduled_today(habit_id)
    return progress
