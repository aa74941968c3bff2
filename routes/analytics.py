from typing import List, Literal

from fastapi import APIRouter, Depends, HTTPException

from core.session import GameSession
from models.day_record import DayRecord
from routes.deps import get_session

router = APIRouter(prefix="/analytics", tags=["Analytics"])


@router.get("/stats")
async def get_stats(session: GameSession = Depends(get_session)):
    profile = session.state.profile
    stats = session.cycle.stats()
    stats.update({
        "total_days_completed": profile.total_days_completed,
        "perfect_days_count": profile.perfect_days_count,
        "total_xp_earned": profile.total_xp_earned,
        "perfect_streak": session.cycle.perfect_streak(),
    })
    return stats


@router.get("/history", response_model=List[DayRecord])
async def get_history(
    filter: Literal["all", "perfect", "relapses"] = "all",
    session: GameSession = Depends(get_session),
):
    """Submitted days, most recent first."""
    return session.cycle.filtered_history(filter)


@router.get("/history/{date}", response_model=DayRecord)
async def get_history_by_date(date: str, session: GameSession = Depends(get_session)):
    record = session.cycle.history_by_date(date)
    if record is None:
        raise HTTPException(status_code=404, detail="No submission for that date")
    return record
