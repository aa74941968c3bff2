from fastapi import APIRouter, Depends

from core.session import GameSession
from models.actions import MarkCelebrationShown, SubmitDay
from models.results import ResetResult, SubmitResult
from routes.deps import get_session

router = APIRouter(prefix="/day", tags=["Day"])


@router.get("/status")
async def get_day_status(session: GameSession = Depends(get_session)):
    session.foreground()
    cycle = session.cycle
    return {
        "today": cycle.today_str(),
        "current_day": session.state.profile.current_day,
        "phase": cycle.phase(),
        "locked": cycle.is_day_locked(),
        "submitted": cycle.is_today_submitted(),
        "seconds_until_unlock": cycle.time_until_unlock(),
        "celebration_shown": cycle.was_celebration_shown_today(),
    }


@router.post("/submit", response_model=SubmitResult)
async def submit_day(session: GameSession = Depends(get_session)):
    """
    Submit and lock today.

    Every scheduled habit must be completed, or be a relapsed demon. When
    that is not the case nothing changes and `unhandled_habits` lists what
    is left.
    """
    return session.dispatch(SubmitDay()).result


@router.post("/reset", response_model=ResetResult)
async def check_and_reset_day(session: GameSession = Depends(get_session)):
    """Called when the app comes to the foreground."""
    return session.foreground()


@router.post("/celebration")
async def mark_celebration_shown(session: GameSession = Depends(get_session)):
    session.dispatch(MarkCelebrationShown())
    return {"message": "Celebration marked as shown"}
