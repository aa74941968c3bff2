from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel

from core.session import GameSession
from models.actions import Action, InitializeHabits, ResetGame, SetArchetype
from models.profile import Archetype
from routes.deps import get_session

router = APIRouter(prefix="/profile", tags=["Profile"])


class ArchetypeUpdate(BaseModel):
    archetype: Archetype


class RemoteLoad(BaseModel):
    user_id: Optional[str] = None


@router.get("/")
async def get_profile(session: GameSession = Depends(get_session)):
    session.foreground()
    profile = session.state.profile
    cycle = session.cycle
    return {
        "username": profile.username,
        "archetype": cycle.archetype_data(),
        "difficulty": profile.difficulty,
        "onboarding_complete": profile.onboarding_complete,
        "xp": profile.xp,
        "level": profile.level,
        "rank": cycle.rank(),
        "level_progress": cycle.level_progress(),
        "current_streak": profile.current_streak,
        "longest_streak": profile.longest_streak,
        "current_day": profile.current_day,
        "phase": cycle.phase(),
        "achievements": profile.achievements,
        "data_reset": session.recovered_from_corruption,
    }


@router.post("/onboarding")
async def complete_onboarding(onboarding: InitializeHabits, session: GameSession = Depends(get_session)):
    """Install the selected habits and start the 66-day journey today."""
    if not onboarding.habits:
        raise HTTPException(status_code=400, detail="Pick at least one habit")
    session.dispatch(onboarding)
    return {"message": "Journey started", "habits": len(session.state.habits)}


@router.put("/archetype")
async def set_archetype(update: ArchetypeUpdate, session: GameSession = Depends(get_session)):
    session.dispatch(SetArchetype(archetype=update.archetype))
    return {"archetype": session.cycle.archetype_data(), "rank": session.cycle.rank()}


@router.post("/actions")
async def dispatch_action(action: Action = Body(...), session: GameSession = Depends(get_session)):
    """Run any state-machine command. The result shape depends on the action type."""
    dispatched = session.dispatch(action)
    result = dispatched.result
    return {"type": action.type, "result": result.model_dump(mode="json")}


@router.post("/sync/load")
async def load_from_remote(body: RemoteLoad = Body(default=RemoteLoad()), session: GameSession = Depends(get_session)):
    result = await session.load_from_remote(body.user_id)
    if result["success"]:
        session.persist()
    return result


@router.post("/sync/save")
async def sync_to_remote(session: GameSession = Depends(get_session)):
    return await session.sync_to_remote()


@router.delete("/remote")
async def delete_remote_data(session: GameSession = Depends(get_session)):
    return await session.delete_remote_data()


@router.post("/reset")
async def reset_game(session: GameSession = Depends(get_session)):
    """Wipe local progress. Remote data is kept unless DELETE /profile/remote is called too."""
    session.dispatch(ResetGame())
    return {"message": "Game reset"}
