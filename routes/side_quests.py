from typing import List

from fastapi import APIRouter, Depends

from core.session import GameSession
from models.actions import CompleteSideQuest
from models.results import SideQuestResult
from models.side_quest import SideQuestView
from routes.deps import get_session, raise_for_result

router = APIRouter(prefix="/side-quests", tags=["Side Quests"])


@router.get("/", response_model=List[SideQuestView])
async def get_side_quests(session: GameSession = Depends(get_session)):
    session.foreground()
    quests = session.cycle.side_quests()
    session.persist()
    return quests


@router.post("/{quest_id}/complete", response_model=SideQuestResult)
async def complete_side_quest(quest_id: str, session: GameSession = Depends(get_session)):
    result = session.dispatch(CompleteSideQuest(quest_id=quest_id)).result
    return raise_for_result(result, not_found="Side quest not available today")
