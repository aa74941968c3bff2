from fastapi import HTTPException, Request

from core.session import GameSession
from models.results import OpError, OpResult

ERROR_STATUS = {
    OpError.NOT_FOUND: 404,
    OpError.DAY_LOCKED: 409,
}

ERROR_DETAIL = {
    OpError.NOT_FOUND: "Habit not found",
    OpError.DAY_LOCKED: "Day is locked until midnight",
    OpError.NOT_COMPLETED: "Habit not completed",
    OpError.ALREADY_COMPLETED: "Already completed today",
    OpError.RELAPSED_TODAY: "Habit was relapsed today",
    OpError.ALREADY_RELAPSED: "Relapse already logged today",
    OpError.NOT_DEMON: "Only demons can relapse",
    OpError.ALREADY_EXISTS: "Habit already exists",
}


def get_session(request: Request) -> GameSession:
    return request.app.state.session


def raise_for_result(result: OpResult, not_found: str = None):
    """Turn a failed state-machine result into an HTTP error."""
    if result.success:
        return result
    detail = ERROR_DETAIL.get(result.reason, result.reason.value)
    if result.reason == OpError.NOT_FOUND and not_found:
        detail = not_found
    raise HTTPException(status_code=ERROR_STATUS.get(result.reason, 400), detail=detail)
