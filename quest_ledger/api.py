from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware

from .config import settings, validate_config
from .engine import RejectionReason, Transition
from .intents import InsertPointRecord
from .logging_config import configure_logging
from .models import (
    CommandResponse,
    CreateRewardRequest,
    CreateTaskRequest,
    GameScoreRequest,
    LedgerState,
    PointHistoryResponse,
    UserStats,
)
from .quests import QuestSuggestion, suggest_quests
from .service import LedgerService

REJECTION_STATUS = {
    RejectionReason.TASK_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    RejectionReason.REWARD_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    RejectionReason.TASK_ALREADY_COMPLETED: status.HTTP_409_CONFLICT,
    RejectionReason.INSUFFICIENT_POINTS: status.HTTP_400_BAD_REQUEST,
    RejectionReason.INVALID_AMOUNT: status.HTTP_400_BAD_REQUEST,
    RejectionReason.DUPLICATE_ID: status.HTTP_409_CONFLICT,
}

ledger_service = LedgerService()


def get_ledger_service() -> LedgerService:
    return ledger_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.ENV, settings.LOG_LEVEL)
    validate_config()
    ledger_service.start()
    yield


app = FastAPI(
    title="Quest Ledger API",
    description="Points, streaks and rewards ledger for a gamified productivity app",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _respond(transition: Transition, *, task_id: Optional[str] = None, reward_id: Optional[str] = None) -> CommandResponse:
    result = transition.result
    if not result.is_applied:
        raise HTTPException(status_code=REJECTION_STATUS[result.reason], detail=result.message)

    state = transition.state
    appended = sum(isinstance(i, InsertPointRecord) for i in transition.intents)
    return CommandResponse(
        message=result.message,
        stats=state.stats,
        task=state.find_task(task_id) if task_id else None,
        reward=state.find_reward(reward_id) if reward_id else None,
        records=state.point_history[-appended:] if appended else [],
    )


@app.get("/health", tags=["System"])
def health_check():
    return {"status": "healthy", "service": "quest-ledger"}


@app.get("/state", response_model=LedgerState, tags=["Ledger"])
def get_state(service: LedgerService = Depends(get_ledger_service)) -> LedgerState:
    return service.state


@app.get("/stats", response_model=UserStats, tags=["Ledger"])
def get_stats(service: LedgerService = Depends(get_ledger_service)) -> UserStats:
    return service.get_stats()


@app.get("/history", response_model=PointHistoryResponse, tags=["Ledger"])
def get_history(limit: int = Query(50, ge=1), offset: int = Query(0, ge=0),
                service: LedgerService = Depends(get_ledger_service)) -> PointHistoryResponse:
    entries, total = service.get_history(limit, offset)
    return PointHistoryResponse(entries=entries, total_count=total, points_available=service.get_stats().points_available)


@app.post("/tasks", response_model=CommandResponse, status_code=status.HTTP_201_CREATED, tags=["Tasks"])
def create_task(request: CreateTaskRequest, service: LedgerService = Depends(get_ledger_service)) -> CommandResponse:
    transition = service.add_task(request.title, request.points, request.category, request.id)
    return _respond(transition, task_id=transition.intents[0].task_id if transition.intents else None)


@app.post("/tasks/{task_id}/complete", response_model=CommandResponse, tags=["Tasks"])
def complete_task(task_id: str, service: LedgerService = Depends(get_ledger_service)) -> CommandResponse:
    return _respond(service.complete_task(task_id), task_id=task_id)


@app.post("/rewards", response_model=CommandResponse, status_code=status.HTTP_201_CREATED, tags=["Rewards"])
def create_reward(request: CreateRewardRequest, service: LedgerService = Depends(get_ledger_service)) -> CommandResponse:
    transition = service.add_reward(request.title, request.cost, request.description, request.category, request.id)
    return _respond(transition, reward_id=transition.intents[0].reward_id if transition.intents else None)


@app.post("/rewards/{reward_id}/redeem", response_model=CommandResponse, tags=["Rewards"])
def redeem_reward(reward_id: str, service: LedgerService = Depends(get_ledger_service)) -> CommandResponse:
    return _respond(service.redeem_reward(reward_id), reward_id=reward_id)


@app.post("/games/score", response_model=CommandResponse, tags=["Games"])
def record_game_score(request: GameScoreRequest, service: LedgerService = Depends(get_ledger_service)) -> CommandResponse:
    transition = service.record_game_score(request.game_name, request.score)
    if transition is None:
        return CommandResponse(message=f"Score {request.score} earns no points", stats=service.get_stats())
    return _respond(transition, task_id=transition.intents[0].task_id if transition.intents else None)


@app.get("/quests/suggestions", response_model=list[QuestSuggestion], tags=["Tasks"])
def quest_suggestions(service: LedgerService = Depends(get_ledger_service)) -> list[QuestSuggestion]:
    return suggest_quests(service.clock())


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
