import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Optional
from uuid import uuid4
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from .commands import (
    AddReward,
    AddTask,
    CompleteTask,
    Hydrate,
    RedeemReward,
    ReplaceFromSource,
)
from .dates import calculate_daily_points
from .intents import (
    Intent,
    InsertPointRecord,
    InsertReward,
    InsertTask,
    MarkTaskComplete,
    UpdateProfileTotals,
)
from .models import (
    STREAK_BONUS_SOURCE,
    LedgerState,
    PointRecord,
    PointType,
    Reward,
    Task,
    UserStats,
)
from .streaks import DEFAULT_BONUS_CAP, evaluate_streak

logger = logging.getLogger(__name__)


class ResultStatus(str, Enum):
    APPLIED = "APPLIED"
    REJECTED = "REJECTED"


class RejectionReason(str, Enum):
    TASK_NOT_FOUND = "TASK_NOT_FOUND"
    TASK_ALREADY_COMPLETED = "TASK_ALREADY_COMPLETED"
    REWARD_NOT_FOUND = "REWARD_NOT_FOUND"
    INSUFFICIENT_POINTS = "INSUFFICIENT_POINTS"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    DUPLICATE_ID = "DUPLICATE_ID"


class TransitionResult(BaseModel):
    status: ResultStatus
    reason: Optional[RejectionReason] = None
    message: str = ""

    @classmethod
    def applied(cls, message: str = "") -> "TransitionResult":
        return cls(status=ResultStatus.APPLIED, message=message)

    @classmethod
    def rejected(cls, reason: RejectionReason, message: str) -> "TransitionResult":
        return cls(status=ResultStatus.REJECTED, reason=reason, message=message)

    @property
    def is_applied(self) -> bool:
        return self.status == ResultStatus.APPLIED


class Transition(BaseModel):
    state: LedgerState
    intents: list[Intent] = Field(default_factory=list)
    result: TransitionResult


_TASKS = TypeAdapter(list[Task])
_REWARDS = TypeAdapter(list[Reward])
_HISTORY = TypeAdapter(list[PointRecord])


def _default_id() -> str:
    return str(uuid4())


class LedgerEngine:
    """Pure transition function for the points ledger.

    ``apply`` never mutates the state it is given. A rejected command returns
    the input state object itself together with an empty intent list.
    """

    def __init__(self, bonus_cap: int = DEFAULT_BONUS_CAP, id_factory: Optional[Callable[[], str]] = None):
        self.bonus_cap = bonus_cap
        self.new_id = id_factory or _default_id
        self.handlers: dict[type, Callable[[LedgerState, object, datetime], Transition]] = {
            CompleteTask: self._complete_task,
            AddTask: self._add_task,
            RedeemReward: self._redeem_reward,
            AddReward: self._add_reward,
            Hydrate: self._hydrate,
            ReplaceFromSource: self._replace_from_source,
        }

    def apply(self, state: LedgerState, command, *, now: datetime) -> Transition:
        handler = self.handlers.get(type(command))
        if handler is None:
            raise TypeError(f"Unsupported command: {type(command).__name__}")
        return handler(state, command, now)

    def _reject(self, state: LedgerState, reason: RejectionReason, message: str) -> Transition:
        logger.debug("Command rejected: %s (%s)", reason.value, message)
        return Transition(state=state, intents=[], result=TransitionResult.rejected(reason, message))

    def _complete_task(self, state: LedgerState, command: CompleteTask, now: datetime) -> Transition:
        task = state.find_task(command.task_id)
        if task is None:
            return self._reject(state, RejectionReason.TASK_NOT_FOUND, f"Task {command.task_id} not found")
        if task.completed:
            return self._reject(
                state, RejectionReason.TASK_ALREADY_COMPLETED, f"Task {command.task_id} is already completed"
            )

        tasks = [t.model_copy(update={"completed": True}) if t is task else t for t in state.tasks]
        history = list(state.point_history)
        history.append(PointRecord(
            id=self.new_id(), amount=task.points, source=task.title, date=now, type=PointType.EARNED,
        ))

        streak_days, bonus = evaluate_streak(state.point_history, state.stats.streak_days, now, self.bonus_cap)
        if bonus > 0:
            history.append(PointRecord(
                id=self.new_id(), amount=bonus, source=STREAK_BONUS_SOURCE, date=now, type=PointType.EARNED,
            ))

        earned = task.points + bonus
        stats = state.stats.model_copy(update={
            "daily_points": calculate_daily_points(history, now),
            "total_points": state.stats.total_points + earned,
            "points_available": state.stats.points_available + earned,
            "tasks_completed": state.stats.tasks_completed + 1,
            "streak_days": streak_days,
            "top_task": self._top_task(state, task),
        })

        intents: list = [
            MarkTaskComplete(task_id=task.id, completed_at=now),
            InsertPointRecord(amount=task.points, description=task.title, type=PointType.EARNED, occurred_at=now),
        ]
        if bonus > 0:
            intents.append(InsertPointRecord(
                amount=bonus, description=STREAK_BONUS_SOURCE, type=PointType.EARNED, occurred_at=now,
            ))
        intents.append(UpdateProfileTotals(total_points=stats.total_points, streak_days=streak_days))

        return Transition(
            state=state.model_copy(update={"tasks": tasks, "point_history": history, "stats": stats}),
            intents=intents,
            result=TransitionResult.applied(f"Completed {task.title} for {earned} points"),
        )

    @staticmethod
    def _top_task(state: LedgerState, task: Task) -> str:
        current = state.stats.top_task
        if not current:
            return task.title
        current_points = next((t.points for t in state.tasks if t.title == current), 0)
        return task.title if task.points > current_points else current

    def _add_task(self, state: LedgerState, command: AddTask, now: datetime) -> Transition:
        if command.points <= 0:
            return self._reject(state, RejectionReason.INVALID_AMOUNT, "Task points must be a positive integer")
        if command.id and state.find_task(command.id) is not None:
            return self._reject(state, RejectionReason.DUPLICATE_ID, f"Task {command.id} already exists")

        task = Task(
            id=command.id or self.new_id(), title=command.title, points=command.points,
            category=command.category, completed=False, created_at=now,
        )
        return Transition(
            state=state.model_copy(update={"tasks": [*state.tasks, task]}),
            intents=[InsertTask(task_id=task.id, title=task.title, points=task.points, category=task.category)],
            result=TransitionResult.applied(f"Added task {task.title}"),
        )

    def _redeem_reward(self, state: LedgerState, command: RedeemReward, now: datetime) -> Transition:
        reward = state.find_reward(command.reward_id)
        if reward is None:
            return self._reject(state, RejectionReason.REWARD_NOT_FOUND, f"Reward {command.reward_id} not found")
        if state.stats.points_available < reward.cost:
            return self._reject(
                state, RejectionReason.INSUFFICIENT_POINTS,
                f"{reward.title} costs {reward.cost} points, {state.stats.points_available} available",
            )

        history = [*state.point_history, PointRecord(
            id=self.new_id(), amount=reward.cost, source=reward.title, date=now, type=PointType.SPENT,
        )]
        # Spending never lowers the lifetime total.
        stats = state.stats.model_copy(update={
            "daily_points": calculate_daily_points(history, now),
            "points_spent": state.stats.points_spent + reward.cost,
            "points_available": state.stats.points_available - reward.cost,
        })
        return Transition(
            state=state.model_copy(update={"point_history": history, "stats": stats}),
            intents=[
                InsertPointRecord(
                    amount=reward.cost, description=f"Redeemed: {reward.title}",
                    type=PointType.SPENT, occurred_at=now,
                ),
                UpdateProfileTotals(total_points=stats.total_points, streak_days=stats.streak_days),
            ],
            result=TransitionResult.applied(f"Redeemed {reward.title}"),
        )

    def _add_reward(self, state: LedgerState, command: AddReward, now: datetime) -> Transition:
        if command.cost <= 0:
            return self._reject(state, RejectionReason.INVALID_AMOUNT, "Reward cost must be a positive integer")
        if command.id and state.find_reward(command.id) is not None:
            return self._reject(state, RejectionReason.DUPLICATE_ID, f"Reward {command.id} already exists")

        reward = Reward(
            id=command.id or self.new_id(), title=command.title, cost=command.cost,
            description=command.description, category=command.category,
        )
        return Transition(
            state=state.model_copy(update={"rewards": [*state.rewards, reward]}),
            intents=[InsertReward(
                reward_id=reward.id, title=reward.title, cost=reward.cost,
                description=reward.description, category=reward.category,
            )],
            result=TransitionResult.applied(f"Added reward {reward.title}"),
        )

    def _hydrate(self, state: LedgerState, command: Hydrate, now: datetime) -> Transition:
        update: dict = {}
        for field, adapter in (("tasks", _TASKS), ("rewards", _REWARDS), ("point_history", _HISTORY)):
            raw = getattr(command, field)
            if raw is None:
                continue
            try:
                update[field] = adapter.validate_python(raw)
            except ValidationError as e:
                logger.warning("Ignoring malformed %s in hydration payload: %s", field, e.error_count())

        stats = state.stats
        if command.stats is not None:
            try:
                stats = UserStats.model_validate({**state.stats.model_dump(), **command.stats})
            except ValidationError as e:
                logger.warning("Ignoring malformed stats in hydration payload: %s", e.error_count())

        history = update.get("point_history", state.point_history)
        update["stats"] = stats.model_copy(update={"daily_points": calculate_daily_points(history, now)})
        return Transition(
            state=state.model_copy(update=update),
            intents=[],
            result=TransitionResult.applied("State hydrated"),
        )

    def _replace_from_source(self, state: LedgerState, command: ReplaceFromSource, now: datetime) -> Transition:
        tasks: list[Task] = []
        for row in command.source_tasks:
            try:
                tasks.append(row.to_task())
            except ValidationError:
                logger.warning("Skipping source task %s with invalid fields", row.id)

        rewards: list[Reward] = []
        for row in command.source_rewards:
            try:
                rewards.append(row.to_reward())
            except ValidationError:
                logger.warning("Skipping source reward %s with invalid fields", row.id)

        return Transition(
            state=state.model_copy(update={"tasks": tasks, "rewards": rewards}),
            intents=[],
            result=TransitionResult.applied(f"Loaded {len(tasks)} tasks and {len(rewards)} rewards"),
        )
