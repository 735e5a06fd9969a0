import logging
import time
from typing import Callable, Iterable, Optional

from .intents import (
    InsertPointRecord,
    InsertReward,
    InsertTask,
    MarkTaskComplete,
    UpdateProfileTotals,
)
from .storage import BackendError, PersistenceBackend, RecordNotFoundError

logger = logging.getLogger(__name__)


class IntentExecutor:
    """Performs persistence intents against a backend.

    Failures are logged and reported in the returned summary; they never
    propagate to the caller and never touch ledger state. Transient errors
    are retried with a linear backoff of ``backoff_seconds * attempt``.
    """

    def __init__(self, backend: PersistenceBackend, user_id: Optional[str], max_attempts: int = 3,
                 backoff_seconds: float = 0.0, sleep: Callable[[float], None] = time.sleep):
        self.backend = backend
        self.user_id = user_id
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = max(0.0, backoff_seconds)
        self.sleep = sleep
        self.intent_handlers: dict[type, Callable] = {
            InsertTask: self._insert_task,
            InsertReward: self._insert_reward,
            MarkTaskComplete: self._mark_task_complete,
            InsertPointRecord: self._insert_point_record,
            UpdateProfileTotals: self._update_profile_totals,
        }

    def execute(self, intents: Iterable) -> list[dict]:
        intents = list(intents)
        if not intents:
            return []
        if not self.user_id:
            logger.warning("No signed-in user; skipping %d persistence intent(s)", len(intents))
            return [{"kind": intent.kind, "success": False, "error": "no user"} for intent in intents]
        return [self._run(intent) for intent in intents]

    def _run(self, intent) -> dict:
        handler = self.intent_handlers.get(type(intent))
        if handler is None:
            logger.error("No handler for intent %s", type(intent).__name__)
            return {"kind": getattr(intent, "kind", None), "success": False, "error": "unsupported intent"}

        for attempt in range(1, self.max_attempts + 1):
            try:
                handler(intent)
                return {"kind": intent.kind, "success": True, "attempts": attempt}
            except RecordNotFoundError as e:
                logger.warning("Persisting %s failed: %s", intent.kind, e)
                return {"kind": intent.kind, "success": False, "attempts": attempt, "error": str(e)}
            except BackendError as e:
                if attempt == self.max_attempts:
                    logger.exception("Persisting %s failed after %d attempt(s)", intent.kind, attempt)
                    return {"kind": intent.kind, "success": False, "attempts": attempt, "error": str(e)}
                delay = self.backoff_seconds * attempt
                logger.info("Retrying %s in %.2fs after error: %s", intent.kind, delay, e)
                if delay:
                    self.sleep(delay)

    def _insert_task(self, intent: InsertTask) -> None:
        self.backend.insert_task(
            self.user_id, task_id=intent.task_id, title=intent.title,
            points=intent.points, category=intent.category.value,
        )

    def _insert_reward(self, intent: InsertReward) -> None:
        self.backend.insert_reward(
            self.user_id, reward_id=intent.reward_id, title=intent.title, points_cost=intent.cost,
            description=intent.description, category=intent.category.value,
        )

    def _mark_task_complete(self, intent: MarkTaskComplete) -> None:
        self.backend.mark_task_complete(self.user_id, intent.task_id, intent.completed_at)

    def _insert_point_record(self, intent: InsertPointRecord) -> None:
        self.backend.insert_point_record(
            self.user_id, amount=intent.amount, description=intent.description,
            type=intent.type.value, created_at=intent.occurred_at,
        )

    def _update_profile_totals(self, intent: UpdateProfileTotals) -> None:
        self.backend.update_profile(self.user_id, total_points=intent.total_points, streak_days=intent.streak_days)
