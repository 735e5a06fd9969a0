import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from .commands import AddReward, AddTask, CompleteTask, Hydrate, RedeemReward
from .config import settings
from .engine import LedgerEngine, Transition
from .executor import IntentExecutor
from .models import LedgerState, PointRecord, UserStats
from .quests import high_score_task
from .seed import initial_state
from .snapshot import InMemorySnapshotStore, JsonFileSnapshotStore, load_snapshot, save_snapshot
from .storage import InMemoryStorage, PersistenceBackend
from .sync import fetch_remote_commands

logger = logging.getLogger(__name__)


class LedgerServiceError(Exception):
    pass


def _default_snapshot_store():
    if settings.SNAPSHOT_DIR:
        return JsonFileSnapshotStore(settings.SNAPSHOT_DIR)
    return InMemorySnapshotStore()


class LedgerService:
    """Owns the single mutable ledger slot.

    Commands are applied one at a time under a lock. After an applied change
    the new state is installed and the local snapshot rewritten before the
    lock is released. The emitted intents then run outside the state lock, but
    under a write lock taken before it is released, so backend writes keep
    command order. Executor failures never roll back state.
    """

    def __init__(
        self,
        engine: Optional[LedgerEngine] = None,
        backend: Optional[PersistenceBackend] = None,
        snapshot_store=None,
        user_id: Optional[str] = settings.DEFAULT_USER_ID,
        snapshot_key: str = settings.SNAPSHOT_KEY,
        clock: Optional[Callable[[], datetime]] = None,
        max_attempts: int = settings.INTENT_MAX_ATTEMPTS,
        retry_backoff: float = settings.INTENT_RETRY_BACKOFF,
    ):
        self.engine = engine or LedgerEngine(bonus_cap=settings.STREAK_BONUS_CAP)
        self.backend = backend or InMemoryStorage()
        self.snapshots = snapshot_store or _default_snapshot_store()
        self.snapshot_key = snapshot_key
        self.user_id = user_id
        self.clock = clock or datetime.now
        self.executor = IntentExecutor(self.backend, user_id, max_attempts=max_attempts, backoff_seconds=retry_backoff)
        self._lock = threading.RLock()
        self._write_lock = threading.Lock()
        self._state = initial_state(self.clock())

    @property
    def state(self) -> LedgerState:
        return self._state

    def start(self) -> LedgerState:
        """Hydrate from the local snapshot, then overlay the backend."""
        payload = load_snapshot(self.snapshots, self.snapshot_key)
        if payload is not None:
            self.dispatch(Hydrate(**payload))
        self.refresh_from_remote()
        return self._state

    def refresh_from_remote(self) -> LedgerState:
        for command in fetch_remote_commands(self.backend, self.user_id, self._state.stats):
            self.dispatch(command)
        return self._state

    def dispatch(self, command) -> Transition:
        with self._lock:
            try:
                transition = self.engine.apply(self._state, command, now=self.clock())
            except TypeError as e:
                raise LedgerServiceError(str(e)) from e

            if not transition.result.is_applied:
                logger.info("%s rejected: %s", command.type, transition.result.message)
                return transition

            self._state = transition.state
            save_snapshot(self.snapshots, self.snapshot_key, self._state)
            logger.debug("%s applied: %s", command.type, transition.result.message)
            self._write_lock.acquire()

        try:
            self.executor.execute(transition.intents)
        finally:
            self._write_lock.release()
        return transition

    def complete_task(self, task_id: str) -> Transition:
        return self.dispatch(CompleteTask(task_id=task_id))

    def add_task(self, title: str, points: int, category: str = "other", task_id: Optional[str] = None) -> Transition:
        return self.dispatch(AddTask(title=title, points=points, category=category, id=task_id))

    def redeem_reward(self, reward_id: str) -> Transition:
        return self.dispatch(RedeemReward(reward_id=reward_id))

    def add_reward(self, title: str, cost: int, description: str = "", category: str = "other",
                   reward_id: Optional[str] = None) -> Transition:
        return self.dispatch(AddReward(title=title, cost=cost, description=description, category=category, id=reward_id))

    def record_game_score(self, game_name: str, score: int) -> Optional[Transition]:
        command = high_score_task(game_name, score)
        if command is None:
            return None
        return self.dispatch(command)

    def get_stats(self) -> UserStats:
        return self._state.stats

    def get_history(self, limit: int = 50, offset: int = 0) -> tuple[list[PointRecord], int]:
        records = sorted(self._state.point_history, key=lambda r: r.date, reverse=True)
        return records[offset:offset + limit], len(records)
