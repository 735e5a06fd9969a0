import logging
from pathlib import Path
from typing import Optional
from pydantic import ValidationError

from .models import LedgerState

logger = logging.getLogger(__name__)


class InMemorySnapshotStore:
    def __init__(self):
        self.slots: dict[str, str] = {}

    def read(self, key: str) -> Optional[str]:
        return self.slots.get(key)

    def write(self, key: str, value: str) -> None:
        self.slots[key] = value


class JsonFileSnapshotStore:
    """One ``<key>.json`` file per slot inside ``directory``."""

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def write(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp = self._path(key).with_suffix(".json.tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(self._path(key))


def save_snapshot(store, key: str, state: LedgerState) -> None:
    store.write(key, state.model_dump_json())


def load_snapshot(store, key: str) -> Optional[dict]:
    """Return the stored state as a plain payload for ``Hydrate``, or None.

    The payload is validated as a whole so a corrupt slot is ignored instead
    of partially applied.
    """
    raw = store.read(key)
    if raw is None:
        return None
    try:
        state = LedgerState.model_validate_json(raw)
    except ValidationError as e:
        logger.error("Error loading saved state from %s: %d validation error(s)", key, e.error_count())
        return None
    return {
        "tasks": state.tasks,
        "rewards": state.rewards,
        "point_history": state.point_history,
        "stats": state.stats.model_dump(),
    }
