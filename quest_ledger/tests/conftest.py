from datetime import datetime, timedelta
from itertools import count

import pytest

from quest_ledger.engine import LedgerEngine
from quest_ledger.models import LedgerState

# Monday 2024-03-04
BASE_DAY = datetime(2024, 3, 4)


def at(day: int, hour: int = 9, minute: int = 0) -> datetime:
    """Local wall-clock time on simulated day ``day`` (1-based)."""
    return BASE_DAY + timedelta(days=day - 1, hours=hour, minutes=minute)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def engine():
    ids = count(1)
    return LedgerEngine(id_factory=lambda: f"id-{next(ids)}")


@pytest.fixture
def empty_state():
    return LedgerState()
