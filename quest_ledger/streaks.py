from datetime import datetime
from typing import Sequence

from .dates import active_in_window, earned_today, yesterday_window
from .models import PointRecord

DEFAULT_BONUS_CAP = 10


def evaluate_streak(
    history: Sequence[PointRecord],
    streak_days: int,
    now: datetime,
    bonus_cap: int = DEFAULT_BONUS_CAP,
) -> tuple[int, int]:
    """Return ``(streak_days, bonus)`` after a task completion at ``now``.

    ``history`` must not yet contain the completion being evaluated. The streak
    moves at most once per local day: once an earned, non-bonus record exists
    for today the input is returned unchanged with no bonus.
    """
    if earned_today(history, now, include_bonus=False):
        return streak_days, 0

    start, end = yesterday_window(now)
    if active_in_window(history, start, end, now) or streak_days == 0:
        streak_days += 1
        return streak_days, min(bonus_cap, streak_days)

    # Missed at least one day: restart without a bonus.
    return 1, 0
