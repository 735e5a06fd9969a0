import logging
from typing import Optional
from pydantic import TypeAdapter, ValidationError

from .commands import Hydrate, ReplaceFromSource
from .models import PointType, SourceReward, SourceTask, UserStats
from .storage import BackendError, PersistenceBackend

logger = logging.getLogger(__name__)

_SOURCE_TASKS = TypeAdapter(list[SourceTask])
_SOURCE_REWARDS = TypeAdapter(list[SourceReward])


def summarize_history(rows: list[dict]) -> tuple[int, int]:
    """Return ``(earned, spent)`` totals over backend history rows."""
    earned = spent = 0
    for row in rows:
        if row.get("type") == PointType.EARNED.value:
            earned += row.get("amount") or 0
        elif row.get("type") == PointType.SPENT.value:
            spent += row.get("amount") or 0
    return earned, spent


def fetch_remote_commands(backend: PersistenceBackend, user_id: Optional[str], current: UserStats) -> list:
    """Build the commands that bring local state in line with the backend.

    Tasks and rewards replace the local lists only when the backend has any.
    Profile totals overlay the current stats; available points are derived
    from the profile total minus everything spent, floored at zero.
    """
    if not user_id:
        return []

    commands: list = []
    try:
        tasks = _SOURCE_TASKS.validate_python(backend.list_tasks(user_id))
        rewards = _SOURCE_REWARDS.validate_python(backend.list_rewards(user_id))
        if tasks or rewards:
            commands.append(ReplaceFromSource(source_tasks=tasks, source_rewards=rewards))

        earned, spent = summarize_history(backend.list_point_history(user_id))
        profile = backend.get_profile(user_id)
    except (BackendError, ValidationError):
        logger.exception("Error fetching data from backend for user %s", user_id)
        return []

    if profile:
        total = profile.get("total_points") or 0
        if earned != total:
            logger.warning(
                "Profile total %d for user %s differs from %d earned in history", total, user_id, earned
            )
        commands.append(Hydrate(stats={
            **current.model_dump(),
            "total_points": total,
            "points_available": max(0, total - spent),
            "points_spent": spent,
            "streak_days": profile.get("streak_days") or 0,
        }))
    return commands
