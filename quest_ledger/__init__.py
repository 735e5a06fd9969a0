"""
Points and Rewards Ledger for a Gamified Productivity App

This module provides:
- A pure transition engine over tasks, rewards, point history and stats
- Daily streak tracking with a capped streak bonus
- Typed Applied / Rejected results instead of silent no-ops
- Persistence intents executed separately from the state transition
- Local snapshot and remote hydration
"""

from .commands import (
    AddReward,
    AddTask,
    CompleteTask,
    Hydrate,
    RedeemReward,
    ReplaceFromSource,
)
from .engine import (
    LedgerEngine,
    RejectionReason,
    ResultStatus,
    Transition,
    TransitionResult,
)
from .models import (
    LedgerState,
    PointRecord,
    PointType,
    Reward,
    RewardCategory,
    Task,
    TaskCategory,
    UserStats,
)
from .service import LedgerService

__all__ = [
    "AddReward",
    "AddTask",
    "CompleteTask",
    "Hydrate",
    "RedeemReward",
    "ReplaceFromSource",
    "LedgerEngine",
    "RejectionReason",
    "ResultStatus",
    "Transition",
    "TransitionResult",
    "LedgerState",
    "PointRecord",
    "PointType",
    "Reward",
    "RewardCategory",
    "Task",
    "TaskCategory",
    "UserStats",
    "LedgerService",
]
