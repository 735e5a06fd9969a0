from datetime import datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator


STREAK_BONUS_SOURCE = "Daily Streak Bonus"


class TaskCategory(str, Enum):
    OTHER = "other"
    MORNING = "morning"
    WORK = "work"
    HEALTH = "health"
    PERSONAL = "personal"

    @classmethod
    def normalize(cls, value: Any) -> "TaskCategory":
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class RewardCategory(str, Enum):
    ENTERTAINMENT = "entertainment"
    SOCIAL = "social"
    FOOD = "food"
    SHOPPING = "shopping"
    OTHER = "other"

    @classmethod
    def normalize(cls, value: Any) -> "RewardCategory":
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class PointType(str, Enum):
    EARNED = "earned"
    SPENT = "spent"


class Task(BaseModel):
    id: str
    title: str
    points: int = Field(..., gt=0)
    category: TaskCategory = TaskCategory.OTHER
    completed: bool = False
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value: Any) -> TaskCategory:
        return TaskCategory.normalize(value)


class Reward(BaseModel):
    id: str
    title: str
    cost: int = Field(..., gt=0)
    description: str = ""
    category: RewardCategory = RewardCategory.OTHER

    model_config = ConfigDict(from_attributes=True)

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value: Any) -> RewardCategory:
        return RewardCategory.normalize(value)


class PointRecord(BaseModel):
    id: str
    amount: int = Field(..., gt=0)
    source: str
    date: datetime
    type: PointType

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_streak_bonus(self) -> bool:
        return self.source == STREAK_BONUS_SOURCE


class UserStats(BaseModel):
    daily_points: int = 0
    total_points: int = 0
    points_spent: int = 0
    points_available: int = 0
    tasks_completed: int = 0
    streak_days: int = 0
    top_task: str = ""


class LedgerState(BaseModel):
    tasks: list[Task] = Field(default_factory=list)
    rewards: list[Reward] = Field(default_factory=list)
    point_history: list[PointRecord] = Field(default_factory=list)
    stats: UserStats = Field(default_factory=UserStats)

    def find_task(self, task_id: str) -> Optional[Task]:
        return next((t for t in self.tasks if t.id == task_id), None)

    def find_reward(self, reward_id: str) -> Optional[Reward]:
        return next((r for r in self.rewards if r.id == reward_id), None)


class SourceTask(BaseModel):
    """A task row as the backend stores it."""

    id: str
    title: str
    points: int
    category: str = TaskCategory.OTHER.value
    is_completed: bool = False
    created_at: datetime

    model_config = ConfigDict(extra="ignore")

    def to_task(self) -> Task:
        return Task(
            id=self.id, title=self.title, points=self.points,
            category=self.category, completed=self.is_completed,
            created_at=self.created_at,
        )


class SourceReward(BaseModel):
    """A reward row as the backend stores it."""

    id: str
    title: str
    points_cost: int
    description: Optional[str] = None
    category: str = RewardCategory.OTHER.value

    model_config = ConfigDict(extra="ignore")

    def to_reward(self) -> Reward:
        return Reward(
            id=self.id, title=self.title, cost=self.points_cost,
            description=self.description or "", category=self.category,
        )


class CreateTaskRequest(BaseModel):
    title: str = Field(..., min_length=1)
    points: int = Field(..., gt=0)
    category: str = Field(default="other", description="Unknown categories are stored as 'other'")
    id: Optional[str] = None

    model_config = ConfigDict(json_schema_extra={
        "example": {"title": "Drink water", "points": 5, "category": "health"}
    })


class CreateRewardRequest(BaseModel):
    title: str = Field(..., min_length=1)
    cost: int = Field(..., gt=0)
    description: str = ""
    category: str = Field(default="other", description="Unknown categories are stored as 'other'")
    id: Optional[str] = None

    model_config = ConfigDict(json_schema_extra={
        "example": {"title": "Movie Night", "cost": 40, "description": "Watch a movie of your choice", "category": "entertainment"}
    })


class GameScoreRequest(BaseModel):
    game_name: str = Field(..., min_length=1)
    score: int = Field(..., ge=0)


class CommandResponse(BaseModel):
    message: str
    stats: UserStats
    task: Optional[Task] = None
    reward: Optional[Reward] = None
    records: list[PointRecord] = Field(default_factory=list)


class PointHistoryResponse(BaseModel):
    entries: list[PointRecord]
    total_count: int
    points_available: int
