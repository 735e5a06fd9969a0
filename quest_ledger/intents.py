from datetime import datetime
from typing import Annotated, Literal, Union
from pydantic import BaseModel, Field

from .models import PointType, RewardCategory, TaskCategory


class InsertTask(BaseModel):
    kind: Literal["insert_task"] = "insert_task"
    task_id: str
    title: str
    points: int
    category: TaskCategory


class InsertReward(BaseModel):
    kind: Literal["insert_reward"] = "insert_reward"
    reward_id: str
    title: str
    cost: int
    description: str
    category: RewardCategory


class MarkTaskComplete(BaseModel):
    kind: Literal["mark_task_complete"] = "mark_task_complete"
    task_id: str
    completed_at: datetime


class InsertPointRecord(BaseModel):
    kind: Literal["insert_point_record"] = "insert_point_record"
    amount: int
    description: str
    type: PointType
    occurred_at: datetime


class UpdateProfileTotals(BaseModel):
    kind: Literal["update_profile_totals"] = "update_profile_totals"
    total_points: int
    streak_days: int


Intent = Annotated[
    Union[InsertTask, InsertReward, MarkTaskComplete, InsertPointRecord, UpdateProfileTotals],
    Field(discriminator="kind"),
]
