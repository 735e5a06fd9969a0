from typing import Annotated, Any, Literal, Optional, Union
from pydantic import BaseModel, Field

from .models import SourceReward, SourceTask


class CompleteTask(BaseModel):
    type: Literal["complete_task"] = "complete_task"
    task_id: str


class AddTask(BaseModel):
    type: Literal["add_task"] = "add_task"
    title: str
    points: int
    category: str = "other"
    id: Optional[str] = None


class RedeemReward(BaseModel):
    type: Literal["redeem_reward"] = "redeem_reward"
    reward_id: str


class AddReward(BaseModel):
    type: Literal["add_reward"] = "add_reward"
    title: str
    cost: int
    description: str = ""
    category: str = "other"
    id: Optional[str] = None


class Hydrate(BaseModel):
    """Shallow overlay of externally sourced state.

    Every field is optional; an omitted field keeps the local value. ``stats``
    is a plain mapping so a partial profile can be overlaid key by key.
    """

    type: Literal["hydrate"] = "hydrate"
    tasks: Optional[list[Any]] = None
    rewards: Optional[list[Any]] = None
    point_history: Optional[list[Any]] = None
    stats: Optional[dict[str, Any]] = None


class ReplaceFromSource(BaseModel):
    type: Literal["replace_from_source"] = "replace_from_source"
    source_tasks: list[SourceTask] = Field(default_factory=list)
    source_rewards: list[SourceReward] = Field(default_factory=list)


Command = Annotated[
    Union[CompleteTask, AddTask, RedeemReward, AddReward, Hydrate, ReplaceFromSource],
    Field(discriminator="type"),
]
