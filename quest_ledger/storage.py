from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4


class BackendError(Exception):
    pass


class RecordNotFoundError(BackendError):
    pass


class PersistenceBackend(ABC):
    """Remote store the intent executor writes to and hydration reads from.

    Rows are plain dicts using the backend's own column names
    (``is_completed``, ``points_cost``, ``description``...).
    """

    @abstractmethod
    def insert_task(self, user_id: str, *, task_id: str, title: str, points: int, category: str) -> dict: ...

    @abstractmethod
    def insert_reward(self, user_id: str, *, reward_id: str, title: str, points_cost: int,
                      description: str, category: str) -> dict: ...

    @abstractmethod
    def mark_task_complete(self, user_id: str, task_id: str, completed_at: datetime) -> dict: ...

    @abstractmethod
    def insert_point_record(self, user_id: str, *, amount: int, description: str, type: str,
                            created_at: datetime) -> dict: ...

    @abstractmethod
    def update_profile(self, user_id: str, *, total_points: int, streak_days: int) -> dict: ...

    @abstractmethod
    def list_tasks(self, user_id: str) -> list[dict]: ...

    @abstractmethod
    def list_rewards(self, user_id: str) -> list[dict]: ...

    @abstractmethod
    def list_point_history(self, user_id: str) -> list[dict]: ...

    @abstractmethod
    def get_profile(self, user_id: str) -> Optional[dict]: ...


class InMemoryStorage(PersistenceBackend):
    def __init__(self):
        self.tasks: dict[str, dict] = {}
        self.rewards: dict[str, dict] = {}
        self.points_history: dict[str, dict] = {}
        self.profiles: dict[str, dict] = {}

    def insert_task(self, user_id: str, *, task_id: str, title: str, points: int, category: str) -> dict:
        row = {
            "id": task_id, "user_id": user_id, "title": title, "points": points,
            "category": category, "is_completed": False, "completed_at": None,
            "created_at": datetime.now(timezone.utc),
        }
        self.tasks[task_id] = row
        return row

    def insert_reward(self, user_id: str, *, reward_id: str, title: str, points_cost: int,
                      description: str, category: str) -> dict:
        row = {
            "id": reward_id, "user_id": user_id, "title": title, "points_cost": points_cost,
            "description": description, "category": category,
        }
        self.rewards[reward_id] = row
        return row

    def mark_task_complete(self, user_id: str, task_id: str, completed_at: datetime) -> dict:
        row = self.tasks.get(task_id)
        if not row or row["user_id"] != user_id:
            raise RecordNotFoundError(f"Task {task_id} not found")
        row["is_completed"] = True
        row["completed_at"] = completed_at
        return row

    def insert_point_record(self, user_id: str, *, amount: int, description: str, type: str,
                            created_at: datetime) -> dict:
        record_id = str(uuid4())
        row = {
            "id": record_id, "user_id": user_id, "amount": amount,
            "description": description, "type": type, "created_at": created_at,
        }
        self.points_history[record_id] = row
        return row

    def update_profile(self, user_id: str, *, total_points: int, streak_days: int) -> dict:
        row = self.profiles.setdefault(user_id, {"id": user_id})
        row["total_points"] = total_points
        row["streak_days"] = streak_days
        return row

    def list_tasks(self, user_id: str) -> list[dict]:
        rows = [dict(r) for r in self.tasks.values() if r["user_id"] == user_id]
        rows.sort(key=lambda r: r["created_at"], reverse=True)
        return rows

    def list_rewards(self, user_id: str) -> list[dict]:
        return [dict(r) for r in self.rewards.values() if r["user_id"] == user_id]

    def list_point_history(self, user_id: str) -> list[dict]:
        return [dict(r) for r in self.points_history.values() if r["user_id"] == user_id]

    def get_profile(self, user_id: str) -> Optional[dict]:
        row = self.profiles.get(user_id)
        return dict(row) if row else None
