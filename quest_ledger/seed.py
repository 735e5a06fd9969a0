from datetime import datetime

from .models import LedgerState, Reward, RewardCategory, Task, TaskCategory, UserStats


DEFAULT_TASKS = [
    ("default-task-1", "Complete morning routine", 10, TaskCategory.MORNING),
    ("default-task-2", "Drink water first thing in the morning", 5, TaskCategory.HEALTH),
    ("default-task-3", "Complete a focused work session", 15, TaskCategory.WORK),
    ("default-task-4", "Exercise for 20+ minutes", 15, TaskCategory.HEALTH),
    ("default-task-5", "Read for 15 minutes before sleep", 10, TaskCategory.PERSONAL),
]

DEFAULT_REWARDS = [
    ("default-reward-1", "Extended Break", "Take an extra 15-minute break", 20, RewardCategory.OTHER),
    ("default-reward-2", "Snack Time", "Enjoy your favorite snack", 15, RewardCategory.FOOD),
    ("default-reward-3", "Screen Time", "30 minutes of guilt-free screen time", 25, RewardCategory.ENTERTAINMENT),
    ("default-reward-4", "Movie Night", "Watch a movie of your choice", 40, RewardCategory.ENTERTAINMENT),
    ("default-reward-5", "Social Media Break", "20 minutes on social media without guilt", 15, RewardCategory.SOCIAL),
]


def initial_state(now: datetime) -> LedgerState:
    """Default tasks and rewards, empty history, zeroed stats."""
    return LedgerState(
        tasks=[
            Task(id=task_id, title=title, points=points, category=category, created_at=now)
            for task_id, title, points, category in DEFAULT_TASKS
        ],
        rewards=[
            Reward(id=reward_id, title=title, description=description, cost=cost, category=category)
            for reward_id, title, description, cost, category in DEFAULT_REWARDS
        ],
        point_history=[],
        stats=UserStats(),
    )
