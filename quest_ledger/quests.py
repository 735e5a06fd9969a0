from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from .commands import AddTask
from .models import TaskCategory

HIGH_SCORE_THRESHOLD = 50


class QuestSuggestion(BaseModel):
    id: str
    title: str
    points: int
    category: TaskCategory

    def to_command(self) -> AddTask:
        return AddTask(title=self.title, points=self.points, category=self.category.value)


MORNING_QUESTS = [
    ("morning", "Complete morning routine", 10, TaskCategory.MORNING),
    ("hydrate", "Drink water first thing in the morning", 5, TaskCategory.HEALTH),
    ("meditation", "Morning meditation (5 minutes)", 8, TaskCategory.HEALTH),
    ("journal", "Write your daily intentions", 7, TaskCategory.PERSONAL),
]
AFTERNOON_QUESTS = [
    ("walk", "Take a 10-minute walk break", 8, TaskCategory.HEALTH),
    ("focus", "Complete a focused work session", 15, TaskCategory.WORK),
    ("posture", "Check and correct your posture", 5, TaskCategory.HEALTH),
    ("stretch", "Do a quick desk stretching routine", 7, TaskCategory.HEALTH),
]
EVENING_QUESTS = [
    ("reflect", "Reflect on today's achievements", 7, TaskCategory.PERSONAL),
    ("plan", "Plan tomorrow's priorities", 6, TaskCategory.PERSONAL),
    ("screen", "No screens 1 hour before bed", 12, TaskCategory.HEALTH),
    ("reading", "Read for 15 minutes before sleep", 10, TaskCategory.PERSONAL),
]
WEEKEND_QUESTS = [
    ("hobby", "Spend time on a hobby", 12, TaskCategory.PERSONAL),
    ("digital", "Digital declutter for 30 minutes", 15, TaskCategory.PERSONAL),
    ("outdoors", "Spend 30+ minutes outdoors", 18, TaskCategory.HEALTH),
]
WEEKDAY_QUESTS = [
    ("productive", "Complete most important task of the day", 20, TaskCategory.WORK),
    ("email", "Process inbox to zero", 10, TaskCategory.WORK),
    ("learn", "Learn something new (15+ minutes)", 12, TaskCategory.PERSONAL),
]
DAILY_QUESTS = [
    ("water", "Drink 8 glasses of water today", 10, TaskCategory.HEALTH),
    ("exercise", "Exercise for 20+ minutes", 15, TaskCategory.HEALTH),
    ("mindful", "Practice mindfulness for 10 minutes", 12, TaskCategory.PERSONAL),
]


def suggest_quests(now: datetime) -> list[QuestSuggestion]:
    """Quests for the current part of the day, weekday or weekend, plus dailies."""
    if now.hour < 12:
        pool = list(MORNING_QUESTS)
    elif now.hour < 17:
        pool = list(AFTERNOON_QUESTS)
    else:
        pool = list(EVENING_QUESTS)

    pool += WEEKEND_QUESTS if now.weekday() >= 5 else WEEKDAY_QUESTS
    pool += DAILY_QUESTS

    stamp = int(now.timestamp() * 1000)
    return [
        QuestSuggestion(id=f"{slug}-{stamp}", title=title, points=points, category=category)
        for slug, title, points, category in pool
    ]


def high_score_task(game_name: str, score: int) -> Optional[AddTask]:
    """Turn a finished mini-game score into a point-awarding task.

    Only scores above the threshold pay out, at one point per ten scored.
    """
    if score <= HIGH_SCORE_THRESHOLD:
        return None
    return AddTask(title=f"{game_name} High Score", points=score // 10, category=TaskCategory.OTHER.value)
