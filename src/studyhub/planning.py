from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, time, timezone, tzinfo
from typing import Mapping, Sequence

from .models.common import Difficulty, StudyMethod
from .progress import local_day
from .records import Material


MASTERY_FOCUS_THRESHOLD = 80
MINUTES_PER_MATERIAL = 20

_DIFFICULTY_WEIGHT = {Difficulty.easy: 1, Difficulty.medium: 2, Difficulty.hard: 3}
_NEVER = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class StudyMethodInfo:
    method: StudyMethod
    name: str
    description: str
    estimated_minutes: int
    uses_spaced_repetition: bool = False


STUDY_METHODS: tuple[StudyMethodInfo, ...] = (
    StudyMethodInfo(
        StudyMethod.sq3r,
        "SQ3R Method",
        "Survey, Question, Read, Recite, Review - systematic reading comprehension",
        30,
    ),
    StudyMethodInfo(
        StudyMethod.flashcards,
        "Flashcards",
        "Spaced repetition flashcards for active recall",
        15,
        uses_spaced_repetition=True,
    ),
    StudyMethodInfo(
        StudyMethod.spaced_practice,
        "Spaced Practice",
        "Review material at increasing intervals for long-term retention",
        20,
        uses_spaced_repetition=True,
    ),
    StudyMethodInfo(
        StudyMethod.feynman,
        "Feynman Technique",
        "Explain concepts in simple terms to identify knowledge gaps",
        25,
    ),
    StudyMethodInfo(
        StudyMethod.quiz,
        "Practice Quiz",
        "Test your knowledge with generated questions",
        20,
    ),
    StudyMethodInfo(
        StudyMethod.sleep_review,
        "Sleep Review",
        "15-20min review before sleep for better memory consolidation",
        20,
    ),
)


def get_method_info(method: StudyMethod) -> StudyMethodInfo:
    for info in STUDY_METHODS:
        if info.method is method:
            return info
    raise KeyError(method)


def _aware(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def generate_study_plan(
    materials: Sequence[Material],
    class_mastery: Mapping[str, int],
    daily_goal_minutes: int,
) -> list[Material]:
    """Pick the materials to study today.

    Only classes below the mastery threshold are considered (a class with no
    recorded sessions has mastery 0). Least recently reviewed materials come
    first, harder ones break ties, and the list is capped at roughly one
    material per 20 minutes of the daily goal.
    """
    candidates = [
        m for m in materials if class_mastery.get(m.class_id, 0) < MASTERY_FOCUS_THRESHOLD
    ]
    candidates.sort(
        key=lambda m: (
            _aware(m.last_reviewed) if m.last_reviewed else _NEVER,
            -_DIFFICULTY_WEIGHT[m.difficulty],
        )
    )
    limit = math.ceil(max(0, daily_goal_minutes) / MINUTES_PER_MATERIAL)
    return candidates[:limit]


def should_show_reminder(
    last_study: datetime | None,
    reminder_time: time,
    now: datetime,
    tz: tzinfo = timezone.utc,
) -> bool:
    """True when nothing was studied today and the reminder time has passed."""
    today = local_day(now, tz)
    if last_study is not None and local_day(last_study, tz) >= today:
        return False
    local_now = _aware(now).astimezone(tz)
    return local_now.time().replace(tzinfo=None) >= reminder_time
