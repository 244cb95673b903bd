"""Spaced-repetition scheduling (SM-2 family).

Flashcards and the spaced-practice method both schedule their next review
through :func:`schedule_review`. The function is pure: the caller passes the
current time explicitly and receives a new :class:`LearningItem`.

復習間隔の計算はここに一本化する。ストアや API 層は結果を保存・表示するだけで、
間隔や ease の更新ロジックを持たない。
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum


MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5
DEFAULT_INTERVAL_DAYS = 1

_AGAIN_EASE_PENALTY = 0.2
_HARD_EASE_PENALTY = 0.15
_EASY_EASE_BONUS = 0.15
_HARD_INTERVAL_MULTIPLIER = 1.2
_EASY_INTERVAL_MULTIPLIER = 1.3


class Grade(str, Enum):
    """Self-reported recall quality, ordered from failed to effortless."""

    again = "again"
    hard = "hard"
    good = "good"
    easy = "easy"

    @property
    def rank(self) -> int:
        return _GRADE_ORDER.index(self)

    @property
    def is_correct(self) -> bool:
        return self is not Grade.again

    @property
    def points(self) -> int:
        """Flashcard session points (0..3)."""
        return self.rank

    @property
    def score(self) -> int:
        """Spaced-practice session score in percent."""
        return _GRADE_SCORES[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Grade):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Grade):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Grade):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Grade):
            return NotImplemented
        return self.rank >= other.rank


_GRADE_ORDER = (Grade.again, Grade.hard, Grade.good, Grade.easy)
_GRADE_SCORES = {Grade.again: 0, Grade.hard: 25, Grade.good: 75, Grade.easy: 100}


@dataclass(frozen=True)
class LearningItem:
    """Scheduling state of a single reviewable unit.

    The constructor rejects states that violate the scheduling invariants, so
    an instance that exists is always safe to pass to :func:`schedule_review`.
    """

    id: str
    interval_days: int = DEFAULT_INTERVAL_DAYS
    ease_factor: float = DEFAULT_EASE_FACTOR
    last_reviewed: datetime | None = None
    next_review: datetime | None = None
    review_count: int = 0
    correct_count: int = 0

    def __post_init__(self) -> None:
        if isinstance(self.interval_days, bool) or not isinstance(self.interval_days, int):
            raise ValueError(f"interval_days must be an integer, got {self.interval_days!r}")
        if self.interval_days < 1:
            raise ValueError(f"interval_days must be >= 1, got {self.interval_days}")
        if self.ease_factor < MIN_EASE_FACTOR:
            raise ValueError(f"ease_factor must be >= {MIN_EASE_FACTOR}, got {self.ease_factor}")
        if self.review_count < 0:
            raise ValueError(f"review_count must be >= 0, got {self.review_count}")
        if not 0 <= self.correct_count <= self.review_count:
            raise ValueError(
                f"correct_count must be within [0, review_count], got {self.correct_count}/{self.review_count}"
            )

    @property
    def success_rate(self) -> float:
        if self.review_count == 0:
            return 0.0
        return self.correct_count / self.review_count

    def is_due(self, now: datetime) -> bool:
        """Never-reviewed items are always due."""
        return self.next_review is None or self.next_review <= now


def round_half_up(value: float) -> int:
    """Round to the nearest integer with ties going up (2.5 -> 3).

    Python's built-in ``round`` uses banker's rounding, which would turn the
    first ``good`` review of a new card (1 * 2.5) into 2 days.
    """
    return int(math.floor(value + 0.5))


def next_ease_factor(ease: float, grade: Grade) -> float:
    if grade is Grade.again:
        return max(MIN_EASE_FACTOR, ease - _AGAIN_EASE_PENALTY)
    if grade is Grade.hard:
        return max(MIN_EASE_FACTOR, ease - _HARD_EASE_PENALTY)
    if grade is Grade.easy:
        return ease + _EASY_EASE_BONUS
    return ease


def next_interval_days(interval: int, ease: float, grade: Grade) -> int:
    """Compute the new interval from the current interval and pre-review ease."""
    if grade is Grade.again:
        return 1
    if grade is Grade.hard:
        raw = interval * _HARD_INTERVAL_MULTIPLIER
    elif grade is Grade.good:
        raw = interval * ease
    else:
        raw = interval * ease * _EASY_INTERVAL_MULTIPLIER
    return max(1, round_half_up(raw))


def schedule_review(item: LearningItem, grade: Grade, now: datetime) -> LearningItem:
    """Apply one completed review to ``item`` and return the updated state.

    - interval/ease follow the again/hard/good/easy table (ease floor 1.3)
    - ``next_review`` is ``now`` plus the new interval, so it is always in the future
    - ``review_count`` grows by one; ``correct_count`` only when the grade is not ``again``

    The input item is left untouched.
    """
    grade = Grade(grade)
    interval = next_interval_days(item.interval_days, item.ease_factor, grade)
    ease = next_ease_factor(item.ease_factor, grade)
    return replace(
        item,
        interval_days=interval,
        ease_factor=ease,
        last_reviewed=now,
        next_review=now + timedelta(days=interval),
        review_count=item.review_count + 1,
        correct_count=item.correct_count + (1 if grade.is_correct else 0),
    )


def flashcard_session_score(grades: list[Grade]) -> int:
    """Percentage score of a flashcard session (each card worth 3 points)."""
    if not grades:
        return 0
    earned = sum(Grade(g).points for g in grades)
    return round_half_up(earned / (len(grades) * 3) * 100)
