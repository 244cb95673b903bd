"""Read-only progress statistics derived from review and session history.

Every helper here is a pure fold: it takes already-loaded records plus the
reference day, and never touches the store or the clock.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Iterable

from .models.common import StudyMethod
from .records import ReviewRecord, StudySession
from .srs import round_half_up


@dataclass
class MethodSessionStats:
    sessions: int
    total_minutes: int
    average_score: int


def local_day(ts: datetime, tz: tzinfo = timezone.utc) -> date:
    """Calendar day of ``ts`` in ``tz``; naive timestamps are taken as UTC."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(tz).date()


def calculate_streak(
    timestamps: Iterable[datetime],
    today: date,
    tz: tzinfo = timezone.utc,
) -> int:
    """Count consecutive study days ending at ``today``.

    Walks backward one day at a time and stops at the first day without any
    activity, so a history without an entry for ``today`` yields 0.
    """
    studied = {local_day(ts, tz) for ts in timestamps}
    streak = 0
    day = today
    while day in studied:
        streak += 1
        day -= timedelta(days=1)
    return streak


def method_success_rates(records: Iterable[ReviewRecord]) -> dict[StudyMethod, float]:
    """``correct / total`` per method; methods without reviews are omitted."""
    totals: dict[StudyMethod, int] = defaultdict(int)
    correct: dict[StudyMethod, int] = defaultdict(int)
    for record in records:
        totals[record.method] += 1
        if record.correct:
            correct[record.method] += 1
    return {method: correct[method] / total for method, total in totals.items()}


def weekly_study_minutes(
    sessions: Iterable[StudySession],
    today: date,
    tz: tzinfo = timezone.utc,
) -> list[tuple[date, int]]:
    """Minutes studied on each of the last seven days, oldest first."""
    days = [today - timedelta(days=offset) for offset in range(6, -1, -1)]
    minutes = {day: 0 for day in days}
    for session in sessions:
        day = local_day(session.started_at, tz)
        if day in minutes:
            minutes[day] += session.duration_minutes
    return [(day, minutes[day]) for day in days]


def method_session_stats(sessions: Iterable[StudySession]) -> dict[StudyMethod, MethodSessionStats]:
    """Per-method session count, total minutes and rounded average score.

    Sessions without a score count as 0 towards the average.
    """
    counts: dict[StudyMethod, int] = defaultdict(int)
    minutes: dict[StudyMethod, int] = defaultdict(int)
    scores: dict[StudyMethod, int] = defaultdict(int)
    for session in sessions:
        counts[session.method] += 1
        minutes[session.method] += session.duration_minutes
        scores[session.method] += session.score or 0
    return {
        method: MethodSessionStats(
            sessions=count,
            total_minutes=minutes[method],
            average_score=round_half_up(scores[method] / count),
        )
        for method, count in counts.items()
    }


def calculate_mastery_level(
    total_minutes: int,
    sessions_completed: int,
    average_score: float,
    streak_days: int,
) -> int:
    """Weighted 0-100 mastery estimate.

    time 20% (1000 min caps), sessions 20% (50 caps), score 40%, consistency 20% (30 days caps)
    """
    time_score = min(100.0, total_minutes / 1000 * 100)
    session_score = min(100.0, sessions_completed / 50 * 100)
    consistency_score = min(100.0, streak_days / 30 * 100)
    performance_score = max(0.0, min(100.0, float(average_score)))
    weighted = time_score * 0.2 + session_score * 0.2 + performance_score * 0.4 + consistency_score * 0.2
    return round_half_up(weighted)


def class_mastery(
    sessions: Iterable[StudySession],
    today: date,
    tz: tzinfo = timezone.utc,
) -> dict[str, int]:
    """Mastery level per class id, computed from that class's sessions only."""
    by_class: dict[str, list[StudySession]] = defaultdict(list)
    for session in sessions:
        by_class[session.class_id].append(session)
    result: dict[str, int] = {}
    for class_id, items in by_class.items():
        total = sum(s.duration_minutes for s in items)
        average = sum(s.score or 0 for s in items) / len(items)
        streak = calculate_streak((s.started_at for s in items), today, tz)
        result[class_id] = calculate_mastery_level(total, len(items), average, streak)
    return result
