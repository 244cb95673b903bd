from datetime import datetime, time, timedelta, timezone

import pytest

from studyhub.models.common import Difficulty, MaterialKind, StudyMethod
from studyhub.planning import (
    STUDY_METHODS,
    generate_study_plan,
    get_method_info,
    should_show_reminder,
)
from studyhub.records import Material

NOW = datetime(2024, 1, 10, 21, 0, tzinfo=timezone.utc)


def _material(mid, class_id="cls:a", difficulty=Difficulty.medium, last_reviewed=None):
    return Material(
        id=mid,
        class_id=class_id,
        title=mid,
        content="",
        kind=MaterialKind.note,
        difficulty=difficulty,
        created_at=NOW - timedelta(days=30),
        last_reviewed=last_reviewed,
    )


def test_plan_skips_mastered_classes():
    materials = [_material("m1", "cls:a"), _material("m2", "cls:b"), _material("m3", "cls:c")]

    plan = generate_study_plan(materials, {"cls:a": 80, "cls:b": 79}, daily_goal_minutes=60)

    assert [m.id for m in plan] == ["m2", "m3"]


def test_plan_orders_by_staleness_then_difficulty():
    materials = [
        _material("recent", last_reviewed=NOW - timedelta(days=1)),
        _material("old", last_reviewed=NOW - timedelta(days=5)),
        _material("never-easy", difficulty=Difficulty.easy),
        _material("never-hard", difficulty=Difficulty.hard),
    ]

    plan = generate_study_plan(materials, {}, daily_goal_minutes=120)

    assert [m.id for m in plan] == ["never-hard", "never-easy", "old", "recent"]


@pytest.mark.parametrize(("goal", "expected"), [(60, 3), (50, 3), (20, 1), (1, 1), (0, 0)])
def test_plan_size_follows_daily_goal(goal, expected):
    materials = [_material(f"m{i}") for i in range(10)]
    assert len(generate_study_plan(materials, {}, daily_goal_minutes=goal)) == expected


def test_plan_handles_naive_last_reviewed():
    materials = [
        _material("aware", last_reviewed=NOW - timedelta(days=2)),
        _material("naive", last_reviewed=datetime(2024, 1, 1, 12, 0)),
    ]

    plan = generate_study_plan(materials, {}, daily_goal_minutes=40)

    assert [m.id for m in plan] == ["naive", "aware"]


def test_reminder_shown_after_time_without_study_today():
    last = NOW - timedelta(days=1)
    assert should_show_reminder(last, time(20, 0), NOW)
    assert should_show_reminder(None, time(20, 0), NOW)


def test_reminder_hidden_before_reminder_time():
    assert not should_show_reminder(None, time(21, 30), NOW)


def test_reminder_hidden_when_studied_today():
    assert not should_show_reminder(NOW - timedelta(hours=2), time(20, 0), NOW)


def test_reminder_uses_local_time_zone():
    jst = timezone(timedelta(hours=9))
    now = datetime(2024, 1, 10, 2, 0, tzinfo=timezone.utc)  # 11:00 JST
    last = datetime(2024, 1, 9, 14, 0, tzinfo=timezone.utc)  # 23:00 JST on the 9th

    assert should_show_reminder(last, time(10, 0), now, jst)
    assert not should_show_reminder(last, time(10, 0), now, timezone.utc)


def test_method_catalog():
    assert [info.method for info in STUDY_METHODS] == list(StudyMethod)
    assert {info.method for info in STUDY_METHODS if info.uses_spaced_repetition} == {
        StudyMethod.flashcards,
        StudyMethod.spaced_practice,
    }
    assert get_method_info(StudyMethod.feynman).estimated_minutes == 25
