"""Plain records returned by the store and folded by the reporting helpers.

ストア層が返す行オブジェクト。API 層ではここから Pydantic モデルへ詰め替える。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .models.common import Difficulty, MaterialKind, StudyMethod
from .srs import Grade, LearningItem


@dataclass
class StudyClass:
    id: str
    name: str
    color: str
    created_at: datetime
    description: str | None = None


@dataclass
class Material:
    id: str
    class_id: str
    title: str
    content: str
    kind: MaterialKind
    difficulty: Difficulty
    created_at: datetime
    tags: list[str] = field(default_factory=list)
    last_reviewed: datetime | None = None


@dataclass
class Flashcard:
    """A front/back card whose scheduling state lives in ``item``.

    ``kind`` is ``flashcard`` for authored cards and ``practice`` for the
    per-material spaced-practice item.
    """

    material_id: str
    front: str
    back: str
    item: LearningItem
    created_at: datetime
    kind: str = "flashcard"

    @property
    def id(self) -> str:
        return self.item.id


@dataclass
class ReviewRecord:
    card_id: str
    method: StudyMethod
    grade: Grade
    reviewed_at: datetime
    interval_days: int
    ease_factor: float

    @property
    def correct(self) -> bool:
        return self.grade.is_correct


@dataclass
class StudySession:
    id: str
    class_id: str
    method: StudyMethod
    started_at: datetime
    duration_minutes: int
    material_id: str | None = None
    score: int | None = None
    notes: str | None = None
