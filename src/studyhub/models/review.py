from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from ..srs import DEFAULT_EASE_FACTOR, DEFAULT_INTERVAL_DAYS, MIN_EASE_FACTOR, Grade
from .progress import SessionResponse


class CardCreateRequest(BaseModel):
    front: str = Field(min_length=1, max_length=2000)
    back: str = Field(min_length=1, max_length=8000)


class SchedulingState(BaseModel):
    """Spaced-repetition state of a card as exposed over the API.

    復習スケジュールの状態。success_rate は correct_count / review_count。
    """

    interval_days: int = Field(ge=1)
    ease_factor: float = Field(ge=MIN_EASE_FACTOR)
    last_reviewed: datetime | None = None
    next_review: datetime | None = None
    review_count: int = Field(ge=0)
    correct_count: int = Field(ge=0)
    success_rate: float


class CardResponse(BaseModel):
    id: str
    material_id: str
    kind: Literal["flashcard", "practice"]
    front: str
    back: str
    scheduling: SchedulingState


class CardListResponse(BaseModel):
    items: list[CardResponse]


class ReviewGradeRequest(BaseModel):
    """Request model for submitting a review grade.

    答えを見た直後の自己評価（again/hard/good/easy）をサーバへ送る。
    学習法の記録はカード種別（flashcard / practice）からサーバ側で決める。
    """

    card_id: str = Field(min_length=1)
    grade: Grade


class PracticeGradeRequest(BaseModel):
    """One spaced-practice round over a whole material.

    The grade reschedules the material and is also logged as a study session
    scored with the grade's percentage.
    """

    grade: Grade
    duration_minutes: int = Field(default=0, ge=0, le=24 * 60)
    notes: str | None = Field(default=None, max_length=4000)


class ReviewGradeResponse(BaseModel):
    ok: bool
    card: CardResponse
    session: SessionResponse | None = None


class ReviewPreviewRequest(BaseModel):
    """Stateless scheduling request for an ad-hoc item state."""

    interval_days: int = Field(default=DEFAULT_INTERVAL_DAYS, ge=1)
    ease_factor: float = Field(default=DEFAULT_EASE_FACTOR, ge=MIN_EASE_FACTOR)
    review_count: int = Field(default=0, ge=0)
    correct_count: int = Field(default=0, ge=0)
    grade: Grade
    now: datetime | None = None

    @model_validator(mode="after")
    def _check_counts(self) -> "ReviewPreviewRequest":
        if self.correct_count > self.review_count:
            raise ValueError("correct_count must not exceed review_count")
        return self


class ReviewPreviewResponse(BaseModel):
    grade: Grade
    scheduling: SchedulingState


class DueCardsResponse(BaseModel):
    items: list[CardResponse]
