from datetime import date, datetime

from pydantic import BaseModel, Field

from ..srs import Grade
from .common import StudyMethod
from .study_class import MaterialResponse


class SessionCreateRequest(BaseModel):
    """Request model for logging a finished study session.

    学習セッションの記録。score は 0〜100 の任意値。
    """

    class_id: str = Field(min_length=1)
    material_id: str | None = None
    method: StudyMethod
    started_at: datetime | None = None
    duration_minutes: int = Field(ge=0, le=24 * 60)
    score: int | None = Field(default=None, ge=0, le=100)
    notes: str | None = Field(default=None, max_length=4000)


class FlashcardSessionRequest(BaseModel):
    """Completion of a flashcard run over one material.

    grades は出題順の自己評価。セッションの score はこの並びから算出する。
    """

    grades: list[Grade] = Field(min_length=1)
    duration_minutes: int = Field(default=0, ge=0, le=24 * 60)
    started_at: datetime | None = None
    notes: str | None = Field(default=None, max_length=4000)


class SessionResponse(BaseModel):
    id: str
    class_id: str
    material_id: str | None = None
    method: StudyMethod
    started_at: datetime
    duration_minutes: int
    score: int | None = None
    notes: str | None = None


class SessionListResponse(BaseModel):
    items: list[SessionResponse]


class MethodStatsResponse(BaseModel):
    sessions: int
    total_minutes: int
    average_score: int


class DailyMinutes(BaseModel):
    day: date
    minutes: int


class ProgressResponse(BaseModel):
    """進捗の見える化 用の統計レスポンス。

    - streak_days: 今日から遡った連続学習日数
    - due_now / reviewed_today: 出題残数と本日のレビュー件数
    - success_rates: 学習法ごとの正答率（レビューが無い学習法は含まない）
    """

    streak_days: int
    total_minutes: int
    sessions_completed: int
    due_now: int
    reviewed_today: int
    mastery_level: int
    class_mastery: dict[str, int]
    weekly_minutes: list[DailyMinutes]
    method_stats: dict[StudyMethod, MethodStatsResponse]
    success_rates: dict[StudyMethod, float]


class StudyPlanResponse(BaseModel):
    daily_goal_minutes: int
    items: list[MaterialResponse]


class StudyMethodResponse(BaseModel):
    method: StudyMethod
    name: str
    description: str
    estimated_minutes: int
    uses_spaced_repetition: bool


class ReminderResponse(BaseModel):
    show: bool
    reminder_time: str
    last_study: datetime | None = None
