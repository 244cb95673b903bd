from datetime import datetime, time

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..config import settings
from ..dependencies import StudyStore, get_now, get_store
from ..models.progress import (
    DailyMinutes,
    MethodStatsResponse,
    ProgressResponse,
    ReminderResponse,
    SessionCreateRequest,
    SessionListResponse,
    SessionResponse,
    StudyMethodResponse,
    StudyPlanResponse,
)
from ..planning import STUDY_METHODS, generate_study_plan, should_show_reminder
from ..progress import (
    calculate_mastery_level,
    calculate_streak,
    class_mastery,
    local_day,
    method_session_stats,
    method_success_rates,
    weekly_study_minutes,
)
from ..records import StudySession
from .classes import material_to_response

router = APIRouter(tags=["progress"])


def session_to_response(session: StudySession) -> SessionResponse:
    return SessionResponse(
        id=session.id,
        class_id=session.class_id,
        material_id=session.material_id,
        method=session.method,
        started_at=session.started_at,
        duration_minutes=session.duration_minutes,
        score=session.score,
        notes=session.notes,
    )


def _activity_timestamps(store: StudyStore) -> list[datetime]:
    """Study sessions and individual reviews both count as activity on their day."""
    stamps = [s.started_at for s in store.list_sessions()]
    stamps.extend(r.reviewed_at for r in store.list_reviews())
    return stamps


@router.post(
    "/sessions",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Log a finished study session",
)
def create_session(
    req: SessionCreateRequest,
    store: StudyStore = Depends(get_store),
    now: datetime = Depends(get_now),
) -> SessionResponse:
    session = store.log_session(
        class_id=req.class_id,
        material_id=req.material_id,
        method=req.method,
        started_at=req.started_at or now,
        duration_minutes=req.duration_minutes,
        score=req.score,
        notes=req.notes,
    )
    if session is None:
        raise HTTPException(status_code=404, detail="class or material not found")
    return session_to_response(session)


@router.get("/sessions", response_model=SessionListResponse, summary="List study sessions")
def list_sessions(
    class_id: str | None = None,
    store: StudyStore = Depends(get_store),
) -> SessionListResponse:
    return SessionListResponse(items=[session_to_response(s) for s in store.list_sessions(class_id=class_id)])


@router.get("/progress", response_model=ProgressResponse, summary="Progress overview")
def progress_overview(
    store: StudyStore = Depends(get_store),
    now: datetime = Depends(get_now),
) -> ProgressResponse:
    """Aggregate streak, weekly minutes, per-method stats and mastery.

    - streak_days: 今日から遡って活動（セッション/レビュー）がある連続日数
    - reviewed_today: 設定タイムゾーンでの当日 00:00 以降のレビュー件数
    """
    tz = settings.tz
    today = local_day(now, tz)
    sessions = store.list_sessions()
    reviews = store.list_reviews()

    activity = [s.started_at for s in sessions] + [r.reviewed_at for r in reviews]
    streak = calculate_streak(activity, today, tz)
    total_minutes = sum(s.duration_minutes for s in sessions)
    average_score = (sum(s.score or 0 for s in sessions) / len(sessions)) if sessions else 0.0
    day_start = datetime.combine(today, time.min, tzinfo=tz)
    due_now, reviewed_today = store.get_review_counts(now=now, day_start=day_start)

    return ProgressResponse(
        streak_days=streak,
        total_minutes=total_minutes,
        sessions_completed=len(sessions),
        due_now=due_now,
        reviewed_today=reviewed_today,
        mastery_level=calculate_mastery_level(total_minutes, len(sessions), average_score, streak),
        class_mastery=class_mastery(sessions, today, tz),
        weekly_minutes=[DailyMinutes(day=d, minutes=m) for d, m in weekly_study_minutes(sessions, today, tz)],
        method_stats={
            method: MethodStatsResponse(
                sessions=stats.sessions,
                total_minutes=stats.total_minutes,
                average_score=stats.average_score,
            )
            for method, stats in method_session_stats(sessions).items()
        },
        success_rates=method_success_rates(reviews),
    )


@router.get("/plan", response_model=StudyPlanResponse, summary="Materials to study today")
def study_plan(
    daily_goal_minutes: int | None = Query(default=None, ge=1, le=24 * 60),
    store: StudyStore = Depends(get_store),
    now: datetime = Depends(get_now),
) -> StudyPlanResponse:
    goal = daily_goal_minutes or settings.daily_goal_minutes
    tz = settings.tz
    mastery = class_mastery(store.list_sessions(), local_day(now, tz), tz)
    items = generate_study_plan(store.list_materials(), mastery, goal)
    return StudyPlanResponse(daily_goal_minutes=goal, items=[material_to_response(m) for m in items])


@router.get("/methods", response_model=list[StudyMethodResponse], summary="Study-method catalog")
def study_methods() -> list[StudyMethodResponse]:
    return [
        StudyMethodResponse(
            method=info.method,
            name=info.name,
            description=info.description,
            estimated_minutes=info.estimated_minutes,
            uses_spaced_repetition=info.uses_spaced_repetition,
        )
        for info in STUDY_METHODS
    ]


@router.get("/reminder", response_model=ReminderResponse, summary="Whether to show the study reminder now")
def reminder(
    store: StudyStore = Depends(get_store),
    now: datetime = Depends(get_now),
) -> ReminderResponse:
    activity = _activity_timestamps(store)
    last_study = max(activity) if activity else None
    show = should_show_reminder(last_study, settings.reminder_clock, now, settings.tz)
    return ReminderResponse(show=show, reminder_time=settings.reminder_time, last_study=last_study)
