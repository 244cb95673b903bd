from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status

from ..config import settings
from ..dependencies import StudyStore, get_now, get_store
from ..metrics import registry
from ..models.common import StudyMethod
from ..models.progress import FlashcardSessionRequest, SessionResponse
from ..models.review import (
    CardCreateRequest,
    CardListResponse,
    CardResponse,
    DueCardsResponse,
    PracticeGradeRequest,
    ReviewGradeRequest,
    ReviewGradeResponse,
    ReviewPreviewRequest,
    ReviewPreviewResponse,
    SchedulingState,
)
from ..records import Flashcard
from ..srs import LearningItem, flashcard_session_score, schedule_review
from .progress import session_to_response

router = APIRouter(tags=["review"])


def scheduling_state(item: LearningItem) -> SchedulingState:
    return SchedulingState(
        interval_days=item.interval_days,
        ease_factor=item.ease_factor,
        last_reviewed=item.last_reviewed,
        next_review=item.next_review,
        review_count=item.review_count,
        correct_count=item.correct_count,
        success_rate=item.success_rate,
    )


def card_to_response(card: Flashcard) -> CardResponse:
    return CardResponse(
        id=card.id,
        material_id=card.material_id,
        kind=card.kind,
        front=card.front,
        back=card.back,
        scheduling=scheduling_state(card.item),
    )


@router.get(
    "/materials/{material_id}/cards",
    response_model=CardListResponse,
    summary="List flashcards of a material",
)
def list_cards(material_id: str, store: StudyStore = Depends(get_store)) -> CardListResponse:
    if store.get_material(material_id) is None:
        raise HTTPException(status_code=404, detail="material not found")
    return CardListResponse(items=[card_to_response(c) for c in store.list_cards(material_id)])


@router.post(
    "/materials/{material_id}/cards",
    response_model=CardResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Author a flashcard (due immediately)",
)
def create_card(
    material_id: str,
    req: CardCreateRequest,
    store: StudyStore = Depends(get_store),
    now: datetime = Depends(get_now),
) -> CardResponse:
    card = store.create_card(material_id=material_id, front=req.front, back=req.back, now=now)
    if card is None:
        raise HTTPException(status_code=404, detail="material not found")
    return card_to_response(card)


@router.post(
    "/materials/{material_id}/practice",
    response_model=ReviewGradeResponse,
    summary="Grade a spaced-practice review of a whole material",
)
def practice_material(
    material_id: str,
    req: PracticeGradeRequest,
    store: StudyStore = Depends(get_store),
    now: datetime = Depends(get_now),
) -> ReviewGradeResponse:
    """Grade the material itself and log the round as a spaced-practice session.

    The practice item is created on first use. The session score is the
    grade's percentage (again 0, hard 25, good 75, easy 100).
    """
    material = store.get_material(material_id)
    card = store.ensure_practice_card(material_id=material_id, now=now) if material else None
    if material is None or card is None:
        raise HTTPException(status_code=404, detail="material not found")
    updated = store.grade_card(card.id, req.grade, now=now)
    if updated is None:
        raise HTTPException(status_code=500, detail="failed to grade practice item")
    registry.record_review(req.grade.value)
    session = store.log_session(
        class_id=material.class_id,
        material_id=material.id,
        method=StudyMethod.spaced_practice,
        started_at=now,
        duration_minutes=req.duration_minutes,
        score=req.grade.score,
        notes=req.notes,
    )
    return ReviewGradeResponse(
        ok=True,
        card=card_to_response(updated),
        session=session_to_response(session) if session else None,
    )


@router.post(
    "/materials/{material_id}/flashcard-session",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Log a completed flashcard run scored from its grades",
)
def complete_flashcard_session(
    material_id: str,
    req: FlashcardSessionRequest,
    store: StudyStore = Depends(get_store),
    now: datetime = Depends(get_now),
) -> SessionResponse:
    """Record the run as a flashcards session; per-card grading goes through /review/grade."""
    material = store.get_material(material_id)
    if material is None:
        raise HTTPException(status_code=404, detail="material not found")
    session = store.log_session(
        class_id=material.class_id,
        material_id=material.id,
        method=StudyMethod.flashcards,
        started_at=req.started_at or now,
        duration_minutes=req.duration_minutes,
        score=flashcard_session_score(req.grades),
        notes=req.notes,
    )
    if session is None:
        raise HTTPException(status_code=404, detail="material not found")
    return session_to_response(session)


@router.get("/review/due", response_model=DueCardsResponse, summary="Cards due for review now")
def review_due(
    limit: int | None = None,
    store: StudyStore = Depends(get_store),
    now: datetime = Depends(get_now),
) -> DueCardsResponse:
    capped = settings.review_max_due if limit is None else max(1, min(limit, settings.review_max_due))
    items = store.get_due(now=now, limit=capped)
    return DueCardsResponse(items=[card_to_response(c) for c in items])


@router.post("/review/grade", response_model=ReviewGradeResponse, summary="Grade a card and reschedule it")
def review_grade(
    req: ReviewGradeRequest,
    store: StudyStore = Depends(get_store),
    now: datetime = Depends(get_now),
) -> ReviewGradeResponse:
    updated = store.grade_card(req.card_id, req.grade, now=now)
    if updated is None:
        raise HTTPException(status_code=404, detail="card not found")
    registry.record_review(req.grade.value)
    return ReviewGradeResponse(ok=True, card=card_to_response(updated))


@router.post(
    "/review/preview",
    response_model=ReviewPreviewResponse,
    summary="Compute the next scheduling state without persisting anything",
)
def review_preview(
    req: ReviewPreviewRequest,
    now: datetime = Depends(get_now),
) -> ReviewPreviewResponse:
    item = LearningItem(
        id="preview",
        interval_days=req.interval_days,
        ease_factor=req.ease_factor,
        review_count=req.review_count,
        correct_count=req.correct_count,
    )
    updated = schedule_review(item, req.grade, req.now or now)
    return ReviewPreviewResponse(grade=req.grade, scheduling=scheduling_state(updated))
