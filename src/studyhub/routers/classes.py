from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status

from ..dependencies import StudyStore, get_now, get_store
from ..models.study_class import (
    ClassCreateRequest,
    ClassListResponse,
    ClassResponse,
    MaterialCreateRequest,
    MaterialListResponse,
    MaterialResponse,
)
from ..records import Material, StudyClass

router = APIRouter(tags=["classes"])


def class_to_response(study_class: StudyClass) -> ClassResponse:
    return ClassResponse(
        id=study_class.id,
        name=study_class.name,
        description=study_class.description,
        color=study_class.color,
        created_at=study_class.created_at,
    )


def material_to_response(material: Material) -> MaterialResponse:
    return MaterialResponse(
        id=material.id,
        class_id=material.class_id,
        title=material.title,
        content=material.content,
        kind=material.kind,
        difficulty=material.difficulty,
        tags=material.tags,
        last_reviewed=material.last_reviewed,
        created_at=material.created_at,
    )


@router.get("/classes", response_model=ClassListResponse, summary="List classes")
def list_classes(store: StudyStore = Depends(get_store)) -> ClassListResponse:
    return ClassListResponse(items=[class_to_response(c) for c in store.list_classes()])


@router.post(
    "/classes",
    response_model=ClassResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a class",
)
def create_class(
    req: ClassCreateRequest,
    store: StudyStore = Depends(get_store),
    now: datetime = Depends(get_now),
) -> ClassResponse:
    created = store.create_class(
        name=req.name.strip(), color=req.color, description=req.description, now=now
    )
    return class_to_response(created)


@router.get("/classes/{class_id}", response_model=ClassResponse, summary="Get a class")
def get_class(class_id: str, store: StudyStore = Depends(get_store)) -> ClassResponse:
    study_class = store.get_class(class_id)
    if study_class is None:
        raise HTTPException(status_code=404, detail="class not found")
    return class_to_response(study_class)


@router.delete(
    "/classes/{class_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a class with its materials, cards and sessions",
)
def delete_class(class_id: str, store: StudyStore = Depends(get_store)) -> None:
    if not store.delete_class(class_id):
        raise HTTPException(status_code=404, detail="class not found")


@router.get(
    "/classes/{class_id}/materials",
    response_model=MaterialListResponse,
    summary="List materials of a class",
)
def list_materials(class_id: str, store: StudyStore = Depends(get_store)) -> MaterialListResponse:
    if store.get_class(class_id) is None:
        raise HTTPException(status_code=404, detail="class not found")
    items = store.list_materials(class_id=class_id)
    return MaterialListResponse(items=[material_to_response(m) for m in items])


@router.post(
    "/classes/{class_id}/materials",
    response_model=MaterialResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a material to a class",
)
def create_material(
    class_id: str,
    req: MaterialCreateRequest,
    store: StudyStore = Depends(get_store),
    now: datetime = Depends(get_now),
) -> MaterialResponse:
    material = store.create_material(
        class_id=class_id,
        title=req.title.strip(),
        content=req.content,
        kind=req.kind,
        difficulty=req.difficulty,
        tags=[t.strip() for t in req.tags if t.strip()],
        now=now,
    )
    if material is None:
        raise HTTPException(status_code=404, detail="class not found")
    return material_to_response(material)


@router.delete(
    "/materials/{material_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a material with its cards",
)
def delete_material(material_id: str, store: StudyStore = Depends(get_store)) -> None:
    if not store.delete_material(material_id):
        raise HTTPException(status_code=404, detail="material not found")
