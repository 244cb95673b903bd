from datetime import datetime

from pydantic import BaseModel, Field

from .common import Difficulty, MaterialKind


class ClassCreateRequest(BaseModel):
    """Request model for creating a class (subject).

    授業・科目を作成するためのリクエスト。色は UI 表示用の任意文字列。
    """

    name: str = Field(min_length=1, max_length=120)
    description: str | None = Field(default=None, max_length=2000)
    color: str = Field(default="#10B981", min_length=1, max_length=32)


class ClassResponse(BaseModel):
    id: str
    name: str
    description: str | None = None
    color: str
    created_at: datetime


class ClassListResponse(BaseModel):
    items: list[ClassResponse]


class MaterialCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(default="", max_length=200_000)
    kind: MaterialKind = MaterialKind.note
    difficulty: Difficulty = Difficulty.medium
    tags: list[str] = Field(default_factory=list)


class MaterialResponse(BaseModel):
    id: str
    class_id: str
    title: str
    content: str
    kind: MaterialKind
    difficulty: Difficulty
    tags: list[str] = []
    last_reviewed: datetime | None = None
    created_at: datetime


class MaterialListResponse(BaseModel):
    items: list[MaterialResponse]
