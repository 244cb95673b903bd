from __future__ import annotations

from enum import Enum


class StudyMethod(str, Enum):
    """Study technique a session or review was carried out with."""

    sq3r = "sq3r"
    flashcards = "flashcards"
    spaced_practice = "spaced-practice"
    feynman = "feynman"
    quiz = "quiz"
    sleep_review = "sleep-review"


class Difficulty(str, Enum):
    """Author-assigned difficulty of a material."""

    easy = "easy"
    medium = "medium"
    hard = "hard"


class MaterialKind(str, Enum):
    note = "note"
    summary = "summary"
    flashcard = "flashcard"
    quiz = "quiz"
