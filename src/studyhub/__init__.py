"""StudyHub: study management API with spaced-repetition flashcards."""

from .srs import Grade, LearningItem, schedule_review

__all__ = ["Grade", "LearningItem", "schedule_review"]
