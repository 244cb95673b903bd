"""Router package exports."""

from . import classes, health, progress, review

__all__ = [
    "classes",
    "health",
    "progress",
    "review",
]
