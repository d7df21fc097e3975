"""
Exercise catalog for session-planner.

Each exercise is described by a CatalogExercise loaded from YAML.
"""

from .base import CatalogExercise
from .registry import EXERCISE_REGISTRY, find_exercise, get_exercise, merged_catalog

__all__ = [
    "CatalogExercise",
    "EXERCISE_REGISTRY",
    "find_exercise",
    "get_exercise",
    "merged_catalog",
]
