"""
Exercise registry.

The shared catalog is loaded from per-exercise YAML files in the bundled
``src/session_planner/exercises/`` directory at import time.  If nothing
can be loaded a RuntimeError is raised: the planner cannot build a
candidate pool without a catalog.

User overrides: place matching files in ``~/.session-planner/exercises/``.
"""

from typing import Iterable

from .base import CatalogExercise


def _build_registry() -> dict[str, CatalogExercise]:
    from .loader import load_exercises_from_yaml

    loaded = load_exercises_from_yaml()
    if not loaded:
        raise RuntimeError(
            "session-planner: no exercise definitions could be loaded from YAML. "
            "Check that src/session_planner/exercises/*.yaml files are present and valid."
        )
    return loaded


EXERCISE_REGISTRY: dict[str, CatalogExercise] = _build_registry()


def get_exercise(name: str) -> CatalogExercise:
    """
    Return the catalog entry for the given exercise name (case-insensitive).

    Raises:
        ValueError: If the name is not in the registry
    """
    ex = find_exercise(name, EXERCISE_REGISTRY.values())
    if ex is None:
        valid = ", ".join(e.name for e in EXERCISE_REGISTRY.values())
        raise ValueError(f"Unknown exercise '{name}'. Known exercises: {valid}")
    return ex


def find_exercise(name: str, catalog: Iterable[CatalogExercise]) -> CatalogExercise | None:
    """Look up *name* (or an alias) in any catalog; None when absent."""
    for ex in catalog:
        if ex.matches_name(name):
            return ex
    return None


def merged_catalog(custom: Iterable[CatalogExercise] = ()) -> list[CatalogExercise]:
    """
    Shared catalog plus user-authored custom exercises.

    A custom exercise with the same name as a shared one replaces it.
    """
    merged = dict(EXERCISE_REGISTRY)
    for ex in custom:
        merged[ex.name.lower()] = ex
    return list(merged.values())
