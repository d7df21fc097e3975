"""
YAML → CatalogExercise loader.

Loads exercise definitions from individual YAML files in the bundled
``src/session_planner/exercises/`` directory.  Each file (e.g.
bench_press.yaml) contains a flat definition matching the CatalogExercise
schema.

User overrides: place matching files in ``~/.session-planner/exercises/``.
A user file is deep-merged over the bundled definition, so only changed
keys need to be listed.  A user file whose stem does not match any bundled
file is treated as a new exercise and added to the catalog.

Usage (internal, called by registry.py):
    from .loader import load_exercises_from_yaml
    exercises = load_exercises_from_yaml()   # dict or None on failure
"""

from __future__ import annotations

import warnings
from pathlib import Path
from typing import Any

from ..engine.config_loader import _merge_sections, _read_mapping, get_config_home
from .base import CatalogExercise

_REQUIRED_EXERCISE_FIELDS: frozenset[str] = frozenset({"name"})


def _str_tuple(value: Any, field_name: str) -> tuple[str, ...]:
    """Coerce a YAML list (or a single string) to a tuple of stripped strings."""
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"{field_name} must be a list of strings")
    return tuple(str(v).strip() for v in value if str(v).strip())


def _opt_float(value: Any) -> float | None:
    return float(value) if value is not None else None


def _opt_int(value: Any) -> int | None:
    return int(value) if value is not None else None


def _opt_bool(value: Any) -> bool | None:
    if value is None or isinstance(value, bool):
        return value
    raise ValueError(f"expected true or false, got {value!r}")


def exercise_from_dict(d: dict, *, is_custom: bool = False) -> CatalogExercise:
    """Convert a raw dict (from YAML or the data store) to a CatalogExercise.

    Raises ValueError if a required field is absent or a value is invalid.
    """
    missing = _REQUIRED_EXERCISE_FIELDS - set(d)
    if missing:
        raise ValueError(f"CatalogExercise missing fields: {sorted(missing)}")

    try:
        return CatalogExercise(
            name=str(d["name"]).strip(),
            is_custom=bool(d.get("is_custom", is_custom)),
            is_timed=bool(d.get("is_timed", False)),
            equipment_needed=_str_tuple(d.get("equipment_needed"), "equipment_needed"),
            muscle_groups=tuple(
                m.lower() for m in _str_tuple(d.get("muscle_groups"), "muscle_groups")
            ),
            difficulty=d.get("difficulty"),
            base_seconds_per_rep=_opt_float(d.get("base_seconds_per_rep")),
            tempo_category=d.get("tempo_category"),
            setup_buffer_sec=_opt_int(d.get("setup_buffer_sec")),
            is_unilateral=bool(d.get("is_unilateral", False)),
            bodyweight=_opt_bool(d.get("bodyweight")),
            load_category=d.get("load_category"),
            movement_pattern=d.get("movement_pattern"),
            tier=_opt_int(d.get("tier")),
            aliases=_str_tuple(d.get("aliases"), "aliases"),
        )
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{d.get('name', '?')}: {exc}") from exc


def exercise_to_dict(ex: CatalogExercise) -> dict[str, Any]:
    """Convert a CatalogExercise back to a plain dict (for custom exercise storage)."""
    return {
        "name": ex.name,
        "is_custom": ex.is_custom,
        "is_timed": ex.is_timed,
        "equipment_needed": list(ex.equipment_needed),
        "muscle_groups": list(ex.muscle_groups),
        "difficulty": ex.difficulty,
        "base_seconds_per_rep": ex.base_seconds_per_rep,
        "tempo_category": ex.tempo_category,
        "setup_buffer_sec": ex.setup_buffer_sec,
        "is_unilateral": ex.is_unilateral,
        "bodyweight": ex.bodyweight,
        "load_category": ex.load_category,
        "movement_pattern": ex.movement_pattern,
        "tier": ex.tier,
        "aliases": list(ex.aliases),
    }


def _get_bundled_exercises_dir() -> Path | None:
    """Return path to the bundled exercises/ data directory, or None if not found."""
    # loader.py lives at src/session_planner/core/exercises/loader.py
    # three levels up → src/session_planner/
    candidate = Path(__file__).parent.parent.parent / "exercises"
    return candidate if candidate.is_dir() else None


def _get_user_exercises_dir() -> Path | None:
    """Return ~/.session-planner/exercises/ if it exists, else None."""
    p = get_config_home() / "exercises"
    return p if p.is_dir() else None


def load_exercises_from_yaml() -> dict[str, CatalogExercise] | None:
    """Return {lowercase name: CatalogExercise} loaded from per-exercise YAML files.

    Loads each ``<exercise_id>.yaml`` from the bundled exercises/ directory.
    If a matching file exists in ``~/.session-planner/exercises/`` it is
    deep-merged over the bundled definition (user can override any field).
    User-only files (no bundled counterpart) are loaded as custom exercises.

    Returns None (rather than raising) so the registry can decide how to fail.
    """
    bundled_dir = _get_bundled_exercises_dir()
    user_dir = _get_user_exercises_dir()

    if bundled_dir is None and user_dir is None:
        return None

    result: dict[str, CatalogExercise] = {}

    stems: dict[str, Path] = {}
    if bundled_dir is not None:
        for p in sorted(bundled_dir.glob("*.yaml")):
            stems[p.stem] = p

    user_only: list[Path] = []
    if user_dir is not None:
        for p in sorted(user_dir.glob("*.yaml")):
            if p.stem not in stems:
                user_only.append(p)

    for stem, bundled_path in stems.items():
        raw = _read_mapping(bundled_path)
        if not raw:
            continue
        if user_dir is not None:
            user_path = user_dir / f"{stem}.yaml"
            if user_path.exists():
                user_raw = _read_mapping(user_path)
                if user_raw:
                    raw = _merge_sections(raw, user_raw)
        try:
            ex = exercise_from_dict(raw)
            result[ex.name.lower()] = ex
        except ValueError as exc:
            warnings.warn(
                f"session-planner: skipping exercise '{stem}' ({exc})",
                stacklevel=2,
            )

    for p in user_only:
        raw = _read_mapping(p)
        if not raw:
            continue
        try:
            ex = exercise_from_dict(raw, is_custom=True)
            result[ex.name.lower()] = ex
        except ValueError as exc:
            warnings.warn(
                f"session-planner: skipping user exercise '{p.stem}' ({exc})",
                stacklevel=2,
            )

    return result if result else None
