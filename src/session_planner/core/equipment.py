"""
Equipment availability filter.

User equipment semantics
------------------------
  None       → unrestricted (full gym); everything matches
  []         → bodyweight only; anything that needs equipment is rejected
  [items...] → every required item must be available

Matching is case-insensitive with a substring fallback either way, so
"Dumbbells" is satisfied by "Adjustable Dumbbells" and vice versa.  User
items may be plain strings or mappings with a ``name`` key.

An exercise with no equipment requirement always matches.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

from .exercises.base import CatalogExercise

UserEquipment = Sequence[str | Mapping[str, Any]] | None


# ---------------------------------------------------------------------------
# Presets offered by `session-planner init --preset`
# equipment = None means unrestricted access
# ---------------------------------------------------------------------------

EQUIPMENT_PRESETS: dict[str, dict[str, Any]] = {
    "bodyweight": {
        "label": "Bodyweight only",
        "equipment": [],
    },
    "free-weights": {
        "label": "Dumbbells, kettlebells and resistance bands",
        "equipment": [
            "Dumbbells",
            "Kettlebells",
            "Medicine Balls",
            "Handle Bands",
            "Mini Loop Bands",
            "Loop Bands",
        ],
    },
    "home-gym": {
        "label": "Free weights, pull-up bar and bench",
        "equipment": [
            "Dumbbells",
            "Kettlebells",
            "Medicine Balls",
            "Pull Up Bar",
            "Flat Bench",
            "Handle Bands",
            "Mini Loop Bands",
            "Loop Bands",
        ],
    },
    "full-gym": {
        "label": "Complete gym",
        "equipment": None,
    },
}


def normalize_equipment_name(name: str) -> str:
    """Lowercase and strip an equipment name for comparison."""
    return name.strip().lower()


def user_equipment_names(user_equipment: Iterable[str | Mapping[str, Any]]) -> list[str]:
    """
    Normalized names from a user equipment list.

    Items that are neither strings nor mappings with a string ``name`` are
    ignored.
    """
    names: list[str] = []
    for item in user_equipment:
        if isinstance(item, str):
            name = item
        elif isinstance(item, Mapping) and isinstance(item.get("name"), str):
            name = item["name"]
        else:
            continue
        normalized = normalize_equipment_name(name)
        if normalized:
            names.append(normalized)
    return names


def matches(exercise_equipment: Sequence[str] | None, user_equipment: UserEquipment) -> bool:
    """
    True when the user can perform an exercise with these requirements.

    Args:
        exercise_equipment: Items the exercise needs (empty = bodyweight)
        user_equipment: Items the user has (see module docstring)

    Returns:
        Whether every requirement is satisfied
    """
    if not exercise_equipment:
        return True
    if user_equipment is None:
        return True
    if len(user_equipment) == 0:
        return False

    available = user_equipment_names(user_equipment)
    for required in (normalize_equipment_name(e) for e in exercise_equipment):
        if not required:
            continue
        if required in available:
            continue
        if not any(required in have or have in required for have in available):
            return False
    return True


def filter_exercises(
    catalog: Iterable[CatalogExercise], user_equipment: UserEquipment
) -> list[CatalogExercise]:
    """Catalog entries the user can perform, in catalog order."""
    return [ex for ex in catalog if matches(ex.equipment_needed, user_equipment)]


def preset_equipment(preset: str) -> list[str] | None:
    """
    Equipment list for a named preset.

    Raises:
        ValueError: If the preset is unknown
    """
    if preset not in EQUIPMENT_PRESETS:
        valid = ", ".join(EQUIPMENT_PRESETS)
        raise ValueError(f"Unknown equipment preset '{preset}'. Valid presets: {valid}")
    equipment = EQUIPMENT_PRESETS[preset]["equipment"]
    return list(equipment) if equipment is not None else None
