"""
Name-based exercise classification.

Used only when a catalog entry does not state its classification
explicitly.  Every rule family is evaluated in full and the matches are
resolved afterwards, so the outcome never depends on the order in which
keywords are listed.

Known overlaps are reported, not hidden: a name such as "Leg Press"
matches both the lower-body keyword "leg" and the upper-body keyword
"press".  Such names get ``ambiguous`` set for the affected field and are
resolved with the long-standing precedence (lower body wins for load
category, compound wins for tier).  Product input is needed before that
precedence changes.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Sequence

from .exercises.base import CatalogExercise
from .models import WorkoutLogEntry

logger = logging.getLogger(__name__)

LOWER_BODY_KEYWORDS: tuple[str, ...] = ("squat", "deadlift", "lunge", "leg", "hip", "glute")
UPPER_BODY_KEYWORDS: tuple[str, ...] = (
    "press",
    "row",
    "curl",
    "extension",
    "pulldown",
    "pull-down",
    "pull-up",
    "pull up",
    "bench",
)

MOVEMENT_KEYWORDS: dict[str, tuple[str, ...]] = {
    "hinge": (
        "deadlift",
        "rdl",
        "romanian",
        "hip thrust",
        "good morning",
        "hyperextension",
        "back extension",
    ),
    "squat": ("squat", "leg press", "hack squat", "goblet squat", "front squat", "back squat"),
    "lunge": (
        "lunge",
        "step up",
        "step-up",
        "split squat",
        "bulgarian",
        "pistol squat",
        "single leg",
    ),
    "pull_vert": (
        "pull up",
        "pull-up",
        "pullup",
        "chin up",
        "chin-up",
        "lat pulldown",
        "lat pull-down",
        "lat pull down",
        "pull down",
        "pulldown",
    ),
    "pull_horiz": ("row", "face pull", "cable row", "barbell row", "dumbbell row", "t-bar row"),
    "push_vert": (
        "overhead press",
        "ohp",
        "shoulder press",
        "military press",
        "push press",
        "arnold press",
        "upright row",
        "lateral raise",
        "front raise",
    ),
    "push_horiz": (
        "bench",
        "push up",
        "push-up",
        "pushup",
        "dip",
        "chest press",
        "pec fly",
        "pec flye",
        "chest fly",
    ),
    "carry": ("carry", "walk", "suitcase", "farmer"),
}

# Tie-break between patterns whose longest matching keyword has equal length
MOVEMENT_PRECEDENCE: tuple[str, ...] = (
    "hinge",
    "squat",
    "lunge",
    "pull_vert",
    "pull_horiz",
    "push_vert",
    "push_horiz",
    "carry",
)

TIER_3_KEYWORDS: tuple[str, ...] = (
    "stretch",
    "mobility",
    "warm",
    "cool",
    "plank",
    "crunch",
    "core",
)

BODYWEIGHT_KEYWORDS: tuple[str, ...] = (
    "pull up",
    "pull-up",
    "pullup",
    "chin up",
    "chin-up",
    "push up",
    "push-up",
    "pushup",
    "dip",
    "sit up",
    "sit-up",
    "situp",
    "crunch",
    "plank",
    "burpee",
    "mountain climber",
    "bodyweight squat",
    "air squat",
    "jumping jack",
    "pistol squat",
    "handstand push up",
    "handstand push-up",
    "muscle up",
    "muscle-up",
)

# An implement in the name means external load, whatever the movement.
LOADED_KEYWORDS: tuple[str, ...] = (
    "weighted",
    "barbell",
    "dumbbell",
    "kettlebell",
    "cable",
    "machine",
    "smith",
    "loaded",
)


@dataclass(frozen=True)
class ExerciseClassification:
    """Result of classifying one exercise name."""

    load_category: str  # "upper" | "lower" | "other"
    movement_pattern: str | None
    tier: int  # 1 compound, 2 accessory, 3 prehab/core
    is_bodyweight: bool
    ambiguous: tuple[str, ...] = ()  # names of fields resolved by precedence


def _matches(name: str, keywords: tuple[str, ...]) -> list[str]:
    return [k for k in keywords if k in name]


def _is_tier_1(name: str) -> bool:
    if _matches(name, ("squat", "deadlift", "bench", "row")):
        return True
    if "press" in name and ("overhead" in name or "shoulder" in name):
        return True
    return "pull" in name and ("up" in name or "down" in name)


@lru_cache(maxsize=512)
def classify_exercise(name: str | None) -> ExerciseClassification:
    """
    Classify an exercise from its name.

    Pure and total: an empty or unknown name yields ("other", None, tier 2,
    not bodyweight).

    Args:
        name: Exercise display name

    Returns:
        ExerciseClassification
    """
    key = (name or "").strip().lower()
    ambiguous: list[str] = []

    lower = bool(_matches(key, LOWER_BODY_KEYWORDS))
    upper = bool(_matches(key, UPPER_BODY_KEYWORDS))
    if lower and upper:
        ambiguous.append("load_category")
    load_category = "lower" if lower else "upper" if upper else "other"

    best_len: dict[str, int] = {}
    for pattern, keywords in MOVEMENT_KEYWORDS.items():
        hits = _matches(key, keywords)
        if hits:
            best_len[pattern] = max(len(h) for h in hits)
    movement_pattern: str | None = None
    if best_len:
        longest = max(best_len.values())
        winners = [p for p in MOVEMENT_PRECEDENCE if best_len.get(p) == longest]
        movement_pattern = winners[0]
        if len(winners) > 1:
            ambiguous.append("movement_pattern")

    tier_1 = _is_tier_1(key)
    tier_3 = bool(_matches(key, TIER_3_KEYWORDS))
    if tier_1 and tier_3:
        ambiguous.append("tier")
    tier = 1 if tier_1 else 3 if tier_3 else 2

    if ambiguous:
        logger.debug("Ambiguous classification for %r: %s", name, ", ".join(ambiguous))

    return ExerciseClassification(
        load_category=load_category,
        movement_pattern=movement_pattern,
        tier=tier,
        is_bodyweight=bool(_matches(key, BODYWEIGHT_KEYWORDS))
        and not _matches(key, LOADED_KEYWORDS),
        ambiguous=tuple(ambiguous),
    )


def resolve_load_category(name: str, entry: CatalogExercise | None = None) -> str:
    """Explicit catalog load category if present, else the name-based one."""
    if entry is not None and entry.load_category is not None:
        return entry.load_category
    return classify_exercise(name).load_category


def resolve_movement_pattern(name: str, entry: CatalogExercise | None = None) -> str | None:
    """Explicit catalog movement pattern if present, else the name-based one."""
    if entry is not None and entry.movement_pattern is not None:
        return entry.movement_pattern
    return classify_exercise(name).movement_pattern


def resolve_tier(name: str, entry: CatalogExercise | None = None) -> int:
    """Explicit catalog tier if present, else the name-based one."""
    if entry is not None and entry.tier is not None:
        return entry.tier
    return classify_exercise(name).tier


def resolve_is_bodyweight(
    name: str,
    entry: CatalogExercise | None = None,
    logs: Sequence[WorkoutLogEntry] = (),
) -> bool:
    """
    True when the exercise is performed without external load.

    Logged history wins: any positive logged weight means the exercise is
    loaded.  Otherwise the catalog entry decides (its ``bodyweight`` flag,
    else no equipment).  Names are consulted only for exercises the catalog
    does not know.
    """
    if any(log.weight is not None and log.weight > 0 for log in logs):
        return False
    if entry is not None:
        return entry.is_bodyweight
    return classify_exercise(name).is_bodyweight
