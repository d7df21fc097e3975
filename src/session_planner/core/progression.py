"""
Progression suggestion engine.

Turns history metrics, an optional personal record and the user profile
into a set/rep/weight target for the next session of one exercise.

Baseline weight precedence:
    85% of PR (only when the PR is above the last successful weight)
    → last successful weight → last logged weight → on-ramp heuristic

Adjustment by trend (only when history exists):
    progressing → baseline + max(2.5, 2.5% of baseline)
    struggling  → 90% of baseline (floor 5), one set fewer (floor 2)
    flat        → baseline unchanged
"""

import logging
import re

from .classify import resolve_load_category
from .config import (
    DEFAULT_TARGET_SETS,
    DELOAD_FRACTION,
    DELOAD_MIN_SETS,
    DELOAD_MIN_WEIGHT,
    HEURISTIC_BW_FLOOR,
    HEURISTIC_BW_FRACTION,
    HEURISTIC_DEFAULT_LOAD,
    HEURISTIC_LOWER_LOAD,
    HEURISTIC_UPPER_LOAD,
    PR_SAFETY_FRACTION,
    PROGRESSION_INCREMENT_FRACTION,
    PROGRESSION_MIN_INCREMENT,
)
from .exercises.base import CatalogExercise
from .models import (
    ExerciseHistoryMetrics,
    PersonalRecord,
    PlannedExercise,
    ProgressionSuggestion,
    UserProfile,
)

logger = logging.getLogger(__name__)

_FIRST_INT = re.compile(r"\d+")


def parse_rep_target(value: object) -> int | None:
    """
    Read a rep target that may be an int or a string such as "8-12".

    Returns the first integer found (the low end of a range), or None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float):
        return int(value) if value > 0 else None
    if isinstance(value, str):
        match = _FIRST_INT.search(value)
        if match:
            reps = int(match.group())
            return reps if reps > 0 else None
    return None


def base_sets(exercise: PlannedExercise) -> int:
    """Template set count: target_sets, else number of sets, else the default."""
    if exercise.target_sets > 0:
        return exercise.target_sets
    if exercise.sets:
        return len(exercise.sets)
    return DEFAULT_TARGET_SETS


def base_reps(exercise: PlannedExercise) -> int | None:
    """Template reps: target_reps, else the first set's reps, else None."""
    reps = parse_rep_target(exercise.target_reps)
    if reps is not None:
        return reps
    if exercise.sets:
        return parse_rep_target(exercise.sets[0].reps)
    return None


def is_bodyweight_by_sets(exercise: PlannedExercise) -> bool:
    """True when the exercise has sets and every set's weight is exactly 0."""
    return bool(exercise.sets) and all(
        s.weight is not None and s.weight == 0 for s in exercise.sets
    )


def heuristic_starting_weight(
    profile: UserProfile | None,
    exercise_name: str,
    entry: CatalogExercise | None = None,
) -> float:
    """
    Conservative on-ramp load when there is no usable history.

    Lower body 50, upper body 25, otherwise 30% of bodyweight (floor 15),
    otherwise 20.
    """
    category = resolve_load_category(exercise_name, entry)
    if category == "upper":
        return HEURISTIC_UPPER_LOAD
    if category == "lower":
        return HEURISTIC_LOWER_LOAD
    if profile is not None and profile.bodyweight_kg:
        return max(HEURISTIC_BW_FLOOR, float(round(profile.bodyweight_kg * HEURISTIC_BW_FRACTION)))
    return HEURISTIC_DEFAULT_LOAD


def _positive(value: float | None) -> float | None:
    return value if value is not None and value > 0 else None


def compute_progression_suggestion(
    profile: UserProfile | None,
    exercise: PlannedExercise,
    metrics: ExerciseHistoryMetrics,
    personal_record: PersonalRecord | None = None,
    entry: CatalogExercise | None = None,
    bodyweight: bool = False,
) -> ProgressionSuggestion:
    """
    Suggest the next target for one exercise.

    Args:
        profile: User profile (bodyweight feeds the on-ramp heuristic)
        exercise: Planned exercise (template sets/reps or explicit sets)
        metrics: History metrics for this exercise
        personal_record: Best-ever result, if known
        entry: Catalog entry, for explicit load category
        bodyweight: Treat as bodyweight even without zero-weight sets

    Returns:
        ProgressionSuggestion with a non-negative weight and a note
    """
    sets = base_sets(exercise)
    reps = base_reps(exercise)

    if bodyweight or is_bodyweight_by_sets(exercise):
        return ProgressionSuggestion(
            suggested_sets=sets,
            suggested_reps=reps,
            suggested_weight=0.0,
            note="Bodyweight: no load progression",
        )

    pr_weight = _positive(personal_record.weight) if personal_record else None
    last_successful = _positive(
        metrics.last_successful.weight if metrics.last_successful else None
    )
    last_weight = _positive(metrics.last_log.weight if metrics.last_log else None)

    if pr_weight is not None and pr_weight > (last_successful or 0.0):
        baseline = pr_weight * PR_SAFETY_FRACTION
        note = f"Based on PR: {pr_weight:g} (starting at 85% for safety)"
    elif last_successful is not None:
        baseline = last_successful
        note = "Holding last successful weight"
    elif last_weight is not None:
        baseline = last_weight
        note = "Holding last working weight"
    else:
        baseline = heuristic_starting_weight(profile, exercise.name, entry)
        note = "On-ramp: conservative starting weight"

    weight = baseline
    if metrics.has_history:
        if metrics.trend == "progressing":
            increment = max(PROGRESSION_MIN_INCREMENT, baseline * PROGRESSION_INCREMENT_FRACTION)
            weight = baseline + increment
            note = f"Progression: +{increment:.1f} from last working weight"
        elif metrics.trend == "struggling":
            weight = max(DELOAD_MIN_WEIGHT, baseline * DELOAD_FRACTION)
            sets = max(min(sets, DELOAD_MIN_SETS), sets - 1)
            note = "Deload: reduced load and volume after recent struggles"

    weight = round(max(0.0, weight), 2)
    logger.debug(
        "Progression for %s: trend=%s baseline=%.2f -> %.2f x %d sets",
        exercise.name,
        metrics.trend,
        baseline,
        weight,
        sets,
    )
    return ProgressionSuggestion(
        suggested_sets=sets,
        suggested_reps=reps,
        suggested_weight=weight,
        note=note,
    )
