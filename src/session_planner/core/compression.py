"""
Session compression.

Trims an over-long session until its estimate fits the time budget.
Strategies run in order; the estimate is recomputed after each one and
compression stops as soon as the session fits:

    1. Rest × 0.8 (floor 30 s)
    2. One set fewer on tier 2/3 exercises (floor 2)
    3. Drop tier 3 exercises
    4. One set fewer on tier 1 exercises (floor 3)
    5. Drop tier 2 exercises
    6. Drop the lowest-priority exercise, latest first, one at a time

No strategy ever removes the last remaining exercise.  The input list is
not modified.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Callable, Mapping, Sequence

from .classify import classify_exercise
from .config import (
    COMPRESSION_ACCESSORY_MIN_SETS,
    COMPRESSION_COMPOUND_MIN_SETS,
    COMPRESSION_REST_FACTOR,
    DEFAULT_REST_SEC,
    REST_MIN_SEC,
)
from .duration import estimate_session_duration
from .models import PlannedExercise

logger = logging.getLogger(__name__)


@dataclass
class CompressionResult:
    """Outcome of compress_session."""

    exercises: list[PlannedExercise]
    estimated_duration_sec: int
    was_compressed: bool = False
    actions: list[str] = field(default_factory=list)


def exercise_tier(exercise: PlannedExercise) -> int:
    """Explicit tier if known, else inferred from the name."""
    if exercise.tier is not None:
        return exercise.tier
    return classify_exercise(exercise.name).tier


def _shorter_rest(rest: int) -> int:
    reduced = max(REST_MIN_SEC, int(round(rest * COMPRESSION_REST_FACTOR)))
    return min(rest, reduced)


def _reduce_rest(exercises: list[PlannedExercise]) -> bool:
    changed = False
    for ex in exercises:
        current = DEFAULT_REST_SEC if ex.rest_time_sec is None else ex.rest_time_sec
        new = _shorter_rest(current)
        if new != ex.rest_time_sec:
            changed = changed or new != current
            ex.rest_time_sec = new
        for s in ex.sets:
            if s.rest_time_sec is not None:
                new_set_rest = _shorter_rest(s.rest_time_sec)
                if new_set_rest != s.rest_time_sec:
                    s.rest_time_sec = new_set_rest
                    changed = True
    return changed


def _drop_one_set(exercises: list[PlannedExercise], tiers: set[int], floor: int) -> bool:
    changed = False
    for ex in exercises:
        if exercise_tier(ex) not in tiers:
            continue
        current = ex.target_sets or len(ex.sets)
        if current > floor:
            ex.target_sets = current - 1
            if ex.sets:
                ex.sets = ex.sets[: ex.target_sets]
            changed = True
    return changed


def _drop_tier(exercises: list[PlannedExercise], tier: int) -> list[PlannedExercise]:
    kept = [ex for ex in exercises if exercise_tier(ex) != tier]
    if not kept and exercises:
        kept = [exercises[0]]
    return kept


def compress_session(
    exercises: Sequence[PlannedExercise],
    time_constraint_min: float | None,
    calibration: Mapping[str, float] | None = None,
) -> CompressionResult:
    """
    Fit a session into a time budget.

    Args:
        exercises: Ordered exercises (not modified)
        time_constraint_min: Budget in minutes (None or <= 0 disables compression)
        calibration: {lowercase exercise name: user seconds per rep}

    Returns:
        CompressionResult with the trimmed copy and the actions taken
    """
    current = copy.deepcopy(list(exercises))
    estimated = estimate_session_duration(current, calibration)

    if not time_constraint_min or time_constraint_min <= 0:
        return CompressionResult(current, estimated)

    budget = time_constraint_min * 60
    if estimated <= budget:
        return CompressionResult(current, estimated)

    logger.debug(
        "Compressing %d exercises: %.1f min estimated, %.1f min budget",
        len(current),
        estimated / 60,
        time_constraint_min,
    )

    actions: list[str] = []

    def fits() -> bool:
        nonlocal estimated
        estimated = estimate_session_duration(current, calibration)
        return estimated <= budget

    def modify(label: str, step: Callable[[list[PlannedExercise]], bool]) -> bool:
        if step(current):
            actions.append(label)
        return fits()

    def remove(tier: int) -> bool:
        nonlocal current
        before = len(current)
        current = _drop_tier(current, tier)
        removed = before - len(current)
        if removed:
            actions.append(f"Removed {removed} tier {tier} exercise(s)")
        return fits()

    done = (
        modify("Reduced rest times by 20%", _reduce_rest)
        or modify(
            "Reduced sets on tier 2/3 exercises",
            lambda exs: _drop_one_set(exs, {2, 3}, COMPRESSION_ACCESSORY_MIN_SETS),
        )
        or remove(3)
        or modify(
            "Reduced sets on tier 1 exercises",
            lambda exs: _drop_one_set(exs, {1}, COMPRESSION_COMPOUND_MIN_SETS),
        )
        or remove(2)
    )

    while not done and len(current) > 1:
        # Highest tier is lowest priority; among equals the latest goes first
        victim = max(range(len(current)), key=lambda i: (exercise_tier(current[i]), i))
        removed = current.pop(victim)
        actions.append(f"Removed {removed.name}")
        done = fits()

    logger.debug(
        "Compression finished at %.1f min after %d action(s)", estimated / 60, len(actions)
    )
    return CompressionResult(
        exercises=current,
        estimated_duration_sec=estimated,
        was_compressed=bool(actions),
        actions=actions,
    )
