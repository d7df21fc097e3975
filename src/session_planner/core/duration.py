"""
Duration estimation.

Pure functions mapping a planned exercise to its time cost.  Identical
inputs always give identical outputs.

Seconds per rep, first available wins:
    user calibration > exercise base > tempo table > movement pattern > 3.5

Load/rep work:
    active = round((sets × reps × spr × unilateral + setup) × fatigue)
    fatigue = 1 + min(0.05 × position, 0.30)

Timed work:
    active = per-set duration × sets (or the sum of per-set durations)

Total = active + rest per set × sets.
"""

from typing import Mapping, Sequence

from .config import (
    DEFAULT_REPS_FOR_ESTIMATE,
    DEFAULT_REST_SEC,
    DEFAULT_SECONDS_PER_REP,
    DEFAULT_SETUP_BUFFER_SEC,
    MOVEMENT_SECONDS_PER_REP,
    POSITION_FATIGUE_CAP,
    POSITION_FATIGUE_STEP,
    TEMPO_SECONDS_PER_REP,
    UNILATERAL_FACTOR,
)
from .models import DurationEstimate, PlannedExercise


def seconds_per_rep(
    user_override: float | None = None,
    base: float | None = None,
    tempo_category: str | None = None,
    movement_pattern: str | None = None,
) -> float:
    """Resolve seconds per rep by precedence (see module docstring)."""
    if user_override is not None and user_override > 0:
        return float(user_override)
    if base is not None and base > 0:
        return float(base)
    if tempo_category and tempo_category.lower() in TEMPO_SECONDS_PER_REP:
        return TEMPO_SECONDS_PER_REP[tempo_category.lower()]
    if movement_pattern and movement_pattern in MOVEMENT_SECONDS_PER_REP:
        return MOVEMENT_SECONDS_PER_REP[movement_pattern]
    return DEFAULT_SECONDS_PER_REP


def fatigue_multiplier(position_index: int) -> float:
    """Later exercises run slightly slower: +5% per position, capped at +30%."""
    return 1.0 + min(max(position_index, 0) * POSITION_FATIGUE_STEP, POSITION_FATIGUE_CAP)


def _rep_work_seconds(
    total_reps: int,
    spr: float,
    is_unilateral: bool,
    setup_buffer_sec: int | None,
    position_index: int,
) -> int:
    unilateral = UNILATERAL_FACTOR if is_unilateral else 1
    setup = DEFAULT_SETUP_BUFFER_SEC if setup_buffer_sec is None else setup_buffer_sec
    base = total_reps * spr * unilateral
    return int(round((base + setup) * fatigue_multiplier(position_index)))


def estimate_exercise_duration(
    target_sets: int,
    target_reps: int | None = None,
    target_duration_sec: int | None = None,
    *,
    is_timed: bool = False,
    movement_pattern: str | None = None,
    tempo_category: str | None = None,
    setup_buffer_sec: int | None = None,
    is_unilateral: bool = False,
    position_index: int = 0,
    user_seconds_per_rep: float | None = None,
    base_seconds_per_rep: float | None = None,
    rest_time_sec: int | None = None,
) -> DurationEstimate:
    """
    Estimate the time cost of one exercise from its targets.

    Args:
        target_sets: Number of sets (0 or less costs nothing)
        target_reps: Reps per set (default 8 for estimation)
        target_duration_sec: Seconds per set for timed work
        is_timed: Treat as timed work (uses target_duration_sec)
        movement_pattern: Movement tag (squat, hinge, ...)
        tempo_category: grind / standard / ballistic
        setup_buffer_sec: Setup time override (default 15)
        is_unilateral: Each side worked separately (doubles rep time)
        position_index: 0-based position in the session
        user_seconds_per_rep: Per-user calibration
        base_seconds_per_rep: Exercise-specific base value
        rest_time_sec: Rest after each set (default 60)

    Returns:
        DurationEstimate
    """
    sets = max(0, target_sets)
    rest = DEFAULT_REST_SEC if rest_time_sec is None else max(0, rest_time_sec)
    if sets == 0:
        return DurationEstimate(active_seconds=0, rest_seconds=0, seconds_per_rep=None)

    if is_timed and target_duration_sec is not None:
        return DurationEstimate(
            active_seconds=max(0, target_duration_sec) * sets,
            rest_seconds=rest * sets,
            seconds_per_rep=None,
        )

    spr = seconds_per_rep(user_seconds_per_rep, base_seconds_per_rep, tempo_category, movement_pattern)
    reps = target_reps if target_reps is not None and target_reps > 0 else DEFAULT_REPS_FOR_ESTIMATE
    active = _rep_work_seconds(sets * reps, spr, is_unilateral, setup_buffer_sec, position_index)
    return DurationEstimate(active_seconds=active, rest_seconds=rest * sets, seconds_per_rep=spr)


def estimate_planned_exercise(
    exercise: PlannedExercise,
    position_index: int = 0,
    calibration: Mapping[str, float] | None = None,
) -> DurationEstimate:
    """
    Estimate a planned exercise, using its concrete sets when present.

    Args:
        exercise: The planned exercise
        position_index: 0-based position in the session
        calibration: {lowercase exercise name: user seconds per rep}

    Returns:
        DurationEstimate
    """
    override = (calibration or {}).get(exercise.name.strip().lower())

    if not exercise.sets:
        return estimate_exercise_duration(
            exercise.target_sets,
            exercise.target_reps,
            exercise.target_duration_sec,
            is_timed=exercise.is_timed,
            movement_pattern=exercise.movement_pattern,
            tempo_category=exercise.tempo_category,
            setup_buffer_sec=exercise.setup_buffer_sec,
            is_unilateral=exercise.is_unilateral,
            position_index=position_index,
            user_seconds_per_rep=override,
            base_seconds_per_rep=exercise.base_seconds_per_rep,
            rest_time_sec=exercise.rest_time_sec,
        )

    default_rest = DEFAULT_REST_SEC if exercise.rest_time_sec is None else exercise.rest_time_sec
    rest = sum(default_rest if s.rest_time_sec is None else s.rest_time_sec for s in exercise.sets)

    if exercise.uses_duration:
        active = sum(s.duration_sec or exercise.target_duration_sec or 0 for s in exercise.sets)
        return DurationEstimate(active_seconds=active, rest_seconds=rest, seconds_per_rep=None)

    spr = seconds_per_rep(
        override,
        exercise.base_seconds_per_rep,
        exercise.tempo_category,
        exercise.movement_pattern,
    )
    fallback_reps = exercise.target_reps or DEFAULT_REPS_FOR_ESTIMATE
    total_reps = sum(s.reps if s.reps else fallback_reps for s in exercise.sets)
    active = _rep_work_seconds(
        total_reps, spr, exercise.is_unilateral, exercise.setup_buffer_sec, position_index
    )
    return DurationEstimate(active_seconds=active, rest_seconds=rest, seconds_per_rep=spr)


def estimate_session_duration(
    exercises: Sequence[PlannedExercise],
    calibration: Mapping[str, float] | None = None,
) -> int:
    """Total estimated seconds for an ordered exercise list."""
    return sum(
        estimate_planned_exercise(ex, i, calibration).total_seconds
        for i, ex in enumerate(exercises)
    )
