"""
Pure history metric functions.

All functions are pure and typed for testability.  They never raise on
well-formed log entries: sparse history degrades to ``flat`` with null
derived fields.
"""

from typing import Iterable, Sequence

from .config import (
    EPLEY_REP_DIVISOR,
    MAX_RECENT_FOR_TREND,
    PROGRESSING_1RM_MARGIN,
    STRUGGLING_FAILURE_THRESHOLD,
)
from .models import ExerciseHistoryMetrics, Trend, WorkoutLogEntry


def estimate_1rm(weight: float | None, reps: int | None) -> float | None:
    """
    Estimate a one-rep max with the Epley formula.

    1RM = w × (1 + reps / 30)

    Args:
        weight: Load lifted
        reps: Reps completed at that load

    Returns:
        Estimated 1RM, or None when weight or reps are missing or not positive
    """
    if weight is None or reps is None or weight <= 0 or reps <= 0:
        return None
    return weight * (1.0 + reps / EPLEY_REP_DIVISOR)


def is_successful(log: WorkoutLogEntry) -> bool:
    """
    Decide whether a logged set met its target.

    With a scheduled target (weight present and reps > 0) both the achieved
    weight and reps must reach it.  Without one, any positive rep (or
    duration) count is a success.
    """
    if log.scheduled_weight is not None and log.scheduled_reps:
        if log.weight is None or log.reps is None:
            return False
        return log.weight >= log.scheduled_weight and log.reps >= log.scheduled_reps
    return log.reps is not None and log.reps > 0


def sort_newest_first(logs: Iterable[WorkoutLogEntry]) -> list[WorkoutLogEntry]:
    """Return logs ordered by timestamp, most recent first."""
    return sorted(logs, key=lambda log: log.performed_at, reverse=True)


def logs_for_exercise(
    logs: Iterable[WorkoutLogEntry], exercise_name: str
) -> list[WorkoutLogEntry]:
    """Filter logs to one exercise (case-insensitive name match)."""
    key = exercise_name.strip().lower()
    return [log for log in logs if log.exercise_name.strip().lower() == key]


def _training_max(log: WorkoutLogEntry | None) -> float | None:
    if log is None:
        return None
    return estimate_1rm(log.weight, log.reps)


def classify_trend(recent: Sequence[WorkoutLogEntry]) -> tuple[Trend, int]:
    """
    Classify the trend of a newest-first window of logs.

    struggling: at least two failures in the window.
    progressing: the newest log succeeded and its 1RM beats the previous
        successful log's 1RM by more than the margin.
    flat: everything else.

    Args:
        recent: Logs sorted newest first, already cut to the window

    Returns:
        (trend, failure count)
    """
    failures = sum(1 for log in recent if not is_successful(log))
    if failures >= STRUGGLING_FAILURE_THRESHOLD:
        return "struggling", failures

    if recent and is_successful(recent[0]):
        previous = next((log for log in recent[1:] if is_successful(log)), None)
        current_1rm = _training_max(recent[0])
        previous_1rm = _training_max(previous)
        if (
            current_1rm is not None
            and previous_1rm is not None
            and current_1rm > previous_1rm * (1.0 + PROGRESSING_1RM_MARGIN)
        ):
            return "progressing", failures

    return "flat", failures


def compute_exercise_history_metrics(
    logs: Iterable[WorkoutLogEntry],
) -> ExerciseHistoryMetrics:
    """
    Summarize recent performance for one exercise.

    Args:
        logs: Unordered log entries for a single exercise

    Returns:
        ExerciseHistoryMetrics (has_history=False and trend=flat for no logs)
    """
    ordered = sort_newest_first(logs)
    if not ordered:
        return ExerciseHistoryMetrics(
            has_history=False,
            last_log=None,
            last_successful=None,
            recent_failures=0,
            trend="flat",
            estimated_training_max=None,
        )

    window = ordered[:MAX_RECENT_FOR_TREND]
    last_successful = next((log for log in window if is_successful(log)), None)
    trend, failures = classify_trend(window)

    training_max = _training_max(last_successful)
    if training_max is None:
        training_max = _training_max(ordered[0])

    return ExerciseHistoryMetrics(
        has_history=True,
        last_log=ordered[0],
        last_successful=last_successful,
        recent_failures=failures,
        trend=trend,
        estimated_training_max=training_max,
    )
