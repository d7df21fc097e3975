"""
Muscle recovery model.

Recovery of a muscle group since it was last trained follows a saturating
exponential:

    recovery(t) = 100 × (1 − e^(−t/τ))

t is hours since the group was last worked and τ a per-group time constant
(large groups recover slower).  A group with no history is fully fresh.
Values are clamped to [0, 100] but not rounded; display code rounds.

Time constants come from engine.yaml (``recovery.time_constants_h``) and
fall back to the defaults in config.py.
"""

import math
from datetime import datetime, timezone
from typing import Iterable, Mapping, Sequence

from .config import (
    DEFAULT_RECOVERY_TIME_CONSTANT_H,
    RECOVERY_TIME_CONSTANTS_H,
    RECOVERY_WARNING_THRESHOLD,
)
from .engine.config_loader import config_section
from .exercises.base import CatalogExercise
from .exercises.registry import find_exercise
from .models import (
    LoggedSet,
    MuscleRecoveryState,
    WorkoutLogEntry,
    WorkoutSession,
    ensure_aware,
)


def recovery_time_constant(muscle_group: str) -> float:
    """
    Return τ in hours for a muscle group (case-insensitive).

    Unknown groups use the default time constant.
    """
    section = config_section("recovery")
    table = section.get("time_constants_h") or RECOVERY_TIME_CONSTANTS_H
    default = section.get("default_time_constant_h", DEFAULT_RECOVERY_TIME_CONSTANT_H)
    tau = table.get(muscle_group.strip().lower(), default)
    try:
        tau = float(tau)
    except (TypeError, ValueError):
        tau = DEFAULT_RECOVERY_TIME_CONSTANT_H
    return tau if tau > 0 else DEFAULT_RECOVERY_TIME_CONSTANT_H


def calculate_recovery(
    last_worked_at: datetime | None,
    muscle_group: str,
    now: datetime | None = None,
) -> float:
    """
    Recovery percentage for one muscle group.

    Args:
        last_worked_at: When the group was last trained (None = never)
        muscle_group: Group name
        now: Query time (default: current UTC time)

    Returns:
        Recovery in [0, 100]; 100 when never worked
    """
    if last_worked_at is None:
        return 100.0

    now = ensure_aware(now) if now is not None else datetime.now(timezone.utc)
    hours = (now - ensure_aware(last_worked_at)).total_seconds() / 3600.0
    hours = max(0.0, hours)

    recovery = 100.0 * (1.0 - math.exp(-hours / recovery_time_constant(muscle_group)))
    return max(0.0, min(100.0, recovery))


def set_volume(logged: LoggedSet) -> float:
    """Volume of one set: weight × reps (0 when either is missing)."""
    if not logged.weight or not logged.reps:
        return 0.0
    return float(logged.weight) * logged.reps


def calculate_all_muscle_recovery(
    workouts: Iterable[WorkoutSession],
    now: datetime | None = None,
) -> dict[str, MuscleRecoveryState]:
    """
    Recovery state for every muscle group seen in the history.

    Each set's volume is attributed to every muscle group it lists; the
    latest session touching a group sets its last-worked time.

    Args:
        workouts: Sessions in the history window (any order)
        now: Query time (default: current UTC time)

    Returns:
        {lowercase muscle group: MuscleRecoveryState}
    """
    volume: dict[str, float] = {}
    last_worked: dict[str, datetime] = {}

    for session in workouts:
        for logged in session.sets:
            for group in logged.muscle_groups:
                key = group.strip().lower()
                if not key:
                    continue
                volume[key] = volume.get(key, 0.0) + set_volume(logged)
                previous = last_worked.get(key)
                if previous is None or session.performed_at > previous:
                    last_worked[key] = session.performed_at

    return {
        group: MuscleRecoveryState(
            muscle_group=group,
            recovery_percent=calculate_recovery(last_worked[group], group, now),
            last_worked_at=last_worked[group],
            total_volume=volume[group],
        )
        for group in sorted(last_worked)
    }


def workouts_from_logs(
    logs: Iterable[WorkoutLogEntry],
    catalog: Sequence[CatalogExercise],
) -> list[WorkoutSession]:
    """
    Group log entries into sessions annotated with muscle groups.

    Entries sharing a session_id form one session; entries without one are
    grouped by calendar date.  Exercises missing from the catalog carry no
    muscle groups and so do not affect recovery.
    """
    sessions: dict[str, WorkoutSession] = {}
    for log in logs:
        key = log.session_id or log.performed_at.date().isoformat()
        entry = find_exercise(log.exercise_name, catalog)
        groups = list(entry.muscle_groups) if entry else []
        session = sessions.get(key)
        if session is None:
            session = WorkoutSession(performed_at=log.performed_at)
            sessions[key] = session
        elif log.performed_at > session.performed_at:
            session.performed_at = log.performed_at
        session.sets.append(LoggedSet(weight=log.weight, reps=log.reps, muscle_groups=groups))

    return sorted(sessions.values(), key=lambda s: s.performed_at)


def recovery_for(states: Mapping[str, MuscleRecoveryState], muscle_group: str) -> float:
    """Recovery of one group; 100 when the group is not in the history."""
    state = states.get(muscle_group.strip().lower())
    return state.recovery_percent if state else 100.0


def recovery_label(percent: float) -> str:
    """Human label for a recovery percentage."""
    if percent >= 90:
        return "Fully Recovered"
    if percent >= 70:
        return "Mostly Recovered"
    if percent >= 50:
        return "Partially Recovered"
    return "Fatigued"


def recovery_warnings(
    states: Mapping[str, MuscleRecoveryState],
    threshold: float = RECOVERY_WARNING_THRESHOLD,
) -> list[MuscleRecoveryState]:
    """Groups below the threshold, most fatigued first."""
    return sorted(
        (s for s in states.values() if s.recovery_percent < threshold),
        key=lambda s: s.recovery_percent,
    )
