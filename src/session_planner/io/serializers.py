"""
JSON serialization for session-planner data models.

Handles conversion between dataclasses and JSON-compatible dicts.  Every
``dict_to_*`` function validates its input and raises ValidationError;
ValueErrors from dataclass constructors are re-raised as ValidationError so
callers only need to handle one exception type at the boundary.
"""

import json
import re
from datetime import date, datetime, timezone
from typing import Any

from ..core.errors import ValidationError
from ..core.models import (
    PersonalRecord,
    PlannedExercise,
    PlannedSet,
    SessionPlan,
    UserProfile,
    WeekPlan,
    WorkoutLogEntry,
    ensure_aware,
)
from ..core.progression import parse_rep_target


def parse_timestamp(value: Any) -> datetime:
    """
    Parse an ISO-8601 timestamp or YYYY-MM-DD date.

    Naive values are taken as UTC; a bare date means midnight UTC.

    Raises:
        ValidationError: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        return ensure_aware(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Invalid timestamp: {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return ensure_aware(datetime.fromisoformat(text))
    except ValueError as e:
        raise ValidationError(f"Invalid timestamp: {value!r}. Expected ISO-8601") from e


def format_timestamp(ts: datetime) -> str:
    """ISO-8601 string for a timestamp (always timezone-aware)."""
    return ensure_aware(ts).isoformat()


def validate_non_negative(value: int | float, name: str) -> int | float:
    """
    Validate that a value is a non-negative number.

    Raises:
        ValidationError: If value is negative or not a number
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number, got {value!r}")
    if value < 0:
        raise ValidationError(f"{name} must be non-negative, got {value}")
    return value


def validate_positive(value: int | float, name: str) -> int | float:
    """
    Validate that a value is a positive number.

    Raises:
        ValidationError: If value is not positive or not a number
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number, got {value!r}")
    if value <= 0:
        raise ValidationError(f"{name} must be positive, got {value}")
    return value


def _opt_float(data: dict[str, Any], key: str) -> float | None:
    value = data.get(key)
    if value is None:
        return None
    return float(validate_non_negative(value, key))


def _opt_int(data: dict[str, Any], key: str) -> int | None:
    value = data.get(key)
    if value is None:
        return None
    return int(validate_non_negative(value, key))


def _required_name(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} must be a non-empty string")
    return value.strip()


# =============================================================================
# Workout logs
# =============================================================================


def log_entry_to_dict(entry: WorkoutLogEntry) -> dict[str, Any]:
    """Convert WorkoutLogEntry to JSON-compatible dict."""
    d: dict[str, Any] = {
        "exercise_name": entry.exercise_name,
        "performed_at": format_timestamp(entry.performed_at),
        "weight": entry.weight,
        "reps": entry.reps,
        "scheduled_weight": entry.scheduled_weight,
        "scheduled_reps": entry.scheduled_reps,
    }
    if entry.session_id is not None:
        d["session_id"] = entry.session_id
    return d


def dict_to_log_entry(data: dict[str, Any]) -> WorkoutLogEntry:
    """
    Convert dict to WorkoutLogEntry.

    Raises:
        ValidationError: If data is invalid
    """
    if not isinstance(data, dict):
        raise ValidationError(f"Log entry must be an object, got {type(data).__name__}")
    try:
        return WorkoutLogEntry(
            exercise_name=_required_name(data, "exercise_name"),
            performed_at=parse_timestamp(data.get("performed_at")),
            weight=_opt_float(data, "weight"),
            reps=_opt_int(data, "reps"),
            scheduled_weight=_opt_float(data, "scheduled_weight"),
            scheduled_reps=_opt_int(data, "scheduled_reps"),
            session_id=data.get("session_id"),
        )
    except ValueError as e:
        raise ValidationError(f"Invalid log entry: {e}") from e


def log_to_json_line(entry: WorkoutLogEntry) -> str:
    """Serialize a log entry to a single JSON line (no trailing newline)."""
    return json.dumps(log_entry_to_dict(entry), separators=(",", ":"))


def json_line_to_log(line: str) -> WorkoutLogEntry:
    """
    Deserialize a JSON line to a WorkoutLogEntry.

    Raises:
        ValidationError: If JSON is invalid or data validation fails
    """
    try:
        data = json.loads(line.strip())
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON: {e}") from e
    return dict_to_log_entry(data)


# =============================================================================
# Personal records
# =============================================================================


def personal_record_to_dict(record: PersonalRecord) -> dict[str, Any]:
    """Convert PersonalRecord to JSON-compatible dict."""
    return {
        "exercise_name": record.exercise_name,
        "weight": record.weight,
        "reps": record.reps,
        "performed_at": format_timestamp(record.performed_at),
        "session_id": record.session_id,
    }


def dict_to_personal_record(data: dict[str, Any]) -> PersonalRecord:
    """
    Convert dict to PersonalRecord.

    Raises:
        ValidationError: If data is invalid
    """
    try:
        return PersonalRecord(
            exercise_name=_required_name(data, "exercise_name"),
            weight=float(validate_non_negative(data.get("weight", 0), "weight")),
            reps=_opt_int(data, "reps"),
            performed_at=parse_timestamp(data.get("performed_at")),
            session_id=data.get("session_id"),
        )
    except ValueError as e:
        raise ValidationError(f"Invalid personal record: {e}") from e


# =============================================================================
# Profile
# =============================================================================


def user_profile_to_dict(profile: UserProfile) -> dict[str, Any]:
    """Convert UserProfile to JSON-compatible dict."""
    return {
        "user_id": profile.user_id,
        "age": profile.age,
        "sex": profile.sex,
        "goal": profile.goal,
        "days_per_week": profile.days_per_week,
        "equipment": list(profile.equipment) if profile.equipment is not None else None,
        "bodyweight_kg": profile.bodyweight_kg,
        "experience_level": profile.experience_level,
        "feedback": profile.feedback,
    }


def dict_to_user_profile(data: dict[str, Any]) -> UserProfile:
    """
    Convert dict to UserProfile.

    ``equipment`` keeps its three-way meaning: missing/null is unrestricted,
    an empty list is bodyweight only.

    Raises:
        ValidationError: If data is invalid
    """
    equipment = data.get("equipment")
    if equipment is not None and not isinstance(equipment, list):
        raise ValidationError("equipment must be a list or null")

    bodyweight = data.get("bodyweight_kg")
    if bodyweight is not None:
        validate_positive(bodyweight, "bodyweight_kg")

    try:
        return UserProfile(
            user_id=_required_name(data, "user_id"),
            age=int(data["age"]) if data.get("age") is not None else None,
            sex=data.get("sex"),
            goal=data.get("goal"),
            days_per_week=(
                int(data["days_per_week"]) if data.get("days_per_week") is not None else None
            ),
            equipment=list(equipment) if equipment is not None else None,
            bodyweight_kg=float(bodyweight) if bodyweight is not None else None,
            experience_level=data.get("experience_level"),
            feedback=data.get("feedback"),
        )
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid profile: {e}") from e


# =============================================================================
# Planned exercises
# =============================================================================


def planned_set_to_dict(planned_set: PlannedSet) -> dict[str, Any]:
    """
    Convert PlannedSet to the plan document's set shape.

    Timed sets carry ``duration``; load/rep sets carry ``reps`` and ``weight``.
    """
    d: dict[str, Any] = {"index": planned_set.index}
    if planned_set.duration_sec is not None:
        d["duration"] = planned_set.duration_sec
    else:
        d["reps"] = planned_set.reps
        d["weight"] = planned_set.weight
    d["rest_time_sec"] = planned_set.rest_time_sec
    return d


def dict_to_planned_set(data: dict[str, Any], position: int = 1) -> PlannedSet:
    """
    Convert a plan-document set to PlannedSet.

    Raises:
        ValidationError: If data is invalid
    """
    if not isinstance(data, dict):
        raise ValidationError(f"Set must be an object, got {type(data).__name__}")
    try:
        return PlannedSet(
            index=int(data.get("index", position)),
            reps=_opt_int(data, "reps"),
            weight=_opt_float(data, "weight"),
            duration_sec=_opt_int(data, "duration"),
            rest_time_sec=_opt_int(data, "rest_time_sec"),
        )
    except ValueError as e:
        raise ValidationError(f"Invalid set: {e}") from e


def planned_exercise_to_dict(exercise: PlannedExercise) -> dict[str, Any]:
    """
    Convert PlannedExercise to the dict persisted in the plan document.

    Catalog-derived metadata is not persisted.
    """
    d: dict[str, Any] = {
        "name": exercise.name,
        "target_sets": exercise.target_sets,
        "target_reps": exercise.target_reps,
        "rest_time_sec": exercise.rest_time_sec,
        "notes": exercise.notes,
        "sets": [planned_set_to_dict(s) for s in exercise.sets],
    }
    if exercise.target_duration_sec is not None:
        d["target_duration_sec"] = exercise.target_duration_sec
    return d


def dict_to_planned_exercise(data: dict[str, Any]) -> PlannedExercise:
    """
    Convert a plan-document exercise to PlannedExercise.

    Raises:
        ValidationError: If data is invalid
    """
    if not isinstance(data, dict):
        raise ValidationError(f"Exercise must be an object, got {type(data).__name__}")

    raw_sets = data.get("sets") or []
    if not isinstance(raw_sets, list):
        raise ValidationError("sets must be a list")
    sets = [dict_to_planned_set(s, i) for i, s in enumerate(raw_sets, start=1)]

    target_reps = data.get("target_reps")
    if isinstance(target_reps, str):
        target_reps = parse_rep_target(target_reps)

    try:
        return PlannedExercise(
            name=_required_name(data, "name"),
            target_sets=int(data.get("target_sets") or len(sets)),
            target_reps=int(target_reps) if target_reps is not None else None,
            target_duration_sec=_opt_int(data, "target_duration_sec"),
            rest_time_sec=_opt_int(data, "rest_time_sec"),
            notes=data.get("notes"),
            sets=sets,
            is_timed=any(s.duration_sec is not None for s in sets),
        )
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid exercise: {e}") from e


def session_plan_to_dict(plan: SessionPlan) -> dict[str, Any]:
    """Convert SessionPlan to JSON-compatible dict."""
    return {
        "day": plan.day,
        "exercises": [planned_exercise_to_dict(ex) for ex in plan.exercises],
        "was_compressed": plan.was_compressed,
        "added_count": plan.added_count,
        "estimated_duration_sec": plan.estimated_duration_sec,
        "compression_actions": list(plan.compression_actions),
    }


def week_plan_to_dict(week: WeekPlan) -> dict[str, Any]:
    """Convert WeekPlan to JSON-compatible dict keyed by day."""
    return {
        "week_schedule": {day: session_plan_to_dict(plan) for day, plan in week.days.items()},
        "training_days": week.training_days,
        "added_count": week.added_count,
    }


# =============================================================================
# CLI set strings
# =============================================================================


def parse_sets_string(sets_str: str) -> list[tuple[int, float]]:
    """
    Parse a sets string into (reps, weight) pairs.

    Formats (comma-separated groups):
        reps@weight     e.g. "8@100"       one set
        NxM@weight      e.g. "8x3@100"     M sets of N reps
        reps            e.g. "12"          one bodyweight set
        NxM             e.g. "12x3"        M bodyweight sets

    Raises:
        ValidationError: If format is invalid
    """
    if not sets_str or not sets_str.strip():
        raise ValidationError("Sets string cannot be empty")

    result: list[tuple[int, float]] = []
    for group in (g.strip() for g in sets_str.split(",")):
        if not group:
            continue
        m = re.fullmatch(r"(\d+)(?:\s*[xX×]\s*(\d+))?(?:\s*@\s*(\d+(?:\.\d+)?))?", group)
        if not m:
            raise ValidationError(
                f"Invalid set format: '{group}'. Expected reps@weight or NxM@weight"
            )
        reps = int(m.group(1))
        count = int(m.group(2)) if m.group(2) else 1
        weight = float(m.group(3)) if m.group(3) else 0.0
        if count < 1:
            raise ValidationError(f"Set count must be at least 1 in '{group}'")
        result.extend([(reps, weight)] * count)

    if not result:
        raise ValidationError("Sets string cannot be empty")
    return result