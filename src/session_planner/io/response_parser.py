"""
Parsing and validation of generator output.

The generator is asked for a bare JSON array but routinely wraps it in
Markdown fences or surrounds it with prose.  ``extract_json`` recovers the
structured value; ``parse_generated_exercises`` validates every element and
rejects the whole batch on any problem.  ``parse_week_schedule`` applies
the same checks to every day of a generated week.

Two distinct failures:
    ParseError       no JSON could be recovered from the text
    ValidationError  JSON was recovered but does not match the schema
"""

import json
import logging
import math
import re
from typing import Any

from ..core.config import DAYS_OF_WEEK, normalize_rest_seconds
from ..core.errors import ParseError, ValidationError
from ..core.models import PlannedExercise

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```[a-zA-Z0-9_-]*\s*\n?(.*?)```", re.DOTALL)
_RANGE = re.compile(r"^\s*(\d+)\s*[-–]\s*(\d+)\s*$")
_INTEGER = re.compile(r"^\s*\d+\s*$")


def strip_code_fences(text: str) -> str:
    """Return the body of the first fenced block, or the stripped text."""
    match = _FENCE.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def _balanced_slice(text: str, start: int) -> str | None:
    """Slice from text[start] (``[`` or ``{``) to its matching closer."""
    stack: list[str] = []
    in_string = False
    escaped = False
    pairs = {"[": "]", "{": "}"}
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in pairs:
            stack.append(pairs[ch])
        elif ch in "]}":
            if not stack or stack.pop() != ch:
                return None
            if not stack:
                return text[start : i + 1]
    return None


def extract_json(text: str | None) -> Any:
    """
    Recover a JSON value from free-form generator text.

    Tries, in order: the text with fences stripped, then every balanced
    array or object found in it.

    Raises:
        ParseError: If no JSON value can be recovered
    """
    if not text or not text.strip():
        raise ParseError("Generator returned an empty response", raw_text=text)

    body = strip_code_fences(text)
    try:
        return json.loads(body)
    except json.JSONDecodeError:
        pass

    for i, ch in enumerate(body):
        if ch not in "[{":
            continue
        candidate = _balanced_slice(body, i)
        if candidate is None:
            continue
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue

    logger.debug("Unparseable generator response: %.200s", text)
    raise ParseError("Could not find valid JSON in the generator response", raw_text=text)


def _positive_int(value: Any) -> int | None:
    """Positive int from an int or an integer string; None otherwise."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float) and value.is_integer():
        return int(value) if value > 0 else None
    if isinstance(value, str) and _INTEGER.match(value):
        number = int(value)
        return number if number > 0 else None
    return None


def _rep_target(value: Any) -> int | None:
    """Positive rep count from an int, integer string or "low-high" range (low end)."""
    reps = _positive_int(value)
    if reps is not None:
        return reps
    if isinstance(value, str):
        match = _RANGE.match(value)
        if match:
            low, high = int(match.group(1)), int(match.group(2))
            if 0 < low <= high:
                return low
    return None


def _non_negative_number(value: Any) -> float | None:
    """Finite number >= 0 from a number or numeric string; None otherwise."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) and number >= 0 else None


def validate_exercise_item(item: Any, position: int) -> tuple[PlannedExercise | None, list[str]]:
    """
    Validate one generated element.

    Returns:
        (exercise or None, list of problems)
    """
    where = f"item {position}"
    if not isinstance(item, dict):
        return None, [f"{where}: expected an object, got {type(item).__name__}"]

    problems: list[str] = []
    name = item.get("name")
    if not isinstance(name, str) or not name.strip():
        problems.append(f"{where}: 'name' must be a non-empty string")
    else:
        where = f"{where} ({name.strip()})"

    sets = _positive_int(item.get("target_sets"))
    if sets is None:
        problems.append(f"{where}: 'target_sets' must be a positive integer")

    reps = None
    if item.get("target_reps") is not None:
        reps = _rep_target(item["target_reps"])
        if reps is None:
            problems.append(f"{where}: 'target_reps' must be a positive integer or range")

    duration = None
    if item.get("target_duration_sec") is not None:
        duration = _positive_int(item["target_duration_sec"])
        if duration is None:
            problems.append(f"{where}: 'target_duration_sec' must be a positive integer")

    if item.get("target_reps") is None and item.get("target_duration_sec") is None:
        problems.append(f"{where}: needs 'target_reps' or 'target_duration_sec'")

    rest = None
    if item.get("rest_time_sec") is not None:
        rest = _non_negative_number(item["rest_time_sec"])
        if rest is None:
            problems.append(f"{where}: 'rest_time_sec' must be a non-negative number")

    notes = item.get("notes")
    if notes is not None and not isinstance(notes, str):
        problems.append(f"{where}: 'notes' must be a string")

    if problems:
        return None, problems

    return (
        PlannedExercise(
            name=name.strip(),
            target_sets=sets,
            target_reps=reps,
            target_duration_sec=duration,
            rest_time_sec=normalize_rest_seconds(rest),
            notes=notes.strip() if notes and notes.strip() else None,
            source="generated",
            is_timed=duration is not None and reps is None,
        ),
        [],
    )


def parse_generated_exercises(text: str | None) -> list[PlannedExercise]:
    """
    Parse and validate a generator response into planned exercises.

    Accepts a top-level array, or an object whose ``exercises`` key holds
    the array.  Nothing is returned unless every element is valid.

    Raises:
        ParseError: If no JSON can be recovered
        ValidationError: If the JSON does not match the exercise schema
    """
    data = extract_json(text)
    if isinstance(data, dict) and isinstance(data.get("exercises"), list):
        data = data["exercises"]

    if not isinstance(data, list):
        raise ValidationError(
            "Generator response must be a JSON array of exercises",
            problems=[f"top level is {type(data).__name__}"],
        )
    if not data:
        raise ValidationError("Generator returned no exercises", problems=["empty array"])

    exercises: list[PlannedExercise] = []
    problems: list[str] = []
    for position, item in enumerate(data, start=1):
        exercise, item_problems = validate_exercise_item(item, position)
        problems.extend(item_problems)
        if exercise is not None:
            exercises.append(exercise)

    if problems:
        logger.debug("Rejected generator batch: %s", "; ".join(problems))
        raise ValidationError(
            f"Generator response failed validation ({len(problems)} problem(s))",
            problems=problems,
        )
    return exercises


def ensure_all_days(schedule: dict[str, Any]) -> dict[str, list[Any]]:
    """
    Raw exercise lists for every day of the week, in calendar order.

    Day keys are matched case-insensitively.  A missing day, or one whose
    value holds no ``exercises`` list, becomes an empty (rest) day.  A day
    given directly as a list is taken as its exercise list.
    """
    by_key = {str(key).strip().lower(): value for key, value in schedule.items()}
    unknown = sorted(set(by_key) - set(DAYS_OF_WEEK))
    if unknown:
        logger.warning("Ignoring unknown day(s) in week schedule: %s", ", ".join(unknown))

    days: dict[str, list[Any]] = {}
    for day in DAYS_OF_WEEK:
        value = by_key.get(day)
        if isinstance(value, dict) and isinstance(value.get("exercises"), list):
            days[day] = value["exercises"]
        elif isinstance(value, list):
            days[day] = value
        else:
            days[day] = []
    return days


def parse_week_schedule(text: str | None) -> dict[str, list[PlannedExercise]]:
    """
    Parse a whole-week generator response.

    Expects ``{"week_schedule": {"Monday": {"exercises": [...]}, ...}}``.
    Missing days are rest days; every exercise on every day must pass the
    same checks as a single-day reply, or nothing is returned.

    Raises:
        ParseError: If no JSON can be recovered
        ValidationError: If the schedule is missing, empty, or has invalid exercises
    """
    data = extract_json(text)
    schedule = data.get("week_schedule") if isinstance(data, dict) else None
    if not isinstance(schedule, dict):
        raise ValidationError(
            "Generator response must be an object with a week_schedule",
            problems=["week_schedule is missing or not an object"],
        )

    week: dict[str, list[PlannedExercise]] = {}
    problems: list[str] = []
    for day, items in ensure_all_days(schedule).items():
        week[day] = []
        for position, item in enumerate(items, start=1):
            exercise, item_problems = validate_exercise_item(item, position)
            problems.extend(f"{day}: {p}" for p in item_problems)
            if exercise is not None:
                week[day].append(exercise)

    if problems:
        logger.debug("Rejected generated week: %s", "; ".join(problems))
        raise ValidationError(
            f"Generated week failed validation ({len(problems)} problem(s))",
            problems=problems,
        )
    if not any(week.values()):
        raise ValidationError("Generator returned no exercises", problems=["every day is empty"])
    return week
