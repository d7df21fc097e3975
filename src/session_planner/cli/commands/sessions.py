"""Logging commands: log-set and history."""

import asyncio
import json
import uuid
from datetime import datetime, timezone
from typing import Annotated, Optional

import typer

from ...core.errors import PlannerError, ValidationError
from ...core.exercises.registry import find_exercise, merged_catalog
from ...core.metrics import sort_newest_first
from ...core.models import WorkoutLogEntry
from ...core.records import PersonalRecordTracker
from ...io.serializers import log_entry_to_dict, parse_sets_string, parse_timestamp
from .. import views
from ..app import DataDirOption, app, get_store, load_profile_or_exit


def _parse_scheduled(scheduled: str | None) -> tuple[int | None, float | None]:
    """Planned target for the whole entry, e.g. "8@100" → (8, 100.0)."""
    if not scheduled:
        return None, None
    parsed = parse_sets_string(scheduled)
    reps, weight = parsed[0]
    return reps, weight


@app.command("log-set")
def log_set(
    exercise: Annotated[str, typer.Argument(help="Exercise name, e.g. 'Bench Press'")],
    sets: Annotated[
        str,
        typer.Argument(help="Sets performed: '8@100', '8x3@100', '12' or '8@100,7@100'"),
    ],
    data_dir: DataDirOption = None,
    scheduled: Annotated[
        Optional[str],
        typer.Option("--scheduled", help="Planned target, same format, e.g. '8@100'"),
    ] = None,
    date: Annotated[
        Optional[str],
        typer.Option("--date", help="When the sets were performed (ISO 8601, default now)"),
    ] = None,
    timed: Annotated[
        bool,
        typer.Option("--timed", help="Numbers are seconds held, not reps"),
    ] = False,
) -> None:
    """
    Log performed sets and update the personal record.

    Each set becomes one log line.  Sets logged together share a session id,
    which groups them for recovery tracking.
    """
    store = get_store(data_dir)
    profile = load_profile_or_exit(store)

    try:
        performed = parse_sets_string(sets)
        scheduled_reps, scheduled_weight = _parse_scheduled(scheduled)
        when = parse_timestamp(date) if date else datetime.now(timezone.utc)
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    catalog = merged_catalog(store.load_custom_exercises())
    entry = find_exercise(exercise, catalog)
    name = entry.name if entry is not None else exercise.strip()
    is_timed = timed or bool(entry and entry.is_timed)
    session_id = uuid.uuid4().hex

    try:
        logs = [
            WorkoutLogEntry(
                exercise_name=name,
                performed_at=when,
                weight=weight,
                reps=reps,
                scheduled_weight=scheduled_weight,
                scheduled_reps=scheduled_reps,
                session_id=session_id,
            )
            for reps, weight in performed
        ]
    except ValueError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    async def update_records() -> bool:
        tracker = PersonalRecordTracker(store)
        improved = False
        for log in logs:
            improved |= await tracker.maybe_update_from_log(
                profile.user_id, name, log.weight, log.reps, is_timed, log.performed_at
            )
        return improved

    try:
        store.append_logs(logs)
        new_record = asyncio.run(update_records())
    except PlannerError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_success(f"Logged {len(logs)} set(s) of {name}")
    if entry is None:
        views.print_warning(f"'{name}' is not in the catalog; recovery tracking will skip it.")
    if new_record:
        record = store.load_record(profile.user_id, name)
        if record is not None:
            unit = "s" if is_timed else " reps"
            views.print_success(
                f"New personal record: {record.weight:g} x {record.reps}{unit}"
            )


@app.command()
def history(
    data_dir: DataDirOption = None,
    exercise: Annotated[
        Optional[str],
        typer.Option("--exercise", "-x", help="Only show this exercise"),
    ] = None,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", help="Number of most recent entries to show"),
    ] = 20,
    json_out: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output as JSON for machine processing"),
    ] = False,
) -> None:
    """
    Show logged sets, newest first.
    """
    store = get_store(data_dir)
    load_profile_or_exit(store)

    try:
        logs = sort_newest_first(store.load_logs(exercise))[:limit]
    except PlannerError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps([log_entry_to_dict(log) for log in logs], indent=2))
        return

    views.print_history(logs)
