"""Analysis commands: recovery, metrics, exercises."""

import json
from datetime import datetime, timezone
from typing import Annotated

import typer

from ...core.classify import resolve_is_bodyweight
from ...core.config import DEFAULT_TARGET_SETS
from ...core.equipment import filter_exercises
from ...core.errors import PlannerError
from ...core.exercises.registry import find_exercise, merged_catalog
from ...core.metrics import compute_exercise_history_metrics, logs_for_exercise
from ...core.models import PlannedExercise
from ...core.physiology import calculate_all_muscle_recovery, workouts_from_logs
from ...core.progression import compute_progression_suggestion
from ...core.records import compute_pr_from_logs
from .. import views
from ..app import DataDirOption, app, get_store, load_profile_or_exit


@app.command()
def recovery(
    data_dir: DataDirOption = None,
    json_out: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output as JSON for machine processing"),
    ] = False,
) -> None:
    """
    Show estimated recovery per muscle group from logged sets.
    """
    store = get_store(data_dir)
    load_profile_or_exit(store)

    try:
        catalog = merged_catalog(store.load_custom_exercises())
        logs = store.load_logs()
    except PlannerError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    states = calculate_all_muscle_recovery(
        workouts_from_logs(logs, catalog), datetime.now(timezone.utc)
    )

    if json_out:
        print(json.dumps({
            group: {
                "recovery_percent": round(state.recovery_percent, 1),
                "last_worked_at": (
                    state.last_worked_at.isoformat() if state.last_worked_at else None
                ),
                "total_volume": state.total_volume,
            }
            for group, state in states.items()
        }, indent=2))
        return

    views.print_recovery(list(states.values()))


@app.command()
def metrics(
    exercise: Annotated[str, typer.Argument(help="Exercise name")],
    data_dir: DataDirOption = None,
) -> None:
    """
    Show trend, personal record and the next progression suggestion.
    """
    store = get_store(data_dir)
    profile = load_profile_or_exit(store)

    try:
        catalog = merged_catalog(store.load_custom_exercises())
        entry = find_exercise(exercise, catalog)
        name = entry.name if entry is not None else exercise.strip()
        logs = logs_for_exercise(store.load_logs(), name)
        record = store.load_record(profile.user_id, name) or compute_pr_from_logs(logs, name)
    except PlannerError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    history = compute_exercise_history_metrics(logs)
    suggestion = compute_progression_suggestion(
        profile,
        PlannedExercise(name=name, target_sets=DEFAULT_TARGET_SETS),
        history,
        record,
        entry=entry,
        bodyweight=resolve_is_bodyweight(name, entry, logs),
    )
    views.console.print(views.format_metrics_display(name, history, record, suggestion))


@app.command()
def exercises(
    data_dir: DataDirOption = None,
    all_equipment: Annotated[
        bool,
        typer.Option("--all", "-a", help="Ignore the profile's equipment"),
    ] = False,
) -> None:
    """
    List catalog exercises you can do with your equipment.
    """
    store = get_store(data_dir)
    profile = load_profile_or_exit(store)

    try:
        catalog = merged_catalog(store.load_custom_exercises())
    except PlannerError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    available = catalog if all_equipment else filter_exercises(catalog, profile.equipment)
    available = sorted(available, key=lambda ex: ex.name.lower())
    views.console.print(views.format_catalog_table(available))
    views.print_info(f"{len(available)} of {len(catalog)} exercise(s) available")
