"""Planning commands: show-day, estimate, generate, generate-week."""

import asyncio
import json
from typing import Annotated, Optional

import typer

from ...core.compression import compress_session
from ...core.duration import estimate_session_duration
from ...core.errors import PlannerError
from ...core.exercises.registry import find_exercise, merged_catalog
from ...core.planner import (
    SessionAssembler,
    SessionRequest,
    WeekRequest,
    apply_catalog_metadata,
)
from ...core.records import PersonalRecordTracker
from ...io.generator import OpenAIGenerator
from ...io.serializers import planned_exercise_to_dict, session_plan_to_dict, week_plan_to_dict
from .. import views
from ..app import DataDirOption, app, get_store, load_profile_or_exit, report_planner_error

MinutesOption = Annotated[
    Optional[float],
    typer.Option("--minutes", "-m", help="Time budget for the session in minutes"),
]

JsonOption = Annotated[
    bool,
    typer.Option("--json", "-j", help="Output as JSON for machine processing"),
]


def _load_day_with_metadata(store, day: str):
    """Stored exercises for *day* with catalog timing/tier metadata filled in."""
    catalog = merged_catalog(store.load_custom_exercises())
    return [
        apply_catalog_metadata(ex, find_exercise(ex.name, catalog))
        for ex in store.load_day(day)
    ]


@app.command("show-day")
def show_day(
    day: Annotated[str, typer.Argument(help="Day label, e.g. 'monday' or 'day-1'")],
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Show one planned day with per-exercise and total estimated time.
    """
    store = get_store(data_dir)
    load_profile_or_exit(store)

    try:
        exercises = _load_day_with_metadata(store, day)
    except PlannerError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    total = estimate_session_duration(exercises)

    if json_out:
        print(json.dumps({
            "day": day,
            "estimated_duration_sec": total,
            "exercises": [planned_exercise_to_dict(ex) for ex in exercises],
        }, indent=2))
        return

    views.print_day(day, exercises, total)


@app.command()
def estimate(
    day: Annotated[str, typer.Argument(help="Day label")],
    data_dir: DataDirOption = None,
    minutes: MinutesOption = None,
) -> None:
    """
    Estimate a day's duration and preview compression against a time budget.

    Nothing is saved.
    """
    store = get_store(data_dir)
    load_profile_or_exit(store)

    try:
        exercises = _load_day_with_metadata(store, day)
    except PlannerError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if not exercises:
        views.print_warning(f"Nothing planned for {day}.")
        raise typer.Exit(0)

    total = estimate_session_duration(exercises)
    views.print_day(day, exercises, total)

    if minutes is None:
        return
    if total <= minutes * 60:
        views.print_success(f"Fits within {minutes:g} min.")
        return

    result = compress_session(exercises, minutes)
    views.console.print()
    views.print_warning(
        f"Over budget by {(total - minutes * 60) / 60:.1f} min. Compression preview:"
    )
    for action in result.actions:
        views.console.print(f"  - {action}")
    views.print_day(f"{day} (compressed)", result.exercises, result.estimated_duration_sec)
    if result.estimated_duration_sec > minutes * 60:
        views.print_warning("Still over budget with a single exercise left.")


@app.command()
def generate(
    day: Annotated[str, typer.Argument(help="Day label to fill in")],
    data_dir: DataDirOption = None,
    minutes: MinutesOption = None,
    replace: Annotated[
        Optional[int],
        typer.Option("--replace", "-r", help="Replace exercise N (1-based) instead of adding"),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show the session without saving it"),
    ] = False,
    json_out: JsonOption = False,
) -> None:
    """
    Complete a day with generated exercises, progression targets and a time budget.

    Requires OPENAI_API_KEY.  The day is saved only when the whole pipeline
    succeeds.
    """
    store = get_store(data_dir)
    profile = load_profile_or_exit(store)

    if replace is not None and replace < 1:
        views.print_error("--replace is 1-based and must be at least 1.")
        raise typer.Exit(1)

    async def run():
        request = SessionRequest(
            profile=profile,
            day=day,
            existing=store.load_day(day),
            catalog=merged_catalog(store.load_custom_exercises()),
            logs=store.load_logs(),
            time_constraint_min=minutes,
            replace_index=replace - 1 if replace is not None else None,
        )
        assembler = SessionAssembler(OpenAIGenerator(), records=PersonalRecordTracker(store))
        return await assembler.assemble(request)

    try:
        plan = asyncio.run(run())
        if not dry_run:
            store.save_day(day, plan.exercises)
    except PlannerError as e:
        report_planner_error(e)
        raise typer.Exit(1)

    if json_out:
        print(json.dumps(session_plan_to_dict(plan), indent=2))
        return

    views.print_session_plan(plan)
    if dry_run:
        views.print_info("Dry run: nothing saved.")
    else:
        views.print_success(f"Saved {day} to {store.plan_path}")


@app.command("generate-week")
def generate_week(
    data_dir: DataDirOption = None,
    minutes: MinutesOption = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show the week without saving it"),
    ] = False,
    json_out: JsonOption = False,
) -> None:
    """
    Generate a whole week of sessions in one go (--minutes budgets each day).

    Requires OPENAI_API_KEY.  All seven days are replaced together, and only
    when every day passed validation.
    """
    store = get_store(data_dir)
    profile = load_profile_or_exit(store)

    async def run():
        request = WeekRequest(
            profile=profile,
            catalog=merged_catalog(store.load_custom_exercises()),
            logs=store.load_logs(),
            time_constraint_min=minutes,
        )
        assembler = SessionAssembler(OpenAIGenerator(), records=PersonalRecordTracker(store))
        return await assembler.assemble_week(request)

    try:
        week = asyncio.run(run())
        if not dry_run:
            store.save_week({day: plan.exercises for day, plan in week.days.items()})
    except PlannerError as e:
        report_planner_error(e)
        raise typer.Exit(1)

    if json_out:
        print(json.dumps(week_plan_to_dict(week), indent=2))
        return

    views.print_week_plan(week)
    if dry_run:
        views.print_info("Dry run: nothing saved.")
    else:
        views.print_success(
            f"Saved {len(week.training_days)} training day(s) to {store.plan_path}"
        )
