"""
Rich-based output formatting for the CLI.

Tables for planned days, recovery state, history metrics and the catalog,
plus the shared success/error/warning helpers.
"""

from collections import Counter
from typing import Mapping, Sequence

from rich.console import Console
from rich.table import Table

from ..core.config import DEFAULT_REST_SEC
from ..core.duration import estimate_planned_exercise
from ..core.exercises.base import CatalogExercise
from ..core.metrics import is_successful
from ..core.models import (
    ExerciseHistoryMetrics,
    MuscleRecoveryState,
    PersonalRecord,
    PlannedExercise,
    PlannedSet,
    ProgressionSuggestion,
    SessionPlan,
    WeekPlan,
    WorkoutLogEntry,
)
from ..core.physiology import recovery_label

console = Console()

_TREND_STYLE = {"progressing": "green", "flat": "yellow", "struggling": "red"}


def _fmt_weight(weight: float | None) -> str:
    if weight is None:
        return "?"
    if weight == 0:
        return "BW"
    return f"{weight:g}"


def fmt_sets(sets: Sequence[PlannedSet]) -> str:
    """
    Format planned sets compactly, e.g. "8x3 @100 / 90s" or "45s x3 / 60s".
    """
    if not sets:
        return "(no sets)"

    rest = sets[0].rest_time_sec if sets[0].rest_time_sec is not None else DEFAULT_REST_SEC
    if any(s.duration_sec is not None for s in sets):
        durations = Counter(s.duration_sec or 0 for s in sets)
        base = ", ".join(f"{d}s x{n}" for d, n in sorted(durations.items(), reverse=True))
        return f"{base} / {rest}s"

    reps_list = [s.reps for s in sets]
    if all(r == reps_list[0] for r in reps_list):
        base = f"{reps_list[0] if reps_list[0] is not None else '?'}x{len(reps_list)}"
    else:
        base = ", ".join(str(r) if r is not None else "?" for r in reps_list)
    return f"{base} @{_fmt_weight(sets[0].weight)} / {rest}s"


def _fmt_targets(ex: PlannedExercise) -> str:
    if ex.sets:
        return fmt_sets(ex.sets)
    rest = ex.rest_time_sec if ex.rest_time_sec is not None else DEFAULT_REST_SEC
    if ex.target_duration_sec is not None and ex.target_reps is None:
        return f"{ex.target_duration_sec}s x{ex.target_sets} / {rest}s"
    return f"{ex.target_reps or '?'}x{ex.target_sets} / {rest}s"


def format_day_table(
    title: str,
    exercises: Sequence[PlannedExercise],
    calibration: Mapping[str, float] | None = None,
) -> Table:
    """
    Create a Rich table for one day's exercises with per-exercise time.

    Args:
        title: Table title
        exercises: Ordered exercises
        calibration: {lowercase name: seconds per rep}

    Returns:
        Rich Table object
    """
    table = Table(title=title)

    table.add_column("#", justify="right", style="dim", width=3)
    table.add_column("Exercise", style="cyan")
    table.add_column("Sets", style="bold")
    table.add_column("Tier", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("Source", style="magenta")
    table.add_column("Notes", style="dim")

    for i, ex in enumerate(exercises):
        estimate = estimate_planned_exercise(ex, i, calibration)
        table.add_row(
            str(i + 1),
            ex.name,
            _fmt_targets(ex),
            str(ex.tier) if ex.tier is not None else "-",
            f"{estimate.total_seconds / 60:.1f} min",
            "new" if ex.source == "generated" else "",
            ex.notes or "",
        )

    return table


def print_day(
    day: str,
    exercises: Sequence[PlannedExercise],
    total_seconds: int,
    calibration: Mapping[str, float] | None = None,
) -> None:
    """Print a planned day and its total estimated time."""
    if not exercises:
        console.print(f"[yellow]Nothing planned for {day}.[/yellow]")
        return
    console.print(format_day_table(day, exercises, calibration))
    console.print(f"Estimated duration: [bold]{total_seconds / 60:.1f} min[/bold]")


def print_session_plan(plan: SessionPlan, calibration: Mapping[str, float] | None = None) -> None:
    """Print the assembler's result with its compression summary."""
    print_day(plan.day, plan.exercises, plan.estimated_duration_sec, calibration)
    console.print(f"Exercises added: [bold]{plan.added_count}[/bold]")
    if plan.was_compressed:
        console.print("[yellow]Session was compressed to fit the time budget:[/yellow]")
        for action in plan.compression_actions:
            console.print(f"  - {action}")


def print_week_plan(week: WeekPlan, calibration: Mapping[str, float] | None = None) -> None:
    """Print every training day of a generated week, then the rest days."""
    for day in week.training_days:
        print_session_plan(week.days[day], calibration)
        console.print()
    rest_days = [day for day in week.days if day not in week.training_days]
    if rest_days:
        console.print(f"[dim]Rest days: {', '.join(d.capitalize() for d in rest_days)}[/dim]")


def format_recovery_table(states: Sequence[MuscleRecoveryState]) -> Table:
    """Create a Rich table of muscle recovery."""
    table = Table(title="Muscle Recovery")

    table.add_column("Muscle group", style="cyan")
    table.add_column("Recovery", justify="right", style="bold")
    table.add_column("Status")
    table.add_column("Last worked", style="dim")
    table.add_column("Volume", justify="right")

    for state in states:
        pct = state.recovery_percent
        style = "green" if pct >= 90 else "yellow" if pct >= 50 else "red"
        last = state.last_worked_at.strftime("%Y-%m-%d %H:%M") if state.last_worked_at else "-"
        table.add_row(
            state.muscle_group,
            f"{pct:.0f}%",
            f"[{style}]{recovery_label(pct)}[/{style}]",
            last,
            f"{state.total_volume:,.0f}",
        )

    return table


def print_recovery(states: Sequence[MuscleRecoveryState]) -> None:
    if not states:
        console.print("[yellow]No logged sets with muscle group data yet.[/yellow]")
        return
    console.print(format_recovery_table(states))


def format_metrics_display(
    exercise_name: str,
    metrics: ExerciseHistoryMetrics,
    record: PersonalRecord | None,
    suggestion: ProgressionSuggestion,
) -> str:
    """
    Format history metrics, PR and next suggestion as a text block.

    Returns:
        Rich markup string
    """
    lines = [f"[bold]{exercise_name}[/bold]"]

    if not metrics.has_history:
        lines.append("- No history yet")
    else:
        style = _TREND_STYLE[metrics.trend]
        lines.append(f"- Trend: [{style}]{metrics.trend}[/{style}]")
        lines.append(f"- Recent failures: {metrics.recent_failures}")
        if metrics.last_successful is not None:
            last = metrics.last_successful
            lines.append(f"- Last successful: {_fmt_weight(last.weight)} x {last.reps}")
        if metrics.estimated_training_max is not None:
            lines.append(f"- Estimated 1RM: {metrics.estimated_training_max:.1f}")

    if record is not None:
        lines.append(
            f"- PR: {_fmt_weight(record.weight)} x {record.reps} "
            f"({record.performed_at.strftime('%Y-%m-%d')})"
        )

    reps = suggestion.suggested_reps if suggestion.suggested_reps is not None else "?"
    lines.append(
        f"- Next: {suggestion.suggested_sets} x {reps} @ {_fmt_weight(suggestion.suggested_weight)}"
    )
    lines.append(f"  [dim]{suggestion.note}[/dim]")
    return "\n".join(lines)


def print_history(logs: Sequence[WorkoutLogEntry]) -> None:
    """Print logged sets, one row each."""
    if not logs:
        console.print("[yellow]No logged sets yet.[/yellow]")
        return

    table = Table(title="Workout Log")
    table.add_column("Date", style="dim")
    table.add_column("Exercise", style="cyan")
    table.add_column("Performed", justify="right", style="bold")
    table.add_column("Scheduled", justify="right")
    table.add_column("Result", justify="center")

    for log in logs:
        performed = f"{log.reps if log.reps is not None else '?'} @{_fmt_weight(log.weight)}"
        if log.scheduled_reps is None and log.scheduled_weight is None:
            scheduled, result = "-", ""
        else:
            scheduled = (
                f"{log.scheduled_reps if log.scheduled_reps is not None else '?'}"
                f" @{_fmt_weight(log.scheduled_weight)}"
            )
            result = "[green]ok[/green]" if is_successful(log) else "[red]missed[/red]"
        table.add_row(
            log.performed_at.strftime("%Y-%m-%d %H:%M"),
            log.exercise_name,
            performed,
            scheduled,
            result,
        )

    console.print(table)


def format_catalog_table(exercises: Sequence[CatalogExercise]) -> Table:
    """Create a Rich table of catalog exercises."""
    table = Table(title="Exercise Catalog")

    table.add_column("Exercise", style="cyan")
    table.add_column("Equipment")
    table.add_column("Muscle groups", style="dim")
    table.add_column("Timed", justify="center")
    table.add_column("Custom", justify="center")

    for ex in exercises:
        table.add_row(
            ex.name,
            ", ".join(ex.equipment_needed) or "bodyweight",
            ", ".join(ex.muscle_groups),
            "yes" if ex.is_timed else "",
            "yes" if ex.is_custom else "",
        )

    return table


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning: {message}[/yellow]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{message}[/blue]")


def confirm_action(message: str) -> bool:
    """
    Prompt user for confirmation.

    Args:
        message: Confirmation message

    Returns:
        True if confirmed, False otherwise
    """
    response = console.input(f"{message} [y/N]: ")
    return response.lower() in ("y", "yes")
