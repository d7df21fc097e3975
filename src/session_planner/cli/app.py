"""Shared Typer app object, shared option types, logging setup and store utility."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.logging import RichHandler

from ..core.errors import (
    ConfigurationError,
    DataStoreError,
    GeneratorIOError,
    ModelUnavailableError,
    ParseError,
    PlannerError,
    ValidationError,
)
from ..io.plan_store import JsonDataStore, get_default_data_dir
from . import views

# Shared --data-dir option type used across all commands
DataDirOption = Annotated[
    Optional[Path],
    typer.Option("--data-dir", "-p", help="Directory holding profile, logs and plan JSON"),
]

app = typer.Typer(
    name="session-planner",
    help="Adaptive workout-session planner: progression, recovery and time-budgeted sessions.",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
) -> None:
    """
    Plan workout sessions that fit your equipment, recovery and time budget.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=views.console, rich_tracebacks=True)],
            force=True,
        )


def get_store(data_dir: Path | None) -> JsonDataStore:
    """Get data store from path or default location."""
    return JsonDataStore(data_dir if data_dir is not None else get_default_data_dir())


def load_profile_or_exit(store: JsonDataStore):
    """Return the stored profile; print an error and exit when missing or invalid."""
    try:
        profile = store.load_profile()
    except PlannerError as e:
        views.print_error(str(e))
        raise typer.Exit(1)
    if profile is None:
        views.print_error(f"No profile found in {store.root}. Run 'session-planner init' first.")
        raise typer.Exit(1)
    return profile


def report_planner_error(exc: PlannerError) -> None:
    """Print a user-facing message for each error kind."""
    if isinstance(exc, ConfigurationError):
        views.print_error(str(exc))
    elif isinstance(exc, ParseError):
        views.print_error("The generator reply could not be read. Please retry.")
    elif isinstance(exc, ValidationError):
        views.print_error(f"{exc}. Please retry.")
        for problem in exc.problems:
            views.console.print(f"  [dim]- {problem}[/dim]")
    elif isinstance(exc, ModelUnavailableError):
        views.print_error("The generator model is unavailable. Try again shortly.")
    elif isinstance(exc, (GeneratorIOError, DataStoreError)):
        views.print_error(f"{exc}. Nothing was saved; please retry.")
    else:
        views.print_error(str(exc))
