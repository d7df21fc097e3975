"""Profile management commands: init and add-exercise."""

from typing import Annotated, Optional

import typer

from ...core.equipment import EQUIPMENT_PRESETS, preset_equipment
from ...core.errors import PlannerError
from ...core.exercises.base import CatalogExercise
from ...core.models import UserProfile
from .. import views
from ..app import DataDirOption, app, get_store, load_profile_or_exit


@app.command()
def init(
    data_dir: DataDirOption = None,
    user_id: Annotated[
        str,
        typer.Option("--user-id", "-u", help="Identifier for this user"),
    ] = "me",
    age: Annotated[Optional[int], typer.Option("--age", help="Age in years")] = None,
    sex: Annotated[Optional[str], typer.Option("--sex", "-s", help="Sex")] = None,
    goal: Annotated[
        Optional[str],
        typer.Option("--goal", "-g", help="Training goal, e.g. 'build muscle', 'strength'"),
    ] = None,
    days_per_week: Annotated[
        Optional[int],
        typer.Option("--days-per-week", "-d", help="Training days per week (1-7)"),
    ] = None,
    bodyweight_kg: Annotated[
        Optional[float],
        typer.Option("--bodyweight-kg", "-w", help="Current bodyweight in kg"),
    ] = None,
    experience: Annotated[
        Optional[str],
        typer.Option("--experience", help="Experience level, e.g. 'less than 1 year'"),
    ] = None,
    equipment: Annotated[
        Optional[list[str]],
        typer.Option("--equipment", "-e", help="Available equipment item (repeatable)"),
    ] = None,
    preset: Annotated[
        Optional[str],
        typer.Option(
            "--preset",
            help=f"Equipment preset: {', '.join(EQUIPMENT_PRESETS)}",
        ),
    ] = None,
    feedback: Annotated[
        Optional[str],
        typer.Option("--feedback", help="Free-text feedback for the generator"),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing profile without prompting"),
    ] = False,
) -> None:
    """
    Create or replace the user profile.

    Equipment: pass --equipment once per item, or a --preset.  With neither,
    the profile is unrestricted (full gym).  '--preset bodyweight' means no
    equipment at all.
    """
    store = get_store(data_dir)

    if store.exists() and not force:
        if not views.confirm_action(f"A profile already exists in {store.root}. Replace it?"):
            views.print_info("Cancelled.")
            raise typer.Exit(0)

    if preset is not None and equipment:
        views.print_error("Use either --preset or --equipment, not both.")
        raise typer.Exit(1)

    try:
        items = preset_equipment(preset) if preset is not None else (equipment or None)
        profile = UserProfile(
            user_id=user_id,
            age=age,
            sex=sex,
            goal=goal,
            days_per_week=days_per_week,
            equipment=items,
            bodyweight_kg=bodyweight_kg,
            experience_level=experience,
            feedback=feedback,
        )
    except ValueError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    try:
        store.init()
        store.save_profile(profile)
    except PlannerError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_success(f"Profile saved to {store.profile_path}")
    if profile.equipment is None:
        views.print_info("Equipment: unrestricted (full gym)")
    elif not profile.equipment:
        views.print_info("Equipment: bodyweight only")
    else:
        views.print_info(f"Equipment: {', '.join(profile.equipment)}")


@app.command("add-exercise")
def add_exercise(
    name: Annotated[str, typer.Argument(help="Exercise name")],
    data_dir: DataDirOption = None,
    equipment: Annotated[
        Optional[list[str]],
        typer.Option("--equipment", "-e", help="Required equipment item (repeatable)"),
    ] = None,
    muscle: Annotated[
        Optional[list[str]],
        typer.Option("--muscle", "-m", help="Muscle group trained (repeatable)"),
    ] = None,
    timed: Annotated[
        bool,
        typer.Option("--timed", help="Performed for time rather than reps"),
    ] = False,
    seconds_per_rep: Annotated[
        Optional[float],
        typer.Option("--seconds-per-rep", help="Base seconds per rep"),
    ] = None,
    tier: Annotated[
        Optional[int],
        typer.Option("--tier", help="1 compound, 2 accessory, 3 prehab/core"),
    ] = None,
) -> None:
    """
    Add a custom exercise to your catalog.

    A custom exercise with the same name as a shared one replaces it.
    """
    store = get_store(data_dir)
    load_profile_or_exit(store)

    try:
        exercise = CatalogExercise(
            name=name.strip(),
            is_custom=True,
            is_timed=timed,
            equipment_needed=tuple(equipment or ()),
            muscle_groups=tuple(m.lower() for m in (muscle or ())),
            base_seconds_per_rep=seconds_per_rep,
            tier=tier,
        )
    except ValueError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    try:
        store.add_custom_exercise(exercise)
    except PlannerError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_success(f"Added custom exercise: {exercise.name}")
