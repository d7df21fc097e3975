"""
Prompt construction for the exercise generator.

The prompt asks for exercises that complement (or, with a replace index,
substitute for) the day's existing exercises, restricted to the
equipment-filtered candidate pool and to a strict JSON array output.
The week prompt asks for a whole ``week_schedule`` object instead.
"""

from typing import Sequence

from .config import DAYS_OF_WEEK, DEFAULT_WEEK_SESSION_MIN
from .equipment import user_equipment_names
from .models import MuscleRecoveryState, PlannedExercise, UserProfile

DEFAULT_EXPERIENCE_GUIDELINE = "Intermediate level training (moderate volume, balanced approach)"

# (keywords, guideline); first entry with a matching keyword wins
EXPERIENCE_GUIDELINES: tuple[tuple[tuple[str, ...], str], ...] = (
    (
        ("brand new", "new to", "beginner"),
        "BEGINNER: 2-3 sets per exercise, 8-12 reps, 90-120 s rest. "
        "Prioritise form and simple movement patterns.",
    ),
    (
        ("less than 1 year",),
        "BEGINNER-INTERMEDIATE: 3-4 sets per exercise, 8-15 reps, 60-90 s rest.",
    ),
    (
        ("1-2 years", "1–2 years", "intermediate"),
        "INTERMEDIATE: 3-5 sets per exercise, 6-12 reps, 60-90 s rest.",
    ),
    (
        ("2-4 years", "2–4 years"),
        "INTERMEDIATE-ADVANCED: 4-5 sets per exercise, 4-15 reps, 60-120 s rest.",
    ),
    (
        ("4+", "advanced"),
        "ADVANCED: 4-6 sets per exercise, 3-20 reps, rest tuned to intensity.",
    ),
)

GOAL_GUIDELINES: tuple[tuple[tuple[str, ...], str], ...] = (
    (
        ("lose weight", "weight loss", "fat loss"),
        "GOAL: Weight loss. Favour 12-20 reps, circuit-friendly choices and short rest.",
    ),
    (
        ("build muscle", "muscle gain", "hypertrophy"),
        "GOAL: Muscle building. Favour 8-12 reps and enough volume per muscle group.",
    ),
    (
        ("lift heavier", "strength"),
        "GOAL: Strength. Favour compound lifts, 3-6 reps and 2-5 min rest.",
    ),
    (
        ("lean", "defined", "definition"),
        "GOAL: Lean and defined. Mix strength and hypertrophy work at 8-15 reps.",
    ),
)


def _lookup(value: str | None, table: tuple[tuple[tuple[str, ...], str], ...]) -> str | None:
    if not value:
        return None
    key = value.lower()
    for keywords, text in table:
        if any(k in key for k in keywords):
            return text
    return None


def experience_guideline(level: str | None) -> str:
    """Volume and rep guidance for a free-text experience level."""
    return _lookup(level, EXPERIENCE_GUIDELINES) or DEFAULT_EXPERIENCE_GUIDELINE


def goal_guideline(goal: str | None) -> str | None:
    """Goal-specific guidance, or None for an unrecognised goal."""
    return _lookup(goal, GOAL_GUIDELINES)


def describe_equipment(profile: UserProfile | None) -> str:
    """Equipment line for the prompt."""
    if profile is None or profile.equipment is None:
        return "Full gym access (all equipment available)"
    if not user_equipment_names(profile.equipment):
        return "Bodyweight only (no equipment)"
    labels = [e if isinstance(e, str) else e.get("name") for e in profile.equipment]
    return ", ".join(label.strip() for label in labels if isinstance(label, str) and label.strip())


def _profile_lines(profile: UserProfile | None, equipment: str) -> list[str]:
    lines = ["USER PROFILE:"]
    if profile is not None:
        lines += [
            f"- Age: {profile.age or 'N/A'}",
            f"- Sex: {profile.sex or 'Not specified'}",
            f"- Bodyweight: {f'{profile.bodyweight_kg:g} kg' if profile.bodyweight_kg else 'N/A'}",
            f"- Training goal: {profile.goal or 'General fitness'}",
            f"- Training frequency: {profile.days_per_week or 'N/A'} days per week",
            f"- Experience level: {profile.experience_level or 'Not specified'}",
        ]
    lines.append(f"- Equipment access: {equipment}")

    lines += ["", "TRAINING GUIDELINES:", experience_guideline(profile and profile.experience_level)]
    goal = goal_guideline(profile and profile.goal)
    if goal:
        lines.append(goal)
    return lines


def _recovery_lines(recovery_warnings: Sequence[MuscleRecoveryState]) -> list[str]:
    if not recovery_warnings:
        return []
    return ["", "RECOVERY WARNINGS (avoid loading these muscle groups heavily):"] + [
        f"- {s.muscle_group}: {s.recovery_percent:.0f}% recovered" for s in recovery_warnings
    ]


def build_session_prompt(
    profile: UserProfile | None,
    day: str,
    existing: Sequence[PlannedExercise],
    candidates: Sequence[str],
    recovery_warnings: Sequence[MuscleRecoveryState] = (),
    time_constraint_min: float | None = None,
    replace_index: int | None = None,
) -> str:
    """
    Build the generator prompt for one training day.

    Args:
        profile: User profile (None gives a generic prompt)
        day: Day label, e.g. "Monday"
        existing: Exercises already planned for the day
        candidates: Equipment-filtered exercise names to prefer
        recovery_warnings: Muscle groups that are still fatigued
        time_constraint_min: Session budget in minutes
        replace_index: Index of an existing exercise to substitute

    Returns:
        Prompt text
    """
    existing_names = [ex.name for ex in existing]
    existing_list = ", ".join(existing_names) if existing_names else "None"
    equipment = describe_equipment(profile)

    lines: list[str] = []
    if replace_index is not None and 0 <= replace_index < len(existing):
        target = existing[replace_index].name
        lines.append(
            f"Suggest one replacement for {target} in the {day} workout, in JSON format."
        )
    else:
        lines.append(f"Generate supplementary exercises for the {day} workout in JSON format.")

    lines.append("")
    lines += _profile_lines(profile, equipment)

    if existing_names:
        lines += [
            "",
            f"EXISTING EXERCISES FOR {day.upper()}: {existing_list}",
            "Complement these: cover different muscle groups or angles, balance push "
            "with pull and compound with isolation work.",
        ]

    if profile is not None and profile.feedback:
        lines += ["", "USER FEEDBACK TO CONSIDER:", profile.feedback]

    lines += _recovery_lines(recovery_warnings)

    if time_constraint_min:
        lines += [
            "",
            f"TIME BUDGET: the whole session, existing exercises included, must fit in "
            f"{time_constraint_min:g} minutes.",
        ]

    lines += [
        "",
        "RULES:",
        f"- Do not duplicate existing exercises: {existing_list}",
        f"- Only use exercises that can be performed with: {equipment}",
        "- Follow the experience guidelines for volume, reps and rest",
    ]

    if candidates:
        lines += [
            "",
            "AVAILABLE EXERCISES:",
            ", ".join(candidates),
            "Prefer exercises from this list. Only invent one if nothing on the list fits.",
        ]

    lines += [
        "",
        "OUTPUT FORMAT:",
        "A JSON array where every element has exactly these keys:",
        '- "name": string',
        '- "target_sets": integer',
        '- "target_reps": integer (or "target_duration_sec": integer for timed holds)',
        '- "rest_time_sec": integer seconds between sets',
        '- "notes": string (technique cues, may be "")',
        "",
        "Example:",
        "[",
        '  {"name": "Exercise Name", "target_sets": 3, "target_reps": 10, '
        '"rest_time_sec": 90, "notes": "Control the eccentric"}',
        "]",
        "",
        "Return ONLY the JSON array, no other text.",
    ]
    return "\n".join(lines)


def build_week_prompt(
    profile: UserProfile | None,
    candidates: Sequence[str],
    recovery_warnings: Sequence[MuscleRecoveryState] = (),
    time_constraint_min: float | None = None,
) -> str:
    """
    Build the generator prompt for a full weekly plan.

    Training days follow ``profile.days_per_week`` (3 when unknown); the
    rest are returned as empty days.  Without a budget each session aims
    for DEFAULT_WEEK_SESSION_MIN minutes.
    """
    equipment = describe_equipment(profile)
    days_per_week = (profile.days_per_week if profile else None) or 3
    minutes = time_constraint_min or DEFAULT_WEEK_SESSION_MIN

    lines = ["Generate a weekly workout plan in JSON format.", ""]
    lines += _profile_lines(profile, equipment)

    if profile is not None and profile.feedback:
        lines += ["", "USER FEEDBACK TO CONSIDER:", profile.feedback]

    lines += _recovery_lines(recovery_warnings)

    lines += [
        "",
        "RULES:",
        f"- Plan exactly {days_per_week} training day(s); leave the other days empty",
        "- Do not train the same muscle groups heavily on consecutive days",
        "- Start each session with compound lifts, finish with accessories and core",
        f"- Each session must fit in {minutes:g} minutes including rest",
        f"- Only use exercises that can be performed with: {equipment}",
        "- Follow the experience guidelines for volume, reps and rest",
    ]

    if candidates:
        lines += [
            "",
            "AVAILABLE EXERCISES:",
            ", ".join(candidates),
            "Prefer exercises from this list. Only invent one if nothing on the list fits.",
        ]

    day_names = ", ".join(day.capitalize() for day in DAYS_OF_WEEK)
    lines += [
        "",
        "OUTPUT FORMAT:",
        f'A JSON object with a "week_schedule" key holding all seven days ({day_names}).',
        'Each day is {"exercises": [...]} and every exercise has exactly these keys:',
        '- "name": string',
        '- "target_sets": integer',
        '- "target_reps": integer (or "target_duration_sec": integer for timed holds)',
        '- "rest_time_sec": integer seconds between sets',
        '- "notes": string (technique cues, may be "")',
        "",
        "Example:",
        '{"week_schedule": {',
        '  "Monday": {"exercises": [{"name": "Exercise Name", "target_sets": 3, '
        '"target_reps": 8, "rest_time_sec": 120, "notes": ""}]},',
        '  "Tuesday": {"exercises": []}',
        "}}",
        "",
        "Return ONLY the JSON object, no other text.",
    ]
    return "\n".join(lines)
