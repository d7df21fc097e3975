"""
Session assembly for session-planner.

SessionAssembler turns one day's existing exercises into a complete,
time-budgeted session with help from an external text generator:

    building_pool       equipment-filtered candidates, recovery state
    awaiting_generator  one generator call per assemble()
    validating          parse + schema check of the reply (all or nothing)
    assembling_targets  progression and concrete sets per exercise
    compressing         trim to the time budget when over it
    done | error

``assemble_week`` runs the same stages once for a whole generated week,
then targets and compresses each day on its own.

The generator is any object with ``async generate(prompt) -> str``.
"""

import copy
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Protocol

from .classify import resolve_is_bodyweight, resolve_movement_pattern, resolve_tier
from .compression import compress_session
from .config import DEFAULT_REPS_FOR_ESTIMATE, DEFAULT_TIMED_SET_SEC, normalize_rest_seconds
from .duration import estimate_session_duration
from .equipment import filter_exercises
from .errors import ValidationError
from .exercises.base import CatalogExercise
from .exercises.registry import find_exercise, merged_catalog
from .metrics import compute_exercise_history_metrics, logs_for_exercise, sort_newest_first
from .models import (
    MuscleRecoveryState,
    PersonalRecord,
    PlannedExercise,
    PlannedSet,
    SessionPlan,
    UserProfile,
    WeekPlan,
    WorkoutLogEntry,
    WorkoutSession,
)
from .physiology import calculate_all_muscle_recovery, recovery_warnings, workouts_from_logs
from .progression import compute_progression_suggestion, is_bodyweight_by_sets
from .prompts import build_session_prompt, build_week_prompt
from .records import PersonalRecordTracker, compute_pr_from_logs
from ..io.response_parser import parse_generated_exercises, parse_week_schedule

logger = logging.getLogger(__name__)


class AssemblyStage(str, Enum):
    IDLE = "idle"
    BUILDING_POOL = "building_pool"
    AWAITING_GENERATOR = "awaiting_generator"
    VALIDATING = "validating"
    ASSEMBLING_TARGETS = "assembling_targets"
    COMPRESSING = "compressing"
    DONE = "done"
    ERROR = "error"


class TextGenerator(Protocol):
    """Free-form prompt in, free-form text out."""

    async def generate(self, prompt: str) -> str:
        ...


@dataclass
class SessionRequest:
    """
    Everything the assembler needs for one day.

    ``catalog`` None means the shared catalog; ``workouts`` None means
    derive them from ``logs``.  ``records`` and ``calibration`` are keyed
    by lowercase exercise name.
    """

    profile: UserProfile | None
    day: str
    existing: list[PlannedExercise] = field(default_factory=list)
    catalog: list[CatalogExercise] | None = None
    logs: list[WorkoutLogEntry] = field(default_factory=list)
    records: dict[str, PersonalRecord] = field(default_factory=dict)
    workouts: list[WorkoutSession] | None = None
    time_constraint_min: float | None = None
    replace_index: int | None = None
    calibration: dict[str, float] = field(default_factory=dict)
    now: datetime | None = None


@dataclass
class WeekRequest:
    """
    Everything the assembler needs for a whole generated week.

    Same conventions as SessionRequest; ``time_constraint_min`` is the
    budget for each day's session.
    """

    profile: UserProfile | None
    catalog: list[CatalogExercise] | None = None
    logs: list[WorkoutLogEntry] = field(default_factory=list)
    records: dict[str, PersonalRecord] = field(default_factory=dict)
    workouts: list[WorkoutSession] | None = None
    time_constraint_min: float | None = None
    calibration: dict[str, float] = field(default_factory=dict)
    now: datetime | None = None

    def for_day(self, day: str) -> SessionRequest:
        """Single-day request sharing this week's history and budget."""
        return SessionRequest(
            profile=self.profile,
            day=day,
            catalog=self.catalog,
            logs=self.logs,
            records=self.records,
            workouts=self.workouts,
            time_constraint_min=self.time_constraint_min,
            calibration=self.calibration,
            now=self.now,
        )


def apply_catalog_metadata(
    exercise: PlannedExercise, entry: CatalogExercise | None
) -> PlannedExercise:
    """
    Copy of *exercise* with timing and priority metadata filled in.

    Explicit catalog fields win; otherwise the name classifier decides.
    """
    return replace(
        exercise,
        is_timed=exercise.is_timed or bool(entry and entry.is_timed),
        movement_pattern=exercise.movement_pattern
        or resolve_movement_pattern(exercise.name, entry),
        tempo_category=exercise.tempo_category or (entry.tempo_category if entry else None),
        setup_buffer_sec=(
            exercise.setup_buffer_sec
            if exercise.setup_buffer_sec is not None
            else (entry.setup_buffer_sec if entry else None)
        ),
        is_unilateral=exercise.is_unilateral or bool(entry and entry.is_unilateral),
        base_seconds_per_rep=exercise.base_seconds_per_rep
        or (entry.base_seconds_per_rep if entry else None),
        tier=exercise.tier if exercise.tier is not None else resolve_tier(exercise.name, entry),
    )


def _last_timed_duration(logs: list[WorkoutLogEntry]) -> int | None:
    for log in sort_newest_first(logs):
        if log.reps:
            return log.reps
    return None


class SessionAssembler:
    """
    Builds a SessionPlan for one day.

    Args:
        generator: Text-completion collaborator
        records: Tracker used for personal records missing from the request
    """

    def __init__(
        self,
        generator: TextGenerator,
        records: PersonalRecordTracker | None = None,
    ) -> None:
        self.generator = generator
        self.records = records
        self.stage = AssemblyStage.IDLE

    def _enter(self, stage: AssemblyStage) -> None:
        self.stage = stage
        logger.debug("Assembly stage: %s", stage.value)

    async def assemble(self, request: SessionRequest) -> SessionPlan:
        """
        Generate, merge, target and compress one day's session.

        Raises:
            ValidationError: Bad replace index, or generator output failed validation
            ParseError: Generator output contained no JSON
            PlannerError: Any generator or data store failure
        """
        try:
            plan = await self._assemble(request)
        except Exception:
            self._enter(AssemblyStage.ERROR)
            raise
        self._enter(AssemblyStage.DONE)
        return plan

    async def _assemble(self, request: SessionRequest) -> SessionPlan:
        now = request.now or datetime.now(timezone.utc)
        existing = copy.deepcopy(request.existing)
        if request.replace_index is not None and not 0 <= request.replace_index < len(existing):
            raise ValidationError(
                f"replace_index {request.replace_index} is out of range "
                f"for {len(existing)} exercise(s)"
            )

        self._enter(AssemblyStage.BUILDING_POOL)
        catalog = request.catalog if request.catalog is not None else merged_catalog()
        candidates, warnings = self._pool(request, catalog, existing, now)
        logger.info(
            "Building %s: %d existing, %d candidate(s), %d fatigued group(s)",
            request.day,
            len(existing),
            len(candidates),
            len(warnings),
        )

        prompt = build_session_prompt(
            request.profile,
            request.day,
            existing,
            candidates,
            warnings,
            request.time_constraint_min,
            request.replace_index,
        )

        self._enter(AssemblyStage.AWAITING_GENERATOR)
        text = await self.generator.generate(prompt)

        self._enter(AssemblyStage.VALIDATING)
        generated = parse_generated_exercises(text)

        if request.replace_index is not None:
            exercises = list(existing)
            exercises[request.replace_index] = generated[0]
            if len(generated) > 1:
                logger.debug("Replacement mode: ignoring %d extra exercise(s)", len(generated) - 1)
        else:
            exercises = existing + generated

        self._enter(AssemblyStage.ASSEMBLING_TARGETS)
        return await self._finish_day(request, exercises, catalog)

    async def assemble_week(self, request: WeekRequest) -> WeekPlan:
        """
        Generate a whole week in one generator call.

        Every day of the week is present in the result; days the generator
        left out are empty rest days.  Each training day gets the same
        targets and compression as a single assembled day.

        Raises:
            ValidationError: Missing week_schedule, no exercises, or any invalid exercise
            ParseError: Generator output contained no JSON
            PlannerError: Any generator or data store failure
        """
        try:
            week = await self._assemble_week(request)
        except Exception:
            self._enter(AssemblyStage.ERROR)
            raise
        self._enter(AssemblyStage.DONE)
        return week

    async def _assemble_week(self, request: WeekRequest) -> WeekPlan:
        now = request.now or datetime.now(timezone.utc)

        self._enter(AssemblyStage.BUILDING_POOL)
        catalog = request.catalog if request.catalog is not None else merged_catalog()
        candidates, warnings = self._pool(request, catalog, [], now)
        logger.info(
            "Building week: %d candidate(s), %d fatigued group(s)", len(candidates), len(warnings)
        )
        prompt = build_week_prompt(
            request.profile, candidates, warnings, request.time_constraint_min
        )

        self._enter(AssemblyStage.AWAITING_GENERATOR)
        text = await self.generator.generate(prompt)

        self._enter(AssemblyStage.VALIDATING)
        schedule = parse_week_schedule(text)

        self._enter(AssemblyStage.ASSEMBLING_TARGETS)
        week = WeekPlan()
        for day, exercises in schedule.items():
            week.days[day] = await self._finish_day(request.for_day(day), exercises, catalog)
        logger.info(
            "Assembled week: %d training day(s), %d exercise(s)",
            len(week.training_days),
            week.added_count,
        )
        return week

    def _pool(
        self,
        request: "SessionRequest | WeekRequest",
        catalog: list[CatalogExercise],
        existing: list[PlannedExercise],
        now: datetime,
    ) -> tuple[list[str], list[MuscleRecoveryState]]:
        """Equipment-filtered candidate names and still-fatigued muscle groups."""
        equipment = request.profile.equipment if request.profile else None
        existing_names = {ex.name.strip().lower() for ex in existing}
        candidates = [
            ex.name
            for ex in filter_exercises(catalog, equipment)
            if ex.name.lower() not in existing_names
        ]
        workouts = (
            request.workouts
            if request.workouts is not None
            else workouts_from_logs(request.logs, catalog)
        )
        return candidates, recovery_warnings(calculate_all_muscle_recovery(workouts, now))

    async def _finish_day(
        self,
        request: SessionRequest,
        exercises: list[PlannedExercise],
        catalog: list[CatalogExercise],
    ) -> SessionPlan:
        """Targets, duration estimate and compression for one day's exercises."""
        assembled: list[PlannedExercise] = []
        for ex in exercises:
            entry = find_exercise(ex.name, catalog)
            ex = apply_catalog_metadata(ex, entry)
            if not ex.has_set_data:
                ex = await self._with_targets(ex, entry, request)
            assembled.append(ex)

        estimated = estimate_session_duration(assembled, request.calibration)
        plan = SessionPlan(day=request.day, exercises=assembled, estimated_duration_sec=estimated)

        budget = request.time_constraint_min
        if budget and estimated > budget * 60:
            self._enter(AssemblyStage.COMPRESSING)
            result = compress_session(assembled, budget, request.calibration)
            plan.exercises = result.exercises
            plan.estimated_duration_sec = result.estimated_duration_sec
            plan.was_compressed = result.was_compressed
            plan.compression_actions = result.actions

        plan.added_count = sum(1 for ex in plan.exercises if ex.source == "generated")
        logger.info(
            "Assembled %s: %d exercise(s), %.1f min%s",
            plan.day,
            len(plan.exercises),
            plan.estimated_duration_min,
            " (compressed)" if plan.was_compressed else "",
        )
        return plan

    async def _personal_record(
        self, request: SessionRequest, exercise_name: str
    ) -> PersonalRecord | None:
        key = exercise_name.strip().lower()
        if key in request.records:
            return request.records[key]
        if self.records is not None and request.profile is not None:
            return await self.records.get(request.profile.user_id, exercise_name)
        return compute_pr_from_logs(request.logs, exercise_name)

    async def _with_targets(
        self,
        exercise: PlannedExercise,
        entry: CatalogExercise | None,
        request: SessionRequest,
    ) -> PlannedExercise:
        """Fill in progression targets and concrete sets for one exercise."""
        logs = logs_for_exercise(request.logs, exercise.name)
        metrics = compute_exercise_history_metrics(logs)
        if any(s.weight for s in exercise.sets):
            bodyweight = False
        else:
            bodyweight = is_bodyweight_by_sets(exercise) or resolve_is_bodyweight(
                exercise.name, entry, logs
            )
        suggestion = compute_progression_suggestion(
            request.profile,
            exercise,
            metrics,
            await self._personal_record(request, exercise.name),
            entry=entry,
            bodyweight=bodyweight,
        )

        rest = normalize_rest_seconds(exercise.rest_time_sec)
        sets_count = suggestion.suggested_sets

        if exercise.is_timed:
            duration = (
                exercise.target_duration_sec or _last_timed_duration(logs) or DEFAULT_TIMED_SET_SEC
            )
            sets = [
                PlannedSet(index=i, duration_sec=duration, rest_time_sec=rest)
                for i in range(1, sets_count + 1)
            ]
            return replace(
                exercise,
                target_sets=sets_count,
                target_duration_sec=duration,
                rest_time_sec=rest,
                notes=exercise.notes or suggestion.note,
                sets=sets,
            )

        reps = suggestion.suggested_reps or DEFAULT_REPS_FOR_ESTIMATE
        weight = 0.0 if bodyweight else suggestion.suggested_weight
        sets = [
            PlannedSet(index=i, reps=reps, weight=weight, rest_time_sec=rest)
            for i in range(1, sets_count + 1)
        ]
        return replace(
            exercise,
            target_sets=sets_count,
            target_reps=reps,
            rest_time_sec=rest,
            notes=exercise.notes or suggestion.note,
            sets=sets,
        )
