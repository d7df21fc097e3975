"""
Data models for session-planner.

All core dataclasses representing training history, derived metrics and
planned sessions.  Constructors reject malformed input so the heuristics
never have to second-guess their arguments.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

Trend = Literal["progressing", "flat", "struggling"]
ExerciseSource = Literal["existing", "generated"]


def ensure_aware(ts: datetime) -> datetime:
    """Return *ts* as a timezone-aware datetime (naive values are taken as UTC)."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass(frozen=True)
class WorkoutLogEntry:
    """
    One logged set.  Immutable historical fact.

    For timed exercises ``reps`` carries the achieved duration in seconds.
    """

    exercise_name: str
    performed_at: datetime
    weight: float | None = None
    reps: int | None = None
    scheduled_weight: float | None = None
    scheduled_reps: int | None = None
    session_id: str | None = None

    def __post_init__(self) -> None:
        """Validate log data."""
        if not isinstance(self.exercise_name, str) or not self.exercise_name.strip():
            raise ValueError("exercise_name must be a non-empty string")
        if not isinstance(self.performed_at, datetime):
            raise ValueError("performed_at must be a datetime")
        object.__setattr__(self, "performed_at", ensure_aware(self.performed_at))
        for name in ("weight", "reps", "scheduled_weight", "scheduled_reps"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be non-negative")


@dataclass
class PersonalRecord:
    """
    Best-ever result for one exercise.

    weight=0 marks a bodyweight or timed record; ``reps`` then holds the
    rep count or duration in seconds.
    """

    exercise_name: str
    weight: float
    reps: int | None
    performed_at: datetime
    session_id: str | None = None

    def __post_init__(self) -> None:
        """Validate record data."""
        if self.weight < 0:
            raise ValueError("weight must be non-negative")
        if self.reps is not None and self.reps < 0:
            raise ValueError("reps must be non-negative")
        self.performed_at = ensure_aware(self.performed_at)


@dataclass(frozen=True)
class ExerciseHistoryMetrics:
    """Performance summary for one exercise, computed per request."""

    has_history: bool
    last_log: WorkoutLogEntry | None
    last_successful: WorkoutLogEntry | None
    recent_failures: int
    trend: Trend
    estimated_training_max: float | None


@dataclass(frozen=True)
class MuscleRecoveryState:
    """Freshness of one muscle group (0 = just worked, 100 = fully recovered)."""

    muscle_group: str
    recovery_percent: float
    last_worked_at: datetime | None
    total_volume: float


@dataclass(frozen=True)
class DurationEstimate:
    """Time cost of one planned exercise."""

    active_seconds: int
    rest_seconds: int
    seconds_per_rep: float | None  # None for timed exercises

    @property
    def total_seconds(self) -> int:
        """Active work plus rest."""
        return self.active_seconds + self.rest_seconds


@dataclass(frozen=True)
class ProgressionSuggestion:
    """Suggested target for the next session of one exercise."""

    suggested_sets: int
    suggested_reps: int | None
    suggested_weight: float | None  # 0 for bodyweight
    note: str


@dataclass
class LoggedSet:
    """A performed set as seen by the recovery model."""

    weight: float | None
    reps: int | None
    muscle_groups: list[str] = field(default_factory=list)


@dataclass
class WorkoutSession:
    """All sets performed in one session."""

    performed_at: datetime
    sets: list[LoggedSet] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.performed_at = ensure_aware(self.performed_at)


@dataclass
class PlannedSet:
    """
    One planned set.

    Load/rep sets carry ``reps`` (and ``weight``: None = unknown, 0 =
    bodyweight); timed sets carry ``duration_sec``.
    """

    index: int
    reps: int | None = None
    weight: float | None = None
    duration_sec: int | None = None
    rest_time_sec: int | None = None

    def __post_init__(self) -> None:
        """Validate planned set data."""
        if self.index < 1:
            raise ValueError("index is 1-based")
        if self.reps is not None and self.reps < 0:
            raise ValueError("reps must be non-negative")
        if self.weight is not None and self.weight < 0:
            raise ValueError("weight must be non-negative")
        if self.duration_sec is not None and self.duration_sec < 0:
            raise ValueError("duration_sec must be non-negative")
        if self.rest_time_sec is not None and self.rest_time_sec < 0:
            raise ValueError("rest_time_sec must be non-negative")


@dataclass
class PlannedExercise:
    """
    One exercise in a day's plan.

    The metadata fields below ``source`` are filled from the exercise
    catalog when available and only feed duration estimation and
    compression priority; they are not persisted.
    """

    name: str
    target_sets: int
    target_reps: int | None = None
    target_duration_sec: int | None = None
    rest_time_sec: int | None = None
    notes: str | None = None
    sets: list[PlannedSet] = field(default_factory=list)
    source: ExerciseSource = "existing"

    is_timed: bool = False
    movement_pattern: str | None = None
    tempo_category: str | None = None
    setup_buffer_sec: int | None = None
    is_unilateral: bool = False
    base_seconds_per_rep: float | None = None
    tier: int | None = None

    def __post_init__(self) -> None:
        """Validate exercise data."""
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("name must be a non-empty string")
        if self.target_sets < 0:
            raise ValueError("target_sets must be non-negative")
        if self.target_reps is not None and self.target_reps < 0:
            raise ValueError("target_reps must be non-negative")
        if self.target_duration_sec is not None and self.target_duration_sec < 0:
            raise ValueError("target_duration_sec must be non-negative")
        if self.rest_time_sec is not None and self.rest_time_sec < 0:
            raise ValueError("rest_time_sec must be non-negative")
        if self.tier is not None and self.tier not in (1, 2, 3):
            raise ValueError(f"Invalid tier: {self.tier}")

    @property
    def has_set_data(self) -> bool:
        """True when concrete per-set targets already exist."""
        return len(self.sets) > 0

    @property
    def uses_duration(self) -> bool:
        """True when sets are timed (any set carries a duration)."""
        return any(s.duration_sec is not None for s in self.sets) or (
            not self.sets and self.is_timed and self.target_duration_sec is not None
        )


@dataclass
class SessionPlan:
    """The assembler's output for one day."""

    day: str
    exercises: list[PlannedExercise] = field(default_factory=list)
    was_compressed: bool = False
    added_count: int = 0
    estimated_duration_sec: int = 0
    compression_actions: list[str] = field(default_factory=list)

    @property
    def estimated_duration_min(self) -> float:
        return self.estimated_duration_sec / 60.0


@dataclass
class WeekPlan:
    """The assembler's output for a whole week, one SessionPlan per day."""

    days: dict[str, SessionPlan] = field(default_factory=dict)

    @property
    def training_days(self) -> list[str]:
        return [day for day, plan in self.days.items() if plan.exercises]

    @property
    def added_count(self) -> int:
        return sum(plan.added_count for plan in self.days.values())


@dataclass
class UserProfile:
    """
    User profile as supplied by the app.

    ``equipment`` semantics: None = unrestricted (full gym), [] = bodyweight
    only, otherwise the list of items the user has access to.
    """

    user_id: str
    age: int | None = None
    sex: str | None = None
    goal: str | None = None
    days_per_week: int | None = None
    equipment: list[str] | None = None
    bodyweight_kg: float | None = None
    experience_level: str | None = None
    feedback: str | None = None

    def __post_init__(self) -> None:
        """Validate profile data."""
        if not isinstance(self.user_id, str) or not self.user_id.strip():
            raise ValueError("user_id must be a non-empty string")
        if self.age is not None and self.age <= 0:
            raise ValueError("age must be positive")
        if self.bodyweight_kg is not None and self.bodyweight_kg <= 0:
            raise ValueError("bodyweight_kg must be positive")
        if self.days_per_week is not None and not 1 <= self.days_per_week <= 7:
            raise ValueError("days_per_week must be between 1 and 7")
