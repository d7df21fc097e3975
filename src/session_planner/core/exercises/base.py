"""
Base type for exercise catalog entries.

CatalogExercise describes one exercise the planner may choose from: what it
needs (equipment), what it trains (muscle groups), and how long a rep takes.
The optional classification fields let a catalog entry state its movement
pattern, load category and tier explicitly instead of relying on name-based
inference (see core/classify.py).
"""

from dataclasses import dataclass, field

LOAD_CATEGORIES = ("upper", "lower", "other")
MOVEMENT_PATTERNS = (
    "squat",
    "hinge",
    "lunge",
    "push_vert",
    "push_horiz",
    "pull_vert",
    "pull_horiz",
    "carry",
)
TEMPO_CATEGORIES = ("grind", "standard", "ballistic")


@dataclass(frozen=True)
class CatalogExercise:
    """
    Full configuration for one exercise.

    ``equipment_needed`` empty means bodyweight: always available.
    """

    # Identity
    name: str
    is_custom: bool = False

    # Requirements / targets
    is_timed: bool = False
    equipment_needed: tuple[str, ...] = ()
    muscle_groups: tuple[str, ...] = ()
    difficulty: str | None = None

    # Timing
    base_seconds_per_rep: float | None = None
    tempo_category: str | None = None
    setup_buffer_sec: int | None = None
    is_unilateral: bool = False

    # Explicit classification (None = infer from equipment or name)
    bodyweight: bool | None = None
    load_category: str | None = None
    movement_pattern: str | None = None
    tier: int | None = None

    aliases: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        """Validate catalog entry."""
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("name must be a non-empty string")
        if self.base_seconds_per_rep is not None and self.base_seconds_per_rep <= 0:
            raise ValueError("base_seconds_per_rep must be positive")
        if self.setup_buffer_sec is not None and self.setup_buffer_sec < 0:
            raise ValueError("setup_buffer_sec must be non-negative")
        if self.load_category is not None and self.load_category not in LOAD_CATEGORIES:
            raise ValueError(f"Invalid load_category: {self.load_category!r}")
        if self.movement_pattern is not None and self.movement_pattern not in MOVEMENT_PATTERNS:
            raise ValueError(f"Invalid movement_pattern: {self.movement_pattern!r}")
        if self.tempo_category is not None and self.tempo_category not in TEMPO_CATEGORIES:
            raise ValueError(f"Invalid tempo_category: {self.tempo_category!r}")
        if self.tier is not None and self.tier not in (1, 2, 3):
            raise ValueError(f"Invalid tier: {self.tier}")

    @property
    def is_bodyweight(self) -> bool:
        """Explicit ``bodyweight`` flag, else True when no equipment is needed."""
        if self.bodyweight is not None:
            return self.bodyweight
        return len(self.equipment_needed) == 0

    def matches_name(self, name: str) -> bool:
        """Case-insensitive match against the name or any alias."""
        key = name.strip().lower()
        return key == self.name.lower() or key in (a.lower() for a in self.aliases)
