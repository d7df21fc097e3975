"""
Configuration constants for the session generation engine.

All adjustable parameters are centralized here for easy tuning.  Values
that users commonly override (recovery time constants, generator models)
can also be set in engine.yaml; see core/engine/config_loader.py.
"""

from typing import Final

# =============================================================================
# HISTORY METRICS
# =============================================================================

MAX_RECENT_FOR_TREND: Final[int] = 6  # Logs scanned for failures / last success
STRUGGLING_FAILURE_THRESHOLD: Final[int] = 2  # Failures in window → struggling
PROGRESSING_1RM_MARGIN: Final[float] = 0.02  # 1RM gain needed to call it progress
EPLEY_REP_DIVISOR: Final[float] = 30.0  # 1RM = w × (1 + reps / 30)

# =============================================================================
# PERSONAL RECORDS
# =============================================================================

PR_LOG_LOOKBACK: Final[int] = 100  # Most recent qualifying logs used to compute a PR

# =============================================================================
# PROGRESSION
# =============================================================================

DEFAULT_TARGET_SETS: Final[int] = 3
PR_SAFETY_FRACTION: Final[float] = 0.85  # Start at 85% of a PR above recent work
PROGRESSION_MIN_INCREMENT: Final[float] = 2.5
PROGRESSION_INCREMENT_FRACTION: Final[float] = 0.025
DELOAD_FRACTION: Final[float] = 0.90
DELOAD_MIN_WEIGHT: Final[float] = 5.0
DELOAD_MIN_SETS: Final[int] = 2

# On-ramp heuristics when there is no usable history
HEURISTIC_UPPER_LOAD: Final[float] = 25.0
HEURISTIC_LOWER_LOAD: Final[float] = 50.0
HEURISTIC_BW_FRACTION: Final[float] = 0.30
HEURISTIC_BW_FLOOR: Final[float] = 15.0
HEURISTIC_DEFAULT_LOAD: Final[float] = 20.0

# =============================================================================
# MUSCLE RECOVERY
# =============================================================================

# Time constant τ (hours) in recovery = 100 × (1 − e^(−t/τ))
RECOVERY_TIME_CONSTANTS_H: Final[dict[str, float]] = {
    # Large muscle groups
    "legs": 48.0,
    "back": 48.0,
    "chest": 48.0,
    "glutes": 48.0,
    "hamstrings": 48.0,
    "quadriceps": 48.0,
    "calves": 24.0,
    # Medium
    "shoulders": 36.0,
    "triceps": 24.0,
    "biceps": 24.0,
    "forearms": 24.0,
    # Small / core
    "abs": 24.0,
    "core": 24.0,
    "traps": 24.0,
}
DEFAULT_RECOVERY_TIME_CONSTANT_H: Final[float] = 36.0
RECOVERY_WARNING_THRESHOLD: Final[float] = 50.0  # Below this → flagged in the prompt

# =============================================================================
# DURATION ESTIMATION
# =============================================================================

TEMPO_SECONDS_PER_REP: Final[dict[str, float]] = {
    "grind": 5.0,
    "standard": 3.5,
    "ballistic": 1.5,
}

MOVEMENT_SECONDS_PER_REP: Final[dict[str, float]] = {
    "squat": 4.0,
    "hinge": 4.0,
    "lunge": 3.5,
    "push_vert": 3.5,
    "push_horiz": 3.5,
    "pull_vert": 3.5,
    "pull_horiz": 3.5,
    "carry": 2.0,
}

DEFAULT_SECONDS_PER_REP: Final[float] = 3.5
DEFAULT_SETUP_BUFFER_SEC: Final[int] = 15
DEFAULT_REPS_FOR_ESTIMATE: Final[int] = 8
DEFAULT_TIMED_SET_SEC: Final[int] = 30  # Timed set length when nothing else is known
UNILATERAL_FACTOR: Final[int] = 2
POSITION_FATIGUE_STEP: Final[float] = 0.05  # +5% per position in the session
POSITION_FATIGUE_CAP: Final[float] = 0.30  # ... up to +30%

# =============================================================================
# REST POLICY
# =============================================================================

DEFAULT_REST_SEC: Final[int] = 60
REST_MIN_SEC: Final[int] = 30
REST_MAX_SEC: Final[int] = 300

# =============================================================================
# COMPRESSION
# =============================================================================

COMPRESSION_REST_FACTOR: Final[float] = 0.80
COMPRESSION_ACCESSORY_MIN_SETS: Final[int] = 2
COMPRESSION_COMPOUND_MIN_SETS: Final[int] = 3

# =============================================================================
# WEEK SCHEDULE
# =============================================================================

DAYS_OF_WEEK: Final[tuple[str, ...]] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)
DEFAULT_WEEK_SESSION_MIN: Final[float] = 60.0  # Per-day budget stated in the week prompt

# =============================================================================
# GENERATOR
# =============================================================================

MODEL_CACHE_TTL_SEC: Final[float] = 300.0
PREFERRED_MODELS: Final[tuple[str, ...]] = (
    "gpt-4o-mini",
    "gpt-4o",
    "gpt-4.1-mini",
    "gpt-4.1",
)
FALLBACK_MODEL: Final[str] = "gpt-4o-mini"


def normalize_rest_seconds(value: int | float | None) -> int:
    """
    Apply the single rest policy used everywhere in the engine.

    Missing values become DEFAULT_REST_SEC; everything else is rounded and
    clamped to [REST_MIN_SEC, REST_MAX_SEC].

    Args:
        value: Rest in seconds, or None

    Returns:
        Rest in seconds within the allowed bounds
    """
    if value is None:
        return DEFAULT_REST_SEC
    return max(REST_MIN_SEC, min(REST_MAX_SEC, int(round(value))))
