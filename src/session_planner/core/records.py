"""
Personal record tracking.

A personal record is the best-ever result for one exercise: heaviest load
for loaded work, most reps for bodyweight work, longest hold for timed work.
Records are read through a RecordStore (see io/plan_store.py for the JSON
implementation).  When none is stored, one is derived from the log history.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, Protocol

from .config import PR_LOG_LOOKBACK
from .metrics import logs_for_exercise, sort_newest_first
from .models import PersonalRecord, WorkoutLogEntry

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    """Persistence collaborator for personal records and logs."""

    async def fetch_record(self, user_id: str, exercise_name: str) -> PersonalRecord | None:
        ...

    async def fetch_logs(
        self, user_id: str, exercise_name: str, limit: int
    ) -> list[WorkoutLogEntry]:
        ...

    async def write_record(self, user_id: str, record: PersonalRecord) -> None:
        ...


def compute_pr_from_logs(
    logs: Iterable[WorkoutLogEntry],
    exercise_name: str,
    lookback: int = PR_LOG_LOOKBACK,
) -> PersonalRecord | None:
    """
    Derive a personal record from history.

    Only logs with weight > 0 and reps > 0 qualify.  Of the most recent
    ``lookback`` qualifying logs the heaviest wins; equal weights go to the
    most recent entry.

    Args:
        logs: Log entries (any order, may include other exercises)
        exercise_name: Exercise to compute the record for
        lookback: Number of qualifying logs to consider

    Returns:
        PersonalRecord, or None when no log qualifies
    """
    qualifying = [
        log
        for log in sort_newest_first(logs_for_exercise(logs, exercise_name))
        if log.weight is not None and log.weight > 0 and log.reps is not None and log.reps > 0
    ][:lookback]
    if not qualifying:
        return None

    best = qualifying[0]
    for log in qualifying[1:]:
        # Newest first: strictly greater keeps the most recent of equal weights
        if log.weight > best.weight:
            best = log

    return PersonalRecord(
        exercise_name=exercise_name,
        weight=float(best.weight),
        reps=best.reps,
        performed_at=best.performed_at,
        session_id=best.session_id,
    )


def _is_positive(record: PersonalRecord | None) -> bool:
    return record is not None and (record.weight > 0 or (record.reps or 0) > 0)


class PersonalRecordTracker:
    """Reads, derives and updates personal records through a RecordStore."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    async def get(self, user_id: str, exercise_name: str) -> PersonalRecord | None:
        """
        Return the stored record, or derive one from recent logs.

        Store errors propagate to the caller.
        """
        stored = await self.store.fetch_record(user_id, exercise_name)
        if _is_positive(stored):
            return stored

        logs = await self.store.fetch_logs(user_id, exercise_name, PR_LOG_LOOKBACK)
        computed = compute_pr_from_logs(logs, exercise_name)
        if computed is not None:
            logger.debug(
                "Derived PR for %s from %d logs: %.1f x %s",
                exercise_name,
                len(logs),
                computed.weight,
                computed.reps,
            )
        return computed

    async def save(self, user_id: str, exercise_name: str, record: PersonalRecord) -> None:
        """Overwrite the stored record.  Callers only call this on improvement."""
        if record.exercise_name != exercise_name:
            record = PersonalRecord(
                exercise_name=exercise_name,
                weight=record.weight,
                reps=record.reps,
                performed_at=record.performed_at,
                session_id=record.session_id,
            )
        await self.store.write_record(user_id, record)

    async def maybe_update_from_log(
        self,
        user_id: str,
        exercise_name: str,
        weight: float | None,
        reps: int | None,
        is_timed: bool,
        performed_at: datetime | None = None,
    ) -> bool:
        """
        Record a new best if this set beats the current record.

        Timed work compares duration (carried in ``reps``).  Loaded work
        compares weight only; more reps at the same weight is not a record.
        Bodyweight work (weight 0) compares reps against a bodyweight record
        and never replaces a loaded one.

        Returns:
            True when a new record was written
        """
        weight = weight or 0.0
        reps = reps or 0
        when = performed_at or datetime.now(timezone.utc)
        current = await self.get(user_id, exercise_name)

        if is_timed:
            improved = reps > 0 and (current is None or reps > (current.reps or 0))
        elif weight > 0:
            improved = current is None or weight > current.weight
        else:
            improved = reps > 0 and (
                current is None or (current.weight == 0 and reps > (current.reps or 0))
            )

        if not improved:
            return False

        await self.save(
            user_id,
            exercise_name,
            PersonalRecord(
                exercise_name=exercise_name,
                weight=weight,
                reps=reps,
                performed_at=when,
            ),
        )
        logger.info("New PR for %s: %.1f x %d", exercise_name, weight, reps)
        return True
