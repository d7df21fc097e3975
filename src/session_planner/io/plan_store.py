"""
JSON file data store.

Layout under the store root (default ~/.session-planner/data):

    profile.json            user profile
    logs.jsonl              one logged set per line
    records.json            {user_id: {exercise (lowercase): personal record}}
    plan.json               {"week_schedule": {day: {"exercises": [...]}}}
    custom_exercises.json   list of user-authored catalog entries

Documents are rewritten whole through a temporary file and os.replace, so a
reader never sees a half-written file.  Concurrent writers are last-write-
wins.  OSErrors surface as DataStoreError; malformed content as
ValidationError.

The async methods implement the RecordStore protocol used by
PersonalRecordTracker; they run the blocking file I/O in a worker thread.
"""

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from ..core.engine.config_loader import get_config_home
from ..core.errors import DataStoreError, ValidationError
from ..core.exercises.base import CatalogExercise
from ..core.exercises.loader import exercise_from_dict, exercise_to_dict
from ..core.metrics import logs_for_exercise, sort_newest_first
from ..core.models import PersonalRecord, PlannedExercise, UserProfile, WorkoutLogEntry
from .serializers import (
    dict_to_personal_record,
    dict_to_planned_exercise,
    dict_to_user_profile,
    json_line_to_log,
    log_to_json_line,
    personal_record_to_dict,
    planned_exercise_to_dict,
    user_profile_to_dict,
)

logger = logging.getLogger(__name__)

DATA_DIR_ENV = "SESSION_PLANNER_DATA"


class JsonDataStore:
    """Profile, logs, records, plan and custom exercises as JSON files."""

    def __init__(self, root: str | Path):
        """
        Initialize the store.

        Args:
            root: Directory holding the JSON documents
        """
        self.root = Path(root)
        self.profile_path = self.root / "profile.json"
        self.logs_path = self.root / "logs.jsonl"
        self.records_path = self.root / "records.json"
        self.plan_path = self.root / "plan.json"
        self.custom_exercises_path = self.root / "custom_exercises.json"

    # ------------------------------------------------------------------
    # File helpers
    # ------------------------------------------------------------------

    def _read_json(self, path: Path, default: Any) -> Any:
        if not path.exists():
            return default
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Corrupt data file {path}: {e}") from e
        except OSError as e:
            raise DataStoreError(f"Could not read {path}: {e}") from e

    def _write_json(self, path: Path, data: Any) -> None:
        """Write *data* atomically: temp file in the same directory, then replace."""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp, path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except OSError as e:
            raise DataStoreError(f"Could not write {path}: {e}") from e

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def exists(self) -> bool:
        """True when the store has been initialized."""
        return self.profile_path.exists()

    def init(self) -> None:
        """Create the store directory and an empty log file if missing."""
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            if not self.logs_path.exists():
                self.logs_path.touch()
        except OSError as e:
            raise DataStoreError(f"Could not initialize {self.root}: {e}") from e

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def load_profile(self) -> UserProfile | None:
        """Return the stored profile, or None if none has been saved."""
        data = self._read_json(self.profile_path, None)
        if data is None:
            return None
        return dict_to_user_profile(data)

    def save_profile(self, profile: UserProfile) -> None:
        self._write_json(self.profile_path, user_profile_to_dict(profile))

    # ------------------------------------------------------------------
    # Logs
    # ------------------------------------------------------------------

    def load_logs(self, exercise_name: str | None = None) -> list[WorkoutLogEntry]:
        """
        Load logged sets, oldest first.

        Args:
            exercise_name: Restrict to one exercise (case-insensitive)

        Raises:
            ValidationError: If a line cannot be parsed
        """
        if not self.logs_path.exists():
            return []

        logs: list[WorkoutLogEntry] = []
        try:
            with open(self.logs_path, "r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, 1):
                    if not line.strip():
                        continue
                    try:
                        logs.append(json_line_to_log(line))
                    except ValidationError as e:
                        raise ValidationError(
                            f"Error parsing line {line_num} in {self.logs_path}: {e}"
                        ) from e
        except OSError as e:
            raise DataStoreError(f"Could not read {self.logs_path}: {e}") from e

        if exercise_name is not None:
            logs = logs_for_exercise(logs, exercise_name)
        logs.sort(key=lambda log: log.performed_at)
        return logs

    def append_logs(self, entries: list[WorkoutLogEntry]) -> None:
        """Append logged sets to logs.jsonl."""
        try:
            self.logs_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.logs_path, "a", encoding="utf-8") as f:
                for entry in entries:
                    f.write(log_to_json_line(entry) + "\n")
        except OSError as e:
            raise DataStoreError(f"Could not write {self.logs_path}: {e}") from e

    # ------------------------------------------------------------------
    # Personal records
    # ------------------------------------------------------------------

    def _load_records(self) -> dict[str, Any]:
        records = self._read_json(self.records_path, {})
        if not isinstance(records, dict) or not all(
            isinstance(by_exercise, dict) for by_exercise in records.values()
        ):
            raise ValidationError(
                f"Records file {self.records_path} must map user ids to objects"
            )
        return records

    def load_record(self, user_id: str, exercise_name: str) -> PersonalRecord | None:
        records = self._load_records()
        data = records.get(user_id, {}).get(exercise_name.strip().lower())
        return dict_to_personal_record(data) if data else None

    def save_record(self, user_id: str, record: PersonalRecord) -> None:
        records = self._load_records()
        records.setdefault(user_id, {})[record.exercise_name.strip().lower()] = (
            personal_record_to_dict(record)
        )
        self._write_json(self.records_path, records)

    async def fetch_record(self, user_id: str, exercise_name: str) -> PersonalRecord | None:
        return await asyncio.to_thread(self.load_record, user_id, exercise_name)

    async def fetch_logs(
        self, user_id: str, exercise_name: str, limit: int
    ) -> list[WorkoutLogEntry]:
        # Single-user store: user_id is not part of the log layout
        logs = await asyncio.to_thread(self.load_logs, exercise_name)
        return sort_newest_first(logs)[:limit]

    async def write_record(self, user_id: str, record: PersonalRecord) -> None:
        await asyncio.to_thread(self.save_record, user_id, record)

    # ------------------------------------------------------------------
    # Plan document
    # ------------------------------------------------------------------

    def load_plan(self) -> dict[str, Any]:
        """Return the whole plan document ({"week_schedule": {...}})."""
        plan = self._read_json(self.plan_path, {})
        if not isinstance(plan, dict):
            raise ValidationError(f"Plan document {self.plan_path} must be an object")
        plan.setdefault("week_schedule", {})
        return plan

    def load_day(self, day: str) -> list[PlannedExercise]:
        """Exercises planned for one day (empty when the day is not planned)."""
        day_data = self.load_plan()["week_schedule"].get(day) or {}
        return [dict_to_planned_exercise(ex) for ex in day_data.get("exercises", [])]

    def save_day(self, day: str, exercises: list[PlannedExercise]) -> None:
        """
        Replace one day's exercises.

        Read-modify-write of the whole plan document; other days are kept.
        """
        self.save_week({day: exercises})

    def save_week(self, days: dict[str, list[PlannedExercise]]) -> None:
        """
        Replace several days in one write.

        Every day in *days* is overwritten (an empty list makes it a rest
        day); days not mentioned are kept.
        """
        plan = self.load_plan()
        for day, exercises in days.items():
            day_data = plan["week_schedule"].setdefault(day, {})
            day_data["exercises"] = [planned_exercise_to_dict(ex) for ex in exercises]
        self._write_json(self.plan_path, plan)
        logger.debug("Saved %d day(s)", len(days))

    # ------------------------------------------------------------------
    # Custom exercises
    # ------------------------------------------------------------------

    def load_custom_exercises(self) -> list[CatalogExercise]:
        """User-authored exercises (invalid entries raise ValidationError)."""
        raw = self._read_json(self.custom_exercises_path, [])
        if not isinstance(raw, list):
            raise ValidationError(f"{self.custom_exercises_path} must hold a list")
        try:
            return [exercise_from_dict(d, is_custom=True) for d in raw]
        except ValueError as e:
            raise ValidationError(f"Invalid custom exercise: {e}") from e

    def add_custom_exercise(self, exercise: CatalogExercise) -> None:
        """Add or replace (by name) a user-authored exercise."""
        raw = self._read_json(self.custom_exercises_path, [])
        key = exercise.name.strip().lower()
        kept = [d for d in raw if str(d.get("name", "")).strip().lower() != key]
        kept.append(exercise_to_dict(exercise))
        self._write_json(self.custom_exercises_path, kept)


def get_default_data_dir() -> Path:
    """$SESSION_PLANNER_DATA, else ~/.session-planner/data."""
    override = os.environ.get(DATA_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return get_config_home() / "data"


