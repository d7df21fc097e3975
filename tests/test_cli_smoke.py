"""
Minimal smoke tests for the session-planner CLI.

Tests basic functionality:
- App runs and shows help
- Profile is created (presets, validation)
- Sets are logged and personal records updated
- Days are shown, estimated and generated (fake generator)
- Recovery, metrics and catalog views render
"""

import json

import pytest
from typer.testing import CliRunner

from session_planner.cli.commands import planning
from session_planner.cli.main import app
from session_planner.core.models import PlannedExercise
from session_planner.io.plan_store import JsonDataStore


runner = CliRunner()


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """Isolated data directory with HOME pointed away from the real one."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    return tmp_path / "data"


def _init(data_dir, *extra: str):
    return runner.invoke(app, [
        "init",
        "--data-dir", str(data_dir),
        "--user-id", "me",
        "--age", "30",
        "--goal", "build muscle",
        "--days-per-week", "3",
        "--bodyweight-kg", "80",
        "--experience", "1-2 years",
        "--force",
        *extra,
    ])


def _log_bench(data_dir, sets: str = "8x3@100", *extra: str):
    return runner.invoke(app, ["log-set", "Bench Press", sets, "--data-dir", str(data_dir), *extra])


class FakeGenerator:
    def __init__(self, reply: str):
        self.reply = reply

    async def generate(self, prompt: str) -> str:
        return self.reply


class TestCLISmoke:
    """Basic smoke tests for CLI commands."""

    def test_app_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "session-planner" in result.output or "generate" in result.output

    def test_init_creates_profile(self, data_dir):
        result = _init(data_dir, "--preset", "home-gym")
        assert result.exit_code == 0, result.output
        profile = json.loads((data_dir / "profile.json").read_text())
        assert profile["user_id"] == "me"
        assert "Dumbbells" in profile["equipment"]
        assert (data_dir / "logs.jsonl").exists()

    def test_init_bodyweight_preset_is_empty_list(self, data_dir):
        assert _init(data_dir, "--preset", "bodyweight").exit_code == 0
        assert json.loads((data_dir / "profile.json").read_text())["equipment"] == []

    def test_init_without_equipment_is_unrestricted(self, data_dir):
        assert _init(data_dir).exit_code == 0
        assert json.loads((data_dir / "profile.json").read_text())["equipment"] is None

    def test_init_rejects_preset_and_equipment(self, data_dir):
        result = _init(data_dir, "--preset", "home-gym", "--equipment", "Barbell")
        assert result.exit_code == 1

    def test_init_rejects_unknown_preset(self, data_dir):
        result = _init(data_dir, "--preset", "spaceship")
        assert result.exit_code == 1
        assert "Unknown equipment preset" in result.output

    def test_init_asks_before_replacing(self, data_dir):
        _init(data_dir)
        result = runner.invoke(
            app, ["init", "--data-dir", str(data_dir), "--user-id", "other"], input="n\n"
        )
        assert result.exit_code == 0
        assert json.loads((data_dir / "profile.json").read_text())["user_id"] == "me"

    def test_commands_need_profile(self, data_dir):
        result = runner.invoke(app, ["show-day", "monday", "--data-dir", str(data_dir)])
        assert result.exit_code == 1
        assert "init" in result.output

    def test_log_set_appends_and_records(self, data_dir):
        _init(data_dir)
        result = _log_bench(data_dir, "8x3@100", "--scheduled", "8@100")
        assert result.exit_code == 0, result.output
        assert "New personal record" in result.output

        lines = (data_dir / "logs.jsonl").read_text().strip().splitlines()
        assert len(lines) == 3
        assert json.loads(lines[0])["scheduled_reps"] == 8

        records = json.loads((data_dir / "records.json").read_text())
        assert records["me"]["bench press"]["weight"] == 100

        result = _log_bench(data_dir, "8@90")
        assert result.exit_code == 0
        assert "New personal record" not in result.output

    def test_log_set_rejects_bad_sets(self, data_dir):
        _init(data_dir)
        result = _log_bench(data_dir, "lots")
        assert result.exit_code == 1
        assert not (data_dir / "records.json").exists()

    def test_log_set_rejects_bad_date(self, data_dir):
        _init(data_dir)
        assert _log_bench(data_dir, "8@100", "--date", "yesterday").exit_code == 1

    def test_history_json(self, data_dir):
        _init(data_dir)
        _log_bench(data_dir, "8@100,7@100", "--date", "2024-05-01")
        result = runner.invoke(app, ["history", "--data-dir", str(data_dir), "--json"])
        assert result.exit_code == 0
        entries = json.loads(result.output)
        assert [e["reps"] for e in entries] == [8, 7]

    def test_show_day(self, data_dir):
        _init(data_dir)
        JsonDataStore(data_dir).save_day("monday", [
            PlannedExercise("Bench Press", 3, 8, rest_time_sec=90),
            PlannedExercise("Plank", 3, target_duration_sec=45),
        ])

        result = runner.invoke(app, ["show-day", "monday", "--data-dir", str(data_dir)])
        assert result.exit_code == 0, result.output
        assert "Estimated duration" in result.output

        result = runner.invoke(app, ["show-day", "monday", "--data-dir", str(data_dir), "--json"])
        data = json.loads(result.output)
        assert [ex["name"] for ex in data["exercises"]] == ["Bench Press", "Plank"]
        assert data["estimated_duration_sec"] > 0

    def test_estimate_previews_compression(self, data_dir):
        _init(data_dir)
        JsonDataStore(data_dir).save_day("monday", [
            PlannedExercise("Back Squat", 5, 5, rest_time_sec=180),
            PlannedExercise("Bench Press", 5, 5, rest_time_sec=180),
            PlannedExercise("Crunch", 3, 20, rest_time_sec=60),
        ])
        before = (data_dir / "plan.json").read_text()

        result = runner.invoke(
            app, ["estimate", "monday", "--minutes", "20", "--data-dir", str(data_dir)]
        )
        assert result.exit_code == 0, result.output
        assert "Compression preview" in result.output
        assert "Reduced rest times" in result.output
        assert (data_dir / "plan.json").read_text() == before

    def test_recovery_json(self, data_dir):
        _init(data_dir)
        _log_bench(data_dir)
        result = runner.invoke(app, ["recovery", "--data-dir", str(data_dir), "--json"])
        assert result.exit_code == 0
        states = json.loads(result.output)
        assert set(states) == {"chest", "shoulders", "triceps"}
        assert states["chest"]["recovery_percent"] < 50

    def test_metrics(self, data_dir):
        _init(data_dir)
        _log_bench(data_dir, "8@100", "--scheduled", "8@100", "--date", "2024-05-01")
        _log_bench(data_dir, "10@100", "--scheduled", "8@100", "--date", "2024-05-04")
        result = runner.invoke(app, ["metrics", "bench press", "--data-dir", str(data_dir)])
        assert result.exit_code == 0, result.output
        assert "progressing" in result.output
        assert "102.5" in result.output

    def test_exercises_filtered_by_equipment(self, data_dir):
        _init(data_dir, "--preset", "bodyweight")
        result = runner.invoke(app, ["exercises", "--data-dir", str(data_dir)])
        assert result.exit_code == 0
        assert "Push-Up" in result.output
        assert "Deadlift" not in result.output

    def test_add_exercise(self, data_dir):
        _init(data_dir, "--preset", "bodyweight")
        result = runner.invoke(app, [
            "add-exercise", "Wall Sit", "--data-dir", str(data_dir),
            "--muscle", "Quadriceps", "--timed", "--tier", "3",
        ])
        assert result.exit_code == 0, result.output
        custom = json.loads((data_dir / "custom_exercises.json").read_text())
        assert custom[0]["muscle_groups"] == ["quadriceps"]

        result = runner.invoke(app, ["exercises", "--data-dir", str(data_dir)])
        assert "Wall Sit" in result.output

    def test_generate_without_api_key(self, data_dir):
        _init(data_dir)
        result = runner.invoke(app, ["generate", "monday", "--data-dir", str(data_dir)])
        assert result.exit_code == 1
        assert "OPENAI_API_KEY" in result.output
        assert not (data_dir / "plan.json").exists()

    def test_generate_saves_day(self, data_dir, monkeypatch):
        reply = json.dumps([{"name": "Dumbbell Curl", "target_sets": 3, "target_reps": 10}])
        monkeypatch.setattr(planning, "OpenAIGenerator", lambda: FakeGenerator(reply))
        _init(data_dir)
        JsonDataStore(data_dir).save_day("monday", [PlannedExercise("Bench Press", 3, 8)])

        result = runner.invoke(
            app, ["generate", "monday", "--minutes", "60", "--data-dir", str(data_dir)]
        )
        assert result.exit_code == 0, result.output
        day = JsonDataStore(data_dir).load_day("monday")
        assert [ex.name for ex in day] == ["Bench Press", "Dumbbell Curl"]
        assert all(ex.sets for ex in day)

    def test_generate_invalid_reply_saves_nothing(self, data_dir, monkeypatch):
        monkeypatch.setattr(planning, "OpenAIGenerator", lambda: FakeGenerator('[{"name": ""}]'))
        _init(data_dir)
        result = runner.invoke(app, ["generate", "monday", "--data-dir", str(data_dir)])
        assert result.exit_code == 1
        assert "Please retry" in result.output
        assert not (data_dir / "plan.json").exists()

    def test_generate_dry_run(self, data_dir, monkeypatch):
        reply = json.dumps([{"name": "Plank", "target_sets": 3, "target_duration_sec": 45}])
        monkeypatch.setattr(planning, "OpenAIGenerator", lambda: FakeGenerator(reply))
        _init(data_dir)
        result = runner.invoke(
            app, ["generate", "friday", "--dry-run", "--json", "--data-dir", str(data_dir)]
        )
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["added_count"] == 1
        assert not (data_dir / "plan.json").exists()

    def test_generate_week_saves_all_days(self, data_dir, monkeypatch):
        reply = json.dumps({"week_schedule": {
            "Monday": {"exercises": [{"name": "Bench Press", "target_sets": 3, "target_reps": 8}]},
            "Thursday": {"exercises": [{"name": "Plank", "target_sets": 3, "target_duration_sec": 45}]},
        }})
        monkeypatch.setattr(planning, "OpenAIGenerator", lambda: FakeGenerator(reply))
        _init(data_dir)
        JsonDataStore(data_dir).save_day("day-a", [PlannedExercise("Crunch", 3, 20)])

        result = runner.invoke(app, ["generate-week", "--data-dir", str(data_dir)])
        assert result.exit_code == 0, result.output
        assert "2 training day(s)" in result.output

        store = JsonDataStore(data_dir)
        assert [ex.name for ex in store.load_day("monday")] == ["Bench Press"]
        assert store.load_day("tuesday") == []
        assert [ex.name for ex in store.load_day("day-a")] == ["Crunch"]

    def test_generate_week_invalid_reply_saves_nothing(self, data_dir, monkeypatch):
        monkeypatch.setattr(planning, "OpenAIGenerator", lambda: FakeGenerator('{"plan": []}'))
        _init(data_dir)
        result = runner.invoke(app, ["generate-week", "--data-dir", str(data_dir)])
        assert result.exit_code == 1
        assert "Please retry" in result.output
        assert not (data_dir / "plan.json").exists()

    def test_generate_week_dry_run_json(self, data_dir, monkeypatch):
        reply = json.dumps({"week_schedule": {
            "Friday": {"exercises": [{"name": "Push-Up", "target_sets": 3, "target_reps": 12}]},
        }})
        monkeypatch.setattr(planning, "OpenAIGenerator", lambda: FakeGenerator(reply))
        _init(data_dir)
        result = runner.invoke(
            app, ["generate-week", "--dry-run", "--json", "--data-dir", str(data_dir)]
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["training_days"] == ["friday"]
        assert len(data["week_schedule"]) == 7
        assert not (data_dir / "plan.json").exists()
