"""
Integration tests for the session-planner assembly pipeline.

Each test drives SessionAssembler (or one of its collaborators) end to end
with a fake text generator standing in for the external model:

  profile + logs + existing day → prompt → generator reply → validation
  → progression targets → duration estimate → compression

Also covered: the response parser, the OpenAI generator's error mapping
and model cache, and the JSON data store.
"""

import json
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import httpx
import openai
import pytest

from session_planner.core.compression import compress_session, exercise_tier
from session_planner.core.duration import estimate_session_duration
from session_planner.core.errors import (
    ConfigurationError,
    GeneratorIOError,
    ModelUnavailableError,
    ParseError,
    ValidationError,
)
from session_planner.core.exercises.base import CatalogExercise
from session_planner.core.exercises.registry import find_exercise, merged_catalog
from session_planner.core.models import (
    PersonalRecord,
    PlannedExercise,
    PlannedSet,
    UserProfile,
    WorkoutLogEntry,
)
from session_planner.core.planner import (
    AssemblyStage,
    SessionAssembler,
    SessionRequest,
    WeekRequest,
    apply_catalog_metadata,
)
from session_planner.core.prompts import build_session_prompt, build_week_prompt, describe_equipment
from session_planner.io.generator import MODEL_ENV, ModelHandle, OpenAIGenerator
from session_planner.io.plan_store import JsonDataStore
from session_planner.io.response_parser import (
    ensure_all_days,
    extract_json,
    parse_generated_exercises,
    parse_week_schedule,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


# ===========================================================================
# Helpers
# ===========================================================================

class FakeGenerator:
    """TextGenerator returning a canned reply and recording every prompt."""

    def __init__(self, reply: str):
        self.reply = reply
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.reply


def _reply(*items: dict, fenced: bool = False) -> str:
    text = json.dumps(list(items))
    return f"```json\n{text}\n```" if fenced else text


def _profile(equipment: list[str] | None = None) -> UserProfile:
    return UserProfile(
        user_id="u1",
        age=30,
        goal="build muscle",
        days_per_week=3,
        equipment=equipment,
        bodyweight_kg=80.0,
        experience_level="1-3 years",
    )


def _planned(name: str, sets: int = 3, reps: int | None = 8, rest: int | None = 90) -> PlannedExercise:
    return PlannedExercise(name=name, target_sets=sets, target_reps=reps, rest_time_sec=rest)


def _bench_logs() -> list[WorkoutLogEntry]:
    """Two bench sessions against 100 × 8: hit 8, then hit 10."""
    return [
        WorkoutLogEntry("Bench Press", NOW - timedelta(days=4), 100.0, 8, 100.0, 8, "s1"),
        WorkoutLogEntry("Bench Press", NOW - timedelta(days=1), 100.0, 10, 100.0, 8, "s2"),
    ]


def _request(existing: list[PlannedExercise], **kw) -> SessionRequest:
    kw.setdefault("profile", _profile())
    kw.setdefault("now", NOW)
    return SessionRequest(day="monday", existing=existing, **kw)


def _with_metadata(exercises: list[PlannedExercise]) -> list[PlannedExercise]:
    catalog = merged_catalog()
    return [apply_catalog_metadata(ex, find_exercise(ex.name, catalog)) for ex in exercises]


def _long_session() -> list[PlannedExercise]:
    """About 65 minutes of work across all three tiers."""
    return _with_metadata([
        _planned("Back Squat", 5, 5, 180),
        _planned("Bench Press", 5, 5, 180),
        _planned("Barbell Row", 4, 8, 120),
        _planned("Dumbbell Curl", 4, 12, 90),
        _planned("Crunch", 3, 20, 60),
        PlannedExercise("Plank", 3, target_duration_sec=60, rest_time_sec=60),
    ])


def _api_error(cls, status: int):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    return cls("error", response=httpx.Response(status, request=request), body=None)


class FakeCompletions:
    def __init__(self, content: str = "[]", error: Exception | None = None):
        self.content = content
        self.error = error
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeModels:
    def __init__(self, ids: list[str]):
        self.ids = ids
        self.list_calls = 0

    def list(self):
        self.list_calls += 1
        return self._iterate()

    async def _iterate(self):
        for model_id in self.ids:
            yield SimpleNamespace(id=model_id)


class FakeClient:
    def __init__(self, completions: FakeCompletions, model_ids: list[str] | None = None):
        self.chat = SimpleNamespace(completions=completions)
        self.models = FakeModels(model_ids or ["gpt-4o-mini"])


# ===========================================================================
# Session assembly
# ===========================================================================

class TestSessionAssembler:
    @pytest.mark.asyncio
    async def test_appends_generated_and_targets_everything(self):
        generator = FakeGenerator(_reply(
            {"name": "Dumbbell Curl", "target_sets": 3, "target_reps": "10-12", "rest_time_sec": 60},
            fenced=True,
        ))
        assembler = SessionAssembler(generator)
        plan = await assembler.assemble(_request([_planned("Bench Press")], logs=_bench_logs()))

        assert assembler.stage == AssemblyStage.DONE
        assert len(generator.prompts) == 1
        assert [ex.name for ex in plan.exercises] == ["Bench Press", "Dumbbell Curl"]
        assert plan.added_count == 1
        assert not plan.was_compressed

        bench, curl = plan.exercises
        # Progressing from 100 kg → 102.5
        assert [s.weight for s in bench.sets] == [102.5, 102.5, 102.5]
        assert all(s.reps == 8 and s.rest_time_sec == 90 for s in bench.sets)
        assert bench.tier == 1
        # No history, upper body → on-ramp 25 kg
        assert len(curl.sets) == 3
        assert all(s.reps == 10 and s.weight == 25.0 for s in curl.sets)
        assert plan.estimated_duration_sec == estimate_session_duration(plan.exercises)

    @pytest.mark.asyncio
    async def test_prompt_lists_context(self):
        generator = FakeGenerator(_reply({"name": "Plank", "target_sets": 3, "target_duration_sec": 45}))
        await SessionAssembler(generator).assemble(
            _request([_planned("Bench Press")], profile=_profile(equipment=[]), time_constraint_min=30)
        )
        prompt = generator.prompts[0]
        assert "Bench Press" in prompt
        assert "Bodyweight only" in prompt
        assert "Push-Up" in prompt
        assert "Back Squat" not in prompt
        assert "Return ONLY the JSON array" in prompt

    @pytest.mark.asyncio
    async def test_timed_and_bodyweight_targets(self):
        generator = FakeGenerator(_reply(
            {"name": "Plank", "target_sets": 3, "target_duration_sec": 45},
            {"name": "Push-Up", "target_sets": 3, "target_reps": 15},
        ))
        plan = await SessionAssembler(generator).assemble(_request([]))

        plank, push_up = plan.exercises
        assert all(s.duration_sec == 45 and s.reps is None for s in plank.sets)
        assert all(s.weight == 0 and s.reps == 15 for s in push_up.sets)
        assert plan.added_count == 2

    @pytest.mark.asyncio
    async def test_loaded_lunge_history_keeps_its_load(self):
        logs = [
            WorkoutLogEntry("Barbell Reverse Lunge", NOW - timedelta(days=d), 60.0, 8, 60.0, 8, f"s{d}")
            for d in (7, 4, 1)
        ]
        generator = FakeGenerator(_reply(
            {"name": "Barbell Reverse Lunge", "target_sets": 3, "target_reps": 8},
        ))
        plan = await SessionAssembler(generator).assemble(_request([], logs=logs))

        weights = [s.weight for s in plan.exercises[0].sets]
        assert len(weights) == 3
        assert all(w >= 60.0 for w in weights)

    @pytest.mark.asyncio
    async def test_uncatalogued_lunge_starts_at_lower_body_load(self):
        generator = FakeGenerator(_reply(
            {"name": "Reverse Lunge", "target_sets": 3, "target_reps": 10},
        ))
        plan = await SessionAssembler(generator).assemble(_request([]))
        assert all(s.weight == 50.0 for s in plan.exercises[0].sets)

    @pytest.mark.asyncio
    async def test_catalog_flags_pull_up_as_bodyweight(self):
        generator = FakeGenerator(_reply({"name": "Pull-Up", "target_sets": 3, "target_reps": 6}))
        plan = await SessionAssembler(generator).assemble(_request([]))
        assert all(s.weight == 0 for s in plan.exercises[0].sets)

    @pytest.mark.asyncio
    async def test_replace_index_swaps_in_place(self):
        existing = [_planned("Bench Press"), _planned("Barbell Row"), _planned("Crunch", reps=20)]
        generator = FakeGenerator(_reply(
            {"name": "Overhead Press", "target_sets": 3, "target_reps": 8},
            {"name": "Ignored Extra", "target_sets": 3, "target_reps": 8},
        ))
        plan = await SessionAssembler(generator).assemble(_request(existing, replace_index=1))

        assert [ex.name for ex in plan.exercises] == ["Bench Press", "Overhead Press", "Crunch"]
        assert plan.added_count == 1

    @pytest.mark.asyncio
    async def test_bad_replace_index_fails_before_generator(self):
        generator = FakeGenerator(_reply({"name": "Plank", "target_sets": 3, "target_duration_sec": 45}))
        assembler = SessionAssembler(generator)
        with pytest.raises(ValidationError):
            await assembler.assemble(_request([_planned("Bench Press")], replace_index=3))
        assert generator.prompts == []
        assert assembler.stage == AssemblyStage.ERROR

    @pytest.mark.asyncio
    async def test_invalid_reply_discards_whole_batch(self):
        generator = FakeGenerator(_reply(
            {"name": "Dumbbell Curl", "target_sets": 3, "target_reps": 10},
            {"name": "", "target_sets": 0},
        ))
        assembler = SessionAssembler(generator)
        with pytest.raises(ValidationError) as excinfo:
            await assembler.assemble(_request([_planned("Bench Press")]))
        assert len(excinfo.value.problems) >= 2
        assert assembler.stage == AssemblyStage.ERROR

    @pytest.mark.asyncio
    async def test_unparseable_reply(self):
        assembler = SessionAssembler(FakeGenerator("Sorry, I cannot help with that."))
        with pytest.raises(ParseError):
            await assembler.assemble(_request([]))
        assert assembler.stage == AssemblyStage.ERROR

    @pytest.mark.asyncio
    async def test_compresses_to_budget(self):
        existing = [
            _planned("Back Squat", 5, 5, 180),
            _planned("Bench Press", 5, 5, 180),
            _planned("Barbell Row", 4, 8, 120),
        ]
        generator = FakeGenerator(_reply(
            {"name": "Dumbbell Curl", "target_sets": 4, "target_reps": 12, "rest_time_sec": 90},
            {"name": "Crunch", "target_sets": 3, "target_reps": 20, "rest_time_sec": 60},
        ))
        plan = await SessionAssembler(generator).assemble(_request(existing, time_constraint_min=30))

        assert plan.was_compressed
        assert plan.compression_actions
        assert plan.estimated_duration_sec <= 30 * 60 or len(plan.exercises) == 1
        assert plan.added_count == sum(1 for ex in plan.exercises if ex.source == "generated")

    @pytest.mark.asyncio
    async def test_records_in_request_take_precedence(self):
        records = {"bench press": PersonalRecord("Bench Press", 140.0, 3, NOW - timedelta(days=60))}
        generator = FakeGenerator(_reply({"name": "Plank", "target_sets": 3, "target_duration_sec": 45}))
        plan = await SessionAssembler(generator).assemble(
            _request([_planned("Bench Press")], logs=_bench_logs(), records=records)
        )
        # PR 140 above last success 100 → 119 baseline, progressing → 119 + 2.975
        assert plan.exercises[0].sets[0].weight == pytest.approx(121.98, abs=0.01)


# ===========================================================================
# Compression
# ===========================================================================

class TestWeekAssembly:
    WEEK = {
        "week_schedule": {
            "Monday": {"exercises": [
                {"name": "Bench Press", "target_sets": 3, "target_reps": 8, "rest_time_sec": 120},
                {"name": "Plank", "target_sets": 3, "target_duration_sec": 45},
            ]},
            "Wednesday": {"exercises": [
                {"name": "Back Squat", "target_sets": 4, "target_reps": 5, "rest_time_sec": 180},
            ]},
            "Friday": {"exercises": [
                {"name": "Pull-Up", "target_sets": 3, "target_reps": 6},
            ]},
        }
    }

    @pytest.mark.asyncio
    async def test_every_day_present_missing_days_rest(self):
        generator = FakeGenerator(json.dumps(self.WEEK))
        week = await SessionAssembler(generator).assemble_week(WeekRequest(_profile(), now=NOW))

        assert list(week.days) == [
            "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
        ]
        assert week.training_days == ["monday", "wednesday", "friday"]
        assert week.days["tuesday"].exercises == []
        assert week.added_count == 4
        assert len(generator.prompts) == 1
        assert '"week_schedule"' in generator.prompts[0]

    @pytest.mark.asyncio
    async def test_days_get_targets_and_progression(self):
        generator = FakeGenerator(json.dumps(self.WEEK))
        request = WeekRequest(_profile(), logs=_bench_logs(), now=NOW)
        week = await SessionAssembler(generator).assemble_week(request)

        bench, plank = week.days["monday"].exercises
        assert all(s.weight == 102.5 for s in bench.sets)
        assert all(s.duration_sec == 45 for s in plank.sets)
        (pull_up,) = week.days["friday"].exercises
        assert all(s.weight == 0 for s in pull_up.sets)
        assert week.days["monday"].estimated_duration_sec > 0

    @pytest.mark.asyncio
    async def test_each_day_compressed_to_budget(self):
        heavy = {"week_schedule": {"Monday": {"exercises": [
            {"name": "Back Squat", "target_sets": 5, "target_reps": 5, "rest_time_sec": 180},
            {"name": "Bench Press", "target_sets": 5, "target_reps": 5, "rest_time_sec": 180},
            {"name": "Barbell Row", "target_sets": 4, "target_reps": 8, "rest_time_sec": 120},
            {"name": "Dumbbell Curl", "target_sets": 4, "target_reps": 12, "rest_time_sec": 90},
            {"name": "Crunch", "target_sets": 3, "target_reps": 20, "rest_time_sec": 60},
        ]}}}
        generator = FakeGenerator(json.dumps(heavy))
        request = WeekRequest(_profile(), time_constraint_min=30, now=NOW)
        week = await SessionAssembler(generator).assemble_week(request)

        monday = week.days["monday"]
        assert monday.was_compressed
        assert monday.estimated_duration_sec <= 30 * 60
        assert not week.days["sunday"].was_compressed

    @pytest.mark.asyncio
    async def test_invalid_exercise_on_any_day_rejects_week(self):
        bad = json.loads(json.dumps(self.WEEK))
        bad["week_schedule"]["Friday"]["exercises"].append({"name": "", "target_sets": 3})
        assembler = SessionAssembler(FakeGenerator(json.dumps(bad)))
        with pytest.raises(ValidationError) as exc_info:
            await assembler.assemble_week(WeekRequest(_profile(), now=NOW))
        assert all(p.startswith("friday:") for p in exc_info.value.problems)
        assert assembler.stage == AssemblyStage.ERROR

    @pytest.mark.asyncio
    async def test_missing_week_schedule(self):
        assembler = SessionAssembler(FakeGenerator(_reply({"name": "Plank", "target_sets": 3, "target_duration_sec": 30})))
        with pytest.raises(ValidationError):
            await assembler.assemble_week(WeekRequest(_profile(), now=NOW))

    def test_for_day_shares_history(self):
        request = WeekRequest(_profile(), logs=_bench_logs(), time_constraint_min=45, now=NOW)
        day = request.for_day("monday")
        assert day.day == "monday"
        assert day.logs is request.logs
        assert day.time_constraint_min == 45
        assert day.existing == []


class TestCompression:
    def test_fits_45_minutes(self):
        session = _long_session()
        assert estimate_session_duration(session) > 45 * 60

        result = compress_session(session, 45)
        assert result.was_compressed
        assert result.estimated_duration_sec <= 45 * 60 or len(result.exercises) == 1
        assert result.actions[0] == "Reduced rest times by 20%"

    def test_input_not_modified(self):
        session = _long_session()
        before = [(ex.name, ex.target_sets, ex.rest_time_sec) for ex in session]
        compress_session(session, 20)
        assert [(ex.name, ex.target_sets, ex.rest_time_sec) for ex in session] == before

    def test_rest_never_increases(self):
        session = _long_session()
        result = compress_session(session, 45)
        original = {ex.name: ex.rest_time_sec for ex in session}
        for ex in result.exercises:
            assert ex.rest_time_sec <= original[ex.name]
            assert ex.rest_time_sec >= 30

    def test_tier_3_goes_before_tier_1_sets(self):
        result = compress_session(_long_session(), 25)
        order = [
            "Reduced rest times by 20%",
            "Reduced sets on tier 2/3 exercises",
            "Removed 2 tier 3 exercise(s)",
            "Reduced sets on tier 1 exercises",
        ]
        seen = [a for a in result.actions if a in order]
        assert seen == sorted(seen, key=order.index)
        assert all(exercise_tier(ex) != 3 for ex in result.exercises)

    def test_never_empties_plan(self):
        result = compress_session(_long_session(), 1)
        assert len(result.exercises) == 1
        assert result.exercises[0].name == "Back Squat"
        assert result.was_compressed

    def test_within_budget_untouched(self):
        session = _with_metadata([_planned("Bench Press")])
        result = compress_session(session, 60)
        assert not result.was_compressed
        assert result.actions == []
        assert result.exercises == session

    def test_no_budget_disables(self):
        assert not compress_session(_long_session(), None).was_compressed

    def test_concrete_sets_trimmed(self):
        exercise = apply_catalog_metadata(
            PlannedExercise(
                "Dumbbell Curl",
                4,
                sets=[PlannedSet(index=i, reps=12, weight=15, rest_time_sec=90) for i in range(1, 5)],
            ),
            find_exercise("Dumbbell Curl", merged_catalog()),
        )
        result = compress_session([exercise], 5)
        assert len(result.exercises[0].sets) == result.exercises[0].target_sets


# ===========================================================================
# Response parsing
# ===========================================================================

class TestResponseParser:
    ITEMS = [
        {"name": "Dumbbell Curl", "target_sets": 3, "target_reps": 10, "rest_time_sec": 60},
        {"name": "Plank", "target_sets": 3, "target_duration_sec": 45, "notes": "Brace hard"},
    ]

    def test_fenced_equals_plain(self):
        plain = parse_generated_exercises(_reply(*self.ITEMS))
        fenced = parse_generated_exercises(_reply(*self.ITEMS, fenced=True))
        assert fenced == plain

    def test_prose_wrapped_json(self):
        text = f"Here you go:\n{_reply(*self.ITEMS)}\nEnjoy!"
        assert parse_generated_exercises(text) == parse_generated_exercises(_reply(*self.ITEMS))

    def test_exercises_wrapper_object(self):
        text = json.dumps({"exercises": self.ITEMS})
        assert len(parse_generated_exercises(text)) == 2

    def test_fields(self):
        curl, plank = parse_generated_exercises(_reply(*self.ITEMS))
        assert curl.source == "generated"
        assert curl.rest_time_sec == 60
        assert not curl.is_timed
        assert plank.is_timed
        assert plank.target_duration_sec == 45
        assert plank.rest_time_sec == 60
        assert plank.notes == "Brace hard"

    def test_rest_clamped(self):
        (ex,) = parse_generated_exercises(_reply(
            {"name": "Deadlift", "target_sets": 3, "target_reps": 5, "rest_time_sec": 900}
        ))
        assert ex.rest_time_sec == 300

    @pytest.mark.parametrize("rest", ["Infinity", "NaN", '"inf"', "-Infinity"])
    def test_non_finite_rest_is_a_validation_problem(self, rest):
        text = '[{"name": "Bench Press", "target_sets": 3, "target_reps": 8, "rest_time_sec": %s}]' % rest
        with pytest.raises(ValidationError) as exc_info:
            parse_generated_exercises(text)
        assert any("rest_time_sec" in p for p in exc_info.value.problems)

    def test_rep_strings(self):
        (ex,) = parse_generated_exercises(_reply({"name": "Row", "target_sets": "4", "target_reps": "8-12"}))
        assert ex.target_sets == 4
        assert ex.target_reps == 8

    @pytest.mark.parametrize(
        "item",
        [
            {"target_sets": 3, "target_reps": 8},
            {"name": "X", "target_sets": 0, "target_reps": 8},
            {"name": "X", "target_sets": True, "target_reps": 8},
            {"name": "X", "target_sets": 3},
            {"name": "X", "target_sets": 3, "target_reps": "lots"},
            {"name": "X", "target_sets": 3, "target_reps": 8, "rest_time_sec": -5},
            {"name": "X", "target_sets": 3, "target_reps": 8, "notes": 7},
        ],
    )
    def test_invalid_items(self, item):
        with pytest.raises(ValidationError):
            parse_generated_exercises(_reply(item))

    def test_non_array(self):
        with pytest.raises(ValidationError):
            parse_generated_exercises('{"name": "Plank"}')

    def test_empty_array(self):
        with pytest.raises(ValidationError):
            parse_generated_exercises("[]")

    @pytest.mark.parametrize("text", ["", "   ", None, "no json here", "[1, 2"])
    def test_unparseable(self, text):
        with pytest.raises(ParseError):
            extract_json(text)

    def test_week_days_case_insensitive_and_filled(self):
        text = "```json\n" + json.dumps({"week_schedule": {
            "MONDAY": {"exercises": [self.ITEMS[0]]},
            "thursday": [self.ITEMS[1]],
            "Saturday": "rest",
        }}) + "\n```"
        week = parse_week_schedule(text)
        assert len(week) == 7
        assert [ex.name for ex in week["monday"]] == ["Dumbbell Curl"]
        assert [ex.name for ex in week["thursday"]] == ["Plank"]
        assert week["saturday"] == []

    def test_ensure_all_days_ignores_unknown_keys(self):
        days = ensure_all_days({"Funday": {"exercises": [self.ITEMS[0]]}, "Monday": None})
        assert set(days) == {
            "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
        }
        assert all(items == [] for items in days.values())

    def test_empty_week(self):
        with pytest.raises(ValidationError, match="no exercises"):
            parse_week_schedule(json.dumps({"week_schedule": {"Monday": {"exercises": []}}}))

    @pytest.mark.parametrize("data", [[], {"plan": {}}, {"week_schedule": []}])
    def test_week_schedule_required(self, data):
        with pytest.raises(ValidationError, match="week_schedule"):
            parse_week_schedule(json.dumps(data))

    def test_brackets_inside_strings(self):
        text = 'Result: [{"name": "Curl [EZ bar]", "target_sets": 3, "target_reps": 10}] done'
        (ex,) = parse_generated_exercises(text)
        assert ex.name == "Curl [EZ bar]"


class TestPrompt:
    def test_equipment_descriptions(self):
        assert describe_equipment(_profile(None)).startswith("Full gym")
        assert describe_equipment(_profile([])).startswith("Bodyweight only")
        assert "Dumbbells" in describe_equipment(_profile(["Dumbbells"]))

    def test_week_prompt(self):
        prompt = build_week_prompt(_profile([]), ["Push-Up", "Plank"], time_constraint_min=40)
        assert "exactly 3 training day(s)" in prompt
        assert "40 minutes" in prompt
        assert "Bodyweight only" in prompt
        assert "Push-Up, Plank" in prompt
        assert "Sunday" in prompt

    def test_replacement_prompt_names_target(self):
        existing = [_planned("Bench Press"), _planned("Barbell Row")]
        prompt = build_session_prompt(_profile(), "monday", existing, ["Pull-Up"], replace_index=1)
        assert "Barbell Row" in prompt
        assert "Pull-Up" in prompt


# ===========================================================================
# Generator client
# ===========================================================================

class TestModelHandle:
    def test_ttl_expiry(self):
        clock = SimpleNamespace(now=0.0)
        handle = ModelHandle(ttl_sec=300, clock=lambda: clock.now)
        handle.set("gpt-4o")
        assert handle.get() == "gpt-4o"
        clock.now = 301
        assert handle.get() is None

    def test_choose_prefers_order(self):
        handle = ModelHandle(preferred=["a", "b"], fallback="z")
        assert handle.choose(["b", "a"]) == "a"
        assert handle.choose(["b"]) == "b"
        assert handle.choose(["c"]) == "z"

    @pytest.mark.asyncio
    async def test_resolve_lists_once(self, monkeypatch):
        monkeypatch.delenv(MODEL_ENV, raising=False)
        client = FakeClient(FakeCompletions(), model_ids=["other", "b"])
        handle = ModelHandle(preferred=["a", "b"], fallback="z")
        assert await handle.resolve(client) == "b"
        assert await handle.resolve(client) == "b"
        assert client.models.list_calls == 1

    @pytest.mark.asyncio
    async def test_env_pins_model(self, monkeypatch):
        monkeypatch.setenv(MODEL_ENV, "pinned-model")
        client = FakeClient(FakeCompletions())
        assert await ModelHandle().resolve(client) == "pinned-model"
        assert client.models.list_calls == 0


class TestOpenAIGenerator:
    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(ConfigurationError):
            OpenAIGenerator()

    @pytest.mark.asyncio
    async def test_returns_completion_text(self):
        completions = FakeCompletions(content='[{"name": "Plank"}]')
        handle = ModelHandle()
        handle.set("gpt-4o-mini")
        generator = OpenAIGenerator(model_handle=handle, client=FakeClient(completions))
        assert await generator.generate("prompt") == '[{"name": "Plank"}]'
        assert completions.calls[0]["model"] == "gpt-4o-mini"
        assert completions.calls[0]["messages"][-1]["content"] == "prompt"

    @pytest.mark.asyncio
    async def test_not_found_invalidates_handle(self):
        handle = ModelHandle()
        handle.set("retired-model")
        completions = FakeCompletions(error=_api_error(openai.NotFoundError, 404))
        generator = OpenAIGenerator(model_handle=handle, client=FakeClient(completions))

        with pytest.raises(ModelUnavailableError) as excinfo:
            await generator.generate("prompt")
        assert excinfo.value.model == "retired-model"
        assert handle.get() is None

    @pytest.mark.asyncio
    async def test_server_error_is_transient(self):
        handle = ModelHandle()
        handle.set("gpt-4o-mini")
        completions = FakeCompletions(error=_api_error(openai.InternalServerError, 500))
        generator = OpenAIGenerator(model_handle=handle, client=FakeClient(completions))

        with pytest.raises(GeneratorIOError):
            await generator.generate("prompt")
        assert handle.get() == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_rejected_key(self):
        handle = ModelHandle()
        handle.set("gpt-4o-mini")
        completions = FakeCompletions(error=_api_error(openai.AuthenticationError, 401))
        generator = OpenAIGenerator(model_handle=handle, client=FakeClient(completions))

        with pytest.raises(ConfigurationError):
            await generator.generate("prompt")


# ===========================================================================
# Data store
# ===========================================================================

class TestJsonDataStore:
    def test_profile_round_trip(self, tmp_path):
        store = JsonDataStore(tmp_path)
        assert store.load_profile() is None
        store.init()
        store.save_profile(_profile(["Dumbbells"]))
        assert store.exists()
        assert store.load_profile() == _profile(["Dumbbells"])

    def test_logs_oldest_first_and_filtered(self, tmp_path):
        store = JsonDataStore(tmp_path)
        store.append_logs(list(reversed(_bench_logs())))
        store.append_logs([WorkoutLogEntry("Deadlift", NOW, 140.0, 5)])

        bench = store.load_logs("bench press")
        assert [log.reps for log in bench] == [8, 10]
        assert len(store.load_logs()) == 3

    @pytest.mark.asyncio
    async def test_fetch_logs_newest_first(self, tmp_path):
        store = JsonDataStore(tmp_path)
        store.append_logs(_bench_logs())
        logs = await store.fetch_logs("u1", "Bench Press", 1)
        assert [log.reps for log in logs] == [10]

    def test_corrupt_log_line_names_line(self, tmp_path):
        store = JsonDataStore(tmp_path)
        store.append_logs(_bench_logs())
        with open(store.logs_path, "a", encoding="utf-8") as f:
            f.write("{not json\n")
        with pytest.raises(ValidationError, match="line 3"):
            store.load_logs()

    def test_records(self, tmp_path):
        store = JsonDataStore(tmp_path)
        record = PersonalRecord("Bench Press", 110.0, 3, NOW)
        store.save_record("u1", record)
        assert store.load_record("u1", "bench press") == record
        assert store.load_record("u2", "Bench Press") is None

    @pytest.mark.parametrize("content", ["[]", "42", '{"u1": ["Bench Press"]}'])
    def test_records_file_with_wrong_shape(self, tmp_path, content):
        store = JsonDataStore(tmp_path)
        store.records_path.parent.mkdir(parents=True, exist_ok=True)
        store.records_path.write_text(content, encoding="utf-8")
        with pytest.raises(ValidationError, match="Records file"):
            store.load_record("u1", "Bench Press")

    def test_save_day_keeps_other_days(self, tmp_path):
        store = JsonDataStore(tmp_path)
        store.save_day("monday", [_planned("Bench Press")])
        store.save_day("friday", [
            PlannedExercise(
                "Plank", 3, target_duration_sec=45,
                sets=[PlannedSet(index=i, duration_sec=45, rest_time_sec=60) for i in (1, 2, 3)],
            ),
        ])

        assert [ex.name for ex in store.load_day("monday")] == ["Bench Press"]
        (plank,) = store.load_day("friday")
        assert plank.is_timed
        assert [s.duration_sec for s in plank.sets] == [45, 45, 45]
        assert store.load_day("sunday") == []

        document = json.loads(store.plan_path.read_text())
        assert set(document["week_schedule"]) == {"monday", "friday"}
        assert document["week_schedule"]["friday"]["exercises"][0]["sets"][0]["duration"] == 45

    def test_string_rep_targets_in_plan(self, tmp_path):
        store = JsonDataStore(tmp_path)
        store.plan_path.parent.mkdir(parents=True, exist_ok=True)
        store.plan_path.write_text(json.dumps({
            "week_schedule": {"monday": {"exercises": [
                {"name": "Dumbbell Curl", "target_sets": 3, "target_reps": "10-12"},
            ]}},
        }))
        (curl,) = store.load_day("monday")
        assert curl.target_reps == 10

    def test_custom_exercises(self, tmp_path):
        store = JsonDataStore(tmp_path)
        store.add_custom_exercise(CatalogExercise(name="Sled Push", is_custom=True, muscle_groups=("legs",)))
        store.add_custom_exercise(
            CatalogExercise(name="sled push", is_custom=True, equipment_needed=("Sled",))
        )
        (custom,) = store.load_custom_exercises()
        assert custom.equipment_needed == ("Sled",)
        assert custom.is_custom
