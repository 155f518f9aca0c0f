import pytest

from app.ai.capability import CapabilityResult, GenerationError, parse_json_object, strip_code_fences
from app.ai.services import (
    ContentGenerator,
    build_game_config,
    difficulty_for_level,
    normalize_chemicals,
    normalize_equipment,
    select_hint_fallback,
)
from tests.conftest import StubCapability

SUBJECTS = ["chemistry", "physics", "biology", "general"]


@pytest.mark.asyncio
@pytest.mark.parametrize("subject", SUBJECTS)
@pytest.mark.parametrize("level", [1, 2, 3, 4, 5])
async def test_fallback_lab_is_always_complete(offline_generator, subject, level):
    lab = await offline_generator.generate("make something fizz", subject, level)

    assert lab.virtual_lab.equipment
    assert lab.virtual_lab.procedure
    assert lab.virtual_lab.safety_notes
    if subject == "chemistry":
        assert lab.virtual_lab.chemicals
    assert lab.game_config.max_score == 100 + level * 20
    assert lab.prompt == "make something fizz"
    assert lab.subject == subject
    assert lab.level == level
    assert lab.difficulty == difficulty_for_level(level).value


@pytest.mark.asyncio
async def test_chemistry_level_three_unavailable_uses_titration_template(offline_generator):
    lab = await offline_generator.generate("acid base reaction", "chemistry", 3)

    assert lab.title == "Acid-Base Titration Experiment"
    assert len(lab.virtual_lab.chemicals) == 3
    assert lab.game_config.max_score == 160
    assert lab.game_config.time_limit == 45
    assert lab.difficulty == "intermediate"


@pytest.mark.asyncio
async def test_general_subject_borrows_chemistry_template(offline_generator):
    lab = await offline_generator.generate("anything", "general", 1)

    assert lab.title == "Acid-Base Titration Experiment"
    assert lab.subject == "general"
    assert lab.difficulty == "beginner"
    assert lab.game_config.time_limit == 40


@pytest.mark.asyncio
async def test_physics_and_biology_templates(offline_generator):
    physics = await offline_generator.generate("circuits", "physics", 5)
    biology = await offline_generator.generate("cells", "biology", 2)

    assert physics.title == "Simple Circuit Construction"
    assert physics.virtual_lab.chemicals == []
    assert physics.game_config.time_limit == 30
    assert physics.difficulty == "advanced"
    assert biology.title == "Microscopic Cell Observation"
    assert biology.game_config.max_score == 140


@pytest.mark.asyncio
async def test_ai_lab_string_entries_are_normalized(stub_generator):
    generator = stub_generator(lab={
        "title": "Vinegar Volcano",
        "description": "Baking soda meets vinegar",
        "experimentType": "reaction",
        "virtualLab": {
            "equipment": ["Glass Beaker", "Digital Thermometer", "Mystery Box"],
            "chemicals": ["Acetic Acid", "Distilled Water", "Universal Indicator"],
            "procedure": ["Pour", "Observe"],
            "safetyNotes": ["Goggles on"],
        },
        "objectives": ["See a reaction"],
        "expectedOutcome": "Foam",
        "estimatedDuration": 20,
        "difficulty": "beginner",
    })

    lab = await generator.generate("volcano", "chemistry", 2)

    equipment = lab.virtual_lab.equipment
    assert [e.id for e in equipment] == ["eq_1", "eq_2", "eq_3"]
    assert equipment[0].icon == "🥤" and equipment[0].category == "glassware"
    assert equipment[1].icon == "🌡️" and equipment[1].category == "instruments"
    assert equipment[2].icon == "🔬" and equipment[2].category == "tools"
    assert equipment[2].description == "Mystery Box for laboratory experiments"

    acid, water, indicator = lab.virtual_lab.chemicals
    assert (acid.concentration, acid.hazard, acid.color) == ("0.1M", "dangerous", "colorless")
    assert (water.concentration, water.hazard) == ("Pure", "safe")
    assert (indicator.concentration, indicator.hazard, indicator.color) == ("1%", "caution", "pink")

    assert lab.title == "Vinegar Volcano"
    assert lab.estimated_duration == 20
    assert lab.game_config.max_score == 140


@pytest.mark.asyncio
async def test_ai_lab_missing_sections_get_defaults(stub_generator):
    generator = stub_generator(lab={"title": "Bare", "virtualLab": {}, "difficulty": "expert"})

    lab = await generator.generate("bare", "physics", 4)

    assert [e.name for e in lab.virtual_lab.equipment] == ["Multimeter", "Breadboard", "Safety Goggles"]
    assert lab.virtual_lab.chemicals == []
    assert lab.virtual_lab.procedure[0] == "Step 1: Set up equipment"
    assert lab.virtual_lab.safety_notes[0] == "Wear appropriate safety equipment"
    assert lab.difficulty == "intermediate"
    assert lab.experiment_type == "general_experiment"
    assert lab.estimated_duration == 30


@pytest.mark.asyncio
async def test_ai_lab_without_virtual_lab_is_incomplete(stub_generator):
    generator = stub_generator(lab={"title": "No lab here"})

    lab = await generator.generate("x", "biology", 3)

    assert lab.title == "Microscopic Cell Observation"


@pytest.mark.asyncio
async def test_capability_timeout_falls_back():
    generator = ContentGenerator(StubCapability(lab={"title": "Late"}, delay=0.2), timeout=0.05)

    lab = await generator.generate("slow", "chemistry", 3)

    assert lab.title == "Acid-Base Titration Experiment"


@pytest.mark.asyncio
async def test_capability_exception_falls_back():
    generator = ContentGenerator(StubCapability(raises=RuntimeError("boom")))

    lab = await generator.generate("boom", "physics", 1)
    result, ai_processed = await generator.interpret_action("observe", None, "observation", {}, {"subject": "physics"})

    assert lab.title == "Simple Circuit Construction"
    assert ai_processed is False
    assert result["visual_effect"] == "default_action"
    assert result["observation"] is False


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('{"a": 1}') == '{"a": 1}'


def test_parse_json_object():
    assert parse_json_object('```json\n{"title": "x"}\n```').value == {"title": "x"}
    assert parse_json_object('Here you go: {"title": "x"} enjoy').value == {"title": "x"}
    assert parse_json_object("not json").error == GenerationError.UNPARSABLE
    assert parse_json_object("[1, 2]").error == GenerationError.UNPARSABLE


def test_build_game_config():
    config = build_game_config("biology", 5)

    assert config.max_score == 200
    assert config.time_limit == 40
    assert config.scoring_criteria.correct_action == 10
    assert config.scoring_criteria.observation == 5
    assert config.scoring_criteria.completion == 50
    assert config.objectives[0] == "Observe living organisms and biological structures"


def test_difficulty_for_level():
    assert [difficulty_for_level(level).value for level in range(1, 6)] == [
        "beginner", "beginner", "intermediate", "intermediate", "advanced"
    ]


def test_normalize_coerces_dict_entries():
    equipment = normalize_equipment([{"name": "Conical Flask", "category": "spaceship"}, "", 42], "chemistry")
    chemicals = normalize_chemicals([{"name": "Strong Base", "hazard": "toxic", "id": "c9"}], "chemistry")

    assert equipment == [{
        "id": "eq_1",
        "name": "Conical Flask",
        "description": "Conical Flask for laboratory experiments",
        "icon": "🧪",
        "category": "glassware",
    }]
    assert chemicals[0]["id"] == "c9"
    assert chemicals[0]["hazard"] == "dangerous"


def test_normalize_chemicals_defaults_only_for_chemistry():
    assert [c["name"] for c in normalize_chemicals([], "chemistry")] == [
        "Distilled Water", "Sodium Chloride", "Phenolphthalein"
    ]
    assert normalize_chemicals(None, "biology") == []


@pytest.mark.asyncio
async def test_action_fallback_table_when_unavailable(offline_generator):
    result, ai_processed = await offline_generator.interpret_action(
        "use_equipment", {"name": "burette"}, "burette", {}, {"subject": "chemistry"}
    )

    assert ai_processed is False
    assert result["is_correct"] is True
    assert result["observation"] is True
    assert result["safety"] == "safe"
    assert result["visual_effect"] == "equipment_placed"
    assert "burette" in result["action_description"]


@pytest.mark.asyncio
async def test_action_result_from_capability(stub_generator):
    generator = stub_generator(action={
        "actionDescription": "You poured acid",
        "isCorrect": False,
        "observation": True,
        "safety": "dangerous",
        "visualEffect": "splash",
        "achievements": [{"id": "bold", "title": "Bold Move"}],
    })

    result, ai_processed = await generator.interpret_action(
        "mix_chemicals", None, "beaker", {}, {"subject": "chemistry"}
    )

    assert ai_processed is True
    assert result["is_correct"] is False
    assert result["safety"] == "dangerous"
    assert result["achievements"] == [{"id": "bold", "title": "Bold Move"}]


@pytest.mark.asyncio
async def test_mixing_fallbacks(stub_generator, offline_generator):
    a, b = {"name": "HCl"}, {"name": "NaOH"}

    table, _ = await offline_generator.interpret_mixing(a, b, {}, {"subject": "chemistry"})
    generic, _ = await stub_generator(mixing=GenerationError.UPSTREAM).interpret_mixing(
        a, b, {}, {"subject": "chemistry"}
    )

    assert table["visual_effect"] == "color_change_blue_to_pink"
    assert table["result"] == "HCl reacts with NaOH to form a new compound."
    assert table["result_solution"]["name"] == "HCl-NaOH Solution"
    assert generic["visual_effect"] == "gentle_mixing"
    assert generic["safety"] == "safe" and generic["educational"] is True


def test_offline_hints_rotate_deterministically():
    texts = [
        select_hint_fallback({"hints": [None] * used}, "physics", GenerationError.UNAVAILABLE)["text"]
        for used in range(5)
    ]

    assert texts[0] == "Check your measurements twice for accuracy."
    assert texts[4] == texts[0]
    assert len(set(texts[:4])) == 4


@pytest.mark.asyncio
async def test_hint_generic_fallback_on_failure(stub_generator):
    generator = stub_generator(hint=GenerationError.UNPARSABLE)

    hint, ai_processed = await generator.generate_hint({}, None, {"subject": "biology"})

    assert ai_processed is False
    assert hint == {
        "text": "Take your time and observe carefully. Science is about curiosity and discovery!",
        "type": "encouragement",
        "specificity": "general",
    }


@pytest.mark.asyncio
async def test_non_result_return_is_treated_as_upstream_failure():
    class Broken(StubCapability):
        async def generate_lab_content(self, prompt, subject, level):
            return {"title": "raw dict"}

    lab = await ContentGenerator(Broken()).generate("x", "chemistry", 3)

    assert lab.title == "Acid-Base Titration Experiment"
    assert CapabilityResult.success({"a": 1}).ok
    assert not CapabilityResult.failure(GenerationError.TIMEOUT).ok
