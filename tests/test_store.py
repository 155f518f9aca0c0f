from datetime import datetime, timedelta

import pytest

from app.simulations import lifecycle, simulation_service
from app.simulations.database import (
    get_simulation,
    repair_virtual_lab,
    require_simulation,
    save_simulation,
)
from app.simulations.errors import ConcurrentModification, ParentNotFound, RateLimited, StudentNotFound
from app.simulations.models import Chemical, Equipment, SimulationGenerate, SimulationState


def test_repair_fills_empty_chemistry_lab():
    simulation = {"simulation_id": "SIM_X", "subject": "chemistry", "virtual_lab": {}}

    repaired = repair_virtual_lab(simulation)

    lab = simulation["virtual_lab"]
    assert repaired == ["equipment", "chemicals", "procedure", "safety_notes"]
    assert [e["name"] for e in lab["equipment"]] == ["Basic laboratory equipment", "Safety goggles", "Lab notebook"]
    assert lab["equipment"][1]["icon"] == "🥽"
    assert [c["name"] for c in lab["chemicals"]] == ["Water", "Standard solutions"]
    assert lab["chemicals"][0]["concentration"] == "Pure"
    assert lab["procedure"] == ["Set up equipment", "Follow procedure", "Record observations"]


def test_repair_leaves_non_chemistry_chemicals_empty():
    simulation = {
        "simulation_id": "SIM_Y",
        "subject": "physics",
        "virtual_lab": {
            "equipment": ["Voltmeter"],
            "chemicals": [],
            "procedure": ["Measure"],
            "safety_notes": ["Careful"],
        },
    }

    repaired = repair_virtual_lab(simulation)

    assert repaired == ["equipment"]
    assert simulation["virtual_lab"]["equipment"][0]["id"] == "eq_1"
    assert simulation["virtual_lab"]["chemicals"] == []


def test_repair_is_a_noop_on_complete_lab():
    simulation = {
        "simulation_id": "SIM_Z",
        "subject": "biology",
        "virtual_lab": {
            "equipment": [{"id": "eq_1", "name": "Microscope"}],
            "chemicals": [],
            "procedure": ["Look"],
            "safety_notes": ["Careful"],
        },
    }

    assert repair_virtual_lab(simulation) == []


def test_stored_models_keep_enum_defaults_as_strings():
    assert Equipment(id="eq_1", name="Beaker").dict()["category"] == "tools"
    assert Chemical(id="chem_1", name="Water").dict()["hazard"] == "safe"
    assert Chemical(id="chem_2", name="Acid", hazard="dangerous").dict()["hazard"] == "dangerous"

    status = SimulationState().dict()["status"]
    assert status == "not_started"
    assert type(status) is str


@pytest.mark.asyncio
async def test_save_repairs_before_write(db, make_simulation):
    simulation = await make_simulation()
    loaded = await require_simulation(db, simulation["simulation_id"])
    loaded["virtual_lab"]["procedure"] = []

    await save_simulation(db, loaded)

    stored = await get_simulation(db, simulation["simulation_id"])
    assert stored["virtual_lab"]["procedure"] == ["Set up equipment", "Follow procedure", "Record observations"]
    assert stored["version"] == 2


@pytest.mark.asyncio
async def test_stale_save_is_rejected(db, make_simulation):
    simulation = await make_simulation()
    first = await require_simulation(db, simulation["simulation_id"])
    second = await require_simulation(db, simulation["simulation_id"])

    first["state"]["current_step"] = 1
    await save_simulation(db, first)

    second["state"]["current_step"] = 99
    with pytest.raises(ConcurrentModification) as exc:
        await save_simulation(db, second)
    assert exc.value.status_code == 409

    stored = await get_simulation(db, simulation["simulation_id"])
    assert stored["state"]["current_step"] == 1


@pytest.mark.asyncio
async def test_generate_uses_student_level_and_notifies(db, offline_generator):
    outcome = await simulation_service.generate(
        db, offline_generator, SimulationGenerate(student_id="STU_1", prompt="  titrate vinegar  ", subject="chemistry")
    )

    simulation = outcome["simulation"]
    assert simulation["simulation_id"].startswith("SIM_")
    assert simulation["prompt"] == "titrate vinegar"
    assert simulation["level"] == 3
    assert simulation["state"]["status"] == "not_started"
    assert simulation["ai_generation_data"]["model"] == "offline-templates"
    assert "version" not in simulation
    assert outcome["notifications_created"] == 1


@pytest.mark.asyncio
async def test_generate_defaults_subject_to_general(db, offline_generator):
    outcome = await simulation_service.generate(
        db, offline_generator, SimulationGenerate(student_id="STU_2", prompt="surprise me", level=5)
    )

    assert outcome["simulation"]["subject"] == "general"
    assert outcome["simulation"]["game_config"]["max_score"] == 200


@pytest.mark.asyncio
async def test_generate_requires_a_student(db, offline_generator):
    with pytest.raises(StudentNotFound):
        await simulation_service.generate(db, offline_generator, SimulationGenerate(student_id="PAR_1", prompt="x"))


@pytest.mark.asyncio
async def test_generation_rate_limit(db, offline_generator, make_simulation):
    for _ in range(5):
        await make_simulation()

    with pytest.raises(RateLimited) as exc:
        await simulation_service.generate(db, offline_generator, SimulationGenerate(student_id="STU_1", prompt="one more"))

    assert exc.value.headers["Retry-After"] == "3600"
    assert await db.simulations.count_documents({"student_id": "STU_1"}) == 5


@pytest.mark.asyncio
async def test_generation_window_is_rolling(db, offline_generator, make_simulation):
    for _ in range(5):
        await make_simulation()
    await db.simulations.update_many(
        {"student_id": "STU_1"}, {"$set": {"created_at": datetime.utcnow() - timedelta(hours=2)}}
    )

    outcome = await simulation_service.generate(
        db, offline_generator, SimulationGenerate(student_id="STU_1", prompt="allowed again")
    )

    assert outcome["simulation"]["student_id"] == "STU_1"


@pytest.mark.asyncio
async def test_get_by_student_paginates_and_counts(db, make_simulation, backdate):
    ids = []
    for seconds in (30, 20, 10):
        simulation = await make_simulation(status="in_progress")
        await backdate(simulation["simulation_id"], seconds=seconds)
        ids.append(simulation["simulation_id"])
    await make_simulation(status="completed")
    await make_simulation(student_id="STU_2")

    page = await simulation_service.get_by_student(db, "STU_1", page=1, limit=2, status="in_progress")

    assert [s["simulation_id"] for s in page["simulations"]] == [ids[2], ids[1]]
    assert page["pagination"] == {
        "current_page": 1,
        "total_pages": 2,
        "total_count": 3,
        "has_next": True,
        "has_prev": False,
    }
    assert page["stats"] == {"total": 4, "not_started": 0, "in_progress": 3, "paused": 0, "completed": 1}


@pytest.mark.asyncio
async def test_get_by_student_unknown(db):
    with pytest.raises(StudentNotFound):
        await simulation_service.get_by_student(db, "STU_404")


@pytest.mark.asyncio
async def test_children_progress(db, make_simulation):
    done = await make_simulation(status="in_progress")
    await db.simulations.update_one(
        {"simulation_id": done["simulation_id"]}, {"$set": {"state.game_state.score": 100}}
    )
    await lifecycle.complete(db, done["simulation_id"])
    await make_simulation(status="paused")
    await make_simulation()

    progress = await simulation_service.get_children_progress(db, "PAR_1")

    assert len(progress["children_progress"]) == 1
    child = progress["children_progress"][0]
    assert child["child"] == {"id": "STU_1", "name": "Ada Lovelace", "level": 3}
    stats = child["stats"]
    assert stats["total_simulations"] == 3
    assert stats["completed_simulations"] == 1
    assert stats["paused_simulations"] == 1
    assert stats["not_started_simulations"] == 1
    assert stats["average_accuracy"] == 63
    assert stats["total_time_spent"] == 10
    assert stats["last_activity"] is not None
    assert len(child["recent_simulations"]) == 3


@pytest.mark.asyncio
async def test_children_progress_requires_parent(db):
    with pytest.raises(ParentNotFound):
        await simulation_service.get_children_progress(db, "STU_1")
