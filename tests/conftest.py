"""Pytest configuration for simulation engine tests."""
import asyncio
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from mongomock_motor import AsyncMongoMockClient

from app.ai.capability import CapabilityResult, GenerationError, OfflineLabCapability
from app.ai.services import ContentGenerator, select_lab_fallback
from app.simulations.app import create_simulation_indexes
from app.simulations.database import create_simulation


class StubCapability:
    """Scripted LabCapability; each kind returns its configured result"""

    def __init__(self, lab=None, action=None, mixing=None, hint=None, delay=0.0, raises=None):
        self.results = {"lab": lab, "action": action, "mixing": mixing, "hint": hint}
        self.delay = delay
        self.raises = raises
        self.calls = []

    async def _answer(self, kind, *args):
        self.calls.append((kind, args))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raises:
            raise self.raises
        result = self.results[kind]
        if result is None:
            return CapabilityResult.failure(GenerationError.UNAVAILABLE)
        if isinstance(result, GenerationError):
            return CapabilityResult.failure(result)
        return CapabilityResult.success(result)

    async def generate_lab_content(self, prompt, subject, level):
        return await self._answer("lab", prompt, subject, level)

    async def interpret_action(self, action, equipment, target, game_state, simulation_context):
        return await self._answer("action", action, equipment, target)

    async def interpret_mixing(self, chemical_a, chemical_b, game_state, simulation_context):
        return await self._answer("mixing", chemical_a, chemical_b)

    async def generate_hint(self, game_state, struggling_area, simulation_context):
        return await self._answer("hint", struggling_area)


STUDENT = {
    "user_id": "STU_1",
    "role": "student",
    "username": "ada",
    "first_name": "Ada",
    "last_name": "Lovelace",
    "selected_level": 3,
}

OTHER_STUDENT = {
    "user_id": "STU_2",
    "role": "student",
    "username": "alan",
    "first_name": "Alan",
    "last_name": "Turing",
    "selected_level": 3,
}

PARENT = {
    "user_id": "PAR_1",
    "role": "parent",
    "username": "parent1",
    "first_name": "Pat",
    "last_name": "Lovelace",
    "children": ["STU_1"],
}

TEACHER = {
    "user_id": "TCH_1",
    "role": "teacher",
    "username": "teach",
    "first_name": "Tess",
    "last_name": "Teacher",
}


@pytest_asyncio.fixture
async def db():
    client = AsyncMongoMockClient()
    database = client["lumetrics_test"]
    await create_simulation_indexes(database)
    await database.users_profile.insert_many([
        dict(STUDENT), dict(OTHER_STUDENT), dict(PARENT), dict(TEACHER)
    ])
    return database


@pytest.fixture
def offline_generator():
    return ContentGenerator(OfflineLabCapability(), timeout=1)


@pytest.fixture
def stub_generator():
    def _build(**kwargs):
        return ContentGenerator(StubCapability(**kwargs), model_name="stub-model", api_version="test", timeout=0.5)
    return _build


@pytest.fixture
def make_simulation(db):
    """Persist a template simulation, optionally already in a given status"""

    async def _make(student_id="STU_1", subject="chemistry", level=3, status=None):
        lab = select_lab_fallback("titrate an acid", subject, level, GenerationError.UNAVAILABLE)
        simulation = await create_simulation(db, lab, student_id, {"model": "offline-templates"})
        if status:
            now = datetime.utcnow() - timedelta(minutes=10)
            await db.simulations.update_one(
                {"simulation_id": simulation["simulation_id"]},
                {"$set": {
                    "state.status": status,
                    "state.started_at": now,
                    "state.last_active_at": now,
                }}
            )
        return simulation

    return _make


@pytest.fixture
def backdate(db):
    """Move last_active_at into the past so the state update rate limit does not trip"""

    async def _backdate(simulation_id, seconds=5):
        await db.simulations.update_one(
            {"simulation_id": simulation_id},
            {"$set": {"state.last_active_at": datetime.utcnow() - timedelta(seconds=seconds)}}
        )

    return _backdate
