"""
Simulation lifecycle state machine

not_started -> in_progress -> paused <-> in_progress -> completed (terminal)

Every mutation loads the record under the per-simulation lock, validates,
mutates the loaded copy and saves with a version check. A rejected request
never reaches save, so the stored record is untouched.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from app.simulations.config import STATE_UPDATE_MIN_INTERVAL_SECONDS
from app.simulations.database import get_pending_stats_ids, get_user, require_simulation, save_simulation
from app.simulations.errors import ConcurrentModification, InvalidTransition, RateLimited, ValidationFailed
from app.simulations.locks import simulation_locks
from app.simulations.models import (
    RESULT_COUNTERS,
    AchievementEntry,
    SimulationStatus,
    StatePatch,
    UserRole,
    clean_result_counters,
    is_result_number,
)
from app.simulations.notifications import notify_completed, notify_started
from app.simulations.scoring import (
    BADGES,
    calculate_accuracy,
    calculate_performance,
    generate_game_achievements,
)
from app.simulations.stats import update_student_game_stats

logger = logging.getLogger(__name__)

NOT_STARTED = SimulationStatus.NOT_STARTED.value
IN_PROGRESS = SimulationStatus.IN_PROGRESS.value
PAUSED = SimulationStatus.PAUSED.value
COMPLETED = SimulationStatus.COMPLETED.value

TRANSITIONS = {
    NOT_STARTED: [IN_PROGRESS],
    IN_PROGRESS: [PAUSED, COMPLETED],
    PAUSED: [IN_PROGRESS, COMPLETED],
    COMPLETED: [],
}


def allowed_targets(current: str) -> List[str]:
    return list(TRANSITIONS.get(current, []))


def is_valid_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, [])


def apply_transition(simulation: dict, target: str, now: datetime) -> str:
    """Validate and stamp one transition on a loaded record; returns the source status"""
    state = simulation["state"]
    source = state["status"]
    if not is_valid_transition(source, target):
        raise InvalidTransition(source, target)

    state["status"] = target
    state["last_active_at"] = now
    if source == NOT_STARTED:
        state["started_at"] = now
    if target == COMPLETED:
        state["progress"] = 100
        state["completed_at"] = now
    return source


def build_final_results(simulation: dict, final_results: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Merge caller results over stored ones, backfilling counters from the game state"""
    state = simulation["state"]
    game_state = state.get("game_state", {})
    # stored counters come from free-form patches; unusable ones are backfilled
    stored = {
        key: value for key, value in state.get("results", {}).items()
        if key not in RESULT_COUNTERS or is_result_number(value)
    }
    results = {**stored, **(final_results or {})}

    results.setdefault("gameScore", game_state.get("score", 0))
    results.setdefault("actionsCompleted", game_state.get("actions_count", 0))
    results.setdefault("observationsMade", len(game_state.get("observations", [])))
    results.setdefault("hintsUsed", len(game_state.get("hints", [])))
    results.setdefault(
        "accuracy",
        calculate_accuracy(results["gameScore"], simulation["game_config"]["max_score"])
    )
    return results

# ==================== TRANSITIONS ====================

async def _notify_started(db: AsyncIOMotorDatabase, simulation: dict) -> int:
    student = await get_user(db, simulation["student_id"], UserRole.STUDENT)
    if not student:
        logger.warning(f"⚠️ Student {simulation['student_id']} missing, skipping start notifications")
        return 0
    return await notify_started(db, student, simulation)


async def _transition_from(db: AsyncIOMotorDatabase, simulation_id: str, source: str, target: str) -> dict:
    """Named transitions accept exactly one source status"""
    async with simulation_locks.hold(simulation_id):
        simulation = await require_simulation(db, simulation_id)
        current = simulation["state"]["status"]
        if current != source:
            raise InvalidTransition(current, target)
        apply_transition(simulation, target, datetime.utcnow())
        return await save_simulation(db, simulation)


async def start(db: AsyncIOMotorDatabase, simulation_id: str) -> Dict[str, Any]:
    simulation = await _transition_from(db, simulation_id, NOT_STARTED, IN_PROGRESS)
    notifications_created = await _notify_started(db, simulation)
    logger.info(f"🧪 Simulation {simulation_id} started")
    return {"simulation": simulation, "notifications_created": notifications_created}


async def pause(db: AsyncIOMotorDatabase, simulation_id: str) -> dict:
    return await _transition_from(db, simulation_id, IN_PROGRESS, PAUSED)


async def resume(db: AsyncIOMotorDatabase, simulation_id: str) -> dict:
    return await _transition_from(db, simulation_id, PAUSED, IN_PROGRESS)

# ==================== COMPLETION ====================

async def settle_pending_stats(db: AsyncIOMotorDatabase, simulation: dict) -> bool:
    """
    Fold a completed simulation's pending result into the student's stats.
    The marker is cleared only after the stats write lands, so a failed write
    can be replayed later. Caller holds the simulation lock.
    """
    pending = simulation.get("pending_stats")
    if not pending:
        return True

    try:
        await update_student_game_stats(
            db,
            simulation["student_id"],
            pending["subject"],
            pending["final_score"],
            pending["achievement_ids"],
        )
    except (ConcurrentModification, PyMongoError) as e:
        logger.error(f"❌ Stats for simulation {simulation['simulation_id']} left pending: {e}", exc_info=True)
        return False

    simulation.pop("pending_stats")
    await save_simulation(db, simulation)
    return True


def _game_results(simulation: dict, achievements: List[Dict[str, str]]) -> Dict[str, Any]:
    results = simulation["state"]["results"]
    return {
        "final_score": results["gameScore"],
        "max_possible_score": simulation["game_config"]["max_score"],
        "performance": results["performance"],
        "achievements": achievements,
    }


async def _complete_loaded(db: AsyncIOMotorDatabase, simulation: dict,
                           final_results: Optional[Dict[str, Any]], now: datetime) -> Dict[str, Any]:
    """Completion & achievement engine; caller holds the simulation lock"""
    apply_transition(simulation, COMPLETED, now)

    state = simulation["state"]
    results = build_final_results(simulation, final_results)
    max_score = simulation["game_config"]["max_score"]
    performance = calculate_performance(results["gameScore"], max_score)
    achievements = generate_game_achievements(results, performance)

    results["performance"] = performance.value
    state["results"] = results
    state["game_state"].setdefault("achievements", []).extend(
        AchievementEntry(id=a["id"], title=a["title"], unlocked_at=now).dict()
        for a in achievements
    )
    simulation["pending_stats"] = {
        "subject": simulation["subject"],
        "final_score": results["gameScore"],
        "achievement_ids": [a["id"] for a in achievements],
    }

    simulation = await save_simulation(db, simulation)
    await settle_pending_stats(db, simulation)

    return {
        "simulation": simulation,
        "achievements": achievements,
        "game_results": _game_results(simulation, achievements),
    }


async def _notify_completed(db: AsyncIOMotorDatabase, outcome: Dict[str, Any]) -> int:
    simulation = outcome["simulation"]
    student = await get_user(db, simulation["student_id"], UserRole.STUDENT)
    if not student:
        logger.warning(f"⚠️ Student {simulation['student_id']} missing, skipping completion notifications")
        return 0
    return await notify_completed(db, student, simulation, outcome["achievements"])


async def complete(db: AsyncIOMotorDatabase, simulation_id: str,
                   final_results: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Complete a simulation. Completing again while its stats are still pending
    retries the stats write instead of failing as an invalid transition.
    """
    try:
        final_results = clean_result_counters(final_results)
    except ValueError as e:
        raise ValidationFailed(str(e))

    async with simulation_locks.hold(simulation_id):
        simulation = await require_simulation(db, simulation_id)
        if simulation["state"]["status"] == COMPLETED and simulation.get("pending_stats"):
            achievements = [
                {"id": badge_id, **BADGES[badge_id]}
                for badge_id in simulation["pending_stats"]["achievement_ids"]
            ]
            await settle_pending_stats(db, simulation)
            logger.info(f"🔁 Simulation {simulation_id} completion replayed")
            return {
                "simulation": simulation,
                "game_results": _game_results(simulation, achievements),
                "notifications_created": 0,
            }
        outcome = await _complete_loaded(db, simulation, final_results, datetime.utcnow())

    notifications_created = await _notify_completed(db, outcome)
    logger.info(
        f"🏁 Simulation {simulation_id} completed: "
        f"{outcome['game_results']['final_score']}/{outcome['game_results']['max_possible_score']}"
    )
    return {
        "simulation": outcome["simulation"],
        "game_results": outcome["game_results"],
        "notifications_created": notifications_created,
    }


async def replay_pending_stats(db: AsyncIOMotorDatabase) -> int:
    """Retry every stats write left pending by an earlier completion"""
    settled = 0
    for simulation_id in await get_pending_stats_ids(db):
        async with simulation_locks.hold(simulation_id):
            simulation = await require_simulation(db, simulation_id)
            if await settle_pending_stats(db, simulation):
                settled += 1
    if settled:
        logger.info(f"🔁 Replayed stats for {settled} completed simulation(s)")
    return settled

# ==================== GENERIC STATE PATCH ====================

async def update_state(db: AsyncIOMotorDatabase, simulation_id: str, patch: StatePatch) -> Dict[str, Any]:
    """
    Patch progress fields and optionally move status.
    A status change goes through the same rules and side effects as the named
    transition; a status equal to the current one is ignored.
    """
    outcome = None
    started = False

    async with simulation_locks.hold(simulation_id):
        simulation = await require_simulation(db, simulation_id)
        state = simulation["state"]
        now = datetime.utcnow()

        last_active_at = state.get("last_active_at")
        if last_active_at and (now - last_active_at).total_seconds() < STATE_UPDATE_MIN_INTERVAL_SECONDS:
            raise RateLimited(
                "Please wait before updating state again",
                retry_after=max(1, int(STATE_UPDATE_MIN_INTERVAL_SECONDS))
            )

        changes = patch.dict(exclude_none=True)
        target = changes.pop("status", None)
        if target is not None:
            target = SimulationStatus(target).value
            if target == state["status"]:
                target = None
            elif not is_valid_transition(state["status"], target):
                raise InvalidTransition(state["status"], target)

        if "results" in changes:
            state["results"] = {**state.get("results", {}), **changes.pop("results")}
        state.update(changes)
        state["last_active_at"] = now

        if target == COMPLETED:
            outcome = await _complete_loaded(db, simulation, None, now)
            simulation = outcome["simulation"]
        else:
            if target is not None:
                started = apply_transition(simulation, target, now) == NOT_STARTED
            simulation = await save_simulation(db, simulation)

    notifications_created = 0
    if outcome:
        notifications_created = await _notify_completed(db, outcome)
    elif started:
        notifications_created = await _notify_started(db, simulation)

    return {
        "simulation": simulation,
        "game_results": outcome["game_results"] if outcome else None,
        "notifications_created": notifications_created,
    }
