"""
Game Action Processor
Interprets actions, chemical mixes and hint requests for a running simulation
and folds the outcome into its game state.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.ai.services import ContentGenerator
from app.simulations.database import insert_game_action, new_id, require_simulation, save_simulation
from app.simulations.errors import SimulationNotActive
from app.simulations.locks import simulation_locks
from app.simulations.models import (
    WORKSPACE_LOCATIONS,
    AchievementEntry,
    ActionKind,
    ActionTarget,
    GameActionRequest,
    GameObservation,
    HintEntry,
    HintRequest,
    MixChemicalsRequest,
    MixedSolution,
    SelectedEquipment,
    SimulationStatus,
)
from app.simulations.scoring import calculate_mixing_score, calculate_score_gain

logger = logging.getLogger(__name__)

PLAYABLE = [SimulationStatus.IN_PROGRESS.value]
HINTABLE = [SimulationStatus.IN_PROGRESS.value, SimulationStatus.PAUSED.value]


def _require_status(simulation: dict, allowed) -> None:
    status = simulation["state"]["status"]
    if status not in allowed:
        raise SimulationNotActive(simulation["simulation_id"], status)


def simulation_context(simulation: dict) -> Dict[str, Any]:
    """What the AI capability is told about the running simulation"""
    return {
        "simulation_id": simulation["simulation_id"],
        "title": simulation.get("title", ""),
        "subject": simulation.get("subject"),
        "level": simulation.get("level"),
        "experiment_type": simulation.get("experiment_type"),
        "virtual_lab": simulation.get("virtual_lab", {}),
        "game_config": simulation.get("game_config", {}),
        "current_step": simulation["state"].get("current_step", 0),
    }


def _game_state_view(game_state: Dict[str, Any], client_state: Dict[str, Any]) -> Dict[str, Any]:
    """Stored state is authoritative; the client snapshot only adds UI-side keys"""
    return {**client_state, **game_state}


def fold_action(game_state: Dict[str, Any], action: str, target: str, equipment: Optional[Dict[str, Any]],
                result: Dict[str, Any], score_gained: int, now: datetime) -> None:
    """Apply one interpreted action to the stored game state (in place)"""
    game_state["score"] = game_state.get("score", 0) + score_gained
    game_state["actions_count"] = game_state.get("actions_count", 0) + 1
    game_state["current_action"] = action

    if result.get("observation"):
        game_state.setdefault("observations", []).append(GameObservation(
            timestamp=now,
            action=action,
            result=result.get("action_description", ""),
            scientific_explanation=result.get("explanation", ""),
            visual_effect=result.get("visual_effect", ""),
        ).dict())

    for achievement in result.get("achievements") or []:
        game_state.setdefault("achievements", []).append(
            AchievementEntry(id=achievement["id"], title=achievement["title"], unlocked_at=now).dict()
        )

    if not equipment or target not in WORKSPACE_LOCATIONS:
        return

    workspace = game_state.setdefault("workspace_contents", {})
    bucket = workspace.setdefault(target, [])

    if action in (ActionKind.USE_EQUIPMENT.value, ActionKind.PLACE_ITEM.value):
        game_state.setdefault("selected_equipment", []).append(SelectedEquipment(
            id=equipment.get("id"),
            name=equipment.get("name"),
            used_at=now,
            location=target,
        ).dict())
        bucket.append({**equipment, "added_at": now})

    elif action == ActionKind.REMOVE_ITEM.value:
        key = "id" if equipment.get("id") else "name"
        workspace[target] = [item for item in bucket if item.get(key) != equipment.get(key)]


async def process_action(db: AsyncIOMotorDatabase, generator: ContentGenerator, simulation_id: str,
                         request: GameActionRequest) -> Dict[str, Any]:
    action = ActionKind(request.action).value
    target = ActionTarget(request.target).value
    equipment = request.equipment.dict(exclude_none=True) if request.equipment else None

    async with simulation_locks.hold(simulation_id):
        simulation = await require_simulation(db, simulation_id)
        _require_status(simulation, PLAYABLE)

        game_state = simulation["state"]["game_state"]
        logger.info(f"🎮 {simulation_id}: {action} with {(equipment or {}).get('name', 'unknown')} on {target}")

        result, ai_processed = await generator.interpret_action(
            action,
            equipment,
            target,
            _game_state_view(game_state, request.current_game_state),
            {**simulation_context(simulation), "client_context": request.context},
        )
        score_gained = calculate_score_gain(result, simulation["game_config"].get("scoring_criteria"))

        now = datetime.utcnow()
        fold_action(game_state, action, target, equipment, result, score_gained, now)
        simulation["state"]["last_active_at"] = now
        simulation = await save_simulation(db, simulation)

        row = await insert_game_action(
            db, simulation, action, target, equipment, result, score_gained, ai_processed
        )

    return {
        "action_id": row["action_id"],
        "result": {**result, "score_gain": score_gained},
        "score_gained": score_gained,
        "total_score": simulation["state"]["game_state"]["score"],
        "game_state": simulation["state"]["game_state"],
    }


async def mix_chemicals(db: AsyncIOMotorDatabase, generator: ContentGenerator, simulation_id: str,
                        request: MixChemicalsRequest) -> Dict[str, Any]:
    chemical_a = request.chemical1.dict(exclude_none=True)
    chemical_b = request.chemical2.dict(exclude_none=True)

    async with simulation_locks.hold(simulation_id):
        simulation = await require_simulation(db, simulation_id)
        _require_status(simulation, PLAYABLE)

        game_state = simulation["state"]["game_state"]
        logger.info(f"🧪 {simulation_id}: mixing {chemical_a['name']} + {chemical_b['name']}")

        reaction, ai_processed = await generator.interpret_mixing(
            chemical_a,
            chemical_b,
            _game_state_view(game_state, request.current_game_state),
            simulation_context(simulation),
        )
        score_gained = calculate_mixing_score(reaction, simulation["game_config"].get("scoring_criteria"))

        now = datetime.utcnow()
        game_state.setdefault("mixed_solutions", []).append(MixedSolution(
            id=new_id("MIX"),
            components=[chemical_a["name"], chemical_b["name"]],
            result=reaction.get("result_solution") or {},
            visual_effect=reaction.get("visual_effect", ""),
            timestamp=now,
        ).dict())
        game_state["score"] = game_state.get("score", 0) + score_gained
        game_state["actions_count"] = game_state.get("actions_count", 0) + 1
        game_state["current_action"] = ActionKind.MIX_CHEMICALS.value
        simulation["state"]["last_active_at"] = now
        simulation = await save_simulation(db, simulation)

        row = await insert_game_action(
            db,
            simulation,
            ActionKind.MIX_CHEMICALS.value,
            ActionTarget.MIXING.value,
            {"name": f"{chemical_a['name']} + {chemical_b['name']}", "category": "chemicals"},
            reaction,
            score_gained,
            ai_processed,
        )

    return {
        "action_id": row["action_id"],
        "reaction": {**reaction, "score_gain": score_gained},
        "score_gained": score_gained,
        "total_score": simulation["state"]["game_state"]["score"],
        "game_state": simulation["state"]["game_state"],
    }


async def get_hint(db: AsyncIOMotorDatabase, generator: ContentGenerator, simulation_id: str,
                   request: HintRequest) -> Dict[str, Any]:
    async with simulation_locks.hold(simulation_id):
        simulation = await require_simulation(db, simulation_id)
        _require_status(simulation, HINTABLE)

        game_state = simulation["state"]["game_state"]
        logger.info(f"💡 Generating hint for simulation: {simulation.get('title')}")

        hint, _ = await generator.generate_hint(
            _game_state_view(game_state, request.current_game_state),
            request.struggling_area,
            simulation_context(simulation),
        )

        now = datetime.utcnow()
        game_state.setdefault("hints", []).append(HintEntry(
            id=new_id("HINT"),
            text=hint["text"],
            type=hint["type"],
            specificity=hint["specificity"],
            timestamp=now,
        ).dict())
        simulation["state"]["last_active_at"] = now
        simulation = await save_simulation(db, simulation)

    return {
        "hint": hint,
        "hints_used": len(simulation["state"]["game_state"]["hints"]),
    }
