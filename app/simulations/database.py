from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError
from datetime import datetime
from typing import List, Optional, Dict, Any, Tuple
import copy
import logging
import uuid

from app.ai import lab_templates as templates
from app.ai.services import normalize_chemicals, normalize_equipment
from app.simulations.errors import ConcurrentModification, SimulationNotFound
from app.simulations.models import GeneratedLab, SimulationState, SimulationStatus, Subject, UserRole

logger = logging.getLogger(__name__)


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12].upper()}"


def serialize_mongo(doc: Optional[dict]) -> Optional[dict]:
    if doc is None:
        return None
    doc.pop("_id", None)
    return doc


def serialize_many(docs: List[dict]) -> List[dict]:
    return [serialize_mongo(doc) for doc in docs]

# ==================== LAB INVARIANT REPAIR ====================

def repair_virtual_lab(simulation: dict) -> List[str]:
    """
    Ensure equipment, procedure and safety notes are non-empty (and chemicals for
    chemistry). Mutates in place; returns the repaired field names.
    """
    subject = simulation.get("subject", Subject.GENERAL.value)
    lab = simulation.get("virtual_lab")
    if not isinstance(lab, dict):
        lab = {}
        simulation["virtual_lab"] = lab

    repaired = []

    equipment = lab.get("equipment") or []
    if not equipment:
        lab["equipment"] = normalize_equipment(templates.REPAIR_EQUIPMENT, subject)
        repaired.append("equipment")
    elif any(not isinstance(item, dict) for item in equipment):
        lab["equipment"] = normalize_equipment(equipment, subject)
        repaired.append("equipment")

    chemicals = lab.get("chemicals") or []
    if not chemicals and subject == Subject.CHEMISTRY.value:
        lab["chemicals"] = normalize_chemicals(templates.REPAIR_CHEMISTRY_CHEMICALS, subject)
        repaired.append("chemicals")
    elif any(not isinstance(item, dict) for item in chemicals):
        lab["chemicals"] = normalize_chemicals(chemicals, subject)
        repaired.append("chemicals")
    else:
        lab["chemicals"] = chemicals

    if not lab.get("procedure"):
        lab["procedure"] = list(templates.REPAIR_PROCEDURE)
        repaired.append("procedure")

    if not lab.get("safety_notes"):
        lab["safety_notes"] = list(templates.REPAIR_SAFETY_NOTES)
        repaired.append("safety_notes")

    if repaired:
        logger.warning(
            f"⚠️ Repaired virtual lab of {simulation.get('simulation_id')}: {', '.join(repaired)}"
        )
    return repaired

# ==================== SIMULATION CRUD ====================

async def create_simulation(db: AsyncIOMotorDatabase, lab: GeneratedLab, student_id: str,
                            ai_generation_data: dict) -> dict:
    """Persist a freshly generated lab in not_started state"""
    now = datetime.utcnow()
    simulation = {
        "simulation_id": new_id("SIM"),
        "student_id": student_id,
        **lab.dict(),
        "state": SimulationState().dict(),
        "ai_generation_data": ai_generation_data,
        "version": 1,
        "created_at": now,
        "updated_at": now,
    }
    repair_virtual_lab(simulation)

    await db.simulations.insert_one(simulation)
    return serialize_mongo(simulation)


async def get_simulation(db: AsyncIOMotorDatabase, simulation_id: str) -> Optional[dict]:
    return serialize_mongo(await db.simulations.find_one({"simulation_id": simulation_id}))


async def require_simulation(db: AsyncIOMotorDatabase, simulation_id: str) -> dict:
    simulation = await get_simulation(db, simulation_id)
    if not simulation:
        raise SimulationNotFound(simulation_id)
    return simulation


async def save_simulation(db: AsyncIOMotorDatabase, simulation: dict) -> dict:
    """
    Write back a loaded simulation.
    🔒 Only succeeds if nobody saved since it was read (version check).
    """
    repair_virtual_lab(simulation)

    expected_version = simulation["version"]
    replacement = copy.copy(simulation)
    replacement.pop("_id", None)
    replacement["version"] = expected_version + 1
    replacement["updated_at"] = datetime.utcnow()

    result = await db.simulations.replace_one(
        {"simulation_id": simulation["simulation_id"], "version": expected_version},
        replacement
    )
    if result.matched_count == 0:
        raise ConcurrentModification(simulation["simulation_id"])

    simulation.update(replacement)
    return simulation


def _student_filter(student_id: str, status: Optional[str] = None, subject: Optional[str] = None) -> dict:
    query = {"student_id": student_id}
    if status:
        query["state.status"] = status
    if subject:
        query["subject"] = subject
    return query


async def get_paginated_simulations(db: AsyncIOMotorDatabase, student_id: str, page: int = 1,
                                    limit: int = 10, status: Optional[str] = None,
                                    subject: Optional[str] = None) -> Tuple[List[dict], int]:
    query = _student_filter(student_id, status, subject)
    skip = (page - 1) * limit

    cursor = db.simulations.find(query).sort([
        ("state.last_active_at", DESCENDING),
        ("created_at", DESCENDING)
    ]).skip(skip).limit(limit)

    simulations = await cursor.to_list(length=limit)
    total_count = await db.simulations.count_documents(query)
    return serialize_many(simulations), total_count


async def get_status_counts(db: AsyncIOMotorDatabase, student_id: str) -> Dict[str, int]:
    pipeline = [
        {"$match": {"student_id": student_id}},
        {"$group": {"_id": "$state.status", "count": {"$sum": 1}}}
    ]
    counts = {status.value: 0 for status in SimulationStatus}
    async for row in db.simulations.aggregate(pipeline):
        if row["_id"] in counts:
            counts[row["_id"]] = row["count"]
    return {"total": sum(counts.values()), **counts}


async def get_student_simulations(db: AsyncIOMotorDatabase, student_id: str) -> List[dict]:
    cursor = db.simulations.find({"student_id": student_id}).sort("created_at", DESCENDING)
    return serialize_many(await cursor.to_list(length=None))


async def count_recent_generations(db: AsyncIOMotorDatabase, student_id: str, since: datetime) -> int:
    return await db.simulations.count_documents({
        "student_id": student_id,
        "created_at": {"$gte": since}
    })


async def get_pending_stats_ids(db: AsyncIOMotorDatabase) -> List[str]:
    """Completed simulations whose stats write has not landed yet"""
    cursor = db.simulations.find(
        {"state.status": SimulationStatus.COMPLETED.value, "pending_stats": {"$exists": True}},
        {"simulation_id": 1}
    )
    return [doc["simulation_id"] async for doc in cursor]

# ==================== GAME ACTIONS ====================

async def insert_game_action(db: AsyncIOMotorDatabase, simulation: dict, action: str, target: str,
                             equipment: Optional[dict], result: dict, score_gained: int,
                             ai_processed: bool) -> dict:
    """Append one immutable action row"""
    row = {
        "action_id": new_id("GACT"),
        "simulation_id": simulation["simulation_id"],
        "student_id": simulation["student_id"],
        "action": action,
        "equipment": equipment,
        "target": target,
        "result": result,
        "score_gained": score_gained,
        "ai_processed": ai_processed,
        "timestamp": datetime.utcnow(),
    }
    await db.game_actions.insert_one(row)
    return serialize_mongo(row)


async def get_game_actions(db: AsyncIOMotorDatabase, simulation_id: str) -> List[dict]:
    cursor = db.game_actions.find({"simulation_id": simulation_id}).sort("timestamp", 1)
    return serialize_many(await cursor.to_list(length=None))

# ==================== STUDENT GAME STATS ====================

async def get_student_stats(db: AsyncIOMotorDatabase, student_id: str) -> Optional[dict]:
    return serialize_mongo(await db.student_game_stats.find_one({"student_id": student_id}))


async def save_student_stats(db: AsyncIOMotorDatabase, stats: dict, expected_version: int) -> bool:
    """
    Version-conditioned upsert. expected_version is 0 for a student with no row yet.
    Returns False when another writer got there first.
    """
    fields = {k: v for k, v in stats.items() if k not in ("_id", "student_id", "version")}
    fields["version"] = expected_version + 1
    try:
        result = await db.student_game_stats.update_one(
            {"student_id": stats["student_id"], "version": expected_version},
            {"$set": fields},
            upsert=True
        )
    except DuplicateKeyError:
        return False
    return result.matched_count > 0 or result.upserted_id is not None

# ==================== USERS (READ ONLY) ====================

async def get_user(db: AsyncIOMotorDatabase, user_id: str, role: Optional[UserRole] = None) -> Optional[dict]:
    query = {"user_id": user_id}
    if role:
        query["role"] = role.value
    return serialize_mongo(await db.users_profile.find_one(query, {"password": 0}))


async def get_guardians(db: AsyncIOMotorDatabase, student_id: str) -> List[dict]:
    cursor = db.users_profile.find(
        {"role": UserRole.PARENT.value, "children": student_id},
        {"user_id": 1, "first_name": 1, "last_name": 1}
    )
    return serialize_many(await cursor.to_list(length=None))
