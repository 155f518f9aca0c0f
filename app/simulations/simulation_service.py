"""
Simulation queries and generation
"""

import logging
import math
import time
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.ai.services import ContentGenerator
from app.simulations.config import GENERATION_LIMIT_PER_HOUR, GENERATION_WINDOW_SECONDS
from app.simulations.database import (
    count_recent_generations,
    create_simulation,
    get_paginated_simulations,
    get_status_counts,
    get_student_simulations,
    get_user,
    require_simulation,
)
from app.simulations.errors import ParentNotFound, RateLimited, StudentNotFound
from app.simulations.models import AIGenerationData, SimulationGenerate, SimulationStatus, Subject, UserRole
from app.simulations.notifications import notify_generated
from app.simulations.scoring import round_half_up

logger = logging.getLogger(__name__)

DEFAULT_LEVEL = 3


def format_simulation(simulation: dict) -> Dict[str, Any]:
    """Public shape of a simulation; drops storage-only fields"""
    return {
        key: value for key, value in simulation.items()
        if key not in ("_id", "version", "pending_stats")
    }


def format_summary(simulation: dict) -> Dict[str, Any]:
    state = simulation.get("state", {})
    return {
        "simulation_id": simulation["simulation_id"],
        "title": simulation.get("title"),
        "subject": simulation.get("subject"),
        "level": simulation.get("level"),
        "difficulty": simulation.get("difficulty"),
        "status": state.get("status"),
        "progress": state.get("progress", 0),
        "score": state.get("game_state", {}).get("score", 0),
        "accuracy": state.get("results", {}).get("accuracy"),
        "started_at": state.get("started_at"),
        "completed_at": state.get("completed_at"),
        "last_active_at": state.get("last_active_at"),
        "created_at": simulation.get("created_at"),
    }


async def require_student(db: AsyncIOMotorDatabase, student_id: str) -> dict:
    student = await get_user(db, student_id, UserRole.STUDENT)
    if not student:
        raise StudentNotFound(student_id)
    return student

# ==================== GENERATE ====================

async def generate(db: AsyncIOMotorDatabase, generator: ContentGenerator,
                   request: SimulationGenerate) -> Dict[str, Any]:
    student = await require_student(db, request.student_id)

    level = request.level or student.get("selected_level") or DEFAULT_LEVEL
    subject = Subject(request.subject or Subject.GENERAL).value

    since = datetime.utcnow() - timedelta(seconds=GENERATION_WINDOW_SECONDS)
    recent = await count_recent_generations(db, request.student_id, since)
    if recent >= GENERATION_LIMIT_PER_HOUR:
        raise RateLimited(
            "Rate limit exceeded. Please wait before generating more simulations.",
            retry_after=GENERATION_WINDOW_SECONDS
        )

    logger.info(f"🧪 Generating {subject} simulation (L{level}) for {request.student_id}")
    started = time.perf_counter()
    lab = await generator.generate(request.prompt, subject, level)
    processing_time_ms = int((time.perf_counter() - started) * 1000)

    ai_generation_data = AIGenerationData(
        model=generator.model_name,
        processing_time_ms=processing_time_ms,
        api_version=generator.api_version,
    ).dict()

    simulation = await create_simulation(db, lab, request.student_id, ai_generation_data)
    notifications_created = await notify_generated(db, student, simulation)

    logger.info(f"✅ Simulation {simulation['simulation_id']} created in {processing_time_ms}ms")
    return {
        "simulation": format_simulation(simulation),
        "notifications_created": notifications_created,
    }

# ==================== QUERIES ====================

async def get_by_student(db: AsyncIOMotorDatabase, student_id: str, page: int = 1, limit: int = 10,
                         status: Optional[str] = None, subject: Optional[str] = None) -> Dict[str, Any]:
    await require_student(db, student_id)

    simulations, total_count = await get_paginated_simulations(
        db, student_id, page=page, limit=limit, status=status, subject=subject
    )
    total_pages = math.ceil(total_count / limit) if limit else 0

    return {
        "simulations": [format_simulation(s) for s in simulations],
        "pagination": {
            "current_page": page,
            "total_pages": total_pages,
            "total_count": total_count,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
        "stats": await get_status_counts(db, student_id),
    }


async def get_details(db: AsyncIOMotorDatabase, simulation_id: str) -> Dict[str, Any]:
    return format_simulation(await require_simulation(db, simulation_id))


def _minutes_spent(simulation: dict) -> int:
    state = simulation.get("state", {})
    started_at, completed_at = state.get("started_at"), state.get("completed_at")
    if not started_at or not completed_at:
        return 0
    return int((completed_at - started_at).total_seconds() // 60)


def _child_progress(child: dict, simulations: List[dict]) -> Dict[str, Any]:
    by_status = {status.value: 0 for status in SimulationStatus}
    for simulation in simulations:
        status = simulation.get("state", {}).get("status")
        if status in by_status:
            by_status[status] += 1

    completed = [s for s in simulations if s["state"].get("status") == SimulationStatus.COMPLETED.value]
    accuracies = [s["state"].get("results", {}).get("accuracy", 0) or 0 for s in completed]
    average_accuracy = round_half_up(sum(accuracies) / len(accuracies)) if accuracies else 0

    activity = [s["state"].get("last_active_at") for s in simulations if s["state"].get("last_active_at")]

    return {
        "child": {
            "id": child["user_id"],
            "name": f"{child.get('first_name', '')} {child.get('last_name', '')}".strip(),
            "level": child.get("selected_level"),
        },
        "stats": {
            "total_simulations": len(simulations),
            "completed_simulations": by_status[SimulationStatus.COMPLETED.value],
            "in_progress_simulations": by_status[SimulationStatus.IN_PROGRESS.value],
            "paused_simulations": by_status[SimulationStatus.PAUSED.value],
            "not_started_simulations": by_status[SimulationStatus.NOT_STARTED.value],
            "average_accuracy": average_accuracy,
            "total_time_spent": sum(_minutes_spent(s) for s in completed),
            "last_activity": max(activity) if activity else None,
        },
        "recent_simulations": [format_summary(s) for s in simulations[:3]],
    }


async def get_children_progress(db: AsyncIOMotorDatabase, parent_id: str) -> Dict[str, Any]:
    """Guardian rollup across every linked child"""
    parent = await get_user(db, parent_id, UserRole.PARENT)
    if not parent:
        raise ParentNotFound(parent_id)

    children_progress = []
    for child_id in parent.get("children", []):
        child = await get_user(db, child_id, UserRole.STUDENT)
        if not child:
            logger.warning(f"⚠️ Parent {parent_id} links missing student {child_id}")
            continue
        simulations = await get_student_simulations(db, child_id)
        children_progress.append(_child_progress(child, simulations))

    return {"children_progress": children_progress}
