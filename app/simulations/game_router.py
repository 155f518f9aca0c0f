from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import Optional

from app.ai.services import ContentGenerator
from app.simulations import game_service
from app.simulations.config import LEADERBOARD_DEFAULT_LIMIT, LEADERBOARD_MAX_LIMIT
from app.simulations.dependencies import get_content_generator, get_db
from app.simulations.models import GameActionRequest, HintRequest, MixChemicalsRequest
from app.simulations.stats import get_leaderboard

router = APIRouter(tags=["Simulation Game"])

# ==================== LEADERBOARD ====================

@router.get("/leaderboard/{level}")
async def get_level_leaderboard(
    level: int,
    limit: int = Query(LEADERBOARD_DEFAULT_LIMIT, ge=1, le=LEADERBOARD_MAX_LIMIT),
    student_id: Optional[str] = None,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Top students of one level by total simulation score"""
    data = await get_leaderboard(db, level, limit, student_id)
    return {
        "status": "success",
        "message": "Leaderboard retrieved successfully",
        "data": data
    }

# ==================== AI GAME ACTIONS ====================

@router.post("/{simulation_id}/ai/process-action")
async def process_game_action(
    simulation_id: str,
    payload: GameActionRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    generator: ContentGenerator = Depends(get_content_generator)
):
    data = await game_service.process_action(db, generator, simulation_id, payload)
    return {
        "status": "success",
        "message": "Game action processed",
        "data": data
    }


@router.post("/{simulation_id}/ai/mix-chemicals")
async def mix_chemicals(
    simulation_id: str,
    payload: MixChemicalsRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    generator: ContentGenerator = Depends(get_content_generator)
):
    data = await game_service.mix_chemicals(db, generator, simulation_id, payload)
    return {
        "status": "success",
        "message": "Chemicals mixed",
        "data": data
    }


@router.post("/{simulation_id}/ai/get-hint")
async def get_hint(
    simulation_id: str,
    payload: HintRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    generator: ContentGenerator = Depends(get_content_generator)
):
    data = await game_service.get_hint(db, generator, simulation_id, payload)
    return {
        "status": "success",
        "message": "Hint generated",
        "data": data
    }
