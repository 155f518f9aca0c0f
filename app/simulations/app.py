"""
Lumetrix Simulation System - Application wiring
AI-generated virtual lab simulations with gamified interaction
"""

import logging
from typing import Optional

from fastapi import FastAPI
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import OperationFailure

from app.ai.services import build_content_generator
from app.simulations.dependencies import get_db_instance
from app.simulations.game_router import router as game_router
from app.simulations.lifecycle import replay_pending_stats
from app.simulations.schemas import COLLECTION_SCHEMAS
from app.simulations.simulation_router import router as simulation_router

logger = logging.getLogger(__name__)

# ==================== DATABASE INDEXES ====================

async def create_simulation_indexes(db: Optional[AsyncIOMotorDatabase] = None):
    """Create MongoDB indexes for performance"""
    db = db if db is not None else get_db_instance()

    # Simulations
    await db.simulations.create_index("simulation_id", unique=True)
    await db.simulations.create_index([("student_id", 1), ("created_at", -1)])
    await db.simulations.create_index([("student_id", 1), ("state.status", 1)])
    await db.simulations.create_index([("student_id", 1), ("state.last_active_at", -1)])

    # Game actions (append only)
    await db.game_actions.create_index("action_id", unique=True)
    await db.game_actions.create_index([("simulation_id", 1), ("timestamp", 1)])
    await db.game_actions.create_index("student_id")

    # Student game stats
    await db.student_game_stats.create_index("student_id", unique=True)
    await db.student_game_stats.create_index([("total_score", -1), ("experiments_completed", -1)])

    # Notifications
    await db.notifications.create_index([("user_id", 1), ("created_at", -1)])

    logger.info("✅ Simulation system indexes created")


async def apply_collection_validators(db: Optional[AsyncIOMotorDatabase] = None):
    """Attach $jsonSchema validators, creating collections when missing"""
    db = db if db is not None else get_db_instance()
    existing = await db.list_collection_names()

    for name, schema in COLLECTION_SCHEMAS.items():
        try:
            if name in existing:
                await db.command("collMod", name, validator=schema["validator"])
            else:
                await db.create_collection(name, validator=schema["validator"])
        except OperationFailure as e:
            logger.warning(f"⚠️ Could not apply validator to {name}: {e}")

# ==================== ROUTER SETUP ====================

def setup_simulation_routes(app: FastAPI):
    """Register all simulation routers"""

    # game router first: /leaderboard/{level} must win over /{simulation_id}
    app.include_router(game_router, prefix="/simulation")
    app.include_router(simulation_router, prefix="/simulation")

    logger.info("✅ Simulation routes registered")

# ==================== STARTUP ====================

async def startup_simulation_system(app: FastAPI, db: Optional[AsyncIOMotorDatabase] = None):
    """Initialize simulation system on app startup"""
    db = db if db is not None else get_db_instance()
    await apply_collection_validators(db)
    await create_simulation_indexes(db)
    await replay_pending_stats(db)
    app.state.content_generator = build_content_generator()
    logger.info("🚀 Simulation system initialized")
