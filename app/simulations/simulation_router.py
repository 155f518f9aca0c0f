from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import Optional

from app.ai.services import ContentGenerator
from app.simulations import lifecycle, simulation_service
from app.simulations.dependencies import get_content_generator, get_db
from app.simulations.models import SimulationComplete, SimulationGenerate, SimulationStatus, StateUpdate, Subject
from app.simulations.simulation_service import format_simulation

router = APIRouter(tags=["Simulations"])

# ==================== GENERATION & QUERIES ====================

@router.post("/generate", status_code=201)
async def generate_simulation(
    payload: SimulationGenerate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    generator: ContentGenerator = Depends(get_content_generator)
):
    """Generate a new AI lab simulation for a student"""
    data = await simulation_service.generate(db, generator, payload)
    return {
        "status": "success",
        "message": "Simulation generated successfully",
        "data": data
    }


@router.get("/student/{student_id}")
async def get_student_simulations(
    student_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[SimulationStatus] = None,
    subject: Optional[Subject] = None,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    data = await simulation_service.get_by_student(
        db,
        student_id,
        page=page,
        limit=limit,
        status=status.value if status else None,
        subject=subject.value if subject else None
    )
    return {
        "status": "success",
        "message": "Simulations retrieved successfully",
        "data": data
    }


@router.get("/parent/{parent_id}/children")
async def get_children_simulation_progress(
    parent_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Simulation progress of every child linked to a parent"""
    data = await simulation_service.get_children_progress(db, parent_id)
    return {
        "status": "success",
        "message": "Children simulation progress retrieved successfully",
        "data": data
    }


@router.get("/{simulation_id}")
async def get_simulation_details(
    simulation_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    simulation = await simulation_service.get_details(db, simulation_id)
    return {
        "status": "success",
        "message": "Simulation retrieved successfully",
        "data": {"simulation": simulation}
    }

# ==================== LIFECYCLE ====================

@router.put("/{simulation_id}/state")
async def update_simulation_state(
    simulation_id: str,
    payload: StateUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    outcome = await lifecycle.update_state(db, simulation_id, payload.state)
    data = {"simulation": format_simulation(outcome["simulation"])}
    if outcome["game_results"]:
        data["game_results"] = outcome["game_results"]
        data["notifications_created"] = outcome["notifications_created"]
    return {
        "status": "success",
        "message": "Simulation state updated successfully",
        "data": data
    }


@router.post("/{simulation_id}/start")
async def start_simulation(
    simulation_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    outcome = await lifecycle.start(db, simulation_id)
    return {
        "status": "success",
        "message": "Simulation started successfully",
        "data": {
            "simulation": format_simulation(outcome["simulation"]),
            "notifications_created": outcome["notifications_created"]
        }
    }


@router.post("/{simulation_id}/pause")
async def pause_simulation(
    simulation_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    simulation = await lifecycle.pause(db, simulation_id)
    return {
        "status": "success",
        "message": "Simulation paused successfully",
        "data": {"simulation": format_simulation(simulation)}
    }


@router.post("/{simulation_id}/resume")
async def resume_simulation(
    simulation_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    simulation = await lifecycle.resume(db, simulation_id)
    return {
        "status": "success",
        "message": "Simulation resumed successfully",
        "data": {"simulation": format_simulation(simulation)}
    }


@router.post("/{simulation_id}/complete")
async def complete_simulation(
    simulation_id: str,
    payload: Optional[SimulationComplete] = None,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    final_results = payload.final_results if payload else None
    outcome = await lifecycle.complete(db, simulation_id, final_results)
    return {
        "status": "success",
        "message": "Simulation completed successfully",
        "data": {
            "simulation": format_simulation(outcome["simulation"]),
            "game_results": outcome["game_results"],
            "notifications_created": outcome["notifications_created"]
        }
    }
