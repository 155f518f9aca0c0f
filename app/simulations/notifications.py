"""
Notification fan-out for simulation events.
Delivery is someone else's job; we only write rows. Failures never propagate.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.simulations.database import get_guardians, new_id

logger = logging.getLogger(__name__)

PROGRESS_LINK = "/simulation-progress"


def _simulation_link(simulation: dict) -> str:
    return f"/simulations/{simulation['simulation_id']}"


def _student_name(student: dict) -> str:
    name = f"{student.get('first_name', '')} {student.get('last_name', '')}".strip()
    return name or student.get("username") or student.get("user_id", "Student")


async def notify(db: AsyncIOMotorDatabase, user_id: str, type: str, message: str,
                 data: Optional[Dict[str, Any]] = None, link: Optional[str] = None) -> bool:
    """Fire-and-forget; returns whether the row was written"""
    try:
        await db.notifications.insert_one({
            "notification_id": new_id("NOTIF"),
            "user_id": user_id,
            "type": type,
            "message": message,
            "data": data or {},
            "link": link,
            "read": False,
            "created_at": datetime.utcnow(),
        })
        return True
    except Exception:
        logger.error(f"❌ Failed to create {type} notification for {user_id}", exc_info=True)
        return False


async def _guardians(db: AsyncIOMotorDatabase, student_id: str) -> List[dict]:
    try:
        return await get_guardians(db, student_id)
    except Exception:
        logger.error(f"❌ Guardian lookup failed for {student_id}", exc_info=True)
        return []


async def notify_generated(db: AsyncIOMotorDatabase, student: dict, simulation: dict) -> int:
    sent = await notify(
        db, student["user_id"], "simulation_generated",
        f"🧪 Your new simulation \"{simulation['title']}\" is ready to start!",
        data={"simulation_id": simulation["simulation_id"]},
        link=_simulation_link(simulation),
    )
    return int(sent)


async def notify_started(db: AsyncIOMotorDatabase, student: dict, simulation: dict) -> int:
    data = {"simulation_id": simulation["simulation_id"]}
    created = int(await notify(
        db, student["user_id"], "simulation_started",
        f"🚀 You started the \"{simulation['title']}\" simulation. Good luck!",
        data=data, link=_simulation_link(simulation),
    ))

    name = _student_name(student)
    for parent in await _guardians(db, student["user_id"]):
        created += int(await notify(
            db, parent["user_id"], "simulation_started",
            f"{name} started a new virtual lab simulation: \"{simulation['title']}\"",
            data=data, link=PROGRESS_LINK,
        ))

    logger.info(f"📢 {created} notification(s) for simulation started: {simulation['title']}")
    return created


async def notify_completed(db: AsyncIOMotorDatabase, student: dict, simulation: dict,
                           achievements: List[Dict[str, Any]]) -> int:
    results = simulation["state"].get("results", {})
    accuracy = results.get("accuracy", 0)
    data = {
        "simulation_id": simulation["simulation_id"],
        "final_score": results.get("gameScore", 0),
        "accuracy": accuracy,
    }

    created = int(await notify(
        db, student["user_id"], "simulation_completed",
        f"🎉 Congratulations! You completed \"{simulation['title']}\" with {accuracy}% accuracy!",
        data=data, link=_simulation_link(simulation),
    ))

    badge_titles = ", ".join(a["title"] for a in achievements)
    if achievements:
        created += int(await notify(
            db, student["user_id"], "simulation_achievement",
            f"🏆 You unlocked: {badge_titles}",
            data={**data, "achievements": [a["id"] for a in achievements]},
            link=_simulation_link(simulation),
        ))

    name = _student_name(student)
    for parent in await _guardians(db, student["user_id"]):
        created += int(await notify(
            db, parent["user_id"], "simulation_completed",
            f"🎉 {name} completed the \"{simulation['title']}\" simulation with {accuracy}% accuracy!",
            data=data, link=PROGRESS_LINK,
        ))
        if achievements:
            created += int(await notify(
                db, parent["user_id"], "simulation_achievement",
                f"🏆 {name} unlocked {badge_titles} for completing their simulation!",
                data={**data, "achievements": [a["id"] for a in achievements]},
                link=PROGRESS_LINK,
            ))

    logger.info(f"📢 {created} notification(s) for simulation completed: {simulation['title']}")
    return created
