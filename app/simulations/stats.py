"""
Cross-simulation student statistics and the per-level leaderboard
"""

import copy
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.simulations.config import (
    LEADERBOARD_RANK_SCAN_LIMIT,
    STATS_WRITE_RETRIES,
    SUCCESS_SCORE_THRESHOLD,
)
from app.simulations.database import get_student_stats, save_student_stats
from app.simulations.errors import ConcurrentModification, ValidationFailed
from app.simulations.locks import student_stats_locks
from app.simulations.models import TRACKED_SUBJECTS, UserRole
from app.simulations.scoring import round_half_up

logger = logging.getLogger(__name__)

TRACKED = [subject.value for subject in TRACKED_SUBJECTS]


def new_student_stats(student_id: str) -> Dict[str, Any]:
    return {
        "student_id": student_id,
        "total_games_played": 0,
        "total_score": 0,
        "average_score": 0,
        "experiments_completed": 0,
        "achievements_unlocked": [],
        "last_played_at": None,
        "favorite_subject": TRACKED[0],
        "skill_progression": {subject: 0 for subject in TRACKED},
        "best_scores": {subject: 0 for subject in TRACKED},
        "streaks": {"current": 0, "longest": 0},
        "version": 0,
    }


def favorite_subject(skill_progression: Dict[str, int]) -> str:
    """Pairwise reduction in TRACKED order; ties go to the later subject"""
    favorite = TRACKED[0]
    for subject in TRACKED[1:]:
        favorite = favorite if skill_progression.get(favorite, 0) > skill_progression.get(subject, 0) else subject
    return favorite


def apply_game_result(stats: Dict[str, Any], subject: str, final_score: int,
                      achievement_ids: List[str], played_at: datetime) -> Dict[str, Any]:
    """Fold one completed simulation into a stats document (pure)"""
    updated = copy.deepcopy(stats)

    updated["total_games_played"] += 1
    updated["experiments_completed"] += 1
    updated["total_score"] += final_score
    updated["average_score"] = round_half_up(updated["total_score"] / updated["total_games_played"])

    if subject in TRACKED:
        skills = updated["skill_progression"]
        gain = min(5, final_score // 20)
        skills[subject] = max(0, min(100, skills.get(subject, 0) + gain))

        best = updated["best_scores"]
        if final_score > best.get(subject, 0):
            best[subject] = final_score

    updated["favorite_subject"] = favorite_subject(updated["skill_progression"])

    streaks = updated["streaks"]
    if final_score >= SUCCESS_SCORE_THRESHOLD:
        streaks["current"] += 1
        streaks["longest"] = max(streaks["longest"], streaks["current"])
    else:
        streaks["current"] = 0

    unlocked = updated["achievements_unlocked"]
    for achievement_id in achievement_ids:
        if achievement_id not in unlocked:
            unlocked.append(achievement_id)

    updated["last_played_at"] = played_at
    return updated


async def update_student_game_stats(db: AsyncIOMotorDatabase, student_id: str, subject: str,
                                    final_score: int, achievement_ids: List[str]) -> Dict[str, Any]:
    """
    Serialized read-modify-write of one student's stats.
    The lock covers this process; the version-conditioned upsert covers the rest.
    """
    async with student_stats_locks.hold(student_id):
        for attempt in range(1, STATS_WRITE_RETRIES + 1):
            current = await get_student_stats(db, student_id)
            base = current or new_student_stats(student_id)
            expected_version = base.get("version", 0)

            updated = apply_game_result(base, subject, final_score, achievement_ids, datetime.utcnow())
            if await save_student_stats(db, updated, expected_version):
                updated["version"] = expected_version + 1
                return updated

            logger.warning(f"⚠️ Stats write for {student_id} lost a race (attempt {attempt})")

    raise ConcurrentModification(student_id, detail=f"Could not update game stats for {student_id}, retry")

# ==================== LEADERBOARD ====================

def _leaderboard_pipeline(level: int, limit: int) -> List[dict]:
    return [
        {
            "$lookup": {
                "from": "users_profile",
                "localField": "student_id",
                "foreignField": "user_id",
                "as": "user"
            }
        },
        {"$unwind": "$user"},
        {
            "$match": {
                "user.selected_level": level,
                "user.role": UserRole.STUDENT.value
            }
        },
        {
            "$sort": {
                "total_score": -1,
                "experiments_completed": -1
            }
        },
        {"$limit": limit},
        {
            "$project": {
                "_id": 0,
                "student_id": 1,
                "total_score": 1,
                "experiments_completed": 1,
                "average_score": 1,
                "user": 1
            }
        }
    ]


def _display_name(user: dict) -> str:
    name = f"{user.get('first_name') or ''} {user.get('last_name') or ''}".strip()
    return name or user.get("username") or "Anonymous"


def _entry(row: dict, rank: int) -> Dict[str, Any]:
    return {
        "rank": rank,
        "student_id": row["student_id"],
        "student_name": _display_name(row.get("user", {})),
        "score": row.get("total_score", 0),
        "experiments_completed": row.get("experiments_completed", 0),
        "average_score": row.get("average_score", 0),
    }


async def get_leaderboard(db: AsyncIOMotorDatabase, level: int, limit: int,
                          student_id: Optional[str] = None) -> Dict[str, Any]:
    if level < 1 or level > 5:
        raise ValidationFailed("Level must be between 1 and 5")

    rows = await db.student_game_stats.aggregate(_leaderboard_pipeline(level, limit)).to_list(length=limit)

    # rank injection
    leaderboard = [_entry(row, idx + 1) for idx, row in enumerate(rows)]

    current_user = None
    if student_id:
        ranked = leaderboard
        if not any(entry["student_id"] == student_id for entry in ranked):
            scan = await db.student_game_stats.aggregate(
                _leaderboard_pipeline(level, LEADERBOARD_RANK_SCAN_LIMIT)
            ).to_list(length=LEADERBOARD_RANK_SCAN_LIMIT)
            ranked = [_entry(row, idx + 1) for idx, row in enumerate(scan)]

        for entry in ranked:
            if entry["student_id"] == student_id:
                current_user = {"rank": entry["rank"], "score": entry["score"]}
                break

    return {
        "level": level,
        "leaderboard": leaderboard,
        "current_user": current_user,
    }
