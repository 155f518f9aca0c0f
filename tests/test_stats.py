import asyncio
from datetime import datetime

import pytest

from app.simulations.database import get_student_stats, save_student_stats
from app.simulations.errors import ValidationFailed
from app.simulations.stats import (
    apply_game_result,
    favorite_subject,
    get_leaderboard,
    new_student_stats,
    update_student_game_stats,
)


@pytest.mark.asyncio
async def test_two_completions_track_best_score_and_streak(db):
    first = await update_student_game_stats(db, "STU_1", "chemistry", 40, ["lab_apprentice"])
    assert first["streaks"] == {"current": 0, "longest": 0}
    assert first["best_scores"]["chemistry"] == 40

    second = await update_student_game_stats(db, "STU_1", "chemistry", 90, ["lab_apprentice", "keen_observer"])
    assert second["best_scores"]["chemistry"] == 90
    assert second["streaks"] == {"current": 1, "longest": 1}

    stored = await get_student_stats(db, "STU_1")
    assert stored["total_games_played"] == 2
    assert stored["experiments_completed"] == 2
    assert stored["total_score"] == 130
    assert stored["average_score"] == 65
    assert stored["skill_progression"]["chemistry"] == 2 + 4
    assert stored["achievements_unlocked"] == ["lab_apprentice", "keen_observer"]
    assert stored["favorite_subject"] == "chemistry"
    assert stored["version"] == 2


def test_favorite_subject_ties_go_to_later_subject():
    assert favorite_subject({"chemistry": 0, "physics": 0, "biology": 0}) == "biology"
    assert favorite_subject({"chemistry": 5, "physics": 5, "biology": 0}) == "physics"
    assert favorite_subject({"chemistry": 6, "physics": 5, "biology": 5}) == "chemistry"


def test_skill_gain_is_capped_and_clamped():
    stats = new_student_stats("STU_1")
    stats["skill_progression"]["physics"] = 98

    updated = apply_game_result(stats, "physics", 500, [], datetime.utcnow())

    assert updated["skill_progression"]["physics"] == 100
    assert stats["skill_progression"]["physics"] == 98


def test_general_subject_only_touches_totals():
    updated = apply_game_result(new_student_stats("STU_1"), "general", 75, [], datetime.utcnow())

    assert updated["total_games_played"] == 1
    assert updated["skill_progression"] == {"chemistry": 0, "physics": 0, "biology": 0}
    assert updated["best_scores"] == {"chemistry": 0, "physics": 0, "biology": 0}
    assert updated["streaks"]["current"] == 1


def test_failed_game_resets_streak_but_keeps_longest():
    stats = new_student_stats("STU_1")
    stats["streaks"] = {"current": 3, "longest": 4}

    updated = apply_game_result(stats, "biology", 69, [], datetime.utcnow())

    assert updated["streaks"] == {"current": 0, "longest": 4}


@pytest.mark.asyncio
async def test_concurrent_completions_keep_every_increment(db):
    scores = [70, 80, 90, 100, 20]

    await asyncio.gather(*(
        update_student_game_stats(db, "STU_1", "physics", score, []) for score in scores
    ))

    stored = await get_student_stats(db, "STU_1")
    assert stored["total_games_played"] == len(scores)
    assert stored["total_score"] == sum(scores)
    assert stored["best_scores"]["physics"] == 100
    assert stored["version"] == len(scores)


@pytest.mark.asyncio
async def test_stale_stats_write_is_refused(db):
    await update_student_game_stats(db, "STU_1", "biology", 50, [])
    stale = new_student_stats("STU_1")

    assert await save_student_stats(db, stale, expected_version=0) is False

    stored = await get_student_stats(db, "STU_1")
    assert stored["total_games_played"] == 1


@pytest.mark.asyncio
async def test_leaderboard_ranks_and_current_user(db):
    await update_student_game_stats(db, "STU_1", "chemistry", 60, [])
    await update_student_game_stats(db, "STU_2", "physics", 90, [])
    await update_student_game_stats(db, "STU_2", "physics", 30, [])

    board = await get_leaderboard(db, 3, 10, student_id="STU_1")

    assert board["level"] == 3
    assert [(e["rank"], e["student_id"], e["score"]) for e in board["leaderboard"]] == [
        (1, "STU_2", 120),
        (2, "STU_1", 60),
    ]
    assert board["leaderboard"][0]["student_name"] == "Alan Turing"
    assert board["leaderboard"][0]["experiments_completed"] == 2
    assert board["leaderboard"][0]["average_score"] == 60
    assert board["current_user"] == {"rank": 2, "score": 60}


@pytest.mark.asyncio
async def test_leaderboard_current_user_outside_limit(db):
    await update_student_game_stats(db, "STU_1", "chemistry", 10, [])
    await update_student_game_stats(db, "STU_2", "chemistry", 95, [])

    board = await get_leaderboard(db, 3, 1, student_id="STU_1")

    assert [e["student_id"] for e in board["leaderboard"]] == ["STU_2"]
    assert board["current_user"] == {"rank": 2, "score": 10}


@pytest.mark.asyncio
async def test_leaderboard_filters_by_level(db):
    await update_student_game_stats(db, "STU_1", "chemistry", 60, [])

    board = await get_leaderboard(db, 4, 10, student_id="STU_1")

    assert board["leaderboard"] == []
    assert board["current_user"] is None


@pytest.mark.asyncio
@pytest.mark.parametrize("level", [0, 6])
async def test_leaderboard_rejects_unknown_level(db, level):
    with pytest.raises(ValidationFailed) as exc:
        await get_leaderboard(db, level, 10)
    assert exc.value.status_code == 400
