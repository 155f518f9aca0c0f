"""
Scoring rules for gamified lab actions and completion
All functions are pure; callers persist the results.
"""

import math
from typing import Any, Dict, List, Optional

from app.simulations.config import (
    CAUTION_PENALTY,
    DANGEROUS_PENALTY,
    MAX_ACTION_SCORE,
    MAX_MIXING_SCORE,
)
from app.simulations.models import Performance, SafetyRating

DEFAULT_CRITERIA = {"correct_action": 10, "observation": 5, "completion": 50}

BADGES = {
    "perfect_scientist": {
        "title": "Perfect Scientist",
        "description": "Achieved excellent performance in the virtual lab!",
        "icon": "🏆",
    },
    "skilled_researcher": {
        "title": "Skilled Researcher",
        "description": "Showed great scientific skills and understanding!",
        "icon": "⭐",
    },
    "keen_observer": {
        "title": "Keen Observer",
        "description": "Made detailed observations throughout the experiment!",
        "icon": "👀",
    },
    "active_experimenter": {
        "title": "Active Experimenter",
        "description": "Performed many experimental actions!",
        "icon": "🔬",
    },
    "lab_apprentice": {
        "title": "Lab Apprentice",
        "description": "Completed your first virtual lab simulation!",
        "icon": "🎓",
    },
}


def _criteria(scoring_criteria: Optional[Dict[str, int]]) -> Dict[str, int]:
    return {**DEFAULT_CRITERIA, **(scoring_criteria or {})}


def calculate_score_gain(result: Dict[str, Any], scoring_criteria: Optional[Dict[str, int]] = None) -> int:
    """Points for one interpreted action, 0..25"""
    criteria = _criteria(scoring_criteria)
    score = criteria["correct_action"]

    if result.get("is_correct"):
        score += criteria["correct_action"]
    if result.get("observation"):
        score += criteria["observation"]

    safety = result.get("safety")
    if safety == SafetyRating.DANGEROUS.value:
        score = max(0, score - DANGEROUS_PENALTY)
    elif safety == SafetyRating.CAUTION.value:
        score = max(0, score - CAUTION_PENALTY)

    return min(score, MAX_ACTION_SCORE)


def calculate_mixing_score(result: Dict[str, Any], scoring_criteria: Optional[Dict[str, int]] = None) -> int:
    """Points for one chemical mix, 0..30"""
    criteria = _criteria(scoring_criteria)
    score = criteria["correct_action"]

    safety = result.get("safety")
    if safety == SafetyRating.SAFE.value:
        score += 10
    elif safety == SafetyRating.CAUTION.value:
        score += 5

    if result.get("educational"):
        score += criteria["observation"]

    return min(score, MAX_MIXING_SCORE)


def calculate_performance(score: int, max_score: int) -> Performance:
    percentage = (score / max_score) * 100 if max_score > 0 else 0
    if percentage >= 90:
        return Performance.EXCELLENT
    if percentage >= 75:
        return Performance.GOOD
    if percentage >= 60:
        return Performance.FAIR
    return Performance.NEEDS_IMPROVEMENT


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_accuracy(score: int, max_score: int) -> int:
    if max_score <= 0:
        return 0
    return min(100, round_half_up(score / max_score * 100))


def generate_game_achievements(results: Dict[str, Any], performance: Performance) -> List[Dict[str, str]]:
    """Every qualifying badge is awarded; they are independent of each other"""
    earned = []
    if performance == Performance.EXCELLENT:
        earned.append("perfect_scientist")
    if performance == Performance.GOOD:
        earned.append("skilled_researcher")
    if (results.get("observationsMade") or 0) >= 5:
        earned.append("keen_observer")
    if (results.get("actionsCompleted") or 0) >= 10:
        earned.append("active_experimenter")
    if (results.get("gameScore") or 0) > 0:
        earned.append("lab_apprentice")

    return [{"id": badge_id, **BADGES[badge_id]} for badge_id in earned]
