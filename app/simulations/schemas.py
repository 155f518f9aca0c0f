"""
MongoDB Collection Schemas
File: app/simulations/schemas.py

Applied with collMod/create at startup; the store repairs lab content before
every write so these validators never reject a well-formed update.
"""

# ==================== SIMULATIONS ====================

SIMULATIONS_SCHEMA = {
    "validator": {
        "$jsonSchema": {
            "bsonType": "object",
            "required": ["simulation_id", "student_id", "title", "prompt", "subject", "level",
                         "virtual_lab", "game_config", "state", "version"],
            "properties": {
                "simulation_id": {"bsonType": "string"},
                "student_id": {"bsonType": "string"},
                "title": {"bsonType": "string"},
                "description": {"bsonType": "string"},
                "prompt": {"bsonType": "string", "maxLength": 500},
                "subject": {"enum": ["chemistry", "physics", "biology", "general"]},
                "level": {"bsonType": "int", "minimum": 1, "maximum": 5},
                "experiment_type": {"bsonType": "string"},
                "estimated_duration": {"bsonType": "int"},
                "difficulty": {"enum": ["beginner", "intermediate", "advanced"]},

                "virtual_lab": {
                    "bsonType": "object",
                    "required": ["equipment", "procedure", "safety_notes"],
                    "properties": {
                        "equipment": {"bsonType": "array", "minItems": 1},
                        "chemicals": {"bsonType": "array"},
                        "procedure": {"bsonType": "array", "minItems": 1},
                        "safety_notes": {"bsonType": "array", "minItems": 1}
                    }
                },

                "game_config": {
                    "bsonType": "object",
                    "properties": {
                        "max_score": {"bsonType": "int"},
                        "time_limit": {"bsonType": ["int", "null"]},
                        "scoring_criteria": {"bsonType": "object"}
                    }
                },

                "state": {
                    "bsonType": "object",
                    "required": ["status"],
                    "properties": {
                        "status": {"enum": ["not_started", "in_progress", "paused", "completed"]},
                        "progress": {"bsonType": ["int", "double"], "minimum": 0, "maximum": 100},
                        "started_at": {"bsonType": ["date", "null"]},
                        "last_active_at": {"bsonType": ["date", "null"]},
                        "completed_at": {"bsonType": ["date", "null"]},
                        "game_state": {"bsonType": "object"}
                    }
                },

                "ai_generation_data": {"bsonType": "object"},
                "version": {"bsonType": "int"},
                "created_at": {"bsonType": "date"},
                "updated_at": {"bsonType": "date"}
            }
        }
    }
}

# ==================== GAME ACTIONS (APPEND ONLY) ====================

GAME_ACTIONS_SCHEMA = {
    "validator": {
        "$jsonSchema": {
            "bsonType": "object",
            "required": ["action_id", "simulation_id", "student_id", "action", "target", "timestamp"],
            "properties": {
                "action_id": {"bsonType": "string"},
                "simulation_id": {"bsonType": "string"},
                "student_id": {"bsonType": "string"},
                "action": {"enum": ["use_equipment", "mix_chemicals", "observe", "measure",
                                    "place_item", "remove_item"]},
                "target": {"enum": ["beaker", "burette", "measuring", "observation", "workspace", "mixing"]},
                "equipment": {"bsonType": ["object", "null"]},
                "result": {"bsonType": "object"},
                "score_gained": {"bsonType": "int", "minimum": 0},
                "ai_processed": {"bsonType": "bool"},
                "timestamp": {"bsonType": "date"}
            }
        }
    }
}

# ==================== STUDENT GAME STATS ====================

STUDENT_GAME_STATS_SCHEMA = {
    "validator": {
        "$jsonSchema": {
            "bsonType": "object",
            "required": ["student_id", "total_games_played", "total_score", "version"],
            "properties": {
                "student_id": {"bsonType": "string"},
                "total_games_played": {"bsonType": "int", "minimum": 0},
                "total_score": {"bsonType": "int", "minimum": 0},
                "average_score": {"bsonType": "int"},
                "experiments_completed": {"bsonType": "int", "minimum": 0},
                "achievements_unlocked": {"bsonType": "array"},
                "favorite_subject": {"enum": ["chemistry", "physics", "biology"]},
                "skill_progression": {"bsonType": "object"},
                "best_scores": {"bsonType": "object"},
                "streaks": {
                    "bsonType": "object",
                    "properties": {
                        "current": {"bsonType": "int"},
                        "longest": {"bsonType": "int"}
                    }
                },
                "last_played_at": {"bsonType": ["date", "null"]},
                "version": {"bsonType": "int"}
            }
        }
    }
}

COLLECTION_SCHEMAS = {
    "simulations": SIMULATIONS_SCHEMA,
    "game_actions": GAME_ACTIONS_SCHEMA,
    "student_game_stats": STUDENT_GAME_STATS_SCHEMA,
}
