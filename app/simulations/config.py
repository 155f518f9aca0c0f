"""
Simulation System Configuration
AI capability settings, rate limits and scoring thresholds
"""

import os

# MongoDB
MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
DB_NAME = os.getenv("DB_NAME", "lumetrics_db")

# Gemini (comma separated list rotates across keys)
GEMINI_API_KEYS = [
    key.strip()
    for key in os.getenv("GEMINI_API_KEYS", os.getenv("GEMINI_API_KEY", "")).split(",")
    if key.strip()
]
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash-latest")
GEMINI_API_VERSION = os.getenv("GEMINI_API_VERSION", "v1beta")

# Upstream calls that exceed this are treated as failures
AI_TIMEOUT_SECONDS = float(os.getenv("AI_TIMEOUT_SECONDS", "20"))

# Rate limits
GENERATION_LIMIT_PER_HOUR = int(os.getenv("GENERATION_LIMIT_PER_HOUR", "5"))
GENERATION_WINDOW_SECONDS = 3600
STATE_UPDATE_MIN_INTERVAL_SECONDS = float(os.getenv("STATE_UPDATE_MIN_INTERVAL_SECONDS", "1"))

# Scoring
SUCCESS_SCORE_THRESHOLD = 70
MAX_ACTION_SCORE = 25
MAX_MIXING_SCORE = 30
DANGEROUS_PENALTY = 15
CAUTION_PENALTY = 5

# Leaderboard
LEADERBOARD_DEFAULT_LIMIT = 10
LEADERBOARD_MAX_LIMIT = 100
LEADERBOARD_RANK_SCAN_LIMIT = 1000

# Student stats optimistic write retries
STATS_WRITE_RETRIES = int(os.getenv("STATS_WRITE_RETRIES", "3"))
