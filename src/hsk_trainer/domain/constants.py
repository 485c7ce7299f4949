"""Centralized constants for the HSK trainer.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Scheduler (SM-2 style) ----------
DEFAULT_EASE = 2.5
MIN_EASE = 1.3
MAX_EASE = 3.0
AGAIN_EASE_DELTA = -0.20
HARD_EASE_DELTA = -0.15
GOOD_EASE_DELTA = 0.0
EASY_EASE_DELTA = 0.15
GRADUATING_INTERVAL = 6  # days, second successful review
HARD_INTERVAL_FACTOR = 1.2
EASY_BONUS = 1.3
MAX_INTERVAL_DAYS = 36500

SECONDS_PER_DAY = 86400

# ---------- HSK ----------
HSK_LEVELS = (1, 2, 3, 4, 5, 6)

# ---------- History ----------
HISTORY_LIMIT = 1000
SECONDS_PER_HISTORY_ENTRY = 30  # rough study-time estimate

# ---------- Quiz ----------
QUIZ_OPTION_COUNT = 4
DEFAULT_QUIZ_QUESTIONS = 10

# ---------- Leaderboard ----------
DEFAULT_LEADERBOARD_LIMIT = 10
ANONYMOUS_USER_ID = "anonymous"
ANONYMOUS_USER_NAME = "Anonymous Player"

# ---------- Matrix game ----------
MATRIX_MIN_LEVEL_WORDS = 20  # below this, lower levels join the pool
MATRIX_BASE_POINTS = 100
MATRIX_SPEED_WINDOW = 10  # seconds; faster answers earn a bonus
MATRIX_SPEED_POINTS = 10  # bonus points per second under the window
MATRIX_STREAK_POINTS = 10
MATRIX_WRONG_PENALTY = 50
MATRIX_BACKUP_CHARACTERS = "的一是在不了有和人这中大为上个国我以要他"

# ---------- Storage ----------
REVIEW_STATE_FILE = "srs_data.json"
STATS_FILE = "stats.json"
HISTORY_FILE = "practice_history.json"
SCORES_FILE = "matrix_scores.json"
WRITE_TIMEOUT = 10.0  # seconds the CLI waits for pending writes on exit
