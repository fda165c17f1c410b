"""Centralized constants for flashdeck.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Time ----------
MS_PER_DAY = 24 * 60 * 60 * 1000

# ---------- Algorithm defaults ----------
DEFAULT_BASE_EASE = 250
DEFAULT_INTERVAL_CHANGE_HARD = 50  # percent of the previous interval kept on Hard
DEFAULT_EASY_BONUS = 130  # percent
DEFAULT_ENABLE_LOAD_BALANCER = True
DEFAULT_MAX_INTERVAL_DAYS = 36525  # 100 years
DEFAULT_MAX_LINK_CONTRIBUTION = 50
DEFAULT_EASE_FLOOR = 130

# ---------- Review adjustments ----------
HARD_EASE_PENALTY = 20
EASY_EASE_BONUS = 15
LOAD_BALANCER_VARIATION = 0.05  # +/- 5%

# First-review intervals in days, keyed by outcome value
FIRST_REVIEW_INTERVALS = {
    "hard": 0.5,  # 12 hours
    "good": 1.0,
    "easy": 4.0,
}

# ---------- Storage ----------
CONFIG_DIR_NAME = "flashdeck"
PROGRESS_FILE_NAME = "progress.json"
ITEM_ID_PREFIX = "fc_"
