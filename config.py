"""
config.py — Central configuration: forum endpoints, section table, scoring and bonus constants.
"""

import os

# ─── Forum HTTP ───────────────────────────────────────────────────────────────
FORUM_BASE_URL         = os.getenv("FORUM_BASE_URL", "https://warframe.f-rpg.me")
FORUM_MEMBERLIST_PATH  = "/userlist.php"
FORUM_USER_POSTS_PATH  = "/search.php"
FORUM_REQUEST_TIMEOUT  = 15     # seconds
FORUM_USER_AGENT       = "herocard-updater/1.0 (+roleplay stats bot)"
MAX_POST_PAGES         = 50     # 50 × ~30 posts per page
MAX_MEMBERLIST_PAGES   = 20

# Timeouts, dropped connections and 429/503 are retried with backoff
FORUM_RETRY_ATTEMPTS   = 3
FORUM_RETRY_DELAY      = 1.5    # seconds, doubled per attempt
FORUM_MAX_RETRY_WAIT   = 60     # cap for backoff and Retry-After

# Minimum spacing between any two requests to the forum (shared by all users)
REQUEST_DELAY_SECONDS  = float(os.getenv("FORUM_REQUEST_DELAY", "0.5"))

# Forum prints naive local times (Moscow)
FORUM_TIMEZONE_OFFSET_HOURS = 3

# ─── Sections ─────────────────────────────────────────────────────────────────
# Posts in game sections drive in-game progress, flood sections count for less,
# anything not listed is technical.
FORUM_SECTIONS = {
    "game": {
        "roleplay": [1, 7],
    },
    "flood": {
        "offtopic": [9],
        "evenings": [10],
        "diaries":  [11],
        "contest":  [12],
    },
}
FORUM_SECTIONS_FILE = os.getenv("FORUM_SECTIONS_FILE", "")

SECTION_WEIGHTS = {
    "game":      2.0,
    "flood":     0.5,
    "technical": 0.1,
}

# ─── Post Score ───────────────────────────────────────────────────────────────
LENGTH_BONUS_WORDS = 100    # words per 1.0 of length bonus
LENGTH_BONUS_CAP   = 2.0

# (max age in days, multiplier), checked in order; older posts get RECENCY_STALE_BONUS
RECENCY_BONUSES = [
    (1,  1.5),
    (7,  1.2),
    (30, 1.0),
]
RECENCY_STALE_BONUS = 0.5

# ─── Activity Score ───────────────────────────────────────────────────────────
ACTIVITY_SCORE_WEIGHTS = {
    "game":       3.0,
    "flood":      1.0,
    "technical":  0.5,
    "diversity":  2.0,    # per unique category in post_distribution
    "game_ratio": 15.0,
}

# ─── Trend Thresholds ────────────────────────────────────────────────────────
TREND_UP_FACTOR   = 1.1   # current > previous × this → increasing
TREND_DOWN_FACTOR = 0.9   # current < previous × this → decreasing

# ─── Bonuses ─────────────────────────────────────────────────────────────────
BONUS_POLICY = {
    "credits_multiplier":   8,
    "infection_per_game":   0.8,
    "infection_cap":        30,
    "whisper_per_category": 3,
    "whisper_cap":          20,
    "game_ratio_threshold": 0.5,
    "credits_boost":        0.2,
    "infection_boost":      5,
}

BASE_CREDITS      = 1000
INFECTION_LIMITS  = (0, 100)
WHISPER_LIMITS    = (-100, 100)

# posts per day → activity level, checked top-down
ACTIVITY_LEVELS = [
    (5.0, "very_high"),
    (2.0, "high"),
    (0.5, "medium"),
    (0.1, "low"),
]

# ─── Persistence ─────────────────────────────────────────────────────────────
PLAYERS_FILE        = os.getenv("PLAYERS_FILE", "data/players.json")
PLAYERS_DATA_URL    = os.getenv("PLAYERS_DATA_URL", "")
DATA_VERSION        = "1.0.0"

# ─── Cache ───────────────────────────────────────────────────────────────────
DISK_CACHE_DIR   = ".cache/herocard"
POSTS_CACHE_TTL  = 3600   # 1 hour

# ─── Member List Parsing ──────────────────────────────────────────────────────
UNKNOWN_VALUE = "Неизвестно"
IGNORED_MEMBER_NAMES = {"Имя", "Автор", "Зарегистрирован", "Последний визит"}

# ─── UI ──────────────────────────────────────────────────────────────────────
APP_TITLE       = "Hero Card Preview"
APP_SUBTITLE    = "Forum activity, credits, infection and whisper for every player."
