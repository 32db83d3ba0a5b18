"""
bonuses.py — Map an ActivitySummary to in-game credits / infection / whisper deltas
and fold them into a player's bonuses and game stats.
"""

import logging
import math
from dataclasses import dataclass

from config import BASE_CREDITS, BONUS_POLICY, INFECTION_LIMITS, WHISPER_LIMITS
from core.activity import ActivitySummary
from utils.utils import clamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BonusSet:
    credits: int = 0
    infection: float = 0
    whisper: float = 0

    def as_dict(self) -> dict:
        return {"credits": self.credits, "infection": self.infection, "whisper": self.whisper}


@dataclass(frozen=True)
class BonusPolicy:
    credits_multiplier: float = 8
    infection_per_game: float = 0.8
    infection_cap: float = 30
    whisper_per_category: float = 3
    whisper_cap: float = 20
    game_ratio_threshold: float = 0.5
    credits_boost: float = 0.2
    infection_boost: float = 5


DEFAULT_POLICY = BonusPolicy(**BONUS_POLICY)


def generate_bonuses(summary: ActivitySummary, policy: BonusPolicy = DEFAULT_POLICY) -> BonusSet:
    """
    credits   = floor(score × 8)
    infection = min(game posts × 0.8, 30)
    whisper   = min(unique categories × 3, 20)

    A game ratio above 0.5 adds 20% credits and +5 infection on top of the
    capped value (the boosted infection is not capped again).
    """
    credits = math.floor(summary.activity_score * policy.credits_multiplier)

    infection = 0
    if summary.game_posts > 0:
        infection = min(summary.game_posts * policy.infection_per_game, policy.infection_cap)

    whisper = min(summary.unique_categories * policy.whisper_per_category, policy.whisper_cap)

    if summary.game_ratio > policy.game_ratio_threshold:
        credits += math.floor(credits * policy.credits_boost)
        infection += policy.infection_boost

    return BonusSet(credits=int(credits), infection=infection, whisper=whisper)


def game_stats_from(bonuses: dict) -> dict:
    """Derive the displayed game stats from accumulated bonuses."""
    infection = bonuses.get("infection", 0)
    whisper = bonuses.get("whisper", 0)
    return {
        "credits": BASE_CREDITS + bonuses.get("credits", 0),
        "infection": {
            "base":  0,
            "bonus": infection,
            "total": clamp(infection, *INFECTION_LIMITS),
        },
        "whisper": {
            "base":  0,
            "bonus": whisper,
            "total": clamp(whisper, *WHISPER_LIMITS),
        },
    }


def apply_bonuses(record: dict, bonus_set: BonusSet) -> dict:
    """Add bonus_set to record["bonuses"] in place and recompute record["game_stats"]."""
    current = record.get("bonuses") or {}
    merged = {
        "credits":   current.get("credits", 0) + bonus_set.credits,
        "infection": current.get("infection", 0) + bonus_set.infection,
        "whisper":   current.get("whisper", 0) + bonus_set.whisper,
    }
    record["bonuses"] = merged
    record["game_stats"] = {**(record.get("game_stats") or {}), **game_stats_from(merged)}
    logger.debug(f"Bonuses {current} + {bonus_set.as_dict()} → {merged}")
    return record
