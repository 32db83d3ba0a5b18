"""
merger.py — Build and update persisted player records.

Records are plain dicts in the players.json shape. Functions here never mutate
the record they are given; they return an updated deep copy.
"""

import copy
import logging
from datetime import datetime

from config import ACTIVITY_LEVELS, UNKNOWN_VALUE
from core.activity import ActivitySummary
from core.bonuses import BonusSet, apply_bonuses, game_stats_from
from utils.utils import (
    days_between,
    generate_player_id,
    parse_forum_date,
    parse_positive_reputation,
    parse_status_bonuses,
    safe_divide,
    to_iso,
    utcnow,
)

logger = logging.getLogger(__name__)


def new_player_record(username: str, now: datetime | None = None) -> dict:
    """Skeleton for a username seen for the first time."""
    now = now or utcnow()
    bonuses = {"credits": 0, "infection": 0, "whisper": 0}
    return {
        "id":      generate_player_id(username),
        "name":    username,
        "user_id": None,
        "forum_data": {
            "status":                  "",
            "positive_reputation":     0,
            "posts":                   0,
            "registered":              UNKNOWN_VALUE,
            "last_online":             UNKNOWN_VALUE,
            "days_since_registration": 0,
        },
        "bonuses":    bonuses,
        "game_stats": game_stats_from(bonuses),
        "activity": {
            "posts_per_day":  0,
            "activity_level": "new",
            "activity_score": 0,
        },
        "last_updated": to_iso(now),
    }


def merge_player_record(
    existing: dict | None,
    summary: ActivitySummary,
    bonus_set: BonusSet,
    now: datetime | None = None,
    username: str = "",
) -> dict:
    """
    Fold a fresh ActivitySummary and BonusSet into a player record.

    - forum_data.post_stats is shallow-merged with the new stats
    - bonuses are added, game_stats recomputed from them
    - last_updated is set to `now`
    Every other field passes through. An existing record without a user_id
    cannot be correlated with its post history and is returned unchanged.
    `existing=None` starts a new record for `username`.
    """
    now = now or utcnow()
    if existing is None:
        record = new_player_record(username, now)
    else:
        record = copy.deepcopy(existing)
        if not record.get("user_id"):
            logger.warning(
                f"Record '{record.get('name', '?')}' has no user_id, activity not merged."
            )
            return record

    forum_data = record.setdefault("forum_data", {})
    forum_data["post_stats"] = {
        **(forum_data.get("post_stats") or {}),
        **summary.to_post_stats(),
    }
    activity = record.setdefault("activity", {})
    activity["activity_score"] = summary.activity_score

    apply_bonuses(record, bonus_set)
    record["last_updated"] = to_iso(now)
    return record


def refresh_from_member(existing: dict | None, member: dict, now: datetime | None = None) -> dict:
    """
    Create or refresh a record from a member-list row.

    `member` keys: username, user_id, status, respect, posts, registered, last_online.
    Status-line bonuses replace the stored bonuses; post_stats and any other
    existing fields are kept.
    """
    now = now or utcnow()
    username = member["username"]
    record = copy.deepcopy(existing) if existing else new_player_record(username, now)

    record["id"] = record.get("id") or generate_player_id(username)
    record["name"] = username
    if member.get("user_id") is not None:
        record["user_id"] = member["user_id"]

    registered = member.get("registered") or UNKNOWN_VALUE
    days_registered = days_since_registration(registered, now)
    posts = member.get("posts") or 0

    forum_data = record.setdefault("forum_data", {})
    forum_data.update({
        "status":                  member.get("status", ""),
        "positive_reputation":     parse_positive_reputation(member.get("respect")),
        "posts":                   posts,
        "registered":              registered,
        "last_online":             member.get("last_online") or UNKNOWN_VALUE,
        "days_since_registration": days_registered,
    })

    bonuses = parse_status_bonuses(member.get("status"))
    record["bonuses"] = bonuses
    record["game_stats"] = game_stats_from(bonuses)

    posts_per_day = posts_per_day_for(posts, days_registered)
    activity = record.get("activity") or {}
    record["activity"] = {
        **activity,
        "posts_per_day":  posts_per_day,
        "activity_level": activity_level_for(posts_per_day),
        "activity_score": activity.get("activity_score", 0),
    }
    record["last_updated"] = to_iso(now)
    return record


# ─── Registration Helpers ─────────────────────────────────────────────────────

def days_since_registration(registered: str | None, now: datetime | None = None) -> int:
    if not registered or registered == UNKNOWN_VALUE:
        return 0
    now = now or utcnow()
    reg_date = parse_forum_date(registered, now)
    if reg_date is None:
        logger.debug(f"Unparseable registration date: {registered!r}")
        return 0
    return max(int(days_between(reg_date, now)), 0)


def posts_per_day_for(posts: int, days_registered: int) -> float:
    if days_registered == 0:
        return float(posts)
    return round(safe_divide(posts, days_registered), 2)


def activity_level_for(posts_per_day: float) -> str:
    for threshold, level in ACTIVITY_LEVELS:
        if posts_per_day >= threshold:
            return level
    return "very_low"
