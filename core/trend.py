"""
trend.py — Compare a fresh activity score with the one stored by the previous run.
"""

from config import TREND_DOWN_FACTOR, TREND_UP_FACTOR

INCREASING = "increasing"
DECREASING = "decreasing"
STABLE = "stable"


def estimate_trend(current: float, previous: float | None) -> str:
    if previous is None:
        return STABLE
    if current > previous * TREND_UP_FACTOR:
        return INCREASING
    if current < previous * TREND_DOWN_FACTOR:
        return DECREASING
    return STABLE


def previous_score_from(record: dict | None) -> float | None:
    """
    Score stored by the last run, or None if the player was never analysed.
    A post_stats block without a score counts as 0.
    """
    if not record:
        return None
    post_stats = (record.get("forum_data") or {}).get("post_stats")
    if not post_stats:
        return None
    return post_stats.get("post_activity_score") or 0
