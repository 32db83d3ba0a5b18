"""
activity.py — Aggregate one user's posts into an ActivitySummary.

Input:  list of Post for a single user (may be empty)
Output: ActivitySummary with counts, distribution, score, last activity and trend

activity_score = game×3 + flood×1 + technical×0.5
               + unique categories×2 + (game / total)×15
rounded half-up to one decimal.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from config import ACTIVITY_SCORE_WEIGHTS
from core.posts import Post, classify_post
from core.sections import FLOOD, GAME, SectionClassifier
from core.trend import STABLE, estimate_trend
from utils.utils import round_half_up, safe_divide, to_iso, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActivitySummary:
    total_posts: int
    game_posts: int
    flood_posts: int
    technical_posts: int
    post_distribution: dict
    activity_score: float
    last_activity: datetime
    activity_trend: str = STABLE
    sections_activity: dict = field(default_factory=dict)
    raw_post_score: float = 0.0
    analyzed_at: datetime | None = None

    @property
    def unique_categories(self) -> int:
        return len(self.post_distribution)

    @property
    def game_ratio(self) -> float:
        return safe_divide(self.game_posts, max(self.total_posts, 1))

    def to_post_stats(self) -> dict:
        """JSON shape stored under forum_data.post_stats."""
        return {
            "total_posts":         self.total_posts,
            "game_posts":          self.game_posts,
            "flood_posts":         self.flood_posts,
            "technical_posts":     self.technical_posts,
            "post_activity_score": self.activity_score,
        "raw_post_score":      self.raw_post_score,
            "post_distribution":   dict(self.post_distribution),
            "sections_activity":   {str(k): dict(v) for k, v in self.sections_activity.items()},
            "last_activity":       to_iso(self.last_activity),
            "activity_trend":      self.activity_trend,
            "analyzed_at":         to_iso(self.analyzed_at or self.last_activity),
        }


def summarize_activity(
    posts: Iterable[Post],
    classifier: SectionClassifier,
    now: datetime | None = None,
    previous_score: float | None = None,
) -> ActivitySummary:
    """
    Classify every post and fold the results into an ActivitySummary.

    Args:
        posts:          the user's posts, any order
        classifier:     section lookup
        now:            reference time for recency and the empty-history default
        previous_score: activity score stored by the last run, if any
    """
    now = now or utcnow()

    total_posts = 0
    game_posts = 0
    flood_posts = 0
    distribution: Counter = Counter()
    sections_activity: dict[int, dict] = {}
    raw_post_score = 0.0
    last_activity: datetime | None = None

    for post in posts:
        classified = classify_post(post, classifier, now)
        total_posts += 1
        if classified.section_type == GAME:
            game_posts += 1
        elif classified.section_type == FLOOD:
            flood_posts += 1
        # technical posts are derived from the totals below

        distribution[classified.category] += 1
        raw_post_score += classified.score

        section = sections_activity.setdefault(post.section_id, {
            "posts_count":  0,
            "section_name": post.section_name,
            "section_type": classified.section_type,
        })
        section["posts_count"] += 1

        if last_activity is None or post.timestamp > last_activity:
            last_activity = post.timestamp

    technical_posts = total_posts - game_posts - flood_posts
    activity_score = calculate_activity_score(
        game_posts, flood_posts, technical_posts, len(distribution), total_posts
    )
    # an empty history has nothing to compare
    trend = estimate_trend(activity_score, previous_score) if total_posts else STABLE

    summary = ActivitySummary(
        total_posts=total_posts,
        game_posts=game_posts,
        flood_posts=flood_posts,
        technical_posts=technical_posts,
        post_distribution=dict(distribution),
        activity_score=activity_score,
        last_activity=last_activity or now,
        activity_trend=trend,
        sections_activity=sections_activity,
        raw_post_score=round(raw_post_score, 3),
        analyzed_at=now,
    )
    logger.debug(
        f"Activity: total: {total_posts}, game: {game_posts}, flood: {flood_posts}, "
        f"technical: {technical_posts}, score: {activity_score}, "
        f"raw post score: {summary.raw_post_score}, trend: {trend}"
    )
    return summary


def calculate_activity_score(
    game_posts: int,
    flood_posts: int,
    technical_posts: int,
    unique_categories: int,
    total_posts: int,
) -> float:
    if total_posts == 0:
        return 0
    w = ACTIVITY_SCORE_WEIGHTS
    score = (
        game_posts        * w["game"] +
        flood_posts       * w["flood"] +
        technical_posts   * w["technical"] +
        unique_categories * w["diversity"] +
        safe_divide(game_posts, max(total_posts, 1)) * w["game_ratio"]
    )
    return round_half_up(score, 1)


def empty_summary(now: datetime | None = None) -> ActivitySummary:
    """Zeroed summary used for users without history or whose fetch failed."""
    now = now or utcnow()
    return ActivitySummary(
        total_posts=0,
        game_posts=0,
        flood_posts=0,
        technical_posts=0,
        post_distribution={},
        activity_score=0,
        last_activity=now,
        activity_trend=STABLE,
        analyzed_at=now,
    )
