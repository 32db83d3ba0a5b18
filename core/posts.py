"""
posts.py — Post records and per-post scoring.

score = section weight × length bonus × recency bonus

The per-post score is informational; the stored activity score is computed
from category counts in activity.py.
"""

from dataclasses import dataclass
from datetime import datetime

from config import (
    LENGTH_BONUS_CAP,
    LENGTH_BONUS_WORDS,
    RECENCY_BONUSES,
    RECENCY_STALE_BONUS,
)
from core.sections import SectionClassifier
from utils.utils import days_between, utcnow


@dataclass(frozen=True)
class Post:
    section_id: int
    timestamp: datetime
    word_count: int = 0
    section_name: str = ""


@dataclass(frozen=True)
class ClassifiedPost:
    post: Post
    section_type: str
    category: str
    weight: float
    score: float


def length_bonus(word_count: int | None) -> float:
    """min(words / 100, 2); unknown or negative counts give 0."""
    if not word_count or word_count < 0:
        return 0.0
    return min(word_count / LENGTH_BONUS_WORDS, LENGTH_BONUS_CAP)


def recency_bonus(timestamp: datetime, now: datetime | None = None) -> float:
    """1.5 within a day, 1.2 within a week, 1.0 within 30 days, else 0.5. Bounds are inclusive."""
    age_days = days_between(timestamp, now or utcnow())
    for max_days, bonus in RECENCY_BONUSES:
        if age_days <= max_days:
            return bonus
    return RECENCY_STALE_BONUS


def classify_post(post: Post, classifier: SectionClassifier,
                  now: datetime | None = None) -> ClassifiedPost:
    info = classifier.classify(post.section_id)
    score = info.weight * length_bonus(post.word_count) * recency_bonus(post.timestamp, now)
    return ClassifiedPost(
        post=post,
        section_type=info.section_type,
        category=info.category,
        weight=info.weight,
        score=score,
    )
