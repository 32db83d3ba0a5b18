"""
tests/test_activity.py — Unit tests for posts.py, activity.py and trend.py

Deterministic: every test pins `now`.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import datetime, timedelta, timezone

import pytest
from core.activity import empty_summary, summarize_activity
from core.posts import Post, classify_post, length_bonus, recency_bonus
from core.sections import SectionClassifier, SectionConfig
from core.trend import estimate_trend, previous_score_from


# ─── Fixtures ─────────────────────────────────────────────────────────────────

NOW = datetime(2025, 11, 15, 12, 0, tzinfo=timezone.utc)

CLASSIFIER = SectionClassifier(SectionConfig.from_dict({
    "game":  {"roleplay": [1, 7]},
    "flood": {"offtopic": [9], "evenings": [10]},
}))


def make_post(section_id: int, days_ago: float = 0, word_count: int = 100) -> Post:
    return Post(
        section_id=section_id,
        timestamp=NOW - timedelta(days=days_ago),
        word_count=word_count,
    )


def scenario_posts() -> list[Post]:
    """6 roleplay posts today, 3 offtopic 10 days ago, 1 unlisted 40 days ago."""
    return (
        [make_post(7, days_ago=0.05, word_count=150) for _ in range(6)]
        + [make_post(9, days_ago=10, word_count=50) for _ in range(3)]
        + [make_post(5, days_ago=40, word_count=80)]
    )


# ─── Post scoring ─────────────────────────────────────────────────────────────

class TestLengthBonus:
    def test_zero_words(self):
        assert length_bonus(0) == 0

    def test_missing_words(self):
        assert length_bonus(None) == 0

    def test_scales_and_caps(self):
        assert length_bonus(50) == 0.5
        assert length_bonus(200) == 2
        assert length_bonus(5000) == 2

    def test_zero_words_zero_score_in_any_section(self):
        for section_id in (1, 9, 5):
            assert classify_post(make_post(section_id, word_count=0), CLASSIFIER, NOW).score == 0


class TestRecencyBonus:
    @pytest.mark.parametrize("days, expected", [
        (0, 1.5),
        (1.0, 1.5),
        (1.5, 1.2),
        (7.0, 1.2),
        (20, 1.0),
        (30.0, 1.0),
        (30.01, 0.5),
        (400, 0.5),
    ])
    def test_boundaries(self, days, expected):
        assert recency_bonus(NOW - timedelta(days=days), NOW) == expected

    def test_future_post_counts_as_fresh(self):
        assert recency_bonus(NOW + timedelta(hours=3), NOW) == 1.5


class TestClassifyPost:
    def test_game_post_score(self):
        classified = classify_post(make_post(7, days_ago=0.5, word_count=150), CLASSIFIER, NOW)
        assert classified.section_type == "game"
        assert classified.category == "roleplay"
        assert classified.weight == 2.0
        assert classified.score == pytest.approx(2.0 * 1.5 * 1.5)

    def test_technical_post_score(self):
        classified = classify_post(make_post(3, days_ago=40, word_count=80), CLASSIFIER, NOW)
        assert classified.section_type == "technical"
        assert classified.score == pytest.approx(0.1 * 0.8 * 0.5)


# ─── Aggregation ──────────────────────────────────────────────────────────────

class TestSummarizeActivity:
    def test_scenario_counts_and_score(self):
        summary = summarize_activity(scenario_posts(), CLASSIFIER, NOW)
        assert summary.total_posts == 10
        assert summary.game_posts == 6
        assert summary.flood_posts == 3
        assert summary.technical_posts == 1
        assert summary.post_distribution == {"roleplay": 6, "offtopic": 3, "technical": 1}
        assert summary.activity_score == 36.5

    def test_last_activity_is_newest_post(self):
        posts = scenario_posts()
        summary = summarize_activity(reversed(posts), CLASSIFIER, NOW)
        assert summary.last_activity == NOW - timedelta(days=0.05)

    def test_empty_history(self):
        summary = summarize_activity([], CLASSIFIER, NOW)
        assert summary.activity_score == 0
        assert summary.post_distribution == {}
        assert summary.activity_trend == "stable"
        assert summary.total_posts == summary.technical_posts == 0
        assert summary.last_activity == NOW

    def test_empty_history_ignores_previous_score(self):
        summary = summarize_activity([], CLASSIFIER, NOW, previous_score=50)
        assert summary.activity_trend == "stable"

    def test_technical_is_derived(self):
        posts = [make_post(s) for s in (1, 1, 9, 10, 2, 3, 4, 100)]
        summary = summarize_activity(posts, CLASSIFIER, NOW)
        assert summary.technical_posts == summary.total_posts - summary.game_posts - summary.flood_posts
        assert summary.technical_posts == 4

    def test_unique_categories_count_category_names(self):
        posts = [make_post(9), make_post(10)]
        summary = summarize_activity(posts, CLASSIFIER, NOW)
        # offtopic + evenings: 2 flood posts, 2 categories, no game ratio
        assert summary.unique_categories == 2
        assert summary.activity_score == 2 * 1 + 2 * 2

    def test_score_rounded_to_one_decimal(self):
        posts = [make_post(1), make_post(9), make_post(5)]
        summary = summarize_activity(posts, CLASSIFIER, NOW)
        # 3 + 1 + 0.5 + 3×2 + (1/3)×15 = 15.5
        assert summary.activity_score == 15.5
        posts = [make_post(1)] + [make_post(9)] * 5
        summary = summarize_activity(posts, CLASSIFIER, NOW)
        # 3 + 5 + 0 + 2×2 + (1/6)×15 = 14.5
        assert summary.activity_score == 14.5

    def test_trend_from_previous_score(self):
        summary = summarize_activity(scenario_posts(), CLASSIFIER, NOW, previous_score=20)
        assert summary.activity_trend == "increasing"
        summary = summarize_activity(scenario_posts(), CLASSIFIER, NOW, previous_score=36.5)
        assert summary.activity_trend == "stable"

    def test_sections_activity(self):
        summary = summarize_activity(scenario_posts(), CLASSIFIER, NOW)
        assert summary.sections_activity[7]["posts_count"] == 6
        assert summary.sections_activity[5]["section_type"] == "technical"

    def test_raw_post_score_sums_post_scores(self):
        # 6 × (2.0 × 1.5 × 1.5) + 3 × (0.5 × 0.5 × 1.0) + 0.1 × 0.8 × 0.5
        summary = summarize_activity(scenario_posts(), CLASSIFIER, NOW)
        assert summary.raw_post_score == pytest.approx(27.79)
        assert summary.to_post_stats()["raw_post_score"] == pytest.approx(27.79)
        assert empty_summary(NOW).to_post_stats()["raw_post_score"] == 0

    def test_post_stats_shape(self):
        stats = summarize_activity(scenario_posts(), CLASSIFIER, NOW).to_post_stats()
        assert stats["post_activity_score"] == 36.5
        assert stats["activity_trend"] == "stable"
        assert stats["last_activity"].endswith("Z")
        assert set(stats) >= {
            "total_posts", "game_posts", "flood_posts", "technical_posts",
            "post_activity_score", "post_distribution", "last_activity", "activity_trend",
        }

    def test_empty_summary(self):
        summary = empty_summary(NOW)
        assert summary.total_posts == 0
        assert summary.activity_score == 0
        assert summary.activity_trend == "stable"
        assert summary.last_activity == NOW


# ─── Trend ────────────────────────────────────────────────────────────────────

class TestTrend:
    def test_no_previous(self):
        assert estimate_trend(42, None) == "stable"

    def test_thresholds(self):
        assert estimate_trend(111, 100) == "increasing"
        assert estimate_trend(89, 100) == "decreasing"
        assert estimate_trend(100, 100) == "stable"
        assert estimate_trend(110, 100) == "stable"
        assert estimate_trend(90, 100) == "stable"

    def test_previous_zero(self):
        assert estimate_trend(5, 0) == "increasing"
        assert estimate_trend(0, 0) == "stable"

    def test_previous_score_from_record(self):
        assert previous_score_from(None) is None
        assert previous_score_from({"forum_data": {}}) is None
        assert previous_score_from({"forum_data": {"post_stats": {"total_posts": 3}}}) == 0
        record = {"forum_data": {"post_stats": {"post_activity_score": 12.5}}}
        assert previous_score_from(record) == 12.5
