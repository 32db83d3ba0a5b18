"""
tests/test_bonuses.py — Unit tests for bonuses.py and merger.py
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import copy
from datetime import datetime, timezone

import pytest
from core.activity import ActivitySummary, empty_summary
from core.bonuses import BonusPolicy, BonusSet, apply_bonuses, game_stats_from, generate_bonuses
from core.merger import (
    activity_level_for,
    days_since_registration,
    merge_player_record,
    new_player_record,
    posts_per_day_for,
    refresh_from_member,
)


# ─── Fixtures ─────────────────────────────────────────────────────────────────

NOW = datetime(2025, 11, 15, 12, 0, tzinfo=timezone.utc)


def make_summary(**overrides) -> ActivitySummary:
    """The 10-post scenario: 6 game, 3 flood, 1 technical, score 36.5."""
    base = {
        "total_posts":       10,
        "game_posts":        6,
        "flood_posts":       3,
        "technical_posts":   1,
        "post_distribution": {"roleplay": 6, "offtopic": 3, "technical": 1},
        "activity_score":    36.5,
        "last_activity":     NOW,
        "activity_trend":    "stable",
    }
    base.update(overrides)
    return ActivitySummary(**base)


def make_record(**overrides) -> dict:
    record = new_player_record("Void", NOW)
    record["user_id"] = 2
    record["forum_data"]["registered"] = "21.10.2025"
    record.update(overrides)
    return record


# ─── Bonus generation ─────────────────────────────────────────────────────────

class TestGenerateBonuses:
    def test_scenario(self):
        bonuses = generate_bonuses(make_summary())
        # floor(36.5 × 8) = 292, +floor(292 × 0.2) = 58 for a 60% game ratio
        assert bonuses.credits == 350
        assert bonuses.infection == pytest.approx(6 * 0.8 + 5)
        assert bonuses.whisper == 9

    def test_no_game_posts(self):
        summary = make_summary(
            game_posts=0, flood_posts=4, technical_posts=0, total_posts=4,
            post_distribution={"offtopic": 4}, activity_score=6,
        )
        bonuses = generate_bonuses(summary)
        assert bonuses.credits == 48
        assert bonuses.infection == 0
        assert bonuses.whisper == 3

    def test_ratio_exactly_half_gets_no_boost(self):
        summary = make_summary(
            game_posts=2, flood_posts=2, technical_posts=0, total_posts=4,
            post_distribution={"roleplay": 2, "offtopic": 2}, activity_score=19.5,
        )
        bonuses = generate_bonuses(summary)
        assert bonuses.credits == 156
        assert bonuses.infection == pytest.approx(1.6)

    def test_caps(self):
        summary = make_summary(
            game_posts=10, total_posts=100, flood_posts=90, technical_posts=0,
            post_distribution={f"cat{i}": 1 for i in range(10)}, activity_score=100,
        )
        bonuses = generate_bonuses(summary)
        assert bonuses.infection == pytest.approx(8.0)
        assert bonuses.whisper == 20

    def test_boost_applied_after_infection_cap(self):
        summary = make_summary(
            game_posts=40, flood_posts=10, technical_posts=0, total_posts=50,
            post_distribution={"roleplay": 40, "offtopic": 10}, activity_score=155.0,
        )
        bonuses = generate_bonuses(summary)
        assert bonuses.infection == 35

    def test_empty_summary_yields_nothing(self):
        assert generate_bonuses(empty_summary(NOW)) == BonusSet(0, 0, 0)

    def test_idempotent(self):
        summary = make_summary()
        assert generate_bonuses(summary) == generate_bonuses(summary)

    def test_alternate_policy(self):
        policy = BonusPolicy(credits_multiplier=5)
        bonuses = generate_bonuses(make_summary(), policy)
        # floor(36.5 × 5) = 182, +36
        assert bonuses.credits == 218


class TestApplyBonuses:
    def test_additive_merge(self):
        record = make_record(bonuses={"credits": 50, "infection": 10, "whisper": -5})
        apply_bonuses(record, BonusSet(credits=20, infection=4, whisper=3))
        assert record["bonuses"] == {"credits": 70, "infection": 14, "whisper": -2}
        assert record["game_stats"]["credits"] == 1070
        assert record["game_stats"]["infection"]["total"] == 14
        assert record["game_stats"]["whisper"]["total"] == -2

    def test_totals_clamped(self):
        stats = game_stats_from({"credits": 0, "infection": 140, "whisper": -130})
        assert stats["infection"]["total"] == 100
        assert stats["infection"]["bonus"] == 140
        assert stats["whisper"]["total"] == -100
        stats = game_stats_from({"credits": 0, "infection": -3, "whisper": 0})
        assert stats["infection"]["total"] == 0


# ─── Record merge ─────────────────────────────────────────────────────────────

class TestMergePlayerRecord:
    def test_credits_scenario(self):
        record = make_record(bonuses={"credits": 50, "infection": 0, "whisper": 0})
        merged = merge_player_record(record, empty_summary(NOW), BonusSet(credits=20), NOW)
        assert merged["bonuses"]["credits"] == 70
        assert merged["game_stats"]["credits"] == 1070

    def test_does_not_mutate_input(self):
        record = make_record()
        snapshot = copy.deepcopy(record)
        merge_player_record(record, make_summary(), BonusSet(10, 1, 1), NOW)
        assert record == snapshot

    def test_post_stats_shallow_merged(self):
        record = make_record()
        record["forum_data"]["post_stats"] = {"legacy_field": "keep", "total_posts": 1}
        merged = merge_player_record(record, make_summary(), BonusSet(), NOW)
        stats = merged["forum_data"]["post_stats"]
        assert stats["legacy_field"] == "keep"
        assert stats["total_posts"] == 10
        assert stats["post_distribution"] == {"roleplay": 6, "offtopic": 3, "technical": 1}

    def test_other_fields_pass_through(self):
        record = make_record(custom={"house": "Vor"})
        merged = merge_player_record(record, make_summary(), BonusSet(), NOW)
        assert merged["custom"] == {"house": "Vor"}
        assert merged["forum_data"]["registered"] == "21.10.2025"
        assert merged["last_updated"] == "2025-11-15T12:00:00Z"
        assert merged["activity"]["activity_score"] == 36.5

    def test_missing_user_id_left_untouched(self):
        record = make_record(user_id=None)
        merged = merge_player_record(record, make_summary(), BonusSet(credits=500), NOW)
        assert merged == record
        assert "post_stats" not in merged["forum_data"]

    def test_new_player(self):
        merged = merge_player_record(None, make_summary(), BonusSet(credits=20), NOW, username="Lotus")
        assert merged["name"] == "Lotus"
        assert merged["id"] == "lotus"
        assert merged["game_stats"]["credits"] == 1020
        assert merged["forum_data"]["post_stats"]["game_posts"] == 6


class TestRefreshFromMember:
    MEMBER = {
        "username":    "Void Walker",
        "user_id":     2,
        "status":      "Тенно 💰+200 ⚡+23% 👁-12%",
        "respect":     "+10 -2",
        "posts":       154,
        "registered":  "2025-10-16",
        "last_online": "Сегодня 14:22",
    }

    def test_new_member(self):
        record = refresh_from_member(None, self.MEMBER, NOW)
        assert record["id"] == "void_walker"
        assert record["user_id"] == 2
        assert record["bonuses"] == {"credits": 200, "infection": 23, "whisper": -12}
        assert record["game_stats"]["credits"] == 1200
        assert record["game_stats"]["infection"]["total"] == 23
        assert record["game_stats"]["whisper"]["total"] == -12
        assert record["forum_data"]["positive_reputation"] == 10
        assert record["forum_data"]["posts"] == 154
        assert record["forum_data"]["days_since_registration"] == 30
        # 154 posts over 30 days
        assert record["activity"]["posts_per_day"] == 5.13
        assert record["activity"]["activity_level"] == "very_high"

    def test_existing_post_stats_preserved(self):
        existing = make_record(name="Void Walker")
        existing["forum_data"]["post_stats"] = {"post_activity_score": 12.5}
        existing["activity"]["activity_score"] = 12.5
        record = refresh_from_member(existing, self.MEMBER, NOW)
        assert record["forum_data"]["post_stats"] == {"post_activity_score": 12.5}
        assert record["activity"]["activity_score"] == 12.5

    def test_empty_status(self):
        record = refresh_from_member(None, {**self.MEMBER, "status": ""}, NOW)
        assert record["bonuses"] == {"credits": 0, "infection": 0, "whisper": 0}
        assert record["game_stats"]["credits"] == 1000


class TestRegistrationHelpers:
    def test_days_since_registration(self):
        assert days_since_registration("Неизвестно", NOW) == 0
        assert days_since_registration("", NOW) == 0
        assert days_since_registration("not a date", NOW) == 0
        assert days_since_registration("14.11.2025", NOW) == 1

    def test_posts_per_day(self):
        assert posts_per_day_for(10, 0) == 10.0
        assert posts_per_day_for(10, 3) == 3.33

    @pytest.mark.parametrize("rate, level", [
        (6, "very_high"), (2, "high"), (0.5, "medium"), (0.1, "low"), (0.05, "very_low"),
    ])
    def test_activity_level(self, rate, level):
        assert activity_level_for(rate) == level
