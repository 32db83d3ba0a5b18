"""
updater.py — Batch recomputation of the players document.

Flow per run:
  1. Load players.json (if any)
  2. Refresh records from the member list
  3. Optionally, per player: fetch posts → summarize → bonuses → merge
  4. Save players.json

A failure for one player never aborts the batch: fetch errors fall back to a
zeroed summary, records without a user_id are skipped, anything else keeps the
player's previous record.
"""

import json
import logging
import os
import tempfile
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime

from config import DATA_VERSION, DISK_CACHE_DIR, PLAYERS_FILE
from core.activity import empty_summary, summarize_activity
from core.bonuses import DEFAULT_POLICY, BonusPolicy, generate_bonuses
from core.cache import get_cached_posts, set_cached_posts
from core.forum_client import ForumClient, ForumFetchError
from core.merger import merge_player_record, refresh_from_member
from core.sections import SectionClassifier
from core.trend import previous_score_from
from utils.utils import to_iso, utcnow

logger = logging.getLogger(__name__)

ANALYZED = "analyzed"
FALLBACK = "fallback"
SKIPPED = "skipped"
FAILED = "failed"


class MissingCorrelationKeyError(Exception):
    """Raised when a player record has no forum user_id to look up posts with."""


# ─── Persistence ─────────────────────────────────────────────────────────────

def load_players(path: str = PLAYERS_FILE) -> dict:
    """Read the players document; a missing file yields an empty document."""
    if not os.path.exists(path):
        logger.info(f"No players file at {path}, starting empty")
        return {"players": {}, "version": DATA_VERSION}
    with open(path, encoding="utf-8") as f:
        document = json.load(f)
    document.setdefault("players", {})
    logger.info(f"Loaded {len(document['players'])} players from {path}")
    return document


def save_players(document: dict, path: str = PLAYERS_FILE) -> None:
    """Write the players document atomically (temp file + replace)."""
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".players-", suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(document, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
    logger.info(f"Saved {len(document.get('players', {}))} players to {path}")


# ─── Member Sync ─────────────────────────────────────────────────────────────

def sync_members(players: dict, members: list[dict], now: datetime | None = None) -> dict:
    """
    Create or refresh a record for every member-list row.
    Players missing from the list are kept as they are.
    """
    now = now or utcnow()
    updated = dict(players)
    created = 0
    for member in members:
        username = member["username"]
        if username not in updated:
            created += 1
        try:
            updated[username] = refresh_from_member(updated.get(username), member, now)
        except Exception:
            logger.exception(f"Failed to refresh member '{username}', keeping previous record")
    logger.info(f"Member sync: {len(members)} rows, {created} new players")
    return updated


# ─── Post Analysis ───────────────────────────────────────────────────────────

def analyze_player(
    username: str,
    record: dict,
    client: ForumClient,
    classifier: SectionClassifier,
    now: datetime | None = None,
    policy: BonusPolicy = DEFAULT_POLICY,
    use_cache: bool = True,
    cache_dir: str = DISK_CACHE_DIR,
) -> tuple[dict, str]:
    """
    Recompute one player's activity and bonuses.

    Returns (updated record, status). A fetch failure yields a zeroed summary
    and status FALLBACK.

    Raises:
        MissingCorrelationKeyError if the record has no user_id.
    """
    now = now or utcnow()
    user_id = record.get("user_id")
    if not user_id:
        raise MissingCorrelationKeyError(f"Player '{username}' has no user_id")

    status = ANALYZED
    posts = get_cached_posts(user_id, cache_dir) if use_cache else None
    if posts is None:
        try:
            posts = client.fetch_user_posts(user_id, username)
        except ForumFetchError as exc:
            logger.warning(f"Post fetch failed for {username}: {exc}. Using default stats.")
            posts = None
            status = FALLBACK
        else:
            if use_cache:
                set_cached_posts(user_id, posts, cache_dir)

    if posts is None:
        summary = empty_summary(now)
    else:
        summary = summarize_activity(posts, classifier, now, previous_score_from(record))

    bonus_set = generate_bonuses(summary, policy)
    logger.info(
        f"{username}: {summary.total_posts} posts "
        f"(game {summary.game_posts}, flood {summary.flood_posts}, "
        f"technical {summary.technical_posts}), score {summary.activity_score}, "
        f"trend {summary.activity_trend}, bonuses {bonus_set.as_dict()}"
    )
    return merge_player_record(record, summary, bonus_set, now, username), status


def update_players(
    players: dict,
    client: ForumClient,
    classifier: SectionClassifier,
    now: datetime | None = None,
    max_workers: int = 1,
    policy: BonusPolicy = DEFAULT_POLICY,
    use_cache: bool = True,
    cache_dir: str = DISK_CACHE_DIR,
) -> tuple[dict, dict]:
    """
    Run analyze_player for every player and collect the results.

    Players are processed sequentially unless max_workers > 1; the client's
    shared rate limiter keeps the request rate either way.

    Returns:
        (updated players dict, report {status: [usernames]})
    """
    now = now or utcnow()
    updated = dict(players)
    report = {ANALYZED: [], FALLBACK: [], SKIPPED: [], FAILED: []}

    def _run(username: str) -> tuple[str, dict, str]:
        record, status = analyze_player(
            username, players[username], client, classifier, now,
            policy=policy, use_cache=use_cache, cache_dir=cache_dir,
        )
        return username, record, status

    def _collect(username: str, future_or_call) -> None:
        try:
            _, record, status = future_or_call()
        except MissingCorrelationKeyError as exc:
            logger.warning(f"Skipping post analysis: {exc}")
            report[SKIPPED].append(username)
        except Exception:
            logger.exception(f"Post analysis failed for {username}, keeping previous record")
            report[FAILED].append(username)
        else:
            updated[username] = record
            report[status].append(username)

    usernames = list(players)
    if max_workers <= 1:
        for index, username in enumerate(usernames, start=1):
            logger.info(f"[{index}/{len(usernames)}] {username}")
            _collect(username, lambda u=username: _run(u))
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {executor.submit(_run, u): u for u in usernames}
            for future in as_completed(futures):
                _collect(futures[future], future.result)

    logger.info(
        "Post analysis done: "
        + ", ".join(f"{status}: {len(names)}" for status, names in report.items())
    )
    return updated, report


# ─── Full Run ────────────────────────────────────────────────────────────────

def run_update(
    client: ForumClient,
    classifier: SectionClassifier,
    path: str = PLAYERS_FILE,
    analyze_posts: bool = False,
    sync_member_list: bool = True,
    max_workers: int = 1,
    use_cache: bool = True,
    now: datetime | None = None,
) -> dict:
    """
    Load → member sync → (post analysis) → save. Returns the saved document.

    Raises:
        ForumFetchError if the member list cannot be fetched and there are no
        known players to fall back on.
    """
    now = now or utcnow()
    document = load_players(path)
    players = document["players"]

    if sync_member_list:
        try:
            members = client.fetch_member_list()
        except ForumFetchError as exc:
            if not players:
                raise
            logger.warning(f"Member list fetch failed: {exc}. Continuing with known players.")
        else:
            players = sync_members(players, members, now)

    if analyze_posts:
        players, _ = update_players(
            players, client, classifier, now,
            max_workers=max_workers, use_cache=use_cache,
        )
        document["posts_analyzed_at"] = to_iso(now)

    document["players"] = players
    document["last_updated"] = to_iso(now)
    document["version"] = document.get("version") or DATA_VERSION
    save_players(document, path)
    return document
