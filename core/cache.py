"""
cache.py — Disk cache for fetched post histories.

Re-running the batch within the TTL reuses each user's posts instead of
crawling every page again. Entries are joblib pickles keyed by forum user id.

Usage:
    from core.cache import get_cached_posts, set_cached_posts
"""

import hashlib
import logging
import os
import time

import joblib

from config import DISK_CACHE_DIR, POSTS_CACHE_TTL

logger = logging.getLogger(__name__)


def _cache_file(user_id, cache_dir: str) -> str:
    key = hashlib.md5(f"posts:{user_id}".encode()).hexdigest()
    return os.path.join(cache_dir, f"{key}.joblib")


def get_cached_posts(user_id, cache_dir: str = DISK_CACHE_DIR,
                     ttl: float = POSTS_CACHE_TTL) -> list | None:
    """
    Return the cached post list for a user if fresh, else None.
    """
    cache_file = _cache_file(user_id, cache_dir)
    if not os.path.exists(cache_file):
        return None
    try:
        cached = joblib.load(cache_file)
        age = time.time() - cached.get("_cached_at", 0)
        if age < ttl:
            logger.info(f"Disk cache hit for user {user_id} (age: {age:.0f}s)")
            return cached.get("posts")
        else:
            logger.info(f"Disk cache expired for user {user_id}")
            os.remove(cache_file)
            return None
    except Exception as exc:
        logger.warning(f"Disk cache read error for user {user_id}: {exc}")
        return None


def set_cached_posts(user_id, posts: list, cache_dir: str = DISK_CACHE_DIR) -> None:
    """Write a user's post list to the disk cache."""
    os.makedirs(cache_dir, exist_ok=True)
    cache_file = _cache_file(user_id, cache_dir)
    try:
        joblib.dump({"posts": posts, "_cached_at": time.time()}, cache_file)
        logger.debug(f"Disk cache written for user {user_id}")
    except Exception as exc:
        logger.warning(f"Disk cache write error for user {user_id}: {exc}")


def clear_cache(user_id, cache_dir: str = DISK_CACHE_DIR) -> bool:
    """Remove the cache entry for a user. Returns True if removed."""
    cache_file = _cache_file(user_id, cache_dir)
    if os.path.exists(cache_file):
        os.remove(cache_file)
        logger.info(f"Disk cache cleared for user {user_id}")
        return True
    return False
