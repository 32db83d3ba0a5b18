"""
utils.py — Shared helpers: retry decorator, rate limiter, forum date math, status-line parsing.
"""

import math
import re
import threading
import time
import logging
from datetime import datetime, timedelta, timezone
from functools import wraps

from config import FORUM_TIMEZONE_OFFSET_HOURS, IGNORED_MEMBER_NAMES

logger = logging.getLogger(__name__)

FORUM_TZ = timezone(timedelta(hours=FORUM_TIMEZONE_OFFSET_HOURS))


# ─── Retry Decorator ─────────────────────────────────────────────────────────

def retry(
    max_attempts: int = 2,
    delay: float = 1.5,
    exceptions=(Exception,),
    max_delay: float = 60.0,
    sleep=time.sleep,
):
    """
    Decorator: retry a function up to `max_attempts` times on specified exceptions.
    Uses exponential backoff: delay, delay*2, delay*4, ...
    An exception carrying a `retry_after` (seconds) waits that long instead.
    Every wait is capped at `max_delay`.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            last_exc = None
            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as exc:
                    last_exc = exc
                    if attempt < max_attempts:
                        retry_after = getattr(exc, "retry_after", None)
                        if retry_after is not None:
                            sleep_time = min(float(retry_after), max_delay)
                        else:
                            sleep_time = min(delay * (2 ** (attempt - 1)), max_delay)
                        logger.warning(
                            f"[retry] {func.__name__} attempt {attempt} failed: {exc}. "
                            f"Retrying in {sleep_time:.1f}s..."
                        )
                        sleep(sleep_time)
                    else:
                        logger.error(
                            f"[retry] {func.__name__} failed after {max_attempts} attempts."
                        )
            raise last_exc
        return wrapper
    return decorator


# ─── Rate Limiter ────────────────────────────────────────────────────────────

class RateLimiter:
    """
    Enforce a minimum interval between consecutive calls to `wait()`.

    One instance is shared by every request made during a run, so the spacing
    holds globally even when several users are processed in parallel.
    """

    def __init__(self, min_interval: float, clock=time.monotonic, sleep=time.sleep):
        self.min_interval = max(float(min_interval), 0.0)
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._next_slot: float | None = None

    def wait(self) -> float:
        """Block until the next request slot. Returns the time slept."""
        with self._lock:
            now = self._clock()
            if self._next_slot is None or now >= self._next_slot:
                slept = 0.0
                start = now
            else:
                slept = self._next_slot - now
                start = self._next_slot
            self._next_slot = start + self.min_interval
        if slept > 0:
            self._sleep(slept)
        return slept


# ─── Date Helpers ─────────────────────────────────────────────────────────────

_RELATIVE_DAYS = {
    "сегодня":   0,
    "today":     0,
    "вчера":     1,
    "yesterday": 1,
}

_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%d.%m.%Y %H:%M:%S",
    "%d.%m.%Y %H:%M",
    "%d.%m.%Y",
)

_TIME_RE = re.compile(r"(\d{1,2}):(\d{2})")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_forum_date(text: str | None, now: datetime | None = None) -> datetime | None:
    """
    Parse a forum date string into a timezone-aware datetime.

    Understands "Сегодня 14:22" / "Вчера 09:15" (and English equivalents),
    ISO-like and dotted day-first dates. Naive values are taken as forum
    local time. Returns None if nothing matched.
    """
    if not text:
        return None
    now = now or utcnow()
    cleaned = " ".join(text.split())
    lowered = cleaned.lower()

    for word, days_back in _RELATIVE_DAYS.items():
        if lowered.startswith(word):
            local_now = now.astimezone(FORUM_TZ)
            day = local_now - timedelta(days=days_back)
            match = _TIME_RE.search(lowered)
            if match:
                day = day.replace(
                    hour=int(match.group(1)), minute=int(match.group(2)),
                    second=0, microsecond=0,
                )
            return day

    try:
        parsed = datetime.fromisoformat(cleaned.replace("Z", "+00:00"))
    except ValueError:
        parsed = None
    if parsed is None:
        for fmt in _DATE_FORMATS:
            try:
                parsed = datetime.strptime(cleaned, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=FORUM_TZ)
    return parsed


def to_iso(dt: datetime) -> str:
    """ISO-8601 in UTC with a trailing Z, the format stored in players.json."""
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def days_between(earlier: datetime, later: datetime) -> float:
    """Fractional days from `earlier` to `later` (negative if reversed)."""
    return (later - earlier).total_seconds() / 86400


# ─── Status Line Parsing ──────────────────────────────────────────────────────

_CREDITS_RE   = re.compile(r"💰\s*([+-]?\d+)")
_INFECTION_RE = re.compile(r"⚡\s*([+-]?\d+)%")
_WHISPER_RE   = re.compile(r"👁\s*([+-]?\d+)%")


def parse_status_bonuses(status: str | None) -> dict:
    """
    Extract manual bonuses from a member status line, e.g. "💰+200 ⚡+23% 👁-12%".
    Missing markers count as 0.
    """
    if not status:
        return {"credits": 0, "infection": 0, "whisper": 0}

    def _grab(pattern: re.Pattern) -> int:
        match = pattern.search(status)
        return int(match.group(1)) if match else 0

    return {
        "credits":   _grab(_CREDITS_RE),
        "infection": _grab(_INFECTION_RE),
        "whisper":   _grab(_WHISPER_RE),
    }


def parse_positive_reputation(text: str | None) -> int:
    """"+10 -2" → 10; "7" → 7; empty → 0."""
    if not text:
        return 0
    match = re.search(r"\+(\d+)", text) or re.search(r"(\d+)", text)
    return int(match.group(1)) if match else 0


# ─── Input Validation ────────────────────────────────────────────────────────

def is_valid_player_name(name: str | None) -> bool:
    """Reject header cells, e-mail-like values and bare numbers scraped from the member table."""
    if not name:
        return False
    name = name.strip()
    if not 1 < len(name) < 50:
        return False
    if "@" in name or name.isdigit():
        return False
    return not any(ignored in name for ignored in IGNORED_MEMBER_NAMES)


def generate_player_id(username: str) -> str:
    """Slug used as the stable record id: lowercase, non-alphanumerics → '_'."""
    slug = re.sub(r"[^a-z0-9а-яё]", "_", username.lower())
    slug = re.sub(r"_+", "_", slug)
    return slug.strip("_")


# ─── Misc ────────────────────────────────────────────────────────────────────

def clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    """Clamp a value to [lo, hi]."""
    return max(lo, min(hi, value))


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide safely, returning `default` when denominator is zero."""
    if denominator == 0:
        return default
    return numerator / denominator


def round_half_up(value: float, digits: int = 1) -> float:
    """Round like JavaScript's Math.round(x * 10**d) / 10**d (halves go up)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor
