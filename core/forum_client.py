"""
forum_client.py — All forum HTTP interactions.

Responsibilities:
  - Fetch the member list (all pages) and parse it into member rows
  - Fetch a user's post history page by page and parse it into Post records
  - Space every request through one shared RateLimiter
  - Raise typed exceptions for clean error handling upstream
"""

import logging
import re
import time
from urllib.parse import parse_qs, urljoin, urlparse

import requests
from bs4 import BeautifulSoup

from config import (
    FORUM_BASE_URL,
    FORUM_MAX_RETRY_WAIT,
    FORUM_MEMBERLIST_PATH,
    FORUM_REQUEST_TIMEOUT,
    FORUM_RETRY_ATTEMPTS,
    FORUM_RETRY_DELAY,
    FORUM_USER_AGENT,
    FORUM_USER_POSTS_PATH,
    MAX_MEMBERLIST_PAGES,
    MAX_POST_PAGES,
    REQUEST_DELAY_SECONDS,
)
from core.posts import Post
from utils.utils import RateLimiter, is_valid_player_name, parse_forum_date, retry, utcnow

logger = logging.getLogger(__name__)

_FORUM_ID_RE = re.compile(r"viewforum\.php\?(?:[^\"'#]*&)?id=(\d+)")
_WORD_RE = re.compile(r"\w+", re.UNICODE)


# ─── Custom Exceptions ────────────────────────────────────────────────────────

class ForumFetchError(Exception):
    """Base class for any failure to fetch a forum page."""


class ForumNotFoundError(ForumFetchError):
    """Raised when the requested page does not exist (404)."""


class ForumRateLimitError(ForumFetchError):
    """Raised when the forum throttles us (429/503)."""
    def __init__(self, retry_after: int | None = None):
        self.retry_after = retry_after
        super().__init__("Forum rate limit exceeded.")


class ForumHTTPError(ForumFetchError):
    """Generic error for unexpected status codes or transport failures."""


_RETRYABLE = (requests.Timeout, requests.ConnectionError, ForumRateLimitError)


# ─── Client ──────────────────────────────────────────────────────────────────

class ForumClient:
    """
    Thin wrapper around the forum's public pages.

    Usage:
        client = ForumClient(rate_limiter=RateLimiter(0.5))
        members = client.fetch_member_list()
        posts = client.fetch_user_posts(user_id=42)
    """

    def __init__(
        self,
        base_url: str = FORUM_BASE_URL,
        rate_limiter: RateLimiter | None = None,
        session: requests.Session | None = None,
        max_post_pages: int = MAX_POST_PAGES,
        retry_attempts: int = FORUM_RETRY_ATTEMPTS,
        retry_delay: float = FORUM_RETRY_DELAY,
        sleep=time.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.rate_limiter = rate_limiter or RateLimiter(REQUEST_DELAY_SECONDS)
        self.max_post_pages = max_post_pages
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": FORUM_USER_AGENT,
            "Accept": "text/html,application/xhtml+xml",
        })
        self._get = retry(
            max_attempts=retry_attempts,
            delay=retry_delay,
            exceptions=_RETRYABLE,
            max_delay=FORUM_MAX_RETRY_WAIT,
            sleep=sleep,
        )(self._request)

    # ── Internal request helper ───────────────────────────────────────────────

    def _request(self, path: str, params: dict | None = None) -> requests.Response:
        """
        Make a rate-limited GET request to the forum.
        Raises typed exceptions for known error codes.
        """
        url = f"{self.base_url}{path}"
        self.rate_limiter.wait()
        response = self.session.get(url, params=params, timeout=FORUM_REQUEST_TIMEOUT)

        if response.status_code == 200:
            return response
        elif response.status_code == 404:
            raise ForumNotFoundError(f"Page not found: {url}")
        elif response.status_code in (429, 503):
            retry_after = response.headers.get("Retry-After")
            raise ForumRateLimitError(
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None
            )
        else:
            raise ForumHTTPError(f"Forum returned {response.status_code} for {url}")

    def _get_html(self, path: str, params: dict | None = None) -> str:
        try:
            response = self._get(path, params)
        except (requests.Timeout, requests.ConnectionError) as exc:
            raise ForumHTTPError(f"Transport error for {path}: {exc}") from exc
        # forum pages are often windows-1251 without a charset header
        if not response.encoding or response.encoding.lower() == "iso-8859-1":
            response.encoding = response.apparent_encoding
        return response.text

    # ── Member list ───────────────────────────────────────────────────────────

    def fetch_member_list(self) -> list[dict]:
        """Fetch every member-list page and return the parsed rows."""
        logger.info(f"Fetching member list from {self.base_url}{FORUM_MEMBERLIST_PATH}")
        members: list[dict] = []
        seen: set[str] = set()
        for page in range(1, MAX_MEMBERLIST_PAGES + 1):
            html = self._get_html(FORUM_MEMBERLIST_PATH, params={"p": page})
            page_members = parse_member_list(html, self.base_url)
            fresh = [m for m in page_members if m["username"] not in seen]
            if not fresh:
                break
            for member in fresh:
                seen.add(member["username"])
            members.extend(fresh)
            if not has_next_page(html, page):
                break
        logger.info(f"Member list: {len(members)} members")
        return members

    # ── User posts ────────────────────────────────────────────────────────────

    def fetch_user_posts(self, user_id: int, username: str = "") -> list[Post]:
        """
        Fetch a user's full post history, page by page.
        Any failed page raises: a partial history would skew the score.
        """
        label = username or f"user {user_id}"
        logger.info(f"Fetching posts for {label} (id={user_id})")
        now = utcnow()
        posts: list[Post] = []
        for page in range(1, self.max_post_pages + 1):
            html = self._get_html(
                FORUM_USER_POSTS_PATH,
                params={"action": "show_user_posts", "user_id": user_id, "p": page},
            )
            page_posts = parse_user_posts(html, now)
            logger.debug(f"{label}: page {page} → {len(page_posts)} posts")
            posts.extend(page_posts)
            if not page_posts or not has_next_page(html, page):
                break
        else:
            logger.warning(f"{label}: stopped at the {self.max_post_pages}-page cap")
        logger.info(f"Collected {len(posts)} posts for {label}")
        return posts


# ─── HTML Parsing ─────────────────────────────────────────────────────────────

def _clean(text: str | None) -> str:
    return " ".join((text or "").replace("\xa0", " ").split())


def _query_int(href: str, key: str) -> int | None:
    values = parse_qs(urlparse(href).query).get(key)
    if values and values[0].isdigit():
        return int(values[0])
    return None


def parse_member_list(html: str, base_url: str = FORUM_BASE_URL) -> list[dict]:
    """
    Parse member-list table rows (name, status, respect, posts, registered, last visit).
    Rows with fewer than six cells or header-like names are skipped.
    """
    soup = BeautifulSoup(html, "html.parser")
    members = []
    for row in soup.find_all("tr"):
        cells = row.find_all("td")
        if len(cells) < 6:
            continue
        link = cells[0].find("a")
        username = _clean(link.get_text() if link else cells[0].get_text())
        if not is_valid_player_name(username):
            continue
        user_id = None
        if link and link.get("href"):
            user_id = _query_int(urljoin(base_url + "/", link["href"]), "id")
        posts_text = re.sub(r"\D", "", _clean(cells[3].get_text()))
        members.append({
            "username":    username,
            "user_id":     user_id,
            "status":      _clean(cells[1].get_text()),
            "respect":     _clean(cells[2].get_text()),
            "posts":       int(posts_text) if posts_text else 0,
            "registered":  _clean(cells[4].get_text()),
            "last_online": _clean(cells[5].get_text()),
        })
    logger.debug(f"Parsed {len(members)} member rows")
    return members


def parse_user_posts(html: str, now=None) -> list[Post]:
    """
    Parse one page of a user's post search results.
    Each post needs a forum link (viewforum.php?id=N); posts without one are skipped.
    Unparseable dates fall back to `now`.
    """
    now = now or utcnow()
    soup = BeautifulSoup(html, "html.parser")
    posts = []
    for block in soup.select("div.post"):
        forum_link = block.select_one('h3 a[href*="viewforum.php"]') or \
            block.select_one('a[href*="viewforum.php"]')
        if forum_link is None:
            continue
        match = _FORUM_ID_RE.search(forum_link.get("href", ""))
        if not match:
            continue

        date_link = block.select_one('h3 a[href*="viewtopic.php"]')
        date_text = _clean(date_link.get_text()) if date_link else ""
        timestamp = parse_forum_date(date_text, now)
        if timestamp is None:
            logger.debug(f"Unparseable post date {date_text!r}, using now")
            timestamp = now

        body = block.select_one(".post-content")
        word_count = len(_WORD_RE.findall(body.get_text(" "))) if body else 0

        posts.append(Post(
            section_id=int(match.group(1)),
            timestamp=timestamp,
            word_count=word_count,
            section_name=_clean(forum_link.get_text()),
        ))
    return posts


def has_next_page(html: str, current_page: int) -> bool:
    """True if the page links to page current_page + 1."""
    soup = BeautifulSoup(html, "html.parser")
    if soup.select_one('a[rel="next"]'):
        return True
    wanted = str(current_page + 1)
    for link in soup.find_all("a", href=True):
        query = parse_qs(urlparse(link["href"]).query)
        if query.get("p", [None])[0] == wanted or query.get("page", [None])[0] == wanted:
            return True
    return False
