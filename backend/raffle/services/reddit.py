"""
Reddit thread retrieval for raffle runs.

Uses the public `.json` view of a thread; no OAuth.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import requests

from raffle.config import settings

logger = logging.getLogger(__name__)

_THREAD_URL = re.compile(r'reddit\.com/r/([^/]+)/comments/([^/]+)')
_TITLE_SPOTS = re.compile(r'#?\s*(\d{1,5})\s*spots?\b', re.IGNORECASE)
_RAFFLE_TOOL_BLOCK = re.compile(
    r'<raffle-tool>([\s\S]*?)</raffle-(?:tool|toll)>',
    re.IGNORECASE,
)


class InvalidRedditUrl(ValueError):
    """Raised when a URL does not point at a Reddit comment thread."""


class RedditFetchError(Exception):
    """Raised when Reddit does not return a usable thread."""


@dataclass
class RedditComment:
    comment_id: str
    author: str
    body: str
    permalink: str


@dataclass
class RedditThread:
    title: str = ""
    selftext: str = ""
    comments: List[RedditComment] = field(default_factory=list)


def parse_reddit_url(url: Optional[str]) -> Optional[Tuple[str, str]]:
    """
    Extract (subreddit, post_id) from a thread URL.

    Examples:
        >>> parse_reddit_url("https://www.reddit.com/r/pokemonraffles/comments/abc123/title/")
        ('pokemonraffles', 'abc123')
    """
    match = _THREAD_URL.search((url or '').strip())
    if not match:
        return None
    return match.group(1), match.group(2)


def extract_title_spots(title: Optional[str]) -> Optional[int]:
    """Total spot count announced in a post title ("... 40 spots ...")."""
    match = _TITLE_SPOTS.search(title or '')
    if not match:
        return None
    return int(match.group(1))


def extract_raffle_tool_block(selftext: Optional[str]) -> Optional[str]:
    """Text between <raffle-tool> tags in the post body, if any."""
    match = _RAFFLE_TOOL_BLOCK.search(selftext or '')
    if not match:
        return None
    return match.group(1).strip()


class RedditClient:
    """Thin wrapper over the Reddit JSON endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.REDDIT_BASE_URL).rstrip('/')
        self.user_agent = user_agent or settings.REDDIT_USER_AGENT
        self.timeout = timeout or settings.REDDIT_TIMEOUT_SECONDS

    def fetch_thread(self, subreddit: str, post_id: str) -> RedditThread:
        """
        Fetch a post and its top-level comments.

        Raises:
            RedditFetchError: non-2xx status, network failure or bad payload
        """
        url = f"{self.base_url}/r/{subreddit}/comments/{post_id}.json"

        try:
            response = requests.get(
                url,
                params={'raw_json': 1},
                headers={'User-Agent': self.user_agent},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("Reddit request failed", extra={
                "subreddit": subreddit,
                "post_id": post_id,
                "error": str(e)
            })
            raise RedditFetchError(f"Reddit fetch failed: {e}") from e

        if not response.ok:
            raise RedditFetchError(f"Reddit fetch failed: {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise RedditFetchError("Reddit returned invalid JSON") from e

        thread = self._thread_from_listing(payload)
        logger.info("Fetched Reddit thread", extra={
            "subreddit": subreddit,
            "post_id": post_id,
            "comment_count": len(thread.comments)
        })
        return thread

    @staticmethod
    def _thread_from_listing(payload: Any) -> RedditThread:
        if not isinstance(payload, list) or not payload:
            raise RedditFetchError("Unexpected Reddit payload")

        post = _children(payload[0])
        post_data: Dict[str, Any] = post[0].get('data', {}) if post else {}

        comments = []
        if len(payload) > 1:
            for child in _children(payload[1]):
                if child.get('kind') != 't1':
                    continue
                data = child.get('data', {})
                comments.append(RedditComment(
                    comment_id=data.get('id', ''),
                    author=data.get('author') or '',
                    body=data.get('body') or '',
                    permalink=f"https://reddit.com{data.get('permalink', '')}",
                ))

        return RedditThread(
            title=post_data.get('title') or '',
            selftext=post_data.get('selftext') or '',
            comments=comments,
        )


def _children(listing: Any) -> List[Dict[str, Any]]:
    if not isinstance(listing, dict):
        return []
    return listing.get('data', {}).get('children') or []
