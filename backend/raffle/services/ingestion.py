"""
Run ingestion: fetch a Reddit raffle thread, parse every comment and store
the results as the immutable parser baseline for a new run.
"""

import logging
from typing import Any, Dict, List, Optional

from raffle.config import settings
from raffle.services.access import AccessService
from raffle.services.parser import PARSER_VERSION, CommentParser
from raffle.services.reddit import (
    InvalidRedditUrl,
    RedditClient,
    RedditThread,
    extract_raffle_tool_block,
    extract_title_spots,
    parse_reddit_url,
)
from raffle.utils.supabase import get_supabase_client

logger = logging.getLogger(__name__)


class RunIngestionService:
    """Service for creating runs from Reddit threads."""

    def __init__(
        self,
        supabase=None,
        reddit: Optional[RedditClient] = None,
        parser: Optional[CommentParser] = None,
        access: Optional[AccessService] = None,
    ):
        """Initialize ingestion service."""
        self.supabase = supabase or get_supabase_client()
        self.reddit = reddit or RedditClient()
        self.parser = parser or CommentParser()
        self.access = access or AccessService(self.supabase)

    def create_run(self, url: str) -> Dict[str, Any]:
        """
        Create a run for a Reddit thread.

        Steps:
        1. Validate the URL and fetch the thread
        2. Insert the run row, tagged with the parser version
        3. Issue the owner's admin code
        4. Parse and upsert every top-level comment

        Args:
            url: Reddit thread URL

        Returns:
            Summary with run_id, share_url and the one-time admin_code

        Raises:
            InvalidRedditUrl: URL is not a thread URL
            RedditFetchError: thread could not be fetched
            RuntimeError: run row could not be created
        """
        post_url = (url or '').strip()
        parsed_url = parse_reddit_url(post_url)
        if not parsed_url:
            raise InvalidRedditUrl("Invalid Reddit post URL")

        subreddit, post_id = parsed_url
        thread = self.reddit.fetch_thread(subreddit, post_id)

        total_spots_from_title = extract_title_spots(thread.title)
        raffle_tool_block = extract_raffle_tool_block(thread.selftext)

        response = self.supabase.table('runs').insert({
            'subreddit': subreddit,
            'post_id': post_id,
            'post_url': post_url,
            'title': thread.title,
            'total_spots_from_title': total_spots_from_title,
            'raffle_tool_block': raffle_tool_block,
            'parser_version': PARSER_VERSION,
        }).execute()

        if not response.data:
            raise RuntimeError("Failed to create run")

        run_id = response.data[0]['id']
        admin_code = self.access.issue_code(run_id, 'admin', label='owner')

        rows = self.build_comment_rows(run_id, subreddit, post_id, thread)
        self._upsert_comments(run_id, rows)

        logger.info("Created run", extra={
            "run_id": run_id,
            "subreddit": subreddit,
            "post_id": post_id,
            "comments": len(rows),
            "needs_review": sum(1 for r in rows if r['needs_review'])
        })

        return {
            'run_id': run_id,
            'share_url': f"{settings.PUBLIC_BASE_URL.rstrip('/')}/r/{run_id}",
            'admin_code': admin_code,
            'title': thread.title,
            'total_spots_from_title': total_spots_from_title,
            'raffle_tool_block': raffle_tool_block,
        }

    def build_comment_rows(
        self,
        run_id: str,
        subreddit: str,
        post_id: str,
        thread: RedditThread,
    ) -> List[Dict[str, Any]]:
        """Parse each comment into a `comments` row."""
        rows = []
        for comment in thread.comments:
            parsed = self.parser.parse(comment.body, comment.author, comment.comment_id)
            rows.append(parsed.to_row(
                run_id,
                permalink=comment.permalink,
                extra={'post_id': post_id, 'subreddit': subreddit},
            ))
        return rows

    def _upsert_comments(self, run_id: str, rows: List[Dict[str, Any]]) -> None:
        if not rows:
            return
        try:
            self.supabase.table('comments').upsert(rows).execute()
        except Exception as e:
            # The run stays usable; comments can be re-ingested
            logger.error("Comments upsert failed", extra={
                "run_id": run_id,
                "count": len(rows),
                "error": str(e)
            })

    def get_run(self, run_id: str) -> Optional[Dict[str, Any]]:
        """Run row plus its comments with embedded overrides."""
        run_response = self.supabase.table('runs').select('*').eq('id', run_id).limit(1).execute()
        if not run_response.data:
            return None

        comments_response = self.supabase.table('comments').select(
            '*, comment_overrides(skipped, override_spots, override_payer, override_beneficiary, version)'
        ).eq('run_id', run_id).execute()

        return {
            'run': run_response.data[0],
            'comments': comments_response.data or [],
        }
