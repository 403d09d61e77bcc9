"""Reddit Integration Module

Endpoint wrappers for the Reddit OAuth API, one client per channel. Every call
goes through a RequestExecutor carrying the channel's own ClientCredentialsAuth
and RateLimiter (~60 requests/minute), so channels never share credentials or
pacing.
"""

import time
from typing import Any, Callable, Dict, Optional

import requests

from reddit_intel.backend.integrations.auth import DEFAULT_USER_AGENT, ClientCredentialsAuth
from reddit_intel.backend.integrations.executor import REDDIT_POLICY, RequestExecutor, RequestSpec
from reddit_intel.backend.integrations.rate_limit import RateLimiter
from reddit_intel.backend.utils.logging_config import get_logger

logger = get_logger(__name__)

REDDIT_API_BASE = "https://oauth.reddit.com"


def normalize_subreddit(name: str) -> str:
    """Strip an optional "r/" prefix: "r/python" -> "python"."""
    name = name.strip()
    return name[2:] if name.startswith("r/") else name


class RedditClient:
    """Reddit API client for one subreddit.

    Example:
        client = RedditClient("client-id", "secret", "r/python")
        page = client.fetch_new_posts(limit=100)
        comments = client.fetch_post_comments(page["data"]["children"][0]["data"]["id"])
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        subreddit: str,
        session: Optional[requests.Session] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        min_interval: float = 1.0,
        base_url: str = REDDIT_API_BASE,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.subreddit = normalize_subreddit(subreddit)
        self.subreddit_display = subreddit
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()

        self.auth = ClientCredentialsAuth(
            client_id,
            client_secret,
            channel=subreddit,
            session=self.session,
            user_agent=user_agent,
        )
        self.rate_limiter = RateLimiter(min_interval=min_interval, sleep=sleep)
        self.executor = RequestExecutor(
            self.session,
            self.auth,
            rate_limiter=self.rate_limiter,
            policy=REDDIT_POLICY,
            user_agent=user_agent,
            sleep=sleep,
        )

    def _get(self, path: str, params: Dict[str, Any]) -> Any:
        request = RequestSpec(
            method="GET",
            url=f"{self.base_url}{path}",
            params={**params, "raw_json": 1},
        )
        return self.executor.execute(request)

    def fetch_new_posts(
        self,
        limit: int = 100,
        before: Optional[str] = None,
        after: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Fetch one page of the subreddit's newest-first listing.

        Args:
            limit: Page size (Reddit caps this at 100)
            before: Fullname to page backward from
            after: Continuation token from the previous page

        Returns:
            Listing JSON: {"kind": "Listing", "data": {"children": [...], "after": ...}}
        """
        params: Dict[str, Any] = {"limit": limit, "t": "all"}
        if before:
            params["before"] = before
        if after:
            params["after"] = after

        logger.debug(
            "fetching_new_posts",
            subreddit=self.subreddit,
            limit=limit,
            before=before,
            after=after,
        )
        return self._get(f"/r/{self.subreddit}/new.json", params)

    def fetch_post_comments(self, post_id: str, limit: int = 500, depth: int = 10) -> Any:
        """Fetch a post together with its comment tree.

        Returns:
            Two-element list: [post listing, comment listing]
        """
        logger.debug("fetching_post_comments", subreddit=self.subreddit, post_id=post_id)
        return self._get(
            f"/r/{self.subreddit}/comments/{post_id}.json",
            {"limit": limit, "depth": depth, "sort": "top"},
        )
