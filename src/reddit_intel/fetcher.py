"""Cutoff-bounded feed pagination and reply-tree flattening.

The newest-first feed is walked backward in time one page at a time. The walk
ends at the first post older than the cutoff (the feed is time-ordered, so no
later post can be inside the window), when the item cap is reached, or when
the feed runs out of pages.

Failure semantics:
    - A failed feed page propagates: pagination cannot be resumed blindly.
    - A failed comment fetch is logged and the post is emitted with zero
      replies. AuthError is the exception: credentials are channel-wide, so it
      propagates like a page failure.
    - "Load more comments" placeholders are not expanded. This keeps request
      volume (and rate-limit exposure) at one comment request per post, at the
      cost of completeness on very large threads.
"""

import time
from typing import Any, Dict, Iterator, List, Optional

from reddit_intel.backend.utils.errors import AuthError, IngestionError
from reddit_intel.backend.utils.logging_config import get_logger
from reddit_intel.models.reddit_models import RawItem, RawReply, count_replies

logger = get_logger(__name__)

DELETED_AUTHOR = "[deleted]"
REMOVED_BODIES = frozenset({"[deleted]", "[removed]"})

DEFAULT_PAGE_SIZE = 100
TEST_MODE_ITEM_CAP = 5


def calculate_cutoff(
    hours: Optional[float] = None,
    days: Optional[float] = None,
    now: Optional[float] = None,
) -> int:
    """Return the Unix timestamp (seconds) of the start of the window.

    Raises:
        ValueError: If neither hours nor days is given
    """
    if now is None:
        now = time.time()

    if hours:
        window = hours * 60 * 60
    elif days:
        window = days * 24 * 60 * 60
    else:
        raise ValueError("Must specify either hours or days")

    return int(now - window)


def _listing_children(listing: Any) -> List[Dict[str, Any]]:
    """Children of a Reddit Listing, or [] for anything else ("" replies, None)."""
    if not isinstance(listing, dict) or listing.get("kind") != "Listing":
        return []
    return (listing.get("data") or {}).get("children") or []


def is_removed_post(post: Dict[str, Any]) -> bool:
    return post.get("author") == DELETED_AUTHOR or post.get("selftext") in REMOVED_BODIES


def is_removed_comment(comment: Dict[str, Any]) -> bool:
    return comment.get("author") == DELETED_AUTHOR or comment.get("body") in REMOVED_BODIES


def parse_post(post: Dict[str, Any]) -> RawItem:
    """Map the "data" object of a t3 listing child to a RawItem (without replies)."""
    return RawItem(
        id=post["id"],
        title=post.get("title", ""),
        author=post.get("author", DELETED_AUTHOR),
        body=post.get("selftext") or "",
        score=post.get("score", 0),
        created_utc=post.get("created_utc", 0),
        permalink=post.get("permalink", ""),
        num_comments=post.get("num_comments", 0),
        upvote_ratio=post.get("upvote_ratio"),
        flair=post.get("link_flair_text") or "",
        awards=len(post.get("all_awardings") or []),
        is_self=bool(post.get("is_self", True)),
        domain=post.get("domain") or "",
    )


def build_reply_tree(listing: Any) -> List[RawReply]:
    """Convert a Reddit comment Listing into a tree of RawReply.

    Depth-first, preserving upstream order. Removed/deleted comments are
    dropped but their children are kept, attached where the removed comment
    was. "more" placeholders are skipped.

    Walks the tree with an explicit stack of child iterators, so depth is
    bounded by memory, not by the recursion limit.

    Args:
        listing: The second element of a /comments/<id>.json response

    Returns:
        Top-level replies, each with nested replies populated
    """
    roots: List[RawReply] = []
    stack = [(iter(_listing_children(listing)), roots, 0)]

    while stack:
        children, target, depth = stack[-1]
        node = next(children, None)
        if node is None:
            stack.pop()
            continue

        kind = node.get("kind")
        data = node.get("data") or {}

        if kind == "more":
            logger.debug("more_comments_skipped", count=data.get("count", 0), depth=depth)
            continue
        if kind != "t1":
            continue

        nested = _listing_children(data.get("replies"))

        if is_removed_comment(data):
            # Children take the removed comment's place in its parent
            stack.append((iter(nested), target, depth))
            continue

        reply = RawReply(
            id=data["id"],
            author=data.get("author", DELETED_AUTHOR),
            body=data.get("body", ""),
            score=data.get("score", 0),
            created_utc=data.get("created_utc", 0),
            permalink=data.get("permalink", ""),
            parent_id=data.get("parent_id", ""),
            depth=depth,
        )
        target.append(reply)
        stack.append((iter(nested), reply.replies, depth + 1))

    return roots


class ContentFetcher:
    """Walks one channel's newest-first feed back to a cutoff.

    Example:
        fetcher = ContentFetcher(RedditClient(client_id, secret, "r/python"))
        for item in fetcher.fetch_window(calculate_cutoff(hours=24)):
            print(item.id, len(item.replies))
    """

    def __init__(self, client, page_size: int = DEFAULT_PAGE_SIZE):
        self.client = client
        self.page_size = page_size

    @property
    def channel(self) -> str:
        return getattr(self.client, "subreddit_display", "")

    def fetch_replies(self, post_id: str) -> List[RawReply]:
        """Fetch and flatten one post's reply tree; [] if the fetch fails.

        Raises:
            AuthError: Credentials were rejected (fatal for the channel)
        """
        try:
            response = self.client.fetch_post_comments(post_id)
        except AuthError:
            raise
        except IngestionError as e:
            logger.error(
                "comments_fetch_failed",
                channel=self.channel,
                post_id=post_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return []

        if not isinstance(response, list) or len(response) < 2:
            return []

        try:
            replies = build_reply_tree(response[1])
        except (KeyError, TypeError, AttributeError) as e:
            logger.error(
                "comments_parse_failed",
                channel=self.channel,
                post_id=post_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return []

        logger.debug(
            "comments_fetched",
            channel=self.channel,
            post_id=post_id,
            fetched_count=count_replies(replies),
        )
        return replies

    def fetch_window(self, cutoff: float, item_cap: Optional[int] = None) -> Iterator[RawItem]:
        """Lazily yield posts created at or after cutoff, newest first.

        The returned generator is finite and cannot be restarted.

        Args:
            cutoff: Earliest creation time (Unix seconds) still included
            item_cap: Stop after this many posts (None = unbounded)

        Raises:
            IngestionError: A feed page could not be fetched
        """
        if item_cap is not None and item_cap <= 0:
            return

        after = None
        emitted = 0
        pages = 0

        logger.info(
            "window_fetch_started",
            channel=self.channel,
            cutoff=cutoff,
            item_cap=item_cap,
        )

        while True:
            page = self.client.fetch_new_posts(limit=self.page_size, after=after)
            pages += 1
            page_data = (page or {}).get("data") or {}
            children = page_data.get("children") or []

            if not children:
                logger.info("feed_exhausted", channel=self.channel, pages=pages, emitted=emitted)
                return

            for child in children:
                if child.get("kind") != "t3":
                    continue
                post = child.get("data") or {}

                if is_removed_post(post):
                    continue

                if post.get("created_utc", 0) < cutoff:
                    logger.info(
                        "cutoff_reached",
                        channel=self.channel,
                        pages=pages,
                        emitted=emitted,
                    )
                    return

                item = parse_post(post)
                item.replies = self.fetch_replies(item.id)
                emitted += 1
                yield item

                if item_cap is not None and emitted >= item_cap:
                    logger.info("item_cap_reached", channel=self.channel, item_cap=item_cap)
                    return

            after = page_data.get("after")
            if not after:
                logger.info("feed_exhausted", channel=self.channel, pages=pages, emitted=emitted)
                return
