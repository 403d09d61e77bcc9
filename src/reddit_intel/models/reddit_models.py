"""Reddit data models for the Reddit Intelligence Daemon.

These are the raw, fetched shapes produced by the ContentFetcher. They are
transient: created and consumed within a single channel run, never persisted.

Data Models:
    RawReply - one comment in a post's reply tree (nested replies)
    RawItem  - one post with its reply tree attached
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional


@dataclass
class RawReply:
    """A single comment in a post's reply tree.

    Replies form a tree rooted implicitly at the post. Removed/deleted
    comments are never represented; their children are attached to the
    nearest surviving ancestor instead.

    Attributes:
        id: Reddit comment ID (base36, no "t1_" prefix)
        author: Username of the comment author
        body: Comment text
        score: Reddit score (upvotes - downvotes)
        created_utc: Unix timestamp of comment creation
        permalink: Path portion of the comment URL ("/r/.../comments/...")
        parent_id: Reddit fullname of the upstream parent ("t3_..." or "t1_...")
        depth: Nesting level in this tree (0 = direct reply to the post)
        replies: Nested replies in upstream order
    """
    id: str
    author: str
    body: str
    score: int
    created_utc: float
    permalink: str
    parent_id: str
    depth: int = 0
    replies: List["RawReply"] = field(default_factory=list)


@dataclass
class RawItem:
    """A Reddit post with its reply tree.

    Attributes:
        id: Reddit post ID (base36, no "t3_" prefix)
        title: Post title
        author: Username of the post author
        body: Post self text (empty for link posts)
        score: Reddit score
        created_utc: Unix timestamp of post creation
        permalink: Path portion of the post URL
        num_comments: Comment count reported by Reddit (may exceed len(replies))
        upvote_ratio: Fraction of upvotes
        flair: Link flair text ("" if none)
        awards: Number of awardings
        is_self: True for text posts, False for link posts
        domain: Domain of the linked content
        replies: Top-level replies, each carrying its own nested replies
    """
    id: str
    title: str
    author: str
    body: str
    score: int
    created_utc: float
    permalink: str
    num_comments: int = 0
    upvote_ratio: Optional[float] = None
    flair: str = ""
    awards: int = 0
    is_self: bool = True
    domain: str = ""
    replies: List[RawReply] = field(default_factory=list)

    @property
    def url(self) -> str:
        return f"https://reddit.com{self.permalink}"


def iter_replies(replies: List[RawReply]) -> Iterator[RawReply]:
    """Yield every reply in the tree, depth-first, in upstream order.

    Uses an explicit stack so that pathological reply chains cannot exhaust
    the interpreter's recursion limit.
    """
    stack = list(reversed(replies))
    while stack:
        reply = stack.pop()
        yield reply
        stack.extend(reversed(reply.replies))


def count_replies(replies: List[RawReply]) -> int:
    """Count all replies in the tree, at every depth."""
    return sum(1 for _ in iter_replies(replies))
