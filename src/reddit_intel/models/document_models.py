"""Document models: the flat, store-ready representation of posts and comments."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Document:
    """One ingestable unit: a root post or a single reply.

    The id is unique within (channel_tag, source_name) and stable across runs,
    so re-ingesting the same content addresses the same remote record.

    Attributes:
        channel_tag: Platform tag of the channel (e.g. "python" or a custom tag)
        source_name: Upstream source label ("Reddit")
        id: Stable document id (post id, or "<post id>_<comment id>" for replies)
        timestamp: Creation time as ISO 8601 UTC string
        deeplink: Absolute URL to the post or comment
        author: Author username
        title: Post title ("" for replies)
        body: Text content
        is_reply: False for the root post, True for every reply
        reply_count: Upstream comment count (root posts only)
        score: Reddit score
    """
    channel_tag: str
    source_name: str
    id: str
    timestamp: str
    deeplink: str
    author: str
    title: str
    body: str
    is_reply: bool
    reply_count: Optional[int] = None
    score: Optional[int] = None

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the JSON body accepted by the store's /ingest endpoint."""
        payload = {
            "platform": self.channel_tag,
            "source": self.source_name,
            "id": self.id,
            "timestamp": self.timestamp,
            "deeplink": self.deeplink,
            "author": self.author,
            "title": self.title,
            "body": self.body,
            "isComment": self.is_reply,
        }
        if self.reply_count is not None:
            payload["comments"] = self.reply_count
        if self.score is not None:
            payload["likes"] = self.score
        return payload


@dataclass
class IngestOutcome:
    """Result of writing one document to the store. Produced once per document per run."""
    document_id: str
    success: bool
    remote_id: Optional[str] = None
    chunks: Optional[int] = None
    error: Optional[str] = None
    details: Any = None


@dataclass
class IngestSummary:
    """Per-batch tally returned by BatchIngestor.ingest().

    posts and comments count successfully ingested documents only; every
    failed document is counted in failed and described in errors.
    """
    total: int = 0
    successful: int = 0
    failed: int = 0
    posts: int = 0
    comments: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
