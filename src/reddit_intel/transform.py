"""Post + reply tree -> flat, uniquely identified documents.

Id scheme:
    root post  -> "<post id>"
    any reply  -> "<post id>_<comment id>"

Every reply is qualified with its root post id, regardless of depth. Post and
comment ids are underscore-free base36 strings, so the scheme is injective
within a channel and identical across runs over the same content.
"""

from datetime import datetime, timezone
from typing import List

from reddit_intel.models.document_models import Document
from reddit_intel.models.reddit_models import RawItem, iter_replies

SOURCE_NAME = "Reddit"
REDDIT_WEB_BASE = "https://reddit.com"


def to_iso8601(created_utc: float) -> str:
    """Unix seconds -> "2026-02-10T12:34:56.000Z"."""
    moment = datetime.fromtimestamp(created_utc, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def reply_document_id(root_id: str, reply_id: str) -> str:
    return f"{root_id}_{reply_id}"


def flatten(item: RawItem, channel_tag: str, source_name: str = SOURCE_NAME) -> List[Document]:
    """Convert one post and its reply tree into documents.

    Pure and deterministic. Emits exactly 1 + (number of replies) documents:
    the root first, then one per reply in depth-first order.
    """
    documents = [
        Document(
            channel_tag=channel_tag,
            source_name=source_name,
            id=item.id,
            timestamp=to_iso8601(item.created_utc),
            deeplink=item.url,
            author=item.author,
            title=item.title,
            body=item.body or item.title,
            is_reply=False,
            reply_count=item.num_comments,
            score=item.score,
        )
    ]

    for reply in iter_replies(item.replies):
        documents.append(
            Document(
                channel_tag=channel_tag,
                source_name=source_name,
                id=reply_document_id(item.id, reply.id),
                timestamp=to_iso8601(reply.created_utc),
                deeplink=f"{REDDIT_WEB_BASE}{reply.permalink}",
                author=reply.author,
                title="",
                body=reply.body,
                is_reply=True,
                score=reply.score,
            )
        )

    return documents


class DocumentTransformer:
    """Binds a channel tag and source name to flatten()."""

    def __init__(self, channel_tag: str, source_name: str = SOURCE_NAME):
        self.channel_tag = channel_tag
        self.source_name = source_name

    def flatten(self, item: RawItem) -> List[Document]:
        return flatten(item, self.channel_tag, self.source_name)
