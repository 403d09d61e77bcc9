"""
Shared pytest fixtures and builders for the ingestion tests.

HTTP is never touched: sessions are MagicMocks returning real requests.Response
objects, and every component that sleeps takes an injected sleep callable so
timing assertions are deterministic.
"""

import json
import time
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest
import requests
from requests.structures import CaseInsensitiveDict


def make_response(
    status_code: int = 200,
    body: Any = None,
    headers: Optional[Dict[str, str]] = None,
) -> requests.Response:
    """Build a real requests.Response with a JSON (or text) body."""
    response = requests.Response()
    response.status_code = status_code
    response.encoding = "utf-8"
    response.headers = CaseInsensitiveDict(headers or {})
    if body is None:
        response._content = b""
    elif isinstance(body, str):
        response._content = body.encode("utf-8")
    else:
        response._content = json.dumps(body).encode("utf-8")
    return response


def token_response(token: str = "token-1", expires_in: int = 3600) -> requests.Response:
    return make_response(200, {"access_token": token, "token_type": "bearer", "expires_in": expires_in})


def post_child(
    post_id: str,
    created_utc: float,
    author: str = "poster",
    title: Optional[str] = None,
    selftext: str = "post body",
    num_comments: int = 0,
    **extra: Any,
) -> Dict[str, Any]:
    """A t3 listing child as returned by /r/<sub>/new.json."""
    data = {
        "id": post_id,
        "title": title or f"Post {post_id}",
        "author": author,
        "selftext": selftext,
        "score": 10,
        "created_utc": created_utc,
        "permalink": f"/r/python/comments/{post_id}/post_{post_id}/",
        "num_comments": num_comments,
        "upvote_ratio": 0.9,
        "is_self": True,
        "domain": "self.python",
    }
    data.update(extra)
    return {"kind": "t3", "data": data}


def listing(children: List[Dict[str, Any]], after: Optional[str] = None) -> Dict[str, Any]:
    return {"kind": "Listing", "data": {"children": children, "after": after}}


def comment_child(
    comment_id: str,
    body: str = "a comment",
    author: str = "commenter",
    replies: Optional[List[Dict[str, Any]]] = None,
    post_id: str = "p1",
) -> Dict[str, Any]:
    """A t1 child. Reddit sends replies="" when a comment has none."""
    return {
        "kind": "t1",
        "data": {
            "id": comment_id,
            "author": author,
            "body": body,
            "score": 1,
            "created_utc": 1700000000,
            "permalink": f"/r/python/comments/{post_id}/x/{comment_id}/",
            "parent_id": f"t3_{post_id}",
            "replies": listing(replies) if replies else "",
        },
    }


def more_child(count: int = 5) -> Dict[str, Any]:
    return {"kind": "more", "data": {"count": count, "children": ["zz1", "zz2"]}}


def comments_response(post_id: str, comments: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Two-element body of /comments/<id>.json: [post listing, comment listing]."""
    return [listing([post_child(post_id, 1700000000)]), listing(comments)]


class FakeRedditClient:
    """Stands in for RedditClient: serves canned feed pages and comment trees.

    pages: list of listing dicts, returned in order by fetch_new_posts.
    comments: post id -> comment children, or an exception to raise.
    """

    def __init__(self, pages, comments=None, subreddit="r/python"):
        self.pages = list(pages)
        self.comments = comments or {}
        self.subreddit_display = subreddit
        self.feed_calls = []
        self.comment_calls = []

    def fetch_new_posts(self, limit=100, before=None, after=None):
        self.feed_calls.append(after)
        if not self.pages:
            return listing([])
        page = self.pages.pop(0)
        if isinstance(page, Exception):
            raise page
        return page

    def fetch_post_comments(self, post_id, limit=500, depth=10):
        self.comment_calls.append(post_id)
        tree = self.comments.get(post_id, [])
        if isinstance(tree, Exception):
            raise tree
        return comments_response(post_id, tree)


class FakeStore:
    """Stands in for VectorStoreClient.

    failures: document id -> exception raised when that document is written.
    """

    def __init__(self, failures=None, healthy=True):
        self.failures = failures or {}
        self.healthy = healthy
        self.ingested = []
        self.health_calls = 0

    def health(self):
        self.health_calls += 1
        return self.healthy

    def ingest_document(self, document, test_mode=False):
        if document.id in self.failures:
            raise self.failures[document.id]
        self.ingested.append((document.id, test_mode))
        return {"base_id": f"remote-{document.id}", "chunks_created": 1}


class StubPipeline:
    """Emits the normal event sequence and returns a completed run with fixed stats."""

    def __init__(self, channel, emit, stats=None, fail=False, hold=0.0, tracker=None):
        self.channel = channel
        self.emit = emit
        self.stats = stats or {"posts": 1, "comments": 2, "successful": 3, "failed": 0}
        self.fail = fail
        self.hold = hold
        self.tracker = tracker

    def run(self, cutoff, test_mode=False):
        from reddit_intel.events import channel_completed, channel_error, channel_progress
        from reddit_intel.models.job_models import ChannelRun, ChannelStats, ChannelStatus

        if self.tracker:
            self.tracker.enter()
        try:
            run = ChannelRun(channel_name=self.channel.name, platform=self.channel.platform)
            for status in (ChannelStatus.STARTED, ChannelStatus.FETCHING):
                run.advance(status)
                self.emit(channel_progress(self.channel.name, status.value))
            time.sleep(self.hold)

            if self.fail:
                run.advance(ChannelStatus.FAILED)
                run.error = "upstream exploded"
                self.emit(channel_error(self.channel.name, run.error))
                return run

            run.advance(ChannelStatus.INGESTING)
            self.emit(channel_progress(self.channel.name, "ingesting", posts_count=self.stats["posts"]))
            run.stats = ChannelStats(**self.stats)
            run.advance(ChannelStatus.COMPLETED)
            self.emit(channel_completed(self.channel.name, run.stats.to_dict()))
            return run
        finally:
            if self.tracker:
                self.tracker.leave()


@pytest.fixture
def recorded_sleeps():
    """A list that collects every delay passed to the injected sleep."""
    return []


@pytest.fixture
def fake_sleep(recorded_sleeps):
    return recorded_sleeps.append


@pytest.fixture
def mock_session():
    """A requests.Session stand-in; set .request / .post side effects per test."""
    return MagicMock(spec=requests.Session)
