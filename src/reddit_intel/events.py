"""Progress events and the subscriber broadcast list.

Events are plain JSON-ready dicts with a "type" key:

    job_created        {job}
    job_started        {job}
    job_completed      {job}
    job_deleted        {job_id}
    channel_progress   {job_id, channel, status, [posts_count]}
    channel_completed  {job_id, channel, stats}
    channel_error      {job_id, channel, error}

Events from different channels interleave arbitrarily; only the per-channel
status progression is ordered.
"""

import threading
from typing import Any, Callable, Dict, List

from reddit_intel.backend.utils.logging_config import get_logger

logger = get_logger(__name__)

JOB_CREATED = "job_created"
JOB_STARTED = "job_started"
JOB_COMPLETED = "job_completed"
JOB_DELETED = "job_deleted"
CHANNEL_PROGRESS = "channel_progress"
CHANNEL_COMPLETED = "channel_completed"
CHANNEL_ERROR = "channel_error"

Event = Dict[str, Any]
Subscriber = Callable[[Event], None]


def channel_progress(channel: str, status: str, **extra: Any) -> Event:
    event = {"type": CHANNEL_PROGRESS, "channel": channel, "status": status}
    event.update(extra)
    return event


def channel_completed(channel: str, stats: Dict[str, int]) -> Event:
    return {"type": CHANNEL_COMPLETED, "channel": channel, "status": "completed", "stats": stats}


def channel_error(channel: str, error: str) -> Event:
    return {"type": CHANNEL_ERROR, "channel": channel, "status": "failed", "error": error}


class EventBroadcaster:
    """Fan-out of events to subscriber callbacks.

    Subscribers are called synchronously on the publishing thread and must
    hand work off rather than block (the WebSocket subscriber enqueues onto its
    event loop). A subscriber that raises is logged and skipped; it never stops
    delivery to the others or crashes the publisher.

    Example:
        broadcaster = EventBroadcaster()
        unsubscribe = broadcaster.subscribe(print)
        broadcaster.publish({"type": "job_created", "job": {...}})
        unsubscribe()
    """

    def __init__(self):
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event: Event) -> None:
        with self._lock:
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(event)
            except Exception as e:
                logger.error(
                    "subscriber_notify_failed",
                    event_type=event.get("type"),
                    error=str(e),
                    error_type=type(e).__name__,
                )
