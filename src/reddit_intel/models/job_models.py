"""Job and channel-run models owned by the JobOrchestrator.

Data Models:
    ChannelSpec  - one enabled channel with its resolved credentials
    JobParams    - time window (hours XOR days) and test mode
    ChannelStats - posts/comments/successful/failed tally for one channel
    ChannelRun   - status, stats and errors of one channel within a job
    Job          - one orchestrated execution across all enabled channels
"""

import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


# Longest accepted fetch window (about 100 years)
MAX_WINDOW_DAYS = 36_500


class ChannelStatus(str, Enum):
    """Channel pipeline states, in their only legal order.

    pending -> started -> fetching -> ingesting -> completed | failed
    """
    PENDING = "pending"
    STARTED = "started"
    FETCHING = "fetching"
    INGESTING = "ingesting"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ChannelStatus.COMPLETED, ChannelStatus.FAILED)


_CHANNEL_STATUS_ORDER = {
    ChannelStatus.PENDING: 0,
    ChannelStatus.STARTED: 1,
    ChannelStatus.FETCHING: 2,
    ChannelStatus.INGESTING: 3,
    ChannelStatus.COMPLETED: 4,
    ChannelStatus.FAILED: 4,
}


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"


@dataclass
class ChannelSpec:
    """An enabled channel with the credentials needed to fetch it.

    Attributes:
        name: Subreddit as configured, with or without "r/" prefix
        platform: Tag written into every document's platform field
        client_id: Reddit application client ID
        client_secret: Reddit application client secret
    """
    name: str
    platform: str
    client_id: str = field(repr=False, default="")
    client_secret: str = field(repr=False, default="")


@dataclass
class JobParams:
    """Time window and mode for a job. Exactly one of hours/days is set."""
    hours: Optional[float] = None
    days: Optional[float] = None
    test_mode: bool = False

    def validate(self) -> None:
        """Raise ValueError unless exactly one positive window is given."""
        if not self.hours and not self.days:
            raise ValueError("Must specify either hours or days")
        if self.hours and self.days:
            raise ValueError("Cannot specify both hours and days")
        if self.hours is not None and self.hours <= 0:
            raise ValueError("hours must be a positive number")
        if self.days is not None and self.days <= 0:
            raise ValueError("days must be a positive number")
        for name, value in (("hours", self.hours), ("days", self.days)):
            if value is not None and not math.isfinite(value):
                raise ValueError(f"{name} must be a finite number")
        if self.days is not None and self.days > MAX_WINDOW_DAYS:
            raise ValueError(f"days must be at most {MAX_WINDOW_DAYS}")
        if self.hours is not None and self.hours > MAX_WINDOW_DAYS * 24:
            raise ValueError(f"hours must be at most {MAX_WINDOW_DAYS * 24}")

    @property
    def window_seconds(self) -> float:
        if self.hours:
            return self.hours * 60 * 60
        if self.days:
            return self.days * 24 * 60 * 60
        raise ValueError("Must specify either hours or days")

    @property
    def time_window(self) -> str:
        """Human label used in logs, e.g. "24_hours" or "7_days"."""
        if self.hours:
            return f"{self.hours:g}_hours"
        return f"{self.days:g}_days"

    def cutoff(self, now: Optional[float] = None) -> int:
        """Earliest creation timestamp (Unix seconds) still inside the window."""
        if now is None:
            now = time.time()
        return int(now - self.window_seconds)

    def to_dict(self) -> Dict[str, Any]:
        return {"hours": self.hours, "days": self.days, "test_mode": self.test_mode}


@dataclass
class ChannelStats:
    posts: int = 0
    comments: int = 0
    successful: int = 0
    failed: int = 0

    def __add__(self, other: "ChannelStats") -> "ChannelStats":
        return ChannelStats(
            posts=self.posts + other.posts,
            comments=self.comments + other.comments,
            successful=self.successful + other.successful,
            failed=self.failed + other.failed,
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "posts": self.posts,
            "comments": self.comments,
            "successful": self.successful,
            "failed": self.failed,
        }


@dataclass
class ChannelRun:
    """Outcome of one channel within a job.

    Status only ever moves forward; see ChannelStatus for the order.
    A run is "completed" even when individual documents failed; only
    channel-level fatal errors make it "failed".
    """
    channel_name: str
    platform: str
    status: ChannelStatus = ChannelStatus.PENDING
    stats: ChannelStats = field(default_factory=ChannelStats)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None
    posts_count: Optional[int] = None

    def advance(self, status: ChannelStatus) -> None:
        """Move to a later status.

        Raises:
            ValueError: If the run is already terminal or the move goes backwards
        """
        status = ChannelStatus(status)
        if self.status.is_terminal:
            raise ValueError(
                f"Channel {self.channel_name} is already {self.status.value}; "
                f"cannot move to {status.value}"
            )
        if _CHANNEL_STATUS_ORDER[status] <= _CHANNEL_STATUS_ORDER[self.status]:
            raise ValueError(
                f"Channel {self.channel_name} cannot move from "
                f"{self.status.value} to {status.value}"
            )
        self.status = status

    def to_dict(self) -> Dict[str, Any]:
        return {
            "channel": self.channel_name,
            "platform": self.platform,
            "status": self.status.value,
            "stats": self.stats.to_dict(),
            "errors": list(self.errors),
            "error": self.error,
            "posts_count": self.posts_count,
        }


@dataclass
class Job:
    """One orchestrated execution across all enabled channels.

    Mutated only by the orchestrator thread that runs it; immutable once
    status is "completed".
    """
    id: int
    params: JobParams
    channels: List[ChannelSpec]
    channel_runs: List[ChannelRun]
    status: JobStatus = JobStatus.PENDING
    created_at: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    total_stats: ChannelStats = field(default_factory=ChannelStats)

    @property
    def is_active(self) -> bool:
        return self.status in (JobStatus.PENDING, JobStatus.RUNNING)

    def to_summary(self) -> Dict[str, Any]:
        """JSON-ready snapshot used by events, the CLI and the HTTP API."""
        return {
            "id": self.id,
            "status": self.status.value,
            "channels": [run.to_dict() for run in self.channel_runs],
            "params": self.params.to_dict(),
            "created_at": self.created_at,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "total_stats": self.total_stats.to_dict(),
        }
