from reddit_intel.models.document_models import Document, IngestOutcome, IngestSummary
from reddit_intel.models.job_models import (
    ChannelRun,
    ChannelSpec,
    ChannelStats,
    ChannelStatus,
    Job,
    JobParams,
    JobStatus,
)
from reddit_intel.models.reddit_models import RawItem, RawReply, count_replies, iter_replies

__all__ = [
    "ChannelRun",
    "ChannelSpec",
    "ChannelStats",
    "ChannelStatus",
    "Document",
    "IngestOutcome",
    "IngestSummary",
    "Job",
    "JobParams",
    "JobStatus",
    "RawItem",
    "RawReply",
    "count_replies",
    "iter_replies",
]
