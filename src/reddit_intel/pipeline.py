"""ChannelPipeline: fetch -> transform -> ingest for one channel.

State machine (strictly forward, one event per transition):

    pending -> started -> fetching -> ingesting -> completed
                  \\          \\           \\
                   +----------+-----------+-----> failed

"completed" is reached once the ingestor returns, even if some documents
failed. "failed" means a channel-level error: AuthError, a feed page that
could not be fetched, or an unavailable store. The pipeline never raises;
every outcome is reported through its ChannelRun and its events.
"""

from typing import Callable, Optional

import requests

from reddit_intel.backend.integrations.reddit_api import RedditClient
from reddit_intel.backend.integrations.vector_store import VectorStoreClient
from reddit_intel.backend.utils.errors import IngestionError, StoreUnavailableError
from reddit_intel.backend.utils.logging_config import get_logger
from reddit_intel.config import Settings, validate_channel_config
from reddit_intel.events import Event, channel_completed, channel_error, channel_progress
from reddit_intel.fetcher import TEST_MODE_ITEM_CAP, ContentFetcher
from reddit_intel.ingest import BatchIngestor
from reddit_intel.models.job_models import ChannelRun, ChannelSpec, ChannelStats, ChannelStatus
from reddit_intel.transform import DocumentTransformer

logger = get_logger(__name__)


class ChannelPipeline:
    """Runs one channel end to end and reports progress through emit().

    Args:
        channel: The channel to process
        fetcher: ContentFetcher (or anything with fetch_window(cutoff, item_cap))
        store: VectorStoreClient used for the pre-ingest health check
        ingestor: BatchIngestor writing to the same store
        emit: Receives one event dict per state transition
        transformer: DocumentTransformer; defaults to one tagged with channel.platform
    """

    def __init__(
        self,
        channel: ChannelSpec,
        fetcher,
        store,
        ingestor,
        emit: Optional[Callable[[Event], None]] = None,
        transformer: Optional[DocumentTransformer] = None,
    ):
        self.channel = channel
        self.fetcher = fetcher
        self.store = store
        self.ingestor = ingestor
        self.emit = emit or (lambda event: None)
        self.transformer = transformer or DocumentTransformer(channel.platform)

    def _advance(self, run: ChannelRun, status: ChannelStatus, **extra) -> None:
        run.advance(status)
        self.emit(channel_progress(run.channel_name, status.value, **extra))

    def run(self, cutoff: float, test_mode: bool = False) -> ChannelRun:
        """Process the channel for posts created at or after cutoff.

        Args:
            cutoff: Start of the window (Unix seconds)
            test_mode: Cap at 5 posts and mark store writes as test

        Returns:
            The terminal ChannelRun ("completed" or "failed")
        """
        run = ChannelRun(channel_name=self.channel.name, platform=self.channel.platform)
        log = logger.bind(channel=self.channel.name)

        try:
            self._advance(run, ChannelStatus.STARTED)
            log.info("channel_started", test_mode=test_mode)

            self._advance(run, ChannelStatus.FETCHING)
            item_cap = TEST_MODE_ITEM_CAP if test_mode else None
            items = list(self.fetcher.fetch_window(cutoff, item_cap=item_cap))
            run.posts_count = len(items)

            if not items:
                log.info("channel_no_posts_in_window")
                run.advance(ChannelStatus.COMPLETED)
                self.emit(channel_completed(run.channel_name, run.stats.to_dict()))
                return run

            if not self.store.health():
                raise StoreUnavailableError("Vector DB connection test failed")

            documents = []
            for item in items:
                documents.extend(self.transformer.flatten(item))

            self._advance(run, ChannelStatus.INGESTING, posts_count=len(items))
            log.info("channel_ingesting", posts=len(items), documents=len(documents))

            summary = self.ingestor.ingest(documents, test_mode=test_mode)

            run.stats = ChannelStats(
                posts=summary.posts,
                comments=summary.comments,
                successful=summary.successful,
                failed=summary.failed,
            )
            run.errors = summary.errors
            run.advance(ChannelStatus.COMPLETED)
            self.emit(channel_completed(run.channel_name, run.stats.to_dict()))
            log.info("channel_completed", **run.stats.to_dict())

        except Exception as e:
            # Channel boundary: nothing escapes into sibling channels
            log.error(
                "channel_failed",
                status=run.status.value,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=not isinstance(e, IngestionError),
            )
            run.error = str(e)
            if not run.status.is_terminal:
                run.advance(ChannelStatus.FAILED)
            self.emit(channel_error(run.channel_name, str(e)))

        return run


def build_channel_pipeline(
    channel: ChannelSpec,
    settings: Settings,
    emit: Optional[Callable[[Event], None]] = None,
) -> ChannelPipeline:
    """Wire a ChannelPipeline with real HTTP clients from settings.

    Each pipeline gets its own sessions, credential and rate limiter.

    Raises:
        ConfigError: If the channel is missing its Reddit credentials
    """
    validate_channel_config(channel)
    reddit = RedditClient(
        channel.client_id,
        channel.client_secret,
        channel.name,
        session=requests.Session(),
        user_agent=settings.reddit_user_agent,
        min_interval=settings.request_interval,
    )
    store = VectorStoreClient(
        api_url=settings.vectordb_api_url,
        token=settings.vectordb_api_token,
        session=requests.Session(),
    )
    return ChannelPipeline(
        channel,
        fetcher=ContentFetcher(reddit),
        store=store,
        ingestor=BatchIngestor(store, pacing_delay=settings.ingest_delay),
        emit=emit,
    )
