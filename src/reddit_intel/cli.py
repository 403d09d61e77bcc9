"""Command-line entry point: run one ingestion job over all enabled channels.

Usage:
    reddit-intel --hours 24
    reddit-intel --days 7 --test --config config/channels.json

Requires env vars: VECTORDB_API_TOKEN, REDDIT_CLIENT_ID, REDDIT_CLIENT_SECRET
(a .env file in the working directory is loaded first).

Exit code is 1 when every channel failed or setup failed, else 0.
"""

import argparse
import sys
import time
from typing import List, Optional

from reddit_intel.backend.utils.errors import ConfigError
from reddit_intel.backend.utils.logging_config import get_logger, setup_logging
from reddit_intel.config import (
    get_enabled_channels,
    load_channels_config,
    load_dotenv,
    load_settings,
)
from reddit_intel.events import CHANNEL_ERROR, CHANNEL_PROGRESS, Event
from reddit_intel.jobs import JobOrchestrator
from reddit_intel.models.job_models import ChannelStatus, Job, JobParams

logger = get_logger(__name__)

MAX_ERRORS_SHOWN = 3


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="reddit-intel",
        description="Fetch Reddit posts and ingest them into a vector database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --hours 24
  %(prog)s --days 7 --test
  %(prog)s --hours 6 --config config/channels.json
        """)

    parser.add_argument("--hours", type=float, help="Fetch posts from the last N hours")
    parser.add_argument("--days", type=float, help="Fetch posts from the last N days")
    parser.add_argument("--test", action="store_true", help="Test mode (max 5 posts per channel)")
    parser.add_argument("--config", help="Path to channels.json configuration file")

    return parser.parse_args(argv)


def _log_event(event: Event) -> None:
    if event.get("type") == CHANNEL_PROGRESS:
        logger.info(
            "channel_status",
            channel=event.get("channel"),
            status=event.get("status"),
            posts_count=event.get("posts_count"),
        )
    elif event.get("type") == CHANNEL_ERROR:
        logger.error("channel_status", channel=event.get("channel"), error=event.get("error"))


def print_summary(job: Job, elapsed: float) -> None:
    """Print the per-channel and total execution summary."""
    print()
    print("=" * 60)
    print("EXECUTION SUMMARY")
    print("=" * 60)

    for run in job.channel_runs:
        if run.status == ChannelStatus.COMPLETED:
            stats = run.stats
            print(f"OK   {run.channel_name}: {stats.posts} posts, {stats.comments} comments "
                  f"({stats.successful} successful, {stats.failed} failed)")
            if run.errors:
                print(f"     Errors encountered: {len(run.errors)}")
                for err in run.errors[:MAX_ERRORS_SHOWN]:
                    print(f"       - {err['id']}: {err['error']}")
                if len(run.errors) > MAX_ERRORS_SHOWN:
                    print(f"       ... and {len(run.errors) - MAX_ERRORS_SHOWN} more")
        else:
            print(f"FAIL {run.channel_name}: {run.error}")

    failed_channels = sum(1 for run in job.channel_runs if run.status != ChannelStatus.COMPLETED)
    total = job.total_stats

    print("=" * 60)
    print(f"Total: {total.posts} posts, {total.comments} comments")
    print(f"Ingestion: {total.successful} successful, {total.failed} failed")
    print(f"Channels: {len(job.channel_runs) - failed_channels} successful, {failed_channels} failed")
    print(f"Execution time: {elapsed:.2f}s")
    print("=" * 60)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    params = JobParams(hours=args.hours, days=args.days, test_mode=args.test)
    try:
        params.validate()
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    load_dotenv()
    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"Error: {e}")
        return 1

    setup_logging(log_filename="daemon.log", level=settings.log_level)

    if not settings.vectordb_api_token:
        print("Error: VECTORDB_API_TOKEN environment variable is not set")
        print("Please create a .env file with: VECTORDB_API_TOKEN=your_token_here")
        return 1

    try:
        config = load_channels_config(args.config or settings.channels_config)
        channels = get_enabled_channels(
            config, settings.reddit_client_id, settings.reddit_client_secret
        )
    except ConfigError as e:
        logger.error("config_load_failed", error=str(e))
        print(f"Error: {e}")
        return 1

    if not channels:
        logger.warning("no_enabled_channels")
        print("No enabled channels found in configuration")
        return 0

    logger.info(
        "channels_loaded",
        channels=[channel.name for channel in channels],
        time_window=params.time_window,
        test_mode=params.test_mode,
    )

    orchestrator = JobOrchestrator.from_settings(settings)
    orchestrator.subscribe(_log_event)

    start_time = time.monotonic()
    try:
        job_id = orchestrator.create_job(channels, params)
        job = orchestrator.run_job(job_id)
    except Exception as e:
        logger.error("fatal_error", error=str(e), error_type=type(e).__name__, exc_info=True)
        print(f"Fatal error: {e}")
        return 1

    print_summary(job, time.monotonic() - start_time)

    failed_channels = sum(1 for run in job.channel_runs if run.status == ChannelStatus.FAILED)
    if failed_channels == len(job.channel_runs):
        logger.error("all_channels_failed", channels=failed_channels)
        return 1
    if failed_channels:
        logger.warning("some_channels_failed", channels=failed_channels)
    return 0


if __name__ == "__main__":
    sys.exit(main())
