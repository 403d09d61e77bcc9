"""Job orchestration across channels.

JobOrchestrator runs one ChannelPipeline per channel on a bounded thread pool
(default 3 workers). Channels beyond the bound queue until a worker frees up.
A failing channel never cancels its siblings: every channel settles, then the
job's totals are summed from the channel runs and the job is marked
"completed". There is no "partially failed" job status; callers inspect
total_stats.failed and each channel's error.

Ownership: a Job is mutated only by the thread running run_job(). Workers
report back by message passing (events on a queue, ChannelRun return values)
and never touch the Job directly. Jobs cannot be cancelled mid-run.
"""

import queue
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from reddit_intel.backend.utils.errors import JobNotFoundError, JobRunningError
from reddit_intel.backend.utils.logging_config import get_logger
from reddit_intel.events import (
    CHANNEL_COMPLETED,
    CHANNEL_ERROR,
    CHANNEL_PROGRESS,
    JOB_COMPLETED,
    JOB_CREATED,
    JOB_DELETED,
    JOB_STARTED,
    Event,
    EventBroadcaster,
    channel_error,
)
from reddit_intel.models.job_models import (
    ChannelRun,
    ChannelSpec,
    ChannelStats,
    ChannelStatus,
    Job,
    JobParams,
    JobStatus,
)

logger = get_logger(__name__)

DEFAULT_MAX_CONCURRENCY = 3

# (channel, emit) -> object with run(cutoff, test_mode) -> ChannelRun
PipelineFactory = Callable[[ChannelSpec, Callable[[Event], None]], object]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class JobRepository:
    """In-memory store of jobs, owned by one orchestrator."""

    def __init__(self):
        self._jobs: Dict[int, Job] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def add(self, channels: List[ChannelSpec], params: JobParams) -> Job:
        with self._lock:
            job = Job(
                id=self._next_id,
                params=params,
                channels=list(channels),
                channel_runs=[
                    ChannelRun(channel_name=channel.name, platform=channel.platform)
                    for channel in channels
                ],
                created_at=_now_iso(),
            )
            self._jobs[job.id] = job
            self._next_id += 1
            return job

    def find(self, job_id: int) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def get(self, job_id: int) -> Job:
        job = self.find(job_id)
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        return job

    def all(self) -> List[Job]:
        with self._lock:
            return list(self._jobs.values())

    def remove(self, job_id: int) -> None:
        with self._lock:
            self._jobs.pop(job_id, None)


class JobOrchestrator:
    """Creates jobs, runs them with bounded parallelism and republishes progress.

    Example:
        orchestrator = JobOrchestrator.from_settings(settings)
        orchestrator.subscribe(lambda event: print(event["type"]))
        job_id = orchestrator.create_job(channels, JobParams(hours=24))
        job = orchestrator.run_job(job_id)
        print(job.total_stats)
    """

    def __init__(
        self,
        pipeline_factory: PipelineFactory,
        repository: Optional[JobRepository] = None,
        broadcaster: Optional[EventBroadcaster] = None,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        clock: Callable[[], float] = time.time,
    ):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.pipeline_factory = pipeline_factory
        self.repository = repository or JobRepository()
        self.broadcaster = broadcaster or EventBroadcaster()
        self.max_concurrency = max_concurrency
        self._clock = clock

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "JobOrchestrator":
        from reddit_intel.pipeline import build_channel_pipeline

        def factory(channel: ChannelSpec, emit: Callable[[Event], None]):
            return build_channel_pipeline(channel, settings, emit)

        kwargs.setdefault("max_concurrency", settings.max_concurrency)
        return cls(factory, **kwargs)

    def subscribe(self, callback: Callable[[Event], None]) -> Callable[[], None]:
        return self.broadcaster.subscribe(callback)

    def _publish(self, event: Event) -> None:
        self.broadcaster.publish(event)

    def create_job(self, channels: List[ChannelSpec], params: JobParams) -> int:
        """Register a pending job. No I/O.

        Raises:
            ValueError: If the window parameters are invalid
        """
        params.validate()
        job = self.repository.add(channels, params)

        logger.info(
            "job_created",
            job_id=job.id,
            channels=len(channels),
            time_window=params.time_window,
            test_mode=params.test_mode,
        )
        self._publish({"type": JOB_CREATED, "job": job.to_summary()})
        return job.id

    def get_job_summary(self, job_id: int) -> Optional[Dict]:
        job = self.repository.find(job_id)
        return job.to_summary() if job else None

    def list_jobs(self) -> List[Dict]:
        return [job.to_summary() for job in self.repository.all()]

    def list_active_jobs(self) -> List[Dict]:
        return [job.to_summary() for job in self.repository.all() if job.is_active]

    def delete_job(self, job_id: int) -> bool:
        """Delete a finished or never-started job.

        Returns:
            False if no such job exists

        Raises:
            JobRunningError: If the job is running
        """
        job = self.repository.find(job_id)
        if job is None:
            return False
        if job.status == JobStatus.RUNNING:
            raise JobRunningError("Cannot delete a running job")

        self.repository.remove(job_id)
        logger.info("job_deleted", job_id=job_id)
        self._publish({"type": JOB_DELETED, "job_id": job_id})
        return True

    def start_job(self, job_id: int) -> threading.Thread:
        """Run a job on a background thread and return the thread."""
        self.repository.get(job_id)

        def target():
            try:
                self.run_job(job_id)
            except Exception as e:
                logger.error("job_failed", job_id=job_id, error=str(e), exc_info=True)

        thread = threading.Thread(target=target, name=f"job-{job_id}", daemon=True)
        thread.start()
        return thread

    def _run_channel(
        self,
        index: int,
        channel: ChannelSpec,
        cutoff: float,
        test_mode: bool,
        inbox: "queue.Queue[Tuple[int, Event]]",
    ) -> ChannelRun:
        """Worker body. Never raises; failures come back as a failed ChannelRun."""

        def emit(event: Event) -> None:
            inbox.put((index, event))

        try:
            pipeline = self.pipeline_factory(channel, emit)
            return pipeline.run(cutoff, test_mode=test_mode)
        except Exception as e:
            logger.error(
                "channel_worker_failed",
                channel=channel.name,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            emit(channel_error(channel.name, str(e)))
            return ChannelRun(
                channel_name=channel.name,
                platform=channel.platform,
                status=ChannelStatus.FAILED,
                error=str(e),
            )

    def _apply_event(self, job: Job, index: int, event: Event) -> None:
        run = job.channel_runs[index]
        event_type = event.get("type")

        try:
            if event_type == CHANNEL_PROGRESS:
                run.advance(ChannelStatus(event["status"]))
                if event.get("posts_count") is not None:
                    run.posts_count = event["posts_count"]
            elif event_type == CHANNEL_COMPLETED:
                run.advance(ChannelStatus.COMPLETED)
                run.stats = ChannelStats(**event.get("stats", {}))
            elif event_type == CHANNEL_ERROR:
                if not run.status.is_terminal:
                    run.advance(ChannelStatus.FAILED)
                run.error = event.get("error")
        except ValueError as e:
            logger.warning(
                "channel_event_out_of_order",
                job_id=job.id,
                channel=run.channel_name,
                event_type=event_type,
                error=str(e),
            )

        forwarded = dict(event)
        forwarded["job_id"] = job.id
        self._publish(forwarded)

    def _forward_events(self, job: Job, inbox: "queue.Queue", timeout: Optional[float] = None) -> None:
        try:
            if timeout is None:
                index, event = inbox.get_nowait()
            else:
                index, event = inbox.get(timeout=timeout)
        except queue.Empty:
            return
        self._apply_event(job, index, event)

        while True:
            try:
                index, event = inbox.get_nowait()
            except queue.Empty:
                return
            self._apply_event(job, index, event)

    def _execute_channels(self, job: Job, cutoff: int) -> None:
        inbox: "queue.Queue[Tuple[int, Event]]" = queue.Queue()

        with ThreadPoolExecutor(
            max_workers=self.max_concurrency,
            thread_name_prefix=f"job-{job.id}-channel",
        ) as pool:
            futures = {
                pool.submit(
                    self._run_channel,
                    index,
                    channel,
                    cutoff,
                    job.params.test_mode,
                    inbox,
                ): index
                for index, channel in enumerate(job.channels)
            }

            pending = set(futures)
            while pending:
                self._forward_events(job, inbox, timeout=0.05)
                pending = {future for future in pending if not future.done()}

        self._forward_events(job, inbox)

        for future, index in futures.items():
            job.channel_runs[index] = future.result()

    def _finish(self, job: Job) -> None:
        total = ChannelStats()
        for run in job.channel_runs:
            total = total + run.stats
        job.total_stats = total

        job.status = JobStatus.COMPLETED
        job.completed_at = _now_iso()

        failed_channels = sum(1 for run in job.channel_runs if run.status == ChannelStatus.FAILED)
        logger.info(
            "job_completed",
            job_id=job.id,
            failed_channels=failed_channels,
            **total.to_dict(),
        )
        self._publish({"type": JOB_COMPLETED, "job": job.to_summary()})

    def run_job(self, job_id: int) -> Job:
        """Execute every channel of a pending job and block until all settle.

        The job always ends "completed". If execution itself breaks (not a
        channel, which reports its own failure), unsettled channels are marked
        failed with the error, the job is completed, and the error re-raised.

        Raises:
            JobNotFoundError: If the job does not exist
            JobRunningError: If the job was already started
        """
        job = self.repository.get(job_id)
        if job.status != JobStatus.PENDING:
            raise JobRunningError(f"Job {job_id} has already been started")

        try:
            cutoff = job.params.cutoff(self._clock())

            job.status = JobStatus.RUNNING
            job.started_at = _now_iso()
            logger.info(
                "job_started",
                job_id=job.id,
                channels=len(job.channels),
                cutoff=cutoff,
                max_concurrency=self.max_concurrency,
            )
            self._publish({"type": JOB_STARTED, "job": job.to_summary()})

            self._execute_channels(job, cutoff)
        except Exception as e:
            logger.error(
                "job_execution_failed",
                job_id=job.id,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            for run in job.channel_runs:
                if not run.status.is_terminal:
                    run.advance(ChannelStatus.FAILED)
                    run.error = str(e)
            raise
        finally:
            self._finish(job)

        return job
