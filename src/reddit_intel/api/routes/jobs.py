"""Job API endpoints.

- GET    /api/jobs          all jobs
- GET    /api/jobs/active   pending or running jobs
- GET    /api/jobs/{id}     one job summary
- POST   /api/jobs          create a job over all enabled channels and start it
- DELETE /api/jobs/{id}     delete a job that is not running
"""

from fastapi import APIRouter, Request

from reddit_intel.api.models import JobCreateRequest
from reddit_intel.api.responses import (
    CONFIG_ERROR,
    JOB_RUNNING,
    MISSING_TOKEN,
    NO_CHANNELS,
    NOT_FOUND,
    raise_api_error,
    wrap_response,
)
from reddit_intel.backend.utils.errors import ConfigError, JobRunningError
from reddit_intel.backend.utils.logging_config import get_logger
from reddit_intel.config import get_enabled_channels, load_channels_config
from reddit_intel.models.job_models import JobParams

router = APIRouter(prefix="/api/jobs", tags=["jobs"])
logger = get_logger(__name__)


@router.get("")
async def list_jobs(request: Request):
    jobs = request.app.state.orchestrator.list_jobs()
    return wrap_response(jobs, total=len(jobs))


@router.get("/active")
async def list_active_jobs(request: Request):
    jobs = request.app.state.orchestrator.list_active_jobs()
    return wrap_response(jobs, total=len(jobs))


@router.get("/{job_id}")
async def get_job(request: Request, job_id: int):
    job = request.app.state.orchestrator.get_job_summary(job_id)
    if job is None:
        raise_api_error(NOT_FOUND, f"Job {job_id} not found")
    return wrap_response(job)


@router.post("")
async def create_job(request: Request, body: JobCreateRequest):
    """Create a job for every enabled channel and start it in the background.

    Returns immediately with the pending job; progress is streamed on /ws.
    """
    settings = request.app.state.settings
    orchestrator = request.app.state.orchestrator

    if not settings.vectordb_api_token:
        raise_api_error(MISSING_TOKEN, "VECTORDB_API_TOKEN environment variable is not set")

    try:
        config = load_channels_config(settings.channels_config)
        channels = get_enabled_channels(
            config, settings.reddit_client_id, settings.reddit_client_secret
        )
    except ConfigError as e:
        logger.error("job_config_load_failed", error=str(e))
        raise_api_error(CONFIG_ERROR, str(e))

    if not channels:
        raise_api_error(NO_CHANNELS, "No enabled channels found in configuration")

    params = JobParams(hours=body.hours, days=body.days, test_mode=body.test_mode)
    job_id = orchestrator.create_job(channels, params)
    job = orchestrator.get_job_summary(job_id)
    orchestrator.start_job(job_id)

    logger.info("job_create_request", job_id=job_id, channels=len(channels))
    return wrap_response({
        "job_id": job_id,
        "message": f"Job {job_id} started with {len(channels)} channels",
        "job": job,
    })


@router.delete("/{job_id}")
async def delete_job(request: Request, job_id: int):
    try:
        deleted = request.app.state.orchestrator.delete_job(job_id)
    except JobRunningError as e:
        raise_api_error(JOB_RUNNING, str(e))

    if not deleted:
        raise_api_error(NOT_FOUND, f"Job {job_id} not found")

    return wrap_response({"job_id": job_id, "message": f"Job {job_id} deleted"})
