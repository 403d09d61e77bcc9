"""FastAPI application for the Reddit Intelligence Daemon web UI.

This module builds the FastAPI application with:
- One JobOrchestrator per app, stored in app.state.orchestrator
- Settings from the environment, stored in app.state.settings
- Exception handlers for consistent error responses
- Job, channel, health and WebSocket routes

All API responses follow the standard envelope format defined in
reddit_intel.api.models.

Usage:
    reddit-intel-web
    or
    uvicorn --factory reddit_intel.api.app:create_app
"""

import os
import time
import traceback
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from reddit_intel import __version__
from reddit_intel.api.models import ErrorDetail, ErrorEnvelope
from reddit_intel.api.responses import INTERNAL_ERROR, NOT_FOUND, VALIDATION_ERROR
from reddit_intel.api.routes import channels, events, jobs, system
from reddit_intel.backend.utils.logging_config import get_logger, setup_logging
from reddit_intel.config import Settings, load_dotenv, load_settings
from reddit_intel.jobs import JobOrchestrator

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log startup/shutdown; jobs still running at shutdown are abandoned."""
    logger.info("web_server_started", port=app.state.settings.port)
    try:
        yield
    finally:
        active = app.state.orchestrator.list_active_jobs()
        logger.info("web_server_stopped", active_jobs=len(active))


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    error_envelope = ErrorEnvelope(error=ErrorDetail(code=code, message=message))
    return JSONResponse(
        status_code=status_code,
        content=error_envelope.model_dump(),
        headers={"Content-Type": "application/json"}
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Convert pydantic validation errors into the ErrorEnvelope format (422)."""
    logger.warning("validation_error", path=request.url.path, errors=str(exc.errors()))
    errors = exc.errors()
    message = errors[0]["msg"] if errors else "invalid request"
    return _error_response(422, VALIDATION_ERROR, f"Request validation failed: {message}")


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Route raise_api_error() and plain HTTP errors into the ErrorEnvelope format."""
    logger.warning("http_exception", path=request.url.path, status=exc.status_code)

    if isinstance(exc.detail, dict) and "code" in exc.detail:
        code = exc.detail["code"]
        message = exc.detail["message"]
    else:
        code_map = {404: NOT_FOUND, 422: VALIDATION_ERROR}
        code = code_map.get(exc.status_code, INTERNAL_ERROR)
        if exc.status_code == 404:
            message = f"Resource not found: {request.url.path}"
        else:
            message = str(exc.detail) if exc.detail else "An error occurred"

    return _error_response(exc.status_code, code, message)


async def internal_server_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "internal_server_error",
        path=request.url.path,
        error=str(exc),
        traceback=traceback.format_exc(),
    )
    return _error_response(500, INTERNAL_ERROR, "An internal server error occurred")


def create_app(
    settings: Optional[Settings] = None,
    orchestrator: Optional[JobOrchestrator] = None,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Defaults to load_settings() after loading .env
        orchestrator: Defaults to JobOrchestrator.from_settings(settings)
    """
    if settings is None:
        load_dotenv()
        settings = load_settings()

    app = FastAPI(
        title="Reddit Intelligence Daemon",
        description="Fetch Reddit channels and ingest them into a vector document store",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.orchestrator = orchestrator or JobOrchestrator.from_settings(settings)
    app.state.started_at = time.monotonic()

    cors_origins = os.environ.get("CORS_ORIGINS", "http://localhost:5173").split(",")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(system.router)
    app.include_router(channels.router)
    app.include_router(jobs.router)
    app.include_router(events.router)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, internal_server_error_handler)

    return app


def serve() -> None:
    """Console entry point: configure logging and run uvicorn on PORT."""
    load_dotenv()
    settings = load_settings()
    setup_logging(log_filename="web.log", level=settings.log_level)
    app = create_app(settings)
    uvicorn.run(app, host=os.environ.get("HOST", "0.0.0.0"), port=settings.port, log_config=None)


if __name__ == "__main__":
    serve()
