"""System health endpoint.

- GET /api/health: liveness plus job counts
"""

import time

from fastapi import APIRouter, Request

from reddit_intel.api.responses import wrap_response

router = APIRouter(prefix="/api", tags=["system"])


@router.get("/health")
async def health(request: Request):
    """Health check endpoint.

    Example:
        GET /api/health -> {"data": {"status": "healthy", "uptime": 12.3, ...}, "meta": {...}}
    """
    orchestrator = request.app.state.orchestrator
    return wrap_response({
        "status": "healthy",
        "uptime": round(time.monotonic() - request.app.state.started_at, 3),
        "active_jobs": len(orchestrator.list_active_jobs()),
        "total_jobs": len(orchestrator.list_jobs()),
    })
