"""Success envelopes and error codes shared by the API routes.

Routes return wrap_response(...) and signal failures with
raise_api_error(CODE, message); app.py turns the latter into an ErrorEnvelope.
"""

from datetime import datetime, timezone
from typing import Any, Dict, NoReturn, Optional

from fastapi import HTTPException

from reddit_intel.api.models import MetaModel

API_VERSION = "1.0"

VALIDATION_ERROR = "VALIDATION_ERROR"
NOT_FOUND = "NOT_FOUND"
JOB_RUNNING = "JOB_RUNNING"
CHANNEL_EXISTS = "CHANNEL_EXISTS"
NO_CHANNELS = "NO_CHANNELS"
MISSING_TOKEN = "MISSING_TOKEN"
CONFIG_ERROR = "CONFIG_ERROR"
INTERNAL_ERROR = "INTERNAL_ERROR"

ERROR_STATUS_CODES: Dict[str, int] = {
    VALIDATION_ERROR: 422,
    NOT_FOUND: 404,
    JOB_RUNNING: 409,
    CHANNEL_EXISTS: 409,
    NO_CHANNELS: 400,
    MISSING_TOKEN: 500,
    CONFIG_ERROR: 500,
    INTERNAL_ERROR: 500,
}


def wrap_response(data: Any, total: Optional[int] = None) -> Dict[str, Any]:
    """{"data": data, "meta": {"timestamp", "version", "total"?}}"""
    meta = MetaModel(
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=API_VERSION,
        total=total,
    )
    return {"data": data, "meta": meta.model_dump(exclude_none=True)}


def raise_api_error(code: str, message: str) -> NoReturn:
    """Raise an HTTPException whose detail app.py renders as {"error": {code, message}}."""
    raise HTTPException(
        status_code=ERROR_STATUS_CODES.get(code, 500),
        detail={"code": code, "message": message},
    )
