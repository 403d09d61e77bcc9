"""Pydantic models for API request/response structures.

Response Structure:
    All successful responses use ResponseEnvelope with:
    - data: The actual response payload (any type)
    - meta: Metadata including timestamp, version, and optional total count

Error Structure:
    All error responses use ErrorEnvelope with:
    - error: ErrorDetail containing code and message

Request bodies accept both snake_case and the camelCase names used by the
browser UI (e.g. test_mode / testMode).
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from reddit_intel.models.job_models import MAX_WINDOW_DAYS


class MetaModel(BaseModel):
    """Metadata included in all successful responses.

    Attributes:
        timestamp: ISO 8601 formatted UTC timestamp of the response
        version: API version string (currently hardcoded as "1.0")
        total: Optional total count of items
    """
    timestamp: str
    version: str
    total: Optional[int] = None


class ResponseEnvelope(BaseModel):
    data: Any
    meta: MetaModel


class ErrorDetail(BaseModel):
    """Error details included in error responses.

    Attributes:
        code: Machine-readable error code (see responses.py for constants)
        message: Human-readable error message
    """
    code: str
    message: str


class ErrorEnvelope(BaseModel):
    error: ErrorDetail


class JobCreateRequest(BaseModel):
    """Body of POST /api/jobs. Exactly one of hours/days, positive and finite."""
    model_config = ConfigDict(populate_by_name=True)

    hours: Optional[float] = Field(default=None, gt=0, le=MAX_WINDOW_DAYS * 24, allow_inf_nan=False)
    days: Optional[float] = Field(default=None, gt=0, le=MAX_WINDOW_DAYS, allow_inf_nan=False)
    test_mode: bool = Field(default=False, alias="testMode")

    @model_validator(mode="after")
    def check_window(self) -> "JobCreateRequest":
        if self.hours is None and self.days is None:
            raise ValueError("Must specify either hours or days")
        if self.hours is not None and self.days is not None:
            raise ValueError("Cannot specify both hours and days")
        return self


class ChannelCreate(BaseModel):
    subreddit: str = Field(min_length=1, max_length=100)
    enabled: bool = True
    platform: Optional[str] = None


class ChannelUpdate(BaseModel):
    enabled: Optional[bool] = None
    platform: Optional[str] = None
