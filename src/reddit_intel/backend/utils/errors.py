"""Error Handling Utilities

This module defines the error taxonomy shared by the HTTP integrations, the
fetcher, the ingestor and the orchestrator, the single exponential backoff
formula, and a collector for non-fatal per-document failures.

Error granularity:
    AuthError           - fatal to the channel (credential exchange failed,
                          401 persisted after re-authentication, store 401/403)
    ValidationError     - fatal to one document (store rejected its shape) or
                          to one request (other 4xx)
    RetryExhaustedError - retry budget outlived by 429/5xx responses
    TransportError      - network failure or timeout, never retried
"""

import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class IngestionError(Exception):
    """Base class for all request and ingestion failures."""
    pass


class AuthError(IngestionError):
    """Credential exchange failed or the remote side rejected our credentials."""
    pass


class ValidationError(IngestionError):
    """Non-retryable 4xx response (422 validation failure or other client error).

    Attributes:
        status_code: HTTP status code of the rejected request
        details: Parsed response body (dict/list) or raw text, if any
    """

    def __init__(self, message: str, status_code: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class RetryExhaustedError(IngestionError):
    """Retryable failures (429/5xx) outlived the retry budget.

    Attributes:
        last_status: Status code of the final failed attempt
        attempts: Number of attempts made
    """

    def __init__(self, message: str, last_status: Optional[int] = None, attempts: int = 0):
        super().__init__(message)
        self.last_status = last_status
        self.attempts = attempts


class TransportError(IngestionError):
    """Network failure or timeout before any HTTP status was received."""
    pass


class StoreUnavailableError(IngestionError):
    """Vector store health check failed before ingestion started."""
    pass


class ConfigError(Exception):
    """Channel configuration file is missing or malformed."""
    pass


class JobNotFoundError(KeyError):
    """Requested job id is not in the repository."""
    pass


class JobRunningError(Exception):
    """Operation refused because the job is still running."""
    pass


def calculate_backoff_delay(attempt: int, base_delay: float = 1.0, max_delay: float = 30.0) -> float:
    """Calculate exponential backoff delay for retry attempts.

    Args:
        attempt: Retry attempt number (0-indexed)
        base_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay cap in seconds (default: 30.0)

    Returns:
        Delay in seconds for this attempt

    Examples:
        >>> calculate_backoff_delay(0)
        1.0
        >>> calculate_backoff_delay(2)
        4.0
        >>> calculate_backoff_delay(10)
        30.0
    """
    delay = base_delay * (2 ** attempt)
    return min(delay, max_delay)


class ErrorCollector:
    """Thread-safe collector for per-document failures during a channel run.

    Each entry carries the document id, a human-readable error, the UTC
    timestamp of the failure and, when the store returned one, the
    validation details.

    Example:
        >>> collector = ErrorCollector()
        >>> collector.append("abc123", "Validation error", {"detail": "body required"})
        >>> collector.count
        1
        >>> collector.to_list()[0]["id"]
        'abc123'
    """

    def __init__(self):
        self._errors: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def append(self, document_id: str, error: str, details: Any = None) -> None:
        entry = {
            "id": document_id,
            "error": error,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if details is not None:
            entry["details"] = details

        with self._lock:
            self._errors.append(entry)

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._errors)

    def to_list(self) -> List[Dict[str, Any]]:
        """Return a copy of the collected errors in insertion order."""
        with self._lock:
            return [dict(entry) for entry in self._errors]
