"""Classified retry/backoff for single HTTP calls.

RequestExecutor is the one place where response status codes are turned into
retry decisions. Both the Reddit client and the vector store client route
every call through an executor; they differ only in their StatusPolicy.

Per attempt:
    1. auth.ensure_valid()          (AuthError propagates, fatal)
    2. rate_limiter.acquire()       (if configured)
    3. dispatch the request
    4. classify the status:
        2xx                  -> return parsed body
        refresh (401)        -> invalidate credential, retry without delay
        fatal auth (401/403) -> AuthError, no retry
        429                  -> sleep Retry-After (or backoff), retry
        >= 500               -> sleep backoff (2^attempt s), retry
        other 4xx / 422      -> ValidationError with response body attached
    Network failures and timeouts surface as TransportError immediately.
"""

import contextlib
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Optional

import requests

from reddit_intel.backend.utils.errors import (
    AuthError,
    RetryExhaustedError,
    TransportError,
    ValidationError,
    calculate_backoff_delay,
)
from reddit_intel.backend.utils.logging_config import get_logger

logger = get_logger(__name__)

SUCCESS = "success"
REFRESH = "refresh"
AUTH_FAILED = "auth_failed"
RATE_LIMITED = "rate_limited"
SERVER_ERROR = "server_error"
CLIENT_ERROR = "client_error"


@dataclass(frozen=True)
class StatusPolicy:
    """Maps HTTP status codes to retry outcomes for one remote service.

    Attributes:
        name: Service label used in logs
        refresh_statuses: Statuses that trigger credential refresh + retry
        fatal_auth_statuses: Statuses that raise AuthError immediately
        rate_limit_statuses: Statuses retried after Retry-After / backoff
    """
    name: str
    refresh_statuses: FrozenSet[int] = frozenset({401})
    fatal_auth_statuses: FrozenSet[int] = frozenset()
    rate_limit_statuses: FrozenSet[int] = frozenset({429})

    def classify(self, status_code: int) -> str:
        if 200 <= status_code < 300:
            return SUCCESS
        if status_code in self.fatal_auth_statuses:
            return AUTH_FAILED
        if status_code in self.refresh_statuses:
            return REFRESH
        if status_code in self.rate_limit_statuses:
            return RATE_LIMITED
        if status_code >= 500:
            return SERVER_ERROR
        return CLIENT_ERROR


REDDIT_POLICY = StatusPolicy(name="reddit")

VECTOR_STORE_POLICY = StatusPolicy(
    name="vector_store",
    refresh_statuses=frozenset(),
    fatal_auth_statuses=frozenset({401, 403}),
)


@dataclass
class RequestSpec:
    """Description of one HTTP call, replayable across retry attempts."""
    method: str
    url: str
    params: Optional[Dict[str, Any]] = None
    json: Any = None
    headers: Dict[str, str] = field(default_factory=dict)
    timeout: float = 30.0


def _parse_retry_after(response: requests.Response) -> Optional[float]:
    """Return the Retry-After header as seconds, or None if absent/unparseable."""
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    return max(seconds, 0.0)


def _parse_body(response: requests.Response) -> Any:
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return response.text


class RequestExecutor:
    """Executes RequestSpecs with authentication, pacing and classified retry.

    Example:
        executor = RequestExecutor(session, auth, RateLimiter(1.0), REDDIT_POLICY)
        body = executor.execute(RequestSpec("GET", "https://oauth.reddit.com/r/python/new.json"))
    """

    def __init__(
        self,
        session: requests.Session,
        auth,
        rate_limiter=None,
        policy: StatusPolicy = REDDIT_POLICY,
        user_agent: Optional[str] = None,
        max_delay: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.session = session
        self.auth = auth
        self.rate_limiter = rate_limiter
        self.policy = policy
        self.user_agent = user_agent
        self.max_delay = max_delay
        self._sleep = sleep

    def _pace(self):
        if self.rate_limiter is None:
            return contextlib.nullcontext()
        return self.rate_limiter.acquire()

    def _headers(self, request: RequestSpec) -> Dict[str, str]:
        credential = self.auth.ensure_valid()
        headers = {"Authorization": f"Bearer {credential.token}"}
        if self.user_agent:
            headers["User-Agent"] = self.user_agent
        headers.update(request.headers)
        return headers

    def execute(self, request: RequestSpec, max_retries: int = 3) -> Any:
        """Execute a request, retrying only server-attributable failures.

        Args:
            request: The call to make
            max_retries: Total attempt budget (default: 3)

        Returns:
            Parsed JSON body (or raw text for non-JSON bodies)

        Raises:
            AuthError: Credential exchange failed, fatal auth status, or 401
                persisted through every attempt
            ValidationError: 422 or other non-retryable 4xx
            RetryExhaustedError: 429/5xx on every attempt
            TransportError: Network failure or timeout
        """
        last_status = None

        for attempt in range(max_retries):
            headers = self._headers(request)

            try:
                with self._pace():
                    response = self.session.request(
                        request.method,
                        request.url,
                        params=request.params,
                        json=request.json,
                        headers=headers,
                        timeout=request.timeout,
                    )
            except requests.RequestException as e:
                logger.error(
                    "request_transport_failed",
                    service=self.policy.name,
                    url=request.url,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise TransportError(f"{request.method} {request.url} failed: {e}") from e

            status = response.status_code
            last_status = status
            outcome = self.policy.classify(status)

            if outcome == SUCCESS:
                return _parse_body(response)

            if outcome == AUTH_FAILED:
                logger.error(
                    "request_unauthorized",
                    service=self.policy.name,
                    url=request.url,
                    status_code=status,
                )
                raise AuthError(f"{self.policy.name} authentication failed (HTTP {status})")

            if outcome == REFRESH:
                logger.warning(
                    "token_rejected_reauthenticating",
                    service=self.policy.name,
                    url=request.url,
                    attempt=attempt + 1,
                    max_retries=max_retries,
                )
                self.auth.invalidate()
                continue

            if outcome in (RATE_LIMITED, SERVER_ERROR):
                if attempt + 1 >= max_retries:
                    break

                delay = None
                if outcome == RATE_LIMITED:
                    delay = _parse_retry_after(response)
                if delay is None:
                    delay = calculate_backoff_delay(attempt, max_delay=self.max_delay)

                logger.warning(
                    "request_retry",
                    service=self.policy.name,
                    url=request.url,
                    status_code=status,
                    reason=outcome,
                    attempt=attempt + 1,
                    max_retries=max_retries,
                    delay=delay,
                )
                self._sleep(delay)
                continue

            details = _parse_body(response)
            logger.error(
                "request_rejected",
                service=self.policy.name,
                url=request.url,
                status_code=status,
                details=details,
            )
            raise ValidationError(
                f"{request.method} {request.url} rejected with HTTP {status}",
                status_code=status,
                details=details,
            )

        if last_status in self.policy.refresh_statuses:
            raise AuthError(
                f"{self.policy.name} still unauthorized after {max_retries} attempts"
            )

        logger.error(
            "request_retries_exhausted",
            service=self.policy.name,
            url=request.url,
            last_status=last_status,
            attempts=max_retries,
        )
        raise RetryExhaustedError(
            f"Max retries ({max_retries}) exceeded for {request.url}",
            last_status=last_status,
            attempts=max_retries,
        )
