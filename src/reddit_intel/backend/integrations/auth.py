"""
Bearer credential management for outbound HTTP calls.

Two credential sources share one interface (ensure_valid / invalidate):

- ClientCredentialsAuth: OAuth 2.0 client-credentials grant against Reddit.
  One instance per channel; the cached credential is never shared.
  Proactive refresh: when remaining TTL < 5 minutes.
  Reactive refresh: RequestExecutor calls invalidate() on a 401 and the next
  ensure_valid() performs a fresh exchange.
- StaticTokenAuth: fixed API token for the vector document store.

Neither class retries; retry policy lives in RequestExecutor.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

import requests

from reddit_intel.backend.utils.errors import AuthError
from reddit_intel.backend.utils.logging_config import get_logger

logger = get_logger(__name__)

REDDIT_TOKEN_URL = "https://www.reddit.com/api/v1/access_token"
DEFAULT_USER_AGENT = "reddit-intelligence-daemon/1.0"

# Refresh when fewer than this many seconds of validity remain
PROACTIVE_REFRESH_BUFFER = 300


@dataclass(frozen=True)
class Credential:
    """A bearer token and its absolute expiry (Unix seconds)."""
    token: str
    expires_at: float

    def expires_within(self, margin: float, now: Optional[float] = None) -> bool:
        if now is None:
            now = time.time()
        return self.expires_at - now < margin


class ClientCredentialsAuth:
    """Acquires and refreshes a Reddit application-only bearer token.

    Example:
        auth = ClientCredentialsAuth("client-id", "secret", channel="r/python")
        credential = auth.ensure_valid()
        headers = {"Authorization": f"Bearer {credential.token}"}
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        channel: str = "",
        session: Optional[requests.Session] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        token_url: str = REDDIT_TOKEN_URL,
        refresh_buffer: float = PROACTIVE_REFRESH_BUFFER,
        timeout: float = 30.0,
        clock: Callable[[], float] = time.time,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.channel = channel
        self.session = session or requests.Session()
        self.user_agent = user_agent
        self.token_url = token_url
        self.refresh_buffer = refresh_buffer
        self.timeout = timeout
        self._clock = clock
        self._credential: Optional[Credential] = None
        self._lock = threading.Lock()

    @property
    def credential(self) -> Optional[Credential]:
        return self._credential

    def ensure_valid(self) -> Credential:
        """Return the cached credential, exchanging for a new one if absent or near expiry.

        Raises:
            AuthError: If the token endpoint is unreachable or returns a non-success status
        """
        with self._lock:
            credential = self._credential
            if credential is None or credential.expires_within(self.refresh_buffer, self._clock()):
                credential = self._exchange()
                self._credential = credential
            return credential

    def invalidate(self) -> None:
        """Drop the cached credential so the next ensure_valid() re-authenticates."""
        with self._lock:
            self._credential = None
        logger.debug("credential_invalidated", channel=self.channel)

    def _exchange(self) -> Credential:
        try:
            response = self.session.post(
                self.token_url,
                data={"grant_type": "client_credentials"},
                auth=(self.client_id, self.client_secret),
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "User-Agent": self.user_agent,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(
                "authentication_failed",
                channel=self.channel,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise AuthError(f"Reddit authentication failed: {e}") from e

        if not response.ok:
            logger.error(
                "authentication_failed",
                channel=self.channel,
                status_code=response.status_code,
            )
            raise AuthError(
                f"Reddit authentication failed with status {response.status_code}"
            )

        try:
            token_response = response.json()
            token = token_response["access_token"]
        except (ValueError, KeyError) as e:
            raise AuthError(f"Reddit authentication returned an invalid token response: {e}") from e

        expires_in = token_response.get("expires_in", 3600)
        credential = Credential(token=token, expires_at=self._clock() + expires_in)

        logger.info("authenticated", channel=self.channel, expires_in=expires_in)
        return credential


class StaticTokenAuth:
    """Fixed bearer token (vector store API token). Never expires, never refreshes."""

    def __init__(self, token: str):
        if not token:
            raise ValueError(
                "Vector DB API token is required. Set VECTORDB_API_TOKEN environment variable."
            )
        self._credential = Credential(token=token, expires_at=float("inf"))

    def ensure_valid(self) -> Credential:
        return self._credential

    def invalidate(self) -> None:
        pass
