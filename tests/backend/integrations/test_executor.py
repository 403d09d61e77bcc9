"""
Tests for classified retry in RequestExecutor.

Status classification:
- 2xx returns the parsed body
- 401 (Reddit policy) invalidates the credential and retries immediately
- 401/403 (vector store policy) is fatal
- 429 sleeps Retry-After (or backoff) and retries
- 5xx sleeps 2^attempt seconds and retries
- other 4xx raise ValidationError with the response body
- network failures raise TransportError without retry
"""

import pytest
import requests
from unittest.mock import MagicMock

from tests.conftest import make_response


@pytest.fixture
def auth():
    from reddit_intel.backend.integrations.auth import Credential

    mock_auth = MagicMock()
    mock_auth.ensure_valid.return_value = Credential(token="tok", expires_at=float("inf"))
    return mock_auth


@pytest.fixture
def executor_factory(mock_session, auth, fake_sleep):
    from reddit_intel.backend.integrations.executor import REDDIT_POLICY, RequestExecutor

    def build(policy=REDDIT_POLICY, rate_limiter=None):
        return RequestExecutor(
            mock_session,
            auth,
            rate_limiter=rate_limiter,
            policy=policy,
            user_agent="test-agent/1.0",
            sleep=fake_sleep,
        )

    return build


def _request():
    from reddit_intel.backend.integrations.executor import RequestSpec

    return RequestSpec(method="GET", url="https://oauth.reddit.com/r/python/new.json", params={"limit": 100})


class TestSuccess:

    def test_returns_parsed_body(self, executor_factory, mock_session):
        mock_session.request.return_value = make_response(200, {"data": {"children": []}})

        body = executor_factory().execute(_request())

        assert body == {"data": {"children": []}}

    def test_sends_bearer_and_user_agent(self, executor_factory, mock_session):
        mock_session.request.return_value = make_response(200, {})

        executor_factory().execute(_request())

        _, kwargs = mock_session.request.call_args
        assert kwargs["headers"]["Authorization"] == "Bearer tok"
        assert kwargs["headers"]["User-Agent"] == "test-agent/1.0"
        assert kwargs["params"] == {"limit": 100}

    def test_empty_body_returns_empty_dict(self, executor_factory, mock_session):
        mock_session.request.return_value = make_response(204)

        assert executor_factory().execute(_request()) == {}

    def test_each_attempt_is_paced(self, executor_factory, mock_session):
        """Every dispatched attempt goes through the rate limiter."""
        limiter = MagicMock()
        mock_session.request.side_effect = [make_response(500), make_response(200, {})]

        executor_factory(rate_limiter=limiter).execute(_request())

        assert limiter.acquire.call_count == 2


class TestRateLimitRetry:

    def test_429_honors_retry_after_then_succeeds(self, executor_factory, mock_session, recorded_sleeps):
        """429 with Retry-After: 2 sleeps 2 seconds, then the retry succeeds."""
        mock_session.request.side_effect = [
            make_response(429, headers={"Retry-After": "2"}),
            make_response(200, {"ok": True}),
        ]

        body = executor_factory().execute(_request())

        assert body == {"ok": True}
        assert recorded_sleeps == [2.0]
        assert mock_session.request.call_count == 2

    def test_429_without_retry_after_uses_backoff(self, executor_factory, mock_session, recorded_sleeps):
        mock_session.request.side_effect = [
            make_response(429),
            make_response(429),
            make_response(200, {}),
        ]

        executor_factory().execute(_request())

        assert recorded_sleeps == [1.0, 2.0]

    def test_unparseable_retry_after_falls_back_to_backoff(self, executor_factory, mock_session, recorded_sleeps):
        mock_session.request.side_effect = [
            make_response(429, headers={"Retry-After": "soon"}),
            make_response(200, {}),
        ]

        executor_factory().execute(_request())

        assert recorded_sleeps == [1.0]

    def test_persistent_429_exhausts_retries(self, executor_factory, mock_session):
        from reddit_intel.backend.utils.errors import RetryExhaustedError

        mock_session.request.return_value = make_response(429)

        with pytest.raises(RetryExhaustedError) as exc_info:
            executor_factory().execute(_request(), max_retries=3)

        assert exc_info.value.last_status == 429
        assert mock_session.request.call_count == 3


class TestServerErrorRetry:

    def test_three_500s_exhaust_after_exactly_three_calls(self, executor_factory, mock_session, recorded_sleeps):
        """Three 500s with max_retries=3: three calls, no sleep after the last."""
        from reddit_intel.backend.utils.errors import RetryExhaustedError

        mock_session.request.return_value = make_response(500)

        with pytest.raises(RetryExhaustedError) as exc_info:
            executor_factory().execute(_request(), max_retries=3)

        assert mock_session.request.call_count == 3
        assert recorded_sleeps == [1.0, 2.0]
        assert exc_info.value.attempts == 3
        assert exc_info.value.last_status == 500

    def test_recovers_after_transient_503(self, executor_factory, mock_session):
        mock_session.request.side_effect = [make_response(503), make_response(200, {"ok": 1})]

        assert executor_factory().execute(_request()) == {"ok": 1}


class TestAuthHandling:

    def test_reddit_401_invalidates_and_retries_without_delay(
        self, executor_factory, mock_session, auth, recorded_sleeps
    ):
        mock_session.request.side_effect = [make_response(401), make_response(200, {"ok": 1})]

        body = executor_factory().execute(_request())

        assert body == {"ok": 1}
        auth.invalidate.assert_called_once()
        assert auth.ensure_valid.call_count == 2
        assert recorded_sleeps == []

    def test_persistent_401_raises_auth_error(self, executor_factory, mock_session):
        from reddit_intel.backend.utils.errors import AuthError

        mock_session.request.return_value = make_response(401)

        with pytest.raises(AuthError):
            executor_factory().execute(_request(), max_retries=3)

        assert mock_session.request.call_count == 3

    @pytest.mark.parametrize("status", [401, 403])
    def test_store_auth_statuses_are_fatal(self, executor_factory, mock_session, auth, status):
        from reddit_intel.backend.integrations.executor import VECTOR_STORE_POLICY
        from reddit_intel.backend.utils.errors import AuthError

        mock_session.request.return_value = make_response(status)

        with pytest.raises(AuthError):
            executor_factory(policy=VECTOR_STORE_POLICY).execute(_request())

        assert mock_session.request.call_count == 1
        auth.invalidate.assert_not_called()

    def test_credential_exchange_failure_propagates(self, executor_factory, mock_session, auth):
        from reddit_intel.backend.utils.errors import AuthError

        auth.ensure_valid.side_effect = AuthError("bad credentials")

        with pytest.raises(AuthError):
            executor_factory().execute(_request())

        mock_session.request.assert_not_called()


class TestNonRetryable:

    def test_422_raises_validation_error_with_details(self, executor_factory, mock_session):
        from reddit_intel.backend.utils.errors import ValidationError

        details = {"detail": [{"loc": ["body", "body"], "msg": "field required"}]}
        mock_session.request.return_value = make_response(422, details)

        with pytest.raises(ValidationError) as exc_info:
            executor_factory().execute(_request())

        assert exc_info.value.status_code == 422
        assert exc_info.value.details == details
        assert mock_session.request.call_count == 1

    def test_404_is_not_retried(self, executor_factory, mock_session, recorded_sleeps):
        from reddit_intel.backend.utils.errors import ValidationError

        mock_session.request.return_value = make_response(404, "not found")

        with pytest.raises(ValidationError) as exc_info:
            executor_factory().execute(_request())

        assert exc_info.value.details == "not found"
        assert recorded_sleeps == []

    def test_transport_error_is_not_retried(self, executor_factory, mock_session):
        from reddit_intel.backend.utils.errors import TransportError

        mock_session.request.side_effect = requests.Timeout("read timed out")

        with pytest.raises(TransportError):
            executor_factory().execute(_request())

        assert mock_session.request.call_count == 1


class TestStatusPolicy:

    def test_reddit_policy_classification(self):
        from reddit_intel.backend.integrations import executor

        policy = executor.REDDIT_POLICY
        assert policy.classify(200) == executor.SUCCESS
        assert policy.classify(401) == executor.REFRESH
        assert policy.classify(403) == executor.CLIENT_ERROR
        assert policy.classify(429) == executor.RATE_LIMITED
        assert policy.classify(502) == executor.SERVER_ERROR
        assert policy.classify(422) == executor.CLIENT_ERROR

    def test_store_policy_classification(self):
        from reddit_intel.backend.integrations import executor

        policy = executor.VECTOR_STORE_POLICY
        assert policy.classify(401) == executor.AUTH_FAILED
        assert policy.classify(403) == executor.AUTH_FAILED
        assert policy.classify(429) == executor.RATE_LIMITED
