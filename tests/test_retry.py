"""Tests for the retry/backoff engine."""

import random
import threading
from collections.abc import Callable
from unittest.mock import MagicMock

import pytest
import requests

from bigfix_inventory.errors import (
    ClientError,
    FetchCancelledError,
    HTTPStatusError,
    RetriesExhaustedError,
    TransportError,
)
from bigfix_inventory.retry import MAX_DELAY, Outcome, RetryEngine, backoff_delay, classify


@pytest.mark.parametrize(
    ("status", "outcome"),
    [
        (200, Outcome.SUCCESS),
        (204, Outcome.SUCCESS),
        (408, Outcome.RETRY),
        (429, Outcome.RETRY),
        (500, Outcome.RETRY),
        (502, Outcome.RETRY),
        (503, Outcome.RETRY),
        (504, Outcome.RETRY),
        (400, Outcome.CLIENT_ERROR),
        (404, Outcome.CLIENT_ERROR),
        (501, Outcome.FATAL),
        (301, Outcome.FATAL),
    ],
)
def test_classify(status: int, outcome: Outcome) -> None:
    """Test status classification."""
    assert classify(status) is outcome


def test_backoff_delay_bounds() -> None:
    """Test the delay stays within the jitter band around min * 3**attempt."""
    rng = random.Random(7)
    for attempt in range(1, 4):
        base = 0.1 * 3**attempt
        for _ in range(200):
            delay = backoff_delay(attempt, 0.1, rng)
            assert 0.8 * base <= delay < 1.2 * base


def test_backoff_delay_is_capped() -> None:
    """Test the delay never exceeds five minutes."""
    assert backoff_delay(20, 1.0, random.Random(1)) == MAX_DELAY


def test_success_on_first_attempt(
    engine: RetryEngine, sleep: MagicMock, response_factory: Callable[..., MagicMock]
) -> None:
    """Test a 2xx response returns immediately."""
    attempt_fn = MagicMock(return_value=response_factory(200))

    response = engine.execute(attempt_fn)

    assert response.status_code == 200
    attempt_fn.assert_called_once()
    sleep.assert_not_called()


def test_retries_then_succeeds(
    engine: RetryEngine, sleep: MagicMock, response_factory: Callable[..., MagicMock]
) -> None:
    """Test 503, 503, 200 succeeds after two backoff sleeps."""
    attempt_fn = MagicMock(side_effect=[response_factory(503), response_factory(503), response_factory(200)])

    response = engine.execute(attempt_fn)

    assert response.status_code == 200
    assert attempt_fn.call_count == 3
    assert sleep.call_count == 2
    first, second = (call.args[0] for call in sleep.call_args_list)
    assert 0.24 <= first < 0.36
    assert 0.72 <= second < 1.08


def test_client_error_is_not_retried(
    engine: RetryEngine, sleep: MagicMock, response_factory: Callable[..., MagicMock]
) -> None:
    """Test a 404 fails after one attempt with no sleep."""
    attempt_fn = MagicMock(return_value=response_factory(404, reason="Not Found"))

    with pytest.raises(ClientError) as exc_info:
        engine.execute(attempt_fn)

    assert exc_info.value.status == 404
    assert str(exc_info.value) == "HTTP client error: 404 Not Found"
    attempt_fn.assert_called_once()
    sleep.assert_not_called()


def test_unexpected_status_is_not_retried(
    engine: RetryEngine, sleep: MagicMock, response_factory: Callable[..., MagicMock]
) -> None:
    """Test a status outside the retry and 4xx bands fails immediately."""
    attempt_fn = MagicMock(return_value=response_factory(501))

    with pytest.raises(HTTPStatusError) as exc_info:
        engine.execute(attempt_fn)

    assert not isinstance(exc_info.value, ClientError)
    assert exc_info.value.status == 501
    attempt_fn.assert_called_once()
    sleep.assert_not_called()


def test_retries_exhausted(engine: RetryEngine, sleep: MagicMock, response_factory: Callable[..., MagicMock]) -> None:
    """Test every attempt returning 503 raises with the last status."""
    attempt_fn = MagicMock(return_value=response_factory(503))

    with pytest.raises(RetriesExhaustedError) as exc_info:
        engine.execute(attempt_fn)

    assert exc_info.value.status == 503
    assert exc_info.value.attempts == 3
    assert "after 3 attempts" in str(exc_info.value)
    assert attempt_fn.call_count == 3
    # The final attempt never sleeps
    assert sleep.call_count == 2


def test_transport_errors_are_retried(engine: RetryEngine, sleep: MagicMock) -> None:
    """Test connection failures are retried and surface as TransportError."""
    attempt_fn = MagicMock(side_effect=requests.ConnectionError("connection refused"))

    with pytest.raises(TransportError) as exc_info:
        engine.execute(attempt_fn)

    assert exc_info.value.attempts == 3
    assert "connection refused" in str(exc_info.value)
    assert attempt_fn.call_count == 3
    assert sleep.call_count == 2


def test_transport_error_then_success(
    engine: RetryEngine, sleep: MagicMock, response_factory: Callable[..., MagicMock]
) -> None:
    """Test a timeout followed by a 200 succeeds."""
    attempt_fn = MagicMock(side_effect=[requests.Timeout("timed out"), response_factory(200)])

    assert engine.execute(attempt_fn).status_code == 200
    assert sleep.call_count == 1


def test_single_attempt_never_sleeps(sleep: MagicMock, response_factory: Callable[..., MagicMock]) -> None:
    """Test max_attempts=1 makes exactly one attempt."""
    engine = RetryEngine(max_attempts=1, sleep=sleep)
    attempt_fn = MagicMock(return_value=response_factory(500))

    with pytest.raises(RetriesExhaustedError):
        engine.execute(attempt_fn)

    attempt_fn.assert_called_once()
    sleep.assert_not_called()


def test_per_call_max_attempts(
    engine: RetryEngine, sleep: MagicMock, response_factory: Callable[..., MagicMock]
) -> None:
    """Test a per-call attempt limit overrides the engine default."""
    attempt_fn = MagicMock(return_value=response_factory(429))

    with pytest.raises(RetriesExhaustedError) as exc_info:
        engine.execute(attempt_fn, max_attempts=5)

    assert exc_info.value.attempts == 5
    assert attempt_fn.call_count == 5
    assert sleep.call_count == 4


def test_cancelled_before_first_attempt(response_factory: Callable[..., MagicMock]) -> None:
    """Test a set cancel event stops the fetch before any request."""
    cancel = threading.Event()
    cancel.set()
    engine = RetryEngine(cancel_event=cancel)
    attempt_fn = MagicMock(return_value=response_factory(200))

    with pytest.raises(FetchCancelledError):
        engine.execute(attempt_fn)

    attempt_fn.assert_not_called()


def test_cancelled_during_backoff(response_factory: Callable[..., MagicMock]) -> None:
    """Test cancelling while backing off aborts without another attempt."""
    cancel = threading.Event()
    engine = RetryEngine(min_delay=10.0, cancel_event=cancel)

    def attempt() -> MagicMock:
        cancel.set()
        return response_factory(503)

    attempt_fn = MagicMock(side_effect=attempt)

    with pytest.raises(FetchCancelledError):
        engine.execute(attempt_fn)

    attempt_fn.assert_called_once()
