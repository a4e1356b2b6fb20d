"""Retry/backoff engine for BigFix API requests.

Every request runs through ``RetryEngine.execute``, which drives a Tenacity
``Retrying`` loop:

- 2xx: success, returned immediately
- 408, 429, 500, 502, 503, 504 and transport failures: retried
- any other 4xx: ``ClientError``, never retried
- anything else: ``HTTPStatusError``, never retried

Between attempts the caller is suspended for
``min(5 minutes, min_delay * 3**attempt * jitter)`` with jitter drawn from
``[0.8, 1.2)``. The final attempt never sleeps.
"""

import random
import threading
import time
from collections.abc import Callable
from enum import Enum
from functools import partial

import requests
import structlog
from tenacity import Future, RetryCallState, RetryError, Retrying, retry_if_exception_type, stop_after_attempt
from tenacity.wait import wait_base

from bigfix_inventory.errors import (
    ClientError,
    FetchCancelledError,
    HTTPStatusError,
    RetriesExhaustedError,
    TransportError,
)

logger = structlog.get_logger()

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_MIN_DELAY = 0.1
MAX_DELAY = 300.0
GROWTH_BASE = 3
JITTER_RANGE = (80, 120)

RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


class Outcome(Enum):
    """Classification of one response status."""

    SUCCESS = "success"
    RETRY = "retry"
    CLIENT_ERROR = "client_error"
    FATAL = "fatal"


def classify(status: int) -> Outcome:
    """Classify a response status code."""
    if 200 <= status < 300:
        return Outcome.SUCCESS
    if status in RETRYABLE_STATUSES:
        return Outcome.RETRY
    if 400 <= status < 500:
        return Outcome.CLIENT_ERROR
    return Outcome.FATAL


def backoff_delay(attempt: int, min_delay: float, rng: random.Random | None = None) -> float:
    """Return the delay in seconds to wait after ``attempt`` failed."""
    rng = rng or random.Random()
    jitter = rng.randrange(*JITTER_RANGE) / 100
    return min(MAX_DELAY, min_delay * GROWTH_BASE**attempt * jitter)


class JitteredBackoff(wait_base):
    """Tenacity wait strategy for the jittered x3 exponential backoff."""

    def __init__(self, min_delay: float, rng: random.Random) -> None:
        self.min_delay = min_delay
        self.rng = rng

    def __call__(self, retry_state: RetryCallState) -> float:
        return backoff_delay(retry_state.attempt_number, self.min_delay, self.rng)


class _RetryableResponse(Exception):
    """Carries a response with a retryable status through the Tenacity loop."""

    def __init__(self, response: requests.Response) -> None:
        super().__init__(f"retryable status {response.status_code}")
        self.response = response


class RetryEngine:
    """Executes one logical request with classification, retry and backoff."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        min_delay: float = DEFAULT_MIN_DELAY,
        sleep: Callable[[float], None] | None = None,
        rng: random.Random | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            max_attempts: Attempts per request, including the first one
            min_delay: Minimum backoff delay in seconds
            sleep: Sleep function, defaults to ``time.sleep`` (or waiting on ``cancel_event``)
            rng: Random source for jitter
            cancel_event: When set, aborts the fetch before the next attempt
        """
        self.max_attempts = max(1, max_attempts)
        self.min_delay = min_delay
        self.cancel_event = cancel_event
        self._sleep_fn = sleep
        self._rng = rng or random.Random()

    def execute(
        self,
        attempt_fn: Callable[[], requests.Response],
        max_attempts: int | None = None,
        tag: str = "",
    ) -> requests.Response:
        """Run ``attempt_fn`` until it succeeds, fails fatally, or attempts run out.

        Returns:
            The first 2xx response

        Raises:
            ClientError: a non-retryable 4xx response
            HTTPStatusError: any other non-retryable response
            RetriesExhaustedError: every attempt ended with a retryable status
            TransportError: every attempt failed before a response arrived
            FetchCancelledError: the cancel event was set
        """
        attempts = max(1, max_attempts or self.max_attempts)
        retrying = Retrying(
            stop=stop_after_attempt(attempts),
            wait=JitteredBackoff(self.min_delay, self._rng),
            retry=retry_if_exception_type((TransportError, _RetryableResponse)),
            sleep=self._sleep,
            before_sleep=partial(self._log_backoff, tag),
            reraise=False,
        )

        try:
            for attempt in retrying:
                with attempt:
                    response = self._attempt(attempt_fn, attempt.retry_state.attempt_number, attempts, tag)
        except RetryError as exc:
            raise self._exhausted(exc.last_attempt, attempts, tag) from exc.last_attempt.exception()

        return response

    def _attempt(
        self,
        attempt_fn: Callable[[], requests.Response],
        attempt: int,
        attempts: int,
        tag: str,
    ) -> requests.Response:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise FetchCancelledError(f"request cancelled before attempt {attempt}/{attempts}")

        logger.debug("Request attempt", attempt=attempt, max_attempts=attempts, tag=tag)
        try:
            response = attempt_fn()
        except requests.RequestException as exc:
            logger.warning("Network error", attempt=attempt, tag=tag, error=str(exc))
            raise TransportError(f"network error: {exc}") from exc

        status = response.status_code
        logger.debug("Response received", attempt=attempt, status=status, tag=tag)

        outcome = classify(status)
        if outcome is Outcome.SUCCESS:
            return response
        if outcome is Outcome.RETRY:
            raise _RetryableResponse(response)

        reason = getattr(response, "reason", "") or ""
        if outcome is Outcome.CLIENT_ERROR:
            logger.warning("Client error, not retrying", status=status, tag=tag)
            raise ClientError(f"HTTP client error: {status} {reason}".rstrip(), status)
        logger.warning("HTTP error, not retrying", status=status, tag=tag)
        raise HTTPStatusError(f"HTTP error: {status} {reason}".rstrip(), status)

    def _sleep(self, delay: float) -> None:
        if self._sleep_fn is not None:
            self._sleep_fn(delay)
        elif self.cancel_event is not None:
            if self.cancel_event.wait(delay):
                raise FetchCancelledError("request cancelled during backoff")
            return
        else:
            time.sleep(delay)

    def _log_backoff(self, tag: str, retry_state: RetryCallState) -> None:
        status = None
        error = None
        if retry_state.outcome is not None:
            exc = retry_state.outcome.exception()
            if isinstance(exc, _RetryableResponse):
                status = exc.response.status_code
            elif exc is not None:
                error = str(exc)

        delay = retry_state.next_action.sleep if retry_state.next_action else None
        logger.info(
            "Backing off before retry",
            attempt=retry_state.attempt_number,
            status=status,
            error=error,
            delay=delay,
            tag=tag,
        )

    def _exhausted(self, last_attempt: Future, attempts: int, tag: str) -> Exception:
        exc = last_attempt.exception()
        if isinstance(exc, _RetryableResponse):
            status = exc.response.status_code
            logger.error("Retries exhausted", attempts=attempts, status=status, tag=tag)
            return RetriesExhaustedError(
                f"request failed after {attempts} attempts with status {status}", status, attempts
            )

        logger.error("Retries exhausted", attempts=attempts, error=str(exc), tag=tag)
        message = exc.message if isinstance(exc, TransportError) else str(exc)
        return TransportError(f"request failed after {attempts} attempts: {message}", attempts=attempts)
