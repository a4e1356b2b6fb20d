"""Shared fixtures for bigfix-inventory tests."""

import sys
from collections.abc import Callable, Iterator
from unittest.mock import MagicMock

import pytest
import requests
import structlog

from bigfix_inventory.retry import RetryEngine
from bigfix_inventory.transport import Transport

SERVER = "bigfix.example.com"
PORT = 52311
BASE_URL = f"https://{SERVER}:{PORT}"


def make_response(status: int = 200, body: bytes = b"<BESAPI/>", reason: str = "") -> MagicMock:
    """Create a mock HTTP response."""
    response = MagicMock(spec=requests.Response)
    response.status_code = status
    response.content = body
    response.reason = reason
    return response


@pytest.fixture
def response_factory() -> Callable[..., MagicMock]:
    """Expose the response builder to tests."""
    return make_response


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock requests session."""
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    session.get.return_value = make_response()
    return session


@pytest.fixture
def transport(mock_session: MagicMock) -> Transport:
    """Create a transport backed by the mock session."""
    return Transport(
        server_name=SERVER,
        port=PORT,
        user_name="operator",
        password="secret",
        session=mock_session,
    )


@pytest.fixture
def sleep() -> MagicMock:
    """Record backoff sleeps instead of sleeping."""
    return MagicMock()


@pytest.fixture
def engine(sleep: MagicMock) -> RetryEngine:
    """Create a retry engine that never really sleeps."""
    return RetryEngine(max_attempts=3, min_delay=0.1, sleep=sleep)


@pytest.fixture(autouse=True)
def log_to_stderr() -> Iterator[None]:
    """Keep log events off stdout, where the CLI writes its JSON lines."""
    structlog.configure(logger_factory=structlog.PrintLoggerFactory(file=sys.stderr))
    yield
    structlog.reset_defaults()
