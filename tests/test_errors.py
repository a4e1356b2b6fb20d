"""Tests for the error taxonomy."""

import pytest

from bigfix_inventory.errors import (
    BigFixError,
    ClientError,
    EntityNotFoundError,
    HTTPStatusError,
    RetriesExhaustedError,
    TransportError,
    is_not_found,
)


def test_add_context_keeps_first_value() -> None:
    """Test context added later does not overwrite earlier values."""
    error = BigFixError("boom").add_context(kind="task", id=3)
    error.add_context(kind="fixlet", path="/api/task/master/3", site_name="", site_type=None)

    assert error.context == {"kind": "task", "id": 3, "path": "/api/task/master/3"}
    assert str(error) == "boom (kind=task, id=3, path=/api/task/master/3)"


def test_str_without_context() -> None:
    """Test errors without context render their message only."""
    assert str(TransportError("network error: refused")) == "network error: refused"


def test_retries_exhausted_is_http_status_error() -> None:
    """Test exhaustion errors carry status and attempts."""
    error = RetriesExhaustedError("request failed after 3 attempts with status 503", 503, 3)
    assert isinstance(error, HTTPStatusError)
    assert error.status == 503
    assert error.attempts == 3


@pytest.mark.parametrize(
    ("error", "patterns", "expected"),
    [
        (EntityNotFoundError("missing"), (), True),
        (ClientError("HTTP client error: 404", 404), (), True),
        (ClientError("HTTP client error: 403 Forbidden", 403), (), False),
        (BigFixError("Computer Not Found"), (), True),
        (BigFixError("site is unavailable"), ("UNAVAILABLE",), True),
        (BigFixError("site is unavailable"), ("",), False),
        (ValueError("value not found"), (), True),
    ],
)
def test_is_not_found(error: Exception, patterns: tuple[str, ...], expected: bool) -> None:
    """Test not-found classification and configured substrings."""
    assert is_not_found(error, patterns) is expected
