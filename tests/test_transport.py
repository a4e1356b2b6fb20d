"""Tests for the HTTP transport."""

from unittest.mock import MagicMock

import pytest

from bigfix_inventory.transport import Transport


def test_session_configuration(transport: Transport, mock_session: MagicMock) -> None:
    """Test credentials, TLS policy and the Accept header are applied."""
    assert transport.base_url == "https://bigfix.example.com:52311"
    assert mock_session.auth == ("operator", "secret")
    assert mock_session.verify is True
    assert mock_session.headers["Accept"] == "application/xml"


def test_insecure_transport(mock_session: MagicMock) -> None:
    """Test certificate verification can be disabled."""
    Transport("bigfix.example.com", 52311, "operator", "secret", verify_ssl=False, session=mock_session)
    assert mock_session.verify is False


def test_missing_server_name(mock_session: MagicMock) -> None:
    """Test a transport needs a server name."""
    with pytest.raises(ValueError, match="server name required"):
        Transport("", 52311, "operator", "secret", session=mock_session)


def test_resource_for_strips_query(transport: Transport) -> None:
    """Test resource URLs never carry a query string."""
    assert transport.url_for("/api/computer/1?fields") == "https://bigfix.example.com:52311/api/computer/1?fields"
    assert transport.resource_for("/api/computer/1?fields") == "https://bigfix.example.com:52311/api/computer/1"


def test_get_sends_one_request(transport: Transport, mock_session: MagicMock) -> None:
    """Test get performs exactly one request with the configured timeout."""
    transport.get("/api/roles", tag="bigfix_role_list")

    mock_session.get.assert_called_once_with("https://bigfix.example.com:52311/api/roles", timeout=120.0)


def test_context_manager_closes_session(transport: Transport, mock_session: MagicMock) -> None:
    """Test leaving the context closes the session."""
    with transport:
        pass
    mock_session.close.assert_called_once()
