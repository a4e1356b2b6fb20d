"""Tests for the BigFix client wiring."""

from unittest.mock import MagicMock

from bigfix_inventory.client import BigFixClient
from bigfix_inventory.config import ConnectionConfig
from bigfix_inventory.services import AnalysisService, ComputerService, RoleService, SiteService


def test_client_wires_services(mock_session: MagicMock) -> None:
    """Test every service shares one transport and one retry engine."""
    config = ConnectionConfig(
        server_name="bigfix.example.com",
        port=52311,
        user_name="operator",
        password="secret",
        insecure_skip_verify=True,
        request_timeout=30,
        max_retries=5,
        min_retry_delay=250,
    )

    client = BigFixClient(config, session=mock_session)

    assert isinstance(client.computers, ComputerService)
    assert isinstance(client.sites, SiteService)
    assert isinstance(client.analyses, AnalysisService)
    assert isinstance(client.roles, RoleService)
    services = [
        client.computers,
        client.sites,
        client.analyses,
        client.tasks,
        client.fixlets,
        client.actions,
        client.properties,
        client.roles,
    ]
    assert all(service.transport is client.transport for service in services)
    assert all(service.engine is client.engine for service in services)
    assert client.engine.max_attempts == 5
    assert client.engine.min_delay == 0.25
    assert client.transport.timeout == 30
    assert mock_session.verify is False
