"""Tests for the command line interface."""

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from bigfix_inventory import cli, config_commands
from bigfix_inventory.config import Config
from bigfix_inventory.errors import ClientError
from bigfix_inventory.models import Computer, SitePermission


@pytest.fixture
def mock_inventory(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Replace the configured inventory with a mock."""
    inventory = MagicMock()
    monkeypatch.setattr("bigfix_inventory.cli.get_inventory", lambda: inventory)
    return inventory


def test_list_prints_json_lines(mock_inventory: MagicMock, capsys: pytest.CaptureFixture[str]) -> None:
    """Test entities are printed one JSON object per line."""
    mock_inventory.list.return_value = iter([Computer(id=1, name="web-01"), Computer(id=2, name="web-02")])

    cli.list_entities("computer")

    lines = capsys.readouterr().out.splitlines()
    assert [json.loads(line)["name"] for line in lines] == ["web-01", "web-02"]
    mock_inventory.list.assert_called_once_with("computer", site_name=None, site_type=None, detail=False)


def test_list_reports_errors(mock_inventory: MagicMock, capsys: pytest.CaptureFixture[str]) -> None:
    """Test library errors go to stderr with a non-zero exit."""
    mock_inventory.list.side_effect = ClientError("HTTP client error: 401 Unauthorized", 401)

    with pytest.raises(SystemExit) as exc_info:
        cli.list_entities("role")

    assert exc_info.value.code == 1
    assert "401 Unauthorized" in capsys.readouterr().err


def test_get_not_found(mock_inventory: MagicMock, capsys: pytest.CaptureFixture[str]) -> None:
    """Test a missing entity exits non-zero."""
    mock_inventory.get.return_value = None

    with pytest.raises(SystemExit):
        cli.get("computer", id=404)

    assert "computer not found" in capsys.readouterr().err


def test_permissions(mock_inventory: MagicMock, capsys: pytest.CaptureFixture[str]) -> None:
    """Test site permissions are printed."""
    mock_inventory.site_permissions.return_value = (SitePermission(permission="Owner", operator_name="alice"),)

    cli.permissions("alice", "operator")

    assert json.loads(capsys.readouterr().out)["operator_name"] == "alice"


def test_config_commands_mask_password(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """Test the password is stored but never echoed."""
    config = Config(config_dir=tmp_path)
    monkeypatch.setattr("bigfix_inventory.config_commands.get_config", lambda use_global=False: config)

    config_commands.set("password", "secret")
    config_commands.get("password")
    config_commands.list_config()

    output = capsys.readouterr().out
    assert "secret" not in output
    assert config.get("password") == "secret"
