"""Tests for configuration storage and connection settings."""

from pathlib import Path

import pytest
import yaml

from bigfix_inventory.config import Config, ConnectionConfig, load_connection_config

REQUIRED = {"server_name": "bigfix.example.com", "port": "52311", "user_name": "operator", "password": "secret"}


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the user's home directory at a temporary directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(Path, "home", lambda: home)
    return home


def test_set_get_unset(tmp_path: Path, home: Path) -> None:
    """Test values round through the YAML file."""
    config = Config(config_dir=tmp_path / "local")
    config.set("server_name", "bigfix.example.com")

    assert Config(config_dir=tmp_path / "local").get("server_name") == "bigfix.example.com"
    with open(tmp_path / "local" / "config.yaml") as f:
        assert yaml.safe_load(f) == {"server_name": "bigfix.example.com"}

    config.unset("server_name")
    assert config.get("server_name") is None
    assert config.get("server_name", "fallback") == "fallback"


def test_local_falls_back_to_global(tmp_path: Path, home: Path) -> None:
    """Test local lookups fall back to the global file and local values win."""
    Config(use_global=True).set("port", "52311")
    Config(use_global=True).set("user_name", "global-user")

    local = Config(config_dir=tmp_path / "local")
    local.set("user_name", "local-user")

    assert local.get("port") == "52311"
    assert local.get("user_name") == "local-user"
    assert local.list() == {"port": "52311", "user_name": "local-user"}
    assert Config(use_global=True).list() == {"port": "52311", "user_name": "global-user"}


def test_invalid_yaml_raises_value_error(tmp_path: Path, home: Path) -> None:
    """Test a corrupt config file is reported as ValueError."""
    config_dir = tmp_path / "broken"
    config_dir.mkdir()
    (config_dir / "config.yaml").write_text("server_name: [unclosed\n")

    with pytest.raises(ValueError, match="Failed to load config"):
        Config(config_dir=config_dir)


def test_load_connection_config_defaults() -> None:
    """Test optional settings take their defaults."""
    settings = load_connection_config(REQUIRED)

    assert settings == ConnectionConfig(
        server_name="bigfix.example.com", port=52311, user_name="operator", password="secret"
    )
    assert settings.request_timeout == 120
    assert settings.max_retries == 3
    assert settings.min_retry_delay_seconds == 0.1
    assert "secret" not in repr(settings)


def test_load_connection_config_coerces_strings() -> None:
    """Test string values from the CLI are coerced."""
    settings = load_connection_config(
        {
            **REQUIRED,
            "insecure_skip_verify": "true",
            "request_timeout": "30",
            "max_retries": 5,
            "min_retry_delay": "250",
            "ignore_error_messages": "access denied, , unavailable",
            "max_workers": "2",
        }
    )

    assert settings.insecure_skip_verify is True
    assert settings.request_timeout == 30
    assert settings.max_retries == 5
    assert settings.min_retry_delay_seconds == 0.25
    assert settings.ignore_error_messages == ("access denied", "unavailable")
    assert settings.max_workers == 2


def test_load_connection_config_accepts_yaml_list() -> None:
    """Test ignore_error_messages may be a YAML list."""
    settings = load_connection_config({**REQUIRED, "ignore_error_messages": ["timeout", "denied"]})
    assert settings.ignore_error_messages == ("timeout", "denied")


@pytest.mark.parametrize("key", ["server_name", "port", "user_name", "password"])
def test_load_connection_config_missing_key(key: str) -> None:
    """Test a missing required key is named in the error."""
    values = {k: v for k, v in REQUIRED.items() if k != key}

    with pytest.raises(ValueError, match=f"Missing required config value: {key}"):
        load_connection_config(values)


@pytest.mark.parametrize(
    ("key", "value"),
    [("port", "https"), ("insecure_skip_verify", "maybe"), ("max_workers", "0")],
)
def test_load_connection_config_bad_values(key: str, value: str) -> None:
    """Test values that cannot be coerced are rejected."""
    with pytest.raises(ValueError, match=key):
        load_connection_config({**REQUIRED, key: value})
