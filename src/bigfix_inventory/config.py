"""Configuration management for bigfix-inventory using YAML files."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import structlog
import yaml

logger = structlog.get_logger()

CONFIG_DIR_NAME = ".bigfix-inventory"
REQUIRED_KEYS = ("server_name", "port", "user_name", "password")
TRUE_VALUES = ("true", "1", "yes", "on")
FALSE_VALUES = ("false", "0", "no", "off", "")


class Config:
    """Configuration manager using YAML file storage.

    Supports both local (directory-level) and global (user-level) configuration.
    Local config is stored in .bigfix-inventory/config.yaml in the current directory.
    Global config is stored in ~/.bigfix-inventory/config.yaml.

    When reading, values are looked up in local config first, then global config.
    """

    def __init__(self, use_global: bool = False, config_dir: Path | None = None) -> None:
        """Initialize configuration manager.

        Args:
            use_global: If True, use global config only. If False, use local config with global fallback.
            config_dir: Custom directory to store config file (overrides use_global)
        """
        if config_dir is not None:
            self.config_dir = Path(config_dir)
            self.is_global = use_global
        elif use_global:
            self.config_dir = Path.home() / CONFIG_DIR_NAME
            self.is_global = True
        else:
            self.config_dir = Path.cwd() / CONFIG_DIR_NAME
            self.is_global = False

        self.config_file = self.config_dir / "config.yaml"
        self._config: dict[str, Any] = self._load()

        # Local config falls back to the user's global file
        self._global_config: dict[str, Any] = {}
        if not self.is_global:
            global_config_file = Path.home() / CONFIG_DIR_NAME / "config.yaml"
            if global_config_file != self.config_file and global_config_file.exists():
                try:
                    with open(global_config_file, "r") as f:
                        self._global_config = yaml.safe_load(f) or {}
                except (OSError, yaml.YAMLError) as e:
                    logger.warning("Failed to load global config", error=str(e))

        logger.debug("Config initialized", config_file=str(self.config_file), is_global=self.is_global)

    def _load(self) -> dict[str, Any]:
        """Load configuration from YAML file.

        Returns:
            Configuration dictionary
        """
        if not self.config_file.exists():
            logger.debug("Config file does not exist, initializing empty config")
            return {}

        try:
            with open(self.config_file, "r") as f:
                config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error("Failed to load config", error=str(e))
            raise ValueError(f"Failed to load config from {self.config_file}: {e}") from e

        if not isinstance(config, dict):
            raise ValueError(f"Config file {self.config_file} must contain a mapping")
        logger.debug("Config loaded successfully", keys=list(config.keys()))
        return config

    def _save(self) -> None:
        """Save configuration to YAML file."""
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w") as f:
                yaml.safe_dump(self._config, f, default_flow_style=False, sort_keys=False)
            logger.debug("Config saved successfully")
        except OSError as e:
            logger.error("Failed to save config", error=str(e))
            raise ValueError(f"Failed to save config to {self.config_file}: {e}") from e

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value.

        For local config, checks local config first, then falls back to global config.

        Args:
            key: Configuration key
            default: Default value if key doesn't exist

        Returns:
            Configuration value or default
        """
        if key in self._config:
            logger.debug("Getting config value from local", key=key)
            return self._config[key]

        if not self.is_global and key in self._global_config:
            logger.debug("Getting config value from global", key=key)
            return self._global_config[key]

        logger.debug("Config value not found", key=key)
        return default

    def set(self, key: str, value: str) -> None:
        """Set a configuration value.

        Args:
            key: Configuration key
            value: Configuration value
        """
        logger.debug("Setting config value", key=key)
        self._config[key] = value
        self._save()

    def unset(self, key: str) -> None:
        """Remove a configuration value.

        Args:
            key: Configuration key
        """
        logger.debug("Unsetting config value", key=key)
        if key in self._config:
            del self._config[key]
            self._save()

    def list(self) -> dict[str, Any]:
        """List all configuration settings.

        For local config, merges global config with local config (local takes precedence).

        Returns:
            Dictionary of all config settings
        """
        if self.is_global:
            logger.debug("Listing global config values", count=len(self._config))
            return self._config.copy()

        merged = self._global_config.copy()
        merged.update(self._config)
        logger.debug("Listing merged config values", count=len(merged))
        return merged


def get_config(use_global: bool = False) -> Config:
    """Get a configuration instance.

    Args:
        use_global: If True, return global config. If False, return local config with global fallback.

    Returns:
        Config instance
    """
    return Config(use_global=use_global)


@dataclass(frozen=True)
class ConnectionConfig:
    """Settings for one BigFix server connection.

    Attributes:
        server_name: BigFix server host name
        port: REST API port
        user_name: Operator user name
        password: Operator password
        insecure_skip_verify: Skip TLS certificate verification
        request_timeout: Per-request timeout in seconds
        max_retries: Attempts per request, including the first one
        min_retry_delay: Minimum backoff delay in milliseconds
        ignore_error_messages: Extra error substrings treated as not-found
        max_workers: Parallel site fetches when listing site content
    """

    server_name: str
    port: int
    user_name: str
    password: str = field(repr=False)
    insecure_skip_verify: bool = False
    request_timeout: int = 120
    max_retries: int = 3
    min_retry_delay: int = 100
    ignore_error_messages: tuple[str, ...] = ()
    max_workers: int = 8

    @property
    def min_retry_delay_seconds(self) -> float:
        return self.min_retry_delay / 1000


class SupportsGet(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...


def _as_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Config value {key} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Config value {key} must be an integer, got {value!r}") from e


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ValueError(f"Config value {key} must be a boolean, got {value!r}")


def _as_list(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        items: Sequence[Any] = value.split(",")
    else:
        items = value or ()
    return tuple(str(item).strip() for item in items if str(item).strip())


def load_connection_config(config: SupportsGet) -> ConnectionConfig:
    """Build a ``ConnectionConfig`` from stored settings.

    Values set through the CLI arrive as strings and are coerced here.

    Args:
        config: Anything with a ``get(key, default)`` method, usually a ``Config``

    Returns:
        Validated connection settings

    Raises:
        ValueError: a required key is missing or a value cannot be coerced
    """
    for key in REQUIRED_KEYS:
        value = config.get(key)
        if value is None or value == "":
            raise ValueError(
                f"Missing required config value: {key}. Set it using:\n  bigfix-inventory config set {key} <value>"
            )

    settings = ConnectionConfig(
        server_name=str(config.get("server_name")),
        port=_as_int("port", config.get("port")),
        user_name=str(config.get("user_name")),
        password=str(config.get("password")),
        insecure_skip_verify=_as_bool("insecure_skip_verify", config.get("insecure_skip_verify", False)),
        request_timeout=_as_int("request_timeout", config.get("request_timeout", 120)),
        max_retries=_as_int("max_retries", config.get("max_retries", 3)),
        min_retry_delay=_as_int("min_retry_delay", config.get("min_retry_delay", 100)),
        ignore_error_messages=_as_list(config.get("ignore_error_messages", ())),
        max_workers=_as_int("max_workers", config.get("max_workers", 8)),
    )
    if settings.max_workers < 1:
        raise ValueError("Config value max_workers must be at least 1")
    logger.debug(
        "Connection config loaded",
        server_name=settings.server_name,
        port=settings.port,
        max_retries=settings.max_retries,
    )
    return settings
