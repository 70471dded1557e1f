"""
Configuration loader module for Google Contacts to Notion synchronization.

Provides YAML-based configuration file loading with support for:
- Loading configuration from default or custom paths
- Graceful handling of missing configuration files
- Basic validation of configuration structure
- Resolving the Notion integration token from config or environment
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from gcontact_notion_sync.utils.paths import resolve_config_dir

# Default configuration file name
DEFAULT_CONFIG_FILE = "config.yaml"

# Environment variable read for the Notion token when notion_token_env is unset
DEFAULT_NOTION_TOKEN_ENV = "NOTION_TOKEN"

# Environment variable read for the database ID when it isn't configured
NOTION_DATABASE_ID_ENV = "GCONTACT_NOTION_SYNC_DATABASE_ID"

# Valid configuration keys and their expected types
VALID_KEYS: dict[str, type[Any] | tuple[type[Any], ...]] = {
    # CLI options
    "dry_run": bool,
    "verbose": bool,
    # Notion options
    "notion_database_id": str,
    "notion_token": str,
    "notion_token_env": str,
    "notion_version": str,
    # API options
    "api_page_size": int,
    "api_max_retries": int,
    "api_initial_retry_delay": (int, float),
    "api_max_retry_delay": (int, float),
    "api_timeout": int,
    # Auth options
    "auth_timeout": int,
    # Logging options
    "log_dir": str,
    "log_retention_count": int,
}

POSITIVE_INT_KEYS = ("api_page_size", "api_max_retries", "api_timeout", "auth_timeout")

POSITIVE_FLOAT_KEYS = ("api_initial_retry_delay", "api_max_retry_delay")

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


class ConfigLoader:
    """
    YAML configuration file loader.

    Attributes:
        config_dir: Directory containing the configuration file
        config_file: Name of the configuration file

    Usage:
        loader = ConfigLoader()
        config = loader.load_and_validate()

        # Load from specific file
        config = loader.load_from_file("/path/to/config.yaml")
    """

    def __init__(
        self, config_dir: Path | None = None, config_file: str = DEFAULT_CONFIG_FILE
    ):
        """
        Initialize the configuration loader.

        Args:
            config_dir: Directory containing the configuration file. Defaults to
                       ~/.gcontact-notion-sync/ or $GCONTACT_NOTION_SYNC_CONFIG_DIR
            config_file: Name of the configuration file (default: config.yaml)
        """
        if config_dir is not None:
            self.config_dir = Path(config_dir)
        else:
            self.config_dir = resolve_config_dir()

        self.config_file = config_file

    @property
    def config_path(self) -> Path:
        """Full path to the configuration file."""
        return self.config_dir / self.config_file

    def load(self) -> dict[str, Any]:
        """
        Load configuration from the default configuration file.

        Returns:
            Dictionary containing configuration values, or empty dict if file
            doesn't exist

        Raises:
            ConfigError: If the configuration file exists but cannot be parsed
        """
        return self.load_from_file(self.config_path)

    def load_from_file(self, path: Path | str) -> dict[str, Any]:
        """
        Load configuration from a specific file.

        Args:
            path: Path to the configuration file

        Returns:
            Dictionary containing configuration values, or empty dict if file
            doesn't exist

        Raises:
            ConfigError: If the configuration file exists but cannot be parsed
        """
        path = Path(path)

        if not path.exists():
            logger.debug(f"Configuration file not found: {path}")
            return {}

        try:
            with open(path, encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML configuration file: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read configuration file: {e}") from e

        if config is None:
            logger.debug(f"Configuration file is empty: {path}")
            return {}

        if not isinstance(config, dict):
            raise ConfigError(
                f"Configuration file must contain a YAML dictionary, "
                f"got {type(config).__name__}"
            )

        logger.debug(f"Loaded configuration from {path}")
        return config

    def validate(self, config: dict[str, Any]) -> None:
        """
        Validate configuration structure and values.

        Unknown keys are ignored so newer config files keep working.

        Args:
            config: Configuration dictionary to validate

        Raises:
            ConfigError: If configuration is invalid
        """
        if not isinstance(config, dict):
            raise ConfigError(
                f"Configuration must be a dictionary, got {type(config).__name__}"
            )

        for key, value in config.items():
            expected_type = VALID_KEYS.get(key)
            if expected_type is None:
                continue
            # bool is an int subclass; don't accept True as a page size
            if isinstance(value, bool) and expected_type is not bool:
                raise ConfigError(
                    f"Invalid type for '{key}': expected "
                    f"{_type_name(expected_type)}, got bool"
                )
            if not isinstance(value, expected_type):
                raise ConfigError(
                    f"Invalid type for '{key}': expected "
                    f"{_type_name(expected_type)}, got {type(value).__name__}"
                )

        for key in POSITIVE_INT_KEYS:
            if key in config and config[key] < 1:
                raise ConfigError(f"{key} must be >= 1, got {config[key]}")

        for key in POSITIVE_FLOAT_KEYS:
            if key in config and config[key] <= 0:
                raise ConfigError(f"{key} must be > 0, got {config[key]}")

        if "log_retention_count" in config and config["log_retention_count"] < 0:
            raise ConfigError(
                f"log_retention_count must be >= 0, got {config['log_retention_count']}"
            )

        if "notion_database_id" in config and not config["notion_database_id"].strip():
            raise ConfigError("notion_database_id must not be empty")

    def load_and_validate(self) -> dict[str, Any]:
        """
        Load configuration and validate it.

        Returns:
            Validated configuration dictionary

        Raises:
            ConfigError: If configuration cannot be loaded or is invalid
        """
        config = self.load()
        if config:
            self.validate(config)
        return config


def _type_name(expected_type: type[Any] | tuple[type[Any], ...]) -> str:
    if isinstance(expected_type, tuple):
        return " or ".join(t.__name__ for t in expected_type)
    return expected_type.__name__


def resolve_notion_token(config: dict[str, Any]) -> str | None:
    """
    Resolve the Notion integration token.

    Priority:
        1. notion_token in config (direct token - not recommended)
        2. Environment variable named by notion_token_env
        3. NOTION_TOKEN environment variable

    Args:
        config: Loaded configuration dictionary

    Returns:
        The token, or None if none is configured
    """
    token = config.get("notion_token")
    if token:
        return str(token)

    env_var = config.get("notion_token_env") or DEFAULT_NOTION_TOKEN_ENV
    return os.environ.get(env_var) or None


def resolve_database_id(
    config: dict[str, Any], override: str | None = None
) -> str | None:
    """
    Resolve the Notion database ID.

    Priority: explicit override (CLI), notion_database_id in config, then the
    GCONTACT_NOTION_SYNC_DATABASE_ID environment variable.
    """
    if override:
        return override
    database_id = config.get("notion_database_id")
    if database_id:
        return str(database_id)
    return os.environ.get(NOTION_DATABASE_ID_ENV) or None
