"""
gcontact_notion_sync.config - Configuration management module

Contains configuration loading, validation, and default config generation.
"""

from gcontact_notion_sync.config.generator import (
    generate_default_config,
    save_config_file,
)
from gcontact_notion_sync.config.loader import (
    ConfigError,
    ConfigLoader,
    resolve_database_id,
    resolve_notion_token,
)

__all__ = [
    "ConfigError",
    "ConfigLoader",
    "generate_default_config",
    "resolve_database_id",
    "resolve_notion_token",
    "save_config_file",
]
