"""CLI package for gcontact_notion_sync."""

from gcontact_notion_sync.cli.formatters import (
    describe_differences,
    show_detailed_changes,
    show_last_run,
)
from gcontact_notion_sync.cli.main import (
    DEFAULT_CONFIG_FILE,
    cli,
    get_config_dir,
)
from gcontact_notion_sync.utils import DEFAULT_CONFIG_DIR

__all__ = [
    "DEFAULT_CONFIG_DIR",
    "DEFAULT_CONFIG_FILE",
    "cli",
    "describe_differences",
    "get_config_dir",
    "show_detailed_changes",
    "show_last_run",
]
