"""
Configuration file generator for Google Contacts to Notion synchronization.

Generates a default configuration file documenting every available option.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def generate_default_config() -> str:
    """
    Generate default YAML configuration with all options documented.

    Returns:
        String containing YAML configuration with comments
    """
    return """# Google Contacts -> Notion Sync Configuration
# ============================================
#
# Default options for gcontact-notion-sync.
# CLI arguments always override these values.
#
# To use this configuration:
#   1. Save as ~/.gcontact-notion-sync/config.yaml (or custom location)
#   2. Set notion_database_id and provide a Notion integration token
#   3. Run gcontact-notion-sync commands normally


# Notion
# ------

# ID of the Notion database that holds the contact pages.
# The database needs these properties:
#   Name (title), contactId, First Name, Last Name, Organization, Title (text)
# notion_database_id: 0123456789abcdef0123456789abcdef

# Name of the environment variable holding the Notion integration token
# Default: NOTION_TOKEN
# notion_token_env: NOTION_TOKEN

# The token itself (not recommended, prefer notion_token_env)
# notion_token: secret_xxx

# Notion-Version header sent with every request
# Default: 2022-06-28
# notion_version: "2022-06-28"


# Sync Behavior
# -------------

# Preview changes without applying them
# Default: false
# dry_run: false


# API Options
# -----------

# Page size when listing Google connections (max 1000)
# Default: 1000
# api_page_size: 1000

# Retries for rate-limited or failed API calls
# Default: 5
# api_max_retries: 5

# Initial and maximum backoff delay in seconds
# Default: 1.0 and 60.0
# api_initial_retry_delay: 1.0
# api_max_retry_delay: 60.0

# Timeout in seconds for each Notion request
# Default: 30
# api_timeout: 30

# Timeout in seconds for Google account lookups
# Default: 10
# auth_timeout: 10


# Logging
# -------

# Enable verbose output with detailed logging
# Default: false
# verbose: false

# Directory for log files
# Default: <project>/logs
# log_dir: ~/.gcontact-notion-sync/logs

# Number of daily log files to keep (0 keeps everything)
# Default: 10
# log_retention_count: 10
"""


def save_config_file(
    config_path: Path, overwrite: bool = False
) -> tuple[bool, str | None]:
    """
    Save default configuration file to specified path.

    Creates parent directories if they don't exist and writes the file with
    owner-only permissions.

    Args:
        config_path: Path where the config file should be saved
        overwrite: If True, overwrite existing file. If False, fail if file exists.

    Returns:
        Tuple of (success, error_message); error_message is None on success
    """
    try:
        config_path = config_path.expanduser().resolve()

        if config_path.exists() and not overwrite:
            return (
                False,
                f"Configuration file already exists: {config_path}\n"
                "Use --force to overwrite.",
            )

        config_path.parent.mkdir(parents=True, mode=0o700, exist_ok=True)
        config_path.write_text(generate_default_config(), encoding="utf-8")
        config_path.chmod(0o600)

        logger.info(f"Created configuration file: {config_path}")
        return (True, None)

    except OSError as e:
        error_msg = f"Failed to create configuration file: {e}"
        logger.error(error_msg)
        return (False, error_msg)
