"""
Command-line interface for gcontact_notion_sync.

Provides CLI commands for authentication, synchronization, and status checking
of the one-way Google Contacts to Notion sync.

Usage:
    # Show help
    gcontact-notion-sync --help

    # Authenticate the Google account
    gcontact-notion-sync auth

    # Check status
    gcontact-notion-sync status

    # Run synchronization
    gcontact-notion-sync sync
    gcontact-notion-sync sync --dry-run --verbose
"""

import sys
from pathlib import Path

import click

from gcontact_notion_sync import __version__
from gcontact_notion_sync.auth.google_auth import AuthenticationError, GoogleAuth
from gcontact_notion_sync.cli.formatters import show_detailed_changes, show_last_run
from gcontact_notion_sync.config.generator import save_config_file
from gcontact_notion_sync.config.loader import (
    ConfigError,
    ConfigLoader,
    resolve_database_id,
    resolve_notion_token,
)
from gcontact_notion_sync.storage.db import SyncDatabase
from gcontact_notion_sync.utils import DEFAULT_CONFIG_DIR, resolve_config_dir
from gcontact_notion_sync.utils.logging import (
    cleanup_old_logs,
    get_logger,
    setup_logging,
)

# Default configuration file
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"

# Name of the sync history database inside the config directory
DB_FILE_NAME = "sync.db"


def get_config_dir(config_dir: str | None) -> Path:
    """Get the configuration directory path."""
    return resolve_config_dir(config_dir)


def get_config_file(config_file: str | None, config_dir: Path) -> Path:
    """Get the configuration file path, defaulting to config_dir/config.yaml."""
    if config_file:
        return Path(config_file)
    return config_dir / "config.yaml"


@click.group()
@click.version_option(version=__version__, prog_name="gcontact-notion-sync")
@click.option(
    "--verbose", "-v", is_flag=True, help="Enable verbose output with detailed logging."
)
@click.option(
    "--config-dir",
    "-c",
    type=click.Path(exists=False, file_okay=False, dir_okay=True),
    envvar="GCONTACT_NOTION_SYNC_CONFIG_DIR",
    help="Configuration directory path (default: ~/.gcontact-notion-sync).",
)
@click.option(
    "--config-file",
    "-f",
    type=click.Path(exists=False, file_okay=True, dir_okay=False),
    envvar="GCONTACT_NOTION_SYNC_CONFIG_FILE",
    help="Configuration file path (default: <config-dir>/config.yaml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    config_dir: str | None,
    config_file: str | None,
) -> None:
    """
    One-way Google Contacts to Notion Sync.

    Copies contacts from a Google account into a Notion database, creating
    and updating pages so Notion matches Google. Notion pages are never
    deleted.
    """
    ctx.ensure_object(dict)

    resolved_config_dir = get_config_dir(config_dir)
    resolved_config_file = get_config_file(config_file, resolved_config_dir)

    ctx.obj["config_dir"] = resolved_config_dir
    ctx.obj["config_file"] = resolved_config_file

    config = {}
    try:
        loader = ConfigLoader(config_dir=resolved_config_dir)
        config = loader.load_from_file(resolved_config_file)
        if config:
            loader.validate(config)
    except ConfigError as e:
        # Show error but don't fail - allow CLI to work without config file
        click.echo(
            click.style(f"Warning: Configuration error: {e}", fg="yellow"), err=True
        )
        config = {}

    ctx.obj["config"] = config

    # CLI flag wins over config file
    effective_verbose = verbose or config.get("verbose", False)
    ctx.obj["verbose"] = effective_verbose

    log_dir = Path(config["log_dir"]).expanduser() if config.get("log_dir") else None
    setup_logging(verbose=effective_verbose, log_dir=log_dir, enable_file_logging=True)

    log_retention = config.get("log_retention_count", 10)
    if log_retention > 0:
        cleanup_old_logs(log_dir=log_dir, keep_count=log_retention)


# =============================================================================
# Auth Command
# =============================================================================


@cli.command("auth")
@click.option(
    "--force",
    "-f",
    is_flag=True,
    help="Force re-authentication even if already authenticated.",
)
@click.pass_context
def auth_command(ctx: click.Context, force: bool) -> None:
    """
    Authenticate the Google account to sync from.

    Opens a browser window to complete the OAuth flow and stores
    the credentials for future use.

    Examples:

        gcontact-notion-sync auth

        # Force re-authentication
        gcontact-notion-sync auth --force
    """
    logger = get_logger(__name__)
    config_dir = ctx.obj["config_dir"]
    config = ctx.obj["config"]

    click.echo("Authenticating Google account...")

    try:
        auth = GoogleAuth(
            config_dir=config_dir, auth_timeout=config.get("auth_timeout", 10)
        )

        if not force and auth.is_authenticated():
            click.echo(
                click.style("Google account is already authenticated.", fg="green")
            )
            click.echo("Use --force to re-authenticate.")
            return

        auth.authenticate(force_reauth=force)

        email = auth.get_account_email()
        if email:
            click.echo(click.style(f"Successfully authenticated {email}!", fg="green"))
        else:
            click.echo(click.style("Successfully authenticated!", fg="green"))

        logger.info("Authentication completed")

    except FileNotFoundError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        click.echo("\nTo get started:", err=True)
        click.echo("1. Go to https://console.cloud.google.com/", err=True)
        click.echo("2. Create a project and enable the People API", err=True)
        click.echo("3. Create OAuth 2.0 credentials (Desktop application)", err=True)
        click.echo(
            f"4. Download and save as: {config_dir / 'credentials.json'}", err=True
        )
        sys.exit(1)

    except AuthenticationError as e:
        logger.error(f"Authentication failed: {e}")
        click.echo(click.style(f"Authentication failed: {e}", fg="red"), err=True)
        sys.exit(1)


# =============================================================================
# Status Command
# =============================================================================


@cli.command("status")
@click.pass_context
def status_command(ctx: click.Context) -> None:
    """
    Show authentication, Notion configuration and last sync.

    Example:

        gcontact-notion-sync status
    """
    logger = get_logger(__name__)
    config_dir = ctx.obj["config_dir"]
    config = ctx.obj["config"]

    try:
        auth = GoogleAuth(config_dir=config_dir)
        auth_status = auth.get_auth_status()

        click.echo("=== Google Contacts -> Notion Sync Status ===\n")

        click.echo(f"Configuration directory: {auth_status['config_dir']}")
        creds_status = (
            "Found"
            if auth_status["credentials_exist"]
            else click.style("Not found", fg="red")
        )
        click.echo(f"OAuth credentials: {creds_status}")

        if auth_status["authenticated"]:
            email = auth.get_account_email() or "Google account"
            click.echo(f"{email}: {click.style('Authenticated', fg='green')}")
        elif auth_status["token_exists"]:
            expired = click.style("Token expired or invalid", fg="yellow")
            click.echo(f"Google account: {expired}")
        else:
            click.echo(f"Google account: {click.style('Not authenticated', fg='red')}")

        database_id = resolve_database_id(config)
        token = resolve_notion_token(config)
        click.echo(
            f"Notion database: {database_id or click.style('Not configured', fg='red')}"
        )
        click.echo(
            "Notion token: "
            + ("Found" if token else click.style("Not found", fg="red"))
        )
        click.echo()

        db_path = config_dir / DB_FILE_NAME
        if db_path.exists():
            db = SyncDatabase(str(db_path))
            db.initialize()

            click.echo("=== Sync Status ===\n")
            click.echo(f"Recorded sync runs: {db.get_sync_run_count()}")
            show_last_run(db.get_last_sync_run())
        else:
            click.echo("Sync database: Not initialized (no syncs performed yet)")

        click.echo()

        if auth_status["authenticated"] and database_id and token:
            click.echo(click.style("Ready to sync!", fg="green"))
            click.echo("Run 'gcontact-notion-sync sync' to synchronize contacts.")
        elif not auth_status["credentials_exist"]:
            click.echo(
                click.style("Setup required: OAuth credentials not found.", fg="yellow")
            )
            click.echo("Please download credentials from Google Cloud Console")
            click.echo(f"and save to: {auth_status['credentials_path']}")
        else:
            click.echo(click.style("Setup incomplete.", fg="yellow"))
            if not auth_status["authenticated"]:
                click.echo("  Run: gcontact-notion-sync auth")
            if not database_id:
                click.echo("  Set notion_database_id in the config file")
            if not token:
                click.echo("  Set the NOTION_TOKEN environment variable")

    except Exception as e:
        logger.exception(f"Error getting status: {e}")
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)


# =============================================================================
# Init-Config Command
# =============================================================================


@cli.command("init-config")
@click.option(
    "--force",
    "-f",
    is_flag=True,
    help="Overwrite existing configuration file if it exists.",
)
@click.pass_context
def init_config_command(ctx: click.Context, force: bool) -> None:
    """
    Generate a default configuration file.

    Examples:

        gcontact-notion-sync init-config

        # Overwrite existing config file
        gcontact-notion-sync init-config --force
    """
    logger = get_logger(__name__)
    config_file = ctx.obj["config_file"]

    click.echo(f"Creating configuration file: {config_file}")

    success, error = save_config_file(config_file, overwrite=force)

    if success:
        click.echo(click.style("Configuration file created successfully!", fg="green"))
        click.echo(f"\nLocation: {config_file}")
        click.echo("\nNext steps:")
        click.echo("1. Set notion_database_id to your contacts database")
        click.echo("2. Export NOTION_TOKEN with your Notion integration token")
        click.echo("3. Run 'gcontact-notion-sync auth'")
    else:
        click.echo(click.style(f"Error: {error}", fg="red"), err=True)
        logger.error(f"Failed to create configuration file: {error}")
        sys.exit(1)


# =============================================================================
# Sync Command
# =============================================================================


@cli.command("sync")
@click.option(
    "--dry-run", "-n", is_flag=True, help="Preview changes without applying them."
)
@click.option(
    "--database-id",
    "-d",
    help="Notion database ID (overrides notion_database_id in config).",
)
@click.pass_context
def sync_command(ctx: click.Context, dry_run: bool, database_id: str | None) -> None:
    """
    Synchronize Google Contacts into the Notion database.

    Google contacts without a linked Notion page get a new page; linked
    pages whose name, organization or title differ are updated. Pages
    that were added by hand in Notion, or whose Google contact was deleted,
    are left untouched.

    Examples:

        # Preview changes without applying
        gcontact-notion-sync sync --dry-run

        # Sync into a specific database
        gcontact-notion-sync sync --database-id 0123abcd...
    """
    logger = get_logger(__name__)
    config_dir = ctx.obj["config_dir"]
    verbose = ctx.obj["verbose"]
    config = ctx.obj.get("config", {})

    effective_dry_run = dry_run or config.get("dry_run", False)

    effective_database_id = resolve_database_id(config, database_id)
    if not effective_database_id:
        click.echo(
            click.style("Error: No Notion database configured.", fg="red"), err=True
        )
        click.echo(
            "Set notion_database_id in the config file or pass --database-id.",
            err=True,
        )
        sys.exit(1)

    notion_token = resolve_notion_token(config)
    if not notion_token:
        click.echo(click.style("Error: No Notion token found.", fg="red"), err=True)
        env_var = config.get("notion_token_env", "NOTION_TOKEN")
        click.echo(f"Set the {env_var} environment variable.", err=True)
        sys.exit(1)

    try:
        auth = GoogleAuth(
            config_dir=config_dir, auth_timeout=config.get("auth_timeout", 10)
        )

        click.echo("Checking authentication...")
        creds = auth.get_credentials()
        if not creds:
            click.echo(
                click.style("Error: Google account is not authenticated.", fg="red"),
                err=True,
            )
            click.echo("Run: gcontact-notion-sync auth", err=True)
            sys.exit(1)

        account_email = auth.get_account_email() or "Google account"
        click.echo(click.style(f"  {account_email}", fg="green"))

        from gcontact_notion_sync.api.notion_api import (
            DEFAULT_NOTION_VERSION,
            NotionAPI,
        )
        from gcontact_notion_sync.api.people_api import PeopleAPI
        from gcontact_notion_sync.sync.engine import SyncEngine

        db_path = config_dir / DB_FILE_NAME
        db_path.parent.mkdir(parents=True, exist_ok=True)
        database = SyncDatabase(str(db_path))
        database.initialize()

        retry_options = {
            "max_retries": config.get("api_max_retries", 5),
            "initial_retry_delay": config.get("api_initial_retry_delay", 1.0),
            "max_retry_delay": config.get("api_max_retry_delay", 60.0),
        }
        people_api = PeopleAPI(
            credentials=creds,
            page_size=config.get("api_page_size", 1000),
            **retry_options,
        )
        notion_api = NotionAPI(
            token=notion_token,
            notion_version=config.get("notion_version", DEFAULT_NOTION_VERSION),
            timeout=config.get("api_timeout", 30),
            **retry_options,
        )

        engine = SyncEngine(
            people_api=people_api,
            notion_api=notion_api,
            database_id=effective_database_id,
            database=database,
        )

        if verbose:
            click.echo("\nSync configuration:")
            click.echo(f"  Database: {db_path}")
            click.echo(f"  Notion database: {effective_database_id}")
            click.echo(f"  Dry run: {effective_dry_run}")

        mode = "Analyzing" if effective_dry_run else "Synchronizing"
        click.echo(f"\n{mode} contacts...")

        result = engine.sync(dry_run=effective_dry_run)

        click.echo("\n" + "=" * 50)
        click.echo(result.summary())
        click.echo("=" * 50)

        if result.has_changes():
            if effective_dry_run:
                click.echo(
                    click.style(
                        "\nDry run complete. No changes were made.", fg="yellow"
                    )
                )
                click.echo("Run without --dry-run to apply these changes.")
                if verbose:
                    show_detailed_changes(result)
            else:
                click.echo(click.style("\nSync completed successfully!", fg="green"))
                if result.stats.errors > 0:
                    click.echo(
                        click.style(
                            f"\nWarning: {result.stats.errors} errors occurred.",
                            fg="yellow",
                        )
                    )
        else:
            click.echo(
                click.style(
                    "\nNotion is already in sync. No changes needed.", fg="green"
                )
            )

    except Exception as e:
        logger.exception(f"Sync failed: {e}")
        click.echo(click.style(f"\nSync failed: {e}", fg="red"), err=True)
        sys.exit(1)


# =============================================================================
# Reset Command
# =============================================================================


@cli.command("reset")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
@click.pass_context
def reset_command(ctx: click.Context, yes: bool) -> None:
    """
    Clear the recorded sync history.

    This does NOT delete anything from Google or Notion.

    Example:

        gcontact-notion-sync reset
    """
    logger = get_logger(__name__)
    db_path = ctx.obj["config_dir"] / DB_FILE_NAME

    if not db_path.exists():
        click.echo("No sync database found. Nothing to reset.")
        return

    if not yes:
        click.confirm("This will clear all recorded sync runs.\nContinue?", abort=True)

    try:
        db = SyncDatabase(str(db_path))
        db.initialize()
        db.clear_all_state()

        click.echo(click.style("Sync history has been cleared.", fg="green"))
        logger.info("Sync history reset completed")

    except Exception as e:
        logger.exception(f"Reset failed: {e}")
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)


# =============================================================================
# Clear-Auth Command
# =============================================================================


@cli.command("clear-auth")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
@click.pass_context
def clear_auth_command(ctx: click.Context, yes: bool) -> None:
    """
    Clear stored Google credentials.

    You will need to run 'auth' again before syncing.
    """
    logger = get_logger(__name__)

    if not yes:
        click.confirm("Clear stored Google credentials?", abort=True)

    auth = GoogleAuth(config_dir=ctx.obj["config_dir"])
    if auth.clear_credentials():
        click.echo(click.style("Credentials cleared.", fg="green"))
        logger.info("Cleared Google credentials")
    else:
        click.echo("No credentials found.")
