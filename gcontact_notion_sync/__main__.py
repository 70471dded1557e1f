"""
Entry point for running gcontact_notion_sync as a module.

Usage:
    python -m gcontact_notion_sync --help
    python -m gcontact_notion_sync auth
    python -m gcontact_notion_sync sync --dry-run
"""

from gcontact_notion_sync.cli import cli

if __name__ == "__main__":
    cli()
