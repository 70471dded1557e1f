"""CLI output formatting functions.

This module contains functions for displaying change summaries and sync
history on the command line.
"""

from typing import TYPE_CHECKING, Any, Optional

import click

if TYPE_CHECKING:
    from gcontact_notion_sync.sync.engine import ChangeRequest, SyncResult

# Maximum number of contacts listed per change kind
DISPLAY_LIMIT = 10


def _show_changes(title: str, changes: list["ChangeRequest"], marker: str) -> None:
    if not changes:
        return
    click.echo(f"\n{title}:")
    for change in changes[:DISPLAY_LIMIT]:
        click.echo(f"  {marker} {change.source.display_label()}")
    if len(changes) > DISPLAY_LIMIT:
        click.echo(f"  ... and {len(changes) - DISPLAY_LIMIT} more")


def show_detailed_changes(result: "SyncResult") -> None:
    """
    Display detailed change information for dry-run mode.

    Args:
        result: The SyncResult containing changes to display
    """
    click.echo("\n=== Detailed Changes ===")

    _show_changes("To create in Notion", result.to_create, "+")
    _show_changes("To update in Notion", result.to_update, "~")

    for change in result.to_update[:DISPLAY_LIMIT]:
        if change.target is None:
            continue
        differences = describe_differences(change)
        if differences:
            click.echo(f"\n  {change.source.display_label()}:")
            for line in differences:
                click.echo(f"    {line}")


def describe_differences(change: "ChangeRequest") -> list[str]:
    """
    Describe which fields an update changes.

    Returns:
        Lines like "Title: 'Engineer' -> 'Manager'"
    """
    from gcontact_notion_sync.sync.contact import CONTACT_TO_NOTION_PROPERTIES

    if change.target is None:
        return []

    lines = []
    for attribute, property_name in CONTACT_TO_NOTION_PROPERTIES.items():
        old = getattr(change.target, attribute)
        new = getattr(change.source, attribute)
        if old != new:
            lines.append(f"{property_name}: {old!r} -> {new!r}")
    return lines


def show_last_run(run: Optional[dict[str, Any]]) -> None:
    """
    Display the last recorded sync run.

    Args:
        run: Row from SyncDatabase.get_last_sync_run(), or None
    """
    if run is None:
        click.echo("Last sync: Never")
        return

    click.echo(f"Last sync: {run['finished_at'] or run['started_at']}")
    click.echo(
        f"  Created: {run['created']}, Updated: {run['updated']}, "
        f"Unchanged: {run['unchanged']}, Errors: {run['errors']}"
    )
