"""
Sync engine for one-way Google Contacts to Notion synchronization.

Compares Google contacts against the pages of a Notion database and
creates or updates pages so Notion matches Google. Notion pages are
never deleted.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from gcontact_notion_sync.api.notion_api import NotionAPI, NotionAPIError
from gcontact_notion_sync.api.people_api import PeopleAPI
from gcontact_notion_sync.sync.contact import (
    CanonicalContact,
    NotionPage,
    contact_from_google,
    contact_from_notion,
    is_google_connection_valid,
)

if TYPE_CHECKING:
    from gcontact_notion_sync.storage.db import SyncDatabase

logger = logging.getLogger(__name__)


class SyncError(Exception):
    """Raised when the sync engine hits an internal inconsistency."""

    pass


class UnknownChangeKindError(SyncError):
    """Raised for a change request that is neither a create nor an update."""

    pass


class ChangeKind(Enum):
    """Kind of write a change request performs in Notion."""

    CREATE = "create"
    UPDATE = "update"


@dataclass(frozen=True)
class ChangeRequest:
    """
    A single pending write to the Notion database.

    Attributes:
        kind: CREATE for a new page, UPDATE for an existing one
        source: The Google contact whose data is written
        target: The matched Notion contact (only for UPDATE)
    """

    kind: ChangeKind
    source: CanonicalContact
    target: Optional[CanonicalContact] = None

    def __post_init__(self) -> None:
        if self.kind is ChangeKind.UPDATE and self.target is None:
            raise ValueError("Update requests require a target contact")
        if self.kind is ChangeKind.CREATE and self.target is not None:
            raise ValueError("Create requests must not have a target contact")

    def to_write_payload(self, database_id: str) -> dict[str, Any]:
        """Build the Notion request body for this change."""
        return to_write_payload(self, database_id)


def reconcile(
    source_contacts: list[CanonicalContact],
    destination_contacts: list[CanonicalContact],
) -> list[ChangeRequest]:
    """
    Calculate the changes needed to make Notion match Google.

    Notion contacts are linked to Google contacts by contact_id. A Google
    contact with no linked Notion contact becomes a create request; one whose
    linked Notion contact differs becomes an update request. Unchanged
    contacts and Notion-only contacts produce nothing.

    Args:
        source_contacts: Contacts built from Google connections
        destination_contacts: Contacts built from Notion pages

    Returns:
        Change requests in the order of source_contacts

    Note:
        If two Notion contacts share a contact_id, the later one wins.
    """
    destination_by_id: dict[Optional[str], CanonicalContact] = {}
    for contact in destination_contacts:
        if contact.contact_id in destination_by_id:
            logger.warning(
                f"Duplicate contactId {contact.contact_id!r} in Notion, "
                f"using the last page seen"
            )
        destination_by_id[contact.contact_id] = contact

    changes: list[ChangeRequest] = []
    for source in source_contacts:
        target = destination_by_id.get(source.contact_id)
        if target is None:
            changes.append(ChangeRequest(ChangeKind.CREATE, source))
        elif not source.content_equals(target):
            changes.append(ChangeRequest(ChangeKind.UPDATE, source, target))

    return changes


def to_write_payload(request: ChangeRequest, database_id: str) -> dict[str, Any]:
    """
    Convert a change request into a Notion create/update request body.

    Args:
        request: Change request from reconcile()
        database_id: ID of the Notion database the pages belong to

    Returns:
        Request body with parent and properties, plus page_id for updates

    Raises:
        UnknownChangeKindError: If the request kind is not CREATE or UPDATE
        SyncError: If an update target has no Notion page id
    """
    data: dict[str, Any] = {
        "parent": {"type": "database_id", "database_id": database_id},
        "properties": request.source.to_notion_properties(),
    }

    if request.kind is ChangeKind.UPDATE:
        target = request.target
        page_id = NotionPage(target.raw).page_id if target and target.raw else None
        if not page_id:
            raise SyncError(
                f"Cannot update {request.source.display_label()}: "
                f"target has no Notion page id"
            )
        data["page_id"] = page_id
    elif request.kind is not ChangeKind.CREATE:
        raise UnknownChangeKindError(f"Unknown change kind: {request.kind!r}")

    return data


@dataclass
class SyncStats:
    """
    Statistics from a sync operation.

    Tracks counts of all operations performed during sync.
    """

    google_connections: int = 0
    skipped_invalid: int = 0
    contacts_in_google: int = 0
    contacts_in_notion: int = 0
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    errors: int = 0


@dataclass
class SyncResult:
    """
    Result of a sync operation.

    Contains the calculated change requests and statistics.
    """

    changes: list[ChangeRequest] = field(default_factory=list)
    stats: SyncStats = field(default_factory=SyncStats)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None
    dry_run: bool = False

    @property
    def to_create(self) -> list[ChangeRequest]:
        """Change requests that create new Notion pages."""
        return [c for c in self.changes if c.kind is ChangeKind.CREATE]

    @property
    def to_update(self) -> list[ChangeRequest]:
        """Change requests that update existing Notion pages."""
        return [c for c in self.changes if c.kind is ChangeKind.UPDATE]

    def has_changes(self) -> bool:
        """Check if there are any changes to apply."""
        return bool(self.changes)

    def summary(self) -> str:
        """
        Generate a human-readable summary of the sync result.

        Returns:
            Multi-line summary string
        """
        stats = self.stats
        lines = [
            "Sync Summary:",
            f"  Google connections: {stats.google_connections}",
            f"  Skipped (no name): {stats.skipped_invalid}",
            f"  Linked Notion pages: {stats.contacts_in_notion}",
            "",
            "  Changes:",
            f"    To create in Notion: {len(self.to_create)}",
            f"    To update in Notion: {len(self.to_update)}",
            f"    Unchanged: {stats.unchanged}",
        ]

        if not self.dry_run and (stats.created or stats.updated or stats.errors):
            lines.extend(
                [
                    "",
                    "  Applied:",
                    f"    Created: {stats.created}",
                    f"    Updated: {stats.updated}",
                    f"    Errors: {stats.errors}",
                ]
            )

        return "\n".join(lines)


class SyncEngine:
    """
    Orchestrates one-way synchronization from Google Contacts to Notion.

    The sync process:
    1. Fetch all connections from Google and all linked pages from Notion
    2. Normalize both sides into CanonicalContact objects
    3. Reconcile to find create and update requests
    4. Apply the requests to Notion, one API call per request

    Attributes:
        people_api: Google People API client (source)
        notion_api: Notion API client (destination)
        database_id: Notion database holding the contact pages
        database: Optional SyncDatabase recording sync runs

    Usage:
        engine = SyncEngine(people_api, notion_api, database_id)

        # Preview changes
        result = engine.sync(dry_run=True)

        # Apply changes
        result = engine.sync()
    """

    def __init__(
        self,
        people_api: PeopleAPI,
        notion_api: NotionAPI,
        database_id: str,
        database: Optional["SyncDatabase"] = None,
    ):
        """
        Initialize the sync engine.

        Args:
            people_api: Client for reading Google connections
            notion_api: Client for reading and writing Notion pages
            database_id: Notion database ID
            database: Optional SyncDatabase for recording sync runs
        """
        self.people_api = people_api
        self.notion_api = notion_api
        self.database_id = database_id
        self.database = database

    def sync(self, dry_run: bool = False) -> SyncResult:
        """
        Run a full sync.

        Fetches both sides before any write is made, so every change is
        computed from the same snapshot.

        Args:
            dry_run: If True, calculate changes without applying them

        Returns:
            SyncResult with the change requests and statistics
        """
        logger.info(f"Starting sync (dry_run={dry_run})")

        result = self.analyze()
        result.dry_run = dry_run

        if dry_run:
            logger.info(f"Dry run: {len(result.changes)} changes not applied")
        else:
            self.execute(result)

        result.finished_at = datetime.now(timezone.utc)

        if self.database is not None:
            self.database.record_sync_run(
                started_at=result.started_at,
                finished_at=result.finished_at,
                dry_run=dry_run,
                stats=result.stats,
            )

        return result

    def analyze(self) -> SyncResult:
        """
        Fetch both sides and calculate the required changes.

        Returns:
            SyncResult with change requests, nothing applied yet

        Raises:
            MalformedSourceRecordError: If a connection that passed the
                eligibility filter cannot be normalized
        """
        result = SyncResult()
        stats = result.stats

        connections = self.people_api.list_connections()
        stats.google_connections = len(connections)
        logger.info(f"Downloaded {len(connections)} Google connections")

        pages = self.notion_api.query_database(self.database_id)
        logger.info(f"Retrieved {len(pages)} Notion pages")

        google_contacts = self._build_google_contacts(connections, stats)
        notion_contacts = [contact_from_notion(page) for page in pages]
        stats.contacts_in_google = len(google_contacts)
        stats.contacts_in_notion = len(notion_contacts)

        logger.info(
            f"Calculating changes for {len(google_contacts)} Google contacts "
            f"and {len(notion_contacts)} Notion pages"
        )
        result.changes = reconcile(google_contacts, notion_contacts)
        stats.unchanged = len(google_contacts) - len(result.changes)

        logger.info(
            f"Found {len(result.changes)} changes "
            f"({len(result.to_create)} create, {len(result.to_update)} update)"
        )
        return result

    def _build_google_contacts(
        self, connections: list[dict[str, Any]], stats: SyncStats
    ) -> list[CanonicalContact]:
        """Filter out unsyncable connections and normalize the rest."""
        contacts: list[CanonicalContact] = []
        for connection in connections:
            if not is_google_connection_valid(connection):
                stats.skipped_invalid += 1
                logger.debug(
                    f"Skipping connection without a name: "
                    f"{connection.get('resourceName')}"
                )
                continue
            contacts.append(contact_from_google(connection))
        return contacts

    def execute(self, result: SyncResult) -> None:
        """
        Apply the change requests in a SyncResult to Notion.

        API failures for individual requests are logged and counted in
        result.stats.errors; the remaining requests are still applied.

        Args:
            result: SyncResult from analyze()
        """
        stats = result.stats

        for change in result.changes:
            payload = to_write_payload(change, self.database_id)
            label = change.source.display_label()

            try:
                if change.kind is ChangeKind.CREATE:
                    response = self.notion_api.create_page(payload)
                    stats.created += 1
                    logger.info(f"Created Notion page for {label}")
                else:
                    response = self.notion_api.update_page(payload)
                    stats.updated += 1
                    logger.info(f"Updated Notion page for {label}")
                logger.debug(f"Notion response for {label}: {response}")
            except NotionAPIError as e:
                stats.errors += 1
                logger.error(f"Failed to {change.kind.value} {label}: {e}")

        logger.info(
            f"Sync run complete: created {stats.created}, "
            f"updated {stats.updated}, errors {stats.errors}"
        )

    def __repr__(self) -> str:
        """Return a readable string representation."""
        return f"SyncEngine(database_id={self.database_id!r})"
