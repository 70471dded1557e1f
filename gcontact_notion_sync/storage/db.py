"""
SQLite database module for sync run history.

Records every sync run so the CLI can report when the last sync happened
and what it changed.
"""

import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from gcontact_notion_sync.sync.engine import SyncStats

SCHEMA = """
CREATE TABLE IF NOT EXISTS sync_runs (
    id INTEGER PRIMARY KEY,
    started_at TIMESTAMP NOT NULL,
    finished_at TIMESTAMP,
    dry_run BOOLEAN NOT NULL DEFAULT 0,
    google_connections INTEGER DEFAULT 0,
    skipped_invalid INTEGER DEFAULT 0,
    notion_pages INTEGER DEFAULT 0,
    created INTEGER DEFAULT 0,
    updated INTEGER DEFAULT 0,
    unchanged INTEGER DEFAULT 0,
    errors INTEGER DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_sync_runs_started ON sync_runs(started_at);
"""

RUN_COLUMNS = (
    "id",
    "started_at",
    "finished_at",
    "dry_run",
    "google_connections",
    "skipped_invalid",
    "notion_pages",
    "created",
    "updated",
    "unchanged",
    "errors",
)


class SyncDatabase:
    """
    SQLite database manager for sync run history.

    Usage:
        db = SyncDatabase('/path/to/sync.db')
        db.initialize()

        # Or use in-memory for testing:
        db = SyncDatabase(':memory:')
        db.initialize()
    """

    def __init__(self, db_path: str):
        """
        Initialize the database manager.

        Args:
            db_path: Path to SQLite database file, or ':memory:' for in-memory database
        """
        self.db_path = db_path
        self._shared_connection: Optional[sqlite3.Connection] = None

    def _get_connection(self) -> sqlite3.Connection:
        """
        Get a database connection.

        In-memory databases share one connection so the schema persists
        across operations; file databases open a new connection each time.
        """
        if self.db_path == ":memory:":
            if self._shared_connection is None:
                self._shared_connection = sqlite3.connect(":memory:")
                self._shared_connection.row_factory = sqlite3.Row
            return self._shared_connection

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager for database connections.

        Commits on success and rolls back on error.

        Yields:
            sqlite3.Connection: Database connection
        """
        conn = self._get_connection()
        is_shared = self.db_path == ":memory:"
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            if not is_shared:
                conn.close()

    def initialize(self) -> None:
        """Create the sync_runs table if it doesn't exist."""
        with self.connection() as conn:
            conn.executescript(SCHEMA)

    def record_sync_run(
        self,
        started_at: datetime,
        stats: "SyncStats",
        finished_at: Optional[datetime] = None,
        dry_run: bool = False,
    ) -> int:
        """
        Store the outcome of a sync run.

        Args:
            started_at: When the run started
            stats: SyncStats collected by the engine
            finished_at: When the run finished (defaults to now)
            dry_run: Whether changes were only previewed

        Returns:
            ID of the inserted row
        """
        if finished_at is None:
            finished_at = datetime.now(timezone.utc)

        with self.connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO sync_runs (
                    started_at, finished_at, dry_run, google_connections,
                    skipped_invalid, notion_pages, created, updated,
                    unchanged, errors
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    started_at.isoformat(),
                    finished_at.isoformat(),
                    dry_run,
                    stats.google_connections,
                    stats.skipped_invalid,
                    stats.contacts_in_notion,
                    stats.created,
                    stats.updated,
                    stats.unchanged,
                    stats.errors,
                ),
            )
            row_id: int = cursor.lastrowid or 0
            return row_id

    def get_last_sync_run(
        self, include_dry_runs: bool = False
    ) -> Optional[dict[str, Any]]:
        """
        Get the most recent sync run.

        Args:
            include_dry_runs: If True, dry runs are considered too

        Returns:
            Dictionary of the run's columns, or None if no run was recorded
        """
        query = f"SELECT {', '.join(RUN_COLUMNS)} FROM sync_runs"
        if not include_dry_runs:
            query += " WHERE dry_run = 0"
        query += " ORDER BY id DESC LIMIT 1"

        with self.connection() as conn:
            row = conn.execute(query).fetchone()
            if row is None:
                return None
            run = dict(row)
            run["dry_run"] = bool(run["dry_run"])
            return run

    def get_sync_run_count(self) -> int:
        """Get the number of recorded sync runs, including dry runs."""
        with self.connection() as conn:
            cursor = conn.execute("SELECT COUNT(*) FROM sync_runs")
            result = cursor.fetchone()
            return int(result[0]) if result else 0

    def clear_all_state(self) -> None:
        """Delete all recorded sync runs."""
        with self.connection() as conn:
            conn.execute("DELETE FROM sync_runs")
