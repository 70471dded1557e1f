"""
Tests for the sync run history database.
"""

from datetime import datetime, timedelta, timezone

import pytest

from gcontact_notion_sync.storage.db import SyncDatabase
from gcontact_notion_sync.sync.engine import SyncStats


@pytest.fixture
def db():
    """Create an initialized in-memory database."""
    database = SyncDatabase(":memory:")
    database.initialize()
    return database


def make_stats(**counts):
    return SyncStats(**counts)


class TestInitialization:
    """Tests for schema creation."""

    def test_initialize_creates_table(self, db):
        with db.connection() as conn:
            row = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name='sync_runs'"
            ).fetchone()
        assert row is not None

    def test_initialize_is_idempotent(self, db):
        db.initialize()
        assert db.get_sync_run_count() == 0

    def test_file_database_persists(self, tmp_path):
        path = str(tmp_path / "sync.db")
        first = SyncDatabase(path)
        first.initialize()
        first.record_sync_run(datetime.now(timezone.utc), make_stats(created=1))

        second = SyncDatabase(path)
        second.initialize()

        assert second.get_sync_run_count() == 1


class TestRecordSyncRun:
    """Tests for record_sync_run and get_last_sync_run."""

    def test_no_runs(self, db):
        assert db.get_last_sync_run() is None
        assert db.get_sync_run_count() == 0

    def test_record_and_read_back(self, db):
        started = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        finished = started + timedelta(seconds=10)
        stats = make_stats(
            google_connections=5,
            skipped_invalid=1,
            contacts_in_notion=3,
            created=1,
            updated=2,
            unchanged=1,
            errors=0,
        )

        row_id = db.record_sync_run(started, stats, finished_at=finished)
        run = db.get_last_sync_run()

        assert run["id"] == row_id
        assert run["started_at"] == started.isoformat()
        assert run["finished_at"] == finished.isoformat()
        assert run["dry_run"] is False
        assert run["google_connections"] == 5
        assert run["skipped_invalid"] == 1
        assert run["notion_pages"] == 3
        assert run["created"] == 1
        assert run["updated"] == 2
        assert run["unchanged"] == 1
        assert run["errors"] == 0

    def test_finished_at_defaults_to_now(self, db):
        db.record_sync_run(datetime.now(timezone.utc), make_stats())
        assert db.get_last_sync_run()["finished_at"] is not None

    def test_last_run_is_most_recent(self, db):
        now = datetime.now(timezone.utc)
        db.record_sync_run(now, make_stats(created=1))
        db.record_sync_run(now, make_stats(created=2))

        assert db.get_last_sync_run()["created"] == 2

    def test_dry_runs_excluded_by_default(self, db):
        now = datetime.now(timezone.utc)
        db.record_sync_run(now, make_stats(created=1))
        db.record_sync_run(now, make_stats(), dry_run=True)

        assert db.get_last_sync_run()["created"] == 1
        assert db.get_last_sync_run(include_dry_runs=True)["dry_run"] is True
        assert db.get_sync_run_count() == 2


class TestClearAllState:
    """Tests for clear_all_state."""

    def test_clear_removes_runs(self, db):
        db.record_sync_run(datetime.now(timezone.utc), make_stats())

        db.clear_all_state()

        assert db.get_sync_run_count() == 0
        assert db.get_last_sync_run() is None


class TestConnection:
    """Tests for the connection context manager."""

    def test_rollback_on_error(self, db):
        with pytest.raises(RuntimeError):
            with db.connection() as conn:
                conn.execute(
                    "INSERT INTO sync_runs (started_at) VALUES (?)", ("2024-01-01",)
                )
                raise RuntimeError("boom")

        assert db.get_sync_run_count() == 0
