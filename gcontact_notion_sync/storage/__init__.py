"""SQLite sync state storage."""
