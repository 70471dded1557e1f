"""Contact normalization and reconciliation."""
