"""Enums for sync operations."""

from enum import Enum


class SyncDecision(str, Enum):
    """Outcome of classifying one PR from the listing feed."""

    NEW = "new"
    """PR number is above anything stored (or force mode). Fetch and store."""

    UPDATED_OPEN = "updated_open"
    """Open PR updated since the last sync. Fetch and store."""

    SKIP_IMMUTABLE = "skip_immutable"
    """Closed or merged PR already covered by the mirror."""

    SKIP_UNCHANGED = "skip_unchanged"
    """Open PR not updated since the last sync."""

    @property
    def should_fetch(self) -> bool:
        return self in (SyncDecision.NEW, SyncDecision.UPDATED_OPEN)


class OutputFormat(str, Enum):
    """Output format for CLI commands."""

    TEXT = "text"
    """Human-readable text output."""

    JSON = "json"
    """Machine-readable JSON output."""
