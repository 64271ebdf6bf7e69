"""Result types for repository syncs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .enums import SyncDecision

REPOSITORY_ERROR = 0
"""PR number used for errors that concern the whole repository."""


@dataclass
class SyncResult:
    """Outcome of syncing one repository.

    Errors are (pr_number, message) pairs; pr_number 0 marks a fatal,
    repository-level error that aborted the sync.
    """

    repository: str
    new_prs: int = 0
    updated_prs: int = 0
    new_reviews: int = 0
    skipped_immutable: int = 0
    skipped_unchanged: int = 0
    pages_fetched: int = 0
    errors: list[tuple[int, str]] = field(default_factory=list)
    aborted: bool = False
    retryable: bool = False
    cancelled: bool = False
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None
    duration_seconds: float = 0.0

    @property
    def total_prs(self) -> int:
        """PRs fetched and stored in this sync."""
        return self.new_prs + self.updated_prs

    @property
    def skipped_prs(self) -> int:
        return self.skipped_immutable + self.skipped_unchanged

    @property
    def success(self) -> bool:
        """True unless the sync was aborted by a fatal error."""
        return not self.aborted

    def record(self, decision: SyncDecision) -> None:
        """Count a classified PR."""
        if decision == SyncDecision.NEW:
            self.new_prs += 1
        elif decision == SyncDecision.UPDATED_OPEN:
            self.updated_prs += 1
        elif decision == SyncDecision.SKIP_IMMUTABLE:
            self.skipped_immutable += 1
        else:
            self.skipped_unchanged += 1

    def record_error(self, pr_number: int, message: str) -> None:
        self.errors.append((pr_number, message))

    def record_fatal(self, message: str, *, retryable: bool = False) -> None:
        """Record the error that aborted the sync.

        Args:
            message: Error description
            retryable: Whether the failure was transient (rate limit, network)
        """
        self.errors.append((REPOSITORY_ERROR, f"Sync failed: {message}"))
        self.aborted = True
        self.retryable = retryable

    def finish(self, duration_seconds: float) -> None:
        self.completed_at = datetime.now(UTC)
        self.duration_seconds = duration_seconds

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "repository": self.repository,
            "success": self.success,
            "total_prs": self.total_prs,
            "new_prs": self.new_prs,
            "updated_prs": self.updated_prs,
            "new_reviews": self.new_reviews,
            "skipped_immutable": self.skipped_immutable,
            "skipped_unchanged": self.skipped_unchanged,
            "pages_fetched": self.pages_fetched,
            "errors": [{"pr_number": number, "error": message} for number, message in self.errors],
            "aborted": self.aborted,
            "retryable": self.retryable,
            "cancelled": self.cancelled,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": round(self.duration_seconds, 2),
        }


@dataclass
class RepoSyncOutcome:
    """Result of one repository within a multi-repository sync.

    Exactly one of result and error is set: error holds the message of an
    exception that escaped the repository sync.
    """

    repository: str
    result: SyncResult | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None and self.result is not None and self.result.success

    def to_dict(self) -> dict[str, Any]:
        return {
            "repository": self.repository,
            "success": self.success,
            "result": self.result.to_dict() if self.result else None,
            "error": self.error,
        }


@dataclass
class MultiRepoSyncResult:
    """Outcome of syncing several repositories, one at a time."""

    outcomes: list[RepoSyncOutcome] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None

    @property
    def success_count(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failure_count(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)

    @property
    def duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        results = [o.result for o in self.outcomes if o.result is not None]
        return {
            "summary": {
                "total_repos": len(self.outcomes),
                "successful_syncs": self.success_count,
                "failed_syncs": self.failure_count,
                "total_prs": sum(r.total_prs for r in results),
                "new_prs": sum(r.new_prs for r in results),
                "updated_prs": sum(r.updated_prs for r in results),
                "new_reviews": sum(r.new_reviews for r in results),
                "duration_seconds": round(self.duration_seconds, 2),
            },
            "repositories": [o.to_dict() for o in self.outcomes],
        }
