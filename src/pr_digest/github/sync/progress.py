"""Progress events emitted while a repository syncs.

Callbacks are observational only: an exception raised by a callback is
logged and otherwise ignored, so it never affects the sync.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pr_digest.logging import get_logger

if TYPE_CHECKING:
    from pr_digest.github.rate_limit import RateLimitInfo

logger = get_logger(__name__)


class SyncPhase(StrEnum):
    """Phase of a repository sync."""

    FETCHING = "fetching"
    PROCESSING = "processing"
    COMPLETE = "complete"


@dataclass
class SyncProgress:
    """A progress event for one repository."""

    repository: str
    phase: SyncPhase
    processed_prs: int = 0
    errors: list[tuple[int, str]] = field(default_factory=list)

    # Page-level telemetry, set during PROCESSING
    current_page: int = 0
    estimated_total_pages: int | None = None
    prs_this_page: int = 0
    rate_limit_remaining: int | None = None
    rate_limit_reset_at: datetime | None = None

    elapsed_seconds: float = 0.0
    estimated_seconds_remaining: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "repository": self.repository,
            "phase": str(self.phase),
            "processed_prs": self.processed_prs,
            "errors": [{"pr_number": n, "error": e} for n, e in self.errors],
            "current_page": self.current_page,
            "estimated_total_pages": self.estimated_total_pages,
            "prs_this_page": self.prs_this_page,
            "rate_limit_remaining": self.rate_limit_remaining,
            "rate_limit_reset_at": (
                self.rate_limit_reset_at.isoformat() if self.rate_limit_reset_at else None
            ),
            "elapsed_seconds": round(self.elapsed_seconds, 2),
            "estimated_seconds_remaining": (
                round(self.estimated_seconds_remaining, 2)
                if self.estimated_seconds_remaining is not None
                else None
            ),
        }


ProgressCallback = Callable[[SyncProgress], None]


def estimate_total_pages(page: int, page_item_count: int, per_page: int) -> int | None:
    """Guess how many listing pages there are.

    A short page is the last one. Before the second page there is nothing to
    extrapolate from; afterwards a full page means at least twice as many
    pages, and at least five more.

    Args:
        page: 1-based number of the page just fetched
        page_item_count: Entries on that page
        per_page: Requested page size

    Returns:
        Estimated total, or None when no estimate is possible yet
    """
    if page_item_count < per_page:
        return page
    if page < 2:
        return None
    return max(page * 2, page + 5)


class SyncProgressReporter:
    """Builds progress events for one repository and hands them to a callback.

    Usage:
        reporter = SyncProgressReporter("owner/repo", callback)
        reporter.fetching()
        reporter.page_done(...)
        reporter.complete(processed, errors)
    """

    def __init__(self, repository: str, callback: ProgressCallback | None = None) -> None:
        self._repository = repository
        self._callback = callback
        self._started = time.monotonic()
        self._last: SyncProgress | None = None

    @property
    def elapsed_seconds(self) -> float:
        return time.monotonic() - self._started

    @property
    def last(self) -> SyncProgress | None:
        """Most recent event emitted."""
        return self._last

    def fetching(self) -> SyncProgress:
        """Emit the event that opens a sync."""
        return self._emit(
            SyncProgress(
                repository=self._repository,
                phase=SyncPhase.FETCHING,
                elapsed_seconds=self.elapsed_seconds,
            )
        )

    def page_done(
        self,
        *,
        page: int,
        page_item_count: int,
        per_page: int,
        processed_prs: int,
        errors: list[tuple[int, str]],
        rate_limit: RateLimitInfo | None = None,
    ) -> SyncProgress:
        """Emit the event for a fully processed listing page."""
        elapsed = self.elapsed_seconds
        estimated_pages = estimate_total_pages(page, page_item_count, per_page)

        seconds_remaining: float | None = None
        if estimated_pages is not None and page > 0:
            seconds_remaining = (elapsed / page) * max(estimated_pages - page, 0)

        return self._emit(
            SyncProgress(
                repository=self._repository,
                phase=SyncPhase.PROCESSING,
                processed_prs=processed_prs,
                errors=list(errors),
                current_page=page,
                estimated_total_pages=estimated_pages,
                prs_this_page=page_item_count,
                rate_limit_remaining=rate_limit.remaining if rate_limit else None,
                rate_limit_reset_at=rate_limit.reset_at if rate_limit else None,
                elapsed_seconds=elapsed,
                estimated_seconds_remaining=seconds_remaining,
            )
        )

    def complete(
        self,
        *,
        processed_prs: int,
        errors: list[tuple[int, str]],
        pages: int,
    ) -> SyncProgress:
        """Emit the closing event; sent whether or not the sync succeeded."""
        return self._emit(
            SyncProgress(
                repository=self._repository,
                phase=SyncPhase.COMPLETE,
                processed_prs=processed_prs,
                errors=list(errors),
                current_page=pages,
                estimated_total_pages=pages,
                elapsed_seconds=self.elapsed_seconds,
                estimated_seconds_remaining=0.0,
            )
        )

    def _emit(self, progress: SyncProgress) -> SyncProgress:
        self._last = progress
        if self._callback is not None:
            try:
                self._callback(progress)
            except Exception as e:
                logger.warning("Progress callback failed for {}: {}", self._repository, e)
        return progress
