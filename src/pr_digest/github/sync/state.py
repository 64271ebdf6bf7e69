"""Sync state derived from the mirror, and the per-PR fetch decision.

The state is never stored: it is recomputed from the mirrored PRs at the
start of every sync, so it can never drift from what is actually stored.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pr_digest.db.models import PRState

from .enums import SyncDecision

if TYPE_CHECKING:
    from pr_digest.db.repositories import PullRequestRepository
    from pr_digest.schemas.github_api import GitHubPullRequest

TERMINAL_STATES = frozenset({PRState.CLOSED, PRState.MERGED})


@dataclass(frozen=True)
class SyncState:
    """Snapshot of what the mirror holds for one repository.

    Attributes:
        last_synced_pr_number: Highest stored PR number, 0 when none
        last_sync_time: Latest stored synced_at, None when none
    """

    last_synced_pr_number: int = 0
    last_sync_time: datetime | None = None

    @property
    def is_empty(self) -> bool:
        return self.last_synced_pr_number == 0 and self.last_sync_time is None


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def is_terminal(state: PRState | str) -> bool:
    """Whether a PR state is closed or merged."""
    value = state.value if isinstance(state, PRState) else str(state).lower()
    return value in {s.value for s in TERMINAL_STATES}


def classify(
    number: int,
    state: PRState | str,
    updated_at: datetime,
    sync_state: SyncState,
) -> SyncDecision:
    """Decide whether a listed PR must be fetched.

    Rules, first match wins:
    1. number above the highest stored number: NEW
    2. closed or merged: SKIP_IMMUTABLE
    3. open and updated after the last sync: UPDATED_OPEN
    4. otherwise: SKIP_UNCHANGED

    Args:
        number: PR number
        state: PR state (open, closed, merged)
        updated_at: Last update time reported by the listing
        sync_state: Snapshot taken at the start of the sync

    Returns:
        The decision for this PR
    """
    if number > sync_state.last_synced_pr_number:
        return SyncDecision.NEW

    if is_terminal(state):
        return SyncDecision.SKIP_IMMUTABLE

    if (
        sync_state.last_sync_time is not None
        and ensure_utc(updated_at) > ensure_utc(sync_state.last_sync_time)
    ):
        return SyncDecision.UPDATED_OPEN

    return SyncDecision.SKIP_UNCHANGED


def classify_pull_request(pr: GitHubPullRequest, sync_state: SyncState) -> SyncDecision:
    """Classify a PR from the listing feed."""
    return classify(pr.number, pr.effective_state, pr.last_activity, sync_state)


class SyncStateResolver:
    """Reads the sync state of a repository from the mirror. No network access."""

    def __init__(self, pr_repository: PullRequestRepository) -> None:
        self._pr_repository = pr_repository

    async def resolve(self, repository: str) -> SyncState:
        """Compute the current sync state of a repository.

        Args:
            repository: Repository identifier in owner/repo form

        Returns:
            SyncState; the empty state when nothing is stored
        """
        marks = await self._pr_repository.get_sync_marks(repository)
        return SyncState(
            last_synced_pr_number=marks.max_number,
            last_sync_time=marks.max_synced_at,
        )
