"""Repository for the set of repositories tracked by the workspace."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pr_digest.db.models import TrackedRepository

from .base import BaseRepository

DEFAULT_MAX_TRACKED_ERRORS = 5


class SyncErrorType(StrEnum):
    """Where a recorded sync error came from."""

    API = "api"  # reported inside a sync result
    TRANSIENT = "transient"  # rate limit or network failure
    UNKNOWN = "unknown"  # sync raised before producing a result


class TrackedRepositoryRepository(BaseRepository[TrackedRepository]):
    """Tracked repositories with their sync bookkeeping.

    The sync itself never reads from here to decide what to fetch; it only
    writes the outcome of each attempt.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        max_errors: int = DEFAULT_MAX_TRACKED_ERRORS,
    ) -> None:
        super().__init__(session, TrackedRepository)
        self._max_errors = max_errors

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    async def get_by_name(self, name: str) -> TrackedRepository | None:
        """Get a tracked repository by its owner/repo name."""
        return await self._get_by_field("name", name)

    async def get_all(self, limit: int | None = None) -> list[TrackedRepository]:
        """Get all tracked repositories in the order they were added."""
        stmt = select(TrackedRepository).order_by(TrackedRepository.added_at, TrackedRepository.id)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_active(self) -> list[TrackedRepository]:
        """Get tracked repositories enabled for syncing."""
        stmt = (
            select(TrackedRepository)
            .where(TrackedRepository.active.is_(True))
            .order_by(TrackedRepository.added_at, TrackedRepository.id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    # -------------------------------------------------------------------------
    # Create/Update Methods
    # -------------------------------------------------------------------------

    async def add_repository(
        self,
        name: str,
        *,
        sync_since: datetime | None = None,
    ) -> tuple[TrackedRepository, bool]:
        """Start tracking a repository, or return the existing entry.

        Args:
            name: Repository identifier in owner/repo form
            sync_since: Cutoff used for the first (or a forced) sync

        Returns:
            Tuple of (tracked repository, created)
        """
        existing = await self.get_by_name(name)
        if existing is not None:
            return existing, False

        tracked = TrackedRepository(
            name=name,
            added_at=datetime.now(UTC),
            sync_since=sync_since,
            active=True,
            sync_errors=[],
        )
        self.add(tracked)
        await self.flush()
        return tracked, True

    async def remove(self, name: str) -> bool:
        """Stop tracking a repository. Mirrored PRs and reviews are kept.

        Returns:
            True if the repository was tracked
        """
        tracked = await self.get_by_name(name)
        if tracked is None:
            return False
        await self.delete(tracked)
        await self.flush()
        return True

    async def set_active(self, name: str, active: bool) -> TrackedRepository | None:
        """Enable or disable syncing for a repository.

        Returns:
            Updated repository or None if not tracked
        """
        tracked = await self.get_by_name(name)
        if tracked is None:
            return None
        tracked.active = active
        await self.flush()
        return tracked

    async def record_sync(
        self,
        name: str,
        last_sync_at: datetime,
        errors: list[str] | None = None,
        *,
        error_type: SyncErrorType = SyncErrorType.API,
    ) -> TrackedRepository | None:
        """Record the outcome of a sync attempt.

        A non-empty error list replaces the stored errors, keeping only the
        most recent ones; an empty list leaves the stored errors untouched.

        Args:
            name: Repository identifier
            last_sync_at: Completion time of the attempt
            errors: Error messages produced by the attempt
            error_type: Category stored with each error

        Returns:
            Updated repository or None if not tracked
        """
        tracked = await self.get_by_name(name)
        if tracked is None:
            return None

        tracked.last_sync_at = last_sync_at
        if errors:
            timestamp = datetime.now(UTC).isoformat()
            entries = [
                {"timestamp": timestamp, "error": message, "type": str(error_type)}
                for message in errors
            ]
            # Assign a new list so the JSON column is marked dirty
            tracked.sync_errors = entries[-self._max_errors :]
        await self.flush()
        return tracked
