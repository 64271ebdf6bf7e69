"""Pull request repository: keyed upserts and sync-state queries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pr_digest.db.models import PullRequest

from .base import BaseRepository

if TYPE_CHECKING:
    from pr_digest.schemas.records import PullRequestRecord


@dataclass(frozen=True)
class StoredSyncMarks:
    """Highest stored PR number and latest write time for one repository."""

    max_number: int
    max_synced_at: datetime | None


class PullRequestRepository(BaseRepository[PullRequest]):
    """Repository for mirrored pull requests.

    Usage:
        async with get_session() as session:
            repo = PullRequestRepository(session)
            pr, created = await repo.upsert(record)
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, PullRequest)

    async def get_by_number(self, repository: str, number: int) -> PullRequest | None:
        """Get a PR by repository and number."""
        return await self.get_by_key({"repository": repository, "number": number})

    async def query(
        self,
        repository: str | None = None,
        author: str | None = None,
    ) -> list[PullRequest]:
        """Get PRs, optionally filtered by repository and author.

        Args:
            repository: Only PRs of this owner/repo
            author: Only PRs opened by this login

        Returns:
            PRs ordered by repository and number
        """
        stmt = select(PullRequest)
        if repository is not None:
            stmt = stmt.where(PullRequest.repository == repository)
        if author is not None:
            stmt = stmt.where(PullRequest.author == author)
        stmt = stmt.order_by(PullRequest.repository, PullRequest.number)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def upsert(self, record: PullRequestRecord) -> tuple[PullRequest, bool]:
        """Insert or fully overwrite the row for (repository, number).

        Args:
            record: Complete PR record

        Returns:
            Tuple of (PullRequest, created)
        """
        return await self._upsert(record.key(), record.values())

    async def get_sync_marks(self, repository: str) -> StoredSyncMarks:
        """Aggregate the stored PRs of one repository.

        Returns:
            Max PR number (0 when none) and max synced_at (None when none)
        """
        stmt = select(
            func.max(PullRequest.number),
            func.max(PullRequest.synced_at),
        ).where(PullRequest.repository == repository)
        result = await self._session.execute(stmt)
        max_number, max_synced_at = result.one()
        return StoredSyncMarks(max_number=max_number or 0, max_synced_at=max_synced_at)

    async def count_for_repository(self, repository: str) -> int:
        stmt = select(func.count()).select_from(PullRequest).where(PullRequest.repository == repository)
        result = await self._session.execute(stmt)
        return result.scalar() or 0
