"""Review repository: latest review state per reviewer per PR."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pr_digest.db.models import Review

from .base import BaseRepository

if TYPE_CHECKING:
    from pr_digest.schemas.records import ReviewRecord


class ReviewRepository(BaseRepository[Review]):
    """Repository for mirrored reviews."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Review)

    async def upsert(self, record: ReviewRecord) -> tuple[Review, bool]:
        """Insert or replace the review of one reviewer on one PR.

        Returns:
            Tuple of (Review, created)
        """
        return await self._upsert(record.key(), record.values())

    async def query(
        self,
        repository: str | None = None,
        reviewer: str | None = None,
        pr_number: int | None = None,
    ) -> list[Review]:
        """Get reviews matching every given filter."""
        stmt = select(Review)
        if repository is not None:
            stmt = stmt.where(Review.repository == repository)
        if reviewer is not None:
            stmt = stmt.where(Review.reviewer == reviewer)
        if pr_number is not None:
            stmt = stmt.where(Review.pr_number == pr_number)
        stmt = stmt.order_by(Review.repository, Review.pr_number, Review.reviewer)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
