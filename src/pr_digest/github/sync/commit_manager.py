"""Commit boundaries for sync runs.

A sync commits after every listing page and after every repository, so
an interrupted run keeps everything up to the last boundary and the next
run resumes from the mirror's state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pr_digest.logging import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


class CommitManager:
    """Counts pending writes and commits them at checkpoints.

    Usage:
        commit_manager = CommitManager(session)
        await pr_repository.upsert(record)
        commit_manager.record_write()
        await commit_manager.commit()  # at the end of each page

    Attributes:
        pending_writes: Writes flushed but not yet committed.
        total_committed: Writes committed across all checkpoints.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._pending_writes = 0
        self._total_committed = 0

    @property
    def pending_writes(self) -> int:
        return self._pending_writes

    @property
    def total_committed(self) -> int:
        return self._total_committed

    def record_write(self, count: int = 1) -> None:
        """Note writes made since the last checkpoint."""
        self._pending_writes += count

    async def commit(self) -> int:
        """Commit pending writes.

        Returns:
            Number of writes committed (0 if nothing was pending).
        """
        if self._pending_writes == 0:
            return 0

        await self._session.commit()

        committed = self._pending_writes
        self._total_committed += committed
        self._pending_writes = 0

        logger.debug("Committed {} writes (total: {})", committed, self._total_committed)
        return committed

    async def rollback(self) -> int:
        """Discard pending writes after a failed operation.

        Returns:
            Number of writes discarded.
        """
        await self._session.rollback()
        discarded = self._pending_writes
        self._pending_writes = 0
        if discarded:
            logger.warning("Rolled back {} uncommitted writes", discarded)
        return discarded
