"""Sync orchestrator: runs the PR pipeline over tracked repositories.

Repositories are synced one at a time. A failure in one repository is
recorded against it and the next repository is still attempted.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pr_digest.db.repositories import SyncErrorType
from pr_digest.github.exceptions import GitHubRetryableError
from pr_digest.logging import get_logger

from .exceptions import RepositoryInactiveError, RepositoryNotTrackedError
from .pipeline import SyncOptions
from .results import MultiRepoSyncResult, RepoSyncOutcome, SyncResult

if TYPE_CHECKING:
    from pr_digest.db.models import TrackedRepository
    from pr_digest.db.repositories import TrackedRepositoryRepository

    from .commit_manager import CommitManager
    from .pipeline import PRSyncPipeline

logger = get_logger(__name__)


class SyncOrchestrator:
    """Syncs tracked repositories and records each attempt.

    Usage:
        orchestrator = SyncOrchestrator(
            pipeline=pipeline,
            tracking_repository=TrackedRepositoryRepository(session),
            commit_manager=CommitManager(session),
        )
        result = await orchestrator.sync_all()
    """

    def __init__(
        self,
        pipeline: PRSyncPipeline,
        tracking_repository: TrackedRepositoryRepository,
        *,
        commit_manager: CommitManager | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            pipeline: Per-repository sync pipeline
            tracking_repository: Tracked repositories and their sync bookkeeping
            commit_manager: Commits after each repository when provided
        """
        self._pipeline = pipeline
        self._tracking = tracking_repository
        self._commit_manager = commit_manager

    async def sync_one(
        self,
        repository: str,
        options: SyncOptions | None = None,
    ) -> SyncResult:
        """Sync a single tracked, active repository.

        Args:
            repository: Repository identifier in owner/repo form
            options: Sync options; tracked sync_since applies when unset

        Returns:
            SyncResult for the repository

        Raises:
            RepositoryNotTrackedError: If the repository is not tracked
            RepositoryInactiveError: If the repository is disabled
        """
        tracked = await self._tracking.get_by_name(repository)
        if tracked is None:
            raise RepositoryNotTrackedError(repository)
        if not tracked.active:
            raise RepositoryInactiveError(repository)

        result = await self._run_tracked(tracked, options or SyncOptions())
        await self._record(repository, result)
        return result

    async def sync_all(
        self,
        repositories: list[str] | None = None,
        options: SyncOptions | None = None,
    ) -> MultiRepoSyncResult:
        """Sync several repositories in order, continuing past failures.

        Args:
            repositories: Repository identifiers; defaults to all active
                tracked repositories
            options: Options applied to every repository

        Returns:
            MultiRepoSyncResult with one outcome per repository
        """
        options = options or SyncOptions()
        multi = MultiRepoSyncResult()

        names = repositories
        if names is None:
            names = [tracked.name for tracked in await self._tracking.get_active()]

        logger.info("Syncing {} repositories", len(names))

        for index, name in enumerate(names, 1):
            if options.cancelled:
                logger.warning("Sync cancelled before {}", name)
                break

            logger.info("[{}/{}] Syncing {}", index, len(names), name)
            try:
                tracked = await self._tracking.get_by_name(name)
                if tracked is None:
                    raise RepositoryNotTrackedError(name)
                if not tracked.active:
                    raise RepositoryInactiveError(name)

                result = await self._run_tracked(tracked, options)
                await self._record(name, result)
                multi.outcomes.append(RepoSyncOutcome(repository=name, result=result))
            except Exception as e:
                logger.exception("Failed to sync {}", name)
                multi.outcomes.append(RepoSyncOutcome(repository=name, error=str(e)))
                await self._record_failure(name, e)

        multi.completed_at = datetime.now(UTC)
        logger.info(
            "Multi-repo sync complete: {} succeeded, {} failed",
            multi.success_count,
            multi.failure_count,
        )
        return multi

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _run_tracked(self, tracked: TrackedRepository, options: SyncOptions) -> SyncResult:
        """Apply the tracked cutoff and run the pipeline."""
        since = options.since
        if since is None and (tracked.last_sync_at is None or options.force):
            since = tracked.sync_since
        return await self._pipeline.run(tracked.name, replace(options, since=since))

    async def _record(self, name: str, result: SyncResult) -> None:
        await self._tracking.record_sync(
            name,
            result.completed_at or datetime.now(UTC),
            [message for _, message in result.errors],
            error_type=SyncErrorType.TRANSIENT if result.retryable else SyncErrorType.API,
        )
        await self._commit()

    async def _record_failure(self, name: str, error: Exception) -> None:
        """Store an escaped exception on the tracked repository, if it is tracked."""
        try:
            if self._commit_manager is not None:
                await self._commit_manager.rollback()
            await self._tracking.record_sync(
                name,
                datetime.now(UTC),
                [str(error)],
                error_type=(
                    SyncErrorType.TRANSIENT
                    if isinstance(error, GitHubRetryableError)
                    else SyncErrorType.UNKNOWN
                ),
            )
            await self._commit()
        except Exception:
            logger.exception("Could not record sync failure of {}", name)

    async def _commit(self) -> None:
        if self._commit_manager is not None:
            self._commit_manager.record_write()
            await self._commit_manager.commit()
