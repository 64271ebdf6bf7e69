"""Incremental PR sync for a single repository.

Pages through the PR listing sorted by most recent update, decides per PR
whether it needs fetching, and stores each accepted PR together with its
reviews as soon as its page is processed:

1. Snapshot the sync state of the repository from the mirror
2. Fetch listing pages one at a time (server-side ``since`` filter)
3. Classify each PR; skipped PRs cost no further API calls
4. For accepted PRs, fetch changed files and reviews, then upsert
5. Commit and report progress after every page

A failing file or review fetch is recorded against its PR and the sync
carries on; a failing page fetch aborts the repository.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from pr_digest.config import SyncConfig, get_settings
from pr_digest.github.exceptions import GitHubRetryableError
from pr_digest.logging import bind_pr, bind_repo
from pr_digest.schemas.github_api import GitHubFile, GitHubReview
from pr_digest.schemas.repository import parse_repo_string

from .enums import SyncDecision
from .heuristics import has_test_files
from .progress import ProgressCallback, SyncProgressReporter
from .results import SyncResult
from .state import SyncState, SyncStateResolver, classify_pull_request

if TYPE_CHECKING:
    from pr_digest.db.repositories import PullRequestRepository, ReviewRepository
    from pr_digest.github.client import GitHubClient
    from pr_digest.schemas.github_api import GitHubPullRequest

    from .commit_manager import CommitManager


@dataclass
class SyncOptions:
    """Options for one repository sync.

    Attributes:
        force: Fetch every listed PR, ignoring the stored sync state
        since: Cutoff for the listing on a first or forced sync
        on_progress: Callback receiving progress events
        cancel_event: When set, the sync stops before the next page or PR
    """

    force: bool = False
    since: datetime | None = None
    on_progress: ProgressCallback | None = None
    cancel_event: asyncio.Event | None = None

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()


class PRSyncPipeline:
    """Fetch-process pipeline for one repository at a time.

    Usage:
        async with GitHubClient() as client, get_session() as session:
            pipeline = PRSyncPipeline(
                client=client,
                pr_repository=PullRequestRepository(session),
                review_repository=ReviewRepository(session),
                commit_manager=CommitManager(session),
            )
            result = await pipeline.run("prebid/prebid-server")
    """

    def __init__(
        self,
        client: GitHubClient,
        pr_repository: PullRequestRepository,
        review_repository: ReviewRepository,
        *,
        config: SyncConfig | None = None,
        commit_manager: CommitManager | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            client: GitHub API client
            pr_repository: Store for PR records
            review_repository: Store for review records
            config: Sync settings; defaults to the application settings
            commit_manager: Commits after each page when provided; otherwise
                the caller owns the transaction
        """
        self._client = client
        self._pr_repository = pr_repository
        self._review_repository = review_repository
        self._config = config or get_settings().sync
        self._commit_manager = commit_manager
        self._resolver = SyncStateResolver(pr_repository)

    async def run(self, repository: str, options: SyncOptions | None = None) -> SyncResult:
        """Sync one repository.

        Never raises for API or storage failures: they end up in the
        result's error list.

        Args:
            repository: Repository identifier in owner/repo form
            options: Sync options

        Returns:
            SyncResult with counts and errors
        """
        options = options or SyncOptions()
        started = time.monotonic()
        result = SyncResult(repository=repository)
        reporter = SyncProgressReporter(repository, options.on_progress)
        repo_logger = bind_repo(repository)

        try:
            owner, name = parse_repo_string(repository)
        except ValueError as e:
            repo_logger.error("Cannot sync {}: {}", repository, e)
            result.record_fatal(str(e))
            return self._finish(result, reporter, started)

        try:
            await self._sync_pages(owner, name, repository, options, result, reporter)
        except Exception as e:
            repo_logger.error("Sync of {} aborted: {}", repository, e)
            result.record_fatal(str(e), retryable=isinstance(e, GitHubRetryableError))
            await self._checkpoint_after_failure(e)

        return self._finish(result, reporter, started)

    # -------------------------------------------------------------------------
    # Page Loop
    # -------------------------------------------------------------------------

    async def _sync_pages(
        self,
        owner: str,
        name: str,
        repository: str,
        options: SyncOptions,
        result: SyncResult,
        reporter: SyncProgressReporter,
    ) -> None:
        repo_logger = bind_repo(repository)

        sync_state: SyncState | None
        if options.force:
            sync_state = None
            since = options.since
            repo_logger.info("Force sync of {} (since: {})", repository, since)
        else:
            sync_state = await self._resolver.resolve(repository)
            since = sync_state.last_sync_time or options.since
            if sync_state.is_empty:
                repo_logger.info("First sync of {} (since: {})", repository, since)
            else:
                repo_logger.info(
                    "Incremental sync of {}: last PR #{}, last sync {}",
                    repository,
                    sync_state.last_synced_pr_number,
                    sync_state.last_sync_time,
                )

        reporter.fetching()

        per_page = self._config.page_size
        page_number = 1
        while True:
            if options.cancelled:
                result.cancelled = True
                break

            page = await self._client.list_pull_requests_page(
                owner,
                name,
                state="all",
                sort="updated",
                direction="desc",
                per_page=per_page,
                page=page_number,
                since=since,
            )
            result.pages_fetched += 1

            if page.raw_count == 0:
                break

            for number, reason in page.rejected:
                result.record_error(number, f"Unparseable PR entry: {reason}")

            for pr in page.items:
                if options.cancelled:
                    result.cancelled = True
                    break
                await self._handle_pull_request(owner, name, repository, pr, sync_state, result)

            await self._checkpoint()
            reporter.page_done(
                page=page_number,
                page_item_count=page.raw_count,
                per_page=per_page,
                processed_prs=result.total_prs,
                errors=result.errors,
                rate_limit=page.rate_limit,
            )

            if result.cancelled or page.raw_count < per_page:
                break

            if page.rate_limit.is_low(self._config.rate_limit_pause_threshold):
                repo_logger.info(
                    "Rate limit low ({} remaining, resets in {:.0f}s), pausing {}s",
                    page.rate_limit.remaining,
                    page.rate_limit.seconds_until_reset(),
                    self._config.rate_limit_pause_seconds,
                )
                await asyncio.sleep(self._config.rate_limit_pause_seconds)

            page_number += 1

        if result.cancelled:
            repo_logger.warning("Sync of {} cancelled after {} pages", repository, result.pages_fetched)

    async def _handle_pull_request(
        self,
        owner: str,
        name: str,
        repository: str,
        pr: GitHubPullRequest,
        sync_state: SyncState | None,
        result: SyncResult,
    ) -> None:
        decision = (
            SyncDecision.NEW if sync_state is None else classify_pull_request(pr, sync_state)
        )
        if decision.should_fetch:
            await self._process_pull_request(owner, name, repository, pr, result)
        result.record(decision)

    # -------------------------------------------------------------------------
    # Per-PR Processing
    # -------------------------------------------------------------------------

    async def _process_pull_request(
        self,
        owner: str,
        name: str,
        repository: str,
        pr: GitHubPullRequest,
        result: SyncResult,
    ) -> None:
        """Fetch files and reviews for a PR, then store the PR and its reviews."""
        pr_logger = bind_pr(repository, pr.number)

        files: list[GitHubFile] = []
        try:
            files = await self._client.get_pull_request_files(owner, name, pr.number)
        except Exception as e:
            pr_logger.warning("Failed to fetch files of PR #{}: {}", pr.number, e)
            result.record_error(pr.number, f"Failed to fetch files: {e}")

        reviews: list[GitHubReview] = []
        try:
            reviews = await self._client.get_pull_request_reviews(owner, name, pr.number)
        except Exception as e:
            pr_logger.warning("Failed to fetch reviews of PR #{}: {}", pr.number, e)
            result.record_error(pr.number, f"Failed to fetch reviews: {e}")

        synced_at = datetime.now(UTC)
        record = pr.to_record(
            repository,
            has_tests=has_test_files(f.filename for f in files),
            synced_at=synced_at,
        )
        await self._pr_repository.upsert(record)

        review_records = [
            r
            for r in (review.to_record(repository, pr.number, synced_at) for review in reviews)
            if r is not None
        ]
        # Oldest first, so each reviewer's latest review is the one kept
        review_records.sort(key=lambda r: r.submitted_at)
        for review_record in review_records:
            await self._review_repository.upsert(review_record)
        result.new_reviews += len(review_records)

        if self._commit_manager is not None:
            self._commit_manager.record_write(1 + len(review_records))

        pr_logger.debug(
            "Stored PR #{} ({} files, {} reviews, has_tests={})",
            pr.number,
            len(files),
            len(review_records),
            record.has_tests,
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _checkpoint(self) -> None:
        if self._commit_manager is not None:
            await self._commit_manager.commit()

    async def _checkpoint_after_failure(self, error: Exception) -> None:
        """Keep stored PRs of a partly processed page unless storage itself failed."""
        if self._commit_manager is None:
            return
        if isinstance(error, SQLAlchemyError):
            await self._commit_manager.rollback()
        else:
            await self._commit_manager.commit()

    def _finish(
        self,
        result: SyncResult,
        reporter: SyncProgressReporter,
        started: float,
    ) -> SyncResult:
        result.finish(time.monotonic() - started)
        reporter.complete(
            processed_prs=result.total_prs,
            errors=result.errors,
            pages=result.pages_fetched,
        )
        bind_repo(result.repository).info(
            "Finished {}: {} new, {} updated, {} skipped, {} reviews, {} errors in {:.1f}s",
            result.repository,
            result.new_prs,
            result.updated_prs,
            result.skipped_prs,
            result.new_reviews,
            len(result.errors),
            result.duration_seconds,
        )
        return result
