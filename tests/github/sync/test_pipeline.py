"""Tests for PRSyncPipeline.

Tests cover:
- Page termination on short and empty pages
- Incremental classification against the stored mirror
- Force mode
- Per-PR error capture and fatal page errors
- Review storage and the test-file heuristic
- Rate limit pause, cancellation and progress reporting
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from pr_digest.config import SyncConfig
from pr_digest.db.models import ReviewState
from pr_digest.github import GitHubClient, GitHubNetworkError, GitHubNotFoundError
from pr_digest.github.sync import (
    CommitManager,
    PRSyncPipeline,
    SyncOptions,
    SyncPhase,
    SyncProgress,
)

from tests.conftest import JAN_10, JAN_10_ISO, JAN_12_ISO, JAN_15, JAN_16_ISO, JAN_20, REPO
from tests.factories import (
    make_github_files,
    make_github_pr,
    make_github_review,
    make_page,
    make_pages,
    make_pr_payload,
    make_pr_record,
)


@pytest.fixture
def commit_manager(db_session):
    return CommitManager(db_session)


@pytest.fixture
def pipeline(mock_client, pr_repository, review_repository, sync_config, commit_manager):
    return PRSyncPipeline(
        client=mock_client,
        pr_repository=pr_repository,
        review_repository=review_repository,
        config=sync_config,
        commit_manager=commit_manager,
    )


def _listing_calls(mock_client) -> list[dict]:
    return [c.kwargs for c in mock_client.list_pull_requests_page.call_args_list]


# -----------------------------------------------------------------------------
# Page Termination
# -----------------------------------------------------------------------------
class TestPageTermination:
    """The listing is read until a short or empty page."""

    async def test_stops_after_short_page(self, pipeline, mock_client, pr_repository):
        mock_client.list_pull_requests_page.side_effect = make_pages(100, 100, 37)

        result = await pipeline.run(REPO)

        assert result.success
        assert result.pages_fetched == 3
        assert [c["page"] for c in _listing_calls(mock_client)] == [1, 2, 3]
        assert result.new_prs == 237
        assert await pr_repository.count_for_repository(REPO) == 237

    async def test_two_pages(self, pipeline, mock_client):
        mock_client.list_pull_requests_page.side_effect = make_pages(100, 40)

        result = await pipeline.run(REPO)

        assert mock_client.list_pull_requests_page.await_count == 2
        assert result.pages_fetched == 2
        assert result.new_prs == 140

    async def test_full_last_page_needs_empty_page(self, pipeline, mock_client):
        mock_client.list_pull_requests_page.side_effect = make_pages(100, 0)

        result = await pipeline.run(REPO)

        assert result.pages_fetched == 2
        assert result.new_prs == 100

    async def test_empty_repository(self, pipeline, mock_client):
        mock_client.list_pull_requests_page.side_effect = make_pages(0)

        result = await pipeline.run(REPO)

        assert result.success
        assert result.pages_fetched == 1
        assert result.total_prs == 0
        mock_client.get_pull_request_files.assert_not_awaited()

    async def test_full_page_counts_unparseable_entries(self, pipeline, mock_client):
        """A full page with an unparseable entry is still a full page."""
        prs = [make_github_pr(n) for n in range(200, 101, -1)]  # 99 parsed
        mock_client.list_pull_requests_page.side_effect = [
            make_page(prs, rejected=[(101, "created_at: Input should be a valid datetime")]),
            make_page([], page=2),
        ]

        result = await pipeline.run(REPO)

        assert result.pages_fetched == 2
        assert result.new_prs == 99

    async def test_listing_request_shape(self, pipeline, mock_client):
        mock_client.list_pull_requests_page.side_effect = make_pages(1)

        await pipeline.run(REPO)

        args = mock_client.list_pull_requests_page.call_args.args
        kwargs = mock_client.list_pull_requests_page.call_args.kwargs
        assert args == ("prebid", "prebid-server")
        assert kwargs == {
            "state": "all",
            "sort": "updated",
            "direction": "desc",
            "per_page": 100,
            "page": 1,
            "since": None,
        }


# -----------------------------------------------------------------------------
# Incremental Classification
# -----------------------------------------------------------------------------
@pytest.fixture
async def seeded_mirror(pr_repository, db_session):
    """Mirror holding PRs up to #1000, last written on JAN_15."""
    for number in (1000, 990, 900, 800):
        await pr_repository.upsert(make_pr_record(number, synced_at=JAN_15))
    await db_session.commit()


class TestIncrementalSync:
    async def test_decisions_against_mirror(self, seeded_mirror, pipeline, mock_client):
        mock_client.list_pull_requests_page.side_effect = [
            make_page(
                [
                    make_github_pr(1001, state="open", updated_at=JAN_16_ISO),
                    make_github_pr(990, state="closed", merged_at=JAN_12_ISO, updated_at=JAN_16_ISO),
                    make_github_pr(900, state="open", updated_at=JAN_16_ISO),
                    make_github_pr(800, state="open", updated_at=JAN_10_ISO),
                ]
            )
        ]

        result = await pipeline.run(REPO)

        assert result.new_prs == 1
        assert result.updated_prs == 1
        assert result.skipped_immutable == 1
        assert result.skipped_unchanged == 1
        fetched = sorted(c.args[2] for c in mock_client.get_pull_request_files.call_args_list)
        assert fetched == [900, 1001]

    async def test_since_is_last_sync_time(self, seeded_mirror, pipeline, mock_client):
        mock_client.list_pull_requests_page.side_effect = make_pages(0)

        await pipeline.run(REPO, SyncOptions(since=JAN_10))

        assert _listing_calls(mock_client)[0]["since"] == JAN_15

    async def test_since_option_used_on_first_sync(self, pipeline, mock_client):
        mock_client.list_pull_requests_page.side_effect = make_pages(0)

        await pipeline.run(REPO, SyncOptions(since=JAN_10))

        assert _listing_calls(mock_client)[0]["since"] == JAN_10

    async def test_second_run_skips_everything(self, pipeline, mock_client):
        """A rerun over the same listing fetches nothing again."""
        listing = [
            make_github_pr(3, state="open", updated_at=JAN_16_ISO),
            make_github_pr(2, state="closed", merged_at=JAN_12_ISO),
            make_github_pr(1, state="closed"),
        ]
        mock_client.list_pull_requests_page.side_effect = [make_page(listing), make_page(listing)]

        first = await pipeline.run(REPO)
        second = await pipeline.run(REPO)

        assert first.new_prs == 3
        assert second.total_prs == 0
        assert second.skipped_unchanged == 1
        assert second.skipped_immutable == 2
        assert mock_client.get_pull_request_files.await_count == 3

    async def test_updated_pr_overwrites_row(
        self, seeded_mirror, pipeline, mock_client, pr_repository
    ):
        mock_client.list_pull_requests_page.side_effect = [
            make_page([make_github_pr(900, state="open", title="Renamed", updated_at=JAN_16_ISO)])
        ]

        await pipeline.run(REPO)

        stored = await pr_repository.get_by_number(REPO, 900)
        assert stored.title == "Renamed"
        assert stored.synced_at > JAN_15
        assert await pr_repository.count_for_repository(REPO) == 4


class TestForceSync:
    async def test_force_fetches_everything(self, seeded_mirror, pipeline, mock_client):
        mock_client.list_pull_requests_page.side_effect = [
            make_page(
                [
                    make_github_pr(990, state="closed", merged_at=JAN_12_ISO),
                    make_github_pr(800, state="open", updated_at=JAN_10_ISO),
                ]
            )
        ]

        result = await pipeline.run(REPO, SyncOptions(force=True))

        assert result.new_prs == 2
        assert result.skipped_prs == 0
        assert _listing_calls(mock_client)[0]["since"] is None

    async def test_force_uses_since_option(self, seeded_mirror, pipeline, mock_client):
        mock_client.list_pull_requests_page.side_effect = make_pages(0)

        await pipeline.run(REPO, SyncOptions(force=True, since=JAN_10))

        assert _listing_calls(mock_client)[0]["since"] == JAN_10


# -----------------------------------------------------------------------------
# Per-PR Processing
# -----------------------------------------------------------------------------
class TestPullRequestProcessing:
    async def test_files_failure_is_recorded_and_pr_stored(
        self, pipeline, mock_client, pr_repository
    ):
        async def files(owner, repo, number):
            if number == 55:
                raise GitHubNetworkError("boom")
            return make_github_files("tests/test_adapter.py")

        mock_client.get_pull_request_files.side_effect = files
        mock_client.list_pull_requests_page.side_effect = [
            make_page([make_github_pr(56), make_github_pr(55), make_github_pr(54)])
        ]

        result = await pipeline.run(REPO)

        assert result.success
        assert result.errors == [(55, "Failed to fetch files: boom")]
        assert result.new_prs == 3
        failed = await pr_repository.get_by_number(REPO, 55)
        assert failed is not None
        assert failed.has_tests is False
        assert (await pr_repository.get_by_number(REPO, 54)).has_tests is True

    async def test_reviews_failure_is_recorded(self, pipeline, mock_client, pr_repository):
        mock_client.get_pull_request_reviews.side_effect = GitHubNetworkError("timeout")
        mock_client.list_pull_requests_page.side_effect = [make_page([make_github_pr(8)])]

        result = await pipeline.run(REPO)

        assert result.success
        assert result.errors == [(8, "Failed to fetch reviews: timeout")]
        assert await pr_repository.get_by_number(REPO, 8) is not None

    async def test_unparseable_listing_entries_recorded(
        self, pipeline, mock_client, pr_repository
    ):
        mock_client.list_pull_requests_page.side_effect = [
            make_page(
                [make_github_pr(78)],
                rejected=[
                    (77, "created_at: Input should be a valid datetime"),
                    (0, "number: Field required"),
                ],
            )
        ]

        result = await pipeline.run(REPO)

        assert result.success
        assert result.new_prs == 1
        assert result.errors == [
            (77, "Unparseable PR entry: created_at: Input should be a valid datetime"),
            (0, "Unparseable PR entry: number: Field required"),
        ]
        assert await pr_repository.get_by_number(REPO, 78) is not None

    async def test_malformed_entry_from_client_reaches_result(
        self, pr_repository, review_repository, sync_config, commit_manager
    ):
        """Real client parsing: a malformed listing entry ends up in the errors."""

        async def no_items(*args, **kwargs):
            return
            yield  # pragma: no cover

        response = MagicMock()
        response.headers = {}
        response.json.return_value = [
            make_pr_payload(78),
            make_pr_payload(77, created_at=None),
        ]
        client = GitHubClient(token="test-token")
        client._client = MagicMock()
        client._client.arequest = AsyncMock(return_value=response)
        client._client.paginate = no_items
        pipeline = PRSyncPipeline(
            client=client,
            pr_repository=pr_repository,
            review_repository=review_repository,
            config=sync_config,
            commit_manager=commit_manager,
        )

        result = await pipeline.run(REPO)

        assert [number for number, _ in result.errors] == [77]
        assert "created_at" in result.errors[0][1]
        assert result.new_prs == 1
        assert await pr_repository.get_by_number(REPO, 77) is None

    async def test_latest_review_per_reviewer_kept(
        self, pipeline, mock_client, review_repository
    ):
        mock_client.get_pull_request_reviews.return_value = [
            make_github_review("alice", "APPROVED", "2024-01-16T12:00:00Z", review_id=3),
            make_github_review("alice", "CHANGES_REQUESTED", "2024-01-15T12:00:00Z", review_id=1),
            make_github_review("bob", "COMMENTED", "2024-01-15T13:00:00Z", review_id=2),
            make_github_review("carol", "DISMISSED", "2024-01-16T13:00:00Z", review_id=4),
            make_github_review(None, "APPROVED", "2024-01-16T14:00:00Z", review_id=5),
        ]
        mock_client.list_pull_requests_page.side_effect = [make_page([make_github_pr(12)])]

        result = await pipeline.run(REPO)

        reviews = await review_repository.query(repository=REPO, pr_number=12)
        assert [(r.reviewer, r.state) for r in reviews] == [
            ("alice", ReviewState.APPROVED),
            ("bob", ReviewState.COMMENTED),
        ]
        assert result.new_reviews == 3

    async def test_has_tests_from_changed_files(self, pipeline, mock_client, pr_repository):
        mock_client.get_pull_request_files.return_value = make_github_files(
            "adapters/bidder.go", "adapters/bidder_test/params.json", "src/Button.stories.tsx"
        )
        mock_client.list_pull_requests_page.side_effect = [make_page([make_github_pr(20)])]

        await pipeline.run(REPO)

        assert (await pr_repository.get_by_number(REPO, 20)).has_tests is True

    async def test_stored_fields(self, pipeline, mock_client, pr_repository):
        mock_client.list_pull_requests_page.side_effect = [
            make_page([make_github_pr(30, state="closed", merged_at=JAN_12_ISO, login="dev1")])
        ]

        await pipeline.run(REPO)

        stored = await pr_repository.get_by_number(REPO, 30)
        assert stored.author == "dev1"
        assert stored.created_at == JAN_10
        assert stored.merged_at is not None
        assert stored.synced_at > JAN_20


# -----------------------------------------------------------------------------
# Fatal Errors
# -----------------------------------------------------------------------------
class TestFatalErrors:
    async def test_page_fetch_failure_aborts(self, pipeline, mock_client, pr_repository):
        mock_client.list_pull_requests_page.side_effect = [
            make_pages(100)[0],
            GitHubNetworkError("connection reset"),
        ]

        result = await pipeline.run(REPO)

        assert not result.success
        assert result.aborted
        assert result.retryable
        assert result.errors[-1] == (0, "Sync failed: connection reset")
        # The first page was committed before the failure
        assert result.new_prs == 100
        assert await pr_repository.count_for_repository(REPO) == 100

    async def test_missing_repository_is_not_retryable(self, pipeline, mock_client):
        mock_client.list_pull_requests_page.side_effect = GitHubNotFoundError(
            "Not found: prebid/prebid-server"
        )

        result = await pipeline.run(REPO)

        assert result.aborted
        assert not result.retryable
        assert result.errors == [(0, "Sync failed: Not found: prebid/prebid-server")]

    async def test_invalid_repository_makes_no_request(self, pipeline, mock_client):
        events: list[SyncProgress] = []

        result = await pipeline.run("not-a-repo", SyncOptions(on_progress=events.append))

        assert result.aborted
        assert result.errors[0][0] == 0
        assert "Invalid repository format" in result.errors[0][1]
        mock_client.list_pull_requests_page.assert_not_awaited()
        assert [e.phase for e in events] == [SyncPhase.COMPLETE]

    async def test_storage_failure_rolls_back(
        self, mock_client, pr_repository, review_repository, sync_config
    ):
        commit_manager = MagicMock()
        commit_manager.commit = AsyncMock(return_value=0)
        commit_manager.rollback = AsyncMock(return_value=0)
        pr_repository.upsert = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("locked")))
        pipeline = PRSyncPipeline(
            client=mock_client,
            pr_repository=pr_repository,
            review_repository=review_repository,
            config=sync_config,
            commit_manager=commit_manager,
        )
        mock_client.list_pull_requests_page.side_effect = [make_page([make_github_pr(1)])]

        result = await pipeline.run(REPO)

        assert result.aborted
        commit_manager.rollback.assert_awaited_once()


# -----------------------------------------------------------------------------
# Rate Limit, Cancellation, Progress
# -----------------------------------------------------------------------------
class TestRateLimitPause:
    async def test_pauses_between_pages_when_low(
        self, mock_client, pr_repository, review_repository
    ):
        config = SyncConfig(rate_limit_pause_threshold=100, rate_limit_pause_seconds=0.5)
        pipeline = PRSyncPipeline(mock_client, pr_repository, review_repository, config=config)
        pages = make_pages(100, 10)
        pages[0] = make_page(pages[0].items, remaining=50)
        mock_client.list_pull_requests_page.side_effect = pages

        with patch("pr_digest.github.sync.pipeline.asyncio.sleep", new=AsyncMock()) as sleep:
            result = await pipeline.run(REPO)

        sleep.assert_awaited_once_with(0.5)
        assert result.pages_fetched == 2

    async def test_no_pause_with_quota_left(self, pipeline, mock_client):
        mock_client.list_pull_requests_page.side_effect = make_pages(100, 10)

        with patch("pr_digest.github.sync.pipeline.asyncio.sleep", new=AsyncMock()) as sleep:
            await pipeline.run(REPO)

        sleep.assert_not_awaited()


class TestCancellation:
    async def test_cancel_before_start(self, pipeline, mock_client):
        cancel = asyncio.Event()
        cancel.set()

        result = await pipeline.run(REPO, SyncOptions(cancel_event=cancel))

        assert result.cancelled
        assert result.pages_fetched == 0
        mock_client.list_pull_requests_page.assert_not_awaited()

    async def test_cancel_after_first_page(self, pipeline, mock_client, pr_repository):
        cancel = asyncio.Event()

        def on_progress(progress: SyncProgress) -> None:
            if progress.phase == SyncPhase.PROCESSING:
                cancel.set()

        mock_client.list_pull_requests_page.side_effect = make_pages(100, 100, 100)

        result = await pipeline.run(
            REPO, SyncOptions(on_progress=on_progress, cancel_event=cancel)
        )

        assert result.cancelled
        assert result.success
        assert result.pages_fetched == 1
        assert await pr_repository.count_for_repository(REPO) == 100


class TestProgressReporting:
    async def test_events_per_page(self, pipeline, mock_client):
        events: list[SyncProgress] = []
        mock_client.list_pull_requests_page.side_effect = make_pages(100, 100, 37)

        await pipeline.run(REPO, SyncOptions(on_progress=events.append))

        assert [e.phase for e in events] == [
            SyncPhase.FETCHING,
            SyncPhase.PROCESSING,
            SyncPhase.PROCESSING,
            SyncPhase.PROCESSING,
            SyncPhase.COMPLETE,
        ]
        assert [e.current_page for e in events[1:4]] == [1, 2, 3]
        assert [e.processed_prs for e in events[1:4]] == [100, 200, 237]
        assert events[3].estimated_total_pages == 3
        assert events[-1].processed_prs == 237

    async def test_failing_callback_does_not_affect_sync(self, pipeline, mock_client):
        mock_client.list_pull_requests_page.side_effect = make_pages(100, 5)

        def on_progress(progress: SyncProgress) -> None:
            raise RuntimeError("display gone")

        result = await pipeline.run(REPO, SyncOptions(on_progress=on_progress))

        assert result.success
        assert result.new_prs == 105
        assert result.errors == []
