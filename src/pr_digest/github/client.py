"""Async GitHub API client wrapper using githubkit.

This module provides a typed async interface to the three GitHub REST
endpoints the sync needs: the paginated PR listing, the files of a PR
and the reviews of a PR. githubkit errors are translated into the
exceptions in :mod:`pr_digest.github.exceptions`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal

from githubkit import GitHub
from githubkit.exception import RequestError, RequestFailed, RequestTimeout
from pydantic import ValidationError

from pr_digest.config import get_settings
from pr_digest.logging import get_logger
from pr_digest.schemas.github_api import GitHubFile, GitHubPullRequest, GitHubReview

from .exceptions import (
    GitHubAuthenticationError,
    GitHubClientError,
    GitHubNetworkError,
    GitHubNotFoundError,
    GitHubRateLimitError,
)
from .rate_limit import RateLimitInfo

logger = get_logger(__name__)

PRStateFilter = Literal["open", "closed", "all"]
PRSort = Literal["created", "updated", "popularity", "long-running"]
SortDirection = Literal["asc", "desc"]


@dataclass
class PullRequestPage:
    """One page of the PR listing.

    Attributes:
        page: 1-based page number
        items: PRs that parsed successfully
        rejected: (pr_number, reason) for entries that failed to parse;
            pr_number is 0 when the entry carries no usable number
        raw_count: Entries GitHub returned, parsed or not
        rate_limit: Quota reported with the response
    """

    page: int
    items: list[GitHubPullRequest] = field(default_factory=list)
    rejected: list[tuple[int, str]] = field(default_factory=list)
    raw_count: int = 0
    rate_limit: RateLimitInfo = field(default_factory=RateLimitInfo)

    @property
    def rate_limit_remaining(self) -> int | None:
        return self.rate_limit.remaining

    @property
    def rate_limit_reset_at(self) -> datetime | None:
        return self.rate_limit.reset_at


class GitHubClient:
    """Async GitHub API client for PR and review data.

    Usage:
        async with GitHubClient() as client:
            page = await client.list_pull_requests_page("prebid", "prebid-server")
            for pr in page.items:
                print(pr.title)
    """

    def __init__(self, token: str | None = None, base_url: str | None = None) -> None:
        """Initialize the GitHub client.

        Args:
            token: GitHub PAT. If not provided, uses GITHUB_TOKEN from settings.
            base_url: REST API root for GitHub Enterprise. Defaults to settings.

        Raises:
            GitHubAuthenticationError: If no token is available.
        """
        settings = get_settings()
        self._token = token or settings.github_token
        if not self._token:
            raise GitHubAuthenticationError(
                "GitHub token required. Set GITHUB_TOKEN environment variable."
            )
        self._base_url = base_url or settings.github_base_url
        self._client: GitHub[Any] | None = None

    @property
    def _github(self) -> GitHub[Any]:
        """Get or create the githubkit client instance."""
        if self._client is None:
            if self._base_url:
                self._client = GitHub(self._token, base_url=self._base_url)
            else:
                self._client = GitHub(self._token)
        return self._client

    async def close(self) -> None:
        """Drop the underlying githubkit client."""
        self._client = None

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Pull Request Listing
    # -------------------------------------------------------------------------
    async def list_pull_requests_page(
        self,
        owner: str,
        repo: str,
        *,
        state: PRStateFilter = "all",
        sort: PRSort = "updated",
        direction: SortDirection = "desc",
        per_page: int = 100,
        page: int = 1,
        since: datetime | None = None,
    ) -> PullRequestPage:
        """Fetch a single page of the PR listing.

        The listing omits line statistics, so additions, deletions and
        changed_files are 0 on the returned PRs.

        Args:
            owner: Repository owner (org or user)
            repo: Repository name
            state: Filter by state ("open", "closed", "all")
            sort: What to sort results by
            direction: Sort direction ("asc", "desc")
            per_page: Results per page (max 100)
            page: 1-based page number
            since: Only PRs updated at or after this time (server-side filter)

        Returns:
            PullRequestPage with parsed PRs and rate limit telemetry
        """
        params: dict[str, Any] = {
            "state": state,
            "sort": sort,
            "direction": direction,
            "per_page": per_page,
            "page": page,
        }
        if since is not None:
            params["since"] = since.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")

        try:
            resp = await self._github.arequest("GET", f"/repos/{owner}/{repo}/pulls", params=params)
        except RequestFailed as e:
            raise self._handle_error(e, f"{owner}/{repo}") from e
        except (RequestError, RequestTimeout) as e:
            raise GitHubNetworkError(f"Network error listing PRs of {owner}/{repo}: {e}") from e

        rate_limit = RateLimitInfo.from_headers(getattr(resp, "headers", None))

        payload = resp.json()
        if not isinstance(payload, list):
            raise GitHubClientError(f"Unexpected PR listing payload for {owner}/{repo}")

        items: list[GitHubPullRequest] = []
        rejected: list[tuple[int, str]] = []
        for entry in payload:
            try:
                items.append(GitHubPullRequest.model_validate(entry))
            except ValidationError as e:
                number = _entry_number(entry)
                reason = _describe_validation_error(e)
                logger.warning(
                    "Unparseable PR entry #{} in {}/{} page {}: {}",
                    number,
                    owner,
                    repo,
                    page,
                    reason,
                )
                rejected.append((number, reason))

        logger.debug(
            "Fetched page {} of {}/{}: {} PRs (rate limit remaining: {})",
            page,
            owner,
            repo,
            len(items),
            rate_limit.remaining,
        )
        return PullRequestPage(
            page=page,
            items=items,
            rejected=rejected,
            raw_count=len(payload),
            rate_limit=rate_limit,
        )

    # -------------------------------------------------------------------------
    # Per-PR Detail Methods
    # -------------------------------------------------------------------------
    async def get_pull_request_files(
        self,
        owner: str,
        repo: str,
        number: int,
        *,
        per_page: int = 100,
    ) -> list[GitHubFile]:
        """Get files changed in a pull request.

        Args:
            owner: Repository owner
            repo: Repository name
            number: PR number
            per_page: Results per page (max 100)

        Returns:
            List of GitHubFile objects

        Raises:
            GitHubClientError: If an entry cannot be parsed
        """
        try:
            files: list[GitHubFile] = []

            file_data: Any
            async for file_data in self._github.paginate(
                self._github.rest.pulls.async_list_files,
                owner=owner,
                repo=repo,
                pull_number=number,
                per_page=per_page,
            ):
                try:
                    files.append(GitHubFile.model_validate(file_data.model_dump()))
                except ValidationError as e:
                    raise GitHubClientError(
                        f"Unparseable file entry in PR #{number}: {_describe_validation_error(e)}"
                    ) from e

            return files
        except RequestFailed as e:
            raise self._handle_error(e, f"PR #{number} in {owner}/{repo}") from e
        except (RequestError, RequestTimeout) as e:
            raise GitHubNetworkError(f"Network error fetching files of PR #{number}: {e}") from e

    async def get_pull_request_reviews(
        self,
        owner: str,
        repo: str,
        number: int,
        *,
        per_page: int = 100,
    ) -> list[GitHubReview]:
        """Get reviews for a pull request, oldest first.

        Args:
            owner: Repository owner
            repo: Repository name
            number: PR number
            per_page: Results per page (max 100)

        Returns:
            List of GitHubReview objects

        Raises:
            GitHubClientError: If an entry cannot be parsed
        """
        try:
            reviews: list[GitHubReview] = []

            review_data: Any
            async for review_data in self._github.paginate(
                self._github.rest.pulls.async_list_reviews,
                owner=owner,
                repo=repo,
                pull_number=number,
                per_page=per_page,
            ):
                try:
                    reviews.append(GitHubReview.model_validate(review_data.model_dump()))
                except ValidationError as e:
                    raise GitHubClientError(
                        f"Unparseable review entry in PR #{number}: {_describe_validation_error(e)}"
                    ) from e

            return reviews
        except RequestFailed as e:
            raise self._handle_error(e, f"PR #{number} in {owner}/{repo}") from e
        except (RequestError, RequestTimeout) as e:
            raise GitHubNetworkError(f"Network error fetching reviews of PR #{number}: {e}") from e

    # -------------------------------------------------------------------------
    # Error Handling
    # -------------------------------------------------------------------------
    def _handle_error(self, error: RequestFailed, target: str) -> GitHubClientError:
        """Convert a githubkit RequestFailed into our exception hierarchy."""
        status = error.response.status_code
        headers = error.response.headers

        if status == 401:
            return GitHubAuthenticationError("Invalid GitHub token")
        if status in (403, 429):
            rate_limit = RateLimitInfo.from_headers(headers)
            if rate_limit.remaining == 0 or status == 429:
                return GitHubRateLimitError(
                    "GitHub rate limit exceeded",
                    reset_at=rate_limit.reset_at,
                )
            return GitHubClientError(f"Access forbidden to {target}: {error}")
        if status == 404:
            return GitHubNotFoundError(f"Not found: {target}")
        return GitHubClientError(f"GitHub API error ({status}) for {target}: {error}")


def _entry_number(entry: Any) -> int:
    """PR number of a raw listing entry, 0 when it has none."""
    number = entry.get("number") if isinstance(entry, dict) else None
    if isinstance(number, int) and not isinstance(number, bool):
        return number
    return 0


def _describe_validation_error(error: ValidationError) -> str:
    """One-line summary of a pydantic validation error."""
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'entry'}: {err['msg']}"
        for err in error.errors()
    )
