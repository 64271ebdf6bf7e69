"""Pydantic schemas for parsing GitHub API responses.

These schemas map the subset of the GitHub REST API payloads the sync
needs. See: https://docs.github.com/en/rest/pulls
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from pr_digest.db.models import PRState, ReviewState

from .records import PullRequestRecord, ReviewRecord

UNKNOWN_AUTHOR = "unknown"


class GitHubUser(BaseModel):
    """GitHub user object from API responses."""

    login: str = Field(description="GitHub username")
    id: int = Field(default=0, description="GitHub user ID")
    type: str = Field(default="User", description="User type")


class GitHubFile(BaseModel):
    """GitHub file object from the PR files endpoint."""

    filename: str = Field(description="File path")
    status: str = Field(default="modified", description="File status (added, modified, removed)")
    additions: int = Field(default=0, description="Lines added")
    deletions: int = Field(default=0, description="Lines deleted")


class GitHubReview(BaseModel):
    """GitHub review object from the PR reviews endpoint."""

    id: int = Field(default=0, description="Review ID")
    user: GitHubUser | None = Field(default=None, description="Reviewer (None for deleted accounts)")
    state: str = Field(description="Review state (APPROVED, CHANGES_REQUESTED, COMMENTED, ...)")
    submitted_at: datetime | None = Field(default=None, description="When review was submitted")

    def to_record(
        self,
        repository: str,
        pr_number: int,
        synced_at: datetime,
    ) -> ReviewRecord | None:
        """Convert to a stored review.

        Returns:
            ReviewRecord, or None when the reviewer, submission time or a
            stored state (approved, changes requested, commented) is missing
        """
        if self.user is None or not self.user.login or self.submitted_at is None:
            return None
        try:
            state = ReviewState(self.state.upper())
        except ValueError:
            return None
        return ReviewRecord(
            repository=repository,
            pr_number=pr_number,
            reviewer=self.user.login,
            state=state,
            submitted_at=self.submitted_at,
            synced_at=synced_at,
        )


class GitHubPullRequest(BaseModel):
    """Pull request entry from the listing endpoint.

    Maps to: GET /repos/{owner}/{repo}/pulls

    The listing omits line statistics, so additions, deletions and
    changed_files default to 0 when absent.
    """

    model_config = ConfigDict(extra="ignore")

    number: int = Field(description="PR number")
    state: str = Field(description="PR state (open, closed)")
    title: str = Field(default="", description="PR title")
    user: GitHubUser | None = Field(default=None, description="PR author")

    created_at: datetime = Field(description="When PR was created")
    updated_at: datetime | None = Field(default=None, description="Last update timestamp")
    closed_at: datetime | None = Field(default=None, description="When PR was closed")
    merged_at: datetime | None = Field(default=None, description="When PR was merged")

    additions: int = Field(default=0, description="Lines added")
    deletions: int = Field(default=0, description="Lines deleted")
    changed_files: int = Field(default=0, description="Number of files changed")

    @property
    def effective_state(self) -> PRState:
        """State with merged PRs told apart from ones closed without merge."""
        if self.merged_at is not None:
            return PRState.MERGED
        if self.state == "closed":
            return PRState.CLOSED
        return PRState.OPEN

    @property
    def last_activity(self) -> datetime:
        """Last update time, falling back to creation time."""
        return self.updated_at or self.created_at

    @property
    def author(self) -> str:
        return self.user.login if self.user is not None else UNKNOWN_AUTHOR

    def to_record(
        self,
        repository: str,
        *,
        has_tests: bool,
        synced_at: datetime,
    ) -> PullRequestRecord:
        """Convert to the stored PR record.

        Args:
            repository: Repository identifier (owner/repo)
            has_tests: Result of the test-file heuristic
            synced_at: Write time of this record

        Returns:
            PullRequestRecord carrying every stored field
        """
        return PullRequestRecord(
            repository=repository,
            number=self.number,
            author=self.author,
            title=self.title,
            created_at=self.created_at,
            merged_at=self.merged_at,
            additions=max(self.additions, 0),
            deletions=max(self.deletions, 0),
            changed_files=max(self.changed_files, 0),
            has_tests=has_tests,
            synced_at=synced_at,
        )
