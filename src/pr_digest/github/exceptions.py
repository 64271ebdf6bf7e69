"""GitHub client exceptions."""

from datetime import datetime


class GitHubClientError(Exception):
    """Base exception for GitHub client errors."""

    pass


class GitHubAuthenticationError(GitHubClientError):
    """Raised when no token is configured or GitHub rejects it (401)."""

    pass


class GitHubRetryableError(GitHubClientError):
    """Base class for transient errors a later sync may get past."""

    pass


class GitHubRateLimitError(GitHubRetryableError):
    """Raised when the rate limit is exhausted (403 with zero remaining)."""

    def __init__(self, message: str, reset_at: datetime | None = None) -> None:
        super().__init__(message)
        self.reset_at = reset_at


class GitHubNetworkError(GitHubRetryableError):
    """Raised when a request fails at the transport level or times out."""

    pass


class GitHubNotFoundError(GitHubClientError):
    """Raised when a resource is not found (404)."""

    pass
