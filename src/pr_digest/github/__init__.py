"""GitHub API client module.

This module provides:
- GitHubClient: Async GitHub API client for PR listing, files and reviews
- RateLimitInfo: Rate limit telemetry from response headers
- PR Sync: PRSyncPipeline, SyncOrchestrator
"""

from .client import GitHubClient, PullRequestPage
from .exceptions import (
    GitHubAuthenticationError,
    GitHubClientError,
    GitHubNetworkError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubRetryableError,
)
from .rate_limit import RateLimitInfo
from .sync import (
    MultiRepoSyncResult,
    OutputFormat,
    PRSyncPipeline,
    SyncOptions,
    SyncOrchestrator,
    SyncResult,
)

__all__ = [
    # Client
    "GitHubClient",
    "PullRequestPage",
    "RateLimitInfo",
    # Exceptions
    "GitHubAuthenticationError",
    "GitHubClientError",
    "GitHubNetworkError",
    "GitHubNotFoundError",
    "GitHubRateLimitError",
    "GitHubRetryableError",
    # PR Sync
    "MultiRepoSyncResult",
    "OutputFormat",
    "PRSyncPipeline",
    "SyncOptions",
    "SyncOrchestrator",
    "SyncResult",
]
