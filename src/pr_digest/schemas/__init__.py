"""Pydantic schemas for pr-digest.

This module provides GitHub payload parsing and stored-record models.
"""

from .base import SchemaBase
from .github_api import (
    UNKNOWN_AUTHOR,
    GitHubFile,
    GitHubPullRequest,
    GitHubReview,
    GitHubUser,
)
from .records import PullRequestRecord, ReviewRecord
from .repository import parse_repo_string

__all__ = [
    # GitHub API
    "UNKNOWN_AUTHOR",
    "GitHubFile",
    "GitHubPullRequest",
    "GitHubReview",
    "GitHubUser",
    # Records
    "PullRequestRecord",
    "ReviewRecord",
    # Base
    "SchemaBase",
    # Repository
    "parse_repo_string",
]
