"""Schemas for records written to the local mirror.

A record carries every field of its row; storing a record overwrites the
previous row with the same identity.
"""

from datetime import datetime
from typing import Any

from pydantic import Field

from pr_digest.db.models import ReviewState

from .base import SchemaBase


class PullRequestRecord(SchemaBase):
    """Pull request row keyed by (repository, number)."""

    repository: str = Field(min_length=3, max_length=200, description="owner/repo")
    number: int = Field(gt=0, description="PR number")

    author: str = Field(min_length=1, max_length=100, description="Author login")
    title: str = Field(description="PR title")
    created_at: datetime = Field(description="When the PR was opened")
    merged_at: datetime | None = Field(default=None, description="Merge time, None if unmerged")

    additions: int = Field(default=0, ge=0, description="Lines added")
    deletions: int = Field(default=0, ge=0, description="Lines deleted")
    changed_files: int = Field(default=0, ge=0, description="Files changed")
    has_tests: bool = Field(default=False, description="Whether any changed file looks like a test")

    synced_at: datetime = Field(description="When this record was written")

    def key(self) -> dict[str, Any]:
        """Primary key columns of the row."""
        return {"repository": self.repository, "number": self.number}

    def values(self) -> dict[str, Any]:
        """Non-key columns of the row."""
        return self.model_dump(exclude={"repository", "number"})


class ReviewRecord(SchemaBase):
    """Latest review of one reviewer on a PR, keyed by (repository, pr_number, reviewer)."""

    repository: str = Field(min_length=3, max_length=200)
    pr_number: int = Field(gt=0)
    reviewer: str = Field(min_length=1, max_length=100)

    state: ReviewState
    submitted_at: datetime
    synced_at: datetime

    def key(self) -> dict[str, Any]:
        """Primary key columns of the row."""
        return {
            "repository": self.repository,
            "pr_number": self.pr_number,
            "reviewer": self.reviewer,
        }

    def values(self) -> dict[str, Any]:
        """Non-key columns of the row."""
        return self.model_dump(exclude={"repository", "pr_number", "reviewer"})
