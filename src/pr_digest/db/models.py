"""SQLAlchemy ORM models for pr-digest."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from sqlalchemy import (
    DateTime,
    ForeignKeyConstraint,
    Index,
    String,
    Text,
    TypeDecorator,
)
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import JSON


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class UTCDateTime(TypeDecorator[datetime]):
    """DateTime stored as naive UTC, returned as timezone-aware UTC.

    SQLite has no timezone support, so aware values are converted to UTC
    before binding and the tzinfo is restored on load.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value.replace(tzinfo=None)

    def process_result_value(self, value: Any, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        return value.replace(tzinfo=UTC)


class PRState(str, Enum):
    """Pull request state as seen in the listing feed."""

    OPEN = "open"
    MERGED = "merged"
    CLOSED = "closed"  # closed without merge


class ReviewState(str, Enum):
    """Review states kept in the mirror."""

    APPROVED = "APPROVED"
    CHANGES_REQUESTED = "CHANGES_REQUESTED"
    COMMENTED = "COMMENTED"


# ------------------------------------------------------------------------------
# PullRequest model
# ------------------------------------------------------------------------------
class PullRequest(Base):
    """Mirrored pull request, one row per (repository, number)."""

    __tablename__ = "pull_requests"

    repository: Mapped[str] = mapped_column(String(200), primary_key=True)
    number: Mapped[int] = mapped_column(primary_key=True)

    author: Mapped[str] = mapped_column(String(100))
    title: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime)
    merged_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    additions: Mapped[int] = mapped_column(default=0)
    deletions: Mapped[int] = mapped_column(default=0)
    changed_files: Mapped[int] = mapped_column(default=0)
    has_tests: Mapped[bool] = mapped_column(default=False)

    synced_at: Mapped[datetime] = mapped_column(UTCDateTime)

    __table_args__ = (
        Index("ix_pull_requests_author", "author"),
        Index("ix_pull_requests_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<PullRequest {self.repository}#{self.number}>"


# ------------------------------------------------------------------------------
# Review model
# ------------------------------------------------------------------------------
class Review(Base):
    """Latest review state of one reviewer on one pull request."""

    __tablename__ = "reviews"

    repository: Mapped[str] = mapped_column(String(200), primary_key=True)
    pr_number: Mapped[int] = mapped_column(primary_key=True)
    reviewer: Mapped[str] = mapped_column(String(100), primary_key=True)

    state: Mapped[ReviewState] = mapped_column()
    submitted_at: Mapped[datetime] = mapped_column(UTCDateTime)
    synced_at: Mapped[datetime] = mapped_column(UTCDateTime)

    __table_args__ = (
        ForeignKeyConstraint(
            ["repository", "pr_number"],
            ["pull_requests.repository", "pull_requests.number"],
            ondelete="CASCADE",
        ),
        Index("ix_reviews_reviewer", "reviewer"),
    )

    def __repr__(self) -> str:
        return f"<Review {self.repository}#{self.pr_number} by {self.reviewer}: {self.state}>"


# ------------------------------------------------------------------------------
# TrackedRepository model
# ------------------------------------------------------------------------------
class TrackedRepository(Base):
    """Repository registered in the workspace for syncing."""

    __tablename__ = "tracked_repositories"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), unique=True)  # "owner/repo"
    added_at: Mapped[datetime] = mapped_column(UTCDateTime, default=lambda: datetime.now(UTC))
    sync_since: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    active: Mapped[bool] = mapped_column(default=True)
    last_sync_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    # Most recent sync errors: [{"timestamp": iso, "error": str, "type": str}]
    sync_errors: Mapped[list[dict[str, str]]] = mapped_column(JSON, default=list)

    def __repr__(self) -> str:
        status = "active" if self.active else "inactive"
        return f"<TrackedRepository {self.name} ({status})>"
