"""Repository pattern implementation for database access.

This module provides repository classes that encapsulate all database
access logic, providing a clean abstraction over SQLAlchemy models.
"""

from .base import BaseRepository
from .pull_request import PullRequestRepository, StoredSyncMarks
from .review import ReviewRepository
from .tracked_repository import SyncErrorType, TrackedRepositoryRepository

__all__ = [
    "BaseRepository",
    "PullRequestRepository",
    "ReviewRepository",
    "StoredSyncMarks",
    "SyncErrorType",
    "TrackedRepositoryRepository",
]
