"""Database module for pr-digest."""

from pr_digest.db.engine import (
    create_tables,
    dispose_engine,
    get_engine,
    get_session,
    get_session_factory,
)
from pr_digest.db.models import (
    Base,
    PRState,
    PullRequest,
    Review,
    ReviewState,
    TrackedRepository,
)
from pr_digest.db.repositories import (
    BaseRepository,
    PullRequestRepository,
    ReviewRepository,
    TrackedRepositoryRepository,
)

__all__ = [
    # Models
    "Base",
    "PRState",
    "PullRequest",
    "Review",
    "ReviewState",
    "TrackedRepository",
    # Engine
    "create_tables",
    "dispose_engine",
    "get_engine",
    "get_session",
    "get_session_factory",
    # Repositories
    "BaseRepository",
    "PullRequestRepository",
    "ReviewRepository",
    "TrackedRepositoryRepository",
]
