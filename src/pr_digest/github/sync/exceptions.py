"""Exceptions raised by the sync orchestrator."""


class SyncError(Exception):
    """Base exception for sync orchestration errors."""

    pass


class RepositoryNotTrackedError(SyncError):
    """Raised when syncing a repository that is not tracked."""

    def __init__(self, repository: str) -> None:
        super().__init__(f"Repository {repository} is not being tracked")
        self.repository = repository


class RepositoryInactiveError(SyncError):
    """Raised when syncing a tracked repository that is disabled."""

    def __init__(self, repository: str) -> None:
        super().__init__(f"Repository {repository} is not active")
        self.repository = repository
