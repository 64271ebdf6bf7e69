"""PR Sync module - incremental GitHub to database synchronization.

Services:
- PRSyncPipeline: Incremental sync of one repository (list → classify → fetch → store)
- SyncOrchestrator: Sync of tracked repositories, one at a time

Support:
- SyncStateResolver, classify: What the mirror holds and what to re-fetch
- SyncProgressReporter: Progress events for callbacks
- CommitManager: Commit boundaries per page and per repository
"""

from .commit_manager import CommitManager
from .enums import OutputFormat, SyncDecision
from .exceptions import RepositoryInactiveError, RepositoryNotTrackedError, SyncError
from .heuristics import has_test_files, is_test_path
from .orchestrator import SyncOrchestrator
from .pipeline import PRSyncPipeline, SyncOptions
from .progress import (
    ProgressCallback,
    SyncPhase,
    SyncProgress,
    SyncProgressReporter,
    estimate_total_pages,
)
from .results import REPOSITORY_ERROR, MultiRepoSyncResult, RepoSyncOutcome, SyncResult
from .state import SyncState, SyncStateResolver, classify, classify_pull_request

__all__ = [
    # Services
    "PRSyncPipeline",
    "SyncOptions",
    "SyncOrchestrator",
    # State and classification
    "SyncDecision",
    "SyncState",
    "SyncStateResolver",
    "classify",
    "classify_pull_request",
    "has_test_files",
    "is_test_path",
    # Progress
    "ProgressCallback",
    "SyncPhase",
    "SyncProgress",
    "SyncProgressReporter",
    "estimate_total_pages",
    # Results
    "REPOSITORY_ERROR",
    "MultiRepoSyncResult",
    "RepoSyncOutcome",
    "SyncResult",
    # Errors
    "RepositoryInactiveError",
    "RepositoryNotTrackedError",
    "SyncError",
    # Misc
    "CommitManager",
    "OutputFormat",
]
