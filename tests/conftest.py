"""Pytest configuration and shared fixtures.

Usage Guide:
- For ORM and repository tests: use db_session
- For GitHub payloads and listing pages: import factories from tests.factories
- For pipeline tests: use mock_client, which serves listing pages from a list
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from pr_digest.config import SyncConfig, get_settings
from pr_digest.db.models import Base
from pr_digest.db.repositories import (
    PullRequestRepository,
    ReviewRepository,
    TrackedRepositoryRepository,
)

# -----------------------------------------------------------------------------
# Test Timeline Constants
#
# A fixed "test epoch" so date comparisons are deterministic across tests.
# -----------------------------------------------------------------------------
JAN_10 = datetime(2024, 1, 10, 9, 0, 0, tzinfo=UTC)  # Old PR opened
JAN_12 = datetime(2024, 1, 12, 16, 0, 0, tzinfo=UTC)  # Old PR merged
JAN_15 = datetime(2024, 1, 15, 10, 0, 0, tzinfo=UTC)  # Last sync
JAN_16 = datetime(2024, 1, 16, 14, 0, 0, tzinfo=UTC)  # Open PR updated after last sync
JAN_20 = datetime(2024, 1, 20, 16, 0, 0, tzinfo=UTC)

JAN_10_ISO = "2024-01-10T09:00:00Z"
JAN_12_ISO = "2024-01-12T16:00:00Z"
JAN_15_ISO = "2024-01-15T10:00:00Z"
JAN_16_ISO = "2024-01-16T14:00:00Z"
JAN_20_ISO = "2024-01-20T16:00:00Z"

REPO = "prebid/prebid-server"


# -----------------------------------------------------------------------------
# Settings
# -----------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Settings are cached per process; tests that touch env vars need a fresh read."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def sync_config() -> SyncConfig:
    """Sync settings with the rate limit pause disabled."""
    return SyncConfig(page_size=100, rate_limit_pause_seconds=0)


# -----------------------------------------------------------------------------
# Database Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
async def test_engine():
    """Create an in-memory SQLite engine for tests.

    Each test gets a fresh database with all tables created.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine):
    """Create an async session with auto-rollback.

    Uncommitted changes are rolled back after each test.
    """
    session_factory = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def pr_repository(db_session) -> PullRequestRepository:
    return PullRequestRepository(db_session)


@pytest.fixture
def review_repository(db_session) -> ReviewRepository:
    return ReviewRepository(db_session)


@pytest.fixture
def tracking_repository(db_session) -> TrackedRepositoryRepository:
    return TrackedRepositoryRepository(db_session, max_errors=5)


# -----------------------------------------------------------------------------
# GitHub Client Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def mock_client():
    """GitHub client double with no files and no reviews by default.

    Tests set ``list_pull_requests_page.side_effect`` to the pages to serve.
    """
    client = MagicMock()
    client.list_pull_requests_page = AsyncMock()
    client.get_pull_request_files = AsyncMock(return_value=[])
    client.get_pull_request_reviews = AsyncMock(return_value=[])
    return client
