"""Fixtures for CLI tests."""

import pytest

from pr_digest.logging import reset_logging


@pytest.fixture(autouse=True)
def _reset_logging_state():
    """Each invocation configures loguru against the runner's streams; drop those sinks after."""
    yield
    reset_logging()
