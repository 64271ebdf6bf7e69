"""Detect whether a PR touches tests from its changed file paths."""

import re
from collections.abc import Iterable

TEST_PATH_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\.test\.",
        r"\.spec\.",
        r"(^|/)tests?(/|$)",
        r"__tests__",
        r"\.stories\.",
        r"cypress/",
        r"playwright/",
        r"jest\.config",
        r"vitest\.config",
    )
)


def is_test_path(path: str) -> bool:
    """Whether a single path looks like a test, story or test-tool config."""
    return any(pattern.search(path) for pattern in TEST_PATH_PATTERNS)


def has_test_files(paths: Iterable[str]) -> bool:
    """Whether any of the changed paths looks like a test."""
    return any(is_test_path(path) for path in paths)
