"""Repository identifier parsing."""

import re

_REPO_PATTERN = re.compile(r"^([^/\s]+)/([^/\s]+)$")


def parse_repo_string(repo: str) -> tuple[str, str]:
    """Split an ``owner/repo`` identifier.

    Args:
        repo: Repository identifier, e.g. "prebid/prebid-server"

    Returns:
        Tuple of (owner, name)

    Raises:
        ValueError: If the identifier is not exactly two non-empty segments
    """
    match = _REPO_PATTERN.match(repo.strip())
    if match is None:
        raise ValueError(f"Invalid repository format: {repo!r} (expected owner/repo)")
    return match.group(1), match.group(2)
