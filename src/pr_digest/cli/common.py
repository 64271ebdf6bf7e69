"""Common CLI option types and helpers.

Provides:
- `run_async_command`: Run a coroutine from a sync command with unified error handling
- Annotated option aliases shared by several commands
- Repository and date validation helpers
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, Coroutine
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Annotated, TypeVar

import typer
from rich.console import Console
from sqlalchemy.ext.asyncio import AsyncSession

from pr_digest.db import create_tables, dispose_engine, get_session
from pr_digest.github.sync.enums import OutputFormat
from pr_digest.schemas import parse_repo_string

# Shared console instances: results on stdout, status and errors on stderr
console = Console()
err_console = Console(stderr=True)

T = TypeVar("T")


def run_async_command(
    coro: Coroutine[object, object, T],
    *,
    error_prefix: str = "Error",
) -> T:
    """Execute async code from a synchronous CLI command.

    Catches exceptions, prints a one-line error and exits with code 1.

    Args:
        coro: Async coroutine to execute
        error_prefix: Prefix for error messages

    Returns:
        Result from the coroutine

    Raises:
        typer.Exit: Re-raised from deliberate exits, or raised with code 1 on error
    """
    try:
        return asyncio.run(coro)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]{error_prefix}:[/red] {e}")
        raise typer.Exit(1) from None


# Typer requires function calls as default arguments, which triggers B008.
# Using Annotated aliases keeps the option declarations in one place.

OutputFormatOption = Annotated[
    OutputFormat,
    typer.Option(
        "--format",
        "-f",
        help="Output format",
    ),
]

ForceOption = Annotated[
    bool,
    typer.Option(
        "--force",
        help="Fetch every PR again, ignoring what is already stored",
    ),
]

SinceOption = Annotated[
    str | None,
    typer.Option(
        "--since",
        help="Only PRs updated after this date on a first or forced sync "
        "(YYYY-MM-DD or ISO format)",
    ),
]

RepoArgument = Annotated[
    str,
    typer.Argument(
        help="Repository in owner/name format (e.g., prebid/prebid-server)",
    ),
]

ReposListOption = Annotated[
    str | None,
    typer.Option(
        "--repos",
        "-r",
        help="Comma-separated list of repos (owner/repo). "
        "If not specified, uses all active tracked repositories.",
    ),
]


# -----------------------------------------------------------------------------
# Validation Helpers
# -----------------------------------------------------------------------------


def validate_repo(repo: str) -> tuple[str, str]:
    """Parse and validate a single repository string.

    Raises:
        typer.Exit(1): If format is invalid
    """
    try:
        return parse_repo_string(repo)
    except ValueError:
        console.print("[red]Error:[/red] Repository must be in owner/name format")
        raise typer.Exit(1) from None


def validate_repo_list(repos_str: str | None) -> list[str] | None:
    """Parse and validate a comma-separated repository list.

    Returns:
        List of repo strings, or None if input was None

    Raises:
        typer.Exit(1): If any repo format is invalid
    """
    if repos_str is None:
        return None

    repo_list = [r.strip() for r in repos_str.split(",") if r.strip()]
    for repo in repo_list:
        try:
            parse_repo_string(repo)
        except ValueError:
            console.print(f"[red]Error:[/red] Repository '{repo}' must be in owner/name format")
            raise typer.Exit(1) from None
    return repo_list


_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S%z",
)


def parse_date(date_str: str | None) -> datetime | None:
    """Parse a CLI date into an aware UTC datetime.

    Raises:
        typer.Exit(1): If the date matches none of the accepted formats
    """
    if date_str is None:
        return None

    for fmt in _DATE_FORMATS:
        try:
            dt = datetime.strptime(date_str, fmt)
        except ValueError:
            continue
        if dt.tzinfo is None:
            return dt.replace(tzinfo=UTC)
        return dt.astimezone(UTC)

    console.print(
        f"[red]Error:[/red] Invalid date format: {date_str}. "
        "Use YYYY-MM-DD or YYYY-MM-DDTHH:MM:SS format."
    )
    raise typer.Exit(1)


@asynccontextmanager
async def cli_session() -> AsyncGenerator[AsyncSession, None]:
    """Session for one CLI command: ensures the schema exists, disposes the engine after.

    Each command runs its own event loop, so connections must not outlive it.
    """
    try:
        await create_tables()
        async with get_session() as session:
            yield session
    finally:
        await dispose_engine()
