"""Commands managing the tracked repositories."""

import json
from typing import Any

import typer
from rich.table import Table

from pr_digest.config import get_settings
from pr_digest.db import TrackedRepositoryRepository
from pr_digest.db.models import TrackedRepository
from pr_digest.github.sync.enums import OutputFormat

from .common import (
    OutputFormatOption,
    RepoArgument,
    SinceOption,
    cli_session,
    console,
    parse_date,
    run_async_command,
    validate_repo,
)

app = typer.Typer(help="Manage tracked repositories")


def _to_dict(tracked: TrackedRepository) -> dict[str, Any]:
    return {
        "name": tracked.name,
        "active": tracked.active,
        "added_at": tracked.added_at.isoformat() if tracked.added_at else None,
        "sync_since": tracked.sync_since.isoformat() if tracked.sync_since else None,
        "last_sync_at": tracked.last_sync_at.isoformat() if tracked.last_sync_at else None,
        "errors": list(tracked.sync_errors or []),
    }


def _tracking(session: Any) -> TrackedRepositoryRepository:
    return TrackedRepositoryRepository(
        session, max_errors=get_settings().sync.max_tracked_errors
    )


@app.command("add")
def add_repository(repo: RepoArgument, since: SinceOption = None) -> None:
    """Start tracking a repository.

    Examples:
        digest repo add prebid/prebid-server
        digest repo add prebid/Prebid.js --since 2024-01-01
    """
    validate_repo(repo)
    since_dt = parse_date(since)

    async def _add() -> bool:
        async with cli_session() as session:
            _, created = await _tracking(session).add_repository(repo, sync_since=since_dt)
            return created

    created = run_async_command(_add())
    if created:
        console.print(f"[green]Tracking[/green] {repo}")
    else:
        console.print(f"[yellow]Already tracked:[/yellow] {repo}")


@app.command("remove")
def remove_repository(repo: RepoArgument) -> None:
    """Stop tracking a repository. Stored PRs and reviews are kept."""
    validate_repo(repo)

    async def _remove() -> bool:
        async with cli_session() as session:
            return await _tracking(session).remove(repo)

    if not run_async_command(_remove()):
        console.print(f"[red]Error:[/red] Repository {repo} is not being tracked")
        raise typer.Exit(1)
    console.print(f"[green]Removed[/green] {repo}")


def _set_active(repo: str, active: bool) -> None:
    validate_repo(repo)

    async def _update() -> bool:
        async with cli_session() as session:
            return await _tracking(session).set_active(repo, active) is not None

    if not run_async_command(_update()):
        console.print(f"[red]Error:[/red] Repository {repo} is not being tracked")
        raise typer.Exit(1)
    console.print(f"{'Enabled' if active else 'Disabled'} {repo}")


@app.command("enable")
def enable_repository(repo: RepoArgument) -> None:
    """Include a tracked repository in syncs."""
    _set_active(repo, True)


@app.command("disable")
def disable_repository(repo: RepoArgument) -> None:
    """Exclude a tracked repository from syncs without forgetting it."""
    _set_active(repo, False)


@app.command("list")
def list_repositories(output_format: OutputFormatOption = OutputFormat.TEXT) -> None:
    """List tracked repositories and their last sync."""

    async def _list() -> list[dict[str, Any]]:
        async with cli_session() as session:
            return [_to_dict(t) for t in await _tracking(session).get_all()]

    repos = run_async_command(_list())

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(repos))
        return

    if not repos:
        console.print("[dim]No repositories tracked. Add one with 'digest repo add owner/name'.[/dim]")
        return

    table = Table(title="Tracked repositories")
    table.add_column("Repository", style="cyan")
    table.add_column("Active")
    table.add_column("Last sync")
    table.add_column("Errors", justify="right")
    for r in repos:
        table.add_row(
            r["name"],
            "yes" if r["active"] else "no",
            r["last_sync_at"] or "never",
            str(len(r["errors"])),
        )
    console.print(table)
