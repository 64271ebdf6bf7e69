"""Sync commands for pr-digest."""

import json
from collections.abc import Callable
from typing import Any

import typer

from pr_digest.config import get_settings
from pr_digest.db import PullRequestRepository, ReviewRepository, TrackedRepositoryRepository
from pr_digest.github import GitHubClient, OutputFormat
from pr_digest.github.sync import (
    CommitManager,
    PRSyncPipeline,
    SyncOptions,
    SyncOrchestrator,
    SyncPhase,
    SyncProgress,
)

from .common import (
    ForceOption,
    OutputFormatOption,
    RepoArgument,
    ReposListOption,
    SinceOption,
    cli_session,
    console,
    err_console,
    parse_date,
    run_async_command,
    validate_repo,
    validate_repo_list,
)

app = typer.Typer(help="Sync PR and review data from GitHub")


def _build_orchestrator(client: GitHubClient, session: Any) -> SyncOrchestrator:
    settings = get_settings()
    commit_manager = CommitManager(session)
    pipeline = PRSyncPipeline(
        client=client,
        pr_repository=PullRequestRepository(session),
        review_repository=ReviewRepository(session),
        config=settings.sync,
        commit_manager=commit_manager,
    )
    return SyncOrchestrator(
        pipeline=pipeline,
        tracking_repository=TrackedRepositoryRepository(
            session, max_errors=settings.sync.max_tracked_errors
        ),
        commit_manager=commit_manager,
    )


async def _sync_one(repo: str, options: SyncOptions) -> dict[str, Any]:
    async with GitHubClient() as client, cli_session() as session:
        result = await _build_orchestrator(client, session).sync_one(repo, options)
        return result.to_dict()


async def _sync_all(repos: list[str] | None, options: SyncOptions) -> dict[str, Any]:
    async with GitHubClient() as client, cli_session() as session:
        result = await _build_orchestrator(client, session).sync_all(repos, options)
        return result.to_dict()


def _progress_printer(status: Any) -> Callable[[SyncProgress], None]:
    """Progress callback updating a rich status line."""

    def _on_progress(progress: SyncProgress) -> None:
        if progress.phase == SyncPhase.FETCHING:
            status.update(f"[dim]{progress.repository}: fetching PRs...[/dim]")
        elif progress.phase == SyncPhase.PROCESSING:
            pages = (
                f"{progress.current_page}/~{progress.estimated_total_pages}"
                if progress.estimated_total_pages
                else str(progress.current_page)
            )
            status.update(
                f"[dim]{progress.repository}: page {pages}, "
                f"{progress.processed_prs} PRs stored, "
                f"rate limit {progress.rate_limit_remaining}[/dim]"
            )

    return _on_progress


def _run_with_status(
    runner: Callable[[SyncOptions], Any],
    options: SyncOptions,
    show_status: bool,
) -> dict[str, Any]:
    """Run a sync, showing a live status line on an interactive stderr."""
    if not (show_status and err_console.is_terminal):
        result: dict[str, Any] = run_async_command(runner(options), error_prefix="Sync failed")
        return result

    with err_console.status("[dim]Starting sync...[/dim]") as status:
        options.on_progress = _progress_printer(status)
        result = run_async_command(runner(options), error_prefix="Sync failed")
    return result


def _print_result(result: dict[str, Any], *, indent: str = "  ") -> None:
    console.print(f"{indent}[green]New PRs:[/green]            {result.get('new_prs', 0)}")
    console.print(f"{indent}[blue]Updated PRs:[/blue]        {result.get('updated_prs', 0)}")
    console.print(f"{indent}[green]Reviews stored:[/green]     {result.get('new_reviews', 0)}")
    console.print(
        f"{indent}[dim]Skipped (closed):[/dim]   {result.get('skipped_immutable', 0)}"
    )
    console.print(
        f"{indent}[dim]Skipped (unchanged):[/dim] {result.get('skipped_unchanged', 0)}"
    )
    console.print(f"{indent}Pages: {result.get('pages_fetched', 0)}")
    console.print(f"{indent}Duration: {result.get('duration_seconds', 0):.1f}s")

    errors = result.get("errors", [])
    if errors:
        console.print(f"{indent}[red]Errors:[/red] {len(errors)}")
        for err in errors:
            number = err.get("pr_number", 0)
            label = f"PR #{number}" if number else "Repository"
            console.print(f"{indent}  {label}: {err.get('error', 'Unknown error')}")


@app.command("repo")
def sync_repository(
    repo: RepoArgument,
    force: ForceOption = False,
    since: SinceOption = None,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Sync one tracked repository.

    Only PRs that are new, or still open and updated since the last sync,
    are fetched again.

    Examples:
        digest sync repo prebid/prebid-server
        digest sync repo prebid/prebid-server --force --since 2024-10-01
        digest sync repo prebid/prebid-server --format json
    """
    validate_repo(repo)
    options = SyncOptions(force=force, since=parse_date(since))

    if output_format == OutputFormat.TEXT:
        mode = "full (forced)" if force else "incremental"
        console.print(f"[dim]Syncing {repo} ({mode})...[/dim]")

    result = _run_with_status(
        lambda opts: _sync_one(repo, opts),
        options,
        show_status=output_format == OutputFormat.TEXT,
    )

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(result))
    else:
        status = "[bold]Sync Complete[/bold]" if result.get("success") else "[red]Sync Failed[/red]"
        console.print(f"{status} {repo}")
        _print_result(result)

    if not result.get("success"):
        raise typer.Exit(1)


@app.command("all")
def sync_all_repositories(
    repos: ReposListOption = None,
    force: ForceOption = False,
    since: SinceOption = None,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Sync all active tracked repositories, one at a time.

    A failing repository is reported and the remaining ones still sync.

    Examples:
        digest sync all
        digest sync all --repos prebid/prebid-server,prebid/Prebid.js
        digest sync all --format json
    """
    repo_list = validate_repo_list(repos)
    options = SyncOptions(force=force, since=parse_date(since))

    if output_format == OutputFormat.TEXT:
        target = ", ".join(repo_list) if repo_list else "all active tracked repositories"
        console.print(f"[dim]Syncing {target}...[/dim]")

    result = _run_with_status(
        lambda opts: _sync_all(repo_list, opts),
        options,
        show_status=output_format == OutputFormat.TEXT,
    )

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(result))
    else:
        summary = result.get("summary", {})
        console.print("[bold]Multi-Repository Sync Complete[/bold]")
        console.print(f"  [bold]Repositories:[/bold] {summary.get('total_repos', 0)}")
        console.print(f"    [green]Succeeded:[/green] {summary.get('successful_syncs', 0)}")
        failed = summary.get("failed_syncs", 0)
        if failed:
            console.print(f"    [red]Failed:[/red]    {failed}")

        for outcome in result.get("repositories", []):
            console.print()
            marker = "[green]ok[/green]" if outcome.get("success") else "[red]failed[/red]"
            console.print(f"[bold]{outcome.get('repository')}[/bold] {marker}")
            if outcome.get("result"):
                _print_result(outcome["result"], indent="    ")
            elif outcome.get("error"):
                console.print(f"    [red]Error:[/red] {outcome['error']}")

    if result.get("summary", {}).get("failed_syncs", 0):
        raise typer.Exit(1)
