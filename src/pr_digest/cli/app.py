"""Main CLI application for pr-digest."""

from pathlib import Path
from typing import Annotated

import typer

from pr_digest import __version__
from pr_digest.cli import repo as repo_cmd
from pr_digest.cli import sync as sync_cmd
from pr_digest.cli.common import console, run_async_command
from pr_digest.config import get_settings
from pr_digest.db import create_tables, dispose_engine
from pr_digest.logging import setup_logging

app = typer.Typer(
    name="digest",
    help="Incremental mirror of GitHub pull requests and reviews.",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"digest version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-error output (WARNING level).",
        ),
    ] = False,
) -> None:
    """pr-digest - Mirror GitHub PR and review data into SQLite."""
    settings = get_settings()
    log_config = settings.logging

    setup_logging(
        level=settings.log_level,
        verbose=verbose,
        quiet=quiet,
        log_file=Path(log_config.log_file) if log_config.log_file else None,
        rotation=log_config.rotation,
        retention=log_config.retention,
        serialize=log_config.serialize,
    )


@app.command()
def init() -> None:
    """Create the database tables."""

    async def _init() -> None:
        try:
            await create_tables()
        finally:
            await dispose_engine()

    run_async_command(_init(), error_prefix="Init failed")
    console.print(f"[green]Database ready:[/green] {get_settings().database_url}")


app.add_typer(repo_cmd.app, name="repo")
app.add_typer(sync_cmd.app, name="sync")


if __name__ == "__main__":
    app()
