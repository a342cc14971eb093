"""Status, diff and watch commands."""

import threading
from pathlib import Path

import typer

from gitpanel import __version__
from gitpanel.cli.utils import format_entry, open_service
from gitpanel.models import DiffKind

REPO_OPTION = typer.Option(
    Path("."),
    "--repo",
    "-C",
    help="Path inside the repository (defaults to the current directory)",
)
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Show log output")


def main_command(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
    ),
) -> None:
    """gitpanel: changelists and partial commits for git."""
    if version:
        typer.echo(f"gitpanel {__version__}")
        raise typer.Exit(0)
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


def status_command(
    repo: Path = REPO_OPTION,
    as_json: bool = typer.Option(False, "--json", help="Print the status as JSON"),
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Show working tree status grouped with changelist assignments."""
    with open_service(repo, verbose=verbose) as (service, handle):
        status = service.status(handle.repo_id)

    if as_json:
        typer.echo(status.model_dump_json(indent=2))
        return

    head = status.head
    oid = f" ({head.oid_short})" if head.oid_short else " (no commits yet)"
    typer.echo(f"On branch {head.branch_name}{oid}")
    if status.is_clean():
        typer.echo("Nothing to commit, working tree clean")
        return
    counts = status.counts
    typer.echo(
        f"{counts.staged} staged, {counts.unstaged} unstaged, "
        f"{counts.untracked} untracked, {counts.conflicted} conflicted"
    )
    for entry in status.files:
        typer.echo(format_entry(entry))


def diff_command(
    path: str = typer.Argument(..., help="Repository-relative path"),
    staged: bool = typer.Option(False, "--staged", help="Diff the index against HEAD"),
    repo: Path = REPO_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Print the unified diff of one path."""
    kind = DiffKind.STAGED if staged else DiffKind.UNSTAGED
    with open_service(repo, verbose=verbose) as (service, handle):
        text = service.diff(handle.repo_id, path, kind)
    typer.echo(text, nl=False)


def hunks_command(
    path: str = typer.Argument(..., help="Repository-relative path"),
    staged: bool = typer.Option(False, "--staged", help="Hunks of the index against HEAD"),
    repo: Path = REPO_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """List the hunks of one path with their ids."""
    kind = DiffKind.STAGED if staged else DiffKind.UNSTAGED
    with open_service(repo, verbose=verbose) as (service, handle):
        hunks = service.diff_hunks(handle.repo_id, path, kind)

    if not hunks:
        typer.echo(f"No {kind.value} hunks for {path}")
        return
    for hunk in hunks:
        typer.echo(f"{hunk.id}  {hunk.header}")
        for line in hunk.snippet().splitlines():
            typer.echo(f"    {line}")


def watch_command(
    repo: Path = REPO_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Print a line whenever the repository changes (Ctrl+C to stop)."""
    stopped = threading.Event()
    with open_service(repo, watch=True, verbose=verbose) as (service, handle):

        def on_change(repo_id: str) -> None:
            status = service.status(repo_id)
            typer.echo(f"changed: {len(status.files)} file(s) with changes")

        service.add_listener(on_change)
        typer.echo(f"Watching {handle.worktree_path} (Ctrl+C to stop)")
        try:
            while not stopped.wait(0.5):
                pass
        except KeyboardInterrupt:
            typer.echo("Stopped watching.")
