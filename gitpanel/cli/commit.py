"""CLI commands for committing changelists."""

from pathlib import Path
from typing import Optional

import typer

from gitpanel.cli.main import REPO_OPTION, VERBOSE_OPTION
from gitpanel.cli.utils import format_entry, open_service
from gitpanel.commit import CommitOptions, CommitResult

# Subcommand group for commits
commit_app = typer.Typer(
    name="commit",
    help="Preview and create commits from changelists",
    add_completion=False,
)

MESSAGE_OPTION = typer.Option(..., "--message", "-m", help="Commit message")
AMEND_OPTION = typer.Option(False, "--amend", help="Replace the HEAD commit")


def _echo_result(result: CommitResult) -> None:
    typer.echo(f"[{result.head.branch_name} {result.commit_id[:7]}] committed")
    for path in result.committed_paths:
        typer.echo(f"  {path}")


@commit_app.command("preview")
def commit_preview(
    changelist_id: Optional[str] = typer.Argument(
        None, help="Changelist id (defaults to the active changelist)"
    ),
    repo: Path = REPO_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Show what committing a changelist would include."""
    with open_service(repo, verbose=verbose) as (service, handle):
        if changelist_id is None:
            changelist_id = service.cl_list(handle.repo_id).active_id
        preview = service.commit_prepare(handle.repo_id, changelist_id)

    stats = preview.stats
    typer.echo(f"Changelist {preview.changelist_id}:")
    typer.echo(
        f"{stats.staged} staged, {stats.unstaged} unstaged, {stats.untracked} untracked"
    )
    for entry in preview.files:
        typer.echo(format_entry(entry))
    for path in preview.hunk_files:
        typer.echo(f"  hunks      {path}")
    for warning in preview.warnings:
        typer.echo(f"Warning: {warning}", err=True)
    for hunk in preview.invalid_hunks:
        typer.echo(f"  invalid hunk {hunk.id}", err=True)


@commit_app.command("run")
def commit_run(
    changelist_id: Optional[str] = typer.Argument(
        None, help="Changelist id (defaults to the active changelist)"
    ),
    message: str = MESSAGE_OPTION,
    amend: bool = AMEND_OPTION,
    repo: Path = REPO_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Commit a changelist without touching other changes."""
    with open_service(repo, verbose=verbose) as (service, handle):
        if changelist_id is None:
            changelist_id = service.cl_list(handle.repo_id).active_id
        result = service.commit_execute(
            handle.repo_id, changelist_id, message, CommitOptions(amend=amend)
        )
    _echo_result(result)


@commit_app.command("staged")
def commit_staged(
    paths: list[str] = typer.Argument(..., help="Staged paths to commit"),
    message: str = MESSAGE_OPTION,
    amend: bool = AMEND_OPTION,
    repo: Path = REPO_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Commit the staged content of selected paths only."""
    with open_service(repo, verbose=verbose) as (service, handle):
        result = service.commit_staged(
            handle.repo_id, paths, message, CommitOptions(amend=amend)
        )
    _echo_result(result)
