"""CLI commands for changelist management."""

from pathlib import Path
from typing import Optional

import typer

from gitpanel.cli.main import REPO_OPTION, VERBOSE_OPTION
from gitpanel.cli.utils import open_service
from gitpanel.exceptions import NoHunksError
from gitpanel.models import DiffKind

# Subcommand group for changelists
changelist_app = typer.Typer(
    name="changelist",
    help="Group pending changes into named changelists",
    add_completion=False,
)


@changelist_app.command("list")
def changelist_list(
    repo: Path = REPO_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Show changelists and their assigned paths."""
    with open_service(repo, verbose=verbose) as (service, handle):
        state = service.cl_list(handle.repo_id)

    for changelist in state.lists:
        marker = "*" if changelist.id == state.active_id else " "
        typer.echo(f"{marker} {changelist.id}  {changelist.name}")
        for path, changelist_id in sorted(state.assignments.items()):
            if changelist_id == changelist.id:
                typer.echo(f"      {path}")
        for path, hunk_set in sorted(state.hunk_assignments.items()):
            if hunk_set.changelist_id == changelist.id:
                typer.echo(f"      {path} ({len(hunk_set.hunks)} hunk(s))")


@changelist_app.command("create")
def changelist_create(
    name: str = typer.Argument(..., help="Changelist name"),
    repo: Path = REPO_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Create a changelist and print its id."""
    with open_service(repo, verbose=verbose) as (service, handle):
        changelist = service.cl_create(handle.repo_id, name)
    typer.echo(changelist.id)


@changelist_app.command("rename")
def changelist_rename(
    changelist_id: str = typer.Argument(..., help="Changelist id"),
    name: str = typer.Argument(..., help="New name"),
    repo: Path = REPO_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Rename a changelist."""
    with open_service(repo, verbose=verbose) as (service, handle):
        service.cl_rename(handle.repo_id, changelist_id, name)
    typer.echo(f"Renamed {changelist_id} to {name}")


@changelist_app.command("delete")
def changelist_delete(
    changelist_id: str = typer.Argument(..., help="Changelist id"),
    repo: Path = REPO_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Delete a changelist; its files fall back to the default changelist."""
    with open_service(repo, verbose=verbose) as (service, handle):
        service.cl_delete(handle.repo_id, changelist_id)
    typer.echo(f"Deleted {changelist_id}")


@changelist_app.command("activate")
def changelist_activate(
    changelist_id: str = typer.Argument(..., help="Changelist id"),
    repo: Path = REPO_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Make a changelist the active one."""
    with open_service(repo, verbose=verbose) as (service, handle):
        service.cl_set_active(handle.repo_id, changelist_id)
    typer.echo(f"Active changelist: {changelist_id}")


@changelist_app.command("assign")
def changelist_assign(
    changelist_id: str = typer.Argument(..., help="Changelist id"),
    paths: list[str] = typer.Argument(..., help="Paths to assign"),
    repo: Path = REPO_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Assign whole files to a changelist."""
    with open_service(repo, verbose=verbose) as (service, handle):
        service.cl_assign_files(handle.repo_id, changelist_id, paths)
    typer.echo(f"Assigned {len(paths)} file(s) to {changelist_id}")


@changelist_app.command("unassign")
def changelist_unassign(
    paths: list[str] = typer.Argument(..., help="Paths to unassign"),
    repo: Path = REPO_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Remove whole-file assignments."""
    with open_service(repo, verbose=verbose) as (service, handle):
        service.cl_unassign_files(handle.repo_id, paths)
    typer.echo(f"Unassigned {len(paths)} file(s)")


@changelist_app.command("assign-hunks")
def changelist_assign_hunks(
    changelist_id: str = typer.Argument(..., help="Changelist id"),
    path: str = typer.Argument(..., help="Repository-relative path"),
    hunk_ids: Optional[list[str]] = typer.Argument(
        None, help="Hunk ids from 'gitpanel hunks' (all hunks when omitted)"
    ),
    staged: bool = typer.Option(False, "--staged", help="Pick hunks of the index against HEAD"),
    repo: Path = REPO_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Assign hunks of one file to a changelist."""
    kind = DiffKind.STAGED if staged else DiffKind.UNSTAGED
    with open_service(repo, verbose=verbose) as (service, handle):
        hunks = service.diff_hunks(handle.repo_id, path, kind)
        if hunk_ids:
            by_id = {hunk.id: hunk for hunk in hunks}
            unknown = [hunk_id for hunk_id in hunk_ids if hunk_id not in by_id]
            if unknown:
                typer.echo(f"Unknown hunk id: {unknown[0]}", err=True)
                raise typer.Exit(1)
            hunks = [by_id[hunk_id] for hunk_id in hunk_ids]
        if not hunks:
            raise NoHunksError(f"No {kind.value} hunks for {path}")
        service.cl_assign_hunks(handle.repo_id, changelist_id, path, hunks)
    typer.echo(f"Assigned {len(hunks)} hunk(s) of {path} to {changelist_id}")


@changelist_app.command("unassign-hunks")
def changelist_unassign_hunks(
    path: str = typer.Argument(..., help="Repository-relative path"),
    hunk_ids: list[str] = typer.Argument(..., help="Hunk ids to unassign"),
    repo: Path = REPO_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Remove hunk assignments of one file."""
    with open_service(repo, verbose=verbose) as (service, handle):
        service.cl_unassign_hunks(handle.repo_id, path, hunk_ids)
    typer.echo(f"Unassigned {len(hunk_ids)} hunk(s) of {path}")
