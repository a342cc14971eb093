"""Shared utility functions for CLI commands."""

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import typer

from gitpanel.config import load_settings
from gitpanel.exceptions import GitPanelError
from gitpanel.log import configure_logging
from gitpanel.models import RepositoryHandle, StatusEntry
from gitpanel.service import GitPanelService


@contextmanager
def open_service(
    repo: Path, watch: bool = False, verbose: bool = False
) -> Iterator[tuple[GitPanelService, RepositoryHandle]]:
    """Open the repository at repo with a fresh service.

    Errors raised inside the block are printed to stderr and turned into
    exit code 1.

    Args:
        repo: Any path inside the working tree.
        watch: Start the repository watcher.
        verbose: Log at the configured level instead of warnings only.

    Yields:
        Tuple of (service, handle).
    """
    service = None
    try:
        settings = load_settings()
        configure_logging(settings.log_level if verbose else "warning", settings.log_format)
        settings = settings.model_copy(update={"watch_enabled": watch})
        service = GitPanelService(settings)
        handle = service.open_repo(repo)
        yield service, handle
    except GitPanelError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    finally:
        if service is not None:
            service.shutdown()


def format_entry(entry: StatusEntry) -> str:
    """Render one status entry as a single line."""
    path = f"{entry.old_path} -> {entry.path}" if entry.old_path else entry.path
    changelist = entry.changelist_name or "-"
    if entry.changelist_partial:
        changelist += " (partial)"
    return f"  {entry.status.value:<10} {path}  [{changelist}]"
