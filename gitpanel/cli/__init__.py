"""CLI entry point for gitpanel.

This module provides the main CLI application that combines all commands
and subcommands into a single unified interface.
"""

import typer

from gitpanel.cli.changelist import changelist_app
from gitpanel.cli.commit import commit_app
from gitpanel.cli.main import (
    diff_command,
    hunks_command,
    main_command,
    status_command,
    watch_command,
)

# Main application
app = typer.Typer(
    name="gitpanel",
    help="gitpanel: changelists and partial commits for git",
    add_completion=False,
)

# Add subcommand groups
app.add_typer(changelist_app, name="changelist")
app.add_typer(commit_app, name="commit")

# Add individual commands
app.command("status")(status_command)
app.command("diff")(diff_command)
app.command("hunks")(hunks_command)
app.command("watch")(watch_command)

# Set the main callback for default behavior (includes --version flag)
app.callback(invoke_without_command=True)(main_command)


__all__ = [
    "app",
    "changelist_app",
    "commit_app",
    "diff_command",
    "hunks_command",
    "main_command",
    "status_command",
    "watch_command",
]
