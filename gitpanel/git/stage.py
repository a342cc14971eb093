"""Git index manipulation for single paths.

Contains:
- stage_path: Stage all changes of a path (including deletion)
- unstage_path: Reset a path's index entry to HEAD
- track_path: Mark an untracked file as intent-to-add
- delete_untracked_path: Remove an untracked file from the working tree
- has_head: Check whether HEAD points at a commit
"""

import shutil
from pathlib import Path

from gitpanel.exceptions import GitError
from gitpanel.git.runner import run_git
from gitpanel.models import RepositoryHandle


def has_head(handle: RepositoryHandle) -> bool:
    """Check whether HEAD resolves to a commit (False on an unborn branch)."""
    oid = run_git(["rev-parse", "-q", "--verify", "HEAD"], handle.worktree_path, ok_codes=(0, 1))
    return bool(oid)


def stage_path(handle: RepositoryHandle, path: str) -> None:
    """Stage a path, including deletions."""
    run_git(["add", "-A", "--", path], handle.worktree_path)


def unstage_path(handle: RepositoryHandle, path: str) -> None:
    """Reset the index entry of a path to HEAD."""
    if has_head(handle):
        run_git(["reset", "-q", "HEAD", "--", path], handle.worktree_path)
    else:
        run_git(["rm", "--cached", "-q", "-r", "--", path], handle.worktree_path)


def track_path(handle: RepositoryHandle, path: str) -> None:
    """Add an untracked file to the index as intent-to-add."""
    run_git(["add", "--intent-to-add", "--", path], handle.worktree_path)


def delete_untracked_path(handle: RepositoryHandle, path: str) -> None:
    """Remove an untracked file or directory from the working tree.

    The caller is responsible for checking that the path is untracked.

    Raises:
        GitError: If the path escapes the working tree.
    """
    root = handle.worktree_path
    # Resolve the parent only so an untracked symlink is removed, not its target
    candidate = root / path
    if candidate.name == "..":
        raise GitError(f"Path is outside the working tree: {path}")
    target = candidate.parent.resolve() / candidate.name
    if root != target and root not in target.parents:
        raise GitError(f"Path is outside the working tree: {path}")
    if target == root or target.is_relative_to(handle.git_dir):
        raise GitError(f"Refusing to delete: {path}")
    if target.is_dir() and not target.is_symlink():
        shutil.rmtree(target)
    elif target.exists() or target.is_symlink():
        Path(target).unlink()
