"""Git worktree utilities.

Contains:
- list_worktrees: Parse `git worktree list --porcelain`
- add_worktree, remove_worktree, prune_worktrees: Thin wrappers
"""

from pathlib import Path

from gitpanel.git.runner import run_git
from gitpanel.models import RepositoryHandle, WorktreeInfo


def parse_worktree_list(output: str) -> list[WorktreeInfo]:
    """Parse porcelain worktree list output into WorktreeInfo entries."""
    worktrees: list[WorktreeInfo] = []
    current: dict = {}
    for line in output.split("\n") + [""]:
        if not line:
            if current:
                worktrees.append(WorktreeInfo(**current))
                current = {}
            continue
        key, _, value = line.partition(" ")
        if key == "worktree":
            current["path"] = value
        elif key == "HEAD":
            current["head"] = value
        elif key == "branch":
            current["branch"] = value.removeprefix("refs/heads/")
        elif key == "bare":
            current["is_bare"] = True
        elif key == "detached":
            current["is_detached"] = True
    return worktrees


def list_worktrees(handle: RepositoryHandle) -> list[WorktreeInfo]:
    """List all worktrees attached to the repository."""
    output = run_git(["worktree", "list", "--porcelain"], handle.worktree_path)
    return parse_worktree_list(output)


def add_worktree(
    handle: RepositoryHandle, path: Path, branch: str, new_branch: bool = False
) -> Path:
    """Create a worktree at path checking out (or creating) branch."""
    args = ["worktree", "add"]
    if new_branch:
        args += ["-b", branch, str(path)]
    else:
        args += [str(path), branch]
    run_git(args, handle.worktree_path)
    return Path(path).resolve()


def remove_worktree(handle: RepositoryHandle, path: Path) -> None:
    """Remove a linked worktree (refuses when it has local changes)."""
    run_git(["worktree", "remove", str(path)], handle.worktree_path)


def prune_worktrees(handle: RepositoryHandle) -> None:
    """Prune administrative data of worktrees that no longer exist."""
    run_git(["worktree", "prune"], handle.worktree_path)
