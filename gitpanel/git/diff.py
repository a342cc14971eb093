"""Git diff utilities.

Contains:
- get_diff: Get the unified diff of one path against a baseline
- diff_cache_key: Build a content-identity key for a diff
- is_untracked: Check whether a path is untracked
"""

import os
import stat

from gitpanel.git.runner import run_git
from gitpanel.models import DiffKind, RepositoryHandle

# Fixed prefixes so user settings like diff.noprefix never change the format
_DIFF_FLAGS = ["--no-color", "--no-ext-diff", "--src-prefix=a/", "--dst-prefix=b/"]

_MISSING = "-"


def is_untracked(handle: RepositoryHandle, path: str) -> bool:
    """Check whether a path exists in the working tree but not in the index.

    Args:
        handle: The repository.
        path: Repository-relative path.

    Returns:
        True if the path is an untracked file.
    """
    if not (handle.worktree_path / path).exists():
        return False
    listed = run_git(["ls-files", "--", path], handle.worktree_path)
    return not listed


def get_diff(handle: RepositoryHandle, path: str, kind: DiffKind) -> str:
    """Get the unified diff for one path.

    Untracked files are diffed against /dev/null so their content can be
    split into hunks like any other change.

    Args:
        handle: The repository.
        path: Repository-relative path.
        kind: UNSTAGED (working tree vs index) or STAGED (index vs HEAD).

    Returns:
        Raw unified diff text (empty when there is no difference).
    """
    cwd = handle.worktree_path
    if kind == DiffKind.STAGED:
        return run_git(["diff", "--cached", *_DIFF_FLAGS, "--", path], cwd, strip=False)
    if is_untracked(handle, path):
        # --no-index exits with 1 when the files differ
        return run_git(
            ["diff", "--no-index", *_DIFF_FLAGS, "--", "/dev/null", path],
            cwd,
            ok_codes=(0, 1),
            strip=False,
        )
    return run_git(["diff", *_DIFF_FLAGS, "--", path], cwd, strip=False)


def _index_entry(handle: RepositoryHandle, path: str) -> str:
    """Return 'mode:oid' of the index entry for a path, or a missing marker."""
    output = run_git(["ls-files", "-s", "--", path], handle.worktree_path)
    if not output:
        return _MISSING
    # Format: <mode> <oid> <stage>\t<path>; conflicted paths have several lines
    meta = output.split("\n")[0].split("\t", 1)[0].split(" ")
    return f"{meta[0]}:{meta[1]}"


def _head_blob(handle: RepositoryHandle, path: str) -> str:
    """Return 'mode:oid' of the HEAD entry for a path, or a missing marker."""
    # An unborn HEAD makes ls-tree exit with 128
    output = run_git(["ls-tree", "HEAD", "--", path], handle.worktree_path, ok_codes=(0, 128))
    if not output:
        return _MISSING
    # Format: <mode> <type> <oid>\t<path>
    meta = output.split("\n")[0].split("\t", 1)[0].split(" ")
    return f"{meta[0]}:{meta[2]}"


def _worktree_blob(handle: RepositoryHandle, path: str) -> str:
    """Return 'mode:oid' of the working tree file, as git would record it."""
    full_path = handle.worktree_path / path
    try:
        info = os.lstat(full_path)
    except FileNotFoundError:
        return _MISSING
    if stat.S_ISLNK(info.st_mode):
        return f"120000:{os.readlink(full_path)}"
    if not stat.S_ISREG(info.st_mode):
        return _MISSING
    mode = "100755" if info.st_mode & stat.S_IXUSR else "100644"
    return f"{mode}:{run_git(['hash-object', '--', path], handle.worktree_path)}"


def diff_cache_key(handle: RepositoryHandle, path: str, kind: DiffKind) -> str:
    """Build a cache key from the object ids of both sides of a diff.

    The key changes whenever either side's content changes, so a cached
    diff under it never goes stale.

    Args:
        handle: The repository.
        path: Repository-relative path.
        kind: Diff baseline.

    Returns:
        Cache key string.
    """
    if kind == DiffKind.STAGED:
        old, new = _head_blob(handle, path), _index_entry(handle, path)
    else:
        old, new = _index_entry(handle, path), _worktree_blob(handle, path)
    return f"{handle.repo_id}:{kind.value}:{path}:{old}:{new}"
