"""Low-level git plumbing used by commit assembly.

Every function that touches an index takes an explicit index file, which is
passed to git through GIT_INDEX_FILE. The repository's real index is only
read, by ls_files_stage, never written here.

Contains:
- head_oid, head_ref, head_parents: HEAD inspection
- read_tree, update_index_paths, update_index_info, force_remove: Index seeding and updates
- apply_cached: Apply a patch to an index without touching the working tree
- write_tree, commit_tree, update_ref: Object and ref creation
- ls_files_stage: Read real index entries for paths
"""

from pathlib import Path
from typing import Optional

from gitpanel.git.runner import run_git
from gitpanel.models import RepositoryHandle


def _index_env(index_file: Path) -> dict[str, str]:
    return {"GIT_INDEX_FILE": str(index_file)}


def head_oid(handle: RepositoryHandle) -> Optional[str]:
    """Return the full oid of HEAD, or None on an unborn branch."""
    oid = run_git(["rev-parse", "-q", "--verify", "HEAD"], handle.worktree_path, ok_codes=(0, 1))
    return oid or None


def head_ref(handle: RepositoryHandle) -> str:
    """Return the ref HEAD points to (e.g. refs/heads/main), or 'HEAD' if detached."""
    ref = run_git(["symbolic-ref", "-q", "HEAD"], handle.worktree_path, ok_codes=(0, 1))
    return ref or "HEAD"


def head_parents(handle: RepositoryHandle) -> list[str]:
    """Return the parent oids of the HEAD commit."""
    output = run_git(["rev-list", "--parents", "-n", "1", "HEAD"], handle.worktree_path)
    return output.split()[1:]


def read_tree(handle: RepositoryHandle, index_file: Path, treeish: Optional[str]) -> None:
    """Seed an index from a tree, or make it empty when treeish is None."""
    args = ["read-tree", treeish] if treeish else ["read-tree", "--empty"]
    run_git(args, handle.worktree_path, env=_index_env(index_file))


def update_index_paths(handle: RepositoryHandle, index_file: Path, paths: list[str]) -> None:
    """Record the working tree state of paths, including deletions."""
    if not paths:
        return
    run_git(
        ["update-index", "--add", "--remove", "--", *paths],
        handle.worktree_path,
        env=_index_env(index_file),
    )


def force_remove(handle: RepositoryHandle, index_file: Path, paths: list[str]) -> None:
    """Remove paths from an index regardless of the working tree."""
    if not paths:
        return
    run_git(
        ["update-index", "--force-remove", "--", *paths],
        handle.worktree_path,
        env=_index_env(index_file),
    )


def ls_files_stage(handle: RepositoryHandle, paths: list[str]) -> str:
    """Read NUL-terminated `ls-files -s` records of the real index for paths."""
    if not paths:
        return ""
    return run_git(["ls-files", "-s", "-z", "--", *paths], handle.worktree_path, strip=False)


def update_index_info(handle: RepositoryHandle, index_file: Path, info: str) -> None:
    """Feed NUL-terminated `ls-files -s` records into an index."""
    if not info.strip("\0"):
        return
    run_git(
        ["update-index", "-z", "--index-info"],
        handle.worktree_path,
        env=_index_env(index_file),
        input=info,
    )


def apply_cached(handle: RepositoryHandle, index_file: Path, patch_file: Path) -> None:
    """Apply a patch to an index only (the working tree is left alone)."""
    run_git(
        ["apply", "--cached", "--whitespace=nowarn", str(patch_file)],
        handle.worktree_path,
        env=_index_env(index_file),
    )


def write_tree(handle: RepositoryHandle, index_file: Path) -> str:
    """Write a tree object from an index and return its oid."""
    return run_git(["write-tree"], handle.worktree_path, env=_index_env(index_file))


def commit_tree(handle: RepositoryHandle, tree: str, parents: list[str], message: str) -> str:
    """Create a commit object and return its oid."""
    args = ["commit-tree", tree]
    for parent in parents:
        args += ["-p", parent]
    args += ["-F", "-"]
    return run_git(args, handle.worktree_path, input=message)


def update_ref(
    handle: RepositoryHandle, ref: str, new_oid: str, old_oid: Optional[str], reflog: str
) -> None:
    """Move a ref only if it still points at old_oid.

    An old_oid of None requires that the ref does not exist yet.
    """
    run_git(
        ["update-ref", "-m", reflog, ref, new_oid, old_oid or ""],
        handle.worktree_path,
    )
