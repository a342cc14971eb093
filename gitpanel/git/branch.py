"""Git branch and remote utilities.

Contains:
- list_branches: List local and remote branches
- checkout_branch: Switch branches, refusing on a dirty working tree
- create_branch: Create a new local branch
- fetch, pull, push: Remote synchronization
"""

from typing import Optional

from gitpanel.exceptions import DirtyWorkingTreeError, GitError
from gitpanel.git.runner import run_git
from gitpanel.git.status import DETACHED_BRANCH_NAME, get_head, get_status
from gitpanel.models import (
    BranchList,
    CheckoutTarget,
    CheckoutTargetKind,
    RepoHead,
    RepositoryHandle,
    StatusKind,
)


def _refs(handle: RepositoryHandle, prefix: str) -> list[str]:
    output = run_git(["for-each-ref", "--format=%(refname:short)", prefix], handle.worktree_path)
    if not output:
        return []
    return output.split("\n")


def _ref_snapshot(handle: RepositoryHandle, prefix: str) -> str:
    return run_git(
        ["for-each-ref", "--format=%(objectname) %(refname)", prefix], handle.worktree_path
    )


def list_branches(handle: RepositoryHandle) -> BranchList:
    """List local and remote branches.

    Returns:
        BranchList with the current branch name ('HEAD (detached)' if detached).
    """
    current = run_git(["branch", "--show-current"], handle.worktree_path)
    remotes = [ref for ref in _refs(handle, "refs/remotes") if not ref.endswith("/HEAD")]
    return BranchList(
        current=current or DETACHED_BRANCH_NAME,
        locals=_refs(handle, "refs/heads"),
        remotes=remotes,
    )


def checkout_branch(handle: RepositoryHandle, target: CheckoutTarget) -> RepoHead:
    """Check out a local branch or create a tracking branch for a remote one.

    Raises:
        DirtyWorkingTreeError: If tracked files have uncommitted changes.
        GitError: If git refuses the checkout.
    """
    status = get_status(handle)
    dirty = [entry.path for entry in status.files if entry.status != StatusKind.UNTRACKED]
    if dirty:
        raise DirtyWorkingTreeError(
            "Working tree has uncommitted changes. "
            "Commit or discard them before switching branches."
        )

    if target.kind == CheckoutTargetKind.LOCAL:
        run_git(["checkout", target.name], handle.worktree_path)
    else:
        local_name = target.name.split("/", 1)[1] if "/" in target.name else target.name
        if local_name in _refs(handle, "refs/heads"):
            run_git(["checkout", local_name], handle.worktree_path)
        else:
            run_git(["checkout", "--track", target.name], handle.worktree_path)
    return get_head(handle)


def create_branch(handle: RepositoryHandle, name: str, start: Optional[str] = None) -> str:
    """Create a local branch without switching to it.

    Raises:
        GitError: If the name is invalid or the branch exists.
    """
    name = name.strip()
    run_git(["check-ref-format", "--branch", name], handle.worktree_path)
    args = ["branch", name]
    if start:
        args.append(start)
    run_git(args, handle.worktree_path)
    return name


def fetch(handle: RepositoryHandle, remote: Optional[str] = None) -> bool:
    """Fetch from a remote (origin by default).

    Returns:
        True if any remote-tracking ref changed.
    """
    before = _ref_snapshot(handle, "refs/remotes")
    run_git(["fetch", "--prune", remote or "origin"], handle.worktree_path)
    return _ref_snapshot(handle, "refs/remotes") != before


def pull(handle: RepositoryHandle, remote: Optional[str] = None) -> bool:
    """Fast-forward pull from the tracking branch (or the given remote).

    Returns:
        True if HEAD moved.
    """
    before = get_head(handle).oid_short
    args = ["pull", "--ff-only"]
    if remote:
        args.append(remote)
    run_git(args, handle.worktree_path)
    return get_head(handle).oid_short != before


def push(handle: RepositoryHandle, remote: Optional[str] = None) -> bool:
    """Push the current branch.

    Returns:
        True if any remote ref was updated.
    """
    args = ["push", "--porcelain"]
    if remote:
        args.append(remote)
    output = run_git(args, handle.worktree_path, strip=False)
    for line in output.split("\n"):
        # Ref lines: <flag>\t<from>:<to>\t<summary>; '=' is up to date, '!' rejected
        if "\t" in line and line[0] in " +-*":
            return True
        if line.startswith("!"):
            raise GitError(f"Push rejected: {line}")
    return False
