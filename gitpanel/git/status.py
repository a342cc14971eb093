"""Git status utilities.

Contains:
- get_status: Query the working tree status of a repository
- parse_porcelain_v2: Parse `git status --porcelain=v2 --branch -z` output
- get_head: Get the current HEAD descriptor
"""

from gitpanel.git.runner import run_git
from gitpanel.models import (
    RepoCounts,
    RepoHead,
    RepoStatus,
    RepositoryHandle,
    StatusEntry,
    StatusKind,
)

DETACHED_BRANCH_NAME = "HEAD (detached)"


def _status_kind(xy: str) -> StatusKind:
    """Map a porcelain v2 XY field to a StatusKind.

    X is the index (staged) column, Y the worktree column; '.' means unchanged.
    """
    staged = xy[0] != "."
    unstaged = xy[1] != "."
    if staged and unstaged:
        return StatusKind.BOTH
    if staged:
        return StatusKind.STAGED
    return StatusKind.UNSTAGED


def parse_porcelain_v2(output: str) -> tuple[RepoHead, list[StatusEntry]]:
    """Parse NUL-separated porcelain v2 status output.

    Args:
        output: Raw output of `git status --porcelain=v2 --branch -z`.

    Returns:
        Tuple of (head descriptor, ordered status entries).
    """
    branch_name = DETACHED_BRANCH_NAME
    oid_short = ""
    entries: list[StatusEntry] = []

    records = output.split("\0")
    i = 0
    while i < len(records):
        record = records[i]
        i += 1
        if not record:
            continue

        if record.startswith("# branch.oid "):
            oid = record[len("# branch.oid "):]
            oid_short = "" if oid == "(initial)" else oid[:7]
        elif record.startswith("# branch.head "):
            head = record[len("# branch.head "):]
            branch_name = DETACHED_BRANCH_NAME if head == "(detached)" else head
        elif record.startswith("#"):
            continue
        elif record.startswith("1 "):
            parts = record.split(" ", 8)
            entries.append(StatusEntry(path=parts[8], status=_status_kind(parts[1])))
        elif record.startswith("2 "):
            # Renamed or copied: the original path is the next record
            parts = record.split(" ", 9)
            old_path = records[i] if i < len(records) else None
            i += 1
            entries.append(
                StatusEntry(path=parts[9], status=_status_kind(parts[1]), old_path=old_path or None)
            )
        elif record.startswith("u "):
            parts = record.split(" ", 10)
            entries.append(StatusEntry(path=parts[10], status=StatusKind.CONFLICTED))
        elif record.startswith("? "):
            entries.append(StatusEntry(path=record[2:], status=StatusKind.UNTRACKED))
        # '!' (ignored) entries are not requested and skipped if present

    return RepoHead(branch_name=branch_name, oid_short=oid_short), entries


def get_status(handle: RepositoryHandle) -> RepoStatus:
    """Get the working tree status of a repository.

    Args:
        handle: The repository to query.

    Returns:
        RepoStatus with head descriptor, counts and ordered entries.
    """
    output = run_git(
        ["status", "--porcelain=v2", "--branch", "-z", "--untracked-files=all"],
        handle.worktree_path,
        strip=False,
    )
    head, entries = parse_porcelain_v2(output)
    return RepoStatus(
        repo_id=handle.repo_id,
        head=head,
        counts=RepoCounts.from_entries(entries),
        files=entries,
    )


def get_head(handle: RepositoryHandle) -> RepoHead:
    """Get the current HEAD descriptor without a full status scan.

    Args:
        handle: The repository to query.

    Returns:
        RepoHead with branch name and short oid (empty when unborn).
    """
    branch = run_git(["branch", "--show-current"], handle.worktree_path)
    oid = run_git(["rev-parse", "--verify", "-q", "HEAD"], handle.worktree_path, ok_codes=(0, 1))
    return RepoHead(branch_name=branch or DETACHED_BRANCH_NAME, oid_short=oid[:7])
