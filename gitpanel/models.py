"""Repository data models for gitpanel.

Contains:
- RepositoryHandle: Identity of one opened working tree
- StatusKind, DiffKind: Status and diff baseline enums
- StatusEntry, RepoHead, RepoCounts, RepoStatus: Working tree status
- BranchList, CheckoutTarget, FetchResult, WorktreeInfo: Pass-through results
"""

import hashlib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel


def repo_id_for_path(worktree_path: Path) -> str:
    """Derive a stable repo id from the canonical worktree path.

    Args:
        worktree_path: Canonical (resolved) worktree path.

    Returns:
        First 16 hex characters of the SHA256 of the path.
    """
    return hashlib.sha256(str(worktree_path).encode()).hexdigest()[:16]


@dataclass(frozen=True)
class RepositoryHandle:
    """One opened working tree."""

    repo_id: str
    name: str
    worktree_path: Path
    git_dir: Path  # Resolved metadata directory (differs for linked worktrees)

    @classmethod
    def create(cls, worktree_path: Path, git_dir: Path) -> "RepositoryHandle":
        worktree_path = worktree_path.resolve()
        return cls(
            repo_id=repo_id_for_path(worktree_path),
            name=worktree_path.name or "Unknown",
            worktree_path=worktree_path,
            git_dir=git_dir.resolve(),
        )


class StatusKind(str, Enum):
    """Status of one changed path."""

    STAGED = "staged"
    UNSTAGED = "unstaged"
    BOTH = "both"
    UNTRACKED = "untracked"
    CONFLICTED = "conflicted"


class DiffKind(str, Enum):
    """Baseline a diff is computed against."""

    UNSTAGED = "unstaged"  # working tree vs index
    STAGED = "staged"  # index vs HEAD


class StatusEntry(BaseModel):
    """One changed path in the working tree."""

    path: str
    status: StatusKind
    old_path: Optional[str] = None  # Set for renames and copies
    # Filled in by changelist reconciliation
    changelist_id: Optional[str] = None
    changelist_name: Optional[str] = None
    changelist_partial: Optional[bool] = None


class RepoHead(BaseModel):
    """Current HEAD descriptor."""

    branch_name: str
    oid_short: str = ""


class RepoCounts(BaseModel):
    """Aggregate counts by status kind."""

    staged: int = 0
    unstaged: int = 0
    untracked: int = 0
    conflicted: int = 0

    @classmethod
    def from_entries(cls, entries: list[StatusEntry]) -> "RepoCounts":
        counts = cls()
        for entry in entries:
            if entry.status == StatusKind.STAGED:
                counts.staged += 1
            elif entry.status == StatusKind.UNSTAGED:
                counts.unstaged += 1
            elif entry.status == StatusKind.BOTH:
                counts.staged += 1
                counts.unstaged += 1
            elif entry.status == StatusKind.UNTRACKED:
                counts.untracked += 1
            elif entry.status == StatusKind.CONFLICTED:
                counts.conflicted += 1
        return counts


class RepoStatus(BaseModel):
    """Working tree status of one repository."""

    repo_id: str
    head: RepoHead
    counts: RepoCounts
    files: list[StatusEntry] = []

    def is_clean(self) -> bool:
        return not self.files


class BranchList(BaseModel):
    """Local and remote branches."""

    current: str
    locals: list[str] = []
    remotes: list[str] = []


class CheckoutTargetKind(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"


class CheckoutTarget(BaseModel):
    """Branch to check out."""

    kind: CheckoutTargetKind = CheckoutTargetKind.LOCAL
    name: str


class FetchResult(BaseModel):
    """Outcome of fetch, pull or push."""

    remote: str
    updated: bool


class WorktreeInfo(BaseModel):
    """One entry of `git worktree list --porcelain`."""

    path: str
    head: Optional[str] = None
    branch: Optional[str] = None
    is_bare: bool = False
    is_detached: bool = False
