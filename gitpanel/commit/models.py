"""Commit data models for gitpanel.

Contains:
- CommitOptions: Options of a commit request
- CommitPreview: Validation result of a changelist before committing
- CommitResult: Outcome of a created commit
"""

from pydantic import BaseModel

from gitpanel.hunks.models import HunkAssignment
from gitpanel.models import RepoCounts, RepoHead, StatusEntry


class CommitOptions(BaseModel):
    """Options for commit_execute and commit_staged."""

    amend: bool = False


class CommitPreview(BaseModel):
    """What committing a changelist would do, with any blocking issues."""

    changelist_id: str
    files: list[StatusEntry]
    stats: RepoCounts
    warnings: list[str] = []
    hunk_files: list[str] = []
    invalid_hunks: list[HunkAssignment] = []


class CommitResult(BaseModel):
    """A commit that was created."""

    head: RepoHead
    commit_id: str
    committed_paths: list[str]
