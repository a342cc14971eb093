"""Commit assembly for gitpanel.

This package provides:
- models: CommitOptions, CommitPreview, CommitResult
- preview: build_commit_preview and its warning texts
- engine: private_index, commit_changelist, commit_staged_paths, sync_index_paths
"""

from gitpanel.commit.engine import (
    commit_changelist,
    commit_staged_paths,
    private_index,
    sync_index_paths,
)
from gitpanel.commit.models import CommitOptions, CommitPreview, CommitResult
from gitpanel.commit.preview import (
    MIXED_STATUS_WARNING,
    STALE_HUNKS_WARNING,
    UNSTAGED_WITH_STAGED_WARNING,
    build_commit_preview,
)


__all__ = [
    # Models
    "CommitOptions",
    "CommitPreview",
    "CommitResult",
    # Preview
    "MIXED_STATUS_WARNING",
    "STALE_HUNKS_WARNING",
    "UNSTAGED_WITH_STAGED_WARNING",
    "build_commit_preview",
    # Engine
    "commit_changelist",
    "commit_staged_paths",
    "private_index",
    "sync_index_paths",
]
