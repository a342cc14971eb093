"""Git access layer for gitpanel.

This package wraps the git executable:
- runner: run_git, open_repository, resolve_git_dir
- status: get_status, get_head, parse_porcelain_v2
- diff: get_diff, diff_cache_key, is_untracked
- stage: stage_path, unstage_path, track_path, delete_untracked_path, has_head
- branch: list_branches, checkout_branch, create_branch, fetch, pull, push
- worktree: list_worktrees, add_worktree, remove_worktree, prune_worktrees
- plumbing: private-index primitives for commit assembly
"""

# Runner utilities
from gitpanel.git.runner import (
    open_repository,
    resolve_git_dir,
    run_git,
)

# Status utilities
from gitpanel.git.status import (
    DETACHED_BRANCH_NAME,
    get_head,
    get_status,
    parse_porcelain_v2,
)

# Diff utilities
from gitpanel.git.diff import (
    diff_cache_key,
    get_diff,
    is_untracked,
)

# Index utilities
from gitpanel.git.stage import (
    delete_untracked_path,
    has_head,
    stage_path,
    track_path,
    unstage_path,
)

# Branch and remote utilities
from gitpanel.git.branch import (
    checkout_branch,
    create_branch,
    fetch,
    list_branches,
    pull,
    push,
)

# Worktree utilities
from gitpanel.git.worktree import (
    add_worktree,
    list_worktrees,
    parse_worktree_list,
    prune_worktrees,
    remove_worktree,
)


__all__ = [
    # Runner
    "open_repository",
    "resolve_git_dir",
    "run_git",
    # Status
    "DETACHED_BRANCH_NAME",
    "get_head",
    "get_status",
    "parse_porcelain_v2",
    # Diff
    "diff_cache_key",
    "get_diff",
    "is_untracked",
    # Index
    "delete_untracked_path",
    "has_head",
    "stage_path",
    "track_path",
    "unstage_path",
    # Branch
    "checkout_branch",
    "create_branch",
    "fetch",
    "list_branches",
    "pull",
    "push",
    # Worktree
    "add_worktree",
    "list_worktrees",
    "parse_worktree_list",
    "prune_worktrees",
    "remove_worktree",
]
