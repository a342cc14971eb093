"""Hunk parsing for gitpanel.

This package provides:
- models: DiffHunk, DiffPayload, HunkAssignment, format_hunk_id
- parser: parse_diff_hunks, fnv1a_64, filter_hunks_for_path, normalize_repo_path
- patch: build_hunk_patch
"""

# Models
from gitpanel.hunks.models import (
    DiffHunk,
    DiffPayload,
    HunkAssignment,
    format_hunk_id,
)

# Parser
from gitpanel.hunks.parser import (
    filter_hunks_for_path,
    fnv1a_64,
    normalize_repo_path,
    parse_diff_hunks,
)

# Patch builder
from gitpanel.hunks.patch import (
    build_hunk_patch,
)


__all__ = [
    # Models
    "DiffHunk",
    "DiffPayload",
    "HunkAssignment",
    "format_hunk_id",
    # Parser
    "filter_hunks_for_path",
    "fnv1a_64",
    "normalize_repo_path",
    "parse_diff_hunks",
    # Patch
    "build_hunk_patch",
]
