"""Commit preview for gitpanel.

Contains:
- build_commit_preview: Validate a changelist against live status and hunks
- UNSTAGED_WITH_STAGED_WARNING, STALE_HUNKS_WARNING, MIXED_STATUS_WARNING: Warning texts
"""

from typing import Callable

from gitpanel.changelist.models import ChangelistState
from gitpanel.commit.models import CommitPreview
from gitpanel.exceptions import ConflictedFilesError, EmptyChangelistError
from gitpanel.hunks.models import DiffHunk, HunkAssignment
from gitpanel.models import DiffKind, RepoCounts, StatusEntry, StatusKind

UNSTAGED_WITH_STAGED_WARNING = (
    "Unstaged hunks cannot be committed while staged changes exist in the same file."
)
STALE_HUNKS_WARNING = "Some hunks no longer match the file. Reselect required."
MIXED_STATUS_WARNING = (
    "Some files have both staged and unstaged changes; "
    "the commit will use the working tree version."
)

FetchHunks = Callable[[str, DiffKind], list[DiffHunk]]


def build_commit_preview(
    changelist_id: str,
    status_files: list[StatusEntry],
    state: ChangelistState,
    fetch_hunks: FetchHunks,
) -> CommitPreview:
    """Build the preview of committing one changelist.

    Args:
        changelist_id: Changelist to commit.
        status_files: Status entries already reconciled with `state`.
        state: Changelist state the entries were reconciled against.
        fetch_hunks: Returns the live hunks of (path, kind).

    Returns:
        CommitPreview. Hunk mismatches are reported, not raised.

    Raises:
        EmptyChangelistError: If the changelist has no files and no hunks.
        ConflictedFilesError: If any member file is conflicted.
    """
    files = [entry for entry in status_files if entry.changelist_id == changelist_id]
    hunk_sets = {
        path: hunk_set
        for path, hunk_set in state.hunk_assignments.items()
        if hunk_set.changelist_id == changelist_id
    }

    if not files and not hunk_sets:
        raise EmptyChangelistError("Changelist has no files.")
    if any(entry.status == StatusKind.CONFLICTED for entry in files):
        raise ConflictedFilesError("Changelist contains conflicted files.")

    stats = RepoCounts.from_entries(files)
    file_status = {entry.path: entry.status for entry in files}
    warnings: list[str] = []
    invalid_hunks: list[HunkAssignment] = []
    live_hunks: dict[tuple[str, DiffKind], list[DiffHunk]] = {}

    def add_warning(text: str) -> None:
        if text not in warnings:
            warnings.append(text)

    for path, hunk_set in hunk_sets.items():
        has_unstaged = any(h.kind == DiffKind.UNSTAGED for h in hunk_set.hunks)
        if has_unstaged and file_status.get(path) in (StatusKind.STAGED, StatusKind.BOTH):
            invalid_hunks.extend(hunk_set.hunks)
            add_warning(UNSTAGED_WITH_STAGED_WARNING)
            continue

        stale = []
        for hunk in hunk_set.hunks:
            key = (path, hunk.kind)
            if key not in live_hunks:
                live_hunks[key] = fetch_hunks(path, hunk.kind)
            if not any(live.matches(hunk) for live in live_hunks[key]):
                stale.append(hunk)
        if stale:
            invalid_hunks.extend(stale)
            add_warning(STALE_HUNKS_WARNING)

    if any(entry.status == StatusKind.BOTH for entry in files):
        add_warning(MIXED_STATUS_WARNING)

    return CommitPreview(
        changelist_id=changelist_id,
        files=files,
        stats=stats,
        warnings=warnings,
        hunk_files=list(hunk_sets),
        invalid_hunks=invalid_hunks,
    )
