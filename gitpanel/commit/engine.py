"""Commit assembly for gitpanel.

Commits are built in a private index file, never in the repository's
index, so a failed or partial assembly leaves nothing behind. The branch
ref is moved with a compare-and-swap on its previous value.

Contains:
- private_index: Context manager yielding a scratch index path
- commit_changelist: Commit whole files plus selected hunks
- commit_staged_paths: Commit the real index entries of selected paths
- sync_index_paths: Reset real index entries of committed paths to the new HEAD
"""

import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from gitpanel.changelist.store import STATE_DIR_NAME
from gitpanel.commit.models import CommitOptions, CommitResult
from gitpanel.exceptions import PreconditionError, StaleHunksError
from gitpanel.git.diff import get_diff
from gitpanel.git.plumbing import (
    apply_cached,
    commit_tree,
    force_remove,
    head_oid,
    head_parents,
    head_ref,
    ls_files_stage,
    read_tree,
    update_index_info,
    update_index_paths,
    update_ref,
    write_tree,
)
from gitpanel.git.runner import run_git
from gitpanel.git.status import get_head
from gitpanel.hunks import build_hunk_patch, filter_hunks_for_path, parse_diff_hunks
from gitpanel.hunks.models import DiffHunk, HunkAssignment
from gitpanel.log import get_logger
from gitpanel.models import DiffKind, RepositoryHandle, StatusEntry

logger = get_logger(__name__)


@contextmanager
def private_index(handle: RepositoryHandle) -> Iterator[Path]:
    """Yield the path of a scratch index file under the git dir.

    The directory holding it is removed on exit, whatever happens.
    """
    base = handle.git_dir / STATE_DIR_NAME
    base.mkdir(parents=True, exist_ok=True)
    tmp_dir = Path(tempfile.mkdtemp(prefix="commit-", dir=base))
    try:
        yield tmp_dir / "index"
    finally:
        shutil.rmtree(tmp_dir, ignore_errors=True)


def _check_message(message: str) -> None:
    if not message.strip():
        raise PreconditionError("Commit message cannot be empty.")


def _resolve_parents(
    handle: RepositoryHandle, old_oid: Optional[str], options: CommitOptions
) -> list[str]:
    if options.amend:
        if old_oid is None:
            raise PreconditionError("Nothing to amend: the branch has no commits yet.")
        return head_parents(handle)
    return [old_oid] if old_oid else []


def _reflog_message(message: str, options: CommitOptions) -> str:
    subject = message.strip().splitlines()[0]
    return f"commit (amend): {subject}" if options.amend else f"commit: {subject}"


def _live_hunks(handle: RepositoryHandle, path: str, kind: DiffKind) -> list[DiffHunk]:
    hunks = parse_diff_hunks(get_diff(handle, path, kind), path, kind)
    return filter_hunks_for_path(hunks, path) or hunks


def _hunk_patches(
    handle: RepositoryHandle, hunk_files: dict[str, list[HunkAssignment]]
) -> list[str]:
    """Re-validate assigned hunks against the live diff and build their patches.

    Staged-kind patches come first: they apply against HEAD content, while
    unstaged-kind hunks of the same file are relative to the index.

    Raises:
        StaleHunksError: If any assigned hunk has no live counterpart.
    """
    patches: dict[DiffKind, list[str]] = {DiffKind.STAGED: [], DiffKind.UNSTAGED: []}
    for path, assigned in hunk_files.items():
        for kind in (DiffKind.STAGED, DiffKind.UNSTAGED):
            wanted = [h for h in assigned if h.kind == kind]
            if not wanted:
                continue
            live = _live_hunks(handle, path, kind)
            selected = []
            for hunk in wanted:
                match = next((h for h in live if h.matches(hunk)), None)
                if match is None:
                    raise StaleHunksError(
                        f"Hunks of {path} no longer match the file. Reselect required."
                    )
                selected.append(match)
            patches[kind].append(build_hunk_patch(selected[0].file_header, selected))
    return patches[DiffKind.STAGED] + patches[DiffKind.UNSTAGED]


def _finish_commit(
    handle: RepositoryHandle,
    tree: str,
    old_oid: Optional[str],
    parents: list[str],
    message: str,
    options: CommitOptions,
    committed_paths: list[str],
) -> CommitResult:
    commit_id = commit_tree(handle, tree, parents, message)
    ref = head_ref(handle)
    update_ref(handle, ref, commit_id, old_oid, _reflog_message(message, options))
    logger.info(
        "commit created",
        repo_id=handle.repo_id,
        commit_id=commit_id,
        ref=ref,
        amend=options.amend,
        paths=len(committed_paths),
    )
    return CommitResult(head=get_head(handle), commit_id=commit_id, committed_paths=committed_paths)


def commit_changelist(
    handle: RepositoryHandle,
    full_files: list[StatusEntry],
    hunk_files: dict[str, list[HunkAssignment]],
    message: str,
    options: Optional[CommitOptions] = None,
) -> CommitResult:
    """Create a commit from whole files and selected hunks.

    The repository's index and working tree are not modified.

    Args:
        handle: Repository to commit in.
        full_files: Entries committed with their working tree content.
        hunk_files: Path -> assigned hunks committed as patches.
        message: Commit message.
        options: Commit options (amend).

    Returns:
        CommitResult with the new HEAD and commit id.

    Raises:
        PreconditionError: Empty message, or amend without a HEAD commit.
        StaleHunksError: If an assigned hunk no longer matches the file.
        GitError: If any git step fails.
    """
    options = options or CommitOptions()
    _check_message(message)
    old_oid = head_oid(handle)
    parents = _resolve_parents(handle, old_oid, options)
    patches = _hunk_patches(handle, hunk_files)

    whole_paths: list[str] = []
    for entry in full_files:
        whole_paths.append(entry.path)
        if entry.old_path and entry.old_path not in whole_paths:
            whole_paths.append(entry.old_path)

    with private_index(handle) as index_file:
        read_tree(handle, index_file, old_oid)
        update_index_paths(handle, index_file, whole_paths)
        for number, patch in enumerate(patches):
            patch_file = index_file.parent / f"hunks-{number}.patch"
            patch_file.write_text(patch, encoding="utf-8", errors="surrogateescape", newline="")
            apply_cached(handle, index_file, patch_file)
        tree = write_tree(handle, index_file)

    committed = [entry.path for entry in full_files]
    committed += [path for path in hunk_files if path not in committed]
    return _finish_commit(handle, tree, old_oid, parents, message, options, committed)


def commit_staged_paths(
    handle: RepositoryHandle,
    paths: list[str],
    message: str,
    options: Optional[CommitOptions] = None,
) -> CommitResult:
    """Create a commit from the real index entries of selected paths.

    Other staged paths stay staged and out of the commit.

    Args:
        handle: Repository to commit in.
        paths: Paths to commit, including the old side of staged renames.
        message: Commit message.
        options: Commit options (amend).

    Returns:
        CommitResult with the new HEAD and commit id.
    """
    options = options or CommitOptions()
    _check_message(message)
    old_oid = head_oid(handle)
    parents = _resolve_parents(handle, old_oid, options)

    records = ls_files_stage(handle, paths)
    present = {record.split("\t", 1)[1] for record in records.split("\0") if "\t" in record}

    with private_index(handle) as index_file:
        read_tree(handle, index_file, old_oid)
        update_index_info(handle, index_file, records)
        force_remove(handle, index_file, [p for p in paths if p not in present])
        tree = write_tree(handle, index_file)

    return _finish_commit(handle, tree, old_oid, parents, message, options, list(paths))


def sync_index_paths(handle: RepositoryHandle, paths: list[str]) -> None:
    """Reset the real index entries of paths to the current HEAD.

    Run after commit_changelist for paths whose committed content came from
    the working tree, so they do not show up as staged reverts.
    """
    if not paths:
        return
    run_git(["reset", "-q", "HEAD", "--", *paths], handle.worktree_path)
