"""In-process service facade for gitpanel.

GitPanelService is what a UI dispatch layer calls. It owns the repository
registry and a worker thread pool; every blocking git invocation runs on
the pool while the caller waits for its result. Status and diff requests
go through the job tokens and caches of the registry.

Contains:
- GitPanelService: All repository, changelist and commit operations
"""

import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Optional, Union

from gitpanel.changelist import Changelist, ChangelistState
from gitpanel.commit import (
    CommitOptions,
    CommitPreview,
    CommitResult,
    build_commit_preview,
    commit_changelist,
    commit_staged_paths,
    sync_index_paths,
)
from gitpanel.config import Settings
from gitpanel.exceptions import (
    NotUntrackedError,
    PreconditionError,
    StaleHunksError,
    UnknownChangelistError,
)
from gitpanel.git import (
    add_worktree,
    checkout_branch,
    create_branch,
    delete_untracked_path,
    diff_cache_key,
    fetch,
    get_diff,
    get_status,
    is_untracked,
    list_branches,
    list_worktrees,
    open_repository,
    prune_worktrees,
    pull,
    push,
    remove_worktree,
    stage_path,
    track_path,
    unstage_path,
)
from gitpanel.hunks import (
    DiffHunk,
    DiffPayload,
    HunkAssignment,
    filter_hunks_for_path,
    parse_diff_hunks,
)
from gitpanel.jobs import JobKind
from gitpanel.log import get_logger
from gitpanel.models import (
    BranchList,
    CheckoutTarget,
    DiffKind,
    FetchResult,
    RepoHead,
    RepositoryHandle,
    RepoStatus,
    StatusKind,
    WorktreeInfo,
)
from gitpanel.registry import RepositoryRegistry
from gitpanel.watcher import RepoWatcher

logger = get_logger(__name__)

DEFAULT_REMOTE = "origin"
WATCHER_JOIN_TIMEOUT = 2.0

RepoListener = Callable[[str], None]


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _hunks_from_text(text: str, path: str, kind: DiffKind) -> list[DiffHunk]:
    """Parse diff text, keeping the hunks of path (all hunks if none match)."""
    hunks = parse_diff_hunks(text, path, kind)
    return filter_hunks_for_path(hunks, path) or hunks


def _apply_each(
    fn: Callable[[RepositoryHandle, str], None], handle: RepositoryHandle, paths: list[str]
) -> None:
    for path in paths:
        fn(handle, path)


class GitPanelService:
    """Backend of the git panel.

    Args:
        settings: Runtime settings (defaults when omitted).
        watch_fn: Replacement for watchfiles.watch, used by tests.
    """

    def __init__(self, settings: Optional[Settings] = None, watch_fn: Optional[Callable] = None):
        self.settings = settings or Settings()
        self.registry = RepositoryRegistry(
            status_ttl_ms=self.settings.status_ttl_ms,
            diff_cache_capacity=self.settings.diff_cache_capacity,
        )
        self._executor = ThreadPoolExecutor(
            max_workers=self.settings.max_workers, thread_name_prefix="gitpanel"
        )
        self._watch_fn = watch_fn
        self._listeners: list[RepoListener] = []

    def _run(self, fn: Callable, *args, **kwargs):
        """Run a blocking call on the worker pool and wait for its result."""
        return self._executor.submit(fn, *args, **kwargs).result()

    # Repositories

    def open_repo(self, path: Union[str, Path]) -> RepositoryHandle:
        """Open a working tree and start watching it.

        Re-opening the same path returns the same repo id.
        """
        handle = self._run(open_repository, Path(path))
        entry = self.registry.register(handle)
        if self.settings.watch_enabled and self.registry.get_watcher(handle.repo_id) is None:
            watcher = RepoWatcher(
                handle.repo_id,
                handle.worktree_path,
                handle.git_dir,
                self._on_repo_changed,
                debounce_ms=self.settings.watch_debounce_ms,
                poll_ms=self.settings.watch_poll_ms,
                watch_fn=self._watch_fn,
            )
            self.registry.set_watcher(handle.repo_id, watcher)
            watcher.start()
        logger.info("repository opened", repo_id=handle.repo_id, path=str(handle.worktree_path))
        return entry.handle

    def close_repo(self, repo_id: str) -> None:
        """Stop watching a repository and forget its cached state."""
        self.registry.get_repo(repo_id)
        entry = self.registry.unregister(repo_id)
        if entry is not None and entry.watcher is not None:
            entry.watcher.stop()
            entry.watcher.join(WATCHER_JOIN_TIMEOUT)
        logger.info("repository closed", repo_id=repo_id)

    def shutdown(self) -> None:
        """Close every repository and stop the worker pool."""
        for repo_id in self.registry.repo_ids():
            self.close_repo(repo_id)
        self._executor.shutdown(wait=True)

    def add_listener(self, callback: RepoListener) -> None:
        """Register a callback receiving the repo id of changed repositories."""
        self._listeners.append(callback)

    def remove_listener(self, callback: RepoListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _on_repo_changed(self, repo_id: str) -> None:
        self.registry.invalidate_status(repo_id)
        for callback in list(self._listeners):
            try:
                callback(repo_id)
            except Exception:
                logger.exception("repo listener failed", repo_id=repo_id)

    # Status and diffs

    def status(self, repo_id: str) -> RepoStatus:
        """Get the reconciled status, served from cache while it is fresh."""
        handle = self.registry.get_repo(repo_id)
        cached = self.registry.fresh_status(repo_id)
        if cached is not None:
            return cached
        return self._refresh_status(handle)

    def invalidate(self, repo_id: str) -> None:
        """Force the next status call to recompute."""
        self.registry.get_repo(repo_id)
        self.registry.invalidate_status(repo_id)

    def _refresh_status(self, handle: RepositoryHandle) -> RepoStatus:
        token = self.registry.start_job(handle.repo_id, JobKind.STATUS)
        start = time.perf_counter()
        status = self._run(get_status, handle)
        logger.info(
            "status computed",
            repo_id=handle.repo_id,
            files=len(status.files),
            duration_ms=_elapsed_ms(start),
        )
        reconciled = self.registry.get_store(handle.repo_id).apply_to_status(status)
        return self.registry.publish_status(handle.repo_id, token, reconciled.status)

    def _update_cached_changelists(self, repo_id: str) -> None:
        store = self.registry.get_store(repo_id)
        self.registry.update_cached_status(
            repo_id, lambda cached: store.apply_to_status(cached).status
        )

    def diff(self, repo_id: str, path: str, kind: DiffKind) -> str:
        """Get the unified diff text of one path."""
        handle = self.registry.get_repo(repo_id)
        key = self._run(diff_cache_key, handle, path, kind)
        cached = self.registry.cached_diff(key)
        if cached is not None:
            return cached

        token = self.registry.start_job(repo_id, JobKind.DIFF)
        start = time.perf_counter()
        text = self._run(get_diff, handle, path, kind)
        logger.info(
            "diff computed",
            repo_id=repo_id,
            path=path,
            kind=kind.value,
            duration_ms=_elapsed_ms(start),
        )
        # Content changed while diffing: the text does not belong to key
        if self._run(diff_cache_key, handle, path, kind) != key:
            logger.debug("diff not cached, content changed", repo_id=repo_id, path=path)
            return text
        return self.registry.publish_diff(repo_id, token, key, text)

    def diff_hunks(self, repo_id: str, path: str, kind: DiffKind) -> list[DiffHunk]:
        return _hunks_from_text(self.diff(repo_id, path, kind), path, kind)

    def diff_payload(self, repo_id: str, path: str, kind: DiffKind) -> DiffPayload:
        text = self.diff(repo_id, path, kind)
        return DiffPayload(text=text, hunks=_hunks_from_text(text, path, kind))

    # Index

    def stage(self, repo_id: str, paths: list[str]) -> RepoStatus:
        handle = self.registry.get_repo(repo_id)
        self._run(_apply_each, stage_path, handle, paths)
        return self._refresh_status(handle)

    def unstage(self, repo_id: str, paths: list[str]) -> RepoStatus:
        handle = self.registry.get_repo(repo_id)
        self._run(_apply_each, unstage_path, handle, paths)
        return self._refresh_status(handle)

    def track(self, repo_id: str, paths: list[str]) -> RepoStatus:
        handle = self.registry.get_repo(repo_id)
        self._run(_apply_each, track_path, handle, paths)
        return self._refresh_status(handle)

    def delete_unversioned(self, repo_id: str, paths: list[str]) -> RepoStatus:
        """Delete untracked files and drop their changelist assignments.

        Raises:
            NotUntrackedError: If any path is not an untracked file. Nothing
                is deleted in that case.
        """
        handle = self.registry.get_repo(repo_id)
        for path in paths:
            if not self._run(is_untracked, handle, path):
                raise NotUntrackedError(f"Only untracked files can be deleted: {path}")
        self._run(_apply_each, delete_untracked_path, handle, paths)
        self.registry.get_store(repo_id).clear_assignments(paths)
        return self._refresh_status(handle)

    # Branches and remotes

    def branches(self, repo_id: str) -> BranchList:
        return self._run(list_branches, self.registry.get_repo(repo_id))

    def checkout(self, repo_id: str, target: CheckoutTarget) -> RepoHead:
        """Check out a branch.

        Raises:
            DirtyWorkingTreeError: If tracked files have uncommitted changes.
        """
        handle = self.registry.get_repo(repo_id)
        head = self._run(checkout_branch, handle, target)
        self._refresh_status(handle)
        return head

    def create_branch(self, repo_id: str, name: str, start: Optional[str] = None) -> str:
        return self._run(create_branch, self.registry.get_repo(repo_id), name, start)

    def fetch(self, repo_id: str, remote: Optional[str] = None) -> FetchResult:
        handle = self.registry.get_repo(repo_id)
        updated = self._run(fetch, handle, remote)
        return FetchResult(remote=remote or DEFAULT_REMOTE, updated=updated)

    def pull(self, repo_id: str, remote: Optional[str] = None) -> FetchResult:
        handle = self.registry.get_repo(repo_id)
        updated = self._run(pull, handle, remote)
        self._refresh_status(handle)
        return FetchResult(remote=remote or DEFAULT_REMOTE, updated=updated)

    def push(self, repo_id: str, remote: Optional[str] = None) -> FetchResult:
        handle = self.registry.get_repo(repo_id)
        updated = self._run(push, handle, remote)
        return FetchResult(remote=remote or DEFAULT_REMOTE, updated=updated)

    # Worktrees

    def list_worktrees(self, repo_id: str) -> list[WorktreeInfo]:
        return self._run(list_worktrees, self.registry.get_repo(repo_id))

    def add_worktree(
        self, repo_id: str, path: Union[str, Path], branch: str, new_branch: bool = False
    ) -> Path:
        handle = self.registry.get_repo(repo_id)
        return self._run(add_worktree, handle, Path(path), branch, new_branch)

    def remove_worktree(self, repo_id: str, path: Union[str, Path]) -> None:
        self._run(remove_worktree, self.registry.get_repo(repo_id), Path(path))

    def prune_worktrees(self, repo_id: str) -> None:
        self._run(prune_worktrees, self.registry.get_repo(repo_id))

    # Changelists

    def cl_list(self, repo_id: str) -> ChangelistState:
        return self.registry.get_store(repo_id).snapshot()

    def cl_create(self, repo_id: str, name: str) -> Changelist:
        changelist = self.registry.get_store(repo_id).create(name)
        self._update_cached_changelists(repo_id)
        return changelist

    def cl_rename(self, repo_id: str, changelist_id: str, name: str) -> None:
        self.registry.get_store(repo_id).rename(changelist_id, name)
        self._update_cached_changelists(repo_id)

    def cl_delete(self, repo_id: str, changelist_id: str) -> None:
        self.registry.get_store(repo_id).delete(changelist_id)
        self._update_cached_changelists(repo_id)

    def cl_set_active(self, repo_id: str, changelist_id: str) -> None:
        self.registry.get_store(repo_id).set_active(changelist_id)

    def cl_assign_files(self, repo_id: str, changelist_id: str, paths: list[str]) -> None:
        self.registry.get_store(repo_id).assign_files(changelist_id, paths)
        self._update_cached_changelists(repo_id)

    def cl_unassign_files(self, repo_id: str, paths: list[str]) -> None:
        self.registry.get_store(repo_id).unassign_files(paths)
        self._update_cached_changelists(repo_id)

    def cl_assign_hunks(
        self,
        repo_id: str,
        changelist_id: str,
        path: str,
        hunks: list[Union[DiffHunk, HunkAssignment]],
    ) -> None:
        self.registry.get_store(repo_id).assign_hunks(changelist_id, path, hunks)
        self._update_cached_changelists(repo_id)

    def cl_unassign_hunks(self, repo_id: str, path: str, hunk_ids: list[str]) -> None:
        self.registry.get_store(repo_id).unassign_hunks(path, hunk_ids)
        self._update_cached_changelists(repo_id)

    # Commits

    def _preview(
        self, handle: RepositoryHandle, changelist_id: str
    ) -> tuple[CommitPreview, RepoStatus]:
        store = self.registry.get_store(handle.repo_id)
        if not store.load().has_list(changelist_id):
            raise UnknownChangelistError(changelist_id)
        status = self._run(get_status, handle)
        reconciled = store.apply_to_status(status).status
        preview = build_commit_preview(
            changelist_id,
            reconciled.files,
            store.snapshot(),
            lambda path, kind: self.diff_hunks(handle.repo_id, path, kind),
        )
        return preview, reconciled

    def commit_prepare(self, repo_id: str, changelist_id: str) -> CommitPreview:
        """Validate a changelist and describe the commit it would produce."""
        return self._preview(self.registry.get_repo(repo_id), changelist_id)[0]

    def commit_execute(
        self,
        repo_id: str,
        changelist_id: str,
        message: str,
        options: Optional[CommitOptions] = None,
    ) -> CommitResult:
        """Commit a changelist.

        Raises:
            StaleHunksError: If the preview reports hunks that need reselecting.
        """
        handle = self.registry.get_repo(repo_id)
        preview, status = self._preview(handle, changelist_id)
        if preview.invalid_hunks:
            raise StaleHunksError("Some hunks need reselect before committing.")

        state = self.registry.get_store(repo_id).snapshot()
        hunk_files = {
            path: hunk_set.hunks
            for path, hunk_set in state.hunk_assignments.items()
            if hunk_set.changelist_id == changelist_id
        }
        full_files = [entry for entry in preview.files if not entry.changelist_partial]
        result = self._run(commit_changelist, handle, full_files, hunk_files, message, options)

        # Committed working tree content must not show up as staged reverts
        by_path = {entry.path: entry for entry in status.files}
        sync_paths: list[str] = []
        for entry in full_files:
            sync_paths.append(entry.path)
            if entry.old_path:
                sync_paths.append(entry.old_path)
        for path in hunk_files:
            entry = by_path.get(path)
            if entry is not None and entry.status in (StatusKind.UNSTAGED, StatusKind.UNTRACKED):
                sync_paths.append(path)
        self._run(sync_index_paths, handle, sync_paths)

        self._after_commit(handle, result)
        return result

    def commit_staged(
        self,
        repo_id: str,
        paths: list[str],
        message: str,
        options: Optional[CommitOptions] = None,
    ) -> CommitResult:
        """Commit the staged content of selected paths only.

        Raises:
            PreconditionError: If nothing is selected or a path is not staged.
        """
        handle = self.registry.get_repo(repo_id)
        status = self._run(get_status, handle)
        staged = {
            entry.path: entry
            for entry in status.files
            if entry.status in (StatusKind.STAGED, StatusKind.BOTH)
        }

        selected: list[str] = []
        for raw_path in paths:
            path = raw_path.strip()
            if path and path not in selected:
                selected.append(path)
        if not selected:
            raise PreconditionError("Select at least one staged file to commit.")

        not_staged = [path for path in selected if path not in staged]
        if len(not_staged) == 1:
            raise PreconditionError(f"Selected file is no longer staged: {not_staged[0]}")
        if not_staged:
            raise PreconditionError(
                "Some selected files are no longer staged. Refresh and try again."
            )

        job_paths = list(selected)
        for path in selected:
            old_path = staged[path].old_path
            if old_path and old_path not in job_paths:
                job_paths.append(old_path)

        result = self._run(commit_staged_paths, handle, job_paths, message, options)
        result = result.model_copy(update={"committed_paths": selected})
        self._after_commit(handle, result)
        return result

    def _after_commit(self, handle: RepositoryHandle, result: CommitResult) -> None:
        """Refresh status and clear assignments of committed paths that are now clean."""
        status = self._refresh_status(handle)
        dirty = {entry.path for entry in status.files}
        clean = [path for path in result.committed_paths if path not in dirty]
        self.registry.get_store(handle.repo_id).clear_assignments(clean)
        self._update_cached_changelists(handle.repo_id)
