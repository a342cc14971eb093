"""Repository registry for gitpanel.

All shared in-process state lives here behind one re-entrant lock: open
repository handles, their changelist stores and watchers, the status and
diff caches, and the job token table. The lock only guards short critical
sections; callers never hold it across a git invocation.

Contains:
- RepoEntry: Everything the registry keeps for one open repository
- RepositoryRegistry: The registry itself
"""

import threading
from dataclasses import dataclass
from typing import Callable, Optional

from gitpanel.cache import (
    DEFAULT_DIFF_CACHE_CAPACITY,
    DEFAULT_STATUS_TTL_MS,
    DiffCache,
    StatusCache,
    monotonic_ms,
)
from gitpanel.changelist import ChangelistStore
from gitpanel.exceptions import UnknownRepoError
from gitpanel.jobs import JobKind, JobQueue
from gitpanel.log import get_logger
from gitpanel.models import RepositoryHandle, RepoStatus

logger = get_logger(__name__)


@dataclass
class RepoEntry:
    handle: RepositoryHandle
    store: ChangelistStore
    watcher: Optional[object] = None  # RepoWatcher, kept untyped to avoid an import cycle


class RepositoryRegistry:
    """Process-wide registry of open repositories."""

    def __init__(
        self,
        status_ttl_ms: int = DEFAULT_STATUS_TTL_MS,
        diff_cache_capacity: int = DEFAULT_DIFF_CACHE_CAPACITY,
        clock: Callable[[], float] = monotonic_ms,
    ):
        self.lock = threading.RLock()
        self._repos: dict[str, RepoEntry] = {}
        self.status_cache = StatusCache(ttl_ms=status_ttl_ms, clock=clock)
        self.diff_cache = DiffCache(capacity=diff_cache_capacity)
        self.jobs = JobQueue()

    # Repositories

    def register(self, handle: RepositoryHandle) -> RepoEntry:
        """Register a handle, reusing the existing entry for the same repo id."""
        with self.lock:
            entry = self._repos.get(handle.repo_id)
            if entry is None:
                store = ChangelistStore(handle.git_dir, lock=self.lock)
                entry = RepoEntry(handle=handle, store=store)
                self._repos[handle.repo_id] = entry
            return entry

    def unregister(self, repo_id: str) -> Optional[RepoEntry]:
        """Remove a repository and everything cached for it."""
        with self.lock:
            entry = self._repos.pop(repo_id, None)
            self.status_cache.invalidate(repo_id)
            self.diff_cache.invalidate_repo(repo_id)
            self.jobs.forget(repo_id)
            return entry

    def repo_ids(self) -> list[str]:
        with self.lock:
            return list(self._repos)

    def _entry(self, repo_id: str) -> RepoEntry:
        entry = self._repos.get(repo_id)
        if entry is None:
            raise UnknownRepoError(repo_id)
        return entry

    def get_repo(self, repo_id: str) -> RepositoryHandle:
        """Get the handle of an open repository.

        Raises:
            UnknownRepoError: If the repo id was never opened or was closed.
        """
        with self.lock:
            return self._entry(repo_id).handle

    def get_store(self, repo_id: str) -> ChangelistStore:
        with self.lock:
            return self._entry(repo_id).store

    def set_watcher(self, repo_id: str, watcher: Optional[object]) -> Optional[object]:
        """Attach a watcher, returning the one it replaces."""
        with self.lock:
            entry = self._entry(repo_id)
            previous, entry.watcher = entry.watcher, watcher
            return previous

    def get_watcher(self, repo_id: str) -> Optional[object]:
        with self.lock:
            return self._entry(repo_id).watcher

    # Jobs and caches

    def start_job(self, repo_id: str, kind: JobKind) -> int:
        with self.lock:
            return self.jobs.start(repo_id, kind)

    def fresh_status(self, repo_id: str) -> Optional[RepoStatus]:
        with self.lock:
            return self.status_cache.get_fresh(repo_id)

    def cached_status(self, repo_id: str) -> Optional[RepoStatus]:
        with self.lock:
            return self.status_cache.get(repo_id)

    def update_cached_status(
        self, repo_id: str, update: Callable[[RepoStatus], RepoStatus]
    ) -> Optional[RepoStatus]:
        """Rewrite the cached status, keeping its age, if there is one."""
        with self.lock:
            cached = self.status_cache.get(repo_id)
            if cached is None:
                return None
            updated = update(cached)
            self.status_cache.replace(repo_id, updated)
            return updated

    def invalidate_status(self, repo_id: str) -> None:
        with self.lock:
            self.status_cache.invalidate(repo_id)

    def cached_diff(self, key: str) -> Optional[str]:
        with self.lock:
            return self.diff_cache.get(key)

    def publish_status(self, repo_id: str, token: int, status: RepoStatus) -> RepoStatus:
        """Publish a computed status if its job is still current.

        Returns:
            The caller's status when published. A superseded job gets the
            cached status when one exists, else its own result; it never
            overwrites the cache.
        """
        with self.lock:
            if self.jobs.is_current(repo_id, JobKind.STATUS, token):
                self.status_cache.set(repo_id, status)
                return status
            logger.debug("status job superseded", repo_id=repo_id, token=token)
            cached = self.status_cache.get(repo_id)
            return cached if cached is not None else status

    def publish_diff(self, repo_id: str, token: int, key: str, text: str) -> str:
        """Publish computed diff text if its job is still current.

        Returns:
            Same contract as publish_status, for diff text.
        """
        with self.lock:
            if self.jobs.is_current(repo_id, JobKind.DIFF, token):
                self.diff_cache.set(key, text)
                return text
            logger.debug("diff job superseded", repo_id=repo_id, token=token)
            cached = self.diff_cache.get(key)
            return cached if cached is not None else text
