"""Status cache for gitpanel.

Contains:
- StatusCache: Per-repository status snapshots with a freshness window
- monotonic_ms: Default cache clock
"""

import time
from typing import Callable, Optional

from gitpanel.cache.models import CachedStatus
from gitpanel.models import RepoStatus

DEFAULT_STATUS_TTL_MS = 1500


def monotonic_ms() -> float:
    return time.monotonic() * 1000


class StatusCache:
    """Last published status per repository.

    Entries never expire on their own; `get_fresh` only returns entries
    younger than the TTL. Not thread-safe: the registry lock guards it.
    """

    def __init__(
        self,
        ttl_ms: int = DEFAULT_STATUS_TTL_MS,
        clock: Callable[[], float] = monotonic_ms,
    ):
        self.ttl_ms = ttl_ms
        self._clock = clock
        self._entries: dict[str, CachedStatus] = {}

    def get(self, repo_id: str) -> Optional[RepoStatus]:
        """Get the last status regardless of age."""
        entry = self._entries.get(repo_id)
        return entry.status if entry else None

    def get_fresh(self, repo_id: str) -> Optional[RepoStatus]:
        """Get the last status if it is younger than the TTL."""
        entry = self._entries.get(repo_id)
        if entry is None:
            return None
        if self._clock() - entry.fetched_at_ms >= self.ttl_ms:
            return None
        return entry.status

    def set(self, repo_id: str, status: RepoStatus) -> None:
        self._entries[repo_id] = CachedStatus(status=status, fetched_at_ms=self._clock())

    def replace(self, repo_id: str, status: RepoStatus) -> None:
        """Swap the cached status without changing its timestamp."""
        entry = self._entries.get(repo_id)
        if entry is not None:
            entry.status = status

    def invalidate(self, repo_id: str) -> None:
        self._entries.pop(repo_id, None)
