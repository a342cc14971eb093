"""Diff cache for gitpanel.

Contains:
- DiffCache: Bounded diff text cache keyed by content identity
"""

from collections import OrderedDict
from typing import Optional

from gitpanel.cache.models import DiffCacheEntry

DEFAULT_DIFF_CACHE_CAPACITY = 200


class DiffCache:
    """Diff text keyed by repo, path, kind and the object ids on both sides.

    Keys change whenever content changes, so entries never go stale; the
    oldest inserted entry is evicted once the size exceeds capacity. Reads
    do not refresh an entry's position. Not thread-safe: the registry lock
    guards it.
    """

    def __init__(self, capacity: int = DEFAULT_DIFF_CACHE_CAPACITY):
        self.capacity = capacity
        self._entries: "OrderedDict[str, DiffCacheEntry]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        return entry.text if entry else None

    def set(self, key: str, text: str) -> None:
        if key in self._entries:
            self._entries[key].text = text
            return
        self._entries[key] = DiffCacheEntry(key=key, text=text)
        while len(self._entries) > self.capacity:
            self._entries.popitem(last=False)

    def invalidate_repo(self, repo_id: str) -> None:
        """Drop every entry of one repository."""
        prefix = f"{repo_id}:"
        for key in [k for k in self._entries if k.startswith(prefix)]:
            del self._entries[key]
