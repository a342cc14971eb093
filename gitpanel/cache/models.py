"""Cache data models for gitpanel.

Contains:
- CachedStatus: A time-stamped status snapshot
- DiffCacheEntry: Diff text stored under a content-identity key
"""

from dataclasses import dataclass

from gitpanel.models import RepoStatus


@dataclass
class CachedStatus:
    """Status snapshot of one repository."""

    status: RepoStatus
    fetched_at_ms: float  # From the cache clock, not wall time


@dataclass
class DiffCacheEntry:
    """Diff text of one (repo, path, kind, old oid, new oid) key."""

    key: str
    text: str
