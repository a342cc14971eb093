"""Job supersession for gitpanel.

Contains:
- JobKind: Kinds of background work that supersede each other
- JobQueue: Per (repo, kind) tokens implementing last-writer-wins
"""

import itertools
from enum import Enum


class JobKind(str, Enum):
    STATUS = "status"
    DIFF = "diff"


class JobQueue:
    """Issues job tokens; only the newest token of a key may publish.

    Starting a job never cancels older in-flight work. The older job still
    runs to completion and `is_current` tells it whether it may publish.
    Not thread-safe: the registry lock guards it.
    """

    def __init__(self):
        self._counter = itertools.count(1)
        self._current: dict[tuple[str, JobKind], int] = {}

    def start(self, repo_id: str, kind: JobKind) -> int:
        """Mint a new token for (repo_id, kind), superseding the previous one."""
        token = next(self._counter)
        self._current[(repo_id, kind)] = token
        return token

    def is_current(self, repo_id: str, kind: JobKind, token: int) -> bool:
        return self._current.get((repo_id, kind)) == token

    def forget(self, repo_id: str) -> None:
        """Drop the tokens of a closed repository."""
        for key in [k for k in self._current if k[0] == repo_id]:
            del self._current[key]
