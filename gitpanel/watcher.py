"""Repository watcher for gitpanel.

Each open repository gets one daemon thread running watchfiles.watch over
its working tree and git dir. Bursts of filesystem events are coalesced by
the debounce window and reported as a single `on_change(repo_id)` call.

Contains:
- make_repo_filter: watchfiles filter dropping git-dir noise
- RepoWatcher: Debounced watcher thread for one repository
"""

import threading
from pathlib import Path
from typing import Callable, Optional

import watchfiles
from watchfiles import Change

from gitpanel.changelist.store import STATE_DIR_NAME
from gitpanel.log import get_logger

logger = get_logger(__name__)

DEFAULT_DEBOUNCE_MS = 400
DEFAULT_POLL_MS = 250

# Entries of the git dir whose changes matter to status
_GIT_DIR_FILES = {"index", "HEAD", "FETCH_HEAD", "ORIG_HEAD", "MERGE_HEAD", "packed-refs"}


def _relative_to(path: Path, base: Path) -> Optional[Path]:
    try:
        return path.relative_to(base)
    except ValueError:
        return None


def make_repo_filter(worktree_path: Path, git_dir: Path) -> Callable[[Change, str], bool]:
    """Build a watchfiles filter for one repository.

    Inside the git dir only the index, HEAD-like files and refs pass; object
    writes, logs, lock files and gitpanel's own state are dropped.

    Args:
        worktree_path: Working tree root.
        git_dir: Resolved git metadata directory.

    Returns:
        Filter callable (change, path) -> bool.
    """
    worktree_path = Path(worktree_path)
    git_dir = Path(git_dir)

    def should_watch(_change: Change, changed_path: str) -> bool:
        path = Path(changed_path)
        if path.name.endswith(".lock"):
            return False

        rel = _relative_to(path, git_dir)
        if rel is not None:
            parts = rel.parts
            if not parts or parts[0] == STATE_DIR_NAME:
                return False
            if len(parts) == 1:
                return parts[0] in _GIT_DIR_FILES
            return parts[0] == "refs"

        rel = _relative_to(path, worktree_path)
        if rel is None:
            return False
        # Nested metadata of submodules and linked worktree pointers
        return ".git" not in rel.parts[:-1]

    return should_watch


class RepoWatcher:
    """Watch one repository and call `on_change(repo_id)` per coalesced burst."""

    def __init__(
        self,
        repo_id: str,
        worktree_path: Path,
        git_dir: Path,
        on_change: Callable[[str], None],
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        poll_ms: int = DEFAULT_POLL_MS,
        watch_fn: Optional[Callable] = None,
    ):
        self.repo_id = repo_id
        self.worktree_path = Path(worktree_path)
        self.git_dir = Path(git_dir)
        self.on_change = on_change
        self.debounce_ms = debounce_ms
        self.poll_ms = poll_ms
        self._watch_fn = watch_fn or watchfiles.watch
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run, name=f"gitpanel-watch-{repo_id}", daemon=True
        )

    def watch_paths(self) -> list[Path]:
        """Directories handed to watchfiles."""
        paths = [self.worktree_path]
        if _relative_to(self.git_dir, self.worktree_path) is None and self.git_dir.exists():
            paths.append(self.git_dir)
        return paths

    def start(self) -> "RepoWatcher":
        self._thread.start()
        return self

    def stop(self) -> None:
        """Ask the thread to exit at its next poll."""
        self._stop_event.set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread.is_alive():
            self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def _run(self) -> None:
        logger.info("watcher started", repo_id=self.repo_id, path=str(self.worktree_path))
        try:
            for changes in self._watch_fn(
                *self.watch_paths(),
                watch_filter=make_repo_filter(self.worktree_path, self.git_dir),
                debounce=self.debounce_ms,
                rust_timeout=self.poll_ms,
                stop_event=self._stop_event,
                raise_interrupt=False,
            ):
                if self._stop_event.is_set():
                    break
                if changes:
                    self._notify(len(changes))
        except Exception:
            logger.exception("watcher failed", repo_id=self.repo_id)
        finally:
            logger.info("watcher stopped", repo_id=self.repo_id)

    def _notify(self, change_count: int) -> None:
        logger.debug("repository changed", repo_id=self.repo_id, changes=change_count)
        try:
            self.on_change(self.repo_id)
        except Exception:
            logger.exception("watcher callback failed", repo_id=self.repo_id)
