"""Persistent changelist store for gitpanel.

The state of one repository lives in `<git_dir>/gitpanel/changelists.json`.
Every mutation rewrites the whole document atomically.

Contains:
- ChangelistStore: Changelists, file assignments and hunk assignments of one repository
- get_state_file: Path of the state document for a git dir
"""

import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from gitpanel.changelist.models import (
    DEFAULT_CHANGELIST_ID,
    DEFAULT_CHANGELIST_NAME,
    Changelist,
    ChangelistState,
    HunkAssignmentSet,
    ReconcileResult,
)
from gitpanel.exceptions import (
    DefaultChangelistError,
    NoHunksError,
    StoreError,
    UnknownChangelistError,
)
from gitpanel.hunks.models import DiffHunk, HunkAssignment
from gitpanel.log import get_logger
from gitpanel.models import RepoStatus

logger = get_logger(__name__)

STATE_DIR_NAME = "gitpanel"
STATE_FILE_NAME = "changelists.json"


def get_state_file(git_dir: Path) -> Path:
    """Get the changelist state file of a repository."""
    return git_dir / STATE_DIR_NAME / STATE_FILE_NAME


def _now_ms() -> int:
    return int(time.time() * 1000)


def _default_list() -> Changelist:
    return Changelist(
        id=DEFAULT_CHANGELIST_ID, name=DEFAULT_CHANGELIST_NAME, created_at=_now_ms()
    )


def _default_state() -> ChangelistState:
    return ChangelistState(lists=[_default_list()], active_id=DEFAULT_CHANGELIST_ID)


def _normalize(state: ChangelistState) -> bool:
    """Repair invariants in place. Returns True if anything changed."""
    changed = False
    if not state.has_list(DEFAULT_CHANGELIST_ID):
        state.lists.insert(0, _default_list())
        changed = True
    if not state.has_list(state.active_id):
        state.active_id = DEFAULT_CHANGELIST_ID
        changed = True
    # A whole-file assignment wins over a stale hunk set for the same path
    for path in [p for p in state.hunk_assignments if p in state.assignments]:
        del state.hunk_assignments[path]
        changed = True
    return changed


class ChangelistStore:
    """Changelists and assignments of one repository.

    All methods run under `lock`. When the store is owned by the
    repository registry this is the registry's lock.
    """

    def __init__(self, git_dir: Path, lock: Optional[threading.RLock] = None):
        self.git_dir = Path(git_dir)
        self.state_file = get_state_file(self.git_dir)
        self._lock = lock if lock is not None else threading.RLock()
        self._state: Optional[ChangelistState] = None

    # Persistence

    def load(self) -> ChangelistState:
        """Load the state, reinitializing it if absent or unreadable.

        Returns:
            The live state document (callers must not mutate it).

        Raises:
            StoreError: If the state cannot be written back.
        """
        with self._lock:
            if self._state is not None:
                return self._state

            if not self.state_file.exists():
                state = _default_state()
                self._write(state)
                self._state = state
                return state

            try:
                state = ChangelistState.model_validate_json(
                    self.state_file.read_text(encoding="utf-8")
                )
            except (OSError, ValueError, ValidationError) as e:
                logger.warning(
                    "changelist state unreadable, reinitializing",
                    path=str(self.state_file),
                    error=str(e),
                )
                state = _default_state()
                self._write(state)
                self._state = state
                return state

            if _normalize(state):
                logger.warning("changelist state repaired", path=str(self.state_file))
                self._write(state)
            self._state = state
            return state

    def snapshot(self) -> ChangelistState:
        """Return a deep copy of the current state."""
        with self._lock:
            return self.load().model_copy(deep=True)

    def _write(self, state: ChangelistState) -> None:
        """Write the state document atomically.

        Raises:
            StoreError: If the file cannot be written.
        """
        tmp_path = None
        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.state_file.parent, prefix=".changelists-", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(state.model_dump_json(indent=2))
            os.replace(tmp_path, self.state_file)
            tmp_path = None
        except OSError as e:
            raise StoreError(f"Failed to write changelist state {self.state_file}: {e}")
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)

    def _save(self) -> None:
        assert self._state is not None
        try:
            self._write(self._state)
        except StoreError:
            # Drop the unsaved mutation; the next load rereads the file
            self._state = None
            raise

    def _require_list(self, state: ChangelistState, changelist_id: str) -> Changelist:
        changelist = state.get_list(changelist_id)
        if changelist is None:
            raise UnknownChangelistError(changelist_id)
        return changelist

    # Changelists

    def lists(self) -> list[Changelist]:
        with self._lock:
            return [c.model_copy() for c in self.load().lists]

    def active_id(self) -> str:
        with self._lock:
            return self.load().active_id

    def create(self, name: str) -> Changelist:
        """Create a changelist.

        Args:
            name: Display name (not required to be unique).

        Returns:
            The new changelist.
        """
        with self._lock:
            state = self.load()
            now = _now_ms()
            changelist_id = f"cl-{now}"
            suffix = len(state.lists)
            while state.has_list(changelist_id):
                changelist_id = f"cl-{now}-{suffix}"
                suffix += 1
            changelist = Changelist(id=changelist_id, name=name, created_at=now)
            state.lists.append(changelist)
            self._save()
            return changelist.model_copy()

    def rename(self, changelist_id: str, name: str) -> None:
        with self._lock:
            state = self.load()
            self._require_list(state, changelist_id).name = name
            self._save()

    def delete(self, changelist_id: str) -> None:
        """Delete a changelist and every assignment pointing to it.

        Raises:
            DefaultChangelistError: For the default changelist.
            UnknownChangelistError: If the id does not exist.
        """
        if changelist_id == DEFAULT_CHANGELIST_ID:
            raise DefaultChangelistError("Cannot delete the default changelist.")
        with self._lock:
            state = self.load()
            self._require_list(state, changelist_id)
            state.lists = [c for c in state.lists if c.id != changelist_id]
            state.assignments = {
                path: cl_id for path, cl_id in state.assignments.items() if cl_id != changelist_id
            }
            state.hunk_assignments = {
                path: hunk_set
                for path, hunk_set in state.hunk_assignments.items()
                if hunk_set.changelist_id != changelist_id
            }
            if state.active_id == changelist_id:
                state.active_id = DEFAULT_CHANGELIST_ID
            self._save()

    def set_active(self, changelist_id: str) -> None:
        with self._lock:
            state = self.load()
            self._require_list(state, changelist_id)
            state.active_id = changelist_id
            self._save()

    # Assignments

    def assign_files(self, changelist_id: str, paths: list[str]) -> None:
        """Assign whole files to a changelist, dropping any hunk assignment."""
        with self._lock:
            state = self.load()
            self._require_list(state, changelist_id)
            for path in paths:
                state.assignments[path] = changelist_id
                state.hunk_assignments.pop(path, None)
            self._save()

    def unassign_files(self, paths: list[str]) -> None:
        with self._lock:
            state = self.load()
            for path in paths:
                state.assignments.pop(path, None)
            self._save()

    def assign_hunks(
        self,
        changelist_id: str,
        path: str,
        hunks: list[Union[DiffHunk, HunkAssignment]],
    ) -> None:
        """Assign hunks of one file to a changelist.

        Replaces the path's previous hunk set and drops its whole-file
        assignment.

        Raises:
            NoHunksError: If hunks is empty.
            UnknownChangelistError: If the id does not exist.
        """
        if not hunks:
            raise NoHunksError("No hunks provided.")
        with self._lock:
            state = self.load()
            self._require_list(state, changelist_id)
            items = [h.to_assignment() if isinstance(h, DiffHunk) else h for h in hunks]
            state.assignments.pop(path, None)
            state.hunk_assignments[path] = HunkAssignmentSet(
                changelist_id=changelist_id, hunks=items
            )
            self._save()

    def unassign_hunks(self, path: str, hunk_ids: list[str]) -> None:
        with self._lock:
            state = self.load()
            hunk_set = state.hunk_assignments.get(path)
            if hunk_set is not None:
                hunk_set.hunks = [h for h in hunk_set.hunks if h.id not in hunk_ids]
                if not hunk_set.hunks:
                    del state.hunk_assignments[path]
            self._save()

    def clear_assignments(self, paths: list[str]) -> None:
        """Remove whole-file and hunk assignments of paths."""
        if not paths:
            return
        with self._lock:
            state = self.load()
            for path in paths:
                state.assignments.pop(path, None)
                state.hunk_assignments.pop(path, None)
            self._save()

    # Reconciliation

    def apply_to_status(self, status: RepoStatus) -> ReconcileResult:
        """Annotate status entries with their changelist.

        Assignments follow renames: an entry whose `old_path` is assigned
        inherits that assignment. Resolution order per entry is whole file,
        then hunk set (partial), then the default changelist.

        Args:
            status: Fresh status. It is not modified.

        Returns:
            ReconcileResult with an annotated copy of the status.
        """
        with self._lock:
            state = self.load()
            names = {c.id: c.name for c in state.lists}
            renamed = False
            files = []

            for entry in status.files:
                path = entry.path
                assigned = state.assignments.get(path)

                if assigned is None and entry.old_path:
                    old_id = state.assignments.pop(entry.old_path, None)
                    if old_id is not None:
                        state.assignments[path] = old_id
                        state.hunk_assignments.pop(path, None)
                        assigned = old_id
                        renamed = True
                    elif (
                        entry.old_path in state.hunk_assignments
                        and path not in state.hunk_assignments
                    ):
                        state.hunk_assignments[path] = state.hunk_assignments.pop(entry.old_path)
                        renamed = True

                hunk_set = state.hunk_assignments.get(path)
                if assigned is not None and assigned in names:
                    resolved = (assigned, names[assigned], False)
                elif hunk_set is not None and hunk_set.changelist_id in names:
                    resolved = (hunk_set.changelist_id, names[hunk_set.changelist_id], True)
                else:
                    resolved = (DEFAULT_CHANGELIST_ID, names[DEFAULT_CHANGELIST_ID], False)

                files.append(
                    entry.model_copy(
                        update={
                            "changelist_id": resolved[0],
                            "changelist_name": resolved[1],
                            "changelist_partial": resolved[2],
                        }
                    )
                )

            if renamed:
                logger.info("changelist assignments followed renames")
                self._save()

            live = {entry.path for entry in files}
            orphaned = sorted(
                p for p in set(state.assignments) | set(state.hunk_assignments) if p not in live
            )
            if orphaned:
                logger.warning("orphaned changelist assignments", paths=orphaned)

            return ReconcileResult(
                status=status.model_copy(update={"files": files}),
                renamed=renamed,
                orphaned_paths=orphaned,
            )
