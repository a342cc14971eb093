"""Data models for gitpanel changelists.

Contains:
- Changelist: A named bucket of pending changes
- HunkAssignmentSet: Hunks of one path assigned to a changelist
- ChangelistState: The persisted state document of one repository
- ReconcileResult: Outcome of reconciling assignments with live status
"""

from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel

from gitpanel.hunks.models import HunkAssignment
from gitpanel.models import RepoStatus

DEFAULT_CHANGELIST_ID = "default"
DEFAULT_CHANGELIST_NAME = "Default"


class Changelist(BaseModel):
    """A named changelist."""

    id: str
    name: str
    created_at: int  # epoch millis


class HunkAssignmentSet(BaseModel):
    """Hunks of a single path assigned to one changelist."""

    changelist_id: str
    hunks: list[HunkAssignment] = []


class ChangelistState(BaseModel):
    """Persisted changelist state of one repository.

    A path appears in at most one of `assignments` (whole file) and
    `hunk_assignments` (partial file).
    """

    lists: list[Changelist] = []
    active_id: str = DEFAULT_CHANGELIST_ID
    assignments: dict[str, str] = {}  # path -> changelist id
    hunk_assignments: dict[str, HunkAssignmentSet] = {}  # path -> hunks

    def get_list(self, changelist_id: str) -> Optional[Changelist]:
        for changelist in self.lists:
            if changelist.id == changelist_id:
                return changelist
        return None

    def has_list(self, changelist_id: str) -> bool:
        return self.get_list(changelist_id) is not None


@dataclass
class ReconcileResult:
    """Reconciled status plus what reconciliation changed."""

    status: RepoStatus
    renamed: bool = False
    orphaned_paths: list[str] = field(default_factory=list)
