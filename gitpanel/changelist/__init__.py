"""Changelist management for gitpanel.

This package provides:
- models: Changelist, ChangelistState, HunkAssignmentSet, ReconcileResult
- store: ChangelistStore, get_state_file
"""

from gitpanel.changelist.models import (
    DEFAULT_CHANGELIST_ID,
    DEFAULT_CHANGELIST_NAME,
    Changelist,
    ChangelistState,
    HunkAssignmentSet,
    ReconcileResult,
)
from gitpanel.changelist.store import (
    ChangelistStore,
    get_state_file,
)


__all__ = [
    "DEFAULT_CHANGELIST_ID",
    "DEFAULT_CHANGELIST_NAME",
    "Changelist",
    "ChangelistState",
    "HunkAssignmentSet",
    "ReconcileResult",
    "ChangelistStore",
    "get_state_file",
]
