"""Exception classes for gitpanel.

Contains the error taxonomy shared by every module:
- GitPanelError: Base exception for all gitpanel errors
- NotFoundError: Unknown repository or changelist id
- PreconditionError: A user-actionable condition blocks the operation
- GitError: The git executable failed (environment failure)
- StoreError: Changelist persistence failed
- ConfigError: Settings could not be loaded or saved
"""


class GitPanelError(Exception):
    """Base exception for gitpanel errors."""

    pass


class NotFoundError(GitPanelError):
    """Raised when a repository or changelist id is not known."""

    pass


class UnknownRepoError(NotFoundError):
    """Raised when a repo id has not been opened."""

    def __init__(self, repo_id: str):
        super().__init__(f"unknown repo id: {repo_id}")
        self.repo_id = repo_id


class UnknownChangelistError(NotFoundError):
    """Raised when a changelist id does not exist."""

    def __init__(self, changelist_id: str):
        super().__init__(f"unknown changelist id: {changelist_id}")
        self.changelist_id = changelist_id


class PreconditionError(GitPanelError):
    """Raised when an operation is refused without mutating any state."""

    pass


class DirtyWorkingTreeError(PreconditionError):
    """Raised when checkout is attempted with uncommitted changes."""

    pass


class EmptyChangelistError(PreconditionError):
    """Raised when a changelist has nothing to commit."""

    pass


class ConflictedFilesError(PreconditionError):
    """Raised when a changelist contains conflicted files."""

    pass


class StaleHunksError(PreconditionError):
    """Raised when assigned hunks no longer match the live diff."""

    pass


class NoHunksError(PreconditionError):
    """Raised when a hunk assignment is requested with no hunks."""

    pass


class DefaultChangelistError(PreconditionError):
    """Raised when trying to delete the default changelist."""

    pass


class NotUntrackedError(PreconditionError):
    """Raised when deleting a path that is not an untracked file."""

    pass


class GitError(GitPanelError):
    """Raised when a git command fails."""

    pass


class StoreError(GitPanelError):
    """Raised when the changelist state cannot be read or written."""

    pass


class ConfigError(GitPanelError):
    """Raised when there's an error with gitpanel configuration."""

    pass
