"""Git command runner and repository utilities.

Contains:
- run_git: Run a git command in a working tree and return its output
- open_repository: Validate a path and build a RepositoryHandle
- resolve_git_dir: Resolve the metadata directory of a working tree
"""

import os
import subprocess
from pathlib import Path
from typing import Optional

from gitpanel.exceptions import GitError
from gitpanel.models import RepositoryHandle


def run_git(
    args: list[str],
    cwd: Path,
    *,
    env: Optional[dict[str, str]] = None,
    input: Optional[str] = None,
    ok_codes: tuple[int, ...] = (0,),
    strip: bool = True,
) -> str:
    """Run a git command and return its output.

    Args:
        args: List of arguments to pass to git.
        cwd: Working directory for the command.
        env: Extra environment variables (e.g. GIT_INDEX_FILE).
        input: Text fed to stdin.
        ok_codes: Exit codes treated as success.
        strip: Strip surrounding whitespace from stdout. Disable for
            diff text, where trailing newlines are significant.

    Returns:
        The stdout of the git command.

    Raises:
        GitError: If the command fails or git is not installed.
    """
    full_env = None
    if env:
        full_env = os.environ.copy()
        full_env.update(env)
    # No newline translation: diff text keeps its CR bytes
    try:
        result = subprocess.run(
            ["git"] + args,
            cwd=cwd,
            env=full_env,
            input=input.encode("utf-8", "surrogateescape") if input is not None else None,
            capture_output=True,
        )
    except FileNotFoundError:
        raise GitError("Git is not installed or not in PATH.")
    if result.returncode not in ok_codes:
        stderr = result.stderr.decode("utf-8", "replace").strip()
        raise GitError(f"Git command failed: git {' '.join(args)}\n{stderr}")
    stdout = result.stdout.decode("utf-8", "surrogateescape")
    return stdout.strip() if strip else stdout


def resolve_git_dir(worktree_path: Path) -> Path:
    """Resolve the absolute git metadata directory of a working tree.

    Args:
        worktree_path: Path inside the working tree.

    Returns:
        Absolute path of the git directory.

    Raises:
        GitError: If the path is not inside a git repository.
    """
    return Path(run_git(["rev-parse", "--absolute-git-dir"], worktree_path))


def open_repository(path: Path) -> RepositoryHandle:
    """Validate a working tree path and build its handle.

    Args:
        path: Any path inside the working tree.

    Returns:
        RepositoryHandle for the working tree root.

    Raises:
        GitError: If the path does not exist or is not a git working tree.
    """
    path = Path(path).expanduser()
    if not path.is_dir():
        raise GitError(f"Not a directory: {path}")
    try:
        root = run_git(["rev-parse", "--show-toplevel"], path)
    except GitError:
        raise GitError(f"Not a git working tree: {path}")
    worktree = Path(root)
    return RepositoryHandle.create(worktree, resolve_git_dir(worktree))
