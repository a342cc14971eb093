"""Diff parser for gitpanel hunks.

Contains functions for parsing unified diff output:
- parse_diff_hunks: Parse diff text into DiffHunk objects with stable ids
- fnv1a_64: Content hash used in hunk ids
- filter_hunks_for_path: Keep the hunks that belong to one path
- normalize_repo_path: Normalize a repository-relative path for comparison
"""

import re
from typing import Optional

from gitpanel.hunks.models import DiffHunk
from gitpanel.models import DiffKind

_HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
_DIFF_GIT_RE = re.compile(r'^diff --git (?:"?a/.*?"?) ("?)b/(.*)\1$')

_FNV_OFFSET_BASIS = 0xCBF29CE484222325
_FNV_PRIME = 0x100000001B3
_MASK_64 = 0xFFFFFFFFFFFFFFFF


def fnv1a_64(text: str) -> str:
    """Compute the 64-bit FNV-1a hash of text.

    Args:
        text: Text to hash (encoded as UTF-8).

    Returns:
        16-character lowercase hex digest.
    """
    value = _FNV_OFFSET_BASIS
    for byte in text.encode("utf-8", errors="surrogateescape"):
        value ^= byte
        value = (value * _FNV_PRIME) & _MASK_64
    return f"{value:016x}"


def _unquote(path: str) -> str:
    """Decode a C-style quoted path as emitted by git for unusual names."""
    if len(path) >= 2 and path.startswith('"') and path.endswith('"'):
        try:
            raw = path[1:-1].encode("latin-1").decode("unicode_escape")
            return raw.encode("latin-1").decode("utf-8", errors="replace")
        except UnicodeError:
            return path[1:-1]
    return path


def _path_from_diff_git(line: str) -> Optional[str]:
    """Extract the new-side path from a 'diff --git a/X b/Y' line."""
    match = _DIFF_GIT_RE.match(line)
    if not match:
        return None
    quote, path = match.group(1), match.group(2)
    return _unquote(f'"b/{path}"')[2:] if quote else path


def _path_from_plus_line(line: str) -> Optional[str]:
    """Extract the path from a '+++ b/path' line (None for /dev/null)."""
    target = _unquote(line[4:].rstrip("\t"))
    if target == "/dev/null":
        return None
    return target[2:] if target.startswith("b/") else target


def parse_diff_hunks(diff_text: str, fallback_path: str, kind: DiffKind) -> list[DiffHunk]:
    """Parse unified diff text into hunks.

    Every hunk carries the metadata header of its file so a patch can be
    rebuilt from any subset of hunks.

    Args:
        diff_text: Raw unified diff (one or more files).
        fallback_path: Path used when a file header cannot be parsed.
        kind: Baseline the diff was computed against.

    Returns:
        Ordered list of DiffHunk objects. Binary and mode-only diffs yield none.
    """
    hunks: list[DiffHunk] = []
    if not diff_text:
        return hunks

    lines = diff_text.split("\n")
    if diff_text.endswith("\n"):
        lines.pop()

    file_header: list[str] = []
    current_path = fallback_path
    header: Optional[str] = None
    ranges: tuple[int, int, int, int] = (0, 0, 0, 0)
    body: list[str] = []

    def flush() -> None:
        if header is None:
            return
        hunks.append(
            DiffHunk(
                path=current_path,
                kind=kind,
                header=header,
                old_start=ranges[0],
                old_lines=ranges[1],
                new_start=ranges[2],
                new_lines=ranges[3],
                lines=list(body),
                content_hash=fnv1a_64("".join(line + "\n" for line in body)),
                file_header=list(file_header),
            )
        )

    for line in lines:
        if line.startswith("diff --git "):
            flush()
            header = None
            body = []
            file_header = [line]
            current_path = _path_from_diff_git(line) or fallback_path
            continue

        match = _HUNK_HEADER_RE.match(line) if line.startswith("@@") else None
        if match:
            flush()
            header = line
            body = []
            ranges = (
                int(match.group(1)),
                int(match.group(2)) if match.group(2) is not None else 1,
                int(match.group(3)),
                int(match.group(4)) if match.group(4) is not None else 1,
            )
            continue

        if header is not None:
            body.append(line)
        else:
            # Metadata before the first hunk: index, mode, rename, ---/+++ lines
            if line.startswith("+++ "):
                current_path = _path_from_plus_line(line) or current_path
            file_header.append(line)

    flush()
    return hunks


def normalize_repo_path(path: str) -> str:
    """Normalize separators and strip a leading './'."""
    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def filter_hunks_for_path(hunks: list[DiffHunk], path: str) -> list[DiffHunk]:
    """Keep only the hunks whose file matches path.

    Args:
        hunks: Parsed hunks, possibly from several files.
        path: Repository-relative path.

    Returns:
        Hunks of that path (may be empty).
    """
    normalized = normalize_repo_path(path)
    return [hunk for hunk in hunks if normalize_repo_path(hunk.path) == normalized]
