"""Data models for gitpanel hunks.

Contains:
- DiffHunk: One parsed hunk with its content-addressed id
- HunkAssignment: The persisted projection of a hunk used by changelists
- DiffPayload: Diff text plus its hunks
"""

from dataclasses import dataclass, field

from pydantic import BaseModel

from gitpanel.models import DiffKind


def format_hunk_id(
    old_start: int, old_lines: int, new_start: int, new_lines: int, content_hash: str
) -> str:
    """Render the hunk identity tuple as a single string."""
    return f"{old_start}:{old_lines}:{new_start}:{new_lines}:{content_hash}"


class HunkAssignment(BaseModel):
    """A hunk as stored in a changelist assignment."""

    id: str
    header: str
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    content_hash: str
    kind: DiffKind


@dataclass
class DiffHunk:
    """One contiguous change region of a file diff."""

    path: str
    kind: DiffKind
    header: str  # The @@ ... @@ line
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    lines: list[str]  # Body lines after the header, including +/- and context
    content_hash: str
    file_header: list[str] = field(default_factory=list)  # From 'diff --git' up to first @@

    @property
    def id(self) -> str:
        return format_hunk_id(
            self.old_start, self.old_lines, self.new_start, self.new_lines, self.content_hash
        )

    @property
    def body(self) -> str:
        return "".join(line + "\n" for line in self.lines)

    def matches(self, assignment: HunkAssignment) -> bool:
        """Check that an assignment still refers to exactly this content."""
        return assignment.id == self.id and assignment.content_hash == self.content_hash

    def to_assignment(self) -> HunkAssignment:
        return HunkAssignment(
            id=self.id,
            header=self.header,
            old_start=self.old_start,
            old_lines=self.old_lines,
            new_start=self.new_start,
            new_lines=self.new_lines,
            content_hash=self.content_hash,
            kind=self.kind,
        )

    def snippet(self, max_lines: int = 5) -> str:
        """Get a snippet of the hunk content for display."""
        content_lines = [ln for ln in self.lines if ln.startswith(("+", "-"))]
        if len(content_lines) <= max_lines:
            return "\n".join(content_lines)
        remaining = len(content_lines) - max_lines
        return "\n".join(content_lines[:max_lines]) + f"\n... ({remaining} more lines)"


@dataclass
class DiffPayload:
    """Diff text of one path together with its parsed hunks."""

    text: str
    hunks: list[DiffHunk]
