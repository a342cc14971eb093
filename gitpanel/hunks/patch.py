"""Patch builder for gitpanel hunks.

Contains:
- build_hunk_patch: Rebuild an applicable patch from a subset of one file's hunks
"""

from gitpanel.hunks.models import DiffHunk


def build_hunk_patch(file_header: list[str], hunks: list[DiffHunk]) -> str:
    """Build a patch for selected hunks of a single file.

    Args:
        file_header: The file's metadata lines ('diff --git' up to first @@).
        hunks: Hunks of that file to include.

    Returns:
        Patch content as string
    """
    patch_lines: list[str] = list(file_header)

    # Hunks must appear in file order for git apply
    for hunk in sorted(hunks, key=lambda h: (h.old_start, h.new_start)):
        patch_lines.append(hunk.header)
        patch_lines.extend(hunk.lines)

    # git apply requires the patch to end with a newline
    return "\n".join(patch_lines) + "\n"
