from html import escape
from typing import List, Set

from .schemas import Differences


def _is_blank(line: str) -> bool:
    return not line.strip()


def highlight_differences(original: str, tailored: str) -> Differences:
    """Coarse line classification between original and tailored text.

    ``added`` and ``removed`` are membership tests against the other text.
    ``modified`` pairs lines by index, so one inserted line shifts every
    later pair. A pair is skipped when its tailored line was already reported
    as added, or its original line as removed, at an earlier index.
    """
    original_lines = original.split("\n")
    tailored_lines = tailored.split("\n")
    original_set = set(original_lines)
    tailored_set = set(tailored_lines)

    added = [l for l in tailored_lines if l not in original_set and not _is_blank(l)]
    removed = [l for l in original_lines if l not in tailored_set and not _is_blank(l)]
    added_set = set(added)
    removed_set = set(removed)

    modified: List[str] = []
    added_before: Set[str] = set()
    removed_before: Set[str] = set()
    for old, new in zip(original_lines, tailored_lines):
        if (
            old != new
            and new not in added_before
            and old not in removed_before
            and not _is_blank(old)
            and not _is_blank(new)
        ):
            modified.append(f"{old} → {new}")
        if new in added_set:
            added_before.add(new)
        if old in removed_set:
            removed_before.add(old)

    return Differences(added=added, removed=removed, modified=modified)


def make_diff_html(diff: Differences) -> str:
    html = ""
    for title, mark, lines in (
        ("Added", "➕", diff.added),
        ("Removed", "➖", diff.removed),
        ("Modified", "✏️", diff.modified),
    ):
        if not lines:
            continue
        html += f"<h4>{title}</h4><ul>"
        for line in lines:
            html += f"<li>{mark} {escape(line)}</li>"
        html += "</ul>"
    if not html:
        html = "<p>No differences found.</p>"
    return html
