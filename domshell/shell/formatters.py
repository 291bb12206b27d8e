"""
Output Formatting

Plain-text renderings of listings, trees and node details. No colour or
terminal control codes; rendering for a particular terminal belongs to the
UI layer.
"""

from __future__ import annotations

from domshell.types import VFSEntry
from domshell.vfs.mapper import VFSMapper

EMPTY_DIRECTORY = "(empty directory)"

_BRANCH = "├── "
_LAST = "└── "
_PIPE = "│   "
_SPACE = "    "


def entry_label(entry: VFSEntry, name: str | None = None) -> str:
    """Display name with a trailing slash for directories."""
    label = name if name is not None else entry.display_name
    return f"{label}/" if entry.is_directory else label


def format_long(entry: VFSEntry, name: str | None = None) -> str:
    """`ls -l` row: type flag, padded role, name."""
    flag = "d" if entry.is_directory else "-"
    return f"{flag} {entry.role:<14} {entry_label(entry, name)}"


def format_match(entry: VFSEntry, path: str) -> str:
    """grep/find row: path and role."""
    return f"{entry_label(entry, path)} ({entry.role})"


def more_footer(shown_until: int, total: int) -> str | None:
    """Pagination footer, or None when nothing was cut off."""
    remaining = total - shown_until
    if remaining <= 0:
        return None
    return f"... {remaining} more (use --offset {shown_until})"


def render_tree(mapper: VFSMapper, node_id: str, root_label: str, depth: int) -> str:
    """
    Render the subtree below node_id down to `depth` levels.

    Entries carry a kind marker: [d] directory, [x] interactive, [-] static.
    """
    lines = [root_label]

    def _render(parent_id: str, prefix: str, level: int, branch: set[str]) -> None:
        if level >= depth:
            return
        children = mapper.list_children(parent_id)
        for i, child in enumerate(children):
            is_last = i == len(children) - 1
            lines.append(f"{prefix}{_LAST if is_last else _BRANCH}[{child.kind.marker}] {entry_label(child)}")
            if child.is_directory and child.id not in branch:
                _render(child.id, prefix + (_SPACE if is_last else _PIPE), level + 1, branch | {child.id})

    _render(node_id, "", 0, {node_id})
    return "\n".join(lines)


def format_cat(entry: VFSEntry, text: str | None, text_limit: int) -> str:
    """Detail view of one entry, with optional element text."""
    lines = [
        f"--- {entry.display_name} ---",
        f"  Role:     {entry.role or '(none)'}",
        f"  Type:     {entry.kind.value}",
        f"  AXID:     {entry.id}",
    ]
    if entry.backend_ref is not None:
        lines.append(f"  Backend:  {entry.backend_ref}")
    if entry.value:
        lines.append(f"  Value:    {entry.value}")
    if entry.is_directory:
        lines.append(f"  Children: {entry.child_count}")

    text = (text or "").strip()
    if text:
        lines.append("  Text:")
        lines.append(f"  {text[:text_limit]}")
        if len(text) > text_limit:
            lines.append(f"  ... ({len(text)} chars total)")

    return "\n".join(lines)
