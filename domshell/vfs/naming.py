"""
Display Name Generation

Deterministic, human-readable file names for accessibility nodes.

Algorithm:
    1. Sanitize the accessible name: lowercase, keep [a-z0-9_-] and
       whitespace, trim, collapse whitespace runs to "_", truncate.
    2. Empty? Sanitize the description instead.
    3. Still empty? Use the bare role string.
    4. Append the role suffix ("_btn", "_link", ...), if the role has one.
    5. An empty role falls back to the raw node id (frame prefix removed),
       so names are never empty.

Sibling collisions are resolved afterwards by deduplicate().

Example:
    >>> generate_name(AXNode(id="7", role="button", name="Sign In!"))
    'sign_in_btn'
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from domshell.types import AXNode, VFSEntry

DEFAULT_MAX_LENGTH = 40

ROLE_SUFFIXES: dict[str, str] = {
    "button": "_btn",
    "link": "_link",
    "textbox": "_input",
    "checkbox": "_chk",
    "radio": "_radio",
    "combobox": "_select",
    "menuitem": "_item",
    "tab": "_tab",
    "slider": "_slider",
    "searchbox": "_search",
    "switch": "_switch",
    "img": "_img",
    "image": "_img",
    "heading": "_heading",
}

_DISALLOWED = re.compile(r"[^a-z0-9\s_-]")
_WHITESPACE = re.compile(r"\s+")
_FRAME_PREFIX = re.compile(r"^\d+:")


def sanitize(text: str, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Reduce free text to a filename-safe identifier (may be empty)."""
    cleaned = _DISALLOWED.sub("", text.lower()).strip()
    return _WHITESPACE.sub("_", cleaned)[:max_length]


def generate_name(node: AXNode, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Return the base display name of a node; never empty."""
    base = sanitize(node.name, max_length) or sanitize(node.description, max_length)
    if not base:
        base = node.role or _FRAME_PREFIX.sub("", node.id) or node.id
    return base + ROLE_SUFFIXES.get(node.role, "")


def deduplicate(entries: Iterable[VFSEntry]) -> list[VFSEntry]:
    """
    Make display names unique within one listing.

    Single pass in listing order: the first occurrence of a name is kept,
    later occurrences become name_2, name_3, ... in order of appearance.
    """
    seen: dict[str, int] = {}
    result: list[VFSEntry] = []
    for entry in entries:
        count = seen.get(entry.display_name, 0) + 1
        seen[entry.display_name] = count
        if count > 1:
            entry = entry.model_copy(update={"display_name": f"{entry.display_name}_{count}"})
        result.append(entry)
    return result
