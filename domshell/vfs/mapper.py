"""
VFS Mapper

Projects a NodeMap onto directories and files.

Classification (computed once per node per mapper):
    DIRECTORY    role is a container role, or the node has children and
                 is not interactive
    INTERACTIVE  role is an interactive role (button, link, textbox, ...)
    STATIC       everything else (text, images, headings without children)

Flattening:
    A child that is an unnamed "generic" with exactly one child is a pure
    layout wrapper. When it is listed, its child takes its place. Each
    listing call elides one level; a chain of wrappers collapses because
    every nested listing applies the rule again.

A mapper is bound to one NodeMap and is discarded with it on refresh.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping

from domshell.types import AXNode, NodeKind, VFSEntry
from domshell.vfs.naming import DEFAULT_MAX_LENGTH, deduplicate, generate_name

CONTAINER_ROLES = frozenset({
    "group",
    "navigation",
    "form",
    "section",
    "main",
    "complementary",
    "banner",
    "contentinfo",
    "region",
    "article",
    "list",
    "listitem",
    "tree",
    "treeitem",
    "tablist",
    "tabpanel",
    "dialog",
    "menu",
    "menubar",
    "toolbar",
    "table",
    "row",
    "rowgroup",
    "grid",
    "document",
    "application",
    "generic",
    "WebArea",
    "RootWebArea",
})

INTERACTIVE_ROLES = frozenset({
    "button",
    "link",
    "textbox",
    "checkbox",
    "radio",
    "combobox",
    "menuitem",
    "menuitemcheckbox",
    "menuitemradio",
    "option",
    "switch",
    "tab",
    "slider",
    "spinbutton",
    "searchbox",
})

# Presentational records that never appear in a listing
SKIPPED_ROLES = frozenset({"none", "Ignored"})


def classify(node: AXNode) -> NodeKind:
    """Classify a node as directory, interactive file or static file."""
    if node.role in CONTAINER_ROLES:
        return NodeKind.DIRECTORY
    if node.role in INTERACTIVE_ROLES:
        return NodeKind.INTERACTIVE
    if node.child_ids:
        return NodeKind.DIRECTORY
    return NodeKind.STATIC


def is_wrapper(node: AXNode) -> bool:
    """True for unnamed generic nodes with exactly one child."""
    return node.role == "generic" and not node.name and len(node.child_ids) == 1


class VFSMapper:
    """Listings, lookups and traversal over one NodeMap."""

    def __init__(
        self,
        node_map: Mapping[str, AXNode],
        *,
        name_max_length: int = DEFAULT_MAX_LENGTH,
    ) -> None:
        self._nodes = node_map
        self._name_max_length = name_max_length
        self._kinds: dict[str, NodeKind] = {}

    def get(self, node_id: str) -> AXNode | None:
        node = self._nodes.get(node_id)
        if node is None or node.ignored:
            return None
        return node

    def __contains__(self, node_id: object) -> bool:
        return isinstance(node_id, str) and self.get(node_id) is not None

    def __len__(self) -> int:
        return len(self._nodes)

    def kind(self, node: AXNode) -> NodeKind:
        if node.id not in self._kinds:
            self._kinds[node.id] = classify(node)
        return self._kinds[node.id]

    def to_entry(self, node: AXNode) -> VFSEntry:
        """Build the (not yet deduplicated) listing entry of a node."""
        return VFSEntry(
            id=node.id,
            display_name=generate_name(node, self._name_max_length),
            role=node.role,
            kind=self.kind(node),
            value=node.value,
            backend_ref=node.backend_ref,
            child_count=sum(1 for child_id in node.child_ids if child_id in self),
        )

    def _listed_node(self, child: AXNode) -> AXNode | None:
        if child.role in SKIPPED_ROLES:
            return None
        if self.kind(child).is_directory and is_wrapper(child):
            grandchild = self.get(child.child_ids[0])
            if grandchild is not None:
                return None if grandchild.role in SKIPPED_ROLES else grandchild
        return child

    def list_children(self, parent_id: str) -> list[VFSEntry]:
        """
        List a node's children in document order.

        Unresolvable and ignored children are dropped, wrappers are
        flattened one level, and names are deduplicated. An unknown parent
        lists as empty.
        """
        parent = self.get(parent_id)
        if parent is None:
            return []

        entries: list[VFSEntry] = []
        for child_id in parent.child_ids:
            child = self.get(child_id)
            if child is None:
                continue
            listed = self._listed_node(child)
            if listed is not None:
                entries.append(self.to_entry(listed))
        return deduplicate(entries)

    def find_child_by_name(self, parent_id: str, name: str) -> VFSEntry | None:
        """Exact-match lookup of a display name in a listing."""
        for entry in self.list_children(parent_id):
            if entry.display_name == name:
                return entry
        return None

    def walk(
        self,
        parent_id: str,
        max_depth: int | None = None,
    ) -> Iterator[tuple[list[str], VFSEntry]]:
        """
        Depth-first, pre-order traversal below a node.

        Yields (path, entry) where path is the list of display names from
        parent_id down to and including the entry. A node already on the
        current branch is not descended into again.
        """

        def _walk(node_id: str, prefix: list[str], depth: int, branch: set[str]) -> Iterator[tuple[list[str], VFSEntry]]:
            if max_depth is not None and depth >= max_depth:
                return
            for entry in self.list_children(node_id):
                path = [*prefix, entry.display_name]
                yield path, entry
                if entry.is_directory and entry.id not in branch:
                    yield from _walk(entry.id, path, depth + 1, branch | {entry.id})

        yield from _walk(parent_id, [], 0, {parent_id})
