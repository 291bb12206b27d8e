"""
Accessibility Ingestor

Fetches the accessibility tree of the main document and every sub-frame,
merges them into one id space and builds the NodeMap the VFS is computed
from.

Id merging:
    Every id is prefixed with the ordinal of the frame it came from
    ("0:" for the main document, "1:", "2:", ... for sub-frames in
    frame-tree order). Child id references get the same prefix, so ids
    stay unique across frames without changing tree shape.

Frame grafting:
    Sub-frame documents are disconnected trees. The root of each one is
    appended as a trailing child of the main document root, so frames
    show up as directories at the top level.

Example:
    >>> ingestor = Ingestor(source)
    >>> await ingestor.attach("page-1")
    >>> nodes = await ingestor.fetch_tree()
    >>> node_map = build_node_map(nodes)
    >>> root = find_root(node_map)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from domshell.errors import IngestionFailure
from domshell.types import AXNode

if TYPE_CHECKING:
    from domshell.providers.base import AccessibilitySource

logger = logging.getLogger(__name__)

ROOT_ROLES = frozenset({"RootWebArea", "WebArea"})
"""Roles marking a top-level document area"""

NodeMap = dict[str, AXNode]


# -----------------------------------------------------------------------------
# Node Map Construction
# -----------------------------------------------------------------------------


def parse_nodes(raw_nodes: Iterable[Mapping[str, Any] | AXNode]) -> list[AXNode]:
    """Parse raw records into AXNodes, raising IngestionFailure on malformed input."""
    nodes: list[AXNode] = []
    for raw in raw_nodes:
        if isinstance(raw, AXNode):
            nodes.append(raw)
            continue
        try:
            nodes.append(AXNode.model_validate(dict(raw)))
        except ValidationError as e:
            raise IngestionFailure(f"Malformed accessibility record: {e.errors()[0]['msg']}") from e
    return nodes


def build_node_map(raw_nodes: Iterable[Mapping[str, Any] | AXNode]) -> NodeMap:
    """
    Build the id -> AXNode map, dropping ignored records.

    Children that point at dropped records are left as-is; they simply
    fail to resolve during traversal.
    """
    node_map: NodeMap = {}
    for node in parse_nodes(raw_nodes):
        if not node.ignored:
            node_map[node.id] = node
    return node_map


def find_root(node_map: Mapping[str, AXNode]) -> AXNode | None:
    """
    Return the tree root.

    The first node (in ingestion order) with a top-level document role,
    otherwise the first node. With several document areas the first one
    found wins.
    """
    for node in node_map.values():
        if node.role in ROOT_ROLES:
            return node
    return next(iter(node_map.values()), None)


def merge_frames(main: list[AXNode], frames: list[list[AXNode]]) -> list[AXNode]:
    """
    Merge the main document and sub-frame node lists into one id space.

    Returns the prefixed nodes in ingestion order (main document first),
    with each sub-frame root grafted under the main document root.
    """
    merged = [node.with_prefix("0:") for node in main]
    if not merged:
        return merged

    frame_roots: list[str] = []
    for ordinal, frame_nodes in enumerate(frames, start=1):
        prefixed = [node.with_prefix(f"{ordinal}:") for node in frame_nodes]
        frame_root = find_root({n.id: n for n in prefixed if not n.ignored})
        if frame_root is None:
            continue
        frame_roots.append(frame_root.id)
        merged.extend(prefixed)

    if frame_roots:
        main_root = find_root({n.id: n for n in merged if not n.ignored and n.id.startswith("0:")})
        if main_root is not None:
            merged = [
                n.with_extra_children(frame_roots) if n.id == main_root.id else n
                for n in merged
            ]
    return merged


# -----------------------------------------------------------------------------
# Ingestor
# -----------------------------------------------------------------------------


class Ingestor:
    """
    Binds an accessibility source to one target and fetches merged trees.

    Attributes:
        target: Id of the bound target, or None when unbound
    """

    def __init__(self, source: "AccessibilitySource") -> None:
        self._source = source
        self.target: str | None = None

    @property
    def is_bound(self) -> bool:
        return self.target is not None

    async def attach(self, target: str | None = None) -> str:
        """
        Bind to a target.

        Idempotent for the current target; a different target unbinds the
        current one first.

        Raises:
            IngestionFailure: If the accessibility source cannot be reached
        """
        if self.is_bound and (target is None or target == self.target):
            return self.target  # type: ignore[return-value]

        if self.is_bound:
            await self.detach()

        try:
            self.target = await self._source.connect(target)
        except Exception as e:
            self.target = None
            raise IngestionFailure(f"Cannot reach accessibility source: {e}") from e

        logger.debug(f"Ingestor bound to target {self.target}")
        return self.target

    async def detach(self) -> None:
        """Unbind from the current target. No-op when unbound."""
        if not self.is_bound:
            return
        self.target = None
        await self._source.disconnect()

    async def fetch_tree(self) -> list[AXNode]:
        """
        Fetch and merge the main document and all sub-frame trees.

        A sub-frame that cannot be fetched is skipped; failing to fetch the
        main document, or getting an empty one, is an IngestionFailure.
        """
        if not self.is_bound:
            raise IngestionFailure("No target bound. Run 'attach' first.")

        try:
            main_raw = await self._source.get_full_tree()
            frame_ids = await self._source.get_frame_tree()
        except Exception as e:
            raise IngestionFailure(f"Cannot fetch accessibility tree: {e}") from e

        main = parse_nodes(main_raw)
        if not main:
            raise IngestionFailure("Accessibility tree is empty")

        frames: list[list[AXNode]] = []
        for frame_id in frame_ids:
            try:
                frames.append(parse_nodes(await self._source.get_full_tree(frame_id)))
            except Exception as e:
                logger.warning(f"Skipping frame {frame_id}: {e}")

        merged = merge_frames(main, frames)
        logger.debug(f"Fetched {len(merged)} AX nodes from {1 + len(frames)} frame(s)")
        return merged

    async def ingest(self) -> tuple[NodeMap, str]:
        """Fetch, merge and map the tree; returns (node_map, root_id)."""
        node_map = build_node_map(await self.fetch_tree())
        root = find_root(node_map)
        if root is None:
            raise IngestionFailure("Accessibility tree has no visible nodes")
        return node_map, root.id
