"""
Accessibility Ingestion

Turns raw accessibility records into the NodeMap the virtual filesystem is
computed from.

Steps:
    1. Bind to a target (Ingestor.attach)
    2. Fetch the main document and sub-frame trees (Ingestor.fetch_tree)
    3. Merge frames into one id space with ordinal prefixes (merge_frames)
    4. Drop ignored records (build_node_map)
    5. Pick the root (find_root)

Modules:
    ingestor: Ingestor class and node map helpers
"""

from domshell.ingestion.ingestor import (
    ROOT_ROLES,
    Ingestor,
    NodeMap,
    build_node_map,
    find_root,
    merge_frames,
    parse_nodes,
)

__all__ = [
    "Ingestor",
    "NodeMap",
    "ROOT_ROLES",
    "build_node_map",
    "find_root",
    "merge_frames",
    "parse_nodes",
]
