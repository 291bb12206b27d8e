"""
Type Definitions

Pydantic models and dataclasses shared across DOMShell.

Modules:
    nodes: AXNode, NodeKind, VFSEntry
    state: ShellState
"""

from domshell.types.nodes import AXNode, NodeKind, VFSEntry
from domshell.types.state import ShellState

__all__ = [
    "AXNode",
    "NodeKind",
    "VFSEntry",
    "ShellState",
]
