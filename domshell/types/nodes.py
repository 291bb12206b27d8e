"""
Accessibility Node and VFS Entry Types

Storage Models:
    - AXNode: One ingested accessibility record (immutable)

Derived Models:
    - NodeKind: Closed classification of a node (directory / interactive / static)
    - VFSEntry: One row of a directory listing, computed on demand
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _ax_value(raw: Any) -> Any:
    """Unwrap CDP's {"type": ..., "value": ...} wrapper, if present."""
    if isinstance(raw, dict):
        return raw.get("value")
    return raw


def _as_text(raw: Any) -> str | None:
    value = _ax_value(raw)
    if value is None:
        return None
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


class AXNode(BaseModel):
    """
    An accessibility record as ingested from the accessibility source.

    Attributes:
        id: Identifier, unique within one ingestion (frame-prefixed after merge)
        role: Accessibility role ("button", "RootWebArea", ...), empty if absent
        name: Accessible name, empty if absent
        description: Accessible description, empty if absent
        value: Current value (text inputs, sliders, ...), None if absent
        child_ids: Ordered ids of child records
        ignored: Whether the source marked the record as ignored
        backend_ref: Opaque handle for the element actuator, never interpreted here

    Accepts both CDP-shaped records (nodeId, role.value, childIds,
    backendDOMNodeId) and flat records (id, role, childIds, backendRef).
    """

    model_config = ConfigDict(frozen=True)

    id: str
    role: str = ""
    name: str = ""
    description: str = ""
    value: str | None = None
    child_ids: tuple[str, ...] = ()
    ignored: bool = False
    backend_ref: Any = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_raw(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        node_id = data.get("id", data.get("nodeId"))
        child_ids = data.get("child_ids", data.get("childIds")) or ()
        backend_ref = data.get("backend_ref", data.get("backendRef", data.get("backendDOMNodeId")))

        return {
            "id": str(node_id) if node_id is not None else None,
            "role": _as_text(data.get("role")) or "",
            "name": _as_text(data.get("name")) or "",
            "description": _as_text(data.get("description")) or "",
            "value": _as_text(data.get("value")),
            "child_ids": tuple(str(c) for c in child_ids),
            "ignored": bool(data.get("ignored", False)),
            "backend_ref": backend_ref,
        }

    def with_prefix(self, prefix: str) -> "AXNode":
        """Return a copy whose own and child ids carry a frame prefix."""
        return self.model_copy(update={
            "id": f"{prefix}{self.id}",
            "child_ids": tuple(f"{prefix}{c}" for c in self.child_ids),
        })

    def with_extra_children(self, child_ids: list[str]) -> "AXNode":
        """Return a copy with additional trailing child ids."""
        return self.model_copy(update={"child_ids": (*self.child_ids, *child_ids)})


class NodeKind(str, Enum):
    """Closed classification of a node, computed once per snapshot."""

    DIRECTORY = "directory"
    INTERACTIVE = "interactive"
    STATIC = "static"

    @property
    def is_directory(self) -> bool:
        return self is NodeKind.DIRECTORY

    @property
    def marker(self) -> str:
        """Single-letter prefix used by `tree`."""
        return {"directory": "d", "interactive": "x", "static": "-"}[self.value]


class VFSEntry(BaseModel):
    """
    One entry of a directory listing.

    Derived from an AXNode on every listing call and never persisted.
    display_name is unique only among the siblings of one listing.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    role: str
    kind: NodeKind
    value: str | None = None
    backend_ref: Any = None
    child_count: int = Field(default=0, ge=0)

    @property
    def is_directory(self) -> bool:
        return self.kind.is_directory
