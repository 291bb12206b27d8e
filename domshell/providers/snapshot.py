"""
Snapshot Provider

Serves accessibility trees from in-memory records or JSON files instead of a
live browser. Used for offline exploration (`domshell repl --snapshot`) and
in tests.

Snapshot file format:
    {
        "target": "page-1",
        "url": "https://example.com/",
        "nodes": [{"nodeId": "1", "role": {"value": "RootWebArea"}, ...}, ...],
        "frames": {"frame-2": [...], ...}
    }

A bare JSON list is accepted as the node list of a frameless page.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from domshell.errors import StaleReference
from domshell.providers.base import (
    AccessibilitySource,
    ChangeSignal,
    ElementActuator,
    SignalListener,
)

logger = logging.getLogger(__name__)


class SnapshotBrowser(AccessibilitySource, ElementActuator):
    """
    Accessibility source and actuator backed by static records.

    Actions are recorded in `actions` rather than performed. References are
    checked against the backend refs of the currently loaded records, so a
    reference taken before `load()` replaced the page raises StaleReference.
    """

    def __init__(
        self,
        nodes: list[dict[str, Any]] | None = None,
        frames: dict[str, list[dict[str, Any]]] | None = None,
        *,
        target: str = "snapshot",
        url: str = "about:blank",
    ) -> None:
        self._nodes: list[dict[str, Any]] = list(nodes or [])
        self._frames: dict[str, list[dict[str, Any]]] = dict(frames or {})
        self._target = target
        self._url = url
        self._bound: str | None = None
        self._listeners: list[SignalListener] = []
        self.actions: list[tuple[str, Any]] = []
        self.reachable = True

    @classmethod
    def from_file(cls, path: str | Path) -> "SnapshotBrowser":
        """Load a snapshot JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Snapshot file not found: {path}")

        data = json.loads(path.read_text())
        if isinstance(data, list):
            return cls(data, target=path.stem)
        return cls(
            data.get("nodes", []),
            data.get("frames", {}),
            target=data.get("target", path.stem),
            url=data.get("url", "about:blank"),
        )

    # -------------------------------------------------------------------------
    # Page Control
    # -------------------------------------------------------------------------

    def load(
        self,
        nodes: list[dict[str, Any]],
        frames: dict[str, list[dict[str, Any]]] | None = None,
        *,
        signal: ChangeSignal | None = ChangeSignal.NAVIGATION,
    ) -> None:
        """Replace the page content, optionally emitting a change signal."""
        self._nodes = list(nodes)
        self._frames = dict(frames or {})
        if signal is not None:
            self.emit(signal)

    def emit(self, signal: ChangeSignal) -> None:
        """Deliver a change signal to every subscriber."""
        logger.debug(f"Snapshot emitting {signal.value} signal")
        for listener in list(self._listeners):
            listener(signal)

    # -------------------------------------------------------------------------
    # AccessibilitySource
    # -------------------------------------------------------------------------

    async def connect(self, target: str | None) -> str:
        if not self.reachable:
            raise ConnectionError("Snapshot source is unreachable")
        self._bound = target or self._target
        return self._bound

    async def disconnect(self) -> None:
        self._bound = None

    async def get_full_tree(self, frame: str | None = None) -> list[dict[str, Any]]:
        if self._bound is None:
            raise ConnectionError("Snapshot source is not connected")
        if frame is None:
            return list(self._nodes)
        if frame not in self._frames:
            raise KeyError(f"Unknown frame: {frame}")
        return list(self._frames[frame])

    async def get_frame_tree(self) -> list[str]:
        if self._bound is None:
            raise ConnectionError("Snapshot source is not connected")
        return list(self._frames)

    # -------------------------------------------------------------------------
    # ElementActuator
    # -------------------------------------------------------------------------

    def _record(self, ref: Any) -> dict[str, Any]:
        for record in [*self._nodes, *(n for nodes in self._frames.values() for n in nodes)]:
            backend = record.get("backendDOMNodeId", record.get("backendRef", record.get("backend_ref")))
            if backend is not None and backend == ref:
                return record
        raise StaleReference(f"No node with backend reference {ref!r} in the current document")

    async def click(self, ref: Any) -> None:
        self._record(ref)
        self.actions.append(("click", ref))

    async def focus(self, ref: Any) -> None:
        self._record(ref)
        self.actions.append(("focus", ref))

    async def type_text(self, text: str) -> None:
        self.actions.append(("type", text))

    async def read_text(self, ref: Any) -> str:
        record = self._record(ref)
        for key in ("text", "value", "name"):
            raw = record.get(key)
            if isinstance(raw, dict):
                raw = raw.get("value")
            if raw:
                return str(raw)
        return ""

    async def whoami(self) -> str:
        return f"URL: {self._url}\nTarget: {self._bound or self._target}"

    def subscribe(self, listener: SignalListener) -> None:
        self._listeners.append(listener)
