"""
Abstract Provider Interfaces

Base classes for the two external collaborators of the shell: the
accessibility source the tree is ingested from, and the element actuator
that acts on the live document.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import Any


class ChangeSignal(str, Enum):
    """Page change reported by the actuator layer."""

    NAVIGATION = "navigation"
    MUTATION = "mutation"


SignalListener = Callable[[ChangeSignal], None]


class AccessibilitySource(ABC):
    """
    Abstract interface for accessibility tree sources.

    Lifecycle:
        await source.connect(target)
        nodes = await source.get_full_tree()
        for frame in await source.get_frame_tree():
            frame_nodes = await source.get_full_tree(frame)
        await source.disconnect()

    Raw records are dicts carrying at least an id; see AXNode for the
    accepted shapes.
    """

    @abstractmethod
    async def connect(self, target: str | None) -> str:
        """Bind to a target; returns the id of the target actually bound."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Release the current target. No-op when unbound."""
        ...

    @abstractmethod
    async def get_full_tree(self, frame: str | None = None) -> list[dict[str, Any]]:
        """Return the ordered raw records of the main document or one sub-frame."""
        ...

    @abstractmethod
    async def get_frame_tree(self) -> list[str]:
        """Return the sub-frame targets of the bound page, excluding the main frame."""
        ...


class ElementActuator(ABC):
    """
    Abstract interface for acting on the live document.

    Backend references are passed through unmodified from VFSEntry.backend_ref.
    Implementations raise StaleReference for references the document no
    longer knows.
    """

    @abstractmethod
    async def click(self, ref: Any) -> None:
        """Click the referenced element."""
        ...

    @abstractmethod
    async def focus(self, ref: Any) -> None:
        """Focus the referenced element."""
        ...

    @abstractmethod
    async def type_text(self, text: str) -> None:
        """Type text into the focused element."""
        ...

    @abstractmethod
    async def read_text(self, ref: Any) -> str:
        """Return the text content of the referenced element."""
        ...

    @abstractmethod
    async def whoami(self) -> str:
        """Describe the identity of the current page session as plain text."""
        ...

    @abstractmethod
    def subscribe(self, listener: SignalListener) -> None:
        """Register a listener for navigation and mutation signals."""
        ...
