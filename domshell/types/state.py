"""
Shell State

Working-directory and environment state owned by the ShellKernel.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ShellState:
    """
    Mutable shell state.

    cwd holds AXNode ids from the root to the current node; cwd_names holds
    the display names of the same path, with "/" standing for the root.
    Both lists always have the same length.
    """

    cwd: list[str] = field(default_factory=list)
    cwd_names: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)

    @property
    def current_id(self) -> str | None:
        return self.cwd[-1] if self.cwd else None

    @property
    def at_root(self) -> bool:
        return len(self.cwd) <= 1

    def reset(self, root_id: str) -> None:
        """Point the working directory at the root."""
        self.cwd = [root_id]
        self.cwd_names = ["/"]

    def push(self, node_id: str, name: str) -> None:
        self.cwd.append(node_id)
        self.cwd_names.append(name)

    def pop(self) -> None:
        """Go up one level; no-op at the root."""
        if len(self.cwd) > 1:
            self.cwd.pop()
            self.cwd_names.pop()

    def clear(self) -> None:
        self.cwd = []
        self.cwd_names = []
