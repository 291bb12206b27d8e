"""
Change Detector

Keeps the snapshot in step with the live page.

Signals arrive from the element actuator layer and are queued; they are
applied right before the next command runs, so re-ingestion never
interleaves with a command.

    navigation  page replaced: refresh, CWD back to the root
    mutation    same document changed: refresh, then replay the previous
                path by display name; fall back to the root if any
                segment is gone

A pending navigation supersedes a pending mutation. Signals received while
the kernel is detached are dropped.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from domshell.providers.base import ChangeSignal

if TYPE_CHECKING:
    from domshell.providers.base import ElementActuator
    from domshell.shell.kernel import ShellKernel

logger = logging.getLogger(__name__)


class ChangeDetector:
    """Refreshes a ShellKernel in response to page change signals."""

    def __init__(self, kernel: "ShellKernel", actuator: "ElementActuator | None" = None) -> None:
        self._kernel = kernel
        self.pending: ChangeSignal | None = None

        actuator = actuator or kernel.actuator
        if actuator is not None:
            actuator.subscribe(self.notify)
        kernel.add_hook(self.apply_pending)

    def notify(self, signal: ChangeSignal) -> None:
        """Queue a signal; navigation wins over mutation."""
        if not self._kernel.is_attached:
            logger.debug(f"Dropping {signal.value} signal while detached")
            return
        if self.pending is ChangeSignal.NAVIGATION:
            return
        self.pending = signal

    async def apply_pending(self) -> None:
        """Apply the queued signal, if any."""
        signal, self.pending = self.pending, None
        if signal is None or not self._kernel.is_attached:
            return

        if signal is ChangeSignal.NAVIGATION:
            await self.on_navigation()
        else:
            await self.on_mutation()

    async def on_navigation(self) -> None:
        logger.debug("Navigation detected, refreshing")
        await self._kernel.refresh()

    async def on_mutation(self) -> None:
        previous = list(self._kernel.state.cwd_names)
        await self._kernel.refresh()
        if len(previous) > 1 and not self._kernel.restore_path(previous):
            logger.debug(f"Path /{'/'.join(previous[1:])} is gone after mutation, back at root")
