"""
Accessibility Sources and Element Actuators

Interfaces for the two external collaborators of the shell, plus the
adapters shipped with the package.

Modules:
    base: Abstract interfaces (AccessibilitySource, ElementActuator) and ChangeSignal
    cdp: Chrome DevTools Protocol adapter (websockets + httpx)
    snapshot: Static JSON snapshot adapter for offline use and tests

Design:
    - One adapter may implement both interfaces (CDPBrowser, SnapshotBrowser)
    - cdp is imported lazily so the core works without network dependencies loaded

Example:
    >>> from domshell.providers import AccessibilitySource, ElementActuator
    >>> from domshell.providers.cdp import CDPBrowser
    >>> from domshell.providers.snapshot import SnapshotBrowser
"""

from domshell.providers.base import (
    AccessibilitySource,
    ChangeSignal,
    ElementActuator,
    SignalListener,
)

__all__ = ["AccessibilitySource", "ElementActuator", "ChangeSignal", "SignalListener"]
