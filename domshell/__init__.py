"""
DOMShell - The DOM as a Filesystem

Projects a browser page's accessibility tree onto a virtual filesystem.
Containers become directories, interactive and leaf elements become files,
and a small shell command set (ls, cd, cat, grep, find, tree, pwd) lets a
human or an LLM agent explore and act on the page.

Example:
    >>> from domshell import ShellKernel
    >>> from domshell.providers.cdp import CDPBrowser
    >>> browser = CDPBrowser()
    >>> kernel = ShellKernel(source=browser, actuator=browser)
    >>> print(await kernel.execute("attach"))
    >>> print(await kernel.execute("ls -l"))

Main Classes:
    ShellKernel: Working-directory state and command set
    ChangeDetector: Refresh-on-navigation/mutation
    Ingestor: Accessibility tree ingestion and frame merging
    VFSMapper: Node classification, naming and listing
    ShellConfig: Configuration management
"""

__version__ = "0.1.0"

# Public API - lazy imports to avoid loading optional dependencies
def __getattr__(name: str):
    """Lazy import public API components."""

    if name == "ShellKernel":
        from domshell.shell.kernel import ShellKernel
        return ShellKernel

    if name == "ChangeDetector":
        from domshell.shell.detector import ChangeDetector
        return ChangeDetector

    if name == "Ingestor":
        from domshell.ingestion.ingestor import Ingestor
        return Ingestor

    if name == "VFSMapper":
        from domshell.vfs.mapper import VFSMapper
        return VFSMapper

    if name == "ShellConfig":
        from domshell.config.settings import ShellConfig
        return ShellConfig

    # Types
    if name in ("AXNode", "VFSEntry", "NodeKind", "ShellState"):
        from domshell import types
        return getattr(types, name)

    raise AttributeError(f"module 'domshell' has no attribute {name!r}")


__all__ = [
    # Main classes
    "ShellKernel",
    "ChangeDetector",
    "Ingestor",
    "VFSMapper",
    "ShellConfig",

    # Types
    "AXNode",
    "VFSEntry",
    "NodeKind",
    "ShellState",

    # Version
    "__version__",
]
