"""
Filesystem Navigation

Shell interface over the virtual filesystem of a page.

Modules:
    kernel: ShellKernel - working directory, path resolution, command set
    detector: ChangeDetector - refresh on navigation/mutation signals
    parsing: Command string parsing
    formatters: Plain-text output formatting

Commands:
    attach, detach, refresh, ls, cd, pwd, cat, grep, find, tree,
    click, focus, type, whoami, env, export, help
"""

from domshell.shell.detector import ChangeDetector
from domshell.shell.kernel import KernelStatus, ShellKernel, TreeSnapshot

__all__ = ["ShellKernel", "ChangeDetector", "KernelStatus", "TreeSnapshot"]
