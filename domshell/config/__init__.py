"""
Configuration System

Manages configuration for DOMShell with a layered approach.

Configuration Priority (highest to lowest):
    1. Programmatic (passed to ShellConfig(), or read by ShellConfig.from_file)
    2. Environment variables (DOMSHELL_* prefix)
    3. Built-in defaults

Modules:
    settings: ShellConfig class
"""

from domshell.config.settings import ShellConfig

__all__ = ["ShellConfig"]
