"""
ShellConfig - Configuration Management

Sensible defaults with full override capability.

Example:
    >>> # Use defaults (reads from environment)
    >>> kernel = ShellKernel(source, actuator)

    >>> # Explicit configuration
    >>> config = ShellConfig(cdp_port=9333, tree_default_depth=3)
    >>> kernel = ShellKernel(source, actuator, config=config)

    >>> # From config file
    >>> config = ShellConfig.from_file("./domshell.toml")

Environment Variables:
    DOMSHELL_CDP_HOST - Host of the Chrome remote debugging endpoint
    DOMSHELL_CDP_PORT - Port of the Chrome remote debugging endpoint
    DOMSHELL_TARGET - Default page target id used by `attach`
    DOMSHELL_COMMAND_TIMEOUT - Seconds to wait for a single CDP round-trip
    DOMSHELL_TREE_DEPTH - Default depth for `tree`
    DOMSHELL_LOG_LEVEL - Logging level for the CLI and MCP entry points
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

_DEFAULT_ENV = {
    "SHELL": "/bin/domshell",
    "TERM": "xterm-256color",
    "PS1": "agent@shell:$PWD$ ",
}


class ShellConfig:
    """Configuration for DOMShell."""

    # === Browser Connection ===

    cdp_host: str = "127.0.0.1"
    """Host of the Chrome remote debugging endpoint"""

    cdp_port: int = 9222
    """Port of the Chrome remote debugging endpoint"""

    target: str | None = None
    """Page target id to attach to (None = first page target)"""

    command_timeout: float = 30.0
    """Seconds to wait for a single CDP command before failing"""

    # === Shell Behaviour ===

    tree_default_depth: int = 2
    """Depth used by `tree` when none is given"""

    name_max_length: int = 40
    """Maximum length of the sanitized base of a display name"""

    cat_text_limit: int = 500
    """Characters of element text shown by `cat`"""

    log_level: str = "WARNING"
    """Logging level used by the CLI and MCP entry points"""

    env: dict[str, str]
    """Initial shell environment (`env` / `export`)"""

    def __init__(self, **kwargs: Any) -> None:
        """
        Initialize configuration.

        Args:
            **kwargs: Override any configuration option
        """
        self.env = dict(_DEFAULT_ENV)

        # Load from environment first
        self._load_from_env()

        # Apply explicit overrides
        for key, value in kwargs.items():
            if key == "env":
                self.env.update(value)
            elif hasattr(self, key):
                setattr(self, key, value)
            else:
                raise ValueError(f"Unknown configuration option: {key}")

    def _load_from_env(self) -> None:
        """Load configuration from environment variables."""
        if host := os.getenv("DOMSHELL_CDP_HOST"):
            self.cdp_host = host
        if port := os.getenv("DOMSHELL_CDP_PORT"):
            self.cdp_port = int(port)
        if target := os.getenv("DOMSHELL_TARGET"):
            self.target = target
        if timeout := os.getenv("DOMSHELL_COMMAND_TIMEOUT"):
            self.command_timeout = float(timeout)
        if depth := os.getenv("DOMSHELL_TREE_DEPTH"):
            self.tree_default_depth = int(depth)
        if level := os.getenv("DOMSHELL_LOG_LEVEL"):
            self.log_level = level.upper()

    @classmethod
    def from_file(cls, path: str | Path) -> "ShellConfig":
        """
        Load configuration from TOML file.

        Nested sections are flattened onto option names; the [env] table
        seeds the shell environment.

        Example TOML:
            [cdp]
            host = "127.0.0.1"
            port = 9222
            command_timeout = 30.0

            [shell]
            tree_default_depth = 3
            cat_text_limit = 800

            [env]
            PS1 = "me@page:$PWD$ "

        Args:
            path: Path to TOML configuration file

        Returns:
            ShellConfig instance with values from file

        Raises:
            FileNotFoundError: If config file doesn't exist
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "rb") as f:
            data = tomllib.load(f)

        flat_config: dict[str, Any] = {}

        # Map section names to config key prefixes
        section_mapping = {
            "cdp": "cdp_",
            "shell": "",
        }

        for section, prefix in section_mapping.items():
            if section in data:
                for key, value in data[section].items():
                    # command_timeout and target live in [cdp] without the prefix
                    if section == "cdp" and key in ("command_timeout", "target"):
                        flat_config[key] = value
                    else:
                        flat_config[f"{prefix}{key}"] = value

        if "env" in data:
            flat_config["env"] = {str(k): str(v) for k, v in data["env"].items()}

        # Also support flat top-level keys
        for key, value in data.items():
            if key not in section_mapping and key != "env" and not isinstance(value, dict):
                flat_config[key] = value

        return cls(**flat_config)

    @classmethod
    def from_env(cls) -> "ShellConfig":
        """Load configuration from environment variables only."""
        return cls()

    def to_file(self, path: str | Path) -> None:
        """
        Save configuration to TOML file.

        Args:
            path: Path to write TOML configuration file
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        sections: dict[str, dict[str, str | int | float | None]] = {
            "cdp": {
                "host": self.cdp_host,
                "port": self.cdp_port,
                "target": self.target,
                "command_timeout": self.command_timeout,
            },
            "shell": {
                "tree_default_depth": self.tree_default_depth,
                "name_max_length": self.name_max_length,
                "cat_text_limit": self.cat_text_limit,
                "log_level": self.log_level,
            },
            "env": dict(self.env),
        }

        # Build TOML string manually (avoids extra dependency)
        lines = ["# DOMShell Configuration", ""]

        for section_name, section_values in sections.items():
            lines.append(f"[{section_name}]")
            for key, value in section_values.items():
                if isinstance(value, str):
                    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
                    lines.append(f'{key} = "{escaped}"')
                elif isinstance(value, bool):
                    lines.append(f"{key} = {str(value).lower()}")
                elif isinstance(value, (int, float)):
                    lines.append(f"{key} = {value}")
            lines.append("")

        path.write_text("\n".join(lines))

    def with_overrides(self, **kwargs: Any) -> "ShellConfig":
        """Return new config with specified overrides."""
        new_config = ShellConfig.__new__(ShellConfig)
        for key in dir(self):
            if not key.startswith("_") and not callable(getattr(self, key)):
                setattr(new_config, key, getattr(self, key))
        new_config.env = dict(self.env)
        for key, value in kwargs.items():
            setattr(new_config, key, value)
        return new_config
