"""
DOMShell MCP Server

MCP server that executes shell commands against a page.

Each common command has a typed tool (domshell_ls, domshell_cd, ...) that
builds the command string; domshell_execute takes any command verbatim.
Commands are the plain-text shell surface of ShellKernel:
    attach
    ls -l
    cd main/form
    find --type button
    cat submit_btn
    click submit_btn

The kernel (and its working directory) persists across tool calls, so an
agent can navigate step by step. Security tiering of commands is left to
whatever sits in front of this server.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from mcp.server.fastmcp import FastMCP

from domshell.config import ShellConfig

# Load .env file for DOMSHELL_* settings
load_dotenv()

logger = logging.getLogger(__name__)

_kernel: Any = None


def get_kernel() -> Any:
    """Get the ShellKernel instance."""
    if _kernel is None:
        raise RuntimeError("ShellKernel not initialized. Call init_kernel() first.")
    return _kernel


def init_kernel(config: ShellConfig | None = None, snapshot: str | Path | None = None) -> Any:
    """
    Create the ShellKernel and its ChangeDetector.

    Uses a live Chrome via CDP, or a JSON snapshot when one is given.
    """
    global _kernel
    from domshell.shell import ChangeDetector, ShellKernel

    config = config or ShellConfig()
    if snapshot is not None:
        from domshell.providers.snapshot import SnapshotBrowser
        browser: Any = SnapshotBrowser.from_file(snapshot)
    else:
        from domshell.providers.cdp import CDPBrowser
        browser = CDPBrowser.from_config(config)

    _kernel = ShellKernel(browser, browser, config=config)
    ChangeDetector(_kernel)
    return _kernel


async def execute_command(command: str) -> str:
    """Execute a shell command on the shared kernel."""
    try:
        kernel = get_kernel()
    except RuntimeError as e:
        return f"Error: {e}"
    return await kernel.execute(command)


# =============================================================================
# MCP Server
# =============================================================================

def create_server(name: str = "domshell") -> FastMCP:
    """Create the MCP server with one tool per shell command plus domshell_execute."""
    mcp = FastMCP(name)

    # -------------------------------------------------------------------------
    # Read commands
    # -------------------------------------------------------------------------

    @mcp.tool()
    async def domshell_attach(target: str | None = None) -> str:
        """
        Connect to a browser page. Must be called before any other command.

        Args:
            target: Page target id (defaults to the configured or first page)
        """
        return await execute_command(f"attach {target}" if target else "attach")

    @mcp.tool()
    async def domshell_ls(options: str = "") -> str:
        """
        List the current directory. Containers are directories, interactive
        and text elements are files.

        Args:
            options: Flags such as '-l', '-r', '-n 10', '--offset 10',
                '--type button' or '--count'
        """
        return await execute_command(f"ls {options}".strip())

    @mcp.tool()
    async def domshell_cd(path: str) -> str:
        """
        Change directory. Use '..' to go up, '/' for the root, or 'main/form'
        for several levels at once.

        Args:
            path: Directory path to navigate to
        """
        return await execute_command(f"cd {path}")

    @mcp.tool()
    async def domshell_pwd() -> str:
        """Print the current directory path."""
        return await execute_command("pwd")

    @mcp.tool()
    async def domshell_cat(name: str) -> str:
        """
        Show an element's role, ids, value, child count and text content.

        Args:
            name: Name of the element in the current directory
        """
        return await execute_command(f"cat {name}")

    @mcp.tool()
    async def domshell_find(pattern: str | None = None, type: str | None = None, limit: int | None = None) -> str:
        """
        Search every descendant of the current directory and print full paths.

        Args:
            pattern: Text matched against names, roles and values
            type: Only match this role, e.g. 'button', 'link' or 'textbox'
            limit: Maximum number of results
        """
        cmd = "find"
        if pattern:
            cmd += f" {pattern}"
        if type:
            cmd += f" --type {type}"
        if limit:
            cmd += f" -n {limit}"
        return await execute_command(cmd)

    @mcp.tool()
    async def domshell_grep(pattern: str, recursive: bool = False, limit: int | None = None) -> str:
        """
        Match children of the current directory by name, role and value.

        Args:
            pattern: Case-insensitive search text
            recursive: Search all descendants instead of direct children
            limit: Maximum number of results
        """
        cmd = "grep"
        if recursive:
            cmd += " -r"
        if limit:
            cmd += f" -n {limit}"
        cmd += f" {pattern}"
        return await execute_command(cmd)

    @mcp.tool()
    async def domshell_tree(depth: int = 2) -> str:
        """
        Show the hierarchy below the current directory with [d], [x] and [-]
        markers for directories, interactive and static elements.

        Args:
            depth: Maximum depth to display
        """
        return await execute_command(f"tree {depth}")

    @mcp.tool()
    async def domshell_refresh() -> str:
        """Re-fetch the accessibility tree. Page changes also refresh it automatically."""
        return await execute_command("refresh")

    # -------------------------------------------------------------------------
    # Page actions
    # -------------------------------------------------------------------------

    @mcp.tool()
    async def domshell_click(name: str) -> str:
        """
        Click an element. The tree refreshes on the next command if the page changes.

        Args:
            name: Name of the element in the current directory
        """
        return await execute_command(f"click {name}")

    @mcp.tool()
    async def domshell_focus(name: str) -> str:
        """
        Focus an input so domshell_type sends keystrokes to it.

        Args:
            name: Name of the input in the current directory
        """
        return await execute_command(f"focus {name}")

    @mcp.tool()
    async def domshell_type(text: str) -> str:
        """
        Type text into the focused element.

        Args:
            text: Text to type
        """
        return await execute_command(f"type {text}")

    @mcp.tool()
    async def domshell_whoami() -> str:
        """Show the page origin and its session cookies."""
        return await execute_command("whoami")

    # -------------------------------------------------------------------------
    # Fallback
    # -------------------------------------------------------------------------

    @mcp.tool()
    async def domshell_execute(command: str) -> str:
        """
        Execute any DOMShell command, including those without a dedicated
        tool such as detach, env and export.

        The page's accessibility tree is a filesystem: containers are
        directories, interactive and text elements are files.

        1. attach: Connect to the page (required first)
        2. ls / ls -l / ls --type button: List the current directory
        3. cd <path>: Navigate ('..' up, '/' root, 'main/form' multi-level)
        4. find <pattern> [--type ROLE]: Deep search, prints full paths
        5. grep [-r] <pattern>: Match names, roles and values
        6. cat <name>: Element details and text
        7. click <name> / focus <name> / type <text>: Act on the page

        Additional commands:
           pwd, tree [depth], refresh, detach, whoami, env, export K=V, help

        Args:
            command: The command string to execute

        Returns:
            Command output as plain text
        """
        return await execute_command(command)

    return mcp


async def run_server(config: ShellConfig | None = None, snapshot: str | Path | None = None) -> None:
    """Initialize the kernel and run the MCP server over stdio."""
    init_kernel(config, snapshot)
    mcp = create_server()
    await mcp.run_stdio_async()


# =============================================================================
# CLI Entry Point
# =============================================================================

def main() -> None:
    """CLI entry point for the MCP server."""
    import sys

    parser = argparse.ArgumentParser(
        description="DOMShell MCP Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Example:
    python -m domshell.mcp --port 9222

Claude Desktop config:
    {
        "mcpServers": {
            "domshell": {
                "command": "python",
                "args": ["-m", "domshell.mcp", "--port", "9222"]
            }
        }
    }
""",
    )
    parser.add_argument("--host", type=str, default=None, help="Chrome remote debugging host")
    parser.add_argument("--port", "-p", type=int, default=None, help="Chrome remote debugging port")
    parser.add_argument("--target", "-t", type=str, default=None, help="Page target id")
    parser.add_argument("--config", "-c", type=Path, default=None, help="Path to TOML config file")
    parser.add_argument("--snapshot", "-s", type=Path, default=None, help="Serve a JSON snapshot instead of Chrome")

    args = parser.parse_args()

    if args.config is not None and not args.config.exists():
        print(f"Error: Config file not found: {args.config}", file=sys.stderr)
        sys.exit(1)
    if args.snapshot is not None and not args.snapshot.exists():
        print(f"Error: Snapshot not found: {args.snapshot}", file=sys.stderr)
        sys.exit(1)

    config = ShellConfig.from_file(args.config) if args.config else ShellConfig()
    overrides = {
        key: value
        for key, value in (("cdp_host", args.host), ("cdp_port", args.port), ("target", args.target))
        if value is not None
    }
    if overrides:
        config = config.with_overrides(**overrides)

    # stdout carries the MCP protocol; logs go to stderr
    logging.basicConfig(level=config.log_level, stream=sys.stderr)

    asyncio.run(run_server(config, args.snapshot))


if __name__ == "__main__":
    main()
