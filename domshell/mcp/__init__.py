"""
DOMShell MCP Server

Exposes the shell via a single MCP tool (domshell_execute) that accepts
command strings.

Tool:
    - domshell_execute: Execute a DOMShell command (attach, ls, cd, cat, find, click, ...)

Workflow:
    1. attach                       # Load the page's accessibility tree
    2. find --type button           # Locate interactive elements
    3. cd main/form                 # Navigate
    4. cat submit_btn               # Inspect
    5. click submit_btn             # Act

Usage:
    # Run the MCP server against Chrome on port 9222
    python -m domshell.mcp --port 9222

    # Or against a saved snapshot
    python -m domshell.mcp --snapshot page.json
"""

from domshell.mcp.server import create_server, run_server

__all__ = ["create_server", "run_server"]
