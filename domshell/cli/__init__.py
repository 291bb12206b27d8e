"""
Command-Line Interface

CLI commands for DOMShell.

Commands:
    domshell repl      - Interactive shell on a live page or a snapshot
    domshell exec      - Run a sequence of commands and print their output
    domshell snapshot  - Save a live page's accessibility tree as JSON

Usage:
    # Explore the first tab of a Chrome started with --remote-debugging-port=9222
    domshell repl

    # Explore a saved page offline
    domshell repl --snapshot page.json

    # Scripted
    domshell exec attach "cd main" "ls -l" --snapshot page.json
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel

from domshell.config import ShellConfig

__all__ = ["main", "app"]

app = typer.Typer(
    name="domshell",
    help="Browse a web page's accessibility tree as a filesystem",
    no_args_is_help=True,
)
console = Console()

_EXIT_COMMANDS = {"exit", "quit"}


def _load_config(
    config_path: Optional[Path],
    host: Optional[str],
    port: Optional[int],
    target: Optional[str],
) -> ShellConfig:
    load_dotenv()
    config = ShellConfig.from_file(config_path) if config_path else ShellConfig()
    overrides = {
        key: value
        for key, value in (("cdp_host", host), ("cdp_port", port), ("target", target))
        if value is not None
    }
    if overrides:
        config = config.with_overrides(**overrides)
    logging.basicConfig(level=config.log_level)
    return config


def _build_kernel(config: ShellConfig, snapshot: Optional[Path]) -> Any:
    from domshell.shell import ChangeDetector, ShellKernel

    if snapshot is not None:
        from domshell.providers.snapshot import SnapshotBrowser
        browser: Any = SnapshotBrowser.from_file(snapshot)
    else:
        from domshell.providers.cdp import CDPBrowser
        browser = CDPBrowser.from_config(config)

    kernel = ShellKernel(browser, browser, config=config)
    ChangeDetector(kernel)
    return kernel


def _print_output(output: str) -> None:
    if output:
        console.print(output, markup=False, highlight=False)


def _prompt(kernel: Any) -> str:
    ps1 = kernel.state.env.get("PS1", "$PWD$ ")
    location = kernel.pwd() if kernel.is_attached else "(detached)"
    return ps1.replace("$PWD", location)


_snapshot_option = typer.Option(
    None,
    "--snapshot", "-s",
    help="Use a JSON snapshot instead of a live browser",
    exists=True,
)
_config_option = typer.Option(None, "--config", "-c", help="TOML config file", exists=True)
_host_option = typer.Option(None, "--host", help="Chrome remote debugging host")
_port_option = typer.Option(None, "--port", "-p", help="Chrome remote debugging port")
_target_option = typer.Option(None, "--target", "-t", help="Page target id")


@app.command()
def repl(
    snapshot: Optional[Path] = _snapshot_option,
    config_path: Optional[Path] = _config_option,
    host: Optional[str] = _host_option,
    port: Optional[int] = _port_option,
    target: Optional[str] = _target_option,
) -> None:
    """Interactive shell. Type 'help' for commands, 'exit' to leave."""
    config = _load_config(config_path, host, port, target)

    async def _run() -> None:
        kernel = _build_kernel(config, snapshot)
        console.print(Panel(
            "[bold]The DOM is your filesystem.[/]\n\n"
            "Type [green]attach[/] to connect, [green]help[/] for commands.",
            title="DOMShell",
        ))
        try:
            while True:
                try:
                    line = await asyncio.to_thread(console.input, _prompt(kernel), markup=False)
                except EOFError:
                    break
                if line.strip().lower() in _EXIT_COMMANDS:
                    break
                _print_output(await kernel.execute(line))
        finally:
            if kernel.is_attached:
                await kernel.detach()

    asyncio.run(_run())


@app.command("exec")
def exec_commands(
    commands: list[str] = typer.Argument(..., help="Commands to run in order"),
    snapshot: Optional[Path] = _snapshot_option,
    config_path: Optional[Path] = _config_option,
    host: Optional[str] = _host_option,
    port: Optional[int] = _port_option,
    target: Optional[str] = _target_option,
) -> None:
    """Run commands in one session and print each output."""
    config = _load_config(config_path, host, port, target)

    async def _run() -> None:
        kernel = _build_kernel(config, snapshot)
        try:
            for command in commands:
                console.print(f"$ {command}", style="dim", markup=False, highlight=False)
                _print_output(await kernel.execute(command))
        finally:
            if kernel.is_attached:
                await kernel.detach()

    asyncio.run(_run())


@app.command("snapshot")
def save_snapshot(
    output: Path = typer.Argument(..., help="JSON file to write"),
    config_path: Optional[Path] = _config_option,
    host: Optional[str] = _host_option,
    port: Optional[int] = _port_option,
    target: Optional[str] = _target_option,
) -> None:
    """Save the raw accessibility tree of a live page (with sub-frames)."""
    config = _load_config(config_path, host, port, target)

    async def _run() -> None:
        from domshell.providers.cdp import CDPBrowser

        browser = CDPBrowser.from_config(config)
        bound = await browser.connect(config.target)
        try:
            nodes = await browser.get_full_tree()
            frames = {frame: await browser.get_full_tree(frame) for frame in await browser.get_frame_tree()}
        finally:
            await browser.disconnect()

        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(json.dumps({"target": bound, "nodes": nodes, "frames": frames}, indent=2))
        console.print(f"[green]Saved {len(nodes)} nodes ({len(frames)} frames) to {output}[/]")

    asyncio.run(_run())


def main() -> None:
    """Entry point for the CLI."""
    app()
