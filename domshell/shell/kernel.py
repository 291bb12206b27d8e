"""
ShellKernel - Path Resolution and Command Set

Owns the tree snapshot and the working directory, and executes shell
commands against them.

States:
    DETACHED  no snapshot; only `attach` and `help` are accepted
    ATTACHED  a snapshot is loaded and CWD points into it

Snapshots:
    Each attach/refresh ingests a complete new NodeMap and swaps it in as
    one TreeSnapshot. Commands therefore see the old tree or the new one,
    never a mix. Node ids are not stable across ingestions, so a refresh
    always resets CWD to the root (ChangeDetector may then replay the
    previous path by name).

Commands:
    attach, detach, refresh         Snapshot lifecycle
    ls, cd, pwd, cat, grep, find, tree
                                    Navigation and inspection (read-only)
    click, focus, type, whoami      Delegated to the element actuator
    env, export                     Shell environment
    help                            Command summary

Example:
    >>> kernel = ShellKernel(source, actuator)
    >>> await kernel.execute("attach")
    >>> await kernel.execute("cd main/form")
    >>> print(await kernel.execute("ls -l"))
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from domshell.config import ShellConfig
from domshell.errors import NoSuchPath, NotADirectory, NotAttached, ShellError
from domshell.ingestion import Ingestor, NodeMap
from domshell.shell.formatters import (
    EMPTY_DIRECTORY,
    entry_label,
    format_cat,
    format_long,
    format_match,
    more_footer,
    render_tree,
)
from domshell.shell.parsing import parse_assignment, parse_command
from domshell.types import ShellState, VFSEntry
from domshell.vfs.mapper import VFSMapper

if TYPE_CHECKING:
    from domshell.providers.base import AccessibilitySource, ElementActuator

logger = logging.getLogger(__name__)

PreCommandHook = Callable[[], Awaitable[None]]

# Commands that run without applying pending page changes first
_HOOKLESS_COMMANDS = frozenset({"attach", "detach", "help"})

HELP_TEXT = """DOMShell - the DOM as a filesystem

Navigation:
    attach [target]                 Connect to a page and load its accessibility tree
    detach                          Disconnect from the page
    refresh                         Re-fetch the accessibility tree (resets to /)
    ls [-l] [-r] [-n N] [--offset N] [--type ROLE] [--count]
                                    List the current directory
    cd <path>                       Enter a directory ('..' up, '/' root, 'main/form')
    pwd                             Show the current path
    tree [depth]                    Tree view of the current directory

Inspection:
    cat <name>                      Show details and text of an element
    grep [-r] [-n N] <pattern>      Match names, roles and values (case-insensitive)
    find [pattern] [--type ROLE] [-n N]
                                    Search all descendants, print full paths

Interaction:
    click <name>                    Click an element
    focus <name>                    Focus an element
    type <text>                     Type text into the focused element
    whoami                          Describe the current page session

System:
    env                             Show environment variables
    export K=V                      Set an environment variable
    help                            Show this help"""


class KernelStatus(str, Enum):
    DETACHED = "detached"
    ATTACHED = "attached"


@dataclass(frozen=True)
class TreeSnapshot:
    """One fully ingested tree; replaced, never modified."""

    target: str
    node_map: NodeMap
    root_id: str
    mapper: VFSMapper


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of printing and exiting."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise ValueError(message)


def _positive_int(raw: str) -> int:
    value = int(raw)
    if value < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative number, got {raw}")
    return value


class ShellKernel:
    """
    Shell command kernel over an accessibility source.

    Python callers can use the typed methods (cd, ls, cat, ...), which
    raise ShellError subclasses. execute() is the plain-text surface: it
    parses a command string, runs it and renders any error as text.
    """

    def __init__(
        self,
        source: "AccessibilitySource",
        actuator: "ElementActuator | None" = None,
        *,
        config: ShellConfig | None = None,
    ) -> None:
        self.config = config or ShellConfig()
        self._ingestor = Ingestor(source)
        self._actuator = actuator
        self._snapshot: TreeSnapshot | None = None
        self._lock = asyncio.Lock()
        self._hooks: list[PreCommandHook] = []
        self.state = ShellState(env=dict(self.config.env))

        self._commands: dict[str, Callable[[list[str]], Awaitable[str]]] = {
            "attach": self._cmd_attach,
            "detach": self._cmd_detach,
            "refresh": self._cmd_refresh,
            "ls": self._cmd_ls,
            "cd": self._cmd_cd,
            "pwd": self._cmd_pwd,
            "cat": self._cmd_cat,
            "grep": self._cmd_grep,
            "find": self._cmd_find,
            "tree": self._cmd_tree,
            "click": self._cmd_click,
            "focus": self._cmd_focus,
            "type": self._cmd_type,
            "whoami": self._cmd_whoami,
            "env": self._cmd_env,
            "export": self._cmd_export,
            "help": self._cmd_help,
        }

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def status(self) -> KernelStatus:
        return KernelStatus.ATTACHED if self._snapshot is not None else KernelStatus.DETACHED

    @property
    def is_attached(self) -> bool:
        return self._snapshot is not None

    @property
    def snapshot(self) -> TreeSnapshot | None:
        return self._snapshot

    @property
    def actuator(self) -> "ElementActuator | None":
        return self._actuator

    def add_hook(self, hook: PreCommandHook) -> None:
        """Register a coroutine run before every command (used by ChangeDetector)."""
        self._hooks.append(hook)

    def _require_attached(self) -> TreeSnapshot:
        if self._snapshot is None:
            raise NotAttached()
        return self._snapshot

    def _require_cwd(self) -> tuple[TreeSnapshot, str]:
        snapshot = self._require_attached()
        current = self.state.current_id
        if current is None or current not in snapshot.mapper:
            raise NoSuchPath(self.pwd(), "Working directory no longer exists. Run 'refresh'.")
        return snapshot, current

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def _load(self) -> TreeSnapshot:
        node_map, root_id = await self._ingestor.ingest()
        return TreeSnapshot(
            target=self._ingestor.target or "",
            node_map=node_map,
            root_id=root_id,
            mapper=VFSMapper(node_map, name_max_length=self.config.name_max_length),
        )

    async def attach(self, target: str | None = None) -> TreeSnapshot:
        """
        Bind to a target and load its tree; CWD starts at the root.

        Raises:
            IngestionFailure: Kernel stays (or becomes) DETACHED
        """
        try:
            await self._ingestor.attach(target or self.config.target)
            snapshot = await self._load()
        except ShellError:
            self._snapshot = None
            self.state.clear()
            await self._ingestor.detach()
            raise

        self._snapshot = snapshot
        self.state.reset(snapshot.root_id)
        logger.debug(f"Attached to {snapshot.target} ({len(snapshot.node_map)} nodes)")
        return snapshot

    async def detach(self) -> None:
        """Drop the snapshot and working directory."""
        self._require_attached()
        self._snapshot = None
        self.state.clear()
        await self._ingestor.detach()

    async def refresh(self) -> TreeSnapshot:
        """Re-ingest the tree and reset CWD to the root."""
        self._require_attached()
        snapshot = await self._load()
        self._snapshot = snapshot
        self.state.reset(snapshot.root_id)
        logger.debug(f"Refreshed {snapshot.target} ({len(snapshot.node_map)} nodes)")
        return snapshot

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def _resolve_segments(self, segments: list[str]) -> None:
        """
        Apply path segments to CWD one at a time.

        Not atomic: segments resolved before a failing one stay applied.
        """
        mapper = self._require_attached().mapper
        for segment in segments:
            if segment in ("", "."):
                continue
            if segment == "..":
                self.state.pop()
                continue
            match = mapper.find_child_by_name(self.state.cwd[-1], segment)
            if match is None:
                raise NoSuchPath(segment, "No such directory")
            if not match.is_directory:
                raise NotADirectory(segment)
            self.state.push(match.id, match.display_name)

    def cd(self, path: str = "/") -> None:
        """
        Change the working directory.

        "/" (or nothing) goes to the root, ".." goes up one level. Other
        paths are resolved segment by segment; a leading "/" starts at the
        root.

        Raises:
            NoSuchPath: A segment does not exist
            NotADirectory: A segment is a file
        """
        snapshot, _ = self._require_cwd()
        path = path.strip()

        if path in ("", "/"):
            self.state.reset(snapshot.root_id)
            return
        if path == "..":
            self.state.pop()
            return
        if path.startswith("/"):
            self.state.reset(snapshot.root_id)
        self._resolve_segments(path.split("/"))

    def restore_path(self, names: list[str]) -> bool:
        """
        Replay a previous cwd_names path from the root.

        Returns False, leaving CWD at the root, when any segment no longer
        resolves.
        """
        snapshot = self._require_attached()
        self.state.reset(snapshot.root_id)
        try:
            self._resolve_segments(names[1:])
        except ShellError:
            self.state.reset(snapshot.root_id)
            return False
        return True

    def pwd(self) -> str:
        if len(self.state.cwd_names) <= 1:
            return "/"
        return "/" + "/".join(self.state.cwd_names[1:])

    def _absolute(self, relative: list[str]) -> str:
        return self.pwd().rstrip("/") + "/" + "/".join(relative)

    # -------------------------------------------------------------------------
    # Read-only Commands
    # -------------------------------------------------------------------------

    def _rows(self, recursive: bool) -> list[tuple[list[str], VFSEntry]]:
        snapshot, current = self._require_cwd()
        if recursive:
            return list(snapshot.mapper.walk(current))
        return [([e.display_name], e) for e in snapshot.mapper.list_children(current)]

    def ls(
        self,
        *,
        long: bool = False,
        recursive: bool = False,
        limit: int | None = None,
        offset: int = 0,
        role: str | None = None,
        count: bool = False,
    ) -> str:
        """List the working directory."""
        rows = self._rows(recursive)
        if role:
            rows = [(p, e) for p, e in rows if e.role.lower() == role.lower()]

        if count:
            return str(len(rows))
        if not rows:
            return EMPTY_DIRECTORY if not role else f"(no entries with role '{role}')"

        page = rows[offset:offset + limit] if limit is not None else rows[offset:]
        if not page:
            return f"(no entries past offset {offset}, total {len(rows)})"
        lines = [
            format_long(e, "/".join(p)) if long else entry_label(e, "/".join(p))
            for p, e in page
        ]
        if footer := more_footer(offset + len(page), len(rows)):
            lines.append(footer)
        return "\n".join(lines)

    @staticmethod
    def _matches(entry: VFSEntry, pattern: str) -> bool:
        needle = pattern.lower()
        return (
            needle in entry.display_name.lower()
            or needle in entry.role.lower()
            or (entry.value is not None and needle in entry.value.lower())
        )

    def grep(self, pattern: str, *, recursive: bool = False, limit: int | None = None) -> str:
        """Match name, role and value of children (or all descendants)."""
        matches = [(p, e) for p, e in self._rows(recursive) if self._matches(e, pattern)]
        if not matches:
            return f"No matches for '{pattern}'"

        shown = matches[:limit] if limit is not None else matches
        lines = [format_match(e, "/".join(p)) for p, e in shown]
        if len(shown) < len(matches):
            lines.append(f"... {len(matches) - len(shown)} more matches")
        return "\n".join(lines)

    def find(
        self,
        pattern: str | None = None,
        *,
        role: str | None = None,
        limit: int | None = None,
    ) -> str:
        """Search every descendant of CWD and print absolute paths."""
        matches = []
        for path, entry in self._rows(recursive=True):
            if role and entry.role.lower() != role.lower():
                continue
            if pattern and not self._matches(entry, pattern):
                continue
            matches.append((path, entry))

        if not matches:
            return "No matches found"

        shown = matches[:limit] if limit is not None else matches
        lines = [format_match(e, self._absolute(p)) for p, e in shown]
        if len(shown) < len(matches):
            lines.append(f"... {len(matches) - len(shown)} more matches")
        return "\n".join(lines)

    def tree(self, depth: int | None = None) -> str:
        snapshot, current = self._require_cwd()
        depth = self.config.tree_default_depth if depth is None else depth
        root_label = "/" if self.state.at_root else f"{self.state.cwd_names[-1]}/"
        return render_tree(snapshot.mapper, current, root_label, depth)

    def _child(self, name: str, what: str) -> VFSEntry:
        snapshot, current = self._require_cwd()
        entry = snapshot.mapper.find_child_by_name(current, name)
        if entry is None:
            raise NoSuchPath(name, f"No such {what}")
        return entry

    async def cat(self, name: str) -> str:
        """Details of a child entry, with element text when it has a DOM node."""
        entry = self._child(name, "file")
        text = None
        if entry.backend_ref is not None and self._actuator is not None:
            try:
                text = await self._actuator.read_text(entry.backend_ref)
            except ShellError:
                raise
            except Exception as e:
                logger.warning(f"Could not read text of {name}: {e}")
        return format_cat(entry, text, self.config.cat_text_limit)

    # -------------------------------------------------------------------------
    # Delegated Commands
    # -------------------------------------------------------------------------

    def _require_actuator(self) -> "ElementActuator":
        if self._actuator is None:
            raise ShellError("No element actuator configured")
        return self._actuator

    def _actionable(self, name: str) -> VFSEntry:
        entry = self._child(name, "element")
        if entry.backend_ref is None:
            raise ShellError(f"{name}: No DOM node backing (AX-only node)")
        return entry

    async def click(self, name: str) -> VFSEntry:
        entry = self._actionable(name)
        await self._require_actuator().click(entry.backend_ref)
        return entry

    async def focus(self, name: str) -> VFSEntry:
        entry = self._actionable(name)
        await self._require_actuator().focus(entry.backend_ref)
        return entry

    async def type_text(self, text: str) -> None:
        self._require_attached()
        await self._require_actuator().type_text(text)

    async def whoami(self) -> str:
        self._require_attached()
        return await self._require_actuator().whoami()

    # -------------------------------------------------------------------------
    # Command Handlers
    # -------------------------------------------------------------------------

    async def _cmd_attach(self, args: list[str]) -> str:
        snapshot = await self.attach(args[0] if args else None)
        return "\n".join([
            f"Attached to {snapshot.target}",
            f"  AX nodes: {len(snapshot.node_map)}",
        ])

    async def _cmd_detach(self, args: list[str]) -> str:
        await self.detach()
        return "Detached."

    async def _cmd_refresh(self, args: list[str]) -> str:
        snapshot = await self.refresh()
        return f"Refreshed. {len(snapshot.node_map)} AX nodes loaded."

    async def _cmd_ls(self, args: list[str]) -> str:
        usage = "Usage: ls [-l|--long] [-r] [-n N] [--offset N] [--type ROLE] [--count]"
        parser = _ArgumentParser(prog="ls", add_help=False)
        parser.add_argument("-l", "--long", action="store_true")
        parser.add_argument("-r", "--recursive", action="store_true")
        parser.add_argument("-n", "--limit", type=_positive_int, default=None)
        parser.add_argument("--offset", type=_positive_int, default=0)
        parser.add_argument("--type", dest="role", default=None)
        parser.add_argument("--count", action="store_true")

        try:
            parsed = parser.parse_args(args)
        except ValueError:
            return usage

        return self.ls(
            long=parsed.long,
            recursive=parsed.recursive,
            limit=parsed.limit,
            offset=parsed.offset,
            role=parsed.role,
            count=parsed.count,
        )

    async def _cmd_cd(self, args: list[str]) -> str:
        self.cd(args[0] if args else "/")
        return ""

    async def _cmd_pwd(self, args: list[str]) -> str:
        self._require_attached()
        return self.pwd()

    async def _cmd_cat(self, args: list[str]) -> str:
        self._require_attached()
        if not args:
            return "Usage: cat <name>"
        return await self.cat(args[0])

    async def _cmd_grep(self, args: list[str]) -> str:
        usage = "Usage: grep [-r] [-n N] <pattern>"
        self._require_attached()
        parser = _ArgumentParser(prog="grep", add_help=False)
        parser.add_argument("-r", "--recursive", action="store_true")
        parser.add_argument("-n", "--limit", type=_positive_int, default=None)
        parser.add_argument("pattern", nargs="?", default=None)

        try:
            parsed = parser.parse_args(args)
        except ValueError:
            return usage
        if not parsed.pattern:
            return usage

        return self.grep(parsed.pattern, recursive=parsed.recursive, limit=parsed.limit)

    async def _cmd_find(self, args: list[str]) -> str:
        usage = "Usage: find [pattern] [--type ROLE] [-n N]"
        self._require_attached()
        parser = _ArgumentParser(prog="find", add_help=False)
        parser.add_argument("pattern", nargs="?", default=None)
        parser.add_argument("--type", dest="role", default=None)
        parser.add_argument("-n", "--limit", type=_positive_int, default=None)

        try:
            parsed = parser.parse_args(args)
        except ValueError:
            return usage

        return self.find(parsed.pattern, role=parsed.role, limit=parsed.limit)

    async def _cmd_tree(self, args: list[str]) -> str:
        self._require_attached()
        depth = None
        if args:
            try:
                depth = _positive_int(args[0])
            except (ValueError, argparse.ArgumentTypeError):
                return "Usage: tree [depth]"
        return self.tree(depth)

    async def _cmd_click(self, args: list[str]) -> str:
        self._require_attached()
        if not args:
            return "Usage: click <name>"
        entry = await self.click(args[0])
        return f"Clicked: {entry.display_name} ({entry.role})"

    async def _cmd_focus(self, args: list[str]) -> str:
        self._require_attached()
        if not args:
            return "Usage: focus <name>"
        entry = await self.focus(args[0])
        return f"Focused: {entry.display_name}"

    async def _cmd_type(self, args: list[str]) -> str:
        self._require_attached()
        if not args:
            return "Usage: type <text>"
        await self.type_text(args[0])
        return f"Typed {len(args[0])} characters"

    async def _cmd_whoami(self, args: list[str]) -> str:
        return await self.whoami()

    async def _cmd_env(self, args: list[str]) -> str:
        self._require_attached()
        return "\n".join(f"{k}={v}" for k, v in self.state.env.items())

    async def _cmd_export(self, args: list[str]) -> str:
        self._require_attached()
        assignment = parse_assignment(args[0]) if args else None
        if assignment is None:
            return "Usage: export KEY=VALUE"
        key, value = assignment
        self.state.env[key] = value
        return f"{key}={value}"

    async def _cmd_help(self, args: list[str]) -> str:
        return HELP_TEXT

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    async def execute(self, command: str) -> str:
        """
        Execute one command string and return its plain-text output.

        Commands are serialized; errors never escape as exceptions.
        """
        if not command.strip():
            return ""

        try:
            cmd_name, args = parse_command(command)
        except ValueError as e:
            return f"Error: {e}"

        handler = self._commands.get(cmd_name)
        if handler is None:
            return f"{cmd_name}: command not found. Type 'help' for available commands."

        async with self._lock:
            try:
                if cmd_name not in _HOOKLESS_COMMANDS:
                    for hook in self._hooks:
                        await hook()
                return await handler(args)
            except ShellError as e:
                return f"{cmd_name}: {e}"
            except Exception as e:
                logger.exception(f"Command failed: {command}")
                return f"Error executing {cmd_name}: {e}"

    async def execute_batch(self, commands: list[str]) -> list[str]:
        """Execute multiple commands, returning all outputs."""
        return [await self.execute(cmd) for cmd in commands]
