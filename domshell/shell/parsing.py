"""
Command Line Parsing

Splits raw command strings into a command name and arguments.
"""

from __future__ import annotations

import shlex

# Commands whose argument text is passed through verbatim as one argument
RAW_ARGUMENT_COMMANDS = frozenset({"type", "export"})


def _unquote(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return text[1:-1]
    return text


def parse_command(command: str) -> tuple[str, list[str]]:
    """
    Parse a command string into (cmd_name, args).

    Arguments are split shell-style, honouring quotes. `type` and
    `export` keep their argument text intact (minus one pair of enclosing
    quotes) so free text like apostrophes survives.

    Raises:
        ValueError: On an empty command or unbalanced quotes
    """
    stripped = command.strip()
    if not stripped:
        raise ValueError("Empty command")
    parts = stripped.split(maxsplit=1)
    cmd_name = parts[0].lower()
    arg_text = parts[1].strip() if len(parts) > 1 else ""

    if cmd_name in RAW_ARGUMENT_COMMANDS:
        return cmd_name, [_unquote(arg_text)] if arg_text else []

    try:
        return cmd_name, shlex.split(arg_text)
    except ValueError as e:
        raise ValueError(f"{cmd_name}: {e}") from e


def parse_assignment(text: str) -> tuple[str, str] | None:
    """Split `KEY=VALUE`; None when there is no '=' or the key is empty."""
    key, sep, value = text.partition("=")
    key = key.strip()
    if not sep or not key:
        return None
    return key, _unquote(value.strip())
