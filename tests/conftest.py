"""
Shared fixtures: a small login page in CDP record shape.

    /                       RootWebArea "Example"
    ├── main_menu/          navigation
    │   ├── home_link
    │   └── about_us_link
    ├── main/               main (unnamed)
    │   └── login/          form, behind an unnamed generic wrapper
    │       ├── email_input
    │       ├── password_input
    │       ├── sign_in_btn
    │       └── sign_in_btn_2
    └── 2024_example        StaticText
"""

from typing import Any

import pytest

from domshell.providers.snapshot import SnapshotBrowser
from domshell.shell import ShellKernel


def ax(
    node_id: str,
    role: str,
    name: str = "",
    children: list[str] | None = None,
    backend: int | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Build a CDP-shaped accessibility record."""
    record: dict[str, Any] = {
        "nodeId": node_id,
        "ignored": False,
        "role": {"type": "role", "value": role},
        "name": {"type": "computedString", "value": name},
        "childIds": children or [],
    }
    if backend is not None:
        record["backendDOMNodeId"] = backend
    record.update(extra)
    return record


def login_page() -> list[dict[str, Any]]:
    return [
        ax("1", "RootWebArea", "Example", ["2", "3", "4", "13"]),
        ax("2", "navigation", "Main menu", ["5", "6"], backend=102),
        ax("5", "link", "Home", backend=105),
        ax("6", "link", "About Us", backend=106),
        ax("3", "main", "", ["7"], backend=103),
        ax("7", "generic", "", ["8"], backend=107),
        ax("8", "form", "Login", ["9", "10", "11", "12"], backend=108),
        ax("9", "textbox", "Email", backend=109, value={"type": "string", "value": "ada@example.com"}),
        ax("10", "textbox", "Password", backend=110),
        ax("11", "button", "Sign In!", backend=111),
        ax("12", "button", "Sign In!", backend=112),
        ax("4", "StaticText", "© 2024 Example", backend=104),
        {**ax("13", "generic", "tracking pixel"), "ignored": True},
    ]


@pytest.fixture
def browser() -> SnapshotBrowser:
    return SnapshotBrowser(login_page(), target="page-1", url="https://example.com/login")


@pytest.fixture
def kernel(browser: SnapshotBrowser) -> ShellKernel:
    return ShellKernel(browser, browser)
