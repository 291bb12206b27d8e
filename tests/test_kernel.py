"""
Tests for ShellKernel path resolution and the command set.
"""

import asyncio

import pytest

from conftest import ax, login_page
from domshell.errors import NoSuchPath, NotADirectory, NotAttached, StaleReference
from domshell.providers.snapshot import SnapshotBrowser
from domshell.shell import KernelStatus, ShellKernel
from domshell.shell.formatters import EMPTY_DIRECTORY
from domshell.shell.parsing import parse_assignment, parse_command


async def _attached(kernel: ShellKernel) -> ShellKernel:
    await kernel.attach()
    return kernel


class TestCommandParsing:
    """Test command string parsing."""

    def test_parse_simple_command(self):
        assert parse_command("ls -l --type button") == ("ls", ["-l", "--type", "button"])

    def test_parse_quoted_argument(self):
        assert parse_command('cd "main/login"') == ("cd", ["main/login"])

    def test_command_name_is_lowercased(self):
        assert parse_command("LS")[0] == "ls"

    def test_type_keeps_raw_text(self):
        assert parse_command("type it's  me") == ("type", ["it's  me"])
        assert parse_command('type "hello world"') == ("type", ["hello world"])

    def test_parse_empty_command_raises(self):
        with pytest.raises(ValueError, match="Empty command"):
            parse_command("   ")

    def test_unbalanced_quotes_raise(self):
        with pytest.raises(ValueError, match="cd"):
            parse_command('cd "main')

    def test_parse_assignment(self):
        assert parse_assignment("PS1='> '") == ("PS1", "> ")
        assert parse_assignment("NOEQUALS") is None
        assert parse_assignment("=value") is None


class TestLifecycle:
    """Tests for attach, detach and refresh."""

    @pytest.mark.asyncio
    async def test_attach_sets_cwd_to_root(self, kernel: ShellKernel):
        output = await kernel.execute("attach")
        assert output == "Attached to page-1\n  AX nodes: 12"
        assert kernel.status is KernelStatus.ATTACHED
        assert kernel.pwd() == "/"
        assert kernel.state.cwd == ["0:1"]

    @pytest.mark.asyncio
    async def test_attach_failure_leaves_detached(self, kernel: ShellKernel, browser: SnapshotBrowser):
        browser.reachable = False
        output = await kernel.execute("attach")
        assert output.startswith("attach: Cannot reach accessibility source")
        assert kernel.status is KernelStatus.DETACHED

    @pytest.mark.asyncio
    async def test_empty_page_is_ingestion_failure(self):
        empty = SnapshotBrowser([])
        kernel = ShellKernel(empty, empty)
        assert await kernel.execute("attach") == "attach: Accessibility tree is empty"
        assert not kernel.is_attached

    @pytest.mark.asyncio
    @pytest.mark.parametrize("command", ["ls", "cd main", "pwd", "cat x", "grep x", "find", "tree",
                                         "click x", "focus x", "type x", "whoami", "refresh", "detach",
                                         "env", "export A=1"])
    async def test_commands_require_attach(self, kernel: ShellKernel, command: str):
        output = await kernel.execute(command)
        assert output == f"{command.split()[0]}: Not attached to a tab. Run 'attach' first."

    @pytest.mark.asyncio
    async def test_typed_api_raises_not_attached(self, kernel: ShellKernel):
        with pytest.raises(NotAttached):
            kernel.ls()

    @pytest.mark.asyncio
    async def test_help_works_detached(self, kernel: ShellKernel):
        output = await kernel.execute("help")
        assert "attach [target]" in output
        assert "export K=V" in output

    @pytest.mark.asyncio
    async def test_detach(self, kernel: ShellKernel):
        await _attached(kernel)
        assert await kernel.execute("detach") == "Detached."
        assert kernel.status is KernelStatus.DETACHED
        assert kernel.state.cwd == []

    @pytest.mark.asyncio
    async def test_refresh_resets_to_root(self, kernel: ShellKernel):
        await _attached(kernel)
        kernel.cd("main/login")
        assert await kernel.execute("refresh") == "Refreshed. 12 AX nodes loaded."
        assert kernel.pwd() == "/"

    @pytest.mark.asyncio
    async def test_refresh_swaps_snapshot(self, kernel: ShellKernel):
        await _attached(kernel)
        before = kernel.snapshot
        await kernel.refresh()
        assert kernel.snapshot is not before
        assert before.node_map.keys() == kernel.snapshot.node_map.keys()


class TestNavigation:
    """Tests for cd and pwd."""

    @pytest.mark.asyncio
    async def test_cd_multi_segment(self, kernel: ShellKernel):
        await _attached(kernel)
        assert await kernel.execute("cd main/login") == ""
        assert await kernel.execute("pwd") == "/main/login"
        assert kernel.state.cwd == ["0:1", "0:3", "0:8"]

    @pytest.mark.asyncio
    async def test_cd_up_and_root(self, kernel: ShellKernel):
        await _attached(kernel)
        kernel.cd("main/login")
        kernel.cd("..")
        assert kernel.pwd() == "/main"
        kernel.cd("/")
        assert kernel.pwd() == "/"
        kernel.cd("..")
        assert kernel.pwd() == "/"

    @pytest.mark.asyncio
    async def test_cd_without_argument_goes_to_root(self, kernel: ShellKernel):
        await _attached(kernel)
        kernel.cd("main")
        await kernel.execute("cd")
        assert kernel.pwd() == "/"

    @pytest.mark.asyncio
    async def test_cd_absolute_path(self, kernel: ShellKernel):
        await _attached(kernel)
        kernel.cd("main_menu")
        kernel.cd("/main/login")
        assert kernel.pwd() == "/main/login"

    @pytest.mark.asyncio
    async def test_cd_dot_segments(self, kernel: ShellKernel):
        await _attached(kernel)
        kernel.cd("main/./login/../login")
        assert kernel.pwd() == "/main/login"

    @pytest.mark.asyncio
    async def test_partial_resolution_keeps_progress(self, kernel: ShellKernel):
        """A failing segment leaves CWD at the last resolved directory."""
        await _attached(kernel)
        output = await kernel.execute("cd main/form")
        assert output == "cd: form: No such directory"
        assert kernel.pwd() == "/main"
        assert kernel.state.cwd_names == ["/", "main"]

    @pytest.mark.asyncio
    async def test_cd_into_file(self, kernel: ShellKernel):
        await _attached(kernel)
        with pytest.raises(NotADirectory):
            kernel.cd("2024_example")
        assert kernel.pwd() == "/"

    @pytest.mark.asyncio
    async def test_cd_missing(self, kernel: ShellKernel):
        await _attached(kernel)
        with pytest.raises(NoSuchPath):
            kernel.cd("nowhere")

    @pytest.mark.asyncio
    async def test_restore_path(self, kernel: ShellKernel):
        await _attached(kernel)
        assert kernel.restore_path(["/", "main", "login"])
        assert kernel.pwd() == "/main/login"
        assert not kernel.restore_path(["/", "main", "gone"])
        assert kernel.pwd() == "/"

    @pytest.mark.asyncio
    async def test_pwd_shows_disambiguated_directory_names(self):
        page = SnapshotBrowser([
            ax("1", "RootWebArea", "Shop", ["2", "3"]),
            ax("2", "list", "Items", ["4"]),
            ax("3", "list", "Items", ["5"]),
            ax("4", "listitem", "Apples", ["6"]),
            ax("5", "listitem", "Pears", ["7"]),
            ax("6", "StaticText", "Red"),
            ax("7", "StaticText", "Green"),
        ])
        kernel = ShellKernel(page, page)
        await kernel.attach()

        assert await kernel.execute("ls") == "items/\nitems_2/"
        await kernel.execute("cd items_2")
        assert await kernel.execute("pwd") == "/items_2"
        await kernel.execute("cd /items_2/pears")
        assert await kernel.execute("pwd") == "/items_2/pears"
        assert kernel.state.cwd == ["0:1", "0:3", "0:5"]


class TestListing:
    """Tests for ls."""

    @pytest.mark.asyncio
    async def test_ls_root(self, kernel: ShellKernel):
        await _attached(kernel)
        assert await kernel.execute("ls") == "main_menu/\nmain/\n2024_example"

    @pytest.mark.asyncio
    async def test_ls_long(self, kernel: ShellKernel):
        await _attached(kernel)
        kernel.cd("main/login")
        lines = (await kernel.execute("ls -l")).splitlines()
        assert lines[0] == "- textbox        email_input"
        assert lines[2] == "- button         sign_in_btn"

    @pytest.mark.asyncio
    async def test_ls_type_filter_and_count(self, kernel: ShellKernel):
        await _attached(kernel)
        kernel.cd("main/login")
        assert await kernel.execute("ls --type button") == "sign_in_btn\nsign_in_btn_2"
        assert await kernel.execute("ls --type button --count") == "2"
        assert await kernel.execute("ls --type slider") == "(no entries with role 'slider')"

    @pytest.mark.asyncio
    async def test_ls_pagination(self, kernel: ShellKernel):
        await _attached(kernel)
        kernel.cd("main/login")
        assert await kernel.execute("ls -n 2") == "email_input\npassword_input\n... 2 more (use --offset 2)"
        assert await kernel.execute("ls -n 2 --offset 2") == "sign_in_btn\nsign_in_btn_2"

    @pytest.mark.asyncio
    async def test_ls_recursive(self, kernel: ShellKernel):
        await _attached(kernel)
        kernel.cd("main")
        output = await kernel.execute("ls -r")
        assert output.splitlines()[:2] == ["login/", "login/email_input"]

    @pytest.mark.asyncio
    async def test_ls_offset_past_end(self, kernel: ShellKernel):
        await _attached(kernel)
        assert await kernel.execute("ls --offset 10") == "(no entries past offset 10, total 3)"
        assert await kernel.execute("ls --offset 3 -n 1") == "(no entries past offset 3, total 3)"

    @pytest.mark.asyncio
    async def test_ls_bad_flag_prints_usage(self, kernel: ShellKernel):
        await _attached(kernel)
        assert (await kernel.execute("ls --bogus")).startswith("Usage: ls")

    @pytest.mark.asyncio
    async def test_empty_root(self):
        """Root without children: explicit markers everywhere."""
        page = SnapshotBrowser([ax("1", "RootWebArea", "Blank")])
        kernel = ShellKernel(page, page)
        await kernel.attach()
        assert await kernel.execute("ls") == EMPTY_DIRECTORY
        assert await kernel.execute("grep x") == "No matches for 'x'"
        assert await kernel.execute("find x") == "No matches found"
        assert await kernel.execute("tree") == "/"


class TestInspection:
    """Tests for grep, find, tree and cat."""

    @pytest.mark.asyncio
    async def test_grep_matches_name_role_and_value(self, kernel: ShellKernel):
        await _attached(kernel)
        kernel.cd("main/login")
        assert await kernel.execute("grep SIGN") == "sign_in_btn (button)\nsign_in_btn_2 (button)"
        assert await kernel.execute("grep textbox") == "email_input (textbox)\npassword_input (textbox)"
        assert await kernel.execute("grep ada@") == "email_input (textbox)"

    @pytest.mark.asyncio
    async def test_grep_recursive_with_limit(self, kernel: ShellKernel):
        await _attached(kernel)
        output = await kernel.execute("grep -r -n 1 link")
        assert output == "main_menu/home_link (link)\n... 1 more matches"

    @pytest.mark.asyncio
    async def test_grep_without_pattern(self, kernel: ShellKernel):
        await _attached(kernel)
        assert await kernel.execute("grep") == "Usage: grep [-r] [-n N] <pattern>"

    @pytest.mark.asyncio
    async def test_find_prints_absolute_paths(self, kernel: ShellKernel):
        await _attached(kernel)
        kernel.cd("main")
        assert await kernel.execute("find --type button") == (
            "/main/login/sign_in_btn (button)\n/main/login/sign_in_btn_2 (button)"
        )

    @pytest.mark.asyncio
    async def test_find_pattern(self, kernel: ShellKernel):
        await _attached(kernel)
        assert await kernel.execute("find about") == "/main_menu/about_us_link (link)"

    @pytest.mark.asyncio
    async def test_tree(self, kernel: ShellKernel):
        await _attached(kernel)
        assert await kernel.execute("tree 1") == "\n".join([
            "/",
            "├── [d] main_menu/",
            "├── [d] main/",
            "└── [-] 2024_example",
        ])

    @pytest.mark.asyncio
    async def test_tree_nested(self, kernel: ShellKernel):
        await _attached(kernel)
        kernel.cd("main")
        assert await kernel.execute("tree") == "\n".join([
            "main/",
            "└── [d] login/",
            "    ├── [x] email_input",
            "    ├── [x] password_input",
            "    ├── [x] sign_in_btn",
            "    └── [x] sign_in_btn_2",
        ])

    @pytest.mark.asyncio
    async def test_cat(self, kernel: ShellKernel):
        await _attached(kernel)
        kernel.cd("main/login")
        output = await kernel.execute("cat email_input")
        assert output.splitlines()[0] == "--- email_input ---"
        assert "  Role:     textbox" in output
        assert "  AXID:     0:9" in output
        assert "  Value:    ada@example.com" in output
        assert "  Text:\n  ada@example.com" in output

    @pytest.mark.asyncio
    async def test_cat_directory_shows_children(self, kernel: ShellKernel):
        await _attached(kernel)
        output = await kernel.execute("cat main_menu")
        assert "  Type:     directory" in output
        assert "  Children: 2" in output

    @pytest.mark.asyncio
    async def test_cat_truncates_text(self):
        page = SnapshotBrowser([
            ax("1", "RootWebArea", children=["2"]),
            ax("2", "paragraph", "Terms", backend=2, text="x" * 600),
        ])
        kernel = ShellKernel(page, page)
        await kernel.attach()
        output = await kernel.execute("cat terms")
        assert "  ... (600 chars total)" in output
        assert ("x" * 501) not in output

    @pytest.mark.asyncio
    async def test_cat_missing(self, kernel: ShellKernel):
        await _attached(kernel)
        assert await kernel.execute("cat nope") == "cat: nope: No such file"


class TestActions:
    """Tests for commands delegated to the element actuator."""

    @pytest.mark.asyncio
    async def test_click(self, kernel: ShellKernel, browser: SnapshotBrowser):
        await _attached(kernel)
        kernel.cd("main/login")
        assert await kernel.execute("click sign_in_btn_2") == "Clicked: sign_in_btn_2 (button)"
        assert browser.actions == [("click", 112)]

    @pytest.mark.asyncio
    async def test_focus_and_type(self, kernel: ShellKernel, browser: SnapshotBrowser):
        await _attached(kernel)
        kernel.cd("main/login")
        assert await kernel.execute("focus password_input") == "Focused: password_input"
        assert await kernel.execute("type hunter2's") == "Typed 9 characters"
        assert browser.actions == [("focus", 110), ("type", "hunter2's")]

    @pytest.mark.asyncio
    async def test_click_missing_element(self, kernel: ShellKernel):
        await _attached(kernel)
        assert await kernel.execute("click ghost_btn") == "click: ghost_btn: No such element"

    @pytest.mark.asyncio
    async def test_click_ax_only_node(self):
        page = SnapshotBrowser([ax("1", "RootWebArea", children=["2"]), ax("2", "button", "Virtual")])
        kernel = ShellKernel(page, page)
        await kernel.attach()
        output = await kernel.execute("click virtual_btn")
        assert output == "click: virtual_btn: No DOM node backing (AX-only node)"

    @pytest.mark.asyncio
    async def test_no_actuator(self, browser: SnapshotBrowser):
        kernel = ShellKernel(browser)
        await kernel.attach()
        assert await kernel.execute("click main_menu") == "click: No element actuator configured"

    @pytest.mark.asyncio
    async def test_whoami(self, kernel: ShellKernel):
        await _attached(kernel)
        assert await kernel.execute("whoami") == "URL: https://example.com/login\nTarget: page-1"

    @pytest.mark.asyncio
    async def test_stale_reference_after_page_change(self, kernel: ShellKernel, browser: SnapshotBrowser):
        """A backend reference held across a page change fails on use."""
        await _attached(kernel)
        kernel.cd("main/login")
        entry = kernel.snapshot.mapper.find_child_by_name(kernel.state.current_id, "sign_in_btn")

        browser.load([ax("1", "RootWebArea", "Done", children=["2"]), ax("2", "StaticText", "Thanks", backend=900)])
        await kernel.refresh()

        with pytest.raises(StaleReference):
            await browser.click(entry.backend_ref)


class TestEnvironment:
    """Tests for env and export."""

    @pytest.mark.asyncio
    async def test_env_defaults(self, kernel: ShellKernel):
        await _attached(kernel)
        output = await kernel.execute("env")
        assert "SHELL=/bin/domshell" in output.splitlines()
        assert "PS1=agent@shell:$PWD$ " in output.splitlines()

    @pytest.mark.asyncio
    async def test_export(self, kernel: ShellKernel):
        await _attached(kernel)
        assert await kernel.execute("export GREETING=hello world") == "GREETING=hello world"
        assert kernel.state.env["GREETING"] == "hello world"

    @pytest.mark.asyncio
    async def test_export_usage(self, kernel: ShellKernel):
        await _attached(kernel)
        assert await kernel.execute("export nothing") == "Usage: export KEY=VALUE"


class TestExecute:
    """Tests for the plain-text execution surface."""

    @pytest.mark.asyncio
    async def test_unknown_command(self, kernel: ShellKernel):
        assert await kernel.execute("rm -rf /") == "rm: command not found. Type 'help' for available commands."

    @pytest.mark.asyncio
    async def test_blank_command(self, kernel: ShellKernel):
        assert await kernel.execute("   ") == ""

    @pytest.mark.asyncio
    async def test_parse_error(self, kernel: ShellKernel):
        assert (await kernel.execute('cd "main')).startswith("Error: cd:")

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_rendered(self, kernel: ShellKernel, browser: SnapshotBrowser):
        await _attached(kernel)

        async def broken(ref):
            raise RuntimeError("socket closed")

        browser.click = broken
        assert await kernel.execute("click main_menu") == "Error executing click: socket closed"
        assert kernel.is_attached

    @pytest.mark.asyncio
    async def test_batch(self, kernel: ShellKernel):
        outputs = await kernel.execute_batch(["attach", "cd main", "pwd"])
        assert outputs[1:] == ["", "/main"]

    @pytest.mark.asyncio
    async def test_commands_are_serialized(self, kernel: ShellKernel):
        await _attached(kernel)
        order: list[str] = []

        async def slow_hook():
            order.append("start")
            await asyncio.sleep(0)
            order.append("end")

        kernel.add_hook(slow_hook)
        await asyncio.gather(kernel.execute("pwd"), kernel.execute("pwd"))
        assert order == ["start", "end", "start", "end"]
