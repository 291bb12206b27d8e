"""
Chrome DevTools Protocol Provider

Talks to a Chrome instance started with --remote-debugging-port. One
CDPBrowser serves as both the accessibility source (Accessibility and Page
domains) and the element actuator (DOM, Runtime and Input domains).

Example:
    >>> browser = CDPBrowser(port=9222)
    >>> await browser.connect(None)          # first page target
    >>> nodes = await browser.get_full_tree()
    >>> await browser.disconnect()
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import httpx
import websockets
from websockets.exceptions import ConnectionClosed

from domshell.config import ShellConfig
from domshell.errors import StaleReference
from domshell.providers.base import (
    AccessibilitySource,
    ChangeSignal,
    ElementActuator,
    SignalListener,
)

logger = logging.getLogger(__name__)

# CDP error messages meaning the backend node is gone from the document
_STALE_MARKERS = (
    "No node with given id",
    "Could not find node",
    "Node is detached",
    "No node found",
)

_MUTATION_EVENTS = {
    "Page.navigatedWithinDocument",
    "DOM.childNodeInserted",
    "DOM.childNodeRemoved",
    "DOM.childNodeCountUpdated",
}


class CDPError(RuntimeError):
    """A CDP command returned an error response."""

    def __init__(self, method: str, error: dict[str, Any]) -> None:
        self.method = method
        self.code = error.get("code")
        self.message = error.get("message", "")
        super().__init__(f"{method} failed: {self.message}")

    @property
    def is_stale(self) -> bool:
        return any(marker in self.message for marker in _STALE_MARKERS)


class CDPBrowser(AccessibilitySource, ElementActuator):
    """Accessibility source and element actuator over one CDP page session."""

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 9222,
        *,
        timeout: float = 30.0,
    ) -> None:
        self._host = host
        self._port = port
        self._timeout = timeout
        self._ws: Any = None
        self._reader: asyncio.Task[None] | None = None
        self._pending: dict[int, asyncio.Future[dict[str, Any]]] = {}
        self._next_id = 0
        self._target: str | None = None
        self._listeners: list[SignalListener] = []

    @classmethod
    def from_config(cls, config: ShellConfig) -> "CDPBrowser":
        return cls(config.cdp_host, config.cdp_port, timeout=config.command_timeout)

    @property
    def target(self) -> str | None:
        return self._target

    # -------------------------------------------------------------------------
    # Connection
    # -------------------------------------------------------------------------

    async def _list_targets(self) -> list[dict[str, Any]]:
        url = f"http://{self._host}:{self._port}/json/list"
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.get(url)
            response.raise_for_status()
            return [t for t in response.json() if t.get("type") == "page"]

    async def connect(self, target: str | None) -> str:
        if self._ws is not None and (target is None or target == self._target):
            return self._target or ""

        if self._ws is not None:
            await self.disconnect()

        pages = await self._list_targets()
        if target is not None:
            pages = [p for p in pages if p.get("id") == target]
        if not pages:
            raise ConnectionError(f"No page target found{f' with id {target}' if target else ''}")

        page = pages[0]
        self._ws = await websockets.connect(page["webSocketDebuggerUrl"], max_size=None)
        self._target = page["id"]
        self._reader = asyncio.create_task(self._read_loop())
        logger.debug(f"Connected to page target {self._target}")

        try:
            for domain in ("Accessibility", "DOM", "Page", "Runtime"):
                await self.send(f"{domain}.enable")
            # DOM mutation events only fire for nodes the client has seen
            await self.send("DOM.getDocument", {"depth": -1})
        except BaseException:
            await self.disconnect()
            raise

        return self._target

    async def disconnect(self) -> None:
        if self._ws is None:
            return

        ws, self._ws = self._ws, None
        self._target = None
        await ws.close()
        if self._reader is not None:
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
            self._reader = None
        self._fail_pending(ConnectionError("CDP connection closed"))

    def _fail_pending(self, error: Exception) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()

    async def _read_loop(self) -> None:
        try:
            async for raw in self._ws:
                message = json.loads(raw)
                if "id" in message:
                    future = self._pending.pop(message["id"], None)
                    if future is not None and not future.done():
                        future.set_result(message)
                elif "method" in message:
                    self._dispatch_event(message["method"], message.get("params", {}))
        except ConnectionClosed:
            logger.warning("CDP connection closed by the browser")
        finally:
            self._fail_pending(ConnectionError("CDP connection closed"))

    def _dispatch_event(self, method: str, params: dict[str, Any]) -> None:
        signal: ChangeSignal | None = None
        if method == "Page.frameNavigated" and not params.get("frame", {}).get("parentId"):
            signal = ChangeSignal.NAVIGATION
        elif method in _MUTATION_EVENTS:
            signal = ChangeSignal.MUTATION

        if signal is None:
            return
        for listener in list(self._listeners):
            listener(signal)

    async def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send a CDP command and return its result."""
        if self._ws is None:
            raise ConnectionError("Not connected to any page target")

        self._next_id += 1
        msg_id = self._next_id
        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._pending[msg_id] = future

        cmd: dict[str, Any] = {"id": msg_id, "method": method}
        if params:
            cmd["params"] = params
        try:
            await self._ws.send(json.dumps(cmd))
            response = await asyncio.wait_for(future, timeout=self._timeout)
        finally:
            self._pending.pop(msg_id, None)

        if "error" in response:
            raise CDPError(method, response["error"])
        return response.get("result", {})

    # -------------------------------------------------------------------------
    # AccessibilitySource
    # -------------------------------------------------------------------------

    async def get_full_tree(self, frame: str | None = None) -> list[dict[str, Any]]:
        params = {"frameId": frame} if frame else None
        result = await self.send("Accessibility.getFullAXTree", params)
        return list(result.get("nodes", []))

    async def get_frame_tree(self) -> list[str]:
        result = await self.send("Page.getFrameTree")
        frames: list[str] = []

        def walk(tree: dict[str, Any]) -> None:
            for child in tree.get("childFrames", []):
                frames.append(child["frame"]["id"])
                walk(child)

        walk(result.get("frameTree", {}))
        return frames

    # -------------------------------------------------------------------------
    # ElementActuator
    # -------------------------------------------------------------------------

    async def _call_on(self, ref: Any, function: str) -> Any:
        """Run a JS function with `this` bound to the referenced element."""
        try:
            resolved = await self.send("DOM.resolveNode", {"backendNodeId": ref})
            result = await self.send("Runtime.callFunctionOn", {
                "objectId": resolved["object"]["objectId"],
                "functionDeclaration": function,
                "returnByValue": True,
            })
        except CDPError as e:
            if e.is_stale:
                raise StaleReference(f"Backend node {ref} no longer exists: {e.message}") from e
            raise
        return result.get("result", {}).get("value")

    async def click(self, ref: Any) -> None:
        try:
            await self._call_on(ref, "function() { this.click(); }")
        except CDPError as e:
            logger.warning(f"Scripted click failed ({e}), falling back to mouse events")
            await self._click_by_coordinates(ref)

    async def _click_by_coordinates(self, ref: Any) -> None:
        coords = json.loads(await self._call_on(ref, """function() {
            const rect = this.getBoundingClientRect();
            return JSON.stringify({x: rect.x + rect.width / 2, y: rect.y + rect.height / 2});
        }"""))
        for event in ("mousePressed", "mouseReleased"):
            await self.send("Input.dispatchMouseEvent", {
                "type": event,
                "x": coords["x"],
                "y": coords["y"],
                "button": "left",
                "clickCount": 1,
            })

    async def focus(self, ref: Any) -> None:
        await self._call_on(ref, "function() { this.focus(); }")

    async def type_text(self, text: str) -> None:
        for char in text:
            await self.send("Input.dispatchKeyEvent", {"type": "keyDown", "text": char})
            await self.send("Input.dispatchKeyEvent", {"type": "keyUp", "text": char})

    async def read_text(self, ref: Any) -> str:
        value = await self._call_on(ref, "function() { return this.textContent || this.value || ''; }")
        return str(value or "")

    async def _evaluate(self, expression: str) -> Any:
        result = await self.send("Runtime.evaluate", {"expression": expression, "returnByValue": True})
        return result.get("result", {}).get("value")

    async def whoami(self) -> str:
        url = await self._evaluate("window.location.href")
        title = await self._evaluate("document.title")
        return f"URL: {url}\nTitle: {title}\nTarget: {self._target}"

    def subscribe(self, listener: SignalListener) -> None:
        self._listeners.append(listener)
