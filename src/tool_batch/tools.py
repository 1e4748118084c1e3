# tools.py
# Tool registry: handler interface, built-in tools and the dispatcher.
#
# The executor never calls handlers directly; it goes through
# ToolDispatcher.invoke(name, arguments). Unknown names raise
# ToolNotFoundError, bad arguments raise ToolArgumentError.

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

from tool_batch.errors import ToolArgumentError, ToolNotFoundError
from tool_batch.models import ToolResult
from tool_batch.session import BrowserSession

logger = logging.getLogger(__name__)


class Tool(ABC):
    """A named operation against the browser session."""

    name: str = ""
    description: str = ""

    @abstractmethod
    async def handle(self, session: BrowserSession, arguments: dict[str, Any]) -> ToolResult: ...


def _require_str(arguments: dict[str, Any], key: str) -> str:
    value = arguments.get(key, "")
    if not isinstance(value, str) or not value.strip():
        raise ToolArgumentError(f"Error: no {key} provided.")
    return value.strip()


# ---------------------------------------------------------------------------
# Built-in tools
# ---------------------------------------------------------------------------


class EchoTool(Tool):
    name = "echo"
    description = "Return the given message."

    async def handle(self, session: BrowserSession, arguments: dict[str, Any]) -> ToolResult:
        return ToolResult(content=str(arguments.get("message", "")))


class NavigateTool(Tool):
    name = "browser_navigate"
    description = "Navigate the session to a URL."

    async def handle(self, session: BrowserSession, arguments: dict[str, Any]) -> ToolResult:
        url = _require_str(arguments, "url")
        response = await session.navigate(url)
        messages = session.drain_console()
        if response.is_error:
            # The page state is updated, but the step itself fails.
            raise RuntimeError(f"Navigation to {url} failed with HTTP {response.status_code}")
        return ToolResult(
            content=f"Navigated to {session.url}",
            snapshot=session.snapshot(),
            console_messages=messages,
            data={"url": session.url, "status": session.status, "title": session.title},
        )


class SnapshotTool(Tool):
    name = "browser_snapshot"
    description = "Describe the current page."

    async def handle(self, session: BrowserSession, arguments: dict[str, Any]) -> ToolResult:
        return ToolResult(
            snapshot=session.snapshot(),
            console_messages=session.drain_console(),
        )


class ConsoleMessagesTool(Tool):
    name = "browser_console_messages"
    description = "Return all console messages."

    async def handle(self, session: BrowserSession, arguments: dict[str, Any]) -> ToolResult:
        session.drain_console()
        messages = list(session.console)
        if not messages:
            return ToolResult(content="No console messages")
        return ToolResult(
            content="\n".join(str(m) for m in messages),
            console_messages=messages,
        )


class WaitForTool(Tool):
    name = "browser_wait_for"
    description = "Wait for the given number of seconds."

    async def handle(self, session: BrowserSession, arguments: dict[str, Any]) -> ToolResult:
        seconds = arguments.get("time", 0)
        if isinstance(seconds, bool) or not isinstance(seconds, (int, float)) or seconds < 0:
            raise ToolArgumentError(f"Error: time must be a non-negative number, got {seconds!r}.")
        await asyncio.sleep(seconds)
        return ToolResult(content=f"Waited for {seconds} seconds")


class HttpPostTool(Tool):
    name = "http_post"
    description = "POST a JSON payload using the session's cookies."

    async def handle(self, session: BrowserSession, arguments: dict[str, Any]) -> ToolResult:
        url = _require_str(arguments, "url")
        payload = arguments.get("payload", {})
        response = await session.client.post(url, json=payload)
        if response.is_error:
            session.log("error", f"POST {url} responded with a status of {response.status_code}")
        return ToolResult(
            content=f"POST {url} → {response.status_code} ({len(response.content)} bytes)",
            console_messages=session.drain_console(),
            data={"status": response.status_code},
        )


# ---------------------------------------------------------------------------
# Registry and dispatcher
# ---------------------------------------------------------------------------


class ToolRegistry:
    """Name → handler lookup. Lookups of unknown names raise ToolNotFoundError."""

    def __init__(self, tools: list[Tool] | None = None) -> None:
        self._tools: dict[str, Tool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        if not tool.name:
            raise ValueError("Tool must have a name.")
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered.")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool:
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    def names(self) -> list[str]:
        return sorted(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


def default_registry() -> ToolRegistry:
    return ToolRegistry(
        [
            EchoTool(),
            NavigateTool(),
            SnapshotTool(),
            ConsoleMessagesTool(),
            WaitForTool(),
            HttpPostTool(),
        ]
    )


class ToolDispatcher:
    """Resolves a tool by name and runs it against the session."""

    def __init__(self, registry: ToolRegistry, session: BrowserSession) -> None:
        self._registry = registry
        self._session = session

    async def invoke(self, tool_name: str, arguments: dict[str, Any]) -> ToolResult:
        tool = self._registry.get(tool_name)
        logger.debug("dispatch %s %s", tool_name, arguments)
        return await tool.handle(self._session, arguments)
