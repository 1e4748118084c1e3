import httpx
import pytest
import pytest_asyncio

from tool_batch.errors import ToolArgumentError, ToolNotFoundError
from tool_batch.models import ToolResult
from tool_batch.session import BrowserSession, extract_title
from tool_batch.tools import (
    EchoTool,
    Tool,
    ToolDispatcher,
    ToolRegistry,
    default_registry,
)

PAGES = {
    "/": "<html><head><title>  Home \n Page </title></head><body>hi</body></html>",
    "/about": "<html><head><title>About</title></head></html>",
}


def _handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/old":
        return httpx.Response(302, headers={"Location": "https://site.test/"})
    if path == "/submit":
        return httpx.Response(201, json={"received": True})
    if path == "/broken-post":
        return httpx.Response(500, text="oops")
    if path in PAGES:
        return httpx.Response(200, html=PAGES[path])
    return httpx.Response(404, html="<html><title>Not Found</title></html>")


@pytest_asyncio.fixture
async def session():
    client = httpx.AsyncClient(transport=httpx.MockTransport(_handler), follow_redirects=True)
    async with client:
        yield BrowserSession(client=client)


@pytest.fixture
def dispatcher(session):
    return ToolDispatcher(default_registry(), session)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

def test_registry_lookup_and_listing():
    registry = default_registry()
    assert "echo" in registry
    assert registry.names() == sorted(registry.names())
    assert isinstance(registry.get("echo"), EchoTool)


def test_registry_unknown_tool_raises():
    with pytest.raises(ToolNotFoundError, match="not found"):
        ToolRegistry().get("ghost")


def test_registry_rejects_duplicates_and_nameless_tools():
    registry = ToolRegistry([EchoTool()])
    with pytest.raises(ValueError, match="already registered"):
        registry.register(EchoTool())

    class Nameless(Tool):
        async def handle(self, session, arguments):
            return ToolResult()

    with pytest.raises(ValueError):
        registry.register(Nameless())


def test_extract_title_collapses_whitespace():
    assert extract_title(PAGES["/"]) == "Home Page"
    assert extract_title("<p>no title</p>") == ""


# ---------------------------------------------------------------------------
# Built-in tools
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_echo(dispatcher):
    result = await dispatcher.invoke("echo", {"message": "hello"})
    assert result.content == "hello"


@pytest.mark.asyncio
async def test_navigate_updates_page_state(dispatcher, session):
    result = await dispatcher.invoke("browser_navigate", {"url": "https://site.test/about"})

    assert session.url == "https://site.test/about"
    assert session.title == "About"
    assert session.status == 200
    assert result.content == "Navigated to https://site.test/about"
    assert "- Page Title: About" in result.snapshot
    assert result.data["status"] == 200
    assert [m.kind for m in result.console_messages] == ["info"]


@pytest.mark.asyncio
async def test_navigate_logs_redirects(dispatcher, session):
    result = await dispatcher.invoke("browser_navigate", {"url": "https://site.test/old"})

    assert session.url == "https://site.test/"
    assert session.title == "Home Page"
    assert [m.kind for m in result.console_messages] == ["warning", "info"]


@pytest.mark.asyncio
async def test_navigate_http_error_fails_step(dispatcher, session):
    with pytest.raises(RuntimeError, match="HTTP 404"):
        await dispatcher.invoke("browser_navigate", {"url": "https://site.test/missing"})
    assert session.status == 404
    assert session.console[-1].kind == "error"


@pytest.mark.asyncio
async def test_navigate_requires_url(dispatcher):
    with pytest.raises(ToolArgumentError, match="no url provided"):
        await dispatcher.invoke("browser_navigate", {"url": "   "})


@pytest.mark.asyncio
async def test_each_tool_reports_only_its_own_console_messages(dispatcher):
    first = await dispatcher.invoke("browser_navigate", {"url": "https://site.test/"})
    second = await dispatcher.invoke("browser_snapshot", {})
    assert len(first.console_messages) == 1
    assert second.console_messages == []


@pytest.mark.asyncio
async def test_console_messages_returns_full_log(dispatcher):
    empty = await dispatcher.invoke("browser_console_messages", {})
    assert empty.content == "No console messages"

    await dispatcher.invoke("browser_navigate", {"url": "https://site.test/"})
    await dispatcher.invoke("browser_navigate", {"url": "https://site.test/about"})
    result = await dispatcher.invoke("browser_console_messages", {})

    assert len(result.console_messages) == 2
    assert result.content.startswith("[INFO] Loaded https://site.test/")


@pytest.mark.asyncio
async def test_wait_for(dispatcher):
    result = await dispatcher.invoke("browser_wait_for", {"time": 0})
    assert "Waited" in result.content
    with pytest.raises(ToolArgumentError):
        await dispatcher.invoke("browser_wait_for", {"time": -1})
    with pytest.raises(ToolArgumentError):
        await dispatcher.invoke("browser_wait_for", {"time": "soon"})


@pytest.mark.asyncio
async def test_http_post(dispatcher):
    result = await dispatcher.invoke("http_post", {"url": "https://site.test/submit", "payload": {"a": 1}})
    assert result.data["status"] == 201
    assert "→ 201" in result.content
    assert result.console_messages == []


@pytest.mark.asyncio
async def test_http_post_error_is_logged_to_console(dispatcher):
    result = await dispatcher.invoke("http_post", {"url": "https://site.test/broken-post"})
    assert result.data["status"] == 500
    assert [m.kind for m in result.console_messages] == ["error"]


@pytest.mark.asyncio
async def test_dispatcher_unknown_tool(dispatcher):
    with pytest.raises(ToolNotFoundError):
        await dispatcher.invoke("browser_teleport", {})
