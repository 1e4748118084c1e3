# session.py
# Stateful backend shared by every step of a batch.
#
# A deliberately small "browser": one httpx.AsyncClient (cookies persist
# across steps), the current page, and a console log that tools append to.
# Steps run one at a time, so no locking.

import logging
import re

import httpx

from tool_batch.config import Settings
from tool_batch.models import ConsoleMessage

logger = logging.getLogger(__name__)

_TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)


def extract_title(html: str) -> str:
    match = _TITLE_RE.search(html)
    if not match:
        return ""
    return " ".join(match.group(1).split())


class BrowserSession:
    """
    Page state plus console log for one batch run.

    Pass an existing client to share connection pools (or an
    httpx.MockTransport in tests); otherwise the session creates and owns one.

    Example:
        async with BrowserSession(settings=load_settings()) as session:
            await dispatcher.invoke("browser_navigate", {"url": "https://example.com"})
    """

    def __init__(self, client: httpx.AsyncClient | None = None, settings: Settings | None = None) -> None:
        self._settings = settings or Settings()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=self._settings.http_timeout_s,
            headers={"User-Agent": self._settings.user_agent},
            follow_redirects=True,
        )
        self.url: str = "about:blank"
        self.title: str = ""
        self.status: int | None = None
        self.console: list[ConsoleMessage] = []
        self._drained = 0

    async def __aenter__(self) -> "BrowserSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    # ------------------------------------------------------------------
    # Console
    # ------------------------------------------------------------------

    def log(self, kind: str, text: str) -> None:
        self.console.append(ConsoleMessage(kind=kind, text=text))

    def drain_console(self) -> list[ConsoleMessage]:
        """Messages emitted since the previous drain. The full log is kept."""
        fresh = self.console[self._drained:]
        self._drained = len(self.console)
        return fresh

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    async def navigate(self, url: str) -> httpx.Response:
        """GET `url`, update the page state and log what happened to the console."""
        logger.debug("navigate %s", url)
        response = await self._client.get(url)

        for hop in response.history:
            self.log("warning", f"Redirected {hop.status_code} from {hop.url}")

        self.url = str(response.url)
        self.status = response.status_code
        content_type = response.headers.get("content-type", "")
        self.title = extract_title(response.text) if "html" in content_type else ""

        if response.is_error:
            self.log("error", f"Failed to load resource: the server responded with a status of {response.status_code}")
        else:
            self.log("info", f"Loaded {self.url} ({response.status_code})")
        return response

    def snapshot(self) -> str:
        lines = [
            f"- Page URL: {self.url}",
            f"- Page Title: {self.title}",
        ]
        if self.status is not None:
            lines.append(f"- Status: {self.status}")
        return "\n".join(lines)
