# === FILE: data_manifest/extractor.py ===
"""Page extraction for Data Manifest.

The capture cycle talks to the extractor through a tiny request/response
message contract: it sends ``{"action": "scrape"}`` for a tab and expects
``{"url", "title", "content"}`` back, with ``content`` already capped.

:class:`HtmlPageExtractor` is the stand-alone implementation used by the CLI:
it loads the tab's URL with aiohttp and reads the document with BeautifulSoup,
the same way a content script would read ``document.title`` and
``document.body.innerText``.
"""
from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from typing import Any, Optional, Protocol

from aiohttp import ClientError, ClientSession, ClientTimeout
from bs4 import BeautifulSoup

from data_manifest.errors import ExtractionError
from data_manifest.logger import get_logger
from data_manifest.models import CapturedPage, TabEvent

__all__: Sequence[str] = ("PageExtractor", "HtmlPageExtractor", "extract_page", "SCRAPE_REQUEST")

SCRAPE_REQUEST: Mapping[str, str] = {"action": "scrape"}

# Never part of the visible body text.
_INVISIBLE_TAGS = ("script", "style", "noscript", "template")


class PageExtractor(Protocol):
    async def send_message(self, event: TabEvent, message: Mapping[str, Any]) -> Mapping[str, Any]: ...


def extract_page(html: str, url: str, max_length: int) -> CapturedPage:
    """Parse *html* into a :class:`CapturedPage` with text cut to *max_length*."""
    soup = BeautifulSoup(html, "html.parser")

    title_tag = soup.find("title")
    title = title_tag.get_text(strip=True) if title_tag else ""

    body = soup.body or soup
    for element in body(list(_INVISIBLE_TAGS)):
        element.decompose()
    text = " ".join(body.stripped_strings)

    return CapturedPage(url=url, title=title, content=text[:max_length])


class HtmlPageExtractor:
    """Answers scrape requests by downloading and parsing the tab's page."""

    def __init__(
        self,
        max_content_length: int = 100,
        timeout: float = 10.0,
        user_agent: str = "DataManifest/1.0",
        session: Optional[ClientSession] = None,
    ) -> None:
        self.max_content_length = max_content_length
        self.timeout = timeout
        self.user_agent = user_agent
        self.session = session
        self._owns_session = session is None
        self.logger = get_logger("extractor")

    async def __aenter__(self) -> HtmlPageExtractor:
        if self.session is None:
            self.session = ClientSession(
                timeout=ClientTimeout(total=self.timeout),
                headers={"User-Agent": self.user_agent},
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()

    async def send_message(self, event: TabEvent, message: Mapping[str, Any]) -> Mapping[str, Any]:
        if message.get("action") != "scrape":
            raise ExtractionError(f"Unsupported extractor action: {message.get('action')!r}")
        if not event.url:
            raise ExtractionError(f"Tab {event.tab_id} has no URL")
        page = await self.scrape(event.url)
        return page.to_dict()

    async def scrape(self, url: str) -> CapturedPage:
        if not self.session:
            raise RuntimeError("Session not initialized")
        try:
            async with self.session.get(url) as resp:
                if resp.status >= 400:
                    raise ExtractionError(f"GET {url} -> HTTP {resp.status}")
                html = await resp.text(errors="replace")
                final_url = str(resp.url)
        except (ClientError, asyncio.TimeoutError) as exc:
            raise ExtractionError(f"Could not load {url}: {exc or type(exc).__name__}") from exc
        page = extract_page(html, final_url, self.max_content_length)
        self.logger.debug("Extracted %r from %s (%d chars)", page.title, final_url, len(page.content))
        return page
