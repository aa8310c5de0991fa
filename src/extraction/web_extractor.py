# src/extraction/web_extractor.py — v1
"""Readable-text extraction from a web page using httpx + BeautifulSoup."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import httpx
from bs4 import BeautifulSoup

from actionextractor.core.errors import SourceUnavailableError

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "es-419,es;q=0.9,en;q=0.8",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Upgrade-Insecure-Requests": "1",
}

_NOISE_TAGS = ["script", "style", "nav", "footer", "aside", "header", "noscript", "iframe", "svg"]
_BLOCKED_STATUSES = (403, 418, 429)

MSG_BLOCKED = (
    "The site blocked automated access to this page. "
    "Copy the page text manually and paste it as text instead."
)


@dataclass(frozen=True)
class WebPage:
    title: str | None
    text: str


def extract_readable_text(html: str, max_chars: int = 100_000) -> WebPage:
    """Strip page chrome and return the main text and title.

    Prefers ``<article>``, then ``<main>``, then ``<body>``. Runs of three or
    more whitespace characters collapse to a paragraph break.
    """
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(_NOISE_TAGS):
        tag.decompose()

    title = None
    for selector in ("title", "h1"):
        node = soup.find(selector)
        if node is not None and node.get_text(strip=True):
            title = node.get_text(strip=True)
            break

    container = soup.find("article") or soup.find("main") or soup.body or soup
    text = container.get_text()
    text = re.sub(r"\s{3,}", "\n\n", text).strip()
    if len(text) > max_chars:
        text = text[:max_chars]
    return WebPage(title=title, text=text)


class WebPageFetcher:
    """Downloads a page and extracts its readable text."""

    def __init__(
        self,
        timeout_s: float = 15.0,
        max_chars: int = 100_000,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout_s = timeout_s
        self._max_chars = max_chars
        self._client = client

    async def _get(self, url: str) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url, headers=BROWSER_HEADERS, timeout=self._timeout_s)
        async with httpx.AsyncClient(follow_redirects=True, timeout=self._timeout_s) as client:
            return await client.get(url, headers=BROWSER_HEADERS)

    async def fetch(self, url: str) -> WebPage:
        """Fetch ``url`` and extract its text.

        Raises:
            SourceUnavailableError: ``fetch-failed`` on HTTP or transport
                errors, ``no-content`` when the page has no readable text.
        """
        try:
            response = await self._get(url)
        except httpx.HTTPError as e:
            logger.info("Web fetch failed for %s: %s", url, e)
            raise SourceUnavailableError(
                "Could not reach the page. Check that the URL is correct and public.",
                reason="fetch-failed",
            ) from e

        if response.status_code in _BLOCKED_STATUSES:
            raise SourceUnavailableError(MSG_BLOCKED, reason="fetch-failed")
        if response.status_code >= 400:
            raise SourceUnavailableError(
                f"Could not access the page (error {response.status_code}). "
                "Check that the URL is correct and public.",
                reason="fetch-failed",
            )

        page = extract_readable_text(response.text, max_chars=self._max_chars)
        if not page.text:
            raise SourceUnavailableError(
                "No readable text was found on the page.", reason="no-content",
            )
        logger.debug("Extracted %d chars from %s", len(page.text), url)
        return page
