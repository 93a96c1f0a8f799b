"""Page fetching and extraction.

Split into two single-responsibility components so each can be mocked
independently in tests:
- PageFetcher: Protocol for turning a URL into PageContent
- HttpxPageFetcher: httpx implementation of PageFetcher
- PageParser: extract head/body content and classified links from HTML
"""

import re
from typing import Literal, Protocol

import httpx
import logfire
from bs4 import BeautifulSoup

from site_indexer.constants import DEFAULT_HTTP_TIMEOUT_SECONDS
from site_indexer.models.page_models import PageContent
from site_indexer.services.link_classifier import classify_links


class FetchError(ValueError):
    """Raised when a page cannot be fetched or parsed."""


class PageFetcher(Protocol):
    """Protocol for fetching page content."""

    async def fetch(self, url: str) -> PageContent:
        """Fetch and extract the page at ``url``.

        Raises:
            FetchError: On network, HTTP status or parse failure
        """
        ...


class PageParser:
    """Parse HTML pages into head/body content and classified links."""

    def __init__(self, content_mode: Literal["markup", "text"] = "markup"):
        """
        Args:
            content_mode: "markup" keeps the inner HTML of <head> and <body>;
                "text" keeps only their visible text.
        """
        self._content_mode = content_mode

    def parse(self, html: str) -> PageContent:
        soup = BeautifulSoup(html, "html.parser")

        # Links are read before any tag removal so text mode sees the same set.
        hrefs = [a.get("href") for a in soup.find_all("a")]
        links = classify_links(hrefs)

        return PageContent(
            head=self._section(soup.head),
            body=self._section(soup.body),
            internal_links=links.internal,
            external_links=links.external,
        )

    def _section(self, tag) -> str:
        if tag is None:
            return ""
        if self._content_mode == "markup":
            return tag.decode_contents()
        for noise in tag(["script", "style", "noscript"]):
            noise.decompose()
        return re.sub(r"\s+", " ", tag.get_text(" ")).strip()


class HttpxPageFetcher:
    """Fetch pages using httpx and parse them with PageParser."""

    # Default headers to mimic a real browser
    DEFAULT_HEADERS = {
        "User-Agent": (
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    }

    def __init__(
        self,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        headers: dict[str, str] | None = None,
        parser: PageParser | None = None,
    ):
        """Initialize the page fetcher.

        Args:
            timeout: HTTP timeout in seconds
            headers: Optional custom headers (defaults to browser-like headers)
            parser: Page parser (defaults to markup-mode PageParser)
        """
        self._timeout = timeout
        self._headers = headers or self.DEFAULT_HEADERS.copy()
        self._parser = parser or PageParser()

    async def fetch(self, url: str) -> PageContent:
        """Fetch and parse one page.

        Args:
            url: Absolute URL to fetch

        Returns:
            PageContent with head, body and classified links. An empty 200
            response yields an empty page.

        Raises:
            FetchError: If the request fails or returns a 4xx/5xx status
        """
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                headers=self._headers,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(f"Failed to fetch {url}: {e}") from e

        html = response.text
        logfire.info(
            "Page fetched (httpx)",
            url=url,
            status_code=response.status_code,
            content_length=len(html),
        )
        if not html:
            logfire.warning("Page has no content", url=url)
            return PageContent(head="", body="")

        page = self._parser.parse(html)
        logfire.debug(
            "Page parsed",
            url=url,
            internal_links=len(page.internal_links),
            external_links=len(page.external_links),
        )
        return page
