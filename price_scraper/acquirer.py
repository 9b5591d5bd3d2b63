"""
Content acquisition: get pricing-page HTML from one of several sources.

Uses the Factory pattern (ContentAcquirer.create) to pick a ContentSource
based on configuration.  Each source implements ContentSource.fetch so the
orchestrator doesn't need to know whether the page came from disk, a plain
GET, or a headless browser.

Pipeline position: Stage 1 (Acquire → Compose → Extract → Decode).
Input:  a location (file path or URL)
Output: HTML string, cleaned and narrowed by the Preprocessor
"""

from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Optional

import requests

from .preprocessor import Preprocessor
from .exceptions import NetworkError, RenderTimeoutError, SourceReadError
from .logger import get_module_logger

logger = get_module_logger("acquirer")

# Some vendor pages serve a stripped page (or a 403) to obvious bots
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


class SourceKind(Enum):
    """Supported content sources."""
    FILE = "file"
    HTTP = "http"
    RENDERED = "rendered"


class MissingContainerPolicy(Enum):
    """What to do when the narrowing container is absent."""
    FAIL = "fail"
    FALLBACK = "fallback"


class ContentSource(ABC):
    """Abstract base class for content sources."""

    @abstractmethod
    def fetch(self, location: str) -> str:
        """
        Return the page HTML found at ``location``.

        Args:
            location: File path or URL, depending on the source

        Returns:
            Decoded HTML string
        """
        pass


class FileSource(ContentSource):
    """Reads a saved HTML page from disk."""

    def fetch(self, location: str) -> str:
        path = Path(location)
        try:
            # Read bytes so we can decode with the charset the page declares
            raw_bytes = path.read_bytes()
        except OSError as e:
            logger.error(f"Cannot read {path}: {e}")
            raise SourceReadError(
                f"Cannot read HTML file {path}: {e.strerror or e}",
                path=str(path)
            ) from e

        logger.info(f"Read {len(raw_bytes)} bytes from {path}")
        return Preprocessor.decode_bytes(raw_bytes)


class HTTPSource(ContentSource):
    """Fetches a page with a single static GET (no JavaScript)."""

    def __init__(self, timeout: float = 30.0, user_agent: str = DEFAULT_USER_AGENT):
        self.timeout = timeout
        self.headers = {"User-Agent": user_agent}

    def fetch(self, location: str) -> str:
        try:
            response = requests.get(location, headers=self.headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"GET {location} failed: {e}")
            raise NetworkError(f"GET {location} failed: {e}", url=location) from e

        if not response.ok:
            logger.error(f"GET {location} returned HTTP {response.status_code}")
            raise NetworkError(
                f"GET {location} returned HTTP {response.status_code} {response.reason}",
                url=location,
                status_code=response.status_code
            )

        logger.info(f"Fetched {len(response.content)} bytes from {location}")
        return Preprocessor.decode_bytes(response.content)


class RenderedSource(ContentSource):
    """
    Renders a page in headless Chromium and serializes the final DOM.

    Needed for pricing pages whose tables are filled in by JavaScript.
    The render waits until ``wait_for`` is visible, so the serialized
    document contains the hydrated content.
    """

    def __init__(
        self,
        wait_for: str = "main",
        timeout: float = 10.0,
        user_agent: str = DEFAULT_USER_AGENT
    ):
        self.wait_for = wait_for
        self.timeout = timeout
        self.user_agent = user_agent

    def fetch(self, location: str) -> str:
        from playwright.sync_api import sync_playwright, Error as PlaywrightError

        timeout_ms = self.timeout * 1000

        # Launch and close failures (e.g. browser not installed) are
        # PlaywrightErrors too, so the whole session sits inside the try
        try:
            with sync_playwright() as p:
                browser = p.chromium.launch(headless=True)
                try:
                    html = self._render(browser, location, timeout_ms)
                finally:
                    browser.close()
        except PlaywrightError as e:
            logger.error(f"Render of {location} failed: {e}")
            raise NetworkError(f"Render of {location} failed: {e}", url=location) from e

        logger.info(f"Rendered {len(html)} chars from {location}")
        return html

    def _render(self, browser, location: str, timeout_ms: float) -> str:
        from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

        page = browser.new_page(user_agent=self.user_agent)

        try:
            page.goto(location, timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            logger.error(f"Navigation to {location} timed out")
            raise NetworkError(
                f"Navigation to {location} timed out after {self.timeout}s",
                url=location
            ) from e

        try:
            page.wait_for_selector(self.wait_for, state="visible", timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            logger.error(f"Timed out waiting for '{self.wait_for}' on {location}")
            raise RenderTimeoutError(
                f"'{self.wait_for}' not visible on {location} after {self.timeout}s",
                url=location,
                selector=self.wait_for,
                timeout=self.timeout
            ) from e

        return page.content()


class ContentAcquirer:
    """
    Fetches page content from a source and narrows it for the LLM.

    Usage:
        acquirer = ContentAcquirer.create(SourceKind.FILE)
        acquirer = ContentAcquirer.create(SourceKind.RENDERED, wait_for="table")
        html = acquirer.acquire("data/claude.html")
    """

    def __init__(
        self,
        source: ContentSource,
        preprocessor: Optional[Preprocessor] = None,
        on_missing_container: MissingContainerPolicy = MissingContainerPolicy.FAIL
    ):
        self.source = source
        # None means the page is passed through untouched
        self.preprocessor = preprocessor
        self.on_missing_container = on_missing_container

    def acquire(self, location: str) -> str:
        """
        Fetch ``location`` and narrow it to the relevant region.

        Raises:
            SourceReadError, NetworkError, RenderTimeoutError: fetch failed
            ContentNotFoundError: container missing under the FAIL policy
        """
        logger.info(f"Acquiring content from {location} via {type(self.source).__name__}")
        html = self.source.fetch(location)

        if self.preprocessor is None:
            return html

        return self.preprocessor.process(
            html,
            fallback_to_document=self.on_missing_container == MissingContainerPolicy.FALLBACK
        )

    @staticmethod
    def create(
        kind: SourceKind = SourceKind.FILE,
        container: Optional[str] = "main",
        on_missing_container: MissingContainerPolicy = MissingContainerPolicy.FAIL,
        wait_for: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> "ContentAcquirer":
        """
        Create an acquirer for the given source kind.

        Args:
            kind: Where the page comes from
            container: CSS selector to narrow to (None disables narrowing)
            on_missing_container: Policy when the container is absent
            wait_for: Selector a rendered page must show (defaults to container)
            timeout: HTTP / render timeout in seconds (source default if None)

        Returns:
            Configured ContentAcquirer
        """
        kwargs = {}
        if timeout is not None:
            kwargs["timeout"] = timeout

        if kind == SourceKind.FILE:
            source = FileSource()
        elif kind == SourceKind.HTTP:
            source = HTTPSource(**kwargs)
        elif kind == SourceKind.RENDERED:
            source = RenderedSource(wait_for=wait_for or container or "body", **kwargs)
        else:
            raise ValueError(f"Unsupported source kind: {kind}")

        preprocessor = Preprocessor(container=container)
        return ContentAcquirer(source, preprocessor, on_missing_container)
