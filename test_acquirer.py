"""
Tests for content acquisition: sources, preprocessing and narrowing.

HTTP and the headless browser are mocked; files use pytest's tmp_path.
"""

from unittest.mock import MagicMock, Mock, patch

import pytest
import requests

from price_scraper.acquirer import (
    ContentAcquirer,
    FileSource,
    HTTPSource,
    MissingContainerPolicy,
    RenderedSource,
    SourceKind,
)
from price_scraper.exceptions import (
    ContentNotFoundError,
    NetworkError,
    RenderTimeoutError,
    SourceReadError,
)
from price_scraper.preprocessor import Preprocessor

PRICING_PAGE = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Pricing</title>
<style>.price { color: red; }</style>
<script>window.dataLayer = [];</script>
</head>
<body>
<nav><a href="/">Home</a></nav>
<main>
  <!-- pricing table -->
  <h1>Pricing</h1>
  <table>
    <tr><td>claude-3-haiku</td><td>$0.25 / MTok</td><td>$1.25 / MTok</td></tr>
  </table>
  <svg><path d="M0 0"/></svg>
</main>
<footer>Copyright</footer>
</body>
</html>"""


# --- Preprocessor ---

class TestPreprocessor:
    """Cleanup and narrowing."""

    def test_narrows_to_main(self):
        html = Preprocessor().process(PRICING_PAGE)

        assert "claude-3-haiku" in html
        assert "<main" not in html
        assert "Home" not in html
        assert "Copyright" not in html

    def test_strips_noise(self):
        html = Preprocessor(container=None).process(PRICING_PAGE)

        assert "dataLayer" not in html
        assert ".price" not in html
        assert "pricing table" not in html
        assert "<svg" not in html
        assert "Copyright" in html

    def test_keeps_noise_when_disabled(self):
        html = Preprocessor(container=None, strip_noise=False).process(PRICING_PAGE)
        assert "dataLayer" in html

    def test_custom_container(self):
        html = Preprocessor(container="table").process(PRICING_PAGE)
        assert "claude-3-haiku" in html
        assert "<h1>" not in html

    def test_missing_container_fails(self):
        with pytest.raises(ContentNotFoundError) as exc_info:
            Preprocessor(container="#prices").process(PRICING_PAGE)
        assert exc_info.value.selector == "#prices"
        assert exc_info.value.stage == "acquire"

    def test_missing_container_fallback(self):
        html = Preprocessor(container="#prices").process(PRICING_PAGE, fallback_to_document=True)
        assert "claude-3-haiku" in html
        assert "Copyright" in html

    def test_removes_null_and_control_characters(self):
        html = Preprocessor().process("<main>gpt\x00-4\x07o\r\n</main>")
        assert html == "gpt-4o\n"

    @pytest.mark.parametrize("head,expected", [
        (b'<meta charset="utf-8">', "utf-8"),
        (b'<meta charset="ISO-8859-1">', "windows-1252"),
        (b'<meta http-equiv="Content-Type" content="text/html; charset=shift_jis">', "shift_jis"),
        (b"<title>no charset</title>", "utf-8"),
    ])
    def test_detect_charset(self, head, expected):
        assert Preprocessor.detect_charset_from_bytes(head) == expected

    def test_decode_unknown_charset(self):
        assert Preprocessor.decode_bytes(b'<meta charset="bogus-8"><p>ok</p>').endswith("<p>ok</p>")


# --- Sources ---

class TestFileSource:

    def test_reads_declared_charset(self, tmp_path):
        page = tmp_path / "pricing.html"
        page.write_bytes(b'<meta charset="windows-1252"><main>\x80 2.50</main>')

        assert "€ 2.50" in FileSource().fetch(str(page))

    def test_missing_file(self, tmp_path):
        missing = tmp_path / "missing.html"

        with pytest.raises(SourceReadError) as exc_info:
            FileSource().fetch(str(missing))

        assert exc_info.value.path == str(missing)
        assert exc_info.value.details["path"] == str(missing)


class TestHTTPSource:

    @patch("price_scraper.acquirer.requests.get")
    def test_success(self, mock_get):
        mock_get.return_value = Mock(ok=True, status_code=200, content=PRICING_PAGE.encode())

        html = HTTPSource(timeout=5).fetch("https://example.com/pricing")

        assert "claude-3-haiku" in html
        _, kwargs = mock_get.call_args
        assert kwargs["timeout"] == 5
        assert "Mozilla" in kwargs["headers"]["User-Agent"]

    @patch("price_scraper.acquirer.requests.get")
    def test_http_error_status(self, mock_get):
        mock_get.return_value = Mock(ok=False, status_code=403, reason="Forbidden")

        with pytest.raises(NetworkError) as exc_info:
            HTTPSource().fetch("https://example.com/pricing")

        assert exc_info.value.status_code == 403
        assert exc_info.value.url == "https://example.com/pricing"
        assert "403" in exc_info.value.message

    @patch("price_scraper.acquirer.requests.get")
    def test_transport_failure(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(NetworkError) as exc_info:
            HTTPSource().fetch("https://example.com/pricing")

        assert exc_info.value.status_code is None


class TestRenderedSource:

    @pytest.fixture
    def browser(self):
        pytest.importorskip("playwright.sync_api")
        with patch("playwright.sync_api.sync_playwright") as mock_sync_playwright:
            playwright = MagicMock()
            mock_sync_playwright.return_value.__enter__.return_value = playwright
            browser = playwright.chromium.launch.return_value
            yield browser

    def test_waits_for_selector(self, browser):
        page = browser.new_page.return_value
        page.content.return_value = PRICING_PAGE

        html = RenderedSource(wait_for="table", timeout=2).fetch("https://example.com/pricing")

        assert html == PRICING_PAGE
        page.goto.assert_called_once_with("https://example.com/pricing", timeout=2000)
        page.wait_for_selector.assert_called_once_with("table", state="visible", timeout=2000)
        browser.close.assert_called_once()

    def test_wait_timeout(self, browser):
        from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

        page = browser.new_page.return_value
        page.wait_for_selector.side_effect = PlaywrightTimeoutError("Timeout 2000ms exceeded")

        with pytest.raises(RenderTimeoutError) as exc_info:
            RenderedSource(wait_for="table", timeout=2).fetch("https://example.com/pricing")

        assert exc_info.value.selector == "table"
        assert exc_info.value.timeout == 2
        browser.close.assert_called_once()

    def test_navigation_timeout(self, browser):
        from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

        page = browser.new_page.return_value
        page.goto.side_effect = PlaywrightTimeoutError("Timeout 2000ms exceeded")

        with pytest.raises(NetworkError) as exc_info:
            RenderedSource(wait_for="table", timeout=2).fetch("https://example.com/pricing")

        assert "Navigation" in exc_info.value.message
        assert exc_info.value.url == "https://example.com/pricing"
        page.wait_for_selector.assert_not_called()
        browser.close.assert_called_once()

    def test_launch_failure(self):
        pytest.importorskip("playwright.sync_api")
        from playwright.sync_api import Error as PlaywrightError

        with patch("playwright.sync_api.sync_playwright") as mock_sync_playwright:
            playwright = MagicMock()
            mock_sync_playwright.return_value.__enter__.return_value = playwright
            playwright.chromium.launch.side_effect = PlaywrightError("Executable doesn't exist")

            with pytest.raises(NetworkError) as exc_info:
                RenderedSource().fetch("https://example.com/pricing")

        assert "Executable doesn't exist" in exc_info.value.message
        assert exc_info.value.stage == "acquire"


# --- ContentAcquirer ---

class TestContentAcquirer:

    @pytest.mark.parametrize("kind,source_cls", [
        (SourceKind.FILE, FileSource),
        (SourceKind.HTTP, HTTPSource),
        (SourceKind.RENDERED, RenderedSource),
    ])
    def test_create(self, kind, source_cls):
        acquirer = ContentAcquirer.create(kind)
        assert isinstance(acquirer.source, source_cls)
        assert acquirer.preprocessor.container == "main"

    def test_rendered_waits_for_container_by_default(self):
        acquirer = ContentAcquirer.create(SourceKind.RENDERED, container="#pricing")
        assert acquirer.source.wait_for == "#pricing"

    def test_timeout_passed_to_source(self):
        assert ContentAcquirer.create(SourceKind.HTTP, timeout=3).source.timeout == 3

    def test_acquire_from_file(self, tmp_path):
        page = tmp_path / "claude.html"
        page.write_text(PRICING_PAGE, encoding="utf-8")

        html = ContentAcquirer.create().acquire(str(page))

        assert "claude-3-haiku" in html
        assert "Copyright" not in html

    def test_missing_container_policy(self, tmp_path):
        page = tmp_path / "claude.html"
        page.write_text("<body><p>gpt-4o $5</p></body>", encoding="utf-8")

        with pytest.raises(ContentNotFoundError):
            ContentAcquirer.create().acquire(str(page))

        fallback = ContentAcquirer.create(on_missing_container=MissingContainerPolicy.FALLBACK)
        assert "gpt-4o $5" in fallback.acquire(str(page))

    def test_no_narrowing(self, tmp_path):
        page = tmp_path / "claude.html"
        page.write_text(PRICING_PAGE, encoding="utf-8")

        html = ContentAcquirer.create(container=None).acquire(str(page))
        assert "Copyright" in html

    def test_without_preprocessor(self):
        source = Mock()
        source.fetch.return_value = "<main>raw</main>"
        assert ContentAcquirer(source).acquire("x") == "<main>raw</main>"
