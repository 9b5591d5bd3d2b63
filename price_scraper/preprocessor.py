"""
Preprocessor for acquired HTML: cleanup and content narrowing.

Pricing pages are large and mostly chrome (scripts, styles, inline SVG icons,
navigation).  Everything sent to the LLM costs prompt tokens and adds noise,
so before extraction we:
- Sanitize the raw string (NULL bytes, control characters, line endings)
- Strip script/style/noscript/svg bodies and HTML comments
- Narrow the document to one container element (default: <main>)

Pipeline position: last step of content acquisition, before prompt composition.
Input:  raw HTML string from a ContentSource
Output: HTML string (the container's inner markup, or the cleaned document)
"""

import re
from typing import Optional

from bs4 import BeautifulSoup, Comment

from .exceptions import ContentNotFoundError
from .logger import get_module_logger

logger = get_module_logger("preprocessor")


class Preprocessor:
    """
    Rule-based HTML cleanup plus optional narrowing to a container.
    """

    # Elements whose content never carries pricing text
    NOISE_ELEMENTS = ['script', 'style', 'noscript', 'svg', 'template']

    # WHATWG encoding spec: browsers silently remap these charsets.
    # https://encoding.spec.whatwg.org/#names-and-labels
    # Decoding with the remapped charset makes the text match what a browser
    # shows (e.g. curly quotes and the euro sign in windows-1252's 0x80-0x9F).
    WHATWG_CHARSET_MAP = {
        'iso-8859-1': 'windows-1252',
        'iso8859-1': 'windows-1252',
        'iso88591': 'windows-1252',
        'latin-1': 'windows-1252',
        'latin1': 'windows-1252',
        'us-ascii': 'windows-1252',
        'ascii': 'windows-1252',
        'iso-8859-9': 'windows-1254',
        'iso-8859-11': 'windows-874',
    }

    @staticmethod
    def detect_charset_from_bytes(raw_bytes: bytes) -> str:
        """
        Detect charset from raw HTML bytes by scanning the first 2048 bytes
        for <meta charset=...> or <meta http-equiv="Content-Type" content="...; charset=...">.

        Returns the browser-equivalent charset or 'utf-8' as default.
        """
        # Charset declarations must appear within the first 1024 bytes
        head_str = raw_bytes[:2048].decode('ascii', errors='ignore')

        charset = None

        # Modern form first: <meta charset="...">
        m = re.search(r'<meta[^>]+charset=["\']?\s*([^\s"\';>]+)', head_str, re.IGNORECASE)
        if m:
            charset = m.group(1).strip().lower()

        # Legacy: <meta http-equiv="Content-Type" content="...; charset=...">
        if not charset:
            m = re.search(
                r'<meta[^>]+content=["\'][^"\']*charset=([^\s"\';>]+)',
                head_str, re.IGNORECASE
            )
            if m:
                charset = m.group(1).strip().lower()

        if not charset:
            return 'utf-8'

        return Preprocessor.WHATWG_CHARSET_MAP.get(charset, charset)

    @staticmethod
    def decode_bytes(raw_bytes: bytes) -> str:
        """Decode page bytes with the charset the page declares."""
        charset = Preprocessor.detect_charset_from_bytes(raw_bytes)
        try:
            return raw_bytes.decode(charset, errors='replace')
        except LookupError:
            logger.warning(f"Unknown charset '{charset}', decoding as utf-8")
            return raw_bytes.decode('utf-8', errors='replace')

    def __init__(self, container: Optional[str] = "main", strip_noise: bool = True):
        """
        Initialize preprocessor.

        Args:
            container: CSS selector of the element to narrow to, or None to
                       keep the whole document.
            strip_noise: Remove script/style/svg bodies and comments.
        """
        self.container = container
        self.strip_noise = strip_noise

    def _sanitize_html(self, html: str) -> str:
        """Fix string-level problems that make parsers misbehave."""
        sanitized = html

        # NULL bytes crash many parsers and are never valid in HTML text content
        if '\x00' in sanitized:
            sanitized = sanitized.replace('\x00', '')
            logger.debug("Removed NULL bytes")

        sanitized = sanitized.replace('\r\n', '\n').replace('\r', '\n')

        # Strip control characters except tab and newline
        control_chars = ''.join(chr(c) for c in range(32) if c not in (9, 10))
        if any(c in sanitized for c in control_chars):
            sanitized = sanitized.translate(str.maketrans('', '', control_chars))
            logger.debug("Removed control characters")

        return sanitized

    def _parse(self, html: str) -> BeautifulSoup:
        """
        Parse with the fallback chain html5lib → lxml → html.parser.

        html5lib implements the WHATWG algorithm and copes with the worst
        markup; lxml is fast and tolerant; html.parser is always available.
        """
        try:
            return BeautifulSoup(html, 'html5lib')
        except Exception as e:
            logger.warning(f"html5lib parsing failed, trying lxml: {e}")

        try:
            return BeautifulSoup(html, 'lxml')
        except Exception as e:
            logger.warning(f"lxml parsing also failed: {e}")

        return BeautifulSoup(html, 'html.parser')

    def _remove_noise(self, soup: BeautifulSoup) -> int:
        """Drop comments and noise elements. Returns count of removed nodes."""
        removed = 0

        for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
            comment.extract()
            removed += 1

        for elem in soup.find_all(self.NOISE_ELEMENTS):
            # Already gone if nested in an earlier match (e.g. <script> in <svg>)
            if elem.decomposed:
                continue
            elem.decompose()
            removed += 1

        return removed

    def narrow(self, soup: BeautifulSoup, selector: str) -> str:
        """
        Return the inner markup of the first element matching ``selector``.

        Raises:
            ContentNotFoundError: no element matches
        """
        elem = soup.select_one(selector)
        if elem is None:
            raise ContentNotFoundError(
                f"No element matches container selector '{selector}'",
                selector=selector
            )
        return elem.decode_contents()

    def process(self, html: str, fallback_to_document: bool = False) -> str:
        """
        Clean HTML and narrow it to the configured container.

        Args:
            html: Raw HTML string
            fallback_to_document: Return the whole cleaned document instead of
                                  raising when the container is missing.

        Returns:
            Cleaned (and narrowed) HTML

        Raises:
            ContentNotFoundError: container missing and no fallback allowed
        """
        original_length = len(html)
        soup = self._parse(self._sanitize_html(html))

        if self.strip_noise:
            removed = self._remove_noise(soup)
            logger.debug(f"Removed {removed} comment/noise nodes")

        if not self.container:
            result = str(soup)
        else:
            try:
                result = self.narrow(soup, self.container)
            except ContentNotFoundError as e:
                if not fallback_to_document:
                    logger.error(e.message)
                    raise
                logger.warning(f"{e.message}; falling back to full page")
                result = str(soup)

        logger.info(f"Preprocessed HTML: {original_length} -> {len(result)} chars")
        return result
