"""
Custom exceptions for the price scraper.

Error philosophy:
  - Every stage fails fast: errors are logged where they happen and propagate
    upward without local recovery.
  - Each error knows which pipeline stage raised it (``stage``), so the
    orchestrator can report "acquire failed" vs "decode failed" without
    inspecting types.
  - Errors carry the context needed to diagnose a run without re-running it
    at a higher log level: file path, URL + HTTP status, or the raw LLM text.
"""

from typing import Optional


class PriceScraperError(Exception):
    """Base exception for all price scraper errors."""

    stage = "run"

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_response(self) -> dict:
        """Convert to a plain dict for diagnostics."""
        return {
            "error": type(self).__name__,
            "stage": self.stage,
            "message": self.message,
            "details": self.details,
        }


# --- Acquisition: the page content could not be obtained ---

class AcquisitionError(PriceScraperError):
    """Raised when page content cannot be acquired."""

    stage = "acquire"


class SourceReadError(AcquisitionError):
    """Local file could not be read."""

    def __init__(self, message: str, path: str, details: Optional[dict] = None):
        super().__init__(message, details)
        self.path = path
        self.details.setdefault("path", path)


class NetworkError(AcquisitionError):
    """Static fetch failed: transport error or non-success status."""

    def __init__(
        self,
        message: str,
        url: str,
        status_code: Optional[int] = None,
        details: Optional[dict] = None
    ):
        super().__init__(message, details)
        self.url = url
        self.status_code = status_code
        self.details.setdefault("url", url)
        if status_code is not None:
            self.details.setdefault("status_code", status_code)


class RenderTimeoutError(AcquisitionError):
    """Headless render never saw the awaited element become visible."""

    def __init__(
        self,
        message: str,
        url: str,
        selector: str,
        timeout: float,
        details: Optional[dict] = None
    ):
        super().__init__(message, details)
        self.url = url
        self.selector = selector
        self.timeout = timeout
        self.details.setdefault("url", url)
        self.details.setdefault("selector", selector)
        self.details.setdefault("timeout", timeout)


class ContentNotFoundError(AcquisitionError):
    """
    Raised when content narrowing cannot find the container element.

    Whether this ends the run depends on the acquirer's missing-container
    policy ("fail" or "fallback").
    """

    def __init__(self, message: str, selector: str, details: Optional[dict] = None):
        super().__init__(message, details)
        self.selector = selector
        self.details.setdefault("selector", selector)


# --- LLM call: the completion service did not give us text ---

class LLMClientError(PriceScraperError):
    """Raised when the LLM API call fails."""

    stage = "extract"
    retryable = False

    def __init__(
        self,
        message: str,
        provider: str,
        details: Optional[dict] = None
    ):
        super().__init__(message, details)
        self.provider = provider  # "gemini", "anthropic" or "openai"
        self.details.setdefault("provider", provider)


class AuthError(LLMClientError):
    """Missing or rejected credential. Never retried."""


class TransportError(LLMClientError):
    """Network or service failure talking to the LLM."""

    retryable = True


class EmptyResponseError(LLMClientError):
    """The call succeeded but returned no completion text."""


# --- Decode: the reply text does not match the schema ---

class DecodeError(PriceScraperError):
    """
    Raised when the LLM reply cannot be decoded into PriceScraperResponse.

    ``offending_text`` is always the exact raw reply, never truncated.
    """

    stage = "decode"

    def __init__(
        self,
        reason: str,
        offending_text: str,
        field_errors: Optional[list[dict]] = None,
        details: Optional[dict] = None
    ):
        super().__init__(f"Failed to decode LLM reply: {reason}", details)
        self.reason = reason
        self.offending_text = offending_text
        self.field_errors = field_errors or []

    @property
    def missing_fields(self) -> list[str]:
        """Dotted paths of required fields absent from the reply."""
        return [e["field"] for e in self.field_errors if e["type"] == "missing"]

    def to_response(self) -> dict:
        response = super().to_response()
        response["reason"] = self.reason
        response["offending_text"] = self.offending_text
        response["field_errors"] = self.field_errors
        return response
