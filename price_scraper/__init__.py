"""
Price Scraper

Extracts per-model token pricing from vendor pricing pages with an LLM and
decodes the reply into a strictly typed schema.
- ContentAcquirer: reads/fetches/renders the page and narrows it
- compose: builds the exemplar-driven system prompt
- LLM clients: Gemini, Anthropic and OpenAI behind one interface
- ResponseDecoder: all-or-nothing validation of the reply

Public API surface:
  Orchestrator:     PriceScraper, format_report, scrape_prices
  Pipeline stages:  ContentAcquirer, Preprocessor, compose, LLMClient, ResponseDecoder
  Data models:      TokenPrice, ModelPrice, PriceScraperResponse, ExtractionUsage, RunResult
  Error types:      PriceScraperError and its per-stage subclasses
"""

# --- Pipeline stages ---
from .acquirer import (
    ContentAcquirer,
    ContentSource,
    FileSource,
    HTTPSource,
    RenderedSource,
    SourceKind,
    MissingContainerPolicy,
)
from .preprocessor import Preprocessor
from .prompts import compose, EXAMPLE_RESPONSE
from .llm_client import LLMClient, LLMProvider, BaseLLMClient, resolve_api_key
from .decoder import ResponseDecoder, decode
from .main import PriceScraper, format_report, scrape_prices

# --- Data models ---
from .schemas import (
    TokenPrice,
    ModelPrice,
    PriceScraperResponse,
    ExtractionUsage,
    ExtractionReply,
    RunResult,
)

# --- Exceptions (RunResult.error is always one of these) ---
from .exceptions import (
    PriceScraperError,
    AcquisitionError,
    SourceReadError,
    NetworkError,
    RenderTimeoutError,
    ContentNotFoundError,
    LLMClientError,
    AuthError,
    TransportError,
    EmptyResponseError,
    DecodeError,
)

__version__ = "0.1.0"
__all__ = [
    "ContentAcquirer",
    "ContentSource",
    "FileSource",
    "HTTPSource",
    "RenderedSource",
    "SourceKind",
    "MissingContainerPolicy",
    "Preprocessor",
    "compose",
    "EXAMPLE_RESPONSE",
    "LLMClient",
    "LLMProvider",
    "BaseLLMClient",
    "resolve_api_key",
    "ResponseDecoder",
    "decode",
    "PriceScraper",
    "format_report",
    "scrape_prices",
    "TokenPrice",
    "ModelPrice",
    "PriceScraperResponse",
    "ExtractionUsage",
    "ExtractionReply",
    "RunResult",
    "PriceScraperError",
    "AcquisitionError",
    "SourceReadError",
    "NetworkError",
    "RenderTimeoutError",
    "ContentNotFoundError",
    "LLMClientError",
    "AuthError",
    "TransportError",
    "EmptyResponseError",
    "DecodeError",
]
