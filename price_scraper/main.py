"""
Main orchestrator for the price scraper.

Coordinates the four-stage pipeline: Acquire → Compose → Extract → Decode.
Each stage's output is the next stage's only input, so the run is strictly
sequential.  The first failure ends the run; it is returned in a RunResult
rather than raised, and the caller decides what to do with it.
"""

import time
from functools import partial
from typing import Callable, Optional

from .acquirer import ContentAcquirer
from .prompts import DEFAULT_INSTRUCTION, compose
from .decoder import ResponseDecoder
from .llm_client import BaseLLMClient, LLMClient, LLMProvider
from .schemas import PriceScraperResponse, RunResult
from .exceptions import PriceScraperError
from .logger import get_module_logger, setup_logger

logger = get_module_logger("main")


class PriceScraper:
    """
    Main orchestrator for price extraction.

    Coordinates the pipeline:
    1. ContentAcquirer: fetches and narrows the pricing page
    2. compose: builds the exemplar-driven system prompt
    3. LLM client: sends prompt + page, returns raw text and usage
    4. ResponseDecoder: validates the text into PriceScraperResponse

    The LLM client is created fresh for each run by ``client_factory`` and
    closed when the run ends, on every path.
    """

    def __init__(
        self,
        acquirer: ContentAcquirer,
        client_factory: Optional[Callable[[], BaseLLMClient]] = None,
        provider: LLMProvider = LLMProvider.GEMINI,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        instruction: str = DEFAULT_INSTRUCTION,
        example: Optional[PriceScraperResponse] = None,
        decoder: Optional[ResponseDecoder] = None,
        log_level: int = None
    ):
        if log_level is not None:
            setup_logger(level=log_level)

        self.acquirer = acquirer
        # Injectable so tests can supply a fake client without an API key
        self.client_factory = client_factory or partial(
            LLMClient.create, provider=provider, api_key=api_key, model=model
        )
        self.instruction = instruction
        self.example = example
        self.decoder = decoder or ResponseDecoder()

        logger.info("PriceScraper initialized")

    def run(self, location: str) -> RunResult:
        """
        Extract model prices from the page at ``location``.

        Args:
            location: File path or URL, as understood by the acquirer

        Returns:
            RunResult: response + usage on success, error on failure.
            total_seconds covers the whole run; usage.elapsed_seconds
            covers only the LLM call.
        """
        run_start = time.perf_counter()
        logger.info(f"Starting run for {location}")

        try:
            response, usage = self._run_stages(location)
        except PriceScraperError as e:
            total = time.perf_counter() - run_start
            logger.error(f"Run failed at {e.stage} stage: {e.message}")
            return RunResult(error=e, total_seconds=total)

        total = time.perf_counter() - run_start
        logger.info(f"Complete: {len(response.model_prices)} model prices in {total:.2f}s")
        return RunResult(response=response, usage=usage, total_seconds=total)

    def _run_stages(self, location: str):
        # Stage 1: Acquire
        # Input:  location (path or URL)
        # Output: cleaned, narrowed HTML
        content = self.acquirer.acquire(location)

        # Stage 2: Compose (pure, cannot fail on valid configuration)
        prompt = compose(self.instruction, self.example)
        logger.debug(f"System prompt:\n{prompt}")

        # Stage 3: Extract
        # The client exists only for the span of the call and the decode;
        # the with-block closes it however the run ends.
        with self.client_factory() as client:
            extract_start = time.perf_counter()
            reply = client.extract(prompt, content)
            elapsed = time.perf_counter() - extract_start

            usage = reply.usage.model_copy(update={"elapsed_seconds": elapsed})
            logger.info(
                f"Extract took {elapsed:.2f}s: {usage.prompt_tokens} prompt tokens, "
                f"{usage.completion_tokens} completion tokens"
            )

            # Stage 4: Decode
            # Input:  raw reply text (never altered before decode)
            # Output: PriceScraperResponse, or DecodeError with the raw text
            response = self.decoder.decode(reply.raw_text)

        return response, usage


def format_report(result: RunResult) -> str:
    """
    Human-readable report of a run.

    On success: the decoded prices, token usage, throughput and timings.
    On failure: one diagnostic naming the failed stage, with the context
    needed to reproduce it (raw LLM text, HTTP status, file path).
    """
    if not result.ok:
        error = result.error
        lines = [f"Run failed at {error.stage} stage: {error.message}"]
        for key, value in error.details.items():
            lines.append(f"  {key}: {value}")
        offending_text = getattr(error, "offending_text", None)
        if offending_text is not None:
            lines.append("--- Raw LLM reply ---")
            lines.append(offending_text)
            lines.append("---")
        return "\n".join(lines)

    usage = result.usage
    lines = ["Extracted Prices:"]
    for price in result.response.model_prices:
        lines.append(
            f"  {price.model_name}: "
            f"input {price.input_token_price.cost_per_million:g} {price.input_token_price.currency}/M, "
            f"output {price.output_token_price.cost_per_million:g} {price.output_token_price.currency}/M"
        )
    if not result.response.model_prices:
        lines.append("  (none)")

    lines.append("")
    lines.append(f"Tokens generated: {usage.completion_tokens}")
    lines.append(f"Input token count: {usage.prompt_tokens}")
    lines.append(f"Output tokens per Second: {usage.tokens_per_second:.2f}")
    lines.append(f"Extraction Time: {usage.elapsed_seconds:.2f}s")
    lines.append(f"Total Execution Time: {result.total_seconds:.2f}s")
    return "\n".join(lines)


def scrape_prices(
    location: str,
    acquirer: Optional[ContentAcquirer] = None,
    provider: LLMProvider = LLMProvider.GEMINI,
    api_key: Optional[str] = None,
    model: Optional[str] = None
) -> RunResult:
    """Convenience function: scrape a saved HTML page with default settings."""
    return PriceScraper(
        acquirer or ContentAcquirer.create(),
        provider=provider,
        api_key=api_key,
        model=model
    ).run(location)
