#!/usr/bin/env python3
"""
Command-line script to extract model prices from a pricing page.

Reads a saved page (default), fetches a URL, or renders it in a headless
browser, then asks an LLM to return the prices as PriceScraperResponse JSON.

Usage:
    python run_scraper.py
    python run_scraper.py --local-html data/claude.html --provider anthropic
    python run_scraper.py --url https://ai.google.dev/pricing --render --wait-for main
    python run_scraper.py --url https://example.com/pricing --on-missing-container fallback
"""

import argparse
import logging
import os
import sys

# Load .env file automatically
from dotenv import load_dotenv
load_dotenv()

from price_scraper.acquirer import ContentAcquirer, MissingContainerPolicy, SourceKind
from price_scraper.decoder import ResponseDecoder
from price_scraper.llm_client import DEFAULT_MODELS, LLMProvider, resolve_api_key
from price_scraper.logger import setup_logger
from price_scraper.main import PriceScraper, format_report
from price_scraper.prompts import compose


def default_provider() -> str:
    """$LLM_PROVIDER if it names a known provider, else gemini."""
    value = os.getenv("LLM_PROVIDER", LLMProvider.GEMINI.value).lower()
    if value not in {p.value for p in LLMProvider}:
        print(f"Unknown LLM_PROVIDER '{value}', defaulting to gemini", file=sys.stderr)
        return LLMProvider.GEMINI.value
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Extract per-model token prices from a pricing page using an LLM"
    )

    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--local-html",
        default="data/claude.html",
        help="Path of a saved HTML page containing model pricing (default: %(default)s)"
    )
    source.add_argument(
        "--url",
        help="Fetch the pricing page from this URL instead of a local file"
    )
    parser.add_argument(
        "--render",
        action="store_true",
        help="Render --url in headless Chromium instead of a plain GET"
    )
    parser.add_argument(
        "--wait-for",
        help="Selector that must be visible before a rendered page is captured "
             "(default: the container selector)"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="HTTP/render timeout in seconds"
    )

    parser.add_argument(
        "--container",
        default="main",
        help="CSS selector of the element holding the prices (default: %(default)s)"
    )
    parser.add_argument(
        "--no-narrow",
        action="store_true",
        help="Send the whole cleaned page instead of the container"
    )
    parser.add_argument(
        "--on-missing-container",
        choices=[p.value for p in MissingContainerPolicy],
        default=MissingContainerPolicy.FAIL.value,
        help="Fail, or fall back to the whole page, when the container is absent"
    )

    parser.add_argument(
        "--provider",
        choices=[p.value for p in LLMProvider],
        default=default_provider(),
        help="LLM provider (default: $LLM_PROVIDER or gemini)"
    )
    parser.add_argument(
        "--scraper-model",
        help="Model used for scraping prices (default depends on provider)"
    )
    parser.add_argument(
        "--lenient-fences",
        action="store_true",
        help="Accept a reply wrapped in a markdown code fence"
    )

    parser.add_argument(
        "--show-prompt",
        action="store_true",
        help="Print the system prompt before running"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging"
    )
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.render and not args.url:
        parser.error("--render requires --url")

    log_level = logging.DEBUG if args.verbose else logging.INFO
    setup_logger(level=log_level)

    if args.url:
        kind = SourceKind.RENDERED if args.render else SourceKind.HTTP
        location = args.url
    else:
        kind = SourceKind.FILE
        location = args.local_html

    acquirer = ContentAcquirer.create(
        kind,
        container=None if args.no_narrow else args.container,
        on_missing_container=MissingContainerPolicy(args.on_missing_container),
        wait_for=args.wait_for,
        timeout=args.timeout
    )

    provider = LLMProvider(args.provider)
    model = args.scraper_model or DEFAULT_MODELS[provider]

    scraper = PriceScraper(
        acquirer,
        provider=provider,
        # Read once here; the client itself never looks at the environment
        api_key=resolve_api_key(provider),
        model=model,
        decoder=ResponseDecoder(strip_code_fences=args.lenient_fences)
    )

    if args.show_prompt:
        print(f"System Prompt: {compose(scraper.instruction, scraper.example)}\n")

    print(f"Scraping {location} with {provider.value}:{model}", file=sys.stderr)
    result = scraper.run(location)

    if result.ok:
        print(format_report(result))
        return 0

    print(format_report(result), file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
