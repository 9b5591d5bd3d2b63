"""
Pydantic schemas defining the contracts between pipeline stages.

PriceScraperResponse: the shape the LLM must reproduce, and what the decoder
returns. Wire names are camelCase (``modelPrices``, ``costPerMillion``);
Python attributes are snake_case.

Data flow through the pipeline:
  ContentAcquirer → page content (str)
  PromptComposer  → prompt (str), built from an example PriceScraperResponse
  LLM client      → ExtractionReply (raw text + ExtractionUsage)
  ResponseDecoder → PriceScraperResponse
  PriceScraper    → RunResult
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .exceptions import PriceScraperError


# --- Wire models: what the LLM sends back ---
# Frozen: a decoded response is never mutated after decode.
# Numeric fields are strict so "1.5" or true are rejected instead of coerced.

WIRE_CONFIG = ConfigDict(
    alias_generator=to_camel,
    # Python code may build models by attribute name; the decoder parses
    # replies by wire name only (see decoder.py)
    validate_by_name=True,
    validate_by_alias=True,
    frozen=True,
    protected_namespaces=(),
)


class TokenPrice(BaseModel):
    """Cost of one million tokens in a given currency."""
    model_config = WIRE_CONFIG

    # The JSON parser accepts Infinity and NaN literals; they are not prices
    cost_per_million: float = Field(ge=0, strict=True, allow_inf_nan=False)
    currency: str = Field(min_length=1, strict=True)  # e.g. "USD"


class ModelPrice(BaseModel):
    """Input and output token pricing for one model."""
    model_config = WIRE_CONFIG

    # Unique within a response by convention only; not checked on decode
    model_name: str = Field(min_length=1, strict=True)
    input_token_price: TokenPrice
    output_token_price: TokenPrice


class PriceScraperResponse(BaseModel):
    """Top-level extraction result, in the order the LLM listed the models."""
    model_config = WIRE_CONFIG

    model_prices: list[ModelPrice]

    def to_json(self, indent: Optional[int] = None) -> str:
        """Serialize to the exact wire form the decoder parses."""
        return self.model_dump_json(by_alias=True, indent=indent)


# --- Run bookkeeping: owned by the orchestrator for a single run ---

class ExtractionUsage(BaseModel):
    """Token counts for one LLM call, plus the time the call took."""
    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    # Filled in by the orchestrator, which times the extract stage only
    elapsed_seconds: float = Field(default=0.0, ge=0)

    @property
    def tokens_per_second(self) -> float:
        """Completion tokens per second of extract time (0.0 if untimed)."""
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.completion_tokens / self.elapsed_seconds


class ExtractionReply(BaseModel):
    """What an LLM client hands back: the untouched text and its usage."""
    raw_text: str
    usage: ExtractionUsage = Field(default_factory=ExtractionUsage)
    provider: str = ""
    model: str = ""


class RunResult(BaseModel):
    """
    Outcome of one PriceScraper run.

    Exactly one of ``response`` / ``error`` is set. The caller decides what a
    failure means (exit code, retry); the orchestrator never exits the process.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    response: Optional[PriceScraperResponse] = None
    usage: Optional[ExtractionUsage] = None
    error: Optional[PriceScraperError] = None
    total_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def failed_stage(self) -> Optional[str]:
        return self.error.stage if self.error else None
