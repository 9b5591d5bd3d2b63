"""
Decode the LLM's reply text into a PriceScraperResponse.

Decoding is all-or-nothing: either the whole reply validates against the
schema, or a DecodeError is raised carrying the exact reply text and every
offending field path.  There is no per-entry recovery.

Pipeline position: Stage 4 (Acquire → Compose → Extract → Decode).
"""

import re

from pydantic import ValidationError

from .schemas import PriceScraperResponse
from .exceptions import DecodeError
from .logger import get_module_logger

logger = get_module_logger("decoder")

# A reply wrapped in a single markdown fence: ```json ... ``` or ``` ... ```
CODE_FENCE_PATTERN = re.compile(r'^\s*```[a-zA-Z]*\s*\n?(.*?)\n?\s*```\s*$', re.DOTALL)


def _field_path(loc: tuple) -> str:
    """('modelPrices', 0, 'modelName') → 'modelPrices.0.modelName'"""
    return ".".join(str(part) for part in loc)


class ResponseDecoder:
    """Strict decoder for PriceScraperResponse JSON."""

    def __init__(self, strip_code_fences: bool = False):
        """
        Args:
            strip_code_fences: Accept a reply wrapped in one markdown code
                               fence.  Off by default: the prompt forbids
                               fences, so a fenced reply is a shape violation.
        """
        self.strip_code_fences = strip_code_fences

    def _unwrap(self, raw_text: str) -> str:
        if not self.strip_code_fences:
            return raw_text
        m = CODE_FENCE_PATTERN.match(raw_text)
        if m:
            logger.debug("Stripped markdown code fence from reply")
            return m.group(1)
        return raw_text

    def decode(self, raw_text: str) -> PriceScraperResponse:
        """
        Parse ``raw_text`` as a PriceScraperResponse.

        Args:
            raw_text: The LLM reply, exactly as received

        Returns:
            Decoded, immutable PriceScraperResponse

        Raises:
            DecodeError: malformed JSON, wrong types, missing fields or
                         out-of-range values
        """
        try:
            # Wire names only: a reply keyed model_prices did not follow the example
            response = PriceScraperResponse.model_validate_json(
                self._unwrap(raw_text), by_alias=True, by_name=False
            )
        except ValidationError as e:
            field_errors = [
                {
                    "field": _field_path(err["loc"]),
                    "type": err["type"],
                    "message": err["msg"],
                }
                for err in e.errors(include_url=False)
            ]
            reason = self._describe(field_errors)
            logger.error(f"Decode failed: {reason}")
            raise DecodeError(reason, offending_text=raw_text, field_errors=field_errors) from e

        logger.info(f"Decoded {len(response.model_prices)} model prices")
        return response

    @staticmethod
    def _describe(field_errors: list[dict]) -> str:
        """One-line summary naming every offending field."""
        if any(err["type"] == "json_invalid" for err in field_errors):
            detail = next(err["message"] for err in field_errors if err["type"] == "json_invalid")
            return f"reply is not valid JSON ({detail})"

        parts = []
        for err in field_errors:
            if err["type"] == "missing":
                parts.append(f"missing field '{err['field']}'")
            elif err["field"]:
                parts.append(f"'{err['field']}': {err['message']}")
            else:
                parts.append(err["message"])
        return "; ".join(parts)


def decode(raw_text: str) -> PriceScraperResponse:
    """Convenience function to decode an LLM reply."""
    return ResponseDecoder().decode(raw_text)
