"""
LLM Client with Gemini/Anthropic/OpenAI provider switch.

Uses the Factory pattern (LLMClient.create) to instantiate the right provider.
Each provider implements BaseLLMClient so the orchestrator doesn't need to
know which LLM is behind the call.

Every provider sends the composed prompt as the system instruction and the
page content as the user turn, so text on the page cannot override the
extraction instructions.

Credentials are passed in explicitly; only resolve_api_key() looks at the
environment, and only the CLI calls it.
"""

import os
from abc import ABC, abstractmethod
from enum import Enum
from typing import Mapping, Optional

from .schemas import ExtractionReply, ExtractionUsage
from .exceptions import AuthError, EmptyResponseError, TransportError
from .logger import get_module_logger

logger = get_module_logger("llm_client")

# Low temperature: we want the same JSON shape every time, not creative writing
TEMPERATURE = 0.1


class LLMProvider(Enum):
    """Supported LLM providers."""
    GEMINI = "gemini"
    ANTHROPIC = "anthropic"
    OPENAI = "openai"


PROVIDER_API_KEY_VARS = {
    LLMProvider.GEMINI: "GEMINI_API_KEY",
    LLMProvider.ANTHROPIC: "ANTHROPIC_API_KEY",
    LLMProvider.OPENAI: "OPENAI_API_KEY",
}

GEMINI_AUTH_STATUSES = ("UNAUTHENTICATED", "PERMISSION_DENIED")

DEFAULT_MODELS = {
    LLMProvider.GEMINI: "gemini-1.5-flash-latest",
    LLMProvider.ANTHROPIC: "claude-3-haiku-20240307",
    LLMProvider.OPENAI: "gpt-4o-mini",
}


def resolve_api_key(provider: LLMProvider, environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Look up the provider's API key in ``environ`` (default: os.environ)."""
    if environ is None:
        environ = os.environ
    return environ.get(PROVIDER_API_KEY_VARS[provider]) or None


class BaseLLMClient(ABC):
    """
    Abstract base class for LLM clients.

    Subclasses implement _send (one API call) and _read (pull text and token
    counts out of the SDK response).  extract() maps SDK failures onto
    AuthError / TransportError so callers only see our exception types.
    """

    provider: LLMProvider

    def __init__(self, api_key: Optional[str], model: str, timeout: float = 60.0):
        if not api_key:
            raise AuthError(
                f"{self.provider.value} API key not provided "
                f"(set {PROVIDER_API_KEY_VARS[self.provider]})",
                provider=self.provider.value
            )
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.client = None
        # SDK exception types meaning "credential rejected"; set by subclasses
        self._auth_errors: tuple = ()

    @abstractmethod
    def _send(self, prompt: str, content: str):
        """Make the API call and return the SDK response object."""
        pass

    @abstractmethod
    def _read(self, response) -> tuple[Optional[str], ExtractionUsage]:
        """Return (text or None, usage) from an SDK response."""
        pass

    def _is_auth_failure(self, error: Exception) -> bool:
        return bool(self._auth_errors) and isinstance(error, self._auth_errors)

    def extract(self, prompt: str, content: str) -> ExtractionReply:
        """
        Send the prompt (system) and page content (user) to the LLM.

        Args:
            prompt: Composed extraction prompt
            content: Acquired page content

        Returns:
            ExtractionReply with the untouched reply text and token usage

        Raises:
            AuthError: credential rejected
            TransportError: any other API failure
            EmptyResponseError: the call succeeded but produced no text
        """
        name = self.provider.value
        logger.info(f"Sending {len(content)} chars to {name}:{self.model}")

        try:
            response = self._send(prompt, content)
        except Exception as e:
            if self._is_auth_failure(e):
                logger.error(f"{name} rejected the API key: {e}")
                raise AuthError(
                    f"{name} rejected the API key: {e}",
                    provider=name,
                    details={"error": str(e)}
                ) from e
            logger.error(f"{name} API error: {e}")
            raise TransportError(
                f"{name} API call failed: {e}",
                provider=name,
                details={"error": str(e)}
            ) from e

        text, usage = self._read(response)
        if not text:
            logger.error(f"{name} returned no completion text")
            raise EmptyResponseError(
                f"{name} returned no completion text",
                provider=name,
                details={"model": self.model}
            )

        logger.debug(f"--- Received ---\n{text}\n---")
        return ExtractionReply(raw_text=text, usage=usage, provider=name, model=self.model)

    def close(self) -> None:
        """Release the SDK client's HTTP session."""
        if self.client is not None:
            self.client.close()
            self.client = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class GeminiClient(BaseLLMClient):
    """Google Gemini client (google-genai SDK)."""

    provider = LLMProvider.GEMINI

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODELS[LLMProvider.GEMINI],
        timeout: float = 60.0
    ):
        super().__init__(api_key, model, timeout)

        # Lazy import: only require the SDK of the provider actually used
        from google import genai
        from google.genai import errors, types

        self._types = types
        self._client_error = errors.ClientError
        self.client = genai.Client(
            api_key=self.api_key,
            http_options=types.HttpOptions(timeout=int(timeout * 1000))
        )

    def _is_auth_failure(self, error: Exception) -> bool:
        if not isinstance(error, self._client_error):
            return False
        if error.code in (401, 403) or error.status in GEMINI_AUTH_STATUSES:
            return True
        # A bad key comes back as 400 INVALID_ARGUMENT with an ErrorInfo
        # detail whose reason is API_KEY_INVALID
        body = error.details.get("error", error.details) if isinstance(error.details, dict) else {}
        reasons = [d.get("reason") for d in body.get("details") or [] if isinstance(d, dict)]
        return "API_KEY_INVALID" in reasons

    def _send(self, prompt: str, content: str):
        return self.client.models.generate_content(
            model=self.model,
            contents=content,
            config=self._types.GenerateContentConfig(
                system_instruction=prompt,
                temperature=TEMPERATURE
            )
        )

    def _read(self, response) -> tuple[Optional[str], ExtractionUsage]:
        text = None
        # Only the first candidate's text parts; we never ask for more than one
        if response.candidates:
            parts = response.candidates[0].content.parts if response.candidates[0].content else None
            texts = [part.text for part in parts or [] if part.text]
            text = "".join(texts) or None

        metadata = response.usage_metadata
        usage = ExtractionUsage(
            prompt_tokens=(metadata.prompt_token_count or 0) if metadata else 0,
            completion_tokens=(metadata.candidates_token_count or 0) if metadata else 0
        )
        return text, usage


class AnthropicClient(BaseLLMClient):
    """Anthropic API client."""

    provider = LLMProvider.ANTHROPIC

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODELS[LLMProvider.ANTHROPIC],
        timeout: float = 60.0,
        max_tokens: int = 4096
    ):
        super().__init__(api_key, model, timeout)
        self.max_tokens = max_tokens

        import anthropic

        self._auth_errors = (anthropic.AuthenticationError, anthropic.PermissionDeniedError)
        self.client = anthropic.Anthropic(api_key=self.api_key, timeout=timeout)

    def _send(self, prompt: str, content: str):
        return self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=TEMPERATURE,
            system=prompt,
            messages=[{"role": "user", "content": content}]
        )

    def _read(self, response) -> tuple[Optional[str], ExtractionUsage]:
        texts = [block.text for block in response.content if block.type == "text"]
        usage = ExtractionUsage(
            prompt_tokens=response.usage.input_tokens,
            completion_tokens=response.usage.output_tokens
        )
        return "".join(texts) or None, usage


class OpenAIClient(BaseLLMClient):
    """OpenAI API client."""

    provider = LLMProvider.OPENAI

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODELS[LLMProvider.OPENAI],
        timeout: float = 60.0
    ):
        super().__init__(api_key, model, timeout)

        import openai

        self._auth_errors = (openai.AuthenticationError, openai.PermissionDeniedError)
        self.client = openai.OpenAI(api_key=self.api_key, timeout=timeout)

    def _send(self, prompt: str, content: str):
        return self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": prompt},
                {"role": "user", "content": content},
            ],
            temperature=TEMPERATURE
        )

    def _read(self, response) -> tuple[Optional[str], ExtractionUsage]:
        text = response.choices[0].message.content if response.choices else None
        usage = ExtractionUsage(
            prompt_tokens=response.usage.prompt_tokens if response.usage else 0,
            completion_tokens=response.usage.completion_tokens if response.usage else 0
        )
        return text, usage


class LLMClient:
    """
    Factory class for creating LLM clients with provider switch.

    Usage:
        client = LLMClient.create(LLMProvider.GEMINI, api_key=key)
        client = LLMClient.create(LLMProvider.ANTHROPIC, api_key=key, model="claude-3-5-sonnet-latest")
    """

    CLIENTS = {
        LLMProvider.GEMINI: GeminiClient,
        LLMProvider.ANTHROPIC: AnthropicClient,
        LLMProvider.OPENAI: OpenAIClient,
    }

    @staticmethod
    def create(
        provider: LLMProvider = LLMProvider.GEMINI,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = 60.0
    ) -> BaseLLMClient:
        """
        Create an LLM client for the specified provider.

        Args:
            provider: LLM provider
            api_key: API key (required; AuthError if missing)
            model: Model name (defaults to the provider's default)
            timeout: Request timeout in seconds

        Returns:
            Configured LLM client
        """
        logger.info(f"Creating LLM client for provider: {provider.value}")

        client_cls = LLMClient.CLIENTS.get(provider)
        if client_cls is None:
            raise ValueError(f"Unsupported provider: {provider}")

        return client_cls(
            api_key=api_key,
            model=model or DEFAULT_MODELS[provider],
            timeout=timeout
        )
