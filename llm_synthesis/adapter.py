"""LLM adapters for narrative generation.

Provides a base interface and concrete adapters for OpenAI-compatible
APIs and a deterministic mock for testing.
"""

import json
from abc import ABC, abstractmethod
from typing import Optional

from app.config import AISettings


class BaseLLMAdapter(ABC):
    """Abstract base for all LLM adapters."""

    @abstractmethod
    def generate(self, prompt: str) -> str:
        """Send a prompt to the LLM and return the raw response text.

        Args:
            prompt: The fully formatted prompt string.

        Returns:
            Raw string response from the model (expected to be JSON).
        """


class OpenAILLMAdapter(BaseLLMAdapter):
    """Adapter for OpenAI-compatible chat completion APIs.

    Configured for deterministic, non-streaming output with
    low temperature suitable for structured JSON generation.
    """

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        max_tokens: int = 1024,
        api_key: Optional[str] = None,
        timeout_seconds: float = 20.0,
    ) -> None:
        """Initialise the OpenAI adapter.

        Args:
            model: Model identifier.
            max_tokens: Maximum tokens in the completion.
            api_key: API key; the client falls back to OPENAI_API_KEY.
            timeout_seconds: Per-request HTTP timeout.
        """
        try:
            from openai import OpenAI  # type: ignore[import-untyped]
        except ImportError as exc:
            raise ImportError(
                "openai package is required for OpenAILLMAdapter. "
                "Install it with: pip install openai"
            ) from exc

        client_kwargs: dict = {"timeout": timeout_seconds}
        if api_key:
            client_kwargs["api_key"] = api_key

        self._client = OpenAI(**client_kwargs)
        self._model = model
        self._max_tokens = max_tokens

    def generate(self, prompt: str) -> str:
        response = self._client.chat.completions.create(
            model=self._model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0,
            top_p=1,
            max_tokens=self._max_tokens,
            stream=False,
            seed=42,
            response_format={"type": "json_object"},
        )
        return response.choices[0].message.content or ""


# ---------------------------------------------------------------------------
# Fixed mock response used for local testing.
# ---------------------------------------------------------------------------
_MOCK_RESPONSE = {
    "headline": "Mock narrative for testing purposes.",
    "summary": "The account was analysed with fixture data; no real trend is implied.",
    "key_points": [
        "Finding A identified in test data.",
        "Finding B identified in test data.",
    ],
    "priority_action": "Verify integration with the intelligence endpoint.",
    "tone": "neutral",
    "confidence_score": 0.95,
}

_MOCK_RESPONSE_JSON = json.dumps(_MOCK_RESPONSE, indent=2)


class MockLLMAdapter(BaseLLMAdapter):
    """Deterministic adapter that returns a fixed valid JSON response.

    Used for local testing and CI pipelines where no LLM API
    is available. ``calls`` counts invocations so tests can assert on
    caching.
    """

    def __init__(self, response: Optional[str] = None) -> None:
        self._response = response if response is not None else _MOCK_RESPONSE_JSON
        self.calls = 0

    def generate(self, prompt: str) -> str:
        self.calls += 1
        return self._response


def build_adapter(settings: AISettings) -> BaseLLMAdapter:
    """Return the adapter named by ``settings.adapter``.

    Raises:
        ValueError: For an adapter name other than ``openai`` or ``mock``.
    """
    if settings.adapter == "mock":
        return MockLLMAdapter()
    if settings.adapter == "openai":
        return OpenAILLMAdapter(
            model=settings.model,
            api_key=settings.api_key,
            timeout_seconds=settings.timeout_seconds,
        )
    raise ValueError(f"Unknown LLM adapter '{settings.adapter}'. Allowed: ['mock', 'openai'].")
