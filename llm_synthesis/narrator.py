"""Narrator interface over an LLM adapter.

The deterministic engine never imports this package. The narrative service
hands a finished IntelligenceResult to a narrator and treats any failure as
non-fatal for the analysis itself.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from intelligence.types import IntelligenceResult
from llm_synthesis.adapter import BaseLLMAdapter
from llm_synthesis.prompt_builder import NarrativePromptBuilder
from llm_synthesis.schema import NarrativeOutput
from llm_synthesis.validator import LLMOutputValidationError, validate_llm_output

logger = logging.getLogger(__name__)


class LLMRetryExhaustedError(Exception):
    """Raised when every attempt returned malformed output.

    Attributes:
        attempts: Total number of attempts made (initial + retries).
        history: Validation errors from every failed attempt.
    """

    def __init__(self, attempts: int, history: List[LLMOutputValidationError]) -> None:
        self.attempts = attempts
        self.history = history
        super().__init__(
            f"LLM output validation failed after {attempts} attempt(s). "
            f"Last error: {history[-1] if history else 'n/a'}"
        )


class BaseNarrator(ABC):
    """Turns an IntelligenceResult into a short structured narrative."""

    @abstractmethod
    async def narrate(self, result: IntelligenceResult) -> NarrativeOutput:
        """Return the narrative for *result*."""


class LLMNarrator(BaseNarrator):
    """Narrator backed by a synchronous LLM adapter.

    The adapter call runs in a worker thread. Malformed output (bad JSON or
    schema mismatch) is retried up to ``max_retries`` extra times; transport
    errors from the adapter propagate unchanged.
    """

    def __init__(
        self,
        adapter: BaseLLMAdapter,
        prompt_builder: Optional[NarrativePromptBuilder] = None,
        max_retries: int = 2,
    ) -> None:
        self._adapter = adapter
        self._prompt_builder = prompt_builder or NarrativePromptBuilder()
        self._max_retries = max(0, max_retries)

    async def narrate(self, result: IntelligenceResult) -> NarrativeOutput:
        prompt = self._prompt_builder.build_prompt(result)
        return await asyncio.to_thread(self._generate_with_retry, prompt)

    def _generate_with_retry(self, prompt: str) -> NarrativeOutput:
        errors: List[LLMOutputValidationError] = []
        total_attempts = 1 + self._max_retries

        for attempt in range(1, total_attempts + 1):
            raw = self._adapter.generate(prompt)
            try:
                output = validate_llm_output(raw)
            except LLMOutputValidationError as exc:
                errors.append(exc)
                logger.warning(
                    "Narrative attempt %d/%d failed at stage '%s': %s",
                    attempt,
                    total_attempts,
                    exc.stage,
                    "; ".join(exc.errors),
                )
                continue
            if attempt > 1:
                logger.info("Narrative validated on attempt %d/%d", attempt, total_attempts)
            return output

        raise LLMRetryExhaustedError(attempts=total_attempts, history=errors)
