"""Bounded call-and-retry wrapper around an LLM client."""

import asyncio
import logging
from typing import Awaitable, Callable

from storyprompts.domain.errors import GenerationError, MalformedGenerationError
from storyprompts.llm.client import LLMClient
from storyprompts.settings import settings

logger = logging.getLogger(__name__)


class GenerationRunner:
    """Calls the generation capability with a timeout, retries and backoff.

    Attempt ``n`` (1-based) that fails waits ``n * backoff_seconds`` before
    the next one. Empty or too-short output counts as a failed attempt.
    """

    def __init__(
        self,
        client: LLMClient,
        max_attempts: int | None = None,
        backoff_seconds: float | None = None,
        timeout_seconds: float | None = None,
        min_length: int | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.client = client
        self.max_attempts = max_attempts or settings.generation_max_attempts
        self.backoff_seconds = settings.generation_backoff_seconds if backoff_seconds is None else backoff_seconds
        self.timeout_seconds = timeout_seconds or settings.generation_timeout_seconds
        self.min_length = settings.min_generated_prompt_length if min_length is None else min_length
        self._sleep = sleep

    async def run(self, system_prompt: str, user_prompt: str, context: dict | None = None) -> str:
        """Generate text, retrying transient and malformed results.

        Returns:
            Stripped generated text of at least ``min_length`` characters

        Raises:
            GenerationError: When every attempt failed
        """
        last_error: Exception | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                text = await asyncio.wait_for(
                    self.client.generate(system_prompt, user_prompt, context),
                    timeout=self.timeout_seconds,
                )
                cleaned = (text or "").strip()
                if not cleaned:
                    raise MalformedGenerationError("Empty response from generation service")
                if len(cleaned) < self.min_length:
                    raise MalformedGenerationError("Generated text too short")
                return cleaned
            except Exception as e:
                last_error = e
                logger.warning(
                    f"Generation attempt {attempt}/{self.max_attempts} failed: {e}",
                    extra={"attempt": attempt, "error_type": type(e).__name__},
                )
                if attempt < self.max_attempts:
                    await self._sleep(attempt * self.backoff_seconds)

        if isinstance(last_error, MalformedGenerationError):
            raise last_error
        raise GenerationError(f"Generation failed after {self.max_attempts} attempts") from last_error
