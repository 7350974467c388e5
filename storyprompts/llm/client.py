"""LLM client interface."""

from abc import ABC, abstractmethod


class LLMClient(ABC):
    """Abstract base class for LLM clients."""

    @abstractmethod
    async def generate(
        self, system_prompt: str, user_prompt: str, context: dict | None = None
    ) -> str:
        """Generate a short text from the LLM.

        Args:
            system_prompt: Instructions describing the role and constraints
            user_prompt: The concrete request
            context: Optional parameters (temperature, max_tokens)

        Returns:
            The generated response text
        """
        pass
