"""Gemini client implementation."""

import os
from typing import Any

from google import genai
from google.genai import types

from storyprompts.llm.client import LLMClient
from storyprompts.settings import settings


class GeminiClient(LLMClient):
    """Gemini client for prompt and follow-up generation."""

    def __init__(self, model_name: str | None = None) -> None:
        """Initialize Gemini client, honouring an optional proxy base URL."""
        api_key = os.environ.get("GEMINI_API_KEY", settings.gemini_api_key)
        base_url = os.environ.get("GEMINI_BASE_URL")

        if base_url:
            self.client = genai.Client(
                api_key=api_key,
                http_options=types.HttpOptions(api_version="v1beta", base_url=base_url),
            )
        else:
            self.client = genai.Client(
                api_key=api_key,
                http_options=types.HttpOptions(api_version="v1beta"),
            )
        self.model_name = model_name or settings.gemini_model

    async def generate(
        self, system_prompt: str, user_prompt: str, context: dict | None = None
    ) -> str:
        """Generate a response using Gemini.

        Args:
            system_prompt: System instruction for the model
            user_prompt: The request text
            context: Optional context dictionary (temperature, max_tokens)

        Returns:
            The generated response text

        Raises:
            Exception: If generation fails
        """
        try:
            generation_config: dict[str, Any] = {
                "temperature": 0.8,
                "max_output_tokens": 200,
                "system_instruction": system_prompt,
            }

            if context:
                if "temperature" in context:
                    generation_config["temperature"] = context["temperature"]
                if "max_tokens" in context:
                    generation_config["max_output_tokens"] = context["max_tokens"]

            response = await self.client.aio.models.generate_content(
                model=self.model_name,
                contents=user_prompt,
                config=types.GenerateContentConfig(**generation_config),
            )

            return response.text or ""
        except Exception as e:
            raise Exception(f"Gemini generation failed: {str(e)}") from e
