"""LLM abstraction layer."""

from storyprompts.llm.client import LLMClient
from storyprompts.llm.gemini_client import GeminiClient
from storyprompts.llm.generation import GenerationRunner

__all__ = ["LLMClient", "GeminiClient", "GenerationRunner"]
