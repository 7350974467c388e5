"""Domain services."""

from storyprompts.domain.services.chapter_progression import ChapterProgression
from storyprompts.domain.services.prompt_engine import PromptEngine
from storyprompts.domain.services.prompt_generator import PromptGenerator
from storyprompts.domain.services.prompt_selector import SelectionResult, TieredPromptSelector
from storyprompts.domain.services.user_prompt_service import UserPromptService
from storyprompts.domain.services.variant_assignment import ExperimentService

__all__ = [
    "ChapterProgression",
    "ExperimentService",
    "PromptEngine",
    "PromptGenerator",
    "SelectionResult",
    "TieredPromptSelector",
    "UserPromptService",
]
