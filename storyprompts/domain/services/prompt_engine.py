"""Prompt engine: one object wiring the selector, progression and generator."""

import logging
import random

from storyprompts.domain.models.prompts import Category, Difficulty, GenerationRequest, PromptValue
from storyprompts.domain.ports import ChapterSummaryRequester, PromptStore
from storyprompts.domain.services.chapter_progression import (
    ChapterCompletion,
    ChapterProgression,
    PromptStateView,
)
from storyprompts.domain.services.library_fallback import LibraryFallback
from storyprompts.domain.services.prompt_generator import PromptGenerator
from storyprompts.domain.services.prompt_selector import SelectionResult, TieredPromptSelector
from storyprompts.domain.services.variant_assignment import ExperimentService
from storyprompts.infrastructure.cache import KeyValueStore, ResultCache
from storyprompts.infrastructure.rate_limiter import RATE_LIMITS, GenerationRateLimiter
from storyprompts.llm.client import LLMClient
from storyprompts.llm.generation import GenerationRunner
from storyprompts.persistence.models import ProjectPromptState
from storyprompts.settings import settings

logger = logging.getLogger(__name__)


class PromptEngine:
    """Entry point for prompt selection, progression and generation.

    The store, LLM client and key-value store are injected so tests can swap
    any of them for fakes. The key-value store should outlive a single
    engine when caching and rate limiting must span requests.
    """

    def __init__(
        self,
        store: PromptStore,
        llm_client: LLMClient,
        kv_store: KeyValueStore,
        experiments: ExperimentService | None = None,
        summary_requester: ChapterSummaryRequester | None = None,
        runner: GenerationRunner | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.store = store
        library = LibraryFallback(store, rng=rng)
        self.progression = ChapterProgression(store, summary_requester=summary_requester)
        self.selector = TieredPromptSelector(
            store,
            progression=self.progression,
            library=library,
            experiments=experiments,
        )
        self.generator = PromptGenerator(
            store,
            runner=runner or GenerationRunner(llm_client),
            cache=ResultCache(kv_store, ttl_seconds=settings.prompt_cache_ttl_seconds),
            rate_limiter=GenerationRateLimiter(kv_store, RATE_LIMITS["generation"]),
            follow_up_limiter=GenerationRateLimiter(kv_store, RATE_LIMITS["follow_up"]),
            library=library,
        )

    async def select_next(
        self,
        project_id: int,
        *,
        user_id: str | None = None,
        excluded_ids: tuple[int, ...] = (),
        category: Category | None = None,
        difficulty: Difficulty | None = None,
    ) -> SelectionResult:
        return await self.selector.select_next(
            project_id,
            user_id=user_id,
            excluded_ids=excluded_ids,
            category=category,
            difficulty=difficulty,
        )

    async def initialize_project(self, project_id: int) -> ProjectPromptState:
        return await self.progression.initialize(project_id)

    async def reset_project(self, project_id: int) -> ProjectPromptState:
        return await self.progression.reset(project_id)

    async def describe_project(self, project_id: int) -> PromptStateView:
        return await self.progression.describe(project_id)

    async def chapter_completion(self, project_id: int) -> list[ChapterCompletion]:
        return await self.progression.completion_status(project_id)

    async def complete_story(self, project_id: int, story_id: int) -> bool | None:
        """Mark a story ready and check whether its chapter is now complete.

        Returns:
            None if the story does not belong to the project, otherwise
            whether its chapter is complete
        """
        story = await self.store.get_story(story_id)
        if story is None or story.project_id != project_id:
            return None
        await self.store.mark_story_ready(story_id)
        if story.chapter_id is None:
            return False
        return await self.progression.detect_chapter_completion(project_id, story.chapter_id)

    async def generate_personalized_prompt(self, request: GenerationRequest) -> PromptValue:
        return await self.generator.generate_personalized_prompt(request)

    async def generate_follow_up_questions(
        self, story_content: str, original_prompt: str | None = None, identity: str | None = None
    ) -> list[str]:
        return await self.generator.generate_follow_up_questions(story_content, original_prompt, identity)

    async def get_daily_prompt(self, user_id: str) -> PromptValue:
        return await self.generator.get_daily_prompt(user_id)
