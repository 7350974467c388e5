"""Personalised, follow-up and daily prompts.

Generation goes through the result cache and the per-identity rate limiter.
Rate-limited callers get the same library prompt every time; callers whose
generation failed get a random library prompt tagged as degraded.
"""

import logging
from datetime import date, datetime

from storyprompts.core.fingerprint import build_fingerprint
from storyprompts.domain.errors import GenerationError
from storyprompts.domain.models.prompts import Category, GenerationRequest, PromptValue, Provenance
from storyprompts.domain.ports import PromptStore, rollback_quietly
from storyprompts.domain.prompts.builders import (
    FOLLOW_UP_SYSTEM_PROMPT,
    build_follow_up_prompt,
    build_system_prompt,
    build_user_prompt,
)
from storyprompts.domain.prompts.text import (
    categorize_prompt,
    determine_difficulty,
    extract_tags,
    parse_question_lines,
    sanitize_prompt_text,
)
from storyprompts.domain.services.library_fallback import LibraryFallback
from storyprompts.domain.services.prompt_values import new_generated_id
from storyprompts.infrastructure.cache import ResultCache
from storyprompts.infrastructure.rate_limiter import GenerationRateLimiter
from storyprompts.llm.generation import GenerationRunner
from storyprompts.settings import settings

logger = logging.getLogger(__name__)

# Sunday first, matching the daily rotation users already know
DAILY_CATEGORY_ROTATION = (
    Category.CHILDHOOD,
    Category.FAMILY,
    Category.CAREER,
    Category.RELATIONSHIPS,
    Category.GENERAL,
)
RECENT_PROMPT_LIMIT = 7
MIN_STORY_LENGTH = 10


def daily_category(day: date) -> Category:
    return DAILY_CATEGORY_ROTATION[(day.isoweekday() % 7) % len(DAILY_CATEGORY_ROTATION)]


class PromptGenerator:
    """Generation-backed prompt operations with cache, throttle and fallback."""

    def __init__(
        self,
        store: PromptStore,
        runner: GenerationRunner,
        cache: ResultCache,
        rate_limiter: GenerationRateLimiter,
        follow_up_limiter: GenerationRateLimiter | None = None,
        library: LibraryFallback | None = None,
        follow_up_runner: GenerationRunner | None = None,
    ) -> None:
        self.store = store
        self.runner = runner
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.follow_up_limiter = follow_up_limiter
        self.library = library or LibraryFallback(store)
        # Follow-ups are a best-effort extra: one attempt, no backoff
        self.follow_up_runner = follow_up_runner or GenerationRunner(runner.client, max_attempts=1)

    async def generate_personalized_prompt(self, request: GenerationRequest) -> PromptValue:
        """Generate a prompt for one user, or a library substitute.

        Returns:
            The cached or freshly generated prompt; a deterministic library
            prompt tagged ``rate-limited`` when the user is over the limit; a
            random library prompt with ``degraded=True`` when generation failed
        """
        fingerprint = build_fingerprint(
            request.user_id,
            request.category.value if request.category else None,
            request.fingerprint_payload(),
            window_seconds=settings.cache_window_seconds,
            namespace="personalized",
        )
        cached = await self._cached(fingerprint)
        if cached is not None:
            logger.debug(f"Personalized prompt cache hit for {request.user_id}")
            return cached

        decision = await self.rate_limiter.check(request.user_id)
        if not decision.allowed:
            prompt = await self.library.first(request.category)
            return prompt.model_copy(update={"tags": [*prompt.tags, "rate-limited"]})

        try:
            text = await self.runner.run(
                build_system_prompt(request),
                build_user_prompt(request),
                context={"user_id": request.user_id},
            )
        except GenerationError as e:
            logger.warning(
                f"Generation failed for {request.user_id}, serving library prompt: {e}",
                extra={"user_id": request.user_id},
            )
            return await self._degraded(request)

        text = sanitize_prompt_text(text)
        prompt = PromptValue(
            id=new_generated_id(),
            text=text,
            category=request.category or categorize_prompt(text),
            difficulty=determine_difficulty(text),
            tags=extract_tags(text),
            personalized_for=request.user_id,
        )
        await self._store_cached(fingerprint, prompt)
        return prompt

    async def _degraded(self, request: GenerationRequest) -> PromptValue:
        exclude: list[int] = []
        try:
            exclude = await self.store.list_delivered_template_ids(user_id=request.user_id)
        except Exception as e:
            logger.warning(f"Could not read delivery history for {request.user_id}: {e}", exc_info=True)
            await rollback_quietly(self.store)
        prompt = await self.library.draw(category=request.category, exclude_ids=exclude)
        return prompt.model_copy(
            update={"degraded": True, "tags": [*prompt.tags, "fallback", "ai-error"]}
        )

    async def generate_follow_up_questions(
        self, story_content: str, original_prompt: str | None = None, identity: str | None = None
    ) -> list[str]:
        """Suggest up to three follow-up questions for a story.

        Returns an empty list for very short stories, while the identity is
        throttled, or when generation fails.
        """
        if not story_content or len(story_content.strip()) < MIN_STORY_LENGTH:
            logger.info("Story content too short for follow-up generation")
            return []

        if self.follow_up_limiter is not None:
            decision = await self.follow_up_limiter.check(identity or "global")
            if not decision.allowed:
                return []

        try:
            response = await self.follow_up_runner.run(
                FOLLOW_UP_SYSTEM_PROMPT, build_follow_up_prompt(story_content, original_prompt)
            )
        except GenerationError as e:
            logger.warning(f"Follow-up generation failed: {e}", extra={"story_length": len(story_content)})
            return []
        return parse_question_lines(response)

    async def get_daily_prompt(self, user_id: str, today: date | None = None) -> PromptValue:
        """Prompt of the day for a user, stable for the whole day.

        The category rotates by weekday and the user's recent prompts are
        avoided.
        """
        today = today or datetime.utcnow().date()
        key = f"daily:{user_id}:{today.isoformat()}"
        cached = await self._cached(key)
        if cached is not None:
            return cached

        recent: list[int] = []
        try:
            recent = await self.store.list_delivered_template_ids(user_id=user_id, limit=RECENT_PROMPT_LIMIT)
        except Exception as e:
            logger.warning(f"Could not read recent prompts for {user_id}: {e}", exc_info=True)
            await rollback_quietly(self.store)

        prompt = await self.library.draw(category=daily_category(today), exclude_ids=recent)
        await self._store_cached(key, prompt, settings.daily_prompt_cache_ttl_seconds)
        try:
            await self.store.record_delivery(
                Provenance.FALLBACK,
                user_id=user_id,
                prompt_template_id=prompt.template_id,
                degraded=prompt.degraded,
            )
        except Exception as e:
            logger.warning(f"Failed to record daily prompt for {user_id}: {e}", exc_info=True)
            await rollback_quietly(self.store)
        return prompt

    async def _cached(self, key: str) -> PromptValue | None:
        try:
            return await self.cache.get(key)
        except Exception as e:
            logger.warning(f"Result cache read failed: {e}")
            return None

    async def _store_cached(self, key: str, prompt: PromptValue, ttl_seconds: float | None = None) -> None:
        try:
            await self.cache.set(key, prompt, ttl_seconds)
        except Exception as e:
            logger.warning(f"Result cache write failed: {e}")
