"""Tests for personalised, follow-up and daily prompt generation."""

from datetime import date

import pytest

from storyprompts.domain.errors import GenerationError
from storyprompts.domain.models.prompts import Category, GenerationRequest, Provenance, UserPreferences
from storyprompts.domain.services.prompt_engine import PromptEngine
from storyprompts.domain.services.prompt_generator import PromptGenerator, daily_category
from storyprompts.infrastructure.cache import InMemoryKeyValueStore, ResultCache
from storyprompts.infrastructure.rate_limiter import GenerationRateLimiter, RateLimitConfig
from storyprompts.llm.generation import GenerationRunner
from storyprompts.persistence.models import PromptDelivery
from storyprompts.persistence.prompt_store import SqlPromptStore
from storyprompts.settings import settings
from tests.factories import FakeLLMClient, add_library_template


async def no_sleep(seconds):
    return None


@pytest.fixture
async def library(db_session):
    return [
        await add_library_template(db_session, "What was your favorite childhood game?", category="childhood"),
        await add_library_template(db_session, "Tell me about your family dinners.", category="family"),
        await add_library_template(db_session, "Describe your first job.", category="career"),
    ]


def make_generator(db_session, llm, limit=10, follow_up_limit=1):
    kv_store = InMemoryKeyValueStore()
    return PromptGenerator(
        SqlPromptStore(db_session),
        runner=GenerationRunner(llm, max_attempts=2, backoff_seconds=0, sleep=no_sleep),
        cache=ResultCache(kv_store, ttl_seconds=3600),
        rate_limiter=GenerationRateLimiter(kv_store, RateLimitConfig(requests=limit, window_seconds=60)),
        follow_up_limiter=GenerationRateLimiter(
            kv_store, RateLimitConfig(requests=follow_up_limit, window_seconds=5, key_prefix="rl:followup")
        ),
    )


class TestPersonalizedPrompt:
    """Tests for personalised generation."""

    @pytest.mark.asyncio
    async def test_repeat_request_is_served_from_cache(self, db_session, library):
        """Test that an identical request in the same window does not call the LLM again."""
        llm = FakeLLMClient()
        generator = make_generator(db_session, llm)
        request = GenerationRequest(
            user_id="user-1",
            category=Category.CHILDHOOD,
            preferences=UserPreferences(topics=["farm", "school"]),
        )

        first = await generator.generate_personalized_prompt(request)
        second = await generator.generate_personalized_prompt(
            GenerationRequest(
                user_id="user-1",
                category=Category.CHILDHOOD,
                preferences=UserPreferences(topics=["school", "farm"]),
            )
        )

        assert len(llm.calls) == 1
        assert second.id == first.id
        assert first.id.startswith("generated:")
        assert first.personalized_for == "user-1"
        assert first.category == Category.CHILDHOOD

    @pytest.mark.asyncio
    async def test_rate_limit_caps_generation_calls(self, db_session, library):
        """Test that N+1 distinct requests in one window reach the LLM at most N times."""
        llm = FakeLLMClient()
        generator = make_generator(db_session, llm, limit=3)

        results = []
        for i in range(4):
            request = GenerationRequest(user_id="user-1", previous_prompts=[f"prompt {i}"])
            results.append(await generator.generate_personalized_prompt(request))

        assert len(llm.calls) == 3
        limited = results[-1]
        assert "rate-limited" in limited.tags
        assert limited.template_id == library[0].id
        assert limited.degraded is False

    @pytest.mark.asyncio
    async def test_rate_limited_result_is_deterministic(self, db_session, library):
        llm = FakeLLMClient()
        generator = make_generator(db_session, llm, limit=0)

        first = await generator.generate_personalized_prompt(
            GenerationRequest(user_id="user-1", category=Category.FAMILY, previous_prompts=["a"])
        )
        second = await generator.generate_personalized_prompt(
            GenerationRequest(user_id="user-1", category=Category.FAMILY, previous_prompts=["b"])
        )

        assert llm.calls == []
        assert first.template_id == second.template_id == library[1].id

    @pytest.mark.asyncio
    async def test_generation_failure_serves_degraded_library_prompt(self, db_session, library):
        """Test that a failing LLM yields a library prompt flagged degraded."""
        llm = FakeLLMClient(responses=[RuntimeError("down"), GenerationError("still down")])
        generator = make_generator(db_session, llm)

        prompt = await generator.generate_personalized_prompt(
            GenerationRequest(user_id="user-1", category=Category.CAREER)
        )

        assert len(llm.calls) == 2
        assert prompt.degraded is True
        assert prompt.template_id == library[2].id
        assert "fallback" in prompt.tags
        assert "ai-error" in prompt.tags

    @pytest.mark.asyncio
    async def test_failed_generation_is_not_cached(self, db_session, library):
        llm = FakeLLMClient(responses=[RuntimeError("down"), RuntimeError("down")])
        generator = make_generator(db_session, llm)
        request = GenerationRequest(user_id="user-1")

        degraded = await generator.generate_personalized_prompt(request)
        recovered = await generator.generate_personalized_prompt(request)

        assert degraded.degraded is True
        assert recovered.degraded is False
        assert recovered.id.startswith("generated:")

    @pytest.mark.asyncio
    async def test_generated_text_is_cleaned(self, db_session, library):
        llm = FakeLLMClient(responses=["  **what** did you love   about summer  "])
        generator = make_generator(db_session, llm)

        prompt = await generator.generate_personalized_prompt(GenerationRequest(user_id="user-1"))

        assert prompt.text == "What did you love about summer."


class TestFollowUpQuestions:
    """Tests for follow-up question generation."""

    @pytest.mark.asyncio
    async def test_parses_numbered_questions(self, db_session):
        llm = FakeLLMClient(
            responses=[
                "1. What did the house smell like?\n"
                "2) Who visited you there most often?\n"
                "\n"
                "- Ok?\n"
                "3. What happened to the house later on?\n"
                "4. Do you still have photos from that time?"
            ]
        )
        generator = make_generator(db_session, llm)

        questions = await generator.generate_follow_up_questions(
            "We lived in a small house by the river for ten years.", "Tell me about your home."
        )

        assert questions == [
            "What did the house smell like?",
            "Who visited you there most often?",
            "What happened to the house later on?",
        ]

    @pytest.mark.asyncio
    async def test_short_story_gets_no_questions(self, db_session):
        llm = FakeLLMClient()
        generator = make_generator(db_session, llm)

        assert await generator.generate_follow_up_questions("Too short") == []
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_second_request_in_throttle_window_is_empty(self, db_session):
        """Test that the follow-up throttle refuses a quick repeat for the same identity."""
        llm = FakeLLMClient(responses=["1. What was the hardest part of that year?"] * 2)
        generator = make_generator(db_session, llm)
        story = "I moved to the city alone when I was nineteen."

        first = await generator.generate_follow_up_questions(story, identity="user-1")
        second = await generator.generate_follow_up_questions(story, identity="user-1")

        assert first == ["What was the hardest part of that year?"]
        assert second == []
        assert len(llm.calls) == 1

    @pytest.mark.asyncio
    async def test_generation_failure_gives_empty_list(self, db_session):
        llm = FakeLLMClient(responses=[RuntimeError("down")])
        generator = make_generator(db_session, llm)

        questions = await generator.generate_follow_up_questions("A long enough story about the war years.")

        assert questions == []
        assert len(llm.calls) == 1


class TestDailyPrompt:
    """Tests for the prompt of the day."""

    def test_category_rotates_by_weekday(self):
        """Test that Sunday starts the rotation."""
        assert daily_category(date(2024, 1, 7)) == Category.CHILDHOOD  # Sunday
        assert daily_category(date(2024, 1, 8)) == Category.FAMILY  # Monday
        assert daily_category(date(2024, 1, 9)) == Category.CAREER
        assert daily_category(date(2024, 1, 10)) == Category.RELATIONSHIPS
        assert daily_category(date(2024, 1, 11)) == Category.GENERAL
        assert daily_category(date(2024, 1, 12)) == Category.CHILDHOOD  # Friday wraps

    @pytest.mark.asyncio
    async def test_same_prompt_all_day(self, db_session, library):
        generator = make_generator(db_session, FakeLLMClient())
        today = date(2024, 1, 7)

        first = await generator.get_daily_prompt("user-1", today=today)
        second = await generator.get_daily_prompt("user-1", today=today)

        assert first.id == second.id
        assert first.template_id == library[0].id

    @pytest.mark.asyncio
    async def test_records_delivery(self, db_session, library):
        from sqlalchemy import select

        generator = make_generator(db_session, FakeLLMClient())
        prompt = await generator.get_daily_prompt("user-1", today=date(2024, 1, 8))

        result = await db_session.execute(select(PromptDelivery))
        deliveries = result.scalars().all()
        assert len(deliveries) == 1
        assert deliveries[0].user_id == "user-1"
        assert deliveries[0].prompt_template_id == prompt.template_id
        assert deliveries[0].provenance == "fallback"

    @pytest.mark.asyncio
    async def test_recent_prompts_are_avoided(self, db_session, library):
        """Test that a prompt the user saw recently is not the daily prompt when another exists."""
        extra = await add_library_template(db_session, "What games did you play at recess?", category="childhood")
        generator = make_generator(db_session, FakeLLMClient())

        await generator.store.record_delivery(
            Provenance.FALLBACK,
            user_id="user-1",
            prompt_template_id=library[0].id,
        )
        prompt = await generator.get_daily_prompt("user-1", today=date(2024, 1, 7))

        assert prompt.template_id == extra.id


@pytest.mark.asyncio
async def test_engine_caches_generation_for_configured_ttl(db_session):
    """Test that the engine's result cache uses the personalised-generation TTL setting."""
    engine = PromptEngine(SqlPromptStore(db_session), FakeLLMClient(), InMemoryKeyValueStore())

    assert engine.generator.cache.ttl_seconds == settings.prompt_cache_ttl_seconds
