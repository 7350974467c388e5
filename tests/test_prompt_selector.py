"""Tests for tiered prompt selection."""

import random

import pytest
from sqlalchemy import select
from unittest.mock import AsyncMock

from storyprompts.domain.errors import EmptyLibraryError
from storyprompts.domain.models.prompts import Category, Provenance
from storyprompts.domain.services.chapter_progression import ChapterProgression
from storyprompts.domain.services.prompt_selector import TieredPromptSelector
from storyprompts.domain.services.user_prompt_service import UserPromptService
from storyprompts.domain.services.variant_assignment import ExperimentService, VariantSpec
from storyprompts.persistence.models import ExperimentStatus, PromptDelivery, PromptTemplate, UserPrompt
from storyprompts.persistence.prompt_store import SqlPromptStore
from tests.factories import add_chapter, add_library_template

PROJECT_ID = 42


def make_selector(store, **kwargs):
    kwargs.setdefault("rng", random.Random(7))
    return TieredPromptSelector(store, **kwargs)


@pytest.fixture
def store(db_session):
    return SqlPromptStore(db_session)


class TestUserPromptTier:
    """Tests for facilitator follow-ups."""

    @pytest.mark.asyncio
    async def test_highest_priority_first_then_sequenced(self, db_session, store):
        """Test that pending user prompts win in priority order and are never re-served."""
        await add_chapter(db_session, "Childhood", 1, ["First memory?", "Your home?"])
        service = UserPromptService(db_session)
        low = await service.create_user_prompt(PROJECT_ID, "facilitator", "What was the dog called?", priority=1)
        high = await service.create_user_prompt(PROJECT_ID, "facilitator", "Who built the barn?", priority=5)
        selector = make_selector(store)

        first = await selector.select_next(PROJECT_ID)
        second = await selector.select_next(PROJECT_ID)
        third = await selector.select_next(PROJECT_ID)

        assert first.provenance == Provenance.USER
        assert first.user_prompt_id == high.id
        assert first.prompt.id == f"user:{high.id}"
        assert first.prompt.tags == ["user-generated", "follow-up"]
        assert second.user_prompt_id == low.id
        assert third.provenance == Provenance.SEQUENCED
        assert third.prompt.text == "First memory?"

    @pytest.mark.asyncio
    async def test_equal_priority_oldest_first(self, db_session, store):
        service = UserPromptService(db_session)
        older = await service.create_user_prompt(PROJECT_ID, "facilitator", "Older question?")
        await service.create_user_prompt(PROJECT_ID, "facilitator", "Newer question?")

        result = await make_selector(store).select_next(PROJECT_ID)

        assert result.user_prompt_id == older.id

    @pytest.mark.asyncio
    async def test_other_projects_prompts_are_ignored(self, db_session, store):
        await add_library_template(db_session, "What was your first car?")
        await UserPromptService(db_session).create_user_prompt(99, "facilitator", "Not for you?")

        result = await make_selector(store).select_next(PROJECT_ID)

        assert result.provenance == Provenance.FALLBACK


class TestSequencedTier:
    """Tests for chapter slot delivery."""

    @pytest.mark.asyncio
    async def test_slots_are_served_in_order(self, db_session, store):
        chapter = await add_chapter(db_session, "Childhood", 1, ["Slot one?", "Slot two?", "Slot three?"])
        selector = make_selector(store)

        texts = [(await selector.select_next(PROJECT_ID)).prompt.text for _ in range(3)]
        state = await store.get_project_state(PROJECT_ID)

        assert texts == ["Slot one?", "Slot two?", "Slot three?"]
        assert state.current_chapter_id == chapter.id
        assert state.current_prompt_index == 3
        assert state.last_prompt_delivered_at is not None

    @pytest.mark.asyncio
    async def test_serves_slot_after_current_index(self, db_session, store):
        """Test that a project at index 2 of a 3-slot chapter gets slot 3 and moves to index 3."""
        chapter = await add_chapter(
            db_session,
            "Childhood",
            1,
            ["Earliest memory?", "House you grew up in?", "Favorite toy?"],
            category="childhood",
        )
        await ChapterProgression(store).initialize(PROJECT_ID)
        await store.advance_project_state(
            PROJECT_ID, chapter.id, chapter.order_index, new_index=2, expected_index=0, expected_chapter_id=chapter.id
        )

        result = await make_selector(store).select_next(PROJECT_ID)
        state = await store.get_project_state(PROJECT_ID)

        assert result.provenance == Provenance.SEQUENCED
        assert result.prompt.text == "Favorite toy?"
        assert result.prompt.category == Category.CHILDHOOD
        assert result.chapter_id == chapter.id
        assert state.current_prompt_index == 3

    @pytest.mark.asyncio
    async def test_inactive_slot_is_skipped(self, db_session, store):
        chapter = await add_chapter(db_session, "Childhood", 1, ["One?", "Two?", "Three?"])
        result = await db_session.execute(
            select(PromptTemplate).where(PromptTemplate.chapter_id == chapter.id, PromptTemplate.order_index == 2)
        )
        result.scalar_one().is_active = False
        await db_session.commit()
        selector = make_selector(store)

        texts = [(await selector.select_next(PROJECT_ID)).prompt.text for _ in range(2)]

        assert texts == ["One?", "Three?"]


class TestChapterAdvance:
    """Tests for moving to the next chapter."""

    @pytest.mark.asyncio
    async def test_finishing_chapter_moves_to_next_without_skipping(self, db_session, store):
        """Test that the first slot of the next chapter is served, not the second."""
        await add_chapter(db_session, "Childhood", 1, ["Childhood slot?"])
        second = await add_chapter(db_session, "Family", 2, ["Family slot one?", "Family slot two?"])
        selector = make_selector(store)

        await selector.select_next(PROJECT_ID)
        result = await selector.select_next(PROJECT_ID)
        state = await store.get_project_state(PROJECT_ID)

        assert result.provenance == Provenance.SEQUENCED
        assert result.prompt.text == "Family slot one?"
        assert result.chapter_id == second.id
        assert state.current_chapter_id == second.id
        assert state.current_prompt_index == 1

    @pytest.mark.asyncio
    async def test_inactive_chapter_is_skipped(self, db_session, store):
        await add_chapter(db_session, "Childhood", 1, ["Childhood slot?"])
        await add_chapter(db_session, "Retired", 2, ["Never served?"], is_active=False)
        await add_chapter(db_session, "Career", 3, ["Career slot?"])
        selector = make_selector(store)

        await selector.select_next(PROJECT_ID)
        result = await selector.select_next(PROJECT_ID)

        assert result.prompt.text == "Career slot?"

    @pytest.mark.asyncio
    async def test_empty_chapter_falls_back(self, db_session, store):
        """Test that entering a chapter with no slots serves a library prompt."""
        await add_chapter(db_session, "Childhood", 1, ["Childhood slot?"])
        empty = await add_chapter(db_session, "Empty", 2, [])
        await add_library_template(db_session, "What was your first car?")
        selector = make_selector(store)

        await selector.select_next(PROJECT_ID)
        result = await selector.select_next(PROJECT_ID)
        state = await store.get_project_state(PROJECT_ID)

        assert result.provenance == Provenance.FALLBACK
        assert result.fallback_reason == "empty-chapter"
        assert state.current_chapter_id == empty.id

    @pytest.mark.asyncio
    async def test_exhausted_project_stays_on_fallback(self, db_session, store):
        """Test that a project past the last chapter keeps receiving library prompts."""
        await add_chapter(db_session, "Childhood", 1, ["Only slot?"])
        for i in range(3):
            await add_library_template(db_session, f"Library prompt {i}?")
        selector = make_selector(store)

        await selector.select_next(PROJECT_ID)
        results = [await selector.select_next(PROJECT_ID) for _ in range(3)]

        assert all(r.provenance == Provenance.FALLBACK for r in results)
        assert all(r.fallback_reason == "exhausted" for r in results)
        assert all(r.degraded is False for r in results)


class TestFallbackTier:
    """Tests for the library fallback."""

    @pytest.mark.asyncio
    async def test_excluded_and_delivered_templates_are_avoided(self, db_session, store):
        first = await add_library_template(db_session, "Library one?")
        second = await add_library_template(db_session, "Library two?")
        third = await add_library_template(db_session, "Library three?")
        selector = make_selector(store)

        served = await selector.select_next(PROJECT_ID, excluded_ids=[first.id])
        again = await selector.select_next(PROJECT_ID, excluded_ids=[first.id])

        assert served.prompt.template_id in {second.id, third.id}
        assert again.prompt.template_id in {second.id, third.id}
        assert again.prompt.template_id != served.prompt.template_id

    @pytest.mark.asyncio
    async def test_category_filter_is_applied(self, db_session, store):
        await add_library_template(db_session, "Family prompt?", category="family")
        career = await add_library_template(db_session, "Career prompt?", category="career")

        result = await make_selector(store).select_next(PROJECT_ID, category=Category.CAREER)

        assert result.prompt.template_id == career.id

    @pytest.mark.asyncio
    async def test_over_filtered_request_uses_whole_library(self, db_session, store):
        """Test that filters matching nothing fall back to the unfiltered library."""
        family = await add_library_template(db_session, "Family prompt?", category="family")

        result = await make_selector(store).select_next(PROJECT_ID, category=Category.CAREER)

        assert result.prompt.template_id == family.id

    @pytest.mark.asyncio
    async def test_no_chapters_falls_back(self, db_session, store):
        await add_library_template(db_session, "Library prompt?")

        result = await make_selector(store).select_next(PROJECT_ID)

        assert result.provenance == Provenance.FALLBACK
        assert result.fallback_reason == "no-chapters"

    @pytest.mark.asyncio
    async def test_empty_library_raises(self, store):
        """Test that a project with nothing to serve surfaces a configuration error."""
        with pytest.raises(EmptyLibraryError):
            await make_selector(store).select_next(PROJECT_ID)

    @pytest.mark.asyncio
    async def test_experiment_variant_is_served_to_user(self, db_session, store):
        await add_library_template(db_session, "Control prompt?")
        treatment = await add_library_template(db_session, "Treatment prompt?")
        experiments = ExperimentService(db_session)
        experiment = await experiments.create_experiment(
            "Warmer openers",
            [VariantSpec(name="treatment", traffic_percentage=100, prompt_template_id=treatment.id)],
            status=ExperimentStatus.RUNNING,
        )
        selector = make_selector(store, experiments=experiments)

        result = await selector.select_next(PROJECT_ID, user_id="user-1")

        assert result.prompt.template_id == treatment.id
        assert result.experiment_id == experiment.id
        assert result.variant_id == experiment.variants[0].id


class TestStoreFailures:
    """Tests for degraded selection when the store fails."""

    @pytest.mark.asyncio
    async def test_unreadable_store_serves_builtin_prompt(self):
        """Test that a failing store yields a built-in library prompt flagged degraded."""
        store = AsyncMock()
        store.find_pending_user_prompt.side_effect = ConnectionError("db down")
        store.find_library_templates.side_effect = ConnectionError("db down")
        selector = make_selector(store)

        result = await selector.select_next(PROJECT_ID)

        assert result.provenance == Provenance.FALLBACK
        assert result.degraded is True
        assert result.fallback_reason == "store-error"
        assert result.prompt.id.startswith("library:")
        assert store.rollback.await_count >= 1

    @pytest.mark.asyncio
    async def test_partial_store_failure_is_degraded(self):
        store = AsyncMock()
        store.find_pending_user_prompt.side_effect = ConnectionError("db down")
        store.find_library_templates.return_value = [
            PromptTemplate(id=7, text="Library prompt?", category="general", difficulty="easy", tags=[], follow_up_questions=[])
        ]

        result = await make_selector(store).select_next(PROJECT_ID)

        assert result.prompt.template_id == 7
        assert result.degraded is True
        store.list_delivered_template_ids.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_history_write_still_returns_prompt(self, db_session, store):
        await add_chapter(db_session, "Childhood", 1, ["Slot one?"])
        store.record_delivery = AsyncMock(side_effect=ConnectionError("write failed"))

        result = await make_selector(store).select_next(PROJECT_ID)

        assert result.prompt.text == "Slot one?"


class LosesFirstUserClaimStore(SqlPromptStore):
    """Store whose first user prompt claim loses to a concurrent request."""

    claims = 0

    async def mark_user_prompt_delivered(self, user_prompt_id, expected_version):
        self.claims += 1
        claimed = await super().mark_user_prompt_delivered(user_prompt_id, expected_version)
        return claimed if self.claims > 1 else False


class LosesFirstStateMoveStore(SqlPromptStore):
    """Store whose first state move loses to a concurrent request."""

    moves = 0

    async def advance_project_state(self, project_id, *args, **kwargs):
        self.moves += 1
        moved = await super().advance_project_state(project_id, *args, **kwargs)
        return moved if self.moves > 1 else False


class TestConcurrency:
    """Tests for lost conditional writes."""

    @pytest.mark.asyncio
    async def test_lost_user_prompt_claim_is_not_served_twice(self, db_session):
        """Test that a user prompt claimed elsewhere is skipped on re-evaluation."""
        await add_chapter(db_session, "Childhood", 1, ["Slot one?"])
        await UserPromptService(db_session).create_user_prompt(PROJECT_ID, "facilitator", "Claimed elsewhere?")
        store = LosesFirstUserClaimStore(db_session)

        result = await make_selector(store).select_next(PROJECT_ID)

        assert result.provenance == Provenance.SEQUENCED
        assert result.prompt.text == "Slot one?"
        rows = (
            await db_session.execute(select(UserPrompt).execution_options(populate_existing=True))
        ).scalars().all()
        assert rows[0].is_delivered is True

    @pytest.mark.asyncio
    async def test_lost_state_move_serves_following_slot(self, db_session):
        """Test that a slot taken by a concurrent request is not served again."""
        await add_chapter(db_session, "Childhood", 1, ["Slot one?", "Slot two?"])
        store = LosesFirstStateMoveStore(db_session)

        result = await make_selector(store).select_next(PROJECT_ID)
        state = await store.get_project_state(PROJECT_ID)

        assert result.prompt.text == "Slot two?"
        assert state.current_prompt_index == 2

    @pytest.mark.asyncio
    async def test_persistent_contention_falls_back(self, db_session, store):
        await add_library_template(db_session, "Library prompt?")
        await UserPromptService(db_session).create_user_prompt(PROJECT_ID, "facilitator", "Always contended?")
        store.mark_user_prompt_delivered = AsyncMock(return_value=False)

        result = await make_selector(store, max_attempts=3).select_next(PROJECT_ID)

        assert store.mark_user_prompt_delivered.await_count == 3
        assert result.provenance == Provenance.FALLBACK
        assert result.fallback_reason == "contention"


@pytest.mark.asyncio
async def test_every_selection_is_recorded(db_session, store):
    await add_chapter(db_session, "Childhood", 1, ["Slot one?"])
    await add_library_template(db_session, "Library prompt?")
    selector = make_selector(store)

    await selector.select_next(PROJECT_ID, user_id="user-1")
    await selector.select_next(PROJECT_ID, user_id="user-1")

    rows = (await db_session.execute(select(PromptDelivery).order_by(PromptDelivery.id))).scalars().all()
    assert [r.provenance for r in rows] == ["sequenced", "fallback"]
    assert all(r.project_id == PROJECT_ID and r.user_id == "user-1" for r in rows)
