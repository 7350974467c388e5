"""Tiered selection of a project's next storytelling prompt.

Tiers, first success wins:

1. Pending user prompt (facilitator follow-up), highest priority then oldest
2. Next slot in the project's current chapter
3. Next active chapter, then step 2 once more
4. Random library prompt the identity has not seen

Claiming a user prompt and moving the chapter state are conditional writes.
A request that loses one of them starts over from step 1. Store failures in
steps 1-3 drop straight to step 4.
"""

import logging
import random
from dataclasses import dataclass
from typing import Iterable

from storyprompts.domain.errors import NoChaptersConfiguredError
from storyprompts.domain.models.prompts import Category, Difficulty, PromptValue, Provenance
from storyprompts.domain.ports import PromptStore, rollback_quietly
from storyprompts.domain.services.chapter_progression import ChapterProgression, Exhausted
from storyprompts.domain.services.library_fallback import LibraryFallback
from storyprompts.domain.services.prompt_values import template_to_prompt, user_prompt_to_prompt
from storyprompts.domain.services.variant_assignment import ExperimentService, VariantAssignment
from storyprompts.persistence.models import Chapter, ProjectPromptState, PromptTemplate, UserPrompt
from storyprompts.settings import settings

logger = logging.getLogger(__name__)


# Outcomes of one pass over tiers 1-3


@dataclass(frozen=True)
class Pending:
    user_prompt: UserPrompt


@dataclass(frozen=True)
class Sequenced:
    template: PromptTemplate
    chapter_id: int


@dataclass(frozen=True)
class Advance:
    chapter: Chapter


@dataclass(frozen=True)
class Fallback:
    reason: str  # exhausted, no-chapters, empty-chapter, store-error, contention


@dataclass(frozen=True)
class RaceLost:
    tier: str


Outcome = Pending | Sequenced | Advance | Fallback | RaceLost


@dataclass
class SelectionResult:
    """The chosen prompt and why it was chosen."""

    prompt: PromptValue
    provenance: Provenance
    degraded: bool = False
    chapter_id: int | None = None
    user_prompt_id: int | None = None
    experiment_id: int | None = None
    variant_id: int | None = None
    fallback_reason: str | None = None


class TieredPromptSelector:
    """Chooses the next prompt for a project."""

    def __init__(
        self,
        store: PromptStore,
        progression: ChapterProgression | None = None,
        library: LibraryFallback | None = None,
        experiments: ExperimentService | None = None,
        max_attempts: int | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.store = store
        self.progression = progression or ChapterProgression(store)
        self.library = library or LibraryFallback(store, rng=rng)
        self.experiments = experiments
        self.max_attempts = max_attempts or settings.selection_max_attempts

    async def select_next(
        self,
        project_id: int,
        *,
        user_id: str | None = None,
        excluded_ids: Iterable[int] = (),
        category: Category | None = None,
        difficulty: Difficulty | None = None,
    ) -> SelectionResult:
        """Select, claim and record the next prompt for a project.

        Args:
            project_id: Project ID
            user_id: Storyteller the prompt is for; scopes the fallback's
                already-seen set and experiment assignment
            excluded_ids: Template ids the caller has already shown
            category: Optional category filter for the fallback tier
            difficulty: Optional difficulty filter for the fallback tier

        Returns:
            SelectionResult

        Raises:
            EmptyLibraryError: Only when every tier is empty and the library
                has no templates
        """
        outcome: Outcome = Fallback(reason="contention")
        for attempt in range(1, self.max_attempts + 1):
            candidate = await self._evaluate(project_id)
            if isinstance(candidate, RaceLost):
                logger.info(
                    f"Lost {candidate.tier} race for project {project_id} "
                    f"(attempt {attempt}/{self.max_attempts}), re-evaluating",
                    extra={"project_id": project_id},
                )
                continue
            outcome = candidate
            break

        if isinstance(outcome, Pending):
            result = SelectionResult(
                prompt=user_prompt_to_prompt(outcome.user_prompt),
                provenance=Provenance.USER,
                user_prompt_id=outcome.user_prompt.id,
            )
        elif isinstance(outcome, Sequenced):
            result = SelectionResult(
                prompt=template_to_prompt(outcome.template),
                provenance=Provenance.SEQUENCED,
                chapter_id=outcome.chapter_id,
            )
        else:
            result = await self._fallback(project_id, user_id, excluded_ids, category, difficulty, outcome.reason)

        logger.info(
            f"Selected {result.provenance.value} prompt {result.prompt.id} for project {project_id}",
            extra={
                "project_id": project_id,
                "provenance": result.provenance.value,
                "degraded": result.degraded,
            },
        )
        await self._record(project_id, user_id, result)
        return result

    async def _evaluate(self, project_id: int) -> Outcome:
        """One pass over tiers 1-3."""
        try:
            outcome = await self._pending_tier(project_id)
            if outcome is not None:
                return outcome

            outcome = await self._chapter_tier(project_id)
            if isinstance(outcome, Advance):
                # Retry step 2 once in the chapter just entered
                state = await self.store.get_project_state(project_id)
                if state is None or state.current_chapter_id != outcome.chapter.id:
                    return RaceLost(tier="chapter")
                outcome = await self._next_in_chapter(state) or Fallback(reason="empty-chapter")
            return outcome
        except Exception as e:
            logger.warning(
                f"Prompt store failed while selecting for project {project_id}: {e}",
                extra={"project_id": project_id},
                exc_info=True,
            )
            await rollback_quietly(self.store)
            return Fallback(reason="store-error")

    async def _pending_tier(self, project_id: int) -> Pending | RaceLost | None:
        user_prompt = await self.store.find_pending_user_prompt(project_id)
        if user_prompt is None:
            return None
        if await self.store.mark_user_prompt_delivered(user_prompt.id, user_prompt.version):
            return Pending(user_prompt=user_prompt)
        return RaceLost(tier="user")

    async def _chapter_tier(self, project_id: int) -> Sequenced | Advance | Fallback | RaceLost:
        state = await self.store.get_project_state(project_id)
        if state is None:
            try:
                state = await self.progression.initialize(project_id)
            except NoChaptersConfiguredError:
                logger.warning(
                    f"No active chapters; project {project_id} gets library prompts",
                    extra={"project_id": project_id},
                )
                return Fallback(reason="no-chapters")

        outcome = await self._next_in_chapter(state)
        if outcome is not None:
            return outcome

        transition = await self.progression.next_chapter(state)
        if isinstance(transition, Exhausted):
            return Fallback(reason="exhausted")
        if not transition.moved:
            return RaceLost(tier="chapter")
        return Advance(chapter=transition.chapter)

    async def _next_in_chapter(self, state: ProjectPromptState) -> Sequenced | RaceLost | None:
        template = await self.store.find_next_template_in_chapter(
            state.current_chapter_id, state.current_prompt_index
        )
        if template is None:
            return None
        if await self.progression.advance(state, template):
            return Sequenced(template=template, chapter_id=state.current_chapter_id)
        return RaceLost(tier="sequenced")

    async def _fallback(
        self,
        project_id: int,
        user_id: str | None,
        excluded_ids: Iterable[int],
        category: Category | None,
        difficulty: Difficulty | None,
        reason: str,
    ) -> SelectionResult:
        store_failed = reason == "store-error"
        seen = set(excluded_ids)
        if not store_failed:
            try:
                seen.update(await self.store.list_delivered_template_ids(project_id=project_id, user_id=user_id))
            except Exception as e:
                logger.warning(f"Could not read delivery history for project {project_id}: {e}", exc_info=True)
                await rollback_quietly(self.store)

        variant = await self._experiment_variant(user_id, category, seen)
        if variant is not None:
            template, assignment = variant
            return SelectionResult(
                prompt=template_to_prompt(template),
                provenance=Provenance.FALLBACK,
                experiment_id=assignment.experiment_id,
                variant_id=assignment.variant_id,
                fallback_reason=reason,
            )

        prompt = await self.library.draw(category=category, difficulty=difficulty, exclude_ids=seen)
        return SelectionResult(
            prompt=prompt,
            provenance=Provenance.FALLBACK,
            degraded=prompt.degraded or store_failed,
            fallback_reason=reason,
        )

    async def _experiment_variant(
        self, user_id: str | None, category: Category | None, seen: set[int]
    ) -> tuple[PromptTemplate, VariantAssignment] | None:
        if self.experiments is None or user_id is None:
            return None
        try:
            assignment = await self.experiments.get_prompt_variant(user_id, category.value if category else None)
            if assignment is None or assignment.prompt_template_id is None:
                return None
            if assignment.prompt_template_id in seen:
                return None
            template = await self.store.get_template(assignment.prompt_template_id)
        except Exception as e:
            logger.warning(f"Experiment lookup failed for user {user_id}: {e}", exc_info=True)
            await rollback_quietly(self.store)
            return None
        if template is None or not template.is_active:
            return None
        return template, assignment

    async def _record(self, project_id: int, user_id: str | None, result: SelectionResult) -> None:
        try:
            await self.store.record_delivery(
                result.provenance,
                project_id=project_id,
                user_id=user_id,
                prompt_template_id=result.prompt.template_id,
                user_prompt_id=result.user_prompt_id,
                degraded=result.degraded,
                experiment_id=result.experiment_id,
                variant_id=result.variant_id,
            )
        except Exception as e:
            logger.warning(f"Failed to record delivery for project {project_id}: {e}", exc_info=True)
            await rollback_quietly(self.store)
