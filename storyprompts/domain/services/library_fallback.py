"""Draws prompts from the curated library.

The database library is used while the store is readable. If the store
fails, the built-in ``CURATED_LIBRARY`` is used and the result is flagged
degraded.
"""

import logging
import random
from typing import Iterable

from storyprompts.domain.errors import EmptyLibraryError
from storyprompts.domain.models.prompts import Category, Difficulty, LibraryFilters, PromptValue
from storyprompts.domain.ports import PromptStore, rollback_quietly
from storyprompts.domain.prompts.library import CURATED_LIBRARY, LibraryEntry
from storyprompts.domain.services.prompt_values import entry_to_prompt, template_to_prompt

logger = logging.getLogger(__name__)


class LibraryFallback:
    """Random and deterministic picks from the prompt library."""

    def __init__(
        self,
        store: PromptStore,
        rng: random.Random | None = None,
        builtin: tuple[LibraryEntry, ...] = CURATED_LIBRARY,
    ) -> None:
        self.store = store
        self.rng = rng or random.Random()
        self.builtin = builtin

    async def draw(
        self,
        category: Category | None = None,
        difficulty: Difficulty | None = None,
        exclude_ids: Iterable[int] = (),
    ) -> PromptValue:
        """Uniform random library prompt, never one of ``exclude_ids``.

        When the filters leave nothing, the whole library is drawn from.

        Raises:
            EmptyLibraryError: If the library has no active templates
        """
        filters = LibraryFilters(category=category, difficulty=difficulty, exclude_ids=set(exclude_ids))
        try:
            candidates = await self.store.find_library_templates(filters)
            if not candidates:
                logger.info("Library filters matched nothing, using the whole library")
                candidates = await self.store.find_library_templates(LibraryFilters())
        except Exception as e:
            logger.warning(f"Library lookup failed, using built-in prompts: {e}", exc_info=True)
            await rollback_quietly(self.store)
            return self._builtin(category, difficulty, pick=self.rng.choice)

        if not candidates:
            raise EmptyLibraryError("The prompt library has no active templates")
        return template_to_prompt(self.rng.choice(candidates))

    async def first(self, category: Category | None = None) -> PromptValue:
        """Lowest-id library prompt for a category; same answer every time."""
        try:
            candidates = await self.store.find_library_templates(LibraryFilters(category=category))
            if not candidates:
                candidates = await self.store.find_library_templates(LibraryFilters())
        except Exception as e:
            logger.warning(f"Library lookup failed, using built-in prompts: {e}", exc_info=True)
            await rollback_quietly(self.store)
            return self._builtin(category, None, pick=lambda items: items[0])

        if not candidates:
            raise EmptyLibraryError("The prompt library has no active templates")
        return template_to_prompt(candidates[0])

    def _builtin(self, category, difficulty, pick) -> PromptValue:
        if not self.builtin:
            raise EmptyLibraryError("The built-in prompt library is empty")
        entries = [
            e for e in self.builtin
            if (category is None or e.category == category)
            and (difficulty is None or e.difficulty == difficulty)
        ] or list(self.builtin)
        entry = pick(entries)
        variation = pick(range(len(entry.variations)))
        return entry_to_prompt(entry, variation, degraded=True)
