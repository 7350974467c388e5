"""Contracts for the collaborators the prompt engine depends on."""

import logging
from abc import ABC, abstractmethod

from storyprompts.domain.models.prompts import LibraryFilters, Provenance
from storyprompts.persistence.models import Chapter, ProjectPromptState, PromptTemplate, Story, UserPrompt

logger = logging.getLogger(__name__)


class PromptStore(ABC):
    """Persistence for templates, user prompts, progression state and history.

    Mutations that may race (claiming a user prompt, moving a project's
    state) are conditional: they return False when the row no longer matches
    the value the caller read.
    """

    # User prompts

    @abstractmethod
    async def find_pending_user_prompt(self, project_id: int) -> UserPrompt | None:
        """Highest-priority, earliest-created undelivered user prompt."""

    @abstractmethod
    async def mark_user_prompt_delivered(self, user_prompt_id: int, expected_version: int) -> bool:
        """Claim a user prompt; False if another request claimed it first."""

    @abstractmethod
    async def count_pending_user_prompts(self, project_id: int) -> int:
        """Number of undelivered user prompts for a project."""

    # Progression state

    @abstractmethod
    async def get_project_state(self, project_id: int) -> ProjectPromptState | None:
        """Current progression state, or None before initialization."""

    @abstractmethod
    async def create_project_state(self, project_id: int, chapter: Chapter) -> ProjectPromptState:
        """Create the state row at the start of ``chapter``.

        If another caller created the row first, that row is returned
        instead; a duplicate is never reported as an error.
        """

    @abstractmethod
    async def delete_project_state(self, project_id: int) -> None:
        """Remove the state row, if any."""

    @abstractmethod
    async def advance_project_state(
        self,
        project_id: int,
        new_chapter_id: int,
        new_chapter_order: int,
        new_index: int,
        expected_index: int,
        expected_chapter_id: int,
        delivered: bool = False,
    ) -> bool:
        """Move the state if it still sits at (expected chapter, expected index)."""

    # Chapters and templates

    @abstractmethod
    async def find_next_template_in_chapter(self, chapter_id: int, after_index: int) -> PromptTemplate | None:
        """First active template in the chapter with order_index > after_index."""

    @abstractmethod
    async def find_first_active_chapter(self) -> Chapter | None:
        """Active chapter with the lowest order."""

    @abstractmethod
    async def find_next_active_chapter(self, after_order: int) -> Chapter | None:
        """Active chapter with the lowest order greater than ``after_order``."""

    @abstractmethod
    async def get_chapter(self, chapter_id: int) -> Chapter | None:
        """Chapter by id."""

    @abstractmethod
    async def list_active_chapters(self) -> list[Chapter]:
        """Active chapters in ascending order."""

    @abstractmethod
    async def count_chapter_slots(self, chapter_id: int, through_index: int | None = None) -> int:
        """Number of active templates in a chapter, optionally up to a slot index."""

    @abstractmethod
    async def count_ready_stories(self, project_id: int, chapter_id: int) -> int:
        """Stories in ``ready`` status recorded for a project's chapter."""

    @abstractmethod
    async def find_library_templates(self, filters: LibraryFilters) -> list[PromptTemplate]:
        """Active library templates matching the filters."""

    @abstractmethod
    async def get_template(self, template_id: int) -> PromptTemplate | None:
        """Template by id."""

    # Stories

    @abstractmethod
    async def get_story(self, story_id: int) -> Story | None:
        """Story by id."""

    @abstractmethod
    async def mark_story_ready(self, story_id: int) -> Story | None:
        """Set a story's status to ``ready``."""

    # History

    @abstractmethod
    async def list_delivered_template_ids(
        self, project_id: int | None = None, user_id: str | None = None, limit: int | None = None
    ) -> list[int]:
        """Template ids already delivered to a project and/or user, newest first."""

    @abstractmethod
    async def record_delivery(
        self,
        provenance: Provenance,
        project_id: int | None = None,
        user_id: str | None = None,
        prompt_template_id: int | None = None,
        user_prompt_id: int | None = None,
        degraded: bool = False,
        experiment_id: int | None = None,
        variant_id: int | None = None,
    ) -> None:
        """Append to the delivery history."""

    async def rollback(self) -> None:
        """Discard a failed unit of work so later calls can use the store."""
        return None


class ChapterSummaryRequester(ABC):
    """Downstream collaborator that writes a summary of a completed chapter."""

    @abstractmethod
    async def request_summary(self, project_id: int, chapter_id: int) -> None:
        """Queue summary generation for a project's chapter."""


class LoggingSummaryRequester(ChapterSummaryRequester):
    """Summary requester that only records the request in the logs."""

    async def request_summary(self, project_id: int, chapter_id: int) -> None:
        logger.info(
            f"Chapter {chapter_id} completed for project {project_id} - summary requested",
            extra={"project_id": project_id, "chapter_id": chapter_id},
        )


async def rollback_quietly(store: PromptStore) -> None:
    """Roll back after a failed store call; a failing rollback is only logged."""
    try:
        await store.rollback()
    except Exception as e:
        logger.error(f"Prompt store rollback failed: {e}", exc_info=True)
