"""Chapter progression state machine.

A project's position is ``(chapter, index)``. Within a chapter the index only
moves forward to the order index of the template just served; entering a new
chapter resets it to 0. When no later active chapter exists the project is
exhausted and the selector serves library prompts from then on.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime

from storyprompts.domain.errors import NoChaptersConfiguredError, ProjectStateNotFoundError
from storyprompts.domain.ports import ChapterSummaryRequester, LoggingSummaryRequester, PromptStore
from storyprompts.persistence.models import Chapter, ProjectPromptState, PromptTemplate
from storyprompts.settings import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NextChapter:
    """A later active chapter exists."""

    chapter: Chapter
    moved: bool  # False when another request changed the state first


@dataclass(frozen=True)
class Exhausted:
    """No active chapter follows the current one."""

    after_order: int


@dataclass
class ChapterCompletion:
    """Completion figures for one chapter of a project."""

    chapter_id: int
    chapter_name: str
    order_index: int
    total_prompts: int
    completed_stories: int
    required_stories: int
    completion_percentage: int
    is_complete: bool


@dataclass
class PromptStateView:
    """Detailed progression state of a project."""

    project_id: int
    chapter_id: int
    chapter_name: str | None
    chapter_order: int
    current_prompt_index: int
    slots_in_chapter: int
    slots_delivered: int
    pending_user_prompts: int
    progress_percentage: int
    last_prompt_delivered_at: datetime | None


class ChapterProgression:
    """Transitions a project's chapter state through the Prompt Store."""

    def __init__(
        self,
        store: PromptStore,
        summary_requester: ChapterSummaryRequester | None = None,
        completion_threshold: float | None = None,
    ) -> None:
        self.store = store
        self.summary_requester = summary_requester or LoggingSummaryRequester()
        self.completion_threshold = (
            settings.chapter_completion_threshold if completion_threshold is None else completion_threshold
        )

    async def initialize(self, project_id: int) -> ProjectPromptState:
        """Place a project at the start of the first active chapter.

        Calling it for a project that already has state returns that state.

        Raises:
            NoChaptersConfiguredError: If no chapter is active
        """
        existing = await self.store.get_project_state(project_id)
        if existing is not None:
            return existing

        chapter = await self.store.find_first_active_chapter()
        if chapter is None:
            raise NoChaptersConfiguredError("No active chapters found")

        state = await self.store.create_project_state(project_id, chapter)

        logger.info(
            f"Initialized prompt state for project {project_id} at chapter {state.current_chapter_id}",
            extra={"project_id": project_id, "chapter_id": state.current_chapter_id},
        )
        return state

    async def advance(self, state: ProjectPromptState, template: PromptTemplate) -> bool:
        """Move to ``template``'s slot in the current chapter.

        Returns:
            False if the state no longer matches what the caller read
        """
        if template.order_index is None or template.order_index <= state.current_prompt_index:
            raise ValueError(
                f"Template {template.id} does not follow index {state.current_prompt_index}"
            )
        return await self.store.advance_project_state(
            state.project_id,
            new_chapter_id=state.current_chapter_id,
            new_chapter_order=state.current_chapter_order,
            new_index=template.order_index,
            expected_index=state.current_prompt_index,
            expected_chapter_id=state.current_chapter_id,
            delivered=True,
        )

    async def next_chapter(self, state: ProjectPromptState) -> NextChapter | Exhausted:
        """Enter the next active chapter at index 0, if there is one."""
        chapter = await self.store.find_next_active_chapter(state.current_chapter_order)
        if chapter is None:
            return Exhausted(after_order=state.current_chapter_order)

        moved = await self.store.advance_project_state(
            state.project_id,
            new_chapter_id=chapter.id,
            new_chapter_order=chapter.order_index,
            new_index=0,
            expected_index=state.current_prompt_index,
            expected_chapter_id=state.current_chapter_id,
        )
        if moved:
            logger.info(
                f"Project {state.project_id} advanced to chapter {chapter.id}",
                extra={"project_id": state.project_id, "chapter_id": chapter.id},
            )
        return NextChapter(chapter=chapter, moved=moved)

    async def reset(self, project_id: int) -> ProjectPromptState:
        """Put the project back at the first active chapter, index 0.

        Raises:
            NoChaptersConfiguredError: If no chapter is active; the existing
                state is left in place
        """
        if await self.store.find_first_active_chapter() is None:
            raise NoChaptersConfiguredError("No active chapters found")
        await self.store.delete_project_state(project_id)
        logger.info(f"Reset prompt state for project {project_id}", extra={"project_id": project_id})
        return await self.initialize(project_id)

    def required_stories(self, slot_count: int) -> int:
        # round() drops float noise such as 10 * 0.7 == 7.000000000000001
        return math.ceil(round(slot_count * self.completion_threshold, 6))

    async def is_chapter_complete(self, project_id: int, chapter_id: int) -> bool:
        """Whether enough stories are ready to call the chapter finished.

        A chapter without slots counts as complete.
        """
        slots = await self.store.count_chapter_slots(chapter_id)
        if slots == 0:
            return True
        ready = await self.store.count_ready_stories(project_id, chapter_id)
        return ready >= self.required_stories(slots)

    async def completion_status(self, project_id: int) -> list[ChapterCompletion]:
        """Completion figures for every active chapter, in order."""
        statuses = []
        for chapter in await self.store.list_active_chapters():
            total = await self.store.count_chapter_slots(chapter.id)
            completed = await self.store.count_ready_stories(project_id, chapter.id)
            required = self.required_stories(total)
            percentage = round(completed / total * 100) if total else 100
            statuses.append(
                ChapterCompletion(
                    chapter_id=chapter.id,
                    chapter_name=chapter.name,
                    order_index=chapter.order_index,
                    total_prompts=total,
                    completed_stories=completed,
                    required_stories=required,
                    completion_percentage=min(percentage, 100),
                    is_complete=total == 0 or completed >= required,
                )
            )
        return statuses

    async def detect_chapter_completion(self, project_id: int, chapter_id: int) -> bool:
        """Check a chapter after a story is finished and act on completion.

        On completion a chapter summary is requested and, if the project is
        still in that chapter, it moves on to the next one.

        Returns:
            True if the chapter is complete
        """
        if not await self.is_chapter_complete(project_id, chapter_id):
            return False

        logger.info(
            f"Chapter {chapter_id} complete for project {project_id}",
            extra={"project_id": project_id, "chapter_id": chapter_id},
        )
        try:
            await self.summary_requester.request_summary(project_id, chapter_id)
        except Exception as e:
            logger.warning(
                f"Chapter summary request failed for project {project_id}: {e}",
                extra={"project_id": project_id, "chapter_id": chapter_id},
                exc_info=True,
            )

        state = await self.store.get_project_state(project_id)
        if state is not None and state.current_chapter_id == chapter_id:
            await self.next_chapter(state)
        return True

    async def describe(self, project_id: int) -> PromptStateView:
        """Detailed view of a project's progression.

        Raises:
            ProjectStateNotFoundError: If the project was never initialized
        """
        state = await self.store.get_project_state(project_id)
        if state is None:
            raise ProjectStateNotFoundError(project_id)

        chapter = await self.store.get_chapter(state.current_chapter_id)
        slots = await self.store.count_chapter_slots(state.current_chapter_id)
        delivered = await self.store.count_chapter_slots(
            state.current_chapter_id, through_index=state.current_prompt_index
        )
        pending = await self.store.count_pending_user_prompts(project_id)

        return PromptStateView(
            project_id=project_id,
            chapter_id=state.current_chapter_id,
            chapter_name=chapter.name if chapter else None,
            chapter_order=state.current_chapter_order,
            current_prompt_index=state.current_prompt_index,
            slots_in_chapter=slots,
            slots_delivered=delivered,
            pending_user_prompts=pending,
            progress_percentage=round(delivered / slots * 100) if slots else 0,
            last_prompt_delivered_at=state.last_prompt_delivered_at,
        )
