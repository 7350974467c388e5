"""SQLAlchemy-backed PromptStore."""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storyprompts.domain.models.prompts import LibraryFilters, Provenance
from storyprompts.domain.ports import PromptStore
from storyprompts.persistence.models import Chapter, ProjectPromptState, PromptTemplate, Story, UserPrompt
from storyprompts.persistence.repositories import (
    ChapterRepository,
    PromptDeliveryRepository,
    PromptTemplateRepository,
    ProjectStateRepository,
    StoryRepository,
    UserPromptRepository,
)


class SqlPromptStore(PromptStore):
    """PromptStore over one async session and the aggregate repositories."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.chapters = ChapterRepository(session)
        self.templates = PromptTemplateRepository(session)
        self.user_prompts = UserPromptRepository(session)
        self.states = ProjectStateRepository(session)
        self.stories = StoryRepository(session)
        self.deliveries = PromptDeliveryRepository(session)

    async def find_pending_user_prompt(self, project_id: int) -> UserPrompt | None:
        return await self.user_prompts.get_pending(project_id)

    async def mark_user_prompt_delivered(self, user_prompt_id: int, expected_version: int) -> bool:
        return await self.user_prompts.mark_delivered(user_prompt_id, expected_version)

    async def count_pending_user_prompts(self, project_id: int) -> int:
        return await self.user_prompts.count_pending(project_id)

    async def get_project_state(self, project_id: int) -> ProjectPromptState | None:
        return await self.states.get_by_project(project_id)

    async def create_project_state(self, project_id: int, chapter: Chapter) -> ProjectPromptState:
        try:
            return await self.states.create(
                project_id=project_id,
                current_chapter_id=chapter.id,
                current_chapter_order=chapter.order_index,
                current_prompt_index=0,
                last_prompt_delivered_at=None,
            )
        except IntegrityError:
            # Another request initialized the same project first
            await self.session.rollback()
            state = await self.states.get_by_project(project_id)
            if state is None:
                raise
            return state

    async def delete_project_state(self, project_id: int) -> None:
        await self.states.delete_by_project(project_id)

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
        return await self.states.compare_and_advance(
            project_id,
            new_chapter_id=new_chapter_id,
            new_chapter_order=new_chapter_order,
            new_index=new_index,
            expected_index=expected_index,
            expected_chapter_id=expected_chapter_id,
            delivered=delivered,
        )

    async def find_next_template_in_chapter(self, chapter_id: int, after_index: int) -> PromptTemplate | None:
        return await self.templates.get_next_in_chapter(chapter_id, after_index)

    async def find_first_active_chapter(self) -> Chapter | None:
        return await self.chapters.get_first_active()

    async def find_next_active_chapter(self, after_order: int) -> Chapter | None:
        return await self.chapters.get_next_active(after_order)

    async def get_chapter(self, chapter_id: int) -> Chapter | None:
        return await self.chapters.get_by_id(chapter_id)

    async def list_active_chapters(self) -> list[Chapter]:
        return await self.chapters.list_active()

    async def count_chapter_slots(self, chapter_id: int, through_index: int | None = None) -> int:
        return await self.templates.count_active_in_chapter(chapter_id, through_index)

    async def count_ready_stories(self, project_id: int, chapter_id: int) -> int:
        return await self.stories.count_ready(project_id, chapter_id)

    async def get_story(self, story_id: int) -> Story | None:
        return await self.stories.get_by_id(story_id)

    async def mark_story_ready(self, story_id: int) -> Story | None:
        return await self.stories.update(story_id, status="ready")

    async def find_library_templates(self, filters: LibraryFilters) -> list[PromptTemplate]:
        return await self.templates.list_library(filters)

    async def get_template(self, template_id: int) -> PromptTemplate | None:
        return await self.templates.get_by_id(template_id)

    async def list_delivered_template_ids(
        self, project_id: int | None = None, user_id: str | None = None, limit: int | None = None
    ) -> list[int]:
        return await self.deliveries.list_template_ids(project_id=project_id, user_id=user_id, limit=limit)

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
        await self.deliveries.create(
            provenance=provenance.value,
            project_id=project_id,
            user_id=user_id,
            prompt_template_id=prompt_template_id,
            user_prompt_id=user_prompt_id,
            degraded=degraded,
            experiment_id=experiment_id,
            variant_id=variant_id,
        )

    async def rollback(self) -> None:
        await self.session.rollback()
