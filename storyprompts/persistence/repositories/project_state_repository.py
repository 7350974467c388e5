"""Project prompt state, story and delivery history repositories."""

from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storyprompts.persistence.models.project_prompt import ProjectPromptState, PromptDelivery, Story
from storyprompts.persistence.repositories.base import BaseRepository


class ProjectStateRepository(BaseRepository[ProjectPromptState]):
    """Repository for ProjectPromptState entities."""

    def __init__(self, session: AsyncSession):
        """Initialize project state repository."""
        super().__init__(ProjectPromptState, session)

    async def get_by_project(self, project_id: int) -> ProjectPromptState | None:
        """Get the state row for a project, re-read from the database."""
        stmt = (
            select(ProjectPromptState)
            .where(ProjectPromptState.project_id == project_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def delete_by_project(self, project_id: int) -> None:
        """Delete the state row for a project."""
        stmt = (
            delete(ProjectPromptState)
            .where(ProjectPromptState.project_id == project_id)
            .execution_options(synchronize_session="fetch")
        )
        await self.session.execute(stmt)
        await self.session.commit()

    async def compare_and_advance(
        self,
        project_id: int,
        new_chapter_id: int,
        new_chapter_order: int,
        new_index: int,
        expected_index: int,
        expected_chapter_id: int,
        delivered: bool = False,
    ) -> bool:
        """Move a project's position if it is still where the caller saw it.

        Args:
            project_id: Project ID
            new_chapter_id: Chapter to move to (same chapter for a slot advance)
            new_chapter_order: Order index of that chapter
            new_index: New slot index (0 when entering a chapter)
            expected_index: Slot index the caller read
            expected_chapter_id: Chapter the caller read
            delivered: Stamp last_prompt_delivered_at

        Returns:
            True if the row matched and was updated
        """
        now = datetime.utcnow()
        values = {
            "current_chapter_id": new_chapter_id,
            "current_chapter_order": new_chapter_order,
            "current_prompt_index": new_index,
            "version": ProjectPromptState.version + 1,
            "updated_at": now,
        }
        if delivered:
            values["last_prompt_delivered_at"] = now

        stmt = (
            update(ProjectPromptState)
            .where(
                ProjectPromptState.project_id == project_id,
                ProjectPromptState.current_chapter_id == expected_chapter_id,
                ProjectPromptState.current_prompt_index == expected_index,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount == 1


class StoryRepository(BaseRepository[Story]):
    """Repository for the story fields used by chapter completion."""

    def __init__(self, session: AsyncSession):
        """Initialize story repository."""
        super().__init__(Story, session)

    async def count_ready(self, project_id: int, chapter_id: int) -> int:
        """Count ready stories for a project's chapter."""
        stmt = select(func.count(Story.id)).where(
            Story.project_id == project_id,
            Story.chapter_id == chapter_id,
            Story.status == "ready",
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())


class PromptDeliveryRepository(BaseRepository[PromptDelivery]):
    """Repository for the insert-only delivery history."""

    def __init__(self, session: AsyncSession):
        """Initialize delivery repository."""
        super().__init__(PromptDelivery, session)

    async def list_template_ids(
        self, project_id: int | None = None, user_id: str | None = None, limit: int | None = None
    ) -> list[int]:
        """List delivered template ids, newest first, without duplicates."""
        stmt = select(PromptDelivery.prompt_template_id).where(
            PromptDelivery.prompt_template_id.is_not(None)
        )
        if project_id is not None:
            stmt = stmt.where(PromptDelivery.project_id == project_id)
        if user_id is not None:
            stmt = stmt.where(PromptDelivery.user_id == user_id)
        stmt = stmt.order_by(PromptDelivery.delivered_at.desc(), PromptDelivery.id.desc())
        result = await self.session.execute(stmt)

        seen: dict[int, None] = {}
        for template_id in result.scalars().all():
            seen.setdefault(template_id, None)
            if limit is not None and len(seen) >= limit:
                break
        return list(seen)
