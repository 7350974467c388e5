"""Chapter and prompt template repositories."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storyprompts.domain.models.prompts import LibraryFilters
from storyprompts.persistence.models.prompt_template import Chapter, PromptTemplate
from storyprompts.persistence.repositories.base import BaseRepository


class ChapterRepository(BaseRepository[Chapter]):
    """Repository for Chapter entities."""

    def __init__(self, session: AsyncSession):
        """Initialize chapter repository."""
        super().__init__(Chapter, session)

    async def get_first_active(self) -> Chapter | None:
        """Get the active chapter with the lowest order."""
        stmt = (
            select(Chapter)
            .where(Chapter.is_active == True)  # noqa: E712
            .order_by(Chapter.order_index.asc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_next_active(self, after_order: int) -> Chapter | None:
        """Get the next active chapter after the given order."""
        stmt = (
            select(Chapter)
            .where(Chapter.is_active == True, Chapter.order_index > after_order)  # noqa: E712
            .order_by(Chapter.order_index.asc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_active(self) -> list[Chapter]:
        """List active chapters in succession order."""
        stmt = (
            select(Chapter)
            .where(Chapter.is_active == True)  # noqa: E712
            .order_by(Chapter.order_index.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class PromptTemplateRepository(BaseRepository[PromptTemplate]):
    """Repository for PromptTemplate entities."""

    def __init__(self, session: AsyncSession):
        """Initialize prompt template repository."""
        super().__init__(PromptTemplate, session)

    async def get_next_in_chapter(self, chapter_id: int, after_index: int) -> PromptTemplate | None:
        """Get the first active slot in a chapter past ``after_index``."""
        stmt = (
            select(PromptTemplate)
            .where(
                PromptTemplate.chapter_id == chapter_id,
                PromptTemplate.order_index > after_index,
                PromptTemplate.is_active == True,  # noqa: E712
            )
            .order_by(PromptTemplate.order_index.asc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def count_active_in_chapter(self, chapter_id: int, through_index: int | None = None) -> int:
        """Count active slots in a chapter, optionally only those up to ``through_index``."""
        stmt = select(func.count(PromptTemplate.id)).where(
            PromptTemplate.chapter_id == chapter_id,
            PromptTemplate.is_active == True,  # noqa: E712
        )
        if through_index is not None:
            stmt = stmt.where(PromptTemplate.order_index <= through_index)
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def list_library(self, filters: LibraryFilters) -> list[PromptTemplate]:
        """List active library templates matching the filters."""
        stmt = select(PromptTemplate).where(
            PromptTemplate.is_library == True,  # noqa: E712
            PromptTemplate.is_active == True,  # noqa: E712
        )
        if filters.category is not None:
            stmt = stmt.where(PromptTemplate.category == filters.category.value)
        if filters.difficulty is not None:
            stmt = stmt.where(PromptTemplate.difficulty == filters.difficulty.value)
        if filters.exclude_ids:
            stmt = stmt.where(PromptTemplate.id.not_in(filters.exclude_ids))
        stmt = stmt.order_by(PromptTemplate.id.asc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
