"""User prompt repository."""

from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storyprompts.persistence.models.project_prompt import UserPrompt
from storyprompts.persistence.repositories.base import BaseRepository


class UserPromptRepository(BaseRepository[UserPrompt]):
    """Repository for facilitator-authored UserPrompt entities."""

    def __init__(self, session: AsyncSession):
        """Initialize user prompt repository."""
        super().__init__(UserPrompt, session)

    def _pending_query(self, project_id: int):
        return (
            select(UserPrompt)
            .where(
                UserPrompt.project_id == project_id,
                UserPrompt.is_delivered == False,  # noqa: E712
            )
            .order_by(UserPrompt.priority.desc(), UserPrompt.created_at.asc(), UserPrompt.id.asc())
        )

    async def get_pending(self, project_id: int) -> UserPrompt | None:
        """Get the next user prompt to deliver for a project.

        Ordered by priority (high first) then creation time (earliest first).
        """
        stmt = self._pending_query(project_id).limit(1).execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_project(self, project_id: int, include_delivered: bool = False) -> list[UserPrompt]:
        """List a project's user prompts in delivery order."""
        if include_delivered:
            stmt = (
                select(UserPrompt)
                .where(UserPrompt.project_id == project_id)
                .order_by(UserPrompt.priority.desc(), UserPrompt.created_at.asc(), UserPrompt.id.asc())
            )
        else:
            stmt = self._pending_query(project_id)
        result = await self.session.execute(stmt.execution_options(populate_existing=True))
        return list(result.scalars().all())

    async def count_pending(self, project_id: int) -> int:
        """Count undelivered user prompts for a project."""
        stmt = select(func.count(UserPrompt.id)).where(
            UserPrompt.project_id == project_id,
            UserPrompt.is_delivered == False,  # noqa: E712
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def mark_delivered(self, user_prompt_id: int, expected_version: int) -> bool:
        """Flip a user prompt to delivered if nobody else has.

        The update only matches while the row is undelivered and still at
        ``expected_version``; exactly one of several racing callers wins.

        Returns:
            True if this call claimed the prompt
        """
        now = datetime.utcnow()
        stmt = (
            update(UserPrompt)
            .where(
                UserPrompt.id == user_prompt_id,
                UserPrompt.version == expected_version,
                UserPrompt.is_delivered == False,  # noqa: E712
            )
            .values(
                is_delivered=True,
                delivered_at=now,
                updated_at=now,
                version=UserPrompt.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount == 1

    async def update_priority(self, user_prompt_id: int, priority: int) -> UserPrompt | None:
        """Change the priority of a user prompt."""
        instance = await self.get_by_id(user_prompt_id)
        if instance is None:
            return None
        instance.priority = priority
        instance.version = instance.version + 1
        await self.session.commit()
        await self.session.refresh(instance)
        return instance
