"""Facilitator-authored follow-up prompts."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from storyprompts.persistence.models import UserPrompt
from storyprompts.persistence.repositories import UserPromptRepository

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 1


class UserPromptService:
    """Service for queueing facilitator follow-up questions."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user prompt service."""
        self.session = session
        self.user_prompt_repo = UserPromptRepository(session)

    async def create_user_prompt(
        self,
        project_id: int,
        created_by: str,
        text: str,
        parent_story_id: int | None = None,
        priority: int = DEFAULT_PRIORITY,
    ) -> UserPrompt:
        """Queue a follow-up question for a project.

        Raises:
            ValueError: If the text is blank
        """
        text = text.strip()
        if not text:
            raise ValueError("Prompt text cannot be empty")

        user_prompt = await self.user_prompt_repo.create(
            project_id=project_id,
            created_by=created_by,
            parent_story_id=parent_story_id,
            text=text,
            priority=priority,
        )
        logger.info(
            f"Queued user prompt {user_prompt.id} for project {project_id} (priority {priority})",
            extra={"project_id": project_id},
        )
        return user_prompt

    async def list_user_prompts(self, project_id: int, include_delivered: bool = False) -> list[UserPrompt]:
        """A project's user prompts in the order they will be delivered."""
        return await self.user_prompt_repo.list_for_project(project_id, include_delivered=include_delivered)

    async def update_priority(self, project_id: int, user_prompt_id: int, priority: int) -> UserPrompt | None:
        """Change a follow-up's priority; None if it is not one of the project's."""
        user_prompt = await self.user_prompt_repo.get_by_id(user_prompt_id)
        if user_prompt is None or user_prompt.project_id != project_id:
            return None
        return await self.user_prompt_repo.update_priority(user_prompt_id, priority)
