"""Repository implementations."""

from storyprompts.persistence.repositories.base import BaseRepository
from storyprompts.persistence.repositories.chapter_repository import ChapterRepository, PromptTemplateRepository
from storyprompts.persistence.repositories.experiment_repository import ExperimentRepository
from storyprompts.persistence.repositories.project_state_repository import (
    ProjectStateRepository,
    PromptDeliveryRepository,
    StoryRepository,
)
from storyprompts.persistence.repositories.user_prompt_repository import UserPromptRepository

__all__ = [
    "BaseRepository",
    "ChapterRepository",
    "PromptTemplateRepository",
    "UserPromptRepository",
    "ProjectStateRepository",
    "StoryRepository",
    "PromptDeliveryRepository",
    "ExperimentRepository",
]
