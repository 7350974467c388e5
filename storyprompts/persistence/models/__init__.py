"""Database models."""

from storyprompts.persistence.models.experiment import (
    Experiment,
    ExperimentAssignment,
    ExperimentStatus,
    ExperimentVariant,
)
from storyprompts.persistence.models.project_prompt import (
    ProjectPromptState,
    PromptDelivery,
    Story,
    UserPrompt,
)
from storyprompts.persistence.models.prompt_template import Chapter, PromptTemplate

__all__ = [
    "Chapter",
    "PromptTemplate",
    "UserPrompt",
    "ProjectPromptState",
    "Story",
    "PromptDelivery",
    "Experiment",
    "ExperimentStatus",
    "ExperimentVariant",
    "ExperimentAssignment",
]
