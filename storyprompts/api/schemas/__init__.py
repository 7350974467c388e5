"""API schemas package."""

from storyprompts.api.schemas.prompts import (
    ChapterCompletionResponse,
    ExperimentCreate,
    ExperimentResponse,
    NextPromptResponse,
    PromptStateDetailResponse,
    PromptStateResponse,
    UserPromptCreate,
    UserPromptResponse,
)

__all__ = [
    "ChapterCompletionResponse",
    "ExperimentCreate",
    "ExperimentResponse",
    "NextPromptResponse",
    "PromptStateDetailResponse",
    "PromptStateResponse",
    "UserPromptCreate",
    "UserPromptResponse",
]
