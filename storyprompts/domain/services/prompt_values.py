"""Conversions from stored rows to the prompt values returned to callers."""

import uuid

from storyprompts.domain.models.prompts import Category, Difficulty, PromptValue
from storyprompts.domain.prompts.library import LibraryEntry
from storyprompts.persistence.models import PromptTemplate, UserPrompt

USER_PROMPT_TAGS = ["user-generated", "follow-up"]


def _enum_or_default(enum_cls, value, default):
    try:
        return enum_cls(value)
    except ValueError:
        return default


def template_to_prompt(template: PromptTemplate) -> PromptValue:
    return PromptValue(
        id=f"template:{template.id}",
        text=template.text,
        category=_enum_or_default(Category, template.category, Category.GENERAL),
        difficulty=_enum_or_default(Difficulty, template.difficulty, Difficulty.MEDIUM),
        follow_up_questions=list(template.follow_up_questions or []),
        tags=list(template.tags or []),
        audio_url=template.audio_url,
        template_id=template.id,
    )


def user_prompt_to_prompt(user_prompt: UserPrompt) -> PromptValue:
    return PromptValue(
        id=f"user:{user_prompt.id}",
        text=user_prompt.text,
        tags=list(USER_PROMPT_TAGS),
        personalized_for=str(user_prompt.project_id),
        created_at=user_prompt.created_at,
    )


def entry_to_prompt(entry: LibraryEntry, variation: int = 0, degraded: bool = False) -> PromptValue:
    """Prompt value for one phrasing of a built-in library entry."""
    return PromptValue(
        id=f"library:{entry.key}:{variation}",
        text=entry.variations[variation],
        category=entry.category,
        difficulty=entry.difficulty,
        follow_up_questions=list(entry.follow_up_questions),
        tags=list(entry.tags),
        degraded=degraded,
    )


def new_generated_id() -> str:
    return f"generated:{uuid.uuid4().hex}"
