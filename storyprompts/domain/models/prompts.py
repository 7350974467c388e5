"""Data models for prompts flowing through the selection engine."""

import enum
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class Category(str, enum.Enum):
    """Thematic category of a prompt."""

    CHILDHOOD = "childhood"
    FAMILY = "family"
    CAREER = "career"
    RELATIONSHIPS = "relationships"
    GENERAL = "general"


class Difficulty(str, enum.Enum):
    """How emotionally demanding a prompt is to answer."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Provenance(str, enum.Enum):
    """Why a prompt was chosen."""

    USER = "user"  # facilitator-authored follow-up
    SEQUENCED = "sequenced"  # next slot in the project's chapter
    FALLBACK = "fallback"  # curated library


class PromptValue(BaseModel):
    """A prompt as returned to callers (template, user prompt or generated)."""

    id: str
    text: str
    category: Category = Category.GENERAL
    difficulty: Difficulty = Difficulty.MEDIUM
    follow_up_questions: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    audio_url: str | None = None
    personalized_for: str | None = None
    template_id: int | None = None  # catalog id when the prompt came from a template
    degraded: bool = False  # library substitute served after a generation failure
    created_at: datetime = Field(default_factory=datetime.utcnow)


class UserPreferences(BaseModel):
    """Optional steering inputs for personalised generation."""

    topics: list[str] = Field(default_factory=list)
    avoid_topics: list[str] = Field(default_factory=list)
    cultural_background: str | None = None
    age_range: str | None = None


class GenerationRequest(BaseModel):
    """Request for a personalised, AI-generated prompt."""

    user_id: str
    category: Category | None = None
    previous_prompts: list[str] = Field(default_factory=list)
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    recent_themes: list[str] = Field(default_factory=list)

    def fingerprint_payload(self) -> dict[str, Any]:
        """Inputs that distinguish one cached generation from another."""
        return {
            "previous_prompts": self.previous_prompts,
            "preferences": self.preferences.model_dump(),
        }


class LibraryFilters(BaseModel):
    """Filters applied when drawing from the curated library."""

    category: Category | None = None
    difficulty: Difficulty | None = None
    exclude_ids: set[int] = Field(default_factory=set)
