"""Prompt, progression and experiment schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from storyprompts.domain.models.prompts import Category, PromptValue, UserPreferences
from storyprompts.persistence.models import ExperimentStatus


class NextPromptResponse(BaseModel):
    """Next prompt for a project and why it was chosen."""

    prompt: PromptValue
    provenance: str
    degraded: bool = False
    chapter_id: int | None = None
    experiment_id: int | None = None
    variant_id: int | None = None


class PromptStateResponse(BaseModel):
    """Project progression state."""

    project_id: int
    current_chapter_id: int
    current_chapter_order: int
    current_prompt_index: int
    last_prompt_delivered_at: datetime | None = None

    class Config:
        from_attributes = True


class PromptStateDetailResponse(BaseModel):
    """Detailed project progression state."""

    project_id: int
    chapter_id: int
    chapter_name: str | None
    chapter_order: int
    current_prompt_index: int
    slots_in_chapter: int
    slots_delivered: int
    pending_user_prompts: int
    progress_percentage: int
    last_prompt_delivered_at: datetime | None = None

    class Config:
        from_attributes = True


class ChapterCompletionResponse(BaseModel):
    """Completion figures for one chapter."""

    chapter_id: int
    chapter_name: str
    order_index: int
    total_prompts: int
    completed_stories: int
    required_stories: int
    completion_percentage: int
    is_complete: bool

    class Config:
        from_attributes = True


class StoryCompletedResponse(BaseModel):
    """Result of marking a story ready."""

    story_id: int
    chapter_complete: bool


class UserPromptCreate(BaseModel):
    """Facilitator follow-up creation request."""

    text: str = Field(min_length=1, max_length=2000)
    created_by: str
    parent_story_id: int | None = None
    priority: int = 1


class UserPromptPriorityUpdate(BaseModel):
    """Priority change request."""

    priority: int


class UserPromptResponse(BaseModel):
    """Facilitator follow-up."""

    id: int
    project_id: int
    created_by: str
    parent_story_id: int | None
    text: str
    priority: int
    is_delivered: bool
    delivered_at: datetime | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class PersonalizedPromptRequest(BaseModel):
    """Personalised generation request."""

    user_id: str = Field(min_length=1)
    category: Category | None = None
    previous_prompts: list[str] = Field(default_factory=list)
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    recent_themes: list[str] = Field(default_factory=list)


class FollowUpRequest(BaseModel):
    """Follow-up question request for a story."""

    story_content: str
    original_prompt: str | None = None
    user_id: str | None = None


class FollowUpResponse(BaseModel):
    """Suggested follow-up questions."""

    questions: list[str]


class VariantCreate(BaseModel):
    """Experiment variant in a creation request."""

    name: str
    traffic_percentage: int
    prompt_template_id: int | None = None


class ExperimentCreate(BaseModel):
    """Experiment creation request."""

    name: str
    description: str | None = None
    category: Category | None = None
    target_metric: str = "engagement"
    status: ExperimentStatus = ExperimentStatus.DRAFT
    start_date: datetime | None = None
    end_date: datetime | None = None
    variants: list[VariantCreate]


class VariantResponse(BaseModel):
    """Experiment variant."""

    id: int
    name: str
    traffic_percentage: int
    prompt_template_id: int | None
    position: int

    class Config:
        from_attributes = True


class ExperimentResponse(BaseModel):
    """Experiment with its variants."""

    id: int
    name: str
    description: str | None
    category: str | None
    status: str
    target_metric: str
    start_date: datetime | None
    end_date: datetime | None
    variants: list[VariantResponse]

    class Config:
        from_attributes = True


class AssignmentResponse(BaseModel):
    """A user's variant within an experiment."""

    experiment_id: int
    variant_id: int | None
    variant_name: str
    prompt_template_id: int | None
    bucket: int

    class Config:
        from_attributes = True

