"""Project routes: next prompt, progression state and user prompts."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from storyprompts.api.deps import get_prompt_engine, get_user_prompt_service
from storyprompts.api.schemas.prompts import (
    ChapterCompletionResponse,
    NextPromptResponse,
    PromptStateDetailResponse,
    PromptStateResponse,
    StoryCompletedResponse,
    UserPromptCreate,
    UserPromptPriorityUpdate,
    UserPromptResponse,
)
from storyprompts.domain.errors import EmptyLibraryError, NoChaptersConfiguredError, ProjectStateNotFoundError
from storyprompts.domain.models.prompts import Category, Difficulty
from storyprompts.domain.services.prompt_engine import PromptEngine
from storyprompts.domain.services.user_prompt_service import UserPromptService

router = APIRouter()


@router.get("/{project_id}/prompts/next", response_model=NextPromptResponse)
async def get_next_prompt(
    project_id: int,
    engine: Annotated[PromptEngine, Depends(get_prompt_engine)],
    user_id: str | None = None,
    category: Category | None = None,
    difficulty: Difficulty | None = None,
    exclude: Annotated[list[int], Query()] = [],
) -> NextPromptResponse:
    """Get the next prompt for a project."""
    try:
        result = await engine.select_next(
            project_id,
            user_id=user_id,
            excluded_ids=tuple(exclude),
            category=category,
            difficulty=difficulty,
        )
    except EmptyLibraryError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return NextPromptResponse(
        prompt=result.prompt,
        provenance=result.provenance.value,
        degraded=result.degraded,
        chapter_id=result.chapter_id,
        experiment_id=result.experiment_id,
        variant_id=result.variant_id,
    )


@router.post("/{project_id}/prompt-state", response_model=PromptStateResponse)
async def initialize_prompt_state(
    project_id: int,
    engine: Annotated[PromptEngine, Depends(get_prompt_engine)],
) -> PromptStateResponse:
    """Start a project at the first active chapter."""
    try:
        state = await engine.initialize_project(project_id)
    except NoChaptersConfiguredError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return PromptStateResponse.model_validate(state)


@router.post("/{project_id}/prompt-state/reset", response_model=PromptStateResponse)
async def reset_prompt_state(
    project_id: int,
    engine: Annotated[PromptEngine, Depends(get_prompt_engine)],
) -> PromptStateResponse:
    """Move a project back to the first active chapter."""
    try:
        state = await engine.reset_project(project_id)
    except NoChaptersConfiguredError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return PromptStateResponse.model_validate(state)


@router.get("/{project_id}/prompt-state", response_model=PromptStateDetailResponse)
async def get_prompt_state(
    project_id: int,
    engine: Annotated[PromptEngine, Depends(get_prompt_engine)],
) -> PromptStateDetailResponse:
    """Get detailed progression state for a project."""
    try:
        view = await engine.describe_project(project_id)
    except ProjectStateNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return PromptStateDetailResponse.model_validate(view)


@router.get("/{project_id}/chapters/completion", response_model=list[ChapterCompletionResponse])
async def get_chapter_completion(
    project_id: int,
    engine: Annotated[PromptEngine, Depends(get_prompt_engine)],
) -> list[ChapterCompletionResponse]:
    """Completion figures for every active chapter."""
    statuses = await engine.chapter_completion(project_id)
    return [ChapterCompletionResponse.model_validate(s) for s in statuses]


@router.post("/{project_id}/stories/{story_id}/completed", response_model=StoryCompletedResponse)
async def story_completed(
    project_id: int,
    story_id: int,
    engine: Annotated[PromptEngine, Depends(get_prompt_engine)],
) -> StoryCompletedResponse:
    """Mark a story ready and advance the chapter if it is now complete."""
    complete = await engine.complete_story(project_id, story_id)
    if complete is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Story not found")
    return StoryCompletedResponse(story_id=story_id, chapter_complete=complete)


@router.post(
    "/{project_id}/user-prompts",
    response_model=UserPromptResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_user_prompt(
    project_id: int,
    payload: UserPromptCreate,
    service: Annotated[UserPromptService, Depends(get_user_prompt_service)],
) -> UserPromptResponse:
    """Queue a facilitator follow-up question."""
    try:
        user_prompt = await service.create_user_prompt(
            project_id,
            created_by=payload.created_by,
            text=payload.text,
            parent_story_id=payload.parent_story_id,
            priority=payload.priority,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return UserPromptResponse.model_validate(user_prompt)


@router.get("/{project_id}/user-prompts", response_model=list[UserPromptResponse])
async def list_user_prompts(
    project_id: int,
    service: Annotated[UserPromptService, Depends(get_user_prompt_service)],
    include_delivered: bool = False,
) -> list[UserPromptResponse]:
    """List a project's follow-up questions in delivery order."""
    user_prompts = await service.list_user_prompts(project_id, include_delivered=include_delivered)
    return [UserPromptResponse.model_validate(p) for p in user_prompts]


@router.patch("/{project_id}/user-prompts/{user_prompt_id}", response_model=UserPromptResponse)
async def update_user_prompt_priority(
    project_id: int,
    user_prompt_id: int,
    payload: UserPromptPriorityUpdate,
    service: Annotated[UserPromptService, Depends(get_user_prompt_service)],
) -> UserPromptResponse:
    """Change the priority of a follow-up question."""
    user_prompt = await service.update_priority(project_id, user_prompt_id, payload.priority)
    if user_prompt is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User prompt not found")
    return UserPromptResponse.model_validate(user_prompt)
