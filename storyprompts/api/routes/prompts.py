"""Generation-backed prompt routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from storyprompts.api.deps import get_prompt_engine
from storyprompts.api.schemas.prompts import FollowUpRequest, FollowUpResponse, PersonalizedPromptRequest
from storyprompts.domain.errors import EmptyLibraryError
from storyprompts.domain.models.prompts import GenerationRequest, PromptValue
from storyprompts.domain.services.prompt_engine import PromptEngine

router = APIRouter()


@router.post("/personalized", response_model=PromptValue)
async def generate_personalized_prompt(
    payload: PersonalizedPromptRequest,
    engine: Annotated[PromptEngine, Depends(get_prompt_engine)],
) -> PromptValue:
    """Generate a personalised prompt (library substitute on failure)."""
    try:
        return await engine.generate_personalized_prompt(GenerationRequest(**payload.model_dump()))
    except EmptyLibraryError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.post("/follow-ups", response_model=FollowUpResponse)
async def generate_follow_ups(
    payload: FollowUpRequest,
    engine: Annotated[PromptEngine, Depends(get_prompt_engine)],
) -> FollowUpResponse:
    """Suggest follow-up questions for a story."""
    questions = await engine.generate_follow_up_questions(
        payload.story_content, payload.original_prompt, identity=payload.user_id
    )
    return FollowUpResponse(questions=questions)


@router.get("/daily", response_model=PromptValue)
async def get_daily_prompt(
    user_id: str,
    engine: Annotated[PromptEngine, Depends(get_prompt_engine)],
) -> PromptValue:
    """Prompt of the day for a user."""
    try:
        return await engine.get_daily_prompt(user_id)
    except EmptyLibraryError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
