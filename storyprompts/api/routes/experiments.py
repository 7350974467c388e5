"""Prompt experiment routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from storyprompts.api.deps import get_experiment_service
from storyprompts.api.schemas.prompts import AssignmentResponse, ExperimentCreate, ExperimentResponse
from storyprompts.domain.errors import ExperimentConfigurationError
from storyprompts.domain.services.variant_assignment import ExperimentService, VariantSpec

router = APIRouter()


@router.post("", response_model=ExperimentResponse, status_code=status.HTTP_201_CREATED)
async def create_experiment(
    payload: ExperimentCreate,
    service: Annotated[ExperimentService, Depends(get_experiment_service)],
) -> ExperimentResponse:
    """Create an experiment; the traffic split must total 100."""
    try:
        experiment = await service.create_experiment(
            name=payload.name,
            variants=[
                VariantSpec(
                    name=v.name,
                    traffic_percentage=v.traffic_percentage,
                    prompt_template_id=v.prompt_template_id,
                )
                for v in payload.variants
            ],
            description=payload.description,
            category=payload.category.value if payload.category else None,
            target_metric=payload.target_metric,
            status=payload.status,
            start_date=payload.start_date,
            end_date=payload.end_date,
        )
    except ExperimentConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return ExperimentResponse.model_validate(experiment)


@router.get("", response_model=list[ExperimentResponse])
async def list_active_experiments(
    service: Annotated[ExperimentService, Depends(get_experiment_service)],
    category: str | None = None,
) -> list[ExperimentResponse]:
    """List running experiments."""
    experiments = await service.get_active_experiments(category)
    return [ExperimentResponse.model_validate(e) for e in experiments]


@router.get("/{experiment_id}/assignments/{user_id}", response_model=AssignmentResponse)
async def get_assignment(
    experiment_id: int,
    user_id: str,
    service: Annotated[ExperimentService, Depends(get_experiment_service)],
) -> AssignmentResponse:
    """Variant a user sees in an experiment; the assignment is logged once."""
    assignment = await service.assign(user_id, experiment_id)
    if assignment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Experiment not found")
    if assignment.variant_id is not None:
        await service.log_assignment(user_id, experiment_id, assignment.variant_id)
    return AssignmentResponse.model_validate(assignment)
