"""API routes."""

from fastapi import APIRouter

from storyprompts.api.routes import experiments, projects, prompts

api_router = APIRouter()

api_router.include_router(projects.router, prefix="/projects", tags=["projects"])
api_router.include_router(prompts.router, prefix="/prompts", tags=["prompts"])
api_router.include_router(experiments.router, prefix="/experiments", tags=["experiments"])
