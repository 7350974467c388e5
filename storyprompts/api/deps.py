"""FastAPI dependencies for the prompt engine."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storyprompts.domain.ports import LoggingSummaryRequester
from storyprompts.domain.services.prompt_engine import PromptEngine
from storyprompts.domain.services.user_prompt_service import UserPromptService
from storyprompts.domain.services.variant_assignment import ExperimentService
from storyprompts.infrastructure.cache import KeyValueStore, build_key_value_store
from storyprompts.llm.client import LLMClient
from storyprompts.llm.factory import get_llm_client
from storyprompts.persistence.database import get_db
from storyprompts.persistence.prompt_store import SqlPromptStore
from storyprompts.settings import settings

# Process-wide: cache entries and rate-limit counters must outlive a request
_kv_store: KeyValueStore | None = None
_llm_client: LLMClient | None = None


def get_kv_store() -> KeyValueStore:
    """Shared key-value store (Redis when connected, else in-memory)."""
    global _kv_store
    if _kv_store is None:
        _kv_store = build_key_value_store(
            max_entries=settings.cache_max_entries,
            purge_interval_seconds=settings.cache_purge_interval_seconds,
        )
    return _kv_store


def get_llm() -> LLMClient:
    """Shared LLM client."""
    global _llm_client
    if _llm_client is None:
        _llm_client = get_llm_client()
    return _llm_client


def get_experiment_service(db: Annotated[AsyncSession, Depends(get_db)]) -> ExperimentService:
    return ExperimentService(db)


def get_user_prompt_service(db: Annotated[AsyncSession, Depends(get_db)]) -> UserPromptService:
    return UserPromptService(db)


def get_prompt_engine(
    db: Annotated[AsyncSession, Depends(get_db)],
    kv_store: Annotated[KeyValueStore, Depends(get_kv_store)],
    llm_client: Annotated[LLMClient, Depends(get_llm)],
) -> PromptEngine:
    """Prompt engine bound to the request's database session."""
    return PromptEngine(
        SqlPromptStore(db),
        llm_client,
        kv_store,
        experiments=ExperimentService(db),
        summary_requester=LoggingSummaryRequester(),
    )
