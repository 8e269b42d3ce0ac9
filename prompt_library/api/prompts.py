"""Prompt endpoints — CRUD, versions, executions and optimization."""

from __future__ import annotations

from typing import Literal

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from prompt_library.api.models import (
    ApplyOptimization,
    ExecutionCreate,
    OptimizeRequest,
    OptimizeResponse,
    PromptCreate,
    PromptUpdate,
    VersionCreate,
)
from prompt_library.core.optimizer import (
    InvalidApiKeyError,
    MissingApiKeyError,
    OptimizationConfig,
    OptimizationError,
    PromptOptimizer,
    get_optimizer,
)
from prompt_library.core.project_store import ProjectStore, get_project_store
from prompt_library.core.prompt_store import PromptStore, filter_prompts, get_prompt_store
from prompt_library.db.models import ExecutionHistory, Prompt, PromptVersion

logger = structlog.get_logger()

router = APIRouter()


def _not_found(prompt_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Prompt '{prompt_id}' not found")


@router.post("", response_model=Prompt, status_code=201)
async def create_prompt(
    data: PromptCreate,
    store: PromptStore = Depends(get_prompt_store),
) -> Prompt:
    """Create a new prompt."""
    try:
        return store.add_prompt(**data.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=list[Prompt])
async def list_prompts(
    q: str = "",
    category: str | None = None,
    tags: list[str] = Query(default=[]),
    sort: Literal["recent", "popular", "favorite"] = "recent",
    store: PromptStore = Depends(get_prompt_store),
) -> list[Prompt]:
    """List prompts filtered by search text, category and tags (all tags must match)."""
    return filter_prompts(store.list_prompts(), query=q, category=category, tags=tags, sort_by=sort)


@router.get("/{prompt_id}", response_model=Prompt)
async def get_prompt(
    prompt_id: str,
    store: PromptStore = Depends(get_prompt_store),
) -> Prompt:
    prompt = store.get_prompt(prompt_id)
    if not prompt:
        raise _not_found(prompt_id)
    return prompt


@router.put("/{prompt_id}", response_model=Prompt)
async def update_prompt(
    prompt_id: str,
    data: PromptUpdate,
    store: PromptStore = Depends(get_prompt_store),
) -> Prompt:
    """Update the fields sent in the body."""
    try:
        prompt = store.update_prompt(prompt_id, **data.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not prompt:
        raise _not_found(prompt_id)
    return prompt


@router.delete("/{prompt_id}", status_code=204)
async def delete_prompt(
    prompt_id: str,
    store: PromptStore = Depends(get_prompt_store),
    projects: ProjectStore = Depends(get_project_store),
) -> None:
    """Delete a prompt and unlink it from collections and projects."""
    if not store.delete_prompt(prompt_id):
        raise _not_found(prompt_id)
    projects.forget_prompt(prompt_id)


@router.post("/{prompt_id}/duplicate", response_model=Prompt, status_code=201)
async def duplicate_prompt(
    prompt_id: str,
    store: PromptStore = Depends(get_prompt_store),
) -> Prompt:
    prompt = store.duplicate_prompt(prompt_id)
    if not prompt:
        raise _not_found(prompt_id)
    return prompt


@router.post("/{prompt_id}/favorite", response_model=Prompt)
async def toggle_favorite(
    prompt_id: str,
    store: PromptStore = Depends(get_prompt_store),
) -> Prompt:
    prompt = store.toggle_favorite(prompt_id)
    if not prompt:
        raise _not_found(prompt_id)
    return prompt


@router.post("/{prompt_id}/usage", response_model=Prompt)
async def increment_usage(
    prompt_id: str,
    store: PromptStore = Depends(get_prompt_store),
) -> Prompt:
    """Count one use (copy, open in editor...)."""
    prompt = store.increment_usage_count(prompt_id)
    if not prompt:
        raise _not_found(prompt_id)
    return prompt


# --- Versions ---


@router.get("/{prompt_id}/versions", response_model=list[PromptVersion])
async def list_versions(
    prompt_id: str,
    store: PromptStore = Depends(get_prompt_store),
) -> list[PromptVersion]:
    prompt = store.get_prompt(prompt_id)
    if not prompt:
        raise _not_found(prompt_id)
    return prompt.versions


@router.post("/{prompt_id}/versions", response_model=PromptVersion, status_code=201)
async def add_version(
    prompt_id: str,
    data: VersionCreate,
    store: PromptStore = Depends(get_prompt_store),
) -> PromptVersion:
    try:
        version = store.add_version(prompt_id, data.content, data.type)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not version:
        raise _not_found(prompt_id)
    return version


# --- Executions ---


@router.get("/{prompt_id}/executions", response_model=list[ExecutionHistory])
async def list_executions(
    prompt_id: str,
    store: PromptStore = Depends(get_prompt_store),
) -> list[ExecutionHistory]:
    prompt = store.get_prompt(prompt_id)
    if not prompt:
        raise _not_found(prompt_id)
    return prompt.execution_history


@router.post("/{prompt_id}/executions", response_model=ExecutionHistory, status_code=201)
async def record_execution(
    prompt_id: str,
    data: ExecutionCreate,
    store: PromptStore = Depends(get_prompt_store),
    projects: ProjectStore = Depends(get_project_store),
) -> ExecutionHistory:
    """Record an execution; cost is priced from the model catalog when omitted."""
    entry = store.record_execution(prompt_id, **data.model_dump())
    if not entry:
        raise _not_found(prompt_id)
    projects.refresh_stats(prompt_id)
    return entry


# --- Optimization ---


@router.post("/{prompt_id}/optimize", response_model=OptimizeResponse)
async def optimize_prompt(
    prompt_id: str,
    data: OptimizeRequest,
    store: PromptStore = Depends(get_prompt_store),
    optimizer: PromptOptimizer = Depends(get_optimizer),
) -> OptimizeResponse:
    """Ask the model for an optimized rewrite. The prompt is only changed when ``apply`` is set."""
    prompt = store.get_prompt(prompt_id)
    if not prompt:
        raise _not_found(prompt_id)

    config = OptimizationConfig(
        model=data.model, max_tokens=data.max_tokens, temperature=data.temperature
    )
    try:
        optimized = await optimizer.optimize(prompt.content, config)
    except (MissingApiKeyError, InvalidApiKeyError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except OptimizationError as e:
        logger.warning("prompt.optimization_failed", prompt_id=prompt_id, error=str(e))
        raise HTTPException(status_code=502, detail=str(e))

    if not data.apply:
        return OptimizeResponse(optimized=optimized, applied=False)
    updated = store.apply_optimization(prompt_id, optimized)
    if not updated:
        # Deleted while the request was in flight.
        raise _not_found(prompt_id)
    return OptimizeResponse(optimized=optimized, applied=True, prompt=updated)


@router.post("/{prompt_id}/optimization", response_model=Prompt)
async def apply_optimization(
    prompt_id: str,
    data: ApplyOptimization,
    store: PromptStore = Depends(get_prompt_store),
) -> Prompt:
    """Accept an optimized text returned earlier by ``/optimize``."""
    try:
        prompt = store.apply_optimization(prompt_id, data.optimized_text)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not prompt:
        raise _not_found(prompt_id)
    return prompt
