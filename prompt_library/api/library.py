"""Bulk library endpoints and the model catalog."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from prompt_library.core import catalog
from prompt_library.core.project_store import ProjectStore, get_project_store
from prompt_library.core.prompt_store import DataImportError, PromptStore, get_prompt_store

library_router = APIRouter()
models_router = APIRouter()


@library_router.get("/export")
async def export_library(store: PromptStore = Depends(get_prompt_store)) -> Response:
    """Raw prompts, collections and categories as one JSON document."""
    return Response(
        content=store.export_data(),
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="prompt-library.json"'},
    )


@library_router.post("/import", status_code=204)
async def import_library(
    request: Request,
    store: PromptStore = Depends(get_prompt_store),
    projects: ProjectStore = Depends(get_project_store),
) -> None:
    """Replace the library with an exported document. Nothing changes on failure."""
    body = (await request.body()).decode("utf-8", errors="replace")
    try:
        store.import_data(body)
    except DataImportError as e:
        raise HTTPException(status_code=400, detail=str(e))
    projects.refresh_stats()


@library_router.delete("", status_code=204)
async def clear_library(
    store: PromptStore = Depends(get_prompt_store),
    projects: ProjectStore = Depends(get_project_store),
) -> None:
    """Remove every prompt and collection and restore the default categories."""
    store.clear_all()
    projects.refresh_stats()


# --- Model catalog ---


@models_router.get("")
async def list_models(provider: str | None = None) -> list[dict[str, Any]]:
    models = (
        catalog.models_by_provider(provider) if provider else list(catalog.MODEL_CATALOG.values())
    )
    return [asdict(m) for m in models]


@models_router.get("/providers")
async def list_providers() -> list[str]:
    return catalog.providers()


@models_router.get("/cost")
async def compare_costs(
    models: list[str] = Query(...),
    input_tokens: int = Query(..., ge=0),
    output_tokens: int = Query(default=0, ge=0),
) -> dict[str, float]:
    """Estimated cost of the same workload on several models."""
    return catalog.compare_costs(models, input_tokens, output_tokens)


@models_router.get("/recommend")
async def recommend(
    max_cost: float | None = None,
    min_speed: str | None = None,
    min_quality: str | None = None,
    capabilities: list[str] = Query(default=[]),
) -> list[dict[str, Any]]:
    try:
        models = catalog.recommend_model(max_cost, min_speed, min_quality, capabilities or None)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return [asdict(m) for m in models]
