"""Project endpoints — CRUD, settings, active project, membership and consolidation."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response

from prompt_library.api.models import (
    ActiveProject,
    ProjectCreate,
    ProjectSettingsUpdate,
    ProjectUpdate,
)
from prompt_library.core import exporters
from prompt_library.core.consolidation import consolidate_project, resolve_project_prompts
from prompt_library.core.project_store import ProjectStore, get_project_store
from prompt_library.core.prompt_store import PromptStore, get_prompt_store
from prompt_library.db.models import ConsolidationResult, Project, Prompt

router = APIRouter()


def _not_found(project_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Project '{project_id}' not found")


@router.get("", response_model=list[Project])
async def list_projects(projects: ProjectStore = Depends(get_project_store)) -> list[Project]:
    return projects.list_projects()


@router.post("", response_model=Project, status_code=201)
async def create_project(
    data: ProjectCreate,
    projects: ProjectStore = Depends(get_project_store),
) -> Project:
    """Create a project and make it the active one."""
    try:
        return projects.create_project(data.name, data.description)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/active", response_model=Project)
async def get_active_project(projects: ProjectStore = Depends(get_project_store)) -> Project:
    project = projects.get_active_project()
    if not project:
        raise HTTPException(status_code=404, detail="No projects exist")
    return project


@router.put("/active", response_model=Project)
async def set_active_project(
    data: ActiveProject,
    projects: ProjectStore = Depends(get_project_store),
) -> Project:
    """Select the active project; a null id falls back to the first project."""
    if not projects.set_active_project(data.project_id):
        raise _not_found(str(data.project_id))
    project = projects.get_active_project()
    if not project:
        raise HTTPException(status_code=404, detail="No projects exist")
    return project


@router.get("/{project_id}", response_model=Project)
async def get_project(
    project_id: str,
    projects: ProjectStore = Depends(get_project_store),
) -> Project:
    project = projects.get_project_by_id(project_id)
    if not project:
        raise _not_found(project_id)
    return project


@router.put("/{project_id}", response_model=Project)
async def update_project(
    project_id: str,
    data: ProjectUpdate,
    projects: ProjectStore = Depends(get_project_store),
) -> Project:
    try:
        project = projects.update_project(project_id, **data.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not project:
        raise _not_found(project_id)
    return project


@router.put("/{project_id}/settings", response_model=Project)
async def update_project_settings(
    project_id: str,
    data: ProjectSettingsUpdate,
    projects: ProjectStore = Depends(get_project_store),
) -> Project:
    try:
        project = projects.update_project_settings(
            project_id, **data.model_dump(exclude_unset=True)
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not project:
        raise _not_found(project_id)
    return project


@router.delete("/{project_id}", status_code=204)
async def delete_project(
    project_id: str,
    projects: ProjectStore = Depends(get_project_store),
) -> None:
    """Delete a project. Deleting the last one replaces it with a fresh default project."""
    if not projects.delete_project(project_id):
        raise _not_found(project_id)


# --- Membership ---


@router.get("/{project_id}/prompts", response_model=list[Prompt])
async def list_project_prompts(
    project_id: str,
    projects: ProjectStore = Depends(get_project_store),
    store: PromptStore = Depends(get_prompt_store),
) -> list[Prompt]:
    """Member prompts; ids of deleted prompts are skipped."""
    project = projects.get_project_by_id(project_id)
    if not project:
        raise _not_found(project_id)
    return resolve_project_prompts(project, store.list_prompts())


@router.post("/{project_id}/prompts/{prompt_id}", response_model=Project)
async def add_prompt_to_project(
    project_id: str,
    prompt_id: str,
    projects: ProjectStore = Depends(get_project_store),
    store: PromptStore = Depends(get_prompt_store),
) -> Project:
    if not store.get_prompt(prompt_id):
        raise HTTPException(status_code=404, detail=f"Prompt '{prompt_id}' not found")
    project = projects.add_prompt_to_project(project_id, prompt_id)
    if not project:
        raise _not_found(project_id)
    return project


@router.delete("/{project_id}/prompts/{prompt_id}", response_model=Project)
async def remove_prompt_from_project(
    project_id: str,
    prompt_id: str,
    projects: ProjectStore = Depends(get_project_store),
) -> Project:
    project = projects.remove_prompt_from_project(project_id, prompt_id)
    if not project:
        raise _not_found(project_id)
    return project


@router.post("/{project_id}/stats", response_model=Project)
async def recalculate_stats(
    project_id: str,
    projects: ProjectStore = Depends(get_project_store),
) -> Project:
    """Recompute cached stats from the current prompts."""
    project = projects.recalculate_project_stats(project_id)
    if not project:
        raise _not_found(project_id)
    return project


# --- Consolidation ---


@router.get("/{project_id}/consolidation", response_model=ConsolidationResult)
async def consolidate(
    project_id: str,
    projects: ProjectStore = Depends(get_project_store),
    store: PromptStore = Depends(get_prompt_store),
) -> ConsolidationResult:
    project = projects.get_project_by_id(project_id)
    if not project:
        raise _not_found(project_id)
    return consolidate_project(project, store.list_prompts())


@router.get("/{project_id}/export/{fmt}")
async def export_project(
    project_id: str,
    fmt: str,
    projects: ProjectStore = Depends(get_project_store),
    store: PromptStore = Depends(get_prompt_store),
) -> Response:
    """Consolidate and render as json, prompts-only, markdown, readme, csv or zip."""
    if fmt not in exporters.EXPORTERS:
        raise HTTPException(status_code=400, detail=f"Unknown export format '{fmt}'")
    project = projects.get_project_by_id(project_id)
    if not project:
        raise _not_found(project_id)

    result = consolidate_project(project, store.list_prompts())
    body, media_type, filename = exporters.render(result, fmt)
    return Response(
        content=body,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
