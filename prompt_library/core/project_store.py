"""Project Store — projects, the active project pointer and cached project stats."""

from __future__ import annotations

from collections.abc import Iterable
from functools import lru_cache
from typing import Any

import structlog
from pydantic import ValidationError

from prompt_library.core.catalog import DEFAULT_MODELS
from prompt_library.core.consolidation import (
    compute_statistics,
    flatten_execution_history,
    resolve_project_prompts,
)
from prompt_library.core.prompt_store import PromptStore, get_prompt_store
from prompt_library.db.client import DocumentStore, get_document_store
from prompt_library.db.models import Project, ProjectSettings, ProjectStats, Prompt, utcnow

logger = structlog.get_logger()

STORAGE_NAME = "project-library-storage"

_IMMUTABLE_FIELDS = frozenset({"id", "created_at"})


def default_project(name: str = "Default Project", description: str = "Main project") -> Project:
    """A fresh project with the default execution settings and zeroed stats."""
    now = utcnow()
    return Project(
        name=name,
        description=description,
        created_at=now,
        updated_at=now,
        settings=ProjectSettings(
            default_model=DEFAULT_MODELS["BALANCED"],
            default_token_limit=4096,
            estimated_cost_per_token=0.003,
            tags=[],
            temperature=0.7,
        ),
        stats=ProjectStats(),
        color="#8b5cf6",
        icon="folder",
    )


def _require_name(name: str | None) -> None:
    if name is None or not name.strip():
        raise ValueError("name must not be empty")


class ProjectStore:
    """Owns project records. Prompts are referenced by id only.

    At least one project exists at all times: an empty document is seeded
    with a default project, and deleting the last project replaces it.

    Cached stats are always computed by the consolidation engine over the
    prompts read from *prompt_store*. Without a prompt store every project
    resolves to no prompts.
    """

    def __init__(self, db: DocumentStore, prompt_store: PromptStore | None = None) -> None:
        self.db = db
        self.prompt_store = prompt_store
        self._projects: list[Project] = []
        self._active_project_id: str | None = None

        state = db.load(STORAGE_NAME) or {}
        try:
            projects = [Project.model_validate(p) for p in state.get("projects") or []]
        except ValidationError as e:
            raise ValueError(f"Corrupt project document: {e}") from e
        active = state.get("activeProjectId")

        if projects:
            self._projects, self._active_project_id = projects, active
        else:
            self._commit([default_project()], None)
        logger.info("project_store.loaded", projects=len(self._projects))

    def _commit(self, projects: list[Project], active_project_id: str | None) -> None:
        """Write the whole document, then swap the new state in."""
        self.db.save(
            STORAGE_NAME,
            {
                "projects": [p.to_document() for p in projects],
                "activeProjectId": active_project_id,
            },
        )
        self._projects, self._active_project_id = projects, active_project_id

    def _index(self, project_id: str) -> int | None:
        for i, project in enumerate(self._projects):
            if project.id == project_id:
                return i
        return None

    def _replace(self, index: int, project: Project) -> None:
        projects = [*self._projects[:index], project, *self._projects[index + 1 :]]
        self._commit(projects, self._active_project_id)

    @property
    def active_project_id(self) -> str | None:
        """The raw active pointer, without the fallback of ``get_active_project``."""
        return self._active_project_id

    def _all_prompts(self) -> list[Prompt]:
        return self.prompt_store.list_prompts() if self.prompt_store else []

    # --- Lookups ---

    def list_projects(self) -> list[Project]:
        return [p.model_copy(deep=True) for p in self._projects]

    def get_project_by_id(self, project_id: str) -> Project | None:
        index = self._index(project_id)
        return None if index is None else self._projects[index].model_copy(deep=True)

    def get_project_prompts(self, project_id: str) -> list[str]:
        """Prompt ids of a project, or an empty list for an unknown project."""
        index = self._index(project_id)
        return [] if index is None else list(self._projects[index].prompt_ids)

    # --- CRUD ---

    def create_project(self, name: str, description: str = "") -> Project:
        """Create a project with default settings and make it active."""
        _require_name(name)
        project = default_project(name, description)
        self._commit([*self._projects, project], project.id)
        logger.info("project.created", project_id=project.id)
        return project.model_copy(deep=True)

    def update_project(self, project_id: str, **changes: Any) -> Project | None:
        blocked = _IMMUTABLE_FIELDS & changes.keys()
        if blocked:
            raise ValueError(f"Cannot update immutable fields: {sorted(blocked)}")
        if "name" in changes:
            _require_name(changes["name"])

        index = self._index(project_id)
        if index is None:
            return None
        current = self._projects[index]
        merged = {
            **current.model_dump(),
            **changes,
            "updated_at": max(utcnow(), current.created_at),
        }
        if "prompt_ids" in changes:
            merged["prompt_ids"] = list(dict.fromkeys(changes["prompt_ids"]))
        updated = Project.model_validate(merged)
        if "prompt_ids" in changes:
            updated = self._with_stats(updated)
        self._replace(index, updated)
        logger.info("project.updated", project_id=project_id, fields=sorted(changes))
        return updated.model_copy(deep=True)

    def update_project_settings(self, project_id: str, **settings: Any) -> Project | None:
        """Merge *settings* into the project settings. Invalid values raise ValidationError."""
        index = self._index(project_id)
        if index is None:
            return None
        current = self._projects[index]
        new_settings = ProjectSettings.model_validate({**current.settings.model_dump(), **settings})
        updated = current.model_copy(
            update={"settings": new_settings, "updated_at": max(utcnow(), current.created_at)}
        )
        self._replace(index, updated)
        logger.info("project.settings_updated", project_id=project_id, fields=sorted(settings))
        return updated.model_copy(deep=True)

    def delete_project(self, project_id: str) -> bool:
        """Delete a project, keeping at least one project and a valid active pointer."""
        if self._index(project_id) is None:
            return False

        remaining = [p for p in self._projects if p.id != project_id]
        if not remaining:
            replacement = default_project()
            self._commit([replacement], replacement.id)
            logger.info("project.deleted", project_id=project_id, replacement_id=replacement.id)
            return True

        active = self._active_project_id
        if active == project_id:
            active = remaining[0].id
        self._commit(remaining, active)
        logger.info("project.deleted", project_id=project_id)
        return True

    # --- Active project ---

    def set_active_project(self, project_id: str | None) -> bool:
        """Point at *project_id*, or clear the pointer with None. Unknown ids are rejected."""
        if project_id is not None and self._index(project_id) is None:
            return False
        self._commit(self._projects, project_id)
        return True

    def get_active_project(self) -> Project | None:
        """The active project, activating the first project when none is set."""
        index = self._index(self._active_project_id) if self._active_project_id else None
        if index is None:
            if not self._projects:
                return None
            self._commit(self._projects, self._projects[0].id)
            index = 0
        return self._projects[index].model_copy(deep=True)

    # --- Membership and stats ---

    def _with_stats(self, project: Project, prompts: Iterable[Prompt] | None = None) -> Project:
        """*project* with stats recomputed by the consolidation engine."""
        members = resolve_project_prompts(
            project, self._all_prompts() if prompts is None else prompts
        )
        executions = flatten_execution_history(members)
        summary = compute_statistics(members, executions)
        stats = ProjectStats(
            total_prompts=summary.total_prompts,
            total_executions=summary.total_executions,
            total_cost=summary.total_cost,
            average_cost_per_execution=(
                summary.total_cost / summary.total_executions if summary.total_executions else 0.0
            ),
            last_executed=executions[-1].executed_at if executions else None,
        )
        return project.model_copy(
            update={"stats": stats, "updated_at": max(utcnow(), project.created_at)}
        )

    def add_prompt_to_project(self, project_id: str, prompt_id: str) -> Project | None:
        """Link a prompt id to a project. Linking twice is a no-op."""
        index = self._index(project_id)
        if index is None:
            return None
        current = self._projects[index]
        prompt_ids = current.prompt_ids
        if prompt_id not in prompt_ids:
            prompt_ids = [*prompt_ids, prompt_id]
        updated = self._with_stats(current.model_copy(update={"prompt_ids": prompt_ids}))
        self._replace(index, updated)
        return updated.model_copy(deep=True)

    def remove_prompt_from_project(self, project_id: str, prompt_id: str) -> Project | None:
        index = self._index(project_id)
        if index is None:
            return None
        current = self._projects[index]
        prompt_ids = [pid for pid in current.prompt_ids if pid != prompt_id]
        updated = self._with_stats(current.model_copy(update={"prompt_ids": prompt_ids}))
        self._replace(index, updated)
        return updated.model_copy(deep=True)

    def forget_prompt(self, prompt_id: str) -> list[str]:
        """Unlink a deleted prompt from every project; returns the affected project ids."""
        affected = [p.id for p in self._projects if prompt_id in p.prompt_ids]
        for project_id in affected:
            self.remove_prompt_from_project(project_id, prompt_id)
        if affected:
            logger.info("project.prompt_forgotten", prompt_id=prompt_id, projects=affected)
        return affected

    def recalculate_project_stats(
        self, project_id: str, prompts: Iterable[Prompt] | None = None
    ) -> Project | None:
        """Refresh the cached stats of a project.

        Every field comes from the consolidation engine's statistics over
        *prompts*, or over the prompt store's prompts when none are passed.
        Linked ids with no prompt are not counted.
        """
        index = self._index(project_id)
        if index is None:
            return None
        updated = self._with_stats(self._projects[index], prompts)
        self._replace(index, updated)
        return updated.model_copy(deep=True)

    def refresh_stats(self, prompt_id: str | None = None) -> list[str]:
        """Recalculate every project linking *prompt_id*, or every project when None.

        Called after prompt data that feeds the stats changes, such as a new
        execution or a bulk import. Returns the refreshed project ids.
        """
        prompts = self._all_prompts()
        refreshed = [
            self._with_stats(p, prompts)
            if prompt_id is None or prompt_id in p.prompt_ids
            else p
            for p in self._projects
        ]
        ids = [new.id for new, old in zip(refreshed, self._projects) if new is not old]
        if ids:
            self._commit(refreshed, self._active_project_id)
            logger.debug("project.stats_refreshed", projects=ids)
        return ids


@lru_cache
def get_project_store() -> ProjectStore:
    """Get the process-wide project store."""
    return ProjectStore(get_document_store(), get_prompt_store())
