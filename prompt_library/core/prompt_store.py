"""Prompt Store — prompts, versions, collections, categories and the filter state."""

from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import datetime
from functools import lru_cache
from typing import Any, Literal

import structlog
from pydantic import ValidationError

from prompt_library.core.catalog import calculate_cost
from prompt_library.db.client import DocumentStore, get_document_store
from prompt_library.db.models import (
    Category,
    Collection,
    ExecutionHistory,
    Prompt,
    PromptVersion,
    VersionType,
    new_id,
    utcnow,
)

logger = structlog.get_logger()

STORAGE_NAME = "prompt-library-storage"

SortMode = Literal["recent", "popular", "favorite"]

_DEFAULT_CATEGORY_NAMES = ("General", "Development", "Writing", "Analysis", "Creative")

# Fields a caller may never overwrite through an update.
_IMMUTABLE_FIELDS = frozenset({"id", "created_at"})


class DataImportError(ValueError):
    """Raised when bulk import data cannot be parsed or validated."""


class DuplicateNameError(ValueError):
    """Raised when a category name is already taken."""


def default_categories() -> list[Category]:
    return [Category(id=str(i), name=name) for i, name in enumerate(_DEFAULT_CATEGORY_NAMES, 1)]


def filter_prompts(
    prompts: Iterable[Prompt],
    query: str = "",
    category: str | None = None,
    tags: Iterable[str] | None = None,
    sort_by: SortMode = "recent",
) -> list[Prompt]:
    """Apply search → category → tags, then the sort mode.

    The search is a case-insensitive substring match over title, content
    and tags. The tag filter requires every selected tag. ``favorite`` is
    not an ordering: it keeps favorites only, in their incoming order.
    """
    result = list(prompts)

    if query:
        needle = query.lower()
        result = [
            p
            for p in result
            if needle in p.title.lower()
            or needle in p.content.lower()
            or any(needle in t.lower() for t in p.tags)
        ]
    if category:
        result = [p for p in result if p.category == category]
    wanted = list(tags or [])
    if wanted:
        result = [p for p in result if all(t in p.tags for t in wanted)]

    if sort_by == "recent":
        result.sort(key=lambda p: p.updated_at, reverse=True)
    elif sort_by == "popular":
        result.sort(key=lambda p: p.usage_count, reverse=True)
    elif sort_by == "favorite":
        result = [p for p in result if p.is_favorite]
    else:
        raise ValueError(f"Unknown sort mode: {sort_by}")
    return result


def _require_text(value: str | None, field: str) -> None:
    if value is None or not value.strip():
        raise ValueError(f"{field} must not be empty")


def _index_of(items: list[Any], item_id: str) -> int | None:
    for i, item in enumerate(items):
        if item.id == item_id:
            return i
    return None


def _replaced(items: list[Any], index: int, item: Any) -> list[Any]:
    return [*items[:index], item, *items[index + 1 :]]


def _touch(created_at: datetime) -> datetime:
    # updated_at must never precede created_at, even if the clock steps back.
    return max(utcnow(), created_at)


def _parse_state(data: Any) -> tuple[list[Prompt], list[Collection], list[Category]]:
    """Validate a ``{prompts, collections, categories}`` mapping."""
    if not isinstance(data, dict):
        raise DataImportError("Import data must be a JSON object")
    try:
        prompts = [Prompt.model_validate(p) for p in data.get("prompts") or []]
        collections = [Collection.model_validate(c) for c in data.get("collections") or []]
        raw_categories = data.get("categories")
        categories = (
            default_categories()
            if raw_categories is None
            else [Category.model_validate(c) for c in raw_categories]
        )
    except (ValidationError, TypeError) as e:
        raise DataImportError(f"Invalid library data: {e}") from e

    ids = [p.id for p in prompts]
    if len(ids) != len(set(ids)):
        raise DataImportError("Duplicate prompt ids in import data")
    return prompts, collections, categories


class PromptStore:
    """Owns prompts, collections and categories; persists them as one document."""

    def __init__(self, db: DocumentStore) -> None:
        self.db = db
        self.search_query = ""
        self.selected_category: str | None = None
        self.selected_tags: list[str] = []

        state = db.load(STORAGE_NAME)
        if state is None:
            self._prompts: list[Prompt] = []
            self._collections: list[Collection] = []
            self._categories: list[Category] = default_categories()
        else:
            self._prompts, self._collections, self._categories = _parse_state(state)
        logger.info("prompt_store.loaded", prompts=len(self._prompts))

    # --- Persistence ---

    def _state(
        self,
        prompts: list[Prompt],
        collections: list[Collection],
        categories: list[Category],
    ) -> dict[str, Any]:
        return {
            "prompts": [p.to_document() for p in prompts],
            "collections": [c.to_document() for c in collections],
            "categories": [c.to_document() for c in categories],
        }

    def _commit(
        self,
        prompts: list[Prompt] | None = None,
        collections: list[Collection] | None = None,
        categories: list[Category] | None = None,
    ) -> None:
        """Write the whole document, then swap the new lists in."""
        prompts = self._prompts if prompts is None else prompts
        collections = self._collections if collections is None else collections
        categories = self._categories if categories is None else categories
        self.db.save(STORAGE_NAME, self._state(prompts, collections, categories))
        self._prompts, self._collections, self._categories = prompts, collections, categories

    # --- Prompts ---

    def get_prompt(self, prompt_id: str) -> Prompt | None:
        index = _index_of(self._prompts, prompt_id)
        return None if index is None else self._prompts[index].model_copy(deep=True)

    def list_prompts(self) -> list[Prompt]:
        return [p.model_copy(deep=True) for p in self._prompts]

    def add_prompt(
        self,
        title: str,
        content: str,
        category: str = "General",
        tags: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
        description: str | None = None,
        project_id: str | None = None,
        is_favorite: bool = False,
    ) -> Prompt:
        """Create a prompt. The store assigns id, timestamps, usage count and versions."""
        _require_text(title, "title")
        _require_text(content, "content")

        now = utcnow()
        prompt = Prompt(
            id=new_id(),
            title=title,
            content=content,
            category=category,
            tags=tags or [],
            metadata=metadata or {},
            description=description,
            project_id=project_id,
            is_favorite=is_favorite,
            created_at=now,
            updated_at=now,
        )
        self._commit(prompts=[*self._prompts, prompt])
        logger.info("prompt.created", prompt_id=prompt.id, category=category)
        return prompt.model_copy(deep=True)

    def update_prompt(self, prompt_id: str, **changes: Any) -> Prompt | None:
        """Merge *changes* over the prompt and bump ``updated_at``."""
        blocked = _IMMUTABLE_FIELDS & changes.keys()
        if blocked:
            raise ValueError(f"Cannot update immutable fields: {sorted(blocked)}")
        if "title" in changes:
            _require_text(changes["title"], "title")
        if "content" in changes:
            _require_text(changes["content"], "content")

        index = _index_of(self._prompts, prompt_id)
        if index is None:
            return None

        current = self._prompts[index]
        updated = Prompt.model_validate(
            {**current.model_dump(), **changes, "updated_at": _touch(current.created_at)}
        )
        self._commit(prompts=_replaced(self._prompts, index, updated))
        logger.info("prompt.updated", prompt_id=prompt_id, fields=sorted(changes))
        return updated.model_copy(deep=True)

    def delete_prompt(self, prompt_id: str) -> bool:
        """Remove a prompt and drop it from every collection.

        Project membership lives in the project store and is not touched here.
        """
        if _index_of(self._prompts, prompt_id) is None:
            return False

        prompts = [p for p in self._prompts if p.id != prompt_id]
        collections = [
            c.model_copy(update={"prompt_ids": [pid for pid in c.prompt_ids if pid != prompt_id]})
            if prompt_id in c.prompt_ids
            else c
            for c in self._collections
        ]
        self._commit(prompts=prompts, collections=collections)
        logger.info("prompt.deleted", prompt_id=prompt_id)
        return True

    def duplicate_prompt(self, prompt_id: str) -> Prompt | None:
        """Copy a prompt under a new id with usage, favorite and versions reset."""
        index = _index_of(self._prompts, prompt_id)
        if index is None:
            return None

        source = self._prompts[index]
        copy_id = new_id()
        now = utcnow()
        duplicate = source.model_copy(
            deep=True,
            update={
                "id": copy_id,
                "title": f"{source.title} (Copy)",
                "created_at": now,
                "updated_at": now,
                "usage_count": 0,
                "is_favorite": False,
                "versions": [],
                "execution_history": [
                    e.model_copy(update={"id": new_id(), "prompt_id": copy_id})
                    for e in source.execution_history
                ],
            },
        )
        self._commit(prompts=[*self._prompts, duplicate])
        logger.info("prompt.duplicated", source_id=prompt_id, prompt_id=copy_id)
        return duplicate.model_copy(deep=True)

    def toggle_favorite(self, prompt_id: str) -> Prompt | None:
        index = _index_of(self._prompts, prompt_id)
        if index is None:
            return None
        current = self._prompts[index]
        updated = current.model_copy(
            update={
                "is_favorite": not current.is_favorite,
                "updated_at": _touch(current.created_at),
            }
        )
        self._commit(prompts=_replaced(self._prompts, index, updated))
        return updated.model_copy(deep=True)

    def increment_usage_count(self, prompt_id: str) -> Prompt | None:
        """Count one use. Usage is not an edit, so ``updated_at`` stays put."""
        index = _index_of(self._prompts, prompt_id)
        if index is None:
            return None
        current = self._prompts[index]
        updated = current.model_copy(update={"usage_count": current.usage_count + 1})
        self._commit(prompts=_replaced(self._prompts, index, updated))
        return updated.model_copy(deep=True)

    # --- Versions and executions ---

    def add_version(
        self, prompt_id: str, content: str, type: VersionType = "manual"
    ) -> PromptVersion | None:
        """Append an immutable content snapshot to a prompt's history."""
        _require_text(content, "content")
        version = PromptVersion(content=content, type=type)

        index = _index_of(self._prompts, prompt_id)
        if index is None:
            return None
        current = self._prompts[index]
        updated = current.model_copy(
            update={
                "versions": [*current.versions, version],
                "updated_at": _touch(current.created_at),
            }
        )
        self._commit(prompts=_replaced(self._prompts, index, updated))
        logger.info("prompt.version_added", prompt_id=prompt_id, type=type)
        return version

    def record_execution(
        self,
        prompt_id: str,
        model: str,
        tokens_used: int,
        estimated_cost: float | None = None,
        response_time: float | None = None,
        notes: str | None = None,
        executed_at: datetime | None = None,
    ) -> ExecutionHistory | None:
        """Append one execution record. Cost defaults to the catalog price of *model*."""
        if estimated_cost is None:
            estimated_cost = calculate_cost(model, tokens_used)
        entry = ExecutionHistory(
            prompt_id=prompt_id,
            model=model,
            tokens_used=tokens_used,
            estimated_cost=estimated_cost,
            response_time=response_time,
            notes=notes,
            executed_at=executed_at or utcnow(),
        )

        index = _index_of(self._prompts, prompt_id)
        if index is None:
            return None
        current = self._prompts[index]
        updated = current.model_copy(
            update={"execution_history": [*current.execution_history, entry]}
        )
        self._commit(prompts=_replaced(self._prompts, index, updated))
        logger.info(
            "prompt.execution_recorded",
            prompt_id=prompt_id,
            model=model,
            tokens=tokens_used,
        )
        return entry

    def apply_optimization(self, prompt_id: str, optimized_text: str) -> Prompt | None:
        """Accept an optimized rewrite of a prompt's content.

        The previous content is kept as a ``manual`` version and the new
        content is recorded as an ``optimized`` version.
        """
        _require_text(optimized_text, "optimized text")

        index = _index_of(self._prompts, prompt_id)
        if index is None:
            return None
        current = self._prompts[index]
        updated = current.model_copy(
            update={
                "content": optimized_text,
                "versions": [
                    *current.versions,
                    PromptVersion(content=current.content, type="manual"),
                    PromptVersion(content=optimized_text, type="optimized"),
                ],
                "updated_at": _touch(current.created_at),
            }
        )
        self._commit(prompts=_replaced(self._prompts, index, updated))
        logger.info("prompt.optimization_applied", prompt_id=prompt_id)
        return updated.model_copy(deep=True)

    # --- Collections ---

    def get_collection(self, collection_id: str) -> Collection | None:
        index = _index_of(self._collections, collection_id)
        return None if index is None else self._collections[index].model_copy(deep=True)

    def list_collections(self) -> list[Collection]:
        return [c.model_copy(deep=True) for c in self._collections]

    def create_collection(self, name: str, description: str | None = None) -> Collection:
        _require_text(name, "name")
        collection = Collection(name=name, description=description)
        self._commit(collections=[*self._collections, collection])
        logger.info("collection.created", collection_id=collection.id)
        return collection.model_copy(deep=True)

    def update_collection(self, collection_id: str, **changes: Any) -> Collection | None:
        blocked = _IMMUTABLE_FIELDS & changes.keys()
        if blocked:
            raise ValueError(f"Cannot update immutable fields: {sorted(blocked)}")
        if "name" in changes:
            _require_text(changes["name"], "name")

        index = _index_of(self._collections, collection_id)
        if index is None:
            return None
        current = self._collections[index]
        updated = Collection.model_validate(
            {**current.model_dump(), **changes, "updated_at": _touch(current.created_at)}
        )
        # Membership stays set-like even when replaced wholesale.
        updated = updated.model_copy(update={"prompt_ids": list(dict.fromkeys(updated.prompt_ids))})
        self._commit(collections=_replaced(self._collections, index, updated))
        return updated.model_copy(deep=True)

    def delete_collection(self, collection_id: str) -> bool:
        if _index_of(self._collections, collection_id) is None:
            return False
        self._commit(collections=[c for c in self._collections if c.id != collection_id])
        logger.info("collection.deleted", collection_id=collection_id)
        return True

    def add_to_collection(self, collection_id: str, prompt_id: str) -> Collection | None:
        """Add a prompt to a collection. Adding a member twice is a no-op."""
        index = _index_of(self._collections, collection_id)
        if index is None or _index_of(self._prompts, prompt_id) is None:
            return None
        current = self._collections[index]
        if prompt_id in current.prompt_ids:
            return current.model_copy(deep=True)
        updated = current.model_copy(
            update={
                "prompt_ids": [*current.prompt_ids, prompt_id],
                "updated_at": _touch(current.created_at),
            }
        )
        self._commit(collections=_replaced(self._collections, index, updated))
        return updated.model_copy(deep=True)

    def remove_from_collection(self, collection_id: str, prompt_id: str) -> Collection | None:
        index = _index_of(self._collections, collection_id)
        if index is None:
            return None
        current = self._collections[index]
        updated = current.model_copy(
            update={
                "prompt_ids": [pid for pid in current.prompt_ids if pid != prompt_id],
                "updated_at": _touch(current.created_at),
            }
        )
        self._commit(collections=_replaced(self._collections, index, updated))
        return updated.model_copy(deep=True)

    # --- Categories ---

    def get_category(self, category_id: str) -> Category | None:
        index = _index_of(self._categories, category_id)
        return None if index is None else self._categories[index].model_copy()

    def list_categories(self) -> list[Category]:
        return [c.model_copy() for c in self._categories]

    def _check_category_name(self, name: str, exclude_id: str | None = None) -> None:
        _require_text(name, "name")
        lowered = name.strip().lower()
        for category in self._categories:
            if category.id != exclude_id and category.name.strip().lower() == lowered:
                raise DuplicateNameError(f"Category '{name}' already exists")

    def create_category(
        self, name: str, color: str = "bg-neutral-700", icon: str | None = None
    ) -> Category:
        self._check_category_name(name)
        category = Category(name=name, color=color, icon=icon)
        self._commit(categories=[*self._categories, category])
        logger.info("category.created", name=name)
        return category.model_copy()

    def update_category(self, category_id: str, **changes: Any) -> Category | None:
        """Update a category. Renaming does not rewrite prompts using the old name."""
        if "id" in changes:
            raise ValueError("Cannot update immutable fields: ['id']")
        index = _index_of(self._categories, category_id)
        if index is None:
            return None
        if "name" in changes:
            self._check_category_name(changes["name"], exclude_id=category_id)
        updated = Category.model_validate({**self._categories[index].model_dump(), **changes})
        self._commit(categories=_replaced(self._categories, index, updated))
        return updated.model_copy()

    def delete_category(self, category_id: str) -> bool:
        """Delete a category. Prompts keep the deleted name as a dangling reference."""
        if _index_of(self._categories, category_id) is None:
            return False
        self._commit(categories=[c for c in self._categories if c.id != category_id])
        logger.info("category.deleted", category_id=category_id)
        return True

    # --- Search and filter state ---

    def set_search_query(self, query: str) -> None:
        self.search_query = query

    def set_selected_category(self, category: str | None) -> None:
        self.selected_category = category

    def set_selected_tags(self, tags: list[str]) -> None:
        self.selected_tags = list(dict.fromkeys(tags))

    def toggle_tag(self, tag: str) -> None:
        if tag in self.selected_tags:
            self.selected_tags = [t for t in self.selected_tags if t != tag]
        else:
            self.selected_tags = [*self.selected_tags, tag]

    def clear_filters(self) -> None:
        self.search_query = ""
        self.selected_category = None
        self.selected_tags = []

    def filtered_prompts(self, sort_by: SortMode = "recent") -> list[Prompt]:
        """Prompts matching the current filter state."""
        return [
            p.model_copy(deep=True)
            for p in filter_prompts(
                self._prompts,
                query=self.search_query,
                category=self.selected_category,
                tags=self.selected_tags,
                sort_by=sort_by,
            )
        ]

    # --- Bulk ---

    def export_data(self) -> str:
        """Raw library data as JSON: prompts, collections and categories."""
        return json.dumps(self._state(self._prompts, self._collections, self._categories))

    def import_data(self, json_data: str) -> None:
        """Replace prompts, collections and categories wholesale.

        Raises DataImportError and leaves the store untouched when the data
        is not valid JSON or does not describe a library.
        """
        try:
            data = json.loads(json_data)
        except json.JSONDecodeError as e:
            logger.warning("library.import_failed", error=str(e))
            raise DataImportError(f"Malformed JSON: {e}") from e
        try:
            prompts, collections, categories = _parse_state(data)
        except DataImportError as e:
            logger.warning("library.import_failed", error=str(e))
            raise

        self._commit(prompts=prompts, collections=collections, categories=categories)
        logger.info("library.imported", prompts=len(prompts), collections=len(collections))

    def clear_all(self) -> None:
        """Reset to an empty library with the default categories."""
        self._commit(prompts=[], collections=[], categories=default_categories())
        self.clear_filters()
        logger.info("library.cleared")


@lru_cache
def get_prompt_store() -> PromptStore:
    """Get the process-wide prompt store."""
    return PromptStore(get_document_store())
