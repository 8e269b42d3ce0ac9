"""Pydantic request/response models for the API.

Entity responses reuse the models from ``prompt_library.db.models``; this
module only holds request bodies and a few composite responses.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from prompt_library.db.models import Prompt, VersionType


class ApiModel(BaseModel):
    """Accepts camelCase or snake_case keys, like the entity models."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Prompts ---


class PromptCreate(ApiModel):
    """Create a new prompt."""

    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    category: str = "General"
    tags: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    description: str | None = None
    project_id: str | None = None
    is_favorite: bool = False


class PromptUpdate(ApiModel):
    """Partial prompt update; only fields sent are changed."""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    content: str | None = Field(default=None, min_length=1)
    category: str | None = None
    tags: list[str] | None = None
    metadata: dict[str, Any] | None = None
    description: str | None = None
    project_id: str | None = None
    is_favorite: bool | None = None


class VersionCreate(ApiModel):
    """Snapshot content as a new version."""

    content: str = Field(..., min_length=1)
    type: VersionType = "manual"


class ExecutionCreate(ApiModel):
    """Record one execution of a prompt."""

    model: str = Field(..., min_length=1)
    tokens_used: int = Field(..., ge=0)
    estimated_cost: float | None = Field(default=None, ge=0)
    response_time: float | None = None
    notes: str | None = None
    executed_at: datetime | None = None


class OptimizeRequest(ApiModel):
    """Ask the optimizer for a rewrite; ``apply`` stores it right away."""

    model: str | None = None
    max_tokens: int = Field(default=2000, ge=1)
    temperature: float = Field(default=0.7, ge=0, le=1)
    apply: bool = False


class OptimizeResponse(ApiModel):
    optimized: str
    applied: bool
    prompt: Prompt | None = None


class ApplyOptimization(ApiModel):
    """Accept a previously returned optimization."""

    optimized_text: str = Field(..., min_length=1)


# --- Collections and categories ---


class CollectionCreate(ApiModel):
    name: str = Field(..., min_length=1)
    description: str | None = None


class CollectionUpdate(ApiModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    prompt_ids: list[str] | None = None


class CategoryCreate(ApiModel):
    name: str = Field(..., min_length=1)
    color: str = "bg-neutral-700"
    icon: str | None = None


class CategoryUpdate(ApiModel):
    name: str | None = Field(default=None, min_length=1)
    color: str | None = None
    icon: str | None = None


# --- Projects ---


class ProjectCreate(ApiModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""


class ProjectUpdate(ApiModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    color: str | None = None
    icon: str | None = None


class ProjectSettingsUpdate(ApiModel):
    default_model: str | None = None
    default_token_limit: int | None = Field(default=None, ge=1)
    estimated_cost_per_token: float | None = Field(default=None, ge=0)
    tags: list[str] | None = None
    temperature: float | None = Field(default=None, ge=0, le=1)


class ActiveProject(ApiModel):
    project_id: str | None = None
