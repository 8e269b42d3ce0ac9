"""Entity models for the prompt library.

Python code uses snake_case attributes; the persisted documents, the bulk
export and the consolidation export use the camelCase aliases.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Literal
from uuid import uuid4

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

VersionType = Literal["manual", "optimized"]


def new_id() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps from older documents are taken to be UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


Timestamp = Annotated[datetime, AfterValidator(_as_utc)]


class LibraryModel(BaseModel):
    """Base for every persisted record: camelCase on the wire, either spelling on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict[str, Any]:
        """JSON-ready dict using the wire (camelCase) key names."""
        return self.model_dump(mode="json", by_alias=True)


class PromptVersion(LibraryModel):
    """Immutable snapshot of a prompt's content."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(default_factory=new_id)
    content: str
    timestamp: Timestamp = Field(default_factory=utcnow)
    type: VersionType = "manual"


class PromptMetadata(LibraryModel):
    """Free-form execution hints; unknown keys are kept."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None


class ExecutionHistory(LibraryModel):
    """One recorded invocation of a prompt against a model."""

    id: str = Field(default_factory=new_id)
    prompt_id: str
    executed_at: Timestamp = Field(default_factory=utcnow)
    model: str
    tokens_used: int = Field(default=0, ge=0)
    estimated_cost: float = Field(default=0.0, ge=0)
    response_time: float | None = None
    notes: str | None = None


class Prompt(LibraryModel):
    """A stored, reusable prompt template."""

    id: str = Field(default_factory=new_id)
    title: str
    content: str
    category: str = "General"
    tags: list[str] = Field(default_factory=list)
    created_at: Timestamp = Field(default_factory=utcnow)
    updated_at: Timestamp = Field(default_factory=utcnow)
    is_favorite: bool = False
    usage_count: int = Field(default=0, ge=0)
    versions: list[PromptVersion] = Field(default_factory=list)
    metadata: PromptMetadata = Field(default_factory=PromptMetadata)
    execution_history: list[ExecutionHistory] = Field(default_factory=list)
    description: str | None = None
    project_id: str | None = None

    @field_validator("tags")
    @classmethod
    def _unique_tags(cls, tags: list[str]) -> list[str]:
        # Keep first occurrence; display order is insertion order.
        return list(dict.fromkeys(tags))


class Category(LibraryModel):
    """Named grouping. Prompts reference categories by name."""

    id: str = Field(default_factory=new_id)
    name: str
    color: str = "bg-neutral-700"
    icon: str | None = None


class Collection(LibraryModel):
    """User-curated set of prompt ids."""

    id: str = Field(default_factory=new_id)
    name: str
    description: str | None = None
    prompt_ids: list[str] = Field(default_factory=list)
    created_at: Timestamp = Field(default_factory=utcnow)
    updated_at: Timestamp = Field(default_factory=utcnow)


class ProjectSettings(LibraryModel):
    """Default execution settings for a project."""

    default_model: str
    default_token_limit: int = 4096
    estimated_cost_per_token: float = 0.003
    tags: list[str] = Field(default_factory=list)
    temperature: float | None = 0.7


class ProjectStats(LibraryModel):
    """Cached, derived project statistics."""

    total_prompts: int = 0
    total_executions: int = 0
    total_cost: float = 0.0
    average_cost_per_execution: float = 0.0
    last_executed: Timestamp | None = None


class Project(LibraryModel):
    """Named workspace grouping prompt ids."""

    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""
    prompt_ids: list[str] = Field(default_factory=list)
    created_at: Timestamp = Field(default_factory=utcnow)
    updated_at: Timestamp = Field(default_factory=utcnow)
    settings: ProjectSettings
    stats: ProjectStats = Field(default_factory=ProjectStats)
    color: str | None = None
    icon: str | None = None


class ProjectStatistics(LibraryModel):
    """Aggregates computed by the consolidation engine."""

    total_prompts: int = 0
    total_versions: int = 0
    total_executions: int = 0
    total_tokens_used: int = 0
    total_cost: float = 0.0
    most_used_prompt: Prompt | None = None
    most_expensive_model: str | None = None
    average_tokens_per_execution: float = 0.0
    executions_by_model: dict[str, int] = Field(default_factory=dict)
    cost_by_model: dict[str, float] = Field(default_factory=dict)


class ConsolidationResult(LibraryModel):
    """Disposable snapshot of one project handed to the exporters."""

    project: Project
    prompts: list[Prompt]
    execution_history: list[ExecutionHistory]
    statistics: ProjectStatistics
    generated_at: Timestamp
