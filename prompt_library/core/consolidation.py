"""Consolidation engine — aggregates a project's prompts and executions into one snapshot.

Every function here is pure: inputs are never mutated, and apart from
``generated_at`` the output depends only on the inputs.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime

import structlog

from prompt_library.db.models import (
    ConsolidationResult,
    ExecutionHistory,
    Project,
    ProjectStatistics,
    Prompt,
    utcnow,
)

logger = structlog.get_logger()


def resolve_project_prompts(project: Project, all_prompts: Iterable[Prompt]) -> list[Prompt]:
    """Member prompts in ``project.prompt_ids`` order; unknown ids are dropped."""
    by_id = {p.id: p for p in all_prompts}
    resolved: list[Prompt] = []
    seen: set[str] = set()
    for prompt_id in project.prompt_ids:
        if prompt_id in seen or prompt_id not in by_id:
            continue
        seen.add(prompt_id)
        resolved.append(by_id[prompt_id])
    return resolved


def flatten_execution_history(prompts: Iterable[Prompt]) -> list[ExecutionHistory]:
    """All executions of *prompts*, ordered by ``executed_at`` ascending.

    The sort is stable, so entries with equal timestamps keep prompt order
    followed by each prompt's own recording order.
    """
    flat = [entry for prompt in prompts for entry in prompt.execution_history]
    return sorted(flat, key=lambda e: e.executed_at)


def compute_statistics(
    prompts: list[Prompt], executions: list[ExecutionHistory]
) -> ProjectStatistics:
    """Aggregate counts, token and cost totals, and per-model breakdowns."""
    total_executions = len(executions)
    total_tokens = sum(e.tokens_used for e in executions)

    executions_by_model: dict[str, int] = {}
    costs_by_model: dict[str, list[float]] = {}
    for entry in executions:
        executions_by_model[entry.model] = executions_by_model.get(entry.model, 0) + 1
        costs_by_model.setdefault(entry.model, []).append(entry.estimated_cost)
    cost_by_model = {model: math.fsum(costs) for model, costs in costs_by_model.items()}

    # max() returns the first maximal element, so ties go to list order.
    most_used = max(prompts, key=lambda p: p.usage_count) if prompts else None
    most_expensive = max(cost_by_model, key=cost_by_model.__getitem__) if cost_by_model else None

    return ProjectStatistics(
        total_prompts=len(prompts),
        total_versions=sum(len(p.versions) for p in prompts),
        total_executions=total_executions,
        total_tokens_used=total_tokens,
        total_cost=math.fsum(e.estimated_cost for e in executions),
        most_used_prompt=most_used.model_copy(deep=True) if most_used else None,
        most_expensive_model=most_expensive,
        average_tokens_per_execution=total_tokens / total_executions if total_executions else 0.0,
        executions_by_model=executions_by_model,
        cost_by_model=cost_by_model,
    )


def consolidate_project(
    project: Project,
    all_prompts: Iterable[Prompt],
    generated_at: datetime | None = None,
) -> ConsolidationResult:
    """Build the consolidation snapshot for *project* from the full prompt collection."""
    prompts = [p.model_copy(deep=True) for p in resolve_project_prompts(project, all_prompts)]
    executions = flatten_execution_history(prompts)
    statistics = compute_statistics(prompts, executions)

    logger.info(
        "consolidation.generated",
        project_id=project.id,
        prompts=statistics.total_prompts,
        executions=statistics.total_executions,
    )
    return ConsolidationResult(
        project=project.model_copy(deep=True),
        prompts=prompts,
        execution_history=executions,
        statistics=statistics,
        generated_at=generated_at or utcnow(),
    )
