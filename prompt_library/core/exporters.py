"""Export adapters — render a ConsolidationResult as JSON, Markdown, CSV or a ZIP bundle.

Each renderer returns text or bytes; writing files or HTTP responses is up
to the caller.
"""

from __future__ import annotations

import csv
import io
import json
import re
import zipfile
from collections.abc import Callable
from typing import Any

from prompt_library.db.models import ConsolidationResult, ProjectSettings, Prompt

CSV_HEADERS = [
    "Prompt Title",
    "Model",
    "Date",
    "Tokens Used",
    "Estimated Cost",
    "Response Time",
    "Notes",
]


def slugify(name: str) -> str:
    return re.sub(r"\s+", "-", name.strip()).lower()


def _file_slug(title: str) -> str:
    return re.sub(r"[^a-z0-9]", "-", title.lower())[:50]


def _fmt_ts(value: Any) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S UTC")


def _tags(prompt: Prompt) -> str:
    return ", ".join(prompt.tags) or "None"


def _temperature(settings: ProjectSettings) -> float:
    return settings.temperature if settings.temperature is not None else 0.7


def export_filename(result: ConsolidationResult, fmt: str) -> str:
    """Default download name for *fmt*."""
    slug = slugify(result.project.name)
    day = result.generated_at.date().isoformat()
    names = {
        "json": f"{slug}-{day}.json",
        "prompts-only": f"{slug}-prompts-only.json",
        "markdown": f"{slug}-report.md",
        "readme": "README.md",
        "csv": f"{slug}-executions.csv",
        "zip": f"{slug}-complete-{day}.zip",
    }
    if fmt not in names:
        raise ValueError(f"Unknown export format: {fmt}")
    return names[fmt]


# --- JSON ---


def to_json(result: ConsolidationResult) -> str:
    return json.dumps(result.to_document(), indent=2, ensure_ascii=False)


def prompts_only_json(result: ConsolidationResult) -> str:
    """Just the prompt bodies, for re-importing into another project."""
    data = {
        "projectName": result.project.name,
        "exportedAt": result.generated_at.isoformat(),
        "prompts": [
            {
                "title": p.title,
                "content": p.content,
                "category": p.category,
                "tags": p.tags,
                "description": p.description,
                "metadata": p.metadata.to_document(),
            }
            for p in result.prompts
        ],
    }
    return json.dumps(data, indent=2, ensure_ascii=False)


# --- Markdown ---


def _model_sections(result: ConsolidationResult) -> str:
    stats = result.statistics
    usage = "\n".join(
        f"- **{model}:** {count} executions" for model, count in stats.executions_by_model.items()
    )
    costs = "\n".join(f"- **{model}:** ${cost:.4f}" for model, cost in stats.cost_by_model.items())
    return (
        "## Model Usage Distribution\n\n"
        f"{usage or 'No executions recorded.'}\n\n"
        "## Cost Breakdown by Model\n\n"
        f"{costs or 'No executions recorded.'}\n"
    )


def executive_summary(result: ConsolidationResult) -> str:
    """Short overview used as the README of a ZIP bundle."""
    project, stats = result.project, result.statistics
    lines = [
        f"# {project.name}",
        "",
        project.description or "AI Prompt Project",
        "",
        "## Summary",
        "",
        f"- **Prompts:** {stats.total_prompts}",
        f"- **Versions:** {stats.total_versions}",
        f"- **Executions:** {stats.total_executions}",
        f"- **Tokens used:** {stats.total_tokens_used:,}",
        f"- **Total cost:** ${stats.total_cost:.4f}",
        f"- **Average tokens per execution:** {stats.average_tokens_per_execution:,.1f}",
    ]
    if stats.most_used_prompt is not None:
        lines.append(
            f"- **Most used prompt:** {stats.most_used_prompt.title} "
            f"({stats.most_used_prompt.usage_count} uses)"
        )
    if stats.most_expensive_model is not None:
        lines.append(f"- **Most expensive model:** {stats.most_expensive_model}")
    lines += ["", f"*Generated on {_fmt_ts(result.generated_at)}*", ""]
    return "\n".join(lines)


def detailed_report(result: ConsolidationResult) -> str:
    """Full Markdown report: summary, settings, every prompt, model breakdowns."""
    project = result.project
    settings = project.settings
    parts = [
        executive_summary(result),
        "## Project Settings\n",
        f"- **Default Model:** {settings.default_model}",
        f"- **Token Limit:** {settings.default_token_limit:,}",
        f"- **Temperature:** {_temperature(settings)}",
        f"- **Tags:** {', '.join(settings.tags) or 'None'}",
        "",
        "## Prompts\n",
    ]
    if not result.prompts:
        parts.append("This project has no prompts yet.\n")
    for i, prompt in enumerate(result.prompts, 1):
        executions = len(prompt.execution_history)
        parts += [
            f"### {i}. {prompt.title}\n",
            f"**Category:** {prompt.category}  ",
            f"**Tags:** {_tags(prompt)}  ",
            f"**Usage:** {prompt.usage_count} times | **Versions:** {len(prompt.versions)}"
            f" | **Executions:** {executions}\n",
            "```",
            prompt.content,
            "```\n",
        ]
        if prompt.description:
            parts.append(f"> {prompt.description}\n")
    parts.append(_model_sections(result))
    return "\n".join(parts)


def to_markdown(result: ConsolidationResult) -> str:
    return detailed_report(result)


def to_readme(result: ConsolidationResult) -> str:
    """README.md documenting the project and its prompts."""
    project, stats, settings = result.project, result.statistics, result.project.settings
    prompt_blocks = []
    for i, p in enumerate(result.prompts, 1):
        block = (
            f"### {i}. {p.title}\n\n"
            f"**Category:** {p.category}\n"
            f"**Tags:** {_tags(p)}\n\n"
            f"```\n{p.content}\n```\n\n"
        )
        if p.description:
            block += f"> {p.description}\n\n"
        block += f"**Usage:** {p.usage_count} times | **Versions:** {len(p.versions)}\n"
        prompt_blocks.append(block)

    return (
        f"# {project.name}\n\n"
        f"{project.description or 'AI Prompt Project'}\n\n"
        "## Quick Stats\n\n"
        f"- **{stats.total_prompts}** prompts\n"
        f"- **{stats.total_executions}** total executions\n"
        f"- **${stats.total_cost:.4f}** total cost\n"
        f"- **{stats.total_tokens_used:,}** tokens used\n\n"
        "## Project Settings\n\n"
        f"- **Default Model:** {settings.default_model}\n"
        f"- **Token Limit:** {settings.default_token_limit:,}\n"
        f"- **Temperature:** {_temperature(settings)}\n\n"
        "## Prompts in this Project\n\n"
        + ("\n---\n\n".join(prompt_blocks) or "No prompts yet.\n")
        + "\n"
        + _model_sections(result)
        + f"\n---\n\n*Generated on {_fmt_ts(result.generated_at)}*\n"
    )


def prompt_markdown(prompt: Prompt) -> str:
    """One prompt with its metadata, versions and executions."""
    lines = [
        f"# {prompt.title}",
        "",
        f"**Category:** {prompt.category}  ",
        f"**Tags:** {_tags(prompt)}  ",
        f"**Created:** {prompt.created_at.date().isoformat()}  ",
        f"**Updated:** {prompt.updated_at.date().isoformat()}",
        "",
    ]
    if prompt.description:
        lines += ["## Description", "", prompt.description, ""]
    lines += [
        "## Prompt Content",
        "",
        "```",
        prompt.content,
        "```",
        "",
        "## Metadata",
        "",
        f"- **Usage Count:** {prompt.usage_count}",
        f"- **Favorite:** {'Yes' if prompt.is_favorite else 'No'}",
        f"- **Versions:** {len(prompt.versions)}",
        f"- **Executions:** {len(prompt.execution_history)}",
        "",
    ]
    if prompt.versions:
        lines += ["## Version History", ""]
        for i, version in enumerate(prompt.versions, 1):
            lines += [
                f"### Version {i} - {version.type}",
                f"**Date:** {_fmt_ts(version.timestamp)}",
                "",
                "```",
                version.content,
                "```",
                "",
            ]
    if prompt.execution_history:
        lines += ["## Execution History", ""]
        for i, entry in enumerate(prompt.execution_history, 1):
            lines += [
                f"### Execution {i}",
                f"**Model:** {entry.model}  ",
                f"**Date:** {_fmt_ts(entry.executed_at)}  ",
                f"**Tokens:** {entry.tokens_used:,}  ",
                f"**Cost:** ${entry.estimated_cost:.6f}",
            ]
            if entry.notes:
                lines.append(f"**Notes:** {entry.notes}")
            lines.append("")
    return "\n".join(lines)


def project_settings_markdown(result: ConsolidationResult) -> str:
    project, stats, settings = result.project, result.statistics, result.project.settings
    tags = "\n".join(f"- {tag}" for tag in settings.tags) or "No tags"
    return (
        "# Project Settings\n\n"
        f"## {project.name}\n\n"
        f"**Description:** {project.description or 'N/A'}\n"
        f"**Created:** {_fmt_ts(project.created_at)}\n"
        f"**Last Updated:** {_fmt_ts(project.updated_at)}\n\n"
        "## Default Configuration\n\n"
        f"- **Model:** {settings.default_model}\n"
        f"- **Token Limit:** {settings.default_token_limit:,}\n"
        f"- **Temperature:** {_temperature(settings)}\n"
        f"- **Cost per Token:** ${settings.estimated_cost_per_token}\n\n"
        "## Project Tags\n\n"
        f"{tags}\n\n"
        "## Statistics\n\n"
        f"- **Total Prompts:** {stats.total_prompts}\n"
        f"- **Total Executions:** {stats.total_executions}\n"
        f"- **Total Cost:** ${stats.total_cost:.4f}\n"
        f"- **Total Tokens:** {stats.total_tokens_used:,}\n"
    )


# --- CSV ---


def executions_csv(result: ConsolidationResult) -> str:
    """Execution history, one row per execution, every cell quoted."""
    titles = {p.id: p.title for p in result.prompts}
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for entry in result.execution_history:
        writer.writerow(
            [
                titles.get(entry.prompt_id, "Unknown"),
                entry.model,
                entry.executed_at.isoformat(),
                str(entry.tokens_used),
                f"{entry.estimated_cost:.6f}",
                "N/A" if entry.response_time is None else str(entry.response_time),
                entry.notes or "",
            ]
        )
    return buf.getvalue()


# --- ZIP ---


def to_zip(result: ConsolidationResult) -> bytes:
    """Bundle every rendering of the project into one archive."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("README.md", executive_summary(result))
        zf.writestr("FULL_REPORT.md", detailed_report(result))
        zf.writestr("project-data.json", to_json(result))
        for i, prompt in enumerate(result.prompts, 1):
            zf.writestr(f"prompts/{i:03d}-{_file_slug(prompt.title)}.md", prompt_markdown(prompt))
        if result.execution_history:
            zf.writestr("execution-history.csv", executions_csv(result))
        zf.writestr("PROJECT_SETTINGS.md", project_settings_markdown(result))
    return buf.getvalue()


EXPORTERS: dict[str, tuple[Callable[[ConsolidationResult], str | bytes], str]] = {
    "json": (to_json, "application/json"),
    "prompts-only": (prompts_only_json, "application/json"),
    "markdown": (to_markdown, "text/markdown"),
    "readme": (to_readme, "text/markdown"),
    "csv": (executions_csv, "text/csv"),
    "zip": (to_zip, "application/zip"),
}


def render(result: ConsolidationResult, fmt: str) -> tuple[str | bytes, str, str]:
    """Render *result* as *fmt*; returns (body, media type, filename)."""
    if fmt not in EXPORTERS:
        raise ValueError(f"Unknown export format: {fmt}")
    renderer, media_type = EXPORTERS[fmt]
    return renderer(result), media_type, export_filename(result, fmt)
