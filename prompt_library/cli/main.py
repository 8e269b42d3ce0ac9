"""Prompt library CLI — library command."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, NoReturn

import click

from prompt_library.cli.client import LibraryClient

EXPORT_FORMATS = ["json", "prompts-only", "markdown", "readme", "csv", "zip"]


def _format_table(rows: list[dict], columns: list[str]) -> str:
    """Simple table formatter."""
    if not rows:
        return "No results."

    def cell(row: dict, column: str) -> str:
        value = row.get(column, "")
        if isinstance(value, list):
            return ", ".join(str(v) for v in value)
        return str(value)

    widths = {c: len(c) for c in columns}
    for row in rows:
        for c in columns:
            widths[c] = max(widths[c], len(cell(row, c)))

    header = "  ".join(c.upper().ljust(widths[c]) for c in columns)
    separator = "  ".join("-" * widths[c] for c in columns)
    lines = [header, separator]
    for row in rows:
        lines.append("  ".join(cell(row, c).ljust(widths[c]) for c in columns))
    return "\n".join(lines)


@click.group()
@click.option("--api", default="http://localhost:8400", envvar="LIBRARY_API", help="API base URL")
@click.option("--format", "output_format", type=click.Choice(["table", "json"]), default="table")
@click.pass_context
def cli(ctx: click.Context, api: str, output_format: str) -> None:
    """Prompt library CLI — manage prompts and projects, consolidate and export."""
    ctx.obj = LibraryClient(base_url=api)
    ctx.meta["output_format"] = output_format


def _output(ctx: click.Context, data: Any, columns: list[str] | None = None) -> None:
    fmt = ctx.meta.get("output_format", "table")
    if fmt == "table" and isinstance(data, list) and columns:
        click.echo(_format_table(data, columns))
    else:
        click.echo(json.dumps(data, indent=2, default=str))


def _fail(e: RuntimeError) -> NoReturn:
    raise click.ClickException(str(e))


# --- Prompt commands ---


@cli.group()
def prompt() -> None:
    """Manage prompts."""


@prompt.command("list")
@click.option("--search", "-q", default=None)
@click.option("--category", default=None)
@click.option("--tag", "tags", multiple=True, help="Repeat to require several tags")
@click.option("--sort", type=click.Choice(["recent", "popular", "favorite"]), default="recent")
@click.pass_context
def prompt_list(
    ctx: click.Context, search: str | None, category: str | None, tags: tuple, sort: str
) -> None:
    """List prompts."""
    client: LibraryClient = ctx.obj
    params: dict[str, Any] = {"sort": sort}
    if search:
        params["q"] = search
    if category:
        params["category"] = category
    if tags:
        params["tags"] = list(tags)
    try:
        data = client.list_prompts(**params)
    except RuntimeError as e:
        _fail(e)
    _output(ctx, data, ["id", "title", "category", "tags", "usageCount"])


@prompt.command("create")
@click.option("--title", required=True)
@click.option("--content", default=None, help="Prompt text; read from stdin when omitted")
@click.option("--category", default="General")
@click.option("--tags", default="")
@click.option("--project", "project_id", default=None, help="Also link the prompt to this project")
@click.pass_context
def prompt_create(
    ctx: click.Context,
    title: str,
    content: str | None,
    category: str,
    tags: str,
    project_id: str | None,
) -> None:
    """Create a prompt."""
    client: LibraryClient = ctx.obj
    if content is None:
        content = click.get_text_stream("stdin").read()
    data = {
        "title": title,
        "content": content,
        "category": category,
        "tags": [t.strip() for t in tags.split(",") if t.strip()],
    }
    try:
        result = client.create_prompt(data)
        if project_id:
            client.add_to_project(project_id, result["id"])
    except RuntimeError as e:
        _fail(e)
    _output(ctx, result)


@prompt.command("show")
@click.argument("prompt_id")
@click.pass_context
def prompt_show(ctx: click.Context, prompt_id: str) -> None:
    """Show prompt details."""
    client: LibraryClient = ctx.obj
    try:
        data = client.get_prompt(prompt_id)
    except RuntimeError as e:
        _fail(e)
    _output(ctx, data)


@prompt.command("delete")
@click.argument("prompt_id")
@click.pass_context
def prompt_delete(ctx: click.Context, prompt_id: str) -> None:
    """Delete a prompt."""
    client: LibraryClient = ctx.obj
    try:
        client.delete_prompt(prompt_id)
    except RuntimeError as e:
        _fail(e)
    click.echo(f"Deleted prompt '{prompt_id}'")


# --- Project commands ---


@cli.group()
def project() -> None:
    """Manage projects."""


@project.command("list")
@click.pass_context
def project_list(ctx: click.Context) -> None:
    """List projects."""
    client: LibraryClient = ctx.obj
    try:
        data = client.list_projects()
    except RuntimeError as e:
        _fail(e)
    rows = [{**p, "prompts": len(p.get("promptIds", []))} for p in data]
    _output(ctx, rows, ["id", "name", "prompts", "description"])


@project.command("create")
@click.argument("name")
@click.option("--description", default="")
@click.pass_context
def project_create(ctx: click.Context, name: str, description: str) -> None:
    """Create a project and make it active."""
    client: LibraryClient = ctx.obj
    try:
        result = client.create_project({"name": name, "description": description})
    except RuntimeError as e:
        _fail(e)
    _output(ctx, result)


@project.command("use")
@click.argument("project_id")
@click.pass_context
def project_use(ctx: click.Context, project_id: str) -> None:
    """Make a project the active one."""
    client: LibraryClient = ctx.obj
    try:
        result = client.set_active_project(project_id)
    except RuntimeError as e:
        _fail(e)
    click.echo(f"Active project: {result.get('name')}")


# --- Consolidation ---


def _resolve_project(client: LibraryClient, project_id: str | None) -> str:
    return project_id or client.active_project()["id"]


@cli.command()
@click.option("--project", "project_id", default=None, help="Defaults to the active project")
@click.pass_context
def consolidate(ctx: click.Context, project_id: str | None) -> None:
    """Print the consolidated statistics of a project."""
    client: LibraryClient = ctx.obj
    try:
        result = client.consolidate(_resolve_project(client, project_id))
    except RuntimeError as e:
        _fail(e)

    if ctx.meta.get("output_format") == "json":
        _output(ctx, result)
        return
    stats = result["statistics"]
    click.echo(f"Project: {result['project']['name']}")
    click.echo(f"  Prompts:    {stats['totalPrompts']}")
    click.echo(f"  Versions:   {stats['totalVersions']}")
    click.echo(f"  Executions: {stats['totalExecutions']}")
    click.echo(f"  Tokens:     {stats['totalTokensUsed']:,}")
    click.echo(f"  Cost:       ${stats['totalCost']:.4f}")
    if stats.get("mostExpensiveModel"):
        click.echo(f"  Most expensive model: {stats['mostExpensiveModel']}")
    for model, count in stats.get("executionsByModel", {}).items():
        click.echo(f"    {model}: {count} executions, ${stats['costByModel'][model]:.4f}")


@cli.command()
@click.argument("fmt", metavar="FORMAT", type=click.Choice(EXPORT_FORMATS))
@click.option("--project", "project_id", default=None, help="Defaults to the active project")
@click.option("--output", "-o", "output", default=None, type=click.Path(dir_okay=False))
@click.pass_context
def export(ctx: click.Context, fmt: str, project_id: str | None, output: str | None) -> None:
    """Export a consolidated project to a file."""
    client: LibraryClient = ctx.obj
    try:
        body, filename = client.export(_resolve_project(client, project_id), fmt)
    except RuntimeError as e:
        _fail(e)
    path = Path(output or filename or f"export.{fmt}")
    path.write_bytes(body)
    click.echo(f"Wrote {path} ({len(body)} bytes)")


if __name__ == "__main__":
    cli()
