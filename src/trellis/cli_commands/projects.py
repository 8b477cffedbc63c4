"""CLI commands for projects: generate, import-validate, import."""

from __future__ import annotations

from pathlib import Path

import click

from trellis.cli_common import echo_json, fail, get_trellis, parse_var_options
from trellis.errors import ImportValidationError, SchemaError, TrellisError
from trellis.models import GeneratedProject
from trellis.registry import TemplateNotFoundError
from trellis.schema import load_import_schema
from trellis.validation import validate_import_schema


def _print_summary(result: GeneratedProject) -> None:
    project = result.project
    label = f"{project.short_id} " if project.short_id else ""
    click.echo(f"Project {label}{project.name} ({project.id})")
    click.echo(f"  Start: {project.start_date.isoformat()}")
    if project.target_date is not None:
        click.echo(f"  Due:   {project.target_date.isoformat()}")
    click.echo(
        f"  {len(result.nodes)} nodes, {len(result.work_items)} work items, {len(result.dependencies)} dependencies"
    )
    items_by_node: dict[str, list[str]] = {}
    for wi in result.work_items:
        items_by_node.setdefault(wi.node_id, []).append(f"{wi.seq:>4}  {wi.title} [{wi.type}, {wi.planned_min}m]")
    for node in result.nodes:
        indent = "    " if node.parent_id else "  "
        click.echo(f"{indent}#{node.seq} {node.title} ({node.kind})")
        for line in items_by_node.get(node.id, []):
            click.echo(f"{indent}  {line}")


@click.command()
@click.argument("template_name")
@click.option("--name", "project_name", required=True, help="Project name")
@click.option("--start", "start_date", required=True, help="Start date (YYYY-MM-DD)")
@click.option("--due", "due_date", default=None, help="Target date (YYYY-MM-DD)")
@click.option("--short-id", default="", help="Short project code")
@click.option("--var", "var", multiple=True, help="Template variable as key=value (repeatable)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def generate(
    template_name: str,
    project_name: str,
    start_date: str,
    due_date: str | None,
    short_id: str,
    var: tuple[str, ...],
    as_json: bool,
) -> None:
    """Generate a project from a template."""
    variables = parse_var_options(var)
    try:
        result = get_trellis().generate(
            template_name,
            project_name,
            start_date,
            due_date,
            variables,
            short_id=short_id,
        )
    except (TemplateNotFoundError, TrellisError) as e:
        fail(str(e), as_json=as_json)

    if as_json:
        echo_json(result.to_dict())
    else:
        _print_summary(result)


@click.command("import-validate")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def import_validate(path: Path, as_json: bool) -> None:
    """Validate an import document and list every problem found."""
    try:
        schema = load_import_schema(path)
    except (SchemaError, OSError) as e:
        fail(str(e), as_json=as_json)

    errors = validate_import_schema(schema)
    if errors:
        fail(f"{path.name}: {len(errors)} validation error(s)", as_json=as_json, details=errors)
    if as_json:
        echo_json({"valid": True, "nodes": len(schema.nodes), "work_items": len(schema.work_items)})
    else:
        click.echo(f"OK: {len(schema.nodes)} nodes, {len(schema.work_items)} work items")


@click.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def import_cmd(path: Path, as_json: bool) -> None:
    """Import a project from a hand-authored JSON document."""
    try:
        result = get_trellis().import_file(path)
    except ImportValidationError as e:
        fail(f"{path.name}: {len(e.errors)} validation error(s)", as_json=as_json, details=e.errors)
    except (TrellisError, OSError) as e:
        fail(str(e), as_json=as_json)

    if as_json:
        echo_json(result.to_dict())
    else:
        _print_summary(result)


def register(cli: click.Group) -> None:
    """Register project commands with the CLI group."""
    cli.add_command(generate)
    cli.add_command(import_validate)
    cli.add_command(import_cmd)
