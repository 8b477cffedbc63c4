"""CLI commands for templates: templates, template-show, template-validate."""

from __future__ import annotations

import dataclasses
from pathlib import Path

import click

from trellis.cli_common import echo_json, fail, get_trellis
from trellis.errors import SchemaError
from trellis.registry import TemplateNotFoundError
from trellis.schema import load_template_schema
from trellis.validation import validate_template_schema


@click.command("templates")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_templates(as_json: bool) -> None:
    """List available templates."""
    entries = get_trellis().list_templates()
    if as_json:
        echo_json(
            [
                {
                    "index": e.index,
                    "id": e.schema.id,
                    "name": e.schema.name,
                    "domain": e.schema.domain,
                    "version": e.schema.version,
                    "source": e.source,
                }
                for e in entries
            ]
        )
        return
    for e in entries:
        version = f" v{e.schema.version}" if e.schema.version else ""
        click.echo(f"{e.index:>3}  {e.schema.id:<20} {e.schema.name}{version} [{e.schema.domain}]")
    click.echo(f"\n{len(entries)} templates")


@click.command("template-show")
@click.argument("name")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def template_show(name: str, as_json: bool) -> None:
    """Show a template by id, name, file name, or list index."""
    try:
        entry = get_trellis().get_template(name)
    except TemplateNotFoundError as e:
        fail(str(e), as_json=as_json)

    schema = entry.schema
    if as_json:
        echo_json({"index": entry.index, "source": entry.source, "template": dataclasses.asdict(schema)})
        return

    click.echo(f"{schema.name} ({schema.id})")
    click.echo(f"  Domain:  {schema.domain}")
    if schema.version:
        click.echo(f"  Version: {schema.version}")
    if schema.description:
        click.echo(f"  {schema.description}")
    if schema.variables:
        click.echo("  Variables:")
        for var in schema.variables:
            parts = [var.type]
            if var.required:
                parts.append("required")
            if var.default is not None:
                parts.append(f"default={var.default}")
            if var.min is not None:
                parts.append(f"min={var.min}")
            if var.max is not None:
                parts.append(f"max={var.max}")
            click.echo(f"    {var.key}: {', '.join(parts)}")
    click.echo(f"  Nodes: {len(schema.nodes)}  Work items: {len(schema.work_items)}  Dependencies: {len(schema.dependencies)}")


@click.command("template-validate")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def template_validate(path: Path, as_json: bool) -> None:
    """Validate a template JSON file."""
    try:
        schema = load_template_schema(path)
    except (SchemaError, OSError) as e:
        fail(str(e), as_json=as_json)

    errors = validate_template_schema(schema)
    if errors:
        fail(f"{path.name}: {len(errors)} validation error(s)", as_json=as_json, details=errors)
    if as_json:
        echo_json({"valid": True, "id": schema.id})
    else:
        click.echo(f"OK: {schema.id} is valid")


def register(cli: click.Group) -> None:
    """Register template commands with the CLI group."""
    cli.add_command(list_templates)
    cli.add_command(template_show)
    cli.add_command(template_validate)
