"""CLI for the trellis project generator.

Convention-based: discovers .trellis/ by walking up from cwd; without one,
only built-in templates are available.

Usage:
    trellis init                                        # Initialize .trellis/ in cwd
    trellis templates                                   # List templates
    trellis template-show course_weekly                 # Show one template
    trellis template-validate my_template.json          # Validate a template file
    trellis generate course_weekly --name "Algebra" --start 2026-01-05 --var weeks=10
    trellis import-validate plan.json                   # Validate an import document
    trellis import plan.json --json                     # Import a project
"""

from __future__ import annotations

from pathlib import Path

import click

from trellis import __version__
from trellis.cli_commands import projects, templates
from trellis.core import CONFIG_FILENAME, TEMPLATES_DIRNAME, TRELLIS_DIR_NAME, init_trellis, read_config, write_config


@click.group()
@click.version_option(version=__version__, prog_name="trellis")
def cli() -> None:
    """Trellis: generate project plans from declarative templates."""


@cli.command()
@click.option("--id-prefix", default=None, help="Prefix for generated identifiers")
def init(id_prefix: str | None) -> None:
    """Initialize .trellis/ in the current directory."""
    cwd = Path.cwd()
    trellis_dir, created = init_trellis(cwd)
    if not created:
        click.echo(f"{TRELLIS_DIR_NAME}/ already exists in {cwd}")
        return

    if id_prefix:
        config = read_config(trellis_dir)
        config["id_prefix"] = id_prefix
        write_config(trellis_dir, config)

    click.echo(f"Initialized {TRELLIS_DIR_NAME}/ in {cwd}")
    click.echo(f"  Config: {trellis_dir / CONFIG_FILENAME}")
    click.echo(f"  Templates: {trellis_dir / TEMPLATES_DIRNAME}")
    click.echo("\nNext: trellis templates")


templates.register(cli)
projects.register(cli)


def main() -> None:
    """Entry point for the trellis CLI."""
    cli()


if __name__ == "__main__":
    main()
