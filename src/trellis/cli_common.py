"""Shared CLI helpers.

Provides ``get_trellis()`` and output helpers so that ``cli.py`` and the
``cli_commands/*.py`` modules can use them without circular imports.
"""

from __future__ import annotations

import json as json_mod
import sys
from typing import Any, NoReturn

import click

from trellis.core import Trellis, find_trellis_root
from trellis.logging import setup_logging


def get_trellis() -> Trellis:
    """Discover .trellis/ (if any), enable file logging there, and return a Trellis."""
    try:
        trellis_dir = find_trellis_root()
    except FileNotFoundError:
        return Trellis()
    setup_logging(trellis_dir)
    return Trellis(trellis_dir)


def echo_json(data: Any) -> None:
    click.echo(json_mod.dumps(data, indent=2, default=str))


def fail(message: str, *, as_json: bool = False, details: list[str] | None = None) -> NoReturn:
    """Report an error and exit 1. JSON mode writes to stdout, text mode to stderr."""
    if as_json:
        payload: dict[str, Any] = {"error": message}
        if details:
            payload["errors"] = details
        click.echo(json_mod.dumps(payload))
    else:
        click.echo(f"Error: {message}", err=True)
        for line in details or []:
            click.echo(f"  - {line}", err=True)
    sys.exit(1)


def parse_var_options(pairs: tuple[str, ...]) -> dict[str, str]:
    """Parse repeated ``--var key=value`` options.

    Raises:
        click.BadParameter: if an entry has no ``=`` or an empty key.
    """
    result: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise click.BadParameter(f"{pair} (expected key=value)", param_hint="--var")
        result[key.strip()] = value.strip()
    return result
