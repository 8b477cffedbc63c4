"""Variable resolution: declared defaults merged with caller overrides."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from trellis.errors import TrellisError
from trellis.schema import VariableDef

logger = logging.getLogger(__name__)


class VariableError(TrellisError):
    """Raised when a variable value is missing, malformed, or out of bounds."""

    def __init__(self, key: str, message: str) -> None:
        self.key = key
        super().__init__(message)


def _coerce_int(key: str, value: str | int) -> int:
    if isinstance(value, bool):
        raise VariableError(key, f"variable '{key}': expected integer, got '{value}'")
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        raise VariableError(key, f"variable '{key}': expected integer, got '{value}'") from None


def _default_int(var: VariableDef) -> int | None:
    """Integer form of a declared default, or None for non-integer defaults."""
    default = var.default
    if default is None or isinstance(default, bool):
        return None
    if isinstance(default, int):
        return default
    if isinstance(default, float) and default.is_integer():
        return int(default)
    logger.debug("Variable '%s' has non-integer default %r; not added to the environment", var.key, default)
    return None


def resolve_variables(
    definitions: Sequence[VariableDef],
    overrides: Mapping[str, str | int] | None = None,
) -> dict[str, int]:
    """Build the flat ``name -> int`` environment for one generation run.

    For each declared variable: start from its default, replace with the
    caller's override if one is given, then enforce ``min``/``max`` and
    required-ness.

    Raises:
        VariableError: on a non-integer override, a bound violation, or a
            required variable with no value.
    """
    overrides = overrides or {}
    env: dict[str, int] = {}
    declared: set[str] = set()

    for var in definitions:
        declared.add(var.key)
        if var.type == "string":
            # only integers take part in expressions
            continue
        value = _default_int(var)
        if var.key in overrides:
            value = _coerce_int(var.key, overrides[var.key])

        if value is None:
            if var.required:
                raise VariableError(var.key, f"required variable '{var.key}' not provided")
            continue

        if var.min is not None and value < var.min:
            raise VariableError(var.key, f"variable '{var.key}': value {value} below minimum {var.min}")
        if var.max is not None and value > var.max:
            raise VariableError(var.key, f"variable '{var.key}': value {value} above maximum {var.max}")
        env[var.key] = value

    unknown = sorted(set(overrides) - declared)
    if unknown:
        logger.warning("Ignoring overrides for undeclared variables: %s", ", ".join(unknown))
    return env
