"""Exception hierarchy shared across trellis modules.

Every failure the engine raises is a ``ValueError`` subclass so callers that
only care about "bad input" can catch one type. Component-specific errors
live next to the code that raises them and derive from ``TrellisError``.
"""

from __future__ import annotations


class TrellisError(ValueError):
    """Base class for all trellis input/generation errors."""


class SchemaError(TrellisError):
    """Raised when a template or import document has the wrong JSON shape."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class TemplateExecutionError(TrellisError):
    """Raised when generation aborts; names the template element and field at fault."""

    def __init__(self, field: str, cause: Exception) -> None:
        self.field = field
        self.cause = cause
        super().__init__(f"{field}: {cause}")


class ImportValidationError(TrellisError):
    """Raised by ``import_project`` when the import document fails validation.

    Carries the complete list of problems so a caller can show them all at once.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        count = len(self.errors)
        noun = "error" if count == 1 else "errors"
        super().__init__(f"import document has {count} validation {noun}: " + "; ".join(self.errors))
