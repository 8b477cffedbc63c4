# IMPORT CONSTRAINT: types/ modules must only import from typing, stdlib, and each other.
# Leaf package: never import from engine.py, models.py, or any other trellis module.
"""Typed return-value contracts for trellis models and the CLI."""

from __future__ import annotations

from trellis.types.core import (
    DependencyDict,
    GeneratedProjectDict,
    GenerationSummary,
    ISODate,
    ISOTimestamp,
    PlanNodeDict,
    ProjectDict,
    TrellisConfig,
    WorkItemDict,
)

__all__ = [
    "DependencyDict",
    "GeneratedProjectDict",
    "GenerationSummary",
    "ISODate",
    "ISOTimestamp",
    "PlanNodeDict",
    "ProjectDict",
    "TrellisConfig",
    "WorkItemDict",
]
