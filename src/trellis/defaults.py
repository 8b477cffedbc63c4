"""Work-item defaults cascade: item value > schema default > hardcoded constant."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeVar

from trellis.schema import DefaultsConfig, SessionPolicy

T = TypeVar("T")

DEFAULT_DURATION_MODE = "estimate"
DEFAULT_MIN_SESSION_MIN = 15
DEFAULT_MAX_SESSION_MIN = 60
DEFAULT_SESSION_MIN = 30
DEFAULT_SPLITTABLE = True
DEFAULT_PLANNED_MIN = 0
DEFAULT_ESTIMATE_CONFIDENCE = 0.5


@dataclass(frozen=True)
class ItemOverrides:
    """The cascade-participating fields supplied on one work item."""

    duration_mode: str | None = None
    session_policy: SessionPolicy | None = None
    planned_min: int | None = None
    estimate_confidence: float | None = None


@dataclass(frozen=True)
class ResolvedDefaults:
    duration_mode: str
    min_session_min: int
    max_session_min: int
    default_session_min: int
    splittable: bool
    planned_min: int
    estimate_confidence: float


def coalesce(*values: T | None, fallback: T) -> T:
    """Return the first non-None value, or *fallback*."""
    for value in values:
        if value is not None:
            return value
    return fallback


def resolve_work_item_defaults(item: ItemOverrides, defaults: DefaultsConfig | None) -> ResolvedDefaults:
    """Resolve each cascade field independently for one work item."""
    schema = defaults or DefaultsConfig()
    item_sp = item.session_policy or SessionPolicy()
    schema_sp = schema.session_policy or SessionPolicy()
    return ResolvedDefaults(
        duration_mode=coalesce(item.duration_mode, schema.duration_mode, fallback=DEFAULT_DURATION_MODE),
        min_session_min=coalesce(item_sp.min_session_min, schema_sp.min_session_min, fallback=DEFAULT_MIN_SESSION_MIN),
        max_session_min=coalesce(item_sp.max_session_min, schema_sp.max_session_min, fallback=DEFAULT_MAX_SESSION_MIN),
        default_session_min=coalesce(
            item_sp.default_session_min, schema_sp.default_session_min, fallback=DEFAULT_SESSION_MIN
        ),
        splittable=coalesce(item_sp.splittable, schema_sp.splittable, fallback=DEFAULT_SPLITTABLE),
        planned_min=coalesce(item.planned_min, schema.planned_min, fallback=DEFAULT_PLANNED_MIN),
        estimate_confidence=coalesce(
            item.estimate_confidence, schema.estimate_confidence, fallback=DEFAULT_ESTIMATE_CONFIDENCE
        ),
    )


def resolve_logged_min(explicit: int | None, status: str, planned_min: int) -> int:
    """Explicit logged minutes win; a done item with a plan is assumed fully logged."""
    if explicit is not None:
        return explicit
    if status == "done" and planned_min > 0:
        return planned_min
    return 0
