"""Output domain objects produced by generation and import.

These are plain mutable dataclasses (domain entities handed to a persistence
layer), unlike the frozen schema dataclasses in ``trellis.schema``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from trellis.types.core import (
    DependencyDict,
    GeneratedProjectDict,
    ISODate,
    ISOTimestamp,
    PlanNodeDict,
    ProjectDict,
    WorkItemDict,
)

VALID_NODE_KINDS: frozenset[str] = frozenset({"week", "module", "book", "stage", "section", "generic"})
VALID_WORK_ITEM_STATUSES: frozenset[str] = frozenset({"todo", "in_progress", "done", "skipped", "archived"})
VALID_DURATION_MODES: frozenset[str] = frozenset({"fixed", "estimate", "derived"})


def _iso(d: date | None) -> ISODate | None:
    return ISODate(d.isoformat()) if d is not None else None


@dataclass
class Project:
    id: str
    name: str
    domain: str
    start_date: date
    short_id: str = ""
    target_date: date | None = None
    status: str = "active"
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> ProjectDict:
        return {
            "id": self.id,
            "short_id": self.short_id,
            "name": self.name,
            "domain": self.domain,
            "start_date": ISODate(self.start_date.isoformat()),
            "target_date": _iso(self.target_date),
            "status": self.status,
            "created_at": ISOTimestamp(self.created_at),
            "updated_at": ISOTimestamp(self.updated_at),
        }


@dataclass
class PlanNode:
    id: str
    project_id: str
    title: str
    kind: str = "generic"
    parent_id: str | None = None
    seq: int = 0
    order_index: int = 0
    due_date: date | None = None
    not_before: date | None = None
    not_after: date | None = None
    planned_min_budget: int | None = None
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> PlanNodeDict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "parent_id": self.parent_id,
            "seq": self.seq,
            "title": self.title,
            "kind": self.kind,
            "order_index": self.order_index,
            "due_date": _iso(self.due_date),
            "not_before": _iso(self.not_before),
            "not_after": _iso(self.not_after),
            "planned_min_budget": self.planned_min_budget,
            "created_at": ISOTimestamp(self.created_at),
            "updated_at": ISOTimestamp(self.updated_at),
        }


@dataclass
class WorkItem:
    id: str
    node_id: str
    title: str
    type: str
    status: str = "todo"
    seq: int = 0
    # Duration
    duration_mode: str = "estimate"
    planned_min: int = 0
    logged_min: int = 0
    duration_source: str = "manual"
    estimate_confidence: float = 0.5
    # Session policy
    min_session_min: int = 15
    max_session_min: int = 60
    default_session_min: int = 30
    splittable: bool = True
    # Scope progress
    units_kind: str = ""
    units_total: int = 0
    units_done: int = 0
    # Constraints
    due_date: date | None = None
    not_before: date | None = None
    not_after: date | None = None
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> WorkItemDict:
        return {
            "id": self.id,
            "node_id": self.node_id,
            "seq": self.seq,
            "title": self.title,
            "type": self.type,
            "status": self.status,
            "duration_mode": self.duration_mode,
            "planned_min": self.planned_min,
            "logged_min": self.logged_min,
            "duration_source": self.duration_source,
            "estimate_confidence": self.estimate_confidence,
            "min_session_min": self.min_session_min,
            "max_session_min": self.max_session_min,
            "default_session_min": self.default_session_min,
            "splittable": self.splittable,
            "units_kind": self.units_kind,
            "units_total": self.units_total,
            "units_done": self.units_done,
            "due_date": _iso(self.due_date),
            "not_before": _iso(self.not_before),
            "not_after": _iso(self.not_after),
            "created_at": ISOTimestamp(self.created_at),
            "updated_at": ISOTimestamp(self.updated_at),
        }


@dataclass(frozen=True)
class Dependency:
    predecessor_work_item_id: str
    successor_work_item_id: str

    def to_dict(self) -> DependencyDict:
        return {
            "predecessor_work_item_id": self.predecessor_work_item_id,
            "successor_work_item_id": self.successor_work_item_id,
        }


@dataclass
class GeneratedProject:
    """A concrete project graph ready for persistence."""

    project: Project
    nodes: list[PlanNode] = field(default_factory=list)
    work_items: list[WorkItem] = field(default_factory=list)
    dependencies: list[Dependency] = field(default_factory=list)

    def to_dict(self) -> GeneratedProjectDict:
        return {
            "project": self.project.to_dict(),
            "nodes": [n.to_dict() for n in self.nodes],
            "work_items": [w.to_dict() for w in self.work_items],
            "dependencies": [d.to_dict() for d in self.dependencies],
            "summary": {
                "nodes": len(self.nodes),
                "work_items": len(self.work_items),
                "dependencies": len(self.dependencies),
            },
        }
