"""Foundational TypedDicts for dataclass to_dict() returns."""

from __future__ import annotations

from typing import NewType, TypedDict

ISODate = NewType("ISODate", str)
ISOTimestamp = NewType("ISOTimestamp", str)


class TrellisConfig(TypedDict, total=False):
    """Shape of .trellis/config.json."""

    version: int
    template_dirs: list[str]
    id_prefix: str


class ProjectDict(TypedDict):
    id: str
    short_id: str
    name: str
    domain: str
    start_date: ISODate
    target_date: ISODate | None
    status: str
    created_at: ISOTimestamp
    updated_at: ISOTimestamp


class PlanNodeDict(TypedDict):
    id: str
    project_id: str
    parent_id: str | None
    seq: int
    title: str
    kind: str
    order_index: int
    due_date: ISODate | None
    not_before: ISODate | None
    not_after: ISODate | None
    planned_min_budget: int | None
    created_at: ISOTimestamp
    updated_at: ISOTimestamp


class WorkItemDict(TypedDict):
    id: str
    node_id: str
    seq: int
    title: str
    type: str
    status: str
    duration_mode: str
    planned_min: int
    logged_min: int
    duration_source: str
    estimate_confidence: float
    min_session_min: int
    max_session_min: int
    default_session_min: int
    splittable: bool
    units_kind: str
    units_total: int
    units_done: int
    due_date: ISODate | None
    not_before: ISODate | None
    not_after: ISODate | None
    created_at: ISOTimestamp
    updated_at: ISOTimestamp


class DependencyDict(TypedDict):
    predecessor_work_item_id: str
    successor_work_item_id: str


class GenerationSummary(TypedDict):
    nodes: int
    work_items: int
    dependencies: int


class GeneratedProjectDict(TypedDict):
    project: ProjectDict
    nodes: list[PlanNodeDict]
    work_items: list[WorkItemDict]
    dependencies: list[DependencyDict]
    summary: GenerationSummary
