"""Template generation engine.

Turns a ``TemplateSchema`` plus run parameters (project name, start date,
optional due date, variable overrides) into a ``GeneratedProject``.

All run-scoped state (the template-id -> real-id map, the resolved variable
environment, accumulated nodes and work items) lives on a ``GenerationContext``
created per call; nothing is shared between runs. Generation is fail-fast:
the first unresolvable expression, unmatched brace, missing node reference, or
invalid date aborts the run with a ``TemplateExecutionError`` naming the
template element and field.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date

from trellis.defaults import ItemOverrides, resolve_work_item_defaults
from trellis.dependencies import generate_dependency_links, infer_work_item_dependencies
from trellis.errors import TemplateExecutionError, TrellisError
from trellis.expr import ExpressionError, eval_int_field, expand_template
from trellis.models import Dependency, GeneratedProject, PlanNode, Project, WorkItem
from trellis.policies import (
    IdFactory,
    assign_sequential_ids,
    new_id,
    now_iso,
    offset_date,
    parse_date,
    parse_optional_date,
)
from trellis.repeat import iter_repeat_envs
from trellis.schema import Constraints, NodeTemplate, TemplateSchema, WorkItemTemplate
from trellis.variables import resolve_variables

logger = logging.getLogger(__name__)


@dataclass
class GenerationContext:
    """Mutable state for exactly one generation run."""

    schema: TemplateSchema
    start: date
    env: dict[str, int]
    now: str
    id_factory: IdFactory
    id_map: dict[str, str] = field(default_factory=dict)
    # work-item ids only; dependency patterns resolve against this map
    item_ids: dict[str, str] = field(default_factory=dict)
    nodes: list[PlanNode] = field(default_factory=list)
    work_items: list[WorkItem] = field(default_factory=list)

    def mint(self, expanded_id: str) -> str:
        """Mint a real id for *expanded_id*; a repeated expansion overwrites the earlier entry."""
        real_id = self.id_factory()
        if expanded_id in self.id_map:
            logger.debug("Template id '%s' expanded twice; later expansion wins", expanded_id)
        self.id_map[expanded_id] = real_id
        return real_id


def _expand(ctx_path: str, template: str, env: Mapping[str, int]) -> str:
    try:
        return expand_template(template, env)
    except ExpressionError as exc:
        raise TemplateExecutionError(f"{ctx_path} '{template}'", exc) from exc


def _int_field(ctx_path: str, value: str | int, env: Mapping[str, int]) -> int:
    try:
        return eval_int_field(value, env)
    except ExpressionError as exc:
        raise TemplateExecutionError(f"{ctx_path} '{value}'", exc) from exc


def _offset(ctx: GenerationContext, ctx_path: str, value: str | int | None, env: Mapping[str, int]) -> date | None:
    if value is None:
        return None
    days = _int_field(ctx_path, value, env)
    try:
        return offset_date(ctx.start, days)
    except OverflowError as exc:
        raise TemplateExecutionError(f"{ctx_path} '{value}'", exc) from exc


def _generate_nodes(ctx: GenerationContext, project_id: str) -> None:
    for i, nt in enumerate(ctx.schema.nodes):
        path = f"nodes[{i}]"
        try:
            envs = list(iter_repeat_envs(nt.repeat, ctx.env))
        except TrellisError as exc:
            raise TemplateExecutionError(f"{path}.repeat", exc) from exc
        for env in envs:
            ctx.nodes.append(_build_node(ctx, nt, path, env, project_id))


def _build_node(ctx: GenerationContext, nt: NodeTemplate, path: str, env: Mapping[str, int], project_id: str) -> PlanNode:
    expanded_id = _expand(f"{path}.id", nt.id, env)
    real_id = ctx.mint(expanded_id)
    title = _expand(f"{path}.title", nt.title, env)

    parent_id = None
    if nt.parent_id:
        expanded_parent = _expand(f"{path}.parent_id", nt.parent_id, env)
        parent_id = ctx.id_map.get(expanded_parent)
        if parent_id is None:
            logger.warning("%s: parent '%s' not generated yet; node '%s' has no parent", path, expanded_parent, expanded_id)

    order_index = _int_field(f"{path}.order", nt.order, env) if nt.order is not None else 0
    c = nt.constraints or Constraints()
    return PlanNode(
        id=real_id,
        project_id=project_id,
        parent_id=parent_id,
        title=title,
        kind=nt.kind,
        order_index=order_index,
        not_before=_offset(ctx, f"{path}.constraints.not_before_offset_days", c.not_before_offset_days, env),
        not_after=_offset(ctx, f"{path}.constraints.not_after_offset_days", c.not_after_offset_days, env),
        due_date=_offset(ctx, f"{path}.constraints.due_date_offset_days", c.due_date_offset_days, env),
        planned_min_budget=nt.planned_min_budget,
        created_at=ctx.now,
        updated_at=ctx.now,
    )


def _generate_work_items(ctx: GenerationContext) -> None:
    for i, wt in enumerate(ctx.schema.work_items):
        path = f"work_items[{i}]"
        try:
            envs = list(iter_repeat_envs(wt.repeat, ctx.env))
        except TrellisError as exc:
            raise TemplateExecutionError(f"{path}.repeat", exc) from exc
        for env in envs:
            ctx.work_items.append(_build_work_item(ctx, wt, path, env))


def _build_work_item(ctx: GenerationContext, wt: WorkItemTemplate, path: str, env: Mapping[str, int]) -> WorkItem:
    expanded_id = _expand(f"{path}.id", wt.id, env)
    real_id = ctx.mint(expanded_id)
    ctx.item_ids[expanded_id] = real_id
    title = _expand(f"{path}.title", wt.title, env)

    expanded_node = _expand(f"{path}.node_id", wt.node_id, env)
    node_id = ctx.id_map.get(expanded_node)
    if node_id is None:
        msg = f"node '{expanded_node}' not found (expanded from '{wt.node_id}')"
        raise TemplateExecutionError(f"{path}.node_id", LookupError(msg))

    resolved = resolve_work_item_defaults(
        ItemOverrides(
            duration_mode=wt.duration_mode,
            session_policy=wt.session_policy,
            planned_min=wt.planned_min,
            estimate_confidence=wt.estimate_confidence,
        ),
        ctx.schema.defaults,
    )
    c = wt.constraints or Constraints()
    return WorkItem(
        id=real_id,
        node_id=node_id,
        title=title,
        type=wt.type,
        status=wt.status or "todo",
        duration_mode=resolved.duration_mode,
        planned_min=resolved.planned_min,
        logged_min=0,
        duration_source="template",
        estimate_confidence=resolved.estimate_confidence,
        min_session_min=resolved.min_session_min,
        max_session_min=resolved.max_session_min,
        default_session_min=resolved.default_session_min,
        splittable=resolved.splittable,
        units_kind=wt.units.kind if wt.units else "",
        units_total=wt.units.total if wt.units else 0,
        due_date=_offset(ctx, f"{path}.constraints.due_date_offset_days", c.due_date_offset_days, env),
        not_before=_offset(ctx, f"{path}.constraints.not_before_offset_days", c.not_before_offset_days, env),
        not_after=_offset(ctx, f"{path}.constraints.not_after_offset_days", c.not_after_offset_days, env),
        created_at=ctx.now,
        updated_at=ctx.now,
    )


def _resolve_dependencies(ctx: GenerationContext) -> list[Dependency]:
    if not ctx.schema.dependencies:
        return infer_work_item_dependencies(ctx.nodes, ctx.work_items)
    deps: list[Dependency] = []
    for dt in ctx.schema.dependencies:
        deps.extend(generate_dependency_links(dt.predecessor, dt.successor, ctx.item_ids, ctx.env))
    return deps


def execute(
    schema: TemplateSchema,
    project_name: str,
    start_date: str,
    due_date: str | None = None,
    variables: Mapping[str, str | int] | None = None,
    *,
    short_id: str = "",
    id_factory: IdFactory | None = None,
) -> GeneratedProject:
    """Generate a concrete project graph from *schema*.

    Args:
        schema: Parsed template. Never mutated.
        project_name: Name for the generated project.
        start_date: ``YYYY-MM-DD``; anchor for every date offset.
        due_date: Optional ``YYYY-MM-DD`` project target date.
        variables: Caller overrides for declared variables.
        short_id: Optional short project code, upper-cased.
        id_factory: Callable minting real identifiers (defaults to UUID4).

    Raises:
        DateError: invalid start/due date.
        VariableError: invalid or missing variable values.
        TemplateExecutionError: any failure while expanding nodes or work items.
    """
    started = time.monotonic()
    start = parse_date(start_date, "start date")
    target = parse_optional_date(due_date, "due date")
    env = resolve_variables(schema.variables, variables)
    mint = id_factory or new_id
    now = now_iso()

    project = Project(
        id=mint(),
        short_id=short_id.upper(),
        name=project_name,
        domain=schema.domain,
        start_date=start,
        target_date=target,
        status="active",
        created_at=now,
        updated_at=now,
    )

    ctx = GenerationContext(schema=schema, start=start, env=env, now=now, id_factory=mint)
    _generate_nodes(ctx, project.id)
    _generate_work_items(ctx)
    assign_sequential_ids(ctx.nodes, ctx.work_items)
    deps = _resolve_dependencies(ctx)

    result = GeneratedProject(project=project, nodes=ctx.nodes, work_items=ctx.work_items, dependencies=deps)
    logger.info(
        "Generated project from template %s",
        schema.id,
        extra={
            "template": schema.id,
            "counts": {"nodes": len(ctx.nodes), "work_items": len(ctx.work_items), "dependencies": len(deps)},
            "duration_ms": round((time.monotonic() - started) * 1000, 3),
        },
    )
    return result
