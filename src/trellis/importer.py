"""Import converter: turn a hand-authored import document into a GeneratedProject.

Import documents are fully concrete (no repeats, no expressions); ``ref``
fields stand in for identifiers. ``import_project`` validates first
(fail-slow) and only then converts (fail-fast).
"""

from __future__ import annotations

import logging
import time

from trellis.defaults import ItemOverrides, resolve_logged_min, resolve_work_item_defaults
from trellis.dependencies import infer_work_item_dependencies, resolve_ref_dependencies
from trellis.errors import ImportValidationError
from trellis.models import GeneratedProject, PlanNode, Project, WorkItem
from trellis.policies import IdFactory, assign_sequential_ids, new_id, now_iso, parse_date, parse_optional_date
from trellis.schema import ImportSchema
from trellis.validation import validate_import_schema

logger = logging.getLogger(__name__)


def convert(schema: ImportSchema, *, id_factory: IdFactory | None = None) -> GeneratedProject:
    """Convert an import document without validating it.

    Callers normally go through ``import_project``. Invalid dates raise
    ``DateError`` naming the field path; unknown refs raise ``KeyError`` or
    ``DependencyRefError``.
    """
    started = time.monotonic()
    mint = id_factory or new_id
    now = now_iso()
    p = schema.project

    project = Project(
        id=mint(),
        short_id=p.short_id.upper(),
        name=p.name,
        domain=p.domain,
        start_date=parse_date(p.start_date, "project.start_date"),
        target_date=parse_optional_date(p.target_date, "project.target_date"),
        status="active",
        created_at=now,
        updated_at=now,
    )

    node_ids: dict[str, str] = {}
    nodes: list[PlanNode] = []
    for i, n in enumerate(schema.nodes):
        prefix = f"nodes[{i}]"
        parent_id = node_ids[n.parent_ref] if n.parent_ref else None
        node_id = mint()
        node_ids[n.ref] = node_id
        nodes.append(
            PlanNode(
                id=node_id,
                project_id=project.id,
                parent_id=parent_id,
                title=n.title,
                kind=n.kind or "generic",
                order_index=n.order,
                due_date=parse_optional_date(n.due_date, f"{prefix}.due_date"),
                not_before=parse_optional_date(n.not_before, f"{prefix}.not_before"),
                not_after=parse_optional_date(n.not_after, f"{prefix}.not_after"),
                planned_min_budget=n.planned_min_budget,
                created_at=now,
                updated_at=now,
            )
        )

    item_ids: dict[str, str] = {}
    work_items: list[WorkItem] = []
    for i, w in enumerate(schema.work_items):
        prefix = f"work_items[{i}]"
        item_id = mint()
        item_ids[w.ref] = item_id
        resolved = resolve_work_item_defaults(
            ItemOverrides(
                duration_mode=w.duration_mode,
                session_policy=w.session_policy,
                planned_min=w.planned_min,
                estimate_confidence=w.estimate_confidence,
            ),
            schema.defaults,
        )
        status = w.status or "todo"
        work_items.append(
            WorkItem(
                id=item_id,
                node_id=node_ids[w.node_ref],
                title=w.title,
                type=w.type,
                status=status,
                duration_mode=resolved.duration_mode,
                planned_min=resolved.planned_min,
                logged_min=resolve_logged_min(w.logged_min, status, resolved.planned_min),
                duration_source="manual",
                estimate_confidence=resolved.estimate_confidence,
                min_session_min=resolved.min_session_min,
                max_session_min=resolved.max_session_min,
                default_session_min=resolved.default_session_min,
                splittable=resolved.splittable,
                units_kind=w.units.kind if w.units else "",
                units_total=w.units.total if w.units else 0,
                due_date=parse_optional_date(w.due_date, f"{prefix}.due_date"),
                not_before=parse_optional_date(w.not_before, f"{prefix}.not_before"),
                created_at=now,
                updated_at=now,
            )
        )

    assign_sequential_ids(nodes, work_items)

    if schema.dependencies:
        deps = resolve_ref_dependencies(
            [(d.predecessor_ref, d.successor_ref) for d in schema.dependencies],
            item_ids,
        )
    else:
        deps = infer_work_item_dependencies(nodes, work_items)

    logger.info(
        "Imported project %s",
        project.short_id or project.name,
        extra={
            "counts": {"nodes": len(nodes), "work_items": len(work_items), "dependencies": len(deps)},
            "duration_ms": round((time.monotonic() - started) * 1000, 3),
        },
    )
    return GeneratedProject(project=project, nodes=nodes, work_items=work_items, dependencies=deps)


def import_project(schema: ImportSchema, *, id_factory: IdFactory | None = None) -> GeneratedProject:
    """Validate then convert an import document.

    Raises:
        ImportValidationError: carrying every validation problem found.
    """
    errors = validate_import_schema(schema)
    if errors:
        logger.warning("Import rejected with %d validation error(s)", len(errors), extra={"error": errors[0]})
        raise ImportValidationError(errors)
    return convert(schema, id_factory=id_factory)
