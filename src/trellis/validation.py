"""Structural validation for import documents and template schemas.

Pure functions returning the complete list of problems (empty list means
valid) so a user can fix a document in one pass. Messages name the field
path at fault, e.g. ``work_items[2].due_date``.
"""

from __future__ import annotations

from trellis.dependencies import find_cycle_edges
from trellis.models import VALID_DURATION_MODES, VALID_NODE_KINDS, VALID_WORK_ITEM_STATUSES
from trellis.policies import DateError, parse_date
from trellis.schema import DefaultsConfig, ImportSchema, RepeatSpec, SessionPolicy, TemplateSchema

# ---------------------------------------------------------------------------
# Shared checks
# ---------------------------------------------------------------------------


def validate_session_policy(prefix: str, sp: SessionPolicy) -> list[str]:
    """Bounds consistency: all positive, ``min <= max``, ``min <= default <= max``."""
    errors: list[str] = []
    for name in ("min_session_min", "max_session_min", "default_session_min"):
        value = getattr(sp, name)
        if value is not None and value <= 0:
            errors.append(f"{prefix}.{name} must be positive")

    lo = sp.min_session_min if sp.min_session_min and sp.min_session_min > 0 else None
    hi = sp.max_session_min if sp.max_session_min and sp.max_session_min > 0 else None
    default = sp.default_session_min if sp.default_session_min and sp.default_session_min > 0 else None

    if lo is not None and hi is not None and lo > hi:
        errors.append(f"{prefix}: min_session_min ({lo}) must be <= max_session_min ({hi})")
    if default is not None and lo is not None and default < lo:
        errors.append(f"{prefix}: default_session_min ({default}) must be >= min_session_min ({lo})")
    if default is not None and hi is not None and default > hi:
        errors.append(f"{prefix}: default_session_min ({default}) must be <= max_session_min ({hi})")
    return errors


def _validate_defaults(defaults: DefaultsConfig | None) -> list[str]:
    if defaults is None:
        return []
    errors: list[str] = []
    if defaults.duration_mode and defaults.duration_mode not in VALID_DURATION_MODES:
        errors.append(f"defaults.duration_mode: invalid value '{defaults.duration_mode}'")
    if defaults.session_policy is not None:
        errors.extend(validate_session_policy("defaults.session_policy", defaults.session_policy))
    return errors


def _validate_optional_date(field: str, value: str | None) -> list[str]:
    if not value:
        return []
    try:
        parse_date(value, field)
    except DateError as exc:
        return [str(exc)]
    return []


# ---------------------------------------------------------------------------
# Import documents
# ---------------------------------------------------------------------------


def _validate_import_project(schema: ImportSchema) -> list[str]:
    p = schema.project
    errors: list[str] = []
    if not p.short_id:
        errors.append("project.short_id is required")
    if not p.name:
        errors.append("project.name is required")
    if not p.domain:
        errors.append("project.domain is required")

    start = None
    if not p.start_date:
        errors.append("project.start_date is required")
    else:
        try:
            start = parse_date(p.start_date, "project.start_date")
        except DateError as exc:
            errors.append(str(exc))

    if p.target_date:
        try:
            target = parse_date(p.target_date, "project.target_date")
        except DateError as exc:
            errors.append(str(exc))
        else:
            if start is not None and target <= start:
                errors.append(f"project.target_date '{p.target_date}' must be after start_date '{p.start_date}'")
    return errors


def _validate_import_nodes(schema: ImportSchema, node_refs: set[str]) -> list[str]:
    errors: list[str] = []
    for i, n in enumerate(schema.nodes):
        prefix = f"nodes[{i}]"
        # checked before this node is recorded: parents must be declared earlier
        if n.parent_ref == n.ref and n.ref:
            errors.append(f"{prefix}.parent_ref: node '{n.ref}' cannot be its own parent")
        elif n.parent_ref and n.parent_ref not in node_refs:
            errors.append(f"{prefix}.parent_ref: ref '{n.parent_ref}' not found (must appear earlier in nodes list)")

        if not n.ref:
            errors.append(f"{prefix}.ref is required")
        elif n.ref in node_refs:
            errors.append(f"{prefix}.ref: duplicate ref '{n.ref}'")
        else:
            node_refs.add(n.ref)

        if not n.title:
            errors.append(f"{prefix}.title is required")
        if not n.kind:
            errors.append(f"{prefix}.kind is required")
        elif n.kind not in VALID_NODE_KINDS:
            errors.append(f"{prefix}.kind: invalid value '{n.kind}'")

        errors.extend(_validate_optional_date(f"{prefix}.due_date", n.due_date))
        errors.extend(_validate_optional_date(f"{prefix}.not_before", n.not_before))
        errors.extend(_validate_optional_date(f"{prefix}.not_after", n.not_after))
    return errors


def _validate_import_work_items(schema: ImportSchema, node_refs: set[str], item_refs: set[str]) -> list[str]:
    errors: list[str] = []
    for i, wi in enumerate(schema.work_items):
        prefix = f"work_items[{i}]"
        if not wi.ref:
            errors.append(f"{prefix}.ref is required")
        elif wi.ref in item_refs:
            errors.append(f"{prefix}.ref: duplicate ref '{wi.ref}'")
        else:
            item_refs.add(wi.ref)

        if not wi.node_ref:
            errors.append(f"{prefix}.node_ref is required")
        elif wi.node_ref not in node_refs:
            errors.append(f"{prefix}.node_ref: ref '{wi.node_ref}' not found in nodes")

        if not wi.title:
            errors.append(f"{prefix}.title is required")
        if not wi.type:
            errors.append(f"{prefix}.type is required")
        if wi.status and wi.status not in VALID_WORK_ITEM_STATUSES:
            errors.append(f"{prefix}.status: invalid value '{wi.status}'")
        if wi.duration_mode and wi.duration_mode not in VALID_DURATION_MODES:
            errors.append(f"{prefix}.duration_mode: invalid value '{wi.duration_mode}'")

        errors.extend(_validate_optional_date(f"{prefix}.due_date", wi.due_date))
        errors.extend(_validate_optional_date(f"{prefix}.not_before", wi.not_before))
    return errors


def _validate_import_session_policies(schema: ImportSchema) -> list[str]:
    errors = _validate_defaults(schema.defaults)
    for i, wi in enumerate(schema.work_items):
        if wi.session_policy is not None:
            errors.extend(validate_session_policy(f"work_items[{i}].session_policy", wi.session_policy))
    return errors


def _validate_import_dependencies(schema: ImportSchema, item_refs: set[str]) -> list[str]:
    errors: list[str] = []
    for i, d in enumerate(schema.dependencies):
        prefix = f"dependencies[{i}]"
        if not d.predecessor_ref:
            errors.append(f"{prefix}.predecessor_ref is required")
        elif d.predecessor_ref not in item_refs:
            errors.append(f"{prefix}.predecessor_ref: ref '{d.predecessor_ref}' not found in work_items")

        if not d.successor_ref:
            errors.append(f"{prefix}.successor_ref is required")
        elif d.successor_ref not in item_refs:
            errors.append(f"{prefix}.successor_ref: ref '{d.successor_ref}' not found in work_items")

        if d.predecessor_ref and d.predecessor_ref == d.successor_ref:
            errors.append(
                f"{prefix}: self-dependency (predecessor_ref == successor_ref == '{d.predecessor_ref}')"
            )
    return errors


def _validate_import_cycles(schema: ImportSchema) -> list[str]:
    edges = [(d.predecessor_ref, d.successor_ref) for d in schema.dependencies]
    return [
        f"circular dependency detected involving '{node}' and '{neighbor}'"
        for node, neighbor in find_cycle_edges(edges)
    ]


def validate_import_schema(schema: ImportSchema) -> list[str]:
    """Validate an import document. Returns every violation found, in check order.

    Order: project fields and dates, nodes, work items, session policies
    (defaults then per item), dependency refs, then dependency cycles.
    """
    node_refs: set[str] = set()
    item_refs: set[str] = set()
    errors: list[str] = []
    errors.extend(_validate_import_project(schema))
    errors.extend(_validate_import_nodes(schema, node_refs))
    errors.extend(_validate_import_work_items(schema, node_refs, item_refs))
    errors.extend(_validate_import_session_policies(schema))
    errors.extend(_validate_import_dependencies(schema, item_refs))
    errors.extend(_validate_import_cycles(schema))
    return errors


# ---------------------------------------------------------------------------
# Template schemas
# ---------------------------------------------------------------------------


def _validate_template_variables(schema: TemplateSchema) -> list[str]:
    errors: list[str] = []
    seen: set[str] = set()
    for i, v in enumerate(schema.variables):
        prefix = f"variables[{i}]"
        if not v.key:
            errors.append(f"{prefix}.key is required")
        elif v.key in seen:
            errors.append(f"{prefix}.key: duplicate variable '{v.key}'")
        else:
            seen.add(v.key)
        if v.type not in ("int", "string"):
            errors.append(f"{prefix}.type: invalid value '{v.type}'")
        if v.min is not None and v.max is not None and v.min > v.max:
            errors.append(f"{prefix}: min ({v.min}) must be <= max ({v.max})")
        if v.type == "int" and isinstance(v.default, int) and not isinstance(v.default, bool):
            if v.min is not None and v.default < v.min:
                errors.append(f"{prefix}.default: {v.default} below minimum {v.min}")
            if v.max is not None and v.default > v.max:
                errors.append(f"{prefix}.default: {v.default} above maximum {v.max}")
    return errors


def _validate_repeats(prefix: str, schema: TemplateSchema, repeats: tuple[RepeatSpec, ...]) -> list[str]:
    errors: list[str] = []
    declared = {v.key: v.type for v in schema.variables}
    bound_so_far: set[str] = set()
    for j, r in enumerate(repeats):
        path = f"{prefix}.repeat[{j}]" if len(repeats) > 1 else f"{prefix}.repeat"
        if not r.var:
            errors.append(f"{path}.var is required")
        if r.to is None and not r.to_var:
            errors.append(f"{path}: one of 'to' or 'to_var' is required")
        elif r.to is None and r.to_var not in bound_so_far:
            if r.to_var not in declared:
                errors.append(f"{path}.to_var: variable '{r.to_var}' is not declared")
            elif declared[r.to_var] != "int":
                errors.append(f"{path}.to_var: variable '{r.to_var}' must be of type int, not {declared[r.to_var]}")
        bound_so_far.add(r.var)
    return errors


def validate_template_schema(schema: TemplateSchema) -> list[str]:
    """Validate a template schema for structural errors. Empty list means valid."""
    errors: list[str] = []
    if not schema.id:
        errors.append("template id is required")
    if not schema.name:
        errors.append("template name is required")
    if not schema.domain:
        errors.append("template domain is required")
    if not schema.nodes:
        errors.append("at least one node is required")
    if not schema.work_items:
        errors.append("at least one work item is required")

    errors.extend(_validate_template_variables(schema))
    errors.extend(_validate_defaults(schema.defaults))

    node_ids: set[str] = set()
    for i, n in enumerate(schema.nodes):
        prefix = f"nodes[{i}]"
        if not n.id:
            errors.append(f"{prefix}.id is required")
        elif n.id in node_ids:
            errors.append(f"{prefix}.id: duplicate id '{n.id}'")
        else:
            node_ids.add(n.id)
        if not n.title:
            errors.append(f"{prefix}.title is required")
        if not n.kind:
            errors.append(f"{prefix}.kind is required")
        elif n.kind not in VALID_NODE_KINDS:
            errors.append(f"{prefix}.kind: invalid value '{n.kind}'")
        errors.extend(_validate_repeats(prefix, schema, n.repeat))

    for i, w in enumerate(schema.work_items):
        prefix = f"work_items[{i}]"
        if not w.id:
            errors.append(f"{prefix}.id is required")
        if not w.node_id:
            errors.append(f"{prefix}.node_id is required")
        if not w.title:
            errors.append(f"{prefix}.title is required")
        if not w.type:
            errors.append(f"{prefix}.type is required")
        if w.status and w.status not in VALID_WORK_ITEM_STATUSES:
            errors.append(f"{prefix}.status: invalid value '{w.status}'")
        if w.duration_mode and w.duration_mode not in VALID_DURATION_MODES:
            errors.append(f"{prefix}.duration_mode: invalid value '{w.duration_mode}'")
        if w.session_policy is not None:
            errors.extend(validate_session_policy(f"{prefix}.session_policy", w.session_policy))
        errors.extend(_validate_repeats(prefix, schema, w.repeat))

    for i, d in enumerate(schema.dependencies):
        if not d.predecessor:
            errors.append(f"dependencies[{i}].predecessor is required")
        if not d.successor:
            errors.append(f"dependencies[{i}].successor is required")

    return errors
