"""Template and import document schemas -- parsing and loading.

Both document shapes are parsed from JSON-compatible dicts into frozen
dataclasses. Parsing only checks *shape* (a list where a list belongs, an
integer where an integer belongs); semantic checks such as duplicate refs or
dependency cycles belong to ``trellis.validation`` so they can be reported
all at once.

Optional fields use ``None`` for "not supplied". An explicit JSON ``null``
collapses to the same state.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from trellis.errors import SchemaError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Shared pieces
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SessionPolicy:
    """Session bounds for a work item; every field is optional."""

    min_session_min: int | None = None
    max_session_min: int | None = None
    default_session_min: int | None = None
    splittable: bool | None = None


@dataclass(frozen=True)
class DefaultsConfig:
    """Schema-level defaults that cascade onto work items."""

    duration_mode: str | None = None
    session_policy: SessionPolicy | None = None
    planned_min: int | None = None
    estimate_confidence: float | None = None
    buffer_pct: float | None = None


@dataclass(frozen=True)
class Units:
    kind: str
    total: int


# ---------------------------------------------------------------------------
# Template schema
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VariableDef:
    key: str
    type: str = "int"
    required: bool = False
    default: Any = None
    min: int | None = None
    max: int | None = None


@dataclass(frozen=True)
class RepeatSpec:
    """One loop level: ``var`` runs from ``start`` to ``to`` (or the value of ``to_var``), inclusive."""

    var: str
    start: int = 1
    to: int | None = None
    to_var: str | None = None


@dataclass(frozen=True)
class Constraints:
    """Date-offset expressions, in days from the project start date."""

    not_before_offset_days: str | int | None = None
    not_after_offset_days: str | int | None = None
    due_date_offset_days: str | int | None = None


@dataclass(frozen=True)
class NodeTemplate:
    id: str
    title: str
    kind: str
    parent_id: str | None = None
    order: str | int | None = None
    repeat: tuple[RepeatSpec, ...] = ()
    constraints: Constraints | None = None
    planned_min_budget: int | None = None


@dataclass(frozen=True)
class WorkItemTemplate:
    id: str
    node_id: str
    title: str
    type: str
    status: str | None = None
    duration_mode: str | None = None
    planned_min: int | None = None
    estimate_confidence: float | None = None
    session_policy: SessionPolicy | None = None
    units: Units | None = None
    constraints: Constraints | None = None
    repeat: tuple[RepeatSpec, ...] = ()


@dataclass(frozen=True)
class DependencyTemplate:
    """Predecessor/successor identifier patterns, e.g. ``w{i}_read`` -> ``w{i}_quiz``."""

    predecessor: str
    successor: str


@dataclass(frozen=True)
class ProjectSettings:
    target_date_mode: str = "optional"
    status: str = "active"


@dataclass(frozen=True)
class GenerationSettings:
    mode: str = "upfront"
    anchor: str = "project_start_date"


@dataclass(frozen=True)
class ValidationSettings:
    require_unique_ids: bool = False
    reject_circular_dependencies: bool = False
    enforce_session_bounds: bool = False


@dataclass(frozen=True)
class TemplateSchema:
    id: str
    name: str
    domain: str
    version: str = ""
    description: str = ""
    variables: tuple[VariableDef, ...] = ()
    defaults: DefaultsConfig | None = None
    nodes: tuple[NodeTemplate, ...] = ()
    work_items: tuple[WorkItemTemplate, ...] = ()
    dependencies: tuple[DependencyTemplate, ...] = ()
    project: ProjectSettings | None = None
    generation: GenerationSettings | None = None
    validation: ValidationSettings | None = None


# ---------------------------------------------------------------------------
# Import document
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ImportProject:
    short_id: str
    name: str
    domain: str
    start_date: str
    target_date: str | None = None


@dataclass(frozen=True)
class ImportNode:
    ref: str
    title: str
    kind: str
    parent_ref: str | None = None
    order: int = 0
    due_date: str | None = None
    not_before: str | None = None
    not_after: str | None = None
    planned_min_budget: int | None = None


@dataclass(frozen=True)
class ImportWorkItem:
    ref: str
    node_ref: str
    title: str
    type: str
    status: str | None = None
    duration_mode: str | None = None
    planned_min: int | None = None
    logged_min: int | None = None
    estimate_confidence: float | None = None
    session_policy: SessionPolicy | None = None
    units: Units | None = None
    due_date: str | None = None
    not_before: str | None = None


@dataclass(frozen=True)
class ImportDependency:
    predecessor_ref: str
    successor_ref: str


@dataclass(frozen=True)
class ImportSchema:
    project: ImportProject
    defaults: DefaultsConfig | None = None
    nodes: tuple[ImportNode, ...] = ()
    work_items: tuple[ImportWorkItem, ...] = ()
    dependencies: tuple[ImportDependency, ...] = ()


# ---------------------------------------------------------------------------
# Field readers
# ---------------------------------------------------------------------------


def _require_object(raw: Any, path: str) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise SchemaError(path, f"must be an object, got {type(raw).__name__}")
    return raw


def _str(raw: dict[str, Any], key: str, path: str, default: str = "") -> str:
    value = raw.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise SchemaError(f"{path}.{key}", f"must be a string, got {type(value).__name__}")
    return value


def _opt_str(raw: dict[str, Any], key: str, path: str) -> str | None:
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise SchemaError(f"{path}.{key}", f"must be a string, got {type(value).__name__}")
    return value


def _opt_int(raw: dict[str, Any], key: str, path: str) -> int | None:
    value = raw.get(key)
    if value is None:
        return None
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise SchemaError(f"{path}.{key}", f"must be an integer, got {type(value).__name__}")
    return value


def _opt_float(raw: dict[str, Any], key: str, path: str) -> float | None:
    value = raw.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SchemaError(f"{path}.{key}", f"must be a number, got {type(value).__name__}")
    return float(value)


def _opt_bool(raw: dict[str, Any], key: str, path: str) -> bool | None:
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise SchemaError(f"{path}.{key}", f"must be a boolean, got {type(value).__name__}")
    return value


def _opt_expr(raw: dict[str, Any], key: str, path: str) -> str | int | None:
    """An order/offset field: integer literal or expression string."""
    value = raw.get(key)
    if value is None or value == "":
        return None
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise SchemaError(f"{path}.{key}", f"must be an integer or expression string, got {type(value).__name__}")
    return value


def _list(raw: dict[str, Any], key: str, path: str) -> list[Any]:
    value = raw.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise SchemaError(f"{path}.{key}", f"must be a list, got {type(value).__name__}")
    return value


# ---------------------------------------------------------------------------
# Element parsers
# ---------------------------------------------------------------------------


def parse_session_policy(raw: Any, path: str) -> SessionPolicy | None:
    if raw is None:
        return None
    data = _require_object(raw, path)
    return SessionPolicy(
        min_session_min=_opt_int(data, "min_session_min", path),
        max_session_min=_opt_int(data, "max_session_min", path),
        default_session_min=_opt_int(data, "default_session_min", path),
        splittable=_opt_bool(data, "splittable", path),
    )


def parse_defaults(raw: Any, path: str = "defaults") -> DefaultsConfig | None:
    if raw is None:
        return None
    data = _require_object(raw, path)
    return DefaultsConfig(
        duration_mode=_opt_str(data, "duration_mode", path) or None,
        session_policy=parse_session_policy(data.get("session_policy"), f"{path}.session_policy"),
        planned_min=_opt_int(data, "planned_min", path),
        estimate_confidence=_opt_float(data, "estimate_confidence", path),
        buffer_pct=_opt_float(data, "buffer_pct", path),
    )


def _parse_units(raw: Any, path: str) -> Units | None:
    if raw is None:
        return None
    data = _require_object(raw, path)
    return Units(kind=_str(data, "kind", path), total=_opt_int(data, "total", path) or 0)


def _parse_constraints(raw: Any, path: str) -> Constraints | None:
    if raw is None:
        return None
    data = _require_object(raw, path)
    return Constraints(
        not_before_offset_days=_opt_expr(data, "not_before_offset_days", path),
        not_after_offset_days=_opt_expr(data, "not_after_offset_days", path),
        due_date_offset_days=_opt_expr(data, "due_date_offset_days", path),
    )


def _parse_repeat_level(raw: Any, path: str) -> RepeatSpec:
    data = _require_object(raw, path)
    start = _opt_int(data, "from", path)
    return RepeatSpec(
        var=_str(data, "var", path),
        start=1 if start is None else start,
        to=_opt_int(data, "to", path),
        to_var=_opt_str(data, "to_var", path) or None,
    )


def parse_repeats(raw: Any, path: str) -> tuple[RepeatSpec, ...]:
    """Parse a ``repeat`` field: absent, a single level object, or a list of levels."""
    if raw is None:
        return ()
    if isinstance(raw, list):
        return tuple(_parse_repeat_level(level, f"{path}[{i}]") for i, level in enumerate(raw))
    return (_parse_repeat_level(raw, path),)


def _parse_variable(raw: Any, path: str) -> VariableDef:
    data = _require_object(raw, path)
    return VariableDef(
        key=_str(data, "key", path),
        type=_str(data, "type", path, default="int"),
        required=bool(_opt_bool(data, "required", path)),
        default=data.get("default"),
        min=_opt_int(data, "min", path),
        max=_opt_int(data, "max", path),
    )


def _parse_node_template(raw: Any, path: str) -> NodeTemplate:
    data = _require_object(raw, path)
    budgets = data.get("budgets")
    budget = None
    if budgets is not None:
        budget = _opt_int(_require_object(budgets, f"{path}.budgets"), "planned_min_budget", f"{path}.budgets")
    return NodeTemplate(
        id=_str(data, "id", path),
        title=_str(data, "title", path),
        kind=_str(data, "kind", path),
        parent_id=_opt_str(data, "parent_id", path) or None,
        order=_opt_expr(data, "order", path),
        repeat=parse_repeats(data.get("repeat"), f"{path}.repeat"),
        constraints=_parse_constraints(data.get("constraints"), f"{path}.constraints"),
        planned_min_budget=budget,
    )


def _parse_work_item_template(raw: Any, path: str) -> WorkItemTemplate:
    data = _require_object(raw, path)
    return WorkItemTemplate(
        id=_str(data, "id", path),
        node_id=_str(data, "node_id", path),
        title=_str(data, "title", path),
        type=_str(data, "type", path),
        status=_opt_str(data, "status", path) or None,
        duration_mode=_opt_str(data, "duration_mode", path) or None,
        planned_min=_opt_int(data, "planned_min", path),
        estimate_confidence=_opt_float(data, "estimate_confidence", path),
        session_policy=parse_session_policy(data.get("session_policy"), f"{path}.session_policy"),
        units=_parse_units(data.get("units"), f"{path}.units"),
        constraints=_parse_constraints(data.get("constraints"), f"{path}.constraints"),
        repeat=parse_repeats(data.get("repeat"), f"{path}.repeat"),
    )


def parse_template_schema(raw: Any) -> TemplateSchema:
    """Parse a template document from a JSON-compatible dict.

    Raises:
        SchemaError: If any element has the wrong JSON type.
    """
    data = _require_object(raw, "template")

    project = None
    if data.get("project") is not None:
        p = _require_object(data["project"], "project")
        project = ProjectSettings(
            target_date_mode=_str(p, "target_date_mode", "project", default="optional"),
            status=_str(p, "status", "project", default="active"),
        )
    generation = None
    if data.get("generation") is not None:
        g = _require_object(data["generation"], "generation")
        generation = GenerationSettings(
            mode=_str(g, "mode", "generation", default="upfront"),
            anchor=_str(g, "anchor", "generation", default="project_start_date"),
        )
    validation = None
    if data.get("validation") is not None:
        v = _require_object(data["validation"], "validation")
        validation = ValidationSettings(
            require_unique_ids=bool(_opt_bool(v, "require_unique_ids", "validation")),
            reject_circular_dependencies=bool(_opt_bool(v, "reject_circular_dependencies", "validation")),
            enforce_session_bounds=bool(_opt_bool(v, "enforce_session_bounds", "validation")),
        )

    dependencies = []
    for i, dep in enumerate(_list(data, "dependencies", "template")):
        path = f"dependencies[{i}]"
        d = _require_object(dep, path)
        dependencies.append(DependencyTemplate(predecessor=_str(d, "predecessor", path), successor=_str(d, "successor", path)))

    schema = TemplateSchema(
        id=_str(data, "id", "template"),
        name=_str(data, "name", "template"),
        domain=_str(data, "domain", "template"),
        version=_str(data, "version", "template"),
        description=_str(data, "description", "template"),
        variables=tuple(_parse_variable(v, f"variables[{i}]") for i, v in enumerate(_list(data, "variables", "template"))),
        defaults=parse_defaults(data.get("defaults")),
        nodes=tuple(_parse_node_template(n, f"nodes[{i}]") for i, n in enumerate(_list(data, "nodes", "template"))),
        work_items=tuple(
            _parse_work_item_template(w, f"work_items[{i}]") for i, w in enumerate(_list(data, "work_items", "template"))
        ),
        dependencies=tuple(dependencies),
        project=project,
        generation=generation,
        validation=validation,
    )
    logger.debug(
        "Parsed template %s: %d nodes, %d work items, %d dependencies",
        schema.id,
        len(schema.nodes),
        len(schema.work_items),
        len(schema.dependencies),
    )
    return schema


def _parse_import_node(raw: Any, path: str) -> ImportNode:
    data = _require_object(raw, path)
    return ImportNode(
        ref=_str(data, "ref", path),
        title=_str(data, "title", path),
        kind=_str(data, "kind", path),
        parent_ref=_opt_str(data, "parent_ref", path) or None,
        order=_opt_int(data, "order", path) or 0,
        due_date=_opt_str(data, "due_date", path) or None,
        not_before=_opt_str(data, "not_before", path) or None,
        not_after=_opt_str(data, "not_after", path) or None,
        planned_min_budget=_opt_int(data, "planned_min_budget", path),
    )


def _parse_import_work_item(raw: Any, path: str) -> ImportWorkItem:
    data = _require_object(raw, path)
    return ImportWorkItem(
        ref=_str(data, "ref", path),
        node_ref=_str(data, "node_ref", path),
        title=_str(data, "title", path),
        type=_str(data, "type", path),
        status=_opt_str(data, "status", path) or None,
        duration_mode=_opt_str(data, "duration_mode", path) or None,
        planned_min=_opt_int(data, "planned_min", path),
        logged_min=_opt_int(data, "logged_min", path),
        estimate_confidence=_opt_float(data, "estimate_confidence", path),
        session_policy=parse_session_policy(data.get("session_policy"), f"{path}.session_policy"),
        units=_parse_units(data.get("units"), f"{path}.units"),
        due_date=_opt_str(data, "due_date", path) or None,
        not_before=_opt_str(data, "not_before", path) or None,
    )


def parse_import_schema(raw: Any) -> ImportSchema:
    """Parse an import document from a JSON-compatible dict.

    Missing string fields parse as ``""`` so that ``validate_import_schema``
    can report every missing field in one pass.

    Raises:
        SchemaError: If any element has the wrong JSON type.
    """
    data = _require_object(raw, "import")
    p = _require_object(data.get("project") or {}, "project")
    project = ImportProject(
        short_id=_str(p, "short_id", "project"),
        name=_str(p, "name", "project"),
        domain=_str(p, "domain", "project"),
        start_date=_str(p, "start_date", "project"),
        target_date=_opt_str(p, "target_date", "project") or None,
    )
    dependencies = []
    for i, dep in enumerate(_list(data, "dependencies", "import")):
        path = f"dependencies[{i}]"
        d = _require_object(dep, path)
        dependencies.append(
            ImportDependency(predecessor_ref=_str(d, "predecessor_ref", path), successor_ref=_str(d, "successor_ref", path))
        )
    return ImportSchema(
        project=project,
        defaults=parse_defaults(data.get("defaults")),
        nodes=tuple(_parse_import_node(n, f"nodes[{i}]") for i, n in enumerate(_list(data, "nodes", "import"))),
        work_items=tuple(
            _parse_import_work_item(w, f"work_items[{i}]") for i, w in enumerate(_list(data, "work_items", "import"))
        ),
        dependencies=tuple(dependencies),
    )


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SchemaError(str(path), f"invalid JSON: {exc}") from exc


def load_template_schema(path: Path) -> TemplateSchema:
    """Read and parse a template JSON file. OSError propagates to the caller."""
    return parse_template_schema(_read_json(path))


def load_import_schema(path: Path) -> ImportSchema:
    """Read and parse an import JSON file. OSError propagates to the caller."""
    return parse_import_schema(_read_json(path))
