"""Dependency resolution -- explicit patterns, ref links, linear inference, cycles.

Template path: each dependency template is a pair of identifier patterns
(``w{i}_read`` -> ``w{i}_quiz``). Free loop variables referenced by either
pattern are enumerated over ``1..value`` of the same-named run variable, both
patterns are expanded, and a link is emitted only when both sides name a
generated work item. Unresolvable pairs are dropped.

Import path: dependencies name work-item refs directly; a missing ref is an
error.

Without any declared dependencies both paths fall back to a single linear
chain through all work items ordered by (node order, node position, item
position).
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass

from trellis.errors import TrellisError
from trellis.expr import ExpressionError, expand_template, extract_pattern_vars
from trellis.models import Dependency, PlanNode, WorkItem

logger = logging.getLogger(__name__)


class DependencyRefError(TrellisError):
    """Raised when an import dependency names a ref with no generated work item."""

    def __init__(self, field: str, ref: str) -> None:
        self.field = field
        self.ref = ref
        super().__init__(f"{field} '{ref}' not found")


# ---------------------------------------------------------------------------
# Linear inference
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DependencyCandidate:
    """A work item positioned for linear dependency inference."""

    id: str
    node_order: int
    node_pos: int
    item_pos: int


def infer_linear_dependencies(candidates: Sequence[DependencyCandidate]) -> list[Dependency]:
    """Chain candidates into predecessor -> successor pairs.

    Candidates are stable-sorted by ``(node_order, node_pos, item_pos)`` and
    each consecutive pair becomes one dependency. Pairs with an empty id or
    the same id on both sides are skipped.
    """
    if len(candidates) < 2:
        return []
    ordered = sorted(candidates, key=lambda c: (c.node_order, c.node_pos, c.item_pos))
    deps: list[Dependency] = []
    for pred, succ in zip(ordered, ordered[1:]):
        if not pred.id or not succ.id or pred.id == succ.id:
            continue
        deps.append(Dependency(predecessor_work_item_id=pred.id, successor_work_item_id=succ.id))
    return deps


def infer_work_item_dependencies(nodes: Sequence[PlanNode], work_items: Sequence[WorkItem]) -> list[Dependency]:
    """Linear chain through *work_items* by (node order, node position, item position)."""
    node_pos = {n.id: i for i, n in enumerate(nodes)}
    node_order = {n.id: n.order_index for n in nodes}
    return infer_linear_dependencies(
        [
            DependencyCandidate(
                id=wi.id,
                node_order=node_order.get(wi.node_id, 0),
                node_pos=node_pos.get(wi.node_id, 0),
                item_pos=i,
            )
            for i, wi in enumerate(work_items)
        ]
    )


# ---------------------------------------------------------------------------
# Explicit pattern resolution (templates)
# ---------------------------------------------------------------------------


def dependency_loop_vars(predecessor: str, successor: str, env: Mapping[str, int]) -> list[str]:
    """Pattern variables that have a positive value in *env*, sorted by name."""
    names = extract_pattern_vars(predecessor) | extract_pattern_vars(successor)
    return sorted(name for name in names if env.get(name, 0) > 0)


def iter_dependency_envs(var_names: Sequence[str], env: Mapping[str, int]) -> Iterator[dict[str, int]]:
    """Yield *env* with each named variable bound to every value in ``1..env[name]``."""
    if not var_names:
        yield dict(env)
        return

    def _rec(idx: int, current: dict[str, int]) -> Iterator[dict[str, int]]:
        if idx >= len(var_names):
            yield current
            return
        name = var_names[idx]
        for value in range(1, env[name] + 1):
            nxt = dict(current)
            nxt[name] = value
            yield from _rec(idx + 1, nxt)

    yield from _rec(0, dict(env))


def generate_dependency_links(
    predecessor: str,
    successor: str,
    id_map: Mapping[str, str],
    env: Mapping[str, int],
) -> list[Dependency]:
    """Expand one dependency template into concrete links.

    Either pattern failing to expand or resolve for a given assignment drops
    that assignment only. Duplicate (predecessor, successor) pairs are
    emitted once.
    """
    loop_vars = dependency_loop_vars(predecessor, successor, env)
    deps: list[Dependency] = []
    seen: set[tuple[str, str]] = set()
    dropped = 0

    for loop_env in iter_dependency_envs(loop_vars, env):
        try:
            pred_key = expand_template(predecessor, loop_env)
            succ_key = expand_template(successor, loop_env)
        except ExpressionError:
            dropped += 1
            continue
        pred_id = id_map.get(pred_key)
        succ_id = id_map.get(succ_key)
        if pred_id is None or succ_id is None:
            dropped += 1
            continue
        pair = (pred_id, succ_id)
        if pair in seen:
            continue
        seen.add(pair)
        deps.append(Dependency(predecessor_work_item_id=pred_id, successor_work_item_id=succ_id))

    if dropped:
        logger.debug("Dependency %s -> %s: %d unresolved assignments dropped", predecessor, successor, dropped)
    return deps


# ---------------------------------------------------------------------------
# Ref resolution (imports)
# ---------------------------------------------------------------------------


def resolve_ref_dependencies(pairs: Sequence[tuple[str, str]], ref_map: Mapping[str, str]) -> list[Dependency]:
    """Map (predecessor_ref, successor_ref) pairs to real work-item ids.

    Raises:
        DependencyRefError: if either ref has no entry in *ref_map*.
    """
    deps: list[Dependency] = []
    for pred_ref, succ_ref in pairs:
        if pred_ref not in ref_map:
            raise DependencyRefError("predecessor_ref", pred_ref)
        if succ_ref not in ref_map:
            raise DependencyRefError("successor_ref", succ_ref)
        deps.append(Dependency(predecessor_work_item_id=ref_map[pred_ref], successor_work_item_id=ref_map[succ_ref]))
    return deps


# ---------------------------------------------------------------------------
# Cycle detection
# ---------------------------------------------------------------------------

_WHITE, _GRAY, _BLACK = 0, 1, 2


def find_cycle_edges(edges: Sequence[tuple[str, str]]) -> list[tuple[str, str]]:
    """Return every back edge ``(node, neighbor)`` found by a three-color DFS.

    Self-edges and edges with an empty endpoint are ignored. Traversal order
    follows first appearance in *edges*, so results are deterministic.
    Iterative, so long chains do not hit the recursion limit.
    """
    graph: dict[str, list[str]] = {}
    for pred, succ in edges:
        if not pred or not succ or pred == succ:
            continue
        graph.setdefault(pred, []).append(succ)
        graph.setdefault(succ, [])

    color: dict[str, int] = dict.fromkeys(graph, _WHITE)
    back_edges: list[tuple[str, str]] = []

    for root in graph:
        if color[root] != _WHITE:
            continue
        color[root] = _GRAY
        stack: list[tuple[str, Iterator[str]]] = [(root, iter(graph[root]))]
        while stack:
            node, neighbors = stack[-1]
            advanced = False
            for neighbor in neighbors:
                if color[neighbor] == _GRAY:
                    back_edges.append((node, neighbor))
                elif color[neighbor] == _WHITE:
                    color[neighbor] = _GRAY
                    stack.append((neighbor, iter(graph[neighbor])))
                    advanced = True
                    break
            if not advanced:
                color[node] = _BLACK
                stack.pop()

    return back_edges
