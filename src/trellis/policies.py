"""Generation policies shared by the template engine and the importer.

Date parsing with field-aware errors, start-date offsets, tree-order display
numbering, timestamps, and identifier minting.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Callable, Sequence
from datetime import UTC, date, datetime, timedelta

from trellis.errors import TrellisError
from trellis.models import PlanNode, WorkItem

DATE_FORMAT = "%Y-%m-%d"
_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

IdFactory = Callable[[], str]


class DateError(TrellisError):
    """Raised when a date field is not a valid ``YYYY-MM-DD`` string."""

    def __init__(self, field: str, value: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"{field}: invalid date format '{value}' (expected YYYY-MM-DD)")


def parse_date(value: str, field: str) -> date:
    """Parse a required ``YYYY-MM-DD`` date."""
    if not isinstance(value, str) or not _DATE_PATTERN.match(value):
        raise DateError(field, str(value))
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except (TypeError, ValueError):
        raise DateError(field, str(value)) from None


def parse_optional_date(value: str | None, field: str) -> date | None:
    if not value:
        return None
    return parse_date(value, field)


def offset_date(start: date, days: int) -> date:
    return start + timedelta(days=days)


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())


def prefixed_id_factory(prefix: str) -> IdFactory:
    """An id factory producing ``<prefix>-<10 hex chars>`` identifiers."""

    def _make() -> str:
        return f"{prefix}-{uuid.uuid4().hex[:10]}"

    return _make


def assign_sequential_ids(nodes: Sequence[PlanNode], work_items: Sequence[WorkItem]) -> None:
    """Number nodes and work items in tree order, starting at 1.

    Each node is followed by its directly attached work items (not those of
    descendant nodes) before the next node. Work items whose node is not in
    *nodes* keep ``seq == 0``.
    """
    by_node: dict[str, list[WorkItem]] = {}
    for wi in work_items:
        by_node.setdefault(wi.node_id, []).append(wi)

    seq = 1
    for node in nodes:
        node.seq = seq
        seq += 1
        for wi in by_node.get(node.id, []):
            wi.seq = seq
            seq += 1
