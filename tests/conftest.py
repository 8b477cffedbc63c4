"""Shared pytest fixtures for trellis tests."""

from __future__ import annotations

import itertools
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from trellis.core import TEMPLATES_DIRNAME, TRELLIS_DIR_NAME, write_config
from trellis.schema import ImportSchema, TemplateSchema, parse_import_schema, parse_template_schema


def counter_ids(prefix: str = "id") -> Callable[[], str]:
    """Deterministic id factory: ``id-1``, ``id-2``, ..."""
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


@pytest.fixture
def ids() -> Callable[[], str]:
    return counter_ids()


@pytest.fixture
def two_stage_template_raw() -> dict[str, Any]:
    """Two nodes (orders 1 and 2), two work items each, no explicit dependencies."""
    return {
        "id": "two_stage",
        "name": "Two Stage",
        "domain": "testing",
        "version": "1.0",
        "nodes": [
            {"id": "n1", "title": "Stage one", "kind": "stage", "order": 1},
            {"id": "n2", "title": "Stage two", "kind": "stage", "order": 2},
        ],
        "work_items": [
            {"id": "a", "node_id": "n1", "title": "A", "type": "task"},
            {"id": "b", "node_id": "n1", "title": "B", "type": "task"},
            {"id": "c", "node_id": "n2", "title": "C", "type": "task"},
            {"id": "d", "node_id": "n2", "title": "D", "type": "task"},
        ],
    }


@pytest.fixture
def two_stage_template(two_stage_template_raw: dict[str, Any]) -> TemplateSchema:
    return parse_template_schema(two_stage_template_raw)


@pytest.fixture
def weekly_template_raw() -> dict[str, Any]:
    """A week-per-node template with offsets and explicit pattern dependencies."""
    return {
        "id": "weekly",
        "name": "Weekly",
        "domain": "education",
        "variables": [{"key": "weeks", "type": "int", "default": 3, "min": 1, "max": 10}],
        "defaults": {
            "session_policy": {"min_session_min": 20, "max_session_min": 90, "default_session_min": 45, "splittable": False}
        },
        "nodes": [
            {
                "id": "w{i}",
                "title": "Week {i}",
                "kind": "week",
                "order": "i",
                "repeat": {"var": "i", "from": 1, "to_var": "weeks"},
                "constraints": {"not_before_offset_days": "(i-1)*7", "due_date_offset_days": "{i*7-1}"},
            }
        ],
        "work_items": [
            {
                "id": "w{i}_read",
                "node_id": "w{i}",
                "title": "Read week {i}",
                "type": "reading",
                "planned_min": 60,
                "repeat": {"var": "i", "from": 1, "to_var": "weeks"},
            },
            {
                "id": "w{i}_quiz",
                "node_id": "w{i}",
                "title": "Quiz week {i}",
                "type": "quiz",
                "repeat": {"var": "i", "from": 1, "to_var": "weeks"},
                "constraints": {"due_date_offset_days": "i*7-1"},
            },
        ],
        "dependencies": [{"predecessor": "w{weeks}_read", "successor": "w{weeks}_quiz"}],
    }


@pytest.fixture
def weekly_template(weekly_template_raw: dict[str, Any]) -> TemplateSchema:
    return parse_template_schema(weekly_template_raw)


@pytest.fixture
def import_doc_raw() -> dict[str, Any]:
    """A valid import document: one chapter node holding a sub-node and three items."""
    return {
        "project": {
            "short_id": "bio101",
            "name": "Biology",
            "domain": "education",
            "start_date": "2026-01-05",
            "target_date": "2026-03-01",
        },
        "defaults": {"duration_mode": "estimate", "session_policy": {"min_session_min": 20, "max_session_min": 90}},
        "nodes": [
            {"ref": "ch1", "title": "Chapter 1", "kind": "module", "order": 1},
            {"ref": "ch1_lab", "title": "Chapter 1 lab", "kind": "section", "parent_ref": "ch1", "order": 2},
        ],
        "work_items": [
            {"ref": "read1", "node_ref": "ch1", "title": "Read chapter 1", "type": "reading", "planned_min": 45},
            {
                "ref": "notes1",
                "node_ref": "ch1",
                "title": "Notes",
                "type": "writing",
                "status": "done",
                "planned_min": 30,
            },
            {
                "ref": "lab1",
                "node_ref": "ch1_lab",
                "title": "Lab report",
                "type": "assignment",
                "due_date": "2026-01-20",
                "session_policy": {"default_session_min": 60},
            },
        ],
        "dependencies": [{"predecessor_ref": "read1", "successor_ref": "lab1"}],
    }


@pytest.fixture
def import_doc(import_doc_raw: dict[str, Any]) -> ImportSchema:
    return parse_import_schema(import_doc_raw)


@pytest.fixture
def trellis_project(tmp_path: Path) -> Path:
    """A tmp directory set up as a trellis project (.trellis/ with config + templates dir).

    Returns the project root (parent of .trellis/).
    """
    trellis_dir = tmp_path / TRELLIS_DIR_NAME
    trellis_dir.mkdir()
    (trellis_dir / TEMPLATES_DIRNAME).mkdir()
    write_config(trellis_dir, {"version": 1, "template_dirs": []})
    return tmp_path


def write_json(path: Path, data: Any) -> Path:
    path.write_text(json.dumps(data, indent=2))
    return path


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()
