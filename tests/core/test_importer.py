"""Tests for import document conversion."""

from __future__ import annotations

import copy
from collections.abc import Callable
from datetime import date
from typing import Any

import pytest

from trellis.dependencies import DependencyRefError
from trellis.errors import ImportValidationError
from trellis.importer import convert, import_project
from trellis.policies import DateError
from trellis.schema import ImportSchema, parse_import_schema


class TestImportProject:
    def test_project_fields(self, import_doc: ImportSchema, ids: Callable[[], str]) -> None:
        result = import_project(import_doc, id_factory=ids)
        p = result.project
        assert p.id == "id-1"
        assert p.short_id == "BIO101"
        assert p.start_date == date(2026, 1, 5)
        assert p.target_date == date(2026, 3, 1)
        assert p.status == "active"

    def test_nodes(self, import_doc: ImportSchema) -> None:
        result = import_project(import_doc)
        ch1, lab = result.nodes
        assert ch1.kind == "module"
        assert lab.kind == "section"
        assert lab.parent_id == ch1.id
        assert ch1.parent_id is None
        assert (ch1.order_index, lab.order_index) == (1, 2)

    def test_work_items_cascade_and_source(self, import_doc: ImportSchema) -> None:
        result = import_project(import_doc)
        read, notes, lab = result.work_items
        assert {wi.duration_source for wi in result.work_items} == {"manual"}
        assert (read.min_session_min, read.max_session_min, read.default_session_min) == (20, 90, 30)
        assert lab.default_session_min == 60
        assert lab.due_date == date(2026, 1, 20)
        assert read.status == "todo"
        assert lab.planned_min == 0

    def test_done_item_logged_minutes_autofill(self, import_doc: ImportSchema) -> None:
        result = import_project(import_doc)
        notes = result.work_items[1]
        assert notes.status == "done"
        assert notes.logged_min == 30
        assert result.work_items[0].logged_min == 0

    def test_explicit_logged_minutes_win(self, import_doc_raw: dict[str, Any]) -> None:
        raw = copy.deepcopy(import_doc_raw)
        raw["work_items"][1]["logged_min"] = 5
        result = import_project(parse_import_schema(raw))
        assert result.work_items[1].logged_min == 5

    def test_explicit_dependencies(self, import_doc: ImportSchema) -> None:
        result = import_project(import_doc)
        read, _, lab = result.work_items
        assert [(d.predecessor_work_item_id, d.successor_work_item_id) for d in result.dependencies] == [(read.id, lab.id)]

    def test_inferred_dependencies_without_declarations(self, import_doc_raw: dict[str, Any]) -> None:
        raw = copy.deepcopy(import_doc_raw)
        raw["dependencies"] = []
        raw["nodes"][0]["order"] = 3
        result = import_project(parse_import_schema(raw))
        read, notes, lab = result.work_items
        # the lab node (order 2) now sorts before chapter 1 (order 3)
        assert [(d.predecessor_work_item_id, d.successor_work_item_id) for d in result.dependencies] == [
            (lab.id, read.id),
            (read.id, notes.id),
        ]

    def test_sequential_numbers(self, import_doc: ImportSchema) -> None:
        result = import_project(import_doc)
        assert [n.seq for n in result.nodes] == [1, 4]
        assert [wi.seq for wi in result.work_items] == [2, 3, 5]

    def test_units(self, import_doc_raw: dict[str, Any]) -> None:
        raw = copy.deepcopy(import_doc_raw)
        raw["work_items"][0]["units"] = {"kind": "pages", "total": 42}
        result = import_project(parse_import_schema(raw))
        assert (result.work_items[0].units_kind, result.work_items[0].units_total) == ("pages", 42)

    def test_validation_failure_carries_all_errors(self, import_doc_raw: dict[str, Any]) -> None:
        raw = copy.deepcopy(import_doc_raw)
        raw["nodes"].append({"ref": "ch1", "title": "Dup", "kind": "module"})
        raw["dependencies"] = [
            {"predecessor_ref": "read1", "successor_ref": "lab1"},
            {"predecessor_ref": "lab1", "successor_ref": "read1"},
        ]
        with pytest.raises(ImportValidationError) as exc_info:
            import_project(parse_import_schema(raw))
        errors = exc_info.value.errors
        assert any("duplicate ref" in e for e in errors)
        assert any("circular dependency" in e for e in errors)
        assert "2 validation errors" in str(exc_info.value)

    def test_self_parent_rejected(self, import_doc_raw: dict[str, Any]) -> None:
        raw = copy.deepcopy(import_doc_raw)
        raw["nodes"][0]["parent_ref"] = "ch1"
        with pytest.raises(ImportValidationError, match="cannot be its own parent"):
            import_project(parse_import_schema(raw))


class TestConvertWithoutValidation:
    def test_missing_kind_defaults_to_generic(self, import_doc_raw: dict[str, Any]) -> None:
        raw = copy.deepcopy(import_doc_raw)
        del raw["nodes"][0]["kind"]
        assert convert(parse_import_schema(raw)).nodes[0].kind == "generic"

    def test_self_parent_is_unknown_ref(self, import_doc_raw: dict[str, Any]) -> None:
        raw = copy.deepcopy(import_doc_raw)
        raw["nodes"][0]["parent_ref"] = "ch1"
        with pytest.raises(KeyError):
            convert(parse_import_schema(raw))

    def test_bad_date_names_field(self, import_doc_raw: dict[str, Any]) -> None:
        raw = copy.deepcopy(import_doc_raw)
        raw["work_items"][2]["due_date"] = "soon"
        with pytest.raises(DateError, match=r"work_items\[2\]\.due_date"):
            convert(parse_import_schema(raw))

    def test_unknown_dependency_ref(self, import_doc_raw: dict[str, Any]) -> None:
        raw = copy.deepcopy(import_doc_raw)
        raw["dependencies"] = [{"predecessor_ref": "read1", "successor_ref": "ghost"}]
        with pytest.raises(DependencyRefError):
            convert(parse_import_schema(raw))
