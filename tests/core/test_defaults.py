"""Tests for the work-item defaults cascade."""

from __future__ import annotations

from trellis.defaults import (
    DEFAULT_ESTIMATE_CONFIDENCE,
    ItemOverrides,
    coalesce,
    resolve_logged_min,
    resolve_work_item_defaults,
)
from trellis.schema import DefaultsConfig, SessionPolicy

SCHEMA_DEFAULTS = DefaultsConfig(
    session_policy=SessionPolicy(min_session_min=20, max_session_min=90, default_session_min=45, splittable=False)
)


class TestCascade:
    def test_hardcoded_fallbacks(self) -> None:
        r = resolve_work_item_defaults(ItemOverrides(), None)
        assert r.duration_mode == "estimate"
        assert (r.min_session_min, r.max_session_min, r.default_session_min) == (15, 60, 30)
        assert r.splittable is True
        assert r.planned_min == 0
        assert r.estimate_confidence == DEFAULT_ESTIMATE_CONFIDENCE == 0.5

    def test_schema_defaults_apply_when_item_silent(self) -> None:
        r = resolve_work_item_defaults(ItemOverrides(), SCHEMA_DEFAULTS)
        assert (r.min_session_min, r.max_session_min, r.default_session_min, r.splittable) == (20, 90, 45, False)

    def test_partial_item_override(self) -> None:
        r = resolve_work_item_defaults(ItemOverrides(session_policy=SessionPolicy(min_session_min=10)), SCHEMA_DEFAULTS)
        assert (r.min_session_min, r.max_session_min, r.default_session_min, r.splittable) == (10, 90, 45, False)

    def test_fields_resolve_independently(self) -> None:
        defaults = DefaultsConfig(duration_mode="fixed", planned_min=25)
        r = resolve_work_item_defaults(ItemOverrides(estimate_confidence=0.9), defaults)
        assert r.duration_mode == "fixed"
        assert r.planned_min == 25
        assert r.estimate_confidence == 0.9
        assert r.min_session_min == 15

    def test_item_false_splittable_beats_schema_true(self) -> None:
        defaults = DefaultsConfig(session_policy=SessionPolicy(splittable=True))
        r = resolve_work_item_defaults(ItemOverrides(session_policy=SessionPolicy(splittable=False)), defaults)
        assert r.splittable is False

    def test_item_zero_planned_min_is_a_value(self) -> None:
        r = resolve_work_item_defaults(ItemOverrides(planned_min=0), DefaultsConfig(planned_min=40))
        assert r.planned_min == 0


class TestCoalesce:
    def test_first_non_none(self) -> None:
        assert coalesce(None, 0, 5, fallback=9) == 0

    def test_fallback(self) -> None:
        assert coalesce(None, None, fallback="x") == "x"


class TestLoggedMin:
    def test_explicit_wins(self) -> None:
        assert resolve_logged_min(12, "done", 60) == 12

    def test_done_with_plan_autofills(self) -> None:
        assert resolve_logged_min(None, "done", 60) == 60

    def test_done_without_plan(self) -> None:
        assert resolve_logged_min(None, "done", 0) == 0

    def test_not_done(self) -> None:
        assert resolve_logged_min(None, "in_progress", 60) == 0
