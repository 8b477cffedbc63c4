"""Tests for template variable resolution."""

from __future__ import annotations

import logging

import pytest

from trellis.schema import VariableDef
from trellis.variables import VariableError, resolve_variables


class TestResolveVariables:
    def test_defaults_used_without_overrides(self) -> None:
        env = resolve_variables([VariableDef(key="weeks", default=12), VariableDef(key="labs", default=2)])
        assert env == {"weeks": 12, "labs": 2}

    def test_override_replaces_default(self) -> None:
        env = resolve_variables([VariableDef(key="weeks", default=12)], {"weeks": "8"})
        assert env == {"weeks": 8}

    def test_int_override(self) -> None:
        assert resolve_variables([VariableDef(key="weeks")], {"weeks": 4}) == {"weeks": 4}

    def test_integral_float_default(self) -> None:
        assert resolve_variables([VariableDef(key="weeks", default=6.0)]) == {"weeks": 6}

    def test_non_integer_override(self) -> None:
        with pytest.raises(VariableError, match="variable 'weeks': expected integer, got 'ten'") as exc_info:
            resolve_variables([VariableDef(key="weeks", default=12)], {"weeks": "ten"})
        assert exc_info.value.key == "weeks"

    def test_required_missing(self) -> None:
        with pytest.raises(VariableError, match="required variable 'chapters' not provided"):
            resolve_variables([VariableDef(key="chapters", required=True)])

    def test_required_satisfied_by_override(self) -> None:
        assert resolve_variables([VariableDef(key="chapters", required=True)], {"chapters": "9"}) == {"chapters": 9}

    def test_optional_without_default_is_absent(self) -> None:
        assert resolve_variables([VariableDef(key="extra")]) == {}

    def test_below_minimum(self) -> None:
        with pytest.raises(VariableError, match="below minimum 1"):
            resolve_variables([VariableDef(key="weeks", default=3, min=1)], {"weeks": "0"})

    def test_above_maximum(self) -> None:
        with pytest.raises(VariableError, match="above maximum 52"):
            resolve_variables([VariableDef(key="weeks", max=52)], {"weeks": 53})

    def test_bounds_apply_to_default(self) -> None:
        with pytest.raises(VariableError, match="above maximum"):
            resolve_variables([VariableDef(key="weeks", default=100, max=52)])

    def test_string_variables_not_in_env(self) -> None:
        env = resolve_variables([VariableDef(key="title", type="string", default="Intro"), VariableDef(key="n", default=1)])
        assert env == {"n": 1}

    def test_undeclared_override_ignored_with_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="trellis.variables"):
            env = resolve_variables([VariableDef(key="weeks", default=2)], {"weeks": 3, "bogus": 1})
        assert env == {"weeks": 3}
        assert "bogus" in caplog.text
