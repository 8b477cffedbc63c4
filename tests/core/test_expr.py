"""Tests for expression evaluation, placeholder expansion, and pattern scanning."""

from __future__ import annotations

import pytest

from trellis.errors import TrellisError
from trellis.expr import (
    EmptyExpressionError,
    ExpressionError,
    UndefinedVariableError,
    UnexpectedCharacterError,
    UnexpectedEndError,
    UnmatchedBraceError,
    eval_expr,
    eval_int_field,
    expand_template,
    extract_brace_expressions,
    extract_pattern_vars,
    tokenize_identifiers,
)


class TestEvalExpr:
    @pytest.mark.parametrize(
        ("expression", "env", "expected"),
        [
            ("(i-1)*7", {"i": 3}, 14),
            ("i*7-1", {"i": 3}, 20),
            ("1+2*3", {}, 7),
            ("(1+2)*3", {}, 9),
            ("10-3-2", {}, 5),
            ("2*3*4", {}, 24),
            ("  week_count  *  2 ", {"week_count": 6}, 12),
            ("((x))", {"x": 4}, 4),
            ("0-5", {}, -5),
            ("007", {}, 7),
        ],
    )
    def test_precedence_and_associativity(self, expression: str, env: dict[str, int], expected: int) -> None:
        assert eval_expr(expression, env) == expected

    def test_large_values_do_not_wrap(self) -> None:
        assert eval_expr("n*n", {"n": 10**12}) == 10**24

    @pytest.mark.parametrize("expression", ["", "   ", "\t"])
    def test_blank_is_empty_expression(self, expression: str) -> None:
        with pytest.raises(EmptyExpressionError):
            eval_expr(expression, {})

    def test_undefined_variable_names_identifier(self) -> None:
        with pytest.raises(UndefinedVariableError) as exc_info:
            eval_expr("i + missing", {"i": 1})
        assert exc_info.value.name == "missing"
        assert "undefined variable: missing" in str(exc_info.value)

    @pytest.mark.parametrize(
        ("expression", "pos", "ch"),
        [
            ("6/2", 1, "/"),
            ("6%2", 1, "%"),
            ("2^3", 1, "^"),
            (")", 0, ")"),
            ("1)", 1, ")"),
            ("*2", 0, "*"),
            ("1 2", 2, "2"),
            ("(1 2)", 3, "2"),
        ],
    )
    def test_unexpected_character(self, expression: str, pos: int, ch: str) -> None:
        with pytest.raises(UnexpectedCharacterError) as exc_info:
            eval_expr(expression, {})
        assert exc_info.value.pos == pos
        assert exc_info.value.ch == ch

    @pytest.mark.parametrize("expression", ["1+", "2*", "(1+2", "((3)", "1 - "])
    def test_unexpected_end(self, expression: str) -> None:
        with pytest.raises(UnexpectedEndError):
            eval_expr(expression, {})

    def test_errors_are_value_errors(self) -> None:
        with pytest.raises(ValueError):
            eval_expr("x", {})
        assert issubclass(ExpressionError, TrellisError)


class TestExpandTemplate:
    def test_single_placeholder(self) -> None:
        assert expand_template("Week {i}", {"i": 5}) == "Week 5"

    @pytest.mark.parametrize("text", ["", "plain text", "no braces } here", "w1_read"])
    def test_no_placeholder_is_identity(self, text: str) -> None:
        assert expand_template(text, {}) == text

    def test_multiple_placeholders(self) -> None:
        assert expand_template("w{i}_s{j}-{i*j}", {"i": 2, "j": 3}) == "w2_s3-6"

    def test_negative_result(self) -> None:
        assert expand_template("offset {i-5}", {"i": 2}) == "offset -3"

    def test_unmatched_brace(self) -> None:
        with pytest.raises(UnmatchedBraceError) as exc_info:
            expand_template("Week {i", {"i": 1})
        assert exc_info.value.pos == 5

    def test_evaluator_error_propagates_verbatim(self) -> None:
        with pytest.raises(UndefinedVariableError) as exc_info:
            expand_template("Week {j}", {"i": 1})
        assert exc_info.value.name == "j"
        assert any("Week {j}" in note for note in exc_info.value.__notes__)

    def test_empty_placeholder(self) -> None:
        with pytest.raises(EmptyExpressionError):
            expand_template("Week {}", {})

    def test_nested_braces_are_depth_counted(self) -> None:
        # the inner group is not valid grammar, but must be consumed as one placeholder
        with pytest.raises(UnexpectedCharacterError):
            expand_template("x{{i}}y", {"i": 1})


class TestEvalIntField:
    def test_int_passes_through(self) -> None:
        assert eval_int_field(7, {}) == 7

    def test_numeric_string(self) -> None:
        assert eval_int_field(" -3 ", {}) == -3

    def test_bare_expression(self) -> None:
        assert eval_int_field("(i-1)*7", {"i": 2}) == 7

    def test_braced_expression(self) -> None:
        assert eval_int_field("{i*7-1}", {"i": 2}) == 13

    def test_braced_with_text_is_not_integer(self) -> None:
        with pytest.raises(ExpressionError, match="not an integer"):
            eval_int_field("day {i}", {"i": 1})

    def test_undefined_variable(self) -> None:
        with pytest.raises(UndefinedVariableError):
            eval_int_field("i*7", {})


class TestPatternScanning:
    def test_extract_brace_expressions(self) -> None:
        assert extract_brace_expressions("w{i}_q{j+1}") == ["i", "j+1"]

    def test_unclosed_group_ignored(self) -> None:
        assert extract_brace_expressions("w{i}_{j") == ["i"]

    def test_tokenize_identifiers_dedupes_in_order(self) -> None:
        assert tokenize_identifiers("b*a + b - 3 + _c1") == ["b", "a", "_c1"]

    def test_digits_are_not_identifiers(self) -> None:
        assert tokenize_identifiers("12 + 3") == []

    def test_extract_pattern_vars(self) -> None:
        assert extract_pattern_vars("w{weeks}_s{(weeks-1)*lessons}") == {"weeks", "lessons"}
        assert extract_pattern_vars("plain") == set()
