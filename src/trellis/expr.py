"""Integer expression evaluation and ``{expr}`` placeholder expansion.

Grammar (lowest to highest precedence)::

    expr := term (('+' | '-') term)*
    term := atom ('*' atom)*
    atom := integer | identifier | '(' expr ')'

Evaluation is left-to-right within a precedence level. Identifiers resolve
from a flat ``name -> int`` environment. There is no division, no functions,
and no boolean logic.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from trellis.errors import TrellisError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ExpressionError(TrellisError):
    """Base class for expression parse/evaluation failures."""


class EmptyExpressionError(ExpressionError):
    def __init__(self) -> None:
        super().__init__("empty expression")


class UndefinedVariableError(ExpressionError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"undefined variable: {name}")


class UnexpectedCharacterError(ExpressionError):
    def __init__(self, pos: int, ch: str) -> None:
        self.pos = pos
        self.ch = ch
        super().__init__(f"unexpected character '{ch}' at position {pos}")


class UnexpectedEndError(ExpressionError):
    def __init__(self) -> None:
        super().__init__("unexpected end of expression")


class UnmatchedBraceError(ExpressionError):
    def __init__(self, pos: int) -> None:
        self.pos = pos
        super().__init__(f"unmatched '{{' at position {pos}")


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def _is_ident_start(ch: str) -> bool:
    return ch.isalpha() or ch == "_"


def _is_ident_char(ch: str) -> bool:
    return ch.isalpha() or _is_digit(ch) or ch == "_"


@dataclass
class _Parser:
    """Cursor over one expression string."""

    text: str
    env: Mapping[str, int]
    pos: int = 0

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def skip_spaces(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def parse_expr(self) -> int:
        left = self.parse_term()
        while True:
            self.skip_spaces()
            if self.at_end():
                return left
            op = self.text[self.pos]
            if op not in "+-":
                return left
            self.pos += 1
            right = self.parse_term()
            left = left + right if op == "+" else left - right

    def parse_term(self) -> int:
        left = self.parse_atom()
        while True:
            self.skip_spaces()
            if self.at_end() or self.text[self.pos] != "*":
                return left
            self.pos += 1
            left *= self.parse_atom()

    def parse_atom(self) -> int:
        self.skip_spaces()
        if self.at_end():
            raise UnexpectedEndError
        ch = self.text[self.pos]

        if ch == "(":
            self.pos += 1
            value = self.parse_expr()
            self.skip_spaces()
            if self.at_end():
                raise UnexpectedEndError
            if self.text[self.pos] != ")":
                raise UnexpectedCharacterError(self.pos, self.text[self.pos])
            self.pos += 1
            return value

        if _is_digit(ch):
            start = self.pos
            while self.pos < len(self.text) and _is_digit(self.text[self.pos]):
                self.pos += 1
            return int(self.text[start : self.pos])

        if _is_ident_start(ch):
            start = self.pos
            while self.pos < len(self.text) and _is_ident_char(self.text[self.pos]):
                self.pos += 1
            name = self.text[start : self.pos]
            if name not in self.env:
                raise UndefinedVariableError(name)
            return self.env[name]

        raise UnexpectedCharacterError(self.pos, ch)


def eval_expr(expression: str, env: Mapping[str, int]) -> int:
    """Evaluate an integer arithmetic expression against *env*.

    Example: ``eval_expr("(i-1)*7", {"i": 3}) == 14``.

    Raises:
        EmptyExpressionError: blank input.
        UndefinedVariableError: an identifier has no entry in *env*.
        UnexpectedCharacterError: a token that does not fit the grammar.
        UnexpectedEndError: input ends mid-term.
    """
    text = expression.strip()
    if not text:
        raise EmptyExpressionError
    parser = _Parser(text=text, env=env)
    value = parser.parse_expr()
    if not parser.at_end():
        raise UnexpectedCharacterError(parser.pos, text[parser.pos])
    return value


# ---------------------------------------------------------------------------
# Placeholder expansion
# ---------------------------------------------------------------------------


def _matching_brace(text: str, open_pos: int) -> int:
    """Return the index of the ``}`` closing the ``{`` at *open_pos*, or -1."""
    depth = 0
    for j in range(open_pos, len(text)):
        if text[j] == "{":
            depth += 1
        elif text[j] == "}":
            depth -= 1
            if depth == 0:
                return j
    return -1


def expand_template(template: str, env: Mapping[str, int]) -> str:
    """Replace every ``{expr}`` in *template* with its evaluated integer.

    ``expand_template("Week {i}", {"i": 5}) == "Week 5"``. Text outside
    braces is copied verbatim.
    """
    if "{" not in template:
        return template
    parts: list[str] = []
    i = 0
    while i < len(template):
        ch = template[i]
        if ch != "{":
            parts.append(ch)
            i += 1
            continue
        close = _matching_brace(template, i)
        if close < 0:
            raise UnmatchedBraceError(i)
        inner = template[i + 1 : close]
        try:
            value = eval_expr(inner, env)
        except ExpressionError as exc:
            exc.add_note(f"while evaluating placeholder '{{{inner}}}' in '{template}'")
            raise
        parts.append(str(value))
        i = close + 1
    return "".join(parts)


def contains_brace(text: str) -> bool:
    return "{" in text


def eval_int_field(value: str | int, env: Mapping[str, int]) -> int:
    """Evaluate an order/offset field.

    Accepts a bare integer, a bare expression (``i*7``), or a string with
    placeholders (``{(i-1)*7}``) whose expansion must be an integer literal.
    """
    if isinstance(value, int):
        return value
    text = value.strip()
    try:
        return int(text)
    except ValueError:
        pass
    if contains_brace(text):
        expanded = expand_template(text, env)
        try:
            return int(expanded)
        except ValueError:
            msg = f"expression '{value}' expanded to '{expanded}', which is not an integer"
            raise ExpressionError(msg) from None
    return eval_expr(text, env)


# ---------------------------------------------------------------------------
# Scanning helpers (used for dependency pattern analysis)
# ---------------------------------------------------------------------------


def extract_brace_expressions(text: str) -> list[str]:
    """Return the raw contents of each ``{...}`` group, innermost-open wins."""
    exprs: list[str] = []
    buf: list[str] = []
    in_expr = False
    for ch in text:
        if ch == "{":
            in_expr = True
            buf = []
        elif ch == "}":
            if in_expr:
                exprs.append("".join(buf))
            in_expr = False
        elif in_expr:
            buf.append(ch)
    return exprs


def tokenize_identifiers(expression: str) -> list[str]:
    """Identifiers referenced in *expression*, first-seen order, deduplicated."""
    names: list[str] = []
    i = 0
    while i < len(expression):
        if _is_ident_start(expression[i]):
            start = i
            i += 1
            while i < len(expression) and _is_ident_char(expression[i]):
                i += 1
            name = expression[start:i]
            if name not in names:
                names.append(name)
            continue
        i += 1
    return names


def extract_pattern_vars(pattern: str) -> set[str]:
    """All identifiers referenced inside any placeholder of *pattern*."""
    names: set[str] = set()
    for expression in extract_brace_expressions(pattern):
        names.update(tokenize_identifiers(expression))
    return names
