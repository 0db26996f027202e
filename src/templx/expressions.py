"""Expression language used inside ``${...}`` template regions.

The grammar is deliberately small. Tiers, from loosest to tightest binding:

    ternary          a ? b : c            (right-associative)
    logical or       a || b
    logical and      a && b
    comparison       == != === !== < > <= >=
    additive         + -
    multiplicative   * / %
    exponent         **
    unary            -a  +a  !a
    primary          literal | property path | ( expression )

Tiers bind as listed, so ``2 + 3 * 4`` is 14. Inside one tier operators are
applied strictly left to right, and that includes ``**``: ``2 ** 3 ** 2``
is ``(2 ** 3) ** 2 == 64``, not 512. Callers who need another grouping must
use parentheses. There are no calls, assignments, loops or object literals.

Parsed nodes are frozen dataclasses and carry no evaluation state, so one
parse can be shared by any number of bindings.
"""

from __future__ import annotations

import functools
import math
import re
from dataclasses import dataclass
from typing import Any, Optional, Union

from templx.accessors import Segment, parse_property_path
from templx.errors import TemplateSyntaxError


# ─── Nodes ───────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Literal:
    """A constant: number, string, boolean or None (null/undefined)."""

    value: Any


@dataclass(frozen=True)
class PropertyPath:
    """A property read such as ``this.$items[0].name``."""

    segments: tuple[Segment, ...]
    source: str = ""


@dataclass(frozen=True)
class UnaryOp:
    operator: str
    operand: "Node"


@dataclass(frozen=True)
class BinaryOp:
    operator: str
    left: "Node"
    right: "Node"


@dataclass(frozen=True)
class Ternary:
    condition: "Node"
    when_true: "Node"
    when_false: "Node"


Node = Union[Literal, PropertyPath, UnaryOp, BinaryOp, Ternary]

KEYWORDS: dict[str, Any] = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
    "NaN": math.nan,
    "Infinity": math.inf,
}

# Loosest first. Each tier is parsed left to right.
BINARY_TIERS: tuple[tuple[str, ...], ...] = (
    ("||",),
    ("&&",),
    ("===", "!==", "==", "!=", "<=", ">=", "<", ">"),
    ("+", "-"),
    ("*", "/", "%"),
    ("**",),
)

UNARY_OPERATORS = ("-", "+", "!")


# ─── Lexer ───────────────────────────────────────────────────────────────────


@dataclass
class Token:
    """Token from the lexer"""

    type: str  # NUMBER, STRING, PATH, OP, END
    value: Any
    pos: int = 0


_PATH_TAIL = r"""(?:\??\.[A-Za-z_$][\w$]*|\[\s*\d+\s*\]|\[\s*'(?:[^'\\]|\\.)*'\s*\]|\[\s*"(?:[^"\\]|\\.)*"\s*\])*"""

_TOKEN_RX = re.compile(
    r"""
    (?P<WHITESPACE>\s+)
  | (?P<NUMBER>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
  | (?P<STRING>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*"|`(?:[^`\\]|\\.)*`)
  | (?P<PATH>[A-Za-z_$][\w$]*"""
    + _PATH_TAIL
    + r""")
  | (?P<OP>===|!==|==|!=|<=|>=|\*\*|&&|\|\||[-+*/%<>?:!()])
    """,
    re.VERBOSE,
)

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0"}


def _unquote(text: str) -> str:
    body = text[1:-1]
    return re.sub(r"\\(.)", lambda m: _ESCAPES.get(m.group(1), m.group(1)), body)


def _number(text: str) -> int | float:
    if re.fullmatch(r"\d+", text):
        return int(text)
    return float(text)


def tokenize(source: str) -> list[Token]:
    """Convert expression text to tokens, ending with an END token."""
    tokens: list[Token] = []
    pos = 0
    while pos < len(source):
        match = _TOKEN_RX.match(source, pos)
        if match is None:
            raise TemplateSyntaxError("unrecognized token", source, source[pos:], pos)
        kind = match.lastgroup
        text = match.group(0)
        if kind == "NUMBER":
            tokens.append(Token(kind, _number(text), pos))
        elif kind == "STRING":
            tokens.append(Token(kind, _unquote(text), pos))
        elif kind != "WHITESPACE":
            tokens.append(Token(kind, text, pos))
        pos = match.end()
    tokens.append(Token("END", None, len(source)))
    return tokens


# ─── Parser ──────────────────────────────────────────────────────────────────


class Parser:
    """Recursive-descent parser over one expression's tokens."""

    def __init__(self, source: str) -> None:
        self.source = source
        self.tokens = tokenize(source)
        self.pos = 0

    def current(self) -> Token:
        return self.tokens[self.pos]

    def advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.type != "END":
            self.pos += 1
        return token

    def at_op(self, *ops: str) -> bool:
        token = self.current()
        return token.type == "OP" and token.value in ops

    def expect_op(self, op: str) -> Token:
        if not self.at_op(op):
            self.fail(f"expected {op!r}")
        return self.advance()

    def fail(self, message: str, token: Optional[Token] = None):
        token = token or self.current()
        fragment = self.source[token.pos:] if token.type != "END" else "<end of expression>"
        raise TemplateSyntaxError(message, self.source, fragment, token.pos)

    def parse(self) -> Node:
        if self.current().type == "END":
            self.fail("empty expression")
        node = self.parse_ternary()
        if self.current().type != "END":
            self.fail("unexpected token")
        return node

    def parse_ternary(self) -> Node:
        condition = self.parse_binary(0)
        if not self.at_op("?"):
            return condition
        self.advance()
        when_true = self.parse_ternary()
        self.expect_op(":")
        when_false = self.parse_ternary()
        return Ternary(condition, when_true, when_false)

    def parse_binary(self, tier: int) -> Node:
        if tier == len(BINARY_TIERS):
            return self.parse_unary()
        operators = BINARY_TIERS[tier]
        left = self.parse_binary(tier + 1)
        while self.at_op(*operators):
            op = self.advance().value
            right = self.parse_binary(tier + 1)
            left = BinaryOp(op, left, right)
        return left

    def parse_unary(self) -> Node:
        if self.at_op(*UNARY_OPERATORS):
            op = self.advance().value
            operand = self.parse_unary()
            if op == "-" and isinstance(operand, Literal) and _is_plain_number(operand.value):
                return Literal(-operand.value)
            return UnaryOp(op, operand)
        return self.parse_primary()

    def parse_primary(self) -> Node:
        token = self.current()
        if token.type in ("NUMBER", "STRING"):
            self.advance()
            return Literal(token.value)
        if token.type == "PATH":
            self.advance()
            if token.value in KEYWORDS:
                return Literal(KEYWORDS[token.value])
            return PropertyPath(parse_property_path(token.value), token.value)
        if self.at_op("("):
            self.advance()
            node = self.parse_ternary()
            self.expect_op(")")
            return node
        if token.type == "END":
            self.fail("unexpected end of expression")
        self.fail("unexpected token")


def _is_plain_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@functools.lru_cache(maxsize=1024)
def parse_expression(source: str) -> Node:
    """Parse one expression (the text between ``${`` and ``}``)."""
    return Parser(source.strip()).parse()
