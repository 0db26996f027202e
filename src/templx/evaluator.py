"""Evaluation of parsed expressions against a binding context.

Values follow a small, fixed coercion table:

* numbers are ``int``/``float`` — never ``bool``;
* ``None`` stands for both null and undefined;
* ``+`` adds when *both* operands are numbers and concatenates otherwise;
* ``- * / % **`` coerce both sides to numbers, and failed coercion gives NaN;
* division by zero gives ``±Infinity`` or ``NaN``, never an exception;
* ``< > <= >=`` compare strings lexicographically when both sides are
  strings, otherwise numerically (NaN compares false);
* ``== !=`` are loose: a number against a string or boolean compares
  numerically, ``None`` equals only ``None``; ``=== !==`` also require the
  same kind of value;
* falsy values are ``0``, ``NaN``, ``""``, ``None`` and ``False``.

Evaluation never raises for bad data. Missing properties come back as None
and arithmetic on them gives NaN, which renders as text.
"""

from __future__ import annotations

import math
import re
from collections.abc import Sequence
from decimal import Decimal
from typing import Any

from templx.accessors import resolve_path
from templx.expressions import BinaryOp, Literal, Node, PropertyPath, Ternary, UnaryOp

_NUMERIC_RX = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_INTEGER_RX = re.compile(r"[+-]?\d+")

# Largest float that still holds every integer exactly.
_MAX_SAFE = 2**53
# Integer exponents above this switch to float pow.
_MAX_INT_EXPONENT = 1024


# ─── Coercion ────────────────────────────────────────────────────────────────


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_number(value: Any) -> int | float:
    """Coerce value to a number; NaN when it has no numeric reading."""
    if is_number(value):
        return value
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        if _INTEGER_RX.fullmatch(text):
            return int(text)
        if _NUMERIC_RX.fullmatch(text):
            return float(text)
        if text in ("Infinity", "+Infinity"):
            return math.inf
        if text == "-Infinity":
            return -math.inf
    return math.nan


def format_number(value: int | float) -> str:
    """Decimal text with no trailing ``.0``; Infinity/-Infinity/NaN as words.

    Exponent form is used only outside [1e-6, 1e21).
    """
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    text = repr(value)
    if "e" in text and abs(value) >= 1e-6:
        return format(Decimal(text), "f")
    if "e" in text:
        mantissa, exponent = text.split("e")
        power = int(exponent)
        text = f"{mantissa}e{'+' if power > 0 else '-'}{abs(power)}"
    return text


def to_string(value: Any) -> str:
    """Stringify for concatenation and comparison."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_number(value)
    if isinstance(value, Sequence):
        return ",".join(to_string(item) for item in value)
    return str(value)


def to_display_string(value: Any) -> str:
    """Text substituted into a template for an expression's result."""
    return to_string(value)


def truthy(value: Any) -> bool:
    if value is None or value is False:
        return False
    if is_number(value):
        return not (value == 0 or math.isnan(value))
    if isinstance(value, str):
        return value != ""
    return True


def _normalize(value: int | float) -> int | float:
    """Integral floats become ints; oversized ints become floats."""
    if isinstance(value, float):
        if value.is_integer() and abs(value) < _MAX_SAFE:
            return int(value)
        return value
    if abs(value) >= 1e21:
        try:
            return float(value)
        except OverflowError:
            return math.inf if value > 0 else -math.inf
    return value


# ─── Arithmetic ──────────────────────────────────────────────────────────────


def _divide(a, b):
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    try:
        return a / b
    except OverflowError:
        return math.inf if (a > 0) == (b > 0) else -math.inf


def _modulo(a, b):
    if b == 0 or math.isnan(a) or math.isnan(b) or math.isinf(a):
        return math.nan
    if math.isinf(b):
        return a
    if isinstance(a, int) and isinstance(b, int):
        remainder = abs(a) % abs(b)
        return -remainder if a < 0 else remainder
    return math.fmod(a, b)


def _power(a, b):
    if math.isnan(b):
        return math.nan
    if b == 0:
        return 1
    if math.isnan(a):
        return math.nan
    if math.isinf(b) and abs(a) == 1:
        return math.nan
    if a == 0 and b < 0:
        return math.inf
    if a < 0 and not math.isinf(b) and not float(b).is_integer():
        return math.nan
    if isinstance(a, int) and isinstance(b, int) and 0 < b <= _MAX_INT_EXPONENT:
        return a**b
    try:
        return float(a) ** float(b)
    except OverflowError:
        odd = float(b).is_integer() and int(b) % 2 == 1
        return -math.inf if a < 0 and odd else math.inf


_ARITHMETIC = {
    "-": lambda a, b: a - b,
    "*": lambda a, b: a * b,
    "/": _divide,
    "%": _modulo,
    "**": _power,
}


def add(left: Any, right: Any) -> Any:
    """``+``: numeric addition when both sides are numbers, else concatenation."""
    if is_number(left) and is_number(right):
        return _normalize(left + right)
    return to_string(left) + to_string(right)


def arithmetic(operator: str, left: Any, right: Any) -> int | float:
    a, b = to_number(left), to_number(right)
    try:
        return _normalize(_ARITHMETIC[operator](a, b))
    except OverflowError:
        return math.nan


# ─── Comparison ──────────────────────────────────────────────────────────────


def _kind(value: Any) -> str:
    if value is None:
        return "none"
    if isinstance(value, bool):
        return "bool"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "str"
    return "object"


def loose_equal(left: Any, right: Any) -> bool:
    left_kind, right_kind = _kind(left), _kind(right)
    if left_kind == "none" or right_kind == "none":
        return left_kind == right_kind
    if left_kind == right_kind:
        return left == right
    if {left_kind, right_kind} <= {"number", "str", "bool"}:
        return to_number(left) == to_number(right)
    return left == right


def strict_equal(left: Any, right: Any) -> bool:
    if _kind(left) != _kind(right):
        return False
    return left == right


def compare(operator: str, left: Any, right: Any) -> bool:
    if operator == "==":
        return loose_equal(left, right)
    if operator == "!=":
        return not loose_equal(left, right)
    if operator == "===":
        return strict_equal(left, right)
    if operator == "!==":
        return not strict_equal(left, right)

    if isinstance(left, str) and isinstance(right, str):
        a, b = left, right
    else:
        a, b = to_number(left), to_number(right)
        if math.isnan(a) or math.isnan(b):
            return False
    if operator == "<":
        return a < b
    if operator == ">":
        return a > b
    if operator == "<=":
        return a <= b
    return a >= b


# ─── Evaluation ──────────────────────────────────────────────────────────────


def evaluate(node: Node, context: Any) -> Any:
    """Evaluate node against context. Only branches actually taken are read."""
    if isinstance(node, Literal):
        return node.value
    if isinstance(node, PropertyPath):
        return resolve_path(node.segments, context)
    if isinstance(node, Ternary):
        if truthy(evaluate(node.condition, context)):
            return evaluate(node.when_true, context)
        return evaluate(node.when_false, context)
    if isinstance(node, BinaryOp):
        op = node.operator
        left = evaluate(node.left, context)
        if op == "&&":
            return evaluate(node.right, context) if truthy(left) else left
        if op == "||":
            return left if truthy(left) else evaluate(node.right, context)
        right = evaluate(node.right, context)
        if op == "+":
            return add(left, right)
        if op in _ARITHMETIC:
            return arithmetic(op, left, right)
        return compare(op, left, right)
    if isinstance(node, UnaryOp):
        operand = evaluate(node.operand, context)
        if node.operator == "!":
            return not truthy(operand)
        number = to_number(operand)
        return _normalize(-number) if node.operator == "-" else number
    raise TypeError(f"not an expression node: {node!r}")
