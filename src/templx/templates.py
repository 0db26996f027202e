"""Template strings with embedded ``${...}`` expressions.

A template is scanned once into literal text interleaved with parsed
expression nodes. The result is immutable and cached by source string, so
the same ParsedTemplate can back any number of bindings.

    >>> t = parse_template_literal("Count squared: ${this.$count ** 2}")
    >>> evaluate_template(t, {"$count": 5})
    'Count squared: 25'

``\\${`` escapes a literal ``${``.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Any, Union

from templx.accessors import parse_property_path
from templx.errors import TemplateSyntaxError
from templx.evaluator import evaluate, to_display_string
from templx.expressions import Node, parse_expression

logger = logging.getLogger("templx.templates")

Part = Union[str, Node]

OPEN = "${"
_QUOTES = "'\"`"


@dataclass(frozen=True)
class ParsedTemplate:
    """Literal text segments and expression nodes, in source order."""

    source: str
    parts: tuple[Part, ...]

    @property
    def is_static(self) -> bool:
        """No expressions: renders without touching the evaluator."""
        return not any(not isinstance(part, str) for part in self.parts)

    @property
    def is_pure_expression(self) -> bool:
        """Exactly one expression and no surrounding text."""
        return len(self.parts) == 1 and not isinstance(self.parts[0], str)

    @property
    def expressions(self) -> tuple[Node, ...]:
        return tuple(part for part in self.parts if not isinstance(part, str))


def is_template_literal(source: object) -> bool:
    """Cheap pre-check: does source contain a ``${`` region at all?"""
    return isinstance(source, str) and OPEN in source


def _find_close(source: str, start: int) -> int:
    """Index of the ``}`` closing the region whose body starts at start.

    Braces nest; quoted strings inside the expression are skipped whole.
    """
    depth = 1
    pos = start
    while pos < len(source):
        char = source[pos]
        if char in _QUOTES:
            end = pos + 1
            while end < len(source) and source[end] != char:
                end += 2 if source[end] == "\\" else 1
            if end >= len(source):
                raise TemplateSyntaxError(
                    "unterminated string in template expression", source, source[pos:], pos
                )
            pos = end + 1
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return pos
        pos += 1
    raise TemplateSyntaxError("unbalanced braces in template", source, source[start - 2:], start - 2)


def scan_template(source: str) -> list[tuple[str, str]]:
    """Split source into ("text", ...) and ("expr", ...) pieces."""
    pieces: list[tuple[str, str]] = []
    text: list[str] = []
    pos = 0
    while True:
        start = source.find(OPEN, pos)
        if start == -1:
            text.append(source[pos:])
            break
        if start > 0 and source[start - 1] == "\\":
            text.append(source[pos:start - 1] + OPEN)
            pos = start + len(OPEN)
            continue
        text.append(source[pos:start])
        end = _find_close(source, start + len(OPEN))
        literal = "".join(text)
        if literal:
            pieces.append(("text", literal))
        text = []
        pieces.append(("expr", source[start + len(OPEN):end]))
        pos = end + 1
    literal = "".join(text)
    if literal or not pieces:
        pieces.append(("text", literal))
    return pieces


@functools.lru_cache(maxsize=1024)
def parse_template_literal(source: str) -> ParsedTemplate:
    """Parse source into a ParsedTemplate.

    Raises TemplateSyntaxError naming the offending ``${...}`` region.
    """
    logger.debug("parsing template %r", source)
    if not is_template_literal(source):
        return ParsedTemplate(source, (source,))

    parts: list[Part] = []
    for kind, value in scan_template(source):
        if kind == "text":
            parts.append(value)
            continue
        try:
            parts.append(parse_expression(value))
        except TemplateSyntaxError as exc:
            raise TemplateSyntaxError(
                f"invalid expression in template ({exc})",
                source,
                OPEN + value + "}",
                source.find(OPEN + value),
            ) from exc
    return ParsedTemplate(source, tuple(parts))


def evaluate_template(template: ParsedTemplate, context: Any) -> str:
    """Render template against context as a string."""
    if template.is_static:
        return "".join(template.parts)
    return "".join(
        part if isinstance(part, str) else to_display_string(evaluate(part, context))
        for part in template.parts
    )


def clear_template_cache() -> None:
    """Drop every cached template, expression and property path parse."""
    parse_template_literal.cache_clear()
    parse_expression.cache_clear()
    parse_property_path.cache_clear()
