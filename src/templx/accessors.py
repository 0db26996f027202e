"""Property accessors — read-only path resolution against a binding context.

A property path is a chain of segments in dot and bracket syntax::

    this.$count
    this.$items[0].name
    this['$user']["first name"]
    $count            (bare paths resolve against the context as well)

Resolution reads one segment at a time. Whenever the value in hand is a
Signal or Computed it is unwrapped through ``.get()`` first, so reads inside
a derivation are tracked like any other. A missing segment yields ``None``
instead of raising; paths always fail soft.

Only reads are supported — nothing here calls a method.
"""

from __future__ import annotations

import functools
import re
from collections.abc import Mapping, Sequence, Sized
from typing import Any, Union

from templx.computed import Computed
from templx.errors import TemplateSyntaxError
from templx.signal import Signal

Segment = Union[str, int]

ROOT = "this"

_IDENT = r"[A-Za-z_$][\w$]*"
_IDENT_RX = re.compile(_IDENT)
_INDEX_RX = re.compile(r"\[\s*(\d+)\s*\]")
_QUOTED_RX = re.compile(r"""\[\s*(?:'((?:[^'\\]|\\.)*)'|"((?:[^"\\]|\\.)*)")\s*\]""")
_ACCESSOR_RX = re.compile(
    rf"""{ROOT}(?:\??\.{_IDENT}|\[\s*\d+\s*\]|\[\s*'(?:[^'\\]|\\.)*'\s*\]|\[\s*"(?:[^"\\]|\\.)*"\s*\])+"""
)


def is_property_accessor(value: object) -> bool:
    """True for a string that is entirely a ``this``-rooted property path."""
    return isinstance(value, str) and _ACCESSOR_RX.fullmatch(value.strip()) is not None


def _unescape(text: str) -> str:
    return re.sub(r"\\(.)", r"\1", text)


@functools.lru_cache(maxsize=1024)
def parse_property_path(path: str) -> tuple[Segment, ...]:
    """Split a path into segments. A leading ``this`` is dropped.

    Raises TemplateSyntaxError for anything that is not a plain path.
    """
    text = path.strip()
    segments: list[Segment] = []
    pos = 0

    match = _IDENT_RX.match(text)
    if match is None:
        raise TemplateSyntaxError("invalid property path", path, text, 0)
    if match.group(0) != ROOT:
        segments.append(match.group(0))
    pos = match.end()

    while pos < len(text):
        if text.startswith("?.", pos) or text.startswith(".", pos):
            pos += 2 if text[pos] == "?" else 1
            match = _IDENT_RX.match(text, pos)
            if match is None:
                raise TemplateSyntaxError("expected property name", path, text[pos:], pos)
            segments.append(match.group(0))
        elif (match := _INDEX_RX.match(text, pos)) is not None:
            segments.append(int(match.group(1)))
        elif (match := _QUOTED_RX.match(text, pos)) is not None:
            raw = match.group(1) if match.group(1) is not None else match.group(2)
            segments.append(_unescape(raw))
        else:
            raise TemplateSyntaxError("unexpected text in property path", path, text[pos:], pos)
        pos = match.end()

    return tuple(segments)


def unwrap(value: Any) -> Any:
    """Read through Signal/Computed cells until a plain value remains."""
    while isinstance(value, (Signal, Computed)):
        value = value.get()
    return value


def read_segment(obj: Any, segment: Segment) -> Any:
    """Read one segment from obj, returning None when it is absent."""
    if obj is None:
        return None

    if isinstance(obj, Mapping):
        return obj[segment] if segment in obj else None

    if isinstance(segment, int):
        if isinstance(obj, Sequence):
            return obj[segment] if 0 <= segment < len(obj) else None
        return None

    if segment.startswith("__"):
        return None
    if segment == "length" and isinstance(obj, Sized) and not hasattr(obj, "length"):
        return len(obj)
    return getattr(obj, segment, None)


def resolve_path(segments: tuple[Segment, ...], context: Any) -> Any:
    """Walk pre-parsed segments from context, unwrapping cells on the way."""
    value = unwrap(context)
    for segment in segments:
        value = unwrap(read_segment(value, segment))
        if value is None:
            return None
    return value


def resolve_property_accessor(path: str, context: Any) -> Any:
    """Resolve a dotted/bracketed path against context.

    >>> resolve_property_accessor("this.$count", {"$count": Signal(3)})
    3
    >>> resolve_property_accessor("this.missing.deeper", {}) is None
    True
    """
    return resolve_path(parse_property_path(path), context)
