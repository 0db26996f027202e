"""Exception types raised by templx."""

from __future__ import annotations


class TemplxError(Exception):
    """Base class for every error raised by templx."""


class TemplateSyntaxError(TemplxError, ValueError):
    """A ``${...}`` region could not be scanned or parsed."""

    def __init__(self, message: str, source: str = "", fragment: str = "", position: int = -1) -> None:
        self.source = source
        self.fragment = fragment
        self.position = position
        if fragment:
            message = f"{message}: {fragment!r}"
        if position >= 0:
            message = f"{message} (at position {position})"
        super().__init__(message)


class DisposedAccessError(TemplxError, RuntimeError):
    """A reactive cell was read after it was disposed."""


class CyclicDependencyError(TemplxError, RuntimeError):
    """A computed read itself during recomputation, or effects kept re-triggering."""
