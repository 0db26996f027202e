"""Watcher scopes — disposal units for computeds and effects.

A WatcherScope owns every Computed, Effect and TemplateBinding created while
it is the current scope (``with scope:``) or passed to it explicitly.
Disposing the scope disposes all of them, so nothing created during a
component's lifetime keeps reacting after the component is torn down.

A node disposed on its own leaves its scope at the same time, so a
long-lived scope only holds what is still alive.
"""

from __future__ import annotations

import contextvars
import functools
import logging
from typing import Callable, ParamSpec, TypeVar

P = ParamSpec("P")
R = TypeVar("R")

logger = logging.getLogger("templx.scope")

current_scope: contextvars.ContextVar[WatcherScope | None] = contextvars.ContextVar(
    "current_scope", default=None
)


class WatcherScope:
    """Owns reactive nodes and disposes them together."""

    __slots__ = ("_children", "_disposed", "_tokens", "_owner", "name")

    def __init__(self, name: str | None = None) -> None:
        self.name = name
        # Insertion-ordered set of owned nodes.
        self._children: dict = {}
        self._disposed = False
        self._tokens: list[contextvars.Token] = []
        self._owner = None
        self._owner = adopt(self)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def __len__(self) -> int:
        return len(self._children)

    def adopt(self, node):
        """Take ownership of node (anything with a dispose() method).

        Adopting into a disposed scope disposes the node straight away.
        """
        if self._disposed:
            node.dispose()
        else:
            self._children[node] = None
        return node

    def release(self, node) -> None:
        """Forget node without disposing it."""
        self._children.pop(node, None)

    def guard(self, fn: Callable[P, R]) -> Callable[P, R | None]:
        """Wrap fn so it does nothing once this scope is disposed.

        Use it for callbacks handed to external async sources that may
        complete after the owning component is gone.
        """

        @functools.wraps(fn)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R | None:
            if self._disposed:
                logger.debug("dropped call to %r on disposed scope %r", fn, self)
                return None
            return fn(*args, **kwargs)

        return wrapper

    def dispose(self) -> None:
        """Dispose every owned node, newest first. Idempotent."""
        if self._disposed:
            return
        self._disposed = True
        release_from_owner(self)
        children = list(self._children)
        self._children.clear()
        logger.debug("disposing scope %r (%d node(s))", self, len(children))
        for node in reversed(children):
            node.dispose()

    def __enter__(self) -> WatcherScope:
        self._tokens.append(current_scope.set(self))
        return self

    def __exit__(self, *exc_info) -> None:
        current_scope.reset(self._tokens.pop())

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else f"{len(self._children)} node(s)"
        label = f"{self.name!r}, " if self.name else ""
        return f"WatcherScope({label}{state})"


def adopt(node, scope: WatcherScope | None = None) -> WatcherScope | None:
    """Register node with scope, or the current scope when none is given.

    Returns the scope now owning node, or None. Nodes keep it in their
    ``_owner`` slot and hand it to release_from_owner() when disposed.
    """
    owner = scope if scope is not None else current_scope.get()
    if owner is None:
        return None
    owner.adopt(node)
    return None if owner.disposed else owner


def release_from_owner(node) -> None:
    """Detach a node that is being disposed from the scope that owns it."""
    owner, node._owner = node._owner, None
    if owner is not None:
        owner.release(node)
