"""Computed values — derived state with automatic dependency tracking.

A Computed wraps a function. When evaluated, it tracks which cells the
function reads and caches the result. When any dependency changes, the
cached value is invalidated. On next read, it re-evaluates.

Computed values are lazy — they only recompute when read. Dependencies are
rebuilt on every run, so a branch that was not taken is not tracked.

All state lives in _anchor — instances are thin handles holding an _id.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

from templx import _anchor
from templx._tracking import current_derivation, describe, track
from templx.errors import CyclicDependencyError, DisposedAccessError
from templx.scope import WatcherScope, adopt, release_from_owner
from templx.signal import _Cell

T = TypeVar("T")

_UNSET = object()


class _Failure:
    """Cached exception; re-raised on every read until a dependency changes."""

    __slots__ = ("error",)

    def __init__(self, error: BaseException) -> None:
        self.error = error


class Computed(_Cell, Generic[T]):
    """A derived value that auto-tracks dependencies and caches the result."""

    __slots__ = ("_id", "_owner")

    def __init__(self, fn: Callable[[], T], *, scope: WatcherScope | None = None) -> None:
        self._id = _anchor.new_id()
        _anchor.derivation_fns[self._id] = fn
        _anchor.cached_values[self._id] = _UNSET
        _anchor.dirty_flags[self._id] = True
        _anchor.dependencies[self._id] = set()
        _anchor.observers[self._id] = set()
        _anchor.disposed[self._id] = False
        self._owner = None
        self._owner = adopt(self, scope)

    @property
    def _fn(self) -> Callable[[], T]:
        return _anchor.derivation_fns[self._id]

    @property
    def _dependencies(self) -> set:
        return _anchor.dependencies[self._id]

    @property
    def disposed(self) -> bool:
        return _anchor.disposed[self._id]

    @property
    def dependency_count(self) -> int:
        return len(_anchor.dependencies.get(self._id, ()))

    def get(self) -> T:
        """Read the computed value. Recomputes if dirty."""
        if _anchor.disposed[self._id]:
            raise DisposedAccessError(f"read of disposed computed #{self._id}")
        track(self)
        return self._value()

    def peek(self) -> T:
        """Read the value without registering a dependency."""
        if _anchor.disposed[self._id]:
            raise DisposedAccessError(f"read of disposed computed #{self._id}")
        return self._value()

    def _value(self) -> T:
        if _anchor.dirty_flags[self._id]:
            self._recompute()
        value = _anchor.cached_values[self._id]
        if isinstance(value, _Failure):
            raise value.error
        return value

    def _recompute(self) -> None:
        """Re-evaluate the function, tracking dependencies."""
        if self._id in _anchor.computing:
            raise CyclicDependencyError(
                f"computed #{self._id} ({describe(self._fn)}) depends on itself"
            )

        for dep in _anchor.dependencies[self._id]:
            dep._remove_observer(self)
        _anchor.dependencies[self._id].clear()

        _anchor.computing.add(self._id)
        token = current_derivation.set(self)
        try:
            value = self._fn()
        except CyclicDependencyError:
            # Leave the node dirty so the cycle is reported on every read.
            raise
        except Exception as exc:
            value = _Failure(exc)
        finally:
            current_derivation.reset(token)
            _anchor.computing.discard(self._id)

        _anchor.cached_values[self._id] = value
        _anchor.dirty_flags[self._id] = False

    def _invalidate(self) -> None:
        """Called when a dependency changed.

        Mark dirty and propagate to our own observers right away, so every
        downstream computed is dirty before any effect runs. Recomputation
        itself waits for the next .get().
        """
        if not _anchor.dirty_flags.get(self._id, True):
            _anchor.dirty_flags[self._id] = True
            for observer in list(_anchor.observers[self._id]):
                observer._invalidate()

    def dispose(self) -> None:
        """Disconnect from all dependencies. Further reads raise DisposedAccessError."""
        if _anchor.disposed.get(self._id):
            return
        for dep in _anchor.dependencies[self._id]:
            dep._remove_observer(self)
        release_from_owner(self)
        _anchor.release(self._id)

    def __repr__(self) -> str:
        if _anchor.disposed.get(self._id):
            return f"Computed(#{self._id}, disposed)"
        dirty = _anchor.dirty_flags[self._id]
        val = _anchor.cached_values[self._id]
        state = "dirty" if dirty else f"cached={val!r}"
        return f"Computed({describe(self._fn)}, {state})"


def computed(fn: Callable[[], T]) -> Computed[T]:
    """Decorator/factory to create a Computed from a function.

    Usage:
        counter = Signal(0)

        @computed
        def doubled():
            return counter.get() * 2

        doubled.get()  # 0
        counter.set(5)
        doubled.get()  # 10
    """
    return Computed(fn)
