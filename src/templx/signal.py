"""Signals — mutable state that tracks its readers.

When a Signal is read inside a Computed or Effect evaluation, the dependency
is registered automatically. When the Signal changes, dependent computeds are
marked dirty and dependent effects are queued for the current batch.

All state lives in _anchor — instances are thin handles holding an _id.

Thread safety: call set_scheduler() once from the main thread. After that,
any .set() from a background thread is auto-marshaled. Main-thread .set()
remains synchronous.
"""

from __future__ import annotations

import threading
from collections.abc import MutableMapping, MutableSequence
from typing import Any, Callable, Generic, TypeVar

from templx import _anchor
from templx._tracking import notify, track

T = TypeVar("T")

# ─── Auto-marshal ────────────────────────────────────────────────────────────
_scheduler = None
_scheduler_thread = None


def set_scheduler(scheduler) -> None:
    """Set the global thread scheduler for cross-thread Signal writes.

    Call once from the main/UI thread:
        templx.set_scheduler(app.call_from_thread)

    After this, any Signal.set() from a background thread is automatically
    marshaled, so a fetch or worker finishing elsewhere can feed a signal.
    Main-thread writes remain synchronous.
    """
    global _scheduler, _scheduler_thread
    _scheduler = scheduler
    _scheduler_thread = threading.current_thread()


def _marshal(fn: Callable[[], None]) -> None:
    if _scheduler is not None and threading.current_thread() != _scheduler_thread:
        _scheduler(fn)
    else:
        fn()


def _same(old: object, new: object) -> bool:
    """Identity, or same type and equal. 1 -> True still counts as a change."""
    if old is new:
        return True
    try:
        return type(old) is type(new) and bool(old == new)
    except (TypeError, ValueError):
        # Objects with exotic __eq__ (arrays and the like) always notify.
        return False


class _Cell:
    """Observer bookkeeping shared by every trackable cell."""

    __slots__ = ()

    def _add_observer(self, observer) -> None:
        _anchor.observers[self._id].add(observer)

    def _remove_observer(self, observer) -> None:
        """Remove an observer. Called during dependency cleanup."""
        observers = _anchor.observers.get(self._id)
        if observers is not None:
            observers.discard(observer)

    def _notify(self) -> None:
        """Mark dependents dirty and flush effects."""
        notify(_anchor.observers[self._id])

    @property
    def observer_count(self) -> int:
        return len(_anchor.observers.get(self._id, ()))


class Signal(_Cell, Generic[T]):
    """A single mutable value with automatic dependency tracking."""

    __slots__ = ("_id",)

    def __init__(self, value: T) -> None:
        self._id = _anchor.new_id()
        _anchor.values[self._id] = value
        _anchor.observers[self._id] = set()

    def get(self) -> T:
        """Read the value. If inside a derivation, registers the dependency."""
        track(self)
        return _anchor.values[self._id]

    def peek(self) -> T:
        """Read the value without registering a dependency."""
        return _anchor.values[self._id]

    def set(self, value: T) -> None:
        """Write a new value. Auto-marshals from background threads."""
        _marshal(lambda v=value: self._set_direct(v))

    def update(self, fn: Callable[[T], T]) -> None:
        """Replace the value with fn(current)."""
        _marshal(lambda: self._set_direct(fn(_anchor.values[self._id])))

    def _set_direct(self, value: T) -> None:
        """Set value and notify. Always runs on the scheduler thread."""
        if not _same(_anchor.values[self._id], value):
            _anchor.values[self._id] = value
            self._notify()

    def __repr__(self) -> str:
        return f"Signal({_anchor.values[self._id]!r})"


def create_signal(initial: T) -> Signal[T]:
    """Allocate a new Signal holding initial."""
    return Signal(initial)



# ─── Collections ─────────────────────────────────────────────────────────────


class _Container(_Cell):
    """A list or dict held in the arena. Reads track; each write notifies once.

    Subclasses implement the collections.abc protocol on top of _read() and
    _write(), so the derived methods (get, pop, remove, setdefault, ...)
    track and notify without being written out here.
    """

    __slots__ = ()

    # Cells sit in dependency sets, which must compare them by identity.
    __eq__ = object.__eq__
    __hash__ = object.__hash__

    def _init(self, data) -> None:
        self._id = _anchor.new_id()
        _anchor.values[self._id] = data
        _anchor.observers[self._id] = set()

    def _read(self):
        track(self)
        return _anchor.values[self._id]

    def _write(self, method: str, *args: Any, **kwargs: Any) -> Any:
        result = getattr(_anchor.values[self._id], method)(*args, **kwargs)
        self._notify()
        return result

    def peek(self):
        """The underlying list or dict, read without tracking."""
        return _anchor.values[self._id]

    def __len__(self) -> int:
        return len(self._read())

    def __iter__(self):
        return iter(self._read())

    def __contains__(self, item: object) -> bool:
        return item in self._read()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({_anchor.values[self._id]!r})"


class SignalList(_Container, MutableSequence):
    """A reactive list, e.g. the rows behind ``${this.$items.length}``.

    Property paths see an ordinary sequence: ``[n]`` indexes it and
    ``length`` reads len(), both tracked.
    """

    __slots__ = ("_id",)

    def __init__(self, items=None) -> None:
        self._init(list(items) if items else [])

    def __getitem__(self, index):
        return self._read()[index]

    def __setitem__(self, index, value) -> None:
        self._write("__setitem__", index, value)

    def __delitem__(self, index) -> None:
        self._write("__delitem__", index)

    def insert(self, index: int, item) -> None:
        self._write("insert", index, item)

    def extend(self, items) -> None:
        self._write("extend", list(items))

    def clear(self) -> None:
        self._write("clear")


class SignalDict(_Container, MutableMapping):
    """A reactive dict. Adding a key reaches readers that found it missing."""

    __slots__ = ("_id",)

    def __init__(self, data=None) -> None:
        self._init(dict(data) if data else {})

    def __getitem__(self, key):
        return self._read()[key]

    def __setitem__(self, key, value) -> None:
        self._write("__setitem__", key, value)

    def __delitem__(self, key) -> None:
        self._write("__delitem__", key)

    def update(self, other=(), /, **kwargs) -> None:
        self._write("update", other, **kwargs)

    def clear(self) -> None:
        self._write("clear")
