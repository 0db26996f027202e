"""Effects — side effects triggered by reactive state changes.

Unlike Computed (which is lazy and only evaluates on read), an Effect
eagerly re-runs whenever its tracked dependencies change. Re-runs are
queued and flushed at the end of the propagation batch, so an effect runs
at most once per batch no matter how many of its dependencies changed.

Two flavors:
- create_effect(fn): runs fn immediately, re-runs when any cell it read changes.
  fn may return a cleanup callable, invoked before the next run and on dispose.
- reaction(data_fn, effect_fn): tracks data_fn, calls effect_fn with the new
  value only when data_fn's result changes.

All state lives in _anchor — instances are thin handles holding an _id.
"""

from __future__ import annotations

from typing import Callable, TypeVar

from templx import _anchor
from templx._tracking import begin_batch, current_derivation, describe, end_batch, schedule
from templx.scope import WatcherScope, adopt, release_from_owner

T = TypeVar("T")


class Effect:
    """A reactive side effect that re-runs when its dependencies change."""

    __slots__ = ("_id", "_cleanup", "_owner")

    def __init__(self, fn: Callable[[], object], *, scope: WatcherScope | None = None) -> None:
        self._id = _anchor.new_id()
        self._cleanup = None
        _anchor.derivation_fns[self._id] = fn
        _anchor.dependencies[self._id] = set()
        _anchor.disposed[self._id] = False
        self._owner = None
        self._owner = adopt(self, scope)

    @property
    def _fn(self) -> Callable[[], object]:
        return _anchor.derivation_fns[self._id]

    @property
    def _dependencies(self) -> set:
        return _anchor.dependencies[self._id]

    @property
    def disposed(self) -> bool:
        return _anchor.disposed[self._id]

    def _invalidate(self) -> None:
        if not _anchor.disposed[self._id]:
            schedule(self)

    def _untrack_all(self) -> None:
        for dep in _anchor.dependencies[self._id]:
            dep._remove_observer(self)
        _anchor.dependencies[self._id].clear()

    def _run_cleanup(self) -> None:
        cleanup, self._cleanup = self._cleanup, None
        if cleanup is not None:
            cleanup()

    def _run(self) -> None:
        """Re-evaluate the effect function, re-tracking dependencies."""
        if _anchor.disposed[self._id]:
            return

        self._run_cleanup()
        self._untrack_all()

        token = current_derivation.set(self)
        try:
            result = self._fn()
        finally:
            current_derivation.reset(token)

        if callable(result):
            self._cleanup = result

    def dispose(self) -> None:
        """Stop this effect. Disconnects from all dependencies."""
        if _anchor.disposed[self._id]:
            return
        self._untrack_all()
        release_from_owner(self)
        _anchor.release(self._id)
        self._run_cleanup()

    def __repr__(self) -> str:
        if _anchor.disposed[self._id]:
            return f"Effect(#{self._id}, disposed)"
        return f"Effect({describe(self._fn)}, active)"


class _ValueEffect(Effect):
    """Internal: reaction(data_fn, effect_fn) implementation.

    Tracks data_fn's dependencies. When they change, re-runs data_fn.
    If the result differs from last time, calls effect_fn with the new value.
    effect_fn runs outside data_fn's tracking context.
    """

    __slots__ = ("_effect_fn", "_last_value", "_initialized")

    def __init__(self, data_fn: Callable, effect_fn: Callable, *, scope: WatcherScope | None = None) -> None:
        super().__init__(data_fn, scope=scope)
        self._effect_fn = effect_fn
        self._last_value = None
        self._initialized = False

    def _evaluate(self):
        self._untrack_all()
        token = current_derivation.set(self)
        try:
            return self._fn()
        finally:
            current_derivation.reset(token)

    def _run(self) -> None:
        if _anchor.disposed[self._id]:
            return

        new_value = self._evaluate()

        if not self._initialized or new_value != self._last_value:
            self._last_value = new_value
            self._initialized = True
            self._effect_fn(new_value)

    def __repr__(self) -> str:
        if _anchor.disposed[self._id]:
            return f"_ValueEffect(#{self._id}, disposed)"
        return f"_ValueEffect({describe(self._fn)}, active)"


def create_effect(fn: Callable[[], object], scope: WatcherScope | None = None) -> Effect:
    """Run fn immediately, then re-run whenever any cell it reads changes.

    The effect belongs to scope (or the current scope, if any) and stops when
    that scope is disposed. Returns the Effect; call .dispose() to stop it early.

    Usage:
        counter = Signal(0)
        log = []

        effect = create_effect(lambda: log.append(counter.get()))
        # log == [0]: ran immediately

        counter.set(1)
        # log == [0, 1]: re-ran because counter changed

        effect.dispose()
        counter.set(2)
        # log == [0, 1]: stopped
    """
    effect = Effect(fn, scope=scope)
    begin_batch()
    try:
        effect._run()  # Initial run to establish dependencies
    finally:
        end_batch()
    return effect


def reaction(
    data_fn: Callable[[], T],
    effect_fn: Callable[[T], None],
    *,
    fire_immediately: bool = False,
    scope: WatcherScope | None = None,
) -> _ValueEffect:
    """Track data_fn's cells; call effect_fn when the result changes.

    Unlike create_effect, effect_fn only fires when data_fn's *return value*
    changes, not on every dependency notification.

    Returns the effect (call .dispose() to stop).

    Usage:
        first = Signal("Alice")
        last = Signal("Smith")

        names = []
        r = reaction(
            lambda: f"{first.get()} {last.get()}",
            lambda name: names.append(name),
        )
        # names == []: data_fn ran to establish deps, but effect doesn't fire yet

        first.set("Bob")
        # names == ["Bob Smith"]

        r.dispose()
    """
    r = _ValueEffect(data_fn, effect_fn, scope=scope)
    begin_batch()
    try:
        if fire_immediately:
            r._run()
        else:
            # Run data_fn to establish deps, but suppress the initial effect
            r._last_value = r._evaluate()
            r._initialized = True
    finally:
        end_batch()
    return r
