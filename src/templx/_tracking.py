"""Dependency tracking engine — the heart of templx.

Uses contextvars to track which cells are read during a computed/effect
evaluation, building the dependency graph automatically.

Propagation: every write opens a batch. Inside it, computeds are marked dirty
synchronously (transitively) while effects are queued. When the outermost
batch closes the queue is flushed, so an effect never sees one dependency
updated and another stale, and runs once per batch.
"""

from __future__ import annotations

import contextvars
import logging
from typing import TYPE_CHECKING, Callable, TypeVar

from templx.errors import CyclicDependencyError

if TYPE_CHECKING:
    from templx.computed import Computed
    from templx.effect import Effect

    Derivation = Computed | Effect

T = TypeVar("T")

logger = logging.getLogger("templx.tracking")

# Effects re-queued past this many flush rounds are treated as a feedback loop.
MAX_FLUSH_ROUNDS = 100

# The currently-evaluating derivation (computed or effect).
# When set, any Signal.get() call registers itself as a dependency.
current_derivation: contextvars.ContextVar[Derivation | None] = contextvars.ContextVar(
    "current_derivation", default=None
)

# Batch depth counter. When > 0, effects are deferred.
_batch_depth: int = 0

# Effects that were invalidated during a batch, awaiting flush.
# A dict keeps insertion order so effects run in the order they were queued.
_pending: dict[Derivation, None] = {}


def track(cell) -> None:
    """Register the current derivation as an observer of cell."""
    derivation = current_derivation.get()
    if derivation is not None:
        cell._add_observer(derivation)
        derivation._dependencies.add(cell)


def begin_batch() -> None:
    """Enter a batching scope. Nested batches are supported."""
    global _batch_depth
    _batch_depth += 1


def end_batch() -> None:
    """Exit a batching scope. The outermost scope flushes pending effects.

    The depth stays above zero while flushing, so writes made by effects
    are folded into the running flush instead of recursing.
    """
    global _batch_depth
    if _batch_depth == 1:
        try:
            _flush_pending()
        finally:
            _batch_depth -= 1
    else:
        _batch_depth -= 1


def notify(observers) -> None:
    """Propagate a change to a set of observers inside one batch."""
    begin_batch()
    try:
        for observer in list(observers):
            observer._invalidate()
    finally:
        end_batch()


def schedule(derivation: Derivation) -> None:
    """Queue an effect for the current flush."""
    _pending[derivation] = None


def _flush_pending() -> None:
    """Run all pending effects. Handles effects scheduled during flush.

    An effect that raises does not stop the flush: every other queued effect
    still runs, and the first error is re-raised once the queue is empty.
    """
    rounds = 0
    error: Exception | None = None
    while _pending:
        rounds += 1
        if rounds > MAX_FLUSH_ROUNDS:
            stuck = list(_pending)
            _pending.clear()
            raise CyclicDependencyError(
                f"effects still pending after {MAX_FLUSH_ROUNDS} flush rounds: {stuck!r}"
            ) from error
        # Snapshot and clear; effects may schedule new ones during run.
        batch = list(_pending)
        _pending.clear()
        logger.debug("flush round %d: %d effect(s)", rounds, len(batch))
        for derivation in batch:
            try:
                derivation._run()
            except Exception as exc:
                if error is None:
                    error = exc
                else:
                    logger.exception("effect %r failed during flush", derivation)
    if error is not None:
        raise error


def describe(fn: Callable) -> str:
    """Name of fn for messages; partials and callable objects fall back to repr()."""
    return getattr(fn, "__name__", None) or repr(fn)


def untracked(fn: Callable[[], T]) -> T:
    """Call fn without registering any dependency on the current derivation."""
    token = current_derivation.set(None)
    try:
        return fn()
    finally:
        current_derivation.reset(token)


def get_pending_count() -> int:
    """Number of effects waiting to run. Useful for testing."""
    return len(_pending)
