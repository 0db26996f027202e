"""Batches — grouped state mutations.

Wrapping writes in an @action or ``with batch()`` defers every effect until
the outermost scope exits. Computeds are still marked dirty as each write
lands, but no effect observes the state until all writes are done.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import Callable, ParamSpec, TypeVar

from templx._tracking import begin_batch, end_batch

P = ParamSpec("P")
R = TypeVar("R")


def action(fn: Callable[P, R]) -> Callable[P, R]:
    """Decorator: batch all signal writes inside fn.

    Effects only fire after fn returns, not during.

    Usage:
        first = Signal("Ada")
        last = Signal("Lovelace")

        @action
        def rename(a, b):
            first.set(a)
            last.set(b)
            # a bound "${this.$first} ${this.$last}" recomputes once
    """

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        begin_batch()
        try:
            return fn(*args, **kwargs)
        finally:
            end_batch()

    return wrapper


@contextmanager
def batch():
    """Context manager for batching writes.

    Usage:
        with batch():
            width.set(10)
            height.set(20)
            # effects fire here, after both are set
    """
    begin_batch()
    try:
        yield
    finally:
        end_batch()


transaction = batch
