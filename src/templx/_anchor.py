"""Data anchor — plain Python structures that hold all reactive state.

Every Signal, Computed and Effect is a thin handle over an integer id.
The dicts below are the arena: values, edges and flags are looked up by id,
so no cell ever holds a direct reference to another cell's state.
"""

import itertools

# Signal state (also used by Computed for its observer set)
values: dict[int, object] = {}
observers: dict[int, set] = {}  # cell_id -> set of derivation handles

# Derivation state (Computed + Effect)
dependencies: dict[int, set] = {}  # deriv_id -> set of cell handles
dirty_flags: dict[int, bool] = {}
cached_values: dict[int, object] = {}
derivation_fns: dict[int, object] = {}  # deriv_id -> callable
disposed: dict[int, bool] = {}

# Computeds currently inside their own recomputation.
computing: set[int] = set()

_id_counter = itertools.count(1)


def new_id() -> int:
    return next(_id_counter)


def release(cell_id: int) -> None:
    """Drop every arena entry for a disposed cell, keeping the disposed flag."""
    values.pop(cell_id, None)
    observers.pop(cell_id, None)
    dependencies.pop(cell_id, None)
    dirty_flags.pop(cell_id, None)
    cached_values.pop(cell_id, None)
    derivation_fns.pop(cell_id, None)
    computing.discard(cell_id)
    disposed[cell_id] = True
