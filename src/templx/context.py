"""Reactive contexts — binding contexts whose ``$`` keys are signals.

Declarative specs mark reactive state with a ``$`` prefix::

    ctx = ReactiveContext({"$count": 3, "label": "Clicks"})
    text = ctx.bind("${this.label}: ${this.$count}")
    ctx.set("$count", 4)

Every ``$`` key holds a Signal; other keys hold plain values. Entries live in
a SignalDict, so adding a key later still reaches bindings that looked it up
while it was missing. The context owns a WatcherScope, and everything bound
through it is torn down by dispose().
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from typing import Any, Callable, Iterator

from templx.batch import action
from templx.binding import TemplateBinding, bind_property_template, bind_template
from templx.computed import Computed
from templx.effect import Effect, create_effect
from templx.scope import WatcherScope
from templx.signal import Signal, SignalDict

REACTIVE_PREFIX = "$"


def is_reactive_key(key: object) -> bool:
    return isinstance(key, str) and key.startswith(REACTIVE_PREFIX)


def create_reactive_property(target: Any, name: str, value: Any) -> Signal | Computed:
    """Store a reactive cell for value at name on target and return it.

    Existing cells are stored as they are. Mappings get an item, anything
    else an attribute.
    """
    cell = value if isinstance(value, (Signal, Computed)) else Signal(value)
    if isinstance(target, MutableMapping):
        target[name] = cell
    else:
        setattr(target, name, cell)
    return cell


class ReactiveContext(Mapping):
    """Mapping-backed binding context with signal-valued ``$`` keys.

    Item access returns the stored cell (property paths unwrap it);
    get() and set() work with plain values.
    """

    def __init__(self, values: Mapping[str, Any] | None = None, *, name: str | None = None) -> None:
        self._entries: SignalDict[str, Any] = SignalDict()
        self.scope = WatcherScope(name)
        for key, value in (values or {}).items():
            self._store(key, value)

    def _store(self, key: str, value: Any) -> None:
        if is_reactive_key(key):
            create_reactive_property(self._entries, key, value)
        else:
            self._entries[key] = value

    # --- Mapping ---

    def __getitem__(self, key: str) -> Any:
        return self._entries[key]

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    # --- Values ---

    def get(self, key: str, default: Any = None) -> Any:
        """Current plain value for key (cells are read, and tracked)."""
        cell = self._entries.get(key, default)
        return cell.get() if isinstance(cell, (Signal, Computed)) else cell

    def set(self, key: str, value: Any) -> None:
        """Write key. Existing signals are updated in place."""
        cell = self._entries.get(key)
        if isinstance(cell, Signal) and not isinstance(value, (Signal, Computed)):
            cell.set(value)
        else:
            self._store(key, value)

    @action
    def update(self, values: Mapping[str, Any]) -> None:
        """Write several keys in one batch."""
        for key, value in values.items():
            self.set(key, value)

    def cell(self, key: str) -> Signal | Computed | None:
        value = self._entries.get(key)
        return value if isinstance(value, (Signal, Computed)) else None

    # --- Bindings ---

    def bind(self, source: str) -> TemplateBinding[str]:
        """Bind a template against this context, owned by its scope."""
        return bind_template(source, self, scope=self.scope)

    def bind_property(self, source: str) -> TemplateBinding[Any]:
        return bind_property_template(source, self, scope=self.scope)

    def effect(self, fn: Callable[[], object]) -> Effect:
        return create_effect(fn, self.scope)

    def dispose(self) -> None:
        self.scope.dispose()

    def __repr__(self) -> str:
        return f"ReactiveContext({list(self._entries.peek())!r})"
