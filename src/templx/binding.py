"""Template bindings — parsed templates turned into live computed values.

bind_template() wraps a ParsedTemplate and a context in a TemplateBinding,
a Computed whose function renders the template. Every property read during
rendering goes through Signal.get(), so the binding tracks exactly the cells
the last render touched and nothing else.

A binding knows nothing about where its value ends up. Sinks (a widget's
text, an attribute setter, a plain callback) subscribe with attach() and are
called with each new value until detached or until the binding is disposed.

    count = Signal(2)
    label = bind_template("Count: ${this.$count}", {"$count": count})
    detach = label.attach(print)     # prints "Count: 2"
    count.set(3)                     # prints "Count: 3"
    detach()
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar

from templx.computed import Computed
from templx.effect import _ValueEffect, reaction
from templx.evaluator import evaluate
from templx.scope import WatcherScope
from templx.templates import ParsedTemplate, evaluate_template, parse_template_literal

T = TypeVar("T")

Sink = Callable[[Any], None]


class TemplateBinding(Computed[T]):
    """A Computed rendering one template against one context."""

    __slots__ = ("template", "context", "_sinks")

    def __init__(
        self,
        template: ParsedTemplate,
        context: Any,
        fn: Callable[[], T],
        *,
        scope: WatcherScope | None = None,
    ) -> None:
        self.template = template
        self.context = context
        self._sinks: dict[Sink, _ValueEffect] = {}
        super().__init__(fn, scope=scope)

    @property
    def sink_count(self) -> int:
        return len(self._sinks)

    def attach(self, sink: Sink) -> Callable[[], None]:
        """Call sink with the current value now and with every new value.

        Returns a callable that detaches the sink.
        """
        if sink in self._sinks:
            return lambda: self.detach(sink)
        self._sinks[sink] = reaction(self.get, sink, fire_immediately=True)
        return lambda: self.detach(sink)

    def detach(self, sink: Sink) -> None:
        effect = self._sinks.pop(sink, None)
        if effect is not None:
            effect.dispose()

    def dispose(self) -> None:
        """Detach every sink, then disconnect the computed."""
        sinks, self._sinks = self._sinks, {}
        for effect in sinks.values():
            effect.dispose()
        super().dispose()

    def __repr__(self) -> str:
        return f"TemplateBinding({self.template.source!r}, {len(self._sinks)} sink(s))"


def _as_template(template: ParsedTemplate | str) -> ParsedTemplate:
    if isinstance(template, ParsedTemplate):
        return template
    return parse_template_literal(template)


def bind_template(
    template: ParsedTemplate | str,
    context: Any,
    *,
    scope: WatcherScope | None = None,
) -> TemplateBinding[str]:
    """Bind template to context as a string-valued computed.

    A template without expressions yields a constant binding that never
    invokes the evaluator.
    """
    parsed = _as_template(template)
    if parsed.is_static:
        text = "".join(parsed.parts)
        return TemplateBinding(parsed, context, lambda: text, scope=scope)
    return TemplateBinding(parsed, context, lambda: evaluate_template(parsed, context), scope=scope)


def computed_template(source: str, context: Any, *, scope: WatcherScope | None = None) -> TemplateBinding[str]:
    """Parse and bind in one step."""
    return bind_template(parse_template_literal(source), context, scope=scope)


def bind_property_template(
    template: ParsedTemplate | str,
    context: Any,
    *,
    scope: WatcherScope | None = None,
) -> TemplateBinding[Any]:
    """Bind for a property sink.

    A pure expression (``"${...}"`` with no surrounding text) keeps the
    expression's native value: numbers stay numbers, None stays None.
    Anything else renders to a string.
    """
    parsed = _as_template(template)
    if parsed.is_pure_expression:
        node = parsed.parts[0]
        return TemplateBinding(parsed, context, lambda: evaluate(node, context), scope=scope)
    return bind_template(parsed, context, scope=scope)


def bind_attribute_template(
    template: ParsedTemplate | str,
    context: Any,
    *,
    scope: WatcherScope | None = None,
) -> TemplateBinding[str]:
    """Bind for an attribute sink.

    Attribute values are always strings, pure expressions included; None
    renders as the empty string.
    """
    return bind_template(_as_template(template), context, scope=scope)
