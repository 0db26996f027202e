"""Textual integration for templx. Opt-in — requires textual.

Pushes template bindings into Textual widgets: bind_text() feeds a widget's
update(), bind_property() sets a widget attribute. Sinks are guarded:

- skipped while the app is not running or inside pause(app);
- NoMatches from widget queries is swallowed (the widget is gone);
- calls from a background thread are marshaled through call_from_thread.

Textual coupling stays in this module; the core is widget-agnostic.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable

from textual.css.query import NoMatches

from templx.binding import TemplateBinding, bind_property_template, bind_template
from templx.scope import WatcherScope
from templx.templates import ParsedTemplate

logger = logging.getLogger("templx.textual")

# Paused apps, keyed by id(app).
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend guarded sinks during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def guarded_sink(app, sink: Callable[[Any], None]) -> Callable[[Any], None]:
    """Wrap sink with the pause/NoMatches/thread guards."""
    main = threading.get_ident()

    def _safe(value):
        try:
            sink(value)
        except NoMatches:
            logger.debug("sink target vanished; value %r dropped", value)

    def _guarded(value):
        if not is_safe(app):
            return
        if threading.get_ident() != main:
            app.call_from_thread(_safe, value)
        else:
            _safe(value)

    return _guarded


def bind_text(
    app,
    widget,
    template: ParsedTemplate | str,
    context: Any,
    *,
    scope: WatcherScope | None = None,
) -> TemplateBinding[str]:
    """Keep widget's content equal to the rendered template (via widget.update)."""
    binding = bind_template(template, context, scope=scope)
    binding.attach(guarded_sink(app, widget.update))
    return binding


def bind_property(
    app,
    widget,
    name: str,
    template: ParsedTemplate | str,
    context: Any,
    *,
    scope: WatcherScope | None = None,
) -> TemplateBinding[Any]:
    """Keep widget.<name> equal to the template's value.

    Pure expressions keep their native type, e.g. ``"${this.$progress}"``
    sets a number on ProgressBar.progress.
    """
    binding = bind_property_template(template, context, scope=scope)
    binding.attach(guarded_sink(app, lambda value: setattr(widget, name, value)))
    return binding
