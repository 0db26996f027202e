"""templx: reactive ``${...}`` template expressions over a signal graph."""

from importlib.metadata import version as _version

__version__ = _version("templx")

from templx._tracking import get_pending_count, untracked
from templx.errors import TemplxError, TemplateSyntaxError, DisposedAccessError, CyclicDependencyError
from templx.signal import Signal, SignalList, SignalDict, create_signal, set_scheduler
from templx.computed import Computed, computed
from templx.effect import Effect, create_effect, reaction
from templx.batch import action, batch, transaction
from templx.scope import WatcherScope
from templx.accessors import is_property_accessor, parse_property_path, resolve_property_accessor
from templx.expressions import parse_expression
from templx.evaluator import evaluate, to_display_string
from templx.templates import (
    ParsedTemplate,
    clear_template_cache,
    evaluate_template,
    is_template_literal,
    parse_template_literal,
)
from templx.binding import (
    TemplateBinding,
    bind_attribute_template,
    bind_property_template,
    bind_template,
    computed_template,
)
from templx.context import ReactiveContext, create_reactive_property
# textual is not auto-imported; import templx.textual explicitly

__all__ = [
    "Signal",
    "SignalList",
    "SignalDict",
    "create_signal",
    "set_scheduler",
    "Computed",
    "computed",
    "Effect",
    "create_effect",
    "reaction",
    "action",
    "batch",
    "transaction",
    "untracked",
    "get_pending_count",
    "WatcherScope",
    "TemplxError",
    "TemplateSyntaxError",
    "DisposedAccessError",
    "CyclicDependencyError",
    "is_property_accessor",
    "parse_property_path",
    "resolve_property_accessor",
    "parse_expression",
    "evaluate",
    "to_display_string",
    "ParsedTemplate",
    "parse_template_literal",
    "is_template_literal",
    "evaluate_template",
    "clear_template_cache",
    "TemplateBinding",
    "bind_template",
    "computed_template",
    "bind_property_template",
    "bind_attribute_template",
    "ReactiveContext",
    "create_reactive_property",
]
