"""Tests for ReactiveContext and create_reactive_property."""

from types import SimpleNamespace

from templx import (
    Computed,
    ReactiveContext,
    Signal,
    SignalDict,
    create_reactive_property,
    reaction,
    resolve_property_accessor,
)


class TestCreateReactiveProperty:
    def test_wraps_plain_value_on_mapping(self):
        target = {}
        cell = create_reactive_property(target, "$count", 3)
        assert isinstance(cell, Signal)
        assert target["$count"] is cell
        assert cell.get() == 3

    def test_attribute_on_object(self):
        target = SimpleNamespace()
        cell = create_reactive_property(target, "count", 1)
        assert target.count is cell
        assert resolve_property_accessor("this.count", target) == 1

    def test_existing_cell_stored_as_is(self):
        source = Signal("x")
        derived = Computed(lambda: source.get() * 2)
        target = {}
        assert create_reactive_property(target, "$s", source) is source
        assert create_reactive_property(target, "$d", derived) is derived

    def test_signal_dict_target_notifies(self):
        target = SignalDict()
        seen = []
        derived = Computed(lambda: resolve_property_accessor("this.$late", target))
        reaction(derived.get, seen.append, fire_immediately=True)
        create_reactive_property(target, "$late", 7)
        assert seen == [None, 7]


class TestReactiveContext:
    def test_dollar_keys_become_signals(self):
        ctx = ReactiveContext({"$count": 3, "label": "Clicks"})
        assert isinstance(ctx["$count"], Signal)
        assert ctx["label"] == "Clicks"
        assert ctx.get("$count") == 3
        assert ctx.cell("$count") is ctx["$count"]
        assert ctx.cell("label") is None

    def test_mapping_protocol(self):
        ctx = ReactiveContext({"$a": 1, "b": 2})
        assert set(ctx) == {"$a", "b"}
        assert len(ctx) == 2
        assert "$a" in ctx
        assert "missing" not in ctx
        assert ctx.get("missing", "fallback") == "fallback"

    def test_bind_updates(self):
        ctx = ReactiveContext({"$count": 3, "label": "Clicks"})
        text = ctx.bind("${this.label}: ${this.$count}")
        assert text.get() == "Clicks: 3"
        ctx.set("$count", 4)
        assert text.get() == "Clicks: 4"

    def test_set_keeps_signal_identity(self):
        ctx = ReactiveContext({"$count": 3})
        cell = ctx["$count"]
        ctx.set("$count", 10)
        assert ctx["$count"] is cell
        assert cell.get() == 10

    def test_key_added_later_reaches_binding(self):
        ctx = ReactiveContext()
        text = ctx.bind("[${this.$late}]")
        assert text.get() == "[]"
        ctx.set("$late", "here")
        assert text.get() == "[here]"

    def test_plain_key_replaced(self):
        ctx = ReactiveContext({"label": "a"})
        text = ctx.bind("${this.label}")
        seen = []
        text.attach(seen.append)
        ctx.set("label", "b")
        assert seen == ["a", "b"]

    def test_update_is_batched(self):
        ctx = ReactiveContext({"$a": 1, "$b": 2})
        text = ctx.bind("${this.$a + this.$b}")
        seen = []
        text.attach(seen.append)
        ctx.update({"$a": 10, "$b": 20})
        assert seen == ["3", "30"]

    def test_bind_property_native(self):
        ctx = ReactiveContext({"$progress": 0.5})
        prop = ctx.bind_property("${this.$progress * 100}")
        assert prop.get() == 50

    def test_effect_owned_by_scope(self):
        ctx = ReactiveContext({"$n": 1})
        log = []
        ctx.effect(lambda: log.append(ctx.get("$n")))
        ctx.set("$n", 2)
        assert log == [1, 2]
        ctx.dispose()
        ctx.set("$n", 3)
        assert log == [1, 2]

    def test_dispose_tears_down_bindings(self):
        ctx = ReactiveContext({"$n": 1})
        text = ctx.bind("${this.$n}")
        seen = []
        text.attach(seen.append)
        ctx.dispose()
        assert text.disposed
        assert ctx.scope.disposed
        ctx.set("$n", 2)
        assert seen == ["1"]

    def test_repr(self):
        assert repr(ReactiveContext({"$a": 1})) == "ReactiveContext(['$a'])"
