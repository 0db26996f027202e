"""Tests for WatcherScope."""

from templx import Computed, DisposedAccessError, Signal, WatcherScope, bind_template, create_effect

import pytest


class TestWatcherScope:
    def test_dispose_stops_all_effects(self):
        s = Signal(0)
        log = []
        scope = WatcherScope()
        with scope:
            create_effect(lambda: log.append(("a", s.get())))
            create_effect(lambda: log.append(("b", s.get())))
        assert len(scope) == 2

        scope.dispose()
        s.set(1)
        assert log == [("a", 0), ("b", 0)]
        assert s.observer_count == 0

    def test_dispose_tears_down_computeds(self):
        s = Signal(1)
        with WatcherScope() as scope:
            c = Computed(lambda: s.get() + 1)
        assert c.get() == 2
        scope.dispose()
        with pytest.raises(DisposedAccessError):
            c.get()

    def test_owns_bindings(self):
        s = Signal("x")
        seen = []
        with WatcherScope() as scope:
            label = bind_template("v=${this.$v}", {"$v": s})
            label.attach(seen.append)
        scope.dispose()
        s.set("y")
        assert seen == ["v=x"]

    def test_outside_with_block_is_not_current(self):
        scope = WatcherScope()
        with scope:
            pass
        create_effect(lambda: None)
        assert len(scope) == 0

    def test_adopt_after_dispose_disposes_immediately(self):
        scope = WatcherScope()
        scope.dispose()
        s = Signal(0)
        log = []
        effect = create_effect(lambda: log.append(s.get()), scope)
        assert effect.disposed
        assert log == []

    def test_dispose_is_idempotent(self):
        scope = WatcherScope("panel")
        scope.dispose()
        scope.dispose()
        assert scope.disposed
        assert "disposed" in repr(scope)

    def test_nested_scope_is_owned_by_parent(self):
        s = Signal(0)
        log = []
        with WatcherScope() as parent:
            with WatcherScope():
                create_effect(lambda: log.append(s.get()))
        parent.dispose()
        s.set(1)
        assert log == [0]

    def test_guard_blocks_late_writes(self):
        s = Signal("loading")
        scope = WatcherScope()
        on_result = scope.guard(s.set)

        on_result("first")
        assert s.get() == "first"

        scope.dispose()
        assert on_result("late") is None
        assert s.get() == "first"

    def test_release_keeps_node_alive(self):
        s = Signal(0)
        log = []
        with WatcherScope() as scope:
            effect = create_effect(lambda: log.append(s.get()))
        scope.release(effect)
        scope.dispose()
        s.set(1)
        assert log == [0, 1]

    def test_disposed_bindings_leave_the_scope(self):
        s = Signal(1)
        with WatcherScope() as scope:
            for _ in range(100):
                label = bind_template("${this.$s}", {"$s": s})
                label.attach(lambda value: None)
                label.dispose()
        assert len(scope) == 0
        assert s.observer_count == 0

    def test_detach_releases_sink(self):
        s = Signal(1)
        with WatcherScope() as scope:
            label = bind_template("${this.$s}", {"$s": s})
            detach = label.attach(lambda value: None)
        assert len(scope) == 2
        detach()
        assert len(scope) == 1

    def test_disposed_effect_and_child_scope_leave_parent(self):
        with WatcherScope() as parent:
            effect = create_effect(lambda: None)
            child = WatcherScope()
        assert len(parent) == 2
        effect.dispose()
        child.dispose()
        assert len(parent) == 0
        assert not parent.disposed

    def test_reentering_restores_outer_scope(self):
        outer = WatcherScope()
        with outer:
            with outer:
                create_effect(lambda: None)
            create_effect(lambda: None)
        create_effect(lambda: None)
        assert len(outer) == 2
