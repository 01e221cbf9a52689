"""Tests for fieldkit/events.py - synchronous listener registry."""

from __future__ import annotations

import logging

import pytest

from fieldkit.events import EventEmitter


class TestEventEmitter:
    """Tests for EventEmitter."""

    def test_delivers_payload_in_registration_order(self):
        emitter = EventEmitter()
        calls = []
        emitter.on("change", lambda *args: calls.append(("first", args)))
        emitter.on("change", lambda *args: calls.append(("second", args)))

        assert emitter.emit("change", True, emitter) is True
        assert calls == [("first", (True, emitter)), ("second", (True, emitter))]

    def test_emit_without_listeners(self):
        assert EventEmitter().emit("nothing") is False

    def test_events_are_separate(self):
        emitter = EventEmitter()
        calls = []
        emitter.on("a", calls.append)
        emitter.emit("b", 1)
        assert calls == []

    def test_on_returns_listener(self):
        emitter = EventEmitter()
        calls = []

        def listener(value):
            calls.append(value)

        assert emitter.on("x", listener) is listener
        emitter.emit("x", 1)
        assert calls == [1]

    def test_off_removes_one_listener(self):
        emitter = EventEmitter()
        calls = []

        def listener(value):
            calls.append(value)

        emitter.on("x", listener)
        emitter.on("x", listener)
        emitter.off("x", listener)
        emitter.emit("x", 1)
        assert calls == [1]

    def test_off_all(self):
        emitter = EventEmitter()
        calls = []
        emitter.on("x", calls.append)
        emitter.on("x", calls.append)
        emitter.off("x")
        emitter.emit("x", 1)
        assert calls == []
        assert emitter.listeners("x") == []

    def test_off_unknown_is_noop(self):
        emitter = EventEmitter()
        emitter.off("x", print)
        emitter.off("y")

    def test_once(self):
        emitter = EventEmitter()
        calls = []
        emitter.once("x", calls.append)
        emitter.emit("x", 1)
        emitter.emit("x", 2)
        assert calls == [1]

    def test_once_removed_with_original(self):
        emitter = EventEmitter()
        calls = []
        emitter.once("x", calls.append)
        emitter.off("x", calls.append)
        emitter.emit("x", 1)
        assert calls == []

    def test_listener_removed_during_dispatch_still_called(self):
        """Listeners registered when dispatch began all receive it."""
        emitter = EventEmitter()
        calls = []

        def second(value):
            calls.append(("second", value))

        def first(value):
            calls.append(("first", value))
            emitter.off("x", second)

        emitter.on("x", first)
        emitter.on("x", second)
        emitter.emit("x", 1)
        emitter.emit("x", 2)
        assert calls == [("first", 1), ("second", 1), ("first", 2)]

    def test_listener_added_during_dispatch_waits(self):
        emitter = EventEmitter()
        calls = []

        def late(value):
            calls.append(("late", value))

        def first(value):
            calls.append(("first", value))
            emitter.on("x", late)

        emitter.once("x", first)
        emitter.emit("x", 1)
        emitter.emit("x", 2)
        assert calls == [("first", 1), ("late", 2)]

    def test_listener_errors_propagate(self):
        emitter = EventEmitter()

        def broken(*args):
            raise RuntimeError("listener failed")

        emitter.on("x", broken)
        with pytest.raises(RuntimeError):
            emitter.emit("x")

    def test_log_events_setting(self, tmp_path, caplog):
        """Dispatches are logged when log_events is enabled."""
        (tmp_path / ".fieldkit.yaml").write_text("fieldkit:\n  log_events: true\n", encoding="utf-8")
        emitter = EventEmitter()
        emitter.on("x", lambda value: None)

        with caplog.at_level(logging.DEBUG, logger="fieldkit.events"):
            emitter.emit("x", 1)

        assert "emit x to 1 listener(s)" in caplog.text

    def test_no_logging_by_default(self, caplog):
        emitter = EventEmitter()
        with caplog.at_level(logging.DEBUG, logger="fieldkit.events"):
            emitter.emit("x", 1)
        assert caplog.text == ""
