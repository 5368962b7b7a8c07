"""Tests for per-emitter dispatch options."""

from __future__ import annotations

import logging
import unittest

from scoped_events import EmitterOptions, EventEmitter


class IsolatingEmitter(EventEmitter[str]):
    """Subclass that opts into error isolation at class level."""

    emitter_options = EmitterOptions(isolate_listener_errors=True)


class EmitterOptionsTests(unittest.TestCase):
    """Validate error isolation and dispatch logging switches."""

    def test_defaults(self) -> None:
        emitter: EventEmitter[str] = EventEmitter()
        self.assertFalse(emitter.options.isolate_listener_errors)
        self.assertFalse(emitter.options.log_dispatch)

    def test_options_are_frozen(self) -> None:
        options = EmitterOptions()
        with self.assertRaises(Exception):
            options.log_dispatch = True  # type: ignore[misc]

    def test_isolated_listener_errors_are_logged_and_dispatch_continues(self) -> None:
        emitter: EventEmitter[str] = EventEmitter(
            options=EmitterOptions(isolate_listener_errors=True)
        )
        calls: list[str] = []

        def failing() -> None:
            raise ValueError("boom")

        emitter.on("save", failing)
        emitter.on("save", lambda: calls.append("after"))

        with self.assertLogs("scoped_events.emitter", level="ERROR") as logs:
            emitter.emit("save")

        self.assertEqual(calls, ["after"])
        self.assertTrue(any("emitter.listener.failed" in line for line in logs.output))
        self.assertEqual(logs.records[0].event_name, "save")
        self.assertIsNotNone(logs.records[0].exc_info)

    def test_class_level_options_apply_without_init(self) -> None:
        emitter = IsolatingEmitter()
        emitter.on("save", lambda: 1 / 0)
        with self.assertLogs("scoped_events.emitter", level="ERROR"):
            emitter.emit("save")
        self.assertTrue(emitter.options.isolate_listener_errors)

    def test_instance_options_override_class_options(self) -> None:
        emitter = IsolatingEmitter(options=EmitterOptions())
        emitter.on("save", lambda: 1 / 0)
        with self.assertRaises(ZeroDivisionError):
            emitter.emit("save")

    def test_log_dispatch_emits_debug_records(self) -> None:
        emitter: EventEmitter[str] = EventEmitter(options=EmitterOptions(log_dispatch=True))

        def listener() -> None:
            pass

        with self.assertLogs("scoped_events.emitter", level="DEBUG") as logs:
            emitter.on("save", listener)
            emitter.emit("save")
            emitter.off("save", listener)

        messages = [record.getMessage() for record in logs.records]
        self.assertEqual(
            messages,
            [
                "emitter.listener.added",
                "emitter.dispatched",
                "emitter.listener.removed",
            ],
        )
        self.assertEqual(logs.records[1].listener_count, 1)

    def test_dispatch_is_silent_by_default(self) -> None:
        emitter: EventEmitter[str] = EventEmitter()
        logger = logging.getLogger("scoped_events.emitter")
        with self.assertNoLogs(logger, level="DEBUG"):
            emitter.on("save", lambda: None)
            emitter.emit("save")


if __name__ == "__main__":
    unittest.main()
