"""Unit tests for the trace sink."""
from __future__ import annotations

import unittest

from agent_loop.trace import TraceLogger


class TestTraceLogger(unittest.TestCase):
    def test_records_at_or_above_level(self) -> None:
        trace = TraceLogger(level="warn")
        trace.debug("C", "d")
        trace.info("C", "i")
        trace.warn("C", "w")
        trace.error("C", "e", {"k": 1})
        logs = trace.get_logs()
        self.assertEqual([e.level for e in logs], ["warn", "error"])
        self.assertEqual(logs[1].data, {"k": 1})
        self.assertEqual(logs[1].component, "C")

    def test_disabled_records_nothing(self) -> None:
        trace = TraceLogger(enabled=False)
        trace.error("C", "e")
        self.assertEqual(trace.get_logs(), [])

    def test_get_logs_returns_copy(self) -> None:
        trace = TraceLogger()
        trace.info("C", "i")
        trace.get_logs().clear()
        self.assertEqual(len(trace.get_logs()), 1)

    def test_clear_logs(self) -> None:
        trace = TraceLogger()
        trace.info("C", "i")
        trace.clear_logs()
        self.assertEqual(trace.get_logs(), [])

    def test_forwards_to_stdlib_logging(self) -> None:
        trace = TraceLogger(level="debug")
        with self.assertLogs("agent_loop.ToolManager", level="DEBUG") as captured:
            trace.warn("ToolManager", "retrying", {"attempt": 1})
        self.assertEqual(captured.records[0].levelname, "WARNING")
        self.assertEqual(captured.records[0].trace_data, {"attempt": 1})

    def test_entry_to_dict(self) -> None:
        trace = TraceLogger()
        trace.info("C", "i", {"obj": object})
        entry = trace.get_logs()[0].to_dict()
        self.assertEqual(entry["level"], "info")
        self.assertIsInstance(entry["data"]["obj"], str)

    def test_unknown_level_rejected(self) -> None:
        with self.assertRaises(ValueError):
            TraceLogger(level="verbose")


if __name__ == "__main__":
    unittest.main()
