"""
HEAL-EYE — Structured Logging Tests
"""

import io
import json
import logging
import os
import sys
import unittest
from unittest.mock import patch

_base = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _base)

from healeye.logging import (
    ROOT_LOGGER,
    JSONFormatter,
    WorkflowTracer,
    configure_logging,
    generate_trace_id,
    get_logger,
)


class TestLogging(unittest.TestCase):

    def setUp(self):
        self.stream = io.StringIO()
        configure_logging(level="DEBUG", stream=self.stream)
        self.addCleanup(self._reset)

    def _reset(self):
        root = logging.getLogger(ROOT_LOGGER)
        root.handlers.clear()
        root.propagate = True
        root.setLevel(logging.NOTSET)

    def _lines(self):
        return [json.loads(line) for line in self.stream.getvalue().splitlines() if line]

    def test_json_lines(self):
        get_logger("memory").info("Retrieved %d passages", 3)
        entry = self._lines()[0]
        self.assertEqual(entry["message"], "Retrieved 3 passages")
        self.assertEqual(entry["logger"], "heal_eye.memory")
        self.assertEqual(entry["level"], "INFO")
        self.assertEqual(entry["service.name"], "heal_eye")

    def test_service_version_from_caller(self):
        configure_logging(level="INFO", stream=self.stream, service_version="2.3.4")
        get_logger("api").info("up")
        self.assertEqual(self._lines()[0]["service.version"], "2.3.4")

    def test_formatter_ignores_process_environment(self):
        with patch.dict(os.environ, {"HE_VERSION": "9.9.9"}):
            formatter = JSONFormatter()
        self.assertEqual(formatter.service_version, "")

    def test_exception_fields(self):
        try:
            raise ValueError("bad payload")
        except ValueError:
            get_logger("x").error("failed", exc_info=True)
        entry = self._lines()[0]
        self.assertEqual(entry["exception.type"], "ValueError")
        self.assertEqual(entry["exception.message"], "bad payload")

    def test_configure_twice_keeps_one_handler(self):
        configure_logging(level="INFO", stream=self.stream)
        self.assertEqual(len(logging.getLogger(ROOT_LOGGER).handlers), 1)

    def test_tracer_events(self):
        tracer = WorkflowTracer(trace_id="abc123")
        tracer.on_workflow_start()
        tracer.on_step_start("collect_context_data")
        tracer.on_step_end("collect_context_data", "ok", 0.0123)
        tracer.on_step_skipped("generate_predictions", "analyze_realtime_data")
        tracer.on_provider_fallback("generate_alerts", "openai:m", "google:g")
        tracer.on_workflow_end("success", 1.234, steps_completed=6)

        lines = self._lines()
        self.assertEqual([l["action"] for l in lines], [
            "workflow_start", "step_start", "step_end",
            "step_skipped", "provider_fallback", "workflow_end",
        ])
        self.assertTrue(all(l["trace_id"] == "abc123" for l in lines))
        self.assertEqual(lines[2]["latency_ms"], 12.3)
        self.assertEqual(lines[3]["dependency"], "analyze_realtime_data")
        self.assertEqual(lines[4]["level"], "WARNING")
        self.assertEqual(lines[5]["steps_completed"], 6)

    def test_step_error_truncated(self):
        WorkflowTracer().on_step_end("s", "error", 0.1, error="x" * 1000)
        entry = self._lines()[0]
        self.assertEqual(entry["level"], "WARNING")
        self.assertEqual(len(entry["error"]), 500)

    def test_disabled_level_emits_nothing(self):
        configure_logging(level="ERROR", stream=self.stream)
        WorkflowTracer().on_step_start("s")
        self.assertEqual(self.stream.getvalue(), "")


class TestHelpers(unittest.TestCase):

    def test_trace_id(self):
        tid = generate_trace_id()
        self.assertEqual(len(tid), 32)
        self.assertNotEqual(tid, generate_trace_id())

    def test_formatter_without_structured(self):
        record = logging.LogRecord("heal_eye.t", logging.INFO, "", 0, "plain", (), None)
        entry = json.loads(JSONFormatter().format(record))
        self.assertEqual(entry["message"], "plain")
        self.assertNotIn("trace_id", entry)


if __name__ == "__main__":
    unittest.main()
