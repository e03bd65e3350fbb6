"""
HEAL-EYE — Capability Gateway Tests
"""

import os
import sys
import unittest

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from _fakes import PASSAGES, FakeMemoryStore, FakeProvider, make_config, make_gateway

from healeye.errors import ExternalServiceError
from healeye.gateway import create_gateway
from healeye.memory import LangbaseMemoryStore


class Flaky:
    """Memory store failing with the given errors before answering."""

    def __init__(self, errors):
        self.errors = list(errors)
        self.calls = 0

    def retrieve(self, query, memories):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return PASSAGES


class TestRetrieveContext(unittest.TestCase):

    def test_default_sources(self):
        memory = FakeMemoryStore()
        gateway = make_gateway(FakeProvider(), memory=memory)
        self.assertEqual(gateway.retrieve_context("Diwali"), PASSAGES)
        self.assertEqual(memory.calls, [("Diwali", ["hospital-records", "health-trends"])])

    def test_explicit_sources(self):
        memory = FakeMemoryStore()
        make_gateway(FakeProvider(), memory=memory).retrieve_context("q", ["festival-calendar"])
        self.assertEqual(memory.calls[0][1], ["festival-calendar"])

    def test_overloaded_store_retried(self):
        sleeps = []
        store = Flaky([ExternalServiceError("Rate limit exceeded")])
        gateway = make_gateway(FakeProvider(), memory=store, sleeps=sleeps)
        self.assertEqual(gateway.retrieve_context("q"), PASSAGES)
        self.assertEqual(store.calls, 2)
        self.assertEqual(sleeps, [0.5])

    def test_unexpected_failure_wrapped(self):
        store = Flaky([KeyError("text")])
        with self.assertRaises(ExternalServiceError) as ctx:
            make_gateway(FakeProvider(), memory=store).retrieve_context("q")
        self.assertIn("Context retrieval failed", ctx.exception.message)
        self.assertEqual(store.calls, 1)


class TestToolsAndSession(unittest.TestCase):

    def test_tool_schemas_and_invoke(self):
        gateway = make_gateway(FakeProvider())
        self.assertEqual(len(gateway.tool_schemas()), 3)
        self.assertIn('"location": "Delhi"',
                      gateway.invoke_tool("fetch_weather_aqi_data", '{"location": "Delhi"}'))
        self.assertEqual(gateway.invoke_tool("nope", "{}"), "Tool not found")

    def test_run_agent_passes_tools(self):
        provider = FakeProvider()
        gateway = make_gateway(provider)
        gateway.run_agent("i", [{"role": "user", "content": "x"}], tools=gateway.tool_schemas())
        self.assertEqual(len(provider.calls[0]["tools"]), 3)

    def test_close_idempotent(self):
        memory = FakeMemoryStore()
        gateway = make_gateway(FakeProvider(), memory=memory)
        gateway.close()
        gateway.close()
        self.assertEqual(memory.closed, 1)


class TestCreateGateway(unittest.TestCase):

    def test_openai_primary_with_lazy_google_secondary(self):
        cfg = make_config()
        gateway = create_gateway(cfg)
        try:
            self.assertEqual(gateway.selector.primary.label, "openai:gpt-5-mini-2025-08-07")
            self.assertIsNone(gateway.selector._secondary)
            self.assertIsInstance(gateway.memory_store, LangbaseMemoryStore)
            self.assertEqual(gateway.memories, cfg.memories)
            self.assertEqual(gateway.retry_policy, cfg.retry)
        finally:
            gateway.close()

    def test_no_secondary_without_credential(self):
        gateway = create_gateway(make_config(google_api_key=""))
        try:
            self.assertIsNone(gateway.selector.secondary)
        finally:
            gateway.close()


if __name__ == "__main__":
    unittest.main()
