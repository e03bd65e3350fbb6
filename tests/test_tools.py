"""
HEAL-EYE — Tool Registry Tests

Tests:
  - Default registry offers the three data tools with strict schemas
  - Known tools return JSON echoing their arguments
  - Unknown tool returns "Tool not found"
  - Malformed, non-object and incomplete arguments return a JSON error
  - Extra arguments are ignored
"""

import json
import os
import sys
import unittest

_base = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _base)

from healeye.tools import TOOL_NOT_FOUND, ToolRegistry, create_default_registry


class TestDefaultRegistry(unittest.TestCase):

    def setUp(self):
        self.registry = create_default_registry()

    def test_tool_names(self):
        self.assertEqual(self.registry.list_tools(), [
            "fetch_weather_aqi_data",
            "analyze_hospital_data",
            "analyze_health_trends",
        ])

    def test_schema_shape(self):
        schema = self.registry.schemas()[1]
        self.assertEqual(schema["type"], "function")
        fn = schema["function"]
        self.assertEqual(fn["name"], "analyze_hospital_data")
        self.assertTrue(fn["strict"])
        self.assertEqual(fn["parameters"]["required"], ["department", "timeframe"])
        self.assertFalse(fn["parameters"]["additionalProperties"])

    def test_weather(self):
        out = json.loads(self.registry.invoke("fetch_weather_aqi_data", '{"location": "Mumbai"}'))
        self.assertEqual(out["location"], "Mumbai")
        self.assertEqual(out["aqi"], 320)
        self.assertIn("timestamp", out)

    def test_hospital(self):
        out = json.loads(self.registry.invoke(
            "analyze_hospital_data", '{"department": "ICU", "timeframe": "30days"}'))
        self.assertEqual(out["department"], "ICU")
        self.assertEqual(out["predicted_surge"], 40)

    def test_trends(self):
        out = json.loads(self.registry.invoke(
            "analyze_health_trends", '{"keywords": ["fever", "cough"], "region": "Pune"}'))
        self.assertEqual(out["keywords"], ["fever", "cough"])
        self.assertEqual(out["region"], "Pune")

    def test_unknown_tool(self):
        self.assertEqual(self.registry.invoke("book_ambulance", "{}"), TOOL_NOT_FOUND)
        self.assertEqual(TOOL_NOT_FOUND, "Tool not found")

    def test_malformed_json(self):
        out = json.loads(self.registry.invoke("fetch_weather_aqi_data", "{location: Delhi"))
        self.assertIn("Invalid arguments", out["error"])

    def test_non_object_arguments(self):
        out = json.loads(self.registry.invoke("fetch_weather_aqi_data", '["Delhi"]'))
        self.assertIn("must be an object", out["error"])

    def test_missing_arguments(self):
        out = json.loads(self.registry.invoke("analyze_hospital_data", '{"department": "ICU"}'))
        self.assertEqual(out["error"], "Missing arguments for analyze_hospital_data: timeframe")

    def test_extra_arguments_ignored(self):
        out = json.loads(self.registry.invoke(
            "fetch_weather_aqi_data", '{"location": "Delhi", "units": "metric"}'))
        self.assertEqual(out["location"], "Delhi")


class TestCustomRegistry(unittest.TestCase):

    def test_register_with_optional_params(self):
        registry = ToolRegistry()
        registry.register(
            "echo", lambda text, upper=False: text.upper() if upper else text,
            description="Echo text",
            properties={"text": {"type": "string"}, "upper": {"type": "boolean"}},
            required=["text"],
        )
        self.assertEqual(registry.invoke("echo", '{"text": "hi"}'), "hi")
        self.assertEqual(registry.invoke("echo", '{"text": "hi", "upper": true}'), "HI")
        self.assertIsNotNone(registry.get("echo"))
        self.assertIsNone(registry.get("missing"))

    def test_empty_arguments_string(self):
        registry = ToolRegistry()
        registry.register("ping", lambda: "pong")
        self.assertEqual(registry.invoke("ping", ""), "pong")


if __name__ == "__main__":
    unittest.main()
