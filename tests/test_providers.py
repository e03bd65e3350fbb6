"""
HEAL-EYE — Reasoning Provider Tests

The LangChain chat model is replaced by a stub with the two methods the
provider uses (bind_tools, invoke); message conversion runs for real.
"""

import json
import os
import sys
import unittest

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from _fakes import make_config

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage

from healeye.errors import AuthError, ExternalServiceError
from healeye.providers import (
    AgentResponse,
    ChatModelProvider,
    ProviderId,
    ToolCall,
    create_provider,
    from_message,
    to_messages,
)


class StubChatModel:
    def __init__(self, reply=None, error=None):
        self.reply = reply if reply is not None else AIMessage(content="stub answer")
        self.error = error
        self.bound_tools = None
        self.invocations = []

    def bind_tools(self, tools):
        self.bound_tools = tools
        return self

    def invoke(self, messages):
        self.invocations.append(messages)
        if self.error is not None:
            raise self.error
        return self.reply


class TestMessageConversion(unittest.TestCase):

    def test_roles(self):
        conversation = [
            {"role": "user", "content": "Analyze Delhi"},
            {"role": "assistant", "content": "", "tool_calls": [
                {"name": "fetch_weather_aqi_data", "arguments": '{"location": "Delhi"}', "id": "c1"},
            ]},
            {"role": "tool", "name": "fetch_weather_aqi_data", "tool_call_id": "c1", "content": "{}"},
            {"role": "system", "content": "Model overloaded. Fell back to google:gemini."},
        ]
        messages = to_messages("You are HEAL-EYE", conversation)
        self.assertEqual([type(m) for m in messages],
                         [SystemMessage, HumanMessage, AIMessage, ToolMessage, SystemMessage])
        self.assertEqual(messages[0].content, "You are HEAL-EYE")
        self.assertEqual(messages[2].tool_calls[0]["args"], {"location": "Delhi"})
        self.assertEqual(messages[3].tool_call_id, "c1")

    def test_unknown_role(self):
        with self.assertRaises(ValueError):
            to_messages("x", [{"role": "narrator", "content": "once upon a time"}])

    def test_from_message_with_tool_calls(self):
        msg = AIMessage(content="", tool_calls=[
            {"name": "analyze_hospital_data", "args": {"department": "ICU"}, "id": "c9"},
        ])
        resp = from_message(msg, model="openai:m")
        self.assertEqual(resp.tool_calls, [
            ToolCall("analyze_hospital_data", json.dumps({"department": "ICU"}), "c9"),
        ])
        self.assertEqual(resp.model, "openai:m")

    def test_from_message_content_blocks(self):
        msg = AIMessage(content=[{"type": "text", "text": "Namaste "}, "and hello"])
        self.assertEqual(from_message(msg).content, "Namaste and hello")

    def test_as_turn(self):
        resp = AgentResponse(content="", tool_calls=[ToolCall("t", "{}", "id1")])
        self.assertEqual(resp.as_turn(), {
            "role": "assistant",
            "content": "",
            "tool_calls": [{"name": "t", "arguments": "{}", "id": "id1"}],
        })
        self.assertEqual(AgentResponse(content="hi").as_turn(), {"role": "assistant", "content": "hi"})


class TestChatModelProvider(unittest.TestCase):

    def test_plain_call(self):
        llm = StubChatModel()
        provider = ChatModelProvider(ProviderId.OPENAI, "gpt-test", llm)
        resp = provider.run_agent("instr", [{"role": "user", "content": "hi"}])
        self.assertEqual(resp.content, "stub answer")
        self.assertIsNone(llm.bound_tools)
        self.assertEqual(provider.label, "openai:gpt-test")
        self.assertEqual(resp.model, "openai:gpt-test")

    def test_tools_bound(self):
        llm = StubChatModel()
        tools = [{"type": "function", "function": {"name": "x"}}]
        ChatModelProvider(ProviderId.GOOGLE, "g", llm).run_agent("i", [], tools=tools)
        self.assertEqual(llm.bound_tools, tools)

    def test_client_error_wrapped_with_message(self):
        llm = StubChatModel(error=RuntimeError("The model is overloaded"))
        provider = ChatModelProvider(ProviderId.OPENAI, "gpt-test", llm)
        with self.assertRaises(ExternalServiceError) as ctx:
            provider.run_agent("i", [])
        self.assertEqual(ctx.exception.message, "The model is overloaded")
        self.assertEqual(ctx.exception.details, {"provider": "openai", "model": "gpt-test"})

    def test_app_error_passes_through(self):
        llm = StubChatModel(error=AuthError("Invalid API key"))
        with self.assertRaises(AuthError):
            ChatModelProvider(ProviderId.OPENAI, "m", llm).run_agent("i", [])


class TestCreateProvider(unittest.TestCase):

    def test_injected_llm(self):
        provider = create_provider(ProviderId.GOOGLE, make_config(), llm=StubChatModel())
        self.assertEqual(provider.model, "gemini-2.5-flash")

    def test_missing_credential(self):
        cfg = make_config(google_api_key="")
        with self.assertRaises(AuthError):
            create_provider(ProviderId.GOOGLE, cfg)

    def test_google_shaped_openai_key_is_not_an_openai_credential(self):
        cfg = make_config(openai_api_key="AIzaSyWrongSlot")
        with self.assertRaises(AuthError):
            create_provider(ProviderId.OPENAI, cfg)


if __name__ == "__main__":
    unittest.main()
