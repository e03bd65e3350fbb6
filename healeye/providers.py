"""
HEAL-EYE — Reasoning Providers

A reasoning provider answers one request: instructions plus a
conversation, optionally with tool schemas. It returns either message
content or a list of tool calls.

Providers are a closed set (ProviderId). Each is backed by a LangChain
chat model so downstream code stays provider-blind:
  openai — langchain-openai ChatOpenAI
  google — langchain-google-genai ChatGoogleGenerativeAI

Conversation turns are plain dicts, the same shape the wire uses:
    {"role": "user" | "assistant" | "system" | "tool", "content": str,
     "name"?: str, "tool_call_id"?: str, "tool_calls"?: [...]}

Design rules:
  - No provider-specific imports at module level (lazy imports only)
  - Every client failure is re-raised as ExternalServiceError with the
    provider's message intact, so overload detection still matches
"""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)

from healeye.config import HealEyeConfig
from healeye.errors import AppError, AuthError, ExternalServiceError

logger = logging.getLogger("heal_eye.providers")


class ProviderId(str, enum.Enum):
    OPENAI = "openai"
    GOOGLE = "google"

    @property
    def other(self) -> ProviderId:
        return ProviderId.GOOGLE if self is ProviderId.OPENAI else ProviderId.OPENAI


@dataclass(frozen=True)
class ToolCall:
    name: str
    arguments_json: str
    call_id: str


@dataclass
class AgentResponse:
    content: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    model: str = ""

    def as_turn(self) -> dict[str, Any]:
        """The assistant turn to append to a conversation."""
        turn: dict[str, Any] = {"role": "assistant", "content": self.content}
        if self.tool_calls:
            turn["tool_calls"] = [
                {"name": tc.name, "arguments": tc.arguments_json, "id": tc.call_id}
                for tc in self.tool_calls
            ]
        return turn


class ReasoningProvider(Protocol):
    """One reasoning backend."""
    provider_id: ProviderId

    @property
    def label(self) -> str: ...

    def run_agent(
        self,
        instructions: str,
        conversation: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> AgentResponse: ...


# ═══════════════════════════════════════════════════════════════════
# Message conversion
# ═══════════════════════════════════════════════════════════════════

def to_messages(instructions: str, conversation: list[dict[str, Any]]) -> list[BaseMessage]:
    """Instructions first, then the conversation in order."""
    messages: list[BaseMessage] = [SystemMessage(content=instructions)]
    for turn in conversation:
        role = turn.get("role")
        content = turn.get("content") or ""
        if role == "user":
            messages.append(HumanMessage(content=content))
        elif role == "system":
            messages.append(SystemMessage(content=content))
        elif role == "assistant":
            tool_calls = [
                {"name": tc["name"], "args": _parse_args(tc.get("arguments")), "id": tc["id"]}
                for tc in turn.get("tool_calls") or []
            ]
            messages.append(AIMessage(content=content, tool_calls=tool_calls))
        elif role == "tool":
            messages.append(ToolMessage(
                content=content,
                tool_call_id=turn["tool_call_id"],
                name=turn.get("name"),
            ))
        else:
            raise ValueError(f"Unknown conversation role: {role!r}")
    return messages


def _parse_args(arguments: Any) -> dict[str, Any]:
    if isinstance(arguments, dict):
        return arguments
    try:
        parsed = json.loads(arguments or "{}")
    except (json.JSONDecodeError, TypeError):
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _content_text(content: Any) -> str:
    """LangChain content may be a string or a list of content blocks."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return str(content or "")


def from_message(message: AIMessage, model: str = "") -> AgentResponse:
    tool_calls = [
        ToolCall(
            name=tc["name"],
            arguments_json=json.dumps(tc.get("args") or {}),
            call_id=tc.get("id") or "",
        )
        for tc in getattr(message, "tool_calls", None) or []
    ]
    return AgentResponse(content=_content_text(message.content), tool_calls=tool_calls, model=model)


# ═══════════════════════════════════════════════════════════════════
# Chat model factories (lazy imports)
# ═══════════════════════════════════════════════════════════════════

def _create_openai(model: str, api_key: str, temperature: float) -> BaseChatModel:
    from langchain_openai import ChatOpenAI
    return ChatOpenAI(model=model, api_key=api_key, temperature=temperature, streaming=False)


def _create_google(model: str, api_key: str, temperature: float) -> BaseChatModel:
    from langchain_google_genai import ChatGoogleGenerativeAI
    return ChatGoogleGenerativeAI(model=model, google_api_key=api_key, temperature=temperature)


_FACTORIES = {
    ProviderId.OPENAI: _create_openai,
    ProviderId.GOOGLE: _create_google,
}


class ChatModelProvider:
    """ReasoningProvider backed by a LangChain chat model."""

    def __init__(self, provider_id: ProviderId, model: str, llm: BaseChatModel):
        self.provider_id = provider_id
        self.model = model
        self._llm = llm

    @property
    def label(self) -> str:
        return f"{self.provider_id.value}:{self.model}"

    def run_agent(
        self,
        instructions: str,
        conversation: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> AgentResponse:
        messages = to_messages(instructions, conversation)
        try:
            runnable = self._llm.bind_tools(tools) if tools else self._llm
            message = runnable.invoke(messages)
        except AppError:
            raise
        except Exception as e:
            raise ExternalServiceError(
                str(e) or type(e).__name__,
                details={"provider": self.provider_id.value, "model": self.model},
            ) from e
        logger.debug("%s answered (%d tool calls)", self.label,
                     len(getattr(message, "tool_calls", None) or []))
        return from_message(message, model=self.label)


def create_provider(
    provider_id: ProviderId,
    config: HealEyeConfig,
    llm: BaseChatModel | None = None,
) -> ChatModelProvider:
    """Build the provider for provider_id from config."""
    model = config.model_for(provider_id.value)
    if llm is None:
        api_key = config.credential_for(provider_id.value)
        if not api_key:
            raise AuthError(
                f"No credential configured for provider '{provider_id.value}'",
                details={"provider": provider_id.value},
            )
        llm = _FACTORIES[provider_id](model, api_key, config.temperature)
    return ChatModelProvider(provider_id, model, llm)
