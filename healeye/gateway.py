"""
HEAL-EYE — Capability Gateway

The single boundary between orchestration logic and the outside world:

  retrieve_context(query, sources) -> [ {"text": ...}, ... ]
  run_agent(instructions, conversation, tools=None, step="") -> AgentResponse
  invoke_tool(name, arguments_json) -> str

Each call goes through the Retry Controller. run_agent additionally goes
through the Provider Fallback Selector, so callers never see which
provider answered, only a system note in the conversation when a
fallback happened.

A gateway is a request-scoped session: build it with create_gateway()
at the start of a workflow invocation and close() it on every exit path.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from healeye.config import HealEyeConfig
from healeye.errors import AppError, ExternalServiceError
from healeye.fallback import ProviderSelector, select_primary
from healeye.memory import LangbaseMemoryStore
from healeye.providers import AgentResponse, ReasoningProvider, create_provider
from healeye.retry import RetryPolicy, with_policy
from healeye.tools import ToolRegistry, create_default_registry

logger = logging.getLogger("heal_eye.gateway")


class CapabilityGateway:

    def __init__(
        self,
        memory_store: Any,
        selector: ProviderSelector,
        tools: ToolRegistry | None = None,
        memories: list[str] | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep_fn: Callable[[float], None] = time.sleep,
    ):
        self.memory_store = memory_store
        self.selector = selector
        self.tools = tools or create_default_registry()
        self.memories = list(memories or [])
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep_fn
        self._closed = False

    # ── Context retrieval ────────────────────────────────────────

    def retrieve_context(self, query: str, sources: list[str] | None = None) -> list[dict[str, Any]]:
        sources = sources or self.memories

        def _retrieve():
            try:
                return self.memory_store.retrieve(query, sources)
            except AppError:
                raise
            except Exception as e:
                raise ExternalServiceError(f"Context retrieval failed: {e}") from e

        return with_policy(_retrieve, self.retry_policy, self._sleep, label="retrieve_context")

    # ── Reasoning ────────────────────────────────────────────────

    def run_agent(
        self,
        instructions: str,
        conversation: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        step: str = "",
    ) -> AgentResponse:
        def call(provider: ReasoningProvider) -> AgentResponse:
            return provider.run_agent(instructions, conversation, tools)

        try:
            return with_policy(
                lambda: call(self.selector.primary),
                self.retry_policy, self._sleep, label=step or "run_agent",
            )
        except Exception as e:
            return self.selector.fall_back(e, call, conversation=conversation, step=step)

    # ── Tools ────────────────────────────────────────────────────

    def tool_schemas(self) -> list[dict[str, Any]]:
        return self.tools.schemas()

    def invoke_tool(self, name: str, arguments_json: str) -> str:
        return with_policy(
            lambda: self.tools.invoke(name, arguments_json),
            self.retry_policy, self._sleep, label=f"tool:{name}",
        )

    # ── Session ──────────────────────────────────────────────────

    def close(self) -> None:
        """Release the session. Idempotent."""
        if self._closed:
            return
        self._closed = True
        close = getattr(self.memory_store, "close", None)
        if close is not None:
            close()


def create_gateway(
    config: HealEyeConfig,
    on_fallback: Callable[[str, str, str], None] | None = None,
    sleep_fn: Callable[[float], None] = time.sleep,
) -> CapabilityGateway:
    """Build a request-scoped gateway from configuration."""
    primary_id = select_primary(config)
    secondary_id = primary_id.other

    secondary_factory = None
    if config.credential_for(secondary_id.value):
        secondary_factory = lambda: create_provider(secondary_id, config)  # noqa: E731

    selector = ProviderSelector(
        primary=create_provider(primary_id, config),
        secondary_factory=secondary_factory,
        on_fallback=on_fallback,
    )
    memory_store = LangbaseMemoryStore(
        url=config.memory_url,
        api_key=config.platform_api_key,
        top_k=config.top_k,
    )
    logger.debug("Gateway ready (primary=%s, secondary=%s)", primary_id.value,
                 secondary_id.value if secondary_factory else "none")
    return CapabilityGateway(
        memory_store=memory_store,
        selector=selector,
        memories=config.memories,
        retry_policy=config.retry,
        sleep_fn=sleep_fn,
    )
