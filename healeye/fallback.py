"""
HEAL-EYE — Provider Fallback Selector

Picks the primary/secondary reasoning provider pair and performs the
one-time switch when the primary stays overloaded.

Selection (deterministic, from configuration only):
  - OpenAI is primary when an OpenAI key is configured and is not
    shaped like a Google key (AIzaSy...)
  - otherwise Google is primary
  - the other provider is the secondary

Fallback rule: a call that still fails with a transient-overload
message after the Retry Controller gave up is re-issued exactly once
against the secondary, without retries. A visible system note is
appended to the caller's conversation. If the fallback fails too, its
error propagates; there is no second hop.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

from healeye.config import HealEyeConfig
from healeye.providers import ProviderId, ReasoningProvider
from healeye.retry import is_overloaded_error

logger = logging.getLogger("heal_eye.fallback")

T = TypeVar("T")


def select_primary(config: HealEyeConfig) -> ProviderId:
    return ProviderId.OPENAI if config.has_openai_key else ProviderId.GOOGLE


class ProviderSelector:
    """Holds the primary provider and lazily builds the secondary."""

    def __init__(
        self,
        primary: ReasoningProvider,
        secondary: ReasoningProvider | None = None,
        secondary_factory: Callable[[], ReasoningProvider] | None = None,
        on_fallback: Callable[[str, str, str], None] | None = None,
    ):
        self.primary = primary
        self._secondary = secondary
        self._secondary_factory = secondary_factory
        self._on_fallback = on_fallback
        self.fallbacks: list[dict[str, str]] = []

    @property
    def secondary(self) -> ReasoningProvider | None:
        if self._secondary is None and self._secondary_factory is not None:
            self._secondary = self._secondary_factory()
        return self._secondary

    def fall_back(
        self,
        error: Exception,
        call: Callable[[ReasoningProvider], T],
        conversation: list[dict[str, Any]] | None = None,
        step: str = "",
    ) -> T:
        """
        Re-issue call against the secondary provider, once.

        Re-raises error unchanged when it is not an overload. The
        secondary's own failure propagates as-is.
        """
        if not is_overloaded_error(str(error)):
            raise error
        alternate = self.secondary
        if alternate is None:
            raise error

        logger.warning(
            "Primary %s overloaded (step=%s); falling back to %s",
            self.primary.label, step or "-", alternate.label,
        )
        if self._on_fallback is not None:
            self._on_fallback(step, self.primary.label, alternate.label)

        result = call(alternate)
        self.fallbacks.append({"step": step, "from": self.primary.label, "to": alternate.label})
        if conversation is not None:
            conversation.append({
                "role": "system",
                "content": f"Model overloaded. Fell back to {alternate.label}.",
            })
        return result
