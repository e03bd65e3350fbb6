"""
HEAL-EYE — Retry Controller

Wraps a single upstream call with bounded exponential backoff.

Only transient-overload failures are retried: the exception message is
matched case-insensitively against a fixed set of "try again later"
phrases. Anything else (auth, validation, malformed responses) fails on
the first occurrence without consuming the retry budget.

Backoff is pure exponential, no jitter:
    wait(attempt) = delay_ms * factor ** attempt      (attempt is 0-indexed)

With the defaults (retries=3, delay_ms=500, factor=2) an operation that
never recovers is attempted 4 times and waits 0.5s + 1s + 2s in total.

Usage:
    from healeye.retry import with_retries

    response = with_retries(lambda: provider.run_agent(...), label="generate_predictions")
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

logger = logging.getLogger("heal_eye.retry")

T = TypeVar("T")

OVERLOAD_PATTERN = re.compile(
    r"model is overloaded|rate limit|temporarily unavailable|please try again later",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget for one upstream call site."""
    retries: int = 3
    delay_ms: float = 500
    factor: float = 2

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> RetryPolicy:
        data = data or {}
        return cls(
            retries=int(data.get("retries", cls.retries)),
            delay_ms=float(data.get("delay_ms", cls.delay_ms)),
            factor=float(data.get("factor", cls.factor)),
        )


DEFAULT_POLICY = RetryPolicy()


def is_overloaded_error(message: str | None) -> bool:
    """True when an upstream failure message reads as a transient overload."""
    if not message:
        return False
    return OVERLOAD_PATTERN.search(message) is not None


def calculate_backoff(attempt: int, delay_ms: float = 500, factor: float = 2) -> float:
    """Seconds to wait after the given 0-indexed failed attempt."""
    return delay_ms * (factor ** attempt) / 1000.0


def with_retries(
    operation: Callable[[], T],
    retries: int = 3,
    delay_ms: float = 500,
    factor: float = 2,
    sleep_fn: Callable[[float], None] = time.sleep,
    label: str = "",
) -> T:
    """
    Invoke operation, retrying on transient overload.

    Args:
        operation: Zero-argument callable performing one upstream call.
        retries:   Extra attempts allowed after the first one.
        delay_ms:  Base wait in milliseconds.
        factor:    Exponential growth factor.
        sleep_fn:  Sleep function taking seconds (injectable for tests).
        label:     Call-site name for logging.

    Raises:
        The operation's own exception, unchanged, when it is not an
        overload or the budget is spent.
    """
    attempt = 0
    while True:
        try:
            return operation()
        except Exception as e:
            message = str(e)
            if attempt >= retries or not is_overloaded_error(message):
                if attempt > 0:
                    logger.error(
                        "Giving up after %d attempt(s) (call=%s): %s",
                        attempt + 1, label or "-", message[:200],
                    )
                raise
            wait = calculate_backoff(attempt, delay_ms, factor)
            logger.warning(
                "Transient overload (attempt %d/%d, call=%s), retrying in %.2fs: %s",
                attempt + 1, retries + 1, label or "-", wait, message[:200],
            )
            sleep_fn(wait)
            attempt += 1


def with_policy(
    operation: Callable[[], T],
    policy: RetryPolicy | None = None,
    sleep_fn: Callable[[float], None] = time.sleep,
    label: str = "",
) -> T:
    """with_retries driven by a RetryPolicy."""
    policy = policy or DEFAULT_POLICY
    return with_retries(
        operation,
        retries=policy.retries,
        delay_ms=policy.delay_ms,
        factor=policy.factor,
        sleep_fn=sleep_fn,
        label=label,
    )
