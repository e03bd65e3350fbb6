"""
HEAL-EYE — Knowledge Store Client

Semantic retrieval over the named memory stores (hospital records,
health trends, festival calendar, medical protocols). One POST per
query; the response is a list of passages, each with at least "text".

The client owns an httpx.Client and must be closed when the workflow
invocation ends.
"""

from __future__ import annotations

import logging
import re
from typing import Any

import httpx

from healeye.errors import AuthError, ExternalServiceError

logger = logging.getLogger("heal_eye.memory")

_INVALID_KEY = re.compile(r"Invalid User/Org API key", re.IGNORECASE)


class LangbaseMemoryStore:
    """Memory retrieval over HTTP with a bearer credential."""

    def __init__(
        self,
        url: str,
        api_key: str,
        top_k: int = 5,
        client: httpx.Client | None = None,
        timeout_s: float | None = None,
    ):
        self.url = url
        self.top_k = top_k
        self._client = client or httpx.Client(timeout=timeout_s)
        self._headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }

    def retrieve(self, query: str, memories: list[str]) -> list[dict[str, Any]]:
        body = {
            "query": query,
            "memory": [{"name": name} for name in memories],
            "topK": self.top_k,
        }
        try:
            resp = self._client.post(self.url, json=body, headers=self._headers)
        except httpx.HTTPError as e:
            raise ExternalServiceError(
                f"Memory retrieval failed: {e}",
                details={"url": self.url},
            ) from e

        if resp.status_code >= 400:
            payload = _safe_json(resp)
            message = payload.get("message", "") if isinstance(payload, dict) else ""
            if resp.status_code in (401, 403) or _INVALID_KEY.search(message or ""):
                raise AuthError(
                    "Memory store rejected the API key",
                    details={"status": resp.status_code, "original": payload},
                )
            raise ExternalServiceError(
                message or f"Memory retrieval failed with HTTP {resp.status_code}",
                http_status=resp.status_code,
                details=payload if payload is not None else {"status": resp.status_code},
            )

        passages = _safe_json(resp)
        if not isinstance(passages, list) or not all(
            isinstance(p, dict) and "text" in p for p in passages
        ):
            raise ExternalServiceError(
                "Memory retrieval returned an unexpected payload",
                details={"type": type(passages).__name__},
                retryable=False,
            )
        logger.debug("Retrieved %d passages from %d stores", len(passages), len(memories))
        return passages

    def close(self) -> None:
        self._client.close()


def _safe_json(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None
