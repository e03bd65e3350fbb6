"""
HEAL-EYE — API Models

Request/response dataclasses for the API server.
Plain dataclasses shared by the server and its tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class AnalysisSubmission:
    """POST /api/heal-eye request body."""
    input: Any
    env: dict[str, Any] = field(default_factory=dict)
    raw: Any = None  # non-object body, handed to the workflow as-is

    @classmethod
    def from_body(cls, body: Any) -> AnalysisSubmission:
        if not isinstance(body, dict):
            return cls(input=None, raw=body)
        env = body.get("env")
        return cls(input=body.get("input"), env=env if isinstance(env, dict) else {})

    def to_payload(self) -> Any:
        if self.raw is not None:
            return self.raw
        return {"input": self.input, "env": self.env}


@dataclass
class HealthStatus:
    """GET /health response."""
    status: str
    version: str
    primary_provider: str
    credentials_configured: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "version": self.version,
            "primary_provider": self.primary_provider,
            "credentials_configured": self.credentials_configured,
        }
