"""
HEAL-EYE — Error Taxonomy & Response Envelopes

Every failure that can cross the workflow boundary is an AppError
subclass. Callers never receive a raw exception: the workflow and the
HTTP surface convert everything into one of two envelope shapes.

    {"success": True,  "data": {...}, "meta": {...}}
    {"success": False, "error": {"code", "message", "details"?,
                                 "retryable"?, "docs"?, "step"?}}

Usage:
    from healeye.errors import ValidationError, error_envelope

    try:
        ...
    except Exception as e:
        return error_envelope(e)
"""

from __future__ import annotations

import enum
from typing import Any


class ErrorKind(str, enum.Enum):
    """Error codes as they appear on the wire."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTH_ERROR = "AUTH_ERROR"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    WORKFLOW_STEP_ERROR = "WORKFLOW_STEP_ERROR"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"
    UNKNOWN = "UNKNOWN"


# ═══════════════════════════════════════════════════════════════════
# Exception hierarchy
# ═══════════════════════════════════════════════════════════════════

class AppError(Exception):
    """Base for every categorized failure."""

    kind: ErrorKind = ErrorKind.UNEXPECTED_ERROR

    def __init__(
        self,
        message: str,
        http_status: int = 500,
        details: Any = None,
        retryable: bool | None = None,
        docs: str | None = None,
        step: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.http_status = http_status
        self.details = details
        self.retryable = retryable
        self.docs = docs
        self.step = step

    @property
    def code(self) -> str:
        return self.kind.value

    def to_dict(self) -> dict[str, Any]:
        """Wire shape. Unset optional fields are omitted."""
        out: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details is not None:
            out["details"] = self.details
        if self.retryable is not None:
            out["retryable"] = self.retryable
        if self.docs is not None:
            out["docs"] = self.docs
        if self.step is not None:
            out["step"] = self.step
        return out

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, http_status={self.http_status})"


class ValidationError(AppError):
    kind = ErrorKind.VALIDATION_ERROR

    def __init__(self, message: str, details: Any = None):
        super().__init__(message, http_status=400, details=details)


class AuthError(AppError):
    kind = ErrorKind.AUTH_ERROR

    def __init__(self, message: str, details: Any = None):
        super().__init__(message, http_status=401, details=details)


class ExternalServiceError(AppError):
    """An upstream call failed. The message keeps the provider's wording."""
    kind = ErrorKind.EXTERNAL_SERVICE_ERROR

    def __init__(
        self,
        message: str,
        http_status: int = 502,
        details: Any = None,
        retryable: bool = True,
    ):
        super().__init__(message, http_status=http_status, details=details, retryable=retryable)


class WorkflowStepError(AppError):
    """A named step failed fatally."""
    kind = ErrorKind.WORKFLOW_STEP_ERROR

    def __init__(
        self,
        step: str,
        message: str,
        details: Any = None,
        retryable: bool = False,
    ):
        super().__init__(message, http_status=500, details=details, retryable=retryable, step=step)


# ═══════════════════════════════════════════════════════════════════
# Envelopes
# ═══════════════════════════════════════════════════════════════════

def success_envelope(data: Any, meta: dict[str, Any] | None = None) -> dict[str, Any]:
    return {"success": True, "data": data, "meta": meta or {}}


def error_envelope(err: Any, meta: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Build the error envelope for any raised value.

    AppError serializes itself; any other exception becomes
    UNEXPECTED_ERROR with its message; anything else is UNKNOWN.
    """
    if isinstance(err, AppError):
        error = err.to_dict()
    elif isinstance(err, BaseException):
        error = {"code": ErrorKind.UNEXPECTED_ERROR.value, "message": str(err)}
    else:
        error = {"code": ErrorKind.UNKNOWN.value, "message": "Unknown error"}

    envelope: dict[str, Any] = {"success": False, "error": error}
    if meta:
        envelope["meta"] = meta
    return envelope


def to_response(err: Any, meta: dict[str, Any] | None = None) -> tuple[int, dict[str, Any]]:
    """(http_status, envelope) for the transport layer."""
    status = err.http_status if isinstance(err, AppError) else 500
    return status, error_envelope(err, meta=meta)


def merge_envelope(envelope: dict[str, Any]) -> dict[str, Any]:
    """Flatten a success envelope whose data is itself an envelope."""
    if (
        envelope
        and envelope.get("success") is True
        and isinstance(envelope.get("data"), dict)
        and "success" in envelope["data"]
    ):
        inner = envelope["data"]
        merged: dict[str, Any] = {"success": inner["success"]}
        if inner["success"]:
            merged["data"] = inner.get("data", inner)
        else:
            merged["error"] = inner.get("error")
        merged["meta"] = envelope.get("meta") or {}
        return merged
    return envelope
