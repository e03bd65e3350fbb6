"""
HEAL-EYE — Step Executor

Runs one named unit of work and records how it went. The workflow
folds the recorded StepResults, in execution order, into the response
metadata.

Outcomes:
  ok      — the thunk returned; its output feeds later steps
  error   — the thunk raised; the error is recorded
  skipped — the step never ran because a dependency produced nothing

A fatal step re-raises its failure as WorkflowStepError. A non-fatal
step returns None on failure so the caller can gate dependents on it.
"""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass
from typing import Any, Callable

from healeye.errors import WorkflowStepError, error_envelope
from healeye.logging import WorkflowTracer

DEPENDENCY_FAILED = "DEPENDENCY_FAILED"


class StepStatus(str, enum.Enum):
    OK = "ok"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass(frozen=True)
class StepResult:
    id: str
    status: StepStatus
    output: Any = None
    error: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "status": self.status.value}
        if self.output is not None:
            out["output"] = self.output
        if self.error is not None:
            out["error"] = self.error
        return out


class StepRunner:
    """Executes steps for one workflow invocation. Append-only."""

    def __init__(self, tracer: WorkflowTracer | None = None):
        self.tracer = tracer or WorkflowTracer()
        self._results: list[StepResult] = []

    @property
    def results(self) -> tuple[StepResult, ...]:
        return tuple(self._results)

    def to_list(self) -> list[dict[str, Any]]:
        return [r.to_dict() for r in self._results]

    def run(
        self,
        step_id: str,
        thunk: Callable[[], Any],
        fatal: bool = False,
        report: Callable[[Any], Any] | None = None,
        fatal_message: str = "",
    ) -> Any:
        """
        Run thunk as step step_id.

        Args:
            report:        Maps the output to what is recorded in the
                           StepResult (default: nothing recorded).
            fatal:         Wrap and raise failures as WorkflowStepError.
            fatal_message: Message for the wrapped error.

        Returns:
            The thunk's output, or None when a non-fatal step failed.
        """
        self.tracer.on_step_start(step_id)
        t0 = time.time()
        try:
            output = thunk()
        except Exception as e:
            error = error_envelope(e)["error"]
            self._results.append(StepResult(step_id, StepStatus.ERROR, error=error))
            self.tracer.on_step_end(step_id, StepStatus.ERROR.value, time.time() - t0,
                                    error=error.get("message", ""))
            if fatal:
                raise WorkflowStepError(
                    step_id,
                    fatal_message or f"Step {step_id} failed",
                    details={"step": step_id, "original": error.get("message")},
                ) from e
            return None

        recorded = report(output) if report is not None else None
        self._results.append(StepResult(step_id, StepStatus.OK, output=recorded))
        self.tracer.on_step_end(step_id, StepStatus.OK.value, time.time() - t0)
        return output

    def skip(self, step_id: str, dependency: str) -> None:
        self._results.append(StepResult(
            step_id,
            StepStatus.SKIPPED,
            error={
                "code": DEPENDENCY_FAILED,
                "message": f"Skipped because {dependency} produced no output",
            },
        ))
        self.tracer.on_step_skipped(step_id, dependency)
