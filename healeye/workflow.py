"""
HEAL-EYE — Workflow Orchestrator

Six steps, strictly sequential, each later step reading the textual
output of earlier ones:

  COLLECT_CONTEXT                    fatal: no context, no workflow
  ANALYZE_REALTIME                   tool-calling analysis
  GENERATE_PREDICTIONS               needs the analysis
  GENERATE_RECOMMENDATIONS           needs the predictions
  GENERATE_PUBLIC_ALERTS             needs the recommendations
  GENERATE_CONVERSATIONAL_RESPONSE   always runs on whatever exists
  DONE                               provider session released

A gated step whose immediate predecessor produced nothing is recorded
as skipped (DEPENDENCY_FAILED). Once context collection succeeded the
caller always gets a success envelope with every StepResult in meta.

Usage:
    from healeye.config import load_config
    from healeye.workflow import HealEyeWorkflow

    workflow = HealEyeWorkflow(load_config())
    envelope = workflow.run({"input": "Diwali week respiratory load in Delhi"})
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from healeye import prompts
from healeye.config import HealEyeConfig, load_config
from healeye.errors import (
    AppError,
    ValidationError,
    merge_envelope,
    success_envelope,
    to_response,
)
from healeye.gateway import CapabilityGateway, create_gateway
from healeye.logging import WorkflowTracer
from healeye.stepper import StepRunner

logger = logging.getLogger("heal_eye.workflow")


class Stage(str, enum.Enum):
    """Pipeline states; the value is the step id reported in meta."""
    COLLECT_CONTEXT = "collect_context_data"
    ANALYZE_REALTIME = "analyze_realtime_data"
    GENERATE_PREDICTIONS = "generate_predictions"
    GENERATE_RECOMMENDATIONS = "generate_recommendations"
    GENERATE_PUBLIC_ALERTS = "generate_public_alerts"
    GENERATE_CONVERSATIONAL_RESPONSE = "generate_conversational_response"
    DONE = "done"


PIPELINE = [stage for stage in Stage if stage is not Stage.DONE]

CONFIDENCE_LEVEL = "High"  # placeholder, not derived from any step
SYSTEM_STATUS = "Active"

GatewayFactory = Callable[[HealEyeConfig, Callable[[str, str, str], None]], CapabilityGateway]


@dataclass(frozen=True)
class WorkflowRequest:
    input: str
    environment: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> WorkflowRequest:
        """Validate a raw request body."""
        if isinstance(payload, WorkflowRequest):
            cls._check_input(payload.input)
            return payload
        if not isinstance(payload, Mapping):
            raise ValidationError(
                "Request body must be an object with an 'input' field",
                details={"providedType": type(payload).__name__},
            )
        value = payload.get("input")
        cls._check_input(value)
        return cls(input=value, environment=dict(payload.get("env") or {}))

    @staticmethod
    def _check_input(value: Any) -> None:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(
                "Input is required and must be a string",
                details={"providedType": type(value).__name__},
            )


@dataclass
class StepOutputChain:
    """Outputs produced so far. None means the step did not succeed."""
    context: list[dict[str, Any]] | None = None
    analysis: str | None = None
    predictions: str | None = None
    recommendations: str | None = None
    alerts: str | None = None
    conversational: str | None = None

    def detailed_analysis(self) -> dict[str, Any]:
        return {
            "data_analysis": self.analysis,
            "predictions": self.predictions,
            "recommendations": self.recommendations,
            "public_alerts": self.alerts,
        }


def _default_gateway_factory(config: HealEyeConfig, on_fallback) -> CapabilityGateway:
    return create_gateway(config, on_fallback=on_fallback)


class HealEyeWorkflow:
    """Runs the analysis pipeline; one envelope per request."""

    def __init__(
        self,
        config: HealEyeConfig,
        gateway_factory: GatewayFactory | None = None,
        now_fn: Callable[[], datetime] | None = None,
    ):
        self.config = config
        self._gateway_factory = gateway_factory or _default_gateway_factory
        self._now = now_fn or (lambda: datetime.now(timezone.utc))
        logger.debug("Workflow configured from %s", config.source)

    def run(self, request: Any) -> dict[str, Any]:
        return self.respond(request)[1]

    def respond(self, request: Any) -> tuple[int, dict[str, Any]]:
        """
        Run one request and return (http_status, envelope).

        The status is 200 for a success envelope and the raised error's
        own http_status otherwise (500 for uncategorized failures).
        """
        try:
            req = WorkflowRequest.from_payload(request)
            self.config.validate_credentials()
        except AppError as e:
            logger.warning("Rejected request: %s", e.message)
            return to_response(e)

        tracer = WorkflowTracer()
        runner = StepRunner(tracer)
        gateway: CapabilityGateway | None = None
        status = "error"
        t0 = time.time()
        tracer.on_workflow_start(input_chars=len(req.input), env_keys=sorted(req.environment))
        try:
            gateway = self._gateway_factory(self.config, tracer.on_provider_fallback)
            result = 200, self._execute(req, gateway, runner)
            status = "success"
        except Exception as e:
            logger.error("HEAL-EYE workflow error: %s", e, exc_info=True)
            result = to_response(e, meta=self._meta(runner, tracer))
        finally:
            fallbacks = 0
            if gateway is not None:
                fallbacks = len(gateway.selector.fallbacks)
                self._finalize(gateway)
            tracer.on_workflow_end(
                status, time.time() - t0,
                steps_completed=len(runner.results),
                fallbacks=fallbacks,
            )
        return result

    # ── Pipeline ─────────────────────────────────────────────────

    def _execute(
        self,
        req: WorkflowRequest,
        gateway: CapabilityGateway,
        runner: StepRunner,
    ) -> dict[str, Any]:
        chain = StepOutputChain()
        query = req.input

        chain.context = runner.run(
            Stage.COLLECT_CONTEXT.value,
            lambda: gateway.retrieve_context(query),
            fatal=True,
            report=len,
            fatal_message="Failed to retrieve context data",
        )

        chain.analysis = runner.run(
            Stage.ANALYZE_REALTIME.value,
            lambda: self._analyze(gateway, query, chain.context),
        )

        chain.predictions = self._gated(
            runner, Stage.GENERATE_PREDICTIONS, chain.analysis, Stage.ANALYZE_REALTIME,
            lambda: self._ask(
                gateway, Stage.GENERATE_PREDICTIONS,
                prompts.prediction_instructions(chain.analysis, chain.context),
                prompts.prediction_request(query),
            ),
        )

        chain.recommendations = self._gated(
            runner, Stage.GENERATE_RECOMMENDATIONS, chain.predictions, Stage.GENERATE_PREDICTIONS,
            lambda: self._ask(
                gateway, Stage.GENERATE_RECOMMENDATIONS,
                prompts.recommendation_instructions(chain.predictions),
                prompts.RECOMMENDATION_REQUEST,
            ),
        )

        chain.alerts = self._gated(
            runner, Stage.GENERATE_PUBLIC_ALERTS, chain.recommendations,
            Stage.GENERATE_RECOMMENDATIONS,
            lambda: self._ask(
                gateway, Stage.GENERATE_PUBLIC_ALERTS,
                prompts.alert_instructions(chain.predictions, chain.recommendations),
                prompts.ALERT_REQUEST,
            ),
        )

        chain.conversational = runner.run(
            Stage.GENERATE_CONVERSATIONAL_RESPONSE.value,
            lambda: self._ask(
                gateway, Stage.GENERATE_CONVERSATIONAL_RESPONSE,
                prompts.conversational_instructions(
                    chain.analysis, chain.predictions, chain.recommendations, chain.alerts,
                ),
                query,
            ),
        )

        data = {
            "conversational_response": chain.conversational,
            "detailed_analysis": chain.detailed_analysis(),
            "timestamp": self._now().isoformat(),
            "confidence_level": CONFIDENCE_LEVEL,
            "system_status": SYSTEM_STATUS,
        }
        return merge_envelope(success_envelope(data, self._meta(runner, runner.tracer)))

    def _gated(
        self,
        runner: StepRunner,
        stage: Stage,
        dependency_output: Any,
        dependency: Stage,
        thunk: Callable[[], Any],
    ) -> Any:
        if not dependency_output:
            runner.skip(stage.value, dependency.value)
            return None
        return runner.run(stage.value, thunk)

    def _analyze(
        self,
        gateway: CapabilityGateway,
        query: str,
        context: list[dict[str, Any]],
    ) -> str:
        """One tool-enabled call, tool dispatch, then one summarising call."""
        step = Stage.ANALYZE_REALTIME.value
        conversation: list[dict[str, Any]] = [
            {"role": "user", "content": prompts.analysis_request(query)},
        ]
        response = gateway.run_agent(
            prompts.analysis_instructions(context),
            conversation,
            tools=gateway.tool_schemas(),
            step=step,
        )
        conversation.append(response.as_turn())

        if not response.tool_calls:
            return response.content or "No data analysis performed"

        for call in response.tool_calls:
            result = gateway.invoke_tool(call.name, call.arguments_json)
            conversation.append({
                "role": "tool",
                "name": call.name,
                "tool_call_id": call.call_id,
                "content": result,
            })

        summary = gateway.run_agent(
            prompts.ANALYSIS_SUMMARY_INSTRUCTIONS, conversation, step=step,
        )
        return summary.content

    def _ask(
        self,
        gateway: CapabilityGateway,
        stage: Stage,
        instructions: str,
        request_text: str,
    ) -> str:
        conversation = [{"role": "user", "content": request_text}]
        return gateway.run_agent(instructions, conversation, step=stage.value).content

    # ── Helpers ──────────────────────────────────────────────────

    @staticmethod
    def _meta(runner: StepRunner, tracer: WorkflowTracer) -> dict[str, Any]:
        return {"steps": runner.to_list(), "trace_id": tracer.trace_id}

    @staticmethod
    def _finalize(gateway: CapabilityGateway) -> None:
        try:
            gateway.close()
        except Exception:
            logger.warning("Failed to release provider session", exc_info=True)


def run_workflow(payload: Any, config: HealEyeConfig | None = None) -> dict[str, Any]:
    """Load configuration from the environment and run one request."""
    return HealEyeWorkflow(config or load_config()).run(payload)
