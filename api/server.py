"""
HEAL-EYE — API Server

FastAPI application serving:
  POST /api/heal-eye   — run the analysis workflow for {"input": ...}
  GET  /health         — liveness plus provider selection

The workflow always answers with an envelope; the HTTP status is 200
for success envelopes and the raised error's http_status otherwise.

Usage:
    uvicorn api.server:create_app --factory --host 0.0.0.0 --port 8080
"""

from __future__ import annotations

import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from api.models import AnalysisSubmission, HealthStatus
from healeye import __version__
from healeye.config import HealEyeConfig, load_config
from healeye.errors import ValidationError, to_response
from healeye.fallback import select_primary
from healeye.workflow import HealEyeWorkflow

logger = logging.getLogger("heal_eye.api")


def create_app(
    config: HealEyeConfig | None = None,
    workflow: HealEyeWorkflow | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Separated from module-level creation so tests can inject a
    configuration or a workflow with fake collaborators.
    """
    config = config or (workflow.config if workflow else load_config())
    workflow = workflow or HealEyeWorkflow(config)

    app = FastAPI(
        title="HEAL-EYE API",
        version=__version__,
        description="Health surge analysis workflow",
    )

    @app.post("/api/heal-eye", response_model=None)
    async def analyze(request: Request):
        try:
            body = await request.json()
        except ValueError:
            status, envelope = to_response(ValidationError("Request body must be valid JSON"))
            return JSONResponse(status_code=status, content=envelope)

        submission = AnalysisSubmission.from_body(body)
        status, envelope = await run_in_threadpool(workflow.respond, submission.to_payload())
        if not envelope.get("success"):
            logger.warning("Analysis request failed: %s", envelope["error"].get("code"))
        return JSONResponse(status_code=status, content=envelope)

    @app.get("/health")
    def health():
        return HealthStatus(
            status="ok",
            version=__version__,
            primary_provider=select_primary(config).value,
            credentials_configured=bool(config.platform_api_key),
        ).to_dict()

    return app
