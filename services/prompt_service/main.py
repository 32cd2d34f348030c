"""
Prompt Service -- callable entry point of the prompt pipeline.

Endpoints:
1. POST /processPrompt -- body {"data": {promptId, context?, maxTokens?, temperature?, topP?}}
   Success: 200 {"result": {success, response, metadata}}
   Failure: {"error": {status, kind, message}} with the kind's HTTP status
2. GET  /health
3. GET  /metrics

Caller identity is attached by the hosting platform's auth layer as the
X-Identity-Id header (plus an optional X-Identity-Claims JSON object) and is
only forwarded to the preprocessing hook.
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from promptpilot.contracts.models import Identity
from promptpilot.errors import InvalidArgument, PipelineError
from promptpilot.logging.logger import setup_logging
from promptpilot.observability.metrics import metrics_response
from promptpilot.template_store.database import close_db
from services.prompt_service.config import PromptServiceConfig
from services.prompt_service.pipeline import PromptPipeline, build_pipeline

SERVICE_NAME = "prompt_service"
pipeline: PromptPipeline | None = None
cfg: PromptServiceConfig | None = None


@asynccontextmanager
async def lifespan(application: FastAPI):
    global pipeline, cfg
    cfg = PromptServiceConfig.from_env()
    logger = setup_logging(SERVICE_NAME, cfg.log_level)

    pipeline = await build_pipeline(cfg)
    logger.info("Prompt Service ready")
    yield

    logger.info("Shutting down")
    if pipeline:
        await pipeline.aclose()
    await close_db()


app = FastAPI(
    title="Prompt Service",
    version="0.1.0",
    description="Renders stored prompt templates and routes them through ModelPilot",
    lifespan=lifespan,
)
logger = logging.getLogger(SERVICE_NAME)


def _get_pipeline() -> PromptPipeline:
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Pipeline not initialized")
    return pipeline


@app.get("/health")
async def health():
    return {"status": "ok", "service": SERVICE_NAME}


@app.get("/metrics")
async def metrics():
    return metrics_response()


@app.post("/processPrompt")
async def process_prompt(
    request: Request,
    x_identity_id: str | None = Header(default=None),
    x_identity_claims: str | None = Header(default=None),
):
    active = _get_pipeline()
    try:
        body = await request.json()
    except ValueError:
        logger.warning("Rejected request body: not valid JSON")
        return _error_response(InvalidArgument("Request body must be a JSON object"))

    data = body.get("data") if isinstance(body, dict) else None
    try:
        identity = _identity_from_headers(x_identity_id, x_identity_claims)
    except InvalidArgument as exc:
        logger.warning("Rejected identity headers: %s", exc.message)
        return _error_response(exc)

    try:
        result = await active.process(data, identity)
    except PipelineError as exc:
        return _error_response(exc)
    return {"result": result.to_response()}


def _identity_from_headers(identity_id: str | None, raw_claims: str | None) -> Identity | None:
    if not identity_id:
        return None
    claims: dict[str, Any] = {}
    if raw_claims:
        try:
            claims = json.loads(raw_claims)
        except ValueError as exc:
            raise InvalidArgument("X-Identity-Claims must be a JSON object") from exc
        if not isinstance(claims, dict):
            raise InvalidArgument("X-Identity-Claims must be a JSON object")
    return Identity(id=identity_id, claims=claims)


def _error_response(error: PipelineError) -> JSONResponse:
    return JSONResponse(content={"error": error.to_dict()}, status_code=error.http_status)
