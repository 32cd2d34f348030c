"""
Prompt pipeline orchestrator.

One invocation runs strictly in sequence:

    validate -> preprocess -> fetch template -> render -> complete -> assemble

and ends in exactly one PipelineResult or one PipelineError. Each stage
maps its own failures to a single error kind; anything untyped that still
reaches the boundary becomes InternalError with the cause chained. Every
failure is logged once, here, with the invocation's correlation fields.

The pipeline keeps no per-invocation state on the instance, so one
instance serves any number of concurrent invocations. The only suspension
points are the preprocessing call and the router call (plus the store read
for database-backed stores).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from promptpilot.contracts.models import (
    Identity,
    ModelPilotInfo,
    PipelineResult,
    ProcessRequest,
    ResultMetadata,
    resolve_params,
)
from promptpilot.errors import (
    InternalError,
    InvalidArgument,
    PipelineError,
    PreprocessingFailed,
    RoutingFailed,
)
from promptpilot.logging.logger import log_fields
from promptpilot.observability.metrics import (
    llm_tokens,
    pipeline_invocations,
    pipeline_stage_time,
    router_cost,
)
from promptpilot.preprocessing import RequestTransformer, build_transformer
from promptpilot.router_client import CompletionResult, ModelRouter, get_model_router
from promptpilot.template_store import InMemoryTemplateStore, TemplateStore
from promptpilot.templating import render
from services.prompt_service.config import PromptServiceConfig

logger = logging.getLogger(__name__)


class PromptPipeline:

    def __init__(
        self,
        transformer: RequestTransformer,
        store: TemplateStore,
        router: ModelRouter,
    ) -> None:
        self._transformer = transformer
        self._store = store
        self._router = router

    async def process(
        self,
        data: Mapping[str, Any] | None,
        identity: Identity | None = None,
    ) -> PipelineResult:
        """Run one invocation. Raises PipelineError on any failure."""
        prompt_id = data.get("promptId") if isinstance(data, Mapping) else None
        try:
            result = await self._run(data, identity)
        except PipelineError as exc:
            self._log_failure(exc, identity, prompt_id)
            raise
        except Exception as exc:
            error = InternalError(exc)
            self._log_failure(error, identity, prompt_id)
            raise error from exc

        pipeline_invocations.labels(outcome="success").inc()
        return result

    async def _run(self, data: Any, identity: Identity | None) -> PipelineResult:
        request = _validate(data, identity)
        identity_id = identity.id if identity else None

        with pipeline_stage_time.labels(stage="preprocess").time():
            try:
                processed = await self._transformer.transform(request)
            except PipelineError:
                raise
            except Exception as exc:
                raise PreprocessingFailed(
                    f"Preprocessing function failed: {type(exc).__name__}"
                ) from exc

        with pipeline_stage_time.labels(stage="fetch_template").time():
            template = await self._store.get(processed.prompt_id)

        with pipeline_stage_time.labels(stage="render").time():
            prompt = render(template.body, processed.context or {})

        params = resolve_params(processed, template)
        logger.info(
            "Processing prompt",
            extra=log_fields(
                identityId=identity_id,
                promptId=processed.prompt_id,
                promptChars=len(prompt),
                maxTokens=params.max_tokens,
                temperature=params.temperature,
                topP=params.top_p,
            ),
        )
        logger.debug("Rendered prompt", extra=log_fields(renderedPrompt=prompt))

        with pipeline_stage_time.labels(stage="complete").time():
            try:
                completion = await self._router.complete(prompt, params)
            except PipelineError:
                raise
            except Exception as exc:
                raise RoutingFailed(
                    f"Model router request failed: {type(exc).__name__}"
                ) from exc
        timestamp = datetime.now(timezone.utc).isoformat()

        result = _assemble(completion, timestamp)
        logger.info(
            "Successfully processed prompt",
            extra=log_fields(
                identityId=identity_id,
                promptId=processed.prompt_id,
                model=completion.model,
                tokensUsed=completion.usage.total_tokens,
                cost=completion.routing.cost if completion.routing else None,
            ),
        )
        return result

    @staticmethod
    def _log_failure(error: PipelineError, identity: Identity | None, prompt_id: Any) -> None:
        pipeline_invocations.labels(outcome=error.kind.value).inc()
        logger.error(
            "Error processing prompt",
            exc_info=error.__cause__ if isinstance(error, InternalError) else None,
            extra=log_fields(
                identityId=identity.id if identity else None,
                promptId=prompt_id if isinstance(prompt_id, str) else None,
                kind=error.kind.value,
                error=error.message,
                cause=repr(error.__cause__) if error.__cause__ is not None else None,
            ),
        )

    async def aclose(self) -> None:
        await self._transformer.aclose()
        await self._router.aclose()
        await self._store.close()


def _validate(data: Any, identity: Identity | None) -> ProcessRequest:
    if not isinstance(data, Mapping):
        raise InvalidArgument("Missing required field: promptId")
    prompt_id = data.get("promptId")
    if not isinstance(prompt_id, str) or not prompt_id:
        raise InvalidArgument("Missing required field: promptId")
    try:
        return ProcessRequest.model_validate({**data, "identity": identity})
    except ValidationError as exc:
        raise InvalidArgument(f"Invalid request: {_describe(exc)}") from exc


def _describe(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    )


def _assemble(completion: CompletionResult, timestamp: str) -> PipelineResult:
    usage = completion.usage
    llm_tokens.labels(direction="prompt").inc(usage.prompt_tokens)
    llm_tokens.labels(direction="completion").inc(usage.completion_tokens)

    model_pilot = None
    if completion.routing is not None:
        routing = completion.routing
        model_pilot = ModelPilotInfo(
            cost=routing.cost,
            latency=routing.latency_ms,
            provider=routing.provider,
        )
        if routing.cost and routing.cost > 0:
            router_cost.inc(routing.cost)

    return PipelineResult(
        response=completion.text,
        metadata=ResultMetadata(
            model=completion.model,
            usage=usage,
            finish_reason=completion.finish_reason,
            timestamp=timestamp,
            model_pilot=model_pilot,
        ),
    )


async def build_pipeline(cfg: PromptServiceConfig) -> PromptPipeline:
    """Wire the pipeline's collaborators from configuration."""
    transformer = build_transformer(
        cfg.preprocessing_function_url or None,
        timeout_s=cfg.preprocessing_timeout_s,
    )

    store: TemplateStore
    if cfg.database_url:
        from promptpilot.template_store.database import init_db
        from promptpilot.template_store.sql_store import SqlTemplateStore

        session_factory = await init_db(cfg.database_url)
        store = SqlTemplateStore(session_factory, collection=cfg.prompts_collection)
    else:
        logger.warning("DATABASE_URL not set; serving from an empty in-memory template store")
        store = InMemoryTemplateStore()

    router = get_model_router(
        cfg.router_provider,
        api_key=cfg.modelpilot_api_key,
        router_id=cfg.modelpilot_router_id,
        base_url=cfg.modelpilot_base_url,
        timeout=cfg.router_timeout_s,
    )
    logger.info(
        "Pipeline ready",
        extra=log_fields(
            router=cfg.router_provider,
            collection=cfg.prompts_collection,
            preprocessing=bool(cfg.preprocessing_function_url),
        ),
    )
    return PromptPipeline(transformer, store, router)
