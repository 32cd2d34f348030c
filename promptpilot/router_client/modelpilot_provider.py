"""
ModelPilot router client.

ModelPilot exposes an OpenAI-compatible Chat Completions endpoint that picks
the underlying provider/model itself; the router id is sent as the ``model``.
Besides the standard completion fields the reply body carries a ``_meta``
object with the routing decision:

    {"_meta": {"cost": 0.00042, "latency": 812, "modelUsed": "openai/gpt-4o-mini"}}

Older router deployments omit ``_meta``; the result then has no routing info.
"""

from __future__ import annotations

import logging
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from promptpilot.errors import RoutingFailed
from promptpilot.router_client.base import ModelRouter
from promptpilot.router_client.models import (
    CompletionParams,
    CompletionResult,
    RoutingInfo,
    Usage,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.modelpilot.co/v1"


class ModelPilotRouter(ModelRouter):
    """Chat Completions adapter for the ModelPilot router."""

    def __init__(
        self,
        api_key: str,
        router_id: str,
        base_url: str | None = None,
        timeout: float = 120.0,
        max_retries: int = 2,
        client: AsyncOpenAI | None = None,
    ) -> None:
        if not api_key and client is None:
            raise ValueError(
                "An API key is required for the ModelPilot router. "
                "Set MODELPILOT_API_KEY in your environment."
            )
        if not router_id:
            raise ValueError(
                "A router id is required for the ModelPilot router. "
                "Set MODELPILOT_ROUTER_ID in your environment."
            )
        self._router_id = router_id
        self._client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url or DEFAULT_BASE_URL,
            timeout=timeout,
            max_retries=max_retries,
        )

    async def complete(self, prompt: str, params: CompletionParams) -> CompletionResult:
        kwargs: dict[str, Any] = {}
        if params.max_tokens is not None:
            kwargs["max_tokens"] = params.max_tokens
        if params.temperature is not None:
            kwargs["temperature"] = params.temperature
        if params.top_p is not None:
            kwargs["top_p"] = params.top_p

        try:
            raw = await self._client.chat.completions.with_raw_response.create(
                model=self._router_id,
                messages=[{"role": "user", "content": prompt}],
                **kwargs,
            )
            completion = raw.parse()
            body = raw.http_response.json()
        except OpenAIError as exc:
            raise RoutingFailed(f"Model router request failed: {type(exc).__name__}") from exc
        except ValueError as exc:
            raise RoutingFailed("Model router returned an unreadable reply") from exc

        if not completion.choices:
            raise RoutingFailed("Model router returned no choices")
        choice = completion.choices[0]
        if choice.message is None or choice.message.content is None:
            raise RoutingFailed("Model router returned no text")

        usage = completion.usage
        return CompletionResult(
            text=choice.message.content,
            model=completion.model,
            usage=Usage(
                prompt_tokens=usage.prompt_tokens if usage else 0,
                completion_tokens=usage.completion_tokens if usage else 0,
                total_tokens=usage.total_tokens if usage else 0,
            ),
            finish_reason=choice.finish_reason,
            routing=_routing_info(body),
        )

    async def aclose(self) -> None:
        await self._client.close()


def _routing_info(body: Any) -> RoutingInfo | None:
    meta = body.get("_meta") if isinstance(body, dict) else None
    if not isinstance(meta, dict):
        return None
    try:
        return RoutingInfo(
            cost=meta.get("cost"),
            latency_ms=meta.get("latency"),
            provider=meta.get("modelUsed"),
        )
    except ValueError:
        logger.warning("Ignoring unreadable routing metadata: %r", meta)
        return None
