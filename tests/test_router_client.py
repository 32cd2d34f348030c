from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

import httpx
import pytest
from openai import AsyncOpenAI

from promptpilot.errors import RoutingFailed
from promptpilot.router_client import (
    CompletionParams,
    CompletionResult,
    MockRouter,
    get_model_router,
)
from promptpilot.router_client.modelpilot_provider import ModelPilotRouter

ROUTER_ID = "router-123"


def _completion_body(content: Any = "Hi Ada!", meta: dict | None = None, choices: list | None = None) -> dict:
    body: dict[str, Any] = {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "gpt-4o-mini",
        "choices": choices
        if choices is not None
        else [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 12, "completion_tokens": 30, "total_tokens": 42},
    }
    if meta is not None:
        body["_meta"] = meta
    return body


def _complete(
    handler: Callable[[httpx.Request], httpx.Response],
    params: CompletionParams | None = None,
) -> CompletionResult:
    async def _run() -> CompletionResult:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = AsyncOpenAI(
            api_key="test-key",
            base_url="https://router.example.test/v1",
            http_client=http_client,
            max_retries=0,
        )
        router = ModelPilotRouter(api_key="test-key", router_id=ROUTER_ID, client=client)
        try:
            return await router.complete("Hello Ada!", params or CompletionParams())
        finally:
            await router.aclose()

    return asyncio.run(_run())


def test_modelpilot_sends_prompt_and_only_set_params():
    seen: list[dict[str, Any]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/chat/completions")
        seen.append(json.loads(request.content))
        return httpx.Response(200, json=_completion_body())

    _complete(handler, CompletionParams(max_tokens=300, temperature=0.0))

    sent = seen[0]
    assert sent["model"] == ROUTER_ID
    assert sent["messages"] == [{"role": "user", "content": "Hello Ada!"}]
    assert sent["max_tokens"] == 300
    assert sent["temperature"] == 0.0
    assert "top_p" not in sent


def test_modelpilot_reads_completion_and_routing_meta():
    meta = {"cost": 0.00042, "latency": 812, "modelUsed": "openai/gpt-4o-mini"}
    result = _complete(lambda request: httpx.Response(200, json=_completion_body(meta=meta)))

    assert result.text == "Hi Ada!"
    assert result.model == "gpt-4o-mini"
    assert result.finish_reason == "stop"
    assert result.usage.total_tokens == 42
    assert result.routing is not None
    assert result.routing.cost == 0.00042
    assert result.routing.latency_ms == 812
    assert result.routing.provider == "openai/gpt-4o-mini"


def test_modelpilot_without_meta_has_no_routing():
    result = _complete(lambda request: httpx.Response(200, json=_completion_body()))
    assert result.routing is None


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": {"message": "upstream down"}}),
        httpx.Response(401, json={"error": {"message": "bad key"}}),
        httpx.Response(200, json=_completion_body(choices=[])),
        httpx.Response(200, json=_completion_body(content=None)),
    ],
)
def test_modelpilot_failures_raise_routing_failed(response):
    with pytest.raises(RoutingFailed):
        _complete(lambda request: response)


def test_modelpilot_requires_credentials():
    with pytest.raises(ValueError):
        ModelPilotRouter(api_key="", router_id=ROUTER_ID)
    with pytest.raises(ValueError):
        ModelPilotRouter(api_key="key", router_id="")


def test_factory_builds_known_routers():
    assert isinstance(get_model_router("mock"), MockRouter)
    assert isinstance(get_model_router("MOCK"), MockRouter)
    with pytest.raises(ValueError):
        get_model_router("carrier-pigeon")
    with pytest.raises(ValueError):
        get_model_router("modelpilot", api_key="", router_id="")


def test_mock_router_is_deterministic():
    router = MockRouter()
    params = CompletionParams()
    first = asyncio.run(router.complete("same prompt", params))
    second = asyncio.run(router.complete("same prompt", params))
    other = asyncio.run(router.complete("different prompt", params))

    assert first == second
    assert first.text != other.text
    assert first.routing is not None
    assert asyncio.run(MockRouter(report_routing=False).complete("x", params)).routing is None
