from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

import httpx
import pytest

from promptpilot.contracts.models import Identity, PreprocessedRequest, ProcessRequest
from promptpilot.errors import PreprocessingFailed
from promptpilot.preprocessing import (
    IdentityTransformer,
    RemoteTransformer,
    build_transformer,
)

HOOK_URL = "https://hooks.example.test/preprocess"


def _request(**overrides: Any) -> ProcessRequest:
    fields: dict[str, Any] = {
        "promptId": "welcome-email",
        "context": {"userName": "Ada"},
        "maxTokens": 200,
    }
    fields.update(overrides)
    return ProcessRequest.model_validate(fields)


def _transform(
    handler: Callable[[httpx.Request], Any],
    request: ProcessRequest,
    timeout_s: float = 10.0,
) -> PreprocessedRequest:
    async def _run() -> PreprocessedRequest:
        transport = httpx.MockTransport(handler)
        async with httpx.AsyncClient(transport=transport) as client:
            transformer = RemoteTransformer(HOOK_URL, timeout_s=timeout_s, http_client=client)
            return await transformer.transform(request)

    return asyncio.run(_run())


def test_build_transformer_selects_variant():
    assert isinstance(build_transformer(None), IdentityTransformer)
    assert isinstance(build_transformer(""), IdentityTransformer)
    remote = build_transformer(HOOK_URL, timeout_s=2.0)
    assert isinstance(remote, RemoteTransformer)
    assert remote.url == HOOK_URL
    asyncio.run(remote.aclose())


def test_identity_transformer_returns_request_fields():
    request = _request(identity=Identity(id="user-1"))
    processed = asyncio.run(IdentityTransformer().transform(request))

    assert isinstance(processed, PreprocessedRequest)
    assert not isinstance(processed, ProcessRequest)
    assert processed.prompt_id == "welcome-email"
    assert processed.context == {"userName": "Ada"}
    assert processed.max_tokens == 200


def test_remote_sends_data_and_auth_and_uses_reply():
    seen: list[dict[str, Any]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert str(request.url) == HOOK_URL
        body = json.loads(request.content)
        seen.append(body)
        rewritten = dict(body["data"])
        rewritten["promptId"] = "greeting"
        rewritten["context"] = {"name": "Ada (verified)"}
        rewritten["temperature"] = 0.2
        return httpx.Response(200, json={"data": rewritten})

    identity = Identity(id="user-1", claims={"plan": "pro"})
    processed = _transform(handler, _request(identity=identity))

    assert seen == [
        {
            "data": {
                "promptId": "welcome-email",
                "context": {"userName": "Ada"},
                "maxTokens": 200,
            },
            "auth": {"id": "user-1", "claims": {"plan": "pro"}},
        }
    ]
    assert processed.prompt_id == "greeting"
    assert processed.context == {"name": "Ada (verified)"}
    assert processed.max_tokens == 200
    assert processed.temperature == 0.2


def test_remote_sends_null_auth_without_identity():
    seen: list[dict[str, Any]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body)
        return httpx.Response(200, json={"data": body["data"]})

    _transform(handler, _request())
    assert seen[0]["auth"] is None


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": "boom"}),
        httpx.Response(429, json={"data": {"promptId": "welcome-email"}}),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"result": {"promptId": "welcome-email"}}),
        httpx.Response(200, json={"data": "welcome-email"}),
        httpx.Response(200, json=["data"]),
        httpx.Response(200, json={"data": {"context": {}}}),
        httpx.Response(200, json={"data": {"promptId": ""}}),
        httpx.Response(200, json={"data": {"promptId": "x", "temperature": 7}}),
    ],
)
def test_remote_bad_replies_are_fatal(response):
    with pytest.raises(PreprocessingFailed):
        _transform(lambda request: response, _request())


def test_remote_network_error_is_fatal():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(PreprocessingFailed) as info:
        _transform(handler, _request())
    assert isinstance(info.value.__cause__, httpx.ConnectError)


def test_remote_timeout_is_fatal():
    async def slow_handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1.0)
        return httpx.Response(200, json={"data": {"promptId": "welcome-email"}})

    with pytest.raises(PreprocessingFailed) as info:
        _transform(slow_handler, _request(), timeout_s=0.05)
    assert "timed out after 50 ms" in info.value.message


def test_transport_timeout_is_fatal():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("read timed out", request=request)

    with pytest.raises(PreprocessingFailed):
        _transform(handler, _request())
