"""
Deterministic mock router for tests and local development.

Always returns the same output for the same prompt, so the whole pipeline
is reproducible without network calls or an API key.
"""

from __future__ import annotations

import hashlib

from promptpilot.router_client.base import ModelRouter
from promptpilot.router_client.models import (
    CompletionParams,
    CompletionResult,
    RoutingInfo,
    Usage,
)

_MOCK_PREFIX = "[MOCK] "


class MockRouter(ModelRouter):

    def __init__(self, report_routing: bool = True) -> None:
        self._report_routing = report_routing

    async def complete(self, prompt: str, params: CompletionParams) -> CompletionResult:
        prompt_hash = hashlib.sha256(prompt.encode()).hexdigest()

        content = f"{_MOCK_PREFIX}Deterministic response for prompt hash {prompt_hash[:12]}."
        if params.max_tokens is not None:
            content = " ".join(content.split()[: params.max_tokens])

        fake_prompt_tokens = len(prompt.split())
        fake_completion_tokens = len(content.split())

        routing = None
        if self._report_routing:
            routing = RoutingInfo(cost=0.0, latency_ms=0.0, provider="mock/deterministic")

        return CompletionResult(
            text=content,
            model="mock-deterministic",
            usage=Usage(
                prompt_tokens=fake_prompt_tokens,
                completion_tokens=fake_completion_tokens,
                total_tokens=fake_prompt_tokens + fake_completion_tokens,
            ),
            finish_reason="stop",
            routing=routing,
        )
