"""
Shared fakes for the prompt pipeline test suite.

The router and store fakes record every call so tests can assert that a
failing stage stopped the pipeline before any later collaborator ran.
"""

from __future__ import annotations

from typing import Any

import pytest

from promptpilot.contracts.models import PreprocessedRequest, ProcessRequest, PromptTemplate
from promptpilot.preprocessing import RequestTransformer
from promptpilot.router_client import (
    CompletionParams,
    CompletionResult,
    ModelRouter,
    RoutingInfo,
    Usage,
)
from promptpilot.template_store import InMemoryTemplateStore


def make_completion(text: str = "Generated text", routing: bool = True) -> CompletionResult:
    return CompletionResult(
        text=text,
        model="gpt-4o-mini",
        usage=Usage(prompt_tokens=12, completion_tokens=30, total_tokens=42),
        finish_reason="stop",
        routing=RoutingInfo(cost=0.00042, latency_ms=812.0, provider="openai/gpt-4o-mini")
        if routing
        else None,
    )


class FakeRouter(ModelRouter):
    """Returns a canned completion (or raises) and records every call."""

    def __init__(
        self,
        result: CompletionResult | None = None,
        error: Exception | None = None,
    ) -> None:
        self.result = result or make_completion()
        self.error = error
        self.calls: list[tuple[str, CompletionParams]] = []

    async def complete(self, prompt: str, params: CompletionParams) -> CompletionResult:
        self.calls.append((prompt, params))
        if self.error is not None:
            raise self.error
        return self.result


class SpyStore(InMemoryTemplateStore):
    """In-memory store that counts lookups."""

    def __init__(self, documents: dict[str, dict[str, Any]] | None = None) -> None:
        super().__init__(documents)
        self.lookups: list[str] = []

    async def get(self, prompt_id: str) -> PromptTemplate:
        self.lookups.append(prompt_id)
        return await super().get(prompt_id)


class RecordingTransformer(RequestTransformer):
    """Identity transform that remembers the requests it saw."""

    def __init__(self) -> None:
        self.requests: list[ProcessRequest] = []

    async def transform(self, request: ProcessRequest) -> PreprocessedRequest:
        self.requests.append(request)
        return request.without_identity()


SAMPLE_TEMPLATES: dict[str, dict[str, Any]] = {
    "welcome-email": {
        "template": (
            "Write a friendly welcome email for {{userName}} who just signed up "
            "for {{productName}}. Make it warm and professional."
        ),
        "description": "Welcome email template",
        "maxTokens": 500,
        "temperature": 0.7,
    },
    "product-description": {
        "template": (
            "Create an engaging product description for {{productName}}. "
            "Price: ${{price}}. Key features:\n{{#each features}}- {{this}}\n{{/each}}\n\n"
            "Make it compelling and highlight the value proposition."
        ),
        "maxTokens": 300,
        "temperature": 0.8,
    },
    "greeting": {"template": "Hello {{name}}!", "topP": 0.9},
    "no-body": {"description": "Document without a template field"},
    "broken": {"template": "{{#if vip}}Dear VIP,"},
}


@pytest.fixture
def store() -> SpyStore:
    return SpyStore(SAMPLE_TEMPLATES)


@pytest.fixture
def router() -> FakeRouter:
    return FakeRouter()
