"""
Wire and domain contracts of the prompt pipeline.

Field names are snake_case in Python and camelCase on the wire
(``promptId``, ``maxTokens``, ``topP``); both spellings are accepted on input.
Every model is frozen: a fetched template or a validated request is a
read-only snapshot for the rest of the invocation.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from promptpilot.router_client.models import CompletionParams, Usage

_WIRE_CONFIG = ConfigDict(
    frozen=True,
    populate_by_name=True,
    alias_generator=to_camel,
)


class Identity(BaseModel):
    """Opaque caller identity attached by the hosting platform."""

    model_config = ConfigDict(frozen=True)

    id: str
    claims: dict[str, Any] = Field(default_factory=dict)


class PreprocessedRequest(BaseModel):
    """The request fields the rest of the pipeline works from."""

    model_config = _WIRE_CONFIG

    prompt_id: str = Field(min_length=1)
    context: dict[str, Any] | None = None
    max_tokens: int | None = Field(default=None, ge=1, strict=True)
    temperature: float | None = Field(default=None, ge=0.0, le=1.0, strict=True)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0, strict=True)

    def to_wire(self) -> dict[str, Any]:
        """camelCase payload with unset fields omitted."""
        return self.model_dump(by_alias=True, exclude_none=True, exclude={"identity"})


class ProcessRequest(PreprocessedRequest):
    identity: Identity | None = None

    def without_identity(self) -> PreprocessedRequest:
        return PreprocessedRequest.model_validate(self.to_wire())


class PromptTemplate(BaseModel):
    """A stored template document, as fetched for one invocation."""

    model_config = ConfigDict(frozen=True)

    id: str
    body: str
    max_tokens: int | None = Field(default=None, ge=1)
    temperature: float | None = Field(default=None, ge=0.0, le=1.0)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)
    description: str = ""


class ModelPilotInfo(BaseModel):
    cost: float | None = None
    latency: float | None = None
    provider: str | None = None


class ResultMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    model: str
    usage: Usage
    finish_reason: str | None = Field(default=None, alias="finishReason")
    timestamp: str
    model_pilot: ModelPilotInfo | None = Field(default=None, alias="modelPilot")


class PipelineResult(BaseModel):
    success: bool = True
    response: str
    metadata: ResultMetadata

    def to_response(self) -> dict[str, Any]:
        """Caller-facing payload; ``modelPilot`` is left out rather than null."""
        data = self.model_dump(by_alias=True)
        if data["metadata"]["modelPilot"] is None:
            del data["metadata"]["modelPilot"]
        return data


def resolve_params(request: PreprocessedRequest, template: PromptTemplate) -> CompletionParams:
    """Request override, then template default, then router default (None)."""
    return CompletionParams(
        max_tokens=_first_set(request.max_tokens, template.max_tokens),
        temperature=_first_set(request.temperature, template.temperature),
        top_p=_first_set(request.top_p, template.top_p),
    )


def _first_set(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None
